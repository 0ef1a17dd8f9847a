from __future__ import annotations

import argparse
import sys
from typing import Sequence

from deploychain.config.settings import get_settings
from deploychain.core.errors import ConfigurationError, ExitCode, format_error_message
from deploychain.logging import configure_logging


def _add_plan_input_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("plan_file", help="Path to plan YAML/JSON file")
    parser.add_argument("--set", dest="set_values", action="append", metavar="NAME=VALUE",
                        help="Override a plan constant (repeatable)")
    parser.add_argument("--import-registry", metavar="RUN_JSON",
                        help="Use identities from a saved run as constants")
    parser.add_argument("--output", choices=["text", "json"], default="text",
                        help="Output format")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="deploychain",
        description="Provision interdependent components in dependency order",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Show step-level logs")
    subparsers = parser.add_subparsers(dest="command")

    run_parser = subparsers.add_parser("run", help="Provision every step of a plan")
    _add_plan_input_arguments(run_parser)
    run_parser.add_argument("--env", "--environment", dest="env",
                            help="Target environment (default: DEPLOYCHAIN_ENVIRONMENT or dry-run)")
    run_parser.add_argument("--config", help="Environments config file")
    run_parser.add_argument("--concurrency", type=int,
                            help="Provision up to N independent steps at once (default: 1)")
    run_parser.add_argument("--save", metavar="RUN_JSON", help="Write the run result to a JSON file")
    run_parser.add_argument("-y", "--yes", action="store_true",
                            help="Do not ask for confirmation before provisioning")

    validate_parser = subparsers.add_parser("validate", help="Validate a plan without provisioning")
    _add_plan_input_arguments(validate_parser)

    plan_parser = subparsers.add_parser("plan", help="Preview execution order and dependency waves")
    _add_plan_input_arguments(plan_parser)

    envs_parser = subparsers.add_parser("environments", help="List configured environments")
    envs_parser.add_argument("--config", help="Environments config file")
    envs_parser.add_argument("--output", choices=["text", "json"], default="text",
                             help="Output format")

    return parser


def main(argv: Sequence[str] | None = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        settings = get_settings()
    except ConfigurationError as exc:
        print(f"Error: {format_error_message(exc)}", file=sys.stderr)
        sys.exit(ExitCode.CONFIG_ERROR)

    if args.verbose:
        configure_logging("INFO", json_logs=False)
    else:
        configure_logging(settings.log_level, json_logs=settings.log_json)

    if args.command == "run":
        from deploychain.cli.run import run_command

        if args.concurrency is not None and args.concurrency < 1:
            parser.error("--concurrency must be at least 1")
        sys.exit(run_command(
            args.plan_file,
            env=args.env,
            config=args.config,
            set_values=args.set_values,
            import_registry=args.import_registry,
            concurrency=args.concurrency,
            save=args.save,
            output_format=args.output,
            yes=args.yes,
        ))

    if args.command == "validate":
        from deploychain.cli.validate import validate_command

        sys.exit(validate_command(
            args.plan_file,
            set_values=args.set_values,
            import_registry=args.import_registry,
            output_format=args.output,
        ))

    if args.command == "plan":
        from deploychain.cli.plan import plan_command

        sys.exit(plan_command(
            args.plan_file,
            set_values=args.set_values,
            import_registry=args.import_registry,
            output_format=args.output,
        ))

    if args.command == "environments":
        from deploychain.cli.environments import list_environments_command

        sys.exit(list_environments_command(config=args.config, output_format=args.output))

    parser.print_help()
    sys.exit(2)
