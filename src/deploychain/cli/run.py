"""
CLI command for running a provisioning plan against an environment.
"""

from __future__ import annotations

import json
import signal
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, List, Optional

import structlog

from deploychain.cli.inputs import load_plan_input
from deploychain.cli.ux import (
    console,
    confirm,
    error,
    header,
    info,
    is_interactive,
    print_table,
    success,
    warning,
)
from deploychain.cli.validate import print_violations, violations_to_dict
from deploychain.config.loader import create_environment_client, resolve_environment
from deploychain.config.settings import get_settings
from deploychain.core.errors import ExitCode, InvalidPlan, main_with_error_handling
from deploychain.orchestration.cancellation import CancellationToken
from deploychain.orchestration.engine import run_plan
from deploychain.orchestration.results import RunOutcome, RunResult, StepStatus
from deploychain.orchestration.state import save_run_result
from deploychain.plan.validator import validate_plan

logger = structlog.get_logger()


@contextmanager
def cancel_on_interrupt(token: CancellationToken) -> Iterator[None]:
    """Turn the first Ctrl-C into a between-steps cancellation.

    A second Ctrl-C falls through to the default handler.
    """
    if threading.current_thread() is not threading.main_thread():
        yield
        return

    def _handler(signum, frame):  # noqa: ARG001
        if token.cancelled:
            signal.signal(signal.SIGINT, signal.default_int_handler)
            raise KeyboardInterrupt
        token.cancel("interrupted by operator")
        console.print(
            "[warning]⚠ Cancelling after the in-flight step completes "
            "(press Ctrl-C again to abort immediately)[/warning]"
        )

    previous = signal.signal(signal.SIGINT, _handler)
    try:
        yield
    finally:
        signal.signal(signal.SIGINT, previous)


def print_run_summary(result: RunResult, environment: str) -> None:
    """Print the run outcome and every identity resolved so far."""
    header(f"Run: {result.plan_name} → {environment}")
    console.print(f"[muted]run id {result.run_id}[/muted]")
    console.print()

    rows = []
    for record in result.steps:
        if record.status is StepStatus.SUCCEEDED:
            status = "[success]✓ provisioned[/success]"
            detail = str(record.identity)
        else:
            status = "[error]✗ failed[/error]"
            detail = record.error or ""
        rows.append([record.name, record.descriptor, status, detail, f"{record.duration_seconds:.1f}s"])
    for name in result.not_started:
        rows.append([name, "", "[muted]- not started[/muted]", "", ""])

    if rows:
        print_table("Steps", ["Step", "Descriptor", "Status", "Identity / Error", "Time"], rows)
        console.print()

    provisioned = len(result.registry)
    if result.outcome is RunOutcome.SUCCEEDED:
        success(f"Provisioned {provisioned} components in {result.duration_seconds:.1f}s")
    elif result.outcome is RunOutcome.CANCELLED:
        warning(f"Run cancelled after {provisioned} components: {result.error.message}")
    else:
        error(f"Step '{result.failed_step}' failed after {provisioned} components were provisioned")
        console.print(f"   [muted]cause:[/muted] {result.error.cause}")
    console.print()


@main_with_error_handling()
def run_command(
    plan_file: str,
    env: Optional[str] = None,
    config: Optional[str] = None,
    set_values: Optional[List[str]] = None,
    import_registry: Optional[str] = None,
    concurrency: Optional[int] = None,
    save: Optional[str] = None,
    output_format: str = "text",
    yes: bool = False,
) -> int:
    """
    Provision every step of a plan, in order, into an environment.

    Exit codes: 0 = all provisioned, 11 = provisioning failed,
    12 = invalid plan, 130 = cancelled, 10 = configuration error
    """
    settings = get_settings()

    try:
        plan = validate_plan(load_plan_input(plan_file, set_values, import_registry))
    except InvalidPlan as exc:
        if output_format == "json":
            print(json.dumps({"valid": False, "violations": violations_to_dict(exc.violations)}, indent=2))
        else:
            print_violations(exc.violations)
        return ExitCode.INVALID_PLAN

    environment = resolve_environment(env or settings.environment, config or settings.config_path)
    client = create_environment_client(environment, settings)

    if not plan.steps and output_format != "json":
        warning("Plan has no steps; nothing to provision")

    if not environment.is_dry_run and not yes:
        if not is_interactive():
            error(f"Refusing to provision into '{environment.name}' without --yes")
            return ExitCode.CONFIG_ERROR
        if not confirm(
            f"Provision {len(plan)} components from '{plan.name}' into '{environment.name}'?"
        ):
            warning("Aborted; nothing was provisioned")
            return ExitCode.CANCELLED

    if environment.is_dry_run and output_format != "json":
        info("Dry run: nothing will be provisioned")

    token = CancellationToken()
    with cancel_on_interrupt(token):
        result = run_plan(
            plan,
            client,
            max_concurrency=concurrency or settings.max_concurrency,
            cancel_token=token,
        )

    if save:
        save_run_result(result, Path(save))
        logger.info("run_saved", path=save, run_id=result.run_id)

    if output_format == "json":
        payload = result.to_dict()
        payload["environment"] = environment.name
        print(json.dumps(payload, indent=2, default=str))
    else:
        print_run_summary(result, environment.name)
        if save:
            console.print(f"[muted]Run record saved to {save}[/muted]")

    return result.exit_code
