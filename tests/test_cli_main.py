"""Tests for argument parsing and command dispatch."""

from unittest.mock import patch

import pytest
from deploychain.cli.main import build_parser, main
from deploychain.config.settings import get_settings


class TestParser:
    def test_run_arguments(self):
        args = build_parser().parse_args(
            [
                "run",
                "plan.yaml",
                "--env",
                "staging",
                "--set",
                "PLATFORM_FEE=1000",
                "--set",
                "PRICE_FEED_ADDRESS=0x6666",
                "--concurrency",
                "4",
                "--save",
                "run.json",
                "-y",
            ]
        )

        assert args.command == "run"
        assert args.plan_file == "plan.yaml"
        assert args.env == "staging"
        assert args.set_values == ["PLATFORM_FEE=1000", "PRICE_FEED_ADDRESS=0x6666"]
        assert args.concurrency == 4
        assert args.save == "run.json"
        assert args.yes is True
        assert args.output == "text"

    def test_environment_alias(self):
        args = build_parser().parse_args(["run", "plan.yaml", "--environment", "prod"])

        assert args.env == "prod"


class TestMain:
    def test_validate_exit_code(self, migration_plan_yaml):
        with pytest.raises(SystemExit) as exc_info:
            main(["validate", str(migration_plan_yaml)])

        assert exc_info.value.code == 0

    def test_dispatches_run(self, migration_plan_yaml):
        with patch("deploychain.cli.run.run_command", return_value=11) as run:
            with pytest.raises(SystemExit) as exc_info:
                main(["run", str(migration_plan_yaml), "--concurrency", "2", "--yes"])

        assert exc_info.value.code == 11
        kwargs = run.call_args.kwargs
        assert kwargs["concurrency"] == 2
        assert kwargs["yes"] is True

    def test_rejects_zero_concurrency(self, migration_plan_yaml):
        with pytest.raises(SystemExit) as exc_info:
            main(["run", str(migration_plan_yaml), "--concurrency", "0"])

        assert exc_info.value.code == 2

    def test_no_command_prints_help(self, capsys):
        with pytest.raises(SystemExit) as exc_info:
            main([])

        assert exc_info.value.code == 2
        assert "usage: deploychain" in capsys.readouterr().out

    def test_invalid_settings_exit_config_error(self, migration_plan_yaml, monkeypatch, capsys):
        monkeypatch.setenv("DEPLOYCHAIN_MAX_CONCURRENCY", "0")
        get_settings.cache_clear()

        try:
            with pytest.raises(SystemExit) as exc_info:
                main(["validate", str(migration_plan_yaml)])
        finally:
            get_settings.cache_clear()

        assert exc_info.value.code == 10
        assert "DEPLOYCHAIN_MAX_CONCURRENCY" in capsys.readouterr().err
