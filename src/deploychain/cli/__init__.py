"""
CLI commands for deploychain.
"""

from deploychain.cli.environments import list_environments_command
from deploychain.cli.plan import plan_command
from deploychain.cli.run import run_command
from deploychain.cli.validate import validate_command

__all__ = [
    "list_environments_command",
    "plan_command",
    "run_command",
    "validate_command",
]
