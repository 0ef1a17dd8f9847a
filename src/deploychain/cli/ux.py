"""
Terminal output for deploychain commands: rich console plus questionary prompts.

Machine-readable output (--output json) bypasses this module and goes
straight to stdout. Prompts are never shown when stdout is not a TTY or a
CI system is detected.
"""

from __future__ import annotations

import os
import sys

import questionary
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.theme import Theme

CI_ENV_VARS = ("CI", "GITHUB_ACTIONS", "GITLAB_CI", "BUILDKITE", "JENKINS_URL", "CIRCLECI")

THEME = Theme(
    {
        "info": "#88C0D0",
        "success": "#A3BE8C",
        "warning": "#EBCB8B",
        "error": "#BF616A bold",
        "highlight": "#B48EAD",
        "muted": "#D8DEE9",
    }
)

console = Console(
    theme=THEME,
    force_terminal=os.environ.get("FORCE_COLOR") is not None,
    no_color=os.environ.get("NO_COLOR") is not None,
)

CONFIRM_STYLE = questionary.Style(
    [
        ("qmark", "fg:#EBCB8B bold"),
        ("question", "bold"),
        ("answer", "fg:#A3BE8C"),
    ]
)


def is_interactive() -> bool:
    """Whether an operator is at the terminal to answer prompts."""
    if any(os.environ.get(var) for var in CI_ENV_VARS):
        return False
    return sys.stdout.isatty()


def success(message: str) -> None:
    console.print(f"[success]✓ {message}[/success]")


def error(message: str) -> None:
    console.print(f"[error]✗ {message}[/error]")


def warning(message: str) -> None:
    console.print(f"[warning]⚠ {message}[/warning]")


def info(message: str) -> None:
    console.print(f"[info]ℹ {message}[/info]")


def header(title: str) -> None:
    console.print()
    console.print(Panel(f"[bold]{title}[/bold]", border_style="cyan", expand=False))


def print_table(title: str, columns: list[str], rows: list[list[str]]) -> None:
    table = Table(title=title, title_justify="left")
    for column in columns:
        table.add_column(column, overflow="fold")
    for row in rows:
        table.add_row(*row)
    console.print(table)


def confirm(message: str, default: bool = False) -> bool:
    """Ask a yes/no question; an interrupted prompt counts as no."""
    answer = questionary.confirm(message, default=default, style=CONFIRM_STYLE).ask()
    return bool(answer)
