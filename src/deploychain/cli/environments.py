"""
CLI command for listing deployment environments.
"""

from __future__ import annotations

import json
from typing import Optional

from deploychain.cli.ux import console, print_table
from deploychain.config.loader import get_config_path, load_environments
from deploychain.core.errors import ExitCode, main_with_error_handling


@main_with_error_handling()
def list_environments_command(config: Optional[str] = None, output_format: str = "text") -> int:
    """List configured environments and the client each one uses."""
    path = get_config_path(config)
    environments = load_environments(path)

    if output_format == "json":
        print(
            json.dumps(
                {
                    "config": str(path) if path else None,
                    "environments": [
                        {"name": env.name, "client": env.client, "description": env.description}
                        for env in environments.values()
                    ],
                },
                indent=2,
            )
        )
        return ExitCode.SUCCESS

    rows = [
        [env.name, env.client, env.description or ""] for env in environments.values()
    ]
    print_table("Environments", ["Name", "Client", "Description"], rows)
    source = str(path) if path else "built-in defaults only"
    console.print(f"[muted]Config: {source}[/muted]")
    return ExitCode.SUCCESS
