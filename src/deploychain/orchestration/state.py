from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict

from deploychain.core.errors import ConfigurationError
from deploychain.orchestration.results import RunResult


def save_run_result(result: RunResult, path: Path) -> None:
    """Write a run result as JSON so operators can inspect or resume from it."""
    path.parent.mkdir(parents=True, exist_ok=True)
    payload = result.to_dict()
    path.write_text(json.dumps(payload, indent=2, sort_keys=True, default=str) + "\n")


def load_run_record(path: Path) -> Dict[str, Any]:
    if not path.exists():
        raise ConfigurationError(f"Run record not found: {path}")
    try:
        data = json.loads(path.read_text())
    except json.JSONDecodeError as exc:
        raise ConfigurationError(f"Run record {path} is not valid JSON: {exc}") from exc
    if not isinstance(data, dict) or not isinstance(data.get("registry"), dict):
        raise ConfigurationError(f"Run record {path} has no 'registry' mapping")
    return data


def load_registry(path: Path) -> Dict[str, Any]:
    """Identities recorded by an earlier run, keyed by step name."""
    return dict(load_run_record(path)["registry"])
