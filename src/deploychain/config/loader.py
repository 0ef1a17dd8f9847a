"""
Environment configuration loading.

Search order:
1. Explicit path (--config flag or DEPLOYCHAIN_CONFIG_PATH)
2. .deploychain/config.yaml (project root)
3. ~/.deploychain/config.yaml (user home)

File layout:

    environments:
      staging:
        client: http
        description: Staging gateway
        url: https://provisioner.staging.example.com
        token: ${PROVISIONER_TOKEN}

Every key other than `client` and `description` is passed to the client
factory. ${VAR} placeholders are expanded from the process environment.
A `dry-run` environment is always available.
"""

from __future__ import annotations

import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Mapping

import structlog
import yaml

from deploychain.config.settings import Settings, get_settings
from deploychain.core.errors import ConfigurationError
from deploychain.provisioning import create_client

logger = structlog.get_logger()

DRY_RUN_ENVIRONMENT = "dry-run"

_VAR_PATTERN = re.compile(r"\$\{(\w+)\}")


@dataclass
class EnvironmentConfig:
    """A named deployment target and the client that provisions into it."""

    name: str
    client: str
    options: Dict[str, Any] = field(default_factory=dict)
    description: str | None = None

    @property
    def is_dry_run(self) -> bool:
        return self.client == DRY_RUN_ENVIRONMENT


def default_environments() -> Dict[str, EnvironmentConfig]:
    return {
        DRY_RUN_ENVIRONMENT: EnvironmentConfig(
            name=DRY_RUN_ENVIRONMENT,
            client=DRY_RUN_ENVIRONMENT,
            description="Rehearsal; nothing is provisioned",
        )
    }


def get_config_path(explicit_path: str | Path | None = None) -> Path | None:
    """
    Find the configuration file to use.

    Returns:
        Path to config file or None if not found
    """
    if explicit_path:
        path = Path(explicit_path)
        if not path.exists():
            raise ConfigurationError(f"Config file not found: {path}", {"path": str(path)})
        return path

    cwd_config = Path.cwd() / ".deploychain" / "config.yaml"
    if cwd_config.exists():
        return cwd_config

    home_config = Path.home() / ".deploychain" / "config.yaml"
    if home_config.exists():
        return home_config

    return None


def expand_env_vars(value: Any, environ: Mapping[str, str] | None = None) -> Any:
    """Recursively replace ${VAR} with values from the environment."""
    env = os.environ if environ is None else environ

    if isinstance(value, str):

        def replace_var(match: re.Match) -> str:
            var_name = match.group(1)
            if var_name not in env:
                raise ConfigurationError(
                    f"Environment variable '{var_name}' is not set",
                    {"variable": var_name},
                )
            return env[var_name]

        return _VAR_PATTERN.sub(replace_var, value)
    if isinstance(value, dict):
        return {k: expand_env_vars(v, env) for k, v in value.items()}
    if isinstance(value, list):
        return [expand_env_vars(item, env) for item in value]
    return value


class ConfigLoader:
    """Loads environment definitions from the config file."""

    def __init__(self, config_path: Path | None = None):
        self.config_path = config_path

    def load(self) -> Dict[str, EnvironmentConfig]:
        environments = default_environments()
        if self.config_path is None:
            return environments

        try:
            with open(self.config_path) as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as exc:
            raise ConfigurationError(
                f"Config file {self.config_path} is not valid YAML: {exc}",
                {"path": str(self.config_path)},
            ) from exc

        raw_envs = data.get("environments") or {}
        if not isinstance(raw_envs, dict):
            raise ConfigurationError("'environments' must be a mapping")

        for name, raw in raw_envs.items():
            environments[str(name)] = self._parse_environment(str(name), raw)

        logger.debug(
            "loaded_config",
            path=str(self.config_path),
            environments=sorted(environments),
        )
        return environments

    def _parse_environment(self, name: str, raw: Any) -> EnvironmentConfig:
        if not isinstance(raw, dict):
            raise ConfigurationError(f"Environment '{name}' must be a mapping")
        options = dict(raw)
        client = options.pop("client", None)
        if not client:
            raise ConfigurationError(
                f"Environment '{name}' does not name a client",
                {"environment": name},
            )
        description = options.pop("description", None)
        return EnvironmentConfig(
            name=name,
            client=str(client),
            options=options,
            description=description,
        )


def load_environments(path: str | Path | None = None) -> Dict[str, EnvironmentConfig]:
    """Convenience function to load every configured environment."""
    return ConfigLoader(get_config_path(path)).load()


def resolve_environment(name: str, path: str | Path | None = None) -> EnvironmentConfig:
    environments = load_environments(path)
    env = environments.get(name)
    if env is None:
        known = ", ".join(sorted(environments))
        raise ConfigurationError(
            f"Unknown environment '{name}' (known: {known})",
            {"environment": name},
        )
    return env


def create_environment_client(env: EnvironmentConfig, settings: Settings | None = None) -> Any:
    """Instantiate the provisioning client an environment names."""
    settings = settings or get_settings()
    options = expand_env_vars(env.options)
    if env.client == "http":
        options.setdefault("timeout", settings.http_timeout)
    logger.debug("creating_client", environment=env.name, client=env.client)
    return create_client(env.client, **options)
