"""
deploychain configuration.

- Pydantic-based settings (environment variables, .env files)
- Named deployment environments from .deploychain/config.yaml
"""

from deploychain.config.loader import (
    DRY_RUN_ENVIRONMENT,
    ConfigLoader,
    EnvironmentConfig,
    create_environment_client,
    expand_env_vars,
    get_config_path,
    load_environments,
    resolve_environment,
)
from deploychain.config.settings import Settings, get_settings

__all__ = [
    "DRY_RUN_ENVIRONMENT",
    "ConfigLoader",
    "EnvironmentConfig",
    "Settings",
    "create_environment_client",
    "expand_env_vars",
    "get_config_path",
    "get_settings",
    "load_environments",
    "resolve_environment",
]
