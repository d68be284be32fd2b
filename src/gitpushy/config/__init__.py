"""Configuration module for GitPushy.

This module provides configuration loading, validation, and schema definitions.

Usage:
    from gitpushy.config import load_config, merge_config

    config = load_config()  # Auto-discovers config file
    config = merge_config({"targets": [{"owner": "acme", "repo": "widgets"}]})
"""

from gitpushy.config.loader import (
    ConfigError,
    ConfigNotFoundError,
    ConfigValidationError,
    EnvironmentVariableError,
    discover_config_path,
    load_config,
)
from gitpushy.config.schema import (
    AlertsConfig,
    AuthConfig,
    BaseBranchesMode,
    Config,
    DisplayConfig,
    GroupingConfig,
    LimitsConfig,
    QueryConfig,
    RefreshConfig,
    Target,
    merge_config,
)

__all__ = [
    "AlertsConfig",
    "AuthConfig",
    "BaseBranchesMode",
    "Config",
    "ConfigError",
    "ConfigNotFoundError",
    "ConfigValidationError",
    "DisplayConfig",
    "EnvironmentVariableError",
    "GroupingConfig",
    "LimitsConfig",
    "QueryConfig",
    "RefreshConfig",
    "Target",
    "discover_config_path",
    "load_config",
    "merge_config",
]
