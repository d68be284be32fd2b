"""Reading gitpushy configuration from YAML files.

A file is located (``--config``, ``$GITPUSHY_CONFIG``, ``./gitpushy.yaml``,
then ``$XDG_CONFIG_HOME/gitpushy/config.yaml``), parsed with PyYAML, has its
``${VAR}`` references substituted from the environment and is validated
strictly against the schema. Programmatic callers that want the lenient,
never-failing merge should use ``merge_config`` instead.
"""

from __future__ import annotations

import os
import re
from pathlib import Path
from typing import TYPE_CHECKING, Any

import yaml
from pydantic import ValidationError

from gitpushy.config.schema import Config
from gitpushy.paths import default_config_path

if TYPE_CHECKING:
    from collections.abc import Iterator

CONFIG_ENV_VAR = "GITPUSHY_CONFIG"
LOCAL_CONFIG_NAME = "gitpushy.yaml"

_ENV_REFERENCE = re.compile(r"\$\{([A-Z_][A-Z0-9_]*)\}")


class ConfigError(Exception):
    """Configuration could not be loaded."""

    def __init__(self, message: str, path: Path | None = None) -> None:
        self.path = path
        super().__init__(message)


class ConfigNotFoundError(ConfigError):
    """No configuration file exists at any discovery location."""


class ConfigValidationError(ConfigError):
    """The file parsed but does not match the schema.

    Attributes:
        validation_errors: Pydantic error details, one dict per problem.
    """

    def __init__(
        self,
        message: str,
        path: Path | None = None,
        validation_errors: list[dict[str, Any]] | None = None,
    ) -> None:
        self.validation_errors = list(validation_errors or [])
        super().__init__(message, path)


class EnvironmentVariableError(ConfigError):
    """A ``${VAR}`` reference names an unset environment variable."""

    def __init__(self, var_name: str, path: Path | None = None) -> None:
        self.var_name = var_name
        super().__init__(
            f"Environment variable '{var_name}' is referenced in the config but not set.",
            path,
        )


def expand_env_vars(value: Any, *, strict: bool = True) -> Any:
    """Substitute ``${VAR}`` references in strings, recursing into dicts and lists.

    Args:
        value: Parsed YAML value.
        strict: Raise for unset variables instead of leaving the reference as is.

    Raises:
        EnvironmentVariableError: If ``strict`` and a variable is unset.
    """
    if isinstance(value, dict):
        return {key: expand_env_vars(item, strict=strict) for key, item in value.items()}
    if isinstance(value, list):
        return [expand_env_vars(item, strict=strict) for item in value]
    if not isinstance(value, str):
        return value

    def substitute(match: re.Match[str]) -> str:
        name = match.group(1)
        if name in os.environ:
            return os.environ[name]
        if strict:
            raise EnvironmentVariableError(name)
        return match.group(0)

    return _ENV_REFERENCE.sub(substitute, value)


def _discovery_candidates() -> Iterator[Path]:
    env_path = os.environ.get(CONFIG_ENV_VAR)
    if env_path:
        yield Path(env_path).expanduser().resolve()
    yield Path.cwd() / LOCAL_CONFIG_NAME
    yield default_config_path()


def discover_config_path(explicit_path: str | Path | None = None) -> Path:
    """Find the configuration file to load.

    An explicit path must exist; otherwise the first existing candidate
    among ``$GITPUSHY_CONFIG``, ``./gitpushy.yaml`` and the XDG location wins.

    Raises:
        ConfigNotFoundError: If nothing exists.
    """
    if explicit_path:
        path = Path(explicit_path).expanduser().resolve()
        if not path.exists():
            raise ConfigNotFoundError(f"Config file not found: {path}", path)
        return path

    searched: list[Path] = []
    for candidate in _discovery_candidates():
        if candidate.exists():
            return candidate
        searched.append(candidate)

    listing = "".join(f"\n  - {p}" for p in searched)
    raise ConfigNotFoundError(f"No config file found. Searched locations:{listing}")


def load_yaml(path: Path) -> dict[str, Any]:
    """Parse a YAML file into a mapping; an empty document is an empty mapping.

    Raises:
        ConfigError: If the file is unreadable, malformed, or not a mapping.
    """
    try:
        with path.open(encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except OSError as e:
        raise ConfigError(f"Cannot read config file: {e}", path) from e
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML syntax: {e}", path) from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(
            f"Config file must contain a YAML mapping at the top level, got {type(data).__name__}",
            path,
        )
    return data


def _describe(error: ValidationError) -> str:
    lines = [
        f"  - {'.'.join(str(part) for part in detail['loc']) or '<root>'}: {detail['msg']}"
        for detail in error.errors()
    ]
    return f"Config validation failed ({error.error_count()} error(s)):\n" + "\n".join(lines)


def load_config(
    path: str | Path | None = None,
    *,
    expand_env: bool = True,
) -> Config:
    """Locate, parse and strictly validate the configuration file.

    Unlike ``merge_config``, invalid values are reported rather than
    replaced by their defaults, so typos in a file do not go unnoticed.

    Args:
        path: Explicit file path; discovery is used when None.
        expand_env: Whether to substitute ``${VAR}`` references.

    Raises:
        ConfigNotFoundError: If no file is found.
        ConfigError: If the file cannot be read or parsed.
        EnvironmentVariableError: If a referenced variable is unset.
        ConfigValidationError: If the content does not match the schema.
    """
    config_path = discover_config_path(path)
    raw = load_yaml(config_path)

    if expand_env:
        try:
            raw = expand_env_vars(raw)
        except EnvironmentVariableError as e:
            e.path = config_path
            raise

    try:
        return Config.model_validate(raw, context={"strict": True})
    except ValidationError as e:
        raise ConfigValidationError(
            _describe(e),
            path=config_path,
            validation_errors=[dict(detail) for detail in e.errors()],
        ) from e
