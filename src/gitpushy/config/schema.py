"""Pydantic schema models for configuration.

This module defines the typed configuration consumed by the engine:
- Config: Top-level configuration container
- AuthConfig: Credential and API origin settings
- Target: One watched repository
- QueryConfig: Pull request state and draft filters
- DisplayConfig / GroupingConfig: Presentation settings for renderers
- LimitsConfig: Per-repository and global result caps
- RefreshConfig: Poll interval and rate-limit backoff
- AlertsConfig: Whether missing credentials are surfaced

Keys are accepted in camelCase (``maxPerRepo``) or snake_case
(``max_per_repo``). Validation is lenient by default: an invalid scalar
falls back to its default and numeric limits are clamped, so
``merge_config`` never raises. Passing ``context={"strict": True}`` to
``model_validate`` turns every fallback back into a validation error.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from enum import Enum
from typing import Annotated, Any, Literal

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    ValidationInfo,
    field_validator,
)
from pydantic.alias_generators import to_camel

logger = logging.getLogger(__name__)

DEFAULT_API_BASE_URL = "https://api.github.com"
DEFAULT_TOKEN_ENV_VAR = "GITHUB_TOKEN"
DEFAULT_UPDATE_INTERVAL_MS = 300_000
MIN_UPDATE_INTERVAL_MS = 1_000


def _is_strict(info: ValidationInfo) -> bool:
    return bool(info.context and info.context.get("strict"))


def _clamp(value: Any, *, minimum: int) -> Any:
    """Clamp a numeric value to a minimum, leaving non-numbers for the core validator."""
    if isinstance(value, bool):
        return value
    try:
        number = int(value)
    except (TypeError, ValueError):
        return value
    return max(number, minimum)


class _Section(BaseModel):
    """Base for configuration sections with per-field default fallback."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
        frozen=True,
    )

    @field_validator("*", mode="wrap")
    @classmethod
    def _fallback_to_default(cls, value: Any, handler: Any, info: ValidationInfo) -> Any:
        try:
            return handler(value)
        except ValidationError:
            field = cls.model_fields[info.field_name]
            if _is_strict(info) or field.is_required():
                raise
            default = field.get_default(call_default_factory=True)
            logger.warning(
                "Invalid value for %s.%s (%r), using default %r",
                cls.__name__,
                info.field_name,
                value,
                default,
            )
            return default


class BaseBranchesMode(str, Enum):
    """How a target selects the base branches its pull requests are filtered by."""

    DEFAULT_ONLY = "defaultOnly"
    ALL = "all"
    LIST = "list"


class AuthConfig(_Section):
    """GitHub credential configuration.

    Attributes:
        token: Explicit bearer credential (wins when non-empty after trimming)
        token_env_var: Environment variable consulted when no token is set
        api_base_url: API origin
    """

    token: str | None = None
    token_env_var: str | None = DEFAULT_TOKEN_ENV_VAR
    api_base_url: str = DEFAULT_API_BASE_URL

    @field_validator("api_base_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        """Normalize the API origin so paths can be appended directly."""
        return v.rstrip("/") or DEFAULT_API_BASE_URL


class Target(_Section):
    """One watched repository.

    Attributes:
        owner: Repository owner (user or organization)
        repo: Repository name
        display_name: Optional label shown instead of the repository name
        base_branches_mode: 'defaultOnly', 'all' or 'list'
        base_branches: Explicit branches, used when mode is 'list'
        default_branch_override: Skips the repository metadata lookup
    """

    owner: Annotated[str, Field(min_length=1)]
    repo: Annotated[str, Field(min_length=1)]
    display_name: str | None = None
    base_branches_mode: BaseBranchesMode = BaseBranchesMode.DEFAULT_ONLY
    base_branches: list[str] = Field(default_factory=list)
    default_branch_override: str | None = None

    @property
    def full_name(self) -> str:
        """Get the owner/repo name."""
        return f"{self.owner}/{self.repo}"

    @property
    def label(self) -> str:
        """Get the display label, falling back to the repository name."""
        return self.display_name or self.repo


class QueryConfig(_Section):
    """Pull request query filters."""

    state: Literal["open", "closed", "all"] = "open"
    include_drafts: bool = True


class DisplayConfig(_Section):
    """Presentation settings, consumed only by renderers."""

    show_repo_name: bool = True
    show_timestamp: bool = True
    timestamp_field: Literal["updated_at", "created_at"] = "updated_at"
    time_format: Literal["relative", "absolute"] = "relative"
    show_additions_deletions: bool = True
    show_files_changed: bool = True
    show_author_avatar: bool = True
    truncate_title_at: int = 90

    @field_validator("truncate_title_at", mode="before")
    @classmethod
    def clamp_truncation(cls, v: Any) -> Any:
        """Negative truncation limits mean 'do not truncate'."""
        return _clamp(v, minimum=0)


class GroupingConfig(_Section):
    """Grouping of rendered rows."""

    mode: Literal["none", "repo"] = "none"


class LimitsConfig(_Section):
    """Result caps.

    Attributes:
        max_total: Global cap applied after merging all targets (>= 1)
        max_per_repo: Per-target cap applied before merging (>= 1)
    """

    max_total: int = 20
    max_per_repo: int = 10

    @field_validator("max_total", "max_per_repo", mode="before")
    @classmethod
    def clamp_limits(cls, v: Any) -> Any:
        """Clamp limits to at least one record."""
        return _clamp(v, minimum=1)


class RefreshConfig(_Section):
    """Polling configuration.

    Attributes:
        update_interval_ms: Poll period, also the HTTP cache TTL (>= 1000)
        backoff_on_rate_limit: Whether the rate-limit guard suppresses calls
    """

    update_interval_ms: int = DEFAULT_UPDATE_INTERVAL_MS
    backoff_on_rate_limit: bool = True

    @field_validator("update_interval_ms", mode="before")
    @classmethod
    def clamp_interval(cls, v: Any) -> Any:
        """Clamp the poll period to a sane minimum."""
        return _clamp(v, minimum=MIN_UPDATE_INTERVAL_MS)

    @property
    def interval_seconds(self) -> float:
        """Get the poll period in seconds."""
        return self.update_interval_ms / 1000


class AlertsConfig(_Section):
    """Alert configuration."""

    show_on_auth_error: bool = True


class Config(_Section):
    """Top-level configuration for one display instance.

    Attributes:
        auth: Credential settings
        targets: Repositories to watch
        query: Pull request filters
        display: Renderer settings
        grouping: Renderer grouping
        limits: Result caps
        refresh: Polling settings
        alerts: Alert settings
    """

    auth: AuthConfig = Field(default_factory=AuthConfig)
    targets: list[Target] = Field(default_factory=list)
    query: QueryConfig = Field(default_factory=QueryConfig)
    display: DisplayConfig = Field(default_factory=DisplayConfig)
    grouping: GroupingConfig = Field(default_factory=GroupingConfig)
    limits: LimitsConfig = Field(default_factory=LimitsConfig)
    refresh: RefreshConfig = Field(default_factory=RefreshConfig)
    alerts: AlertsConfig = Field(default_factory=AlertsConfig)

    @field_validator("targets", mode="before")
    @classmethod
    def drop_invalid_targets(cls, v: Any, info: ValidationInfo) -> Any:
        """Drop targets that cannot be validated instead of failing the whole config."""
        if _is_strict(info) or not isinstance(v, list):
            return v
        kept: list[Any] = []
        for index, item in enumerate(v):
            try:
                Target.model_validate(item)
            except ValidationError as e:
                logger.warning(
                    "Skipping invalid target #%d (%d error(s)): %r",
                    index,
                    e.error_count(),
                    item,
                )
                continue
            kept.append(item)
        return kept


def merge_config(raw: Mapping[str, Any] | Config | None) -> Config:
    """Merge a raw configuration mapping over the defaults.

    Pure and total: ``None`` or a non-mapping yields the defaults, missing
    keys take their defaults, unknown keys are ignored and invalid values
    fall back to defaults.

    Args:
        raw: Configuration as supplied by a display instance or file.

    Returns:
        Validated Config object.
    """
    if isinstance(raw, Config):
        return raw
    if not isinstance(raw, Mapping):
        return Config()
    return Config.model_validate(dict(raw))
