"""Pull request aggregation across targets.

This module provides:
- PullRequestRecord: the engine's output unit
- PullRequestAggregator: per-target list + per-branch fan-out + detail
  enrichment, then merge, sort and truncate
- dedupe_by_number / sort_and_limit: the pure steps of the pipeline
"""

from __future__ import annotations

import logging
import time
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from gitpushy.github.ratelimit import RateLimitError

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable

    from gitpushy.config.schema import Config, Target
    from gitpushy.engine.branches import BranchResolver
    from gitpushy.github.client import GitHubClient

logger = logging.getLogger(__name__)

RATE_LIMIT_MESSAGE = "GitHub rate limit hit. Waiting to retry."

_OLDEST = datetime.min.replace(tzinfo=UTC)


class PullRequestRecord(BaseModel):
    """One pull request as delivered to display instances.

    Built fresh on every aggregation run from the list-view payload and the
    detail-view payload of the same pull request.
    """

    model_config = ConfigDict(frozen=True)

    owner: str = Field(..., description="Repository owner")
    repo: str = Field(..., description="Repository name")
    repo_label: str = Field(..., description="Display label, or the repository name")
    number: int = Field(..., description="Pull request number (dedup key)")
    title: str = Field(default="", description="Pull request title")
    html_url: str | None = Field(default=None, description="Canonical URL")
    updated_at: datetime | None = Field(default=None, description="Last update")
    created_at: datetime | None = Field(default=None, description="Creation time")
    author_login: str | None = Field(default=None, description="Author login")
    author_avatar_url: str | None = Field(default=None, description="Author avatar")
    additions: int | None = Field(default=None, description="Lines added")
    deletions: int | None = Field(default=None, description="Lines deleted")
    changed_files: int | None = Field(default=None, description="Files changed")
    draft: bool = Field(default=False, description="Whether the PR is a draft")
    base_ref: str | None = Field(default=None, description="Base branch name")

    @field_validator("updated_at", "created_at")
    @classmethod
    def assume_utc(cls, value: datetime | None) -> datetime | None:
        """Treat timestamps without an offset as UTC so records stay comparable."""
        if value is not None and value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value

    @classmethod
    def from_payloads(
        cls,
        target: Target,
        pull: dict[str, Any],
        details: dict[str, Any],
    ) -> PullRequestRecord:
        """Combine list-view and detail-view payloads.

        Counts come from the detail view. The list-view author wins; the
        detail-view author is used only when the list view has none.

        Args:
            target: Target the pull request belongs to.
            pull: List-view payload.
            details: Detail-view payload.

        Returns:
            PullRequestRecord instance.
        """
        list_user = pull.get("user") or {}
        detail_user = details.get("user") or {}
        base = pull.get("base") or {}

        return cls(
            owner=target.owner,
            repo=target.repo,
            repo_label=target.label,
            number=pull["number"],
            title=pull.get("title") or "",
            html_url=pull.get("html_url"),
            updated_at=pull.get("updated_at"),
            created_at=pull.get("created_at"),
            author_login=list_user.get("login") or detail_user.get("login"),
            author_avatar_url=list_user.get("avatar_url") or detail_user.get("avatar_url"),
            additions=details.get("additions"),
            deletions=details.get("deletions"),
            changed_files=details.get("changed_files"),
            draft=bool(pull.get("draft")),
            base_ref=base.get("ref") if isinstance(base, dict) else None,
        )


def dedupe_by_number(pulls: Iterable[dict[str, Any]]) -> list[dict[str, Any]]:
    """Drop later pull requests sharing a number with an earlier one."""
    seen: set[Any] = set()
    unique: list[dict[str, Any]] = []
    for pull in pulls:
        number = pull.get("number")
        if number in seen:
            continue
        seen.add(number)
        unique.append(pull)
    return unique


def sort_and_limit(records: Iterable[PullRequestRecord], max_total: int) -> list[PullRequestRecord]:
    """Sort by updated_at descending (stable for ties) and keep the first max_total."""
    ordered = sorted(records, key=lambda r: r.updated_at or _OLDEST, reverse=True)
    return ordered[:max_total]


class PullRequestAggregator:
    """Builds the bounded, sorted pull request list for one configuration."""

    def __init__(
        self,
        client: GitHubClient,
        resolver: BranchResolver,
        *,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """Initialize aggregator.

        Args:
            client: GitHub client (shared cache and guard).
            resolver: Base-branch resolver.
            clock: Returns the current time in epoch seconds.
        """
        self._client = client
        self._resolver = resolver
        self._clock = clock

    async def run(self, config: Config) -> list[PullRequestRecord]:
        """Fetch, merge, sort and truncate pull requests for every target.

        Any target failure aborts the whole run; only default-branch lookup
        failures are absorbed (see BranchResolver).

        Args:
            config: Validated configuration.

        Returns:
            At most ``limits.max_total`` records, most recently updated first.

        Raises:
            RateLimitError: If requests are suppressed (checked before any call).
            GitHubAPIError: For API failures.
            httpx.RequestError: For transport failures.
        """
        if config.refresh.backoff_on_rate_limit and self._client.guard.is_limited(self._clock()):
            raise RateLimitError(
                RATE_LIMIT_MESSAGE,
                reset_at=self._client.guard.suppressed_until,
            )

        ttl = config.refresh.interval_seconds
        merged: list[PullRequestRecord] = []
        for target in config.targets:
            records = await self.fetch_target(target, config, ttl=ttl)
            merged.extend(records[: config.limits.max_per_repo])

        return sort_and_limit(merged, config.limits.max_total)

    async def fetch_target(
        self,
        target: Target,
        config: Config,
        *,
        ttl: float,
    ) -> list[PullRequestRecord]:
        """Fetch the deduplicated, filtered and enriched pull requests of one target.

        Args:
            target: Watched repository.
            config: Validated configuration.
            ttl: Freshness window for cached responses in seconds.

        Returns:
            Records in API order (not yet truncated).
        """
        branches = await self._resolver.resolve(target, self._client)

        pulls: list[dict[str, Any]] = []
        for base in branches or [None]:
            pulls.extend(
                await self._client.list_pulls(
                    target.owner,
                    target.repo,
                    state=config.query.state,
                    base=base,
                    ttl=ttl,
                )
            )

        unique = dedupe_by_number(pulls)
        if not config.query.include_drafts:
            unique = [pull for pull in unique if not pull.get("draft")]

        records: list[PullRequestRecord] = []
        for pull in unique:
            details = await self._client.get_pull(
                target.owner,
                target.repo,
                pull["number"],
                ttl=ttl,
            )
            records.append(PullRequestRecord.from_payloads(target, pull, details))

        logger.debug(
            "Fetched %d pull request(s) for %s (branches=%s)",
            len(records),
            target.full_name,
            branches or "all",
        )
        return records
