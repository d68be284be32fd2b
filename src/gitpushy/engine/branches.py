"""Base-branch resolution per target."""

from __future__ import annotations

import asyncio
import logging
import time
from typing import TYPE_CHECKING

import httpx

from gitpushy.config.schema import BaseBranchesMode
from gitpushy.github.cache import RepoMetadataCache
from gitpushy.github.client import GitHubAPIError
from gitpushy.github.ratelimit import RateLimitError

if TYPE_CHECKING:
    from collections.abc import Callable

    from gitpushy.config.schema import Target
    from gitpushy.github.client import GitHubClient

logger = logging.getLogger(__name__)


class BranchResolver:
    """Decides which base branches a target's pull requests are filtered by.

    Resolution precedence:
    1. mode 'all' -> no branch filter (empty list)
    2. mode 'list' with branches -> those branches verbatim
    3. mode 'list' without branches -> same as 'defaultOnly'
    4. default_branch_override -> that branch
    5. the repository's default branch, looked up through the one-hour
       metadata cache; concurrent lookups for one repository share a request

    A failed lookup is logged and resolves to an empty list, so that target
    degrades to an unfiltered listing instead of failing the run.
    """

    def __init__(
        self,
        metadata_cache: RepoMetadataCache | None = None,
        *,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """Initialize branch resolver.

        Args:
            metadata_cache: Shared default-branch cache.
            clock: Returns the current time in epoch seconds.
        """
        self._metadata = metadata_cache if metadata_cache is not None else RepoMetadataCache()
        self._clock = clock
        self._inflight: dict[str, asyncio.Task[str | None]] = {}

    async def resolve(self, target: Target, client: GitHubClient) -> list[str]:
        """Resolve the base branches for a target.

        Args:
            target: Watched repository.
            client: Client used for the metadata lookup.

        Returns:
            Branch names in order; empty means "do not filter by branch".
        """
        mode = target.base_branches_mode
        if mode is BaseBranchesMode.ALL:
            return []

        if mode is BaseBranchesMode.LIST and target.base_branches:
            return list(target.base_branches)

        if target.default_branch_override:
            return [target.default_branch_override]

        try:
            default_branch = await self._default_branch(target, client)
        except (GitHubAPIError, RateLimitError, httpx.HTTPError, ValueError) as e:
            logger.warning(
                "Failed to resolve default branch for %s: %s",
                target.full_name,
                e,
            )
            return []

        return [default_branch] if default_branch else []

    async def aclose(self) -> None:
        """Cancel default-branch lookups still in flight and wait for them."""
        tasks = list(self._inflight.values())
        self._inflight.clear()
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)

    async def _default_branch(self, target: Target, client: GitHubClient) -> str | None:
        key = target.full_name
        cached = self._metadata.get(key, self._clock())
        if cached is not None:
            return cached.default_branch

        task = self._inflight.get(key)
        if task is None:
            task = asyncio.ensure_future(self._lookup(target, client))
            self._inflight[key] = task
            task.add_done_callback(lambda done: self._forget(key, done))

        # Shielded so one cancelled waiter does not cancel the shared lookup
        return await asyncio.shield(task)

    async def _lookup(self, target: Target, client: GitHubClient) -> str | None:
        data = await client.get_repository(target.owner, target.repo)
        default_branch = data.get("default_branch") or None
        self._metadata.put(target.full_name, default_branch, self._clock())
        logger.debug("Resolved default branch for %s: %s", target.full_name, default_branch)
        return default_branch

    def _forget(self, key: str, task: asyncio.Task[str | None]) -> None:
        if self._inflight.get(key) is task:
            del self._inflight[key]
