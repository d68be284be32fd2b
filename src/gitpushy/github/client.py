"""GitHub API client with conditional requests and rate-limit tracking.

This module provides the GitHubClient class which handles:
- Conditional GETs through a shared HttpCache (If-None-Match / 304)
- Rate-limit header tracking through a shared RateLimitGuard
- Link-header pagination (one cache entry per page)
- Typed helpers for the three endpoints the engine consumes:
  list pull requests, get pull request, get repository

There is no automatic retry: a failed request raises and the next poll
cycle is the retry.
"""

from __future__ import annotations

import logging
import time
from typing import TYPE_CHECKING, Any

import httpx

from gitpushy import __version__
from gitpushy.config.schema import DEFAULT_API_BASE_URL
from gitpushy.github.auth import mask_token
from gitpushy.github.cache import REPO_METADATA_TTL_SECONDS, HttpCache
from gitpushy.github.pagination import Page, Paginator, parse_next_link
from gitpushy.github.ratelimit import RateLimitError, RateLimitGuard

if TYPE_CHECKING:
    from collections.abc import Callable

logger = logging.getLogger(__name__)

PER_PAGE = 100


class GitHubAPIError(Exception):
    """Raised for non-2xx, non-304 GitHub API responses."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        response_text: str = "",
        url: str | None = None,
    ) -> None:
        """Initialize GitHub API error.

        Args:
            message: Error description.
            status_code: HTTP status code.
            response_text: Response body text.
            url: Requested URL.
        """
        super().__init__(message)
        self.status_code = status_code
        self.response_text = response_text
        self.url = url


class GitHubClient:
    """Async GitHub API client backed by a conditional-request cache.

    The cache and rate-limit guard are usually shared across clients so that
    every display instance benefits from the same entity tags and honours the
    same quota. The underlying httpx.AsyncClient may also be shared; a client
    only closes the transport it created itself.
    """

    def __init__(
        self,
        token: str | None = None,
        *,
        base_url: str = DEFAULT_API_BASE_URL,
        cache: HttpCache | None = None,
        guard: RateLimitGuard | None = None,
        honor_rate_limit: bool = True,
        client: httpx.AsyncClient | None = None,
        clock: Callable[[], float] = time.time,
        user_agent: str = f"gitpushy/{__version__}",
    ) -> None:
        """Initialize GitHub client.

        Args:
            token: Bearer credential, or None for unauthenticated calls.
            base_url: GitHub API base URL.
            cache: Conditional-request cache (a private one if None).
            guard: Rate-limit guard (a private one if None).
            honor_rate_limit: Refuse to send while the guard is engaged.
            client: Optional shared httpx client.
            clock: Returns the current time in epoch seconds.
            user_agent: User-Agent header value.
        """
        self._token = token
        self._base_url = base_url.rstrip("/")
        self._cache = cache if cache is not None else HttpCache()
        self._guard = guard if guard is not None else RateLimitGuard()
        self._honor_rate_limit = honor_rate_limit
        self._client = client
        self._owns_client = client is None
        self._clock = clock
        self._user_agent = user_agent
        self._request_count = 0
        self._paginator = Paginator(self.fetch_page)

    @property
    def headers(self) -> dict[str, str]:
        """Get default request headers."""
        headers = {
            "Accept": "application/vnd.github+json",
            "User-Agent": self._user_agent,
        }
        if self._token:
            headers["Authorization"] = f"token {self._token}"
        return headers

    @property
    def base_url(self) -> str:
        """Get the API origin."""
        return self._base_url

    @property
    def cache(self) -> HttpCache:
        """Get the conditional-request cache."""
        return self._cache

    @property
    def guard(self) -> RateLimitGuard:
        """Get the rate-limit guard."""
        return self._guard

    @property
    def request_count(self) -> int:
        """Get the number of requests actually sent by this client."""
        return self._request_count

    async def __aenter__(self) -> GitHubClient:
        """Enter async context."""
        await self._ensure_client()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: object,
    ) -> None:
        """Exit async context."""
        await self.aclose()

    async def aclose(self) -> None:
        """Close the transport if this client created it."""
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    async def _ensure_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient()
            self._owns_client = True
        return self._client

    async def _conditional_get(
        self,
        url: str,
        cache_key: str,
        ttl: float,
        parse: Callable[[httpx.Response], Any],
    ) -> Any:
        """GET a resource, serving fresh cache entries and revalidating stale ones.

        Args:
            url: Absolute URL.
            cache_key: Key of the resource in the HttpCache.
            ttl: Freshness window in seconds.
            parse: Converts a 2xx response into the cached payload.

        Returns:
            The cached or freshly parsed payload.

        Raises:
            RateLimitError: If the guard is engaged and honoured.
            GitHubAPIError: For non-2xx, non-304 responses.
            httpx.RequestError: For transport failures.
        """
        now = self._clock()
        cached = self._cache.get(cache_key)
        if cached is not None and cached.is_fresh(now, ttl):
            logger.debug("HTTP cache hit: %s", cache_key)
            return cached.payload

        if self._honor_rate_limit and self._guard.is_limited(now):
            raise RateLimitError(
                "GitHub rate limit hit. Waiting to retry.",
                reset_at=self._guard.suppressed_until,
            )

        headers = self.headers
        if cached is not None and cached.etag:
            headers["If-None-Match"] = cached.etag

        client = await self._ensure_client()
        response = await client.get(url, headers=headers)
        self._request_count += 1
        self._guard.record_headers(response.headers)

        if response.status_code == 304 and cached is not None:
            self._cache.touch(cache_key, now)
            return cached.payload

        if not response.is_success:
            raise GitHubAPIError(
                f"GitHub API error {response.status_code}: {response.text}",
                status_code=response.status_code,
                response_text=response.text,
                url=url,
            )

        payload = parse(response)
        self._cache.put(cache_key, payload, response.headers.get("etag"), now)
        return payload

    async def get_json(self, url: str, cache_key: str, ttl: float) -> Any:
        """GET a JSON resource through the cache."""
        return await self._conditional_get(url, cache_key, ttl, _parse_json)

    async def fetch_page(self, url: str, cache_key: str, ttl: float) -> Page:
        """GET one page of a collection through the cache."""
        return await self._conditional_get(url, cache_key, ttl, _parse_page)

    async def get_all_pages(self, url: str, cache_prefix: str, ttl: float) -> list[dict[str, Any]]:
        """GET every page of a collection, concatenated in page order."""
        return await self._paginator.collect(url, cache_prefix, ttl)

    def pulls_url(
        self,
        owner: str,
        repo: str,
        *,
        state: str = "open",
        base: str | None = None,
    ) -> str:
        """Build the list-pull-requests URL for one repository."""
        params: dict[str, str | int] = {"state": state or "open", "per_page": PER_PAGE}
        if base:
            params["base"] = base
        return str(httpx.URL(f"{self._base_url}/repos/{owner}/{repo}/pulls", params=params))

    async def list_pulls(
        self,
        owner: str,
        repo: str,
        *,
        state: str = "open",
        base: str | None = None,
        ttl: float,
    ) -> list[dict[str, Any]]:
        """List pull requests of a repository, optionally scoped to a base branch.

        Args:
            owner: Repository owner.
            repo: Repository name.
            state: Pull request state filter.
            base: Base branch filter, or None for every branch.
            ttl: Freshness window in seconds.

        Returns:
            Pull request list-view payloads across all pages.
        """
        url = self.pulls_url(owner, repo, state=state, base=base)
        cache_prefix = f"pulls:{owner}/{repo}:{base or 'all'}:{state}"
        return await self.get_all_pages(url, cache_prefix, ttl)

    async def get_pull(self, owner: str, repo: str, number: int, *, ttl: float) -> dict[str, Any]:
        """Get pull request details (additions, deletions, changed files)."""
        url = f"{self._base_url}/repos/{owner}/{repo}/pulls/{number}"
        data = await self.get_json(url, f"pull:{owner}/{repo}/{number}", ttl)
        return data if isinstance(data, dict) else {}

    async def get_repository(
        self,
        owner: str,
        repo: str,
        *,
        ttl: float = REPO_METADATA_TTL_SECONDS,
    ) -> dict[str, Any]:
        """Get repository metadata (default branch)."""
        url = f"{self._base_url}/repos/{owner}/{repo}"
        data = await self.get_json(url, f"repo:{owner}/{repo}", ttl)
        return data if isinstance(data, dict) else {}

    def __repr__(self) -> str:
        """Get string representation."""
        return (
            f"GitHubClient(base_url={self._base_url!r}, "
            f"token={mask_token(self._token)!r})"
        )


def _parse_json(response: httpx.Response) -> Any:
    return response.json()


def _parse_page(response: httpx.Response) -> Page:
    data = response.json()
    items = data if isinstance(data, list) else [data]
    return Page(items=items, next_url=parse_next_link(response.headers.get("link")))
