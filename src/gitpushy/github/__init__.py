"""GitHub API client, caches and rate-limit guard."""

from gitpushy.github.auth import (
    AuthenticationError,
    mask_token,
    resolve_token,
)
from gitpushy.github.cache import CacheEntry, HttpCache, RepoMetadataCache
from gitpushy.github.client import GitHubAPIError, GitHubClient
from gitpushy.github.pagination import Page, Paginator, parse_next_link
from gitpushy.github.ratelimit import RateLimitError, RateLimitGuard

__all__ = [
    "AuthenticationError",
    "CacheEntry",
    "GitHubAPIError",
    "GitHubClient",
    "HttpCache",
    "Page",
    "Paginator",
    "RateLimitError",
    "RateLimitGuard",
    "RepoMetadataCache",
    "mask_token",
    "parse_next_link",
    "resolve_token",
]
