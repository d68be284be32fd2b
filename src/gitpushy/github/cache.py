"""In-memory caches for GitHub API responses.

HttpCache stores the last payload and entity tag per resource key so that
callers can skip the network while an entry is fresh and revalidate with
``If-None-Match`` once it is stale. RepoMetadataCache keeps resolved default
branches for a fixed one-hour window.

Neither cache evicts: the key space is bounded by targets x branches x pages
and both live only for the process lifetime.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

logger = logging.getLogger(__name__)

# Repository metadata is trusted for one hour regardless of the poll interval
REPO_METADATA_TTL_SECONDS = 3600.0


@dataclass
class CacheEntry:
    """Last successful response for one resource key.

    Attributes:
        payload: Parsed response body (or a derived value such as a Page)
        etag: Entity tag returned with the payload, if any
        fetched_at: Epoch seconds of the last fetch or revalidation
    """

    payload: Any
    etag: str | None
    fetched_at: float

    def is_fresh(self, now: float, ttl: float) -> bool:
        """Check whether the entry can be used without revalidation."""
        return now - self.fetched_at < ttl


@dataclass
class HttpCache:
    """Keyed conditional-request cache."""

    _entries: dict[str, CacheEntry] = field(default_factory=dict)
    _hits: int = 0
    _misses: int = 0

    def get(self, key: str) -> CacheEntry | None:
        """Get the entry stored under a key, fresh or stale."""
        entry = self._entries.get(key)
        if entry is None:
            self._misses += 1
        else:
            self._hits += 1
        return entry

    def put(self, key: str, payload: Any, etag: str | None, now: float) -> CacheEntry:
        """Store fresh content, replacing payload and entity tag."""
        entry = CacheEntry(payload=payload, etag=etag, fetched_at=now)
        self._entries[key] = entry
        logger.debug("HTTP cache stored: %s (etag=%s)", key, etag)
        return entry

    def touch(self, key: str, now: float) -> CacheEntry | None:
        """Mark an entry as revalidated; payload and entity tag are unchanged."""
        entry = self._entries.get(key)
        if entry is not None:
            entry.fetched_at = now
            logger.debug("HTTP cache revalidated: %s", key)
        return entry

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    @property
    def size(self) -> int:
        """Get number of cached resources."""
        return len(self._entries)

    @property
    def stats(self) -> dict[str, Any]:
        """Get cache statistics."""
        lookups = self._hits + self._misses
        return {
            "size": self.size,
            "hits": self._hits,
            "misses": self._misses,
            "hit_rate": self._hits / lookups if lookups > 0 else 0.0,
        }


@dataclass
class RepoMetadata:
    """Resolved repository metadata."""

    default_branch: str | None
    fetched_at: float


@dataclass
class RepoMetadataCache:
    """Default-branch cache keyed by owner/repo with a fixed validity window."""

    ttl: float = REPO_METADATA_TTL_SECONDS
    _entries: dict[str, RepoMetadata] = field(default_factory=dict)

    def get(self, key: str, now: float) -> RepoMetadata | None:
        """Get metadata if it was fetched within the validity window."""
        entry = self._entries.get(key)
        if entry is not None and now - entry.fetched_at < self.ttl:
            return entry
        return None

    def put(self, key: str, default_branch: str | None, now: float) -> RepoMetadata:
        """Store resolved metadata."""
        entry = RepoMetadata(default_branch=default_branch, fetched_at=now)
        self._entries[key] = entry
        return entry
