"""Process-wide rate-limit guard.

GitHub reports the remaining quota and the reset epoch on every response.
When the quota hits zero, RateLimitGuard remembers the reset instant and
callers stop issuing requests until it has passed. There is no explicit
clear: the guard is a pure time comparison against an injected clock.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    import httpx

logger = logging.getLogger(__name__)


class RateLimitError(Exception):
    """Raised when requests are suppressed until the rate limit resets."""

    def __init__(self, message: str, *, reset_at: float | None = None) -> None:
        """Initialize rate limit error.

        Args:
            message: Error description.
            reset_at: Epoch seconds at which requests may resume.
        """
        super().__init__(message)
        self.reset_at = reset_at


@dataclass
class RateLimitInfo:
    """Rate limit headers of one response; fields are None when absent or malformed."""

    remaining: int | None
    reset_epoch: float | None

    @classmethod
    def from_headers(cls, headers: httpx.Headers) -> RateLimitInfo:
        """Parse x-ratelimit-remaining / x-ratelimit-reset.

        Args:
            headers: HTTP response headers.

        Returns:
            RateLimitInfo instance.
        """
        return cls(
            remaining=_parse_int(headers.get("x-ratelimit-remaining")),
            reset_epoch=_parse_float(headers.get("x-ratelimit-reset")),
        )


def _parse_int(value: str | None) -> int | None:
    if value is None:
        return None
    try:
        return int(value.strip())
    except ValueError:
        return None


def _parse_float(value: str | None) -> float | None:
    if value is None:
        return None
    try:
        number = float(value.strip())
    except ValueError:
        return None
    return number if math.isfinite(number) else None


class RateLimitGuard:
    """Tracks a single "requests suppressed until" instant.

    One guard is shared by every instance and target in the process and is
    passed explicitly to each call site.
    """

    def __init__(self) -> None:
        """Initialize an unengaged guard."""
        self._suppressed_until: float | None = None

    @property
    def suppressed_until(self) -> float | None:
        """Get the epoch seconds until which requests are suppressed."""
        return self._suppressed_until

    def is_limited(self, now: float) -> bool:
        """Check whether requests are suppressed at ``now`` (epoch seconds)."""
        return self._suppressed_until is not None and now < self._suppressed_until

    def record_response(
        self,
        remaining: int | str | None,
        reset_epoch: float | str | None,
    ) -> None:
        """Record the quota reported by a response.

        Engages the guard only when the remaining quota is zero and the reset
        time is a valid number. Never moves an existing suppression earlier.

        Args:
            remaining: Remaining quota as reported by the API.
            reset_epoch: Reset time in epoch seconds.
        """
        if isinstance(remaining, str):
            remaining = _parse_int(remaining)
        if isinstance(reset_epoch, str):
            reset_epoch = _parse_float(reset_epoch)
        if remaining != 0 or reset_epoch is None:
            return

        if self._suppressed_until is not None and self._suppressed_until >= reset_epoch:
            return
        self._suppressed_until = float(reset_epoch)
        logger.warning(
            "GitHub rate limit exhausted, suppressing requests until %s",
            datetime.fromtimestamp(reset_epoch, tz=UTC).isoformat(),
        )

    def record_headers(self, headers: httpx.Headers) -> RateLimitInfo:
        """Record the quota from response headers."""
        info = RateLimitInfo.from_headers(headers)
        self.record_response(info.remaining, info.reset_epoch)
        return info
