"""Messages delivered from the engine to display instances."""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from enum import Enum

from gitpushy.engine.aggregator import PullRequestRecord

UNKNOWN_ERROR_MESSAGE = "Unknown error fetching GitHub pull requests."


class ErrorKind(str, Enum):
    """Why a fetch produced no fresh data."""

    AUTH = "auth"
    RATE_LIMITED = "rate_limited"
    API = "api"


@dataclass(frozen=True)
class DataSignal:
    """Fresh, bounded and sorted pull request list."""

    instance_id: str
    prs: list[PullRequestRecord] = field(default_factory=list)


@dataclass(frozen=True)
class ErrorSignal:
    """Failure message plus the last good list (possibly empty)."""

    instance_id: str
    message: str
    kind: ErrorKind = ErrorKind.API
    prs: list[PullRequestRecord] = field(default_factory=list)


Signal = DataSignal | ErrorSignal

# The instance channel: anything that accepts signals
SignalSink = Callable[[Signal], Awaitable[None]]


def format_error(error: BaseException | None) -> str:
    """Format an exception as a human-readable message."""
    message = str(error) if error is not None else ""
    return message or UNKNOWN_ERROR_MESSAGE
