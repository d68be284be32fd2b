"""structlog setup and the engine's structured events.

Library modules log through the standard library (``logging.getLogger``);
the scheduler and CLI emit structlog events. Both end up on stderr, and
structlog events pass through a processor that scrubs GitHub credentials.
"""

from __future__ import annotations

import logging
import re
import sys
from typing import TYPE_CHECKING, Any

import structlog

if TYPE_CHECKING:
    from structlog.typing import EventDict, Processor, WrappedLogger

REDACTED = "[REDACTED]"
REDACTED_GITHUB_TOKEN = "[REDACTED_GITHUB_TOKEN]"

SECRET_PATTERNS: list[tuple[re.Pattern[str], str]] = [
    # Classic tokens: ghp_, gho_, ghu_, ghs_, ghr_
    (re.compile(r"gh[pousr]_[A-Za-z0-9_]{36,}"), REDACTED_GITHUB_TOKEN),
    (re.compile(r"github_pat_[A-Za-z0-9_]{22,}"), REDACTED_GITHUB_TOKEN),
    (re.compile(r"(token[=:]\s*['\"]?)[A-Za-z0-9_-]{20,}"), rf"\1{REDACTED}"),
    (re.compile(r"(bearer\s+)[A-Za-z0-9._-]+", re.IGNORECASE), rf"\1{REDACTED}"),
    (
        re.compile(
            r"(authorization[=:]\s*['\"]?(?:token\s+|bearer\s+)?)[^\s'\"]+",
            re.IGNORECASE,
        ),
        rf"\1{REDACTED}",
    ),
]


def redact_secrets(value: Any) -> Any:
    """Return ``value`` with credentials masked in every nested string."""
    if isinstance(value, str):
        for pattern, replacement in SECRET_PATTERNS:
            value = pattern.sub(replacement, value)
        return value
    if isinstance(value, dict):
        return {key: redact_secrets(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [redact_secrets(item) for item in value]
    return value


def _redact_processor(
    _logger: WrappedLogger,
    _method_name: str,
    event_dict: EventDict,
) -> EventDict:
    return redact_secrets(event_dict)


def _processors(json_output: bool) -> list[Processor]:
    renderer: Processor = (
        structlog.processors.JSONRenderer()
        if json_output
        else structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())
    )
    return [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        _redact_processor,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        renderer,
    ]


def configure_logging(
    verbose: bool = False,
    json_output: bool = True,
) -> None:
    """Send stdlib and structlog output to stderr at one shared level.

    Args:
        verbose: Log at DEBUG instead of INFO.
        json_output: One JSON object per event; otherwise human-readable console lines.
    """
    level = logging.DEBUG if verbose else logging.INFO

    logging.basicConfig(
        format="%(asctime)s %(levelname)-7s %(name)s: %(message)s",
        stream=sys.stderr,
        level=level,
    )
    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.DEBUG if verbose else logging.WARNING)

    structlog.configure(
        processors=_processors(json_output),
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Return a structlog logger; ``name`` is usually ``__name__``."""
    return structlog.get_logger(name)


def log_fetch_cycle(
    instance_id: str,
    targets: int,
    prs: int,
    requests: int,
    duration_ms: float,
) -> None:
    """Record a completed aggregation run.

    Args:
        instance_id: Display instance the run belongs to.
        targets: Configured targets.
        prs: Records delivered after truncation.
        requests: HTTP requests actually sent (cache hits excluded).
        duration_ms: Wall time of the run.
    """
    get_logger("gitpushy.poll").info(
        "fetch_cycle_complete",
        instance_id=instance_id,
        targets=targets,
        prs=prs,
        requests=requests,
        duration_ms=round(duration_ms, 2),
    )


def log_rate_limit(instance_id: str, reset_at: str | None) -> None:
    """Record a fetch refused because the rate-limit guard is engaged."""
    get_logger("gitpushy.ratelimit").warning(
        "rate_limit_suppressed",
        instance_id=instance_id,
        reset_at=reset_at,
    )
