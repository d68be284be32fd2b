"""Logging module for GitPushy.

This module provides structured logging with:
- structlog configuration for consistent log formatting
- Secret redaction for GitHub tokens
- Structured log events for fetch cycles

Usage:
    from gitpushy.logging import configure_logging, get_logger

    configure_logging(verbose=True)
    log = get_logger(__name__)
"""

from gitpushy.logging.structured import (
    configure_logging,
    get_logger,
    log_fetch_cycle,
    log_rate_limit,
    redact_secrets,
)

__all__ = [
    "configure_logging",
    "get_logger",
    "log_fetch_cycle",
    "log_rate_limit",
    "redact_secrets",
]
