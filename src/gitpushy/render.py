"""Plain-text rendering of pull request lists.

A pure consumer of the engine output: rows are built from
PullRequestRecord values and the display/grouping configuration only.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import TYPE_CHECKING

import humanize

if TYPE_CHECKING:
    from collections.abc import Iterable

    from gitpushy.config.schema import Config, DisplayConfig
    from gitpushy.engine.aggregator import PullRequestRecord

EMPTY_MESSAGE = "No pull requests."
ELLIPSIS = "…"


def truncate(text: str, limit: int) -> str:
    """Cut text to ``limit`` characters, the last one being an ellipsis."""
    if not limit or len(text) <= limit:
        return text
    return f"{text[: limit - 1]}{ELLIPSIS}"


def format_timestamp(timestamp: datetime, display: DisplayConfig, now: datetime) -> str:
    """Format a timestamp as relative ("2 hours ago") or absolute ("Jan 9, 2026")."""
    if display.time_format == "absolute":
        return f"{timestamp:%b} {timestamp.day}, {timestamp.year}"
    return humanize.naturaltime(now - timestamp)


def group_by_repo(prs: Iterable[PullRequestRecord]) -> list[tuple[str, list[PullRequestRecord]]]:
    """Group records by repository label, keeping first-seen group order."""
    groups: dict[str, list[PullRequestRecord]] = {}
    for pr in prs:
        groups.setdefault(pr.repo_label, []).append(pr)
    return list(groups.items())


def render_row(pr: PullRequestRecord, config: Config, now: datetime) -> str:
    """Render one pull request as a single line."""
    display = config.display
    parts: list[str] = []

    if display.show_repo_name:
        parts.append(f"[{pr.repo_label}]")
    parts.append(f"#{pr.number} {truncate(pr.title, display.truncate_title_at)}")

    diff: list[str] = []
    if display.show_additions_deletions and pr.additions is not None and pr.deletions is not None:
        diff.append(f"+{pr.additions} / -{pr.deletions}")
    if display.show_files_changed and pr.changed_files is not None:
        diff.append(f"{pr.changed_files} files")
    if diff:
        parts.append(" • ".join(diff))

    if display.show_timestamp:
        timestamp = getattr(pr, display.timestamp_field) or pr.updated_at
        if timestamp is not None:
            parts.append(format_timestamp(timestamp, display, now))

    if display.show_author_avatar and pr.author_login:
        parts.append(f"@{pr.author_login}")

    return "  ".join(parts)


def render(
    prs: list[PullRequestRecord],
    config: Config,
    *,
    error: str | None = None,
    now: datetime | None = None,
) -> str:
    """Render an error banner (if any) above the pull request list.

    Args:
        prs: Records to render, already sorted and bounded.
        config: Configuration providing display and grouping settings.
        error: Error message shown above a possibly stale list.
        now: Reference time for relative timestamps (defaults to now).

    Returns:
        Multi-line text.
    """
    now = now or datetime.now(UTC)
    lines: list[str] = []

    if error:
        lines.append(f"! {error}")

    if not prs:
        lines.append(EMPTY_MESSAGE)
        return "\n".join(lines)

    if config.grouping.mode == "repo":
        for label, items in group_by_repo(prs):
            lines.append(label)
            lines.extend(f"  {render_row(pr, config, now)}" for pr in items)
    else:
        lines.extend(render_row(pr, config, now) for pr in prs)

    return "\n".join(lines)
