"""Link-header pagination for GitHub collections."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

logger = logging.getLogger(__name__)

_NEXT_LINK_PATTERN = re.compile(r'<([^>]+)>;\s*rel="next"')


def parse_next_link(link_header: str | None) -> str | None:
    """Parse the 'next' URL from a Link header.

    Args:
        link_header: Link header value, e.g.
            ``<https://...&page=2>; rel="next", <https://...&page=5>; rel="last"``

    Returns:
        Next page URL or None.
    """
    if not link_header:
        return None

    for part in link_header.split(","):
        match = _NEXT_LINK_PATTERN.match(part.strip())
        if match:
            return match.group(1)

    return None


@dataclass
class Page:
    """One page of a collection and the link to the page after it."""

    items: list[dict[str, Any]] = field(default_factory=list)
    next_url: str | None = None


class Paginator:
    """Walks a link-paginated collection until no 'next' relation remains.

    Each page is cached under its own key (``<prefix>:page:<n>``), so a fresh
    first page can be followed by a revalidated second one. Failures propagate
    unchanged; there is no retry at this level.
    """

    def __init__(self, fetch_page: Callable[[str, str, float], Awaitable[Page]]) -> None:
        """Initialize paginator.

        Args:
            fetch_page: Coroutine fetching (url, cache_key, ttl) into a Page.
        """
        self._fetch_page = fetch_page

    async def collect(self, url: str, cache_prefix: str, ttl: float) -> list[dict[str, Any]]:
        """Fetch every page and concatenate the items in page order.

        Args:
            url: Seed URL of the first page.
            cache_prefix: Cache key prefix for this collection.
            ttl: Freshness window for each page in seconds.

        Returns:
            All items across pages.
        """
        items: list[dict[str, Any]] = []
        next_url: str | None = url
        page_number = 1

        while next_url:
            page = await self._fetch_page(next_url, f"{cache_prefix}:page:{page_number}", ttl)
            items.extend(page.items)
            next_url = page.next_url
            page_number += 1

        logger.debug(
            "Collected %d item(s) over %d page(s) for %s",
            len(items),
            page_number - 1,
            cache_prefix,
        )
        return items
