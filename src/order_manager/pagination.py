"""Cursor-based pagination aggregation for the order manager.

Turns a cursor-linked listing into a single bounded result:
- Opaque cursor tokens passed back to the page fetcher unchanged
- Configurable page bound (max_pages)
- Tolerant of responses without pagination metadata

The aggregator always terminates. It stops on exhaustion, on the page
bound, or when the source claims more pages without a cursor it has not
already handed out.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass, field
from typing import Any, Generic, TypeVar

from pydantic import BaseModel

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_MAX_PAGES = 10
DEFAULT_PAGE_SIZE = 250
MAX_PAGE_SIZE = 250


@dataclass
class Page:
    """One page of a cursor-based listing."""

    items: list[Any]
    next_cursor: str | None = None
    has_next_page: bool = False

    @classmethod
    def from_response(cls, response: Any, items_key: str = "items") -> Page:
        """Normalize a raw listing response into a Page.

        Accepted shapes:
        - Page: returned as is
        - list: a single, final page
        - mapping holding items_key: items plus pageInfo.hasNextPage and
          pageInfo.endCursor (or top-level hasNextPage / nextCursor)
        - anything else: one final page containing that single value
        """
        if isinstance(response, Page):
            return response

        if isinstance(response, list):
            return cls(items=list(response))

        if isinstance(response, Mapping) and items_key in response:
            raw_items = response[items_key]
            items = list(raw_items) if isinstance(raw_items, list) else [raw_items]

            page_info = response.get("pageInfo")
            if not isinstance(page_info, Mapping):
                page_info = response

            cursor = page_info.get("endCursor", page_info.get("nextCursor"))
            return cls(
                items=items,
                next_cursor=cursor if isinstance(cursor, str) and cursor else None,
                has_next_page=page_info.get("hasNextPage") is True,
            )

        return cls(items=[response])


@dataclass
class PaginationState:
    """Bookkeeping for a single fetch_all() call."""

    accumulated: list[Any] = field(default_factory=list)
    cursor: str | None = None
    seen_cursors: set[str] = field(default_factory=set)
    page_count: int = 0
    has_more: bool = False


class FetchAllResult(BaseModel, Generic[T]):
    """Aggregated listing result."""

    items: list[T]
    total_fetched: int
    has_more: bool


PageFetcher = Callable[[str | None], Awaitable[Any]]


async def fetch_all(
    page_fetcher: PageFetcher,
    *,
    max_pages: int | None = DEFAULT_MAX_PAGES,
    items_key: str = "items",
) -> FetchAllResult[Any]:
    """Fetch pages until the listing is exhausted or max_pages is reached.

    Args:
        page_fetcher: Coroutine function taking the cursor (None for the
            first page) and returning a Page or a raw listing response
        max_pages: Upper bound on pages fetched; None for no bound
        items_key: Field holding the items in mapping responses

    Returns:
        FetchAllResult with has_more=True when the loop stopped before the
        source was exhausted.

    Raises:
        ValueError: If max_pages is less than 1.
        Whatever page_fetcher raises; items gathered so far are dropped.
    """
    if max_pages is not None and max_pages < 1:
        raise ValueError(f"max_pages must be at least 1, got {max_pages}")

    state = PaginationState()

    while True:
        page = Page.from_response(await page_fetcher(state.cursor), items_key=items_key)
        state.accumulated.extend(page.items)
        state.page_count += 1
        state.has_more = page.has_next_page

        if not page.has_next_page:
            break

        if max_pages is not None and state.page_count >= max_pages:
            logger.debug(f"Stopped after {state.page_count} pages, more available")
            break

        if page.next_cursor is None or page.next_cursor in state.seen_cursors:
            logger.warning(
                f"Page {state.page_count} reports more pages without a new cursor, stopping"
            )
            break

        state.seen_cursors.add(page.next_cursor)
        state.cursor = page.next_cursor

    return FetchAllResult[Any](
        items=state.accumulated,
        total_fetched=len(state.accumulated),
        has_more=state.has_more,
    )
