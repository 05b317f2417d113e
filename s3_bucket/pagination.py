from __future__ import annotations
"""Forward-only cursor over truncated listing pages."""
from dataclasses import replace
import logging
from typing import AsyncIterator, Awaitable, Callable, Optional

from .models import ListPage, ObjectEntry

LOGGER = logging.getLogger(__name__)

FetchPage = Callable[[Optional[str]], Awaitable[ListPage]]


class ListingCursor:
    """Lazily fetches one page per step until a complete page is seen.

    The cursor cannot be rewound: every page after the first is requested
    with the continuation key of the page before it. A failed fetch raises
    and leaves the cursor where it was, so pages already returned stay valid
    and the same step may be attempted again.
    """

    def __init__(
        self,
        fetch_page: FetchPage,
        *,
        marker: Optional[str] = None,
        prefixes_only: bool = False,
    ):
        self._fetch_page = fetch_page
        self._marker = marker
        self._prefixes_only = prefixes_only
        self._exhausted = False
        self._fetching = False
        self.pages_fetched = 0

    @property
    def exhausted(self) -> bool:
        return self._exhausted

    @property
    def marker(self) -> Optional[str]:
        """Continuation key the next step will resume after."""

        return self._marker

    def __aiter__(self) -> ListingCursor:
        return self

    async def __anext__(self) -> ListPage:
        if self._exhausted:
            raise StopAsyncIteration
        if self._fetching:
            raise RuntimeError("listing cursor is already fetching a page")
        self._fetching = True
        try:
            page = await self._fetch_page(self._marker)
        finally:
            self._fetching = False

        self.pages_fetched += 1
        if page.truncated:
            self._marker = page.continuation_key
        else:
            self._exhausted = True
        LOGGER.debug(
            "Fetched listing page %d (%d entries, %d prefixes, truncated=%s)",
            self.pages_fetched,
            len(page.entries),
            len(page.common_prefixes),
            page.truncated,
        )
        if self._prefixes_only:
            page = replace(page, entries=())
        return page

    async def entries(self) -> AsyncIterator[ObjectEntry]:
        async for page in self:
            for entry in page.entries:
                yield entry

    async def prefixes(self) -> AsyncIterator[str]:
        seen: set[str] = set()
        async for page in self:
            for prefix in page.common_prefixes:
                if prefix not in seen:
                    seen.add(prefix)
                    yield prefix

    async def collect(self) -> ListPage:
        """Drain the remaining pages into a single complete page."""

        entries: list[ObjectEntry] = []
        prefixes: list[str] = []
        async for page in self:
            entries.extend(page.entries)
            for prefix in page.common_prefixes:
                if prefix not in prefixes:
                    prefixes.append(prefix)
        return ListPage(entries=tuple(entries), common_prefixes=tuple(prefixes))
