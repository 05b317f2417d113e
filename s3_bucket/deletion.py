from __future__ import annotations
"""Recursive removal of every object below a directory prefix."""
import asyncio
from dataclasses import dataclass
import logging
from typing import Awaitable, Callable, Optional

from .errors import OperationCancelledError
from .models import PATH_SEPARATOR
from .pagination import ListingCursor

LOGGER = logging.getLogger(__name__)

CancelFn = Callable[[], bool]


def is_directory(path: str) -> bool:
    return bool(path) and path.endswith(PATH_SEPARATOR)


@dataclass(frozen=True)
class DeletionSummary:
    pages: int = 0
    deleted: int = 0


class DirectoryDeleter:
    """Deletes a directory page by page.

    Pages are processed strictly one after the other; the objects of a page
    are deleted concurrently, each through its own pool-gated call. The first
    page with a failed delete stops the walk after all of its deletes have
    settled, and the first failure of that page is raised. Objects removed
    before the failure stay removed.
    """

    def __init__(
        self,
        list_pages: Callable[[str], ListingCursor],
        delete_object: Callable[[str], Awaitable[None]],
    ):
        self._list_pages = list_pages
        self._delete_object = delete_object

    async def delete_tree(self, path: str, *, cancel_requested: Optional[CancelFn] = None) -> DeletionSummary:
        pages = 0
        deleted = 0
        if cancel_requested and cancel_requested():
            raise OperationCancelledError(f"delete of '{path}' cancelled before it started")
        cursor = self._list_pages(path)
        async for page in cursor:
            pages += 1
            if not page.entries:
                break

            results = await asyncio.gather(
                *(self._delete_object(PATH_SEPARATOR + entry.key) for entry in page.entries),
                return_exceptions=True,
            )
            failures = [result for result in results if isinstance(result, BaseException)]
            deleted += len(results) - len(failures)
            if failures:
                LOGGER.debug(
                    "Delete of '%s' stopped on page %d: %d of %d failed",
                    path,
                    pages,
                    len(failures),
                    len(results),
                )
                raise failures[0]

            # Only between pages, never in the middle of one.
            if cancel_requested and not cursor.exhausted and cancel_requested():
                LOGGER.warning("Delete of '%s' cancelled after %d object(s)", path, deleted)
                raise OperationCancelledError(f"delete of '{path}' cancelled after {deleted} object(s)")

        LOGGER.debug("Deleted %d object(s) below '%s' in %d page(s)", deleted, path, pages)
        return DeletionSummary(pages=pages, deleted=deleted)
