from __future__ import annotations
"""Callback-style wrapper that runs bucket operations on a background loop."""
import asyncio
from functools import partial
import logging
import threading
from typing import Any, Callable, Coroutine, Mapping, Optional

from .bucket import S3Bucket
from .errors import OperationCancelledError
from .models import ListPage, ObjectData, ObjectDetails
from .pagination import ListingCursor

DispatchFn = Callable[[Callable[[], None]], None]
ErrorFn = Callable[[BaseException], None]
DoneFn = Callable[[], None]
PageFn = Callable[[ListPage, Optional[Callable[..., None]]], None]

LOGGER = logging.getLogger(__name__)


class CallbackBucket:
    """Runs :class:`S3Bucket` operations and reports results via callbacks.

    The event loop lives on a daemon thread owned by this object. Exactly one
    of ``on_success`` or ``on_error`` is called per operation, followed by
    ``on_done`` when given; all of them go through ``dispatch``, which lets a
    UI marshal them back onto its own thread.
    """

    def __init__(self, bucket_factory: Callable[[], S3Bucket], *, dispatch: DispatchFn | None = None) -> None:
        self._dispatch = dispatch or (lambda func: func())
        self._loop = asyncio.new_event_loop()
        self._thread = threading.Thread(target=self._loop.run_forever, name="s3-bucket-loop", daemon=True)
        self._thread.start()
        self._bucket = self._call(self._create(bucket_factory))

    @property
    def bucket(self) -> S3Bucket:
        return self._bucket

    def get(
        self,
        path: str,
        *,
        on_success: Callable[[ObjectData], None],
        on_error: ErrorFn,
        on_done: DoneFn | None = None,
    ) -> None:
        self._submit("get", path, self._bucket.get(path), on_success, on_error, on_done)

    def head(
        self,
        path: str,
        *,
        on_success: Callable[[ObjectDetails], None],
        on_error: ErrorFn,
        on_done: DoneFn | None = None,
    ) -> None:
        self._submit("head", path, self._bucket.head(path), on_success, on_error, on_done)

    def put(
        self,
        path: str,
        data: bytes,
        content_type: str,
        *,
        private: bool = True,
        headers: Optional[Mapping[str, str]] = None,
        on_success: DoneFn,
        on_error: ErrorFn,
        on_done: DoneFn | None = None,
    ) -> None:
        operation = self._bucket.put(path, data, content_type, private=private, headers=headers)
        self._submit("put", path, operation, lambda _: on_success(), on_error, on_done)

    def delete(
        self,
        path: str,
        *,
        cancel_requested: Callable[[], bool] | None = None,
        on_success: DoneFn,
        on_error: ErrorFn,
        on_cancelled: ErrorFn | None = None,
        on_done: DoneFn | None = None,
    ) -> None:
        def report_error(exc: BaseException) -> None:
            if on_cancelled and isinstance(exc, OperationCancelledError):
                on_cancelled(exc)
            else:
                on_error(exc)

        operation = self._bucket.delete(path, cancel_requested=cancel_requested)
        self._submit("delete", path, operation, lambda _: on_success(), report_error, on_done)

    def list_page(
        self,
        path: str,
        *,
        marker: str | None = None,
        delimiter: str | None = None,
        on_success: Callable[[ListPage], None],
        on_error: ErrorFn,
        on_done: DoneFn | None = None,
    ) -> None:
        operation = self._bucket.list_page(path, marker=marker, delimiter=delimiter)
        self._submit("list", path, operation, on_success, on_error, on_done)

    def list(
        self,
        path: str,
        delimiter: str | None = None,
        *,
        marker: str | None = None,
        on_success: PageFn,
        on_error: ErrorFn,
        on_done: DoneFn | None = None,
    ) -> None:
        """Fetch the first page below ``path``.

        ``on_success`` receives the page and a ``next_page`` function, or
        ``None`` once the listing is complete. ``next_page`` takes the same
        ``on_success``/``on_error``/``on_done`` keywords and fetches the page
        after it.
        """
        self._walk("list", path, lambda: self._bucket.list(path, delimiter, marker=marker), on_success, on_error, on_done)

    def list_common_prefixes(
        self,
        path: str,
        delimiter: str = "/",
        *,
        marker: str | None = None,
        on_success: PageFn,
        on_error: ErrorFn,
        on_done: DoneFn | None = None,
    ) -> None:
        """Like :meth:`list`, but pages only carry ``common_prefixes``."""
        self._walk(
            "listCommonPrefixes",
            path,
            lambda: self._bucket.list_common_prefixes(path, delimiter, marker=marker),
            on_success,
            on_error,
            on_done,
        )

    def close(self) -> None:
        if self._loop.is_closed():
            return
        self._call(self._bucket.close())
        self._loop.call_soon_threadsafe(self._loop.stop)
        self._thread.join()
        self._loop.close()

    @staticmethod
    async def _create(bucket_factory: Callable[[], S3Bucket]) -> S3Bucket:
        return bucket_factory()

    def _call(self, coroutine: Coroutine[Any, Any, Any]) -> Any:
        return asyncio.run_coroutine_threadsafe(coroutine, self._loop).result()

    def _walk(
        self,
        action: str,
        path: str,
        open_cursor: Callable[[], ListingCursor],
        on_success: PageFn,
        on_error: ErrorFn,
        on_done: DoneFn | None,
        cursor: ListingCursor | None = None,
    ) -> None:
        async def fetch() -> ListPage:
            nonlocal cursor
            if cursor is None:
                cursor = open_cursor()
            return await cursor.__anext__()

        def next_page(*, on_success: PageFn, on_error: ErrorFn, on_done: DoneFn | None = None) -> None:
            self._walk(action, path, open_cursor, on_success, on_error, on_done, cursor)

        def report(page: ListPage) -> None:
            on_success(page, None if cursor.exhausted else next_page)

        self._submit(action, path, fetch(), report, on_error, on_done)

    def _submit(
        self,
        action: str,
        path: str,
        coroutine: Coroutine[Any, Any, Any],
        on_success: Callable[[Any], None],
        on_error: ErrorFn,
        on_done: DoneFn | None,
    ) -> None:
        LOGGER.debug("Scheduling %s of '%s'", action, path)
        future = asyncio.run_coroutine_threadsafe(coroutine, self._loop)

        def report(completed) -> None:
            try:
                result = completed.result()
            except Exception as exc:
                LOGGER.exception("%s of '%s' failed", action.capitalize(), path)
                self._dispatch(partial(on_error, exc))
            else:
                self._dispatch(partial(on_success, result))
            finally:
                if on_done:
                    self._dispatch(on_done)

        future.add_done_callback(report)
