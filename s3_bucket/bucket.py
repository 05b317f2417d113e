from __future__ import annotations
"""Public, pool-gated entry point for every bucket operation."""
from dataclasses import replace
import logging
from typing import Mapping, Optional

from .deletion import CancelFn, DirectoryDeleter, is_directory
from .errors import MissingArgumentError
from .executor import RequestExecutor
from .models import Credentials, ListPage, ObjectData, ObjectDetails, OperationKind
from .pagination import ListingCursor
from .pools import PoolRegistry
from .profiles import ConnectionProfile
from .settings import ClientSettings
from .transport import HttpTransport

LOGGER = logging.getLogger(__name__)


def _require_string(value, name: str, operation: str) -> str:
    if not isinstance(value, str) or not value:
        raise MissingArgumentError(f"missing the string argument «{name}» for {operation}")
    return value


class S3Bucket:
    """Client for a single bucket.

    Every call first takes a slot from the pool of its operation kind, runs
    the request (redirects included) and hands the slot back however the
    request ends. Arguments are validated before a slot is taken.

    Usage::

        async with S3Bucket(key="...", secret="...", bucket="media") as bucket:
            await bucket.put("/dir/file.txt", b"hello", "text/plain")
            data = await bucket.get("/dir/file.txt")
            await bucket.delete("/dir/")
    """

    def __init__(
        self,
        *,
        key: str,
        secret: str,
        bucket: str,
        max_concurrent: int | None = None,
        max_concurrent_downloads: int | None = None,
        max_concurrent_uploads: int | None = None,
        max_concurrent_lists: int | None = None,
        max_concurrent_deletes: int | None = None,
        settings: ClientSettings | None = None,
        transport: HttpTransport | None = None,
        executor: RequestExecutor | None = None,
    ):
        for name, value in (("key", key), ("secret", secret), ("bucket", bucket)):
            if not isinstance(value, str) or not value:
                raise MissingArgumentError(f"missing the string property «{name}» on the options object!")

        self.credentials = Credentials(access_key=key, secret=secret, bucket=bucket)
        overrides = {
            name: value
            for name, value in (
                ("max_concurrent", max_concurrent),
                ("max_concurrent_downloads", max_concurrent_downloads),
                ("max_concurrent_uploads", max_concurrent_uploads),
                ("max_concurrent_lists", max_concurrent_lists),
                ("max_concurrent_deletes", max_concurrent_deletes),
            )
            if value is not None
        }
        self.settings = replace(settings or ClientSettings(), **overrides)
        self._pools = PoolRegistry(self.settings)
        if executor is None:
            workers = sum(pool.config.max_concurrent for pool in self._pools)
            self._transport = transport or HttpTransport(max_workers=workers)
            executor = RequestExecutor(self.credentials, self._transport, settings=self.settings)
        else:
            self._transport = transport
        self._executor = executor
        self._deleter = DirectoryDeleter(self.list, self._delete_object)

    @classmethod
    def from_profile(cls, profile: ConnectionProfile, settings: ClientSettings | None = None, **kwargs) -> S3Bucket:
        settings = replace(settings or ClientSettings(), region=profile.region)
        credentials = profile.credentials
        return cls(
            key=credentials.access_key,
            secret=credentials.secret,
            bucket=credentials.bucket,
            settings=settings,
            **kwargs,
        )

    @property
    def pools(self) -> PoolRegistry:
        return self._pools

    async def __aenter__(self) -> S3Bucket:
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    async def close(self) -> None:
        self._pools.close()
        if self._transport is not None:
            self._transport.close()

    async def get(self, path: str) -> ObjectData:
        _require_string(path, "path", "get")
        async with self._pools.slot(OperationKind.GET):
            return await self._executor.get(path)

    async def head(self, path: str) -> ObjectDetails:
        _require_string(path, "path", "head")
        async with self._pools.slot(OperationKind.HEAD):
            return await self._executor.head(path)

    async def put(
        self,
        path: str,
        data: bytes,
        content_type: str,
        *,
        private: bool = True,
        headers: Optional[Mapping[str, str]] = None,
    ) -> None:
        _require_string(path, "path", "put")
        if not isinstance(data, (bytes, bytearray, memoryview)):
            raise MissingArgumentError("missing the argument «data», put expects a bytes-like object")
        _require_string(content_type, "contentType", "put")
        if not isinstance(private, bool):
            raise MissingArgumentError("the argument «private» must be a boolean")
        if headers is not None and not isinstance(headers, Mapping):
            raise MissingArgumentError("the argument «headers» must be a mapping")
        async with self._pools.slot(OperationKind.PUT):
            await self._executor.put(path, data, content_type, private=private, headers=headers)

    async def delete(self, path: str, *, cancel_requested: Optional[CancelFn] = None) -> None:
        """Delete an object, or everything below ``path`` when it ends in ``/``.

        A directory delete is not atomic: when it fails, objects deleted on
        earlier pages are gone and the rest are still there.
        """

        _require_string(path, "path", "delete")
        if not is_directory(path):
            await self._delete_object(path)
            return
        summary = await self._deleter.delete_tree(path, cancel_requested=cancel_requested)
        LOGGER.debug("Removed directory '%s' (%d object(s))", path, summary.deleted)

    async def list_page(
        self,
        path: str,
        *,
        marker: Optional[str] = None,
        delimiter: Optional[str] = None,
    ) -> ListPage:
        _require_string(path, "path", "list")
        return await self._list_page(OperationKind.LIST, path, marker, delimiter)

    def list(self, path: str, delimiter: Optional[str] = None, *, marker: Optional[str] = None) -> ListingCursor:
        """Return a forward-only cursor over every page below ``path``."""

        _require_string(path, "path", "list")
        if delimiter is not None:
            _require_string(delimiter, "delimiter", "list")
        return ListingCursor(
            lambda next_marker: self._list_page(OperationKind.LIST, path, next_marker, delimiter),
            marker=marker,
        )

    def list_common_prefixes(self, path: str, delimiter: str = "/", *, marker: Optional[str] = None) -> ListingCursor:
        """Return a cursor yielding only the common prefixes ("directories")."""

        _require_string(path, "path", "listCommonPrefixes")
        _require_string(delimiter, "delimiter", "listCommonPrefixes")
        return ListingCursor(
            lambda next_marker: self._list_page(OperationKind.LIST_COMMON_PREFIXES, path, next_marker, delimiter),
            marker=marker,
            prefixes_only=True,
        )

    async def _list_page(
        self,
        kind: OperationKind,
        path: str,
        marker: Optional[str],
        delimiter: Optional[str],
    ) -> ListPage:
        async with self._pools.slot(kind):
            return await self._executor.list(path, delimiter=delimiter, marker=marker, kind=kind)

    async def _delete_object(self, path: str) -> None:
        async with self._pools.slot(OperationKind.DELETE):
            await self._executor.delete(path)
