from __future__ import annotations
"""Data models shared by the bucket client."""
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional

PATH_SEPARATOR = "/"


class OperationKind(str, Enum):
    """The closed set of remote operations, one pool each."""

    GET = "get"
    PUT = "put"
    DELETE = "delete"
    HEAD = "head"
    LIST = "list"
    LIST_COMMON_PREFIXES = "listCommonPrefixes"


@dataclass(frozen=True)
class Credentials:
    """Access key, secret and target bucket for every request."""

    access_key: str
    secret: str = field(repr=False)
    bucket: str


@dataclass(frozen=True)
class PoolConfig:
    """Sizing and timing for a single operation pool."""

    max_concurrent: int = 10
    max_queue_depth: int = 100000
    acquire_timeout: Optional[float] = 3600.0
    idle_timeout: float = 60.0
    prefetch: int = 10

    def __post_init__(self) -> None:
        if self.max_concurrent < 1:
            raise ValueError("max_concurrent must be at least 1")
        if self.max_queue_depth < 0:
            raise ValueError("max_queue_depth must not be negative")


def basename(key: str) -> str:
    return key[key.rfind(PATH_SEPARATOR) + 1 :]


@dataclass(frozen=True)
class ObjectEntry:
    """A single object returned by a listing."""

    key: str
    size: int = 0
    last_modified: Optional[datetime] = None
    etag: Optional[str] = None
    storage_class: Optional[str] = None

    @property
    def basename(self) -> str:
        return basename(self.key)


@dataclass(frozen=True)
class ListPage:
    """One page of a (possibly truncated) listing."""

    entries: tuple[ObjectEntry, ...] = ()
    common_prefixes: tuple[str, ...] = ()
    truncated: bool = False
    continuation_key: Optional[str] = None

    def __post_init__(self) -> None:
        if not self.truncated and self.continuation_key is not None:
            raise ValueError("a complete page cannot carry a continuation key")

    @property
    def keys(self) -> list[str]:
        return [entry.key for entry in self.entries]


@dataclass(frozen=True)
class ObjectData:
    """Body and response headers of a downloaded object."""

    key: str
    body: bytes
    headers: dict[str, str] = field(default_factory=dict)

    @property
    def content_type(self) -> Optional[str]:
        return self.headers.get("content-type")


@dataclass
class ObjectDetails:
    """Metadata about a single object, as reported by ``HEAD``."""

    bucket: str
    key: str
    size: Optional[int] = None
    last_modified: Optional[datetime] = None
    storage_class: Optional[str] = None
    etag: Optional[str] = None
    content_type: Optional[str] = None
    metadata: dict[str, str] = field(default_factory=dict)
    headers: dict[str, str] = field(default_factory=dict)
