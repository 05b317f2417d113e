from __future__ import annotations
"""Client settings and their persistence helpers."""

from dataclasses import asdict, dataclass, fields
import json
from pathlib import Path
from typing import Optional

from .models import OperationKind, PoolConfig

DEFAULT_MAX_CONCURRENT = 10

# Which per-operation override applies to each pool.
LIMIT_FIELDS = {
    OperationKind.GET: "max_concurrent_downloads",
    OperationKind.HEAD: "max_concurrent_downloads",
    OperationKind.PUT: "max_concurrent_uploads",
    OperationKind.LIST: "max_concurrent_lists",
    OperationKind.LIST_COMMON_PREFIXES: "max_concurrent_lists",
    OperationKind.DELETE: "max_concurrent_deletes",
}


@dataclass
class ClientSettings:
    """Tunables of a bucket client."""

    max_concurrent: Optional[int] = None
    max_concurrent_downloads: Optional[int] = None
    max_concurrent_uploads: Optional[int] = None
    max_concurrent_lists: Optional[int] = None
    max_concurrent_deletes: Optional[int] = None
    max_queue_depth: int = 100000
    acquire_timeout: float = 3600.0
    idle_timeout: float = 60.0
    prefetch: int = 10
    request_timeout: float = 60.0
    upload_timeout: float = 600.0
    max_redirects: int = 5
    service_host: str = "s3.amazonaws.com"
    region: str = "us-east-1"
    use_https: bool = True

    def max_concurrent_for(self, kind: OperationKind) -> int:
        """Resolve per-operation override, then the generic one, then the default."""

        for value in (getattr(self, LIMIT_FIELDS[kind]), self.max_concurrent):
            if isinstance(value, int) and not isinstance(value, bool) and value > 0:
                return value
        return DEFAULT_MAX_CONCURRENT

    def pool_config(self, kind: OperationKind) -> PoolConfig:
        return PoolConfig(
            max_concurrent=self.max_concurrent_for(kind),
            max_queue_depth=self.max_queue_depth,
            acquire_timeout=self.acquire_timeout,
            idle_timeout=self.idle_timeout,
            prefetch=self.prefetch,
        )

    def timeout_for(self, kind: OperationKind) -> float:
        if kind is OperationKind.PUT:
            return self.upload_timeout
        return self.request_timeout

    @property
    def scheme(self) -> str:
        return "https" if self.use_https else "http"


_LIMITS = {
    "max_concurrent",
    "max_concurrent_downloads",
    "max_concurrent_uploads",
    "max_concurrent_lists",
    "max_concurrent_deletes",
}
_POSITIVE_INTS = {"max_queue_depth", "prefetch", "max_redirects"}
_POSITIVE_FLOATS = {"acquire_timeout", "idle_timeout", "request_timeout", "upload_timeout"}
_STRINGS = {"service_host", "region"}


def _sanitize(name: str, value):
    default = getattr(ClientSettings, name)
    if name in _LIMITS:
        if value is None:
            return None
        try:
            number = int(value)
        except (TypeError, ValueError):
            return None
        return number if number > 0 else None
    if name in _POSITIVE_INTS:
        try:
            number = int(value)
        except (TypeError, ValueError):
            return default
        return number if number > 0 else default
    if name in _POSITIVE_FLOATS:
        try:
            number = float(value)
        except (TypeError, ValueError):
            return default
        return number if number > 0 else default
    if name in _STRINGS:
        return value if isinstance(value, str) and value.strip() else default
    if name == "use_https":
        return value if isinstance(value, bool) else default
    return default


class SettingsStorage:
    """JSON-backed persistence for :class:`ClientSettings`."""

    def __init__(self, storage_path: str | Path | None = None):
        if storage_path is None:
            storage_path = Path.home() / ".pys3bucket_settings.json"
        self._path = Path(storage_path)

    def load(self) -> ClientSettings:
        if not self._path.exists():
            return ClientSettings()
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError):
            return ClientSettings()
        if not isinstance(data, dict):
            return ClientSettings()
        values = {
            item.name: _sanitize(item.name, data[item.name])
            for item in fields(ClientSettings)
            if item.name in data
        }
        return ClientSettings(**values)

    def save(self, settings: ClientSettings) -> None:
        payload = {name: _sanitize(name, value) for name, value in asdict(settings).items()}
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            self._path.write_text(json.dumps(payload, indent=2), encoding="utf-8")
        except OSError:
            # Persist best-effort; ignore filesystem issues.
            return
