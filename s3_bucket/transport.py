from __future__ import annotations
"""Non-blocking wrapper around botocore's urllib3 HTTP session."""
import asyncio
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
import logging
import threading

from botocore.awsrequest import AWSRequest, HeadersDict
from botocore.httpsession import URLLib3Session

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class HttpResponse:
    """Fully read response of a single HTTP exchange."""

    status_code: int
    headers: HeadersDict = field(default_factory=HeadersDict)
    body: bytes = b""

    def __post_init__(self) -> None:
        if not isinstance(self.headers, HeadersDict):
            object.__setattr__(self, "headers", HeadersDict(dict(self.headers)))


async def _wait_ignoring_cancellation(pending: asyncio.Future) -> None:
    while not pending.done():
        try:
            await asyncio.wait({pending})
        except asyncio.CancelledError:
            continue
    if not pending.cancelled():
        # the outcome is discarded; retrieve it so it is not reported as unhandled
        pending.exception()


class HttpTransport:
    """Sends signed requests from a worker thread pool.

    Redirects are never followed here; the caller decides what a ``307``
    means. One ``URLLib3Session`` is kept per distinct timeout.
    """

    def __init__(self, *, max_workers: int = 10, max_pool_connections: int | None = None):
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="s3-bucket")
        self._max_pool_connections = max_pool_connections or max_workers
        self._sessions: dict[float, URLLib3Session] = {}
        self._lock = threading.Lock()

    async def send(self, request: AWSRequest, timeout: float) -> HttpResponse:
        session = self._session_for(timeout)
        prepared = request.prepare()
        loop = asyncio.get_running_loop()
        LOGGER.debug("%s %s", prepared.method, prepared.url)
        pending = loop.run_in_executor(self._executor, session.send, prepared)
        try:
            response = await asyncio.shield(pending)
        except asyncio.CancelledError:
            # A worker thread cannot be interrupted; keep the caller (and the
            # pool slot it holds) until the request has really ended.
            LOGGER.debug("Cancelled %s %s, waiting for it to finish", prepared.method, prepared.url)
            await _wait_ignoring_cancellation(pending)
            raise
        return HttpResponse(
            status_code=response.status_code,
            headers=response.headers,
            body=response.content or b"",
        )

    def close(self) -> None:
        self._executor.shutdown(wait=False)
        with self._lock:
            for session in self._sessions.values():
                session.close()
            self._sessions.clear()

    def _session_for(self, timeout: float) -> URLLib3Session:
        with self._lock:
            session = self._sessions.get(timeout)
            if session is None:
                session = URLLib3Session(timeout=timeout, max_pool_connections=self._max_pool_connections)
                self._sessions[timeout] = session
            return session
