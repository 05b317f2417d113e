from __future__ import annotations
"""Single-request execution against the bucket, following temporary redirects."""
import logging
from typing import Mapping, Optional
from urllib.parse import quote, urlencode, urljoin

from botocore.exceptions import BotoCoreError, ConnectTimeoutError, ReadTimeoutError

from .errors import (
    DeletionFailedError,
    DownloadFailedError,
    ListingFailedError,
    OperationFailedError,
    RequestTimeoutError,
    TooManyRedirectsError,
    UploadFailedError,
)
from .models import Credentials, ListPage, ObjectData, ObjectDetails, OperationKind
from .settings import ClientSettings
from .signing import RequestSigner
from .transport import HttpResponse, HttpTransport
from .wire import build_list_page, build_object_details, lowercase_headers, parse_listing

LOGGER = logging.getLogger(__name__)

TEMPORARY_REDIRECT = 307

_ERRORS: dict[OperationKind, type[OperationFailedError]] = {
    OperationKind.GET: DownloadFailedError,
    OperationKind.HEAD: DownloadFailedError,
    OperationKind.PUT: UploadFailedError,
    OperationKind.DELETE: DeletionFailedError,
    OperationKind.LIST: ListingFailedError,
    OperationKind.LIST_COMMON_PREFIXES: ListingFailedError,
}

_SUCCESS = {
    OperationKind.GET: 200,
    OperationKind.HEAD: 200,
    OperationKind.PUT: 200,
    OperationKind.DELETE: 204,
    OperationKind.LIST: 200,
    OperationKind.LIST_COMMON_PREFIXES: 200,
}


def object_key(path: str) -> str:
    """Strip the leading separator of a public path."""

    return path[1:] if path.startswith("/") else path


class RequestExecutor:
    """Performs exactly one logical remote operation per call.

    Pool admission is not handled here; callers hold the matching slot for
    the whole call, redirects included.
    """

    def __init__(
        self,
        credentials: Credentials,
        transport: HttpTransport,
        *,
        settings: ClientSettings | None = None,
        signer: RequestSigner | None = None,
    ):
        self._credentials = credentials
        self._transport = transport
        self._settings = settings or ClientSettings()
        self._signer = signer or RequestSigner(credentials, self._settings.region)

    @property
    def base_url(self) -> str:
        return f"{self._settings.scheme}://{self._credentials.bucket}.{self._settings.service_host}"

    def object_url(self, path: str) -> str:
        return f"{self.base_url}/{quote(object_key(path), safe='/~')}"

    def listing_url(self, path: str, delimiter: Optional[str] = None, marker: Optional[str] = None) -> str:
        params = [("prefix", object_key(path))]
        if delimiter:
            params.append(("delimiter", delimiter))
        if marker:
            params.append(("marker", marker))
        return f"{self.base_url}/?{urlencode(params, quote_via=quote)}"

    async def get(self, path: str) -> ObjectData:
        response = await self._send(OperationKind.GET, "GET", self.object_url(path), path)
        return ObjectData(key=object_key(path), body=response.body, headers=lowercase_headers(response))

    async def head(self, path: str) -> ObjectDetails:
        response = await self._send(OperationKind.HEAD, "HEAD", self.object_url(path), path)
        return build_object_details(self._credentials.bucket, object_key(path), response)

    async def put(
        self,
        path: str,
        data: bytes,
        content_type: str,
        *,
        private: bool = True,
        headers: Optional[Mapping[str, str]] = None,
    ) -> None:
        request_headers = {
            name: value for name, value in (headers or {}).items() if name.lower() != "content-type"
        }
        request_headers["Content-Type"] = content_type
        if not private:
            request_headers["x-amz-acl"] = "public-read"
        await self._send(
            OperationKind.PUT,
            "PUT",
            self.object_url(path),
            path,
            headers=request_headers,
            body=bytes(data),
        )

    async def delete(self, path: str) -> None:
        await self._send(OperationKind.DELETE, "DELETE", self.object_url(path), path)

    async def list(
        self,
        path: str,
        *,
        delimiter: Optional[str] = None,
        marker: Optional[str] = None,
        kind: OperationKind = OperationKind.LIST,
    ) -> ListPage:
        response = await self._send(kind, "GET", self.listing_url(path, delimiter, marker), path)
        try:
            listing = parse_listing(response)
        except BotoCoreError as exc:
            raise ListingFailedError(path, status_code=response.status_code) from exc
        return build_list_page(listing, path)

    async def _send(
        self,
        kind: OperationKind,
        method: str,
        url: str,
        path: str,
        *,
        headers: Optional[Mapping[str, str]] = None,
        body: Optional[bytes] = None,
    ) -> HttpResponse:
        error_cls = _ERRORS[kind]
        timeout = self._settings.timeout_for(kind)
        redirects = 0
        while True:
            request = self._signer.sign(method, url, headers, body)
            try:
                response = await self._transport.send(request, timeout)
            except (ReadTimeoutError, ConnectTimeoutError) as exc:
                LOGGER.debug("%s %s timed out", method, url)
                raise RequestTimeoutError(path, kind.value, timeout) from exc
            except BotoCoreError as exc:
                LOGGER.debug("%s %s failed: %s", method, url, exc)
                raise error_cls(path) from exc

            if response.status_code == _SUCCESS[kind]:
                return response
            if response.status_code != TEMPORARY_REDIRECT:
                LOGGER.debug("%s %s returned %d", method, url, response.status_code)
                raise error_cls(path, status_code=response.status_code)

            location = response.headers.get("location")
            if not location:
                raise error_cls(path, status_code=response.status_code)
            redirects += 1
            if redirects > self._settings.max_redirects:
                LOGGER.warning("Redirect loop for %s %s", method, path)
                raise TooManyRedirectsError(path, self._settings.max_redirects)
            url = urljoin(url, location)
            LOGGER.debug("%s %s redirected to %s", method, path, url)
