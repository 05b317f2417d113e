from __future__ import annotations
"""Translation between raw service responses and the package models."""
from functools import lru_cache
from typing import Optional

import botocore.session
from botocore.parsers import create_parser
from botocore.utils import parse_timestamp

from .errors import ListingFailedError
from .models import ListPage, ObjectDetails, ObjectEntry
from .transport import HttpResponse

META_PREFIX = "x-amz-meta-"


@lru_cache(maxsize=1)
def _list_objects_shape():
    service_model = botocore.session.get_session().get_service_model("s3")
    return service_model.operation_model("ListObjects").output_shape


def parse_listing(response: HttpResponse) -> dict:
    """Parse a ``ListObjects`` XML body into botocore's dictionary form."""

    parser = create_parser("rest-xml")
    return parser.parse(
        {
            "status_code": response.status_code,
            "headers": response.headers,
            "body": response.body,
        },
        _list_objects_shape(),
    )


def build_list_page(listing: dict, path: str = "") -> ListPage:
    entries = tuple(
        ObjectEntry(
            key=item["Key"],
            size=int(item.get("Size") or 0),
            last_modified=item.get("LastModified"),
            etag=item.get("ETag"),
            storage_class=item.get("StorageClass"),
        )
        for item in listing.get("Contents", [])
    )
    prefixes: list[str] = []
    for common in listing.get("CommonPrefixes", []):
        prefix = common.get("Prefix")
        if prefix and prefix not in prefixes:
            prefixes.append(prefix)

    truncated = bool(listing.get("IsTruncated", False))
    continuation_key: Optional[str] = None
    if truncated:
        continuation_key = listing.get("NextMarker")
        if not continuation_key and entries:
            continuation_key = entries[-1].key
        if not continuation_key and prefixes:
            continuation_key = prefixes[-1]
        if not continuation_key:
            raise ListingFailedError(path, message="Listing failed, truncated page without a marker")

    return ListPage(
        entries=entries,
        common_prefixes=tuple(prefixes),
        truncated=truncated,
        continuation_key=continuation_key,
    )


def lowercase_headers(response: HttpResponse) -> dict[str, str]:
    return {name.lower(): value for name, value in response.headers.items()}


def build_object_details(bucket: str, key: str, response: HttpResponse) -> ObjectDetails:
    headers = lowercase_headers(response)
    size = headers.get("content-length")
    last_modified = headers.get("last-modified")
    return ObjectDetails(
        bucket=bucket,
        key=key,
        size=int(size) if size and size.isdigit() else None,
        last_modified=parse_timestamp(last_modified) if last_modified else None,
        storage_class=headers.get("x-amz-storage-class"),
        etag=headers.get("etag"),
        content_type=headers.get("content-type"),
        metadata={
            name[len(META_PREFIX) :]: value
            for name, value in headers.items()
            if name.startswith(META_PREFIX)
        },
        headers=headers,
    )
