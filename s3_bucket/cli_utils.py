from __future__ import annotations
"""Formatting helpers for the command line front end."""
from dataclasses import dataclass
from datetime import datetime
from importlib.metadata import PackageNotFoundError, metadata, version
import mimetypes

from .models import ObjectDetails, ObjectEntry

DIST_NAME = "pys3bucket"
DEFAULT_CONTENT_TYPE = "application/octet-stream"


@dataclass(frozen=True)
class PackageInfo:
    name: str
    version: str
    summary: str


def load_package_info(dist_name: str = DIST_NAME) -> PackageInfo:
    try:
        distribution_metadata = metadata(dist_name)
        package_version = version(dist_name)
    except PackageNotFoundError:
        return PackageInfo(
            name=dist_name,
            version="",
            summary="Concurrency-bounded client for a single S3 bucket.",
        )
    return PackageInfo(
        name=distribution_metadata.get("Name") or dist_name,
        version=package_version,
        summary=distribution_metadata.get("Summary") or "",
    )


def format_size(size: int | None) -> str:
    if size is None:
        return "-"
    suffixes = ["B", "KB", "MB", "GB", "TB"]
    value = float(max(size, 0))
    for suffix in suffixes:
        if value < 1024 or suffix == suffixes[-1]:
            return f"{value:.1f} {suffix}" if suffix != "B" else f"{int(value)} {suffix}"
        value /= 1024
    return f"{size} B"


def format_last_modified(last_modified: datetime | None) -> str:
    if not last_modified:
        return "-"
    return last_modified.strftime("%Y-%m-%d %H:%M:%S %Z").strip() or last_modified.isoformat()


def format_entry(entry: ObjectEntry, *, long: bool = False) -> str:
    if not long:
        return entry.key
    return f"{format_last_modified(entry.last_modified):>23}  {format_size(entry.size):>10}  {entry.key}"


def format_details(details: ObjectDetails) -> list[str]:
    lines = [
        f"key: {details.key}",
        f"size: {format_size(details.size)}",
        f"last modified: {format_last_modified(details.last_modified)}",
        f"content type: {details.content_type or '-'}",
        f"etag: {details.etag or '-'}",
    ]
    if details.storage_class:
        lines.append(f"storage class: {details.storage_class}")
    for name, value in sorted(details.metadata.items()):
        lines.append(f"meta {name}: {value}")
    return lines


def guess_content_type(filename: str) -> str:
    content_type, _ = mimetypes.guess_type(filename)
    return content_type or DEFAULT_CONTENT_TYPE


def to_remote_path(path: str) -> str:
    cleaned = path.strip()
    return cleaned if cleaned.startswith("/") else f"/{cleaned}"
