from __future__ import annotations
"""Exceptions raised by the bucket client."""
from typing import Optional


class S3BucketError(Exception):
    """Base class for every error raised by this package."""


class MissingArgumentError(S3BucketError, TypeError):
    """Raised when a required argument is missing or has the wrong type."""


class OperationCancelledError(S3BucketError, RuntimeError):
    """Raised when a directory delete is cancelled by the caller."""


class PoolError(S3BucketError):
    """Raised on pool misuse, such as releasing a slot twice."""


class PoolTimeoutError(PoolError):
    def __init__(self, pool: str, timeout: float):
        super().__init__(f"timed out after {timeout:g}s waiting for a '{pool}' slot")
        self.pool = pool
        self.timeout = timeout


class PoolSaturatedError(PoolError):
    def __init__(self, pool: str, max_queue_depth: int):
        super().__init__(f"the '{pool}' pool already has {max_queue_depth} waiting requests")
        self.pool = pool
        self.max_queue_depth = max_queue_depth


class PoolClosedError(PoolError):
    def __init__(self, pool: str):
        super().__init__(f"the '{pool}' pool is closed")
        self.pool = pool


class OperationFailedError(S3BucketError):
    """A remote call finished with an unexpected status or no response at all.

    ``status_code`` is ``None`` for transport level failures; the underlying
    botocore exception is then available as ``__cause__``.
    """

    action = "Operation"

    def __init__(self, path: str, status_code: Optional[int] = None, message: Optional[str] = None):
        if message is None:
            if status_code is None:
                message = f"{self.action} failed, unknown status!"
            else:
                message = f"{self.action} failed, status: {status_code}"
        super().__init__(message)
        self.path = path
        self.status_code = status_code


class DownloadFailedError(OperationFailedError):
    action = "Download"


class UploadFailedError(OperationFailedError):
    action = "Upload"


class DeletionFailedError(OperationFailedError):
    action = "Deletion"


class ListingFailedError(OperationFailedError):
    action = "Listing"


class RequestTimeoutError(OperationFailedError):
    """The remote call exceeded its operation timeout."""

    def __init__(self, path: str, operation: str, timeout: float):
        super().__init__(path, message=f"{operation} of '{path}' timed out after {timeout:g}s")
        self.operation = operation
        self.timeout = timeout


class TooManyRedirectsError(OperationFailedError):
    def __init__(self, path: str, max_redirects: int):
        super().__init__(
            path,
            status_code=307,
            message=f"gave up on '{path}' after {max_redirects} temporary redirects",
        )
        self.max_redirects = max_redirects
