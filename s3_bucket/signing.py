from __future__ import annotations
"""Request signing backed by botocore's SigV4 implementation."""
from typing import Mapping, Optional

from botocore.auth import S3SigV4Auth
from botocore.awsrequest import AWSRequest
from botocore.config import Config
from botocore.credentials import Credentials as BotoCredentials

from .models import Credentials

# HTTPS uploads go out as UNSIGNED-PAYLOAD so the body is never hashed on the event loop.
UNSIGNED_BODY_CONFIG = Config(s3={"payload_signing_enabled": False})


class RequestSigner:
    """Builds and signs one :class:`AWSRequest` per attempt."""

    def __init__(self, credentials: Credentials, region: str = "us-east-1"):
        self._auth = S3SigV4Auth(
            BotoCredentials(credentials.access_key, credentials.secret),
            "s3",
            region,
        )

    def sign(
        self,
        method: str,
        url: str,
        headers: Optional[Mapping[str, str]] = None,
        body: Optional[bytes] = None,
    ) -> AWSRequest:
        request = AWSRequest(method=method, url=url, headers=dict(headers or {}), data=body)
        if body and url.startswith("https"):
            request.context["client_config"] = UNSIGNED_BODY_CONFIG
        self._auth.add_auth(request)
        return request
