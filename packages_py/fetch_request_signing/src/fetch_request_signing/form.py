"""
AWS query API signature version 2, applied to the request's query string
"""

import base64
import hashlib
import hmac
import logging
from typing import Optional
from urllib.parse import quote

import httpx

from .signers import encoded_path
from .timestamp import CachedTimestamp, iso8601_timestamp
from .types import RequestFilter

logger = logging.getLogger(__name__)

SIGNATURE_METHOD = "HmacSHA256"
SIGNATURE_VERSION = "2"

# Parameters the signer owns; stale values are dropped before re-signing
_SIGNER_PARAMS = ("AWSAccessKeyId", "Signature", "SignatureMethod", "SignatureVersion", "Timestamp")


def aws_quote(value: str) -> str:
    """RFC 3986 percent-encoding as the query API expects it."""
    return quote(value, safe="-_.~")


class FormSigner(RequestFilter):
    """Adds ``AWSAccessKeyId``, ``Timestamp`` and ``Signature`` query parameters"""

    def __init__(
        self,
        identity: str,
        secret_key: str,
        timestamp: Optional[CachedTimestamp] = None,
    ) -> None:
        if not identity or not secret_key:
            raise ValueError("FormSigner requires identity and secret key")
        self._identity = identity
        self._key = secret_key.encode("utf-8")
        self._timestamp = timestamp or CachedTimestamp(iso8601_timestamp)

    def canonical_query(self, params: list) -> str:
        ordered = sorted(params, key=lambda item: (item[0].encode("utf-8"), item[1].encode("utf-8")))
        return "&".join(f"{aws_quote(name)}={aws_quote(value)}" for name, value in ordered)

    def create_string_to_sign(self, request: httpx.Request, canonical_query: str) -> str:
        host = request.url.netloc.decode("ascii").lower()
        return "\n".join([
            request.method.upper(),
            host,
            encoded_path(request.url),
            canonical_query,
        ])

    def sign(self, string_to_sign: str) -> str:
        digest = hmac.new(self._key, string_to_sign.encode("utf-8"), hashlib.sha256).digest()
        return base64.b64encode(digest).decode("ascii")

    def filter(self, request: httpx.Request) -> None:
        params = [
            (name, value)
            for name, value in request.url.params.multi_items()
            if name not in _SIGNER_PARAMS
        ]
        params.append(("AWSAccessKeyId", self._identity))
        params.append(("SignatureMethod", SIGNATURE_METHOD))
        params.append(("SignatureVersion", SIGNATURE_VERSION))
        if not any(name == "Expires" for name, _ in params):
            params.append(("Timestamp", self._timestamp.get()))

        query = self.canonical_query(params)
        string_to_sign = self.create_string_to_sign(request, query)
        logger.debug(f"string to sign for {request.method} {request.url.host}: {string_to_sign!r}")
        signature = self.sign(string_to_sign)
        query += f"&Signature={aws_quote(signature)}"
        request.url = request.url.copy_with(query=query.encode("ascii"))

    def __repr__(self) -> str:
        return f"FormSigner(identity={self._identity!r})"
