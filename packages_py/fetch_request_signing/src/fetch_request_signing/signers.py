"""
HMAC request signers for Azure storage (SharedKey, SharedKeyLite) and S3

All signers follow the same recipe:

    Date          <- cached timestamp
    StringToSign  =  METHOD \\n fixed headers \\n canonical headers + resource
    Authorization <- "<scheme> <identity>:<base64 hmac>"

Subclasses choose the fixed header list, the header prefix, the HMAC digest
and how the resource is canonicalized.
"""

import base64
import binascii
import hashlib
import hmac
import logging
from abc import abstractmethod
from typing import Optional, Sequence

import httpx

from .timestamp import CachedTimestamp, http_date
from .types import RequestFilter

logger = logging.getLogger(__name__)


def encoded_path(url: httpx.URL) -> str:
    """Percent-encoded path of ``url`` without its query."""
    path = url.raw_path.split(b"?", 1)[0].decode("ascii")
    return path or "/"


class HmacRequestSigner(RequestFilter):
    """Template for header based HMAC signatures"""

    auth_scheme: str = ""
    header_prefix: str = ""
    signed_headers: Sequence[str] = ("content-md5", "content-type", "date")
    digestmod = hashlib.sha256

    def __init__(
        self,
        identity: str,
        secret_key: str,
        timestamp: Optional[CachedTimestamp] = None,
    ) -> None:
        if not identity:
            raise ValueError(f"{type(self).__name__} requires an identity")
        if not secret_key:
            raise ValueError(f"{type(self).__name__} requires a secret key")
        self._identity = identity
        self._key = self.decode_key(secret_key)
        self._timestamp = timestamp or CachedTimestamp(http_date)

    @property
    def identity(self) -> str:
        return self._identity

    @property
    def timestamp(self) -> CachedTimestamp:
        return self._timestamp

    def decode_key(self, secret_key: str) -> bytes:
        return secret_key.encode("utf-8")

    def filter(self, request: httpx.Request) -> None:
        request.headers["Date"] = self._timestamp.get()
        string_to_sign = self.create_string_to_sign(request)
        logger.debug(f"string to sign for {request.method} {request.url}: {string_to_sign!r}")
        signature = self.sign(string_to_sign)
        request.headers["Authorization"] = f"{self.auth_scheme} {self._identity}:{signature}"

    def sign(self, string_to_sign: str) -> str:
        digest = hmac.new(self._key, string_to_sign.encode("utf-8"), self.digestmod).digest()
        return base64.b64encode(digest).decode("ascii")

    def create_string_to_sign(self, request: httpx.Request) -> str:
        lines = [request.method.upper()]
        lines.extend(self.header_value(request, name) for name in self.signed_headers)
        return (
            "\n".join(lines)
            + "\n"
            + self.canonicalized_headers(request)
            + self.canonicalized_resource(request)
        )

    def header_value(self, request: httpx.Request, name: str) -> str:
        return ",".join(value.strip() for value in request.headers.get_list(name))

    def canonicalized_headers(self, request: httpx.Request) -> str:
        """Prefixed headers, lower-cased and sorted, one ``name:value`` per line."""
        if not self.header_prefix:
            return ""
        names = sorted({
            name.lower()
            for name in request.headers.keys()
            if name.lower().startswith(self.header_prefix)
        })
        return "".join(f"{name}:{self.header_value(request, name)}\n" for name in names)

    @abstractmethod
    def canonicalized_resource(self, request: httpx.Request) -> str:
        ...

    def __repr__(self) -> str:
        return f"{type(self).__name__}(identity={self._identity!r})"


class _AzureSigner(HmacRequestSigner):
    header_prefix = "x-ms-"
    digestmod = hashlib.sha256

    def decode_key(self, secret_key: str) -> bytes:
        try:
            return base64.b64decode(secret_key, validate=True)
        except binascii.Error as e:
            raise ValueError("Azure storage keys must be base64 encoded") from e


class SharedKeyLiteAuthentication(_AzureSigner):
    """Azure storage ``SharedKeyLite`` scheme"""

    auth_scheme = "SharedKeyLite"

    def canonicalized_resource(self, request: httpx.Request) -> str:
        resource = f"/{self._identity}{encoded_path(request.url)}"
        comp = request.url.params.get("comp")
        if comp is not None:
            resource += f"?comp={comp}"
        return resource


class SharedKeyAuthentication(_AzureSigner):
    """Azure storage ``SharedKey`` scheme, signing the full header list"""

    auth_scheme = "SharedKey"
    signed_headers = (
        "content-encoding",
        "content-language",
        "content-length",
        "content-md5",
        "content-type",
        "date",
        "if-modified-since",
        "if-match",
        "if-none-match",
        "if-unmodified-since",
        "range",
    )

    def header_value(self, request: httpx.Request, name: str) -> str:
        value = super().header_value(request, name)
        if name == "content-length" and value == "0":
            return ""
        return value

    def canonicalized_resource(self, request: httpx.Request) -> str:
        resource = f"/{self._identity}{encoded_path(request.url)}"
        grouped: dict = {}
        for name, value in request.url.params.multi_items():
            grouped.setdefault(name.lower(), []).append(value)
        for name in sorted(grouped):
            resource += f"\n{name}:{','.join(sorted(grouped[name]))}"
        return resource


# Query parameters that are part of the signed S3 resource
S3_SUB_RESOURCES = frozenset({
    "acl", "cors", "delete", "lifecycle", "location", "logging",
    "notification", "partNumber", "policy", "requestPayment", "tagging",
    "torrent", "uploadId", "uploads", "versionId", "versioning", "versions",
    "website",
})


class AwsRequestAuthorizeSignature(HmacRequestSigner):
    """
    S3 REST ``AWS`` signature (HMAC-SHA1).

    Virtual-host style requests (``bucket.s3.amazonaws.com``) sign the bucket
    as the first path segment of the resource.
    """

    auth_scheme = "AWS"
    header_prefix = "x-amz-"
    digestmod = hashlib.sha1

    def __init__(
        self,
        identity: str,
        secret_key: str,
        timestamp: Optional[CachedTimestamp] = None,
        service_host: str = "s3.amazonaws.com",
    ) -> None:
        super().__init__(identity, secret_key, timestamp)
        self._service_host = service_host.lower()

    def header_value(self, request: httpx.Request, name: str) -> str:
        # x-amz-date is signed with the prefixed headers instead
        if name == "date" and "x-amz-date" in request.headers:
            return ""
        return super().header_value(request, name)

    def bucket_for(self, host: str) -> Optional[str]:
        host = host.lower()
        suffix = f".{self._service_host}"
        if host.endswith(suffix):
            return host[: -len(suffix)]
        return None

    def canonicalized_resource(self, request: httpx.Request) -> str:
        bucket = self.bucket_for(request.url.host)
        resource = f"/{bucket}" if bucket else ""
        resource += encoded_path(request.url)
        sub_resources = sorted(
            (name, value)
            for name, value in request.url.params.multi_items()
            if name in S3_SUB_RESOURCES
        )
        if sub_resources:
            resource += "?" + "&".join(
                f"{name}={value}" if value else name for name, value in sub_resources
            )
        return resource
