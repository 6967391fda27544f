"""
Parse provider error bodies (XML or JSON) into an ErrorPayload
"""

import json
import logging
import xml.etree.ElementTree as ElementTree
from typing import Any, Optional, Union

from .types import ErrorPayload

logger = logging.getLogger(__name__)


def _local_name(tag: str) -> str:
    return tag.rsplit("}", 1)[-1]


def _parse_xml(body: bytes) -> Optional[ErrorPayload]:
    root = ElementTree.fromstring(body)
    found = {}
    for element in root.iter():
        name = _local_name(element.tag)
        if name in ("Code", "Message", "RequestId", "RequestID") and name not in found:
            found[name] = (element.text or "").strip() or None
    if not found:
        return None
    return ErrorPayload(
        code=found.get("Code"),
        message=found.get("Message"),
        request_id=found.get("RequestId") or found.get("RequestID"),
    )


def _pick(data: dict, *names: str) -> Optional[str]:
    for name in names:
        value = data.get(name)
        if value is not None and not isinstance(value, (dict, list)):
            return str(value)
    return None


def _parse_json(body: str) -> Optional[ErrorPayload]:
    data: Any = json.loads(body)
    if not isinstance(data, dict):
        return None
    nested = data.get("error") or data.get("Error")
    if isinstance(nested, dict):
        data = nested
    code = _pick(data, "code", "Code", "errorCode")
    message = _pick(data, "message", "Message", "error", "detail")
    request_id = _pick(data, "requestId", "RequestId", "request_id")
    if code is None and message is None:
        return None
    return ErrorPayload(code=code, message=message, request_id=request_id)


def parse_error_payload(
    content_type: Optional[str],
    body: Union[bytes, str, None],
) -> Optional[ErrorPayload]:
    """
    Extract the provider error code and message from a response body.

    Handles ``<Error><Code/><Message/></Error>`` style XML (also nested in
    ``<Response><Errors>``) and JSON objects with ``code``/``message`` keys,
    optionally wrapped in an ``error`` object.

    Returns:
        The payload, or None when the body is empty or not understood
    """
    if not body:
        return None
    if isinstance(body, str):
        body = body.encode("utf-8")
    body = body.strip()
    text = body.decode("utf-8", errors="replace")
    content_type = (content_type or "").lower()

    try:
        if "json" in content_type or text.startswith("{"):
            return _parse_json(text)
        if "xml" in content_type or text.startswith("<"):
            return _parse_xml(body)
    except (ValueError, ElementTree.ParseError) as e:
        logger.debug(f"unparseable error body ({content_type or 'no content type'}): {e}")
    return None
