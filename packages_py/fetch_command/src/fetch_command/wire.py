"""
Wire logging of requests and responses as rich panels
"""

import json
from typing import Dict, Optional

import httpx
from rich.console import Console
from rich.panel import Panel
from rich.syntax import Syntax

SENSITIVE_HEADERS = {"authorization", "x-api-key", "x-amz-security-token", "cookie", "set-cookie"}


def mask_header_value(value: Optional[str], show_chars: int = 15) -> str:
    """Keep the scheme and a prefix of a credential, mask the rest."""
    if not value:
        return "<none>"
    if len(value) <= show_chars:
        return "*" * len(value)
    return value[:show_chars] + "***"


def mask_headers(headers: httpx.Headers) -> Dict[str, str]:
    """Copy of ``headers`` safe to print."""
    masked = {}
    for key, value in headers.items():
        if key.lower() in SENSITIVE_HEADERS:
            masked[key] = mask_header_value(value)
        else:
            masked[key] = value
    return masked


def _format_body(content: bytes, content_type: str, limit: int) -> Optional[Syntax]:
    if not content:
        return None
    try:
        text = content.decode("utf-8")
    except UnicodeDecodeError:
        return Syntax(f"<binary data: {len(content)} bytes>", "text")
    if "json" in content_type:
        try:
            text = json.dumps(json.loads(text), indent=2, ensure_ascii=False)
        except ValueError:
            pass
        lexer = "json"
    elif "xml" in content_type:
        lexer = "xml"
    else:
        lexer = "text"
    if len(text) > limit:
        text = text[:limit] + f"\n... ({len(content)} bytes)"
    return Syntax(text, lexer, theme="monokai")


class WireLogger:
    """Prints each request and response that crosses a pooled connection"""

    def __init__(
        self,
        console: Optional[Console] = None,
        show_bodies: bool = True,
        body_limit: int = 2000,
    ) -> None:
        self._console = console or Console(stderr=True)
        self._show_bodies = show_bodies
        self._body_limit = body_limit

    def log_request(self, request: httpx.Request) -> None:
        self._console.print(
            Panel(
                f"[bold cyan]{request.method}[/bold cyan] {request.url}",
                title="[bold blue]Request[/bold blue]",
            )
        )
        self._console.print("[bold]Headers:[/bold]", mask_headers(request.headers))
        if self._show_bodies:
            try:
                content = request.content
            except httpx.RequestNotRead:
                return
            body = _format_body(content, request.headers.get("content-type", ""), self._body_limit)
            if body is not None:
                self._console.print(Panel(body, title="[bold]Request Body[/bold]"))

    def log_response(self, response: httpx.Response) -> None:
        color = "green" if response.status_code < 300 else "yellow" if response.status_code < 500 else "red"
        self._console.print(
            Panel(
                f"[bold {color}]{response.status_code} {response.reason_phrase}[/bold {color}]",
                title="[bold blue]Response[/bold blue]",
            )
        )
        self._console.print("[bold]Headers:[/bold]", mask_headers(response.headers))
        if self._show_bodies:
            body = _format_body(
                response.content, response.headers.get("content-type", ""), self._body_limit
            )
            if body is not None:
                self._console.print(Panel(body, title="[bold]Response Body[/bold]"))
