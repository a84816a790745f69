"""Helpers shared by the serverless HTTP handlers."""

import asyncio
import json
from http.server import BaseHTTPRequestHandler
from typing import Any, Awaitable, Optional, TypeVar
from urllib.parse import parse_qs, urlparse

from agent_panel.utils.errors import AgentPanelError, ValidationError
from agent_panel.utils.logging_config import LoggingConfig

T = TypeVar("T")


def run_async(coro: Awaitable[T]) -> T:
    """Run a coroutine on the handler's event loop."""
    try:
        loop = asyncio.get_event_loop()
    except RuntimeError:
        loop = asyncio.new_event_loop()
        asyncio.set_event_loop(loop)
    if loop.is_closed():
        loop = asyncio.new_event_loop()
        asyncio.set_event_loop(loop)
    return loop.run_until_complete(coro)


def read_json_body(request: BaseHTTPRequestHandler) -> dict[str, Any]:
    content_length = int(request.headers.get('Content-Length', 0) or 0)
    raw_body = request.rfile.read(content_length).decode('utf-8') if content_length > 0 else ""
    if not raw_body:
        return {}
    try:
        body = json.loads(raw_body)
    except json.JSONDecodeError:
        raise ValidationError("Request body must be valid JSON")
    if not isinstance(body, dict):
        raise ValidationError("Request body must be a JSON object")
    return body


def query_params(request: BaseHTTPRequestHandler) -> dict[str, str]:
    parsed = parse_qs(urlparse(request.path or "").query)
    return {key: values[0] for key, values in parsed.items() if values}


def correlation_id_from(request: BaseHTTPRequestHandler) -> Optional[str]:
    return request.headers.get(LoggingConfig.LOG_CORRELATION_ID_HEADER) or None


def send_json(request: BaseHTTPRequestHandler, status: int, payload: dict[str, Any]) -> None:
    request.send_response(status)
    request.send_header('Content-Type', 'application/json')
    request.end_headers()
    request.wfile.write(json.dumps(payload, default=str).encode('utf-8'))


def send_error(request: BaseHTTPRequestHandler, error: Exception, **extra: Any) -> None:
    """Typed errors keep their status and message; anything else is a 500."""
    if isinstance(error, AgentPanelError):
        send_json(request, error.status_code, {"error": error.user_message, **extra})
    else:
        send_json(request, 500, {"error": "internal server error", **extra})


def bearer_token(request: BaseHTTPRequestHandler) -> Optional[str]:
    """Token from an ``Authorization: Bearer <token>`` header, if present."""
    scheme, _, token = (request.headers.get('Authorization') or "").partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()
