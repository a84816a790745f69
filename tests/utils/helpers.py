"""Test helper functions."""

import base64
import json
from io import BytesIO
from typing import Any, Dict, Optional
from unittest.mock import Mock

from agent_panel.models.registration import UploadedFile
from agent_panel.utils.errors import SessionRequiredError


def build_handler(handler_cls, method: str = "GET", path: str = "/", body: Optional[Dict[str, Any]] = None,
                  headers: Optional[Dict[str, str]] = None):
    """Create a serverless handler instance without a socket."""
    raw = json.dumps(body).encode("utf-8") if body is not None else b""
    h = handler_cls.__new__(handler_cls)
    h.command = method
    h.path = path
    h.headers = {"Content-Length": str(len(raw)), "Content-Type": "application/json", **(headers or {})}
    h.rfile = BytesIO(raw)
    h.wfile = BytesIO()
    h.send_response = Mock()
    h.send_header = Mock()
    h.end_headers = Mock()
    return h


def response_status(h) -> int:
    return h.send_response.call_args[0][0]


def response_json(h) -> Dict[str, Any]:
    h.wfile.seek(0)
    return json.loads(h.wfile.read().decode("utf-8"))


def file_payload(file: UploadedFile) -> Dict[str, str]:
    return {
        "filename": file.filename,
        "content_type": file.content_type,
        "data": base64.b64encode(file.data).decode("ascii"),
    }


def configure_supabase_patch(mock_client_class, client):
    """Make a patched SupabaseClient class yield `client` from `async with`."""
    mock_client_class.return_value.__aenter__.return_value = client
    mock_client_class.return_value.__aexit__.return_value = False
    return mock_client_class


def resolve_token(token, *identities):
    """Bearer token lookup over known identities, the way the gateway answers it."""
    for identity in identities:
        if token and token == identity.access_token:
            return identity
    raise SessionRequiredError("Your session has expired. Please log in again.")


def bearer(identity) -> Dict[str, str]:
    return {"Authorization": f"Bearer {identity.access_token}"}
