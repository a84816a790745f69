"""Custom assertion helpers."""

from typing import Any, Dict

from agent_panel.models.agent import PRIVATE_FIELDS


def assert_no_private_fields(payload: Dict[str, Any]) -> None:
    """Identity, status and Aadhaar locators never leave the server in views."""
    leaked = PRIVATE_FIELDS & set(payload)
    assert not leaked, f"private fields exposed: {sorted(leaked)}"


def assert_error_response(payload: Dict[str, Any], message_fragment: str) -> None:
    assert "error" in payload
    assert message_fragment.lower() in payload["error"].lower()
