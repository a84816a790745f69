"""Agent registration endpoint (two-step phone-OTP wizard)."""

from http.server import BaseHTTPRequestHandler

from agent_panel.models.registration import RegistrationDetails, RegistrationDocuments
from agent_panel.services.flow_registry import get_flow_registry
from agent_panel.services.registration_flow import RegistrationFlow
from agent_panel.utils.errors import AgentPanelError, ValidationError
from agent_panel.utils.http import (
    correlation_id_from,
    read_json_body,
    run_async,
    send_error,
    send_json,
)
from agent_panel.utils.logging import correlation_context, get_structured_logger
from agent_panel.utils.logging_config import LoggingConfig
from agent_panel.utils.validators import sanitize_pincode

LoggingConfig.setup_logging()
logger = get_structured_logger(__name__)


def start_registration(body: dict) -> tuple[int, dict]:
    """Validate details, pre-check uniqueness and send the OTP.

    Passing an existing ``flow_id`` re-requests a fresh OTP for that wizard.
    """
    registry = get_flow_registry()
    flow_id = body.get("flow_id")
    flow = registry.get(flow_id, RegistrationFlow) if flow_id else RegistrationFlow()

    try:
        details = RegistrationDetails.from_form(body.get("details") or {})
        documents = RegistrationDocuments.from_payload(body.get("documents"))
        challenge = run_async(flow.submit_details(details, documents))
    except AgentPanelError as e:
        return e.status_code, {"error": e.user_message, "state": flow.state.value, "flow_id": flow_id}

    if not flow_id:
        flow_id = registry.open(flow)
    return 200, {
        "flow_id": flow_id,
        "state": flow.state.value,
        "phone_number": challenge.phone_number,
        "expires_at": challenge.expires_at.isoformat(),
    }


def resolve_pincode(body: dict) -> tuple[int, dict]:
    """Resolve the address for a pincode; later details on this flow use it."""
    registry = get_flow_registry()
    flow_id = body.get("flow_id")
    flow = registry.get(flow_id, RegistrationFlow) if flow_id else RegistrationFlow()

    try:
        address = run_async(flow.resolve_pincode(sanitize_pincode(str(body.get("pincode") or ""))))
    except AgentPanelError as e:
        return e.status_code, {"error": e.user_message, "state": flow.state.value, "flow_id": flow_id}

    if not flow_id:
        flow_id = registry.open(flow)
    return 200, {"flow_id": flow_id, "state": flow.state.value, "address": address.model_dump()}


def verify_registration(body: dict) -> tuple[int, dict]:
    """Confirm the OTP and create the agent."""
    registry = get_flow_registry()
    flow_id = body.get("flow_id")
    flow = registry.get(flow_id, RegistrationFlow)

    try:
        record = run_async(flow.submit_code(str(body.get("code") or "")))
    except AgentPanelError as e:
        # The flow stays registered so the agent can retry the code or resubmit details
        return e.status_code, {"error": e.user_message, "state": flow.state.value, "flow_id": flow_id}

    registry.discard(flow_id)
    return 200, {
        "state": flow.state.value,
        "access_token": flow.identity.access_token,
        "agent": record.public_fields(),
    }


ACTIONS = {
    "pincode": resolve_pincode,
    "start": start_registration,
    "verify": verify_registration,
}


class handler(BaseHTTPRequestHandler):
    """Vercel serverless function handler for agent registration."""

    def do_POST(self):
        with correlation_context(correlation_id_from(self)):
            try:
                body = read_json_body(self)
                action = ACTIONS.get(body.get("action") or "")
                if action is None:
                    raise ValidationError("Unknown action")
                status, payload = action(body)
                send_json(self, status, payload)
            except AgentPanelError as e:
                send_error(self, e)
            except Exception as e:
                logger.exception("Registration request failed", error=str(e))
                send_error(self, e)
