"""Agent login endpoint (phone number, then OTP)."""

from http.server import BaseHTTPRequestHandler

from agent_panel.services.flow_registry import get_flow_registry
from agent_panel.services.login_flow import LoginFlow
from agent_panel.utils.errors import AgentPanelError, ValidationError
from agent_panel.utils.http import correlation_id_from, read_json_body, run_async, send_error, send_json
from agent_panel.utils.logging import correlation_context, get_structured_logger
from agent_panel.utils.logging_config import LoggingConfig

LoggingConfig.setup_logging()
logger = get_structured_logger(__name__)


def start_login(body: dict) -> tuple[int, dict]:
    registry = get_flow_registry()
    flow_id = body.get("flow_id")
    flow = registry.get(flow_id, LoginFlow) if flow_id else LoginFlow()

    try:
        challenge = run_async(flow.submit_phone(str(body.get("phone_number") or "")))
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


def verify_login(body: dict) -> tuple[int, dict]:
    registry = get_flow_registry()
    flow_id = body.get("flow_id")
    flow = registry.get(flow_id, LoginFlow)

    try:
        record = run_async(flow.submit_code(str(body.get("code") or "")))
    except AgentPanelError as e:
        return e.status_code, {"error": e.user_message, "state": flow.state.value, "flow_id": flow_id}

    registry.discard(flow_id)
    return 200, {
        "state": flow.state.value,
        "access_token": flow.identity.access_token,
        "agent": record.public_fields(),
    }


ACTIONS = {
    "start": start_login,
    "verify": verify_login,
}


class handler(BaseHTTPRequestHandler):
    """Vercel serverless function handler for agent login."""

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
                logger.exception("Login request failed", error=str(e))
                send_error(self, e)
