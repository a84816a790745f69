"""Dashboard statistics endpoint."""

from http.server import BaseHTTPRequestHandler

from agent_panel.services.dashboard_stats import build_dashboard
from agent_panel.services.session_context import SessionContext
from agent_panel.utils.errors import AgentPanelError
from agent_panel.utils.http import bearer_token, correlation_id_from, run_async, send_error, send_json
from agent_panel.utils.logging import correlation_context, get_structured_logger
from agent_panel.utils.logging_config import LoggingConfig

LoggingConfig.setup_logging()
logger = get_structured_logger(__name__)


async def dashboard_for(access_token) -> dict:
    session = await SessionContext.from_access_token(access_token)
    record = await session.require_profile()
    return build_dashboard(record).model_dump(mode="json")


class handler(BaseHTTPRequestHandler):

    def do_GET(self):
        with correlation_context(correlation_id_from(self)):
            try:
                send_json(self, 200, run_async(dashboard_for(bearer_token(self))))
            except AgentPanelError as e:
                send_error(self, e)
            except Exception as e:
                logger.exception("Dashboard request failed", error=str(e))
                send_error(self, e)
