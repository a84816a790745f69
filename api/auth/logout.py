"""Logout endpoint."""

from http.server import BaseHTTPRequestHandler

from agent_panel.services.session_context import SessionContext
from agent_panel.utils.errors import AgentPanelError
from agent_panel.utils.http import bearer_token, correlation_id_from, run_async, send_error, send_json
from agent_panel.utils.logging import correlation_context, get_structured_logger
from agent_panel.utils.logging_config import LoggingConfig

LoggingConfig.setup_logging()
logger = get_structured_logger(__name__)


async def logout(access_token) -> None:
    session = await SessionContext.from_access_token(access_token)
    await session.logout()


class handler(BaseHTTPRequestHandler):

    def do_POST(self):
        with correlation_context(correlation_id_from(self)):
            try:
                run_async(logout(bearer_token(self)))
                send_json(self, 200, {"ok": True})
            except AgentPanelError as e:
                logger.error("Logout failed", error=e.user_message)
                send_error(self, e)
            except Exception as e:
                logger.exception("Logout failed", error=str(e))
                send_error(self, e)
