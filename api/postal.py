"""Pincode lookup endpoint used while filling in the address."""

from http.server import BaseHTTPRequestHandler

from agent_panel.services.postal_lookup import PostalLookupClient
from agent_panel.utils.errors import AgentPanelError
from agent_panel.utils.http import correlation_id_from, query_params, run_async, send_error, send_json
from agent_panel.utils.logging import correlation_context, get_structured_logger
from agent_panel.utils.logging_config import LoggingConfig
from agent_panel.utils.validators import sanitize_pincode

LoggingConfig.setup_logging()
logger = get_structured_logger(__name__)


class handler(BaseHTTPRequestHandler):

    def do_GET(self):
        with correlation_context(correlation_id_from(self)):
            try:
                pincode = sanitize_pincode(query_params(self).get("pincode", ""))
                address = run_async(PostalLookupClient().lookup(pincode))
                send_json(self, 200, address.model_dump())
            except AgentPanelError as e:
                send_error(self, e)
            except Exception as e:
                logger.exception("Pincode lookup failed", error=str(e))
                send_error(self, e)
