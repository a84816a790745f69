"""Health check endpoint."""

from http.server import BaseHTTPRequestHandler

from agent_panel.utils.http import send_json
from agent_panel.utils.logging_config import SERVICE_NAME


class handler(BaseHTTPRequestHandler):
    """Health check handler for Vercel serverless function."""

    def do_GET(self):
        send_json(self, 200, {"status": "ok", "service": SERVICE_NAME})

    def do_POST(self):
        """Same as GET for health check."""
        self.do_GET()
