"""Supabase client wrapper with async context manager support."""

import os
from typing import Optional
from supabase import Client, ClientOptions, create_client
from agent_panel.utils.config import AppConfig
from agent_panel.utils.errors import SupabaseError
from agent_panel.utils.logging import get_structured_logger

logger = get_structured_logger(__name__)

# Shared client for table and storage calls; it never signs anybody in
_client: Optional[Client] = None


def create_supabase_client() -> Client:
    """Build a new client from the environment."""
    url = os.environ.get("SUPABASE_URL") or AppConfig.SUPABASE_URL
    key = AppConfig.supabase_key()

    if not url or not key:
        raise SupabaseError("SUPABASE_URL and SUPABASE_ANON_KEY (or SUPABASE_SERVICE_ROLE_KEY) must be set")

    # Sessions are handed to the caller as bearer tokens, never kept here
    options = ClientOptions(
        auto_refresh_token=False,
        persist_session=False,
    )
    return create_client(url, key, options)


def get_supabase_client() -> Client:
    """Get or create Supabase client singleton."""
    global _client

    if _client is None:
        _client = create_supabase_client()
        logger.info("Supabase client initialized", url=os.environ.get("SUPABASE_URL") or AppConfig.SUPABASE_URL)

    return _client


class SupabaseClient:
    """
    Async context manager for Supabase client.

    ``isolated=True`` yields a throwaway client, used for OTP sign-in so the
    resulting agent session stays off the shared client.
    """

    def __init__(self, isolated: bool = False):
        self.isolated = isolated
        self.client: Optional[Client] = None

    async def __aenter__(self) -> Client:
        self.client = create_supabase_client() if self.isolated else get_supabase_client()
        return self.client

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        if exc_type:
            logger.error(
                "Supabase operation error",
                error=str(exc_val),
                error_type=exc_type.__name__,
            )
        return False
