"""Agent record store - the agents table in Supabase."""

from datetime import datetime, timezone
from typing import Any, Optional

from agent_panel.models.agent import AgentRecord
from agent_panel.services.supabase_client import SupabaseClient
from agent_panel.utils.config import AppConfig
from agent_panel.utils.errors import DuplicateError, NotFoundError, SupabaseError
from agent_panel.utils.logging import get_structured_logger, log_timing, mask_user_id

logger = get_structured_logger(__name__)

# Postgres unique_violation
_UNIQUE_VIOLATION = "23505"


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _is_duplicate_key_error(error: Exception) -> bool:
    return getattr(error, "code", None) == _UNIQUE_VIOLATION or "duplicate key" in str(error).lower()


class AgentStore:
    """Reads and writes agent records keyed by identity token."""

    def __init__(self, table: Optional[str] = None):
        self.table = table or AppConfig.AGENTS_TABLE

    async def _find_one(self, column: str, value: str) -> Optional[AgentRecord]:
        async with SupabaseClient() as client:
            try:
                result = client.table(self.table).select("*").eq(column, value).limit(1).execute()
            except Exception as e:
                raise SupabaseError(f"Failed to look up agent by {column}: {e}")
        return AgentRecord(**result.data[0]) if result.data else None

    async def find_by_phone(self, phone_number: str) -> Optional[AgentRecord]:
        """Uniqueness pre-check by normalized phone number."""
        return await self._find_one("phone_number", phone_number)

    async def find_by_email(self, email: str) -> Optional[AgentRecord]:
        """Uniqueness pre-check by email."""
        return await self._find_one("email", email)

    async def create(self, identity_token: str, fields: dict[str, Any]) -> AgentRecord:
        """
        Insert a new agent row.

        The uniqueness pre-check and this insert are not atomic; a unique
        violation reported by the database is surfaced as DuplicateError.
        """
        row = {**fields, "user_id": identity_token}
        async with SupabaseClient() as client:
            try:
                with log_timing("agents.insert", logger=logger, user_id=mask_user_id(identity_token)):
                    result = client.table(self.table).insert(row).execute()
            except Exception as e:
                if _is_duplicate_key_error(e):
                    raise DuplicateError("This phone number or email is already registered.")
                raise SupabaseError(f"Failed to create agent: {e}")

        if not result.data:
            raise SupabaseError("Failed to create agent: no data returned")
        logger.info("Agent record created", user_id=mask_user_id(identity_token))
        return AgentRecord(**result.data[0])

    async def get(self, identity_token: str) -> AgentRecord:
        """Full record for an identity token."""
        record = await self._find_one("user_id", identity_token)
        if record is None:
            raise NotFoundError("User profile not found")
        return record

    async def update(self, identity_token: str, partial_fields: dict[str, Any]) -> AgentRecord:
        """Merge fields into the stored record (last write wins)."""
        updates = {key: value for key, value in partial_fields.items() if key != "user_id"}
        updates["updated_at"] = utc_now_iso()

        async with SupabaseClient() as client:
            try:
                with log_timing("agents.update", logger=logger, user_id=mask_user_id(identity_token),
                                fields=sorted(updates)):
                    result = client.table(self.table).update(updates).eq("user_id", identity_token).execute()
            except Exception as e:
                if _is_duplicate_key_error(e):
                    raise DuplicateError("This email is already registered. Please use a different email.")
                raise SupabaseError(f"Failed to update agent: {e}")

        if not result.data:
            raise NotFoundError("User profile not found")
        return AgentRecord(**result.data[0])
