"""Tests for the agents table adapter."""

from unittest.mock import MagicMock, patch

import pytest

from agent_panel.services.agent_store import AgentStore
from agent_panel.utils.errors import DuplicateError, NotFoundError, SupabaseError
from tests.utils.factories import create_agent_row
from tests.utils.helpers import configure_supabase_patch


@pytest.mark.unit
@pytest.mark.asyncio
async def test_find_by_phone_returns_record(mock_supabase_client):
    row = create_agent_row(user_id="uid-1", phone_number="+919876543210")
    mock_supabase_client.query.execute.return_value = MagicMock(data=[row])

    with patch("agent_panel.services.agent_store.SupabaseClient") as mock_client_class:
        configure_supabase_patch(mock_client_class, mock_supabase_client)
        record = await AgentStore().find_by_phone("+919876543210")

    assert record.user_id == "uid-1"
    mock_supabase_client.table.assert_called_with("agents")
    mock_supabase_client.query.eq.assert_called_with("phone_number", "+919876543210")


@pytest.mark.unit
@pytest.mark.asyncio
async def test_find_by_email_returns_none_when_unclaimed(mock_supabase_client):
    with patch("agent_panel.services.agent_store.SupabaseClient") as mock_client_class:
        configure_supabase_patch(mock_client_class, mock_supabase_client)
        assert await AgentStore().find_by_email("new@example.com") is None

    mock_supabase_client.query.eq.assert_called_with("email", "new@example.com")


@pytest.mark.unit
@pytest.mark.asyncio
async def test_create_inserts_row_keyed_by_identity(mock_supabase_client):
    row = create_agent_row(user_id="uid-1")
    mock_supabase_client.query.execute.return_value = MagicMock(data=[row])

    with patch("agent_panel.services.agent_store.SupabaseClient") as mock_client_class:
        configure_supabase_patch(mock_client_class, mock_supabase_client)
        record = await AgentStore().create("uid-1", {"name": "Ravi Kumar", "email": row["email"]})

    inserted = mock_supabase_client.query.insert.call_args[0][0]
    assert inserted["user_id"] == "uid-1"
    assert inserted["name"] == "Ravi Kumar"
    assert record.user_id == "uid-1"


@pytest.mark.unit
@pytest.mark.asyncio
async def test_create_maps_unique_violation_to_duplicate(mock_supabase_client):
    error = Exception('duplicate key value violates unique constraint "agents_email_key"')
    mock_supabase_client.query.execute.side_effect = error

    with patch("agent_panel.services.agent_store.SupabaseClient") as mock_client_class:
        configure_supabase_patch(mock_client_class, mock_supabase_client)
        with pytest.raises(DuplicateError):
            await AgentStore().create("uid-1", {"name": "Ravi Kumar"})


@pytest.mark.unit
@pytest.mark.asyncio
async def test_create_other_failures_are_supabase_errors(mock_supabase_client):
    mock_supabase_client.query.execute.side_effect = Exception("connection reset")

    with patch("agent_panel.services.agent_store.SupabaseClient") as mock_client_class:
        configure_supabase_patch(mock_client_class, mock_supabase_client)
        with pytest.raises(SupabaseError):
            await AgentStore().create("uid-1", {"name": "Ravi Kumar"})


@pytest.mark.unit
@pytest.mark.asyncio
async def test_get_missing_record(mock_supabase_client):
    with patch("agent_panel.services.agent_store.SupabaseClient") as mock_client_class:
        configure_supabase_patch(mock_client_class, mock_supabase_client)
        with pytest.raises(NotFoundError, match="User profile not found"):
            await AgentStore().get("uid-missing")


@pytest.mark.unit
@pytest.mark.asyncio
async def test_update_merges_fields_and_stamps_updated_at(mock_supabase_client):
    row = create_agent_row(user_id="uid-1", last_login_at="2024-06-15T12:00:00+00:00")
    mock_supabase_client.query.execute.return_value = MagicMock(data=[row])

    with patch("agent_panel.services.agent_store.SupabaseClient") as mock_client_class:
        configure_supabase_patch(mock_client_class, mock_supabase_client)
        record = await AgentStore().update("uid-1", {"user_id": "other", "last_login_at": row["last_login_at"]})

    updates = mock_supabase_client.query.update.call_args[0][0]
    assert "user_id" not in updates
    assert updates["last_login_at"] == row["last_login_at"]
    assert "updated_at" in updates
    mock_supabase_client.query.eq.assert_called_with("user_id", "uid-1")
    assert record.last_login_at == row["last_login_at"]


@pytest.mark.unit
@pytest.mark.asyncio
async def test_update_without_matching_row(mock_supabase_client):
    with patch("agent_panel.services.agent_store.SupabaseClient") as mock_client_class:
        configure_supabase_patch(mock_client_class, mock_supabase_client)
        with pytest.raises(NotFoundError):
            await AgentStore().update("uid-missing", {"name": "X"})
