"""Shared pytest fixtures and configuration."""

import os
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from freezegun import freeze_time

# Set test environment variables before any application import
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("SUPABASE_URL", "https://test.supabase.co")
os.environ.setdefault("SUPABASE_ANON_KEY", "test-key")
os.environ.setdefault("LOG_FORMAT", "text")
os.environ.setdefault("OTP_EXPIRY_SECONDS", "300")

from agent_panel.models.agent import AgentRecord
from agent_panel.models.registration import (
    PendingChallenge,
    RegistrationDetails,
    RegistrationDocuments,
    VerifiedIdentity,
)
from agent_panel.services.agent_store import AgentStore
from agent_panel.services.document_storage import DocumentStorage
from agent_panel.services.flow_registry import reset_flow_registry
from agent_panel.services.identity_gateway import IdentityGateway
from agent_panel.services.postal_lookup import PostalLookupClient
from tests.utils.factories import create_agent_row, create_image_file, create_registration_form
from tests.utils.helpers import resolve_token


@pytest.fixture(autouse=True)
def reset_singletons():
    """The process-wide flow registry starts empty in every test."""
    reset_flow_registry()
    yield
    reset_flow_registry()


@pytest.fixture
def mock_supabase_client():
    """Mock Supabase client whose table query chain returns itself."""
    client = MagicMock()
    query = MagicMock()
    for method in ("select", "eq", "limit", "insert", "update"):
        getattr(query, method).return_value = query
    query.execute.return_value = MagicMock(data=[])
    client.table.return_value = query
    client.query = query
    return client


@pytest.fixture
def pending_challenge():
    now = datetime.now(timezone.utc)
    return PendingChallenge(
        handle="01HZY3NDEKTSV4RRFFQ69G5FAV",
        phone_number="+919876543210",
        issued_at=now,
        expires_at=now + timedelta(seconds=300),
    )


@pytest.fixture
def verified_identity():
    return VerifiedIdentity(user_id="uid-7f3a9c2e-1b4d", phone_number="+919876543210", access_token="jwt")


@pytest.fixture
def agent_record(verified_identity):
    return AgentRecord(**create_agent_row(user_id=verified_identity.user_id, phone_number="+919876543210"))


@pytest.fixture
def mock_gateway(pending_challenge, verified_identity):
    gateway = MagicMock(spec=IdentityGateway)
    gateway.request_challenge = AsyncMock(return_value=pending_challenge)
    gateway.confirm_challenge = AsyncMock(return_value=verified_identity)
    gateway.sign_out = AsyncMock(return_value=None)
    gateway.resolve_access_token = AsyncMock(side_effect=lambda token: resolve_token(token, verified_identity))
    gateway.watch_auth_state = MagicMock(return_value=MagicMock())
    return gateway


@pytest.fixture
def mock_store(agent_record):
    store = MagicMock(spec=AgentStore)
    store.find_by_phone = AsyncMock(return_value=None)
    store.find_by_email = AsyncMock(return_value=None)
    store.create = AsyncMock(return_value=agent_record)
    store.get = AsyncMock(return_value=agent_record)
    store.update = AsyncMock(return_value=agent_record)
    return store


@pytest.fixture
def mock_storage():
    storage = MagicMock(spec=DocumentStorage)
    storage.validate = MagicMock(side_effect=DocumentStorage(max_bytes=5 * 1024 * 1024).validate)
    storage.upload = AsyncMock(side_effect=lambda uid, category, file, timestamped=True:
                               f"https://test.supabase.co/storage/v1/object/public/agent-documents/"
                               f"{getattr(category, 'value', category)}/{uid}/{file.filename}")
    return storage


@pytest.fixture
def mock_postal():
    from agent_panel.models.address import PostalAddress

    postal = MagicMock(spec=PostalLookupClient)
    postal.lookup = AsyncMock(side_effect=lambda pincode: PostalAddress(
        pincode=pincode, region="Bangalore HQ", district="Bangalore", state="Karnataka",
    ))
    return postal


@pytest.fixture
def registration_details():
    return RegistrationDetails.from_form(create_registration_form())


@pytest.fixture
def registration_documents():
    return RegistrationDocuments(
        display_picture=create_image_file("me.jpg"),
        aadhar_front=create_image_file("front.png", content_type="image/png"),
        aadhar_back=create_image_file("back.png", content_type="image/png"),
    )


@pytest.fixture
def freeze_time_fixture():
    """Freeze the clock at a fixed date for age-dependent rules."""
    with freeze_time("2024-06-15 12:00:00") as frozen_time:
        yield frozen_time


@pytest.fixture
def patched_adapters(mock_gateway, mock_store, mock_storage, mock_postal):
    """Route every adapter the HTTP handlers construct to the mocks above."""
    with patch("agent_panel.services.otp_flow.IdentityGateway", return_value=mock_gateway), \
         patch("agent_panel.services.otp_flow.AgentStore", return_value=mock_store), \
         patch("agent_panel.services.session_context.IdentityGateway", return_value=mock_gateway), \
         patch("agent_panel.services.session_context.AgentStore", return_value=mock_store), \
         patch("agent_panel.services.registration_flow.DocumentStorage", return_value=mock_storage), \
         patch("agent_panel.services.registration_flow.PostalLookupClient", return_value=mock_postal), \
         patch("agent_panel.services.profile_editor.DocumentStorage", return_value=mock_storage), \
         patch("agent_panel.services.profile_editor.PostalLookupClient", return_value=mock_postal):
        yield mock_gateway
