"""Tests for the in-process flow registry."""

from unittest.mock import MagicMock, patch

import pytest

from agent_panel.services.flow_registry import FlowRegistry, get_flow_registry, reset_flow_registry
from agent_panel.services.login_flow import LoginFlow
from agent_panel.services.registration_flow import RegistrationFlow
from agent_panel.utils.errors import NotFoundError


@pytest.fixture
def registration_flow(mock_gateway, mock_store, mock_storage, mock_postal):
    return RegistrationFlow(gateway=mock_gateway, store=mock_store, storage=mock_storage, postal=mock_postal)


@pytest.mark.unit
class TestFlowRegistry:

    def test_open_and_get(self, registration_flow):
        registry = FlowRegistry(ttl_seconds=60)

        flow_id = registry.open(registration_flow)

        assert len(flow_id) == 26
        assert registry.get(flow_id) is registration_flow
        assert registry.get(flow_id, RegistrationFlow) is registration_flow
        assert len(registry) == 1

    def test_ids_are_unique(self, registration_flow, mock_gateway, mock_store):
        registry = FlowRegistry(ttl_seconds=60)
        first = registry.open(registration_flow)
        second = registry.open(LoginFlow(gateway=mock_gateway, store=mock_store))
        assert first != second

    def test_wrong_kind_is_not_found(self, registration_flow):
        registry = FlowRegistry(ttl_seconds=60)
        flow_id = registry.open(registration_flow)

        with pytest.raises(NotFoundError, match="start again"):
            registry.get(flow_id, LoginFlow)

    @pytest.mark.parametrize("flow_id", [None, "", "01HZZZZZZZZZZZZZZZZZZZZZZZ"])
    def test_unknown_id(self, flow_id):
        with pytest.raises(NotFoundError):
            FlowRegistry(ttl_seconds=60).get(flow_id)

    def test_discard(self, registration_flow):
        registry = FlowRegistry(ttl_seconds=60)
        flow_id = registry.open(registration_flow)

        registry.discard(flow_id)
        registry.discard(flow_id)

        assert len(registry) == 0

    def test_idle_flows_expire_and_are_abandoned(self, registration_flow):
        registry = FlowRegistry(ttl_seconds=60)
        registration_flow.abandon = MagicMock()

        with patch("agent_panel.services.flow_registry.time.monotonic", return_value=1000.0):
            flow_id = registry.open(registration_flow)
        with patch("agent_panel.services.flow_registry.time.monotonic", return_value=1061.0):
            with pytest.raises(NotFoundError):
                registry.get(flow_id)

        registration_flow.abandon.assert_called_once()
        assert len(registry) == 0

    def test_access_refreshes_idle_timer(self, registration_flow):
        registry = FlowRegistry(ttl_seconds=60)

        with patch("agent_panel.services.flow_registry.time.monotonic", return_value=1000.0):
            flow_id = registry.open(registration_flow)
        with patch("agent_panel.services.flow_registry.time.monotonic", return_value=1050.0):
            registry.get(flow_id)
        with patch("agent_panel.services.flow_registry.time.monotonic", return_value=1100.0):
            assert registry.get(flow_id) is registration_flow


@pytest.mark.unit
def test_process_wide_registry():
    registry = get_flow_registry()
    assert get_flow_registry() is registry
    reset_flow_registry()
    assert get_flow_registry() is not registry
