"""In-process registry of wizards waiting for their second step."""

import time
from typing import Optional, Union
from ulid import ULID

from agent_panel.services.login_flow import LoginFlow
from agent_panel.services.registration_flow import RegistrationFlow
from agent_panel.utils.config import AppConfig
from agent_panel.utils.errors import NotFoundError
from agent_panel.utils.logging import get_structured_logger

logger = get_structured_logger(__name__)

Flow = Union[RegistrationFlow, LoginFlow]


class FlowRegistry:
    """
    Maps flow ids to live wizard instances for the lifetime of the process.

    Abandoned flows are dropped lazily once older than the TTL; there is no
    background timer.
    """

    def __init__(self, ttl_seconds: Optional[int] = None):
        self.ttl_seconds = ttl_seconds or AppConfig.FLOW_TTL_SECONDS
        self._flows: dict[str, tuple[Flow, float]] = {}

    def __len__(self) -> int:
        return len(self._flows)

    def _prune(self) -> None:
        cutoff = time.monotonic() - self.ttl_seconds
        expired = [flow_id for flow_id, (_, touched) in self._flows.items() if touched < cutoff]
        for flow_id in expired:
            flow, _ = self._flows.pop(flow_id)
            if isinstance(flow, RegistrationFlow):
                flow.abandon()
        if expired:
            logger.info("Expired abandoned flows", count=len(expired))

    def open(self, flow: Flow) -> str:
        self._prune()
        flow_id = str(ULID())
        self._flows[flow_id] = (flow, time.monotonic())
        return flow_id

    def get(self, flow_id: Optional[str], kind: Optional[type] = None) -> Flow:
        self._prune()
        entry = self._flows.get(flow_id or "")
        if entry is None or (kind is not None and not isinstance(entry[0], kind)):
            raise NotFoundError("Your session has expired. Please start again.")
        flow = entry[0]
        self._flows[flow_id] = (flow, time.monotonic())
        return flow

    def discard(self, flow_id: str) -> None:
        self._flows.pop(flow_id, None)


_registry: Optional[FlowRegistry] = None


def get_flow_registry() -> FlowRegistry:
    global _registry
    if _registry is None:
        _registry = FlowRegistry()
    return _registry


def reset_flow_registry() -> None:
    global _registry
    _registry = None
