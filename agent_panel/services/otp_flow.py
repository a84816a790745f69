"""Shared state handling for the two-step phone-OTP wizards."""

from contextlib import contextmanager
from typing import Iterable, Optional

from agent_panel.models.registration import FlowState
from agent_panel.services.agent_store import AgentStore
from agent_panel.services.identity_gateway import IdentityGateway
from agent_panel.services.session_context import SessionContext
from agent_panel.utils.errors import AgentPanelError, ChallengeExpiredError, TransportError, ValidationError
from agent_panel.utils.logging import get_structured_logger

logger = get_structured_logger(__name__)


class OtpFlow:
    """
    Base for the registration and login wizards.

    A failed step leaves the flow in the state it was in before the step,
    except that an expired challenge always sends it back to collecting
    details. The failure message is kept in ``last_error`` and the typed
    error is re-raised; nothing is retried automatically.
    """

    kind = "otp"

    def __init__(self, gateway: Optional[IdentityGateway] = None, store: Optional[AgentStore] = None,
                 session: Optional[SessionContext] = None):
        self.gateway = gateway or IdentityGateway()
        self.store = store or AgentStore()
        self.session = session
        self.state = FlowState.COLLECTING_DETAILS
        self.last_error: Optional[str] = None

    def _require_state(self, allowed: Iterable[FlowState]) -> None:
        if self.state in tuple(allowed):
            return
        if self.state == FlowState.COMPLETED:
            raise ValidationError("This step is already complete.")
        if self.state == FlowState.COLLECTING_DETAILS:
            raise ValidationError("Please request an OTP first.")
        raise ValidationError("Please enter the OTP sent to your phone.")

    @contextmanager
    def _step(self, operation: str, on_failure: Optional[FlowState] = None):
        """Surface failures as one message; optionally move to ``on_failure``."""
        self.last_error = None
        try:
            yield
        except ChallengeExpiredError as e:
            self.state = FlowState.COLLECTING_DETAILS
            self._record_failure(operation, e)
            raise
        except AgentPanelError as e:
            if on_failure is not None:
                self.state = on_failure
            self._record_failure(operation, e)
            raise
        except Exception as e:
            logger.exception(f"Unexpected error in {self.kind} {operation}", operation=operation)
            error = TransportError()
            if on_failure is not None:
                self.state = on_failure
            self._record_failure(operation, error)
            raise error from e

    def _record_failure(self, operation: str, error: AgentPanelError) -> None:
        self.last_error = error.user_message
        logger.warning(
            f"{self.kind} {operation} failed",
            operation=operation,
            error_type=type(error).__name__,
            error=error.user_message,
            state=self.state.value,
        )
