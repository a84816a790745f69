"""Login wizard: phone number, then OTP."""

from typing import Optional

from agent_panel.models.agent import AgentRecord
from agent_panel.models.registration import FlowState, PendingChallenge, VerifiedIdentity
from agent_panel.services.agent_store import utc_now_iso
from agent_panel.services.otp_flow import OtpFlow
from agent_panel.utils.errors import NotFoundError
from agent_panel.utils.logging import get_structured_logger, mask_phone, mask_user_id
from agent_panel.utils.validators import normalize_phone_number, validate_mobile, validate_otp

logger = get_structured_logger(__name__)


class LoginFlow(OtpFlow):
    """Authenticates an already registered agent."""

    kind = "login"

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.challenge: Optional[PendingChallenge] = None
        self.identity: Optional[VerifiedIdentity] = None
        self.record: Optional[AgentRecord] = None

    async def submit_phone(self, phone_number: str) -> PendingChallenge:
        with self._step("submit phone"):
            self._require_state((FlowState.COLLECTING_DETAILS, FlowState.AWAITING_CODE))
            validate_mobile(phone_number)

            normalized = normalize_phone_number(phone_number)
            if await self.store.find_by_phone(normalized) is None:
                raise NotFoundError("No account found with this phone number. Please register first.")

            self.challenge = await self.gateway.request_challenge(phone_number)
            self.state = FlowState.AWAITING_CODE
            logger.info("Login awaiting OTP", phone=mask_phone(normalized))
            return self.challenge

    async def submit_code(self, code: str) -> AgentRecord:
        with self._step("verify code"):
            self._require_state((FlowState.AWAITING_CODE,))
            validate_otp(code)
            identity = await self.gateway.confirm_challenge(self.challenge, code)

        # The challenge is used up; any later failure needs a fresh OTP
        with self._step("load profile", on_failure=FlowState.COLLECTING_DETAILS):
            await self.store.get(identity.user_id)
            record = await self.store.update(identity.user_id, {"last_login_at": utc_now_iso()})

        self.identity = identity
        self.record = record
        self.challenge = None
        self.state = FlowState.COMPLETED
        logger.info("Agent logged in", user_id=mask_user_id(identity.user_id))
        if self.session is not None:
            self.session.establish(identity, record)
        return record
