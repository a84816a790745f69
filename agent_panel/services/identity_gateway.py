"""Identity verification gateway - phone OTP through Supabase Auth."""

from datetime import datetime, timedelta, timezone
from typing import Callable, Optional
from supabase import AuthApiError
from ulid import ULID

from agent_panel.models.registration import PendingChallenge, VerifiedIdentity
from agent_panel.services.supabase_client import SupabaseClient, get_supabase_client
from agent_panel.utils.config import AppConfig
from agent_panel.utils.errors import (
    ChallengeExpiredError,
    SessionRequiredError,
    TransportError,
    VerificationError,
)
from agent_panel.utils.logging import get_structured_logger, log_timing, mask_phone, mask_user_id
from agent_panel.utils.validators import normalize_phone_number, subscriber_number, validate_otp

logger = get_structured_logger(__name__)


class IdentityGateway:
    """
    Issues and confirms phone verification challenges.

    Supabase sends the SMS and validates the code; this class only tracks the
    pending handle so that a used or expired challenge is rejected locally
    instead of being replayed against the backend.
    """

    def __init__(self, otp_expiry_seconds: Optional[int] = None, country_code: Optional[str] = None):
        self.otp_expiry_seconds = otp_expiry_seconds or AppConfig.OTP_EXPIRY_SECONDS
        self.country_code = country_code or AppConfig.DEFAULT_COUNTRY_CODE

    async def request_challenge(self, phone_number: str) -> PendingChallenge:
        """Send an OTP to the number and return the pending handle."""
        subscriber_number(phone_number, self.country_code)
        normalized = normalize_phone_number(phone_number, self.country_code)

        async with SupabaseClient(isolated=True) as client:
            try:
                with log_timing("auth.sign_in_with_otp", logger=logger, phone=mask_phone(normalized)):
                    client.auth.sign_in_with_otp({"phone": normalized})
            except AuthApiError as e:
                logger.warning("OTP request rejected", phone=mask_phone(normalized), error=str(e))
                raise TransportError(f"Could not send OTP: {e}")
            except Exception as e:
                raise TransportError(f"Could not send OTP: {e}")

        now = datetime.now(timezone.utc)
        challenge = PendingChallenge(
            handle=str(ULID()),
            phone_number=normalized,
            issued_at=now,
            expires_at=now + timedelta(seconds=self.otp_expiry_seconds),
        )
        logger.info("OTP challenge issued", phone=mask_phone(normalized), handle=challenge.handle)
        return challenge

    async def confirm_challenge(self, challenge: PendingChallenge, code: str) -> VerifiedIdentity:
        """Confirm the code against a pending challenge."""
        validate_otp(code)
        if challenge.is_stale():
            raise ChallengeExpiredError()

        async with SupabaseClient(isolated=True) as client:
            try:
                with log_timing("auth.verify_otp", logger=logger, handle=challenge.handle):
                    response = client.auth.verify_otp({
                        "phone": challenge.phone_number,
                        "token": code,
                        "type": "sms",
                    })
            except AuthApiError as e:
                logger.warning("OTP rejected", handle=challenge.handle, error=str(e))
                raise VerificationError()
            except Exception as e:
                raise TransportError(f"Could not verify OTP: {e}")

        user = getattr(response, "user", None)
        if user is None:
            raise VerificationError()

        challenge.consumed = True
        session = getattr(response, "session", None)
        identity = VerifiedIdentity(
            user_id=str(user.id),
            phone_number=normalize_phone_number(user.phone or challenge.phone_number, self.country_code),
            access_token=getattr(session, "access_token", None),
        )
        logger.info("OTP confirmed", user_id=mask_user_id(identity.user_id))
        return identity

    async def resolve_access_token(self, access_token: Optional[str]) -> VerifiedIdentity:
        """Identity behind a bearer token issued by ``confirm_challenge``."""
        if not access_token:
            raise SessionRequiredError()

        async with SupabaseClient() as client:
            try:
                response = client.auth.get_user(access_token)
            except AuthApiError as e:
                logger.warning("Access token rejected", error=str(e))
                raise SessionRequiredError("Your session has expired. Please log in again.")
            except Exception as e:
                raise TransportError(f"Could not check your session: {e}")

        user = getattr(response, "user", None)
        if user is None:
            raise SessionRequiredError("Your session has expired. Please log in again.")
        return VerifiedIdentity(
            user_id=str(user.id),
            phone_number=normalize_phone_number(user.phone, self.country_code) if user.phone else "",
            access_token=access_token,
        )

    async def sign_out(self, access_token: Optional[str] = None) -> None:
        """Revoke the session behind ``access_token``; without one there is nothing to revoke."""
        if not access_token:
            return
        async with SupabaseClient() as client:
            try:
                client.auth.admin.sign_out(access_token)
            except AuthApiError as e:
                # Expired or already revoked
                logger.warning("Sign-out rejected", error=str(e))
            except Exception as e:
                raise TransportError(f"Could not sign out: {e}")

    def watch_auth_state(self, callback: Callable[[str, object], None]) -> Callable[[], None]:
        """Register an auth-state listener; returns the unsubscribe callable."""
        subscription = get_supabase_client().auth.on_auth_state_change(callback)
        return subscription.unsubscribe
