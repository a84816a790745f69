"""Registration wizard: details and documents, then OTP confirmation."""

from datetime import date
from typing import Optional

from agent_panel.models.address import PostalAddress
from agent_panel.models.agent import AgentRecord, AgentStatus
from agent_panel.models.registration import (
    DocumentCategory,
    FlowState,
    PendingChallenge,
    RegistrationDetails,
    RegistrationDocuments,
    VerifiedIdentity,
)
from agent_panel.services.agent_store import AgentStore, utc_now_iso
from agent_panel.services.document_storage import DocumentStorage
from agent_panel.services.identity_gateway import IdentityGateway
from agent_panel.services.otp_flow import OtpFlow
from agent_panel.services.postal_lookup import INVALID_PINCODE_MESSAGE, PostalLookupClient
from agent_panel.services.session_context import SessionContext
from agent_panel.utils.errors import DuplicateError, TransportError, ValidationError
from agent_panel.utils.logging import get_structured_logger, mask_phone, mask_user_id
from agent_panel.utils.validators import (
    normalize_phone_number,
    validate_email,
    validate_experience,
    validate_mobile,
    validate_name,
    validate_otp,
)

logger = get_structured_logger(__name__)

# (form field, storage category, record column, label)
DOCUMENT_SLOTS = (
    ("display_picture", DocumentCategory.DISPLAY_PICTURE, "display_picture_url", "Display picture"),
    ("aadhar_front", DocumentCategory.AADHAAR, "aadhar_front_url", "Aadhaar front"),
    ("aadhar_back", DocumentCategory.AADHAAR, "aadhar_back_url", "Aadhaar back"),
)


def validate_registration(details: RegistrationDetails, documents: RegistrationDocuments,
                          storage: DocumentStorage, today: Optional[date] = None) -> int:
    """
    Check every registration rule, raising the first failure.

    Runs before any network call. Returns the parsed years of experience.
    """
    validate_name(details.name)
    validate_mobile(details.phone_number)
    validate_email(details.email)
    if documents.display_picture is None:
        raise ValidationError("Please upload your display picture")
    if documents.aadhar_front is None or documents.aadhar_back is None:
        raise ValidationError("Please upload both sides of your Aadhaar card")
    for field, _, _, label in DOCUMENT_SLOTS:
        storage.validate(getattr(documents, field), label=f"{label} image")
    if not details.pincode or not details.address_line1.strip():
        raise ValidationError("Please enter your complete address")
    if details.dob is None:
        raise ValidationError("Please enter your date of birth")
    return validate_experience(details.experience, details.dob, today)


class RegistrationContext:
    """Flow-local state held between the two wizard steps."""

    def __init__(self):
        self.details: Optional[RegistrationDetails] = None
        self.documents: Optional[RegistrationDocuments] = None
        self.experience: Optional[int] = None
        self.challenge: Optional[PendingChallenge] = None
        self.address: Optional[PostalAddress] = None

    def clear(self) -> None:
        self.details = None
        self.documents = None
        self.experience = None
        self.challenge = None
        self.address = None


class RegistrationFlow(OtpFlow):
    """Creates an agent record once the phone number is confirmed."""

    kind = "registration"

    def __init__(self, gateway: Optional[IdentityGateway] = None, store: Optional[AgentStore] = None,
                 storage: Optional[DocumentStorage] = None, postal: Optional[PostalLookupClient] = None,
                 session: Optional[SessionContext] = None):
        super().__init__(gateway=gateway, store=store, session=session)
        self.storage = storage or DocumentStorage()
        self.postal = postal or PostalLookupClient()
        self.context = RegistrationContext()
        self.identity: Optional[VerifiedIdentity] = None
        self.record: Optional[AgentRecord] = None

    async def _lookup_address(self, pincode: str) -> PostalAddress:
        try:
            return await self.postal.lookup(pincode)
        except (ValidationError, TransportError):
            raise ValidationError(INVALID_PINCODE_MESSAGE)

    async def resolve_pincode(self, pincode: str) -> PostalAddress:
        """Resolve the pincode being entered and fill region/district/state into the held details."""
        with self._step("pincode lookup"):
            address = await self._lookup_address(pincode)
            self.context.address = address
            if self.context.details is not None:
                self.context.details = self.context.details.model_copy(
                    update={"pincode": address.pincode, **address.derived_fields()})
            return address

    async def submit_details(self, details: RegistrationDetails, documents: RegistrationDocuments,
                             today: Optional[date] = None) -> PendingChallenge:
        """Validate, pre-check uniqueness and send the OTP."""
        with self._step("submit details"):
            self._require_state((FlowState.COLLECTING_DETAILS, FlowState.AWAITING_CODE))
            experience = validate_registration(details, documents, self.storage, today)

            # Region, district and state always come from the resolved pincode
            address = self.context.address
            if address is None or address.pincode != details.pincode:
                address = await self._lookup_address(details.pincode)
            details = details.model_copy(update=address.derived_fields())

            phone_number = normalize_phone_number(details.phone_number)
            if await self.store.find_by_phone(phone_number) is not None:
                raise DuplicateError("This phone number is already registered. Please use a different number.")
            if await self.store.find_by_email(details.email) is not None:
                raise DuplicateError("This email is already registered. Please use a different email.")

            challenge = await self.gateway.request_challenge(details.phone_number)

            self.context.clear()
            self.context.details = details
            self.context.documents = documents
            self.context.experience = experience
            self.context.challenge = challenge
            self.context.address = address
            self.state = FlowState.AWAITING_CODE
            logger.info("Registration awaiting OTP", phone=mask_phone(phone_number))
            return challenge

    async def submit_code(self, code: str) -> AgentRecord:
        """Confirm the OTP, store the images and create the agent record."""
        with self._step("verify code"):
            self._require_state((FlowState.AWAITING_CODE,))
            validate_otp(code)
            identity = await self.gateway.confirm_challenge(self.context.challenge, code)

        with self._step("create agent", on_failure=FlowState.COLLECTING_DETAILS):
            fields = await self._build_record_fields(identity)
            record = await self.store.create(identity.user_id, fields)

        self.identity = identity
        self.record = record
        self.state = FlowState.COMPLETED
        self.context.clear()
        logger.info("Agent registered", user_id=mask_user_id(identity.user_id))
        if self.session is not None:
            self.session.establish(identity, record)
        return record

    async def _build_record_fields(self, identity: VerifiedIdentity) -> dict:
        details = self.context.details
        documents = self.context.documents

        # Any failed upload aborts; files already stored by this attempt stay.
        locators = {}
        for field, category, column, _ in DOCUMENT_SLOTS:
            locators[column] = await self.storage.upload(identity.user_id, category, getattr(documents, field))

        fields = details.model_dump(mode="json", exclude={"phone_number", "experience"})
        fields.update(locators)
        fields.update({
            "phone_number": identity.phone_number,
            "experience": self.context.experience,
            "created_at": utc_now_iso(),
            "status": AgentStatus.ACTIVE.value,
        })
        return fields

    def abandon(self) -> None:
        """Drop everything held for this attempt; nothing was persisted."""
        self.context.clear()
        self.state = FlowState.COLLECTING_DETAILS
