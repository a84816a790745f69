"""Profile view and editor for the logged-in agent."""

import secrets
import string
from datetime import date, datetime
from typing import Any, Optional

from agent_panel.models.agent import COUNTER_FIELDS, EDITABLE_FIELDS, AgentRecord
from agent_panel.models.registration import DocumentCategory, UploadedFile
from agent_panel.services.agent_store import AgentStore
from agent_panel.services.document_storage import DocumentStorage
from agent_panel.services.postal_lookup import PostalLookupClient
from agent_panel.utils.errors import ValidationError
from agent_panel.utils.logging import get_structured_logger, mask_user_id
from agent_panel.utils.validators import (
    PINCODE_LENGTH,
    calculate_age,
    parse_dob,
    parse_experience,
    sanitize_pincode,
    validate_email,
)

logger = get_structured_logger(__name__)

REFERENCE_CODE_ALPHABET = string.ascii_uppercase + string.ascii_lowercase + string.digits
REFERENCE_CODE_LENGTH = 8


def generate_reference_code() -> str:
    return "".join(secrets.choice(REFERENCE_CODE_ALPHABET) for _ in range(REFERENCE_CODE_LENGTH))


async def ensure_reference_code(record: AgentRecord, store: AgentStore) -> AgentRecord:
    """Assign and persist a reference code the first time a record has none."""
    if record.reference_code:
        return record
    code = generate_reference_code()
    updated = await store.update(record.user_id, {"reference_code": code})
    logger.info("Reference code assigned", user_id=mask_user_id(record.user_id))
    return updated


async def load_profile(identity_token: str, store: Optional[AgentStore] = None) -> AgentRecord:
    """Read an agent record, assigning its reference code on first read."""
    store = store or AgentStore()
    record = await store.get(identity_token)
    return await ensure_reference_code(record, store)


def format_date(value: Optional[str]) -> str:
    """Locale-neutral DD/MM/YYYY rendering of an ISO timestamp."""
    if not value:
        return "N/A"
    try:
        return datetime.fromisoformat(str(value).replace("Z", "+00:00")).strftime("%d/%m/%Y")
    except ValueError:
        return "Invalid Date"


class ProfileEditor:
    """
    Read mode by default; ``begin_edit`` binds a draft copy.

    ``save`` persists the whole draft and makes it canonical, ``cancel``
    drops it. Field rules mirror registration: no digits in the name,
    experience below age, pincode capped at six digits with the derived
    address refreshed once it is complete.
    """

    def __init__(self, record: AgentRecord, store: Optional[AgentStore] = None,
                 storage: Optional[DocumentStorage] = None, postal: Optional[PostalLookupClient] = None):
        self.record = record
        self.store = store or AgentStore()
        self.storage = storage or DocumentStorage()
        self.postal = postal or PostalLookupClient()
        self.draft: Optional[AgentRecord] = None

    @property
    def editing(self) -> bool:
        return self.draft is not None

    @property
    def current(self) -> AgentRecord:
        return self.draft if self.draft is not None else self.record

    def begin_edit(self) -> AgentRecord:
        self.draft = self.record.model_copy(deep=True)
        return self.draft

    def cancel(self) -> AgentRecord:
        self.draft = None
        return self.record

    def _require_draft(self) -> AgentRecord:
        if self.draft is None:
            raise ValidationError("Click edit before changing your profile.")
        return self.draft

    async def set_field(self, name: str, value: Any, today: Optional[date] = None) -> AgentRecord:
        """Apply one form change to the draft; a rejected change leaves it untouched."""
        draft = self._require_draft()
        if name not in EDITABLE_FIELDS:
            raise ValidationError(f"{name.replace('_', ' ').capitalize()} cannot be changed here.")

        if name == "name":
            if any(ch.isdigit() for ch in str(value or "")):
                raise ValidationError("Name should not contain numbers")
            draft.name = str(value)
        elif name == "email":
            validate_email(value)
            draft.email = value
        elif name == "dob":
            draft.dob = parse_dob(value)
        elif name == "experience":
            years = parse_experience(value)
            if draft.dob is not None and years >= calculate_age(draft.dob, today):
                raise ValidationError("Experience should be less than age")
            draft.experience = years
        elif name == "pincode":
            pincode = sanitize_pincode(str(value or ""))
            if len(pincode) == PINCODE_LENGTH:
                address = await self.postal.lookup(pincode)
                for key, resolved in address.derived_fields().items():
                    setattr(draft, key, resolved)
            draft.pincode = pincode
        else:
            setattr(draft, name, value)
        return draft

    async def update_fields(self, fields: dict[str, Any], today: Optional[date] = None) -> AgentRecord:
        """Apply several changes; dob goes first so the experience rule sees it."""
        for name in sorted(fields, key=lambda key: key != "dob"):
            await self.set_field(name, fields[name], today)
        return self._require_draft()

    async def save(self) -> AgentRecord:
        draft = self._require_draft()
        payload = draft.model_dump(mode="json", exclude={"user_id", "updated_at"} | COUNTER_FIELDS)
        self.record = await self.store.update(self.record.user_id, payload)
        self.draft = None
        logger.info("Profile saved", user_id=mask_user_id(self.record.user_id))
        return self.record

    async def replace_photo(self, file: UploadedFile) -> str:
        """Upload a new display picture and persist its URL right away."""
        self.storage.validate(file, label="Display picture")
        url = await self.storage.upload(self.record.user_id, DocumentCategory.DISPLAY_PICTURE, file,
                                        timestamped=False)
        self.record = await self.store.update(self.record.user_id, {"display_picture_url": url})
        if self.draft is not None:
            self.draft.display_picture_url = url
        return url

    def view(self, today: Optional[date] = None) -> dict[str, Any]:
        """Read-only rendering of the current record."""
        record = self.current
        data = record.public_fields()
        for key in COUNTER_FIELDS:
            data.pop(key, None)
        data["age"] = record.age(today)
        data["created_at_display"] = format_date(record.created_at)
        data["last_login_at_display"] = format_date(record.last_login_at)
        data["editing"] = self.editing
        return data
