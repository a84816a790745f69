"""Models for the phone-OTP registration and login wizards."""

import base64
import binascii
from datetime import date, datetime, timezone
from enum import Enum
from typing import Any, Optional
from pydantic import BaseModel, Field
from pydantic import ValidationError as PydanticValidationError

from agent_panel.utils.errors import ValidationError


class FlowState(str, Enum):
    """Wizard states."""
    COLLECTING_DETAILS = "collecting_details"
    AWAITING_CODE = "awaiting_code"
    COMPLETED = "completed"


class DocumentCategory(str, Enum):
    """Storage namespaces for uploaded images."""
    DISPLAY_PICTURE = "display-pictures"
    AADHAAR = "aadhaar-images"


class UploadedFile(BaseModel):
    """A file held in memory until it is stored."""
    filename: str
    content_type: str = ""
    data: bytes = Field(default=b"", repr=False)

    @property
    def size(self) -> int:
        return len(self.data)

    @classmethod
    def from_payload(cls, payload: Optional[dict]) -> Optional["UploadedFile"]:
        """Build from ``{"filename", "content_type", "data": <base64>}``."""
        if not payload:
            return None
        try:
            data = base64.b64decode(payload.get("data") or "", validate=True)
        except (binascii.Error, ValueError):
            raise ValidationError("Uploaded file could not be read. Please select it again.")
        return cls(
            filename=payload.get("filename") or "upload",
            content_type=payload.get("content_type") or "",
            data=data,
        )


class RegistrationDetails(BaseModel):
    """Registration form fields (everything except the images)."""
    name: str = ""
    phone_number: str = ""
    email: str = ""
    dob: Optional[date] = None
    experience: str = ""
    pincode: str = ""
    region: str = ""
    district: str = ""
    state: str = ""
    address_line1: str = ""
    address_line2: str = ""

    @classmethod
    def from_form(cls, form: dict[str, Any]) -> "RegistrationDetails":
        """Build from raw form input, turning type errors into one readable message."""
        fields = {key: value for key, value in form.items() if key in cls.model_fields}
        if "experience" in fields and fields["experience"] is not None:
            fields["experience"] = str(fields["experience"])
        if not fields.get("dob"):
            fields.pop("dob", None)
        try:
            return cls(**fields)
        except PydanticValidationError as e:
            first = e.errors()[0]
            field = first["loc"][0] if first.get("loc") else "input"
            if field == "dob":
                raise ValidationError("Please enter a valid date of birth")
            raise ValidationError(f"Please check the {str(field).replace('_', ' ')} field")


class RegistrationDocuments(BaseModel):
    """The three images attached to a registration."""
    display_picture: Optional[UploadedFile] = None
    aadhar_front: Optional[UploadedFile] = None
    aadhar_back: Optional[UploadedFile] = None

    @classmethod
    def from_payload(cls, payload: Optional[dict]) -> "RegistrationDocuments":
        payload = payload or {}
        return cls(
            display_picture=UploadedFile.from_payload(payload.get("display_picture")),
            aadhar_front=UploadedFile.from_payload(payload.get("aadhar_front")),
            aadhar_back=UploadedFile.from_payload(payload.get("aadhar_back")),
        )


class PendingChallenge(BaseModel):
    """Handle for an OTP that has been sent but not yet confirmed."""
    handle: str
    phone_number: str
    issued_at: datetime
    expires_at: datetime
    consumed: bool = False

    def is_stale(self, now: Optional[datetime] = None) -> bool:
        """Used or past expiry; a stale handle cannot be replayed."""
        now = now or datetime.now(timezone.utc)
        return self.consumed or now >= self.expires_at


class VerifiedIdentity(BaseModel):
    """Identity confirmed by the verification gateway."""
    user_id: str
    phone_number: str
    access_token: Optional[str] = Field(None, repr=False)
