"""Input validation and normalization for agent details."""

import re
from datetime import date
from typing import Optional, Union

from agent_panel.utils.config import AppConfig
from agent_panel.utils.errors import InvalidInputError, ValidationError

NAME_PATTERN = re.compile(r"^[A-Za-z\s]+$")
MOBILE_PATTERN = re.compile(r"^[6-9]\d{9}$")
EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
OTP_PATTERN = re.compile(r"^\d{6}$")
PINCODE_PATTERN = re.compile(r"^\d{6}$")
PINCODE_LENGTH = 6


def normalize_phone_number(phone_number: str, country_code: Optional[str] = None) -> str:
    """
    Normalize a phone number to international format.

    Strips every non-digit and a single trunk ``0``, then prefixes the country
    code unless the number is longer than a subscriber number and already
    carries it. ``"9876543210"``, ``"+91 98765 43210"`` and ``"919876543210"``
    all become ``"+919876543210"``.
    """
    country_code = country_code or AppConfig.DEFAULT_COUNTRY_CODE
    cleaned = re.sub(r"\D", "", phone_number or "")
    if len(cleaned) == 11 and cleaned.startswith("0"):
        cleaned = cleaned[1:]
    if len(cleaned) > 10 and cleaned.startswith(country_code):
        return f"+{cleaned}"
    return f"+{country_code}{cleaned}"


def subscriber_number(phone_number: str, country_code: Optional[str] = None) -> str:
    """Return the 10-digit subscriber part of a normalized number or raise InvalidInputError."""
    country_code = country_code or AppConfig.DEFAULT_COUNTRY_CODE
    normalized = normalize_phone_number(phone_number, country_code)
    national = normalized[len(country_code) + 1:]
    if not MOBILE_PATTERN.match(national):
        raise InvalidInputError()
    return national


def validate_mobile(phone_number: str) -> None:
    """Raw form input must be a 10-digit mobile number starting with 6-9."""
    if not MOBILE_PATTERN.match(phone_number or ""):
        raise InvalidInputError()


def validate_name(name: str) -> None:
    if not NAME_PATTERN.match(name or ""):
        raise ValidationError("Name should contain only alphabets and spaces")


def validate_email(email: str) -> None:
    if not EMAIL_PATTERN.match(email or ""):
        raise ValidationError("Please enter a valid email address")


def validate_otp(code: str) -> None:
    if not OTP_PATTERN.match(code or ""):
        raise ValidationError("Please enter a valid 6-digit OTP")


def sanitize_pincode(value: str) -> str:
    """Digits only, truncated to six."""
    return re.sub(r"\D", "", value or "")[:PINCODE_LENGTH]


def parse_dob(value: Union[str, date, None]) -> date:
    """Parse an ISO date of birth (YYYY-MM-DD)."""
    if isinstance(value, date):
        return value
    if not value:
        raise ValidationError("Please enter your date of birth")
    try:
        return date.fromisoformat(str(value)[:10])
    except ValueError:
        raise ValidationError("Please enter a valid date of birth")


def calculate_age(dob: Union[str, date], today: Optional[date] = None) -> int:
    """Completed years between dob and today; the birthday itself counts."""
    birth_date = parse_dob(dob)
    today = today or date.today()
    age = today.year - birth_date.year
    if (today.month, today.day) < (birth_date.month, birth_date.day):
        age -= 1
    return age


def parse_experience(value: Union[str, int, None]) -> int:
    """Years of experience as a non-negative integer."""
    if isinstance(value, int) and not isinstance(value, bool):
        years = value
    else:
        text = str(value or "").strip()
        if not text.isdigit():
            raise ValidationError("Please enter your experience in years")
        years = int(text)
    if years < 0:
        raise ValidationError("Please enter your experience in years")
    return years


def validate_experience(experience: Union[str, int, None], dob: Union[str, date, None],
                        today: Optional[date] = None) -> int:
    """Experience must be strictly less than the age computed from dob."""
    years = parse_experience(experience)
    if years >= calculate_age(dob, today):
        raise ValidationError("Experience should be less than age")
    return years
