"""Agent model - one registered agent, keyed by the identity token."""

from datetime import date
from enum import Enum
from typing import Any, Optional
from pydantic import BaseModel, ConfigDict, Field

from agent_panel.utils.validators import calculate_age


class AgentStatus(str, Enum):
    """Agent lifecycle status."""
    ACTIVE = "active"
    INACTIVE = "inactive"
    SUSPENDED = "suspended"


class ChartPoint(BaseModel):
    """One month of a dashboard chart series."""
    month: str
    value: float = 0


# Fields hidden from the dashboard payload
PRIVATE_FIELDS = {"user_id", "status", "aadhar_front_url", "aadhar_back_url"}

# Counters and series written by the back office, never by this application
COUNTER_FIELDS = {
    "total_users", "active_users", "last_month_active_users", "premium_users",
    "successful_matches", "total_revenue", "last_month_revenue",
    "previous_month_revenue", "revenue_history", "match_history",
}

# Fields the agent may change through the profile editor
EDITABLE_FIELDS = {
    "name", "email", "dob", "experience", "pincode",
    "address_line1", "address_line2",
}


class AgentRecord(BaseModel):
    """Agent record as stored in the agents table."""
    model_config = ConfigDict(extra="ignore")

    user_id: str = Field(..., description="Identity token issued at OTP confirmation")
    name: str = Field(..., description="Display name")
    phone_number: str = Field(..., description="Phone number in international format")
    email: str = Field(..., description="Email address")
    dob: Optional[date] = Field(None, description="Date of birth")
    experience: int = Field(default=0, ge=0, description="Years of experience")
    pincode: Optional[str] = None
    region: Optional[str] = None
    district: Optional[str] = None
    state: Optional[str] = None
    address_line1: Optional[str] = None
    address_line2: Optional[str] = None
    display_picture_url: Optional[str] = None
    aadhar_front_url: Optional[str] = None
    aadhar_back_url: Optional[str] = None
    reference_code: Optional[str] = Field(None, description="8-character referral code, assigned once")
    status: str = Field(default=AgentStatus.ACTIVE.value, description="Status: active, inactive, suspended")
    created_at: Optional[str] = None
    updated_at: Optional[str] = None
    last_login_at: Optional[str] = None

    # Business counters maintained outside this application
    total_users: int = 0
    active_users: int = 0
    last_month_active_users: int = 0
    premium_users: int = 0
    successful_matches: int = 0
    total_revenue: float = 0
    last_month_revenue: float = 0
    previous_month_revenue: float = 0
    revenue_history: list[ChartPoint] = Field(default_factory=list)
    match_history: list[ChartPoint] = Field(default_factory=list)

    def age(self, today: Optional[date] = None) -> Optional[int]:
        """Age derived from dob; never stored."""
        if self.dob is None:
            return None
        return calculate_age(self.dob, today)

    def public_fields(self) -> dict[str, Any]:
        """Record without identity, status and identity-document locators."""
        return self.model_dump(mode="json", exclude=PRIVATE_FIELDS)
