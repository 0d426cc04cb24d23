# /marzi_bot/models/domain.py

from enum import Enum
from typing import Optional, Dict, Any
from pydantic import BaseModel, Field, ConfigDict

# Durable records owned by the CRM and escalation stores. The conversation
# core only reads CrmProfile and writes EscalationRecord through the store.


class UserStatus(str, Enum):
    LEAD = "lead"
    REGISTERED = "registered"
    ACTIVATED = "activated"
    ACTIVE = "active"  # legacy spelling of registered


KNOWN_USER_STATUSES = {UserStatus.REGISTERED.value, UserStatus.ACTIVATED.value, UserStatus.ACTIVE.value}

PREFERENCE_KEYS = ("holidays", "events", "health", "community")


class Preferences(BaseModel):
    holidays: bool = False
    events: bool = False
    health: bool = False
    community: bool = False


class Interactions(BaseModel):
    total_messages: int = 0
    last_message_date: Optional[int] = None
    escalations: int = 0


class CrmProfile(BaseModel):
    mobile: str
    name: Optional[str] = None
    dob: Optional[str] = None
    city: Optional[str] = None
    area: Optional[str] = None
    age: Optional[int] = None
    wa_number: Optional[str] = Field(default=None, alias="waNumber")
    status: str = UserStatus.LEAD.value
    age_validated: Optional[bool] = Field(default=None, alias="ageValidated")
    registration_date: Optional[int] = None
    preferences: Preferences = Field(default_factory=Preferences)
    interactions: Interactions = Field(default_factory=Interactions)
    created_at: Optional[int] = None
    updated_at: Optional[int] = None

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    @property
    def is_known(self) -> bool:
        return self.status in KNOWN_USER_STATUSES


class EscalationReason(str, Enum):
    EXPLICIT_REQUEST = "explicit_request"
    REFERRAL_LEAD = "Referral_Lead"
    RM_ESCALATION = "RM_Escalation_Required"
    UNKNOWN_STEP = "unknown_step"
    HOLIDAYS_INTEREST = "holidays_interest"
    EVENTS_INTEREST = "events_interest"
    HEALTH_CALLBACK = "health_callback_request"


class EscalationRecord(BaseModel):
    escalation_id: str
    mobile: str
    wa_number: Optional[str] = None
    conversation_id: Optional[str] = None
    user_profile: Dict[str, Any] = Field(default_factory=dict)
    user_message: Optional[str] = None
    escalation_reason: str
    step: Optional[str] = None
    referral_name: Optional[str] = None
    referral_mobile: Optional[str] = None
    referral_city: Optional[str] = None
    status: str = "pending"
    created_at: int
