# /marzi_bot/models/conversation.py

from typing import Optional, List, Dict, Any
from pydantic import BaseModel, Field, ConfigDict


class UserDetails(BaseModel):
    """Profile fields collected during the conversation. Unknown keys are kept."""
    name: Optional[str] = None
    dob: Optional[str] = Field(default=None, description="Date of birth as DD-MM-YYYY")
    city: Optional[str] = None
    area: Optional[str] = None
    age: Optional[int] = None
    mobile: Optional[str] = None
    wa_number: Optional[str] = Field(default=None, alias="waNumber")

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    def has_registration_fields(self) -> bool:
        return bool(self.name and self.dob and self.city) and self.age is not None


class ConversationState(BaseModel):
    """
    The one active conversation for a mobile number.

    current_step is a node id for the graph flow or a step name for the
    step-based flow. Timestamps are epoch milliseconds.
    """
    mobile: str
    conversation_id: str
    current_step: str
    flow_state: Optional[str] = None
    flow_id: Optional[str] = None
    user_profile: UserDetails = Field(default_factory=UserDetails)
    step_data: Dict[str, Any] = Field(default_factory=dict)
    last_interaction: int = 0
    created_at: int = 0

    model_config = ConfigDict(populate_by_name=True)


class OutboundMessage(BaseModel):
    type: str = "text"
    body: str


class ReferralEscalation(BaseModel):
    name: Optional[str] = None
    mobile: Optional[str] = None
    city: Optional[str] = None


class TurnResult(BaseModel):
    """What one run of the flow engine produced for one user message."""
    messages: List[OutboundMessage] = Field(default_factory=list)
    next_step: str
    updated_state: ConversationState
    should_escalate: bool = False
    escalation_reason: Optional[str] = None
    referral_escalation: Optional[ReferralEscalation] = None
    support_escalation: bool = False
    activations: List[str] = Field(default_factory=list, description="Preferences switched on by activation markers")
    step_reset: bool = Field(default=False, description="The stored step was not in the flow and was reset to its start")

    @property
    def bodies(self) -> List[str]:
        return [m.body for m in self.messages]


class StepOutcome(BaseModel):
    """Result of one handler of the step-based flow."""
    response_message: str = ""
    next_step: str
    step_data: Dict[str, Any] = Field(default_factory=dict)
    profile_updates: Dict[str, Any] = Field(default_factory=dict)
    should_escalate: bool = False
    escalation_reason: Optional[str] = None
    should_register: bool = False
    referral: Optional[ReferralEscalation] = None
    preferences: Dict[str, bool] = Field(default_factory=dict)


class StepFlowResult(BaseModel):
    response_message: str
    conversation_state: ConversationState
    escalation_id: Optional[str] = None
    registered: bool = False


class ConversationReply(BaseModel):
    """What the orchestrator hands back to the transport for one inbound message."""
    mobile: str
    messages: List[OutboundMessage] = Field(default_factory=list)
    next_step: Optional[str] = None
    should_escalate: bool = False
    escalation_reason: Optional[str] = None
    escalation_ids: List[str] = Field(default_factory=list)
    registered: bool = False
    skipped: bool = False
    skip_reason: Optional[str] = None
