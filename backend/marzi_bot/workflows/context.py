# /marzi_bot/workflows/context.py

from dataclasses import dataclass, field
from datetime import date
from typing import Any, Dict, List, Optional

from marzi_bot.models.domain import CrmProfile
from marzi_bot.models.flow import FlowDefinition
from marzi_bot.workflows.templates import resolve_message


@dataclass
class TurnContext:
    """
    Mutable working copy for one run of the flow engine.

    Step handlers and actions write to this object only; the caller's
    ConversationState is never touched until the engine builds its result.
    """
    flow: FlowDefinition
    crm_profile: Optional[CrmProfile]
    today: date
    current_step: str
    profile: Dict[str, Any] = field(default_factory=dict)
    step_data: Dict[str, Any] = field(default_factory=dict)
    messages: List[str] = field(default_factory=list)
    should_escalate: bool = False
    escalation_reason: Optional[str] = None
    referral_escalation: Optional[Dict[str, Optional[str]]] = None
    support_escalation: bool = False
    activations: List[str] = field(default_factory=list)
    step_reset: bool = False

    def emit(self, body: Optional[str]) -> None:
        if body:
            self.messages.append(body)

    def say(self, node: Any) -> bool:
        """Emits the node's resolved message. Returns False when the node has nothing to say."""
        body = resolve_message(self.flow, node, self.profile, self.step_data)
        self.emit(body)
        return bool(body)

    def escalate(self, reason: str) -> None:
        self.should_escalate = True
        if self.escalation_reason is None:
            self.escalation_reason = reason

    @property
    def is_known_user(self) -> bool:
        return self.crm_profile is not None and self.crm_profile.is_known
