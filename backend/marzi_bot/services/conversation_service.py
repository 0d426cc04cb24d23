# /marzi_bot/services/conversation_service.py

import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

from marzi_bot.config.settings import settings
from marzi_bot.config.strings import FALLBACK_REPLY
from marzi_bot.models.conversation import (
    ConversationReply,
    ConversationState,
    OutboundMessage,
    TurnResult,
    UserDetails,
)
from marzi_bot.models.domain import (
    CrmProfile,
    EscalationReason,
    EscalationRecord,
    Interactions,
    Preferences,
    UserStatus,
)
from marzi_bot.models.flow import ActionNode, FlowDefinition, MessageNode
from marzi_bot.services.db_service import db_service
from marzi_bot.services.flow_service import flow_loader
from marzi_bot.utils.metrics import (
    conversation_turns_counter,
    escalations_counter,
    flow_step_resets_counter,
    registrations_counter,
)
from marzi_bot.utils.phone import normalize_mobile
from marzi_bot.workflows.actions import PROFILE_ACTIONS
from marzi_bot.workflows.engine import REGISTERED_NODE, run_flow

logger = logging.getLogger(__name__)

PROFILE_FIELDS = ("name", "dob", "city", "area", "age")


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def to_ms(moment: datetime) -> int:
    return int(moment.timestamp() * 1000)


def merge_profiles(collected: UserDetails, crm: Optional[CrmProfile]) -> UserDetails:
    """
    Combines what the conversation collected with the CRM record.
    CRM values win for known users; collected values win for everyone else.
    """
    if crm is None:
        return collected
    crm_values = {f: getattr(crm, f) for f in PROFILE_FIELDS if getattr(crm, f) is not None}
    collected_values = {f: v for f, v in collected.model_dump().items() if v is not None}
    if crm.is_known:
        merged = {**collected_values, **crm_values}
    else:
        merged = {**crm_values, **collected_values}
    return UserDetails.model_validate(merged)


async def register_user(store, details: UserDetails, crm: Optional[CrmProfile], now_ms: int) -> CrmProfile:
    """Writes the one-time registration record for a user whose details are complete."""
    base = crm.model_dump() if crm is not None else {}
    profile = CrmProfile.model_validate({
        **base,
        "mobile": details.mobile,
        "name": details.name,
        "dob": details.dob,
        "city": details.city,
        "area": details.area,
        "age": details.age,
        "wa_number": details.wa_number or (crm.wa_number if crm else None),
        "status": UserStatus.REGISTERED.value,
        "age_validated": True,
        "registration_date": now_ms,
        "preferences": base.get("preferences") or Preferences().model_dump(),
        "interactions": base.get("interactions") or Interactions(last_message_date=now_ms).model_dump(),
        "created_at": base.get("created_at") or now_ms,
        "updated_at": now_ms,
    })
    await store.save_user_profile(profile)
    registrations_counter.inc()
    logger.info("user_registered", extra={"mobile": details.mobile, "age": details.age})
    return profile


def new_escalation(
    mobile: str,
    reason: str,
    now_ms: int,
    state: Optional[ConversationState] = None,
    user_message: Optional[str] = None,
    referral: Optional[Dict[str, Any]] = None,
) -> EscalationRecord:
    referral = referral or {}
    return EscalationRecord(
        escalation_id=f"esc_{now_ms}_{uuid.uuid4().hex[:8]}",
        mobile=mobile,
        wa_number=state.user_profile.wa_number if state else None,
        conversation_id=state.conversation_id if state else None,
        user_profile=state.user_profile.model_dump(exclude_none=True) if state else {},
        user_message=user_message,
        escalation_reason=reason,
        step=state.current_step if state else None,
        referral_name=referral.get("name"),
        referral_mobile=referral.get("mobile"),
        referral_city=referral.get("city"),
        created_at=now_ms,
    )


async def save_escalation(store, record: EscalationRecord) -> str:
    escalation_id = await store.create_escalation(record)
    escalations_counter.labels(reason=record.escalation_reason).inc()
    logger.info("escalation_created", extra={"mobile": record.mobile, "reason": record.escalation_reason, "escalation_id": escalation_id})
    return escalation_id


class ConversationService:
    """
    Runs one inbound message through the graph flow.

    Loads the flow, CRM profile and conversation state, runs the engine, then
    persists the new state and fires the side effects the engine asked for
    (registration, escalations, CRM preference and interaction updates).
    Store errors propagate to the caller unchanged.
    """

    def __init__(self, store=None, loader=None, flow_id: Optional[str] = None,
                 clock: Callable[[], datetime] = _utc_now):
        self.store = store if store is not None else db_service
        self.loader = loader if loader is not None else flow_loader
        self.flow_id = flow_id or settings.default_flow_id
        self._clock = clock

    async def process_message(self, mobile: str, message_text: Optional[str], wa_number: Optional[str] = None) -> ConversationReply:
        try:
            reply = await self._process(normalize_mobile(mobile), message_text or "", wa_number)
        except Exception:
            conversation_turns_counter.labels(variant="graph", status="error").inc()
            raise
        status = "skipped" if reply.skipped else "ok"
        conversation_turns_counter.labels(variant="graph", status=status).inc()
        return reply

    async def _process(self, mobile: str, text: str, wa_number: Optional[str]) -> ConversationReply:
        now = self._clock()
        now_ms = to_ms(now)

        skip_reason = await self._skip_reason(mobile)
        if skip_reason:
            logger.info("skip_bot", extra={"mobile": mobile, "reason": skip_reason})
            return ConversationReply(mobile=mobile, skipped=True, skip_reason=skip_reason)

        flow = await self.loader.load_flow(self.flow_id)
        if flow is None:
            return ConversationReply(mobile=mobile, messages=[OutboundMessage(body=FALLBACK_REPLY)])

        crm = await self.store.get_user_profile(mobile)
        state = await self.store.get_latest_conversation_state(mobile)
        await self._log_message(mobile, "inbound", text, state.current_step if state else flow.start, now_ms)

        if state is None:
            state = self._new_state(mobile, wa_number, flow, crm, now_ms)
        elif crm is not None and crm.is_known and self._is_collecting(state, flow, crm):
            logger.info("known_user_mid_collection", extra={"mobile": mobile, "step": state.current_step})
            state = state.model_copy(update={"current_step": REGISTERED_NODE, "flow_state": REGISTERED_NODE})

        if crm is not None and crm.is_known:
            state = state.model_copy(update={"user_profile": merge_profiles(state.user_profile, crm)})

        result = run_flow(state, text, crm, flow, now=now)
        updated = result.updated_state.model_copy(update={
            "user_profile": merge_profiles(result.updated_state.user_profile, crm),
            "flow_id": flow.id,
        })
        await self.store.save_conversation_state(updated)
        if result.step_reset:
            flow_step_resets_counter.inc()

        registered = False
        if updated.user_profile.has_registration_fields() and not (crm is not None and crm.is_known):
            await register_user(self.store, updated.user_profile, crm, now_ms)
            registered = True

        escalation_ids = await self._create_escalations(result, updated, text, now_ms)

        if crm is not None and crm.is_known:
            await self.store.update_user_profile(mobile, self._profile_update(result, updated, crm, len(escalation_ids), now_ms))

        for message in result.messages:
            await self._log_message(mobile, "outbound", message.body, result.next_step, now_ms)

        return ConversationReply(
            mobile=mobile,
            messages=result.messages,
            next_step=result.next_step,
            should_escalate=result.should_escalate,
            escalation_reason=result.escalation_reason,
            escalation_ids=escalation_ids,
            registered=registered,
        )

    async def _skip_reason(self, mobile: str) -> Optional[str]:
        if not settings.bot_enabled or not await self.store.is_bot_enabled():
            return "bot_disabled"
        if await self.store.has_pending_escalation(mobile):
            return "pending_escalation"
        if await self.store.is_agent_cooldown_active(mobile):
            return "agent_cooldown"
        return None

    def _new_state(self, mobile: str, wa_number: Optional[str], flow: FlowDefinition,
                   crm: Optional[CrmProfile], now_ms: int) -> ConversationState:
        details: Dict[str, Any] = {"mobile": mobile, "wa_number": wa_number or mobile}
        if crm is not None:
            details.update({f: getattr(crm, f) for f in PROFILE_FIELDS if getattr(crm, f) is not None})
        return ConversationState(
            mobile=mobile,
            conversation_id=f"conv_{mobile}_{now_ms}",
            current_step=flow.start,
            flow_state=flow.start,
            flow_id=flow.id,
            user_profile=UserDetails.model_validate(details),
            last_interaction=now_ms,
            created_at=now_ms,
        )

    def _is_collecting(self, state: ConversationState, flow: FlowDefinition, crm: CrmProfile) -> bool:
        """
        True if the stored step asks the user for a detail the CRM record already has.
        A detail the record still lacks (the area of a Bengaluru user) is collected as usual.
        """
        node = flow.get_node(state.current_step)
        if isinstance(node, MessageNode):
            node = flow.get_node(node.next)
        if not isinstance(node, ActionNode) or node.action not in PROFILE_ACTIONS:
            return False
        return getattr(crm, PROFILE_ACTIONS[node.action]) is not None

    async def _create_escalations(self, result: TurnResult, state: ConversationState, text: str, now_ms: int) -> List[str]:
        records = []
        if result.referral_escalation is not None:
            records.append(new_escalation(
                state.mobile, EscalationReason.REFERRAL_LEAD.value, now_ms, state, text,
                referral=result.referral_escalation.model_dump(),
            ))
        if result.support_escalation:
            records.append(new_escalation(state.mobile, EscalationReason.RM_ESCALATION.value, now_ms, state, text))
        if result.should_escalate and not records:
            reason = result.escalation_reason or EscalationReason.EXPLICIT_REQUEST.value
            records.append(new_escalation(state.mobile, reason, now_ms, state, text))

        return [await save_escalation(self.store, record) for record in records]

    def _profile_update(self, result: TurnResult, state: ConversationState, crm: CrmProfile,
                        escalations: int, now_ms: int) -> Dict[str, Any]:
        update: Dict[str, Any] = {
            "interactions": {"total_messages": 1, "last_message_date": now_ms, "escalations": escalations},
        }
        # Details collected after registration, e.g. the area asked once the city is known
        for field in PROFILE_FIELDS:
            value = getattr(state.user_profile, field)
            if value is not None and getattr(crm, field) is None:
                update[field] = value
        if result.activations:
            update["preferences"] = {preference: True for preference in result.activations}
        return update

    async def _log_message(self, mobile: str, direction: str, text: str, step: Optional[str], now_ms: int) -> None:
        await self.store.log_message({
            "mobile": mobile,
            "direction": direction,
            "message_text": text,
            "flow_id": self.flow_id,
            "flow_step": step,
            "timestamp": now_ms,
        })


# Globally accessible instance
conversation_service = ConversationService()
