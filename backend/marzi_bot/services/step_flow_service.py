# /marzi_bot/services/step_flow_service.py

import logging
from datetime import date, datetime, timezone
from typing import Any, Callable, Dict, Optional

from marzi_bot.config.rules import BANGALORE_CANONICAL
from marzi_bot.config.strings import DEFAULT_CITY, DEFAULT_NAME, get_message
from marzi_bot.models.conversation import (
    ConversationState,
    ReferralEscalation,
    StepFlowResult,
    StepOutcome,
    UserDetails,
)
from marzi_bot.models.domain import CrmProfile, EscalationReason
from marzi_bot.services.conversation_service import new_escalation, register_user, save_escalation, to_ms
from marzi_bot.services.db_service import db_service
from marzi_bot.utils.metrics import conversation_turns_counter
from marzi_bot.utils.phone import normalize_mobile
from marzi_bot.workflows import extractors
from marzi_bot.workflows.intents import Intent, IntentMatch, match_message_intent

logger = logging.getLogger(__name__)

GREETING_STEP = "greeting"
REGISTERED_STEP = "registered"
ESCALATION_STEP = "human_escalation"
COMPLETED_STEP = "completed"

# Collection steps whose extractor gets a chance at the text before a greeting resets the conversation
COLLECTION_INTENTS = {
    "collect_name": Intent.PROVIDE_NAME,
    "collect_dob": Intent.PROVIDE_DOB,
    "collect_city": Intent.PROVIDE_CITY,
}

# Profile field each collection step fills
COLLECTION_FIELDS = {"collect_name": "name", "collect_dob": "dob", "collect_city": "city"}

# Yes on these steps records the preference and, where set, escalates with the reason
INTEREST_STEPS = {
    "holidays": EscalationReason.HOLIDAYS_INTEREST.value,
    "events": EscalationReason.EVENTS_INTEREST.value,
    "health": EscalationReason.HEALTH_CALLBACK.value,
    "community": None,
}

MENU_STEPS = {1: "holidays", 2: "events", 3: "health", 4: "community"}

# A message after this much silence is treated as the start of a new conversation
FIRST_MESSAGE_GAP_MS = 24 * 60 * 60 * 1000


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _name(state: ConversationState) -> str:
    return state.user_profile.name or DEFAULT_NAME


def _collect_details(state: ConversationState, **values) -> Dict[str, Any]:
    details = dict(state.step_data.get("collect_details") or {})
    details.update(values)
    return {"collect_details": details}


def _yes_no(intent: IntentMatch, text: str) -> Optional[bool]:
    if intent["intent"] == Intent.YES or extractors.is_yes(text):
        return True
    if intent["intent"] == Intent.NO or extractors.is_no(text):
        return False
    return None


def _escalate(state: ConversationState, reason: str) -> StepOutcome:
    return StepOutcome(
        response_message=get_message("human_escalation", name=_name(state)),
        next_step=ESCALATION_STEP,
        should_escalate=True,
        escalation_reason=reason,
    )


class StepFlowService:
    """
    The step-based conversation: a fixed set of named steps, one handler each.

    process_step() is pure and decides the reply and next step for one
    message; process_conversation_flow() wraps it with state loading,
    persistence and the registration/escalation side effects.
    """

    def __init__(self, store=None, clock: Callable[[], datetime] = _utc_now):
        self.store = store if store is not None else db_service
        self._clock = clock
        self._handlers = {
            "pre_check": self._greeting,
            GREETING_STEP: self._greeting,
            "collect_name": self._collect_name,
            "collect_dob": self._collect_dob,
            "collect_city": self._collect_city,
            "age_under_50": self._age_under_50,
            "referral_collect": self._referral_collect,
            REGISTERED_STEP: self._registered,
            ESCALATION_STEP: self._closing,
            COMPLETED_STEP: self._closing,
        }
        for step in INTEREST_STEPS:
            self._handlers[step] = self._interest

    # ==================== Step evaluation ====================

    def process_step(self, state: ConversationState, message_text: Optional[str],
                     today: Optional[date] = None, known_user: bool = False,
                     is_first_message: bool = False) -> StepOutcome:
        text = message_text or ""
        today = today or self._clock().date()
        step = state.current_step

        if extractors.should_escalate(text) and step != ESCALATION_STEP:
            return _escalate(state, EscalationReason.EXPLICIT_REQUEST.value)

        intent = match_message_intent(text, step, is_first_message)
        logger.info("step_intent_matched", extra={"step": step, "intent": intent["intent"].value, "confidence": intent["confidence"]})

        if extractors.is_greeting(text) and intent["intent"] != COLLECTION_INTENTS.get(step):
            if known_user:
                return StepOutcome(response_message=get_message("welcome_back", name=_name(state)), next_step=REGISTERED_STEP)
            return StepOutcome(response_message=get_message("greeting"), next_step=GREETING_STEP)

        handler = self._handlers.get(step)
        if handler is None:
            logger.warning("unknown_step", extra={"step": step})
            return _escalate(state, EscalationReason.UNKNOWN_STEP.value)
        return handler(state, text, intent, today)

    def _greeting(self, state, text, intent, today) -> StepOutcome:
        answer = _yes_no(intent, text)
        if answer is True:
            return StepOutcome(response_message=get_message("ask_name"), next_step="collect_name")
        if answer is False:
            return StepOutcome(response_message=get_message("closing", name=DEFAULT_NAME), next_step=COMPLETED_STEP)
        return StepOutcome(response_message=get_message("invalid_response"), next_step=state.current_step)

    def _collect_name(self, state, text, intent, today) -> StepOutcome:
        name = intent["data"].get("name")
        if not name:
            return StepOutcome(response_message=get_message("ask_name_again"), next_step="collect_name")
        return StepOutcome(
            response_message=get_message("ask_dob", name=name),
            next_step="collect_dob",
            step_data=_collect_details(state, name=name),
            profile_updates={"name": name},
        )

    def _collect_dob(self, state, text, intent, today) -> StepOutcome:
        dob = extractors.extract_dob(text, today)
        age = extractors.calculate_age(dob, today) if extractors.parse_dob(dob) else None
        if age is None:
            return StepOutcome(response_message=get_message("invalid_dob"), next_step="collect_dob")
        return StepOutcome(
            response_message=get_message("ask_city", name=_name(state)),
            next_step="collect_city",
            step_data=_collect_details(state, dob=dob, age=age),
            profile_updates={"dob": dob, "age": age},
        )

    def _collect_city(self, state, text, intent, today) -> StepOutcome:
        city = intent["data"].get("city")
        if not city:
            return StepOutcome(response_message=get_message("ask_city_again"), next_step="collect_city")
        if extractors.is_bangalore_fuzzy(city):
            city = BANGALORE_CANONICAL

        age = state.user_profile.age
        if age is not None and age < 50:
            next_step, key = "age_under_50", "age_under_50"
        else:
            next_step, key = REGISTERED_STEP, "registration_complete"
        return StepOutcome(
            response_message=get_message(key, name=_name(state)),
            next_step=next_step,
            step_data=_collect_details(state, city=city, completed=True),
            profile_updates={"city": city},
            should_register=True,
        )

    def _age_under_50(self, state, text, intent, today) -> StepOutcome:
        answer = _yes_no(intent, text)
        if answer is True:
            return StepOutcome(response_message=get_message("referral_collect"), next_step="referral_collect")
        if answer is False:
            return StepOutcome(response_message=get_message("referral_thank_you"), next_step=COMPLETED_STEP)
        return StepOutcome(response_message=get_message("invalid_response"), next_step="age_under_50")

    def _referral_collect(self, state, text, intent, today) -> StepOutcome:
        details = extractors.extract_referral_details(text)
        if not details or not details.get("mobile"):
            return StepOutcome(response_message=get_message("referral_incomplete"), next_step="referral_collect")
        return StepOutcome(
            response_message=get_message("referral_thank_you"),
            next_step=COMPLETED_STEP,
            step_data={"referral": details},
            should_escalate=True,
            escalation_reason=EscalationReason.REFERRAL_LEAD.value,
            referral=ReferralEscalation(**details),
        )

    def _registered(self, state, text, intent, today) -> StepOutcome:
        option = intent["data"].get("option") or extractors.get_menu_option(text)
        step = MENU_STEPS.get(option)
        if step is None:
            return StepOutcome(response_message=get_message("invalid_menu_option"), next_step=REGISTERED_STEP)
        return StepOutcome(
            response_message=get_message(step, city=state.user_profile.city or DEFAULT_CITY),
            next_step=step,
        )

    def _interest(self, state, text, intent, today) -> StepOutcome:
        step = state.current_step
        answer = _yes_no(intent, text)
        if answer is None:
            return StepOutcome(response_message=get_message("invalid_response"), next_step=step)

        city = state.user_profile.city or DEFAULT_CITY
        if answer is False:
            return StepOutcome(response_message=get_message(f"{step}_no", city=city), next_step=COMPLETED_STEP)

        reason = INTEREST_STEPS[step]
        return StepOutcome(
            response_message=get_message(f"{step}_yes", city=city),
            next_step=COMPLETED_STEP,
            should_escalate=reason is not None,
            escalation_reason=reason,
            preferences={step: True},
        )

    def _closing(self, state, text, intent, today) -> StepOutcome:
        return StepOutcome(response_message=get_message("closing", name=_name(state)), next_step=COMPLETED_STEP)

    # ==================== Orchestration ====================

    async def process_conversation_flow(self, message_data: Dict[str, Any]) -> StepFlowResult:
        """
        Handles one inbound message for the step-based variant.

        message_data carries `mobile`, `message_text` and optionally `wa_number`.
        Store errors propagate unchanged.
        """
        try:
            result = await self._process(message_data)
        except Exception:
            conversation_turns_counter.labels(variant="legacy", status="error").inc()
            raise
        conversation_turns_counter.labels(variant="legacy", status="ok").inc()
        return result

    async def _process(self, message_data: Dict[str, Any]) -> StepFlowResult:
        now = self._clock()
        now_ms = to_ms(now)
        mobile = normalize_mobile(message_data.get("mobile"))
        wa_number = message_data.get("wa_number") or mobile
        text = message_data.get("message_text") or ""

        crm = await self.store.get_user_profile(mobile)
        known = crm is not None and crm.is_known
        state = await self.store.get_latest_conversation_state(mobile)

        if state is None:
            state = self._first_state(mobile, wa_number, crm, now_ms)
            await self.store.save_conversation_state(state)
            if known:
                reply = get_message("welcome_back", name=state.user_profile.name or DEFAULT_NAME)
            else:
                reply = get_message("greeting")
            return StepFlowResult(response_message=reply, conversation_state=state)

        if known and getattr(crm, COLLECTION_FIELDS.get(state.current_step, ""), None) is not None:
            logger.info("known_user_mid_collection", extra={"mobile": mobile, "step": state.current_step})
            outcome = StepOutcome(
                response_message=get_message("welcome_back", name=crm.name or _name(state)),
                next_step=REGISTERED_STEP,
            )
        else:
            first_message = not state.last_interaction or now_ms - state.last_interaction > FIRST_MESSAGE_GAP_MS
            outcome = self.process_step(state, text, today=now.date(), known_user=known, is_first_message=first_message)

        profile = {**state.user_profile.model_dump(), **outcome.profile_updates}
        state = state.model_copy(update={
            "current_step": outcome.next_step,
            "flow_state": outcome.next_step,
            "step_data": {**state.step_data, **outcome.step_data},
            "user_profile": UserDetails.model_validate(profile),
            "last_interaction": now_ms,
        })
        await self.store.save_conversation_state(state)

        registered = False
        if outcome.should_register and state.user_profile.has_registration_fields() and not known:
            await register_user(self.store, state.user_profile, crm, now_ms)
            registered = True

        escalation_id = None
        if outcome.should_escalate:
            record = new_escalation(
                mobile, outcome.escalation_reason or EscalationReason.EXPLICIT_REQUEST.value, now_ms, state, text,
                referral=outcome.referral.model_dump() if outcome.referral else None,
            )
            escalation_id = await save_escalation(self.store, record)

        if known:
            update: Dict[str, Any] = {
                "interactions": {"total_messages": 1, "last_message_date": now_ms, "escalations": 1 if escalation_id else 0},
            }
            if outcome.preferences:
                update["preferences"] = outcome.preferences
            await self.store.update_user_profile(mobile, update)

        return StepFlowResult(
            response_message=outcome.response_message,
            conversation_state=state,
            escalation_id=escalation_id,
            registered=registered,
        )

    def _first_state(self, mobile: str, wa_number: str, crm: Optional[CrmProfile], now_ms: int) -> ConversationState:
        details: Dict[str, Any] = {"mobile": mobile, "wa_number": wa_number}
        step = GREETING_STEP
        if crm is not None and crm.is_known:
            details.update({f: getattr(crm, f) for f in ("name", "dob", "city", "area", "age") if getattr(crm, f) is not None})
            step = REGISTERED_STEP
        return ConversationState(
            mobile=mobile,
            conversation_id=f"conv_{now_ms}_{mobile[-4:]}",
            current_step=step,
            flow_state=step,
            user_profile=UserDetails.model_validate(details),
            last_interaction=now_ms,
            created_at=now_ms,
        )


# Globally accessible instance
step_flow_service = StepFlowService()
