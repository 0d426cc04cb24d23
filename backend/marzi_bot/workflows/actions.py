# /marzi_bot/workflows/actions.py

"""
Named mutations performed by action nodes.

Input actions (the save_* family) succeed only when their extractor accepts
the user's text. Marker actions need no input and always succeed; they only
raise flags on the TurnContext for the orchestrator to act on.
"""

import logging
from enum import Enum
from typing import Callable, Dict, Optional

from marzi_bot.config import rules
from marzi_bot.models.domain import EscalationReason, PREFERENCE_KEYS
from marzi_bot.workflows import extractors
from marzi_bot.workflows.context import TurnContext

logger = logging.getLogger(__name__)

ACTIVATION_PREFIX = "trigger_activation_"


class ActionName(str, Enum):
    SAVE_NAME = "save_name"
    SAVE_DOB = "save_dob"
    SAVE_CITY = "save_city"
    SAVE_AREA = "save_area"
    SAVE_REFERRAL_NAME = "save_referral_name"
    SAVE_REFERRAL_MOBILE = "save_referral_mobile"
    SAVE_REFERRAL_CITY = "save_referral_city"
    TAG_REFERRAL_LEAD = "tag_referral_lead"
    REFERRAL_END = "referral_end"
    ESCALATE_SUPPORT = "escalate_support"
    TRIGGER_SUPPORT_FLOW = "trigger_support_flow"
    END_CONVERSATION = "end_conversation"


INPUT_ACTIONS = {
    ActionName.SAVE_NAME.value,
    ActionName.SAVE_DOB.value,
    ActionName.SAVE_CITY.value,
    ActionName.SAVE_AREA.value,
    ActionName.SAVE_REFERRAL_NAME.value,
    ActionName.SAVE_REFERRAL_MOBILE.value,
    ActionName.SAVE_REFERRAL_CITY.value,
}

# Actions that collect the user's own registration details, and the profile field each one fills
PROFILE_ACTIONS = {
    ActionName.SAVE_NAME.value: "name",
    ActionName.SAVE_DOB.value: "dob",
    ActionName.SAVE_CITY.value: "city",
    ActionName.SAVE_AREA.value: "area",
}


def is_known_action(name: Optional[str]) -> bool:
    if not name:
        return False
    return name in ActionName._value2member_map_ or name.startswith(ACTIVATION_PREFIX)


def requires_input(name: Optional[str]) -> bool:
    return name in INPUT_ACTIONS


def _set(ctx: TurnContext, key: str, value, profile: bool = True) -> None:
    ctx.step_data[key] = value
    if profile:
        ctx.profile[key] = value
        ctx.step_data.setdefault("collect_details", {})[key] = value


# --- Input extraction, shared by the handlers and by accepts_input() ---

def _read_dob(text: str, ctx: TurnContext):
    dob = extractors.extract_dob(text, today=ctx.today)
    if not dob or extractors.parse_dob(dob) is None:
        return None
    age = extractors.calculate_age(dob, today=ctx.today)
    if age is None:
        return None
    return dob, age


READERS: Dict[str, Callable[[str, TurnContext], object]] = {
    ActionName.SAVE_NAME.value: lambda text, ctx: extractors.extract_name(text),
    ActionName.SAVE_DOB.value: _read_dob,
    ActionName.SAVE_CITY.value: lambda text, ctx: extractors.extract_city(text),
    ActionName.SAVE_AREA.value: lambda text, ctx: extractors.extract_city(text),
    ActionName.SAVE_REFERRAL_NAME.value: lambda text, ctx: extractors.extract_name(text),
    ActionName.SAVE_REFERRAL_MOBILE.value: lambda text, ctx: extractors.extract_mobile(text),
    ActionName.SAVE_REFERRAL_CITY.value: lambda text, ctx: extractors.extract_city(text),
}


def accepts_input(name: Optional[str], text: str, ctx: TurnContext) -> bool:
    """True if the input action would succeed on this text. Never mutates ctx."""
    reader = READERS.get(name or "")
    return reader is not None and bool(text) and reader(text, ctx) is not None


# --- Handlers: (ctx, text) -> succeeded ---

def _save_name(ctx: TurnContext, text: str) -> bool:
    name = READERS[ActionName.SAVE_NAME.value](text, ctx)
    if not name:
        return False
    _set(ctx, "name", name)
    return True


def _save_dob(ctx: TurnContext, text: str) -> bool:
    parsed = _read_dob(text, ctx)
    if parsed is None:
        return False
    dob, age = parsed
    _set(ctx, "dob", dob)
    _set(ctx, "age", age)
    return True


def _save_city(ctx: TurnContext, text: str) -> bool:
    city = extractors.extract_city(text)
    if not city:
        return False
    if extractors.is_bangalore_fuzzy(city):
        _set(ctx, "city", rules.BANGALORE_CANONICAL)
        _set(ctx, "area", None)
    else:
        _set(ctx, "city", city)
    return True


def _save_area(ctx: TurnContext, text: str) -> bool:
    area = extractors.extract_city(text)
    if not area:
        return False
    _set(ctx, "area", area)
    return True


def _save_referral_name(ctx: TurnContext, text: str) -> bool:
    name = extractors.extract_name(text)
    if not name:
        return False
    _set(ctx, "referral_name", name, profile=False)
    return True


def _save_referral_mobile(ctx: TurnContext, text: str) -> bool:
    mobile = extractors.extract_mobile(text)
    if not mobile:
        return False
    _set(ctx, "referral_mobile", mobile, profile=False)
    return True


def _flag_referral(ctx: TurnContext) -> None:
    name = ctx.step_data.get("referral_name")
    mobile = ctx.step_data.get("referral_mobile")
    if not (name or mobile):
        return
    ctx.referral_escalation = {
        "name": name,
        "mobile": mobile,
        "city": ctx.step_data.get("referral_city"),
    }
    ctx.escalate(EscalationReason.REFERRAL_LEAD.value)


def _save_referral_city(ctx: TurnContext, text: str) -> bool:
    city = extractors.extract_city(text)
    if not city:
        return False
    _set(ctx, "referral_city", city, profile=False)
    if ctx.step_data.get("referral_name") and ctx.step_data.get("referral_mobile"):
        _flag_referral(ctx)
    return True


def _tag_referral_lead(ctx: TurnContext, text: str) -> bool:
    _flag_referral(ctx)
    return True


def _escalate_support(ctx: TurnContext, text: str) -> bool:
    ctx.support_escalation = True
    ctx.escalate(EscalationReason.RM_ESCALATION.value)
    return True


def _end_conversation(ctx: TurnContext, text: str) -> bool:
    ctx.step_data["conversation_ended"] = True
    return True


HANDLERS: Dict[str, Callable[[TurnContext, str], bool]] = {
    ActionName.SAVE_NAME.value: _save_name,
    ActionName.SAVE_DOB.value: _save_dob,
    ActionName.SAVE_CITY.value: _save_city,
    ActionName.SAVE_AREA.value: _save_area,
    ActionName.SAVE_REFERRAL_NAME.value: _save_referral_name,
    ActionName.SAVE_REFERRAL_MOBILE.value: _save_referral_mobile,
    ActionName.SAVE_REFERRAL_CITY.value: _save_referral_city,
    ActionName.TAG_REFERRAL_LEAD.value: _tag_referral_lead,
    ActionName.REFERRAL_END.value: _tag_referral_lead,
    ActionName.ESCALATE_SUPPORT.value: _escalate_support,
    ActionName.TRIGGER_SUPPORT_FLOW.value: _escalate_support,
    ActionName.END_CONVERSATION.value: _end_conversation,
}


def _trigger_activation(ctx: TurnContext, name: str) -> bool:
    preference = name[len(ACTIVATION_PREFIX):]
    if preference in PREFERENCE_KEYS and preference not in ctx.activations:
        ctx.activations.append(preference)
    return True


def perform_action(ctx: TurnContext, name: str, text: str) -> bool:
    """
    Runs one named action against the context and reports whether it succeeded.
    Unknown actions are logged and treated as no-op markers.
    """
    handler = HANDLERS.get(name)
    if handler is not None:
        return handler(ctx, text)
    if name.startswith(ACTIVATION_PREFIX):
        return _trigger_activation(ctx, name)
    logger.warning("unknown_action", extra={"action": name})
    return True
