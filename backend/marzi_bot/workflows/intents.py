# /marzi_bot/workflows/intents.py

"""
Per-step intent classification for the step-based conversation.

The step tells us what kind of answer we are waiting for, so each step only
runs the extractors that make sense for it. Confidence values are fixed per
intent and are only used for logging and tie-break decisions by callers.
"""

from enum import Enum
from typing import Any, Dict, Optional, TypedDict

from marzi_bot.workflows import extractors


class Intent(str, Enum):
    GREETING = "greeting"
    YES = "yes"
    NO = "no"
    PROVIDE_NAME = "provide_name"
    PROVIDE_DOB = "provide_dob"
    PROVIDE_CITY = "provide_city"
    MENU_OPTION = "menu_option"
    INVALID = "invalid"
    UNKNOWN = "unknown"


class IntentMatch(TypedDict):
    """Result of classifying one message."""
    intent: Intent
    data: Dict[str, Any]
    confidence: float


CONFIDENCE = {
    Intent.GREETING: 0.95,
    Intent.YES: 0.9,
    Intent.NO: 0.9,
    Intent.PROVIDE_NAME: 0.8,
    Intent.PROVIDE_DOB: 0.9,
    Intent.PROVIDE_CITY: 0.8,
    Intent.MENU_OPTION: 0.9,
    Intent.INVALID: 0.2,
    Intent.UNKNOWN: 0.1,
}

GREETING_STEPS = {"pre_check", "greeting"}
YES_NO_STEPS = {"pre_check", "greeting", "age_under_50", "holidays", "events", "health", "community"}


def _result(intent: Intent, data: Optional[Dict[str, Any]] = None) -> IntentMatch:
    return {"intent": intent, "data": data or {}, "confidence": CONFIDENCE[intent]}


def _yes_no(message: str) -> Optional[IntentMatch]:
    if extractors.is_yes(message):
        return _result(Intent.YES)
    if extractors.is_no(message):
        return _result(Intent.NO)
    return None


def _extracted(message: str, extract, intent: Intent, key: str) -> IntentMatch:
    value = extract(message)
    if value:
        return _result(intent, {key: value})
    return _result(Intent.INVALID)


def match_message_intent(message: Optional[str], current_step: Optional[str], is_first_message: bool = False) -> IntentMatch:
    """
    Classifies a message in the context of the step the user is on.

    Greetings win on a first message or at the greeting step. Collection steps
    return INVALID when the extractor rejects the text; everything else that
    cannot be read returns UNKNOWN.
    """
    message = message or ""

    if (is_first_message or current_step in GREETING_STEPS) and extractors.is_greeting(message):
        return _result(Intent.GREETING)

    if current_step == "collect_name":
        return _extracted(message, extractors.extract_name, Intent.PROVIDE_NAME, "name")
    if current_step == "collect_dob":
        return _extracted(message, extractors.extract_dob, Intent.PROVIDE_DOB, "dob")
    if current_step == "collect_city":
        return _extracted(message, extractors.extract_city, Intent.PROVIDE_CITY, "city")

    if current_step == "registered":
        option = extractors.get_menu_option(message)
        if option:
            return _result(Intent.MENU_OPTION, {"option": option})
        return _result(Intent.UNKNOWN)

    if current_step in YES_NO_STEPS:
        return _yes_no(message) or _result(Intent.UNKNOWN)

    return _result(Intent.UNKNOWN)
