# backend/tests/unit/test_intents.py
import pytest

from marzi_bot.workflows.intents import CONFIDENCE, Intent, match_message_intent


def test_greeting_wins_at_greeting_step():
    match = match_message_intent("Hello", "greeting")
    assert match["intent"] == Intent.GREETING
    assert match["confidence"] == CONFIDENCE[Intent.GREETING]


def test_greeting_on_first_message_at_any_step():
    assert match_message_intent("hi", "registered", is_first_message=True)["intent"] == Intent.GREETING


@pytest.mark.parametrize("step, message, intent, data", [
    ("collect_name", "My name is Ravi", Intent.PROVIDE_NAME, {"name": "Ravi"}),
    ("collect_dob", "15/06/1965", Intent.PROVIDE_DOB, {"dob": "15-06-1965"}),
    ("collect_city", "I live in Pune", Intent.PROVIDE_CITY, {"city": "Pune"}),
    ("registered", "2", Intent.MENU_OPTION, {"option": 2}),
])
def test_collection_and_menu_steps_extract_data(step, message, intent, data):
    match = match_message_intent(message, step)
    assert match["intent"] == intent
    assert match["data"] == data


def test_collection_step_rejects_unreadable_text():
    match = match_message_intent("yes", "collect_name")
    assert match["intent"] == Intent.INVALID
    assert match["data"] == {}


@pytest.mark.parametrize("step", ["age_under_50", "holidays", "events", "health", "community"])
def test_yes_no_steps(step):
    assert match_message_intent("Yes please", step)["intent"] == Intent.YES
    assert match_message_intent("no thanks", step)["intent"] == Intent.NO
    assert match_message_intent("maybe", step)["intent"] == Intent.UNKNOWN


def test_unknown_step_and_empty_message():
    assert match_message_intent("anything", "somewhere_else")["intent"] == Intent.UNKNOWN
    assert match_message_intent(None, "registered")["intent"] == Intent.UNKNOWN
