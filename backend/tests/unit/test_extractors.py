# backend/tests/unit/test_extractors.py
import pytest
from datetime import date

from marzi_bot.workflows import extractors

TODAY = date(2026, 10, 19)


@pytest.mark.parametrize("message", ["Hi", "hello!", "Good morning", "Namaste ji", "hey there"])
def test_is_greeting_detects_openers(message):
    assert extractors.is_greeting(message)


@pytest.mark.parametrize("message", ["this is high time", "Ravi", "", None])
def test_is_greeting_rejects_other_text(message):
    assert not extractors.is_greeting(message)


def test_yes_no_are_word_aware():
    assert extractors.is_yes("Yes please")
    assert extractors.is_yes("sure, go ahead")
    assert extractors.is_no("No thanks")
    assert extractors.is_no("not interested")
    # "know" contains "no" but is not a refusal
    assert not extractors.is_no("I know")
    assert not extractors.is_yes("")


@pytest.mark.parametrize("message", ["I want to talk to an agent", "HELP", "can I speak with a real person?"])
def test_should_escalate(message):
    assert extractors.should_escalate(message)


def test_should_escalate_ignores_referral_talk():
    assert not extractors.should_escalate("I know a person who may benefit")


@pytest.mark.parametrize("message, expected", [
    ("1", 1),
    ("2.", 2),
    ("3 please", 3),
    ("Tell me about holidays", 1),
    ("events", 2),
    ("community group", 4),
    ("7", None),
    ("nothing", None),
])
def test_get_menu_option(message, expected):
    assert extractors.get_menu_option(message) == expected


@pytest.mark.parametrize("message, expected", [
    ("My name is ravi kumar", "Ravi Kumar"),
    ("I am Sunita", "Sunita"),
    ("call me Anand", "Anand"),
    ("Hi, my name is Meena Iyer", "Meena Iyer"),
    ("mera naam Raju", "Raju"),
    ("lakshmi narayanan", "Lakshmi Narayanan"),
])
def test_extract_name(message, expected):
    assert extractors.extract_name(message) == expected


@pytest.mark.parametrize("message", ["hi", "yes", "ok", "123", "x", ""])
def test_extract_name_rejects_fillers(message):
    assert extractors.extract_name(message) is None


@pytest.mark.parametrize("message", ["hey how are you", "hello there", "Hello Priya Sharma", "good morning to you"])
def test_greeting_chatter_is_not_a_name(message):
    assert extractors.extract_name(message) is None


def test_extract_name_caps_word_count():
    assert extractors.extract_name("My name is a b c d e f") == "A B C D"


@pytest.mark.parametrize("raw, expected", [
    ("15/06/1965", "15-06-1965"),
    ("15-06-1965", "15-06-1965"),
    ("5.6.1965", "05-06-1965"),
    ("15 06 1965", "15-06-1965"),
    ("1965-06-15", "15-06-1965"),
    ("15/06/65", "15-06-1965"),
    ("15/06/05", "15-06-2005"),
    ("1958", "01-01-1958"),
])
def test_normalize_dob_forms(raw, expected):
    assert extractors.normalize_dob(raw, today=TODAY) == expected


@pytest.mark.parametrize("raw", ["32/01/1960", "15/13/1960", "15/06/1850", "15/06/2031", "2031", "soon", None])
def test_normalize_dob_rejects_out_of_range(raw):
    assert extractors.normalize_dob(raw, today=TODAY) is None


@pytest.mark.parametrize("canonical", ["01-01-1950", "29-02-1960", "31-12-1999"])
def test_extract_dob_is_idempotent_on_canonical_dates(canonical):
    normalized = extractors.normalize_dob(canonical, today=TODAY)
    assert extractors.extract_dob(normalized, today=TODAY) == normalized


def test_is_valid_dob_requires_a_real_calendar_day():
    assert extractors.is_valid_dob("29-02-1960", today=TODAY)
    assert not extractors.is_valid_dob("31-02-1960", today=TODAY)


def test_calculate_age_handles_birthday_not_yet_reached():
    assert extractors.calculate_age("19-10-1960", today=TODAY) == 66
    assert extractors.calculate_age("20-10-1960", today=TODAY) == 65


def test_calculate_age_rejects_future_and_garbage():
    assert extractors.calculate_age("01-01-2030", today=TODAY) is None
    assert extractors.calculate_age("not a date", today=TODAY) is None


def test_calculate_age_is_non_increasing_for_later_dobs():
    dobs = ["01-01-1950", "15-06-1960", "16-06-1960", "31-12-1975", "18-10-2000", "19-10-2000"]
    ages = [extractors.calculate_age(dob, today=TODAY) for dob in dobs]
    assert ages == sorted(ages, reverse=True)


@pytest.mark.parametrize("message, expected", [
    ("Mumbai", "Mumbai"),
    ("I live in Pune.", "Pune"),
    ("based in New Delhi", "New Delhi"),
    ("Chennai 600001", "Chennai"),
    ("it's Mysuru", "Mysuru"),
])
def test_extract_city(message, expected):
    assert extractors.extract_city(message) == expected


@pytest.mark.parametrize("message", ["ok", "12345", "a", ""])
def test_extract_city_rejects(message):
    assert extractors.extract_city(message) is None


@pytest.mark.parametrize("city", ["Bangalore", "bengaluru", "B'lore", "BLR", "Banglore", "South Bangalore"])
def test_is_bangalore_fuzzy_matches_aliases_and_typos(city):
    assert extractors.is_bangalore_fuzzy(city)


@pytest.mark.parametrize("city", ["Mangalore", "Mumbai", "", None])
def test_is_bangalore_fuzzy_rejects_other_cities(city):
    assert not extractors.is_bangalore_fuzzy(city)


def test_extract_mobile_needs_ten_digits():
    assert extractors.extract_mobile("+91 98450-12345") == "919845012345"
    assert extractors.extract_mobile("12345") is None


def test_extract_referral_details_labelled():
    details = extractors.extract_referral_details("Name: Sunita Rao, Mobile: 98450 12345, City: Mysuru")
    assert details == {"name": "Sunita Rao", "mobile": "9845012345", "city": "Mysuru"}


def test_extract_referral_details_nothing_usable():
    assert extractors.extract_referral_details("") is None
