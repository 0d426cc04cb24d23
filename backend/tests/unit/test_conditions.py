# backend/tests/unit/test_conditions.py
import pytest

from marzi_bot.models.domain import CrmProfile
from marzi_bot.workflows.conditions import PREDICATES, evaluate_condition


def _crm(status="lead", **fields):
    return CrmProfile(mobile="919845012345", status=status, **fields)


@pytest.mark.parametrize("predicate, crm, expected", [
    ("crm_new", None, True),
    ("crm_new", _crm(), False),
    ("crm_lead", _crm("lead"), True),
    ("crm_lead", _crm("registered", age_validated=False), True),
    ("crm_registered", _crm("registered"), True),
    ("crm_registered", _crm("active"), True),
    ("crm_registered", _crm("activated"), False),
    ("crm_activated", _crm("activated"), True),
    ("crm_activated", None, False),
])
def test_crm_predicates(predicate, crm, expected):
    assert evaluate_condition(predicate, {}, {}, "", crm) is expected


def test_age_predicates_read_profile_then_step_data():
    assert evaluate_condition("age_under_50", {"age": 42}, {}, "", None)
    assert evaluate_condition("age_50_plus", {}, {"age": 50}, "", None)
    assert not evaluate_condition("age_under_50", {}, {}, "", None)
    assert not evaluate_condition("age_50_plus", {}, {}, "", None)


def test_city_predicates_fall_back_to_input():
    assert evaluate_condition("city_bangalore", {"city": "Bengaluru"}, {}, "", None)
    assert evaluate_condition("city_bangalore", {}, {}, "blr", None)
    assert evaluate_condition("city_other", {"city": "Chennai"}, {}, "", None)


def test_missing_and_valid_predicates():
    assert evaluate_condition("missing_name", {}, {}, "", None)
    assert not evaluate_condition("missing_dob", {"dob": "01-01-1960"}, {}, "", None)
    assert evaluate_condition("valid_name", {}, {}, "My name is Ravi", None)
    assert evaluate_condition("valid_dob", {}, {}, "15/06/1965", None)
    assert not evaluate_condition("valid_city", {}, {}, "123", None)


def test_unknown_predicate_fails_closed():
    assert evaluate_condition("is_full_moon", {}, {}, "", None) is False
    assert "is_full_moon" not in PREDICATES


def test_none_inputs_are_tolerated():
    assert evaluate_condition("missing_city", None, None, None, None) is True
