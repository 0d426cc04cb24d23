# /marzi_bot/workflows/conditions.py

"""
Named boolean predicates used by condition nodes.

The vocabulary is closed: a flow can only branch on the names in PREDICATES.
An unknown name evaluates to False and is logged, so a typo in a stored flow
sends users down the defaultNext branch instead of breaking the turn.
"""

import logging
from typing import Any, Callable, Dict, Mapping, Optional

from marzi_bot.models.domain import CrmProfile, UserStatus
from marzi_bot.workflows import extractors

logger = logging.getLogger(__name__)

Predicate = Callable[[Mapping[str, Any], Mapping[str, Any], str, Optional[CrmProfile]], bool]


def _collected(key: str, profile: Mapping[str, Any], step_data: Mapping[str, Any]) -> Any:
    value = profile.get(key)
    return value if value is not None else step_data.get(key)


def _age(profile, step_data) -> Optional[int]:
    age = _collected("age", profile, step_data)
    return age if isinstance(age, int) else None


def _city_or_input(profile, step_data, user_input) -> str:
    return profile.get("city") or step_data.get("city") or user_input


def _crm_new(profile, step_data, user_input, crm):
    return crm is None or not crm.mobile


def _crm_lead(profile, step_data, user_input, crm):
    return crm is not None and (crm.status == UserStatus.LEAD.value or crm.age_validated is False)


def _crm_registered(profile, step_data, user_input, crm):
    return crm is not None and crm.status in (UserStatus.REGISTERED.value, UserStatus.ACTIVE.value)


def _crm_activated(profile, step_data, user_input, crm):
    return crm is not None and crm.status == UserStatus.ACTIVATED.value


def _age_under_50(profile, step_data, user_input, crm):
    age = _age(profile, step_data)
    return age is not None and age < 50


def _age_50_plus(profile, step_data, user_input, crm):
    age = _age(profile, step_data)
    return age is not None and age >= 50


def _city_bangalore(profile, step_data, user_input, crm):
    return extractors.is_bangalore_fuzzy(_city_or_input(profile, step_data, user_input))


def _city_other(profile, step_data, user_input, crm):
    return not _city_bangalore(profile, step_data, user_input, crm)


PREDICATES: Dict[str, Predicate] = {
    "crm_new": _crm_new,
    "crm_lead": _crm_lead,
    "crm_registered": _crm_registered,
    "crm_activated": _crm_activated,
    "age_under_50": _age_under_50,
    "age_50_plus": _age_50_plus,
    "city_bangalore": _city_bangalore,
    "city_other": _city_other,
    "missing_name": lambda p, s, i, c: not _collected("name", p, s),
    "missing_dob": lambda p, s, i, c: not _collected("dob", p, s),
    "missing_city": lambda p, s, i, c: not _collected("city", p, s),
    "valid_name": lambda p, s, i, c: extractors.extract_name(i) is not None,
    "valid_dob": lambda p, s, i, c: extractors.is_valid_dob(i),
    "valid_city": lambda p, s, i, c: extractors.extract_city(i) is not None,
}


def evaluate_condition(
    name: str,
    profile: Optional[Mapping[str, Any]],
    step_data: Optional[Mapping[str, Any]],
    user_input: Optional[str],
    crm_profile: Optional[CrmProfile],
) -> bool:
    """Evaluates one named predicate over the collected profile, step data, raw input and CRM snapshot."""
    predicate = PREDICATES.get(name)
    if predicate is None:
        logger.warning("unknown_predicate", extra={"predicate": name})
        return False
    return bool(predicate(profile or {}, step_data or {}, user_input or "", crm_profile))
