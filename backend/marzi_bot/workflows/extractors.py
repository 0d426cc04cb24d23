# /marzi_bot/workflows/extractors.py

"""
Free-text parsing primitives.

Every function here is pure: it reads a user message (and optionally "today")
and returns a normalized value or a boolean. None means "could not extract".
Nothing here logs, raises on bad input, or touches conversation state.
"""

import re
from datetime import date
from typing import Dict, Optional, Tuple, Set, List

from rapidfuzz import fuzz

from marzi_bot.config import rules

Rule = Tuple[Set[str], List[str]]


def normalize_text(text: Optional[str]) -> str:
    """Lowercase, trim, strip punctuation and collapse whitespace."""
    if not text or not isinstance(text, str):
        return ""
    lowered = rules.PUNCTUATION_RE.sub("", text.lower().strip())
    return rules.WHITESPACE_RE.sub(" ", lowered).strip()


def _collapse(text: str) -> str:
    return rules.WHITESPACE_RE.sub(" ", text.strip())


def matches_rule(message: Optional[str], rule: Rule) -> bool:
    """True if any single token is a whole word of the message or any phrase occurs in it."""
    normalized = normalize_text(message)
    if not normalized:
        return False
    tokens, phrases = rule
    words = normalized.split(" ")
    if any(word in tokens for word in words):
        return True
    padded = f" {normalized} "
    return any(f" {phrase} " in padded for phrase in phrases)


def is_greeting(message: Optional[str]) -> bool:
    normalized = normalize_text(message)
    if not normalized:
        return False
    return any(
        normalized == phrase or normalized.startswith(phrase + " ")
        for phrase in rules.GREETING_PHRASES
    )


def is_yes(message: Optional[str]) -> bool:
    return matches_rule(message, rules.YES_RULE)


def is_no(message: Optional[str]) -> bool:
    return matches_rule(message, rules.NO_RULE)


def should_escalate(message: Optional[str]) -> bool:
    """Detects explicit requests for a human (help, agent, talk to someone...)."""
    return matches_rule(message, rules.ESCALATION_RULE)


def get_menu_option(message: Optional[str]) -> Optional[int]:
    """Returns 1-4 from a leading number or a menu keyword, else None."""
    normalized = normalize_text(message)
    if not normalized:
        return None

    number_match = re.match(r"^(\d+)", normalized)
    if number_match:
        number = int(number_match.group(1))
        if 1 <= number <= 4:
            return number

    words = set(normalized.split(" "))
    for option, keywords in rules.MENU_KEYWORDS.items():
        if any(keyword in words for keyword in keywords):
            return option
    return None


def _is_filler(text: str) -> bool:
    normalized = normalize_text(text)
    return normalized in rules.FILLER_WORDS or normalized in rules.GREETING_PHRASES


def normalize_name_for_display(name: Optional[str]) -> str:
    """Capitalize each word: 'ravi  KUMAR' -> 'Ravi Kumar'."""
    if not name or not isinstance(name, str):
        return ""
    words = _collapse(name).split(" ")
    return " ".join(w[0].upper() + w[1:].lower() if w else w for w in words)


def _clean_name_candidate(raw: str) -> Optional[str]:
    parts = _collapse(raw).split(" ")[:rules.MAX_NAME_WORDS]
    candidate = " ".join(parts).strip(" .'-")
    if _is_filler(candidate):
        return None
    if 2 <= len(candidate) <= 80 and re.search(r"[a-zA-Z]", candidate):
        return normalize_name_for_display(candidate)
    return None


def extract_name(message: Optional[str]) -> Optional[str]:
    """
    Pulls a display-cased name out of a reply.

    Handles "my name is X", "I am X", "call me X", "mera naam X", honorifics and
    bare names. Greetings and yes/no fillers on their own are never names.
    """
    if not message or not isinstance(message, str):
        return None
    text = _collapse(message)
    if len(text) < 2 or len(text) > 100 or _is_filler(text):
        return None

    for pattern in rules.NAME_PATTERNS:
        match = pattern.search(text)
        if match and match.group(1):
            name = _clean_name_candidate(match.group(1))
            if name:
                return name

    # After a greeting only an explicit "my name is" / "I am" counts
    if is_greeting(text):
        return None
    if rules.BARE_NAME_RE.match(text) and re.search(r"[a-zA-Z]{2,}", text):
        return _clean_name_candidate(text)
    return None


def _expand_two_digit_year(yy: int) -> int:
    return 2000 + yy if yy <= rules.TWO_DIGIT_YEAR_PIVOT else 1900 + yy


def normalize_dob(dob: Optional[str], today: Optional[date] = None) -> Optional[str]:
    """
    Normalizes a date of birth to DD-MM-YYYY.

    Accepts '-', '/', '.' or space delimiters in DMY, YMD or DMY with a two digit
    year, and a bare four digit year (day and month default to 01).
    """
    if not dob or not isinstance(dob, str):
        return None
    text = dob.strip()
    this_year = (today or date.today()).year

    year_only = rules.YEAR_ONLY_RE.match(text)
    if year_only:
        year = int(year_only.group(1))
        if 1900 <= year <= this_year:
            return f"01-01-{year}"
        return None

    for pattern in rules.DOB_PATTERNS:
        match = pattern.search(text)
        if not match:
            continue
        first, second, third = match.groups()
        if len(first) == 4:
            year, month, day = int(first), int(second), int(third)
        elif len(third) == 2:
            day, month, year = int(first), int(second), _expand_two_digit_year(int(third))
        else:
            day, month, year = int(first), int(second), int(third)

        if 1 <= day <= 31 and 1 <= month <= 12 and 1900 <= year <= this_year:
            return f"{day:02d}-{month:02d}-{year}"
    return None


def extract_dob(message: Optional[str], today: Optional[date] = None) -> Optional[str]:
    if not message or not isinstance(message, str):
        return None
    return normalize_dob(message.strip(), today=today)


def parse_dob(dob: Optional[str]) -> Optional[date]:
    """Parses DD-MM-YYYY (or DD/MM/YYYY) into a date; None if not a real calendar day."""
    if not dob or not isinstance(dob, str):
        return None
    parts = re.split(r"[-/]", dob.strip())
    if len(parts) != 3 or not all(p.isdigit() for p in parts):
        return None
    day, month, year = (int(p) for p in parts)
    try:
        return date(year, month, day)
    except ValueError:
        return None


def is_valid_dob(dob: Optional[str], today: Optional[date] = None) -> bool:
    normalized = normalize_dob(dob, today=today)
    return normalized is not None and parse_dob(normalized) is not None


def calculate_age(dob: Optional[str], today: Optional[date] = None) -> Optional[int]:
    """Whole years between dob and today; None for unparsable or future dates."""
    birth = parse_dob(dob)
    if birth is None:
        return None
    today = today or date.today()
    if birth > today:
        return None
    age = today.year - birth.year
    if (today.month, today.day) < (birth.month, birth.day):
        age -= 1
    return age


def extract_city(message: Optional[str]) -> Optional[str]:
    """Strips 'I live in', 'based in' style prefixes, trailing punctuation and PIN codes."""
    if not message or not isinstance(message, str):
        return None
    text = _collapse(message)
    text = rules.CITY_PREFIX_RE.sub("", text)
    text = rules.CITY_ITS_RE.sub("", text)
    text = rules.CITY_TRAILING_PUNCT_RE.sub("", text)
    text = rules.CITY_POSTAL_CODE_RE.sub("", text)
    text = rules.CITY_TRAILING_PUNCT_RE.sub("", text).strip()

    if len(text) < 2 or len(text) > 80 or not re.search(r"[a-zA-Z]", text):
        return None
    if _is_filler(text):
        return None
    return text


def is_bangalore_fuzzy(city: Optional[str]) -> bool:
    """Bengaluru, Bangalore, B'lore, Blr and close misspellings such as 'Banglore'."""
    if not city or not isinstance(city, str):
        return False
    normalized = rules.WHITESPACE_RE.sub(" ", city.strip().lower()).replace("'", "").replace("’", "")
    if len(normalized) < 2:
        return False
    if normalized in rules.BANGALORE_ALIASES or rules.BANGALORE_ALIAS_RE.search(normalized):
        return True

    for token in normalize_text(normalized).split(" "):
        if len(token) < rules.BANGALORE_FUZZY_MIN_LENGTH:
            continue
        for alias in rules.BANGALORE_ALIASES:
            if len(alias) >= rules.BANGALORE_FUZZY_MIN_LENGTH and fuzz.ratio(token, alias) >= rules.BANGALORE_FUZZY_THRESHOLD:
                return True
    return False


def extract_mobile(message: Optional[str]) -> Optional[str]:
    if not message or not isinstance(message, str):
        return None
    digits = re.sub(r"\D", "", message)
    return digits if len(digits) >= rules.MIN_MOBILE_DIGITS else None


_REFERRAL_LABEL_STOP = r"(?=\s*[,;\n]|\s+(?:mobile|phone|number|contact|city|location)\b|$)"
_REFERRAL_NAME_RE = re.compile(r"(?:parent\s+name|name)\s*(?:is|:)?\s*([a-zA-Z][a-zA-Z\s.']{1,49}?)" + _REFERRAL_LABEL_STOP, re.I)
_REFERRAL_CITY_RE = re.compile(r"(?:city|location)\s*(?:is|:)?\s*([a-zA-Z][a-zA-Z\s]{1,49}?)" + _REFERRAL_LABEL_STOP, re.I)
_REFERRAL_MOBILE_RE = re.compile(r"\+?[\d][\d\s-]{8,16}\d")


def extract_referral_details(message: Optional[str]) -> Optional[Dict[str, Optional[str]]]:
    """
    Pulls a referred person's name, mobile and city out of one message, e.g.
    "Name: Sunita Rao, Mobile: 98450 12345, City: Mysuru" or "Sunita, 9845012345, Mysuru".
    Returns None when nothing usable is found.
    """
    if not message or not isinstance(message, str):
        return None
    text = message.strip()
    details: Dict[str, Optional[str]] = {"name": None, "mobile": None, "city": None}

    mobile_match = _REFERRAL_MOBILE_RE.search(text)
    if mobile_match:
        digits = re.sub(r"\D", "", mobile_match.group(0))
        if len(digits) >= rules.MIN_MOBILE_DIGITS:
            details["mobile"] = digits[-rules.MIN_MOBILE_DIGITS:]

    name_match = _REFERRAL_NAME_RE.search(text)
    if name_match:
        details["name"] = normalize_name_for_display(name_match.group(1))
    city_match = _REFERRAL_CITY_RE.search(text)
    if city_match:
        details["city"] = city_match.group(1).strip()

    # Unlabelled "name, number, city"
    if not details["name"] or not details["city"]:
        chunks = [c.strip() for c in re.split(r"[,;\n]", text) if c.strip()]
        wordy = [c for c in chunks if not re.search(r"\d", c) and re.search(r"[a-zA-Z]", c)]
        if not details["name"] and wordy:
            details["name"] = extract_name(wordy[0])
            wordy = wordy[1:]
        if not details["city"] and wordy:
            details["city"] = extract_city(wordy[-1])

    if any(details.values()):
        return details
    return None
