# /marzi_bot/utils/phone.py

import re

INDIA_COUNTRY_CODE = "91"
MAX_E164_DIGITS = 15


def normalize_mobile(raw: str | None) -> str:
    """
    Digits-only mobile number used as the key of every per-user record.

    A bare 10-digit Indian mobile (starting 6-9) gets the 91 country code, so
    "98450 12345", "+91 98450-12345" and "919845012345" are the same user.
    """
    if not raw:
        return ""
    digits = re.sub(r"\D", "", str(raw))
    if len(digits) == 10 and digits[0] in "6789":
        return INDIA_COUNTRY_CODE + digits
    return digits[-MAX_E164_DIGITS:]
