# /marzi_bot/config/rules.py

import re

# This file contains the vocabularies used to understand free-text replies.
# Lists are checked in order, so earlier entries win.

# Precompiled regex for normalization
PUNCTUATION_RE = re.compile(r"[^\w\s]")
WHITESPACE_RE = re.compile(r"\s+")

# Greetings match the whole message or its opening words only.
GREETING_PHRASES = [
    "hello", "hi", "hey", "hii", "hiii", "hey there", "hi there",
    "good morning", "good afternoon", "good evening", "gm", "ga", "ge",
    "namaste", "namaskar", "greetings", "greeting",
]

# Each rule is a tuple: ({single_word_tokens}, [multi_word_phrases])
YES_RULE = (
    {"yes", "y", "ya", "yeah", "yep", "yup", "ok", "okay", "sure", "alright",
     "correct", "absolutely", "definitely", "haan", "haanji", "please"},
    ["of course", "i want", "i would like", "go ahead", "lets go", "lets do it", "sounds good"],
)

NO_RULE = (
    {"no", "n", "nah", "nope", "not", "dont", "never", "skip", "nahi", "na"},
    ["not interested", "not now", "maybe later", "no thanks", "no thank you"],
)

ESCALATION_RULE = (
    {"help", "support", "agent", "human", "representative", "complaint",
     "refund", "urgent", "emergency", "payment"},
    ["talk to", "speak to", "speak with", "not working", "customer care", "customer service",
     "real person"],
)

# Menu keywords per option number, checked after a leading digit.
MENU_KEYWORDS = {
    1: ["holiday", "holidays", "travel", "trip", "tour", "vacation", "one", "1st", "first"],
    2: ["event", "events", "activity", "activities", "meetup", "two", "2nd", "second"],
    3: ["health", "wellness", "care", "medical", "doctor", "three", "3rd", "third"],
    4: ["community", "group", "social", "four", "4th", "fourth"],
}

# Replies that are never names or cities on their own
FILLER_WORDS = {
    "yes", "y", "ya", "yeah", "yep", "no", "n", "na", "nah", "nope", "ok", "okay",
    "sure", "alright", "hmm", "thanks", "thank you", "thankyou",
}

NAME_PATTERNS = [
    re.compile(r"(?:hello|hi|hey|greetings?|namaste|namaskar)[\s,]*my\s+name\s+is\s+([a-zA-Z\s.'-]+)", re.I),
    re.compile(r"(?:my\s+)?name\s+is\s+([a-zA-Z\s.'-]+)", re.I),
    re.compile(r"(?:mera\s+naam|mujhe\s+kehte\s+hain)\s+([a-zA-Z\s.'-]+)", re.I),
    re.compile(r"\bi\s+am\s+called\s+([a-zA-Z\s.'-]+)", re.I),
    re.compile(r"\bi\s*am\s+([a-zA-Z\s.'-]+)", re.I),
    re.compile(r"\b(?:this\s+is|call\s+me)\s+([a-zA-Z\s.'-]+)", re.I),
    re.compile(r"\b(?:i'm|im)\s+([a-zA-Z\s.'-]+)", re.I),
    re.compile(r"\bname[:\s]+([a-zA-Z\s.'-]+)", re.I),
    re.compile(r"^(?:dr\.?|shri|smt\.?|mr\.?|mrs\.?|ms\.?)\s*([a-zA-Z\s.'-]+)$", re.I),
]
BARE_NAME_RE = re.compile(r"^[a-zA-Z\s.'-]{2,80}$")
MAX_NAME_WORDS = 4

DOB_PATTERNS = [
    re.compile(r"(\d{1,2})[-/.\s](\d{1,2})[-/.\s](\d{4})"),
    re.compile(r"(\d{4})[-/.\s](\d{1,2})[-/.\s](\d{1,2})"),
    re.compile(r"(\d{1,2})[-/.\s](\d{1,2})[-/.\s](\d{2})\b"),
]
YEAR_ONLY_RE = re.compile(r"^(\d{4})$")
TWO_DIGIT_YEAR_PIVOT = 50  # 00-50 -> 2000s, 51-99 -> 1900s

CITY_PREFIX_RE = re.compile(
    r"^(?:i\s+live\s+in|i\s+am\s+from|i\s+am\s+in|i'm\s+from|my\s+city\s+is|city\s+is|i\s+stay\s+in|"
    r"staying\s+in|located\s+in|based\s+in|mera\s+city|mera\s+shehar|i\s+reside\s+in)\s*",
    re.I,
)
CITY_ITS_RE = re.compile(r"^(?:it'?s?|its)\s+", re.I)
CITY_TRAILING_PUNCT_RE = re.compile(r"\s*[.,;:!?]+\s*$")
CITY_POSTAL_CODE_RE = re.compile(r"[\s,-]+\d{6}\s*$")

BANGALORE_ALIASES = ["bangalore", "bengaluru", "benguluru", "bengalooru", "blr", "blore"]
BANGALORE_ALIAS_RE = re.compile(r"\b(" + "|".join(BANGALORE_ALIASES) + r")\b")
BANGALORE_FUZZY_THRESHOLD = 90
BANGALORE_FUZZY_MIN_LENGTH = 6
BANGALORE_CANONICAL = "Bengaluru"

# Referral mobile numbers need at least this many digits
MIN_MOBILE_DIGITS = 10
