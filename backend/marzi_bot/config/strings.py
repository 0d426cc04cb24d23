# /marzi_bot/config/strings.py

# User-facing strings for the step-based conversation, kept in one place so the
# copy can change without touching the step handlers. Templates use
# str.format placeholders; get_message() fills them.

import logging

logger = logging.getLogger(__name__)

COMMUNITY_LINK = "https://chat.whatsapp.com/HxjCgifvxwh7jWoetYQi2z"
TRAVEL_GROUP_LINK = "https://chat.whatsapp.com/HxjCgifvxwh7jWoetYQi2z"
SUPPORT_NUMBER = "+91 80 4718 2020"

EXPLORE_MENU = (
    "Here's what you can explore:\n\n"
    "1️⃣ Marzi Holidays\n"
    "2️⃣ Marzi Events\n"
    "3️⃣ Marzi Health\n"
    "4️⃣ Marzi Community\n\n"
    "👉 Reply with the *number (1–4)*."
)

INTRO = (
    "Hi, I'm *Marzi Support*, your friend from Marzi, India's most trusted community for people "
    "above 50 to live happier, healthier and more connected lives.\n\n"
    "Would you like to know more about what we do?\n👉 Reply *Yes* to continue or *No* to exit."
)

MESSAGES = {
    "welcome_back": (
        "Hi *{name}*! 👋\n\nWelcome back to Marzi! Our team will contact you at the earliest.\n\n"
        "In the meantime, feel free to explore our community:\n\n"
        "🔗 Join our WhatsApp Community: " + COMMUNITY_LINK + "\n\n" + EXPLORE_MENU
    ),
    "greeting": INTRO,
    "ask_name": "What's your full name?",
    "ask_name_again": "Please provide your full name.",
    "ask_dob": "Lovely to meet you, *{name}* 😊\nPlease share your Date of Birth (DD-MM-YYYY).",
    "ask_city": "Thanks, *{name}*!\nWhich city do you live in?",
    "ask_city_again": "Please provide your city name.",
    "age_under_50": (
        "Thanks, *{name}*!\nMarzi is a community specially for people aged 50+.\n"
        "Would you like to share contact details of a parent or relative who may benefit?\n"
        "👉 Reply *Yes* or *No*"
    ),
    "referral_collect": (
        "Please share their *Name*, *Mobile Number*, and *City*.\n"
        "Our team will reach out soon. Thank you for spreading the joy!"
    ),
    "referral_incomplete": (
        "I couldn't find a mobile number in that. Please share their *Name*, *Mobile Number* "
        "and *City*, for example: Sunita Rao, 9845012345, Mysuru"
    ),
    "referral_thank_you": "Thank you for reaching out. Stay connected through our social media pages!",
    "registration_complete": "Perfect, *{name}*! You're now registered with Marzi! 🎉\n\n" + EXPLORE_MENU,
    "holidays": (
        "Marzi Holidays are senior-friendly trips designed with comfort, safety & fun.\n\n"
        "Would you like to see our upcoming tours? (Yes/No)"
    ),
    "holidays_yes": (
        "Great! I'm connecting you with our travel team. Here's our WhatsApp Travel Group: "
        + TRAVEL_GROUP_LINK + "\n\nOur team will reach out to you shortly!"
    ),
    "holidays_no": (
        "No problem! Here's our WhatsApp Travel Group link: " + TRAVEL_GROUP_LINK
        + "\n\nFeel free to join and explore our upcoming tours."
    ),
    "events": (
        "Our events bring people together: music, movies, walks, workshops.\n\n"
        "Would you like to view upcoming events in *{city}*? (Yes/No)"
    ),
    "events_yes": (
        "Perfect! I'm connecting you with our events team for *{city}*. Here's our WhatsApp Events Group:\n\n"
        "🔗 " + COMMUNITY_LINK + "\n\nOur team will reach out to you shortly!"
    ),
    "events_no": (
        "No problem! Here's our WhatsApp Events Group link:\n\n🔗 " + COMMUNITY_LINK
        + "\n\nFeel free to join and explore upcoming events."
    ),
    "health": (
        "Our wellness plans blend yoga, nutrition & physiotherapy to manage pain naturally.\n\n"
        "Would you like a Care Manager to call you? (Yes/No)"
    ),
    "health_yes": (
        "Perfect! I've requested a Care Manager to call you. Our support number is: " + SUPPORT_NUMBER
        + "\n\nOur team will reach out to you shortly!"
    ),
    "health_no": "No problem! Here's our support number: " + SUPPORT_NUMBER + "\n\nFeel free to reach out anytime.",
    "community": (
        "Marzi is a growing family of 10,000+ seniors connecting through stories & purpose.\n\n"
        "Would you like to join our WhatsApp Community? (Yes/No)"
    ),
    "community_yes": "Wonderful! Here's our WhatsApp Community link:\n\n🔗 " + COMMUNITY_LINK + "\n\nWelcome to the Marzi family! 🎉",
    "community_no": (
        "No problem! Here's our WhatsApp Community link if you change your mind:\n\n🔗 " + COMMUNITY_LINK
        + "\n\nFeel free to join anytime!"
    ),
    "human_escalation": "That's a great question, *{name}*.\nLet me connect you to our Support Team.",
    "closing": "It was lovely chatting with you, *{name}*. Wishing you lots of Marzi moments ahead!",
    "invalid_response": "I didn't understand that. Could you please reply with the options provided?",
    "invalid_dob": "Please share your Date of Birth in DD-MM-YYYY format (e.g., 15-06-1965).",
    "invalid_menu_option": "Please reply with a number from 1-4 to select an option.",
}

FALLBACK_REPLY = "Got it. We will get back to you shortly."

# Defaults used when a placeholder has no value yet
DEFAULT_NAME = "there"
DEFAULT_CITY = "your city"


class _Defaults(dict):
    def __missing__(self, key):
        return ""


def get_message(key: str, **values) -> str:
    """Formats a template by key; unknown keys fall back to the invalid-response line."""
    template = MESSAGES.get(key)
    if template is None:
        logger.error("message_template_missing", extra={"key": key})
        template = MESSAGES["invalid_response"]
    return template.format_map(_Defaults({k: v for k, v in values.items() if v is not None}))
