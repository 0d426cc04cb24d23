# /marzi_bot/workflows/definitions.py

"""
Bundled flow definitions.

These are pure data in the same shape as flow documents stored in the
bot_config collection (camelCase keys). They are the last fallback of the flow
loader, so the bot keeps working with no stored flow at all.

marzi-lead:
    CRM check -> intro -> yes/no -> name -> DOB -> city (Bengaluru -> area)
    -> age branch: 50+ -> registration menu
                   under 50 -> referral offer -> referral name, mobile, city
    registration / welcome-back menu: 1 holidays, 2 events, 3 health, 4 community
"""

from typing import Any, Dict

from marzi_bot.config.strings import COMMUNITY_LINK, SUPPORT_NUMBER, TRAVEL_GROUP_LINK

FlowDocument = Dict[str, Any]

_EXPLORE_OPTIONS = [
    {"value": "1", "label": "holidays", "next": "holidays"},
    {"value": "2", "label": "events", "next": "events"},
    {"value": "3", "label": "health", "next": "health"},
    {"value": "4", "label": "community", "next": "community"},
]

_EXPLORE_MENU_TEXT = (
    "Here's what you can explore:\n\n"
    "1️⃣ Marzi Holidays\n2️⃣ Marzi Events\n3️⃣ Marzi Health\n4️⃣ Marzi Community\n\n"
    "👉 Reply with the *number (1–4)*."
)


def _yes_no(yes: str, no: str) -> list:
    return [{"value": "yes", "label": "Yes", "next": yes}, {"value": "no", "label": "No", "next": no}]


MARZI_LEAD_FLOW: FlowDocument = {
    "id": "marzi-lead",
    "version": "1",
    "start": "check_crm",
    "links": {
        "community_link": COMMUNITY_LINK,
        "travel_group_link": TRAVEL_GROUP_LINK,
        "support_number": SUPPORT_NUMBER,
    },
    "nodes": {
        "check_crm": {
            "type": "condition",
            "conditions": [
                {"when": "crm_registered", "next": "registered"},
                {"when": "crm_activated", "next": "registered"},
            ],
            "defaultNext": "hook_intro",
        },
        "hook_intro": {"type": "message", "messageKey": "hook_intro", "next": "hook_ask_yes_no"},
        "hook_ask_yes_no": {"type": "menu", "messageKey": "hook_retry", "options": _yes_no("ask_name", "completed")},

        # Registration details
        "ask_name": {"type": "message", "messageKey": "ask_name", "next": "collect_name"},
        "collect_name": {"type": "action", "action": "save_name", "retryMessageKey": "ask_name", "next": "ask_dob"},
        "ask_dob": {"type": "message", "messageKey": "ask_dob", "next": "collect_dob"},
        "collect_dob": {"type": "action", "action": "save_dob", "retryMessageKey": "invalid_dob", "next": "ask_city"},
        "ask_city": {"type": "message", "messageKey": "ask_city", "next": "collect_city"},
        "collect_city": {"type": "action", "action": "save_city", "retryMessageKey": "ask_city_again", "next": "route_after_city"},
        "route_after_city": {
            "type": "condition",
            "conditions": [{"when": "city_bangalore", "next": "ask_area"}],
            "defaultNext": "check_age",
        },
        "ask_area": {"type": "message", "messageKey": "ask_area", "next": "collect_area"},
        "collect_area": {"type": "action", "action": "save_area", "retryMessageKey": "ask_area", "next": "check_age"},
        "check_age": {
            "type": "condition",
            "conditions": [
                {"when": "age_under_50", "next": "age_under_50"},
                {"when": "age_50_plus", "next": "registration_complete"},
            ],
            "defaultNext": "registration_complete",
        },

        # Under 50: offer to refer a parent or relative
        "age_under_50": {"type": "menu", "messageKey": "age_under_50", "options": _yes_no("referral_ask_name", "referral_decline")},
        "referral_ask_name": {"type": "message", "messageKey": "referral_ask_name", "next": "collect_referral_name"},
        "collect_referral_name": {"type": "action", "action": "save_referral_name", "retryMessageKey": "referral_ask_name", "next": "referral_ask_mobile"},
        "referral_ask_mobile": {"type": "message", "messageKey": "referral_ask_mobile", "next": "collect_referral_mobile"},
        "collect_referral_mobile": {"type": "action", "action": "save_referral_mobile", "retryMessageKey": "referral_invalid_mobile", "next": "referral_ask_city"},
        "referral_ask_city": {"type": "message", "messageKey": "referral_ask_city", "next": "collect_referral_city"},
        "collect_referral_city": {"type": "action", "action": "save_referral_city", "retryMessageKey": "referral_ask_city", "next": "tag_referral"},
        "tag_referral": {"type": "action", "action": "tag_referral_lead", "next": "referral_thanks"},
        "referral_thanks": {"type": "message", "messageKey": "referral_thanks", "next": "completed"},
        "referral_decline": {"type": "message", "messageKey": "referral_decline", "next": "completed"},

        # Menus
        "registration_complete": {"type": "menu", "messageKey": "registration_complete", "options": _EXPLORE_OPTIONS},
        "registered": {"type": "menu", "messageKey": "welcome_back", "options": _EXPLORE_OPTIONS},

        "holidays": {"type": "menu", "messageKey": "holidays", "options": _yes_no("holidays_interest", "holidays_no")},
        "holidays_interest": {"type": "action", "action": "trigger_activation_holidays", "next": "holidays_yes"},
        "holidays_yes": {"type": "message", "messageKey": "holidays_yes", "next": "registered"},
        "holidays_no": {"type": "message", "messageKey": "holidays_no", "next": "registered"},

        "events": {"type": "menu", "messageKey": "events", "options": _yes_no("events_interest", "events_no")},
        "events_interest": {"type": "action", "action": "trigger_activation_events", "next": "events_yes"},
        "events_yes": {"type": "message", "messageKey": "events_yes", "next": "registered"},
        "events_no": {"type": "message", "messageKey": "events_no", "next": "registered"},

        "health": {"type": "menu", "messageKey": "health", "options": _yes_no("health_interest", "health_no")},
        "health_interest": {"type": "action", "action": "trigger_activation_health", "next": "health_callback"},
        "health_callback": {"type": "action", "action": "trigger_support_flow", "next": "health_yes"},
        "health_yes": {"type": "message", "messageKey": "health_yes", "next": "registered"},
        "health_no": {"type": "message", "messageKey": "health_no", "next": "registered"},

        "community": {"type": "menu", "messageKey": "community", "options": _yes_no("community_interest", "community_no")},
        "community_interest": {"type": "action", "action": "trigger_activation_community", "next": "community_yes"},
        "community_yes": {"type": "message", "messageKey": "community_yes", "next": "registered"},
        "community_no": {"type": "message", "messageKey": "community_no", "next": "registered"},

        # Terminals
        "human_escalation": {"type": "message", "messageKey": "human_escalation"},
        "completed": {"type": "message", "messageKey": "closing"},
    },
    "messages": {
        "hook_intro": (
            "Hi, I'm *Marzi Support*, your friend from Marzi, India's most trusted community for people "
            "above 50 to live happier, healthier and more connected lives.\n\n"
            "Would you like to know more about what we do?\n👉 Reply *Yes* to continue or *No* to exit."
        ),
        "hook_retry": "👉 Reply *Yes* to continue or *No* to exit.",
        "ask_name": "What's your full name?",
        "ask_dob": "Lovely to meet you, *{{name}}* 😊\nPlease share your Date of Birth (DD-MM-YYYY).",
        "invalid_dob": "Please share your Date of Birth in DD-MM-YYYY format (e.g., 15-06-1965).",
        "ask_city": "Thanks, *{{name}}*!\nWhich city do you live in?",
        "ask_city_again": "Please tell us the city you live in.",
        "ask_area": "Which area of Bengaluru do you live in?",
        "age_under_50": (
            "Thanks, *{{name}}*!\nMarzi is a community specially for people aged 50+.\n"
            "Would you like to share contact details of a parent or relative who may benefit?\n"
            "👉 Reply *Yes* or *No*"
        ),
        "referral_ask_name": "Please share their *Name*.",
        "referral_ask_mobile": "Thanks! What is their *Mobile Number*?",
        "referral_invalid_mobile": "Please share a 10-digit mobile number.",
        "referral_ask_city": "And which *City* do they live in?",
        "referral_thanks": "Our team will reach out to them soon. Thank you for spreading the joy!",
        "referral_decline": "Thank you for reaching out. Stay connected through our social media pages!",
        "registration_complete": "Perfect, *{{name}}*! You're now registered with Marzi! 🎉\n\n" + _EXPLORE_MENU_TEXT,
        "welcome_back": (
            "Hi *{{name}}*! 👋\n\nWelcome back to Marzi!\n\n"
            "🔗 Join our WhatsApp Community: {{community_link}}\n\n" + _EXPLORE_MENU_TEXT
        ),
        "holidays": (
            "Marzi Holidays are senior-friendly trips designed with comfort, safety & fun.\n\n"
            "Would you like to see our upcoming tours? (Yes/No)"
        ),
        "holidays_yes": (
            "Great! I'm connecting you with our travel team. Here's our WhatsApp Travel Group: "
            "{{travel_group_link}}\n\nOur team will reach out to you shortly!"
        ),
        "holidays_no": "No problem! Here's our WhatsApp Travel Group link: {{travel_group_link}}",
        "events": (
            "Our events bring people together: music, movies, walks, workshops.\n\n"
            "Would you like to view upcoming events in *{{city}}*? (Yes/No)"
        ),
        "events_yes": "Perfect! Here's our WhatsApp Events Group for *{{city}}*:\n\n🔗 {{community_link}}",
        "events_no": "No problem! Here's our WhatsApp Events Group link:\n\n🔗 {{community_link}}",
        "health": (
            "Our wellness plans blend yoga, nutrition & physiotherapy to manage pain naturally.\n\n"
            "Would you like a Care Manager to call you? (Yes/No)"
        ),
        "health_yes": "Perfect! I've requested a Care Manager to call you. Our support number is: {{support_number}}",
        "health_no": "No problem! Here's our support number: {{support_number}}",
        "community": (
            "Marzi is a growing family of 10,000+ seniors connecting through stories & purpose.\n\n"
            "Would you like to join our WhatsApp Community? (Yes/No)"
        ),
        "community_yes": "Wonderful! Here's our WhatsApp Community link:\n\n🔗 {{community_link}}\n\nWelcome to the Marzi family! 🎉",
        "community_no": "No problem! Here's our WhatsApp Community link if you change your mind:\n\n🔗 {{community_link}}",
        "human_escalation": "That's a great question.\nLet me connect you to our Support Team.",
        "closing": "It was lovely chatting with you. Wishing you lots of Marzi moments ahead!",
    },
}

FLOWS: Dict[str, FlowDocument] = {
    MARZI_LEAD_FLOW["id"]: MARZI_LEAD_FLOW,
}
