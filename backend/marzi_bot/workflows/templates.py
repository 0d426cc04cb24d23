# /marzi_bot/workflows/templates.py

import re
from typing import Any, Mapping, Optional

from marzi_bot.models.flow import FlowDefinition

# {{identifier}} placeholders, whitespace inside the braces tolerated
PLACEHOLDER_RE = re.compile(r"\{\{\s*(\w+)\s*\}\}")


def _lookup(key: str, *sources: Optional[Mapping[str, Any]]) -> str:
    for source in sources:
        if not source:
            continue
        value = source.get(key)
        if value is not None:
            return str(value)
    return ""


def substitute_template(
    template: Optional[str],
    profile: Optional[Mapping[str, Any]] = None,
    step_data: Optional[Mapping[str, Any]] = None,
    links: Optional[Mapping[str, Any]] = None,
) -> str:
    """
    Replaces every {{name}} with the first value found in profile, step data,
    then links. Missing values become "". Substituted values are not expanded again.
    """
    if not template:
        return ""
    return PLACEHOLDER_RE.sub(lambda m: _lookup(m.group(1), profile, step_data, links), template)


def message_text(flow: FlowDefinition, key: Optional[str]) -> str:
    """flow.messages[key], or the key itself when the flow has no such message."""
    if not key:
        return ""
    return flow.messages.get(key) or key


def resolve_message(
    flow: FlowDefinition,
    node: Any,
    profile: Optional[Mapping[str, Any]] = None,
    step_data: Optional[Mapping[str, Any]] = None,
) -> str:
    """Resolved text of a node: its messageKey template, else its inline text."""
    if node is None:
        return ""
    message_key = getattr(node, "message_key", None)
    template = message_text(flow, message_key) if message_key else (getattr(node, "text", None) or "")
    return substitute_template(template, profile, step_data, flow.links)
