# /marzi_bot/workflows/engine.py

"""
Flow graph execution engine.

run_flow() advances one conversation by one user message:
- Preemption first: explicit escalation requests, greetings, stale steps
- Then dispatch on the type of the current node
- A successful action chains through following marker actions so a single
  reply can cross several graph edges
- The returned step is always a node of the flow (dangling targets reset to
  flow.start)

The engine does no I/O. It logs, and it never raises for bad input or a bad
graph: every path ends in a TurnResult the caller can persist.
"""

import copy
import logging
from datetime import datetime, timezone
from typing import Callable, Dict, Optional, Type

from marzi_bot.models.conversation import (
    ConversationState,
    OutboundMessage,
    ReferralEscalation,
    TurnResult,
    UserDetails,
)
from marzi_bot.models.domain import CrmProfile, EscalationReason
from marzi_bot.models.flow import (
    ActionNode,
    ConditionNode,
    FlowDefinition,
    GenericNode,
    MenuNode,
    MessageNode,
)
from marzi_bot.workflows import actions, extractors
from marzi_bot.workflows.conditions import evaluate_condition
from marzi_bot.workflows.context import TurnContext
from marzi_bot.workflows.templates import message_text, substitute_template

logger = logging.getLogger(__name__)

HUMAN_ESCALATION_NODE = "human_escalation"
REGISTERED_NODE = "registered"

RETRY_PREFIX = "Could you please try again? "
GENERIC_RETRY = "Could you please provide that again?"
ESCALATION_FALLBACK = "Thank you for reaching out. A member of our team will get in touch with you shortly."
BROKEN_FLOW_REPLY = "Sorry, something went wrong. Please try again later."

# Upper bound on nodes visited in one turn; protects against marker cycles
MAX_CHAIN_DEPTH = 25


def run_flow(
    state: ConversationState,
    user_input: Optional[str],
    crm_profile: Optional[CrmProfile],
    flow: FlowDefinition,
    now: Optional[datetime] = None,
) -> TurnResult:
    """
    Runs one turn of the conversation graph.

    Args:
        state: The conversation as it was after the previous turn (not mutated)
        user_input: Raw text the user sent
        crm_profile: The CRM record for this mobile, or None for a new contact
        flow: The flow definition to run against
        now: Clock override for age calculation and timestamps

    Returns:
        TurnResult with the replies, the new step and the escalation signals
    """
    now = now or datetime.now(timezone.utc)
    text = (user_input or "").strip()

    ctx = TurnContext(
        flow=flow,
        crm_profile=crm_profile,
        today=now.date(),
        current_step=state.current_step or flow.start,
        profile=state.user_profile.model_dump(),
        step_data=copy.deepcopy(state.step_data),
    )

    node = flow.get_node(ctx.current_step)
    if not _preempt(ctx, node, text):
        if node is None:
            _reset_to_start(ctx, reason="stale_step")
        else:
            _dispatch(ctx, node, text)

    _ensure_valid_step(ctx)
    return _build_result(ctx, state, now)


# --- Preemption ---

def _preempt(ctx: TurnContext, node, text: str) -> bool:
    """Escalation keywords and greetings override whatever node the user is on."""
    if not text:
        return False

    if extractors.should_escalate(text) and ctx.current_step != HUMAN_ESCALATION_NODE:
        ctx.escalate(EscalationReason.EXPLICIT_REQUEST.value)
        target = ctx.flow.get_node(HUMAN_ESCALATION_NODE)
        if target is not None:
            ctx.current_step = HUMAN_ESCALATION_NODE
            if not ctx.say(target):
                ctx.emit(ESCALATION_FALLBACK)
        else:
            ctx.emit(ESCALATION_FALLBACK)
        return True

    if extractors.is_greeting(text) and not _node_accepts(ctx, node, text):
        if ctx.is_known_user and ctx.flow.get_node(REGISTERED_NODE) is not None:
            _present(ctx, REGISTERED_NODE, "")
        else:
            _present(ctx, ctx.flow.start, "")
        return True

    return False


def _node_accepts(ctx: TurnContext, node, text: str) -> bool:
    """True if the node is waiting for input that this text satisfies, e.g. 'Hi, I am Ravi' at the name prompt."""
    if isinstance(node, MessageNode):
        node = ctx.flow.get_node(node.next)
    if isinstance(node, ActionNode) and actions.requires_input(node.action):
        return actions.accepts_input(node.action, text, ctx)
    return False


def _reset_to_start(ctx: TurnContext, reason: str) -> None:
    start = ctx.flow.get_node(ctx.flow.start)
    if start is None:
        ctx.emit(BROKEN_FLOW_REPLY)
        return
    logger.warning(
        "flow_step_reset",
        extra={"stale_step": ctx.current_step, "reset_to": ctx.flow.start, "reason": reason},
    )
    ctx.step_reset = True
    _present(ctx, ctx.flow.start, "")


# --- Dispatch on the current node ---

def _handle_message(ctx: TurnContext, node: MessageNode, text: str) -> None:
    next_node = ctx.flow.get_node(node.next)
    if text and isinstance(next_node, ActionNode) and actions.requires_input(next_node.action):
        # The prompt was already shown; treat this input as the answer
        ctx.current_step = node.next
        _run_action(ctx, next_node, text)
        return
    ctx.say(node)
    if node.next:
        ctx.current_step = node.next


def _handle_menu(ctx: TurnContext, node: MenuNode, text: str) -> None:
    target_id = _match_option(node, text) or node.default_next
    target = ctx.flow.get_node(target_id)
    if target is None:
        if target_id:
            logger.warning("menu_target_missing", extra={"node": ctx.current_step, "target": target_id})
        ctx.say(node)
        return

    if isinstance(target, ActionNode) and not actions.requires_input(target.action) and (target.message_key or target.text):
        # Marker with its own message: show it instead of the downstream node's
        ctx.current_step = target_id
        actions.perform_action(ctx, target.action, "")
        ctx.say(target)
        if target.next:
            ctx.current_step = target.next
        return

    _present(ctx, target_id, text)


def _handle_condition(ctx: TurnContext, node: ConditionNode, text: str) -> None:
    _resolve_condition(ctx, node, text, depth=0)


def _handle_action(ctx: TurnContext, node: ActionNode, text: str) -> None:
    _run_action(ctx, node, text)


def _handle_generic(ctx: TurnContext, node: GenericNode, text: str) -> None:
    ctx.say(node)
    if node.next:
        ctx.current_step = node.next


NODE_HANDLERS: Dict[Type, Callable] = {
    MessageNode: _handle_message,
    MenuNode: _handle_menu,
    ConditionNode: _handle_condition,
    ActionNode: _handle_action,
    GenericNode: _handle_generic,
}


def _dispatch(ctx: TurnContext, node, text: str) -> None:
    handler = NODE_HANDLERS.get(type(node), _handle_generic)
    handler(ctx, node, text)


# --- Shared traversal helpers ---

def _match_option(node: MenuNode, text: str) -> Optional[str]:
    if not text or not node.options:
        return None

    normalized = extractors.normalize_text(text)
    for option in node.options:
        if normalized and normalized in (option.value.lower(), (option.label or "").lower()):
            return option.next

    choice = extractors.get_menu_option(text)
    if choice is not None:
        for option in node.options:
            if option.value == str(choice) or option.label == str(choice):
                return option.next

    values = {option.value.lower(): option.next for option in node.options}
    if extractors.is_yes(text) and "yes" in values:
        return values["yes"]
    if extractors.is_no(text) and "no" in values:
        return values["no"]
    return None


def _run_action(ctx: TurnContext, node: ActionNode, text: str) -> None:
    """Performs the action at the cursor; on success advances and chains, on failure asks again."""
    if actions.requires_input(node.action) and not text:
        _prompt_for_input(ctx, node)
        return

    if not actions.perform_action(ctx, node.action, text):
        _emit_retry(ctx, node)
        return

    if node.next:
        _present(ctx, node.next, text, depth=1)


def _prompt_for_input(ctx: TurnContext, node: ActionNode) -> None:
    """Shows the prompt of an input action: its own message, else its retry message, else the generic line."""
    if ctx.say(node):
        return
    body = substitute_template(message_text(ctx.flow, node.retry_message_key), ctx.profile, ctx.step_data, ctx.flow.links)
    ctx.emit(body or GENERIC_RETRY)


def _emit_retry(ctx: TurnContext, node: ActionNode) -> None:
    retry_key = node.retry_message_key or node.message_key
    if not retry_key:
        ctx.emit(GENERIC_RETRY)
        return
    body = substitute_template(message_text(ctx.flow, retry_key), ctx.profile, ctx.step_data, ctx.flow.links)
    ctx.emit(f"{RETRY_PREFIX}{body}" if body else GENERIC_RETRY)


def _present(ctx: TurnContext, node_id: Optional[str], text: str, depth: int = 0) -> None:
    """
    Moves the cursor onto a node without consuming input at it.

    Messages and generic nodes are shown and stepped past, menus are shown and
    waited on, input actions show their prompt and wait, marker actions run and
    keep going, conditions are resolved in place.
    """
    node = ctx.flow.get_node(node_id)
    ctx.current_step = node_id or ctx.current_step
    if node is None:
        return
    if depth > MAX_CHAIN_DEPTH:
        logger.warning("flow_chain_too_deep", extra={"node": node_id})
        return

    if isinstance(node, (MessageNode, GenericNode)):
        ctx.say(node)
        if node.next:
            ctx.current_step = node.next
    elif isinstance(node, MenuNode):
        ctx.say(node)
    elif isinstance(node, ConditionNode):
        _resolve_condition(ctx, node, text, depth + 1)
    elif isinstance(node, ActionNode):
        if actions.requires_input(node.action):
            _prompt_for_input(ctx, node)
            return
        ctx.say(node)
        actions.perform_action(ctx, node.action, "")
        if node.next:
            _present(ctx, node.next, text, depth + 1)


def _resolve_condition(ctx: TurnContext, node: ConditionNode, text: str, depth: int) -> None:
    target_id = node.default_next
    for branch in node.conditions:
        if evaluate_condition(branch.when, ctx.profile, ctx.step_data, text, ctx.crm_profile):
            target_id = branch.next
            break

    if not target_id:
        ctx.say(node)
        return

    target = ctx.flow.get_node(target_id)
    if isinstance(target, (MessageNode, MenuNode)):
        ctx.current_step = target_id
        ctx.say(target)
        if target.next:
            ctx.current_step = target.next
        return

    emitted = len(ctx.messages)
    _present(ctx, target_id, text, depth + 1)
    if len(ctx.messages) == emitted:
        ctx.say(node)


# --- Result ---

def _ensure_valid_step(ctx: TurnContext) -> None:
    if ctx.flow.get_node(ctx.current_step) is not None:
        return
    if ctx.flow.get_node(ctx.flow.start) is None:
        return
    logger.warning("flow_step_reset", extra={"stale_step": ctx.current_step, "reset_to": ctx.flow.start, "reason": "dangling_target"})
    ctx.step_reset = True
    ctx.current_step = ctx.flow.start


def _build_result(ctx: TurnContext, state: ConversationState, now: datetime) -> TurnResult:
    now_ms = int(now.timestamp() * 1000)
    updated_state = state.model_copy(update={
        "current_step": ctx.current_step,
        "flow_state": ctx.current_step,
        "user_profile": UserDetails.model_validate(ctx.profile),
        "step_data": ctx.step_data,
        "last_interaction": now_ms,
        "created_at": state.created_at or now_ms,
    })
    referral = ReferralEscalation(**ctx.referral_escalation) if ctx.referral_escalation else None
    return TurnResult(
        messages=[OutboundMessage(body=body) for body in ctx.messages],
        next_step=ctx.current_step,
        updated_state=updated_state,
        should_escalate=ctx.should_escalate,
        escalation_reason=ctx.escalation_reason,
        referral_escalation=referral,
        support_escalation=ctx.support_escalation,
        activations=list(ctx.activations),
        step_reset=ctx.step_reset,
    )
