# /marzi_bot/workflows/validator.py

"""
Pure validation of flow definitions.

validate_flow() reports structural problems in a flow graph: a missing start
node, edges pointing at nodes that do not exist, and action or predicate names
outside the engine's vocabulary. The engine tolerates every one of these at
runtime, so issues are reported, never raised.

All functions are:
- Pure (no side effects)
- Deterministic (same input = same output)
- No database access
- No logging
"""

from typing import List, Optional, TypedDict

from marzi_bot.models.flow import ActionNode, ConditionNode, FlowDefinition, GenericNode, MenuNode
from marzi_bot.workflows.actions import is_known_action
from marzi_bot.workflows.conditions import PREDICATES


class ValidationIssue(TypedDict):
    """One problem found in a flow definition."""
    error_code: str
    node_id: Optional[str]
    message: str


def _issue(error_code: str, node_id: Optional[str], message: str) -> ValidationIssue:
    return {"error_code": error_code, "node_id": node_id, "message": message}


def _check_target(flow: FlowDefinition, node_id: str, target: Optional[str], edge: str) -> List[ValidationIssue]:
    if target and target not in flow.nodes:
        return [_issue("DANGLING_TARGET", node_id, f"{edge} of node '{node_id}' points to unknown node '{target}'")]
    return []


def validate_flow(flow: FlowDefinition) -> List[ValidationIssue]:
    """
    Validate a flow graph.

    Args:
        flow: The flow definition to check

    Returns:
        A list of ValidationIssue dicts, empty when the flow is clean
    """
    issues: List[ValidationIssue] = []

    if not flow.nodes:
        return [_issue("EMPTY_FLOW", None, f"Flow '{flow.id}' has no nodes")]

    if flow.start not in flow.nodes:
        issues.append(_issue("MISSING_START", None, f"Start node '{flow.start}' is not defined"))

    for node_id, node in flow.nodes.items():
        issues.extend(_check_target(flow, node_id, node.next, "next"))

        if isinstance(node, MenuNode):
            if not node.options:
                issues.append(_issue("EMPTY_MENU", node_id, f"Menu '{node_id}' has no options"))
            for option in node.options:
                issues.extend(_check_target(flow, node_id, option.next, f"option '{option.value}'"))
            issues.extend(_check_target(flow, node_id, node.default_next, "defaultNext"))

        elif isinstance(node, ConditionNode):
            for branch in node.conditions:
                if branch.when not in PREDICATES:
                    issues.append(_issue("UNKNOWN_PREDICATE", node_id, f"Condition '{branch.when}' in node '{node_id}' is not a known predicate"))
                issues.extend(_check_target(flow, node_id, branch.next, f"condition '{branch.when}'"))
            issues.extend(_check_target(flow, node_id, node.default_next, "defaultNext"))

        elif isinstance(node, ActionNode):
            if not is_known_action(node.action):
                issues.append(_issue("UNKNOWN_ACTION", node_id, f"Action '{node.action}' in node '{node_id}' is not a known action"))

        elif isinstance(node, GenericNode):
            issues.append(_issue("UNKNOWN_NODE_TYPE", node_id, f"Node '{node_id}' has unknown type '{node.type}'"))

        if node.message_key and node.message_key not in flow.messages:
            issues.append(_issue("MISSING_MESSAGE", node_id, f"Message key '{node.message_key}' of node '{node_id}' is not in messages"))

    return issues
