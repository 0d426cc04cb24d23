# backend/tests/unit/test_validator.py
from marzi_bot.models.flow import FlowDefinition, GenericNode
from marzi_bot.workflows.validator import validate_flow


def _codes(issues):
    return sorted(issue["error_code"] for issue in issues)


def test_bundled_flow_is_clean(lead_flow):
    assert validate_flow(lead_flow) == []


def test_reports_structural_problems():
    flow = FlowDefinition.model_validate({
        "id": "broken",
        "start": "nowhere",
        "nodes": {
            "menu": {"type": "menu", "options": []},
            "pick": {"type": "menu", "options": [{"value": 1, "next": "ghost"}], "defaultNext": "ghost2"},
            "cond": {"type": "condition", "conditions": [{"when": "is_tuesday", "next": "menu"}]},
            "act": {"type": "action", "action": "launch_rocket", "next": "menu"},
            "marker": {"type": "action", "action": "trigger_activation_events", "next": "menu"},
            "odd": {"type": "webhook", "text": "hi", "next": "menu"},
            "msg": {"type": "message", "messageKey": "absent", "next": "menu"},
        },
    })

    issues = validate_flow(flow)

    assert _codes(issues) == sorted([
        "MISSING_START",
        "EMPTY_MENU",
        "DANGLING_TARGET",
        "DANGLING_TARGET",
        "UNKNOWN_PREDICATE",
        "UNKNOWN_ACTION",
        "UNKNOWN_NODE_TYPE",
        "MISSING_MESSAGE",
    ])
    assert {i["node_id"] for i in issues if i["error_code"] == "DANGLING_TARGET"} == {"pick"}


def test_unknown_node_type_parses_as_generic():
    flow = FlowDefinition.model_validate({
        "id": "g", "start": "a", "nodes": {"a": {"type": "carousel", "text": "x"}},
    })
    assert isinstance(flow.nodes["a"], GenericNode)
    assert flow.nodes["a"].type == "carousel"


def test_empty_flow():
    flow = FlowDefinition(id="empty", start="a", nodes={})
    assert _codes(validate_flow(flow)) == ["EMPTY_FLOW"]
