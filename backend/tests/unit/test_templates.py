# backend/tests/unit/test_templates.py
from marzi_bot.models.flow import FlowDefinition
from marzi_bot.workflows.templates import message_text, resolve_message, substitute_template


def _flow(**overrides):
    document = {
        "id": "t",
        "start": "a",
        "nodes": {
            "a": {"type": "message", "messageKey": "welcome"},
            "b": {"type": "message", "messageKey": "not_defined"},
            "c": {"type": "message", "text": "Inline {{name}}"},
            "d": {"type": "message"},
        },
        "messages": {"welcome": "Hi {{name}}, join {{ community_link }}"},
        "links": {"community_link": "https://example.org/c"},
    }
    document.update(overrides)
    return FlowDefinition.model_validate(document)


def test_substitute_looks_up_profile_then_step_data_then_links():
    template = "{{name}} / {{city}} / {{link}}"
    result = substitute_template(
        template,
        profile={"name": "Ravi", "city": None},
        step_data={"city": "Pune", "name": "ignored"},
        links={"link": "L", "city": "ignored"},
    )
    assert result == "Ravi / Pune / L"


def test_substitute_missing_variable_becomes_empty():
    assert substitute_template("Hello {{nobody}}!", {}, {}, {}) == "Hello !"


def test_substitute_is_single_pass():
    assert substitute_template("{{a}}", {"a": "{{b}}", "b": "x"}) == "{{b}}"


def test_message_text_falls_back_to_key():
    flow = _flow()
    assert message_text(flow, "welcome").startswith("Hi ")
    assert message_text(flow, "not_defined") == "not_defined"


def test_resolve_message_uses_key_then_inline_text():
    flow = _flow()
    profile = {"name": "Meena"}
    assert resolve_message(flow, flow.nodes["a"], profile, {}) == "Hi Meena, join https://example.org/c"
    assert resolve_message(flow, flow.nodes["b"], profile, {}) == "not_defined"
    assert resolve_message(flow, flow.nodes["c"], profile, {}) == "Inline Meena"
    assert resolve_message(flow, flow.nodes["d"], profile, {}) == ""
    assert resolve_message(flow, None, profile, {}) == ""
