# backend/tests/integration/test_api.py
from unittest.mock import AsyncMock

from marzi_bot.config.settings import settings
from marzi_bot.models.conversation import ConversationReply, ConversationState, OutboundMessage, StepFlowResult
from marzi_bot.services.flow_service import FlowCache, FlowLoader

API_PREFIX = f"/api/{settings.api_version}"


def test_root_and_health(test_client):
    assert test_client.get("/").json()["status"] == "operational"
    response = test_client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


def test_readiness_follows_database_ping(test_client, mocker):
    mocker.patch("marzi_bot.routes.public.db_service.health_check", new_callable=AsyncMock, return_value=True)
    assert test_client.get("/health/ready").status_code == 200

    mocker.patch("marzi_bot.routes.public.db_service.health_check", new_callable=AsyncMock, return_value=False)
    assert test_client.get("/health/ready").status_code == 503


def test_metrics_endpoint(test_client):
    response = test_client.get("/metrics")
    assert response.status_code == 200
    assert "conversation_turns_total" in response.text


def test_turn_returns_reply(test_client, mocker):
    reply = ConversationReply(
        mobile="919845012345",
        messages=[OutboundMessage(body="What's your full name?")],
        next_step="collect_name",
    )
    mock_process = mocker.patch(
        "marzi_bot.routes.conversations.conversation_service.process_message",
        new_callable=AsyncMock, return_value=reply,
    )

    response = test_client.post(f"{API_PREFIX}/conversations/turn", json={"mobile": "9845012345", "message_text": "yes"})

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["data"]["messages"] == ["What's your full name?"]
    assert body["data"]["next_step"] == "collect_name"
    mock_process.assert_awaited_once_with("9845012345", "yes", None)


def test_turn_reports_skip_reason(test_client, mocker):
    reply = ConversationReply(mobile="919845012345", skipped=True, skip_reason="pending_escalation")
    mocker.patch("marzi_bot.routes.conversations.conversation_service.process_message", new_callable=AsyncMock, return_value=reply)

    body = test_client.post(f"{API_PREFIX}/conversations/turn", json={"mobile": "9845012345", "message_text": "hi"}).json()

    assert body["message"] == "pending_escalation"
    assert body["data"]["skipped"] is True
    assert body["data"]["messages"] == []


def test_turn_store_failure_is_503(test_client, mocker):
    mocker.patch(
        "marzi_bot.routes.conversations.conversation_service.process_message",
        new_callable=AsyncMock, side_effect=RuntimeError("mongo down"),
    )
    response = test_client.post(f"{API_PREFIX}/conversations/turn", json={"mobile": "9845012345", "message_text": "hi"})
    assert response.status_code == 503


def test_turn_rejects_invalid_body(test_client):
    response = test_client.post(f"{API_PREFIX}/conversations/turn", json={"mobile": "12"})
    assert response.status_code == 422


def test_legacy_turn(test_client, mocker):
    state = ConversationState(mobile="919845012345", conversation_id="conv_1", current_step="greeting")
    mock_flow = mocker.patch(
        "marzi_bot.routes.conversations.step_flow_service.process_conversation_flow",
        new_callable=AsyncMock, return_value=StepFlowResult(response_message="Hello!", conversation_state=state),
    )

    response = test_client.post(f"{API_PREFIX}/conversations/legacy-turn", json={"mobile": "9845012345", "message_text": "hi"})

    assert response.status_code == 200
    assert response.json()["data"]["messages"] == ["Hello!"]
    assert response.json()["data"]["next_step"] == "greeting"
    assert mock_flow.await_args.args[0]["message_text"] == "hi"


def test_get_flow_with_issues(test_client, mocker, store):
    mocker.patch("marzi_bot.routes.flows.flow_loader", FlowLoader(store=store, cache=FlowCache(60)))

    response = test_client.get(f"{API_PREFIX}/flows/marzi-lead")

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["start"] == "check_crm"
    assert data["issues"] == []
    assert data["node_count"] == len(data["nodes"])


def test_get_unknown_flow_is_404(test_client, mocker, store):
    mocker.patch("marzi_bot.routes.flows.flow_loader", FlowLoader(store=store, cache=FlowCache(60)))
    assert test_client.get(f"{API_PREFIX}/flows/does-not-exist").status_code == 404


def test_invalidate_flow_cache(test_client, mocker):
    mock_loader = mocker.patch("marzi_bot.routes.flows.flow_loader")

    response = test_client.post(f"{API_PREFIX}/flows/invalidate", json={"flow_id": "marzi-lead"})

    assert response.status_code == 200
    mock_loader.invalidate.assert_called_once_with("marzi-lead")


def test_api_key_is_enforced_when_configured(test_client, mocker):
    mocker.patch.object(settings, "api_key", "secret")

    assert test_client.get("/metrics").status_code == 403
    assert test_client.post(f"{API_PREFIX}/flows/invalidate", json={}, headers={"X-API-KEY": "wrong"}).status_code == 403
    assert test_client.get("/metrics", headers={"X-API-KEY": "secret"}).status_code == 200
