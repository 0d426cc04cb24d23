# backend/tests/conftest.py

from datetime import date
from pathlib import Path
from typing import Any, Dict, List, Optional

import pytest
from fastapi.testclient import TestClient
from dotenv import load_dotenv
from unittest.mock import AsyncMock

# Load the test environment before any marzi_bot import: settings are read at import time.
load_dotenv(dotenv_path=Path(__file__).resolve().parents[1] / ".env.test")

from marzi_bot.main import app  # noqa: E402
from marzi_bot.models.conversation import ConversationState  # noqa: E402
from marzi_bot.models.domain import CrmProfile, EscalationRecord  # noqa: E402
from marzi_bot.models.flow import FlowDefinition  # noqa: E402
from marzi_bot.workflows.definitions import MARZI_LEAD_FLOW  # noqa: E402

TODAY = date(2026, 10, 19)


class InMemoryStore:
    """Implements the collaborator interface of the orchestrators with plain dicts."""

    def __init__(self):
        self.profiles: Dict[str, CrmProfile] = {}
        self.states: Dict[str, ConversationState] = {}
        self.escalations: List[EscalationRecord] = []
        self.flows: Dict[str, Dict[str, Any]] = {}
        self.messages: List[Dict[str, Any]] = []
        self.profile_updates: List[Dict[str, Any]] = []
        self.bot_enabled = True
        self.cooldowns: set = set()

    async def get_user_profile(self, mobile: str) -> Optional[CrmProfile]:
        return self.profiles.get(mobile)

    async def save_user_profile(self, profile: CrmProfile) -> None:
        self.profiles[profile.mobile] = profile

    async def update_user_profile(self, mobile: str, partial: Dict[str, Any]) -> None:
        self.profile_updates.append({"mobile": mobile, **partial})
        fields = {k: v for k, v in partial.items() if k not in ("interactions", "preferences")}
        if mobile in self.profiles and fields:
            self.profiles[mobile] = self.profiles[mobile].model_copy(update=fields)

    async def get_latest_conversation_state(self, mobile: str) -> Optional[ConversationState]:
        return self.states.get(mobile)

    async def save_conversation_state(self, state: ConversationState) -> None:
        self.states[state.mobile] = state

    async def create_escalation(self, record: EscalationRecord) -> str:
        self.escalations.append(record)
        return record.escalation_id

    async def has_pending_escalation(self, mobile: str) -> bool:
        return any(e.mobile == mobile and e.status == "pending" for e in self.escalations)

    async def is_bot_enabled(self) -> bool:
        return self.bot_enabled

    async def is_agent_cooldown_active(self, mobile: str) -> bool:
        return mobile in self.cooldowns

    async def get_flow_document(self, flow_id: str) -> Optional[Dict[str, Any]]:
        return self.flows.get(flow_id)

    async def log_message(self, message_data: Dict[str, Any]) -> None:
        self.messages.append(message_data)


@pytest.fixture
def store():
    return InMemoryStore()


@pytest.fixture
def lead_flow() -> FlowDefinition:
    return FlowDefinition.model_validate(MARZI_LEAD_FLOW)


@pytest.fixture
def today() -> date:
    return TODAY


@pytest.fixture(scope="function")
def test_client(mocker):
    """
    Provides a TestClient for API integration tests.
    Startup work that would reach MongoDB is mocked out.
    """
    mocker.patch("marzi_bot.utils.lifecycle.db_service.create_indexes", new_callable=AsyncMock)
    mocker.patch("marzi_bot.utils.lifecycle.flow_loader.load_flow", new_callable=AsyncMock)

    with TestClient(app) as client:
        yield client
