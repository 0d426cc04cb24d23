# backend/tests/unit/test_db_service.py
import time
import pytest
from unittest.mock import AsyncMock, MagicMock

from marzi_bot.services.db_service import DatabaseService, db_service


@pytest.fixture
def bot_config(mocker):
    """Replaces the bot_config collection and clears the cached kill switch."""
    collection = MagicMock()
    collection.find_one = AsyncMock(return_value=None)
    mocker.patch.object(DatabaseService, "bot_config", new_callable=mocker.PropertyMock, return_value=collection)
    mocker.patch.object(db_service, "_bot_enabled_cache", None)
    return collection


def _minutes_ago(minutes):
    return int(time.time() * 1000) - minutes * 60 * 1000


@pytest.mark.asyncio
async def test_bot_enabled_defaults_to_true_when_unset(bot_config):
    assert await db_service.is_bot_enabled() is True
    bot_config.find_one.assert_awaited_once()
    assert bot_config.find_one.await_args.args[0] == {"config_key": "botEnabled"}


@pytest.mark.asyncio
async def test_bot_enabled_reads_stored_switch_and_caches_it(bot_config):
    bot_config.find_one.return_value = {"enabled": False}

    assert await db_service.is_bot_enabled() is False
    bot_config.find_one.return_value = {"enabled": True}
    assert await db_service.is_bot_enabled() is False
    assert bot_config.find_one.await_count == 1


@pytest.mark.asyncio
async def test_bot_enabled_fails_open(bot_config):
    bot_config.find_one.side_effect = RuntimeError("mongo down")
    assert await db_service.is_bot_enabled() is True


@pytest.mark.asyncio
@pytest.mark.parametrize("document, expected", [
    (None, False),
    ({"timestamp": _minutes_ago(10)}, True),
    ({"timestamp": _minutes_ago(120)}, False),
    ({"timestamp": "yesterday"}, False),
])
async def test_agent_cooldown(bot_config, document, expected):
    bot_config.find_one.return_value = document

    assert await db_service.is_agent_cooldown_active("919845012345") is expected
    assert bot_config.find_one.await_args.args[0] == {"config_key": "agent_cooldown_919845012345"}


@pytest.mark.asyncio
async def test_agent_cooldown_check_fails_open(bot_config):
    bot_config.find_one.side_effect = RuntimeError("mongo down")
    assert await db_service.is_agent_cooldown_active("919845012345") is False
