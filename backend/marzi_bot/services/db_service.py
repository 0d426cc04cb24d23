# /marzi_bot/services/db_service.py

import json
import logging
import time
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional, Tuple

from motor.motor_asyncio import AsyncIOMotorClient

from marzi_bot.config.settings import settings
from marzi_bot.models.conversation import ConversationState
from marzi_bot.models.domain import CrmProfile, EscalationRecord
from marzi_bot.utils.metrics import database_operations_counter

logger = logging.getLogger(__name__)

DEFAULT_DATABASE = "marzi"
FLOW_CONFIG_PREFIX = "flow_"
BOT_ENABLED_KEY = "botEnabled"
AGENT_COOLDOWN_PREFIX = "agent_cooldown_"


class DatabaseService:
    """
    MongoDB persistence for CRM profiles, conversation states, escalations,
    stored flow documents and the message log.

    Errors from the driver are not caught here: callers decide whether a turn
    fails, so a broken database never turns into a silently lost message.
    """

    def __init__(self, mongo_uri: str):
        try:
            self.client = AsyncIOMotorClient(
                mongo_uri,
                maxPoolSize=settings.max_pool_size,
                minPoolSize=settings.min_pool_size,
                serverSelectionTimeoutMS=5000,
                connectTimeoutMS=10000
            )
            self.db = self.client.get_default_database(DEFAULT_DATABASE)
            self._bot_enabled_cache: Optional[Tuple[bool, float]] = None
            logger.info("MongoDB client initialized successfully.")
        except Exception as e:
            logger.error(f"Error initializing MongoDB client: {e}")
            raise

    @property
    def profiles(self):
        return self.db[settings.user_profile_collection]

    @property
    def states(self):
        return self.db[settings.conversation_state_collection]

    @property
    def escalations(self):
        return self.db[settings.escalation_collection]

    @property
    def bot_config(self):
        return self.db[settings.bot_config_collection]

    @property
    def message_logs(self):
        return self.db[settings.message_log_collection]

    def _now_ms(self) -> int:
        return int(datetime.now(timezone.utc).timestamp() * 1000)

    # ==================== Index Management ====================

    async def create_indexes(self) -> None:
        """Create all necessary database indexes on startup."""
        indexes = [
            (settings.user_profile_collection, [("mobile", 1)], {"unique": True}),
            (settings.conversation_state_collection, [("mobile", 1)], {"unique": True}),
            (settings.conversation_state_collection, [("expires_at", 1)], {"expireAfterSeconds": 0}),
            (settings.escalation_collection, [("mobile", 1), ("status", 1)], {}),
            (settings.escalation_collection, [("escalation_id", 1)], {"unique": True}),
            (settings.bot_config_collection, [("config_key", 1)], {"unique": True}),
            (settings.message_log_collection, [("mobile", 1), ("timestamp", -1)], {}),
        ]

        for collection, keys, options in indexes:
            try:
                await self.db[collection].create_index(keys, **options)
                logger.debug(f"Created index on {collection}: {keys}")
            except Exception as e:
                logger.error(f"Failed to create index on {collection} {keys}: {e}")

        logger.info("Database indexes created successfully.")

    async def health_check(self) -> bool:
        """
        Check MongoDB connection health.

        Returns:
            True if connection is healthy
        """
        try:
            await self.client.admin.command('ping')
            return True
        except Exception as e:
            logger.error(f"MongoDB health check failed: {e}")
            return False

    # ==================== CRM Profiles ====================

    async def get_user_profile(self, mobile: str) -> Optional[CrmProfile]:
        database_operations_counter.labels(operation="get_user_profile", status="attempted").inc()
        document = await self.profiles.find_one({"mobile": mobile}, {"_id": 0})
        if not document:
            return None
        database_operations_counter.labels(operation="get_user_profile", status="success").inc()
        return CrmProfile.model_validate(document)

    async def save_user_profile(self, profile: CrmProfile) -> None:
        document = profile.model_dump()
        document["updated_at"] = self._now_ms()
        await self.profiles.update_one({"mobile": profile.mobile}, {"$set": document}, upsert=True)
        database_operations_counter.labels(operation="save_user_profile", status="success").inc()

    async def update_user_profile(self, mobile: str, partial: Dict[str, Any]) -> None:
        """
        Applies a partial update. Counters under `interactions` (total_messages,
        escalations) are increments; every other field is set.
        """
        inc: Dict[str, Any] = {}
        set_fields: Dict[str, Any] = {"updated_at": self._now_ms()}
        for key, value in partial.items():
            if key == "interactions" and isinstance(value, dict):
                for counter in ("total_messages", "escalations"):
                    if value.get(counter):
                        inc[f"interactions.{counter}"] = value[counter]
                if value.get("last_message_date") is not None:
                    set_fields["interactions.last_message_date"] = value["last_message_date"]
            elif key == "preferences" and isinstance(value, dict):
                for preference, enabled in value.items():
                    set_fields[f"preferences.{preference}"] = enabled
            else:
                set_fields[key] = value

        update: Dict[str, Any] = {"$set": set_fields}
        if inc:
            update["$inc"] = inc
        await self.profiles.update_one({"mobile": mobile}, update)
        database_operations_counter.labels(operation="update_user_profile", status="success").inc()

    # ==================== Conversation State ====================

    async def get_latest_conversation_state(self, mobile: str) -> Optional[ConversationState]:
        document = await self.states.find_one({"mobile": mobile}, {"_id": 0, "expires_at": 0})
        if not document:
            return None
        return ConversationState.model_validate(document)

    async def save_conversation_state(self, state: ConversationState) -> None:
        document = state.model_dump()
        document["expires_at"] = datetime.now(timezone.utc) + timedelta(days=settings.conversation_state_ttl_days)
        await self.states.replace_one({"mobile": state.mobile}, document, upsert=True)
        database_operations_counter.labels(operation="save_conversation_state", status="success").inc()

    # ==================== Escalations ====================

    async def create_escalation(self, record: EscalationRecord) -> str:
        await self.escalations.insert_one(record.model_dump())
        database_operations_counter.labels(operation="create_escalation", status="success").inc()
        return record.escalation_id

    async def has_pending_escalation(self, mobile: str) -> bool:
        document = await self.escalations.find_one({"mobile": mobile, "status": "pending"}, {"_id": 1})
        return document is not None

    # ==================== Flows ====================

    async def get_flow_document(self, flow_id: str) -> Optional[Dict[str, Any]]:
        """Returns the stored flow for flow_id, or None. The flow may be stored as a JSON string."""
        item = await self.bot_config.find_one({"config_key": f"{FLOW_CONFIG_PREFIX}{flow_id}"}, {"_id": 0})
        if not item or item.get("flow") is None:
            return None
        flow = item["flow"]
        return json.loads(flow) if isinstance(flow, str) else flow

    # ==================== Bot Switches ====================

    async def is_bot_enabled(self) -> bool:
        """
        Runtime kill switch stored in bot_config under `botEnabled`.
        Cached for bot_enabled_cache_seconds; unset or unreadable means enabled.
        """
        now = time.monotonic()
        if self._bot_enabled_cache is not None and now - self._bot_enabled_cache[1] < settings.bot_enabled_cache_seconds:
            return self._bot_enabled_cache[0]
        try:
            item = await self.bot_config.find_one({"config_key": BOT_ENABLED_KEY}, {"_id": 0, "enabled": 1})
        except Exception as e:
            logger.warning("bot_enabled_check_failed", extra={"error": str(e)})
            return True
        enabled = item.get("enabled") if item else None
        enabled = enabled if isinstance(enabled, bool) else True
        self._bot_enabled_cache = (enabled, now)
        return enabled

    async def is_agent_cooldown_active(self, mobile: str) -> bool:
        """True while an agent replied to this mobile less than agent_cooldown_minutes ago."""
        try:
            item = await self.bot_config.find_one({"config_key": f"{AGENT_COOLDOWN_PREFIX}{mobile}"}, {"_id": 0, "timestamp": 1})
        except Exception as e:
            logger.warning("agent_cooldown_check_failed", extra={"mobile": mobile, "error": str(e)})
            return False
        timestamp = item.get("timestamp") if item else None
        if isinstance(timestamp, bool) or not isinstance(timestamp, (int, float)):
            return False
        return self._now_ms() - timestamp < settings.agent_cooldown_minutes * 60 * 1000

    # ==================== Message Logging ====================

    async def log_message(self, message_data: Dict[str, Any]) -> None:
        """
        Log inbound or outbound message.

        Args:
            message_data: Message information to log
        """
        message_data.setdefault("timestamp", self._now_ms())
        await self.message_logs.insert_one(message_data)


db_service = DatabaseService(settings.mongo_uri)
