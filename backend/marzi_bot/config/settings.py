# /marzi_bot/config/settings.py

import sys
from typing import List
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

LOCAL_MONGO_URI = "mongodb://localhost:27017/marzi"


class Settings(BaseSettings):
    # MongoDB
    mongo_uri: str = LOCAL_MONGO_URI
    max_pool_size: int = 10
    min_pool_size: int = 1
    user_profile_collection: str = "user_profiles"
    conversation_state_collection: str = "conversation_states"
    escalation_collection: str = "escalations"
    bot_config_collection: str = "bot_config"
    message_log_collection: str = "message_logs"

    # Flows
    default_flow_id: str = "marzi-lead"
    flow_cache_ttl_seconds: int = 60
    flows_dir: str | None = None

    # App Behavior
    bot_enabled: bool = True
    bot_enabled_cache_seconds: int = 60
    agent_cooldown_minutes: int = 60
    conversation_state_ttl_days: int = 90

    # Security
    api_key: str | None = None

    # Deployment
    environment: str = Field(default="production")
    log_level: str = "INFO"
    cors_allowed_origins: List[str] = Field(default=["http://localhost:3000"])

    # App Metadata
    api_version: str = "v1"

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # ---------------- Validators ---------------- #

    @field_validator("cors_allowed_origins", mode="before")
    @classmethod
    def parse_cors_allowed_origins(cls, v):
        """Accept a comma-separated string as well as a list."""
        if isinstance(v, str):
            return [origin.strip() for origin in v.split(",") if origin.strip()]
        return v

    @field_validator("environment")
    @classmethod
    def environment_must_be_known(cls, v: str) -> str:
        v = v.lower()
        if v not in ("production", "staging", "development", "test"):
            raise ValueError("ENVIRONMENT must be one of production, staging, development, test")
        return v

    @field_validator("flow_cache_ttl_seconds", "conversation_state_ttl_days")
    @classmethod
    def must_not_be_negative(cls, v: int) -> int:
        if v < 0:
            raise ValueError("must be zero or positive")
        return v


def validate_environment(settings_obj: Settings):
    try:
        if settings_obj.environment == "production":
            if not settings_obj.mongo_uri or settings_obj.mongo_uri == LOCAL_MONGO_URI:
                raise ValueError("MONGO_URI is required in production")
            if not settings_obj.api_key:
                raise ValueError("API_KEY is required in production")

        return settings_obj

    except Exception as e:
        print(f"--- [ERROR] Environment validation failed: {e}")
        sys.exit(1)


settings = Settings()
validate_environment(settings)
