# /marzi_bot/utils/dependencies.py

import secrets
import structlog
from fastapi import Request, HTTPException

from marzi_bot.config.settings import settings

log = structlog.get_logger(__name__)


async def verify_api_key(request: Request):
    """Internal routes and /metrics need X-API-KEY once an api_key is configured."""
    if settings.api_key:
        provided_key = request.headers.get("X-API-KEY")
        if not (provided_key and secrets.compare_digest(provided_key, settings.api_key)):
            log.warning("api_key_rejected", path=request.url.path)
            raise HTTPException(status_code=403, detail="Invalid or missing API key")
    return True
