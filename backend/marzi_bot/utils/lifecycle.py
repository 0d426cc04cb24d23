# /marzi_bot/utils/lifecycle.py

import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI

from marzi_bot.config.settings import settings
from marzi_bot.services.db_service import db_service
from marzi_bot.services.flow_service import flow_loader
from marzi_bot.utils.logging import setup_logging

# Startup: logging, indexes and a first load of the default flow so a broken
# flow shows up in the logs before the first message arrives.

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager for startup and shutdown events."""
    setup_logging()

    logger.info("Application starting up...")

    await db_service.create_indexes()
    flow = await flow_loader.load_flow(settings.default_flow_id)
    if flow is None:
        logger.error("default_flow_unavailable", extra={"flow_id": settings.default_flow_id})

    logger.info("Application startup complete. Ready to accept requests.")

    yield  # Application is now running

    logger.info("Application shutting down...")
    if db_service.client:
        db_service.client.close()
