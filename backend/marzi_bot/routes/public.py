# /marzi_bot/routes/public.py

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import PlainTextResponse
from prometheus_client import generate_latest
from datetime import datetime, timezone

from marzi_bot.config.settings import settings
from marzi_bot.services.db_service import db_service
from marzi_bot.utils.dependencies import verify_api_key

# Health checks and the Prometheus endpoint. Only /metrics is guarded by the API key.

router = APIRouter()


@router.get("/")
async def root():
    return {
        "service": "Marzi Outreach Bot",
        "version": settings.api_version,
        "status": "operational",
        "environment": settings.environment
    }


@router.get("/health", summary="Basic Health Check")
async def health_check():
    """Basic health check for load balancers."""
    return {"status": "healthy", "timestamp": datetime.now(timezone.utc)}


@router.get("/health/ready", summary="Readiness Check")
async def readiness_check():
    """Ready only when MongoDB answers a ping."""
    if await db_service.health_check():
        return {"status": "ready"}
    raise HTTPException(status_code=503, detail="Service not ready: database unreachable")


@router.get("/metrics", tags=["Monitoring"])
async def metrics(_: bool = Depends(verify_api_key)):
    return PlainTextResponse(generate_latest(), media_type="text/plain")
