# /marzi_bot/routes/flows.py

from fastapi import APIRouter, Depends, HTTPException
import logging

from marzi_bot.config.settings import settings
from marzi_bot.models.api import APIResponse, FlowResponse, InvalidateRequest
from marzi_bot.services.flow_service import flow_loader
from marzi_bot.utils.dependencies import verify_api_key
from marzi_bot.workflows.validator import validate_flow

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/flows",
    tags=["Flows"],
    dependencies=[Depends(verify_api_key)]
)


@router.get("/{flow_id}", response_model=APIResponse)
async def get_flow(flow_id: str):
    """Returns the flow as the engine currently sees it, with its validation issues."""
    flow = await flow_loader.load_flow(flow_id)
    if flow is None:
        raise HTTPException(status_code=404, detail=f"Flow '{flow_id}' not found")

    response = FlowResponse(
        id=flow.id,
        start=flow.start,
        version=flow.version,
        node_count=len(flow.nodes),
        nodes={node_id: node.model_dump(by_alias=True, exclude_none=True) for node_id, node in flow.nodes.items()},
        issues=validate_flow(flow),
    )
    return APIResponse(success=True, message="Flow retrieved", data=response.model_dump(), version=settings.api_version)


@router.post("/invalidate", response_model=APIResponse)
async def invalidate_flows(request: InvalidateRequest):
    """Drops cached flows so the next turn reloads them from their source."""
    flow_loader.invalidate(request.flow_id)
    logger.info("flow_cache_invalidated", extra={"flow_id": request.flow_id or "*"})
    return APIResponse(
        success=True,
        message="Flow cache invalidated",
        data={"flow_id": request.flow_id},
        version=settings.api_version
    )
