# /marzi_bot/routes/conversations.py

from fastapi import APIRouter, Depends, HTTPException
import logging

from marzi_bot.config.settings import settings
from marzi_bot.models.api import APIResponse, LegacyTurnRequest, TurnRequest, TurnResponse
from marzi_bot.services.conversation_service import conversation_service
from marzi_bot.services.step_flow_service import step_flow_service
from marzi_bot.utils.dependencies import verify_api_key

# Entry points for the message ingestion layer. Callers must deliver at most one
# turn per mobile at a time; nothing here serialises concurrent turns.

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/conversations",
    tags=["Conversations"],
    dependencies=[Depends(verify_api_key)]
)


@router.post("/turn", response_model=APIResponse)
async def process_turn(request: TurnRequest):
    """Runs one inbound message through the graph flow."""
    try:
        reply = await conversation_service.process_message(request.mobile, request.message_text, request.wa_number)
    except Exception as e:
        logger.error("conversation_turn_failed", extra={"variant": "graph", "error": str(e)}, exc_info=True)
        raise HTTPException(status_code=503, detail="Conversation store unavailable")

    response = TurnResponse(
        messages=[m.body for m in reply.messages],
        next_step=reply.next_step,
        should_escalate=reply.should_escalate,
        escalation_reason=reply.escalation_reason,
        escalation_ids=reply.escalation_ids,
        registered=reply.registered,
        skipped=reply.skipped,
    )
    return APIResponse(
        success=True,
        message=reply.skip_reason or "Turn processed",
        data=response.model_dump(),
        version=settings.api_version
    )


@router.post("/legacy-turn", response_model=APIResponse)
async def process_legacy_turn(request: LegacyTurnRequest):
    """Runs one inbound message through the step-based flow."""
    try:
        result = await step_flow_service.process_conversation_flow(request.model_dump())
    except Exception as e:
        logger.error("conversation_turn_failed", extra={"variant": "legacy", "error": str(e)}, exc_info=True)
        raise HTTPException(status_code=503, detail="Conversation store unavailable")

    state = result.conversation_state
    response = TurnResponse(
        messages=[result.response_message] if result.response_message else [],
        next_step=state.current_step,
        should_escalate=result.escalation_id is not None,
        escalation_ids=[result.escalation_id] if result.escalation_id else [],
        registered=result.registered,
    )
    return APIResponse(
        success=True,
        message="Turn processed",
        data=response.model_dump(),
        version=settings.api_version
    )
