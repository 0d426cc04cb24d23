# /marzi_bot/models/api.py

from pydantic import BaseModel, Field
from typing import List, Dict, Optional, Any
from datetime import datetime, timezone

# Request and response bodies of the internal HTTP API.


class TurnRequest(BaseModel):
    mobile: str = Field(..., min_length=6, max_length=20)
    message_text: str = Field(default="", max_length=4096)
    wa_number: Optional[str] = None


class LegacyTurnRequest(TurnRequest):
    pass


class TurnResponse(BaseModel):
    messages: List[str]
    next_step: Optional[str] = None
    should_escalate: bool = False
    escalation_reason: Optional[str] = None
    escalation_ids: List[str] = Field(default_factory=list)
    registered: bool = False
    skipped: bool = False


class FlowIssue(BaseModel):
    error_code: str
    node_id: Optional[str] = None
    message: str


class FlowResponse(BaseModel):
    id: str
    start: str
    version: Optional[str] = None
    node_count: int
    nodes: Dict[str, Any]
    issues: List[FlowIssue] = Field(default_factory=list)


class InvalidateRequest(BaseModel):
    flow_id: Optional[str] = None


class APIResponse(BaseModel):
    success: bool
    message: str
    data: Optional[Dict] = None
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    version: str
