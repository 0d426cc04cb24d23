# /marzi_bot/services/flow_service.py

import json
import logging
import time
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Tuple

from pydantic import ValidationError

from marzi_bot.config.settings import settings
from marzi_bot.models.flow import FlowDefinition
from marzi_bot.services.db_service import db_service
from marzi_bot.utils.metrics import flow_cache_operations
from marzi_bot.workflows.definitions import FLOWS
from marzi_bot.workflows.validator import validate_flow

# Loads flow definitions and keeps them in an in-process TTL cache so that a
# flow edited in the database takes effect within one TTL, without a redeploy.

logger = logging.getLogger(__name__)


class FlowCache:
    """TTL cache of parsed flows. The clock is injectable so expiry can be tested without sleeping."""

    def __init__(self, ttl_seconds: float, clock: Callable[[], float] = time.monotonic):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: Dict[str, Tuple[FlowDefinition, float]] = {}

    def get(self, flow_id: str) -> Optional[FlowDefinition]:
        entry = self._entries.get(flow_id)
        if entry is None:
            flow_cache_operations.labels(status="miss").inc()
            return None
        flow, stored_at = entry
        if self._clock() - stored_at >= self.ttl_seconds:
            del self._entries[flow_id]
            flow_cache_operations.labels(status="miss").inc()
            return None
        flow_cache_operations.labels(status="hit").inc()
        return flow

    def set(self, flow_id: str, flow: FlowDefinition) -> None:
        self._entries[flow_id] = (flow, self._clock())

    def invalidate(self, flow_id: Optional[str] = None) -> None:
        """Drops one flow, or every flow when flow_id is None."""
        if flow_id:
            self._entries.pop(flow_id.strip(), None)
        else:
            self._entries.clear()
        flow_cache_operations.labels(status="invalidate").inc()


class FlowLoader:
    """
    Resolves a flow id to a FlowDefinition.

    Sources, in order: the bot_config collection, `<flows_dir>/<id>.json`, then
    the bundled definitions. A failing source is logged and skipped.
    """

    def __init__(self, store=None, flows_dir: Optional[str] = None, cache: Optional[FlowCache] = None,
                 bundled: Optional[Dict[str, Dict[str, Any]]] = None):
        self.store = store if store is not None else db_service
        self.flows_dir = Path(flows_dir) if flows_dir else None
        self.cache = cache or FlowCache(settings.flow_cache_ttl_seconds)
        self.bundled = FLOWS if bundled is None else bundled

    async def load_flow(self, flow_id: Optional[str]) -> Optional[FlowDefinition]:
        if not flow_id or not isinstance(flow_id, str):
            return None
        key = flow_id.strip()

        cached = self.cache.get(key)
        if cached is not None:
            return cached

        for source, document in await self._documents(key):
            flow = self._parse(key, source, document)
            if flow is not None:
                self.cache.set(key, flow)
                return flow

        logger.warning("flow_not_found", extra={"flow_id": key})
        return None

    def invalidate(self, flow_id: Optional[str] = None) -> None:
        self.cache.invalidate(flow_id)

    async def _documents(self, key: str) -> List[Tuple[str, Dict[str, Any]]]:
        documents = []

        try:
            stored = await self.store.get_flow_document(key)
            if stored:
                documents.append(("store", stored))
        except Exception as e:
            logger.warning("flow_load_db_error", extra={"flow_id": key, "error": str(e)})

        if self.flows_dir:
            path = self.flows_dir / f"{key}.json"
            if path.is_file():
                try:
                    documents.append(("file", json.loads(path.read_text(encoding="utf-8"))))
                except (OSError, ValueError) as e:
                    logger.error("flow_parse_error", extra={"flow_id": key, "path": str(path), "error": str(e)})

        if key in self.bundled:
            documents.append(("bundled", self.bundled[key]))

        return documents

    def _parse(self, key: str, source: str, document: Dict[str, Any]) -> Optional[FlowDefinition]:
        if not isinstance(document, dict) or not isinstance(document.get("nodes"), dict) or not document["nodes"]:
            logger.warning("flow_invalid", extra={"flow_id": key, "source": source, "reason": "no_nodes"})
            return None

        document = {**document, "id": document.get("id") or key, "start": document.get("start") or "start"}
        try:
            flow = FlowDefinition.model_validate(document)
        except ValidationError as e:
            logger.warning("flow_invalid", extra={"flow_id": key, "source": source, "reason": str(e)})
            return None

        issues = validate_flow(flow)
        if issues:
            logger.warning("flow_validation_issues", extra={"flow_id": key, "source": source, "issues": [i["message"] for i in issues]})
        logger.info("flow_loaded", extra={"flow_id": key, "source": source, "nodes": len(flow.nodes)})
        return flow


# Globally accessible instance
flow_loader = FlowLoader(flows_dir=settings.flows_dir)
