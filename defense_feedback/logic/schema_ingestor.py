"""Retrieve raw schema and item payloads from ordered candidate sources.

The ingestor isolates the engine from not knowing which backend variant is
authoritative for a deployment. A single ordered pass is made over the
candidates; the first successful JSON response is unwrapped and returned.
"""

from __future__ import annotations

from typing import Any, Dict, Sequence
import logging

import httpx

from defense_feedback.logic.envelope import extract_detail, unwrap_schema
from defense_feedback.logic.errors import IngestionFailure
from defense_feedback.logic.fallback import RequestDescriptor, fetch_first_ok
from defense_feedback.models.student_evaluation import FeedbackItem

logger = logging.getLogger(__name__)


class SchemaIngestor:
    def __init__(self, client: httpx.AsyncClient) -> None:
        self.client = client

    async def fetch(self, candidates: Sequence[RequestDescriptor]) -> Dict[str, Any]:
        """Return the raw schema object or raise IngestionFailure."""
        result = await fetch_first_ok(self.client, candidates, require_json=True)
        if not result.ok:
            raise IngestionFailure(result.error or "Request failed.")
        schema = unwrap_schema(result.payload)
        if schema is None:
            logger.error("schema_payload_not_object endpoint=%s", result.endpoint)
            raise IngestionFailure(f"Schema response from {result.endpoint} is not an object")
        logger.info("schema_ingested endpoint=%s keys=%s", result.endpoint, sorted(schema.keys()))
        return schema

    async def fetch_item(self, candidates: Sequence[RequestDescriptor]) -> FeedbackItem:
        result = await fetch_first_ok(self.client, candidates, require_json=True)
        if not result.ok:
            raise IngestionFailure(result.error or "Request failed.")
        item = extract_detail(result.payload)
        if item is None:
            raise IngestionFailure("We couldn't load this feedback form.")
        logger.info("item_ingested endpoint=%s item_id=%s status=%s", result.endpoint, item.id, item.status)
        return item


__all__ = ["SchemaIngestor"]
