"""Single-owner session controller for the active feedback item.

The session wires the engine together: it ingests the schema and the item,
normalizes the schema and derives the required/rating indexes, seeds the
AnswerStore once per item load, and hands persistence to a
DraftPersistenceCoordinator. Completion and score are recomputed on demand
from the current draft.

Async results are fenced by a load generation. Switching items bumps the
generation and closes the previous coordinator, so a response that lands
after the user moved on is dropped instead of applied.
"""

from __future__ import annotations

import asyncio
from typing import Any, Dict, List, Optional, Sequence
import logging

import httpx

from defense_feedback.config import AppConfig
from defense_feedback.logic import completion, endpoints, rating_index, required_index, schema_normalizer, scoring
from defense_feedback.logic.answer_store import AnswerStore
from defense_feedback.logic.draft_coordinator import (
    DEFAULT_QUIET_PERIOD,
    DraftPersistenceCoordinator,
    Scheduler,
    SubmitOutcome,
)
from defense_feedback.logic.errors import IngestionFailure, NormalizationFailure, NotEditable, StaleResult
from defense_feedback.logic.fallback import RequestDescriptor
from defense_feedback.logic.schema_ingestor import SchemaIngestor
from defense_feedback.models.feedback_schema import CanonicalSchema, CompletionSummary, RatingQuestion, ScoreSummary
from defense_feedback.models.student_evaluation import FeedbackItem

logger = logging.getLogger(__name__)


class FeedbackSession:
    def __init__(
        self,
        client: httpx.AsyncClient,
        base_url: str,
        *,
        quiet_period: float = DEFAULT_QUIET_PERIOD,
        scheduler: Optional[Scheduler] = None,
        schema_sources: Optional[Sequence[RequestDescriptor]] = None,
    ) -> None:
        self.client = client
        self.base_url = base_url
        self.quiet_period = quiet_period
        self.scheduler = scheduler
        self.schema_sources = list(schema_sources) if schema_sources is not None else endpoints.schema_candidates(base_url)
        self.ingestor = SchemaIngestor(client)
        self.store = AnswerStore()

        self.generation = 0
        self.item: Optional[FeedbackItem] = None
        self.coordinator: Optional[DraftPersistenceCoordinator] = None

        self.raw_schema: Optional[Dict[str, Any]] = None
        self.schema: Optional[CanonicalSchema] = None
        self.required_ids: List[str] = []
        self.rating_questions: List[RatingQuestion] = []
        self.schema_error: Optional[str] = None
        self.item_error: Optional[str] = None

    # Loading

    def _apply_schema(self, raw: Optional[Dict[str, Any]]) -> None:
        self.raw_schema = raw
        self.schema = schema_normalizer.normalize(raw) if raw is not None else None
        self.required_ids = required_index.merged(raw, self.schema)
        source = self.schema if self.schema is not None else raw
        self.rating_questions = rating_index.build(source) if source is not None else []
        if raw is not None and self.schema is None:
            self.schema_error = NormalizationFailure().message
            logger.warning("session_schema_unusable falling back to raw answers")
        if self.coordinator is not None:
            self.coordinator.required_ids = list(self.required_ids)

    async def _fetch_schema(self) -> Optional[Dict[str, Any]]:
        try:
            return await self.ingestor.fetch(self.schema_sources)
        except IngestionFailure as exc:
            logger.error("session_schema_ingestion_failed error=%s", exc.message)
            self.schema_error = exc.message
            return None

    async def load(self, item_id: str) -> FeedbackItem:
        """Load schema and item for `item_id` and reseed the draft.

        Raises IngestionFailure when the item cannot be retrieved. A schema
        failure is non-fatal and leaves the session in raw-answer mode.
        """
        self.generation += 1
        generation = self.generation
        self._close_coordinator()
        self.schema_error = None
        self.item_error = None

        raw, item_or_error = await asyncio.gather(
            self._fetch_schema(),
            self.ingestor.fetch_item(endpoints.item_candidates(self.base_url, item_id)),
            return_exceptions=True,
        )
        if generation != self.generation:
            logger.info("session_load_stale_ignored item_id=%s generation=%s", item_id, generation)
            raise StaleResult(f"load of {item_id} superseded")
        if isinstance(raw, BaseException):
            raise raw
        if isinstance(item_or_error, BaseException):
            if isinstance(item_or_error, IngestionFailure):
                self.item_error = item_or_error.message
            raise item_or_error

        self._apply_schema(raw)
        self._activate(item_or_error)
        return item_or_error

    async def refresh(self) -> FeedbackItem:
        """Re-fetch schema and item without discarding the local draft."""
        if self.item is None:
            raise IngestionFailure("No feedback item loaded")
        generation = self.generation
        item_id = self.item.id
        raw = await self._fetch_schema()
        item = await self.ingestor.fetch_item(endpoints.item_candidates(self.base_url, item_id))
        if generation != self.generation:
            raise StaleResult(f"refresh of {item_id} superseded")
        if raw is not None:
            self._apply_schema(raw)
        self.item = item
        if self.coordinator is not None:
            self.coordinator.item = item
        return item

    def _activate(self, item: FeedbackItem) -> None:
        self.item = item
        self.store.load(item.answers)
        self.coordinator = DraftPersistenceCoordinator(
            self.client,
            self.store,
            item,
            save_endpoints=lambda answers: endpoints.save_candidates(self.base_url, item.id, answers),
            submit_endpoints=lambda: endpoints.submit_candidates(self.base_url, item.id),
            required_ids=self.required_ids,
            quiet_period=self.quiet_period,
            scheduler=self.scheduler,
        )
        logger.info("session_item_activated item_id=%s status=%s generation=%s", item.id, item.status, self.generation)

    def _close_coordinator(self) -> None:
        if self.coordinator is not None:
            self.coordinator.close()
            self.coordinator = None

    # Editing

    @property
    def editable(self) -> bool:
        return self.coordinator is not None and self.coordinator.editable

    def _require_editable(self) -> None:
        if not self.editable:
            raise NotEditable(self.item.status if self.item else "unloaded")

    def set_answer(self, question_id: str, value: Any) -> None:
        self._require_editable()
        self.store.set(question_id, value)

    def clear_answer(self, question_id: str) -> None:
        self._require_editable()
        self.store.clear(question_id)

    # Views

    def completion(self) -> CompletionSummary:
        return completion.compute(self.store.snapshot(), self.required_ids)

    def score(self) -> ScoreSummary:
        labels = self.schema.label_by_id() if self.schema is not None else {}
        return scoring.compute(self.store.snapshot(), self.rating_questions, labels)

    def extra_answers(self) -> List[tuple[str, Any]]:
        return schema_normalizer.extra_answers(dict(self.store.snapshot()), self.schema)

    # Persistence

    async def save(self) -> bool:
        if self.coordinator is None:
            raise NotEditable("unloaded")
        return await self.coordinator.save(silent=False)

    async def submit(self) -> SubmitOutcome:
        if self.coordinator is None:
            raise NotEditable("unloaded")
        outcome = await self.coordinator.submit()
        if outcome.submitted and outcome.item is not None:
            self.item = outcome.item
        return outcome

    def close(self) -> None:
        self.generation += 1
        self._close_coordinator()


def build_http_client(cfg: AppConfig, **kwargs: Any) -> httpx.AsyncClient:
    return httpx.AsyncClient(timeout=cfg.http.timeout_seconds, **kwargs)


def session_from_config(
    cfg: AppConfig,
    client: httpx.AsyncClient,
    *,
    scheduler: Optional[Scheduler] = None,
) -> FeedbackSession:
    """Build a session against the configured API base URL and quiet period."""
    return FeedbackSession(
        client,
        cfg.feedback.api_base_url,
        quiet_period=cfg.feedback.autosave_quiet_seconds,
        scheduler=scheduler,
    )


__all__ = ["FeedbackSession", "build_http_client", "session_from_config"]
