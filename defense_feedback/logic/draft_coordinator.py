"""Debounced autosave, explicit save and gated submit for one feedback item.

The coordinator observes its AnswerStore. Every mutation while the item is
editable cancels the pending autosave timer and schedules a new one after a
quiet period, so a burst of edits produces a single silent save. `submit`
refuses locally when the item is not editable or required answers are
missing; otherwise it flushes the draft with a non-debounced save and only
then calls the submit endpoints.

States: idle -> saving -> idle, idle -> submitting -> idle | finalized.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Optional, Protocol, Sequence
import logging

import httpx

from defense_feedback.logic import completion
from defense_feedback.logic.answer_store import AnswerStore
from defense_feedback.logic.clock import utc_now_iso
from defense_feedback.logic.envelope import extract_detail
from defense_feedback.logic.errors import NotEditable, PersistenceFailure, ValidationBlock
from defense_feedback.logic.fallback import RequestDescriptor, fetch_first_ok
from defense_feedback.models.feedback_schema import CompletionSummary
from defense_feedback.models.question_kind import EvaluationStatus
from defense_feedback.models.student_evaluation import FeedbackItem

logger = logging.getLogger(__name__)

DEFAULT_QUIET_PERIOD = 1.2

IDLE = "idle"
SAVING = "saving"
SUBMITTING = "submitting"
FINALIZED = "finalized"


class TimerHandle(Protocol):
    def cancel(self) -> None: ...


class Scheduler(Protocol):
    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle: ...


class AsyncioScheduler:
    """Schedule callbacks on the running asyncio loop."""

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        return asyncio.get_running_loop().call_later(delay, callback)


SaveEndpoints = Callable[[Dict[str, Any]], Sequence[RequestDescriptor]]
SubmitEndpoints = Callable[[], Sequence[RequestDescriptor]]


@dataclass
class SubmitOutcome:
    submitted: bool
    missing: List[str] = field(default_factory=list)
    reason: Optional[str] = None
    item: Optional[FeedbackItem] = None

    @property
    def block(self) -> Optional[ValidationBlock]:
        return ValidationBlock(self.missing) if self.missing else None


class DraftPersistenceCoordinator:
    def __init__(
        self,
        client: httpx.AsyncClient,
        store: AnswerStore,
        item: FeedbackItem,
        *,
        save_endpoints: SaveEndpoints,
        submit_endpoints: SubmitEndpoints,
        required_ids: Iterable[str] = (),
        quiet_period: float = DEFAULT_QUIET_PERIOD,
        scheduler: Optional[Scheduler] = None,
    ) -> None:
        self.client = client
        self.store = store
        self.item = item
        self.required_ids: List[str] = list(required_ids)
        self.quiet_period = quiet_period
        self.scheduler: Scheduler = scheduler or AsyncioScheduler()
        self._save_endpoints = save_endpoints
        self._submit_endpoints = submit_endpoints

        self.state = FINALIZED if not item.editable else IDLE
        self.last_saved_at: Optional[str] = item.updated_at
        self.last_error: Optional[str] = None

        self._timer: Optional[TimerHandle] = None
        self._autosave_task: Optional[asyncio.Task] = None
        self._save_lock = asyncio.Lock()
        self._closed = False
        self._unsubscribe = store.subscribe(self._on_mutation)

    @property
    def editable(self) -> bool:
        return not self._closed and self.item.editable

    @property
    def autosave_pending(self) -> bool:
        return self._timer is not None

    def completion(self) -> CompletionSummary:
        return completion.compute(self.store.snapshot(), self.required_ids)

    # Autosave

    def _on_mutation(self, question_id: str) -> None:
        if not self.editable:
            return
        self._cancel_timer()
        self._timer = self.scheduler.call_later(self.quiet_period, self._on_timer)

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _on_timer(self) -> None:
        self._timer = None
        if not self.editable:
            return
        self._autosave_task = asyncio.ensure_future(self.save(silent=True))
        self._autosave_task.add_done_callback(self._log_autosave_failure)

    def _log_autosave_failure(self, task: "asyncio.Future[bool]") -> None:
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            self.last_error = str(exc) or type(exc).__name__
            logger.error(
                "draft_autosave_crashed item_id=%s error=%s", self.item.id, self.last_error, exc_info=exc
            )

    async def drain(self) -> None:
        """Wait for an autosave that has already started."""
        task = self._autosave_task
        if task is not None and not task.done():
            await task

    # Save

    async def save(self, silent: bool = False) -> bool:
        """Persist the draft; return True when a save call succeeded.

        Silent saves record failures in `last_error` instead of raising.
        """
        if not self.editable:
            if silent:
                return False
            raise NotEditable(self.item.status)

        async with self._save_lock:
            if not self.store.needs_save():
                logger.debug("draft_save_skipped item_id=%s reason=unchanged", self.item.id)
                return False

            answers = self.store.to_dict()
            snapshot = self.store.serialized()
            previous_state = self.state
            self.state = SAVING
            try:
                result = await fetch_first_ok(self.client, self._save_endpoints(answers))
            finally:
                self.state = previous_state

            if self._closed:
                logger.info("draft_save_stale_ignored item_id=%s", self.item.id)
                return False
            if not result.ok:
                self.last_error = result.error
                logger.error("draft_save_failed item_id=%s silent=%s error=%s", self.item.id, silent, result.error)
                if silent:
                    return False
                raise PersistenceFailure(result.error or "Request failed.", operation="save")

            updated = extract_detail(result.payload)
            if updated is not None and updated.id == self.item.id:
                self.item = updated
            self.store.mark_saved(snapshot)
            self.last_saved_at = utc_now_iso()
            self.last_error = None
            logger.info("draft_save_ok item_id=%s endpoint=%s silent=%s", self.item.id, result.endpoint, silent)
            return True

    async def flush(self) -> bool:
        """Cancel any pending autosave and save immediately.

        Raises PersistenceFailure when the draft could not be persisted.
        """
        self._cancel_timer()
        await self.drain()
        return await self.save(silent=False)

    # Submit

    async def submit(self) -> SubmitOutcome:
        if not self.editable:
            logger.info("draft_submit_refused item_id=%s status=%s", self.item.id, self.item.status)
            return SubmitOutcome(submitted=False, reason="not_editable")

        progress = self.completion()
        if progress.missing:
            logger.info("draft_submit_blocked item_id=%s missing=%s", self.item.id, progress.missing)
            return SubmitOutcome(submitted=False, missing=list(progress.missing), reason="missing_required")

        self.state = SUBMITTING
        try:
            await self.flush()
            result = await fetch_first_ok(self.client, self._submit_endpoints())
        except Exception:
            self.state = IDLE
            raise

        if self._closed:
            logger.info("draft_submit_stale_ignored item_id=%s", self.item.id)
            return SubmitOutcome(submitted=False, reason="stale")
        if not result.ok:
            self.state = IDLE
            self.last_error = result.error
            logger.error("draft_submit_failed item_id=%s error=%s", self.item.id, result.error)
            raise PersistenceFailure(result.error or "Request failed.", operation="submit")

        updated = extract_detail(result.payload)
        if updated is not None and updated.id == self.item.id:
            self.item = updated
        if self.item.editable:
            self.item = self.item.model_copy(
                update={"status": EvaluationStatus.SUBMITTED, "submitted_at": self.item.submitted_at or utc_now_iso()}
            )
        self._cancel_timer()
        self.state = FINALIZED
        logger.info("draft_submit_ok item_id=%s status=%s", self.item.id, self.item.status)
        return SubmitOutcome(submitted=True, item=self.item)

    def close(self) -> None:
        """Detach from the store; late async results are ignored afterwards."""
        self._closed = True
        self._cancel_timer()
        self._unsubscribe()


__all__ = [
    "DEFAULT_QUIET_PERIOD",
    "IDLE",
    "SAVING",
    "SUBMITTING",
    "FINALIZED",
    "Scheduler",
    "AsyncioScheduler",
    "SubmitOutcome",
    "DraftPersistenceCoordinator",
]
