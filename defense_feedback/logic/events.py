"""Domain events for evaluation and form lifecycle changes.

publish() logs each event, keeps it in a bounded in-process buffer that
tests and diagnostics can drain, and fans it out to subscribers registered
with subscribe(). A failing subscriber is logged and does not stop the
others from receiving the event.
"""

from __future__ import annotations

from collections import deque
from typing import Any, Callable, Deque, Dict, List
import logging

logger = logging.getLogger(__name__)

EVALUATION_SAVED = "student_evaluation.saved"
EVALUATION_SUBMITTED = "student_evaluation.submitted"
EVALUATION_LOCKED = "student_evaluation.locked"
FORM_ACTIVATED = "feedback_form.activated"

EVENT_BUFFER_SIZE = 500

EventHandler = Callable[[str, Dict[str, Any]], None]

EVENT_BUFFER: Deque[Dict[str, Any]] = deque(maxlen=EVENT_BUFFER_SIZE)
_SUBSCRIBERS: List[EventHandler] = []


def subscribe(handler: EventHandler) -> Callable[[], None]:
    _SUBSCRIBERS.append(handler)

    def unsubscribe() -> None:
        if handler in _SUBSCRIBERS:
            _SUBSCRIBERS.remove(handler)

    return unsubscribe


def publish(event_type: str, payload: Dict[str, Any]) -> None:
    logger.info("event_publish type=%s payload=%s", event_type, payload)
    EVENT_BUFFER.append({"type": event_type, "payload": dict(payload)})
    for handler in list(_SUBSCRIBERS):
        try:
            handler(event_type, payload)
        except Exception:
            logger.error("event_subscriber_failed type=%s handler=%r", event_type, handler, exc_info=True)


def get_buffered_events(clear: bool = True) -> List[Dict[str, Any]]:
    """Return buffered events oldest first; drain the buffer unless clear=False."""
    events = list(EVENT_BUFFER)
    if clear:
        EVENT_BUFFER.clear()
    return events


__all__ = [
    "EVALUATION_SAVED",
    "EVALUATION_SUBMITTED",
    "EVALUATION_LOCKED",
    "FORM_ACTIVATED",
    "EVENT_BUFFER",
    "EVENT_BUFFER_SIZE",
    "subscribe",
    "publish",
    "get_buffered_events",
]
