"""Mutable draft answer map with dirty tracking and snapshots.

One AnswerStore is owned by exactly one session for one feedback item.
`load` replaces the draft wholesale and resets the persisted baseline; it
is only called when an item is (re)loaded. Local edits go through `set` and
`clear`, which notify listeners so autosave can be scheduled.
"""

from __future__ import annotations

import copy
import json
from types import MappingProxyType
from typing import Any, Callable, Dict, List, Mapping, Optional

Listener = Callable[[str], None]


def serialize(answers: Mapping[str, Any]) -> str:
    """Stable serialized form used for structural comparison."""
    return json.dumps(dict(answers), sort_keys=True, separators=(",", ":"), default=str)


class AnswerStore:
    def __init__(self, answers: Optional[Mapping[str, Any]] = None) -> None:
        self._answers: Dict[str, Any] = {}
        self._baseline: str = serialize({})
        self._dirty = False
        self._listeners: List[Listener] = []
        if answers is not None:
            self.load(answers)

    @property
    def dirty(self) -> bool:
        return self._dirty

    @property
    def baseline(self) -> str:
        return self._baseline

    def get(self, question_id: str, default: Any = None) -> Any:
        return self._answers.get(question_id, default)

    def __contains__(self, question_id: object) -> bool:
        return question_id in self._answers

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self, question_id: str) -> None:
        for listener in list(self._listeners):
            listener(question_id)

    def set(self, question_id: str, value: Any) -> None:
        self._answers[question_id] = copy.deepcopy(value)
        self._dirty = True
        self._notify(question_id)

    def clear(self, question_id: str) -> None:
        self._answers[question_id] = None
        self._dirty = True
        self._notify(question_id)

    def snapshot(self) -> Mapping[str, Any]:
        """Return a read-only deep copy of the current draft."""
        return MappingProxyType(copy.deepcopy(self._answers))

    def to_dict(self) -> Dict[str, Any]:
        return copy.deepcopy(self._answers)

    def serialized(self) -> str:
        return serialize(self._answers)

    def matches_baseline(self) -> bool:
        return self.serialized() == self._baseline

    def needs_save(self) -> bool:
        return self._dirty or not self.matches_baseline()

    def mark_saved(self, saved_serialized: str) -> None:
        """Adopt `saved_serialized` as the persisted baseline.

        Dirty is cleared only when nothing changed since that snapshot was
        taken, so edits made while a save was in flight stay pending.
        """
        self._baseline = saved_serialized
        self._dirty = self.serialized() != saved_serialized

    def load(self, answers: Optional[Mapping[str, Any]]) -> None:
        self._answers = copy.deepcopy(dict(answers or {}))
        self._baseline = serialize(self._answers)
        self._dirty = False


__all__ = ["AnswerStore", "serialize"]
