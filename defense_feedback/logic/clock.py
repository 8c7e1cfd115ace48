"""UTC timestamp helper shared by persistence and the draft coordinator."""

from __future__ import annotations

from datetime import datetime, timezone


def utc_now_iso() -> str:
    """RFC3339 timestamp in UTC with a trailing 'Z' and no fractional seconds."""
    return datetime.now(timezone.utc).isoformat(timespec="seconds").replace("+00:00", "Z")


__all__ = ["utc_now_iso"]
