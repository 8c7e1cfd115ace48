"""Run the feedback service with uvicorn: `python -m defense_feedback`."""

from __future__ import annotations

import os

import uvicorn


def main() -> None:
    host = os.environ.get("FEEDBACK_HOST", "127.0.0.1")
    port = int(os.environ.get("FEEDBACK_PORT", "8000"))
    uvicorn.run("defense_feedback.main:create_app", factory=True, host=host, port=port, log_config=None)


if __name__ == "__main__":
    main()


__all__ = ["main"]
