"""Ordered endpoint fallback shared by ingestion, save and submit.

Each call site supplies an ordered list of request descriptors. The helper
tries them strictly in order, returns the first successful response, and
otherwise reports the most recent failure message. There is no retry and no
backoff; a chain is a single pass.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, Optional, Sequence
import logging

import httpx

from defense_feedback.logic.coercion import first_string

logger = logging.getLogger(__name__)

DEFAULT_ERROR = "Request failed."


@dataclass(frozen=True)
class RequestDescriptor:
    url: str
    method: str = "GET"
    json: Optional[Any] = None
    headers: Dict[str, str] = field(default_factory=dict)


@dataclass
class FetchResult:
    ok: bool
    endpoint: Optional[str] = None
    payload: Any = None
    status_code: Optional[int] = None
    error: Optional[str] = None


def _parse_json(res: httpx.Response) -> tuple[bool, Any]:
    try:
        return True, res.json()
    except ValueError:
        return False, None


def read_error_message(res: httpx.Response, payload: Any) -> str:
    if isinstance(payload, dict):
        msg = first_string(payload.get("error"), payload.get("message"), payload.get("detail"))
        if msg:
            return msg
    text = res.text
    if text and text.strip():
        return text
    return f"Request failed ({res.status_code})"


def get_candidates(urls: Iterable[str]) -> list[RequestDescriptor]:
    return [RequestDescriptor(url=u) for u in urls]


async def fetch_first_ok(
    client: httpx.AsyncClient,
    candidates: Sequence[RequestDescriptor],
    *,
    require_json: bool = False,
) -> FetchResult:
    """Return the first candidate that answers with a 2xx status.

    With `require_json`, a 2xx response whose body is not JSON counts as a
    failure and the chain moves on.
    """
    latest_error = DEFAULT_ERROR
    for desc in candidates:
        try:
            res = await client.request(
                desc.method,
                desc.url,
                json=desc.json,
                headers=desc.headers or None,
            )
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            latest_error = str(exc) or latest_error
            logger.warning("fallback_candidate_error method=%s url=%s error=%s", desc.method, desc.url, latest_error)
            continue

        parsed, payload = _parse_json(res)
        if not res.is_success:
            latest_error = read_error_message(res, payload)
            logger.warning(
                "fallback_candidate_rejected method=%s url=%s status=%s", desc.method, desc.url, res.status_code
            )
            continue
        if require_json and not parsed:
            latest_error = f"Invalid JSON from {desc.url}"
            logger.warning("fallback_candidate_not_json method=%s url=%s", desc.method, desc.url)
            continue

        logger.info("fallback_candidate_ok method=%s url=%s status=%s", desc.method, desc.url, res.status_code)
        return FetchResult(ok=True, endpoint=desc.url, payload=payload, status_code=res.status_code)

    logger.error("fallback_exhausted candidates=%s error=%s", len(candidates), latest_error)
    return FetchResult(ok=False, error=latest_error)


__all__ = [
    "RequestDescriptor",
    "FetchResult",
    "DEFAULT_ERROR",
    "read_error_message",
    "get_candidates",
    "fetch_first_ok",
]
