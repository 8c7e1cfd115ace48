"""Request ID middleware.

Echoes an incoming X-Request-Id or assigns a new one, exposes it to log
records for the duration of the request, and sets it on every HTTP response.
"""

from __future__ import annotations

import uuid

from defense_feedback.logging_setup import request_id_var


class RequestIdMiddleware:
    def __init__(self, app, header_name: str = "X-Request-Id") -> None:  # type: ignore[no-untyped-def]
        self.app = app
        self.header_name = header_name
        self._header_key = header_name.lower().encode("latin-1")

    def _incoming(self, scope) -> str:  # type: ignore[no-untyped-def]
        for k, v in scope.get("headers") or []:
            if k.lower() == self._header_key and v:
                return v.decode("latin-1")
        return str(uuid.uuid4())

    async def __call__(self, scope, receive, send):  # type: ignore[no-untyped-def]
        if scope.get("type") != "http":
            await self.app(scope, receive, send)
            return

        request_id = self._incoming(scope)
        scope.setdefault("state", {})["request_id"] = request_id
        token = request_id_var.set(request_id)

        async def send_wrapper(message):  # type: ignore[no-untyped-def]
            if message.get("type") == "http.response.start":
                headers = [(k, v) for k, v in (message.get("headers") or []) if k.lower() != self._header_key]
                headers.append((self.header_name.encode("latin-1"), request_id.encode("latin-1")))
                message = {**message, "headers": headers}
            await send(message)

        try:
            await self.app(scope, receive, send_wrapper)
        finally:
            request_id_var.reset(token)


__all__ = ["RequestIdMiddleware"]
