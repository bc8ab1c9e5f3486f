"""ASGI middleware tagging each HTTP exchange with a request id.

An inbound ``X-Request-Id`` is reused, otherwise a uuid4 is minted. The id is
stored on ``request.state.request_id``, bound to the logging context for the
duration of the call and returned on the response.
"""

from __future__ import annotations

import uuid
from typing import Optional

from quiz_funnel.logging_setup import request_id_var

HEADER = "X-Request-Id"
_HEADER_KEY = HEADER.lower().encode("latin-1")


def _inbound_request_id(scope) -> Optional[str]:  # type: ignore[no-untyped-def]
    for key, value in scope.get("headers") or []:
        if key.lower() == _HEADER_KEY and value.strip():
            return value.decode("latin-1").strip()
    return None


class RequestIdMiddleware:
    def __init__(self, app) -> None:  # type: ignore[no-untyped-def]
        self.app = app

    async def __call__(self, scope, receive, send):  # type: ignore[no-untyped-def]
        if scope.get("type") != "http":
            await self.app(scope, receive, send)
            return

        request_id = _inbound_request_id(scope) or str(uuid.uuid4())
        scope.setdefault("state", {})["request_id"] = request_id
        token = request_id_var.set(request_id)

        async def send_with_id(message):  # type: ignore[no-untyped-def]
            if message["type"] == "http.response.start":
                headers = [(k, v) for k, v in message.get("headers") or [] if k.lower() != _HEADER_KEY]
                headers.append((_HEADER_KEY, request_id.encode("latin-1")))
                message = {**message, "headers": headers}
            await send(message)

        try:
            await self.app(scope, receive, send_with_id)
        finally:
            request_id_var.reset(token)


__all__ = ["HEADER", "RequestIdMiddleware"]
