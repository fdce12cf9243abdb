"""
LifeMon Backend — Request ID Middleware
=========================================

Tags every request with an id, echoed back in `X-Request-ID`.

A client-supplied X-Request-ID is reused when it is short and printable,
otherwise a fresh one is generated. The id lives in a ContextVar (read by
the access log and the exception handlers) and on request.state.
"""

import uuid
from contextvars import ContextVar

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

REQUEST_ID_HEADER = "X-Request-ID"
MAX_CLIENT_ID_LENGTH = 64

request_id_var: ContextVar[str] = ContextVar("request_id", default="")


def pick_request_id(client_value: str) -> str:
    candidate = client_value.strip()
    if candidate and len(candidate) <= MAX_CLIENT_ID_LENGTH and candidate.isprintable():
        return candidate
    return uuid.uuid4().hex[:8]


class RequestIDMiddleware(BaseHTTPMiddleware):
    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        rid = pick_request_id(request.headers.get(REQUEST_ID_HEADER, ""))
        request_id_var.set(rid)
        request.state.request_id = rid

        response = await call_next(request)
        response.headers[REQUEST_ID_HEADER] = rid
        return response
