from __future__ import annotations

import logging
import traceback
from typing import Callable

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import JSONResponse, Response

from podstyles.core.observability.metrics import inc_named

log = logging.getLogger("podstyles.errors")


class SafeErrorMiddleware(BaseHTTPMiddleware):
    """
    Last line of defence for the scoping API.

    Parse and identifier errors are shaped into 422 responses by the endpoints;
    anything that reaches here is a bug, so the client gets a bare 500 with the
    request id and the traceback stays in the server log.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        try:
            return await call_next(request)
        except Exception as e:
            rid = getattr(request.state, "request_id", None) or request.headers.get("x-request-id")
            inc_named("http_unhandled_errors")
            log.error(
                "api.unhandled error_type=%s rid=%s path=%s: %s\n%s",
                type(e).__name__,
                rid,
                request.url.path,
                e,
                traceback.format_exc(),
            )
            payload = {"detail": "Internal Server Error"}
            if rid:
                payload["request_id"] = rid
            return JSONResponse(status_code=500, content=payload)
