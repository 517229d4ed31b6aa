import uuid
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from podstyles.core.observability.metrics import inc_named


REQUEST_ID_HEADER = "X-Request-Id"


class RequestIdMiddleware(BaseHTTPMiddleware):
    """Echoes or mints a request id and counts requests."""

    async def dispatch(self, request: Request, call_next):
        rid = request.headers.get(REQUEST_ID_HEADER) or str(uuid.uuid4())
        request.state.request_id = rid
        inc_named("http_requests")

        response: Response = await call_next(request)
        response.headers[REQUEST_ID_HEADER] = rid
        return response
