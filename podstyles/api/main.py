from __future__ import annotations

from fastapi import FastAPI

from podstyles import __version__
from podstyles.api.endpoints import health, metrics_export, scope
from podstyles.api.middleware.error_shaping import SafeErrorMiddleware
from podstyles.api.middleware.request_id import RequestIdMiddleware

app = FastAPI(
    title="Pod Styles Scoping API",
    version=__version__,
)

# Starlette reverses add_middleware order: the LAST call is the outermost wrapper.
#   SafeErrorMiddleware -> RequestIdMiddleware -> handler
app.add_middleware(RequestIdMiddleware)
app.add_middleware(SafeErrorMiddleware)

app.include_router(health.router)
app.include_router(metrics_export.router)
app.include_router(scope.router)
