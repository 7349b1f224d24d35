"""Main FastAPI application for the InGap planner backend."""
from fastapi import FastAPI, Request

from ingap.api.routes.history import router as history_router
from ingap.api.routes.plans import router as plans_router
from ingap.api.routes.quota import router as quota_router
from ingap.core.config import settings
from ingap.core.logging import configure_logging
from ingap.core.middleware import RequestIDMiddleware
from ingap.db.session import init_db
from ingap.observability.client import init_opik
from ingap.observability.tracing import trace

configure_logging(log_level=settings.log_level)

app = FastAPI(title=settings.app_name, version="0.1.0")
app.add_middleware(RequestIDMiddleware)
app.include_router(plans_router)
app.include_router(quota_router)
app.include_router(history_router)


@app.on_event("startup")
async def startup() -> None:
    """Create tables and initialize observability once the event loop is running."""
    init_db()
    init_opik()


@app.get("/health", tags=["health"], summary="Readiness probe")
async def health_check(request: Request) -> dict[str, str]:
    """Return a simple status payload so automation can probe the API."""
    with trace("http.health_check", metadata={"route": "/health"}, request_id=request.state.request_id):
        return {"status": "ok"}
