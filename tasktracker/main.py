import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from .config import Settings, get_settings
from .database import create_tables, dispose_engine, init_engine
from .errors import register_error_handlers
from .lifecycle import Lifecycle
from .middleware import BodyLimitMiddleware, LifecycleMiddleware, RequestLoggingMiddleware, SecureHeadersMiddleware
from .routers import admin, auth, tasks

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings: Settings = app.state.settings
    init_engine(settings.database_url)
    create_tables()
    yield
    dispose_engine()


def create_app(settings: Optional[Settings] = None, lifecycle: Optional[Lifecycle] = None) -> FastAPI:
    """Build the API application.

    ``lifecycle`` is owned by whoever runs the server; the app only reads it
    to refuse traffic while draining and to report uptime.
    """
    settings = settings or get_settings()
    lifecycle = lifecycle or Lifecycle()

    app = FastAPI(
        title="Task Tracker API",
        description="Multi-user task tracking API with admin user management",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.lifecycle = lifecycle

    # Starlette wraps middleware in reverse order: the last one added runs first
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allow_origins,
        allow_credentials=True,
        allow_methods=["POST", "GET", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization"],
        expose_headers=["Content-Length"],
        max_age=600,
    )
    app.add_middleware(SecureHeadersMiddleware)
    app.add_middleware(BodyLimitMiddleware, max_size=settings.body_limit_bytes)
    app.add_middleware(LifecycleMiddleware, lifecycle=lifecycle)
    if not settings.is_test:
        app.add_middleware(RequestLoggingMiddleware)

    register_error_handlers(app)

    # Include routers
    app.include_router(auth.router, prefix="/api/auth", tags=["auth"])
    app.include_router(admin.router, prefix="/api/auth/admin", tags=["admin"])
    app.include_router(tasks.router, prefix="/api/v1/tasks", tags=["tasks"])

    @app.get("/health")
    def health_check(request: Request):
        current: Lifecycle = request.app.state.lifecycle
        return {
            "status": "ok",
            "timestamp": datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z"),
            "uptime": round(current.uptime(), 3),
        }

    return app
