"""FastAPI application factory.

Wires the request-scoped database session and the long-lived live
components (session source, summary cache, tracker registry) onto
app.state.
"""

from __future__ import annotations

import os
from concurrent.futures import Executor
from contextlib import asynccontextmanager
from typing import Callable, Generator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from cognimirror.aggregation.cache import SummaryCache
from cognimirror.db.repo import DbSession
from cognimirror.db.session import get_session, init_db
from cognimirror.live.source import RepoSessionSource
from cognimirror.live.tracker import DEFAULT_MAX_TRACKERS, TrackerRegistry

CORS_ORIGINS_ENV = "COGNIMIRROR_CORS_ORIGINS"
DEFAULT_CORS_ORIGINS = [
    "http://localhost:5173",  # Vite dev server
    "http://127.0.0.1:5173",
]


def get_db_session(request: Request) -> Generator[DbSession, None, None]:
    """Dependency to get database session.

    Yields:
        Database session that is automatically closed after request.
    """
    session = request.app.state.session_factory()
    try:
        yield session
    finally:
        session.close()


def get_session_source(request: Request) -> RepoSessionSource:
    """Dependency to get the live session source."""
    return request.app.state.session_source


def get_summary_cache(request: Request) -> SummaryCache:
    """Dependency to get the summary cache."""
    return request.app.state.summary_cache


def get_tracker_registry(request: Request) -> TrackerRegistry:
    """Dependency to get the live tracker registry."""
    return request.app.state.trackers


def _cors_origins() -> list[str]:
    raw = os.environ.get(CORS_ORIGINS_ENV)
    if not raw:
        return DEFAULT_CORS_ORIGINS
    return [origin.strip() for origin in raw.split(",") if origin.strip()]


def create_app(
    session_factory: Callable[[], DbSession] | None = None,
    cache_executor: Executor | None = None,
    max_live_trackers: int = DEFAULT_MAX_TRACKERS,
) -> FastAPI:
    """Create FastAPI application.

    Args:
        session_factory: Optional callable returning database sessions.
            Defaults to the configured SQLite database, whose schema is
            created at startup.
        cache_executor: Optional executor for live summary cache writes.
            Defaults to the shared background writer.
        max_live_trackers: Live metric filters kept before the least
            recently used one is stopped.

    Returns:
        Configured FastAPI application.
    """
    use_default_db = session_factory is None
    if session_factory is None:
        session_factory = get_session

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if use_default_db:
            init_db()
        yield
        app.state.trackers.close()

    app = FastAPI(
        title="CogniMirror API",
        description="Cognitive session metrics, coach and exports",
        version="0.1.0",
        lifespan=lifespan,
    )

    source = RepoSessionSource(session_factory)
    cache = SummaryCache(session_factory)
    app.state.session_factory = session_factory
    app.state.session_source = source
    app.state.summary_cache = cache
    app.state.trackers = TrackerRegistry(
        source, cache, executor=cache_executor, max_trackers=max_live_trackers
    )

    # Add CORS middleware for UI access
    app.add_middleware(
        CORSMiddleware,
        allow_origins=_cors_origins(),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Include routes
    from cognimirror.api.routes import coach, export, metrics, sessions

    app.include_router(sessions.router, prefix="/api")
    app.include_router(metrics.router, prefix="/api")
    app.include_router(coach.router, prefix="/api")
    app.include_router(export.router, prefix="/api")

    # Health check endpoint
    @app.get("/health")
    def health_check():
        """Health check endpoint."""
        return {"status": "ok"}

    return app


# Default app instance
app = create_app()
