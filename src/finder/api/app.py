"""FastAPI application factory for the product finder HTTP API."""

from __future__ import annotations

from typing import Any

from fastapi import FastAPI

from finder.api import routes


def create_app(lifespan: Any = None) -> FastAPI:
    """Create and configure the FastAPI application.

    Route handlers read their collaborators from app.state (orchestrator,
    history, tracker, catalog, rate_limiter, settings); the caller wires
    them, typically from the lifespan in finder.main.

    Args:
        lifespan: Optional async context manager for application lifespan events.
    """
    app = FastAPI(
        title="Product Finder",
        lifespan=lifespan,
    )
    app.include_router(routes.router, prefix="/api")
    return app
