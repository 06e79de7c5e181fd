"""
Maintenance Alert API Application.

FastAPI app exposing the alert query/mutation router plus a
health endpoint. Served by uvicorn from app.py (--mode api).
"""

from datetime import datetime, timezone

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from . import __version__
from .router import router as alerts_router


_startup_time = datetime.now(timezone.utc)


def create_app() -> FastAPI:
    app = FastAPI(
        title="Predictive Maintenance Alert API",
        description="Tenant-scoped query and lifecycle API for maintenance alerts",
        version=__version__,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(alerts_router)

    @app.get("/health", tags=["Health"])
    async def health_check():
        """Health check endpoint."""
        uptime = (datetime.now(timezone.utc) - _startup_time).total_seconds()
        return {"status": "ok", "version": __version__, "uptime_seconds": uptime}

    return app


app = create_app()
