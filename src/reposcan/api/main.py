from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
import logging

from .. import __version__
from ..config import Settings, settings
from ..logging_config import configure_logging
from ..service import ScanService, build_service

logger = logging.getLogger(__name__)


def create_app(service: Optional[ScanService] = None, app_settings: Optional[Settings] = None) -> FastAPI:
    """Build the API application.

    When ``service`` is None the scan service is wired from ``app_settings``
    (default: the environment) at startup and shut down with the application.
    """
    app_settings = app_settings or settings

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        owned = service is None
        if owned:
            configure_logging(app_settings.LOG_LEVEL,
                              secrets=[app_settings.GITHUB_TOKEN, app_settings.OPENAI_API_KEY])
            app.state.scan_service = build_service(app_settings)
            logger.info("Scan service started")
        else:
            app.state.scan_service = service
        try:
            yield
        finally:
            if owned:
                app.state.scan_service.shutdown(wait=False)
                logger.info("Scan service stopped")

    app = FastAPI(
        title="reposcan",
        description="API for scanning GitHub repositories with external security tools.",
        version=__version__,
        lifespan=lifespan,
    )

    from .routers import scans
    app.include_router(scans.router)

    # CORS Configuration
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/")
    async def root():
        return {
            "message": "reposcan security scanning API",
            "docs": "/docs",
            "version": __version__
        }

    @app.get("/health")
    async def health_check():
        return {"status": "healthy"}

    return app


app = create_app()
