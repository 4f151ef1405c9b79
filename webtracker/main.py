"""
FastAPI application factory with the runtime lifecycle.
"""

import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from webtracker import __version__
from webtracker.config import Settings, settings as default_settings
from webtracker.infrastructure.observability.logging import get_logger, log_request
from webtracker.middleware.cors import CORSMiddleware
from webtracker.routes import health, shipments, tracking
from webtracker.runtime import Application

logger = get_logger(__name__)


def create_app(settings: Settings | None = None, runtime: Application | None = None) -> FastAPI:
    settings = settings or default_settings
    runtime = runtime or Application(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Start the bot runtime with the API and stop it on shutdown."""
        try:
            await runtime.start()
        except Exception as e:
            logger.error("Failed to start application", error=str(e), error_type=type(e).__name__)
            await runtime.shutdown()
            raise

        yield

        await runtime.shutdown()

    app = FastAPI(
        title="WebTracker",
        description="Shipment tracking bot and admin API",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.runtime = runtime

    app.include_router(health.router)
    app.include_router(tracking.router)
    app.include_router(shipments.router)

    app.add_middleware(CORSMiddleware, allowed_origin=settings.cors_origin())

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        """Log HTTP requests with timing."""
        start_time = time.time()
        response = await call_next(request)
        log_request(
            request.method,
            request.url.path,
            response.status_code,
            round((time.time() - start_time) * 1000, 2),
        )
        return response

    @app.exception_handler(StarletteHTTPException)
    async def http_error(request: Request, exc: StarletteHTTPException):
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": str(exc.detail)},
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_error(request: Request, exc: RequestValidationError):
        logger.info("Rejected invalid request body", path=request.url.path, errors=exc.errors()[:3])
        return JSONResponse(status_code=400, content={"error": "invalid input"})

    return app
