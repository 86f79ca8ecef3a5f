"""FastAPI application factory and configuration."""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from ferryman import __version__
from ferryman.data.database import close_db, init_db
from ferryman.server.schemas.common import ErrorResponse

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    """Create tables on startup and close connections on shutdown."""
    await init_db()
    yield
    await close_db()


def create_app() -> FastAPI:
    """
    Create and configure FastAPI application instance.

    Returns:
        Configured FastAPI application ready to serve requests.
    """
    app = FastAPI(
        title="Ferryman",
        description="Converts Jenkins pipelines into GitLab CI/CD configuration",
        version=__version__,
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        _request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        """Handle validation errors with consistent JSON response."""
        body = ErrorResponse(
            error="Validation Error",
            message="Request validation failed",
            details=jsonable_encoder(exc.errors()),
        )
        return JSONResponse(status_code=422, content=body.model_dump())

    @app.exception_handler(Exception)
    async def general_exception_handler(_request: Request, exc: Exception) -> JSONResponse:
        """Handle general exceptions with consistent JSON response."""
        logger.exception("Unhandled error: %s", exc)
        body = ErrorResponse(error="Internal Server Error", message=str(exc))
        return JSONResponse(status_code=500, content=body.model_dump())

    from ferryman.server.api import api_router

    app.include_router(api_router)

    return app
