"""
FastAPI application factory.

Run with:  uvicorn storerate.main:app
"""
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from storerate.api.v1.router import api_router
from storerate.config import Settings, get_settings
from storerate.core.database import Database
from storerate.core.logs import configure_logging

logger = logging.getLogger(__name__)


def _validation_message(exc: RequestValidationError) -> str:
    """First validation error as a single human-readable line."""
    errors = exc.errors()
    if not errors:
        return "Invalid request"
    first = errors[0]
    message = str(first.get("msg", "Invalid request"))
    prefix = "Value error, "
    if message.startswith(prefix):
        return message[len(prefix):]
    field = ".".join(str(p) for p in first.get("loc", ())[1:])
    return f"{field}: {message}" if field else message


def register_exception_handlers(app: FastAPI) -> None:
    """Render every error as ``{"error": message}``."""

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": exc.detail},
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"error": _validation_message(exc)},
        )

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        logger.error(
            "Unhandled error on %s %s: %s: %s",
            request.method,
            request.url.path,
            type(exc).__name__,
            exc,
            exc_info=exc,
        )
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": "Internal server error"},
        )


def create_app(
    settings: Optional[Settings] = None,
    database: Optional[Database] = None,
) -> FastAPI:
    """
    Build the application.

    ``database`` defaults to a PostgreSQL handle built from settings; tests
    pass their own. The lifespan disposes it on shutdown.
    """
    settings = settings or get_settings()
    configure_logging(settings)

    if database is None:
        database = Database(
            settings.database_url,
            echo=settings.db_echo,
            pool_size=settings.db_pool_size,
            pool_pre_ping=True,
        )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("%s %s starting", settings.app_name, settings.app_version)
        yield
        await app.state.db.dispose()

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        debug=settings.debug,
        lifespan=lifespan,
    )
    app.state.db = database
    app.state.settings = settings

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    register_exception_handlers(app)
    app.include_router(api_router, prefix=settings.api_prefix)

    @app.get("/health")
    async def health(request: Request):
        """Liveness + database connectivity."""
        try:
            async with request.app.state.db.engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
            database_status = "connected"
        except (SQLAlchemyError, OSError) as e:
            logger.error("Health check database error: %s", e)
            database_status = "unavailable"
        return {
            "status": "healthy" if database_status == "connected" else "degraded",
            "services": {"database": database_status},
        }

    return app


app = create_app()
