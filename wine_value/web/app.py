"""FastAPI application factory for Wine Value Finder."""

import asyncio
import contextlib
import logging
from contextlib import asynccontextmanager
from pathlib import Path

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from wine_value.config import AppConfig, get_default_config
from wine_value.core.errors import (
    ConfigurationError,
    DocumentParseError,
    InvalidWineIndexError,
    LookupConflictError,
    SessionNotFoundError,
    SessionNotReadyError,
    UnsupportedFileTypeError,
    WineValueError,
)
from wine_value.services.session_service import SessionService

# Load .env file from project root
_project_root = Path(__file__).parent.parent.parent
_env_file = _project_root / ".env"
if _env_file.exists():
    load_dotenv(_env_file)

logger = logging.getLogger(__name__)

ERROR_STATUS_CODES: dict[type[WineValueError], int] = {
    SessionNotFoundError: 404,
    LookupConflictError: 409,
    SessionNotReadyError: 409,
    InvalidWineIndexError: 400,
    UnsupportedFileTypeError: 400,
    DocumentParseError: 422,
    ConfigurationError: 503,
}


async def wine_value_error_handler(request: Request, exc: WineValueError) -> JSONResponse:
    """Render domain errors as JSON with their HTTP status."""
    status_code = next(
        (code for error_type, code in ERROR_STATUS_CODES.items() if isinstance(exc, error_type)),
        500,
    )
    return JSONResponse(status_code=status_code, content={"error": exc.reason})


def create_app(
    service: SessionService | None = None,
    config: AppConfig | None = None,
) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        service: Pre-built session service (tests inject fakes here).
        config: Configuration; defaults to the process-wide config.
    """
    config = config or get_default_config()
    service = service or SessionService.from_config(config)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        sweeper = asyncio.create_task(
            service.store.run_sweeper(config.sessions.sweep_interval_minutes * 60)
        )
        logger.info("Session sweeper started")
        try:
            yield
        finally:
            sweeper.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await sweeper

    app = FastAPI(
        title="Wine Value Finder",
        description="Find the best-value bottles on a restaurant wine list",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.service = service
    app.state.config = config
    app.add_exception_handler(WineValueError, wine_value_error_handler)

    # Include routers (import here to avoid circular imports)
    from wine_value.web.routes import health, lookup, upload, wines

    app.include_router(upload.router)
    app.include_router(wines.router)
    app.include_router(lookup.router)
    app.include_router(health.router)

    return app


# Application instance
app = create_app()
