"""
GEOspy API

FastAPI app that:
1. Manages projects of target and competitor URLs
2. Scrapes page structure through Firecrawl
3. Generates reference AI answers through Gemini
4. Diffs page coverage against those answers
5. Stores prioritized recommendations
"""

import logging
import sys

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from api.projects import router as projects_router
from geospy import __version__
from geospy.database import check_db_connection, get_db_info, init_db
from geospy.exceptions import (
    InvalidRequestError,
    MissingCredentialError,
    MissingTargetContentError,
    NotFoundError,
)
from geospy.integrations.config import ExternalAPIClients, ExternalAPIConfig
from geospy.integrations.firecrawl import FirecrawlError
from geospy.integrations.gemini import GeminiError
from geospy.utils.config import get_settings


def configure_logging(level: str = "INFO") -> None:
    """Log to stdout at `level` (unknown names fall back to INFO)."""
    numeric = getattr(logging, (level or "").upper(), None)
    if not isinstance(numeric, int):
        numeric = logging.INFO

    logging.basicConfig(
        level=numeric,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stdout,
        force=True,
    )

    # Quiet down chatty loggers
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


configure_logging(get_settings().LOG_LEVEL)
logger = logging.getLogger(__name__)

app = FastAPI(
    title="GEOspy",
    description="Content gap analysis against generative AI answers",
    version=__version__,
)

app.include_router(projects_router)


# ============================================================================
# STARTUP / SHUTDOWN
# ============================================================================

@app.on_event("startup")
async def startup_event():
    """Initialize database and API clients on startup."""
    logger.info("Initializing database...")
    try:
        init_db()
        if check_db_connection():
            logger.info("Database connection verified")
        else:
            logger.warning("Database connection check failed - continuing anyway")
    except Exception as e:
        logger.error(f"Database initialization failed: {e}")

    config = ExternalAPIConfig.from_settings(get_settings())
    config.log_status()
    app.state.clients = ExternalAPIClients(config)


@app.on_event("shutdown")
async def shutdown_event():
    clients = getattr(app.state, "clients", None)
    if clients is not None:
        await clients.close()


# ============================================================================
# ERROR HANDLERS
# ============================================================================

@app.exception_handler(NotFoundError)
async def not_found_handler(request: Request, exc: NotFoundError):
    return JSONResponse(status_code=404, content={"detail": str(exc)})


@app.exception_handler(InvalidRequestError)
async def invalid_request_handler(request: Request, exc: InvalidRequestError):
    return JSONResponse(status_code=400, content={"detail": str(exc)})


@app.exception_handler(MissingCredentialError)
async def missing_credential_handler(request: Request, exc: MissingCredentialError):
    logger.warning(f"{request.url.path}: {exc}")
    return JSONResponse(status_code=503, content={"detail": str(exc)})


@app.exception_handler(MissingTargetContentError)
async def missing_target_handler(request: Request, exc: MissingTargetContentError):
    return JSONResponse(status_code=409, content={"detail": str(exc)})


@app.exception_handler(GeminiError)
async def gemini_error_handler(request: Request, exc: GeminiError):
    logger.error(f"Gemini call failed on {request.url.path}: {exc}")
    return JSONResponse(status_code=502, content={"detail": "AI generation failed"})


@app.exception_handler(FirecrawlError)
async def firecrawl_error_handler(request: Request, exc: FirecrawlError):
    logger.error(f"Firecrawl call failed on {request.url.path}: {exc}")
    return JSONResponse(status_code=502, content={"detail": "Scraping service failed"})


# ============================================================================
# HEALTH
# ============================================================================

@app.get("/")
async def root():
    return {"service": "GEOspy", "version": __version__, "status": "running"}


@app.get("/api/health")
async def health():
    """Health check with database status."""
    db_info = get_db_info()
    return {
        "status": "healthy" if db_info["connected"] else "degraded",
        "version": __version__,
        "database": db_info,
    }
