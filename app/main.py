"""
Main FastAPI application for the Content Orchestrator backend.
Handles CORS, request logging middleware, lifespan events, and router registration.
"""
import logging
import os
import time
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.config import settings
from app.database import close_db, init_db
from app.routers import (
    brands,
    claims,
    dashboard,
    data_sources,
    documents,
    exports,
    health,
    localization,
    mlr,
    patterns,
    roi,
    themes,
    translation_memory,
    workshop,
)

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Startup / shutdown helpers
# ---------------------------------------------------------------------------

async def _check_database() -> bool:
    """Initialise DB tables and verify the connection.  Returns True on success."""
    try:
        await init_db()
        logger.info("✓ Database connection OK")
        return True
    except Exception as exc:
        logger.error("✗ Database connection failed: %s", exc)
        raise


def _check_ai_gateway() -> bool:
    """Report whether the gateway key is set.  The gateway itself is not called."""
    if settings.LOVABLE_API_KEY:
        logger.info("✓ AI gateway key configured (text model: %s)", settings.AI_TEXT_MODEL)
        return True
    logger.warning(
        "⚠ LOVABLE_API_KEY is not set; AI structuring, generation and translation will return 503"
    )
    return False


# ---------------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------------

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown event handler."""
    logger.info("=" * 60)
    logger.info("  Starting Content Orchestrator backend …")
    logger.info("=" * 60)

    # 1: Database (required; raises on failure)
    await _check_database()

    # 2: AI gateway key (optional; local analyzers keep working without it)
    _check_ai_gateway()

    # 3: Upload directory
    os.makedirs(settings.UPLOAD_DIR, exist_ok=True)
    logger.info("✓ Upload directory: %s", os.path.abspath(settings.UPLOAD_DIR))

    logger.info("=" * 60)
    logger.info("  Content Orchestrator ready on http://%s:%d", settings.HOST, settings.PORT)
    logger.info("  Swagger UI : http://%s:%d/docs", settings.HOST, settings.PORT)
    logger.info("  Health     : http://%s:%d/api/health/", settings.HOST, settings.PORT)
    logger.info("=" * 60)

    yield  # ← server is running

    logger.info("Shutting down Content Orchestrator backend …")
    await close_db()
    logger.info("✓ Shutdown complete.")


# ---------------------------------------------------------------------------
# Application
# ---------------------------------------------------------------------------

app = FastAPI(
    title="Content Orchestrator API",
    description=(
        "Pharmaceutical content operations backend: brand knowledge, claims, "
        "MLR readiness, content generation, localization and ROI.\n\n"
        "Key endpoints:\n"
        "- `POST /api/brands/{id}/documents/upload` — upload a brand document\n"
        "- `POST /api/brands/{id}/documents/{doc_id}/process` — AI-structure a document\n"
        "- `POST /api/brands/{id}/claims/validate` — detect promotional claims\n"
        "- `POST /api/mlr/readiness` — MLR readiness score\n"
        "- `POST /api/brands/{id}/workshop/initial-content` — draft content\n"
        "- `POST /api/brands/{id}/localization/projects` — plan a localization project\n"
        "- `POST /api/roi/calculate` — ROI model\n"
    ),
    version="1.0.0",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
)


# ---------------------------------------------------------------------------
# CORS
# ---------------------------------------------------------------------------

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.get_allowed_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ---------------------------------------------------------------------------
# Request / response logging middleware
# ---------------------------------------------------------------------------

@app.middleware("http")
async def log_requests(request: Request, call_next):
    """
    Log every request with method, path, status code, and elapsed time.
    Attaches an ``X-Process-Time`` header (milliseconds) to every response.
    """
    t0 = time.monotonic()
    response = await call_next(request)
    elapsed_ms = round((time.monotonic() - t0) * 1000, 2)

    # Skip noisy health-check polling from the frontend
    if request.url.path not in ("/api/health", "/api/health/", "/"):
        logger.info(
            "%s %s → %d  (%.2f ms)",
            request.method,
            request.url.path,
            response.status_code,
            elapsed_ms,
        )

    response.headers["X-Process-Time"] = f"{elapsed_ms}ms"
    return response


# ---------------------------------------------------------------------------
# Global exception handler
# ---------------------------------------------------------------------------

@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Return a structured JSON error for any unhandled exception."""
    logger.error(
        "Unhandled exception on %s %s: %s",
        request.method,
        request.url.path,
        exc,
        exc_info=True,
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "detail": "Internal server error",
            "error": str(exc),
            "path": str(request.url.path),
            "timestamp": datetime.now(timezone.utc).isoformat(),
        },
    )


# ---------------------------------------------------------------------------
# Routers
# ---------------------------------------------------------------------------

BRAND = "/api/brands/{brand_id}"

app.include_router(health.router,             prefix="/api/health",                     tags=["Health"])
app.include_router(brands.router,             prefix="/api/brands",                     tags=["Brands"])
app.include_router(documents.router,          prefix=f"{BRAND}/documents",              tags=["Documents"])
app.include_router(claims.router,             prefix=BRAND,                             tags=["Claims"])
app.include_router(themes.router,             prefix=f"{BRAND}/themes",                 tags=["Themes"])
app.include_router(workshop.router,           prefix=f"{BRAND}/workshop",               tags=["Workshop"])
app.include_router(translation_memory.router, prefix=f"{BRAND}/translation-memory",     tags=["Translation Memory"])
app.include_router(localization.router,       prefix=f"{BRAND}/localization/projects",  tags=["Localization"])
app.include_router(localization.analysis_router, prefix="/api/localization",            tags=["Localization"])
app.include_router(patterns.router,           prefix=BRAND,                             tags=["Success Patterns"])
app.include_router(dashboard.router,          prefix=f"{BRAND}/dashboard",              tags=["Dashboard"])
app.include_router(mlr.router,                prefix="/api/mlr",                        tags=["MLR"])
app.include_router(roi.router,                prefix="/api/roi",                        tags=["ROI"])
app.include_router(exports.router,            prefix="/api",                            tags=["Exports"])
app.include_router(data_sources.router,       prefix="/api/data-sources",               tags=["Data Sources"])


# ---------------------------------------------------------------------------
# Root
# ---------------------------------------------------------------------------

@app.get("/", tags=["Root"], include_in_schema=False)
async def root():
    """API root — returns basic service info."""
    return {
        "name": "Content Orchestrator API",
        "version": "1.0.0",
        "description": "Pharmaceutical Content Operations Backend",
        "docs": "/docs",
        "health": "/api/health/",
        "endpoints": {
            "brands": "/api/brands",
            "mlr": "/api/mlr",
            "localization": "/api/localization",
            "roi": "/api/roi",
            "exports": "/api/exports",
            "data_sources": "/api/data-sources",
        },
    }


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "app.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=True,
        log_level="info",
    )
