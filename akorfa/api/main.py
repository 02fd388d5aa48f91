"""
akorfa.api.main — FastAPI application entry point
==================================================

Run with::

    uvicorn akorfa.api.main:app --reload --port 8000
"""

from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager

from dotenv import load_dotenv
from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

load_dotenv()

from akorfa import __version__  # noqa: E402
from akorfa.api.deps import get_cache, get_config, get_engine  # noqa: E402
from akorfa.api.routes.activity import router as activity_router  # noqa: E402
from akorfa.api.routes.badges import router as badges_router  # noqa: E402
from akorfa.api.routes.maintenance import router as maintenance_router  # noqa: E402
from akorfa.api.routes.stability import router as stability_router  # noqa: E402
from akorfa.database.engine import init_db  # noqa: E402
from akorfa.engine.cache import ConfigCache  # noqa: E402
from akorfa.errors import (  # noqa: E402
    AccountNotFoundError,
    BadgeAwardError,
    TransientStoreError,
    ValidationError,
)

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------
logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s │ %(levelname)-8s │ %(name)s │ %(message)s",
    datefmt="%H:%M:%S",
)
logger = logging.getLogger(__name__)


def _cors_origins() -> list[str]:
    """Resolve allowed CORS origins from env.

    Priority:
      1) CORS_ALLOW_ORIGINS (comma-separated)
      2) FRONTEND_URL (single origin)
    """
    raw = os.getenv("CORS_ALLOW_ORIGINS", "").strip()
    if raw:
        return [origin.strip().rstrip("/") for origin in raw.split(",") if origin.strip()]

    frontend_url = os.getenv("FRONTEND_URL", "").strip()
    if frontend_url:
        return [frontend_url.rstrip("/")]

    return []


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup/shutdown lifecycle — create tables, seed, warm the cache."""
    cfg = get_config()
    engine = get_engine()
    init_db(engine, cfg)
    get_cache().load_all()
    logger.info("%s API started — engine ready (%s)", cfg.app_name, engine.url.database)
    yield
    logger.info("%s API shutting down", cfg.app_name)


app = FastAPI(
    title="Akorfa Progression API",
    version=__version__,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=_cors_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ---------------------------------------------------------------------------
# Error mapping
# ---------------------------------------------------------------------------
@app.exception_handler(ValidationError)
async def _validation_error(request: Request, exc: ValidationError):
    return JSONResponse(status_code=400, content={"detail": str(exc)})


@app.exception_handler(AccountNotFoundError)
async def _account_not_found(request: Request, exc: AccountNotFoundError):
    return JSONResponse(status_code=404, content={"detail": str(exc)})


@app.exception_handler(TransientStoreError)
async def _store_unavailable(request: Request, exc: TransientStoreError):
    logger.warning("Store unavailable on %s: %s", request.url.path, exc)
    return JSONResponse(
        status_code=503,
        content={"detail": "Storage temporarily unavailable", "retryable": True},
    )


@app.exception_handler(BadgeAwardError)
async def _badge_award_failed(request: Request, exc: BadgeAwardError):
    return JSONResponse(
        status_code=500,
        content={
            "detail": str(exc),
            "awarded": [b.as_dict() for b in exc.awarded],
        },
    )


# Mount routers
app.include_router(activity_router, prefix="/api")
app.include_router(badges_router, prefix="/api")
app.include_router(stability_router, prefix="/api")
app.include_router(maintenance_router, prefix="/api")


@app.get("/api/health")
def health():
    return {"status": "ok"}


@app.get("/api/points")
def get_points(cache: ConfigCache = Depends(get_cache)):
    """Point value per activity kind and the score → currency conversion rate."""
    rate = cache.get_conversion_rate()
    return {
        "points": cache.get_point_values(),
        "conversion_rate": rate,
        "points_per_unit": round(1 / rate) if rate > 0 else None,
    }
