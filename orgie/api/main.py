"""
orgie.api.main — FastAPI application entry point
=================================================

Run with::

    uvicorn orgie.api.main:app --reload --port 5001
"""

from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

load_dotenv()

from orgie.api.deps import get_config, get_engine  # noqa: E402
from orgie.api.routes.events import router as events_router  # noqa: E402
from orgie.api.routes.terms import router as terms_router  # noqa: E402
from orgie.api.routes.users import router as users_router  # noqa: E402
from orgie.database.engine import init_db, run_db  # noqa: E402
from orgie.errors import OrgieError  # noqa: E402
from orgie.logging_config import configure_logging  # noqa: E402

logger = logging.getLogger(__name__)


def _cors_origins() -> list[str]:
    """Resolve allowed CORS origins from env with safe defaults.

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
    """Startup/shutdown lifecycle — install logging, verify tables."""
    # Uvicorn reconfigures logging when it starts, so install ours here.
    cfg = get_config()
    configure_logging(json_output=cfg.log_json)

    engine = get_engine()
    await run_db(init_db, engine)
    logger.info("%s API started — engine ready (%s)", cfg.app_name, engine.url.database)
    yield
    logger.info("%s API shutting down", cfg.app_name)


app = FastAPI(
    title="Orgie API",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=_cors_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(OrgieError)
async def orgie_error_handler(request: Request, exc: OrgieError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


# terms before events: "/events/terms/..." must not match "/events/{event_id}"
app.include_router(terms_router, prefix="/api")
app.include_router(events_router, prefix="/api")
app.include_router(users_router, prefix="/api")


@app.get("/api/health")
def health():
    return {"status": "ok"}
