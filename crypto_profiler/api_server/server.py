"""
FastAPI server: read-only lookup API over the sanction store.

Exposes GET /check?address=... and GET /health. Reads from the database only;
the refresh loop that writes it runs in a background thread started by the
lifespan. Config via env (DB_PATH, FEED_URL, SYNC_INTERVAL_SEC, ...).
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any

from fastapi import Depends, FastAPI, HTTPException, Query, Request
from fastapi.responses import JSONResponse, PlainTextResponse
from pydantic import BaseModel, Field

from crypto_profiler.api_server.middleware import log_requests
from crypto_profiler.config import get_settings
from crypto_profiler.database import Database, get_database
from crypto_profiler.logging import get_logger
from crypto_profiler.watchlist import LookupService, SyncConfig, start_sync_thread

logger = get_logger(__name__)

SYNC_SHUTDOWN_JOIN_SEC = 15.0


# -----------------------------------------------------------------------------
# Config and dependency
# -----------------------------------------------------------------------------


def get_db_path() -> Path:
    return get_settings().db_path


def get_db(request: Request) -> Database:
    """Dependency: the store opened by the lifespan; opened here only when no lifespan ran."""
    db = getattr(request.app.state, "db", None)
    if db is None:
        db = get_database(get_db_path())
    return db


def get_lookup(db: Database = Depends(get_db)) -> LookupService:
    return LookupService(db)


# -----------------------------------------------------------------------------
# Response models
# -----------------------------------------------------------------------------


class CheckResponse(BaseModel):
    """GET /check response. currency/source only present when sanctioned."""

    sanctioned: bool = Field(..., description="True if the exact address is on the watchlist")
    address: str = Field(..., description="Address as queried")
    currency: str | None = Field(None, description="Currency ticker from the feed")
    source: str | None = Field(None, description="Issuing authority (e.g. OFAC)")


# -----------------------------------------------------------------------------
# Lifespan: start background refresh loop (never blocks API)
# -----------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Open the store (fatal on failure), start the refresh thread, stop it on shutdown."""
    settings = get_settings()
    db = get_database(settings.db_path)
    logger.info("api_store_ready", db_path=str(settings.db_path), entries=db.count())
    app.state.db = db

    thread = None
    stop_event = None
    if settings.sync_enabled:
        thread, stop_event = start_sync_thread(db, SyncConfig.from_settings(settings))
        logger.info("api_sync_started", interval_sec=settings.sync_interval_sec)
    else:
        logger.info("api_sync_disabled")

    yield

    app.state.db = None
    if thread is not None and stop_event is not None:
        stop_event.set()
        thread.join(timeout=SYNC_SHUTDOWN_JOIN_SEC)
        if thread.is_alive():
            logger.warning("api_sync_shutdown_timeout", timeout_sec=SYNC_SHUTDOWN_JOIN_SEC)
        else:
            logger.info("api_sync_stopped")


# -----------------------------------------------------------------------------
# App and routes
# -----------------------------------------------------------------------------

app = FastAPI(
    title="Crypto Profiler Watchlist Engine",
    description="Exact-match sanctions lookups for cryptocurrency addresses.",
    version="0.1.0",
    lifespan=lifespan,
)

app.middleware("http")(log_requests)


@app.get("/check", response_model=CheckResponse, response_model_exclude_none=True)
def check_address(
    address: str | None = Query(None, description="Address to screen (exact, case-sensitive)"),
    lookup: LookupService = Depends(get_lookup),
) -> CheckResponse:
    """
    Return whether the address is sanctioned.

    400 when the address parameter is missing or empty; an unknown address is
    simply sanctioned=false.
    """
    if not address:
        raise HTTPException(status_code=400, detail="Missing address parameter")
    result = lookup.check(address)
    logger.debug("lookup_request", address=address, sanctioned=result.sanctioned)
    return CheckResponse(address=address, **result.to_dict())


@app.get("/health", response_class=PlainTextResponse)
def health() -> str:
    """Liveness check: API is up."""
    return "OK"


@app.exception_handler(HTTPException)
def http_exception_handler(request: Any, exc: HTTPException) -> JSONResponse:
    """Consistent JSON error response for HTTPException."""
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail},
    )
