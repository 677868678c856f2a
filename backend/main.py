"""FastAPI application entry point."""

import logging
import time
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from api import accounts, auth, portfolio, sync, transactions
from api.helpers import TooManyAttemptsError
from config import settings
from database import get_engine
from logging_config import setup_logging
from schemas import HealthResponse
from services.rate_limiter import build_rate_limiters

setup_logging()
logger = logging.getLogger(__name__)

_started_at = time.monotonic()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Build the per-process rate limiters and warm up the database."""
    app.state.rate_limiters = build_rate_limiters()
    try:
        get_engine()
    except SQLAlchemyError:
        logger.warning("Database unavailable on startup", exc_info=True)
    logger.info("Finance Hub %s started (%s)", settings.APP_VERSION, settings.ENVIRONMENT)
    yield


app = FastAPI(
    title="Finance Hub",
    description="Aggregated balances and transactions from SimpleFIN and Solana",
    version=settings.APP_VERSION,
    lifespan=lifespan,
)

# CORS configuration for frontend
app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:5173"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(TooManyAttemptsError)
async def too_many_attempts_handler(request: Request, exc: TooManyAttemptsError):
    retry_after = exc.result.retry_after_seconds
    return JSONResponse(
        status_code=429,
        content={"detail": "Too many attempts", "retry_after": retry_after},
        headers={"Retry-After": str(retry_after)},
    )


# Include API routers
app.include_router(accounts.router)
app.include_router(auth.router)
app.include_router(portfolio.router)
app.include_router(sync.router)
app.include_router(transactions.router)


def check_database() -> bool:
    """True if a trivial query succeeds."""
    try:
        with get_engine().connect() as conn:
            conn.execute(text("SELECT 1"))
        return True
    except SQLAlchemyError:
        logger.warning("Health check: database unreachable", exc_info=True)
        return False


@app.get("/health")
def health_check():
    """Health check endpoint. Answers 503 when the database is unreachable."""
    db_ok = check_database()
    body = HealthResponse(
        status="healthy" if db_ok else "unhealthy",
        uptime=round(time.monotonic() - _started_at, 3),
        database="connected" if db_ok else "disconnected",
        version=settings.APP_VERSION,
        timestamp=datetime.now(timezone.utc),
    )
    return JSONResponse(status_code=200 if db_ok else 503, content=body.model_dump(mode="json"))
