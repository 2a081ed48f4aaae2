"""ASGI application: middleware, probes and the /api/v1 routers."""

from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from finance_tracker.config import settings
from finance_tracker.core.database import async_session_factory, engine
from finance_tracker.core.logging import configure_logging
from finance_tracker.core.middleware import RequestLoggingMiddleware

configure_logging()
logger = structlog.get_logger()

VERSION = "0.1.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("app_started", env=settings.app_env, version=VERSION)
    yield
    await engine.dispose()
    logger.info("app_stopped")


app = FastAPI(
    title="Finance Tracker API",
    description="Personal income and expense tracking with per-account balances",
    version=VERSION,
    lifespan=lifespan,
    # A 307 to the slash-less path loses the bearer header in browsers
    redirect_slashes=False,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(RequestLoggingMiddleware)


async def _database_status() -> str:
    try:
        async with async_session_factory() as session:
            await session.execute(text("SELECT 1"))
    except (SQLAlchemyError, OSError) as e:
        logger.warning("database_unreachable", error=str(e))
        return f"error: {e}"
    return "ok"


@app.get("/health", tags=["system"])
async def health_check():
    """Process is up; does not touch the database."""
    return {"status": "healthy", "version": VERSION}


@app.get("/ready", tags=["system"])
async def readiness_check():
    """Ready to serve only when PostgreSQL answers."""
    database = await _database_status()
    return {
        "status": "ready" if database == "ok" else "degraded",
        "checks": {"database": database, "api": "ok"},
    }


from finance_tracker.api.v1 import accounts, analytics, categories, transactions, users  # noqa: E402

for module, prefix in (
    (users, "users"),
    (accounts, "accounts"),
    (transactions, "transactions"),
    (categories, "categories"),
    (analytics, "analytics"),
):
    app.include_router(module.router, prefix=f"/api/v1/{prefix}", tags=[prefix])
