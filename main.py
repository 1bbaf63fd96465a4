"""Cron Manager FastAPI application entry-point."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Annotated

import uvicorn
from fastapi import Depends, FastAPI, Request
from fastapi.responses import JSONResponse

from cron_manager.config import settings
from cron_manager.dependencies import get_store
from cron_manager.errors import AppError
from cron_manager.repositories.storage import Key, Store
from cron_manager.routers.auth_router import router as auth_router
from cron_manager.routers.cron_router import router as cron_router

# ── Logging ─────────────────────────────────────────────────────────────────────

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s | %(levelname)-7s | %(name)s | %(message)s",
)
logger = logging.getLogger("cron_manager")


# ── Lifespan ────────────────────────────────────────────────────────────────────

@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(
        "CronManager starting: database=%s scheduler_group=%s",
        settings.DATABASE_URL.split("@")[-1],
        settings.SCHEDULER_GROUP_NAME,
    )
    yield
    logger.info("CronManager shutting down")


# ── App ─────────────────────────────────────────────────────────────────────────

app = FastAPI(
    title="Cron Manager",
    description=(
        "REST API for scheduled HTTP callbacks scoped to workspaces. "
        "Registers triggers with EventBridge Scheduler and records every execution."
    ),
    version="1.0.0",
    lifespan=lifespan,
    root_path=settings.ROOT_PATH,
)

app.include_router(auth_router)
app.include_router(cron_router)


# ── Exception handlers ─────────────────────────────────────────────────────────

@app.exception_handler(AppError)
async def _app_error(request: Request, exc: AppError):
    if exc.status_code >= 500:
        logger.error("%s on %s %s: %s", exc.kind.value, request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(Exception)
async def _unhandled_exception(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=500,
        content={"error": "infrastructure_error", "detail": "Internal server error"},
    )


# ── Health ──────────────────────────────────────────────────────────────────────

@app.get("/api/health", tags=["Health"])
def health(store: Annotated[Store, Depends(get_store)]):
    """Return store reachability and server version."""
    try:
        store.get_item(settings.STORE_TABLE_NAME, Key("health", "health"))
        overall = "ok"
    except AppError:
        overall = "degraded"
    return {"status": overall, "version": "1.0.0"}


# ── Entry-point ─────────────────────────────────────────────────────────────────

def main():
    uvicorn.run(
        "main:app",
        host=settings.SERVER_HOST,
        port=settings.SERVER_PORT,
        reload=True,
        log_level="info",
    )


if __name__ == "__main__":
    main()
