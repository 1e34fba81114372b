"""Sitebook - construction site attendance, wage, billing and estimate API"""
import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from apscheduler.schedulers.asyncio import AsyncIOScheduler

from sitebook import config as app_config
from sitebook.branding import load_branding
from sitebook.database import init_db, AsyncSessionLocal
from sitebook.routers import (
    auth,
    workers,
    attendance,
    ledger,
    estimates,
    expenses,
    payments,
    projects,
    dashboard,
    magic,
    openai_proxy,
    settings,
    backups,
)
from sitebook.services.backup_job import run_scheduled_backup

logger = logging.getLogger(__name__)
_scheduler: AsyncIOScheduler | None = None


async def _daily_backup_job():
    try:
        await run_scheduled_backup()
    except Exception:
        logger.exception("daily site backup failed")


def _parse_schedule_time(value: str) -> tuple[int, int]:
    """'HH:MM' -> (hour, minute); anything unparseable falls back to midnight."""
    try:
        parts = value.strip().split(":")
        hour, minute = int(parts[0]), int(parts[1]) if len(parts) > 1 else 0
    except (ValueError, IndexError, AttributeError):
        logger.warning("invalid BACKUP_SCHEDULE_TIME %r, using 00:00", value)
        return 0, 0
    if not (0 <= hour < 24 and 0 <= minute < 60):
        logger.warning("invalid BACKUP_SCHEDULE_TIME %r, using 00:00", value)
        return 0, 0
    return hour, minute


@asynccontextmanager
async def lifespan(app: FastAPI):
    await init_db()
    async with AsyncSessionLocal() as db:
        app.state.branding = await load_branding(db)
        await db.commit()
    global _scheduler
    _scheduler = AsyncIOScheduler()
    hour, minute = _parse_schedule_time(app_config.settings.backup_schedule_time)
    _scheduler.add_job(
        _daily_backup_job,
        "cron",
        hour=hour,
        minute=minute,
        id="site_daily_backup",
        replace_existing=True,
    )
    _scheduler.start()
    yield
    if _scheduler:
        _scheduler.shutdown(wait=False)


app = FastAPI(
    title=app_config.settings.app_name,
    description="Construction site manager: hajri, kharchi, client ledger, BOQ estimates",
    version="1.0.0",
    lifespan=lifespan,
)
app.add_middleware(
    CORSMiddleware,
    allow_origins=app_config.settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(auth.router)
app.include_router(workers.router)
app.include_router(attendance.router)
app.include_router(ledger.router)
app.include_router(estimates.router)
app.include_router(expenses.router)
app.include_router(payments.router)
app.include_router(projects.router)
app.include_router(dashboard.router)
app.include_router(magic.router)
app.include_router(openai_proxy.router)
app.include_router(settings.router)
app.include_router(backups.router)


@app.exception_handler(Exception)
async def unhandled_exception_handler(request, exc):
    if isinstance(exc, HTTPException):
        raise exc
    logger.exception("unhandled error on %s %s", request.method, request.url.path)
    detail = str(exc) if exc else "Internal Server Error"
    return JSONResponse(
        status_code=500,
        content={"detail": detail},
    )


@app.get("/")
def home():
    return {"message": "Sitebook is running"}
