"""Site data backup: one workbook (a sheet per table) in server/backup, keeping only the newest N.
A lock file stops two processes from writing the same backup."""
import logging
import re
import time
from datetime import datetime
from io import BytesIO
from pathlib import Path
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from sitebook.config import settings, BASE_DIR
from sitebook import crud
from sitebook.services.excel_export import (
    build_workbook, workers_sheet, ledger_sheet, expenses_sheet,
)

logger = logging.getLogger(__name__)

# whitelist: only file names this job produces (guards against path traversal on download)
BACKUP_FILENAME_PATTERN = re.compile(r"^site_backup_\d{8}_\d{6}\.xlsx$")
BACKUP_GLOB = "site_backup_*.xlsx"
LOCK_NAME = ".site_backup.lock"


async def build_site_backup_buffer(db: AsyncSession) -> tuple[BytesIO, str]:
    """All tables into one workbook; returns (buffer, file name)."""
    workers = await crud.list_workers(db, limit=100000)
    attendance = await crud.list_attendance(db)
    entries = await crud.list_ledger_entries(db)
    expenses = await crud.list_expenses(db)
    payments = await crud.list_payments(db)
    estimates = await crud.list_estimates(db)

    attendance_rows = (
        [r.id, r.worker_id, r.date, r.hajri_count, r.kharchi_amount, r.status, r.project_id, r.shift, r.notes]
        for r in attendance
    )
    payment_rows = (
        [p.id, p.worker_id, p.amount, p.payment_date, p.payment_type, p.method, p.notes, p.project_id]
        for p in payments
    )
    item_rows = (
        [e.id, e.name, e.is_active, i.id, i.description, i.unit, i.quantity, i.rate, i.amount, i.category, i.extra_data]
        for e in estimates
        for i in e.items
    )
    buf = build_workbook([
        workers_sheet(workers),
        ("Attendance", ["ID", "Worker ID", "Date", "Hajri", "Kharchi", "Status", "Project", "Shift", "Notes"],
         attendance_rows),
        ledger_sheet(entries),
        expenses_sheet(expenses),
        ("Payments", ["ID", "Worker ID", "Amount", "Date", "Type", "Method", "Notes", "Project"], payment_rows),
        ("Estimate Items", ["Estimate ID", "Estimate", "Active", "Item ID", "Description", "Unit", "Quantity",
                            "Rate", "Stored Amount", "Category", "Extra"], item_rows),
    ])
    filename = f"site_backup_{datetime.now().strftime('%Y%m%d_%H%M%S')}.xlsx"
    return buf, filename


def _get_backup_dir() -> Path:
    """Absolute, or relative to the backend root BASE_DIR."""
    p = settings.backup_dir
    if not p.is_absolute():
        p = BASE_DIR / p
    return p


def _prune_old_backups(backup_dir: Path, keep: int) -> None:
    files = sorted(backup_dir.glob(BACKUP_GLOB), key=lambda f: f.stat().st_mtime, reverse=True)
    for f in files[keep:]:
        try:
            f.unlink()
        except OSError:
            logger.warning("could not remove old backup %s", f.name)


def _acquire_backup_lock(backup_dir: Path, timeout_seconds: int = 600) -> bool:
    """Lock file; one older than timeout_seconds is treated as stale and taken over."""
    lock_path = backup_dir / LOCK_NAME
    now = time.time()
    try:
        lock_path.touch(exist_ok=False)
        return True
    except FileExistsError:
        try:
            if now - lock_path.stat().st_mtime > timeout_seconds:
                lock_path.unlink()
                lock_path.touch(exist_ok=False)
                return True
        except OSError:
            pass
        return False


def _release_backup_lock(backup_dir: Path) -> None:
    try:
        (backup_dir / LOCK_NAME).unlink(missing_ok=True)
    except OSError:
        logger.warning("could not release backup lock in %s", backup_dir)


async def run_scheduled_backup(session_factory=None) -> Optional[str]:
    """Write one backup and prune; returns the file name, or None when another process holds the lock."""
    if session_factory is None:
        from sitebook.database import AsyncSessionLocal as session_factory
    backup_dir = _get_backup_dir()
    backup_dir.mkdir(parents=True, exist_ok=True)

    if not _acquire_backup_lock(backup_dir):
        logger.info("backup skipped: another run holds the lock")
        return None

    try:
        async with session_factory() as db:
            buf, filename = await build_site_backup_buffer(db)
        (backup_dir / filename).write_bytes(buf.getvalue())
        _prune_old_backups(backup_dir, settings.backup_retention_count)
        logger.info("backup written: %s", filename)
        return filename
    finally:
        _release_backup_lock(backup_dir)


def list_backup_files() -> list[dict]:
    backup_dir = _get_backup_dir()
    if not backup_dir.exists():
        return []
    files = sorted(backup_dir.glob(BACKUP_GLOB), key=lambda f: f.stat().st_mtime, reverse=True)
    return [
        {
            "filename": f.name,
            "created_at": datetime.fromtimestamp(f.stat().st_mtime).isoformat(),
            "size": f.stat().st_size,
        }
        for f in files
    ]


def get_backup_path(filename: str) -> Optional[Path]:
    if not filename or not BACKUP_FILENAME_PATTERN.match(filename):
        return None
    path = _get_backup_dir() / filename
    return path if path.is_file() else None
