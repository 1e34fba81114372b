"""Site data backups (all tables as one workbook). Admin only: X-Admin-Token must equal ADMIN_TOKEN."""
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Header
from fastapi.responses import StreamingResponse, FileResponse
from sqlalchemy.ext.asyncio import AsyncSession

from sitebook.config import settings
from sitebook.database import get_db
from sitebook.services.backup_job import (
    build_site_backup_buffer, list_backup_files, get_backup_path, run_scheduled_backup,
)
from sitebook.services.excel_export import XLSX_MEDIA_TYPE
from sitebook.utils.http_headers import build_content_disposition

router = APIRouter(prefix="/api/backup", tags=["backup"])


def require_admin_token(x_admin_token: Optional[str] = Header(None, alias="X-Admin-Token")) -> None:
    """503 while no ADMIN_TOKEN is configured; 403 on a missing or wrong header."""
    if not settings.admin_token:
        raise HTTPException(
            status_code=503,
            detail="Backups are disabled until ADMIN_TOKEN is configured on the server.",
        )
    if not x_admin_token or x_admin_token.strip() != settings.admin_token.strip():
        raise HTTPException(status_code=403, detail="Only the administrator can use backups.")


@router.get("/export", dependencies=[Depends(require_admin_token)], summary="Download a fresh backup")
async def export_backup(db: AsyncSession = Depends(get_db)):
    buf, filename = await build_site_backup_buffer(db)
    return StreamingResponse(
        buf, media_type=XLSX_MEDIA_TYPE,
        headers={"Content-Disposition": build_content_disposition(filename)},
    )


@router.post("/run", dependencies=[Depends(require_admin_token)], summary="Write a backup to the server now")
async def run_backup():
    filename = await run_scheduled_backup()
    if filename is None:
        raise HTTPException(status_code=409, detail="Another backup is in progress.")
    return {"filename": filename}


@router.get("/history", dependencies=[Depends(require_admin_token)])
async def backup_history():
    """Stored backups, newest first."""
    return list_backup_files()


@router.get("/download/{filename}", dependencies=[Depends(require_admin_token)])
async def download_backup(filename: str):
    """Only names of the form site_backup_YYYYMMDD_HHMMSS.xlsx are served."""
    path = get_backup_path(filename)
    if not path:
        raise HTTPException(status_code=404, detail="Backup not found or invalid file name.")
    return FileResponse(path, filename=path.name, media_type=XLSX_MEDIA_TYPE)
