"""Branding settings: project name, address, receipt footer, logo and dashboard wallpaper."""
from fastapi import APIRouter, Depends, HTTPException, Request, UploadFile, File
from fastapi.responses import FileResponse
from sqlalchemy.ext.asyncio import AsyncSession

from sitebook.database import get_db
from sitebook import schemas
from sitebook.branding import BrandingConfig, update_branding
from sitebook.services.upload_files import save_upload, resolve_upload_path, UploadError, IMAGE_SUFFIXES

router = APIRouter(prefix="/api/settings", tags=["settings"])


def _current(request: Request) -> BrandingConfig:
    return getattr(request.app.state, "branding", None) or BrandingConfig()


async def _apply(request: Request, db: AsyncSession, changes: dict) -> schemas.BrandingRead:
    new = await update_branding(db, _current(request), changes)
    # swap the in-memory copy only once the row is stored
    await db.commit()
    request.app.state.branding = new
    return schemas.BrandingRead(**new.as_dict())


@router.get("/branding", response_model=schemas.BrandingRead)
async def get_branding(request: Request):
    return schemas.BrandingRead(**_current(request).as_dict())


@router.put("/branding", response_model=schemas.BrandingRead)
async def put_branding(data: schemas.BrandingUpdate, request: Request, db: AsyncSession = Depends(get_db)):
    """Only the sent fields change; receipts pick the new values up immediately."""
    return await _apply(request, db, data.model_dump(exclude_unset=True))


async def _store_image(file: UploadFile, kind: str) -> str:
    content = await file.read()
    try:
        return save_upload(kind, None, content, file.filename, allowed=IMAGE_SUFFIXES)
    except UploadError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.post("/branding/logo", response_model=schemas.BrandingRead)
async def upload_logo(request: Request, file: UploadFile = File(...), db: AsyncSession = Depends(get_db)):
    rel = await _store_image(file, "branding")
    return await _apply(request, db, {"brand_logo_url": rel})


@router.post("/branding/background", response_model=schemas.BrandingRead)
async def upload_background(request: Request, file: UploadFile = File(...), db: AsyncSession = Depends(get_db)):
    """Stores the wallpaper and switches bg_type to custom."""
    rel = await _store_image(file, "branding")
    return await _apply(request, db, {"background_image_url": rel, "bg_type": "custom"})


@router.get("/files/{path:path}", summary="Serve an uploaded file")
async def get_uploaded_file(path: str):
    """Bill photos, ID documents and branding images by their stored relative path."""
    try:
        full = resolve_upload_path(path)
    except ValueError:
        raise HTTPException(status_code=404, detail="File not found")
    if not full.is_file():
        raise HTTPException(status_code=404, detail="File not found")
    return FileResponse(full)
