"""Worker CRUD; Aadhaar masked in lists, revealed on single fetch. Deleting a worker removes their attendance."""
from typing import Optional, List

from fastapi import APIRouter, Depends, HTTPException, Query, UploadFile, File
from fastapi.responses import StreamingResponse
from sqlalchemy.ext.asyncio import AsyncSession

from sitebook.database import get_db
from sitebook import crud, schemas
from sitebook.sensitive import worker_to_read_dict
from sitebook.services.excel_export import build_workbook, workers_sheet, XLSX_MEDIA_TYPE
from sitebook.services.upload_files import save_upload, UploadError, IMAGE_SUFFIXES, DOCUMENT_SUFFIXES
from sitebook.utils.http_headers import build_content_disposition

router = APIRouter(prefix="/api/workers", tags=["workers"])

RESPONSE_404 = {404: {"description": "Worker not found", "content": {"application/json": {"example": {"detail": "Worker not found"}}}}}


async def _get_or_404(db: AsyncSession, worker_id: int):
    worker = await crud.get_worker(db, worker_id)
    if not worker:
        raise HTTPException(status_code=404, detail="Worker not found")
    return worker


@router.get("", response_model=List[schemas.WorkerRead], summary="List workers")
async def list_workers(
    status: Optional[str] = Query(None, description="active / inactive; omit for all"),
    search: Optional[str] = Query(None, description="Name or phone, partial match"),
    reveal_sensitive: bool = Query(False, description="Return Aadhaar in full"),
    db: AsyncSession = Depends(get_db),
):
    workers = await crud.list_workers(db, status=status, search=search)
    return [schemas.WorkerRead(**worker_to_read_dict(w, reveal_sensitive)) for w in workers]


@router.get("/export", summary="Export workers to Excel")
async def export_workers(status: Optional[str] = Query(None), db: AsyncSession = Depends(get_db)):
    workers = await crud.list_workers(db, status=status, limit=100000)
    buf = build_workbook([workers_sheet(workers)])
    return StreamingResponse(
        buf, media_type=XLSX_MEDIA_TYPE,
        headers={"Content-Disposition": build_content_disposition("workers.xlsx")},
    )


@router.get("/{worker_id}", response_model=schemas.WorkerRead, responses={**RESPONSE_404})
async def get_worker(worker_id: int, db: AsyncSession = Depends(get_db)):
    """Single worker for the edit form: KYC fields in full."""
    worker = await _get_or_404(db, worker_id)
    return schemas.WorkerRead(**worker_to_read_dict(worker, reveal_sensitive=True))


@router.post("", response_model=schemas.WorkerRead, status_code=201)
async def create_worker(data: schemas.WorkerCreate, db: AsyncSession = Depends(get_db)):
    worker = await crud.create_worker(db, data)
    return schemas.WorkerRead(**worker_to_read_dict(worker))


@router.patch("/{worker_id}", response_model=schemas.WorkerRead, responses={**RESPONSE_404})
async def update_worker(worker_id: int, data: schemas.WorkerUpdate, db: AsyncSession = Depends(get_db)):
    """Changing daily_wage re-prices every past attendance row; there is no wage history."""
    worker = await _get_or_404(db, worker_id)
    worker = await crud.update_worker(db, worker, data)
    return schemas.WorkerRead(**worker_to_read_dict(worker))


@router.delete("/{worker_id}", status_code=204, responses={**RESPONSE_404})
async def delete_worker(worker_id: int, db: AsyncSession = Depends(get_db)):
    worker = await _get_or_404(db, worker_id)
    await crud.delete_worker(db, worker)


async def _upload(db: AsyncSession, worker_id: int, file: UploadFile, field: str, kind: str, allowed: set):
    worker = await _get_or_404(db, worker_id)
    content = await file.read()
    try:
        rel = save_upload(kind, worker.id, content, file.filename, allowed=allowed)
    except UploadError as e:
        raise HTTPException(status_code=400, detail=str(e))
    worker = await crud.set_worker_file(db, worker, field, rel)
    return schemas.WorkerRead(**worker_to_read_dict(worker))


@router.post("/{worker_id}/photo", response_model=schemas.WorkerRead, responses={**RESPONSE_404})
async def upload_worker_photo(worker_id: int, file: UploadFile = File(...), db: AsyncSession = Depends(get_db)):
    return await _upload(db, worker_id, file, "photo_url", "worker_photos", IMAGE_SUFFIXES)


@router.post("/{worker_id}/id-document", response_model=schemas.WorkerRead, responses={**RESPONSE_404})
async def upload_worker_id_document(worker_id: int, file: UploadFile = File(...), db: AsyncSession = Depends(get_db)):
    """Aadhaar / voter ID scan (image or PDF)."""
    return await _upload(db, worker_id, file, "id_document_url", "worker_documents", DOCUMENT_SUFFIXES)
