"""Client billing ledger: bills raised and payments received, with running balance. Entries are delete-only."""
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import StreamingResponse
from sqlalchemy.ext.asyncio import AsyncSession

from sitebook.database import get_db
from sitebook import crud, schemas
from sitebook.accounting.client_ledger import ledger_view
from sitebook.services.excel_export import build_workbook, ledger_sheet, XLSX_MEDIA_TYPE
from sitebook.utils.http_headers import build_content_disposition

router = APIRouter(prefix="/api/ledger", tags=["client-ledger"])

RESPONSE_404 = {404: {"description": "Ledger entry not found"}}
RESPONSE_400 = {400: {"description": "Entry rejected", "content": {"application/json": {"example": {"detail": "Please enter either a Bill Amount or Payment Received."}}}}}


@router.get("", response_model=schemas.LedgerView, summary="Entries with running balance and totals")
async def list_entries(project_id: Optional[int] = Query(None), db: AsyncSession = Depends(get_db)):
    entries = await crud.list_ledger_entries(db, project_id=project_id)
    return ledger_view(entries)


@router.post("", response_model=schemas.LedgerEntryRead, status_code=201, responses={**RESPONSE_400})
async def create_entry(data: schemas.LedgerEntryCreate, db: AsyncSession = Depends(get_db)):
    """Needs a description and a bill amount or a payment (or both)."""
    try:
        entry = await crud.create_ledger_entry(db, data)
    except crud.LedgerEntryInvalidError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return schemas.LedgerEntryRead.model_validate(entry)


@router.delete("/{entry_id}", status_code=204, responses={**RESPONSE_404})
async def delete_entry(entry_id: int, db: AsyncSession = Depends(get_db)):
    """Immediate and irreversible."""
    entry = await crud.get_ledger_entry(db, entry_id)
    if not entry:
        raise HTTPException(status_code=404, detail="Ledger entry not found")
    await crud.delete_ledger_entry(db, entry)


@router.get("/export", summary="Client ledger (Excel)")
async def export_ledger(project_id: Optional[int] = Query(None), db: AsyncSession = Depends(get_db)):
    entries = await crud.list_ledger_entries(db, project_id=project_id)
    buf = build_workbook([ledger_sheet(entries)])
    return StreamingResponse(
        buf, media_type=XLSX_MEDIA_TYPE,
        headers={"Content-Disposition": build_content_disposition("client_ledger.xlsx")},
    )
