"""
AI-assisted entry. Each flow is two calls: /parse returns an editable preview,
/commit writes the confirmed rows through the normal attendance, expense and estimate paths.
"""
import base64
import logging
from datetime import datetime
from decimal import Decimal
from typing import Optional, List

from fastapi import APIRouter, Depends, HTTPException, UploadFile, File, Form
from sqlalchemy.ext.asyncio import AsyncSession

from sitebook.database import get_db
from sitebook import crud, schemas
from sitebook.accounting.wages import apply_status_toggle, bounded, money
from sitebook.services import ai_entry
from sitebook.services.boq_import import workbook_to_text, WorkbookReadError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/magic", tags=["ai-entry"])

RESPONSE_502 = {502: {"description": "AI service failed", "content": {"application/json": {"example": {"detail": "AI returned invalid JSON format."}}}}}

IMAGE_MIME = {".png": "image/png", ".jpg": "image/jpeg", ".jpeg": "image/jpeg", ".webp": "image/webp"}


def _ai_error(e: ai_entry.AIEntryError) -> HTTPException:
    return HTTPException(status_code=502, detail=str(e))


# ---------- Attendance ----------
@router.post("/attendance/parse", response_model=List[schemas.ParsedAttendance], responses={**RESPONSE_502})
async def parse_attendance(body: schemas.MagicParseRequest, db: AsyncSession = Depends(get_db)):
    """Names are matched against active workers; unmatched rows come back with worker_id null."""
    try:
        rows = await ai_entry.parse_attendance(body.text)
    except ai_entry.AIEntryError as e:
        raise _ai_error(e)
    workers = await crud.list_workers(db, status="active", limit=100000)
    out = []
    for row in rows:
        w = ai_entry.match_worker(row["worker_name"], workers)
        out.append(schemas.ParsedAttendance(
            **row,
            worker_id=w.id if w else None,
            matched_name=w.full_name if w else None,
        ))
    return out


@router.post("/attendance/commit", response_model=schemas.MagicCommitResult)
async def commit_attendance(body: schemas.MagicAttendanceCommit, db: AsyncSession = Depends(get_db)):
    """Present writes hajri 1, Absent writes 0; shift and notes go on the record."""
    saved = 0
    skipped = []
    for row in body.rows:
        if row.worker_id is None:
            skipped.append(row.worker_name)
            continue
        try:
            await crud.upsert_attendance(
                db, row.worker_id, body.date,
                hajri_count=apply_status_toggle(Decimal("0"), row.status),
                project_id=body.project_id, shift=row.shift, notes=row.notes,
            )
        except crud.WorkerNotFoundError:
            skipped.append(row.worker_name)
            continue
        saved += 1
    if skipped:
        logger.info("AI attendance commit skipped %d unmatched rows", len(skipped))
    return schemas.MagicCommitResult(saved=saved, skipped=skipped)


# ---------- Expenses ----------
@router.post("/expenses/parse", response_model=List[schemas.ParsedExpense], responses={**RESPONSE_502})
async def parse_expenses(body: schemas.MagicParseRequest):
    try:
        return await ai_entry.parse_expenses(body.text)
    except ai_entry.AIEntryError as e:
        raise _ai_error(e)


@router.post("/expenses/commit", response_model=schemas.MagicCommitResult)
async def commit_expenses(body: schemas.MagicExpenseCommit, db: AsyncSession = Depends(get_db)):
    """Rows without a positive amount are skipped; rate is amount / quantity when a quantity was given."""
    saved = 0
    skipped = []
    for item in body.items:
        if item.amount <= 0:
            skipped.append(item.item_name)
            continue
        qty = item.quantity if item.quantity > 0 else None
        data = schemas.ExpenseCreate(
            date=body.date,
            category=item.category if item.category in ai_entry.EXPENSE_CATEGORIES else "Other",
            amount=money(item.amount),
            quantity=qty,
            rate=(bounded(item.amount / qty) or None) if qty else None,
            description=ai_entry.expense_description(item.item_name, item.unit),
            project_id=body.project_id,
        )
        await crud.create_expense(db, data)
        saved += 1
    return schemas.MagicCommitResult(saved=saved, skipped=skipped)


# ---------- Estimate ----------
@router.post("/estimate/parse", response_model=List[schemas.ParsedEstimateLine], responses={**RESPONSE_502})
async def parse_estimate(
    text: Optional[str] = Form(None),
    file: Optional[UploadFile] = File(None, description="Photo of a BOQ (png/jpg/webp) or an .xlsx workbook"),
):
    image_url = None
    prompt_text = (text or "").strip()
    if file is not None and file.filename:
        content = await file.read()
        suffix = "." + file.filename.rsplit(".", 1)[-1].lower() if "." in file.filename else ""
        if suffix in IMAGE_MIME:
            image_url = f"data:{IMAGE_MIME[suffix]};base64," + base64.b64encode(content).decode("ascii")
        elif suffix in (".xlsx", ".xlsm"):
            try:
                sheet_text = workbook_to_text(content)
            except WorkbookReadError as e:
                raise HTTPException(status_code=400, detail=str(e))
            prompt_text = f"{prompt_text}\n{sheet_text}".strip()
        else:
            raise HTTPException(status_code=400, detail="Upload an image (png/jpg/webp) or an .xlsx workbook")
    if not prompt_text and not image_url:
        raise HTTPException(status_code=400, detail="Send text or a file")
    try:
        return await ai_entry.parse_estimate(prompt_text, image_data_url=image_url)
    except ai_entry.AIEntryError as e:
        raise _ai_error(e)


@router.post("/estimate/commit", response_model=schemas.MagicCommitResult)
async def commit_estimate(body: schemas.MagicEstimateCommit, db: AsyncSession = Depends(get_db)):
    """Appends to estimate_id, or creates a new estimate named after the current time."""
    items = [
        {"description": i.description, "unit": i.unit, "quantity": i.quantity, "rate": i.rate, "category": "General"}
        for i in body.items
    ]
    if body.estimate_id is not None:
        est = await crud.get_estimate(db, body.estimate_id)
        if not est:
            raise HTTPException(status_code=404, detail="Estimate not found")
        est = await crud.add_estimate_items(db, est, items)
    else:
        name = f"Estimate {datetime.now().strftime('%Y-%m-%d %H:%M')}"
        est = await crud.create_estimate(db, name, items=items)
    return schemas.MagicCommitResult(saved=len(items), estimate_id=est.id)
