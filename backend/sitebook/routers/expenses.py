"""Site expenses (material, transport, food, other) with optional bill photo, and the material type catalogue."""
import logging
from decimal import Decimal
from typing import Optional, List

from fastapi import APIRouter, Depends, HTTPException, Query, UploadFile, File, Form
from fastapi.responses import StreamingResponse
from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from sitebook.database import get_db
from sitebook import crud, schemas
from sitebook.services.excel_export import build_workbook, expenses_sheet, XLSX_MEDIA_TYPE
from sitebook.services.upload_files import save_upload, UploadError, IMAGE_SUFFIXES
from sitebook.utils.http_headers import build_content_disposition

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/expenses", tags=["expenses"])

RESPONSE_404 = {404: {"description": "Expense not found"}}


# ---------- Material types ----------
@router.get("/materials", response_model=List[schemas.MaterialTypeRead])
async def list_materials(db: AsyncSession = Depends(get_db)):
    return await crud.list_material_types(db)


@router.post("/materials", response_model=schemas.MaterialTypeRead, status_code=201)
async def create_material(data: schemas.MaterialTypeCreate, db: AsyncSession = Depends(get_db)):
    try:
        return await crud.create_material_type(db, data)
    except crud.DuplicateMaterialError as e:
        raise HTTPException(status_code=409, detail=str(e))


@router.patch("/materials/{material_id}", response_model=schemas.MaterialTypeRead)
async def update_material(material_id: int, data: schemas.MaterialTypeUpdate, db: AsyncSession = Depends(get_db)):
    m = await crud.get_material_type(db, material_id)
    if not m:
        raise HTTPException(status_code=404, detail="Material type not found")
    return await crud.update_material_type(db, m, data)


@router.delete("/materials/{material_id}", status_code=204)
async def delete_material(material_id: int, db: AsyncSession = Depends(get_db)):
    """Expenses keep their rows with material_id cleared."""
    m = await crud.get_material_type(db, material_id)
    if not m:
        raise HTTPException(status_code=404, detail="Material type not found")
    await crud.delete_material_type(db, m)


# ---------- Expenses ----------
@router.get("", response_model=List[schemas.ExpenseRead])
async def list_expenses(
    start: Optional[schemas.DateType] = Query(None),
    end: Optional[schemas.DateType] = Query(None),
    project_id: Optional[int] = Query(None),
    category: Optional[str] = Query(None, description="Material / Transport / Food / Other"),
    db: AsyncSession = Depends(get_db),
):
    return await crud.list_expenses(
        db, start=start, end=end, project_id=project_id,
        category=category.strip().capitalize() if category else None,
    )


@router.post("", response_model=schemas.ExpenseRead, status_code=201)
async def create_expense(data: schemas.ExpenseCreate, db: AsyncSession = Depends(get_db)):
    return await crud.create_expense(db, data)


@router.post("/with-bill", response_model=schemas.ExpenseRead, status_code=201, summary="Create an expense with a bill photo")
async def create_expense_with_bill(
    date: schemas.DateType = Form(...),
    amount: Decimal = Form(...),
    category: str = Form("Material"),
    quantity: Optional[Decimal] = Form(None),
    rate: Optional[Decimal] = Form(None),
    description: Optional[str] = Form(None),
    material_id: Optional[int] = Form(None),
    project_id: Optional[int] = Form(None),
    allow_without_photo: bool = Form(False, description="Save the expense even if the photo cannot be stored"),
    file: Optional[UploadFile] = File(None),
    db: AsyncSession = Depends(get_db),
):
    """
    The photo is stored first; when that fails the request is rejected unless
    allow_without_photo is set, in which case the expense is saved without it.
    """
    try:
        data = schemas.ExpenseCreate(
            date=date, amount=amount, category=category, quantity=quantity, rate=rate,
            description=description, material_id=material_id, project_id=project_id,
        )
    except ValidationError as e:
        raise HTTPException(status_code=422, detail=e.errors(include_url=False, include_context=False))

    bill_url = None
    if file is not None and file.filename:
        content = await file.read()
        try:
            bill_url = save_upload("bills", project_id, content, file.filename, allowed=IMAGE_SUFFIXES)
        except UploadError as e:
            if not allow_without_photo:
                raise HTTPException(status_code=400, detail=f"Bill photo upload failed: {e}")
            logger.warning("bill photo not stored, saving expense without it: %s", e)
    return await crud.create_expense(db, data, bill_photo_url=bill_url)


@router.delete("/{expense_id}", status_code=204, responses={**RESPONSE_404})
async def delete_expense(expense_id: int, db: AsyncSession = Depends(get_db)):
    e = await crud.get_expense(db, expense_id)
    if not e:
        raise HTTPException(status_code=404, detail="Expense not found")
    await crud.delete_expense(db, e)


@router.get("/export", summary="Expenses (Excel)")
async def export_expenses(
    start: Optional[schemas.DateType] = Query(None),
    end: Optional[schemas.DateType] = Query(None),
    project_id: Optional[int] = Query(None),
    db: AsyncSession = Depends(get_db),
):
    expenses = await crud.list_expenses(db, start=start, end=end, project_id=project_id)
    buf = build_workbook([expenses_sheet(expenses)])
    return StreamingResponse(
        buf, media_type=XLSX_MEDIA_TYPE,
        headers={"Content-Disposition": build_content_disposition("expenses.xlsx")},
    )
