"""
Estimates (BOQ): spreadsheet import with column mapping, manual items, active-estimate switch.
Every total here is recomputed from quantity * rate; the stored item amount is informational only.
"""
import json
from typing import Optional, List

from fastapi import APIRouter, Depends, HTTPException, Query, UploadFile, File, Form
from fastapi.responses import StreamingResponse
from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from sitebook.database import get_db
from sitebook import crud, schemas
from sitebook.accounting.estimates import (
    budget_total, category_breakdown, estimate_summary, item_amount,
)
from sitebook.services import boq_import
from sitebook.services.excel_export import build_workbook, estimate_items_sheet, XLSX_MEDIA_TYPE
from sitebook.utils.http_headers import build_content_disposition

router = APIRouter(prefix="/api/estimates", tags=["estimates"])

RESPONSE_404 = {404: {"description": "Estimate not found", "content": {"application/json": {"example": {"detail": "Estimate not found"}}}}}


def item_read(item) -> schemas.EstimateItemRead:
    return schemas.EstimateItemRead(
        id=item.id,
        estimate_id=item.estimate_id,
        description=item.description,
        unit=item.unit,
        quantity=item.quantity,
        rate=item.rate,
        amount=item_amount(item),
        category=item.category,
        extra_data=item.extra_data,
    )


def estimate_detail(est) -> schemas.EstimateDetail:
    return schemas.EstimateDetail(
        **estimate_summary(est),
        items=[item_read(i) for i in est.items],
        categories=category_breakdown(est.items),
    )


async def _get_or_404(db: AsyncSession, estimate_id: int):
    est = await crud.get_estimate(db, estimate_id)
    if not est:
        raise HTTPException(status_code=404, detail="Estimate not found")
    return est


async def _read_xlsx(file: UploadFile) -> bytes:
    if not (file.filename or "").lower().endswith((".xlsx", ".xlsm")):
        raise HTTPException(status_code=400, detail="Upload an .xlsx workbook")
    content = await file.read()
    if not content:
        raise HTTPException(status_code=400, detail="Uploaded file is empty")
    return content


def _json_form(raw: Optional[str], field: str, default):
    if raw is None or raw == "":
        return default
    try:
        return json.loads(raw)
    except json.JSONDecodeError:
        raise HTTPException(status_code=400, detail=f"{field} must be JSON")


@router.get("", response_model=schemas.EstimateList, summary="All estimates with the overall budget")
async def list_estimates(project_id: Optional[int] = Query(None), db: AsyncSession = Depends(get_db)):
    estimates = await crud.list_estimates(db, project_id=project_id)
    return schemas.EstimateList(
        estimates=[estimate_summary(e) for e in estimates],
        budget_total=budget_total(estimates),
    )


@router.post("", response_model=schemas.EstimateDetail, status_code=201)
async def create_estimate(data: schemas.EstimateCreate, db: AsyncSession = Depends(get_db)):
    est = await crud.create_estimate(db, data.name.strip(), project_id=data.project_id)
    return estimate_detail(est)


@router.get("/active", response_model=Optional[schemas.EstimateDetail], summary="The active estimate, or null")
async def get_active(db: AsyncSession = Depends(get_db)):
    est = await crud.get_active_estimate(db)
    return estimate_detail(est) if est else None


# ---------- Import ----------
@router.post("/import/preview", response_model=schemas.BoqPreview, summary="Read headers and suggest a column mapping")
async def import_preview(file: UploadFile = File(...)):
    content = await _read_xlsx(file)
    try:
        return boq_import.preview(content)
    except boq_import.WorkbookReadError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.post("/import", response_model=schemas.EstimateDetail, status_code=201, summary="Create an estimate from a workbook")
async def import_estimate(
    file: UploadFile = File(...),
    mapping: Optional[str] = Form(None, description='JSON {"description": "Item", "quantity": "Qty", ...}; omitted -> suggested'),
    extra_columns: Optional[str] = Form(None, description="JSON list of passthrough headers; omitted -> all unmapped"),
    name: Optional[str] = Form(None, description="Defaults to the file name without extension"),
    project_id: Optional[int] = Form(None),
    db: AsyncSession = Depends(get_db),
):
    content = await _read_xlsx(file)
    try:
        sheet = boq_import.read_boq_workbook(content)
    except boq_import.WorkbookReadError as e:
        raise HTTPException(status_code=400, detail=str(e))
    headers = sheet["headers"]
    suggested = boq_import.suggest_column_mapping(headers)
    raw_mapping = _json_form(mapping, "mapping", suggested)
    if not isinstance(raw_mapping, dict):
        raise HTTPException(status_code=400, detail="mapping must be a JSON object")
    try:
        col_map = schemas.ColumnMapping(**raw_mapping).model_dump()
    except ValidationError:
        raise HTTPException(status_code=400, detail="mapping values must be column names")
    extras = _json_form(extra_columns, "extra_columns", None)
    if extras is None:
        extras = boq_import.passthrough_columns(headers, col_map)
    if not isinstance(extras, list):
        raise HTTPException(status_code=400, detail="extra_columns must be a JSON list")
    try:
        boq_import.validate_mapping(col_map, headers)
    except boq_import.ColumnMappingError as e:
        raise HTTPException(status_code=400, detail=str(e))
    items = boq_import.build_items(sheet["rows"], col_map, [str(c) for c in extras])
    est_name = (name or "").strip() or boq_import.estimate_name_from_filename(file.filename)
    est = await crud.create_estimate(db, est_name, items=items, project_id=project_id)
    return estimate_detail(est)


# ---------- Single estimate ----------
@router.get("/{estimate_id}", response_model=schemas.EstimateDetail, responses={**RESPONSE_404})
async def get_estimate(estimate_id: int, db: AsyncSession = Depends(get_db)):
    return estimate_detail(await _get_or_404(db, estimate_id))


@router.delete("/{estimate_id}", status_code=204, responses={**RESPONSE_404})
async def delete_estimate(estimate_id: int, db: AsyncSession = Depends(get_db)):
    """Items go with it."""
    est = await _get_or_404(db, estimate_id)
    await crud.delete_estimate(db, est)


@router.post("/{estimate_id}/activate", response_model=schemas.EstimateDetail, responses={**RESPONSE_404})
async def activate_estimate(estimate_id: int, db: AsyncSession = Depends(get_db)):
    """Makes this the only active estimate."""
    try:
        est = await crud.set_active_estimate(db, estimate_id)
    except crud.EstimateNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return estimate_detail(est)


@router.post("/{estimate_id}/deactivate", response_model=schemas.EstimateDetail, responses={**RESPONSE_404})
async def deactivate_estimate(estimate_id: int, db: AsyncSession = Depends(get_db)):
    try:
        est = await crud.deactivate_estimate(db, estimate_id)
    except crud.EstimateNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return estimate_detail(est)


@router.post("/{estimate_id}/items", response_model=schemas.EstimateDetail, status_code=201, responses={**RESPONSE_404})
async def add_items(estimate_id: int, items: List[schemas.EstimateItemCreate], db: AsyncSession = Depends(get_db)):
    est = await _get_or_404(db, estimate_id)
    est = await crud.add_estimate_items(db, est, [i.model_dump() for i in items])
    return estimate_detail(est)


@router.patch("/items/{item_id}", response_model=schemas.EstimateItemRead)
async def update_item(item_id: int, data: schemas.EstimateItemUpdate, db: AsyncSession = Depends(get_db)):
    item = await crud.get_estimate_item(db, item_id)
    if not item:
        raise HTTPException(status_code=404, detail="Estimate item not found")
    item = await crud.update_estimate_item(db, item, data)
    return item_read(item)


@router.delete("/items/{item_id}", status_code=204)
async def delete_item(item_id: int, db: AsyncSession = Depends(get_db)):
    item = await crud.get_estimate_item(db, item_id)
    if not item:
        raise HTTPException(status_code=404, detail="Estimate item not found")
    await crud.delete_estimate_item(db, item)


@router.get("/{estimate_id}/export", summary="Estimate items (Excel)", responses={**RESPONSE_404})
async def export_estimate(estimate_id: int, db: AsyncSession = Depends(get_db)):
    est = await _get_or_404(db, estimate_id)
    buf = build_workbook([estimate_items_sheet(est)])
    return StreamingResponse(
        buf, media_type=XLSX_MEDIA_TYPE,
        headers={"Content-Disposition": build_content_disposition(f"{est.name}.xlsx")},
    )
