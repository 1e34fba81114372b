"""
Hajri / kharchi entry.
PUT /api/attendance is the only write: an idempotent upsert on (worker_id, date).
Status is derived from hajri_count on every read; sending status only rewrites hajri.
"""
import calendar
from datetime import date
from typing import Optional, List

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import StreamingResponse
from sqlalchemy.ext.asyncio import AsyncSession

from sitebook.database import get_db
from sitebook import crud, schemas
from sitebook.accounting.wages import (
    cost_delta, daily_cost, net_daily_earning, traditional_notation,
    monthly_labor_cost, worker_month_summary, worker_month_sheet,
)
from sitebook.services.excel_export import build_workbook, attendance_register_sheet, XLSX_MEDIA_TYPE
from sitebook.utils.http_headers import build_content_disposition

router = APIRouter(prefix="/api/attendance", tags=["attendance"])

RESPONSE_404 = {404: {"description": "Worker not found", "content": {"application/json": {"example": {"detail": "Worker not found"}}}}}


def record_read(rec) -> schemas.AttendanceRead:
    return schemas.AttendanceRead(
        id=rec.id,
        worker_id=rec.worker_id,
        date=rec.date,
        hajri_count=rec.hajri_count,
        kharchi_amount=rec.kharchi_amount,
        status=rec.status,
        notation=traditional_notation(rec.hajri_count),
        project_id=rec.project_id,
        shift=rec.shift,
        notes=rec.notes,
    )


def _month_bounds(year: int, month: int):
    if not 1 <= month <= 12:
        raise HTTPException(status_code=400, detail="month must be 1-12")
    _, last_day = calendar.monthrange(year, month)
    return date(year, month, 1), date(year, month, last_day)


@router.put(
    "",
    response_model=schemas.AttendanceUpsertResult,
    summary="Set hajri / kharchi / status for one worker on one date",
    responses={**RESPONSE_404},
)
async def upsert_attendance(data: schemas.AttendanceUpsert, db: AsyncSession = Depends(get_db)):
    """
    Creates the row on first write (hajri 0, kharchi 0 unless sent); afterwards only the sent fields change.
    cost_delta lets a client adjust its displayed totals without refetching.
    """
    try:
        rec, old_hajri, worker = await crud.upsert_attendance(
            db,
            worker_id=data.worker_id,
            day=data.date,
            hajri_count=data.hajri_count,
            kharchi_amount=data.kharchi_amount,
            status=data.status,
            project_id=data.project_id,
            shift=data.shift,
            notes=data.notes,
        )
    except crud.WorkerNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return schemas.AttendanceUpsertResult(
        record=record_read(rec),
        daily_cost=daily_cost(rec.hajri_count, worker.daily_wage),
        net_daily_earning=net_daily_earning(rec.hajri_count, worker.daily_wage, rec.kharchi_amount),
        cost_delta=cost_delta(old_hajri, rec.hajri_count, worker.daily_wage),
    )


@router.get("", response_model=List[schemas.DailySheetRow], summary="Daily sheet: every active worker for a date")
async def daily_sheet(day: date = Query(..., alias="date"), db: AsyncSession = Depends(get_db)):
    pairs = await crud.daily_sheet(db, day)
    return [
        schemas.DailySheetRow(
            worker_id=w.id,
            full_name=w.full_name,
            skill_type=w.skill_type,
            daily_wage=w.daily_wage,
            record=record_read(rec) if rec else None,
            daily_cost=daily_cost(rec.hajri_count if rec else 0, w.daily_wage),
        )
        for w, rec in pairs
    ]


@router.get("/records", response_model=List[schemas.AttendanceRead])
async def list_records(
    worker_id: Optional[int] = Query(None),
    start: Optional[date] = Query(None),
    end: Optional[date] = Query(None),
    project_id: Optional[int] = Query(None),
    db: AsyncSession = Depends(get_db),
):
    records = await crud.list_attendance(db, worker_id=worker_id, start=start, end=end, project_id=project_id)
    return [record_read(r) for r in records]


@router.get(
    "/workers/{worker_id}/month",
    response_model=schemas.WorkerMonthSheet,
    summary="One worker's month: daily rows, totals and net payable",
    responses={**RESPONSE_404},
)
async def worker_month(
    worker_id: int,
    year: int = Query(..., ge=2000, le=2100),
    month: int = Query(..., ge=1, le=12),
    db: AsyncSession = Depends(get_db),
):
    worker = await crud.get_worker(db, worker_id)
    if not worker:
        raise HTTPException(status_code=404, detail="Worker not found")
    start, end = _month_bounds(year, month)
    records = await crud.list_attendance(db, worker_id=worker_id, start=start, end=end)
    summary = worker_month_summary(worker.daily_wage, records)
    return schemas.WorkerMonthSheet(
        worker_id=worker.id,
        full_name=worker.full_name,
        daily_wage=worker.daily_wage,
        year=year,
        month=month,
        days=worker_month_sheet(worker.daily_wage, records, year, month),
        **summary,
    )


@router.get("/monthly-cost", response_model=List[schemas.MonthlyLaborCost], summary="Labor cost per month, newest first")
async def monthly_cost(db: AsyncSession = Depends(get_db)):
    records = await crud.list_attendance(db)
    wages = await crud.wage_map(db)
    return monthly_labor_cost(records, wages)


@router.get("/export", summary="Monthly hajri register (Excel)")
async def export_month(
    year: int = Query(..., ge=2000, le=2100),
    month: int = Query(..., ge=1, le=12),
    db: AsyncSession = Depends(get_db),
):
    start, end = _month_bounds(year, month)
    workers = await crud.list_workers(db, limit=100000)
    records = await crud.list_attendance(db, start=start, end=end)
    worked = {r.worker_id for r in records}
    # inactive workers only appear when they have entries that month
    workers = [w for w in workers if w.status == "active" or w.id in worked]
    buf = build_workbook([attendance_register_sheet(workers, records, year, month)])
    filename = f"hajri_{year}_{month:02d}.xlsx"
    return StreamingResponse(
        buf, media_type=XLSX_MEDIA_TYPE,
        headers={"Content-Disposition": build_content_disposition(filename)},
    )
