"""
Dashboard: today's attendance headline, the financial rollup, and the monthly income/expense report.
Every figure is recomputed from the raw rows on each request.
"""
import calendar
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from sitebook.database import get_db
from sitebook import crud, schemas
from sitebook.accounting.estimates import estimate_summary
from sitebook.accounting.rollup import build_financial_summary, build_monthly_report, build_today_stats

router = APIRouter(prefix="/api/dashboard", tags=["dashboard"])


@router.get("", response_model=schemas.DashboardRead, summary="Headline figures for one day")
async def get_dashboard(
    day: Optional[date] = Query(None, alias="date", description="Defaults to today"),
    db: AsyncSession = Depends(get_db),
):
    day = day or date.today()
    active_workers = await crud.list_workers(db, status="active", limit=100000)
    today_records = await crud.list_attendance(db, start=day, end=day)
    estimates = await crud.list_estimates(db)
    financials = build_financial_summary(
        estimates=estimates,
        attendance=await crud.list_attendance(db),
        wages=await crud.wage_map(db),
        expenses=await crud.list_expenses(db),
        ledger_entries=await crud.list_ledger_entries(db),
        as_of=day,
    )
    active = next((e for e in estimates if e.is_active), None)
    return schemas.DashboardRead(
        date=day,
        today=build_today_stats(active_workers, today_records),
        financials=financials,
        active_estimate=estimate_summary(active) if active else None,
    )


@router.get("/financials", response_model=schemas.FinancialSummary)
async def get_financials(
    as_of: Optional[date] = Query(None, description="Month used for monthly_labor_cost; defaults to today"),
    db: AsyncSession = Depends(get_db),
):
    return build_financial_summary(
        estimates=await crud.list_estimates(db),
        attendance=await crud.list_attendance(db),
        wages=await crud.wage_map(db),
        expenses=await crud.list_expenses(db),
        ledger_entries=await crud.list_ledger_entries(db),
        as_of=as_of or date.today(),
    )


@router.get("/monthly-report", response_model=schemas.MonthlyReport, summary="Income (payments) vs expenses for a month")
async def monthly_report(
    year: int = Query(..., ge=2000, le=2100),
    month: int = Query(..., ge=1, le=12),
    project_id: Optional[int] = Query(None),
    db: AsyncSession = Depends(get_db),
):
    """Income is the sum of payments dated in the month, not client receipts from the ledger."""
    try:
        _, last_day = calendar.monthrange(year, month)
    except calendar.IllegalMonthError:
        raise HTTPException(status_code=400, detail="month must be 1-12")
    start, end = date(year, month, 1), date(year, month, last_day)
    payments = await crud.list_payments(db, start=start, end=end, project_id=project_id)
    expenses = await crud.list_expenses(db, start=start, end=end, project_id=project_id)
    return build_monthly_report(payments, expenses, year, month)
