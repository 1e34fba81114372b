"""
Dashboard / report rollups.
Inputs are plain ORM rows already loaded by the router; nothing here touches the database.
The dashboard deliberately reports budget, labor, material and billing figures side by side
without a reconciled profit. The monthly report's profit uses the payments table as income,
which is a different source from the client ledger.
"""
from collections import OrderedDict
from datetime import date
from decimal import Decimal
from typing import Any, Dict, Iterable

from sitebook.accounting.estimates import budget_total
from sitebook.accounting.wages import labor_cost_totals, money, to_decimal, ZERO


def build_financial_summary(
    estimates: Iterable[Any],
    attendance: Iterable[Any],
    wages: Dict[int, Any],
    expenses: Iterable[Any],
    ledger_entries: Iterable[Any],
    as_of: date,
) -> Dict[str, Any]:
    labor = labor_cost_totals(attendance, wages, as_of)
    ledger_entries = list(ledger_entries)
    return {
        "total_budget": budget_total(estimates),
        "labor_cost": labor["labor_cost"],
        "monthly_labor_cost": labor["monthly_labor_cost"],
        "material_cost": money(sum((to_decimal(e.amount) for e in expenses), ZERO)),
        "total_billed": money(sum((to_decimal(e.bill_amount) for e in ledger_entries), ZERO)),
        "total_received": money(sum((to_decimal(e.payment_received) for e in ledger_entries), ZERO)),
        "as_of": as_of,
    }


def build_today_stats(active_workers: Iterable[Any], today_records: Iterable[Any]) -> Dict[str, Any]:
    """Only active workers are counted; a record is 'present' when its hajri is above zero."""
    wage_map = {w.id: w.daily_wage for w in active_workers}
    present = 0
    total_hajri = ZERO
    cost = ZERO
    for r in today_records:
        if r.worker_id not in wage_map:
            continue
        h = to_decimal(r.hajri_count)
        if h > 0:
            present += 1
            total_hajri += h
            cost += h * to_decimal(wage_map[r.worker_id])
    return {
        "total_workers": len(wage_map),
        "present_today": present,
        "total_hajri": total_hajri,
        "todays_labor_cost": money(cost),
    }


def _capitalize(category: str) -> str:
    return category[:1].upper() + category[1:] if category else "Other"


def build_monthly_report(payments: Iterable[Any], expenses: Iterable[Any], year: int, month: int) -> Dict[str, Any]:
    """Rows outside (year, month) are ignored, so callers may pass a wider range."""
    def in_month(d: date) -> bool:
        return d.year == year and d.month == month

    income = ZERO
    for p in payments:
        if in_month(p.payment_date):
            income += to_decimal(p.amount)
    spent = ZERO
    breakdown: "OrderedDict[str, Decimal]" = OrderedDict()
    for e in expenses:
        if not in_month(e.date):
            continue
        amt = to_decimal(e.amount)
        spent += amt
        key = _capitalize(e.category)
        breakdown[key] = breakdown.get(key, ZERO) + amt
    return {
        "year": year,
        "month": month,
        "income": money(income),
        "expenses": money(spent),
        "profit": money(income - spent),
        "expense_breakdown": [{"name": k, "value": money(v)} for k, v in breakdown.items()],
    }
