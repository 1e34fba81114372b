"""
Hajri / kharchi wage arithmetic.
hajri is a fractional day count in quarter-day steps (0.5 = half day, 1.5 = one and a half days);
kharchi is the same-day cash advance deducted from that day's earning.
Historical cost always uses the worker's *current* daily_wage; there is no wage history.
"""
import calendar
from collections import defaultdict
from datetime import date
from decimal import Decimal, ROUND_HALF_UP, InvalidOperation
from typing import Any, Dict, Iterable, List, Optional

CENT = Decimal("0.01")
QUARTER = Decimal("0.25")
# attendance.hajri_count is Numeric(6, 2); the largest quarter step it holds
MAX_HAJRI = Decimal("9999.75")
# attendance.kharchi_amount is Numeric(12, 2)
MAX_KHARCHI = Decimal("9999999999.99")
# money columns are Numeric(14, 2), quantities Numeric(14, 3)
MAX_MONEY = Decimal("999999999999.99")
MAX_QUANTITY = Decimal("99999999999.999")
ZERO = Decimal("0")

PRESENT = "Present"
ABSENT = "Absent"


def to_decimal(value: Any) -> Decimal:
    """None / blank -> 0; float goes through str() so 0.1 stays 0.1"""
    if value is None or value == "":
        return ZERO
    if isinstance(value, Decimal):
        return value
    try:
        return Decimal(str(value))
    except InvalidOperation:
        raise ValueError(f"not a number: {value!r}")


def money(value: Any) -> Decimal:
    return to_decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def bounded(value: Decimal, places: Decimal = CENT, limit: Decimal = MAX_MONEY) -> Decimal:
    """Quantized value, or 0 when it cannot be quantized or its magnitude exceeds the column limit."""
    try:
        q = value.quantize(places, rounding=ROUND_HALF_UP)
    except InvalidOperation:
        return ZERO
    return q if abs(q) <= limit else ZERO


def normalize_hajri(value: Any) -> Decimal:
    """Clamp below zero to 0, round to 2 places, reject anything that is not a quarter-day step."""
    h = to_decimal(value)
    if not h.is_finite():
        raise ValueError(f"hajri must be a finite number, got {value!r}")
    if h < 0:
        return ZERO.quantize(CENT)
    if h > MAX_HAJRI:
        raise ValueError(f"hajri must be at most {MAX_HAJRI}, got {h}")
    try:
        h = h.quantize(CENT, rounding=ROUND_HALF_UP)
    except InvalidOperation:
        raise ValueError(f"hajri is not a usable number: {value!r}")
    if h % QUARTER != 0:
        raise ValueError(f"hajri must be a multiple of 0.25, got {h}")
    return h


def daily_cost(hajri: Any, wage: Any) -> Decimal:
    return money(to_decimal(hajri) * to_decimal(wage))


def net_daily_earning(hajri: Any, wage: Any, kharchi: Any = 0) -> Decimal:
    return money(daily_cost(hajri, wage) - to_decimal(kharchi))


def attendance_status(hajri: Any) -> str:
    return PRESENT if to_decimal(hajri) > 0 else ABSENT


def apply_status_toggle(hajri: Any, status: str) -> Decimal:
    """
    Absent -> 0. Present on an absent day -> exactly one day.
    Present on a day that already has hajri keeps the existing quantity.
    """
    if status == ABSENT:
        return ZERO
    if status != PRESENT:
        raise ValueError(f"unknown attendance status: {status!r}")
    h = to_decimal(hajri)
    return Decimal("1") if h == 0 else h


def traditional_notation(hajri: Any) -> str:
    """
    Site-register notation: one 'P' per full day, then a fraction glyph.
    1.5 -> 'P ½', 2.25 -> 'PP ¼', 0.75 -> '¾', 0 -> '-'.
    Fractions outside the three bands (e.g. 0.05, 0.95) drop the glyph; an otherwise empty
    result falls back to '½', so the notation is only approximate for such values.
    """
    h = to_decimal(hajri)
    if h == 0:
        return "-"
    full = int(h)
    frac = h - full
    parts = "P" * full
    glyph = ""
    if Decimal("0.1") < frac < Decimal("0.4"):
        glyph = "¼"
    elif Decimal("0.4") <= frac < Decimal("0.6"):
        glyph = "½"
    elif Decimal("0.6") < frac < Decimal("0.9"):
        glyph = "¾"
    text = f"{parts} {glyph}".strip()
    return text or "½"


def cost_delta(old_hajri: Any, new_hajri: Any, wage: Any) -> Decimal:
    """Change in the day's cost caused by an edit (positive = more cost)."""
    return money((to_decimal(new_hajri) - to_decimal(old_hajri)) * to_decimal(wage))


def month_label(d: date) -> str:
    return d.strftime("%B %Y")


def monthly_labor_cost(records: Iterable[Any], wages: Dict[int, Any]) -> List[Dict[str, Any]]:
    """
    Labor cost per calendar month, newest first.
    records: objects with worker_id / date / hajri_count; wages: worker_id -> current daily wage.
    Records of workers missing from ``wages`` (deleted) cost nothing.
    """
    buckets: Dict[tuple, Decimal] = defaultdict(lambda: ZERO)
    for r in records:
        wage = wages.get(r.worker_id)
        if wage is None:
            continue
        buckets[(r.date.year, r.date.month)] += to_decimal(r.hajri_count) * to_decimal(wage)
    out = []
    for (y, m) in sorted(buckets.keys(), reverse=True):
        out.append({
            "year": y,
            "month": m,
            "label": month_label(date(y, m, 1)),
            "amount": money(buckets[(y, m)]),
        })
    return out


def labor_cost_totals(records: Iterable[Any], wages: Dict[int, Any], as_of: date) -> Dict[str, Decimal]:
    total = ZERO
    this_month = ZERO
    for r in records:
        wage = wages.get(r.worker_id)
        if wage is None:
            continue
        cost = to_decimal(r.hajri_count) * to_decimal(wage)
        total += cost
        if r.date.year == as_of.year and r.date.month == as_of.month:
            this_month += cost
    return {"labor_cost": money(total), "monthly_labor_cost": money(this_month)}


def worker_month_summary(daily_wage: Any, records: Iterable[Any]) -> Dict[str, Decimal]:
    total_hajri = ZERO
    total_kharchi = ZERO
    for r in records:
        total_hajri += to_decimal(r.hajri_count)
        total_kharchi += to_decimal(r.kharchi_amount)
    gross = money(total_hajri * to_decimal(daily_wage))
    return {
        "total_hajri": total_hajri,
        "total_kharchi": money(total_kharchi),
        "gross_earning": gross,
        "net_payable": money(gross - total_kharchi),
    }


def worker_month_sheet(daily_wage: Any, records: Iterable[Any], year: int, month: int) -> List[Dict[str, Any]]:
    """One row per calendar day; days without a record show hajri 0 / Absent / '-'."""
    by_day: Dict[date, Any] = {r.date: r for r in records}
    _, last_day = calendar.monthrange(year, month)
    rows = []
    for day in range(1, last_day + 1):
        d = date(year, month, day)
        r: Optional[Any] = by_day.get(d)
        hajri = to_decimal(r.hajri_count) if r else ZERO
        kharchi = to_decimal(r.kharchi_amount) if r else ZERO
        rows.append({
            "date": d,
            "hajri_count": hajri,
            "kharchi_amount": money(kharchi),
            "status": attendance_status(hajri),
            "notation": traditional_notation(hajri),
            "daily_earning": net_daily_earning(hajri, daily_wage, kharchi),
        })
    return rows
