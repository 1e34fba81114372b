"""Excel exports (workers, monthly hajri register, client ledger, expenses, estimate items)."""
import calendar
import re
from datetime import date, datetime
from decimal import Decimal
from io import BytesIO
from typing import Any, Dict, Iterable, List, Sequence, Tuple

from openpyxl import Workbook
from openpyxl.styles import Font, Alignment, Border, Side

from sitebook.accounting.client_ledger import running_balances
from sitebook.accounting.estimates import item_amount
from sitebook.accounting.wages import traditional_notation, worker_month_summary

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
COLUMN_WIDTH = 14
# characters Excel refuses in worksheet titles
_BAD_TITLE_CHARS = re.compile(r"[\\/*?:\[\]]")

Sheet = Tuple[str, Sequence[str], Iterable[Sequence[Any]]]


def _style_header(ws) -> None:
    thin = Side(style="thin")
    for row in ws.iter_rows(min_row=1, max_row=1):
        for cell in row:
            cell.font = Font(bold=True)
            cell.alignment = Alignment(horizontal="center", vertical="center", wrap_text=True)
            cell.border = Border(top=thin, left=thin, right=thin, bottom=thin)


def _cell(v: Any) -> Any:
    if v is None:
        return ""
    if isinstance(v, Decimal):
        return float(v)
    if isinstance(v, (date, datetime)):
        return v.isoformat()
    if isinstance(v, (dict, list)):
        return str(v)
    return v


def build_workbook(sheets: List[Sheet]) -> BytesIO:
    """One worksheet per (title, headers, rows); header row bold/centred/bordered, fixed column width."""
    wb = Workbook()
    first = True
    for title, headers, rows in sheets:
        ws = wb.active if first else wb.create_sheet()
        first = False
        ws.title = _BAD_TITLE_CHARS.sub(" ", title).strip()[:31] or "Sheet"
        ws.append(list(headers))
        for row in rows:
            ws.append([_cell(v) for v in row])
        _style_header(ws)
        for col in ws.columns:
            ws.column_dimensions[col[0].column_letter].width = COLUMN_WIDTH
    buf = BytesIO()
    wb.save(buf)
    buf.seek(0)
    return buf


def workers_sheet(workers: Iterable[Any]) -> Sheet:
    headers = ["ID", "Name", "Phone", "Skill", "Daily Wage", "Status", "Gender", "Age", "Joined"]
    rows = [
        [w.id, w.full_name, w.phone_number, w.skill_type, w.daily_wage, w.status, w.gender, w.age,
         w.created_at.date() if w.created_at else None]
        for w in workers
    ]
    return "Workers", headers, rows


def attendance_register_sheet(workers: Iterable[Any], records: Iterable[Any], year: int, month: int) -> Sheet:
    """Muster roll: one row per worker, one column per day in P/¼/½/¾ notation, then totals."""
    _, last_day = calendar.monthrange(year, month)
    by_worker: Dict[int, List[Any]] = {}
    for r in records:
        by_worker.setdefault(r.worker_id, []).append(r)
    headers = ["Worker", "Daily Wage"] + [str(d) for d in range(1, last_day + 1)] + [
        "Total Hajri", "Total Kharchi", "Net Payable",
    ]
    rows = []
    for w in workers:
        recs = by_worker.get(w.id, [])
        by_day = {r.date.day: r for r in recs}
        summary = worker_month_summary(w.daily_wage, recs)
        rows.append(
            [w.full_name, w.daily_wage]
            + [traditional_notation(by_day[d].hajri_count) if d in by_day else "-" for d in range(1, last_day + 1)]
            + [summary["total_hajri"], summary["total_kharchi"], summary["net_payable"]]
        )
    return f"Hajri {year}-{month:02d}", headers, rows


def ledger_sheet(entries: Iterable[Any]) -> Sheet:
    headers = ["Date", "Description", "Bill Amount", "Payment Received", "Balance"]
    rows = [
        [r["entry_date"], r["description"], r["bill_amount"], r["payment_received"], r["balance"]]
        for r in running_balances(entries)
    ]
    return "Client Ledger", headers, rows


def expenses_sheet(expenses: Iterable[Any]) -> Sheet:
    headers = ["Date", "Category", "Description", "Quantity", "Rate", "Amount", "Bill Photo"]
    rows = [
        [e.date, e.category, e.description, e.quantity, e.rate, e.amount, e.bill_photo_url]
        for e in expenses
    ]
    return "Expenses", headers, rows


def estimate_items_sheet(estimate: Any) -> Sheet:
    """Extra columns carried from the original import are appended after the fixed ones."""
    extra_keys: List[str] = []
    for i in estimate.items:
        for k in (i.extra_data or {}):
            if k not in extra_keys:
                extra_keys.append(k)
    headers = ["Description", "Unit", "Quantity", "Rate", "Amount", "Category"] + extra_keys
    rows = [
        [i.description, i.unit, i.quantity, i.rate, item_amount(i), i.category]
        + [(i.extra_data or {}).get(k) for k in extra_keys]
        for i in estimate.items
    ]
    return estimate.name or "Estimate", headers, rows
