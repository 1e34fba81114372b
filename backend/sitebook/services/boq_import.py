"""
BOQ (bill of quantities) spreadsheet import.

Flow: read_boq_workbook() -> suggest_column_mapping() for the preview -> the user confirms or
overrides the mapping -> build_items() turns every data row into an estimate item.
Only the first sheet is read; row 1 is the header row.
"""
import logging
import re
from datetime import date, datetime, time
from decimal import Decimal, InvalidOperation
from io import BytesIO
from typing import Any, Dict, List, Optional

from sitebook.accounting.wages import bounded, money, MAX_QUANTITY, ZERO
from sitebook.rules.column_aliases import load_column_aliases, load_required_fields

logger = logging.getLogger(__name__)

DEFAULT_DESCRIPTION = "Unknown Item"
DEFAULT_UNIT = "Nos"
DEFAULT_CATEGORY = "General"
QTY_PLACES = Decimal("0.001")

# everything except digits, "." and "-" is dropped before parsing ("1,250/-" -> "1250-" -> 1250)
_NON_NUMERIC = re.compile(r"[^0-9.\-]+")
_LEADING_NUMBER = re.compile(r"-?(\d+\.?\d*|\.\d+)")


class ColumnMappingError(ValueError):
    """Mapping missing a required field or naming a header the sheet does not have."""


class WorkbookReadError(ValueError):
    pass


def clean_number(value: Any) -> Decimal:
    """Numbers pass through; strings keep their leading numeric part; anything unparseable is 0."""
    if value is None or isinstance(value, bool):
        return ZERO
    if isinstance(value, (int, float, Decimal)):
        try:
            d = Decimal(str(value))
        except InvalidOperation:
            return ZERO
        return d if d.is_finite() else ZERO
    if isinstance(value, str):
        m = _LEADING_NUMBER.match(_NON_NUMERIC.sub("", value))
        if not m:
            return ZERO
        try:
            return Decimal(m.group(0))
        except InvalidOperation:
            return ZERO
    return ZERO


def _json_safe(value: Any) -> Any:
    if isinstance(value, (datetime, date, time)):
        return value.isoformat()
    if isinstance(value, Decimal):
        return float(value)
    return value


def _unique_headers(raw_headers: List[Any]) -> List[str]:
    """Blank headers become 'Column N'; repeats get a '_1', '_2' suffix."""
    seen: Dict[str, int] = {}
    headers = []
    for idx, h in enumerate(raw_headers, start=1):
        name = str(h).strip() if h is not None and str(h).strip() else f"Column {idx}"
        if name in seen:
            seen[name] += 1
            name = f"{name}_{seen[name]}"
        else:
            seen[name] = 0
        headers.append(name)
    return headers


def read_boq_workbook(content: bytes) -> Dict[str, Any]:
    """First sheet -> {"headers": [...], "rows": [{header: value}, ...]}; fully blank rows are skipped."""
    from openpyxl import load_workbook

    try:
        wb = load_workbook(BytesIO(content), read_only=True, data_only=True)
    except Exception as e:
        logger.warning("BOQ workbook could not be opened: %s", e)
        raise WorkbookReadError("File is not a readable .xlsx workbook")
    try:
        ws = wb.worksheets[0] if wb.worksheets else None
        if ws is None:
            raise WorkbookReadError("Workbook has no sheets")
        all_rows = list(ws.iter_rows(values_only=True))
    finally:
        wb.close()
    if not all_rows:
        raise WorkbookReadError("Sheet is empty")

    headers = _unique_headers(list(all_rows[0]))
    rows: List[Dict[str, Any]] = []
    for raw in all_rows[1:]:
        if raw is None or all(v is None or (isinstance(v, str) and not v.strip()) for v in raw):
            continue
        row = {}
        for i, h in enumerate(headers):
            v = raw[i] if i < len(raw) else None
            if v is not None:
                row[h] = _json_safe(v)
        rows.append(row)
    return {"headers": headers, "rows": rows}


def suggest_column_mapping(headers: List[str]) -> Dict[str, Optional[str]]:
    """
    Case-insensitive substring match of each header against the alias vocabulary.
    Headers are scanned in order, so a later matching header replaces an earlier one;
    one header can satisfy several fields ("Unit Rate" matches unit and rate).
    """
    aliases = load_column_aliases()
    mapping: Dict[str, Optional[str]] = {f: None for f in aliases}
    for h in headers:
        lower = str(h).lower()
        for field, words in aliases.items():
            if any(w in lower for w in words):
                mapping[field] = h
    return mapping


def passthrough_columns(headers: List[str], mapping: Dict[str, Optional[str]]) -> List[str]:
    """Headers not used by the mapping; offered as extra columns, all selected by default."""
    used = {v for v in mapping.values() if v}
    return [h for h in headers if h not in used]


def validate_mapping(mapping: Dict[str, Optional[str]], headers: List[str]) -> None:
    missing = [f for f in load_required_fields() if not mapping.get(f)]
    if missing:
        raise ColumnMappingError(f"Map a column for: {', '.join(missing)}")
    unknown = [v for v in mapping.values() if v and v not in headers]
    if unknown:
        raise ColumnMappingError(f"Column not found in sheet: {', '.join(unknown)}")


def _text(value: Any, default: str) -> str:
    if value is None:
        return default
    s = str(value).strip()
    return s or default


def build_items(
    rows: List[Dict[str, Any]],
    mapping: Dict[str, Optional[str]],
    extra_columns: Optional[List[str]] = None,
) -> List[Dict[str, Any]]:
    """Rows -> estimate item dicts; amount is always quantity * rate, never read from the sheet."""
    extra_columns = extra_columns or []

    def cell(row: Dict[str, Any], field: str) -> Any:
        col = mapping.get(field)
        return row.get(col) if col else None

    items = []
    for row in rows:
        qty = bounded(clean_number(cell(row, "quantity")), QTY_PLACES, MAX_QUANTITY)
        rate = bounded(clean_number(cell(row, "rate")))
        items.append({
            "description": _text(cell(row, "description"), DEFAULT_DESCRIPTION),
            "unit": _text(cell(row, "unit"), DEFAULT_UNIT),
            "quantity": qty,
            "rate": rate,
            "amount": money(qty * rate),
            "category": _text(cell(row, "category"), DEFAULT_CATEGORY),
            "extra_data": {c: row[c] for c in extra_columns if c in row},
        })
    return items


def estimate_name_from_filename(filename: Optional[str]) -> str:
    """'Villa BOQ.v2.xlsx' -> 'Villa BOQ' (text before the first dot)"""
    base = (filename or "").replace("\\", "/").split("/")[-1]
    name = base.split(".")[0].strip()
    return name or "Imported Estimate"


def preview(content: bytes, sample_size: int = 5) -> Dict[str, Any]:
    sheet = read_boq_workbook(content)
    mapping = suggest_column_mapping(sheet["headers"])
    return {
        "headers": sheet["headers"],
        "suggested_mapping": mapping,
        "extra_columns": passthrough_columns(sheet["headers"], mapping),
        "required_fields": load_required_fields(),
        "sample_rows": sheet["rows"][:sample_size],
        "row_count": len(sheet["rows"]),
    }


def workbook_to_text(content: bytes) -> str:
    """Every sheet as comma-separated lines under a '--- Sheet: name ---' banner, for the AI estimate prompt."""
    from openpyxl import load_workbook

    try:
        wb = load_workbook(BytesIO(content), read_only=True, data_only=True)
    except Exception as e:
        logger.warning("workbook for AI estimate could not be opened: %s", e)
        raise WorkbookReadError("File is not a readable .xlsx workbook")
    parts = []
    try:
        for ws in wb.worksheets:
            lines = [
                ",".join("" if v is None else str(v) for v in row)
                for row in ws.iter_rows(values_only=True)
            ]
            parts.append(f"--- Sheet: {ws.title} ---\n" + "\n".join(lines))
    finally:
        wb.close()
    return "\n".join(parts)
