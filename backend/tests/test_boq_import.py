"""BOQ spreadsheet import: header reading, mapping suggestion, number cleaning, item building."""
from decimal import Decimal
from io import BytesIO

import pytest
from openpyxl import Workbook

from sitebook.services.boq_import import (
    clean_number, read_boq_workbook, suggest_column_mapping, passthrough_columns,
    validate_mapping, build_items, estimate_name_from_filename, preview,
    ColumnMappingError, WorkbookReadError,
)


def make_xlsx(rows):
    wb = Workbook()
    ws = wb.active
    for r in rows:
        ws.append(r)
    buf = BytesIO()
    wb.save(buf)
    return buf.getvalue()


BOQ_ROWS = [
    ["Sr", "Item Description", "Unit", "Qty", "Rate", "Amount", "Group", "Remarks"],
    [1, "PCC 1:4:8", "cum", 12.5, "4,500/-", 99999, "Civil", "as per drawing"],
    [None, None, None, None, None, None, None, None],
    [2, "Brick work", None, "abc", 300, None, None, None],
]


@pytest.mark.parametrize("raw,expected", [
    (12.5, Decimal("12.5")),
    ("1,250", Decimal("1250")),
    ("₹ 450/-", Decimal("450")),
    # the dot in "Rs." survives cleaning, so this reads as .450
    ("Rs. 450", Decimal(".450")),
    ("12.5.3", Decimal("12.5")),
    ("abc", Decimal("0")),
    (None, Decimal("0")),
    ("", Decimal("0")),
    (True, Decimal("0")),
])
def test_clean_number(raw, expected):
    assert clean_number(raw) == expected


def test_read_workbook_skips_blank_rows_and_names_headers():
    sheet = read_boq_workbook(make_xlsx([["Item", None, "Item"], ["a", 1, "b"], [None, None, None]]))
    assert sheet["headers"] == ["Item", "Column 2", "Item_1"]
    assert sheet["rows"] == [{"Item": "a", "Column 2": 1, "Item_1": "b"}]


def test_read_workbook_rejects_garbage():
    with pytest.raises(WorkbookReadError):
        read_boq_workbook(b"not a workbook")


def test_suggest_mapping_substring_match():
    mapping = suggest_column_mapping(BOQ_ROWS[0])
    assert mapping == {
        "description": "Item Description",
        "unit": "Unit",
        "quantity": "Qty",
        "rate": "Rate",
        "category": "Group",
    }


def test_suggest_mapping_later_header_wins():
    mapping = suggest_column_mapping(["Item", "Description"])
    assert mapping["description"] == "Description"


def test_passthrough_columns_are_the_unmapped_headers():
    mapping = suggest_column_mapping(BOQ_ROWS[0])
    assert passthrough_columns(BOQ_ROWS[0], mapping) == ["Sr", "Amount", "Remarks"]


def test_validate_mapping_requires_core_fields():
    with pytest.raises(ColumnMappingError, match="quantity"):
        validate_mapping({"description": "A", "unit": "B", "rate": "C"}, ["A", "B", "C"])


def test_validate_mapping_rejects_unknown_header():
    with pytest.raises(ColumnMappingError, match="Nope"):
        validate_mapping({"description": "A", "unit": "A", "quantity": "Nope", "rate": "A"}, ["A"])


def test_build_items_recomputes_amount_and_applies_defaults():
    sheet = read_boq_workbook(make_xlsx(BOQ_ROWS))
    mapping = suggest_column_mapping(sheet["headers"])
    items = build_items(sheet["rows"], mapping, ["Remarks", "Amount"])
    assert len(items) == 2
    first, second = items
    assert first["quantity"] == Decimal("12.500")
    assert first["rate"] == Decimal("4500.00")
    # the sheet's own Amount column is never trusted
    assert first["amount"] == Decimal("56250.00")
    assert first["category"] == "Civil"
    assert first["extra_data"] == {"Remarks": "as per drawing", "Amount": 99999}
    assert second["unit"] == "Nos"
    assert second["quantity"] == Decimal("0.000")
    assert second["amount"] == Decimal("0.00")
    assert second["category"] == "General"
    assert second["extra_data"] == {}


def test_build_items_zeroes_numbers_too_large_to_store():
    mapping = {"description": "D", "unit": "U", "quantity": "Q", "rate": "R"}
    rows = [
        {"D": "Rock cutting", "U": "cum", "Q": 1e30, "R": 1e13},
        {"D": "PCC", "U": "cum", "Q": 2, "R": "150"},
    ]
    huge, normal = build_items(rows, mapping)
    assert huge["quantity"] == 0
    assert huge["rate"] == 0
    assert huge["amount"] == Decimal("0.00")
    assert normal["amount"] == Decimal("300.00")


def test_estimate_name_from_filename():
    assert estimate_name_from_filename("Villa BOQ.v2.xlsx") == "Villa BOQ"
    assert estimate_name_from_filename("C:\\boq\\tower.xlsx") == "tower"
    assert estimate_name_from_filename(None) == "Imported Estimate"


def test_preview():
    p = preview(make_xlsx(BOQ_ROWS), sample_size=1)
    assert p["row_count"] == 2
    assert len(p["sample_rows"]) == 1
    assert p["required_fields"] == ["description", "unit", "quantity", "rate"]
