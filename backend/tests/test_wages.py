"""Hajri / kharchi arithmetic: quarter steps, notation, status toggle, monthly buckets."""
from datetime import date
from decimal import Decimal
from types import SimpleNamespace

import pytest

from sitebook.accounting.wages import (
    normalize_hajri, daily_cost, net_daily_earning, attendance_status, apply_status_toggle,
    traditional_notation, cost_delta, monthly_labor_cost, labor_cost_totals,
    worker_month_summary, worker_month_sheet, to_decimal, bounded, MAX_MONEY,
)


def rec(worker_id, d, hajri, kharchi=0):
    return SimpleNamespace(worker_id=worker_id, date=d, hajri_count=Decimal(str(hajri)), kharchi_amount=Decimal(str(kharchi)))


def test_normalize_hajri_quarter_steps():
    assert normalize_hajri("1.5") == Decimal("1.50")
    assert normalize_hajri(0.75) == Decimal("0.75")
    assert normalize_hajri(2) == Decimal("2.00")


def test_normalize_hajri_negative_clamps_to_zero():
    assert normalize_hajri(-0.25) == Decimal("0")


def test_normalize_hajri_rejects_non_quarter():
    with pytest.raises(ValueError):
        normalize_hajri("0.3")


@pytest.mark.parametrize("raw", ["10000", "1e30", Decimal("Infinity"), Decimal("NaN")])
def test_normalize_hajri_rejects_what_the_column_cannot_hold(raw):
    with pytest.raises(ValueError):
        normalize_hajri(raw)


def test_normalize_hajri_upper_bound():
    assert normalize_hajri("9999.75") == Decimal("9999.75")


def test_bounded_zeroes_what_does_not_fit():
    assert bounded(Decimal("12.345")) == Decimal("12.35")
    assert bounded(Decimal("-5.5")) == Decimal("-5.50")
    assert bounded(Decimal("1e30")) == 0
    assert bounded(MAX_MONEY + 1) == 0


def test_to_decimal_blank_and_invalid():
    assert to_decimal(None) == 0
    assert to_decimal("") == 0
    assert to_decimal(0.1) == Decimal("0.1")
    with pytest.raises(ValueError):
        to_decimal("abc")


def test_daily_cost_and_net_earning():
    """1.5 days at 600 with 200 kharchi: cost 900, net 700"""
    assert daily_cost("1.5", 600) == Decimal("900.00")
    assert net_daily_earning("1.5", 600, 200) == Decimal("700.00")


@pytest.mark.parametrize("hajri,expected", [
    ("0", "0.00"),
    ("0.25", "83.33"),
    ("0.5", "166.67"),
    ("0.75", "250.00"),
    ("1", "333.33"),
    ("1.25", "416.66"),
    ("1.5", "500.00"),
    ("1.75", "583.33"),
    ("2", "666.66"),
    ("2.25", "749.99"),
    ("2.5", "833.33"),
    ("2.75", "916.66"),
    ("3", "999.99"),
])
def test_daily_cost_every_quarter_step(hajri, expected):
    """wage 333.33 makes every step round; halves go up"""
    cost = daily_cost(hajri, "333.33")
    assert cost == Decimal(expected)
    assert cost.as_tuple().exponent == -2
    # kharchi larger than the day's earning goes negative
    assert net_daily_earning("0.25", 600, 500) == Decimal("-350.00")


def test_status_derived_from_hajri():
    assert attendance_status(0) == "Absent"
    assert attendance_status("0.25") == "Present"


def test_status_toggle():
    assert apply_status_toggle(0, "Present") == Decimal("1")
    assert apply_status_toggle(Decimal("1.5"), "Present") == Decimal("1.5")
    assert apply_status_toggle(Decimal("1.5"), "Absent") == Decimal("0")
    with pytest.raises(ValueError):
        apply_status_toggle(0, "Late")


@pytest.mark.parametrize("hajri,expected", [
    ("0", "-"),
    ("1", "P"),
    ("1.5", "P ½"),
    ("2.25", "PP ¼"),
    ("0.75", "¾"),
    ("0.5", "½"),
    ("3.75", "PPP ¾"),
])
def test_traditional_notation(hajri, expected):
    assert traditional_notation(Decimal(hajri)) == expected


def test_traditional_notation_band_edges():
    """0.6 and 0.9 sit outside every band; a zero whole part then falls back to ½"""
    assert traditional_notation(Decimal("0.6")) == "½"
    assert traditional_notation(Decimal("1.9")) == "P"


def test_cost_delta():
    assert cost_delta(1, "1.5", 600) == Decimal("300.00")
    assert cost_delta(1, 0, 600) == Decimal("-600.00")


def test_monthly_labor_cost_newest_first_and_skips_unknown_workers():
    records = [
        rec(1, date(2024, 1, 10), 1),
        rec(1, date(2024, 2, 1), "0.5"),
        rec(2, date(2024, 2, 2), 2),
        rec(99, date(2024, 2, 3), 5),
    ]
    out = monthly_labor_cost(records, {1: Decimal("600"), 2: Decimal("500")})
    assert [(r["year"], r["month"]) for r in out] == [(2024, 2), (2024, 1)]
    assert out[0]["amount"] == Decimal("1300.00")
    assert out[0]["label"] == "February 2024"
    assert out[1]["amount"] == Decimal("600.00")


def test_labor_cost_totals_current_month():
    records = [rec(1, date(2024, 1, 10), 1), rec(1, date(2024, 2, 1), 2)]
    totals = labor_cost_totals(records, {1: 500}, as_of=date(2024, 2, 15))
    assert totals == {"labor_cost": Decimal("1500.00"), "monthly_labor_cost": Decimal("1000.00")}


def test_worker_month_summary():
    records = [rec(1, date(2024, 3, 1), "1.5", 100), rec(1, date(2024, 3, 2), 1, 50)]
    s = worker_month_summary(Decimal("400"), records)
    assert s["total_hajri"] == Decimal("2.5")
    assert s["gross_earning"] == Decimal("1000.00")
    assert s["total_kharchi"] == Decimal("150.00")
    assert s["net_payable"] == Decimal("850.00")


def test_worker_month_sheet_fills_every_day():
    rows = worker_month_sheet(Decimal("400"), [rec(1, date(2024, 2, 10), "0.75", 100)], 2024, 2)
    assert len(rows) == 29
    day10 = rows[9]
    assert day10["notation"] == "¾"
    assert day10["status"] == "Present"
    assert day10["daily_earning"] == Decimal("200.00")
    assert rows[0]["status"] == "Absent"
    assert rows[0]["notation"] == "-"
