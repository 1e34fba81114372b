"""Client ledger validation, running balance and totals."""
from datetime import date, datetime
from decimal import Decimal
from types import SimpleNamespace

import pytest

from sitebook.accounting.client_ledger import (
    validate_entry, running_balances, ledger_totals, LedgerEntryInvalidError,
    MSG_AMOUNT_REQUIRED, MSG_DESCRIPTION_REQUIRED,
)


def entry(id, d, bill=0, paid=0, created=None):
    return SimpleNamespace(
        id=id, entry_date=d, description=f"entry {id}",
        bill_amount=Decimal(str(bill)), payment_received=Decimal(str(paid)),
        project_id=None, created_at=created or datetime(2024, 1, 1, 12, 0, id),
    )


def test_validate_requires_an_amount():
    with pytest.raises(LedgerEntryInvalidError) as exc:
        validate_entry("Bill 1", 0, 0)
    assert str(exc.value) == MSG_AMOUNT_REQUIRED


def test_validate_requires_description():
    with pytest.raises(LedgerEntryInvalidError) as exc:
        validate_entry("  ", 100, 0)
    assert str(exc.value) == MSG_DESCRIPTION_REQUIRED


def test_validate_amount_checked_before_description():
    with pytest.raises(LedgerEntryInvalidError) as exc:
        validate_entry("", 0, 0)
    assert str(exc.value) == MSG_AMOUNT_REQUIRED


def test_validate_rejects_negative():
    with pytest.raises(LedgerEntryInvalidError):
        validate_entry("x", -5, 10)


def test_validate_accepts_bill_and_payment_together():
    validate_entry("RA bill 2 + advance", 1000, 400)


def test_running_balance_is_ordered_by_date_then_creation():
    entries = [
        entry(3, date(2024, 1, 5), paid=300),
        entry(1, date(2024, 1, 1), bill=1000),
        entry(2, date(2024, 1, 5), bill=200, created=datetime(2024, 1, 1, 9, 0)),
    ]
    rows = running_balances(entries)
    assert [r["id"] for r in rows] == [1, 2, 3]
    assert [r["balance"] for r in rows] == [Decimal("1000.00"), Decimal("1200.00"), Decimal("900.00")]


def test_totals_match_final_balance():
    entries = [entry(1, date(2024, 1, 1), bill=1000), entry(2, date(2024, 1, 2), paid=1250)]
    t = ledger_totals(entries)
    assert t["total_billed"] == Decimal("1000.00")
    assert t["total_received"] == Decimal("1250.00")
    assert t["net_due"] == Decimal("-250.00")
    assert t["is_consistent"] is True


def test_totals_empty_ledger():
    t = ledger_totals([])
    assert t["net_due"] == Decimal("0.00")
    assert t["is_consistent"] is True
