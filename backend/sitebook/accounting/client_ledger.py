"""Client billing ledger: entry validation, running balance and totals."""
from decimal import Decimal
from typing import Any, Dict, Iterable, List

from sitebook.accounting.wages import money, to_decimal, ZERO

MSG_AMOUNT_REQUIRED = "Please enter either a Bill Amount or Payment Received."
MSG_DESCRIPTION_REQUIRED = "Please enter a description (e.g., Bill No or Payment details)."


class LedgerEntryInvalidError(ValueError):
    """Entry rejected before any write."""


def validate_entry(description: Any, bill_amount: Any, payment_received: Any) -> None:
    bill = to_decimal(bill_amount)
    payment = to_decimal(payment_received)
    if bill < 0 or payment < 0:
        raise LedgerEntryInvalidError("Amounts cannot be negative.")
    if bill <= 0 and payment <= 0:
        raise LedgerEntryInvalidError(MSG_AMOUNT_REQUIRED)
    if not description or not str(description).strip():
        raise LedgerEntryInvalidError(MSG_DESCRIPTION_REQUIRED)


def _sort_key(entry: Any):
    return (entry.entry_date, entry.created_at, entry.id or 0)


def running_balances(entries: Iterable[Any]) -> List[Dict[str, Any]]:
    """Left-to-right fold over entries ordered by (date, creation time, id); balance starts at 0."""
    balance = ZERO
    rows = []
    for e in sorted(entries, key=_sort_key):
        balance += to_decimal(e.bill_amount) - to_decimal(e.payment_received)
        rows.append({
            "id": e.id,
            "entry_date": e.entry_date,
            "description": e.description,
            "bill_amount": money(e.bill_amount),
            "payment_received": money(e.payment_received),
            "project_id": getattr(e, "project_id", None),
            "created_at": e.created_at,
            "balance": money(balance),
        })
    return rows


def ledger_totals(entries: Iterable[Any]) -> Dict[str, Any]:
    """
    Totals are independent sums, not read off the last running balance.
    is_consistent reports whether the two agree (they always should).
    """
    entries = list(entries)
    billed = sum((to_decimal(e.bill_amount) for e in entries), ZERO)
    received = sum((to_decimal(e.payment_received) for e in entries), ZERO)
    net_due = money(billed - received)
    rows = running_balances(entries)
    final_balance = rows[-1]["balance"] if rows else money(ZERO)
    return {
        "total_billed": money(billed),
        "total_received": money(received),
        "net_due": net_due,
        "is_consistent": final_balance == net_due,
    }


def ledger_view(entries: Iterable[Any]) -> Dict[str, Any]:
    entries = list(entries)
    return {"entries": running_balances(entries), "totals": ledger_totals(entries)}
