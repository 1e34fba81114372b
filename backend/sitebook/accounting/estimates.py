"""Estimate (BOQ) aggregation. The stored item amount is never trusted; totals recompute quantity * rate."""
from collections import OrderedDict
from decimal import Decimal
from typing import Any, Dict, Iterable, List

from sitebook.accounting.wages import money, to_decimal, ZERO


def item_amount(item: Any) -> Decimal:
    return money(to_decimal(item.quantity) * to_decimal(item.rate))


def estimate_total(items: Iterable[Any]) -> Decimal:
    return money(sum((to_decimal(i.quantity) * to_decimal(i.rate) for i in items), ZERO))


def budget_total(estimates: Iterable[Any]) -> Decimal:
    """Sum over every estimate, active or not."""
    return money(sum((estimate_total(e.items) for e in estimates), ZERO))


def category_breakdown(items: Iterable[Any]) -> List[Dict[str, Any]]:
    """Per-category totals in first-seen order."""
    totals: "OrderedDict[str, Decimal]" = OrderedDict()
    counts: Dict[str, int] = {}
    for i in items:
        cat = i.category or "General"
        totals[cat] = totals.get(cat, ZERO) + to_decimal(i.quantity) * to_decimal(i.rate)
        counts[cat] = counts.get(cat, 0) + 1
    return [{"category": c, "item_count": counts[c], "amount": money(v)} for c, v in totals.items()]


def estimate_summary(estimate: Any) -> Dict[str, Any]:
    items = list(estimate.items)
    return {
        "id": estimate.id,
        "name": estimate.name,
        "is_active": estimate.is_active,
        "project_id": estimate.project_id,
        "created_at": estimate.created_at,
        "item_count": len(items),
        "total": estimate_total(items),
    }
