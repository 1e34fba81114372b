"""
Database behaviour on SQLite: attendance upsert (one row per worker and day, partial updates,
status toggle), ledger validation before write, single active estimate, worker deletion.
"""
from datetime import date
from decimal import Decimal

import pytest
from sqlalchemy import select, func

from sitebook import crud
from sitebook.models import AttendanceRecord, Estimate, Payment
from sitebook.schemas import WorkerCreate, LedgerEntryCreate, PaymentCreate

DAY = date(2024, 3, 15)


async def _worker(db, name="Ramesh", wage="600", status="active"):
    return await crud.create_worker(db, WorkerCreate(full_name=name, daily_wage=Decimal(wage), status=status))


@pytest.mark.asyncio
async def test_upsert_creates_then_updates_same_row(db):
    w = await _worker(db)
    rec, old, _ = await crud.upsert_attendance(db, w.id, DAY, hajri_count=Decimal("1.5"))
    assert old == 0
    assert rec.hajri_count == Decimal("1.5")
    assert rec.kharchi_amount == 0

    rec2, old2, _ = await crud.upsert_attendance(db, w.id, DAY, kharchi_amount=Decimal("200"))
    assert rec2.id == rec.id
    assert old2 == Decimal("1.5")
    # hajri untouched by a kharchi-only write
    assert rec2.hajri_count == Decimal("1.5")
    assert rec2.kharchi_amount == Decimal("200")

    count = await db.execute(select(func.count()).select_from(AttendanceRecord))
    assert count.scalar_one() == 1


@pytest.mark.asyncio
async def test_repeating_the_same_upsert_keeps_one_row(db):
    w = await _worker(db)
    first, _, _ = await crud.upsert_attendance(db, w.id, DAY, hajri_count=Decimal("0.75"))
    again, old, _ = await crud.upsert_attendance(db, w.id, DAY, hajri_count=Decimal("0.75"))
    assert again.id == first.id
    assert old == Decimal("0.75")
    assert again.hajri_count == Decimal("0.75")

    count = await db.execute(
        select(func.count()).select_from(AttendanceRecord).where(
            AttendanceRecord.worker_id == w.id, AttendanceRecord.date == DAY
        )
    )
    assert count.scalar_one() == 1


@pytest.mark.asyncio
async def test_kharchi_without_hajri_creates_absent_row(db):
    w = await _worker(db)
    rec, _, _ = await crud.upsert_attendance(db, w.id, DAY, kharchi_amount=Decimal("100"))
    assert rec.hajri_count == 0
    assert rec.status == "Absent"


@pytest.mark.asyncio
async def test_status_toggle_present_keeps_fraction(db):
    w = await _worker(db)
    rec, _, _ = await crud.upsert_attendance(db, w.id, DAY, status="Present")
    assert rec.hajri_count == Decimal("1")

    await crud.upsert_attendance(db, w.id, DAY, hajri_count=Decimal("1.75"))
    rec, _, _ = await crud.upsert_attendance(db, w.id, DAY, status="Present")
    assert rec.hajri_count == Decimal("1.75")

    rec, _, _ = await crud.upsert_attendance(db, w.id, DAY, status="Absent")
    assert rec.hajri_count == 0
    assert rec.status == "Absent"


@pytest.mark.asyncio
async def test_upsert_unknown_worker(db):
    with pytest.raises(crud.WorkerNotFoundError):
        await crud.upsert_attendance(db, 999, DAY, hajri_count=Decimal("1"))


@pytest.mark.asyncio
async def test_daily_sheet_lists_active_workers_only(db):
    a = await _worker(db, "Anil")
    await _worker(db, "Old Hand", status="inactive")
    await crud.upsert_attendance(db, a.id, DAY, hajri_count=Decimal("0.5"))
    sheet = await crud.daily_sheet(db, DAY)
    assert [(w.full_name, r.hajri_count if r else None) for w, r in sheet] == [("Anil", Decimal("0.5"))]


@pytest.mark.asyncio
async def test_ledger_rejects_before_write(db):
    with pytest.raises(crud.LedgerEntryInvalidError):
        await crud.create_ledger_entry(db, LedgerEntryCreate(entry_date=DAY, description="nothing"))
    assert await crud.list_ledger_entries(db) == []


@pytest.mark.asyncio
async def test_only_one_active_estimate(db):
    e1 = await crud.create_estimate(db, "Phase 1", items=[{"description": "PCC", "quantity": 2, "rate": 100}])
    e2 = await crud.create_estimate(db, "Phase 2")
    await crud.set_active_estimate(db, e1.id)
    active = await crud.set_active_estimate(db, e2.id)
    assert active.id == e2.id and active.is_active

    r = await db.execute(select(Estimate.id).where(Estimate.is_active.is_(True)))
    assert r.scalars().all() == [e2.id]

    await crud.deactivate_estimate(db, e2.id)
    assert await crud.get_active_estimate(db) is None

    with pytest.raises(crud.EstimateNotFoundError):
        await crud.set_active_estimate(db, 12345)


@pytest.mark.asyncio
async def test_estimate_item_amount_is_recomputed(db):
    est = await crud.create_estimate(db, "BOQ", items=[{"description": "Steel", "unit": "kg", "quantity": "10", "rate": "65.5"}])
    item = est.items[0]
    assert item.amount == Decimal("655.00")
    from sitebook.schemas import EstimateItemUpdate
    item = await crud.update_estimate_item(db, item, EstimateItemUpdate(quantity=Decimal("20")))
    assert item.amount == Decimal("1310.00")


@pytest.mark.asyncio
async def test_delete_worker_keeps_payments(db):
    w = await _worker(db)
    await crud.upsert_attendance(db, w.id, DAY, hajri_count=Decimal("1"))
    p = await crud.create_payment(db, PaymentCreate(worker_id=w.id, amount=Decimal("500"), payment_date=DAY))
    await crud.delete_worker(db, w)

    assert await crud.list_attendance(db) == []
    r = await db.execute(select(Payment.worker_id).where(Payment.id == p.id))
    assert r.scalar_one() is None
