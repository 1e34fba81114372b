"""CRUD - workers, attendance, client ledger, estimates, expenses, payments, projects; KYC fields encrypted on write"""
import logging
from datetime import date, datetime
from decimal import Decimal
from typing import Optional, List, Dict, Any, Tuple

from sqlalchemy import select, update, delete, case, or_, func
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from sitebook.accounting.client_ledger import validate_entry, LedgerEntryInvalidError  # noqa: F401
from sitebook.accounting.wages import apply_status_toggle, money, to_decimal, ZERO
from sitebook.crypto import encrypt
from sitebook.models import (
    Worker, AttendanceRecord, ClientLedgerEntry, Estimate, EstimateItem,
    MaterialType, Expense, Payment, Project, ProjectSettings,
)
from sitebook import schemas

logger = logging.getLogger(__name__)


class WorkerNotFoundError(ValueError):
    pass


class EstimateNotFoundError(ValueError):
    pass


class ProjectNotFoundError(ValueError):
    pass


class DuplicateMaterialError(ValueError):
    pass


# ---------- Workers ----------
async def get_worker(db: AsyncSession, worker_id: int) -> Optional[Worker]:
    r = await db.execute(select(Worker).where(Worker.id == worker_id))
    return r.scalar_one_or_none()


async def list_workers(
    db: AsyncSession,
    status: Optional[str] = None,
    search: Optional[str] = None,
    skip: int = 0,
    limit: int = 500,
) -> List[Worker]:
    q = select(Worker).order_by(Worker.full_name)
    if status:
        q = q.where(Worker.status == status)
    if search and search.strip():
        term = f"%{search.strip()}%"
        q = q.where(or_(Worker.full_name.ilike(term), Worker.phone_number.ilike(term)))
    r = await db.execute(q.offset(skip).limit(limit))
    return list(r.scalars().all())


async def create_worker(db: AsyncSession, data: schemas.WorkerCreate) -> Worker:
    payload = data.model_dump()
    payload["aadhaar_number"] = encrypt(payload.get("aadhaar_number"))
    worker = Worker(**payload)
    db.add(worker)
    await db.flush()
    await db.refresh(worker)
    return worker


async def update_worker(db: AsyncSession, worker: Worker, data: schemas.WorkerUpdate) -> Worker:
    """Only fields present in the request are written; a wage change re-prices all history."""
    changes = data.model_dump(exclude_unset=True)
    if "aadhaar_number" in changes:
        changes["aadhaar_number"] = encrypt(changes["aadhaar_number"])
    if "daily_wage" in changes and changes["daily_wage"] != worker.daily_wage:
        logger.info("worker %s daily wage %s -> %s", worker.id, worker.daily_wage, changes["daily_wage"])
    for k, v in changes.items():
        setattr(worker, k, v)
    await db.flush()
    await db.refresh(worker)
    return worker


async def set_worker_file(db: AsyncSession, worker: Worker, field: str, url: str) -> Worker:
    if field not in ("photo_url", "id_document_url"):
        raise ValueError(f"unsupported worker file field: {field}")
    setattr(worker, field, url)
    await db.flush()
    await db.refresh(worker)
    return worker


async def delete_worker(db: AsyncSession, worker: Worker) -> None:
    """Attendance goes with the worker; payments stay, detached from it."""
    await db.execute(update(Payment).where(Payment.worker_id == worker.id).values(worker_id=None))
    await db.execute(delete(AttendanceRecord).where(AttendanceRecord.worker_id == worker.id))
    await db.delete(worker)
    await db.flush()


async def wage_map(db: AsyncSession) -> Dict[int, Decimal]:
    """worker_id -> current daily wage for every worker, active or not."""
    r = await db.execute(select(Worker.id, Worker.daily_wage))
    return {wid: wage for wid, wage in r.all()}


# ---------- Attendance ----------
def _dialect_insert(db: AsyncSession):
    name = db.get_bind().dialect.name
    if name == "postgresql":
        return postgresql.insert
    if name == "sqlite":
        return sqlite.insert
    raise NotImplementedError(f"attendance upsert is not supported on {name}")


async def get_attendance(db: AsyncSession, worker_id: int, day: date) -> Optional[AttendanceRecord]:
    r = await db.execute(
        select(AttendanceRecord)
        .where(AttendanceRecord.worker_id == worker_id, AttendanceRecord.date == day)
        .execution_options(populate_existing=True)
    )
    return r.scalar_one_or_none()


async def upsert_attendance(
    db: AsyncSession,
    worker_id: int,
    day: date,
    hajri_count: Optional[Decimal] = None,
    kharchi_amount: Optional[Decimal] = None,
    status: Optional[str] = None,
    project_id: Optional[int] = None,
    shift: Optional[str] = None,
    notes: Optional[str] = None,
) -> Tuple[AttendanceRecord, Decimal, Worker]:
    """
    Write one (worker, date) cell with a single INSERT ... ON CONFLICT DO UPDATE.
    Only supplied fields change on an existing row. A status toggle becomes a CASE on the stored
    hajri so Present keeps an existing fraction and only turns 0 into 1.
    Returns (record, previous hajri, worker); the previous value is read only to report the cost delta.
    """
    worker = await get_worker(db, worker_id)
    if not worker:
        raise WorkerNotFoundError("Worker not found")

    prev = await db.execute(
        select(AttendanceRecord.hajri_count).where(
            AttendanceRecord.worker_id == worker_id, AttendanceRecord.date == day
        )
    )
    old_hajri = prev.scalar_one_or_none() or ZERO

    now = datetime.utcnow()
    if hajri_count is not None:
        initial_hajri = hajri_count
    elif status is not None:
        initial_hajri = apply_status_toggle(ZERO, status)
    else:
        initial_hajri = ZERO

    values: Dict[str, Any] = {
        "worker_id": worker_id,
        "date": day,
        "hajri_count": initial_hajri,
        "kharchi_amount": kharchi_amount if kharchi_amount is not None else ZERO,
        "project_id": project_id,
        "shift": shift,
        "notes": notes,
        "created_at": now,
        "updated_at": now,
    }
    insert = _dialect_insert(db)
    stmt = insert(AttendanceRecord).values(**values)
    col = AttendanceRecord.__table__.c
    set_: Dict[str, Any] = {"updated_at": now}
    if hajri_count is not None:
        set_["hajri_count"] = stmt.excluded.hajri_count
    elif status == "Absent":
        set_["hajri_count"] = 0
    elif status == "Present":
        set_["hajri_count"] = case((col.hajri_count == 0, 1), else_=col.hajri_count)
    if kharchi_amount is not None:
        set_["kharchi_amount"] = stmt.excluded.kharchi_amount
    if project_id is not None:
        set_["project_id"] = stmt.excluded.project_id
    if shift is not None:
        set_["shift"] = stmt.excluded.shift
    if notes is not None:
        set_["notes"] = stmt.excluded.notes
    stmt = stmt.on_conflict_do_update(index_elements=["worker_id", "date"], set_=set_)
    await db.execute(stmt)

    record = await get_attendance(db, worker_id, day)
    return record, Decimal(old_hajri), worker


async def list_attendance(
    db: AsyncSession,
    worker_id: Optional[int] = None,
    start: Optional[date] = None,
    end: Optional[date] = None,
    project_id: Optional[int] = None,
) -> List[AttendanceRecord]:
    q = select(AttendanceRecord).order_by(AttendanceRecord.date, AttendanceRecord.worker_id)
    if worker_id is not None:
        q = q.where(AttendanceRecord.worker_id == worker_id)
    if start:
        q = q.where(AttendanceRecord.date >= start)
    if end:
        q = q.where(AttendanceRecord.date <= end)
    if project_id is not None:
        q = q.where(AttendanceRecord.project_id == project_id)
    r = await db.execute(q)
    return list(r.scalars().all())


async def daily_sheet(db: AsyncSession, day: date) -> List[Tuple[Worker, Optional[AttendanceRecord]]]:
    """Every active worker paired with that day's record (None when nothing was entered)."""
    workers = await list_workers(db, status="active")
    r = await db.execute(select(AttendanceRecord).where(AttendanceRecord.date == day))
    by_worker = {rec.worker_id: rec for rec in r.scalars().all()}
    return [(w, by_worker.get(w.id)) for w in workers]


# ---------- Client ledger ----------
async def list_ledger_entries(db: AsyncSession, project_id: Optional[int] = None) -> List[ClientLedgerEntry]:
    q = select(ClientLedgerEntry).order_by(
        ClientLedgerEntry.entry_date, ClientLedgerEntry.created_at, ClientLedgerEntry.id
    )
    if project_id is not None:
        q = q.where(ClientLedgerEntry.project_id == project_id)
    r = await db.execute(q)
    return list(r.scalars().all())


async def get_ledger_entry(db: AsyncSession, entry_id: int) -> Optional[ClientLedgerEntry]:
    r = await db.execute(select(ClientLedgerEntry).where(ClientLedgerEntry.id == entry_id))
    return r.scalar_one_or_none()


async def create_ledger_entry(db: AsyncSession, data: schemas.LedgerEntryCreate) -> ClientLedgerEntry:
    """Raises LedgerEntryInvalidError before anything is written."""
    validate_entry(data.description, data.bill_amount, data.payment_received)
    entry = ClientLedgerEntry(
        entry_date=data.entry_date,
        description=data.description.strip(),
        bill_amount=data.bill_amount,
        payment_received=data.payment_received,
        project_id=data.project_id,
    )
    db.add(entry)
    await db.flush()
    await db.refresh(entry)
    return entry


async def delete_ledger_entry(db: AsyncSession, entry: ClientLedgerEntry) -> None:
    await db.delete(entry)
    await db.flush()


# ---------- Estimates ----------
async def get_estimate(db: AsyncSession, estimate_id: int, load_items: bool = True) -> Optional[Estimate]:
    q = select(Estimate).where(Estimate.id == estimate_id).execution_options(populate_existing=True)
    if load_items:
        q = q.options(selectinload(Estimate.items))
    r = await db.execute(q)
    return r.scalar_one_or_none()


async def list_estimates(db: AsyncSession, project_id: Optional[int] = None) -> List[Estimate]:
    q = (
        select(Estimate)
        .options(selectinload(Estimate.items))
        .order_by(Estimate.created_at.desc(), Estimate.id.desc())
        .execution_options(populate_existing=True)
    )
    if project_id is not None:
        q = q.where(Estimate.project_id == project_id)
    r = await db.execute(q)
    return list(r.scalars().all())


async def get_active_estimate(db: AsyncSession) -> Optional[Estimate]:
    r = await db.execute(
        select(Estimate)
        .where(Estimate.is_active.is_(True))
        .options(selectinload(Estimate.items))
        .execution_options(populate_existing=True)
        .limit(1)
    )
    return r.scalars().first()


def _item_from_dict(data: Dict[str, Any]) -> EstimateItem:
    qty = to_decimal(data.get("quantity"))
    rate = to_decimal(data.get("rate"))
    return EstimateItem(
        description=data.get("description") or "Unknown Item",
        unit=data.get("unit") or "Nos",
        quantity=qty,
        rate=rate,
        amount=money(qty * rate),
        category=data.get("category") or "General",
        extra_data=data.get("extra_data") or None,
    )


async def create_estimate(
    db: AsyncSession,
    name: str,
    items: Optional[List[Dict[str, Any]]] = None,
    project_id: Optional[int] = None,
) -> Estimate:
    est = Estimate(name=name, project_id=project_id, is_active=False)
    est.items = [_item_from_dict(i) for i in (items or [])]
    db.add(est)
    await db.flush()
    return await get_estimate(db, est.id)


async def add_estimate_items(db: AsyncSession, estimate: Estimate, items: List[Dict[str, Any]]) -> Estimate:
    for i in items:
        item = _item_from_dict(i)
        item.estimate_id = estimate.id
        db.add(item)
    await db.flush()
    return await get_estimate(db, estimate.id)


async def get_estimate_item(db: AsyncSession, item_id: int) -> Optional[EstimateItem]:
    r = await db.execute(select(EstimateItem).where(EstimateItem.id == item_id))
    return r.scalar_one_or_none()


async def update_estimate_item(db: AsyncSession, item: EstimateItem, data: schemas.EstimateItemUpdate) -> EstimateItem:
    for k, v in data.model_dump(exclude_unset=True).items():
        if v is not None:
            setattr(item, k, v)
    item.amount = money(to_decimal(item.quantity) * to_decimal(item.rate))
    await db.flush()
    await db.refresh(item)
    return item


async def delete_estimate_item(db: AsyncSession, item: EstimateItem) -> None:
    await db.delete(item)
    await db.flush()


async def delete_estimate(db: AsyncSession, estimate: Estimate) -> None:
    await db.delete(estimate)
    await db.flush()


async def set_active_estimate(db: AsyncSession, estimate_id: int) -> Estimate:
    """One UPDATE over the whole table: is_active = (id = :estimate_id). Exactly one row is active afterwards."""
    est = await get_estimate(db, estimate_id, load_items=False)
    if not est:
        raise EstimateNotFoundError("Estimate not found")
    await db.execute(
        update(Estimate)
        .values(is_active=case((Estimate.id == estimate_id, True), else_=False))
        .execution_options(synchronize_session=False)
    )
    return await get_estimate(db, estimate_id)


async def deactivate_estimate(db: AsyncSession, estimate_id: int) -> Estimate:
    est = await get_estimate(db, estimate_id, load_items=False)
    if not est:
        raise EstimateNotFoundError("Estimate not found")
    await db.execute(
        update(Estimate).where(Estimate.id == estimate_id).values(is_active=False)
        .execution_options(synchronize_session=False)
    )
    return await get_estimate(db, estimate_id)


# ---------- Materials & expenses ----------
async def list_material_types(db: AsyncSession) -> List[MaterialType]:
    r = await db.execute(select(MaterialType).order_by(MaterialType.name))
    return list(r.scalars().all())


async def get_material_type(db: AsyncSession, material_id: int) -> Optional[MaterialType]:
    r = await db.execute(select(MaterialType).where(MaterialType.id == material_id))
    return r.scalar_one_or_none()


async def create_material_type(db: AsyncSession, data: schemas.MaterialTypeCreate) -> MaterialType:
    exists = await db.execute(select(func.count()).select_from(MaterialType).where(
        func.lower(MaterialType.name) == data.name.strip().lower()
    ))
    if exists.scalar_one():
        raise DuplicateMaterialError(f"Material '{data.name}' already exists")
    m = MaterialType(name=data.name.strip(), default_rate=data.default_rate)
    db.add(m)
    await db.flush()
    await db.refresh(m)
    return m


async def update_material_type(db: AsyncSession, m: MaterialType, data: schemas.MaterialTypeUpdate) -> MaterialType:
    for k, v in data.model_dump(exclude_unset=True).items():
        if v is not None:
            setattr(m, k, v.strip() if isinstance(v, str) else v)
    await db.flush()
    await db.refresh(m)
    return m


async def delete_material_type(db: AsyncSession, m: MaterialType) -> None:
    await db.execute(update(Expense).where(Expense.material_id == m.id).values(material_id=None))
    await db.delete(m)
    await db.flush()


async def list_expenses(
    db: AsyncSession,
    start: Optional[date] = None,
    end: Optional[date] = None,
    project_id: Optional[int] = None,
    category: Optional[str] = None,
) -> List[Expense]:
    q = select(Expense).order_by(Expense.date.desc(), Expense.id.desc())
    if start:
        q = q.where(Expense.date >= start)
    if end:
        q = q.where(Expense.date <= end)
    if project_id is not None:
        q = q.where(Expense.project_id == project_id)
    if category:
        q = q.where(Expense.category == category)
    r = await db.execute(q)
    return list(r.scalars().all())


async def get_expense(db: AsyncSession, expense_id: int) -> Optional[Expense]:
    r = await db.execute(select(Expense).where(Expense.id == expense_id))
    return r.scalar_one_or_none()


async def create_expense(
    db: AsyncSession, data: schemas.ExpenseCreate, bill_photo_url: Optional[str] = None
) -> Expense:
    e = Expense(**data.model_dump(), bill_photo_url=bill_photo_url)
    db.add(e)
    await db.flush()
    await db.refresh(e)
    return e


async def delete_expense(db: AsyncSession, e: Expense) -> None:
    await db.delete(e)
    await db.flush()


# ---------- Payments ----------
async def list_payments(
    db: AsyncSession,
    worker_id: Optional[int] = None,
    start: Optional[date] = None,
    end: Optional[date] = None,
    project_id: Optional[int] = None,
) -> List[Payment]:
    q = (
        select(Payment)
        .options(selectinload(Payment.worker))
        .order_by(Payment.payment_date.desc(), Payment.id.desc())
    )
    if worker_id is not None:
        q = q.where(Payment.worker_id == worker_id)
    if start:
        q = q.where(Payment.payment_date >= start)
    if end:
        q = q.where(Payment.payment_date <= end)
    if project_id is not None:
        q = q.where(Payment.project_id == project_id)
    r = await db.execute(q)
    return list(r.scalars().all())


async def get_payment(db: AsyncSession, payment_id: int) -> Optional[Payment]:
    r = await db.execute(
        select(Payment).options(selectinload(Payment.worker)).where(Payment.id == payment_id)
    )
    return r.scalar_one_or_none()


async def create_payment(db: AsyncSession, data: schemas.PaymentCreate) -> Payment:
    if data.worker_id is not None and not await get_worker(db, data.worker_id):
        raise WorkerNotFoundError("Worker not found")
    p = Payment(**data.model_dump())
    db.add(p)
    await db.flush()
    return await get_payment(db, p.id)


async def delete_payment(db: AsyncSession, p: Payment) -> None:
    await db.delete(p)
    await db.flush()


# ---------- Projects ----------
async def list_projects(db: AsyncSession) -> List[Project]:
    r = await db.execute(select(Project).order_by(Project.created_at.desc(), Project.id.desc()))
    return list(r.scalars().all())


async def get_project(db: AsyncSession, project_id: int) -> Optional[Project]:
    r = await db.execute(select(Project).where(Project.id == project_id))
    return r.scalar_one_or_none()


async def create_project(db: AsyncSession, data: schemas.ProjectCreate) -> Project:
    p = Project(**data.model_dump())
    db.add(p)
    await db.flush()
    await db.refresh(p)
    return p


async def update_project(db: AsyncSession, p: Project, data: schemas.ProjectUpdate) -> Project:
    for k, v in data.model_dump(exclude_unset=True).items():
        setattr(p, k, v)
    await db.flush()
    await db.refresh(p)
    return p


async def delete_project(db: AsyncSession, p: Project) -> None:
    """Records of every kind stay, detached from the project."""
    for model in (AttendanceRecord, Expense, ClientLedgerEntry, Payment, Estimate):
        await db.execute(update(model).where(model.project_id == p.id).values(project_id=None))
    await db.delete(p)
    await db.flush()


# ---------- Project settings (branding singleton) ----------
async def get_project_settings(db: AsyncSession) -> ProjectSettings:
    """Singleton row; created with defaults on first read."""
    r = await db.execute(select(ProjectSettings).order_by(ProjectSettings.id).limit(1))
    row = r.scalars().first()
    if row is None:
        row = ProjectSettings(bg_type="default")
        db.add(row)
        await db.flush()
        await db.refresh(row)
    return row


async def update_project_settings(db: AsyncSession, changes: Dict[str, Any]) -> ProjectSettings:
    row = await get_project_settings(db)
    for k, v in changes.items():
        setattr(row, k, v)
    await db.flush()
    await db.refresh(row)
    return row
