"""Database models - workers, attendance (hajri/kharchi), expenses, client ledger, estimates (BOQ), projects.
Attendance status is not a column: it is derived from hajri_count on read, so the two can never disagree."""
from datetime import date, datetime
from decimal import Decimal
from typing import Optional, List
from sqlalchemy import String, Date, Numeric, ForeignKey, DateTime, Boolean, UniqueConstraint, JSON
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sitebook.database import Base

SKILL_TYPES = ("Mason", "Laborer", "Carpenter", "Electrician", "Plumber", "Supervisor", "Other")
WORKER_STATUSES = ("active", "inactive")
EXPENSE_CATEGORIES = ("Material", "Transport", "Food", "Other")
PAYMENT_TYPES = ("salary_payment", "cash_advance", "bonus")
BG_TYPES = ("default", "custom", "white")


class Project(Base):
    """Project container; added after the single-site version, so every project_id elsewhere is nullable."""
    __tablename__ = "projects"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    name: Mapped[Optional[str]] = mapped_column(String(200), comment="Project name")
    client_name: Mapped[Optional[str]] = mapped_column(String(200))
    site_address: Mapped[Optional[str]] = mapped_column(String(500))
    gst_number: Mapped[Optional[str]] = mapped_column(String(30))
    phone: Mapped[Optional[str]] = mapped_column(String(30))
    project_start_date: Mapped[Optional[date]] = mapped_column(Date)
    architect_name: Mapped[Optional[str]] = mapped_column(String(200))
    engineer_name: Mapped[Optional[str]] = mapped_column(String(200))
    construction_types: Mapped[Optional[list]] = mapped_column(JSON, comment="e.g. ['Residential', 'RCC']")
    project_team: Mapped[Optional[list]] = mapped_column(JSON, comment="[{name, role}, ...] free-form")
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)


class Worker(Base):
    """Site worker. daily_wage is mutable and every cost calculation reads the current value."""
    __tablename__ = "workers"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    full_name: Mapped[str] = mapped_column(String(100), index=True)
    phone_number: Mapped[Optional[str]] = mapped_column(String(30))
    skill_type: Mapped[str] = mapped_column(String(20), default="Laborer", comment="Mason/Laborer/Carpenter/Electrician/Plumber/Supervisor/Other")
    daily_wage: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=0)
    status: Mapped[str] = mapped_column(String(10), default="active", index=True, comment="active / inactive")
    address: Mapped[Optional[str]] = mapped_column(String(500))
    aadhaar_number: Mapped[Optional[str]] = mapped_column(String(500), comment="Encrypted when ENCRYPTION_KEY is set")
    alternate_phone: Mapped[Optional[str]] = mapped_column(String(30))
    gender: Mapped[Optional[str]] = mapped_column(String(10))
    age: Mapped[Optional[int]] = mapped_column()
    photo_url: Mapped[Optional[str]] = mapped_column(String(500))
    id_document_url: Mapped[Optional[str]] = mapped_column(String(500), comment="ID document photo, relative to upload dir")
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    attendance: Mapped[List["AttendanceRecord"]] = relationship(
        "AttendanceRecord", back_populates="worker", cascade="all, delete-orphan", passive_deletes=True
    )
    payments: Mapped[List["Payment"]] = relationship("Payment", back_populates="worker", passive_deletes=True)


class AttendanceRecord(Base):
    """One row per (worker, date). hajri_count is in quarter-day units; kharchi is the same-day cash advance."""
    __tablename__ = "attendance"
    __table_args__ = (UniqueConstraint("worker_id", "date", name="uq_attendance_worker_date"),)

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    worker_id: Mapped[int] = mapped_column(ForeignKey("workers.id", ondelete="CASCADE"), index=True)
    date: Mapped[date] = mapped_column(Date, index=True)
    hajri_count: Mapped[Decimal] = mapped_column(Numeric(6, 2), default=0, comment="Multiple of 0.25, >= 0")
    kharchi_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=0, comment="Same-day cash advance")
    project_id: Mapped[Optional[int]] = mapped_column(ForeignKey("projects.id", ondelete="SET NULL"), index=True)
    shift: Mapped[Optional[str]] = mapped_column(String(10), comment="Day / Night")
    notes: Mapped[Optional[str]] = mapped_column(String(500))
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    worker: Mapped["Worker"] = relationship("Worker", back_populates="attendance")

    @property
    def status(self) -> str:
        return "Present" if (self.hajri_count or 0) > 0 else "Absent"


class MaterialType(Base):
    __tablename__ = "material_types"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(100), unique=True)
    default_rate: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=0)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)


class Expense(Base):
    __tablename__ = "expenses"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    date: Mapped[date] = mapped_column(Date, index=True)
    category: Mapped[str] = mapped_column(String(20), default="Material", comment="Material/Transport/Food/Other")
    amount: Mapped[Decimal] = mapped_column(Numeric(14, 2))
    quantity: Mapped[Optional[Decimal]] = mapped_column(Numeric(14, 3))
    rate: Mapped[Optional[Decimal]] = mapped_column(Numeric(14, 2))
    description: Mapped[Optional[str]] = mapped_column(String(500))
    material_id: Mapped[Optional[int]] = mapped_column(ForeignKey("material_types.id", ondelete="SET NULL"))
    bill_photo_url: Mapped[Optional[str]] = mapped_column(String(500))
    project_id: Mapped[Optional[int]] = mapped_column(ForeignKey("projects.id", ondelete="SET NULL"), index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    material: Mapped[Optional["MaterialType"]] = relationship("MaterialType")


class ClientLedgerEntry(Base):
    """Client billing row: bill raised and/or payment received. Immutable once saved (delete only)."""
    __tablename__ = "client_ledger"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    entry_date: Mapped[date] = mapped_column(Date, index=True)
    description: Mapped[str] = mapped_column(String(500))
    bill_amount: Mapped[Decimal] = mapped_column(Numeric(14, 2), default=0)
    payment_received: Mapped[Decimal] = mapped_column(Numeric(14, 2), default=0)
    project_id: Mapped[Optional[int]] = mapped_column(ForeignKey("projects.id", ondelete="SET NULL"), index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)


class Payment(Base):
    """Money paid out (wages, advances, bonus). Source of 'income' for the monthly report."""
    __tablename__ = "payments"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    worker_id: Mapped[Optional[int]] = mapped_column(ForeignKey("workers.id", ondelete="SET NULL"), index=True)
    amount: Mapped[Decimal] = mapped_column(Numeric(14, 2))
    payment_date: Mapped[date] = mapped_column(Date, index=True)
    payment_type: Mapped[str] = mapped_column(String(20), default="salary_payment")
    method: Mapped[Optional[str]] = mapped_column(String(30), comment="Cash / UPI / Bank")
    notes: Mapped[Optional[str]] = mapped_column(String(500))
    project_id: Mapped[Optional[int]] = mapped_column(ForeignKey("projects.id", ondelete="SET NULL"), index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    worker: Mapped[Optional["Worker"]] = relationship("Worker", back_populates="payments")


class Estimate(Base):
    """BOQ container; at most one row has is_active = True."""
    __tablename__ = "estimates"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(200))
    is_active: Mapped[bool] = mapped_column(Boolean, default=False, index=True)
    project_id: Mapped[Optional[int]] = mapped_column(ForeignKey("projects.id", ondelete="SET NULL"), index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    items: Mapped[List["EstimateItem"]] = relationship(
        "EstimateItem", back_populates="estimate", cascade="all, delete-orphan", order_by="EstimateItem.id"
    )


class EstimateItem(Base):
    """BOQ line. amount is stored for reads by other tools; aggregation always recomputes quantity * rate."""
    __tablename__ = "estimate_items"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    estimate_id: Mapped[int] = mapped_column(ForeignKey("estimates.id", ondelete="CASCADE"), index=True)
    description: Mapped[str] = mapped_column(String(500))
    unit: Mapped[str] = mapped_column(String(30), default="Nos")
    quantity: Mapped[Decimal] = mapped_column(Numeric(14, 3), default=0)
    rate: Mapped[Decimal] = mapped_column(Numeric(14, 2), default=0)
    amount: Mapped[Decimal] = mapped_column(Numeric(26, 2), default=0, comment="Denormalized quantity * rate")
    category: Mapped[str] = mapped_column(String(100), default="General")
    extra_data: Mapped[Optional[dict]] = mapped_column(JSON, comment="Imported spreadsheet columns not mapped to fixed fields")

    estimate: Mapped["Estimate"] = relationship("Estimate", back_populates="items")


class ProjectSettings(Base):
    """Branding / receipt header. Single row."""
    __tablename__ = "project_settings"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    project_name: Mapped[Optional[str]] = mapped_column(String(200))
    address: Mapped[Optional[str]] = mapped_column(String(500))
    phone: Mapped[Optional[str]] = mapped_column(String(30))
    receipt_footer: Mapped[Optional[str]] = mapped_column(String(300))
    brand_logo_url: Mapped[Optional[str]] = mapped_column(String(500))
    bg_type: Mapped[str] = mapped_column(String(10), default="default", comment="default / custom / white")
    background_image_url: Mapped[Optional[str]] = mapped_column(String(500))
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
