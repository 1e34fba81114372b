"""initial schema - workers, attendance, material_types, expenses, client_ledger, payments, estimates, project_settings

Revision ID: 001
Revises:
Create Date: 2026-10-19

"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "workers",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("full_name", sa.String(100), nullable=False),
        sa.Column("phone_number", sa.String(30), nullable=True),
        sa.Column("skill_type", sa.String(20), nullable=False, comment="Mason/Laborer/Carpenter/Electrician/Plumber/Supervisor/Other"),
        sa.Column("daily_wage", sa.Numeric(12, 2), nullable=False),
        sa.Column("status", sa.String(10), nullable=False, comment="active / inactive"),
        sa.Column("address", sa.String(500), nullable=True),
        sa.Column("aadhaar_number", sa.String(500), nullable=True, comment="Encrypted when ENCRYPTION_KEY is set"),
        sa.Column("alternate_phone", sa.String(30), nullable=True),
        sa.Column("gender", sa.String(10), nullable=True),
        sa.Column("age", sa.Integer(), nullable=True),
        sa.Column("photo_url", sa.String(500), nullable=True),
        sa.Column("id_document_url", sa.String(500), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_workers_full_name"), "workers", ["full_name"], unique=False)
    op.create_index(op.f("ix_workers_status"), "workers", ["status"], unique=False)

    op.create_table(
        "attendance",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("worker_id", sa.Integer(), nullable=False),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("hajri_count", sa.Numeric(6, 2), nullable=False, comment="Multiple of 0.25, >= 0"),
        sa.Column("kharchi_amount", sa.Numeric(12, 2), nullable=False, comment="Same-day cash advance"),
        sa.Column("shift", sa.String(10), nullable=True, comment="Day / Night"),
        sa.Column("notes", sa.String(500), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["worker_id"], ["workers.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("worker_id", "date", name="uq_attendance_worker_date"),
    )
    op.create_index(op.f("ix_attendance_worker_id"), "attendance", ["worker_id"], unique=False)
    op.create_index(op.f("ix_attendance_date"), "attendance", ["date"], unique=False)

    op.create_table(
        "material_types",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("default_rate", sa.Numeric(12, 2), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("name"),
    )

    op.create_table(
        "expenses",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("category", sa.String(20), nullable=False, comment="Material/Transport/Food/Other"),
        sa.Column("amount", sa.Numeric(14, 2), nullable=False),
        sa.Column("quantity", sa.Numeric(14, 3), nullable=True),
        sa.Column("rate", sa.Numeric(14, 2), nullable=True),
        sa.Column("description", sa.String(500), nullable=True),
        sa.Column("material_id", sa.Integer(), nullable=True),
        sa.Column("bill_photo_url", sa.String(500), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["material_id"], ["material_types.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_expenses_date"), "expenses", ["date"], unique=False)

    op.create_table(
        "client_ledger",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("entry_date", sa.Date(), nullable=False),
        sa.Column("description", sa.String(500), nullable=False),
        sa.Column("bill_amount", sa.Numeric(14, 2), nullable=False),
        sa.Column("payment_received", sa.Numeric(14, 2), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_client_ledger_entry_date"), "client_ledger", ["entry_date"], unique=False)

    op.create_table(
        "payments",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("worker_id", sa.Integer(), nullable=True),
        sa.Column("amount", sa.Numeric(14, 2), nullable=False),
        sa.Column("payment_date", sa.Date(), nullable=False),
        sa.Column("payment_type", sa.String(20), nullable=False),
        sa.Column("method", sa.String(30), nullable=True, comment="Cash / UPI / Bank"),
        sa.Column("notes", sa.String(500), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["worker_id"], ["workers.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_payments_worker_id"), "payments", ["worker_id"], unique=False)
    op.create_index(op.f("ix_payments_payment_date"), "payments", ["payment_date"], unique=False)

    op.create_table(
        "estimates",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_estimates_is_active"), "estimates", ["is_active"], unique=False)

    op.create_table(
        "estimate_items",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("estimate_id", sa.Integer(), nullable=False),
        sa.Column("description", sa.String(500), nullable=False),
        sa.Column("unit", sa.String(30), nullable=False),
        sa.Column("quantity", sa.Numeric(14, 3), nullable=False),
        sa.Column("rate", sa.Numeric(14, 2), nullable=False),
        sa.Column("amount", sa.Numeric(26, 2), nullable=False, comment="Denormalized quantity * rate"),
        sa.Column("category", sa.String(100), nullable=False),
        sa.Column("extra_data", sa.JSON(), nullable=True, comment="Imported spreadsheet columns not mapped to fixed fields"),
        sa.ForeignKeyConstraint(["estimate_id"], ["estimates.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_estimate_items_estimate_id"), "estimate_items", ["estimate_id"], unique=False)

    op.create_table(
        "project_settings",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("project_name", sa.String(200), nullable=True),
        sa.Column("address", sa.String(500), nullable=True),
        sa.Column("phone", sa.String(30), nullable=True),
        sa.Column("receipt_footer", sa.String(300), nullable=True),
        sa.Column("brand_logo_url", sa.String(500), nullable=True),
        sa.Column("bg_type", sa.String(10), nullable=False, comment="default / custom / white"),
        sa.Column("background_image_url", sa.String(500), nullable=True),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )


def downgrade() -> None:
    op.drop_table("project_settings")
    op.drop_index(op.f("ix_estimate_items_estimate_id"), table_name="estimate_items")
    op.drop_table("estimate_items")
    op.drop_index(op.f("ix_estimates_is_active"), table_name="estimates")
    op.drop_table("estimates")
    op.drop_index(op.f("ix_payments_payment_date"), table_name="payments")
    op.drop_index(op.f("ix_payments_worker_id"), table_name="payments")
    op.drop_table("payments")
    op.drop_index(op.f("ix_client_ledger_entry_date"), table_name="client_ledger")
    op.drop_table("client_ledger")
    op.drop_index(op.f("ix_expenses_date"), table_name="expenses")
    op.drop_table("expenses")
    op.drop_table("material_types")
    op.drop_index(op.f("ix_attendance_date"), table_name="attendance")
    op.drop_index(op.f("ix_attendance_worker_id"), table_name="attendance")
    op.drop_table("attendance")
    op.drop_index(op.f("ix_workers_status"), table_name="workers")
    op.drop_index(op.f("ix_workers_full_name"), table_name="workers")
    op.drop_table("workers")
