"""projects table; nullable project_id on attendance, expenses, client_ledger, payments, estimates

Existing rows keep project_id NULL (single-site data before projects existed).

Revision ID: 002
Revises: 001
Create Date: 2026-10-19

"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

revision: str = "002"
down_revision: Union[str, None] = "001"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

PROJECT_SCOPED_TABLES = ("attendance", "expenses", "client_ledger", "payments", "estimates")


def upgrade() -> None:
    op.create_table(
        "projects",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("name", sa.String(200), nullable=True, comment="Project name"),
        sa.Column("client_name", sa.String(200), nullable=True),
        sa.Column("site_address", sa.String(500), nullable=True),
        sa.Column("gst_number", sa.String(30), nullable=True),
        sa.Column("phone", sa.String(30), nullable=True),
        sa.Column("project_start_date", sa.Date(), nullable=True),
        sa.Column("architect_name", sa.String(200), nullable=True),
        sa.Column("engineer_name", sa.String(200), nullable=True),
        sa.Column("construction_types", sa.JSON(), nullable=True),
        sa.Column("project_team", sa.JSON(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    # batch mode so SQLite can add the foreign key
    for table in PROJECT_SCOPED_TABLES:
        with op.batch_alter_table(table) as batch_op:
            batch_op.add_column(sa.Column("project_id", sa.Integer(), nullable=True))
            batch_op.create_foreign_key(
                f"fk_{table}_project_id_projects", "projects", ["project_id"], ["id"], ondelete="SET NULL",
            )
            batch_op.create_index(f"ix_{table}_project_id", ["project_id"], unique=False)


def downgrade() -> None:
    for table in PROJECT_SCOPED_TABLES:
        with op.batch_alter_table(table) as batch_op:
            batch_op.drop_index(f"ix_{table}_project_id")
            batch_op.drop_constraint(f"fk_{table}_project_id_projects", type_="foreignkey")
            batch_op.drop_column("project_id")
    op.drop_table("projects")
