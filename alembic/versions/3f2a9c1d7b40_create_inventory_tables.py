"""Create roles, users, spare parts and stock ledger tables.

Revision ID: 3f2a9c1d7b40
Revises:
Create Date: 2025-06-02 09:00:00.000000
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "3f2a9c1d7b40"
down_revision = None
branch_labels = None
depends_on = None

PART_CATEGORIES = ("Mechanical", "Electrical", "Hydraulic", "Pneumatic", "Electronic", "Consumable")
TRANSACTION_TYPES = ("in", "out")


def upgrade() -> None:
    op.create_table(
        "roles",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(length=50), nullable=False),
        sa.Column("description", sa.String(length=255), nullable=True),
    )
    op.create_index("ix_roles_id", "roles", ["id"])
    op.create_index("ix_roles_name", "roles", ["name"], unique=True)

    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("hashed_password", sa.String(length=255), nullable=False),
        sa.Column("role_id", sa.Integer(), sa.ForeignKey("roles.id"), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=True),
    )
    op.create_index("ix_users_id", "users", ["id"])
    op.create_index("ix_users_email", "users", ["email"], unique=True)

    op.create_table(
        "spare_parts",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("part_code", sa.String(length=100), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("machine_type", sa.String(length=255), nullable=False),
        sa.Column("category", sa.Enum(*PART_CATEGORIES, name="part_category"), nullable=False),
        sa.Column("quantity_in_stock", sa.Integer(), nullable=False),
        sa.Column("minimum_stock_level", sa.Integer(), nullable=False),
        sa.Column("storage_location", sa.String(length=100), nullable=False),
        sa.Column("unit_price", sa.Numeric(12, 2), nullable=False),
        sa.Column("service_life_months", sa.Integer(), nullable=False),
        sa.Column("image_url", sa.String(length=500), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=True),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
        sa.CheckConstraint("quantity_in_stock >= 0", name="ck_spare_parts_quantity_non_negative"),
        sa.CheckConstraint("minimum_stock_level >= 0", name="ck_spare_parts_minimum_non_negative"),
        sa.CheckConstraint("unit_price >= 0", name="ck_spare_parts_price_non_negative"),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_spare_parts_id", "spare_parts", ["id"])
    op.create_index("ix_spare_parts_part_code", "spare_parts", ["part_code"], unique=True)
    op.create_index("ix_spare_parts_name", "spare_parts", ["name"])
    op.create_index("ix_spare_parts_category", "spare_parts", ["category"])

    op.create_table(
        "stock_transactions",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("part_id", sa.Integer(), sa.ForeignKey("spare_parts.id", ondelete="SET NULL"), nullable=True),
        sa.Column("transaction_type", sa.Enum(*TRANSACTION_TYPES, name="transaction_type"), nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("machine_id", sa.String(length=100), nullable=False),
        sa.Column("operator_name", sa.String(length=255), nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("part_code", sa.String(length=100), nullable=True),
        sa.Column("unit_price", sa.Numeric(12, 2), nullable=True),
        sa.Column("recorded_by_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.CheckConstraint("quantity > 0", name="ck_stock_transactions_quantity_positive"),
    )
    op.create_index("ix_stock_transactions_id", "stock_transactions", ["id"])
    op.create_index("ix_stock_transactions_part_id", "stock_transactions", ["part_id"])
    op.create_index("ix_stock_transactions_transaction_type", "stock_transactions", ["transaction_type"])
    op.create_index("ix_stock_transactions_created_at", "stock_transactions", ["created_at"])

    roles = sa.table(
        "roles",
        sa.column("name", sa.String),
        sa.column("description", sa.String),
    )
    op.bulk_insert(roles, [
        {"name": "admin", "description": "Administrator - manages the parts catalog"},
        {"name": "user", "description": "Technician - records stock movements"},
    ])


def downgrade() -> None:
    op.drop_table("stock_transactions")
    op.drop_table("spare_parts")
    op.drop_table("users")
    op.drop_table("roles")
    sa.Enum(name="transaction_type").drop(op.get_bind(), checkfirst=True)
    sa.Enum(name="part_category").drop(op.get_bind(), checkfirst=True)
