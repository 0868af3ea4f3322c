"""catalog medicines and pharmacy stock

Revision ID: 1a2b3c4d5e6f
Revises:
Create Date: 2026-10-19

"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa

revision = "1a2b3c4d5e6f"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "catalog_medicines",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("generic_name", sa.String(), nullable=False),
        sa.Column("brand_name", sa.String(), nullable=False),
        sa.Column("manufacturer", sa.String(), nullable=True),
        sa.Column("strength", sa.String(), nullable=True),
        sa.Column("dosage_form", sa.String(), nullable=True),
        sa.Column("therapeutic_class", sa.String(), nullable=True),
        sa.Column("price", sa.Float(), nullable=False, server_default="0"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
    )
    op.create_index("ix_catalog_medicines_id", "catalog_medicines", ["id"])
    op.create_index("ix_catalog_medicines_generic_name", "catalog_medicines", ["generic_name"])
    op.create_index("ix_catalog_medicines_brand_name", "catalog_medicines", ["brand_name"])
    op.create_index("ix_catalog_medicines_therapeutic_class", "catalog_medicines", ["therapeutic_class"])

    op.create_table(
        "stock_items",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("medicine_id", sa.Integer(), sa.ForeignKey("catalog_medicines.id"), nullable=False),
        sa.Column("pharmacy_id", sa.Integer(), nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("unit_price", sa.Float(), nullable=True),
        sa.Column("low_stock_threshold", sa.Integer(), nullable=False, server_default="10"),
        sa.UniqueConstraint("medicine_id", "pharmacy_id", name="uq_stock_medicine_pharmacy"),
    )
    op.create_index("ix_stock_items_id", "stock_items", ["id"])
    op.create_index("ix_stock_items_medicine_id", "stock_items", ["medicine_id"])
    op.create_index("ix_stock_items_pharmacy_id", "stock_items", ["pharmacy_id"])


def downgrade() -> None:
    op.drop_index("ix_stock_items_pharmacy_id", table_name="stock_items")
    op.drop_index("ix_stock_items_medicine_id", table_name="stock_items")
    op.drop_index("ix_stock_items_id", table_name="stock_items")
    op.drop_table("stock_items")

    op.drop_index("ix_catalog_medicines_therapeutic_class", table_name="catalog_medicines")
    op.drop_index("ix_catalog_medicines_brand_name", table_name="catalog_medicines")
    op.drop_index("ix_catalog_medicines_generic_name", table_name="catalog_medicines")
    op.drop_index("ix_catalog_medicines_id", table_name="catalog_medicines")
    op.drop_table("catalog_medicines")
