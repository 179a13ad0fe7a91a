"""Initial inventory schema

Revision ID: 20261018_initial
Revises:
Create Date: 2026-10-18
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "20261018_initial"
down_revision = None
branch_labels = None
depends_on = None

movement_kind = sa.Enum("ENTRY", "EXIT", "ADJUSTMENT", name="movement_kind")


def upgrade():
    op.create_table(
        "categories",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.UniqueConstraint("name"),
        sqlite_autoincrement=True,
    )

    op.create_table(
        "suppliers",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(length=150), nullable=False),
        sa.Column("contact", sa.String(length=150), nullable=True),
        sa.Column("phone", sa.String(length=50), nullable=True),
        sa.Column("email", sa.String(length=255), nullable=True),
        sa.Column("address", sa.Text(), nullable=True),
        sa.UniqueConstraint("name"),
        sqlite_autoincrement=True,
    )

    op.create_table(
        "items",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("code", sa.String(length=20), nullable=False),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("description", sa.String(length=1000), nullable=True),
        sa.Column("category_id", sa.Integer(), sa.ForeignKey("categories.id"), nullable=True),
        sa.Column("supplier_id", sa.Integer(), sa.ForeignKey("suppliers.id"), nullable=True),
        sa.Column("purchase_price", sa.Numeric(8, 2), nullable=False),
        sa.Column("sale_price", sa.Numeric(8, 2), nullable=False),
        sa.Column("current_stock", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("min_stock", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.UniqueConstraint("code", name="uq_items_code"),
        sa.CheckConstraint("current_stock >= 0", name="ck_items_current_stock_nonneg"),
        sa.CheckConstraint("min_stock >= 0", name="ck_items_min_stock_nonneg"),
        sa.CheckConstraint("sale_price > purchase_price", name="ck_items_sale_gt_purchase"),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_items_active_name", "items", ["active", "name"])
    op.create_index("ix_items_category_id", "items", ["category_id"])
    op.create_index("ix_items_supplier_id", "items", ["supplier_id"])

    op.create_table(
        "movements",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("item_id", sa.Integer(), sa.ForeignKey("items.id"), nullable=False),
        sa.Column("kind", movement_kind, nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("stock_before", sa.Integer(), nullable=False),
        sa.Column("stock_after", sa.Integer(), nullable=False),
        sa.Column("reason", sa.String(length=255), nullable=True),
        sa.Column("user", sa.String(length=64), nullable=False),
        sa.Column("timestamp", sa.DateTime(), nullable=False),
        sa.CheckConstraint("quantity > 0", name="ck_movements_quantity_pos"),
        sa.CheckConstraint("stock_after >= 0", name="ck_movements_stock_after_nonneg"),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_movements_item_id", "movements", ["item_id"])
    op.create_index("ix_movements_item_timestamp", "movements", ["item_id", "timestamp"])

    op.create_table(
        "app_users",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("username", sa.String(length=64), nullable=False),
        sa.Column("password_hash", sa.String(length=64), nullable=False),
        sa.Column("role", sa.String(length=16), nullable=False),
        sa.Column("active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_app_users_username", "app_users", ["username"], unique=True)


def downgrade():
    op.drop_index("ix_app_users_username", table_name="app_users")
    op.drop_table("app_users")
    op.drop_index("ix_movements_item_timestamp", table_name="movements")
    op.drop_index("ix_movements_item_id", table_name="movements")
    op.drop_table("movements")
    op.drop_index("ix_items_supplier_id", table_name="items")
    op.drop_index("ix_items_category_id", table_name="items")
    op.drop_index("ix_items_active_name", table_name="items")
    op.drop_table("items")
    op.drop_table("suppliers")
    op.drop_table("categories")
    movement_kind.drop(op.get_bind(), checkfirst=True)
