from __future__ import annotations

from ..extensions import db
from ..domain import MovementKind
from ..time_utils import utcnow


class Category(db.Model):
    """Item classification. Seeded reference data; never hard-deleted while referenced."""
    __tablename__ = "categories"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(100), nullable=False, unique=True)
    description = db.Column(db.Text, nullable=True)

    def __repr__(self) -> str:
        return f"<Category id={self.id} name={self.name!r}>"


class Supplier(db.Model):
    """Sourcing reference data. Same referential rule as Category."""
    __tablename__ = "suppliers"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(150), nullable=False, unique=True)
    contact = db.Column(db.String(150), nullable=True)
    phone = db.Column(db.String(50), nullable=True)
    email = db.Column(db.String(255), nullable=True)
    address = db.Column(db.Text, nullable=True)

    def __repr__(self) -> str:
        return f"<Supplier id={self.id} name={self.name!r}>"


class Item(db.Model):
    """
    Stockable catalog item.

    CODE: business key, unique across ALL rows (active or retired).
    The service normalizes it to trimmed upper-case before it gets here.

    STOCK: current_stock is only written by the inventory service, and every
    change is paired with a Movement row in the same transaction.

    RETIRE: active=False. Rows are never physically deleted.
    """
    __tablename__ = "items"
    __table_args__ = (
        db.UniqueConstraint("code", name="uq_items_code"),
        db.Index("ix_items_active_name", "active", "name"),
        db.CheckConstraint("current_stock >= 0", name="ck_items_current_stock_nonneg"),
        db.CheckConstraint("min_stock >= 0", name="ck_items_min_stock_nonneg"),
        db.CheckConstraint("sale_price > purchase_price", name="ck_items_sale_gt_purchase"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    code = db.Column(db.String(20), nullable=False)
    name = db.Column(db.String(200), nullable=False)
    description = db.Column(db.String(1000), nullable=True)

    category_id = db.Column(db.Integer, db.ForeignKey("categories.id"), nullable=True, index=True)
    supplier_id = db.Column(db.Integer, db.ForeignKey("suppliers.id"), nullable=True, index=True)

    purchase_price = db.Column(db.Numeric(8, 2), nullable=False)
    sale_price = db.Column(db.Numeric(8, 2), nullable=False)

    current_stock = db.Column(db.Integer, nullable=False, default=0)
    min_stock = db.Column(db.Integer, nullable=False, default=0)

    active = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    category = db.relationship("Category", lazy="joined")
    supplier = db.relationship("Supplier", lazy="joined")

    def __repr__(self) -> str:
        return f"<Item id={self.id} code={self.code!r} stock={self.current_stock} active={self.active}>"


class Movement(db.Model):
    """
    Append-only stock movement log.

    quantity is the magnitude of the change; stock_before / stock_after snapshot
    the item around it. Rows are inserted once and never updated or deleted.
    """
    __tablename__ = "movements"
    __table_args__ = (
        db.Index("ix_movements_item_timestamp", "item_id", "timestamp"),
        db.CheckConstraint("quantity > 0", name="ck_movements_quantity_pos"),
        db.CheckConstraint("stock_after >= 0", name="ck_movements_stock_after_nonneg"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    item_id = db.Column(db.Integer, db.ForeignKey("items.id"), nullable=False, index=True)
    kind = db.Column(db.Enum(MovementKind, name="movement_kind"), nullable=False)
    quantity = db.Column(db.Integer, nullable=False)
    stock_before = db.Column(db.Integer, nullable=False)
    stock_after = db.Column(db.Integer, nullable=False)
    reason = db.Column(db.String(255), nullable=True)
    user = db.Column(db.String(64), nullable=False)
    timestamp = db.Column(db.DateTime, nullable=False, default=utcnow)

    def __repr__(self) -> str:
        return (
            f"<Movement id={self.id} item_id={self.item_id} kind={self.kind} "
            f"{self.stock_before}->{self.stock_after}>"
        )
