# Overview: Repository layer; owns every SQL-level concern and maps rows to domain records.

"""
Inventory Store

INVARIANTS:
- Upper layers receive domain records (hardware_inventory.domain), never ORM rows.
- Every public operation runs inside transaction(). The outermost level commits,
  which also hands the connection back to the pool; any failure rolls back.
- transaction() is re-entrant per session, so the service can group several
  store writes (item stock + movement row) into one atomic unit.
- SQLAlchemy failures surface as StoreError (or ConflictError for a duplicate
  item code) with the underlying exception chained as __cause__.
"""

from __future__ import annotations

from contextlib import contextmanager
from decimal import Decimal

from flask import current_app
from sqlalchemy import String, func, select, text, update
from sqlalchemy.exc import IntegrityError, OperationalError, SQLAlchemyError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError
from sqlalchemy.orm import lazyload

from .. import models
from ..domain import Category, Item, Movement, Role, Supplier, UserAccount
from ..errors import ConflictError, StoreError
from ..extensions import db
from ..time_utils import utcnow
from .concurrency import claim_write_lock, lock_for_update

_TX_DEPTH_KEY = "inventory_tx_depth"

# Identifiers that show up in the driver message when the item code key is violated
_ITEM_CODE_KEY_MARKERS = ("uq_items_code", "items.code")


def _translate(exc: SQLAlchemyError) -> StoreError:
    if isinstance(exc, PoolTimeoutError):
        return StoreError("Timed out waiting for a database connection", code="DB_TIMEOUT")
    if isinstance(exc, IntegrityError):
        detail = str(exc.orig) if exc.orig is not None else str(exc)
        if any(marker in detail for marker in _ITEM_CODE_KEY_MARKERS):
            return ConflictError("code exists")
        return StoreError("Database constraint violated", code="DB_CONSTRAINT")
    return StoreError("Database operation failed", retryable=isinstance(exc, OperationalError))


def _rollback_quietly(session) -> None:
    try:
        session.rollback()
    except SQLAlchemyError:
        current_app.logger.exception("Rollback failed")


def _to_item(row: models.Item) -> Item:
    return Item(
        id=row.id,
        code=row.code,
        name=row.name,
        description=row.description,
        category_id=row.category_id,
        supplier_id=row.supplier_id,
        purchase_price=Decimal(row.purchase_price),
        sale_price=Decimal(row.sale_price),
        current_stock=row.current_stock,
        min_stock=row.min_stock,
        active=bool(row.active),
        created_at=row.created_at,
        updated_at=row.updated_at,
        category_name=row.category.name if row.category is not None else None,
        supplier_name=row.supplier.name if row.supplier is not None else None,
    )


def _to_category(row: models.Category) -> Category:
    return Category(id=row.id, name=row.name, description=row.description)


def _to_supplier(row: models.Supplier) -> Supplier:
    return Supplier(
        id=row.id,
        name=row.name,
        contact=row.contact,
        phone=row.phone,
        email=row.email,
        address=row.address,
    )


def _to_movement(row: models.Movement) -> Movement:
    return Movement(
        id=row.id,
        item_id=row.item_id,
        kind=row.kind,
        quantity=row.quantity,
        stock_before=row.stock_before,
        stock_after=row.stock_after,
        reason=row.reason,
        user=row.user,
        timestamp=row.timestamp,
    )


def _to_user(row: models.AppUser) -> UserAccount:
    return UserAccount(
        username=row.username,
        password_hash=row.password_hash,
        role=Role(row.role),
        active=bool(row.active),
    )


class InventoryStore:
    """Transactional CRUD over items, categories, suppliers, the movement log, and users."""

    # -- transactions ---------------------------------------------------------

    @contextmanager
    def transaction(self):
        session = db.session()
        depth = session.info.get(_TX_DEPTH_KEY, 0)
        session.info[_TX_DEPTH_KEY] = depth + 1
        try:
            yield session
            if depth == 0:
                session.commit()
        except SQLAlchemyError as exc:
            if depth == 0:
                _rollback_quietly(session)
            raise _translate(exc) from exc
        except BaseException:
            if depth == 0:
                _rollback_quietly(session)
            raise
        finally:
            session.info[_TX_DEPTH_KEY] = depth

    def probe(self) -> bool:
        try:
            with self.transaction() as session:
                session.execute(text("SELECT 1"))
            return True
        except StoreError:
            current_app.logger.exception("Database probe failed")
            return False

    # -- items ----------------------------------------------------------------

    def insert_item(self, item: Item) -> Item:
        """Insert and re-read the item (joined names included). Duplicate code -> ConflictError."""
        with self.transaction() as session:
            now = utcnow()
            row = models.Item(
                code=item.code,
                name=item.name,
                description=item.description,
                category_id=item.category_id,
                supplier_id=item.supplier_id,
                purchase_price=item.purchase_price,
                sale_price=item.sale_price,
                current_stock=item.current_stock,
                min_stock=item.min_stock,
                active=item.active,
                created_at=now,
                updated_at=now,
            )
            session.add(row)
            session.flush()
            fresh = session.get(models.Item, row.id, populate_existing=True)
            return _to_item(fresh)

    def find_item_by_id(self, item_id: int) -> Item | None:
        with self.transaction() as session:
            row = session.get(models.Item, item_id, populate_existing=True)
            return _to_item(row) if row is not None else None

    def find_item_by_code(self, code: str) -> Item | None:
        with self.transaction() as session:
            row = session.query(models.Item).filter(models.Item.code == code).populate_existing().first()
            return _to_item(row) if row is not None else None

    def lock_item(self, item_id: int) -> Item | None:
        """
        Read an item with SELECT ... FOR UPDATE.

        Only meaningful inside an enclosing transaction(): the lock is held
        until that transaction ends. Eager joins are skipped so the lock
        applies to the items row alone. On SQLite, which has no row locks,
        the database write lock is claimed before the read.
        """
        with self.transaction() as session:
            items = models.Item.__table__
            claim_write_lock(session, items, items.c.id, item_id)
            stmt = select(models.Item).where(models.Item.id == item_id).options(
                lazyload(models.Item.category), lazyload(models.Item.supplier)
            )
            stmt = lock_for_update(stmt, of=models.Item).execution_options(populate_existing=True)
            row = session.execute(stmt).scalar_one_or_none()
            return _to_item(row) if row is not None else None

    def list_active_items(self) -> list[Item]:
        with self.transaction() as session:
            rows = (
                session.query(models.Item)
                .filter(models.Item.active.is_(True))
                .order_by(models.Item.name.asc(), models.Item.id.asc())
                .all()
            )
            return [_to_item(r) for r in rows]

    def search_items_by_name(self, term: str) -> list[Item]:
        """Case-insensitive substring match over active items; LIKE wildcards in term are literal."""
        with self.transaction() as session:
            rows = (
                session.query(models.Item)
                .filter(
                    models.Item.active.is_(True),
                    func.lower(models.Item.name, type_=String).contains(term.lower(), autoescape=True),
                )
                .order_by(models.Item.name.asc(), models.Item.id.asc())
                .all()
            )
            return [_to_item(r) for r in rows]

    def update_item(self, item: Item) -> bool:
        """Overwrite the mutable fields. code, created_at and active are left alone."""
        with self.transaction() as session:
            result = session.execute(
                update(models.Item)
                .where(models.Item.id == item.id)
                .values(
                    name=item.name,
                    description=item.description,
                    category_id=item.category_id,
                    supplier_id=item.supplier_id,
                    purchase_price=item.purchase_price,
                    sale_price=item.sale_price,
                    current_stock=item.current_stock,
                    min_stock=item.min_stock,
                    updated_at=utcnow(),
                )
                .execution_options(synchronize_session=False)
            )
            return result.rowcount > 0

    def set_item_stock(self, item_id: int, new_stock: int) -> bool:
        with self.transaction() as session:
            result = session.execute(
                update(models.Item)
                .where(models.Item.id == item_id)
                .values(current_stock=new_stock, updated_at=utcnow())
                .execution_options(synchronize_session=False)
            )
            return result.rowcount > 0

    def soft_delete_item(self, item_id: int) -> bool:
        with self.transaction() as session:
            result = session.execute(
                update(models.Item)
                .where(models.Item.id == item_id)
                .values(active=False, updated_at=utcnow())
                .execution_options(synchronize_session=False)
            )
            return result.rowcount > 0

    def exists_item_by_code(self, code: str, exclude_id: int | None = None) -> bool:
        with self.transaction() as session:
            q = session.query(models.Item.id).filter(models.Item.code == code)
            if exclude_id is not None:
                q = q.filter(models.Item.id != exclude_id)
            return bool(session.query(q.exists()).scalar())

    def exists_item_by_id(self, item_id: int) -> bool:
        with self.transaction() as session:
            q = session.query(models.Item.id).filter(models.Item.id == item_id)
            return bool(session.query(q.exists()).scalar())

    def list_low_stock_items(self) -> list[Item]:
        with self.transaction() as session:
            rows = (
                session.query(models.Item)
                .filter(
                    models.Item.active.is_(True),
                    models.Item.current_stock <= models.Item.min_stock,
                )
                .order_by(models.Item.current_stock.asc(), models.Item.name.asc())
                .all()
            )
            return [_to_item(r) for r in rows]

    # -- reference data -------------------------------------------------------

    def list_categories(self) -> list[Category]:
        with self.transaction() as session:
            rows = session.query(models.Category).order_by(models.Category.name.asc()).all()
            return [_to_category(r) for r in rows]

    def find_category_by_id(self, category_id: int) -> Category | None:
        with self.transaction() as session:
            row = session.get(models.Category, category_id)
            return _to_category(row) if row is not None else None

    def add_category(self, name: str, description: str | None = None) -> Category:
        with self.transaction() as session:
            row = models.Category(name=name, description=description)
            session.add(row)
            session.flush()
            return _to_category(row)

    def list_suppliers(self) -> list[Supplier]:
        with self.transaction() as session:
            rows = session.query(models.Supplier).order_by(models.Supplier.name.asc()).all()
            return [_to_supplier(r) for r in rows]

    def find_supplier_by_id(self, supplier_id: int) -> Supplier | None:
        with self.transaction() as session:
            row = session.get(models.Supplier, supplier_id)
            return _to_supplier(row) if row is not None else None

    def add_supplier(self, name: str, **details) -> Supplier:
        with self.transaction() as session:
            row = models.Supplier(name=name, **details)
            session.add(row)
            session.flush()
            return _to_supplier(row)

    # -- movement log ---------------------------------------------------------

    def append_movement(self, movement: Movement) -> Movement:
        """Append-only. Assigns id, and timestamp when the caller left it empty."""
        with self.transaction() as session:
            row = models.Movement(
                item_id=movement.item_id,
                kind=movement.kind,
                quantity=movement.quantity,
                stock_before=movement.stock_before,
                stock_after=movement.stock_after,
                reason=movement.reason,
                user=movement.user,
                timestamp=movement.timestamp or utcnow(),
            )
            session.add(row)
            session.flush()
            return _to_movement(row)

    def list_movements_by_item(self, item_id: int) -> list[Movement]:
        """Newest first."""
        with self.transaction() as session:
            rows = (
                session.query(models.Movement)
                .filter(models.Movement.item_id == item_id)
                .order_by(models.Movement.timestamp.desc(), models.Movement.id.desc())
                .all()
            )
            return [_to_movement(r) for r in rows]

    # -- users ----------------------------------------------------------------

    def list_users(self) -> list[UserAccount]:
        with self.transaction() as session:
            rows = session.query(models.AppUser).order_by(models.AppUser.username.asc()).all()
            return [_to_user(r) for r in rows]

    def find_user(self, username: str) -> UserAccount | None:
        with self.transaction() as session:
            row = session.query(models.AppUser).filter_by(username=username.lower()).first()
            return _to_user(row) if row is not None else None

    def save_user(self, account: UserAccount) -> UserAccount:
        """Insert or replace the user row keyed by username."""
        with self.transaction() as session:
            row = session.query(models.AppUser).filter_by(username=account.username.lower()).first()
            if row is None:
                row = models.AppUser(username=account.username.lower())
                session.add(row)
            row.password_hash = account.password_hash
            row.role = account.role.value
            row.active = account.active
            session.flush()
            return _to_user(row)

    def set_user_password(self, username: str, password_hash: str) -> bool:
        with self.transaction() as session:
            result = session.execute(
                update(models.AppUser)
                .where(models.AppUser.username == username.lower())
                .values(password_hash=password_hash)
                .execution_options(synchronize_session=False)
            )
            return result.rowcount > 0
