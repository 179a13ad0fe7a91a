# Overview: Service-layer operations for inventory; encapsulates business logic and database work.

# backend/hardware_inventory/services/inventory_service.py

"""
Inventory Invariants (authoritative)

Write path for every mutation:
    validate -> check existence -> normalize -> persist -> append movement

Business invariants:
- code is the business key: trimmed, upper-cased, unique across ALL items
  (retired ones included). It never changes after registration.
- sale_price > purchase_price, and markup (sale - purchase) / purchase <= 10.
- current_stock never goes negative.
- Retired items (active=False) are terminal for writes. Direct lookups by id
  or code still return them; listings never do.

Audit:
- This service is the ONLY writer of current_stock.
- Every stock change appends exactly one Movement in the same transaction as
  the item update:
    adjust_stock / register_entry / register_exit -> ENTRY or EXIT by sign
    set_stock / update_item with a new stock value -> ADJUSTMENT
- A stock change reads the item with SELECT ... FOR UPDATE, so concurrent
  changes to one item linearize and the movement log reflects that order.

Warnings:
- A mutation that leaves current_stock <= min_stock returns the
  "low stock" warning alongside the item.
"""

from __future__ import annotations

from dataclasses import replace
from decimal import Decimal, ROUND_HALF_UP

from flask import current_app

from ..domain import CENTS, LOW_STOCK_WARNING, Item, ItemDraft, Movement, MovementKind, Outcome
from ..errors import ConflictError, NotFoundError, StoreError, ValidationError
from ..time_utils import to_utc_z, utcnow
from ..validation import (
    STOCK_MAX,
    raise_if_invalid,
    validate_for_insert,
    validate_for_update,
    validate_positive_id,
    validate_search_code,
    validate_search_name,
)
from .concurrency import run_with_retry

REASON_MAX_LENGTH = 255


def _clean(value: str | None) -> str | None:
    """Trim; empty-after-trim becomes None."""
    if value is None:
        return None
    value = value.strip()
    return value or None


def _money(value: Decimal | None) -> Decimal | None:
    if value is None:
        return None
    return Decimal(value).quantize(CENTS, rounding=ROUND_HALF_UP)


def _normalize(draft: ItemDraft) -> ItemDraft:
    """Canonical form stored by the service. Assumes the draft already validated."""
    return ItemDraft(
        id=draft.id,
        code=draft.code.strip().upper() if draft.code is not None else None,
        name=draft.name.strip() if draft.name is not None else None,
        description=_clean(draft.description),
        category_id=draft.category_id,
        supplier_id=draft.supplier_id,
        purchase_price=_money(draft.purchase_price),
        sale_price=_money(draft.sale_price),
        current_stock=draft.current_stock if draft.current_stock is not None else 0,
        min_stock=draft.min_stock if draft.min_stock is not None else 0,
        active=draft.active if draft.active is not None else True,
    )


def _warnings_for(item: Item) -> tuple[str, ...]:
    return (LOW_STOCK_WARNING,) if item.is_low_stock else ()


class InventoryService:
    """
    Single orchestrator over the store. All business rules live here.

    Reads return domain records (or lists of them). Mutations return an
    Outcome carrying the canonical item plus any warnings.
    """

    def __init__(self, store, *, retry_attempts: int = 3):
        self.store = store
        self.retry_attempts = retry_attempts

    # -- helpers --------------------------------------------------------------

    def _check_references(self, draft: ItemDraft) -> None:
        errors: list[str] = []
        if draft.category_id is not None and self.store.find_category_by_id(draft.category_id) is None:
            errors.append(f"category not found: {draft.category_id}")
        if draft.supplier_id is not None and self.store.find_supplier_by_id(draft.supplier_id) is None:
            errors.append(f"supplier not found: {draft.supplier_id}")
        raise_if_invalid(errors)

    @staticmethod
    def _require_writable(item: Item | None, item_id: int) -> Item:
        if item is None:
            raise NotFoundError(f"item not found: {item_id}")
        if not item.active:
            raise ValidationError("item is retired", code="ITEM_RETIRED")
        return item

    @staticmethod
    def _require_user(user: str | None) -> str:
        user = _clean(user)
        if user is None:
            raise ValidationError("user is required")
        return user

    @staticmethod
    def _clean_reason(reason: str | None) -> str | None:
        reason = _clean(reason)
        if reason is not None and len(reason) > REASON_MAX_LENGTH:
            raise ValidationError(f"reason cannot exceed {REASON_MAX_LENGTH} characters")
        return reason

    def _record_stock_change(
        self,
        item: Item,
        new_stock: int,
        kind: MovementKind,
        reason: str | None,
        user: str,
    ) -> Movement:
        """
        Write the new stock and its movement row.

        Caller holds the item row lock inside an open transaction.
        """
        if new_stock < 0:
            raise ValidationError(
                f"insufficient stock: available {item.current_stock}, "
                f"requested {item.current_stock - new_stock}",
                code="INSUFFICIENT_STOCK",
            )
        if new_stock > STOCK_MAX:
            raise ValidationError(f"stock cannot exceed {STOCK_MAX:,}")
        self.store.set_item_stock(item.id, new_stock)
        return self.store.append_movement(
            Movement(
                item_id=item.id,
                kind=kind,
                quantity=abs(new_stock - item.current_stock),
                stock_before=item.current_stock,
                stock_after=new_stock,
                reason=reason,
                user=user,
                timestamp=utcnow(),
            )
        )

    def _with_retry(self, func):
        return run_with_retry(func, attempts=self.retry_attempts)

    # -- registration & reads -------------------------------------------------

    def register_item(self, draft: ItemDraft) -> Outcome:
        raise_if_invalid(validate_for_insert(draft))
        draft = _normalize(draft)

        if self.store.exists_item_by_code(draft.code):
            raise ConflictError(f"code exists: {draft.code}")
        self._check_references(draft)

        try:
            item = self.store.insert_item(
                Item(
                    id=None,
                    code=draft.code,
                    name=draft.name,
                    description=draft.description,
                    category_id=draft.category_id,
                    supplier_id=draft.supplier_id,
                    purchase_price=draft.purchase_price,
                    sale_price=draft.sale_price,
                    current_stock=draft.current_stock,
                    min_stock=draft.min_stock,
                    active=draft.active,
                )
            )
        except ConflictError:
            # Lost a race with a concurrent registration of the same code
            raise ConflictError(f"code exists: {draft.code}")

        current_app.logger.info("Registered item %s (id=%s)", item.code, item.id)
        return Outcome(item, _warnings_for(item))

    def get_by_code(self, code: str | None) -> Item:
        validate_search_code(code)
        code = code.strip().upper()
        item = self.store.find_item_by_code(code)
        if item is None:
            raise NotFoundError(f"item not found: {code}")
        return item

    def get_by_id(self, item_id: int | None) -> Item:
        validate_positive_id(item_id)
        item = self.store.find_item_by_id(item_id)
        if item is None:
            raise NotFoundError(f"item not found: {item_id}")
        return item

    def search_by_name(self, term: str | None) -> list[Item]:
        validate_search_name(term)
        return self.store.search_items_by_name(term.strip())

    def list_all(self) -> list[Item]:
        return self.store.list_active_items()

    def list_low_stock(self) -> list[Item]:
        return self.store.list_low_stock_items()

    def list_movements(self, item_id: int | None) -> list[Movement]:
        validate_positive_id(item_id, "itemId")
        if not self.store.exists_item_by_id(item_id):
            raise NotFoundError(f"item not found: {item_id}")
        return self.store.list_movements_by_item(item_id)

    def list_categories(self):
        return self.store.list_categories()

    def list_suppliers(self):
        return self.store.list_suppliers()

    def health_check(self) -> dict:
        if not self.store.probe():
            raise StoreError("database unavailable", code="DB_CONNECTION_ERROR")
        return {"status": "OK", "database": "UP", "timestamp": to_utc_z(utcnow())}

    # -- mutations ------------------------------------------------------------

    def update_item(self, draft: ItemDraft, user: str = "system") -> Outcome:
        """
        Overwrite the mutable fields of an existing item.

        code is immutable and ignored here. A changed current_stock is
        recorded as an ADJUSTMENT movement in the same transaction.
        """
        raise_if_invalid(validate_for_update(draft))
        draft = _normalize(draft)
        self._check_references(draft)
        user = self._require_user(user)

        def unit() -> Item:
            with self.store.transaction():
                existing = self._require_writable(self.store.lock_item(draft.id), draft.id)
                self.store.update_item(
                    replace(
                        existing,
                        name=draft.name,
                        description=draft.description,
                        category_id=draft.category_id,
                        supplier_id=draft.supplier_id,
                        purchase_price=draft.purchase_price,
                        sale_price=draft.sale_price,
                        current_stock=existing.current_stock,
                        min_stock=draft.min_stock,
                    )
                )
                if draft.current_stock != existing.current_stock:
                    self._record_stock_change(
                        existing, draft.current_stock, MovementKind.ADJUSTMENT, "item update", user
                    )
                return self.store.find_item_by_id(draft.id)

        item = self._with_retry(unit)
        current_app.logger.info("Updated item %s (id=%s)", item.code, item.id)
        return Outcome(item, _warnings_for(item))

    def set_stock(self, item_id: int | None, new_stock: int | None, reason: str | None, user: str | None) -> Outcome:
        """
        Overwrite current_stock through the audited path.

        The delta against the locked current value is recorded as one
        ADJUSTMENT movement. Setting the stock it already has writes nothing.
        """
        validate_positive_id(item_id)
        if new_stock is None or new_stock < 0:
            raise ValidationError("newStock must be zero or greater")
        reason = self._clean_reason(reason)
        user = self._require_user(user)

        def unit() -> Item:
            with self.store.transaction():
                item = self._require_writable(self.store.lock_item(item_id), item_id)
                if new_stock == item.current_stock:
                    return item
                self._record_stock_change(item, new_stock, MovementKind.ADJUSTMENT, reason, user)
                return self.store.find_item_by_id(item_id)

        item = self._with_retry(unit)
        current_app.logger.info("Stock of item %s set to %s by %s", item.code, item.current_stock, user)
        return self._stock_outcome(item)

    def adjust_stock(self, item_id: int | None, delta: int | None, reason: str | None, user: str | None) -> Outcome:
        """Apply a signed delta. Positive records ENTRY, negative records EXIT."""
        validate_positive_id(item_id)
        if delta is None or delta == 0:
            raise ValidationError("delta must be a non-zero integer")
        reason = self._clean_reason(reason)
        user = self._require_user(user)
        kind = MovementKind.ENTRY if delta > 0 else MovementKind.EXIT

        def unit() -> Item:
            with self.store.transaction():
                item = self._require_writable(self.store.lock_item(item_id), item_id)
                self._record_stock_change(item, item.current_stock + delta, kind, reason, user)
                return self.store.find_item_by_id(item_id)

        item = self._with_retry(unit)
        current_app.logger.info(
            "Stock of item %s adjusted by %+d to %s by %s", item.code, delta, item.current_stock, user
        )
        return self._stock_outcome(item)

    def register_entry(self, item_id: int | None, quantity: int | None, reason: str | None, user: str | None) -> Outcome:
        if quantity is None or quantity <= 0:
            raise ValidationError("quantity must be a positive integer")
        return self.adjust_stock(item_id, quantity, reason, user)

    def register_exit(self, item_id: int | None, quantity: int | None, reason: str | None, user: str | None) -> Outcome:
        if quantity is None or quantity <= 0:
            raise ValidationError("quantity must be a positive integer")
        return self.adjust_stock(item_id, -quantity, reason, user)

    def retire_item(self, item_id: int | None) -> Outcome:
        validate_positive_id(item_id)
        with self.store.transaction():
            self._require_writable(self.store.lock_item(item_id), item_id)
            self.store.soft_delete_item(item_id)
            item = self.store.find_item_by_id(item_id)
        current_app.logger.info("Retired item %s (id=%s)", item.code, item.id)
        return Outcome(item)

    def _stock_outcome(self, item: Item) -> Outcome:
        warnings = _warnings_for(item)
        if warnings:
            current_app.logger.warning(
                "Item %s is low on stock (%s <= %s)", item.code, item.current_stock, item.min_stock
            )
        return Outcome(item, warnings)
