# Overview: Domain records passed between the store, the services, and the facade.

"""
The store never hands ORM rows to upper layers. It maps them into these
frozen records, and the facade serializes them with to_dict() (camelCase keys,
prices as fixed two-decimal strings, timestamps as ISO-8601 'Z').
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP
from enum import Enum
from typing import Any

from .time_utils import to_utc_z

CENTS = Decimal("0.01")
LOW_STOCK_WARNING = "low stock"


def format_money(value: Decimal | None) -> str | None:
    if value is None:
        return None
    return str(Decimal(value).quantize(CENTS, rounding=ROUND_HALF_UP))


class MovementKind(str, Enum):
    ENTRY = "ENTRY"
    EXIT = "EXIT"
    ADJUSTMENT = "ADJUSTMENT"


class Role(str, Enum):
    ADMIN = "ADMIN"
    OPERATOR = "OPERATOR"
    READONLY = "READONLY"

    @property
    def rank(self) -> int:
        return _ROLE_RANK[self]


_ROLE_RANK = {Role.READONLY: 1, Role.OPERATOR: 2, Role.ADMIN: 3}


@dataclass(frozen=True)
class Category:
    id: int
    name: str
    description: str | None = None

    def to_dict(self) -> dict:
        return {"id": self.id, "name": self.name, "description": self.description}


@dataclass(frozen=True)
class Supplier:
    id: int
    name: str
    contact: str | None = None
    phone: str | None = None
    email: str | None = None
    address: str | None = None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "contact": self.contact,
            "phone": self.phone,
            "email": self.email,
            "address": self.address,
        }


@dataclass(frozen=True)
class Item:
    id: int | None
    code: str
    name: str
    purchase_price: Decimal
    sale_price: Decimal
    current_stock: int
    min_stock: int
    description: str | None = None
    category_id: int | None = None
    supplier_id: int | None = None
    active: bool = True
    created_at: datetime | None = None
    updated_at: datetime | None = None
    # Joined names, read-only
    category_name: str | None = None
    supplier_name: str | None = None

    @property
    def is_low_stock(self) -> bool:
        return self.current_stock <= self.min_stock

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "code": self.code,
            "name": self.name,
            "description": self.description,
            "categoryId": self.category_id,
            "categoryName": self.category_name,
            "supplierId": self.supplier_id,
            "supplierName": self.supplier_name,
            "purchasePrice": format_money(self.purchase_price),
            "salePrice": format_money(self.sale_price),
            "currentStock": self.current_stock,
            "minStock": self.min_stock,
            "active": self.active,
            "createdAt": to_utc_z(self.created_at),
            "updatedAt": to_utc_z(self.updated_at),
        }


@dataclass
class ItemDraft:
    """
    Caller-supplied item fields for register/update.

    Every field is optional here; the validator decides which ones are
    required for the operation at hand. The service normalizes a draft
    in place before it reaches the store.
    """
    id: int | None = None
    code: str | None = None
    name: str | None = None
    description: str | None = None
    category_id: int | None = None
    supplier_id: int | None = None
    purchase_price: Decimal | None = None
    sale_price: Decimal | None = None
    current_stock: int | None = None
    min_stock: int | None = None
    active: bool | None = None


@dataclass(frozen=True)
class Movement:
    item_id: int
    kind: MovementKind
    quantity: int
    stock_before: int
    stock_after: int
    user: str
    reason: str | None = None
    id: int | None = None
    timestamp: datetime | None = None

    @property
    def signed_delta(self) -> int:
        if self.kind is MovementKind.ENTRY:
            return self.quantity
        if self.kind is MovementKind.EXIT:
            return -self.quantity
        # ADJUSTMENT carries its direction in the snapshot
        return self.stock_after - self.stock_before

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "itemId": self.item_id,
            "kind": self.kind.value,
            "quantity": self.quantity,
            "stockBefore": self.stock_before,
            "stockAfter": self.stock_after,
            "reason": self.reason,
            "user": self.user,
            "timestamp": to_utc_z(self.timestamp),
        }


@dataclass(frozen=True)
class UserAccount:
    username: str
    password_hash: str
    role: Role
    active: bool = True

    def to_dict(self) -> dict:
        # never expose the hash
        return {"username": self.username, "role": self.role.value, "active": self.active}


@dataclass(frozen=True)
class Outcome:
    """Result of a mutation: the canonical value plus any warnings for the envelope."""
    value: Any
    warnings: tuple[str, ...] = field(default_factory=tuple)
