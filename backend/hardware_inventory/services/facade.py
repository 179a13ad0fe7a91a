# Overview: Operation catalog and envelope mapping between the wire and the inventory service.

"""
Service Facade

Accepts (operation name, flat argument map, credentials), resolves the caller
through the Authenticator, checks the role permission, dispatches to the
InventoryService, and wraps the outcome in one Envelope shape.

ENVELOPE:
    successful, message, errorCode, errorKind, payloadType, payload, warnings

payloadType is the discriminator telling a client how to read payload:
item | items | movements | categories | suppliers | health | users.

HTTP STATUS:
- 200 for every envelope, successful or not
- 401 for missing or invalid credentials
- 403 for an authenticated caller lacking the role, or an unknown operation

Arguments arrive as strings (or None when absent) and are coerced here;
a malformed value is a VALIDATION failure, never an internal one.
Raw exceptions never cross this boundary: they are logged and reported as
INTERNAL with a generic message.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import Any, Callable

from flask import current_app

from ..domain import ItemDraft, UserAccount
from ..errors import AuthError, ErrorKind, ForbiddenError, InternalError, InventoryError, ValidationError
from .auth_service import is_strong

_INTEGER = re.compile(r"^[+-]?\d+$")
# Bounds of the signed 32-bit columns every integer argument lands in
INT_MIN, INT_MAX = -(2**31), 2**31 - 1
_TRUE = {"true", "1"}
_FALSE = {"false", "0"}

INTERNAL_MESSAGE = "internal error"


@dataclass
class Envelope:
    successful: bool
    message: str
    error_code: str | None = None
    error_kind: str | None = None
    payload_type: str | None = None
    payload: Any = None
    warnings: list[str] = field(default_factory=list)
    status: int = 200

    def to_dict(self) -> dict:
        return {
            "successful": self.successful,
            "message": self.message,
            "errorCode": self.error_code,
            "errorKind": self.error_kind,
            "payloadType": self.payload_type,
            "payload": self.payload,
            "warnings": list(self.warnings),
        }

    @classmethod
    def ok(cls, message: str, payload_type: str | None = None, payload: Any = None, warnings=()) -> "Envelope":
        return cls(True, message, payload_type=payload_type, payload=payload, warnings=list(warnings))

    @classmethod
    def failure(cls, error: InventoryError, status: int = 200) -> "Envelope":
        return cls(False, error.message, error_code=error.code, error_kind=error.kind.value, status=status)


# -- argument coercion --------------------------------------------------------

def _raw(args: dict, name: str) -> str | None:
    value = args.get(name)
    if value is None:
        return None
    value = str(value).strip()
    return value or None


def arg_text(args: dict, name: str) -> str | None:
    """Text arguments keep their inner whitespace; the service trims them."""
    value = args.get(name)
    return None if value is None else str(value)


def arg_int(args: dict, name: str, *, required: bool = False) -> int | None:
    raw = _raw(args, name)
    if raw is None:
        if required:
            raise ValidationError(f"{name} is required")
        return None
    if not _INTEGER.match(raw):
        raise ValidationError(f"{name} must be an integer")
    # int() refuses very long digit strings, so those are out of range before parsing
    value = int(raw) if len(raw.lstrip("+-").lstrip("0")) <= 10 else None
    if value is None or not INT_MIN <= value <= INT_MAX:
        raise ValidationError(f"{name} must be between {INT_MIN} and {INT_MAX}")
    return value


def arg_decimal(args: dict, name: str) -> Decimal | None:
    raw = _raw(args, name)
    if raw is None:
        return None
    try:
        value = Decimal(raw)
    except InvalidOperation:
        raise ValidationError(f"{name} must be a decimal number")
    if not value.is_finite():
        raise ValidationError(f"{name} must be a decimal number")
    return value


def arg_bool(args: dict, name: str) -> bool | None:
    raw = _raw(args, name)
    if raw is None:
        return None
    lowered = raw.lower()
    if lowered in _TRUE:
        return True
    if lowered in _FALSE:
        return False
    raise ValidationError(f"{name} must be true or false")


def _draft_from(args: dict, *, with_id: bool) -> ItemDraft:
    return ItemDraft(
        id=arg_int(args, "id") if with_id else None,
        code=None if with_id else arg_text(args, "code"),
        name=arg_text(args, "name"),
        description=arg_text(args, "description"),
        category_id=arg_int(args, "categoryId"),
        supplier_id=arg_int(args, "supplierId"),
        purchase_price=arg_decimal(args, "purchasePrice"),
        sale_price=arg_decimal(args, "salePrice"),
        current_stock=arg_int(args, "currentStock"),
        min_stock=arg_int(args, "minStock"),
        active=None if with_id else arg_bool(args, "active"),
    )


# -- operation catalog --------------------------------------------------------

@dataclass(frozen=True)
class Operation:
    name: str
    params: tuple[str, ...]
    handler: Callable[["ServiceFacade", UserAccount, dict], Envelope]


_ITEM_FIELDS = (
    "name", "description", "categoryId", "supplierId",
    "purchasePrice", "salePrice", "currentStock", "minStock",
)


def _items(message, items) -> Envelope:
    return Envelope.ok(message, "items", [i.to_dict() for i in items])


def _outcome(message, outcome) -> Envelope:
    return Envelope.ok(message, "item", outcome.value.to_dict(), outcome.warnings)


def _insert_item(facade, user, args):
    return _outcome("item registered", facade.service.register_item(_draft_from(args, with_id=False)))


def _update_item(facade, user, args):
    return _outcome("item updated", facade.service.update_item(_draft_from(args, with_id=True), user.username))


def _retire_item(facade, user, args):
    return _outcome("item retired", facade.service.retire_item(arg_int(args, "id", required=True)))


def _get_by_code(facade, user, args):
    return Envelope.ok("item found", "item", facade.service.get_by_code(arg_text(args, "code")).to_dict())


def _get_by_id(facade, user, args):
    item = facade.service.get_by_id(arg_int(args, "id", required=True))
    return Envelope.ok("item found", "item", item.to_dict())


def _search_by_name(facade, user, args):
    items = facade.service.search_by_name(arg_text(args, "name"))
    return _items(f"{len(items)} item(s) found", items)


def _list_all(facade, user, args):
    items = facade.service.list_all()
    return _items(f"{len(items)} active item(s)", items)


def _list_low_stock(facade, user, args):
    items = facade.service.list_low_stock()
    return _items(f"{len(items)} item(s) at or below minimum stock", items)


def _list_categories(facade, user, args):
    categories = facade.service.list_categories()
    return Envelope.ok(f"{len(categories)} categories", "categories", [c.to_dict() for c in categories])


def _list_suppliers(facade, user, args):
    suppliers = facade.service.list_suppliers()
    return Envelope.ok(f"{len(suppliers)} suppliers", "suppliers", [s.to_dict() for s in suppliers])


def _list_movements(facade, user, args):
    movements = facade.service.list_movements(arg_int(args, "itemId", required=True))
    return Envelope.ok(f"{len(movements)} movement(s)", "movements", [m.to_dict() for m in movements])


def _set_stock(facade, user, args):
    outcome = facade.service.set_stock(
        arg_int(args, "id", required=True),
        arg_int(args, "newStock", required=True),
        arg_text(args, "reason"),
        user.username,
    )
    return _outcome("stock set", outcome)


def _adjust_stock(facade, user, args):
    outcome = facade.service.adjust_stock(
        arg_int(args, "id", required=True),
        arg_int(args, "delta", required=True),
        arg_text(args, "reason"),
        user.username,
    )
    return _outcome("stock adjusted", outcome)


def _register_entry(facade, user, args):
    outcome = facade.service.register_entry(
        arg_int(args, "id", required=True),
        arg_int(args, "quantity", required=True),
        arg_text(args, "reason"),
        user.username,
    )
    return _outcome("stock entry registered", outcome)


def _register_exit(facade, user, args):
    outcome = facade.service.register_exit(
        arg_int(args, "id", required=True),
        arg_int(args, "quantity", required=True),
        arg_text(args, "reason"),
        user.username,
    )
    return _outcome("stock exit registered", outcome)


def _health_check(facade, user, args):
    return Envelope.ok("service operational", "health", facade.service.health_check())


def _list_users(facade, user, args):
    users = facade.authenticator.list_users()
    return Envelope.ok(f"{len(users)} user(s)", "users", [u.to_dict() for u in users])


def _change_password(facade, user, args):
    current = arg_text(args, "currentPassword")
    new = arg_text(args, "newPassword")
    if not current or not new:
        raise ValidationError("currentPassword and newPassword are required")
    if facade.authenticator.verify(user.username, current) is None:
        raise ValidationError("currentPassword is incorrect", code="INVALID_CREDENTIALS")
    if not is_strong(new):
        raise ValidationError(
            "newPassword must have at least 8 characters with upper and lower case letters, a digit and a special character"
        )
    if not facade.authenticator.change_password(user.username, current, new):
        raise ValidationError("currentPassword is incorrect", code="INVALID_CREDENTIALS")
    return Envelope.ok("password changed")


OPERATIONS: dict[str, Operation] = {
    op.name: op
    for op in (
        Operation("insertItem", ("code",) + _ITEM_FIELDS + ("active",), _insert_item),
        Operation("updateItem", ("id",) + _ITEM_FIELDS, _update_item),
        Operation("retireItem", ("id",), _retire_item),
        Operation("getByCode", ("code",), _get_by_code),
        Operation("getById", ("id",), _get_by_id),
        Operation("searchByName", ("name",), _search_by_name),
        Operation("listAll", (), _list_all),
        Operation("listCategories", (), _list_categories),
        Operation("listSuppliers", (), _list_suppliers),
        Operation("listLowStock", (), _list_low_stock),
        Operation("listMovements", ("itemId",), _list_movements),
        Operation("setStock", ("id", "newStock", "reason"), _set_stock),
        Operation("adjustStock", ("id", "delta", "reason"), _adjust_stock),
        Operation("registerEntry", ("id", "quantity", "reason"), _register_entry),
        Operation("registerExit", ("id", "quantity", "reason"), _register_exit),
        Operation("healthCheck", (), _health_check),
        Operation("listUsers", (), _list_users),
        Operation("changePassword", ("currentPassword", "newPassword"), _change_password),
    )
}


class ServiceFacade:
    def __init__(self, service, authenticator):
        self.service = service
        self.authenticator = authenticator

    def authenticate(self, username: str | None, password: str | None) -> UserAccount:
        if not username or password is None:
            raise AuthError("authentication required")
        user = self.authenticator.verify(username, password)
        if user is None:
            current_app.logger.warning("Rejected credentials for user %r", username)
            raise AuthError("invalid credentials", code="INVALID_CREDENTIALS")
        return user

    def authorize(self, user: UserAccount, operation: str) -> Operation:
        op = OPERATIONS.get(operation)
        if op is None or not self.authenticator.may_perform(user, operation):
            current_app.logger.warning("Denied %s to user %s (%s)", operation, user.username, user.role.value)
            if op is None:
                raise ForbiddenError(f"unknown operation: {operation}", code="UNKNOWN_OPERATION")
            raise ForbiddenError(f"operation {operation} not permitted for role {user.role.value}")
        return op

    def execute(self, user: UserAccount, operation: str, args: dict | None = None) -> Envelope:
        """Run an operation for an already authenticated caller."""
        args = args or {}
        try:
            op = self.authorize(user, operation)
        except ForbiddenError as exc:
            return Envelope.failure(exc, status=403)

        try:
            return op.handler(self, user, args)
        except ValidationError as exc:
            current_app.logger.warning("%s rejected: %s", operation, exc.message)
            return Envelope.failure(exc)
        except InventoryError as exc:
            if exc.kind is ErrorKind.STORE_ERROR:
                current_app.logger.exception("%s failed in the store (%s)", operation, exc.code)
            return Envelope.failure(exc)
        except Exception:
            current_app.logger.exception("%s failed unexpectedly", operation)
            return Envelope.failure(InternalError(INTERNAL_MESSAGE))

    def handle(self, operation: str, args: dict | None, username: str | None, password: str | None) -> Envelope:
        """Authenticate then execute. Credential failures come back with status 401."""
        try:
            user = self.authenticate(username, password)
        except AuthError as exc:
            return Envelope.failure(exc, status=401)
        return self.execute(user, operation, args)
