# backend/hardware_inventory/validation.py
"""
Item validation rules.

Stateless checks that run before any write. validate_for_insert() and
validate_for_update() return the full list of violations so a caller sees
every problem at once; the service turns a non-empty list into a single
ValidationError whose message is the comma-joined list.

Text rules are applied to the trimmed value (code also upper-cased) and price
rules to the value rounded half-up to cents, which is exactly what the service
stores after normalization.
"""
from __future__ import annotations

import re
from decimal import Decimal, ROUND_HALF_UP

from .domain import CENTS, ItemDraft
from .errors import ValidationError

CODE_PATTERN = re.compile(r"^[A-Z0-9]{4,20}$")
NAME_MIN_LENGTH = 3
NAME_MAX_LENGTH = 200
DESCRIPTION_MAX_LENGTH = 1000
PRICE_MIN = Decimal("0.01")
PRICE_MAX = Decimal("999999.99")
MAX_MARKUP = Decimal("10")
MIN_STOCK_MAX = 10_000
# Stock columns are signed 32-bit integers
STOCK_MAX = 2**31 - 1
SEARCH_MIN_LENGTH = 2


def _blank(value: str | None) -> bool:
    return value is None or value.strip() == ""


def _check_required(draft: ItemDraft, errors: list[str], *, include_code: bool) -> None:
    if include_code and _blank(draft.code):
        errors.append("code is required")
    if _blank(draft.name):
        errors.append("name is required")
    if draft.purchase_price is None:
        errors.append("purchasePrice is required")
    if draft.sale_price is None:
        errors.append("salePrice is required")
    if draft.current_stock is None:
        errors.append("currentStock is required")
    if draft.min_stock is None:
        errors.append("minStock is required")


def _check_code(code: str | None, errors: list[str]) -> None:
    if _blank(code):
        return
    if not CODE_PATTERN.match(code.strip().upper()):
        errors.append("code must be 4 to 20 uppercase alphanumeric characters")


def _check_name(name: str | None, errors: list[str]) -> None:
    if _blank(name):
        return
    length = len(name.strip())
    if length < NAME_MIN_LENGTH:
        errors.append(f"name must be at least {NAME_MIN_LENGTH} characters")
    if length > NAME_MAX_LENGTH:
        errors.append(f"name cannot exceed {NAME_MAX_LENGTH} characters")


def _check_description(description: str | None, errors: list[str]) -> None:
    if description is not None and len(description.strip()) > DESCRIPTION_MAX_LENGTH:
        errors.append(f"description cannot exceed {DESCRIPTION_MAX_LENGTH} characters")


def markup_ratio(purchase_price: Decimal, sale_price: Decimal) -> Decimal:
    """(sale - purchase) / purchase, rounded half-up to 4 places."""
    return ((sale_price - purchase_price) / purchase_price).quantize(
        Decimal("0.0001"), rounding=ROUND_HALF_UP
    )


def _to_cents(price: Decimal | None) -> Decimal | None:
    # Out-of-range values are left as they are; quantize() overflows on huge exponents
    if price is None or abs(price) > PRICE_MAX:
        return price
    return Decimal(price).quantize(CENTS, rounding=ROUND_HALF_UP)


def _check_prices(purchase: Decimal | None, sale: Decimal | None, errors: list[str]) -> None:
    # Checked on the cent-rounded values the service stores
    purchase, sale = _to_cents(purchase), _to_cents(sale)
    for label, price in (("purchasePrice", purchase), ("salePrice", sale)):
        if price is None:
            continue
        if price < PRICE_MIN:
            errors.append(f"{label} must be at least {PRICE_MIN}")
        if price > PRICE_MAX:
            errors.append(f"{label} cannot exceed {PRICE_MAX}")

    if purchase is None or sale is None:
        return
    if sale <= purchase:
        errors.append("salePrice must be greater than purchasePrice")
    # Only for in-range prices; the range checks above already reported the rest
    if purchase >= PRICE_MIN and sale <= PRICE_MAX and markup_ratio(purchase, sale) > MAX_MARKUP:
        errors.append(f"markup cannot exceed {MAX_MARKUP} (1000%)")


def _check_stock(current_stock: int | None, min_stock: int | None, errors: list[str]) -> None:
    if current_stock is not None and current_stock < 0:
        errors.append("currentStock cannot be negative")
    if current_stock is not None and current_stock > STOCK_MAX:
        errors.append(f"currentStock cannot exceed {STOCK_MAX:,}")
    if min_stock is not None and min_stock < 0:
        errors.append("minStock cannot be negative")
    if min_stock is not None and min_stock > MIN_STOCK_MAX:
        errors.append(f"minStock cannot exceed {MIN_STOCK_MAX:,}")


def validate_for_insert(draft: ItemDraft) -> list[str]:
    errors: list[str] = []
    _check_required(draft, errors, include_code=True)
    _check_code(draft.code, errors)
    _check_name(draft.name, errors)
    _check_description(draft.description, errors)
    _check_prices(draft.purchase_price, draft.sale_price, errors)
    _check_stock(draft.current_stock, draft.min_stock, errors)
    return errors


def validate_for_update(draft: ItemDraft) -> list[str]:
    """Same as insert minus the code (immutable), plus a positive id."""
    errors: list[str] = []
    if draft.id is None or draft.id <= 0:
        errors.append("id must be a positive integer")
    _check_required(draft, errors, include_code=False)
    _check_name(draft.name, errors)
    _check_description(draft.description, errors)
    _check_prices(draft.purchase_price, draft.sale_price, errors)
    _check_stock(draft.current_stock, draft.min_stock, errors)
    return errors


def raise_if_invalid(errors: list[str]) -> None:
    if errors:
        raise ValidationError(", ".join(errors))


def validate_search_code(code: str | None) -> None:
    if _blank(code):
        raise ValidationError("code is required for lookup")
    if len(code.strip()) < SEARCH_MIN_LENGTH:
        raise ValidationError(f"code must be at least {SEARCH_MIN_LENGTH} characters")


def validate_search_name(name: str | None) -> None:
    if _blank(name):
        raise ValidationError("name is required for search")
    if len(name.strip()) < SEARCH_MIN_LENGTH:
        raise ValidationError(f"name must be at least {SEARCH_MIN_LENGTH} characters for search")


def validate_positive_id(value: int | None, label: str = "id") -> None:
    if value is None or value <= 0:
        raise ValidationError(f"{label} must be a positive integer")
