"""
Property-based tests for the stock movement log.

For any sequence of signed adjustments (including ones that would drive the
stock negative and are refused):
- current_stock equals the initial stock plus every accepted delta
- each movement satisfies stockAfter = stockBefore + signed delta, never below zero
- consecutive movements chain (stockBefore = previous stockAfter)
- refused adjustments leave no trace in the log
"""

import itertools
from decimal import Decimal

from hypothesis import HealthCheck, given, settings
from hypothesis import strategies as st

from hardware_inventory.domain import ItemDraft, MovementKind
from hardware_inventory.errors import ValidationError

_codes = itertools.count(1)

deltas = st.lists(
    st.integers(min_value=-50, max_value=50).filter(lambda d: d != 0),
    min_size=1,
    max_size=20,
)


def _fresh_item(service, stock):
    return service.register_item(
        ItemDraft(
            code=f"PROP{next(_codes)}",
            name="Property item",
            purchase_price=Decimal("1.00"),
            sale_price=Decimal("1.50"),
            current_stock=stock,
            min_stock=0,
        )
    ).value


@given(initial=st.integers(min_value=0, max_value=100), changes=deltas)
@settings(max_examples=50, deadline=None, suppress_health_check=[HealthCheck.function_scoped_fixture])
def test_adjustments_keep_the_log_consistent(service, initial, changes):
    item = _fresh_item(service, initial)

    expected = initial
    accepted = 0
    for delta in changes:
        try:
            service.adjust_stock(item.id, delta, "property", "prop-user")
        except ValidationError as exc:
            assert exc.code == "INSUFFICIENT_STOCK"
            assert expected + delta < 0
            continue
        expected += delta
        accepted += 1

    assert service.get_by_id(item.id).current_stock == expected

    movements = sorted(service.list_movements(item.id), key=lambda m: m.id)
    assert len(movements) == accepted
    stock = initial
    for m in movements:
        assert m.stock_before == stock
        assert m.stock_after == m.stock_before + m.signed_delta
        assert m.stock_after >= 0
        assert m.kind is (MovementKind.ENTRY if m.signed_delta > 0 else MovementKind.EXIT)
        stock = m.stock_after


@given(initial=st.integers(min_value=0, max_value=100), target=st.integers(min_value=0, max_value=100))
@settings(max_examples=50, deadline=None, suppress_health_check=[HealthCheck.function_scoped_fixture])
def test_set_stock_records_the_difference(service, initial, target):
    item = _fresh_item(service, initial)

    outcome = service.set_stock(item.id, target, "count", "prop-user")

    assert outcome.value.current_stock == target
    movements = service.list_movements(item.id)
    if target == initial:
        assert movements == []
    else:
        assert len(movements) == 1
        assert movements[0].kind is MovementKind.ADJUSTMENT
        assert (movements[0].stock_before, movements[0].stock_after) == (initial, target)
        assert movements[0].quantity == abs(target - initial)
