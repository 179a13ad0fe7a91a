"""
Store tests.

Verifies:
- Rows come back as domain records with joined category/supplier names
- Listing filters and ordering (active-only, by name; low stock by stock)
- update_item leaves code and created_at alone
- Database failures surface as ConflictError / StoreError and roll back
- Nested transaction() blocks commit once, at the outermost level
"""

from dataclasses import replace
from decimal import Decimal

import pytest

from hardware_inventory.domain import Item, Movement, MovementKind, Role, UserAccount
from hardware_inventory.errors import ConflictError, ErrorKind, StoreError
from hardware_inventory.services.auth_service import hash_password


def _item(code="ABC1", name="Hammer", **overrides) -> Item:
    fields = dict(
        id=None,
        code=code,
        name=name,
        purchase_price=Decimal("10.00"),
        sale_price=Decimal("15.00"),
        current_stock=5,
        min_stock=2,
    )
    fields.update(overrides)
    return Item(**fields)


class TestItems:
    def test_insert_assigns_identity_and_joins_names(self, store, hand_tools, supplier):
        item = store.insert_item(_item(category_id=hand_tools.id, supplier_id=supplier.id))

        assert item.id is not None
        assert item.created_at is not None and item.updated_at is not None
        assert item.category_name == "Hand Tools"
        assert item.supplier_name == "Ferretera Central"
        assert item.sale_price == Decimal("15.00")

    def test_duplicate_code_is_a_conflict(self, store):
        store.insert_item(_item())
        with pytest.raises(ConflictError) as exc:
            store.insert_item(_item(name="Another hammer"))
        assert exc.value.kind is ErrorKind.VALIDATION
        assert exc.value.code == "DUPLICATE_CODE"
        assert isinstance(exc.value.__cause__, Exception)
        # Session is usable again after the rollback
        assert len(store.list_active_items()) == 1

    def test_check_constraint_becomes_store_error(self, store):
        with pytest.raises(StoreError) as exc:
            store.insert_item(_item(sale_price=Decimal("5.00")))
        assert exc.value.code == "DB_CONSTRAINT"
        assert store.list_active_items() == []

    def test_find_returns_retired_items(self, store):
        item = store.insert_item(_item())
        assert store.soft_delete_item(item.id) is True

        assert store.find_item_by_id(item.id).active is False
        assert store.find_item_by_code("ABC1").active is False
        assert store.list_active_items() == []
        assert store.find_item_by_id(9999) is None
        assert store.find_item_by_code("NOPE") is None

    def test_listing_is_active_only_and_ordered_by_name(self, store):
        store.insert_item(_item(code="WREN1", name="Wrench"))
        store.insert_item(_item(code="AXE01", name="Axe"))
        retired = store.insert_item(_item(code="SAW01", name="Saw"))
        store.soft_delete_item(retired.id)

        assert [i.code for i in store.list_active_items()] == ["AXE01", "WREN1"]

    def test_search_is_case_insensitive_substring(self, store):
        store.insert_item(_item(code="HAM01", name="Claw Hammer"))
        store.insert_item(_item(code="HAM02", name="Sledge HAMMER"))
        store.insert_item(_item(code="SCR01", name="Screwdriver"))

        names = [i.name for i in store.search_items_by_name("hammer")]
        assert names == ["Claw Hammer", "Sledge HAMMER"]

    def test_search_treats_wildcards_literally(self, store):
        store.insert_item(_item(code="PCT01", name="100% cotton rag"))
        store.insert_item(_item(code="PCT02", name="Cotton rope"))

        assert [i.code for i in store.search_items_by_name("0%")] == ["PCT01"]
        assert store.search_items_by_name("_") == []

    def test_update_does_not_touch_code_or_created_at(self, store):
        item = store.insert_item(_item())
        changed = replace(item, code="ZZZZ9", name="Framing Hammer", min_stock=4)

        assert store.update_item(changed) is True
        fresh = store.find_item_by_id(item.id)
        assert fresh.code == "ABC1"
        assert fresh.name == "Framing Hammer"
        assert fresh.min_stock == 4
        assert fresh.created_at == item.created_at
        assert fresh.updated_at >= item.updated_at

    def test_writes_report_missing_rows(self, store):
        assert store.update_item(_item(id=4242)) is False
        assert store.set_item_stock(4242, 1) is False
        assert store.soft_delete_item(4242) is False

    def test_exists_by_code_can_exclude_an_id(self, store):
        item = store.insert_item(_item())
        assert store.exists_item_by_code("ABC1") is True
        assert store.exists_item_by_code("ABC1", exclude_id=item.id) is False
        assert store.exists_item_by_id(item.id) is True
        assert store.exists_item_by_id(item.id + 1) is False

    def test_low_stock_ordered_by_current_stock(self, store):
        store.insert_item(_item(code="LOW03", name="Bolts", current_stock=3, min_stock=3))
        store.insert_item(_item(code="LOW01", name="Nails", current_stock=1, min_stock=5))
        store.insert_item(_item(code="OK001", name="Glue", current_stock=9, min_stock=2))

        assert [i.code for i in store.list_low_stock_items()] == ["LOW01", "LOW03"]


class TestMovements:
    def test_movements_newest_first(self, store):
        item = store.insert_item(_item())
        first = store.append_movement(
            Movement(item_id=item.id, kind=MovementKind.EXIT, quantity=2,
                     stock_before=5, stock_after=3, user="alice")
        )
        second = store.append_movement(
            Movement(item_id=item.id, kind=MovementKind.ENTRY, quantity=4,
                     stock_before=3, stock_after=7, user="bob", reason="restock")
        )

        assert first.id is not None and first.timestamp is not None
        movements = store.list_movements_by_item(item.id)
        assert [m.id for m in movements] == [second.id, first.id]
        assert movements[0].kind is MovementKind.ENTRY
        assert movements[0].signed_delta == 4
        assert movements[1].signed_delta == -2


class TestTransactions:
    def test_nested_blocks_roll_back_together(self, store):
        item = store.insert_item(_item())

        with pytest.raises(RuntimeError):
            with store.transaction():
                store.set_item_stock(item.id, 1)
                with store.transaction():
                    store.append_movement(
                        Movement(item_id=item.id, kind=MovementKind.EXIT, quantity=4,
                                 stock_before=5, stock_after=1, user="alice")
                    )
                raise RuntimeError("abort")

        assert store.find_item_by_id(item.id).current_stock == 5
        assert store.list_movements_by_item(item.id) == []

    def test_probe(self, store):
        assert store.probe() is True


class TestReferenceData:
    def test_categories_and_suppliers(self, store, hand_tools, supplier):
        store.add_category("Fasteners")

        assert [c.name for c in store.list_categories()] == ["Fasteners", "Hand Tools"]
        assert store.find_category_by_id(hand_tools.id).description == "Hammers and screwdrivers"
        assert store.find_category_by_id(hand_tools.id + 100) is None
        assert [s.name for s in store.list_suppliers()] == ["Ferretera Central"]
        assert store.find_supplier_by_id(supplier.id).phone == "555-0100"


class TestUsers:
    def test_save_is_keyed_by_lowercase_username(self, store):
        store.save_user(UserAccount("Alice", hash_password("Secret#123"), Role.OPERATOR))
        store.save_user(UserAccount("alice", hash_password("Secret#123"), Role.ADMIN))

        users = store.list_users()
        assert [(u.username, u.role) for u in users] == [("alice", Role.ADMIN)]
        assert store.find_user("ALICE").role is Role.ADMIN

    def test_set_user_password(self, store):
        store.save_user(UserAccount("bob", hash_password("Secret#123"), Role.READONLY))
        assert store.set_user_password("BOB", hash_password("Other#456x")) is True
        assert store.find_user("bob").password_hash == hash_password("Other#456x")
        assert store.set_user_password("nobody", "x" * 64) is False
