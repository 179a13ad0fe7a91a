"""
Concurrent stock mutation tests.

Runs on a file-backed SQLite database so every thread gets its own
connection, the way requests do under a threaded server.

Verifies:
- Parallel adjustStock calls on one item linearize: no lost updates
- The movement log forms one unbroken chain (each stockBefore is unique
  and equals the previous stockAfter)
- Parallel exits never oversell
"""

import threading
from decimal import Decimal

import pytest

from hardware_inventory import create_app
from hardware_inventory.domain import ItemDraft
from hardware_inventory.errors import ValidationError
from hardware_inventory.extensions import db
from hardware_inventory.services.inventory_service import InventoryService
from hardware_inventory.services.store import InventoryStore

THREADS = 8
CALLS_PER_THREAD = 10


@pytest.fixture(scope='function')
def file_app(tmp_path):
    app = create_app({
        'TESTING': True,
        'APP_ENV': 'test',
        'SQLALCHEMY_DATABASE_URI': f"sqlite:///{tmp_path / 'concurrency.sqlite3'}",
        'SQLALCHEMY_ENGINE_OPTIONS': {'pool_pre_ping': True, 'connect_args': {'timeout': 30}},
        'AUTH_USER_SOURCE': 'seed',
        'AUTO_CREATE_SCHEMA': True,
        'DB_LEAK_DETECTION_THRESHOLD': 0,
    })
    yield app
    with app.app_context():
        db.session.remove()
        db.engine.dispose()


def _register(app, stock: int) -> int:
    with app.app_context():
        item = InventoryService(InventoryStore()).register_item(
            ItemDraft(
                code="PAR1",
                name="Parallel item",
                purchase_price=Decimal("1.00"),
                sale_price=Decimal("2.00"),
                current_stock=stock,
                min_stock=0,
            )
        ).value
        return item.id


def _run_in_threads(app, work):
    """Start THREADS workers together; return the exceptions they raised."""
    barrier = threading.Barrier(THREADS)
    errors = []
    lock = threading.Lock()

    def runner(index):
        barrier.wait()
        with app.app_context():
            try:
                work(InventoryService(InventoryStore()), index)
            except Exception as exc:
                with lock:
                    errors.append(exc)

    threads = [threading.Thread(target=runner, args=(i,)) for i in range(THREADS)]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=120)
    return errors


def test_parallel_adjustments_do_not_lose_updates(file_app):
    item_id = _register(file_app, stock=0)

    def work(service, index):
        for _ in range(CALLS_PER_THREAD):
            service.adjust_stock(item_id, 1, "parallel entry", f"worker{index}")

    assert _run_in_threads(file_app, work) == []

    with file_app.app_context():
        service = InventoryService(InventoryStore())
        total = THREADS * CALLS_PER_THREAD
        assert service.get_by_id(item_id).current_stock == total

        movements = sorted(service.list_movements(item_id), key=lambda m: m.id)
        assert len(movements) == total
        assert len({m.stock_before for m in movements}) == total
        assert [m.stock_before for m in movements] == list(range(total))
        for previous, current in zip(movements, movements[1:]):
            assert current.stock_before == previous.stock_after


def test_parallel_exits_never_oversell(file_app):
    item_id = _register(file_app, stock=10)
    outcomes = []

    def work(service, index):
        try:
            service.register_exit(item_id, 2, "parallel sale", f"worker{index}")
            outcomes.append("sold")
        except ValidationError as exc:
            assert exc.code == "INSUFFICIENT_STOCK"
            outcomes.append("refused")

    assert _run_in_threads(file_app, work) == []

    assert outcomes.count("sold") == 5
    assert outcomes.count("refused") == THREADS - 5
    with file_app.app_context():
        service = InventoryService(InventoryStore())
        assert service.get_by_id(item_id).current_stock == 0
        assert len(service.list_movements(item_id)) == 5
