"""
Pytest fixtures for hardware inventory tests.

Provides the application on in-memory SQLite, a clean database per test,
the service stack, and helpers for building SOAP requests.
"""

import base64
import xml.etree.ElementTree as ET
from decimal import Decimal
from xml.sax.saxutils import escape

import pytest

from hardware_inventory import create_app
from hardware_inventory.domain import ItemDraft
from hardware_inventory.extensions import db
from hardware_inventory.services.auth_service import Authenticator, development_accounts
from hardware_inventory.services.facade import ServiceFacade
from hardware_inventory.services.inventory_service import InventoryService
from hardware_inventory.services.store import InventoryStore
from hardware_inventory.soap import SERVICE_NS, SOAP_ENV_NS

TEST_CONFIG = {
    'TESTING': True,
    'APP_ENV': 'test',
    'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
    'AUTH_USER_SOURCE': 'seed',
    'DB_LEAK_DETECTION_THRESHOLD': 0,
    'LOG_LEVEL': 'DEBUG',
}


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app(TEST_CONFIG)

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database (and fresh in-memory users) for each test."""
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        facade = app.extensions["inventory_facade"]
        facade.authenticator = Authenticator(facade.service.store, development_accounts())

        yield db.session

        # Cleanup after test
        db.session.rollback()


@pytest.fixture(scope='function')
def store(db_session):
    return InventoryStore()


@pytest.fixture(scope='function')
def service(store):
    return InventoryService(store)


@pytest.fixture(scope='function')
def authenticator(store):
    return Authenticator(store, development_accounts())


@pytest.fixture(scope='function')
def facade(service, authenticator):
    return ServiceFacade(service, authenticator)


@pytest.fixture(scope='function')
def hand_tools(store):
    """Category referenced by items in tests."""
    return store.add_category("Hand Tools", "Hammers and screwdrivers")


@pytest.fixture(scope='function')
def supplier(store):
    return store.add_supplier("Ferretera Central", phone="555-0100")


def hammer_draft(**overrides) -> ItemDraft:
    """The item from the register-then-read scenario."""
    fields = dict(
        code="abc1",
        name="Hammer",
        purchase_price=Decimal("10.00"),
        sale_price=Decimal("15.00"),
        current_stock=5,
        min_stock=2,
    )
    fields.update(overrides)
    return ItemDraft(**fields)


@pytest.fixture(scope='function')
def hammer(service):
    """Registered hammer: code ABC1, stock 5, minimum 2."""
    return service.register_item(hammer_draft()).value


# =============================================================================
# SOAP HELPERS
# =============================================================================

def soap_body(operation: str, **args) -> str:
    """Build a SOAP 1.1 request envelope with flat arguments."""
    parts = "".join(f"<{name}>{escape(str(value))}</{name}>" for name, value in args.items())
    return (
        '<?xml version="1.0" encoding="UTF-8"?>'
        f'<soapenv:Envelope xmlns:soapenv="{SOAP_ENV_NS}" xmlns:ws="{SERVICE_NS}">'
        '<soapenv:Header/>'
        f'<soapenv:Body><ws:{operation}>{parts}</ws:{operation}></soapenv:Body>'
        '</soapenv:Envelope>'
    )


def basic_auth(username: str, password: str) -> dict:
    """Helper to create HTTP Basic Authorization headers."""
    token = base64.b64encode(f"{username}:{password}".encode("utf-8")).decode("ascii")
    return {'Authorization': f'Basic {token}', 'Content-Type': 'text/xml; charset=utf-8'}


ADMIN = ("admin", "FerretAdmin2024$")
OPERATOR = ("operador", "StockManager#789")
READONLY = ("consulta", "ReadOnly@456")


def call(client, operation: str, credentials=ADMIN, **args):
    """POST one operation and return (response, parsed <result> element)."""
    headers = basic_auth(*credentials) if credentials else {'Content-Type': 'text/xml; charset=utf-8'}
    response = client.post('/InventarioService', data=soap_body(operation, **args), headers=headers)
    root = ET.fromstring(response.data)
    return response, root.find('.//result')
