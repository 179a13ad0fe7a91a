"""
Application factory tests.

Builds the app from its default configuration only (no test overrides),
the way `flask run` or the WSGI entry point does.
"""

import xml.etree.ElementTree as ET

from hardware_inventory import create_app
from hardware_inventory.config import Config
from hardware_inventory.soap import SERVICE_NS, WSDL_NS


def test_default_app_serves_wsdl_before_migrations(tmp_path, monkeypatch):
    # Only the database file moves; everything else is the shipped default
    monkeypatch.setattr(Config, "SQLALCHEMY_DATABASE_URI", f"sqlite:///{tmp_path / 'default.sqlite3'}")
    app = create_app()

    response = app.test_client().get("/InventarioService?wsdl")

    assert response.status_code == 200
    root = ET.fromstring(response.data)
    assert root.tag == f"{{{WSDL_NS}}}definitions"
    assert root.get("targetNamespace") == SERVICE_NS


def test_default_app_rejects_anonymous_calls(tmp_path, monkeypatch):
    monkeypatch.setattr(Config, "SQLALCHEMY_DATABASE_URI", f"sqlite:///{tmp_path / 'default.sqlite3'}")
    app = create_app()

    response = app.test_client().post(
        "/InventarioService",
        data=(
            '<soapenv:Envelope xmlns:soapenv="http://schemas.xmlsoap.org/soap/envelope/" '
            f'xmlns:ws="{SERVICE_NS}"><soapenv:Body><ws:listAll/></soapenv:Body></soapenv:Envelope>'
        ),
        headers={"Content-Type": "text/xml; charset=utf-8"},
    )

    assert response.status_code == 401
    assert ET.fromstring(response.data).find(".//result/errorKind").text == "AUTH"
