# Overview: SOAP 1.1 codec for the service endpoint: request parsing, envelope rendering, WSDL.

"""
Wire format (document/literal, SOAP 1.1):

Request:
    <soapenv:Envelope xmlns:soapenv="http://schemas.xmlsoap.org/soap/envelope/"
                      xmlns:ws="http://ws.inventario.ferreteria.com/">
      <soapenv:Body>
        <ws:adjustStock><id>7</id><delta>-3</delta><reason>sale</reason></ws:adjustStock>
      </soapenv:Body>
    </soapenv:Envelope>

The first element inside Body names the operation; its children are the flat
arguments, matched by local name. Argument values are returned as text and
coerced by the facade.

Response:
    <{operation}Response><result> envelope fields </result></{operation}Response>

Lists in payload repeat one element per entry (item, movement, category, ...).
Absent values are omitted rather than sent as empty elements.
"""

from __future__ import annotations

import xml.etree.ElementTree as ET

SOAP_ENV_NS = "http://schemas.xmlsoap.org/soap/envelope/"
SERVICE_NS = "http://ws.inventario.ferreteria.com/"
XSI_NS = "http://www.w3.org/2001/XMLSchema-instance"
XSD_NS = "http://www.w3.org/2001/XMLSchema"
WSDL_NS = "http://schemas.xmlsoap.org/wsdl/"
WSDL_SOAP_NS = "http://schemas.xmlsoap.org/wsdl/soap/"

SERVICE_NAME = "InventarioService"
CONTENT_TYPE = "text/xml; charset=utf-8"

# Element name for one entry of each list payload
_ENTRY_NAMES = {
    "items": "item",
    "movements": "movement",
    "categories": "category",
    "suppliers": "supplier",
    "users": "user",
}

_RESULT_FIELDS = ("successful", "message", "errorCode", "errorKind", "payloadType")

ET.register_namespace("soap", SOAP_ENV_NS)
ET.register_namespace("ws", SERVICE_NS)


class SoapParseError(Exception):
    """The request body is not a usable SOAP envelope."""


def _local(tag: str) -> str:
    return tag.rsplit("}", 1)[-1] if tag.startswith("{") else tag


def parse_request(body: bytes | str) -> tuple[str, dict[str, str | None]]:
    """Return (operation, args) from a SOAP request body."""
    if not body:
        raise SoapParseError("empty request body")
    if isinstance(body, str):
        body = body.encode("utf-8")
    # Entity declarations are never needed by a client and are refused outright
    if b"<!DOCTYPE" in body or b"<!ENTITY" in body:
        raise SoapParseError("DTDs are not allowed")
    try:
        root = ET.fromstring(body)
    except ET.ParseError as exc:
        raise SoapParseError(f"malformed XML: {exc}") from exc

    if root.tag != f"{{{SOAP_ENV_NS}}}Envelope":
        raise SoapParseError("root element must be a SOAP 1.1 Envelope")
    soap_body = root.find(f"{{{SOAP_ENV_NS}}}Body")
    if soap_body is None or len(soap_body) == 0:
        raise SoapParseError("SOAP Body must contain an operation element")

    op_element = soap_body[0]
    args: dict[str, str | None] = {}
    for child in op_element:
        if child.get(f"{{{XSI_NS}}}nil") in ("true", "1"):
            args[_local(child.tag)] = None
        else:
            args[_local(child.tag)] = child.text if child.text is not None else ""
    return _local(op_element.tag), args


def _text(value) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _append_value(parent: ET.Element, name: str, value) -> None:
    if value is None:
        return
    element = ET.SubElement(parent, name)
    if isinstance(value, dict):
        for key, inner in value.items():
            _append_value(element, key, inner)
    elif isinstance(value, (list, tuple)):
        for inner in value:
            _append_value(element, "entry", inner)
    else:
        element.text = _text(value)


def _append_payload(result: ET.Element, payload_type: str | None, payload) -> None:
    if payload is None:
        return
    element = ET.SubElement(result, "payload")
    if isinstance(payload, list):
        entry_name = _ENTRY_NAMES.get(payload_type or "", "entry")
        for entry in payload:
            _append_value(element, entry_name, entry)
    elif isinstance(payload, dict):
        for key, value in payload.items():
            _append_value(element, key, value)
    else:
        element.text = _text(payload)


def _envelope() -> tuple[ET.Element, ET.Element]:
    root = ET.Element(f"{{{SOAP_ENV_NS}}}Envelope")
    return root, ET.SubElement(root, f"{{{SOAP_ENV_NS}}}Body")


def _serialize(root: ET.Element) -> bytes:
    return ET.tostring(root, encoding="utf-8", xml_declaration=True)


def render_response(operation: str, envelope: dict) -> bytes:
    """Render a facade envelope (Envelope.to_dict()) as the operation's SOAP response."""
    root, body = _envelope()
    response = ET.SubElement(body, f"{{{SERVICE_NS}}}{operation}Response")
    result = ET.SubElement(response, "result")
    for name in _RESULT_FIELDS:
        _append_value(result, name, envelope.get(name))
    _append_payload(result, envelope.get("payloadType"), envelope.get("payload"))
    warnings = ET.SubElement(result, "warnings")
    for warning in envelope.get("warnings") or ():
        ET.SubElement(warnings, "warning").text = warning
    return _serialize(root)


def render_fault(message: str, *, code: str = "soap:Client") -> bytes:
    """SOAP 1.1 Fault for requests that never reached an operation."""
    root, body = _envelope()
    fault = ET.SubElement(body, f"{{{SOAP_ENV_NS}}}Fault")
    ET.SubElement(fault, "faultcode").text = code
    ET.SubElement(fault, "faultstring").text = message
    return _serialize(root)


def render_wsdl(operations, location: str) -> bytes:
    """
    WSDL 1.1 derived from the operation catalog.

    operations: iterable of objects with .name and .params. Every argument is
    declared as an optional xsd:string; the result is left open (xsd:anyType)
    since its payload varies with payloadType.
    """
    operations = list(operations)
    tns = SERVICE_NS
    ET.register_namespace("wsdl", WSDL_NS)
    ET.register_namespace("xsd", XSD_NS)
    ET.register_namespace("soapbind", WSDL_SOAP_NS)

    def w(tag):
        return f"{{{WSDL_NS}}}{tag}"

    def x(tag):
        return f"{{{XSD_NS}}}{tag}"

    definitions = ET.Element(w("definitions"), {"name": SERVICE_NAME, "targetNamespace": tns})
    definitions.set("xmlns:tns", tns)

    types = ET.SubElement(definitions, w("types"))
    schema = ET.SubElement(types, x("schema"), {"targetNamespace": tns, "elementFormDefault": "unqualified"})
    for op in operations:
        request = ET.SubElement(schema, x("element"), {"name": op.name})
        sequence = ET.SubElement(ET.SubElement(request, x("complexType")), x("sequence"))
        for param in op.params:
            ET.SubElement(sequence, x("element"), {"name": param, "type": "xsd:string", "minOccurs": "0"})
        response = ET.SubElement(schema, x("element"), {"name": f"{op.name}Response"})
        sequence = ET.SubElement(ET.SubElement(response, x("complexType")), x("sequence"))
        ET.SubElement(sequence, x("element"), {"name": "result", "type": "xsd:anyType"})

    for op in operations:
        message = ET.SubElement(definitions, w("message"), {"name": op.name})
        ET.SubElement(message, w("part"), {"name": "parameters", "element": f"tns:{op.name}"})
        message = ET.SubElement(definitions, w("message"), {"name": f"{op.name}Response"})
        ET.SubElement(message, w("part"), {"name": "parameters", "element": f"tns:{op.name}Response"})

    port_type = ET.SubElement(definitions, w("portType"), {"name": SERVICE_NAME})
    for op in operations:
        operation = ET.SubElement(port_type, w("operation"), {"name": op.name})
        ET.SubElement(operation, w("input"), {"message": f"tns:{op.name}"})
        ET.SubElement(operation, w("output"), {"message": f"tns:{op.name}Response"})

    binding = ET.SubElement(
        definitions, w("binding"), {"name": f"{SERVICE_NAME}Binding", "type": f"tns:{SERVICE_NAME}"}
    )
    ET.SubElement(
        binding,
        f"{{{WSDL_SOAP_NS}}}binding",
        {"style": "document", "transport": "http://schemas.xmlsoap.org/soap/http"},
    )
    for op in operations:
        operation = ET.SubElement(binding, w("operation"), {"name": op.name})
        ET.SubElement(operation, f"{{{WSDL_SOAP_NS}}}operation", {"soapAction": ""})
        for direction in ("input", "output"):
            ET.SubElement(ET.SubElement(operation, w(direction)), f"{{{WSDL_SOAP_NS}}}body", {"use": "literal"})

    service = ET.SubElement(definitions, w("service"), {"name": SERVICE_NAME})
    port = ET.SubElement(service, w("port"), {"name": f"{SERVICE_NAME}Port", "binding": f"tns:{SERVICE_NAME}Binding"})
    ET.SubElement(port, f"{{{WSDL_SOAP_NS}}}address", {"location": location})
    return _serialize(definitions)
