# Overview: SOAP endpoint; decodes the envelope, runs the operation through the facade, renders the result.

# backend/hardware_inventory/routes/soap.py
"""
Single SOAP endpoint (mounted at SOAP_ENDPOINT, /InventarioService by default).

- POST: one operation per request, HTTP Basic credentials required.
- GET ?wsdl: service description generated from the operation catalog.
"""

from flask import Blueprint, Response, g, request

from .. import soap
from ..decorators import get_facade, require_basic_auth, soap_request, soap_response
from ..services.facade import OPERATIONS

soap_bp = Blueprint("soap", __name__)


@soap_bp.post("")
@soap_request
@require_basic_auth
def invoke():
    envelope = get_facade().execute(g.current_user, g.soap_operation, g.soap_args)
    return soap_response(g.soap_operation, envelope)


@soap_bp.get("")
def describe():
    """WSDL for `GET ?wsdl`; any other GET is a client error."""
    if "wsdl" not in {key.lower() for key in request.args}:
        return Response(
            soap.render_fault("SOAP requests must use POST; append ?wsdl for the service description"),
            status=400,
            content_type=soap.CONTENT_TYPE,
        )
    return Response(soap.render_wsdl(OPERATIONS.values(), request.base_url), content_type=soap.CONTENT_TYPE)
