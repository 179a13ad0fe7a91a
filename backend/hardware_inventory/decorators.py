# Overview: Request decorators for the SOAP endpoint: body parsing and HTTP Basic authentication.

from __future__ import annotations

from functools import wraps

from flask import Response, current_app, g, request

from . import soap
from .errors import AuthError
from .services.facade import Envelope

AUTH_REALM = "Hardware Inventory"


def get_facade():
    return current_app.extensions["inventory_facade"]


def soap_response(operation: str, envelope) -> Response:
    """Render a facade Envelope with its HTTP status."""
    response = Response(
        soap.render_response(operation, envelope.to_dict()),
        status=envelope.status,
        content_type=soap.CONTENT_TYPE,
    )
    if envelope.status == 401:
        response.headers["WWW-Authenticate"] = f'Basic realm="{AUTH_REALM}"'
    return response


def soap_request(f):
    """
    Parse the SOAP body before the view runs.

    Sets on Flask g:
    - g.soap_operation: local name of the first Body element
    - g.soap_args: {argument name: text or None}

    Returns 400 with a SOAP Fault when the body is not a usable envelope.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        try:
            operation, soap_args = soap.parse_request(request.get_data())
        except soap.SoapParseError as e:
            current_app.logger.warning("Malformed SOAP request from %s: %s", request.remote_addr, e)
            return Response(soap.render_fault(str(e)), status=400, content_type=soap.CONTENT_TYPE)

        g.soap_operation = operation
        g.soap_args = soap_args
        return f(*args, **kwargs)

    return decorated_function


def require_basic_auth(f):
    """
    Require HTTP Basic credentials of an active user.

    Sets g.current_user (UserAccount) for the view.

    SECURITY: Returns 401 with a WWW-Authenticate challenge if:
    - No Authorization header, or a scheme other than Basic
    - Unknown username or wrong password
    - User account deactivated
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        auth = request.authorization
        operation = getattr(g, "soap_operation", None) or "authenticate"
        username = auth.username if auth is not None and auth.type == "basic" else None
        password = auth.password if auth is not None and auth.type == "basic" else None

        try:
            g.current_user = get_facade().authenticate(username, password)
        except AuthError as e:
            return soap_response(operation, Envelope.failure(e, status=401))

        return f(*args, **kwargs)

    return decorated_function
