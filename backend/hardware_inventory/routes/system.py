# backend/hardware_inventory/routes/system.py
"""
Health and version endpoints.

Unauthenticated, for load balancers and deployment checks. The SOAP
healthCheck operation covers the same probe for authenticated clients.
"""

import sys
import time

from flask import Blueprint, current_app

from .. import __version__
from ..decorators import get_facade
from ..time_utils import to_utc_z, utcnow

system_bp = Blueprint("system", __name__)


@system_bp.get("/health")
def health():
    """
    Database probe.

    Returns:
    - 200: database reachable
    - 503: probe failed
    """
    start_time = time.time()
    healthy = get_facade().service.store.probe()
    elapsed_ms = (time.time() - start_time) * 1000

    response = {
        "status": "healthy" if healthy else "unhealthy",
        "timestamp": to_utc_z(utcnow()),
        "checks": {
            "database": {
                "status": "healthy" if healthy else "unhealthy",
                "latency_ms": round(elapsed_ms, 2),
            }
        },
    }
    return response, 200 if healthy else 503


@system_bp.get("/version")
def version():
    """
    Non-sensitive deployment information.

    Does NOT expose credentials, database URLs, or internal paths.
    """
    return {
        "api_version": __version__,
        "environment": current_app.config.get("APP_ENV", "production"),
        "python_version": sys.version.split()[0],
        "server_time": to_utc_z(utcnow()),
    }
