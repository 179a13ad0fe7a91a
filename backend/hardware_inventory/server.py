# Overview: Process entry point; probes the database and serves the app on a threaded WSGI server.

"""
Exit codes:
- 0: normal shutdown (including Ctrl+C)
- 1: startup failure (database probe failed, port unavailable)
"""

from __future__ import annotations

import sys

import click
from werkzeug.serving import make_server

from . import create_app

EXIT_OK = 0
EXIT_STARTUP_FAILURE = 1


def run(test_config: dict | None = None, *, host: str | None = None, port: int | None = None) -> int:
    app = create_app(test_config)
    host = host or app.config["HTTP_HOST"]
    port = port if port is not None else int(app.config["HTTP_PORT"])

    with app.app_context():
        store = app.extensions["inventory_facade"].service.store
        if not store.probe():
            app.logger.error("Database probe failed; not starting")
            return EXIT_STARTUP_FAILURE

    try:
        server = make_server(host, port, app, threaded=True)
    except (OSError, SystemExit):
        # werkzeug exits instead of raising when the port is taken
        app.logger.exception("Could not bind %s:%s", host, port)
        return EXIT_STARTUP_FAILURE

    app.logger.info("Serving %s on http://%s:%s%s", app.name, host, port, app.config["SOAP_ENDPOINT"])
    try:
        server.serve_forever()
    except KeyboardInterrupt:
        app.logger.info("Shutting down")
    finally:
        server.server_close()
    return EXIT_OK


@click.command()
@click.option("--host", default=None, help="Bind address (default HTTP_HOST)")
@click.option("--port", type=int, default=None, help="Bind port (default HTTP_PORT)")
def main(host, port):
    """Run the hardware inventory SOAP service."""
    sys.exit(run(host=host, port=port))


if __name__ == "__main__":
    main()
