"""WSGI entry point (``gunicorn clinic_booking.app:app``) and a local dev server."""

from __future__ import annotations

import os

from . import APP_HOST, APP_PORT, create_app

app = create_app()


def main() -> None:
    host = os.getenv("CLINIC_HOST", APP_HOST)
    port = int(os.getenv("CLINIC_PORT", str(APP_PORT)))
    app.logger.info("Serving clinic booking on http://%s:%s", host, port)
    app.run(host=host, port=port, debug=False)


if __name__ == "__main__":
    main()
