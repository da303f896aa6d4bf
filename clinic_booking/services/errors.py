"""Lightweight error logging for in-app diagnostics."""

from __future__ import annotations

import traceback
from datetime import datetime, timezone
from pathlib import Path

from flask import current_app


def error_log_path() -> Path:
    return Path(current_app.config["DATA_ROOT"]) / "logs" / "app_errors.log"


def record_exception(context: str, exc: BaseException) -> None:
    """Append exception details to data/logs/app_errors.log for offline inspection."""

    current_app.logger.error("%s: %s", context, exc)
    try:
        log_path = error_log_path()
        log_path.parent.mkdir(parents=True, exist_ok=True)
        with log_path.open("a", encoding="utf-8") as handle:
            handle.write(f"[{datetime.now(timezone.utc).isoformat()}] {context}\n")
            handle.write("".join(traceback.format_exception(type(exc), exc, exc.__traceback__)))
            handle.write("\n")
    except OSError as log_exc:
        # Never let logging failures break the request cycle.
        current_app.logger.warning("Could not write error log: %s", log_exc)
