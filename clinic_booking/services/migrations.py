"""Alembic migration helpers."""

from __future__ import annotations

from pathlib import Path

from alembic import command
from alembic.config import Config
from flask import Flask

REPO_ROOT = Path(__file__).resolve().parents[2]


def alembic_config(app: Flask) -> Config:
    """Alembic Config bound to the app's database URL."""

    cfg = Config(str(REPO_ROOT / "alembic.ini"))
    cfg.set_main_option("script_location", str(REPO_ROOT / "migrations"))
    cfg.set_main_option("sqlalchemy.url", app.config["SQLALCHEMY_DATABASE_URI"])
    cfg.attributes["configure_logger"] = False
    return cfg


def run_migrations(app: Flask, revision: str = "head") -> None:
    """Upgrade the database to ``revision``."""

    command.upgrade(alembic_config(app), revision)


def auto_upgrade(app: Flask) -> None:
    """Run `alembic upgrade head` at start-up when CLINIC_AUTO_MIGRATE is on."""

    if not app.config.get("CLINIC_AUTO_MIGRATE"):
        return
    if not (REPO_ROOT / "alembic.ini").exists() or not (REPO_ROOT / "migrations").exists():
        app.logger.info("Alembic files not found; relying on bootstrap tables")
        return
    try:
        run_migrations(app)
    except Exception as exc:  # pragma: no cover - bootstrap tables still apply
        app.logger.warning("Auto migration skipped: %s", exc)
