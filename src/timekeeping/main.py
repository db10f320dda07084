from __future__ import annotations

import importlib
import logging
from typing import Optional

from dotenv import load_dotenv
from flask import Flask

from .config import get_settings_module
from .container import Container, build_container, build_memory_container
from .database.bootstrap import apply_schema, list_tables
from .common.web import register_error_handlers
from .attendance.controller import register as register_attendance
from .edits.controller import register as register_edits
from .ledger.controller import register as register_ledger
from .schedules.controller import register as register_schedules

logger = logging.getLogger(__name__)


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, str(level).upper(), logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


def load_settings():
    load_dotenv(override=False)
    return importlib.import_module(get_settings_module())


def create_app(container: Optional[Container] = None) -> Flask:
    settings = load_settings()
    configure_logging(getattr(settings, "LOG_LEVEL", "INFO"))

    app = Flask(__name__)
    app.secret_key = getattr(settings, "SECRET_KEY")
    app.config["DEBUG"] = bool(getattr(settings, "DEBUG", False))

    if container is None:
        container = _container_from_settings(settings)
    app.extensions["timekeeping"] = container

    register_error_handlers(app)
    register_schedules(app, container)
    register_attendance(app, container)
    register_ledger(app, container)
    register_edits(app, container)

    @app.route("/api/health", methods=["GET"], endpoint="api_health")
    def api_health():
        return {"success": True, "status": "ok"}

    return app


def _container_from_settings(settings) -> Container:
    if getattr(settings, "STORAGE", "mysql") == "memory":
        logger.info("using in-memory storage")
        return build_memory_container(settings=settings)

    db_config = dict(getattr(settings, "DB_CONFIG"))
    logger.info(
        "settings=%s db=%s@%s:%s/%s",
        settings.__name__, db_config.get("user"), db_config.get("host"),
        db_config.get("port", 3306), db_config.get("database"),
    )
    if getattr(settings, "AUTO_INIT_DB", False):
        apply_schema(db_config)
        logger.info("schema ready (tables=%s)", len(list_tables(db_config)))
    return build_container(db_config=db_config, settings=settings)
