from __future__ import annotations

import importlib
import logging
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from flask import Flask

from config import get_settings_module

from .common.http import register_error_handlers
from .container import Container, build_container
from .database.bootstrap import apply_schema, apply_seed_sql, list_tables
from .database.connection import DBConfig
from .lifecycle.controller import register as register_lifecycle
from .reports.controller import register as register_reports
from .roster.provider import StaticRosterProvider, parse_rosters

logger = logging.getLogger(__name__)

REPO_ROOT = Path(__file__).resolve().parents[3]


def create_app(container: Optional[Container] = None) -> Flask:
    load_dotenv(override=False)
    app = Flask(__name__)

    settings_module = get_settings_module()
    settings = importlib.import_module(settings_module)
    app.secret_key = getattr(settings, "SECRET_KEY")
    app.config["DEBUG"] = bool(getattr(settings, "DEBUG", False))
    app.config["TESTING"] = bool(getattr(settings, "TESTING", False))

    logging.basicConfig(
        level=str(getattr(settings, "LOG_LEVEL", "INFO")).upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if container is None:
        container = _build_from_settings(settings, settings_module)

    register_error_handlers(app)
    register_lifecycle(app, container)
    register_reports(app, container)

    return app


def _build_from_settings(settings, settings_module: str) -> Container:
    db_config = dict(getattr(settings, "DB_CONFIG", {}))
    backend = str(getattr(settings, "STORAGE_BACKEND", "mysql")).lower()
    logger.info("settings=%s backend=%s", settings_module, backend)

    if backend == "mysql":
        logger.info("db=%s", DBConfig.from_dict(db_config).describe())
        if bool(getattr(settings, "AUTO_INIT_DB", False)):
            apply_schema(db_config, schema_path=REPO_ROOT / "database" / "schema.sql")
            logger.info("schema ready (tables=%s)", len(list_tables(db_config)))
        if bool(getattr(settings, "AUTO_SEED_DB", False)):
            apply_seed_sql(db_config, seed_path=REPO_ROOT / "database" / "seed.sql")
            logger.info("demo seed ready")

    roster = None
    if backend == "memory":
        rosters = parse_rosters(str(getattr(settings, "MEMORY_ROSTERS", "")))
        if not rosters:
            logger.warning("memory backend has no MEMORY_ROSTERS; sessions will open with no students")
        roster = StaticRosterProvider(rosters=rosters)

    return build_container(
        db_config=db_config,
        backend=backend,
        roster=roster,
        close_max_attempts=int(getattr(settings, "CLOSE_MAX_ATTEMPTS", 3)),
        reject_duplicates=bool(getattr(settings, "REJECT_DUPLICATE_SESSIONS", False)),
    )
