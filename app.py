# app.py

import logging
import os

from dotenv import load_dotenv
from flask import Flask
from sqlalchemy import event

# Load environment variables from .env file first
load_dotenv()

from config import DevelopmentConfig, ProductionConfig, TestingConfig  # noqa: E402
from config.monitoring import (  # noqa: E402
    DevelopmentMonitoringConfig,
    ProductionMonitoringConfig,
    TestingMonitoringConfig,
)
from config.validation import validate_and_exit  # noqa: E402
from irshad_admin.cli import register_cli  # noqa: E402
from irshad_admin.models import db  # noqa: E402
from irshad_admin.routes import init_routes  # noqa: E402
from irshad_admin.utils.logging_config import setup_logging  # noqa: E402

logger = logging.getLogger(__name__)

app = Flask(__name__)

flask_env = os.environ.get("FLASK_ENV", "development")
if flask_env == "production":
    validate_and_exit(flask_env)

if flask_env == "production":
    app.config.from_object(ProductionConfig)
    app.config.from_object(ProductionMonitoringConfig)
elif flask_env == "testing":
    app.config.from_object(TestingConfig)
    app.config.from_object(TestingMonitoringConfig)
else:
    app.config.from_object(DevelopmentConfig)
    app.config.from_object(DevelopmentMonitoringConfig)

db.init_app(app)
setup_logging(app)


def _configure_sqlite_connection_factory(*, in_memory: bool):
    """Return a connection hook applying SQLite pragmas."""

    def _configure_sqlite_connection(dbapi_connection, connection_record):  # pragma: no cover - instrumentation
        try:
            cursor = dbapi_connection.cursor()
            if not in_memory:
                cursor.execute("PRAGMA journal_mode=WAL")
                cursor.execute("PRAGMA synchronous=NORMAL")
                cursor.execute("PRAGMA busy_timeout=5000")
            # SQLite leaves foreign keys off unless asked
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()
        except Exception as exc:
            logger.warning("Failed to apply SQLite PRAGMAs: %s", exc)

    return _configure_sqlite_connection


with app.app_context():
    engine = db.engine
    if engine.url.drivername.startswith("sqlite"):
        if not getattr(engine, "_sqlite_pragmas_configured", False):
            pragma_hook = _configure_sqlite_connection_factory(in_memory=engine.url.database in (None, "", ":memory:"))
            event.listen(engine, "connect", pragma_hook)
            engine._sqlite_pragmas_configured = True  # type: ignore[attr-defined]
    # Tests manage their own schema
    if not app.config.get("TESTING", False):
        db.create_all()


init_routes(app)
register_cli(app)


if __name__ == "__main__":
    port = int(os.environ.get("PORT", 5000))
    app.run(host="0.0.0.0", port=port)
