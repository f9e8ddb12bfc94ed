# irshad_admin/utils/logging_config.py
"""
Logging setup driven by the monitoring configuration keys.
"""

import json
import logging
import os
from logging.handlers import RotatingFileHandler

from config.monitoring import INTEGRATION_LOGGERS

TEXT_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


class JsonFormatter(logging.Formatter):
    """Render log records as single-line JSON documents"""

    def __init__(self, app_name=None):
        super().__init__()
        self.app_name = app_name

    def format(self, record):
        payload = {
            "timestamp": self.formatTime(record, "%Y-%m-%dT%H:%M:%S"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "line": record.lineno,
        }
        if self.app_name:
            payload["app"] = self.app_name
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


def _build_formatter(app):
    if str(app.config.get("LOG_FORMAT", "json")).lower() == "json":
        return JsonFormatter(app.config.get("APP_NAME"))
    return logging.Formatter(TEXT_FORMAT)


def setup_logging(app):
    """
    Configure ``app.logger`` and the package logger.

    Safe to call more than once: handlers installed by a previous call are
    replaced so tests can re-initialize with a different LOG_LEVEL.
    """
    level_name = str(app.config.get("LOG_LEVEL", "INFO")).upper()
    level = getattr(logging, level_name, logging.INFO)
    formatter = _build_formatter(app)

    handlers = []
    if app.config.get("ENABLE_CONSOLE_LOGGING", True):
        console = logging.StreamHandler()
        console.setFormatter(formatter)
        handlers.append(console)

    if app.config.get("ENABLE_FILE_LOGGING", False):
        log_dir = app.config.get("LOG_DIR", "logs")
        try:
            os.makedirs(log_dir, exist_ok=True)
            file_handler = RotatingFileHandler(
                os.path.join(log_dir, app.config.get("LOG_FILE_NAME", "irshad_admin.log")),
                maxBytes=int(app.config.get("LOG_FILE_MAX_BYTES", 5242880)),
                backupCount=int(app.config.get("LOG_FILE_BACKUP_COUNT", 5)),
            )
            file_handler.setFormatter(formatter)
            handlers.append(file_handler)
        except OSError as e:
            app.logger.warning(f"File logging disabled, cannot open log directory {log_dir}: {e}")

    for logger in (app.logger, logging.getLogger("irshad_admin")):
        for handler in list(logger.handlers):
            if getattr(handler, "_irshad_handler", False):
                logger.removeHandler(handler)
                handler.close()
        for handler in handlers:
            handler._irshad_handler = True
            logger.addHandler(handler)
        logger.setLevel(level)

    logging.getLogger("irshad_admin").propagate = False

    integration_level = str(app.config.get("INTEGRATION_LOG_LEVEL", "WARNING")).upper()
    for name in INTEGRATION_LOGGERS:
        logging.getLogger(name).setLevel(getattr(logging, integration_level, logging.WARNING))

    app.logger.debug(f"Logging configured at {level_name}")
