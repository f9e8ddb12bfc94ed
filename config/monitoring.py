# config/monitoring.py

import os

# Loggers of the payment and HTTP client libraries; kept quieter than our own
INTEGRATION_LOGGERS = ("stripe", "urllib3")


class MonitoringConfig:
    """Logging configuration consumed by ``setup_logging``"""

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")
    LOG_FORMAT = os.environ.get("LOG_FORMAT", "json")  # 'json' or 'text'
    LOG_DIR = os.environ.get("LOG_DIR", "logs")
    LOG_FILE_NAME = os.environ.get("LOG_FILE_NAME", "irshad_admin.log")
    LOG_FILE_MAX_BYTES = int(os.environ.get("LOG_FILE_MAX_BYTES", 5242880))  # 5MB
    LOG_FILE_BACKUP_COUNT = int(os.environ.get("LOG_FILE_BACKUP_COUNT", 5))

    # Stripe and WhatsApp API chatter; raise to DEBUG when tracing a webhook
    INTEGRATION_LOG_LEVEL = os.environ.get("INTEGRATION_LOG_LEVEL", "WARNING")

    ENABLE_FILE_LOGGING = os.environ.get("ENABLE_FILE_LOGGING", "true").lower() == "true"
    ENABLE_CONSOLE_LOGGING = os.environ.get("ENABLE_CONSOLE_LOGGING", "true").lower() == "true"

    APP_NAME = os.environ.get("APP_NAME", "irshad-admin")


class DevelopmentMonitoringConfig(MonitoringConfig):
    LOG_LEVEL = "DEBUG"
    LOG_FORMAT = "text"
    INTEGRATION_LOG_LEVEL = "INFO"
    ENABLE_FILE_LOGGING = True
    ENABLE_CONSOLE_LOGGING = True


class ProductionMonitoringConfig(MonitoringConfig):
    LOG_FORMAT = "json"
    ENABLE_FILE_LOGGING = False
    ENABLE_CONSOLE_LOGGING = True


class TestingMonitoringConfig(MonitoringConfig):
    LOG_LEVEL = "WARNING"
    LOG_FORMAT = "text"
    ENABLE_FILE_LOGGING = False
    ENABLE_CONSOLE_LOGGING = False
