# tests/test_config.py
"""
Tests for environment validation, app configuration and logging setup
"""

import json
import logging

import pytest
from flask import Flask

from config.base import _coerce_bool, _coerce_float
from config.validation import STRIPE_SETTINGS, WHATSAPP_SETTINGS, validate_and_exit, validate_environment
from irshad_admin.utils.logging_config import JsonFormatter, setup_logging


def _production_env(**overrides):
    env = {
        "SECRET_KEY": "a" * 64,
        "DATABASE_URL": "postgresql://localhost/irshad",
        **{setting: "set" for setting in STRIPE_SETTINGS},
    }
    env.update(overrides)
    return env


class TestValidateEnvironment:
    """Production startup checks"""

    def test_non_production_always_valid(self):
        assert validate_environment("development", environ={}) == (True, [])

    def test_complete_production_env(self):
        assert validate_environment("production", environ=_production_env()) == (True, [])

    def test_flask_env_read_from_environ(self):
        is_valid, errors = validate_environment(environ={"FLASK_ENV": "production"})
        assert is_valid is False
        assert any(e.startswith("SECRET_KEY") for e in errors)
        assert any(e.startswith("DATABASE_URL") for e in errors)
        assert len([e for e in errors if "subscription billing" in e]) == len(STRIPE_SETTINGS)

    def test_placeholder_secret_rejected(self):
        is_valid, errors = validate_environment("production", environ=_production_env(SECRET_KEY="your-secret-key"))
        assert is_valid is False
        assert "must not be the default value" in errors[0]

    def test_partial_whatsapp_configuration(self):
        env = _production_env(WHATSAPP_PHONE_NUMBER_ID="123", WHATSAPP_ACCESS_TOKEN="tok")
        is_valid, errors = validate_environment("production", environ=env)
        assert is_valid is False
        assert errors == [
            "WHATSAPP_APP_SECRET is required when WhatsApp messaging is configured",
            "WHATSAPP_VERIFY_TOKEN is required when WhatsApp messaging is configured",
        ]

    def test_full_whatsapp_configuration(self):
        env = _production_env(**{setting: "x" for setting in WHATSAPP_SETTINGS})
        assert validate_environment("production", environ=env) == (True, [])

    def test_validate_and_exit(self, monkeypatch, capsys):
        for key in ("SECRET_KEY", "DATABASE_URL", *STRIPE_SETTINGS):
            monkeypatch.delenv(key, raising=False)
        with pytest.raises(SystemExit) as exc_info:
            validate_and_exit("production")
        assert exc_info.value.code == 1
        assert "ENVIRONMENT VALIDATION FAILED" in capsys.readouterr().err


class TestCoercion:
    @pytest.mark.parametrize("value,expected", [("yes", True), ("0", False), ("maybe", False), (None, False)])
    def test_bool(self, value, expected):
        assert _coerce_bool(value) is expected

    def test_float(self):
        assert _coerce_float("75", 50) == 75.0
        assert _coerce_float("", 50) == 50
        assert _coerce_float("far", 50) == 50


def test_testing_config_is_loaded(app):
    assert app.config["TESTING"] is True
    assert app.config["SQLALCHEMY_DATABASE_URI"] == "sqlite:///:memory:"
    assert app.config["STRIPE_SECRET_KEY_DUGSI"] == "sk_test_dugsi"
    assert app.config["GEOFENCE_RADIUS_METERS"] == 50


class TestLogging:
    def test_json_formatter(self):
        record = logging.LogRecord("irshad_admin.test", logging.INFO, __file__, 10, "hello %s", ("world",), None)
        payload = json.loads(JsonFormatter("irshad-admin").format(record))
        assert payload["message"] == "hello world"
        assert payload["level"] == "INFO"
        assert payload["app"] == "irshad-admin"

    def test_setup_logging_replaces_handlers(self):
        app = Flask("logging-test")
        app.config.update(LOG_LEVEL="debug", LOG_FORMAT="json", ENABLE_CONSOLE_LOGGING=True, ENABLE_FILE_LOGGING=False)

        setup_logging(app)
        setup_logging(app)

        ours = [h for h in app.logger.handlers if getattr(h, "_irshad_handler", False)]
        assert len(ours) == 1
        assert isinstance(ours[0].formatter, JsonFormatter)
        assert app.logger.level == logging.DEBUG

    def test_file_logging(self, tmp_path):
        app = Flask("file-logging-test")
        app.config.update(
            LOG_LEVEL="INFO", LOG_FORMAT="text", ENABLE_CONSOLE_LOGGING=False, ENABLE_FILE_LOGGING=True, LOG_DIR=str(tmp_path)
        )
        setup_logging(app)
        app.logger.info("written to disk")
        for handler in app.logger.handlers:
            handler.flush()
        assert "written to disk" in (tmp_path / "irshad_admin.log").read_text()

    def test_integration_loggers_quieted(self):
        app = Flask("integration-logging-test")
        app.config.update(ENABLE_CONSOLE_LOGGING=False, INTEGRATION_LOG_LEVEL="error")
        setup_logging(app)
        assert logging.getLogger("stripe").level == logging.ERROR
        assert logging.getLogger("urllib3").level == logging.ERROR
