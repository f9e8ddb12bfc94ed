# config/base.py
import os


def _coerce_bool(value, default=False):
    """Convert environment-style truthy/falsey values to bool."""
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    value_str = str(value).strip().lower()
    if value_str in {"1", "true", "yes", "on"}:
        return True
    if value_str in {"0", "false", "no", "off"}:
        return False
    return default


def _coerce_float(value, default):
    if value is None or str(value).strip() == "":
        return default
    try:
        return float(value)
    except ValueError:
        return default


class Config:
    # SECRET_KEY must come from the environment in production
    _flask_env = os.environ.get("FLASK_ENV", "development")
    _is_testing = _flask_env == "testing"
    _is_production = _flask_env == "production"

    SECRET_KEY = os.environ.get("SECRET_KEY")

    if not SECRET_KEY and _is_production:
        raise ValueError(
            "SECRET_KEY environment variable is required in production. "
            'Generate with: python -c "import secrets; print(secrets.token_hex(32))"'
        )

    if not SECRET_KEY and not _is_testing:
        import warnings

        warnings.warn(
            "SECRET_KEY not set. Using default for development only. "
            "Set SECRET_KEY before deploying.",
            UserWarning,
        )
        SECRET_KEY = "dev-secret-key-change-in-production"

    if not SECRET_KEY:
        SECRET_KEY = "test-secret-key-placeholder"

    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ENGINE_OPTIONS = {}

    # The admin API speaks JSON; forms disable CSRF per-class
    WTF_CSRF_ENABLED = False
    JSON_SORT_KEYS = False

    ORG_NAME = os.environ.get("ORG_NAME", "Irshad Center")

    # Stripe: one account per program
    STRIPE_SECRET_KEY_MAHAD = os.environ.get("STRIPE_SECRET_KEY_MAHAD")
    STRIPE_SECRET_KEY_DUGSI = os.environ.get("STRIPE_SECRET_KEY_DUGSI")
    STRIPE_WEBHOOK_SECRET_MAHAD = os.environ.get("STRIPE_WEBHOOK_SECRET_MAHAD")
    STRIPE_WEBHOOK_SECRET_DUGSI = os.environ.get("STRIPE_WEBHOOK_SECRET_DUGSI")

    # WhatsApp Cloud API
    WHATSAPP_PHONE_NUMBER_ID = os.environ.get("WHATSAPP_PHONE_NUMBER_ID")
    WHATSAPP_ACCESS_TOKEN = os.environ.get("WHATSAPP_ACCESS_TOKEN")
    WHATSAPP_APP_SECRET = os.environ.get("WHATSAPP_APP_SECRET")
    WHATSAPP_VERIFY_TOKEN = os.environ.get("WHATSAPP_VERIFY_TOKEN")
    WHATSAPP_API_VERSION = os.environ.get("WHATSAPP_API_VERSION", "v21.0")
    WHATSAPP_API_BASE_URL = os.environ.get("WHATSAPP_API_BASE_URL", "https://graph.facebook.com")
    WHATSAPP_DUPLICATE_WINDOW_HOURS = _coerce_float(os.environ.get("WHATSAPP_DUPLICATE_WINDOW_HOURS"), 1)
    WHATSAPP_BULK_DELAY_SECONDS = _coerce_float(os.environ.get("WHATSAPP_BULK_DELAY_SECONDS"), 0.1)

    # Teacher check-in geofence around the center
    CENTER_LAT = _coerce_float(os.environ.get("CENTER_LAT"), 44.9756)
    CENTER_LNG = _coerce_float(os.environ.get("CENTER_LNG"), -93.2664)
    GEOFENCE_RADIUS_METERS = _coerce_float(os.environ.get("GEOFENCE_RADIUS_METERS"), 50)


class DevelopmentConfig(Config):
    DEBUG = True
    _config_dir = os.path.dirname(os.path.abspath(__file__))
    _project_root = os.path.dirname(_config_dir)
    instance_path = os.path.join(_project_root, "instance")

    if not os.path.exists(instance_path):
        os.makedirs(instance_path, exist_ok=True)

    # SQLite URIs need forward slashes on Windows
    db_path = os.path.join(instance_path, "irshad_dev.db").replace("\\", "/")
    db_uri = f"sqlite:///{db_path}"

    SQLALCHEMY_DATABASE_URI = os.environ.get("DATABASE_URL", db_uri)
    SQLALCHEMY_ECHO = _coerce_bool(os.environ.get("SQLALCHEMY_ECHO"), default=False)
    if SQLALCHEMY_DATABASE_URI.startswith("sqlite"):
        SQLALCHEMY_ENGINE_OPTIONS = {
            "connect_args": {
                "check_same_thread": False,
                "timeout": 5,
            }
        }


class TestingConfig(Config):
    TESTING = True
    SECRET_KEY = os.environ.get("SECRET_KEY", "test-secret-key-for-testing-only")
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    SQLALCHEMY_ECHO = False
    SQLALCHEMY_ENGINE_OPTIONS = {
        "connect_args": {
            "check_same_thread": False,
            "timeout": 5,
        }
    }
    STRIPE_SECRET_KEY_MAHAD = "sk_test_mahad"
    STRIPE_SECRET_KEY_DUGSI = "sk_test_dugsi"
    STRIPE_WEBHOOK_SECRET_MAHAD = "whsec_test_mahad"
    STRIPE_WEBHOOK_SECRET_DUGSI = "whsec_test_dugsi"
    WHATSAPP_PHONE_NUMBER_ID = "1234567890"
    WHATSAPP_ACCESS_TOKEN = "test-access-token"
    WHATSAPP_APP_SECRET = "test-app-secret"
    WHATSAPP_VERIFY_TOKEN = "test-verify-token"
    WHATSAPP_BULK_DELAY_SECONDS = 0
    CENTER_LAT = 44.9756
    CENTER_LNG = -93.2664
    GEOFENCE_RADIUS_METERS = 50


class ProductionConfig(Config):
    DEBUG = False
    uri = os.environ.get("DATABASE_URL")
    if uri and uri.startswith("postgres://"):
        uri = uri.replace("postgres://", "postgresql://", 1)
    SQLALCHEMY_DATABASE_URI = uri
    SQLALCHEMY_ECHO = False
    SESSION_COOKIE_SECURE = True
