# config/validation.py

"""
Startup checks for the environment variables a production deploy needs.
"""

import os
import sys
from typing import List, Tuple

STRIPE_SETTINGS = (
    "STRIPE_SECRET_KEY_MAHAD",
    "STRIPE_SECRET_KEY_DUGSI",
    "STRIPE_WEBHOOK_SECRET_MAHAD",
    "STRIPE_WEBHOOK_SECRET_DUGSI",
)

WHATSAPP_SETTINGS = (
    "WHATSAPP_PHONE_NUMBER_ID",
    "WHATSAPP_ACCESS_TOKEN",
    "WHATSAPP_APP_SECRET",
    "WHATSAPP_VERIFY_TOKEN",
)


def validate_environment(flask_env: str = None, environ=None) -> Tuple[bool, List[str]]:
    """
    Validate required environment variables.

    Args:
        flask_env: development, production or testing. Read from FLASK_ENV when None.
        environ: mapping to validate, defaults to ``os.environ``

    Returns:
        Tuple of (is_valid, list_of_errors)
    """
    environ = os.environ if environ is None else environ
    if flask_env is None:
        flask_env = environ.get("FLASK_ENV", "development")

    if flask_env != "production":
        return True, []

    errors = []

    secret_key = environ.get("SECRET_KEY", "")
    if not secret_key or secret_key in {"your-secret-key", "your_secret_key"}:
        errors.append(
            "SECRET_KEY is required in production and must not be the default value. "
            'Generate a secure key: python -c "import secrets; print(secrets.token_hex(32))"'
        )

    if not environ.get("DATABASE_URL"):
        errors.append("DATABASE_URL is required in production. Set it to your PostgreSQL connection string.")

    for setting in STRIPE_SETTINGS:
        if not environ.get(setting):
            errors.append(f"{setting} is required in production for subscription billing")

    # WhatsApp is optional, but a partial configuration is a mistake
    configured = [setting for setting in WHATSAPP_SETTINGS if environ.get(setting)]
    if configured and len(configured) != len(WHATSAPP_SETTINGS):
        for setting in WHATSAPP_SETTINGS:
            if setting not in configured:
                errors.append(f"{setting} is required when WhatsApp messaging is configured")

    return len(errors) == 0, errors


def validate_and_exit(flask_env: str = None) -> None:
    """Validate the environment and exit with status 1 on failure."""
    is_valid, errors = validate_environment(flask_env)

    if not is_valid:
        print("=" * 80, file=sys.stderr)
        print("ENVIRONMENT VALIDATION FAILED", file=sys.stderr)
        print("=" * 80, file=sys.stderr)
        print("\nThe following environment variables are missing or invalid:\n", file=sys.stderr)

        for i, error in enumerate(errors, 1):
            print(f"{i}. {error}", file=sys.stderr)

        print("\n" + "=" * 80, file=sys.stderr)
        print("Please check your .env file or environment variables.", file=sys.stderr)
        print("=" * 80, file=sys.stderr)

        sys.exit(1)
