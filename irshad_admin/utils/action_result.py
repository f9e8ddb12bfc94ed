# irshad_admin/utils/action_result.py
"""
Uniform result shape for mutating endpoints and the mapping from raised
exceptions to user-facing messages.

Endpoints never let an exception reach the client; they return
``{"success": bool, "data"?, "error"?, "errors"?}`` with a matching status.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

import stripe
from flask import jsonify
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm.exc import NoResultFound

logger = logging.getLogger(__name__)

GENERIC_ERROR_MESSAGE = "An unexpected error occurred. Please try again."
UNIQUE_VIOLATION_MESSAGE = "A record with this information already exists"
FOREIGN_KEY_MESSAGE = "Related record not found"
NOT_FOUND_MESSAGE = "Record not found"
DATABASE_ERROR_MESSAGE = "A database error occurred"


class NotFoundError(ValueError):
    """Raised by services when a referenced record does not exist"""


class FieldValidationError(ValueError):
    """Raised when submitted data fails field-level validation"""

    def __init__(self, errors: dict[str, list[str]], message: str = "Validation failed"):
        super().__init__(message)
        self.errors = errors


@dataclass
class ActionResult:
    success: bool
    data: Any = None
    error: str | None = None
    errors: dict[str, list[str]] | None = None
    status_code: int = 200

    @classmethod
    def ok(cls, data=None, status_code=200) -> "ActionResult":
        return cls(success=True, data=data, status_code=status_code)

    @classmethod
    def fail(cls, error, status_code=400, errors=None) -> "ActionResult":
        return cls(success=False, error=error, errors=errors, status_code=status_code)

    @classmethod
    def invalid(cls, errors, message="Validation failed") -> "ActionResult":
        return cls(success=False, error=message, errors=errors, status_code=400)

    def to_dict(self) -> dict:
        payload: dict[str, Any] = {"success": self.success}
        if self.data is not None:
            payload["data"] = self.data
        if self.error is not None:
            payload["error"] = self.error
        if self.errors:
            payload["errors"] = self.errors
        return payload

    def to_response(self):
        return jsonify(self.to_dict()), self.status_code


def _integrity_message(exc: IntegrityError) -> str:
    detail = str(getattr(exc, "orig", exc)).lower()
    if "unique" in detail or "duplicate key" in detail:
        return UNIQUE_VIOLATION_MESSAGE
    if "foreign key" in detail:
        return FOREIGN_KEY_MESSAGE
    return DATABASE_ERROR_MESSAGE


def handle_action_error(exc: Exception, context: str = "action") -> ActionResult:
    """Translate an exception raised inside an endpoint into an ActionResult."""

    if isinstance(exc, FieldValidationError):
        return ActionResult.invalid(exc.errors, str(exc))
    if isinstance(exc, NotFoundError):
        return ActionResult.fail(str(exc), status_code=404)
    if isinstance(exc, ValueError):
        return ActionResult.fail(str(exc))
    if isinstance(exc, NoResultFound):
        return ActionResult.fail(NOT_FOUND_MESSAGE, status_code=404)
    if isinstance(exc, IntegrityError):
        logger.warning(f"Integrity error during {context}: {exc.orig}")
        message = _integrity_message(exc)
        return ActionResult.fail(message, status_code=409 if message == UNIQUE_VIOLATION_MESSAGE else 400)
    if isinstance(exc, stripe.StripeError):
        logger.error(f"Stripe error during {context}: {exc}", exc_info=True)
        detail = getattr(exc, "user_message", None) or str(exc)
        return ActionResult.fail(f"Payment provider error: {detail}", status_code=502)
    if isinstance(exc, SQLAlchemyError):
        logger.error(f"Database error during {context}: {exc}", exc_info=True)
        return ActionResult.fail(DATABASE_ERROR_MESSAGE, status_code=500)

    logger.error(f"Unexpected error during {context}: {exc}", exc_info=True)
    return ActionResult.fail(GENERIC_ERROR_MESSAGE, status_code=500)
