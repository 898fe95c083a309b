# utils/errors.py
import logging

from flask import jsonify
from sqlalchemy.exc import IntegrityError
from werkzeug.exceptions import HTTPException

from configs import db

log = logging.getLogger(__name__)


class AppError(Exception):
    """Business rule failure surfaced to the caller as a JSON error."""

    status_code = 400
    code = "APP_ERROR"

    def __init__(self, message: str, **context):
        super().__init__(message)
        self.message = message
        self.context = {k: v for k, v in context.items() if v is not None}

    def to_dict(self) -> dict:
        payload = {"success": False, "code": self.code, "message": self.message}
        if self.context:
            payload["context"] = self.context
        return payload


class ValidationError(AppError, ValueError):
    status_code = 400
    code = "VALIDATION_ERROR"


class NotFound(AppError):
    status_code = 404
    code = "NOT_FOUND"

    def __init__(self, entity: str, entity_id=None, **context):
        msg = f"{entity} not found" if entity_id is None else f"{entity} #{entity_id} not found"
        super().__init__(msg, entity=entity, entity_id=entity_id, **context)


class Forbidden(AppError):
    status_code = 403
    code = "FORBIDDEN"


class Conflict(AppError):
    status_code = 409
    code = "CONFLICT"


class InvalidTransition(Conflict):
    code = "INVALID_TRANSITION"

    def __init__(self, request_id, current_status, attempted: str, message: str | None = None):
        status = getattr(current_status, "value", current_status)
        super().__init__(
            message or f"Request #{request_id} in status {status} does not allow {attempted}",
            request_id=request_id,
            current_status=status,
            attempted=attempted,
        )


class OverIssue(Conflict):
    code = "OVER_ISSUE"


class InsufficientStock(Conflict):
    code = "INSUFFICIENT_STOCK"


class ImmutableRecord(Conflict):
    code = "IMMUTABLE_RECORD"


def register_error_handlers(app):
    @app.errorhandler(AppError)
    def handle_app_error(err: AppError):
        db.session.rollback()
        log.warning("%s: %s %s", err.code, err.message, err.context or "")
        return jsonify(err.to_dict()), err.status_code

    @app.errorhandler(IntegrityError)
    def handle_integrity_error(err: IntegrityError):
        db.session.rollback()
        log.warning("integrity error: %s", err.orig)
        return (
            jsonify(
                {
                    "success": False,
                    "code": Conflict.code,
                    "message": "Resource already exists or references a missing record",
                }
            ),
            409,
        )

    @app.errorhandler(HTTPException)
    def handle_http_error(err: HTTPException):
        return (
            jsonify({"success": False, "code": err.name.upper().replace(" ", "_"), "message": err.description}),
            err.code,
        )

    @app.errorhandler(Exception)
    def handle_unexpected(err: Exception):
        db.session.rollback()
        log.exception("unhandled error")
        return jsonify({"success": False, "code": "INTERNAL_ERROR", "message": "Internal server error"}), 500
