from flask import jsonify, current_app, request
from werkzeug.exceptions import HTTPException
from marshmallow import ValidationError
from sqlalchemy.exc import IntegrityError
import logging

from models.schemas.common import flatten_errors
from services.errors import ServiceError

logger = logging.getLogger(__name__)

HTTP_CODES = {
    400: "BAD_REQUEST",
    401: "UNAUTHENTICATED",
    403: "FORBIDDEN",
    404: "NOT_FOUND",
    405: "METHOD_NOT_ALLOWED",
    409: "CONFLICT",
    415: "UNSUPPORTED_MEDIA_TYPE",
    422: "VALIDATION_ERROR",
    423: "ACCOUNT_LOCKED",
}


def error_response(error: str, message: str, status: int, errors: list | None = None, details: dict | None = None):
    payload = {"success": False, "error": error, "message": message}
    if errors:
        payload["errors"] = errors
    if details:
        payload["details"] = details
    return jsonify(payload), status


def _log(status: int, message: str, exc: Exception | None = None):
    level = logging.ERROR if status >= 500 else logging.WARNING if status >= 400 else logging.INFO
    logger.log(
        level, "%s %s -> %d %s", request.method, request.path, status, message,
        exc_info=exc if status >= 500 else None,
    )


def register_error_handlers(app):
    @app.errorhandler(ServiceError)
    def handle_service_error(err: ServiceError):
        _log(err.status_code, err.message)
        return error_response(err.code, err.message, err.status_code, errors=err.errors)

    # Marshmallow validation errors map to 422
    @app.errorhandler(ValidationError)
    def handle_validation_error(err: ValidationError):
        errors = flatten_errors(err.messages)
        _log(422, "Validation failed")
        return error_response("VALIDATION_ERROR", "Validation failed", 422, errors=errors)

    # Integrity errors (unique constraints, FK violations, check constraints)
    @app.errorhandler(IntegrityError)
    def handle_integrity_error(err: IntegrityError):
        message = str(getattr(err, "orig", err))
        lower_msg = message.lower()
        _log(409, message)
        details = {"db_error": message} if current_app.debug else None
        if "unique constraint" in lower_msg or "unique violation" in lower_msg:
            return error_response("CONFLICT", "Unique constraint violated.", 409, details=details)
        if "foreign key" in lower_msg:
            return error_response("CONFLICT", "Record is still referenced.", 409, details=details)
        return error_response("BAD_REQUEST", "Integrity error.", 400, details=details)

    # Werkzeug HTTPExceptions (404 routes, 405, malformed JSON) map to their status codes
    @app.errorhandler(HTTPException)
    def handle_http_exception(err: HTTPException):
        status = err.code or 400
        message = err.description or err.name
        if status == 404:
            message = f"Route {request.path} not found"
        _log(status, message)
        return error_response(HTTP_CODES.get(status, "BAD_REQUEST"), message, status)

    # 500 Internal Error (catch-all)
    @app.errorhandler(Exception)
    def internal_error(err: Exception):
        _log(500, "Unhandled exception", err)
        # In dev, include exception details to speed up debugging
        details = None
        if current_app.debug:
            details = {"type": err.__class__.__name__, "message": str(err)}
        return error_response("INTERNAL_ERROR", "An unexpected error occurred", 500, details=details)
