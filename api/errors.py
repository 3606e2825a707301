"""
Error taxonomy and the Flask handlers that render it.
Clients only ever see a stable code, a fixed human message, the
correlation id and a timestamp; underlying exception text stays in the logs.
"""
import logging

from flask import current_app
from werkzeug.exceptions import HTTPException
from marshmallow import ValidationError
from sqlalchemy.exc import SQLAlchemyError

from api.responses import error_response
from utils.cookies import clear_refresh_cookie

logger = logging.getLogger(__name__)


class AppError(Exception):
    code = "INTERNAL_ERROR"
    status = 500
    message = "An unexpected error occurred"

    def __init__(self, message: str | None = None, *, clear_cookie: bool = False):
        super().__init__(message or self.message)
        if message:
            self.message = message
        self.clear_cookie = clear_cookie


class BadRequest(AppError):
    code = "BAD_REQUEST"
    status = 400
    message = "Bad request"


class InvalidCredentials(AppError):
    code = "INVALID_CREDENTIALS"
    status = 401
    message = "Invalid email or password"


class Unauthorized(AppError):
    code = "UNAUTHORIZED"
    status = 401
    message = "Authentication required"


class Forbidden(AppError):
    code = "FORBIDDEN"
    status = 403
    message = "Insufficient role"


class RequestTimeout(AppError):
    code = "TIMEOUT"
    status = 504
    message = "Request timed out"


class DatabaseError(AppError):
    code = "DATABASE_ERROR"
    status = 500
    message = "Database operation failed"


HTTP_CODES = {
    400: "BAD_REQUEST",
    401: "UNAUTHORIZED",
    403: "FORBIDDEN",
    404: "NOT_FOUND",
    405: "METHOD_NOT_ALLOWED",
    413: "BAD_REQUEST",
    415: "BAD_REQUEST",
}


def render_app_error(err: AppError):
    body, status = error_response(err.code, err.message, err.status)
    if err.status == 401:
        body.headers["WWW-Authenticate"] = "Bearer"
    if err.clear_cookie:
        clear_refresh_cookie(body, secure=current_app.config.get("COOKIE_SECURE", False))
    return body, status


def register_error_handlers(app):
    @app.errorhandler(AppError)
    def handle_app_error(err: AppError):
        if err.status >= 500:
            logger.error("request failed: %s", err.code, exc_info=err.__cause__ or err)
        else:
            logger.info("request rejected: %s (%s)", err.code, err)
        return render_app_error(err)

    # Marshmallow validation errors are request-shape problems
    @app.errorhandler(ValidationError)
    def handle_validation_error(err: ValidationError):
        logger.info("validation failed: %s", err.messages)
        return error_response("BAD_REQUEST", "Invalid input", 400)

    @app.errorhandler(SQLAlchemyError)
    def handle_db_error(err: SQLAlchemyError):
        logger.exception("database error", exc_info=err)
        return render_app_error(DatabaseError())

    # Werkzeug HTTPExceptions map to their status codes; 413 and unsupported
    # media types are plain bad requests
    @app.errorhandler(HTTPException)
    def handle_http_exception(err: HTTPException):
        status = err.code or 400
        if status in (413, 415):
            status = 400
        code = HTTP_CODES.get(err.code, "BAD_REQUEST" if status < 500 else "INTERNAL_ERROR")
        return error_response(code, err.name if status != 400 else "Bad request", status)

    # 500 Internal Error (catch-all)
    @app.errorhandler(Exception)
    def internal_error(err: Exception):
        logger.exception("Unhandled exception", exc_info=err)
        return error_response("INTERNAL_ERROR", "An unexpected error occurred", 500)
