from flask import jsonify, current_app
from werkzeug.exceptions import HTTPException
from marshmallow import ValidationError
import logging

from models.db_storage import StoreError
from utils.errors import AccountError, ErrorKind

logger = logging.getLogger(__name__)

# Status code -> error kind for plain werkzeug errors (abort(), routing)
HTTP_KINDS = {
    400: ErrorKind.VALIDATION_ERROR.value,
    401: ErrorKind.UNAUTHORIZED.value,
    404: ErrorKind.NOT_FOUND.value,
    409: ErrorKind.CONFLICT.value,
    413: "PAYLOAD_TOO_LARGE",
    405: "METHOD_NOT_ALLOWED",
}


def error_response(error: str, message: str, status: int, details: dict | None = None):
    payload = {"error": error, "message": message, "status": status}
    if details:
        payload["details"] = details
    return jsonify(payload), status


def register_error_handlers(app):
    # Account failures raised by the session core carry their own kind and status
    @app.errorhandler(AccountError)
    def handle_account_error(err: AccountError):
        if err.status >= 500:
            logger.error("Account operation failed: %s", err.message)
        return error_response(err.kind.value, err.message, err.status, details=err.details)

    # Marshmallow validation errors map to 400
    @app.errorhandler(ValidationError)
    def handle_validation_error(err: ValidationError):
        # err.messages contains field-level details
        messages = err.messages if isinstance(err.messages, dict) else {"_schema": err.messages}
        return error_response(ErrorKind.VALIDATION_ERROR.value, "Invalid input", 400, details=messages)

    # Store failures are already logged with their traceback in DBStorage
    @app.errorhandler(StoreError)
    def handle_store_error(err: StoreError):
        return error_response(ErrorKind.INTERNAL.value, "Something went wrong while talking to the store", 500)

    # 404 Not Found
    @app.errorhandler(404)
    def not_found(e):
        return error_response(ErrorKind.NOT_FOUND.value, "Resource not found", 404)

    # Werkzeug HTTPExceptions map to their status codes
    @app.errorhandler(HTTPException)
    def handle_http_exception(err: HTTPException):
        code = err.code or 400
        return error_response(HTTP_KINDS.get(code, "HTTP_ERROR"), err.description, code)

    # 500 Internal Error (catch-all)
    @app.errorhandler(Exception)
    def internal_error(err: Exception):
        logger.exception("Unhandled exception", exc_info=err)
        details = None
        # In dev, include exception details to speed up debugging
        if current_app and current_app.debug:
            details = {"type": err.__class__.__name__, "message": str(err)}
        return error_response(ErrorKind.INTERNAL.value, "An unexpected error occurred", 500, details=details)
