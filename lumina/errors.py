# lumina/errors.py
"""
Error taxonomy shared by services and routes.

Services raise these; the handlers registered in ``register_error_handlers``
turn them into the standard ``api_error`` envelope with the class status code.
"""
from flask import jsonify, current_app
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.exc import SQLAlchemyError

from .utils.api import api_error


class LuminaError(Exception):
    status_code = 400
    message = "Request failed"

    def __init__(self, message: str | None = None, data: dict | None = None):
        super().__init__(message or self.message)
        self.message = message or self.message
        self.data = data


class ValidationError(LuminaError):
    status_code = 422
    message = "Invalid request"


class NotFoundError(LuminaError):
    status_code = 404
    message = "Not found"


class InactiveOrExpiredError(LuminaError):
    status_code = 400


class CouponInactiveError(InactiveOrExpiredError):
    message = "This coupon is not active"


class CouponExpiredError(InactiveOrExpiredError):
    message = "This coupon has expired"


class SessionClosedError(LuminaError):
    status_code = 409
    message = "Checkout session already ended"


class CourierError(LuminaError):
    status_code = 502
    message = "Courier request failed"


class StorageError(LuminaError):
    status_code = 500
    message = "Storage operation failed"


def _pydantic_message(e: PydanticValidationError) -> str:
    first = e.errors()[0] if e.errors() else {}
    loc = ".".join(str(p) for p in first.get("loc", ()) if p != "__root__")
    msg = first.get("msg", "invalid value")
    if msg.startswith("Value error, "):
        msg = msg[len("Value error, "):]
    return f"{loc}: {msg}" if loc else msg


def register_error_handlers(app):
    @app.errorhandler(LuminaError)
    def handle_lumina_error(e: LuminaError):
        r = jsonify(api_error(e.message, e.data))
        r.status_code = e.status_code
        return r

    @app.errorhandler(PydanticValidationError)
    def handle_payload_error(e: PydanticValidationError):
        r = jsonify(api_error(_pydantic_message(e)))
        r.status_code = 422
        return r

    @app.errorhandler(SQLAlchemyError)
    def handle_storage_error(e: SQLAlchemyError):
        from .extensions import db
        db.session.rollback()
        current_app.logger.exception("unhandled storage error")
        r = jsonify(api_error("Storage operation failed"))
        r.status_code = 500
        return r
