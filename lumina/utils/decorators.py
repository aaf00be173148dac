# ------- lumina/utils/decorators.py -------
from functools import wraps
from flask import request

from ..errors import ValidationError


def read_json(force: bool = False) -> dict:
    # force=True also reads sendBeacon bodies posted as text/plain
    data = request.get_json(silent=True, force=force)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError("request body must be a JSON object")
    return data


def validate_body(schema, force: bool = False):
    """Parse the JSON body into ``schema`` and pass it to the view as ``body``."""
    def decorator(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            body = schema.model_validate(read_json(force=force))
            return fn(*args, body=body, **kwargs)
        return wrapper
    return decorator
