# --- lumina/utils/api.py ---
from datetime import timedelta
from flask import current_app, jsonify

from .timeutil import utcnow


def _server_time():
    offset = current_app.config.get("API_TZ_OFFSET_HOURS", 6) if current_app else 6
    now = utcnow() + timedelta(hours=offset)
    return now.strftime("%Y-%m-%d %H:%M:%S")


def _payload(data):
    if data is None:
        return {}
    if isinstance(data, dict):
        return dict(data)
    return {"items": data}


def api_ok(message, data=None):
    return {
        "status": True,
        "message": message,
        "data": {
            **_payload(data),
            "API_TIME_HUMAN": _server_time(),
        },
    }


def api_error(message, data=None):
    return {
        "status": False,
        "message": message,
        "data": {
            **_payload(data),
            "API_TIME_HUMAN": _server_time(),
        },
    }


# ---- standard API response format ------------------------------------------
def ok(msg, data=None, status=200):
    r = jsonify(api_ok(msg, data)); r.status_code = status; return r

def err(msg, status=400, data=None):
    r = jsonify(api_error(msg, data)); r.status_code = status; return r
