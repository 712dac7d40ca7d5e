from functools import wraps
from flask import abort, jsonify, request
from flask_login import current_user

_ERROR_NAMES = {401: "unauthorized", 403: "forbidden", 404: "not_found"}


def require_login(fn):
    @wraps(fn)
    def _wrap(*args, **kwargs):
        if not getattr(current_user, "is_authenticated", False):
            return _abort_smart(401)
        if not getattr(current_user, "is_active", False):
            return _abort_smart(403)
        return fn(*args, **kwargs)
    return _wrap


def wants_json() -> bool:
    accept = (request.headers.get("Accept") or "").lower()
    return (
        "application/json" in accept
        or request.is_json
        or request.path.endswith(".json")
    )


def _abort_smart(code: int):
    # If the client asked for JSON, return a JSON-shaped error
    if wants_json():
        return jsonify({"error": _ERROR_NAMES[code], "code": code}), code
    abort(code)
