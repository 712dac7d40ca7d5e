import logging

from flask import request, jsonify
from flask_login import login_user, logout_user, current_user
from sqlalchemy import func
from csat.extensions import db, limiter
from csat.models.user import User
from . import bp

logger = logging.getLogger(__name__)


def _payload():
    return (request.get_json(silent=True) or {}) if request.is_json else request.form


def _login_email_scope():
    email = (_payload().get("email") or "").strip().lower()
    # Keep a stable scope even if email is blank
    return f"login-email:{email or 'missing'}"


@bp.get("/me")
def me():
    if not current_user.is_authenticated:
        return jsonify(ok=True, authenticated=False)
    return jsonify(
        ok=True,
        authenticated=True,
        user={"id": current_user.id, "email": current_user.email, "name": current_user.name},
    )


@bp.post("/login")
@limiter.limit("10 per minute; 100 per hour")              # per-IP (anon -> IP via _rate_limit_key)
@limiter.limit("5 per minute; 20 per hour", key_func=_login_email_scope)  # per-account
def login_post():
    data = _payload()
    email = (data.get("email") or "").strip()
    password = data.get("password") or ""

    if not email or not password:
        return jsonify(ok=False, errors={"general": "Email and password are required"}), 400

    user = db.session.execute(
        db.select(User).where(func.lower(User.email) == func.lower(email))
    ).scalar_one_or_none()

    if not user or not user.check_password(password) or not user.is_active:
        logger.info("Failed login for %s", email.lower())
        return jsonify(ok=False, errors={"general": "Invalid credentials"}), 400

    remember = str(data.get("remember") or "").lower() in ("1", "true", "on", "yes")
    login_user(user, remember=remember)
    return jsonify(ok=True, user={"id": user.id, "email": user.email, "name": user.name})


@bp.post("/logout")
def logout_post():
    if current_user.is_authenticated:
        logout_user()
    return jsonify(ok=True)
