import os
from flask import Flask, jsonify

# Load .env only for local/dev. In prod, env vars come from the platform.
if os.getenv("APP_ENV", "development") != "production":
    from dotenv import load_dotenv
    load_dotenv(".env", override=False)


from .config import get_config
from .extensions import db, migrate, csrf, login_manager, limiter
from .security import init_security
from .observability import init_logging, init_sentry

def create_app(config_object=None):
    app = Flask(__name__)

    # ---- Rate limiting storage ----
    app_env = (os.getenv("APP_ENV", "development") or "development").lower()
    use_redis = app_env in ("staging", "production")
    storage_uri = os.environ.get("REDIS_URL") if use_redis else "memory://"
    if use_redis and not storage_uri:
        # Hard fail in stage/prod so we never silently run without RL storage
        raise RuntimeError("REDIS_URL is required in staging/production for rate limiting")

    app.config["RATELIMIT_STORAGE_URI"] = storage_uri
    app.config.setdefault("RATELIMIT_HEADERS_ENABLED", True)

    # Config: clean, explicit, class-based
    app.config.from_object(config_object or get_config())
    app.config.setdefault("APP_ENV", app_env)

    # --- Required env validation for prod-like envs (staging/production) ---
    def _require(name: str):
        val = os.getenv(name) or app.config.get(name)
        if not val:
            raise RuntimeError(f"Missing required environment variable: {name}")
        return val

    if app_env in ("staging", "production"):
        # Enforce hard requirements at startup (not at import time)
        _require("SECRET_KEY")
        _require("DATABASE_URL")

    # --- Observability & Security ---
    init_logging(app)
    init_sentry(app)

    # Apply HTTPS, HSTS & CSP only in staging/production
    if app_env in ("staging", "production"):
        init_security(app)

    # Init extensions
    db.init_app(app)
    migrate.init_app(app, db, directory="migrations")
    csrf.init_app(app)
    login_manager.init_app(app)
    limiter.init_app(app)

    # Models must be imported so the user_loader registers
    from . import models  # noqa: F401

    # Blueprints (explicit, consistent prefixes)
    from .blueprints.main import bp as main_bp
    from .blueprints.auth import bp as auth_bp
    from .blueprints.dashboard import bp as dashboard_bp
    from .blueprints.reviews import bp as reviews_bp
    from .blueprints.schools import bp as schools_bp

    app.register_blueprint(main_bp)                         # "/" + public intake
    app.register_blueprint(auth_bp, url_prefix="/auth")
    app.register_blueprint(dashboard_bp, url_prefix="/dashboard")
    app.register_blueprint(reviews_bp, url_prefix="/reviews")
    app.register_blueprint(schools_bp)                      # "/schools..."

    # Health
    @app.get("/healthz")
    @limiter.exempt
    def healthz():
        return {"status": "ok"}, 200

    # ---- Error handlers: every endpoint speaks JSON ----
    def _error(name: str, code: int, **extra):
        payload = {"error": name, "code": code}
        payload.update(extra)
        return jsonify(payload), code

    @app.errorhandler(401)
    def unauthorized(e):
        return _error("unauthorized", 401)

    @app.errorhandler(403)
    def forbidden(e):
        return _error("forbidden", 403)

    @app.errorhandler(404)
    def not_found(e):
        return _error("not_found", 404)

    @app.errorhandler(405)
    def method_not_allowed(e):
        return _error("method_not_allowed", 405)

    # 429 Too Many Requests with Retry-After
    @app.errorhandler(429)
    def too_many_requests(e):
        retry_after = getattr(e, "retry_after", None)
        resp, code = _error("rate_limited", 429)
        if retry_after is not None:
            resp.headers["Retry-After"] = str(int(retry_after))
        return resp, code

    @app.errorhandler(500)
    def server_error(e):
        return _error("server_error", 500)

    # CSRF error handler (clean 400 instead of generic 500)
    from flask_wtf.csrf import CSRFError
    @app.errorhandler(CSRFError)
    def handle_csrf_error(e):
        return _error("csrf_failed", 400, description=e.description)

    # CLI commands (ops-grade utilities)
    from .cli import register_cli
    register_cli(app)

    return app
