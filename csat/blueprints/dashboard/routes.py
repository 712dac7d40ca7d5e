from flask import current_app, jsonify, request

from csat.services.analytics import build_dashboard
from csat.services.filters import SurveyFilters
from csat.services.policy import require_login
from csat.utils.helpers import app_clock
from . import bp


@bp.get("/analytics.json")
@require_login
def analytics_json():
    cfg = current_app.config
    tz, now = app_clock(cfg)
    filters = SurveyFilters.from_args(request.args)
    data = build_dashboard(
        filters,
        now=now,
        tz=tz,
        trend_days=cfg.get("DASHBOARD_TREND_DAYS", 30),
        trend_months=cfg.get("DASHBOARD_TREND_MONTHS", 6),
        recent_limit=cfg.get("DASHBOARD_RECENT_LIMIT", 5),
    )
    return jsonify(ok=True, **data)
