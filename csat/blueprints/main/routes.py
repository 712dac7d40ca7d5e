from flask import current_app, jsonify, request
from flask_wtf.csrf import generate_csrf
from sqlalchemy import func

from csat.extensions import db, limiter
from csat.models.school import School
from csat.models.survey import RATING_CHOICES, SCHOOL_OTHER, transaction_type_options
from csat.services.intake import SUCCESS_MESSAGE, submit_survey
from csat.utils.helpers import app_clock
from . import bp


def _survey_rate_limit():
    return current_app.config.get("SURVEY_RATE_LIMIT") or "10 per minute"


@bp.get("/")
def home():
    """Options the public survey form needs (schools, types, ratings) plus a CSRF token."""
    schools = School.active().order_by(func.lower(School.name).asc()).all()
    return jsonify(
        ok=True,
        site_name=current_app.config.get("SITE_NAME"),
        schools=[s.to_dict() for s in schools] + [{"id": SCHOOL_OTHER, "name": "Other"}],
        transaction_types=transaction_type_options(),
        satisfaction_ratings=[{"value": r, "label": r.capitalize()} for r in RATING_CHOICES],
        csrf_token=generate_csrf(),
    )


@bp.post("/client-satisfaction-survey")
@limiter.limit(_survey_rate_limit)
def submit():
    """Accept a survey from the public form (JSON or form-encoded)."""
    if request.is_json:
        data = request.get_json(silent=True)
        data = data if isinstance(data, dict) else {}
    else:
        data = request.form

    _, now = app_clock(current_app.config)
    result = submit_survey(db.session, data, today=now.date())

    if result.ok:
        return jsonify(ok=True, id=result.survey.id, message=SUCCESS_MESSAGE), 201
    status = 500 if "general" in result.errors else 400
    return jsonify(ok=False, errors=result.errors, input=result.input), status
