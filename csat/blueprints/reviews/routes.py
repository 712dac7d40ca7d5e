import logging
from datetime import datetime, timezone

from flask import current_app, jsonify, make_response, request
from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError

from csat.extensions import db
from csat.models.school import School
from csat.models.survey import STATUS_CHOICES, SurveyResponse, transaction_type_options
from csat.services.analytics import review_stats
from csat.services.exports import (
    CSV_MIMETYPE,
    XLSX_MIMETYPE,
    build_flat_workbook,
    build_grouped_csv,
    build_grouped_workbook,
    export_filename,
)
from csat.services.filters import SurveyFilters, build_conditions, filtered_query
from csat.services.policy import require_login
from csat.utils.helpers import app_clock, parse_id
from csat.utils.validators import clean_text, too_long
from . import bp

logger = logging.getLogger(__name__)

ADMIN_NOTES_MAX = 1000


def _int_arg(name: str, default: int) -> int:
    try:
        return int(request.args.get(name, default))
    except (TypeError, ValueError):
        return default


def _per_page() -> int:
    cfg = current_app.config
    default = cfg.get("REVIEWS_PER_PAGE_DEFAULT", 10)
    per_page = _int_arg("per_page", default)
    return per_page if per_page in cfg.get("REVIEWS_PER_PAGE_CHOICES", (default,)) else default


@bp.get("/list.json")
@require_login
def list_json():
    cfg = current_app.config
    tz, now = app_clock(cfg)
    today = now.date()
    filters = SurveyFilters.from_args(request.args)
    policy = cfg.get("LIST_DATE_POLICY")

    per_page = _per_page()
    page = max(_int_arg("page", 1), 1)

    query = filtered_query(filters, today=today, tz=tz, date_policy=policy)
    total = query.order_by(None).count()
    last_page = max((total + per_page - 1) // per_page, 1)
    rows = query.limit(per_page).offset((page - 1) * per_page).all() if page <= last_page else []

    conditions = build_conditions(filters, today=today, tz=tz, date_policy=policy)
    schools = School.active().order_by(func.lower(School.name).asc()).all()

    return jsonify(
        ok=True,
        rows=[s.to_dict(tz) for s in rows],
        pagination={
            "page": page,
            "per_page": per_page,
            "total": total,
            "last_page": last_page,
            "per_page_choices": list(cfg.get("REVIEWS_PER_PAGE_CHOICES", ())),
        },
        stats=review_stats(conditions, now=now, tz=tz),
        schools=[s.to_dict() for s in schools],
        transaction_types=transaction_type_options(),
        filters=filters.to_dict(),
    )


@bp.patch("/<int:survey_id>")
@require_login
def update(survey_id: int):
    """Administrative correction: status and notes only."""
    survey = db.session.get(SurveyResponse, survey_id) if parse_id(survey_id) else None
    if survey is None:
        return jsonify(ok=False, error="not_found"), 404

    if request.is_json:
        data = request.get_json(silent=True)
        data = data if isinstance(data, dict) else {}
    else:
        data = request.form
    errors = {}

    status = str(data.get("status") or "").strip()
    if not status:
        errors["status"] = "The status field is required."
    elif status not in STATUS_CHOICES:
        errors["status"] = "The selected status is invalid."

    notes = clean_text(data.get("admin_notes"))
    if too_long(notes, ADMIN_NOTES_MAX):
        errors["admin_notes"] = "The admin notes may not be greater than 1000 characters."

    if errors:
        return jsonify(ok=False, errors=errors), 400

    tz, _ = app_clock(current_app.config)
    survey.status = status
    survey.admin_notes = notes
    survey.updated_at = datetime.now(timezone.utc)
    try:
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        logger.exception("Error updating survey id=%s", survey_id)
        return jsonify(ok=False, errors={"general": "Could not update the review."}), 500

    logger.info("Survey id=%s status -> %s", survey.id, survey.status)
    return jsonify(ok=True, row=survey.to_dict(tz))


def _export(fmt: str, variant: str):
    cfg = current_app.config
    tz, now = app_clock(cfg)
    filters = SurveyFilters.from_args(request.args)
    rows = filtered_query(
        filters, today=now.date(), tz=tz, date_policy=cfg.get("EXPORT_DATE_POLICY")
    ).all()

    if fmt == "csv":
        body, mimetype = build_grouped_csv(rows), CSV_MIMETYPE
    elif variant == "flat":
        body, mimetype = build_flat_workbook(rows, tz), XLSX_MIMETYPE
    else:
        body, mimetype = build_grouped_workbook(rows), XLSX_MIMETYPE

    filename = export_filename(now, fmt)
    logger.info("Export %s/%s rows=%d filters=%s", fmt, variant, len(rows), filters.to_dict())

    resp = make_response(body)
    resp.headers["Content-Type"] = mimetype
    resp.headers["Content-Disposition"] = f'attachment; filename="{filename}"'
    return resp


@bp.get("/export")
@require_login
def export():
    fmt = (request.args.get("format") or "xlsx").strip().lower()
    variant = (request.args.get("variant") or "grouped").strip().lower()
    if fmt not in ("xlsx", "csv"):
        return jsonify(ok=False, errors={"format": "Unsupported export format."}), 400
    if variant not in ("grouped", "flat"):
        return jsonify(ok=False, errors={"variant": "Unsupported export layout."}), 400
    if fmt == "csv" and variant != "grouped":
        return jsonify(ok=False, errors={"variant": "CSV exports use the grouped layout only."}), 400
    return _export(fmt, variant)


@bp.get("/export.xlsx")
@require_login
def export_xlsx():
    variant = (request.args.get("variant") or "grouped").strip().lower()
    return _export("xlsx", "flat" if variant == "flat" else "grouped")
