from flask import jsonify, request
from sqlalchemy.exc import SQLAlchemyError

from csat.extensions import db
from csat.services.policy import require_login
from csat.services.schools import (
    NotFound,
    ServiceError,
    create_school as svc_create_school,
    list_schools as svc_list_schools,
    rename_school as svc_rename_school,
    soft_delete_school as svc_soft_delete_school,
)
from csat.utils.helpers import INT_ID_MAX
from . import bp


def _payload():
    if request.is_json:
        data = request.get_json(silent=True)
        return data if isinstance(data, dict) else {}
    return request.form


@bp.get("/schools.json")
@require_login
def list_json():
    try:
        limit = min(max(int(request.args.get("limit", 100)), 1), 500)
        offset = min(max(int(request.args.get("offset", 0)), 0), INT_ID_MAX)
    except (TypeError, ValueError):
        limit, offset = 100, 0
    page = svc_list_schools(db.session, search=request.args.get("search"), limit=limit, offset=offset)
    return jsonify(
        ok=True,
        rows=[s.to_dict() for s in page.items],
        total=page.total,
        limit=page.limit,
        offset=page.offset,
    )


@bp.post("/schools")
@require_login
def create():
    try:
        school = svc_create_school(db.session, name=_payload().get("name"))
        db.session.commit()
        return jsonify(ok=True, row=school.to_dict(), message="School added successfully."), 201
    except ServiceError as e:
        db.session.rollback()
        return jsonify(ok=False, errors=e.errors), 400
    except SQLAlchemyError:
        db.session.rollback()
        return jsonify(ok=False, errors={"general": "Database error creating school."}), 500


@bp.patch("/schools/<int:school_id>")
@require_login
def rename(school_id: int):
    try:
        school = svc_rename_school(db.session, school_id, name=_payload().get("name"))
        db.session.commit()
        return jsonify(ok=True, row=school.to_dict(), message="School updated successfully.")
    except NotFound:
        db.session.rollback()
        return jsonify(ok=False, error="not_found"), 404
    except ServiceError as e:
        db.session.rollback()
        return jsonify(ok=False, errors=e.errors), 400
    except SQLAlchemyError:
        db.session.rollback()
        return jsonify(ok=False, errors={"general": "Database error updating school."}), 500


@bp.delete("/schools/<int:school_id>")
@require_login
def delete(school_id: int):
    try:
        svc_soft_delete_school(db.session, school_id)
        db.session.commit()
        return jsonify(ok=True, message="School deleted successfully.")
    except NotFound:
        db.session.rollback()
        return jsonify(ok=False, error="not_found"), 404
    except SQLAlchemyError:
        db.session.rollback()
        return jsonify(ok=False, errors={"general": "Database error deleting school."}), 500
