from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from sqlalchemy.sql import func

from csat.models.school import School
from csat.utils.helpers import parse_id

logger = logging.getLogger(__name__)

NAME_MIN = 3
NAME_MAX = 255


class ServiceError(RuntimeError):
    """Recoverable service error (validation/uniqueness/etc.)."""

    def __init__(self, message: str, errors: Optional[dict] = None):
        super().__init__(message)
        self.errors = errors or {"name": message}


class NotFound(ServiceError):
    pass


@dataclass(frozen=True)
class Page:
    items: List
    total: int
    limit: int
    offset: int


def get_school(session: Session, school_id: int, *, include_deleted: bool = False) -> School:
    if parse_id(school_id) is None:
        raise NotFound(f"School {school_id} not found", {"id": "Not found."})
    q = session.query(School).filter(School.id == school_id)
    if not include_deleted:
        q = q.filter(School.deleted_at.is_(None))
    obj = q.one_or_none()
    if not obj:
        raise NotFound(f"School {school_id} not found", {"id": "Not found."})
    return obj


def list_schools(
    session: Session,
    *,
    search: Optional[str] = None,
    limit: int = 100,
    offset: int = 0,
) -> Page:
    query = session.query(School).filter(School.deleted_at.is_(None))
    if search and search.strip():
        like = f"%{search.strip().lower()}%"
        query = query.filter(func.lower(School.name).like(like))
    total = query.count()
    items = (
        query.order_by(func.lower(School.name).asc(), School.id.asc())
        .limit(limit)
        .offset(offset)
        .all()
    )
    return Page(items=items, total=total, limit=limit, offset=offset)


def normalize_name(name: Optional[str]) -> str:
    """Trim; blank names are rejected, too-short/long names too."""
    cleaned = " ".join((name or "").split())
    if not cleaned:
        raise ServiceError("School name is required.")
    if len(cleaned) < NAME_MIN:
        raise ServiceError("School name must be at least 3 characters.")
    if len(cleaned) > NAME_MAX:
        raise ServiceError("School name may not be greater than 255 characters.")
    return cleaned


def _ensure_unique(session: Session, name: str, *, exclude_id: Optional[int] = None) -> None:
    q = session.query(School.id).filter(
        School.deleted_at.is_(None),
        func.lower(School.name) == name.lower(),
    )
    if exclude_id is not None:
        q = q.filter(School.id != exclude_id)
    if q.first() is not None:
        raise ServiceError("That school already exists.")


def create_school(session: Session, *, name: Optional[str]) -> School:
    cleaned = normalize_name(name)
    _ensure_unique(session, cleaned)
    school = School(name=cleaned)
    session.add(school)
    try:
        session.flush()  # partial unique index on lower(name)
    except IntegrityError as e:
        raise ServiceError("That school already exists.") from e
    logger.info("School created: id=%s name=%r", school.id, school.name)
    return school


def rename_school(session: Session, school_id: int, *, name: Optional[str]) -> School:
    school = get_school(session, school_id)
    cleaned = normalize_name(name)
    _ensure_unique(session, cleaned, exclude_id=school.id)
    old = school.name
    school.name = cleaned
    school.updated_at = datetime.now(timezone.utc)
    try:
        session.flush()
    except IntegrityError as e:
        raise ServiceError("That school already exists.") from e
    logger.info("School renamed: id=%s %r -> %r", school.id, old, school.name)
    return school


def soft_delete_school(session: Session, school_id: int) -> School:
    """Hide a school from pickers; surveys keep their school_id and its name."""
    school = get_school(session, school_id)
    now = datetime.now(timezone.utc)
    school.deleted_at = now
    school.updated_at = now
    session.flush()
    logger.info("School soft-deleted: id=%s name=%r", school.id, school.name)
    return school


def seed_schools(session: Session, names) -> int:
    """Create any missing active schools by name; returns how many were added."""
    added = 0
    for raw in names:
        try:
            with session.begin_nested():
                create_school(session, name=raw)
        except ServiceError:
            continue
        added += 1
    return added
