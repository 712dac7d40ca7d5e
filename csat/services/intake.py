"""Public survey intake: field validation and persistence."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Mapping, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from csat.models.school import School
from csat.models.survey import (
    RATING_CHOICES,
    SCHOOL_OTHER,
    STATUS_SUBMITTED,
    TRANSACTION_OTHER,
    TRANSACTION_TYPES,
    SurveyResponse,
)
from csat.utils.helpers import parse_id, parse_iso_date
from csat.utils.validators import clean_str, clean_text, is_valid_email, too_long

logger = logging.getLogger(__name__)

GENERIC_FAILURE = "There was an error processing your submission. Please try again."
SUCCESS_MESSAGE = "Thank you for your feedback! Your response has been recorded."

NAME_MAX = 255
REASON_MIN = 10
REASON_MAX = 2000

@dataclass
class IntakeResult:
    ok: bool
    survey: Optional[SurveyResponse] = None
    errors: dict = field(default_factory=dict)
    input: dict = field(default_factory=dict)

def _raw(data: Mapping, key: str):
    v = data.get(key)
    return None if v is None else str(v)

def _bounded(data, key, errors, *, required_msg=None, max_msg=None, max_len=NAME_MAX):
    val = clean_str(_raw(data, key), max_len=10_000)
    if not val:
        if required_msg:
            errors[key] = required_msg
        return None
    if too_long(val, max_len):
        errors[key] = max_msg
        return None
    return val

def _school_choice(session: Session, data: Mapping, errors: dict, cleaned: dict) -> None:
    raw = clean_str(_raw(data, "school_id") or _raw(data, "school_hei"))
    if not raw:
        errors["school_id"] = "School/HEI is required."
        return

    if raw.lower() == SCHOOL_OTHER:
        specified = _bounded(
            data, "other_school_specify", errors,
            required_msg='Please specify your school/institution when selecting "Other".',
            max_msg="School specification cannot exceed 255 characters.",
        )
        cleaned["school_id"] = None
        cleaned["other_school_specify"] = specified
        return

    school_id = parse_id(raw)
    school = session.get(School, school_id) if school_id is not None else None
    if school is None or school.is_deleted:
        errors["school_id"] = 'Please select a valid school or "Other".'
        return
    cleaned["school_id"] = school.id
    cleaned["other_school_specify"] = None

def validate_submission(session: Session, data: Mapping, *, today: date) -> tuple[dict, dict]:
    """
    Returns (cleaned, errors). `errors` maps field -> message; empty means valid.
    `today` is the current date in the app timezone.
    """
    errors: dict = {}
    cleaned: dict = {}

    raw_date = clean_str(_raw(data, "transaction_date"), 32)
    if not raw_date:
        errors["transaction_date"] = "The transaction date is required."
    else:
        tdate = parse_iso_date(raw_date)
        if tdate is None:
            errors["transaction_date"] = "Please enter a valid date."
        elif tdate > today:
            errors["transaction_date"] = "The transaction date cannot be in the future."
        else:
            cleaned["transaction_date"] = tdate

    cleaned["first_name"] = _bounded(
        data, "first_name", errors,
        required_msg="Your first name is required.",
        max_msg="Your first name cannot exceed 255 characters.",
    )
    cleaned["middle_name"] = _bounded(
        data, "middle_name", errors,
        max_msg="Your middle name cannot exceed 255 characters.",
    )
    cleaned["last_name"] = _bounded(
        data, "last_name", errors,
        required_msg="Your last name is required.",
        max_msg="Your last name cannot exceed 255 characters.",
    )

    email = _bounded(data, "email", errors, max_msg="Your email address cannot exceed 255 characters.")
    if email and not is_valid_email(email):
        errors["email"] = "Please enter a valid email address."
    cleaned["email"] = email

    _school_choice(session, data, errors, cleaned)

    ttype = clean_str(_raw(data, "transaction_type"), 64)
    if not ttype:
        errors["transaction_type"] = "Please select a transaction type."
    elif ttype not in TRANSACTION_TYPES:
        errors["transaction_type"] = "Please select a valid transaction type."
    else:
        cleaned["transaction_type"] = ttype
        cleaned["other_transaction_specify"] = None
        if ttype == TRANSACTION_OTHER:
            cleaned["other_transaction_specify"] = _bounded(
                data, "other_transaction_specify", errors,
                required_msg='Please specify the type of transaction when selecting "Other".',
                max_msg="Transaction specification cannot exceed 255 characters.",
            )

    rating = clean_str(_raw(data, "satisfaction_rating"), 32)
    if not rating:
        errors["satisfaction_rating"] = "Please select your satisfaction rating."
    elif rating not in RATING_CHOICES:
        errors["satisfaction_rating"] = "Please select a valid satisfaction rating."
    else:
        cleaned["satisfaction_rating"] = rating

    reason = clean_text(_raw(data, "reason"))
    if not reason:
        errors["reason"] = "Please provide your feedback."
    elif len(reason) < REASON_MIN:
        errors["reason"] = "Your feedback must be at least 10 characters long."
    elif len(reason) > REASON_MAX:
        errors["reason"] = "Your feedback cannot exceed 2000 characters."
    else:
        cleaned["reason"] = reason

    return cleaned, errors

def submit_survey(session: Session, data: Mapping, *, today: date) -> IntakeResult:
    """Validate and save one submission. Never raises on persistence errors."""
    original = {k: data.get(k) for k in data.keys()}
    cleaned, errors = validate_submission(session, data, today=today)
    if errors:
        return IntakeResult(ok=False, errors=errors, input=original)

    survey = SurveyResponse(status=STATUS_SUBMITTED, **cleaned)
    session.add(survey)
    try:
        session.commit()
    except SQLAlchemyError:
        session.rollback()
        logger.exception("Error saving client satisfaction survey: data=%s", cleaned)
        return IntakeResult(ok=False, errors={"general": GENERIC_FAILURE}, input=original)

    logger.info(
        "Survey submitted: id=%s rating=%s type=%s",
        survey.id, survey.satisfaction_rating, survey.transaction_type,
    )
    return IntakeResult(ok=True, survey=survey, input=original)
