from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import CheckConstraint, Index
from sqlalchemy.sql import func

from csat.extensions import db

# Keep simple text+CHECK for evolvable enums (no DB enum migration pain)
RATING_DISSATISFIED = "dissatisfied"
RATING_NEUTRAL = "neutral"
RATING_SATISFIED = "satisfied"
RATING_CHOICES = (RATING_DISSATISFIED, RATING_NEUTRAL, RATING_SATISFIED)

STATUS_SUBMITTED = "submitted"
STATUS_REVIEWED = "reviewed"
STATUS_RESOLVED = "resolved"
STATUS_CHOICES = (STATUS_SUBMITTED, STATUS_REVIEWED, STATUS_RESOLVED)

TRANSACTION_OTHER = "other"
TRANSACTION_TYPE_LABELS = {
    "enrollment": "Enrollment",
    "payment": "Payment",
    "transcript": "Transcript Request",
    "certification": "Certification",
    "scholarship": "Scholarship Application",
    "consultation": "Consultation",
    TRANSACTION_OTHER: "Other",
}
TRANSACTION_TYPES = tuple(TRANSACTION_TYPE_LABELS)

SCHOOL_OTHER = "other"

def transaction_type_label(value: str | None) -> str:
    if not value:
        return ""
    return TRANSACTION_TYPE_LABELS.get(value, value[:1].upper() + value[1:])

def transaction_type_options() -> list[dict]:
    return [{"value": k, "label": v} for k, v in TRANSACTION_TYPE_LABELS.items()]

def _utcnow():
    return datetime.now(timezone.utc)

class SurveyResponse(db.Model):
    __tablename__ = "survey_responses"

    id = db.Column(db.Integer, primary_key=True)

    transaction_date = db.Column(db.Date, nullable=False)

    # Client
    first_name  = db.Column(db.String(255), nullable=False)
    middle_name = db.Column(db.String(255), nullable=True)
    last_name   = db.Column(db.String(255), nullable=False)
    email       = db.Column(db.String(255), nullable=True)

    # School: a registered HEI or a free-text "other", never both
    school_id = db.Column(db.Integer, db.ForeignKey("schools.id", ondelete="SET NULL"), nullable=True)
    other_school_specify = db.Column(db.String(255), nullable=True)

    transaction_type = db.Column(db.String(32), nullable=False)
    other_transaction_specify = db.Column(db.String(255), nullable=True)

    satisfaction_rating = db.Column(db.String(16), nullable=False)
    reason = db.Column(db.Text, nullable=False)

    # Admin workflow
    status = db.Column(db.String(20), nullable=False, default=STATUS_SUBMITTED, server_default=STATUS_SUBMITTED)
    admin_notes = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=_utcnow, server_default=func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=_utcnow, server_default=func.now(), onupdate=func.now())

    school = db.relationship("School", lazy="joined")

    __table_args__ = (
        CheckConstraint(
            "satisfaction_rating IN ('dissatisfied','neutral','satisfied')",
            name="ck_survey_responses_rating_valid",
        ),
        CheckConstraint(
            "status IN ('submitted','reviewed','resolved')",
            name="ck_survey_responses_status_valid",
        ),
        Index("ix_survey_responses_transaction_date", transaction_date),
        Index("ix_survey_responses_created_at", created_at),
        Index("ix_survey_responses_school_id", school_id),
        Index("ix_survey_responses_rating", satisfaction_rating),
        Index("ix_survey_responses_transaction_type", transaction_type),
        Index("ix_survey_responses_status", status),
        Index("ix_survey_responses_last_first", last_name, first_name),
    )

    # ---- display helpers -------------------------------------------------

    @property
    def full_name(self) -> str:
        parts = (self.first_name, self.middle_name, self.last_name)
        return " ".join(p.strip() for p in parts if p and p.strip())

    @property
    def display_name(self) -> str:
        return " ".join(p for p in (self.first_name, self.last_name) if p)

    @property
    def formal_name(self) -> str:
        # "Dela Cruz, Juan M."
        given = self.first_name or ""
        if self.middle_name:
            given = f"{given} {self.middle_name.strip()[:1].upper()}."
        return f"{self.last_name}, {given}".strip(", ")

    @property
    def school_display_name(self) -> str:
        # Soft-deleted schools still resolve: the relationship ignores deleted_at
        if self.school is not None:
            return self.school.name
        if self.other_school_specify:
            return f"Other: {self.other_school_specify}"
        return ""

    @property
    def transaction_type_display(self) -> str:
        if self.transaction_type == TRANSACTION_OTHER and self.other_transaction_specify:
            return f"Other: {self.other_transaction_specify}"
        return transaction_type_label(self.transaction_type)

    @property
    def satisfaction_label(self) -> str:
        r = self.satisfaction_rating or ""
        return r[:1].upper() + r[1:]

    @property
    def star_rating(self) -> int:
        return {RATING_DISSATISFIED: 2, RATING_SATISFIED: 5}.get(self.satisfaction_rating, 3)

    def to_dict(self, tz=None) -> dict:
        created = self.created_at
        if created is not None:
            if created.tzinfo is None:
                created = created.replace(tzinfo=timezone.utc)
            if tz is not None:
                created = created.astimezone(tz)
        return {
            "id": self.id,
            "transaction_date": self.transaction_date.isoformat() if self.transaction_date else None,
            "first_name": self.first_name,
            "middle_name": self.middle_name,
            "last_name": self.last_name,
            "full_name": self.full_name,
            "formal_name": self.formal_name,
            "email": self.email,
            "school_id": self.school_id,
            "school": self.school_display_name,
            "other_school_specify": self.other_school_specify,
            "transaction_type": self.transaction_type,
            "transaction_type_display": self.transaction_type_display,
            "other_transaction_specify": self.other_transaction_specify,
            "satisfaction_rating": self.satisfaction_rating,
            "star_rating": self.star_rating,
            "reason": self.reason,
            "status": self.status,
            "admin_notes": self.admin_notes,
            "created_at": created.isoformat() if created else None,
        }

    def to_legacy_dict(self) -> dict:
        """Single-string shape used by the first schema (client_name + school_hei)."""
        return dict(
            id=self.id,
            transaction_date=self.transaction_date.isoformat() if self.transaction_date else None,
            client_name=self.full_name,
            email=self.email,
            school_hei=self.school.name if self.school is not None else SCHOOL_OTHER,
            other_school_specify=self.other_school_specify,
            transaction_type=self.transaction_type,
            other_transaction_specify=self.other_transaction_specify,
            satisfaction_rating=self.satisfaction_rating,
            reason=self.reason,
        )

    def __repr__(self) -> str:
        return f"<SurveyResponse id={self.id} rating={self.satisfaction_rating!r} status={self.status!r}>"
