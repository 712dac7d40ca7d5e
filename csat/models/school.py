from sqlalchemy import Index, func, text

from csat.extensions import db

class School(db.Model):
    """Higher Education Institution (HEI) a client can pick on the survey form."""
    __tablename__ = "schools"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)

    # Soft delete: rows stay so historical surveys keep resolving the name
    deleted_at = db.Column(db.DateTime(timezone=True), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    __table_args__ = (
        # Unique among non-deleted rows, case-insensitive
        Index(
            "uq_schools_lower_name_active",
            func.lower(name),
            unique=True,
            postgresql_where=text("deleted_at IS NULL"),
            sqlite_where=text("deleted_at IS NULL"),
        ),
        Index("ix_schools_deleted_at", deleted_at),
    )

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None

    @classmethod
    def active(cls):
        return cls.query.filter(cls.deleted_at.is_(None))

    def to_dict(self) -> dict:
        return {"id": self.id, "name": self.name}

    def __repr__(self) -> str:
        return f"<School id={self.id} name={self.name!r} deleted={self.is_deleted}>"
