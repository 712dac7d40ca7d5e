import os
# Ensure the app factory picks the Testing config & SQLite memory DB
os.environ.setdefault("APP_ENV", "testing")
os.environ.setdefault("TEST_DATABASE_URL", "sqlite:///:memory:")

from datetime import date, datetime, timezone

import pytest
from csat import create_app
from csat.extensions import db
from csat.models import School, SurveyResponse, User

@pytest.fixture(scope="session")
def app():
    app = create_app()
    app.config.update(
        TESTING=True,
        SQLALCHEMY_DATABASE_URI="sqlite:///:memory:",
        WTF_CSRF_ENABLED=False,
        RATELIMIT_ENABLED=False,
        APP_TIMEZONE="Asia/Manila",
    )
    with app.app_context():
        db.create_all()
    yield app
    with app.app_context():
        db.drop_all()

@pytest.fixture()
def client(app):
    return app.test_client()

@pytest.fixture(autouse=True)
def _db_clean(app):
    # Clean BEFORE each test
    with app.app_context():
        db.session.rollback()
        for tbl in reversed(db.metadata.sorted_tables):
            db.session.execute(tbl.delete())
        db.session.commit()
    yield
    # And AFTER each test (keeps state hermetic even if a test fails mid-transaction)
    with app.app_context():
        db.session.rollback()
        for tbl in reversed(db.metadata.sorted_tables):
            db.session.execute(tbl.delete())
        db.session.commit()

def add_school(name: str, *, deleted: bool = False) -> School:
    """Insert a school inside the caller's app context."""
    s = School(name=name)
    if deleted:
        s.deleted_at = datetime.now(timezone.utc)
    db.session.add(s)
    db.session.commit()
    return s

def add_survey(**overrides) -> SurveyResponse:
    """Insert a valid survey inside the caller's app context; kwargs override defaults."""
    fields = dict(
        transaction_date=date(2024, 1, 1),
        first_name="Juan",
        middle_name=None,
        last_name="Dela Cruz",
        email="juan@example.com",
        transaction_type="enrollment",
        satisfaction_rating="satisfied",
        reason="Quick and friendly service at the window.",
        status="submitted",
    )
    fields.update(overrides)
    if fields.get("school_id") is None and "other_school_specify" not in fields:
        fields["other_school_specify"] = "Walk-in Institute"
    s = SurveyResponse(**fields)
    db.session.add(s)
    db.session.commit()
    return s

@pytest.fixture()
def user_id(app):
    with app.app_context():
        u = User(email="reviewer@example.com", name="Reviewer", is_active=True)
        u.set_password("testpass")
        db.session.add(u)
        db.session.commit()
        return u.id

@pytest.fixture()
def logged_in(client, user_id):
    # Simulate Flask-Login session
    with client.session_transaction() as sess:
        sess["_user_id"] = str(user_id)
    return client
