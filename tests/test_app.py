from pathlib import Path

import pytest
from flask_migrate import upgrade
from sqlalchemy import inspect, text

from csat import create_app
from csat.config import TestingConfig
from csat.extensions import db

MIGRATIONS_DIR = Path(__file__).resolve().parents[1] / "migrations"


def test_healthz(client):
    resp = client.get("/healthz")
    assert resp.status_code == 200
    assert resp.get_json() == {"status": "ok"}


def test_json_error_handlers(client):
    resp = client.get("/no-such-page")
    assert resp.status_code == 404
    assert resp.get_json() == {"error": "not_found", "code": 404}

    resp = client.delete("/healthz")
    assert resp.status_code == 405
    assert resp.get_json()["error"] == "method_not_allowed"


def test_production_requires_secrets(monkeypatch):
    monkeypatch.setenv("APP_ENV", "production")
    monkeypatch.setenv("REDIS_URL", "memory://")
    monkeypatch.delenv("SECRET_KEY", raising=False)
    monkeypatch.delenv("DATABASE_URL", raising=False)
    with pytest.raises(RuntimeError, match="SECRET_KEY"):
        create_app()


def test_cli_users_create_and_schools_seed(app):
    runner = app.test_cli_runner()
    result = runner.invoke(args=["users", "create", "--email", "ops@example.com", "--password", "pw12345"])
    assert result.exit_code == 0, result.output
    assert "User created" in result.output

    result = runner.invoke(args=["users", "create", "--email", "OPS@example.com", "--password", "pw"])
    assert result.exit_code != 0

    result = runner.invoke(args=["schools", "seed", "--name", "Leyte Normal University", "--name", "ab"])
    assert result.exit_code == 0, result.output
    assert "Seeded 1 school(s); 1 skipped" in result.output


def test_migrations_build_schema(tmp_path):
    db_file = tmp_path / "migrated.db"
    cfg = type("MigrateConfig", (TestingConfig,), {"SQLALCHEMY_DATABASE_URI": f"sqlite:///{db_file}"})
    fresh = create_app(cfg)
    with fresh.app_context():
        upgrade(directory=str(MIGRATIONS_DIR))
        inspector = inspect(db.engine)
        assert {"users", "schools", "survey_responses"} <= set(inspector.get_table_names())
        index_names = {
            row[0] for row in db.session.execute(
                text("SELECT name FROM sqlite_master WHERE type = 'index' AND tbl_name = 'schools'")
            )
        }
        assert "uq_schools_lower_name_active" in index_names
        db.engine.dispose()
