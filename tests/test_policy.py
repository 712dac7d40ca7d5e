from flask import Flask
from csat.services import policy

class DummyUser:
    def __init__(self, uid, auth=True, active=True):
        self.id, self.is_authenticated, self.is_active = uid, auth, active

def make_app():
    app = Flask(__name__); app.config.update(SECRET_KEY="x", TESTING=True)
    return app

def test_require_login_unauth_json(monkeypatch):
    app = make_app()
    @policy.require_login
    def v(): return "ok", 200
    monkeypatch.setattr(policy, "current_user", DummyUser(None, auth=False))
    with app.test_request_context("/x", headers={"Accept": "application/json"}):
        r = v(); assert r[1] == 401 and r[0].json["error"] == "unauthorized"

def test_require_login_unauth_json_by_suffix(monkeypatch):
    app = make_app()
    @policy.require_login
    def v(): return "ok", 200
    monkeypatch.setattr(policy, "current_user", DummyUser(None, auth=False))
    with app.test_request_context("/reviews/list.json"):
        r = v(); assert r[1] == 401 and r[0].json["code"] == 401

def test_require_login_inactive_forbidden(monkeypatch):
    app = make_app()
    @policy.require_login
    def v(): return "ok", 200
    monkeypatch.setattr(policy, "current_user", DummyUser(7, auth=True, active=False))
    with app.test_request_context("/x", headers={"Accept": "application/json"}):
        r = v(); assert r[1] == 403 and r[0].json["error"] == "forbidden"

def test_require_login_ok(monkeypatch):
    app = make_app()
    @policy.require_login
    def v(): return "ok", 200
    monkeypatch.setattr(policy, "current_user", DummyUser(7, auth=True))
    with app.test_request_context("/x", headers={"Accept": "application/json"}):
        r = v(); assert r == ("ok", 200)
