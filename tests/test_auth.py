from csat.extensions import db
from csat.models.user import User


def test_login_logout_roundtrip(client, user_id):
    resp = client.post("/auth/login", json={"email": "REVIEWER@example.com", "password": "testpass"})
    assert resp.status_code == 200
    assert resp.get_json()["user"]["id"] == user_id

    assert client.get("/auth/me").get_json()["authenticated"] is True
    assert client.get("/reviews/list.json").status_code == 200

    assert client.post("/auth/logout").get_json() == {"ok": True}
    assert client.get("/reviews/list.json").status_code == 401


def test_login_rejects_bad_credentials(client, user_id):
    resp = client.post("/auth/login", json={"email": "reviewer@example.com", "password": "nope"})
    assert resp.status_code == 400
    assert resp.get_json()["errors"]["general"] == "Invalid credentials"

    resp = client.post("/auth/login", data={"email": "", "password": ""})
    assert resp.status_code == 400


def test_inactive_user_cannot_login(client, app, user_id):
    with app.app_context():
        db.session.get(User, user_id).is_active = False
        db.session.commit()
    resp = client.post("/auth/login", json={"email": "reviewer@example.com", "password": "testpass"})
    assert resp.status_code == 400
