import csv
import io
from datetime import date

from openpyxl import load_workbook

from conftest import add_school, add_survey
from csat.extensions import db
from csat.models.survey import SurveyResponse
from csat.services.exports import EXPORT_COLUMNS, XLSX_MIMETYPE, header_labels


def _seed(app):
    with app.app_context():
        x = add_school("School X")
        y = add_school("School Y")
        ids = [
            add_survey(satisfaction_rating="satisfied", school_id=x.id, transaction_date=date(2024, 1, 1),
                       reason="great support at the cashier").id,
            add_survey(satisfaction_rating="dissatisfied", school_id=x.id, transaction_date=date(2024, 1, 2)).id,
            add_survey(satisfaction_rating="satisfied", school_id=y.id, transaction_date=date(2024, 1, 3)).id,
        ]
        return x.id, y.id, ids


def test_list_json_filters_and_paginates(logged_in, app):
    x_id, _, (a, b, c) = _seed(app)

    body = logged_in.get(f"/reviews/list.json?school={x_id}").get_json()
    assert {r["id"] for r in body["rows"]} == {a, b}
    assert body["stats"]["filtered_total"] == 2
    assert body["stats"]["total"] == 3
    assert body["filters"]["school"] == str(x_id)

    body = logged_in.get("/reviews/list.json?per_page=5&page=1&satisfaction_rating=all").get_json()
    assert body["pagination"]["per_page"] == 5
    assert body["pagination"]["total"] == 3
    # newest first
    assert [r["id"] for r in body["rows"]] == [c, b, a]

    body = logged_in.get("/reviews/list.json?per_page=7&page=0").get_json()
    assert body["pagination"]["per_page"] == 10
    assert body["pagination"]["page"] == 1

    body = logged_in.get("/reviews/list.json?per_page=5&page=2").get_json()
    assert body["rows"] == []

    body = logged_in.get("/reviews/list.json?search=SUPPORT").get_json()
    assert [r["id"] for r in body["rows"]] == [a]


def test_list_and_export_agree(logged_in, app, monkeypatch):
    monkeypatch.setitem(app.config, "LIST_DATE_POLICY", "transaction_only")
    x_id, _, (a, b, _c) = _seed(app)
    qs = f"school={x_id}&start_date=2024-01-01&end_date=2024-12-31&search=school"
    listed = {r["id"] for r in logged_in.get(f"/reviews/list.json?{qs}&per_page=50").get_json()["rows"]}
    resp = logged_in.get(f"/reviews/export?format=csv&{qs}")
    rows = list(csv.reader(io.StringIO(resp.get_data(as_text=True))))[1:]
    assert listed == {a, b}
    assert len(rows) == 2


def test_export_xlsx_headers_with_no_matches(logged_in, app):
    _seed(app)
    resp = logged_in.get("/reviews/export.xlsx?satisfaction_rating=neutral")
    assert resp.status_code == 200
    assert resp.headers["Content-Type"] == XLSX_MIMETYPE
    disp = resp.headers["Content-Disposition"]
    assert disp.startswith('attachment; filename="client-reviews-') and disp.endswith('.xlsx"')

    ws = load_workbook(io.BytesIO(resp.data))["Client Reviews"]
    assert header_labels(ws) == list(EXPORT_COLUMNS)
    assert ws.max_row == 3


def test_export_variants(logged_in, app):
    _seed(app)
    flat = logged_in.get("/reviews/export?format=xlsx&variant=flat")
    ws = load_workbook(io.BytesIO(flat.data))["Client Reviews"]
    assert ws["A1"].value == "ID"
    assert ws.max_row == 4

    resp = logged_in.get("/reviews/export?format=pdf")
    assert resp.status_code == 400


def test_patch_review(logged_in, app):
    _, _, (a, _b, _c) = _seed(app)
    resp = logged_in.patch(f"/reviews/{a}", json={"status": "resolved", "admin_notes": "Called client back."})
    assert resp.status_code == 200
    assert resp.get_json()["row"]["status"] == "resolved"
    with app.app_context():
        s = db.session.get(SurveyResponse, a)
        assert s.admin_notes == "Called client back."

    resp = logged_in.patch(f"/reviews/{a}", json={"status": "deleted"})
    assert resp.status_code == 400
    assert "status" in resp.get_json()["errors"]

    resp = logged_in.patch(f"/reviews/{a}", json={"status": "reviewed", "admin_notes": "x" * 1001})
    assert resp.status_code == 400
    assert "admin_notes" in resp.get_json()["errors"]

    assert logged_in.patch("/reviews/999999", json={"status": "reviewed"}).status_code == 404


def test_dashboard_json(logged_in, app):
    x_id, _, _ = _seed(app)
    body = logged_in.get(f"/dashboard/analytics.json?school={x_id}&date_range=this_year").get_json()
    assert body["ok"] is True
    assert set(body["analytics"]) == {
        "metrics", "daily_trend", "monthly_trend", "school_distribution",
        "transaction_distribution", "recent_surveys",
    }
    assert body["current_filters"]["school"] == str(x_id)
    assert len(body["analytics"]["daily_trend"]) == app.config["DASHBOARD_TREND_DAYS"]


def test_admin_endpoints_require_login(client):
    for url in ("/reviews/list.json", "/dashboard/analytics.json", "/reviews/export"):
        resp = client.get(url, headers={"Accept": "application/json"})
        assert resp.status_code == 401
    assert client.patch("/reviews/1", json={"status": "reviewed"}).status_code == 401


def test_malformed_ids_and_pages_do_not_error(logged_in, app):
    _seed(app)
    for value in ("²", "99999999999999999999999"):
        body = logged_in.get("/reviews/list.json", query_string={"school": value}).get_json()
        assert body["rows"] == [] and body["stats"]["filtered_total"] == 0

        resp = logged_in.get("/dashboard/analytics.json", query_string={"school": value})
        assert resp.status_code == 200

        resp = logged_in.get("/reviews/export", query_string={"format": "csv", "school": value})
        assert resp.status_code == 200
        assert len(list(csv.reader(io.StringIO(resp.get_data(as_text=True))))) == 1

    body = logged_in.get("/reviews/list.json?page=99999999999999999999999").get_json()
    assert body["rows"] == []
    assert body["pagination"]["total"] == 3

    assert logged_in.patch("/reviews/99999999999999999999999", json={"status": "reviewed"}).status_code == 404


def test_patch_review_non_object_json(logged_in, app):
    _, _, (a, _b, _c) = _seed(app)
    resp = logged_in.patch(f"/reviews/{a}", json=["resolved"])
    assert resp.status_code == 400
    assert resp.get_json()["errors"]["status"] == "The status field is required."


def test_csv_export_rejects_flat_layout(logged_in, app):
    _seed(app)
    resp = logged_in.get("/reviews/export?format=csv&variant=flat")
    assert resp.status_code == 400
    assert "variant" in resp.get_json()["errors"]
