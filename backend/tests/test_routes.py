"""
HTTP tests for the SAF-T, reports and system blueprints.
"""

import os
from datetime import datetime

from lxml import etree

from kasse.models import PosEvent
from kasse.services import report_service


def _generate(client, store_id, from_date="2024-03-01", to_date="2024-03-31"):
    return client.post("/api/saf-t/generate", json={
        "store_id": store_id,
        "from_date": from_date,
        "to_date": to_date,
    })


# =============================================================================
# SYSTEM
# =============================================================================

def test_health_reports_healthy(client, db_session):
    resp = client.get("/api/system/health")

    assert resp.status_code == 200
    body = resp.get_json()
    assert body["status"] == "healthy"
    assert body["checks"]["database"]["status"] == "healthy"
    assert body["checks"]["storage"]["status"] == "healthy"


# =============================================================================
# SAF-T
# =============================================================================

def test_generate_writes_file_and_download_serves_it(client, store, make_pos_session, make_charge):
    make_charge(make_pos_session(store), 10000)

    resp = _generate(client, store.id)

    assert resp.status_code == 201
    body = resp.get_json()
    assert body["filename"] == "SAF-T_test-as_2024-03-01_2024-03-31.xml"
    assert body["from_date"] == "2024-03-01"
    assert body["to_date"] == "2024-03-31"
    assert body["size"] > 0
    assert body["download_url"].startswith(f"/api/saf-t/download/{body['filename']}")

    download = client.get(body["download_url"])
    assert download.status_code == 200
    assert download.mimetype == "application/xml"
    root = etree.fromstring(download.data)
    assert root.findtext("GeneralLedgerEntries/TotalDebit") == "10000"
    assert len(download.data) == body["size"]


def test_generate_validates_dates(client, store):
    missing = client.post("/api/saf-t/generate", json={"store_id": store.id, "from_date": "2024-03-01"})
    assert missing.status_code == 400
    assert "to_date" in missing.get_json()["error"]

    reversed_range = _generate(client, store.id, "2024-03-31", "2024-03-01")
    assert reversed_range.status_code == 400

    garbage = _generate(client, store.id, "yesterday", "2024-03-01")
    assert garbage.status_code == 400


def test_generate_unknown_store_is_404(client, db_session):
    resp = _generate(client, 999999)
    assert resp.status_code == 404


def test_generate_requires_store_id(client, db_session):
    resp = client.post("/api/saf-t/generate", json={"from_date": "2024-03-01", "to_date": "2024-03-31"})
    assert resp.status_code == 400


def test_download_refuses_other_stores_files(client, make_store):
    ours = make_store(name="Ours", slug="ours")
    theirs = make_store(name="Theirs", slug="theirs")
    filename = _generate(client, theirs.id).get_json()["filename"]

    resp = client.get(f"/api/saf-t/download/{filename}?store_id={ours.id}")
    assert resp.status_code == 403


def test_download_missing_file_is_404(client, store, app):
    filename = "SAF-T_test-as_1999-01-01_1999-01-31.xml"
    path = os.path.join(app.config["SAFT_STORAGE_DIR"], filename)
    if os.path.exists(path):
        os.remove(path)

    resp = client.get(f"/api/saf-t/download/{filename}?store_id={store.id}")
    assert resp.status_code == 404


def test_content_returns_xml_attachment(client, store, make_pos_session, make_charge):
    make_charge(make_pos_session(store), 2500, payment_method="card")

    resp = client.get(f"/api/saf-t/content?store_id={store.id}&from_date=2024-03-01&to_date=2024-03-01")

    assert resp.status_code == 200
    assert resp.mimetype == "application/xml"
    assert 'filename="SAF-T_test-as_2024-03-01_2024-03-01.xml"' in resp.headers["Content-Disposition"]
    assert b"<AccountID>1921</AccountID>" in resp.data


# =============================================================================
# REPORTS
# =============================================================================

def test_x_report_endpoint(client, store, make_pos_session, make_charge, db_session):
    pos_session = make_pos_session(store, status="open")
    make_charge(pos_session, 10000)

    resp = client.get(f"/api/reports/sessions/{pos_session.id}/x-report")

    assert resp.status_code == 200
    assert resp.get_json()["total_amount"] == 10000
    assert db_session.query(PosEvent).filter_by(event_code="13008").count() == 1


def test_z_report_on_open_session_is_400(client, store, make_pos_session):
    pos_session = make_pos_session(store, status="open")

    resp = client.get(f"/api/reports/sessions/{pos_session.id}/z-report")
    assert resp.status_code == 400
    assert "closed" in resp.get_json()["error"]


def test_report_for_unknown_session_is_404(client, db_session):
    resp = client.get("/api/reports/sessions/987654/x-report")
    assert resp.status_code == 404


def test_z_report_pdf(client, store, make_pos_session, make_charge, make_event):
    pos_session = make_pos_session(store, session_number="000900", actual_cash=10000, cash_difference=0, closing_notes="Alt <ok> & klart")
    make_charge(pos_session, 10000)
    make_event(pos_session, "13005", event_data={"nullinnslag": True})

    resp = client.get(f"/api/reports/sessions/{pos_session.id}/z-report.pdf")

    assert resp.status_code == 200
    assert resp.mimetype == "application/pdf"
    assert resp.data.startswith(b"%PDF")
    assert "Z-Rapport-000900-" in resp.headers["Content-Disposition"]


def test_x_report_pdf(client, store, make_pos_session, make_charge):
    pos_session = make_pos_session(store, status="open")
    make_charge(pos_session, 3000, payment_method="card", tip_amount=200)

    resp = client.get(f"/api/reports/sessions/{pos_session.id}/x-report.pdf")

    assert resp.status_code == 200
    assert resp.data.startswith(b"%PDF")


def test_overview_endpoint(client, store, make_pos_session, make_charge):
    make_charge(make_pos_session(store, opened_at=datetime(2024, 3, 4, 9, 0), closed_at=datetime(2024, 3, 4, 17, 0)), 1500)

    resp = client.get(f"/api/reports/overview?store_id={store.id}&from_date=2024-03-01&to_date=2024-03-31")

    assert resp.status_code == 200
    body = resp.get_json()
    assert body["totals"] == {"sessions": 1, "transactions": 1, "amount": 1500}
    assert body["by_day"]["2024-03-04"]["amount"] == 1500


def test_overview_requires_store_id(client, db_session):
    resp = client.get("/api/reports/overview?from_date=2024-03-01&to_date=2024-03-31")
    assert resp.status_code == 400


def test_sessions_csv_endpoint(client, store, make_pos_session, make_charge):
    make_charge(make_pos_session(store, session_number="000321"), 1000)

    resp = client.get(f"/api/reports/sessions.csv?store_id={store.id}&from_date=2024-03-01&to_date=2024-03-31")

    assert resp.status_code == 200
    assert resp.mimetype == "text/csv"
    text = resp.data.decode("utf-8")
    assert text.splitlines()[0].startswith("Session Number,Status,Cashier")
    assert "000321" in text
    assert 'filename="pos-reports-test-as-2024-03-01-2024-03-31.csv"' in resp.headers["Content-Disposition"]


def test_overview_unexpected_failure_is_500(client, store, monkeypatch):
    def _boom(*args, **kwargs):
        raise RuntimeError("database went away")

    monkeypatch.setattr(report_service, "sales_overview", _boom)

    resp = client.get(f"/api/reports/overview?store_id={store.id}&from_date=2024-03-01&to_date=2024-03-31")
    assert resp.status_code == 500
    assert resp.get_json() == {"error": "Internal server error"}


def test_sessions_csv_unexpected_failure_is_500(client, store, monkeypatch):
    def _boom(*args, **kwargs):
        raise RuntimeError("disk full")

    monkeypatch.setattr(report_service, "sessions_csv", _boom)

    resp = client.get(f"/api/reports/sessions.csv?store_id={store.id}&from_date=2024-03-01&to_date=2024-03-31")
    assert resp.status_code == 500
    assert resp.get_json() == {"error": "Internal server error"}


def test_generate_accepts_offset_datetimes_as_written_days(client, store):
    resp = _generate(client, store.id, "2024-03-01T00:30:00+02:00", "2024-03-31T23:30:00-05:00")

    assert resp.status_code == 201
    assert resp.get_json()["filename"] == "SAF-T_test-as_2024-03-01_2024-03-31.xml"
