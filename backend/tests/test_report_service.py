"""
X/Z report, regeneration, overview and CSV tests.
"""

import csv
import io
import json
from datetime import datetime

import pytest

from kasse.models import PosEvent, PosSession
from kasse.services import report_service, session_service
from kasse.services.report_service import ReportError, SessionNotFoundError


@pytest.fixture
def busy_session(store, make_device, make_pos_session, make_charge, cashier):
    device = make_device(store, device_name="Kasse 2")
    pos_session = make_pos_session(store, status="open", device=device, user=cashier, opening_balance=50000)
    make_charge(pos_session, 10000, payment_method="cash", transaction_code="11001", payment_code="12001")
    make_charge(pos_session, 5000, payment_method="card", tip_amount=500, transaction_code="11002", payment_code="12002")
    make_charge(pos_session, 2000, payment_method="mobile", transaction_code="11002", payment_code="12011")
    make_charge(pos_session, 1000, payment_method="vipps", transaction_code="11002", payment_code="12011")
    make_charge(pos_session, 9999, payment_method="cash", status="failed")
    return pos_session


def _load(pos_session_id):
    return session_service.load_session_for_report(pos_session_id)


# =============================================================================
# X-REPORT
# =============================================================================

def test_x_report_totals(busy_session):
    report = report_service.generate_x_report(_load(busy_session.id))

    assert report["report_type"] == "X-Report"
    assert report["transactions_count"] == 4
    assert report["total_amount"] == 18000
    assert report["cash_amount"] == 10000
    assert report["card_amount"] == 5000
    assert report["mobile_amount"] == 2000
    assert report["other_amount"] == 1000
    assert report["total_tips"] == 500
    assert report["vat_base"] == 14400
    assert report["vat_amount"] == 3600
    assert report["vat_rate"] == 25.0
    assert report["expected_cash"] == 10000
    assert report["opening_balance"] == 50000
    assert report["device"]["name"] == "Kasse 2"
    assert report["cashier"]["name"] == "Kari Nordmann"
    assert report["store"]["name"] == "Test AS"


def test_x_report_breakdowns(busy_session):
    report = report_service.generate_x_report(_load(busy_session.id))

    assert report["by_payment_method"]["card"] == {"count": 1, "amount": 5000, "tips": 500}
    assert report["by_payment_method"]["cash"] == {"count": 1, "amount": 10000, "tips": 0}
    assert set(report["by_payment_method"]) == {"cash", "card", "mobile", "vipps"}

    assert report["transactions_by_type"]["11002"] == {"code": "11002", "count": 3, "amount": 8000}
    assert report["by_payment_code"]["12011"] == {"code": "12011", "count": 2, "amount": 3000}


def test_x_report_classifies_charges_without_codes(store, make_pos_session, make_charge):
    pos_session = make_pos_session(store, status="open")
    make_charge(pos_session, 1000, payment_method="cash")
    make_charge(pos_session, 2000, payment_method="card")
    make_charge(pos_session, 3000, payment_method="card", refunded=True, amount_refunded=3000)

    report = report_service.generate_x_report(_load(pos_session.id))

    assert report["transactions_by_type"] == {
        "11001": {"code": "11001", "count": 1, "amount": 1000},
        "11002": {"code": "11002", "count": 1, "amount": 2000},
        "11006": {"code": "11006", "count": 1, "amount": 3000},
    }
    assert report["by_payment_code"]["12001"]["count"] == 1
    assert report["by_payment_code"]["12002"]["count"] == 2


def test_x_report_hides_tips_when_disabled(make_store, make_pos_session, make_charge):
    store = make_store(tips_enabled=False)
    pos_session = make_pos_session(store, status="open")
    make_charge(pos_session, 5000, payment_method="card", tip_amount=700)

    report = report_service.generate_x_report(_load(pos_session.id))

    assert report["tips_enabled"] is False
    assert report["total_tips"] == 0
    assert report["by_payment_method"]["card"]["tips"] == 0


def test_x_report_counts_drawer_opens_and_nullinnslag(busy_session, make_event):
    make_event(busy_session, PosEvent.EVENT_CASH_DRAWER_OPEN, event_data={"nullinnslag": True})
    make_event(busy_session, PosEvent.EVENT_CASH_DRAWER_OPEN, event_data={"nullinnslag": "true"})
    make_event(busy_session, PosEvent.EVENT_CASH_DRAWER_OPEN)
    make_event(busy_session, PosEvent.EVENT_CASH_DRAWER_CLOSE)

    report = report_service.generate_x_report(_load(busy_session.id))

    assert report["cash_drawer_opens"] == 3
    assert report["nullinnslag_count"] == 1


def test_manual_discounts_from_receipts(busy_session, make_receipt):
    make_receipt(busy_session, {
        "items": [
            {"discount_amount": 500, "quantity": 2},
            {"discount_amount": "12,50"},
            {"discount_amount": 0},
        ],
        "discounts": [{"amount": 300}],
        "total_discounts": 99999,
    })
    make_receipt(busy_session, {"items": [], "total_discounts": 400})
    make_receipt(busy_session, None)

    report = report_service.generate_x_report(_load(busy_session.id))

    assert report["receipt_count"] == 3
    assert report["manual_discounts"] == {"count": 4, "amount": 1000 + 1250 + 300 + 400}


def test_line_corrections_summary(busy_session, make_line_correction):
    make_line_correction(busy_session, "quantity_reduction", quantity_reduction=2, amount_reduction=3000)
    make_line_correction(busy_session, "quantity_reduction", quantity_reduction=1, amount_reduction=1500)
    make_line_correction(busy_session, "line_removal", quantity_reduction=1, amount_reduction=2500)

    corrections = report_service.generate_x_report(_load(busy_session.id))["line_corrections"]

    assert corrections["total_count"] == 3
    assert corrections["total_amount_reduction"] == 7000
    assert corrections["by_type"]["quantity_reduction"] == {
        "type": "quantity_reduction",
        "count": 2,
        "total_quantity_reduction": 3,
        "total_amount_reduction": 4500,
    }


def test_report_payload_is_json_serializable(busy_session, make_event, make_receipt):
    make_event(busy_session, "13005", event_data={"nullinnslag": True})
    make_receipt(busy_session, {"total_discounts": 100})

    report = report_service.generate_z_report(_load(busy_session.id))
    assert json.loads(json.dumps(report))["total_amount"] == 18000


# =============================================================================
# PRODUCING REPORTS
# =============================================================================

def test_produce_x_report_records_journal_event(busy_session, db_session):
    report = report_service.produce_x_report(busy_session.id, user_id=None)

    events = db_session.query(PosEvent).filter_by(pos_session_id=busy_session.id, event_code="13008").all()
    assert len(events) == 1
    event = events[0]
    assert event.event_type == "report"
    assert event.description == f"X-report for session {busy_session.session_number}"
    assert event.event_data["report_type"] == "X-Report"
    assert event.event_data["session_number"] == busy_session.session_number
    assert event.event_data["report_data"]["total_amount"] == report["total_amount"]


def test_x_report_requires_open_session(store, make_pos_session):
    pos_session = make_pos_session(store, status="closed")

    with pytest.raises(ReportError, match="open session"):
        report_service.produce_x_report(pos_session.id)


def test_z_report_requires_closed_session(busy_session):
    with pytest.raises(ReportError, match="closed session"):
        report_service.produce_z_report(busy_session.id)


def test_missing_session_raises_not_found(db_session):
    with pytest.raises(SessionNotFoundError):
        report_service.produce_x_report(424242)


def test_produce_z_report_records_journal_event(store, make_pos_session, make_charge, db_session):
    pos_session = make_pos_session(store, actual_cash=10500, cash_difference=500, expected_cash=10000, closing_notes="OK")
    make_charge(pos_session, 10000, payment_method="cash")

    report = report_service.produce_z_report(pos_session.id)

    assert report["report_type"] == "Z-Report"
    assert report["actual_cash"] == 10500
    assert report["cash_difference"] == 500
    assert report["closing_notes"] == "OK"
    assert report["closed_at"] == "2024-03-01T18:00:00Z"

    event = db_session.query(PosEvent).filter_by(pos_session_id=pos_session.id, event_code="13009").one()
    assert event.event_data["report_type"] == "Z-Report"


# =============================================================================
# Z-REPORT
# =============================================================================

def test_z_report_event_summary_uses_norwegian_labels(store, make_pos_session, make_event):
    pos_session = make_pos_session(store)
    make_event(pos_session, "13005")
    make_event(pos_session, "13005")
    make_event(pos_session, "13999", event_type="other", description="Egendefinert")

    summary = report_service.generate_z_report(_load(pos_session.id))["event_summary"]

    assert summary["13005"] == {"code": "13005", "description": "Kontantskuff åpnet", "count": 2}
    assert summary["13999"]["description"] == "Egendefinert"


def test_z_report_transaction_list_and_day_span(make_store, make_pos_session, make_charge):
    store = make_store(tips_enabled=False)
    pos_session = make_pos_session(
        store,
        opened_at=datetime(2024, 3, 1, 20, 0),
        closed_at=datetime(2024, 3, 2, 2, 0),
    )
    charge = make_charge(pos_session, 4500, payment_method="card", tip_amount=300, paid_at=datetime(2024, 3, 2, 0, 15))
    make_charge(pos_session, 100, status="failed")

    report = report_service.generate_z_report(_load(pos_session.id))

    assert report["spans_multiple_days"] is True
    assert len(report["complete_transaction_list"]) == 1
    entry = report["complete_transaction_list"][0]
    assert entry["id"] == charge.id
    assert entry["tip_amount"] == 0
    assert entry["transaction_date"] == "2024-03-02"
    assert entry["spans_multiple_days"] is True


def test_z_report_receipt_summary(store, make_pos_session, make_receipt):
    pos_session = make_pos_session(store)
    make_receipt(pos_session, receipt_type="sales")
    make_receipt(pos_session, receipt_type="sales")
    make_receipt(pos_session, receipt_type="return")

    summary = report_service.generate_z_report(_load(pos_session.id))["receipt_summary"]

    assert summary == {
        "sales": {"type": "sales", "count": 2},
        "return": {"type": "return", "count": 1},
    }


# =============================================================================
# REGENERATION
# =============================================================================

def test_regenerate_z_reports_recomputes_cash(store, make_pos_session, make_charge, db_session):
    pos_session = make_pos_session(store, expected_cash=0, actual_cash=12000, cash_difference=12000)
    make_charge(pos_session, 10000, payment_method="cash")
    make_charge(pos_session, 3000, payment_method="card")

    stats = report_service.regenerate_z_reports(store_id=store.id)

    assert stats == {"total_sessions": 1, "processed": 1, "regenerated": 1, "errors": []}
    refreshed = db_session.get(PosSession, pos_session.id)
    assert refreshed.expected_cash == 10000
    assert refreshed.cash_difference == 2000
    assert refreshed.closing_data["z_report_data"]["total_amount"] == 13000
    assert "z_report_regenerated_at" in refreshed.closing_data


def test_regenerate_z_reports_dry_run_changes_nothing(store, make_pos_session, make_charge, db_session):
    pos_session = make_pos_session(store, expected_cash=0, actual_cash=12000, cash_difference=12000)
    make_charge(pos_session, 10000, payment_method="cash")

    stats = report_service.regenerate_z_reports(dry_run=True)

    assert stats["regenerated"] == 1
    refreshed = db_session.get(PosSession, pos_session.id)
    assert refreshed.expected_cash == 0
    assert refreshed.cash_difference == 12000
    assert refreshed.closing_data is None


def test_regenerate_z_reports_filters_by_closing_day_and_limit(store, make_pos_session):
    make_pos_session(store, opened_at=datetime(2024, 3, 1, 9, 0), closed_at=datetime(2024, 3, 1, 17, 0))
    make_pos_session(store, opened_at=datetime(2024, 3, 2, 9, 0), closed_at=datetime(2024, 3, 2, 17, 0))
    make_pos_session(store, opened_at=datetime(2024, 3, 3, 9, 0), closed_at=datetime(2024, 3, 3, 17, 0))
    make_pos_session(store, status="open", opened_at=datetime(2024, 3, 2, 9, 0))

    assert report_service.regenerate_z_reports(from_date="2024-03-02", to_date="2024-03-03", dry_run=True)["total_sessions"] == 2
    assert report_service.regenerate_z_reports(limit=1, dry_run=True)["total_sessions"] == 1


# =============================================================================
# OVERVIEW & CSV
# =============================================================================

def test_sales_overview(store, make_pos_session, make_charge):
    day_one = make_pos_session(store, opened_at=datetime(2024, 3, 1, 9, 0), closed_at=datetime(2024, 3, 1, 17, 0))
    day_two = make_pos_session(store, opened_at=datetime(2024, 3, 2, 9, 0), closed_at=datetime(2024, 3, 2, 17, 0))
    still_open = make_pos_session(store, status="open", opened_at=datetime(2024, 3, 2, 10, 0))

    make_charge(day_one, 1000, payment_method="cash")
    make_charge(day_one, 2000, payment_method="card")
    make_charge(day_two, 4000, payment_method="card")
    make_charge(still_open, 8000, payment_method="cash")

    overview = report_service.sales_overview(store.id, "2024-03-01", "2024-03-31")

    assert overview["period"] == {"from": "01.03.2024", "to": "31.03.2024"}
    assert overview["totals"] == {"sessions": 2, "transactions": 3, "amount": 7000}
    assert overview["by_payment_method"]["card"] == {"count": 2, "amount": 6000}
    assert overview["by_day"]["2024-03-01"] == {"sessions": 1, "transactions": 2, "amount": 3000}
    assert overview["by_day"]["2024-03-02"] == {"sessions": 1, "transactions": 1, "amount": 4000}


def test_sessions_csv(store, make_pos_session, make_charge, cashier):
    closed = make_pos_session(
        store,
        session_number="000001",
        user=cashier,
        expected_cash=1000,
        actual_cash=950,
        cash_difference=-50,
    )
    make_charge(closed, 1000, payment_method="cash")
    make_charge(closed, 2550, payment_method="card")
    make_pos_session(store, session_number="000002", status="open", opened_at=datetime(2024, 3, 2, 9, 0))

    rows = list(csv.reader(io.StringIO(report_service.sessions_csv(store.id, "2024-03-01", "2024-03-31"))))

    assert rows[0] == report_service.CSV_COLUMNS
    assert rows[1] == [
        "000001", "closed", "Kari Nordmann", "2024-03-01 10:00:00", "2024-03-01 18:00:00",
        "2", "35.50", "10.00", "25.50", "10.00", "9.50", "-0.50",
    ]
    assert rows[2][:3] == ["000002", "open", "N/A"]
    assert rows[2][4] == ""
    assert len(rows) == 3


def test_csv_filename(store):
    assert report_service.csv_filename(store, "2024-03-01", "2024-03-31") == "pos-reports-test-as-2024-03-01-2024-03-31.csv"
