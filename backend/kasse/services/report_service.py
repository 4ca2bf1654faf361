# Overview: X/Z session reports, report audit events, Z-report regeneration, sales overview and CSV.

from __future__ import annotations

import csv
import io
from collections import OrderedDict
from datetime import datetime
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Callable, Iterable, Optional

from flask import current_app

from ..extensions import db
from ..models import PosEvent, PosSession
from . import session_service
from .saft_codes import TaxPolicy, event_label_no, payment_code_for, transaction_code_for_charge
from .session_service import DateLike
from kasse.time_utils import coerce_date, format_day, to_utc_z, utcnow

"""
Report rules (authoritative)

- Only succeeded charges count. Amounts are integer øre throughout.
- Tips are reported only when the store has tips enabled; otherwise they read 0.
- Charges without stored transaction/payment codes are classified from
  their payment method.
- VAT is derived from the gross total with the flat policy:
  base = round(total / (1 + rate)), vat = total - base.
- Producing an X-report requires an open session, a Z-report a closed one.
  Each produced report is journaled as a PosEvent (13008 / 13009) carrying
  the full report payload.
- Report payloads are JSON-serializable (datetimes as ISO-8601 "Z").
"""


class ReportError(Exception):
    """Raised when a report cannot be produced."""
    pass


class SessionNotFoundError(ReportError):
    pass


UNKNOWN_KEY = "unknown"


def _key(value) -> str:
    return UNKNOWN_KEY if value in (None, "") else str(value)


def _group_by(items: Iterable, key_fn: Callable) -> "OrderedDict[str, list]":
    groups: "OrderedDict[str, list]" = OrderedDict()
    for item in items:
        groups.setdefault(_key(key_fn(item)), []).append(item)
    return groups


def _group(items: Iterable, attr: str) -> "OrderedDict[str, list]":
    return _group_by(items, lambda item: getattr(item, attr))


def _transaction_code(charge) -> str:
    return charge.transaction_code or transaction_code_for_charge(charge)


def _payment_code(charge) -> str:
    return charge.payment_code or payment_code_for(charge.payment_method)


# =============================================================================
# DISCOUNTS & CORRECTIONS
# =============================================================================

def _discount_ore(value) -> int:
    """
    Normalize a receipt discount value to øre.

    Numbers are already øre. Strings are formatted kroner ("50,00", "1 250.50").
    """
    if value is None or isinstance(value, bool):
        return 0
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(Decimal(str(value)).quantize(Decimal(1), rounding=ROUND_HALF_UP))
    if isinstance(value, str):
        cleaned = value.replace(" ", "").replace(",", ".")
        try:
            kroner = Decimal(cleaned)
        except InvalidOperation:
            return 0
        return int((kroner * 100).quantize(Decimal(1), rounding=ROUND_HALF_UP))
    return 0


def calculate_manual_discounts(receipts: Iterable) -> dict:
    """
    Count discounts applied at the register.

    Item discounts are multiplied by quantity. When a receipt carries no
    itemized or cart discounts, its total_discounts is used instead.
    """
    count = 0
    amount = 0

    for receipt in receipts:
        data = receipt.receipt_data if isinstance(receipt.receipt_data, dict) else {}
        receipt_count = 0
        receipt_amount = 0

        for item in data.get("items") or []:
            if not isinstance(item, dict):
                continue
            discount = _discount_ore(item.get("discount_amount"))
            if discount > 0:
                quantity = int(item.get("quantity") or 1)
                receipt_count += 1
                receipt_amount += discount * quantity

        for discount_entry in data.get("discounts") or []:
            if not isinstance(discount_entry, dict):
                continue
            discount = _discount_ore(discount_entry.get("amount"))
            if discount > 0:
                receipt_count += 1
                receipt_amount += discount

        if receipt_amount == 0:
            fallback = _discount_ore(data.get("total_discounts"))
            if fallback > 0:
                receipt_count = 1
                receipt_amount = fallback

        count += receipt_count
        amount += receipt_amount

    return {"count": count, "amount": amount}


def calculate_line_corrections(corrections: Iterable) -> dict:
    corrections = list(corrections)
    by_type = {}
    for correction_type, group in _group(corrections, "correction_type").items():
        by_type[correction_type] = {
            "type": correction_type,
            "count": len(group),
            "total_quantity_reduction": sum(c.quantity_reduction or 0 for c in group),
            "total_amount_reduction": sum(c.amount_reduction or 0 for c in group),
        }
    return {
        "total_count": len(corrections),
        "total_amount_reduction": sum(c.amount_reduction or 0 for c in corrections),
        "by_type": by_type,
    }


# =============================================================================
# X / Z REPORTS
# =============================================================================

def generate_x_report(
    session: PosSession,
    *,
    tax_policy: Optional[TaxPolicy] = None,
    generated_at: Optional[datetime] = None,
) -> dict:
    """Interim (X) report for a session. Pure: nothing is written."""
    tax_policy = tax_policy or TaxPolicy.from_config()
    store = session.store
    tips_enabled = bool(store.tips_enabled) if store is not None and store.tips_enabled is not None else True

    charges = session.succeeded_charges()

    def _sum(items, attr="amount") -> int:
        return sum(getattr(item, attr) or 0 for item in items)

    total_amount = _sum(charges)
    cash_amount = _sum(c for c in charges if c.payment_method == "cash")
    card_amount = _sum(c for c in charges if c.payment_method == "card")
    mobile_amount = _sum(c for c in charges if c.payment_method == "mobile")
    other_amount = total_amount - cash_amount - card_amount - mobile_amount
    total_tips = _sum(charges, "tip_amount") if tips_enabled else 0

    vat_base = tax_policy.net_amount(total_amount)
    vat_amount = total_amount - vat_base

    by_payment_method = {
        method: {
            "count": len(group),
            "amount": _sum(group),
            "tips": _sum(group, "tip_amount") if tips_enabled else 0,
        }
        for method, group in _group(charges, "payment_method").items()
    }
    transactions_by_type = {
        code: {"code": code, "count": len(group), "amount": _sum(group)}
        for code, group in _group_by(charges, _transaction_code).items()
    }
    by_payment_code = {
        code: {"code": code, "count": len(group), "amount": _sum(group)}
        for code, group in _group_by(charges, _payment_code).items()
    }

    drawer_opens = [e for e in session.events if e.event_code == PosEvent.EVENT_CASH_DRAWER_OPEN]
    nullinnslag_count = sum(
        1 for e in drawer_opens
        if isinstance(e.event_data, dict) and e.event_data.get("nullinnslag") is True
    )

    device = session.pos_device
    cashier = session.user

    return {
        "report_type": "X-Report",
        "session_id": session.id,
        "session_number": session.session_number,
        "status": session.status,
        "opened_at": to_utc_z(session.opened_at),
        "report_generated_at": to_utc_z(generated_at or utcnow()),
        "store": {"id": store.id, "name": store.name} if store is not None else None,
        "device": {"id": device.id, "name": device.device_name} if device is not None else None,
        "cashier": {"id": cashier.id, "name": cashier.name} if cashier is not None else None,
        "opening_balance": session.opening_balance or 0,
        "transactions_count": len(charges),
        "total_amount": total_amount,
        "vat_base": vat_base,
        "vat_amount": vat_amount,
        "vat_rate": float(tax_policy.rate * 100),
        "cash_amount": cash_amount,
        "card_amount": card_amount,
        "mobile_amount": mobile_amount,
        "other_amount": other_amount,
        "total_tips": total_tips,
        "tips_enabled": tips_enabled,
        "expected_cash": session.calculate_expected_cash(),
        "by_payment_method": by_payment_method,
        "by_payment_code": by_payment_code,
        "transactions_by_type": transactions_by_type,
        "cash_drawer_opens": len(drawer_opens),
        "nullinnslag_count": nullinnslag_count,
        "receipt_count": len(session.receipts),
        "charges": [charge.to_dict() for charge in charges],
        "manual_discounts": calculate_manual_discounts(session.receipts),
        "line_corrections": calculate_line_corrections(session.line_corrections),
    }


def generate_z_report(
    session: PosSession,
    *,
    tax_policy: Optional[TaxPolicy] = None,
    generated_at: Optional[datetime] = None,
) -> dict:
    """End-of-session (Z) report: the X-report plus closing figures and the full journal."""
    generated_at = generated_at or utcnow()
    report = generate_x_report(session, tax_policy=tax_policy, generated_at=generated_at)
    tips_enabled = report["tips_enabled"]

    report["report_type"] = "Z-Report"
    report["closed_at"] = to_utc_z(session.closed_at) if session.closed_at else None
    report["actual_cash"] = session.actual_cash
    report["cash_difference"] = session.cash_difference
    report["closing_notes"] = session.closing_notes

    event_summary = {}
    for code, group in _group(session.events, "event_code").items():
        first = group[0]
        event_summary[code] = {
            "code": first.event_code,
            "description": event_label_no(first.event_code, first.description or first.event_description),
            "count": len(group),
        }
    report["event_summary"] = event_summary

    end_day = format_day(session.closed_at or generated_at)
    spans_multiple_days = format_day(session.opened_at) != end_day
    report["spans_multiple_days"] = spans_multiple_days

    report["complete_transaction_list"] = [
        {
            "id": charge.id,
            "stripe_charge_id": charge.stripe_charge_id,
            "amount": charge.amount,
            "currency": charge.currency,
            "payment_method": charge.payment_method,
            "payment_code": charge.payment_code,
            "transaction_code": charge.transaction_code,
            "tip_amount": (charge.tip_amount or 0) if tips_enabled else 0,
            "description": charge.description,
            "paid_at": to_utc_z(charge.paid_at) if charge.paid_at else None,
            "created_at": to_utc_z(charge.created_at),
            "transaction_date": format_day(charge.transaction_time),
            "spans_multiple_days": spans_multiple_days,
        }
        for charge in session.succeeded_charges()
    ]

    report["receipt_summary"] = {
        receipt_type: {"type": receipt_type, "count": len(group)}
        for receipt_type, group in _group(session.receipts, "receipt_type").items()
    }
    return report


def record_report_event(session: PosSession, report: dict, *, user_id: Optional[int] = None) -> PosEvent:
    """Journal a produced report. Caller commits."""
    is_z = report.get("report_type") == "Z-Report"
    label = "Z-report" if is_z else "X-report"
    event = PosEvent(
        store_id=session.store_id,
        pos_device_id=session.pos_device_id,
        pos_session_id=session.id,
        user_id=user_id,
        event_code=PosEvent.EVENT_Z_REPORT if is_z else PosEvent.EVENT_X_REPORT,
        event_type="report",
        description=f"{label} for session {session.session_number}",
        event_data={
            "report_type": report.get("report_type"),
            "session_number": session.session_number,
            "report_data": report,
        },
        occurred_at=utcnow(),
    )
    db.session.add(event)
    return event


def _load_session(session_id: int) -> PosSession:
    session = session_service.load_session_for_report(session_id)
    if session is None:
        raise SessionNotFoundError("Session not found")
    return session


def produce_x_report(session_id: int, *, user_id: Optional[int] = None) -> dict:
    session = _load_session(session_id)
    if session.status != "open":
        raise ReportError("X-report requires an open session")

    report = generate_x_report(session)
    record_report_event(session, report, user_id=user_id)
    db.session.commit()
    return report


def produce_z_report(session_id: int, *, user_id: Optional[int] = None) -> dict:
    session = _load_session(session_id)
    if session.status != "closed":
        raise ReportError("Z-report requires a closed session")

    report = generate_z_report(session)
    record_report_event(session, report, user_id=user_id)
    db.session.commit()
    return report


# =============================================================================
# REGENERATION
# =============================================================================

def regenerate_z_reports(
    *,
    store_id: Optional[int] = None,
    from_date: Optional[DateLike] = None,
    to_date: Optional[DateLike] = None,
    limit: Optional[int] = None,
    dry_run: bool = False,
) -> dict:
    """
    Recompute cash figures and cached Z-report snapshots for closed sessions.

    from_date / to_date filter on the closing day (inclusive). A failure on one
    session is logged and recorded in errors; processing continues.
    """
    stats = {
        "total_sessions": 0,
        "processed": 0,
        "regenerated": 0,
        "errors": [],
    }

    query = db.session.query(PosSession).filter(PosSession.status == "closed")
    if store_id:
        query = query.filter(PosSession.store_id == store_id)
    if from_date:
        start, _ = session_service.day_bounds(from_date, from_date)
        query = query.filter(PosSession.closed_at >= start)
    if to_date:
        _, end = session_service.day_bounds(to_date, to_date)
        query = query.filter(PosSession.closed_at < end)

    query = query.order_by(PosSession.closed_at.asc(), PosSession.id.asc())
    if limit:
        query = query.limit(limit)

    sessions = query.all()
    stats["total_sessions"] = len(sessions)

    for session in sessions:
        stats["processed"] += 1
        try:
            if not dry_run:
                session.expected_cash = session.calculate_expected_cash()
                if session.actual_cash is not None:
                    session.cash_difference = session.actual_cash - session.expected_cash

            report = generate_z_report(session)

            if not dry_run:
                closing_data = dict(session.closing_data or {})
                closing_data["z_report_data"] = report
                closing_data["z_report_regenerated_at"] = to_utc_z(utcnow())
                session.closing_data = closing_data
                db.session.commit()

            stats["regenerated"] += 1
        except Exception as exc:
            db.session.rollback()
            message = f"Session {session.id} ({session.session_number}): {exc}"
            stats["errors"].append(message)
            current_app.logger.warning("Failed to regenerate Z-report: %s", message)

    current_app.logger.info(
        "Z-report regeneration finished: %s/%s regenerated%s",
        stats["regenerated"],
        stats["total_sessions"],
        " (dry run)" if dry_run else "",
    )
    return stats


# =============================================================================
# OVERVIEW & CSV
# =============================================================================

def sales_overview(store_id: int, from_date: DateLike, to_date: DateLike) -> dict:
    from_day = coerce_date(from_date)
    to_day = coerce_date(to_date)
    sessions = session_service.closed_sessions_in_range(store_id, from_day, to_day)

    all_charges = [charge for session in sessions for charge in session.succeeded_charges()]

    by_payment_method = {
        method: {"count": len(group), "amount": sum(c.amount for c in group)}
        for method, group in _group(all_charges, "payment_method").items()
    }

    by_day: "OrderedDict[str, dict]" = OrderedDict()
    for session in sessions:
        day = by_day.setdefault(
            format_day(session.opened_at),
            {"sessions": 0, "transactions": 0, "amount": 0},
        )
        charges = session.succeeded_charges()
        day["sessions"] += 1
        day["transactions"] += len(charges)
        day["amount"] += sum(c.amount for c in charges)

    return {
        "period": {
            "from": from_day.strftime("%d.%m.%Y"),
            "to": to_day.strftime("%d.%m.%Y"),
        },
        "totals": {
            "sessions": len(sessions),
            "transactions": len(all_charges),
            "amount": sum(c.amount for c in all_charges),
        },
        "by_payment_method": by_payment_method,
        "by_day": by_day,
    }


CSV_COLUMNS = [
    "Session Number",
    "Status",
    "Cashier",
    "Opened At",
    "Closed At",
    "Transactions",
    "Total Amount (NOK)",
    "Cash Amount (NOK)",
    "Card Amount (NOK)",
    "Expected Cash (NOK)",
    "Actual Cash (NOK)",
    "Cash Difference (NOK)",
]


def _nok(amount_ore: Optional[int]) -> str:
    return f"{Decimal(amount_ore or 0) / 100:.2f}"


def csv_filename(store, from_date: DateLike, to_date: DateLike) -> str:
    return f"pos-reports-{store.slug}-{coerce_date(from_date):%Y-%m-%d}-{coerce_date(to_date):%Y-%m-%d}.csv"


def sessions_csv(store_id: int, from_date: DateLike, to_date: DateLike) -> str:
    """All sessions (any status) opened in the range, one row each."""
    sessions = session_service.sessions_in_range(store_id, from_date, to_date)

    buffer = io.StringIO()
    writer = csv.writer(buffer)
    writer.writerow(CSV_COLUMNS)

    for session in sessions:
        charges = session.succeeded_charges()
        writer.writerow([
            session.session_number,
            session.status,
            session.user.name if session.user else "N/A",
            session.opened_at.strftime("%Y-%m-%d %H:%M:%S"),
            session.closed_at.strftime("%Y-%m-%d %H:%M:%S") if session.closed_at else "",
            len(charges),
            _nok(sum(c.amount for c in charges)),
            _nok(sum(c.amount for c in charges if c.payment_method == "cash")),
            _nok(sum(c.amount for c in charges if c.payment_method == "card")),
            _nok(session.expected_cash),
            _nok(session.actual_cash),
            _nok(session.cash_difference),
        ])

    return buffer.getvalue()
