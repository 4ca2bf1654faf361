# Overview: Norwegian SAF-T Cash Register (v1.00) audit file assembly.

"""
SAF-T Cash Register export

Builds the AuditFile document for one store and a calendar-day range:

    AuditFile
      Header
      MasterData > CashRegister
      GeneralLedgerEntries
        NumberOfEntries, TotalDebit, TotalCredit
        Journal (one per closed session)
          Transaction
            Line (debit per charge, optional tip, credit per charge)
            Events (optional)

INVARIANTS:
- Only closed sessions and succeeded charges are exported.
- TotalDebit is the sum of sale debit postings, TotalCredit the sum of revenue
  credit postings; both are derived from the same lines and must agree.
- Each line carries exactly one non-zero side.
- Generation is pure: no writes, same inputs (including generated_at) give the
  same bytes.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from datetime import date, datetime
from typing import Iterable, Optional, Sequence

from flask import current_app

from ..models import ConnectedCharge, PosEvent, PosSession, Store
from . import session_service
from .saft_codes import (
    DEFAULT_TRANSACTION_CODE,
    REVENUE_ACCOUNT_ID,
    TIP_RAISE_CODE,
    TIPS_ACCOUNT_ID,
    TaxPolicy,
    account_id_for_payment_method,
)
from .session_service import DateLike
from .xml_tree import Element, leaf, node, node_from, safe_tag, to_string
from kasse.time_utils import coerce_date, format_day, format_timestamp, utcnow


AUDIT_FILE_VERSION = "1.00"
AUDIT_FILE_COUNTRY = "NO"
TAX_ACCOUNTING_BASIS = "K"  # Kontantmetoden (cash basis)
CURRENCY_CODE = "NOK"
JOURNAL_TYPE = "KR"  # Kasse

DEBIT = "DEBIT"
CREDIT = "CREDIT"


@dataclass(frozen=True)
class SoftwareIdentity:
    company_name: str = "POS System"
    software_id: str = "POS System"
    version: str = "1.0"

    @classmethod
    def from_config(cls, config=None) -> "SoftwareIdentity":
        config = config if config is not None else current_app.config
        app_name = config.get("APP_NAME", "POS System")
        return cls(
            company_name=config.get("SAFT_SOFTWARE_COMPANY_NAME", app_name),
            software_id=config.get("SAFT_SOFTWARE_ID", app_name),
            version=config.get("SAFT_SOFTWARE_VERSION", "1.0"),
        )


@dataclass(frozen=True)
class TaxInformation:
    code: str
    percentage: str
    amount: int

    def to_element(self) -> Element:
        return node(
            "TaxInformation",
            leaf("TaxCode", self.code),
            leaf("TaxPercentage", self.percentage),
            leaf("TaxAmount", self.amount),
        )


@dataclass(frozen=True)
class LedgerLine:
    """
    One posting.

    kind is "sale" (payment account debit), "tip" (tips account debit) or
    "revenue" (revenue account credit).
    """
    record_id: str
    account_id: str
    side: str
    kind: str
    amount: int
    source_document_id: str
    description: str
    transaction_date: str
    article_group_code: Optional[str] = None
    raise_code: Optional[str] = None
    tax: Optional[TaxInformation] = None

    @property
    def debit_amount(self) -> int:
        return self.amount if self.side == DEBIT else 0

    @property
    def credit_amount(self) -> int:
        return self.amount if self.side == CREDIT else 0

    def to_element(self) -> Element:
        return node(
            "Line",
            leaf("RecordID", self.record_id),
            leaf("AccountID", self.account_id),
            leaf("ArticleGroupCode", self.article_group_code) if self.article_group_code else None,
            leaf("RaiseCode", self.raise_code) if self.raise_code else None,
            leaf("SourceDocumentID", self.source_document_id),
            leaf("Description", self.description),
            leaf("DebitAmount", self.debit_amount),
            leaf("CreditAmount", self.credit_amount),
            leaf("TransactionDate", self.transaction_date),
            self.tax.to_element() if self.tax else None,
        )


@dataclass(frozen=True)
class LedgerTotals:
    number_of_entries: int
    total_debit: int
    total_credit: int

    @property
    def balanced(self) -> bool:
        return self.total_debit == self.total_credit


@dataclass(frozen=True)
class SessionJournal:
    session: PosSession
    lines: tuple[LedgerLine, ...]
    element: Element


# =============================================================================
# HEADER & MASTER DATA
# =============================================================================

def build_header(
    store: Store,
    from_day: date,
    to_day: date,
    generated_at: datetime,
    software: SoftwareIdentity,
) -> Element:
    return node(
        "Header",
        leaf("AuditFileVersion", AUDIT_FILE_VERSION),
        leaf("AuditFileCountry", AUDIT_FILE_COUNTRY),
        leaf("AuditFileDateCreated", format_timestamp(generated_at)),
        leaf("SoftwareCompanyName", software.company_name),
        leaf("SoftwareID", software.software_id),
        leaf("SoftwareVersion", software.version),
        leaf("CompanyName", store.name),
        leaf("CompanyRegistrationNumber", store.organization_number),
        leaf("TaxAccountingBasis", TAX_ACCOUNTING_BASIS),
        leaf("CurrencyCode", CURRENCY_CODE),
        leaf("DateCreated", format_day(generated_at)),
        leaf("TaxEntity", store.name),
        leaf("SelectionCriteria", f"From: {from_day:%Y-%m-%d} To: {to_day:%Y-%m-%d}"),
    )


def build_master_data(store: Store) -> Element:
    return node(
        "MasterData",
        node(
            "CashRegister",
            leaf("CashRegisterID", str(store.id)),
            leaf("CashRegisterDescription", store.name),
        ),
    )


# =============================================================================
# LEDGER LINES
# =============================================================================

def ledger_lines_for_charge(charge: ConnectedCharge, tax_policy: TaxPolicy) -> list[LedgerLine]:
    """Debit line, optional tip line, and revenue credit line for one succeeded charge."""
    transaction_date = format_day(charge.transaction_time)
    source_document_id = charge.stripe_charge_id
    description = charge.description or f"Salg {charge.stripe_charge_id}"

    lines = [
        LedgerLine(
            record_id=str(charge.id),
            account_id=account_id_for_payment_method(charge.payment_method),
            side=DEBIT,
            kind="sale",
            amount=charge.amount,
            source_document_id=source_document_id,
            description=description,
            transaction_date=transaction_date,
            article_group_code=charge.article_group_code or None,
            tax=TaxInformation(
                code=tax_policy.code,
                percentage=tax_policy.percentage,
                amount=tax_policy.tax_amount(charge.amount),
            ),
        )
    ]

    if charge.tip_amount and charge.tip_amount > 0:
        lines.append(
            LedgerLine(
                record_id=f"{charge.id}-tip",
                account_id=TIPS_ACCOUNT_ID,
                side=DEBIT,
                kind="tip",
                amount=charge.tip_amount,
                source_document_id=source_document_id,
                description="Drikkepenger/Tips",
                transaction_date=transaction_date,
                raise_code=TIP_RAISE_CODE,
            )
        )

    lines.append(
        LedgerLine(
            record_id=f"{charge.id}-credit",
            account_id=REVENUE_ACCOUNT_ID,
            side=CREDIT,
            kind="revenue",
            amount=charge.amount,
            source_document_id=source_document_id,
            description=description,
            transaction_date=transaction_date,
        )
    )
    return lines


def compute_totals(journals: Sequence[SessionJournal]) -> LedgerTotals:
    total_debit = 0
    total_credit = 0
    for journal in journals:
        for line in journal.lines:
            if line.kind == "sale":
                total_debit += line.debit_amount
            total_credit += line.credit_amount
    return LedgerTotals(
        number_of_entries=len(journals),
        total_debit=total_debit,
        total_credit=total_credit,
    )


# =============================================================================
# EVENTS
# =============================================================================

def _stringify(value) -> str:
    # EventData booleans are written as "true"/"false", not "1"/"".
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (dict, list)):
        return json.dumps(value, ensure_ascii=False, sort_keys=True, default=str)
    return str(value)


def build_event_data(payload) -> Optional[Element]:
    if not payload:
        return None
    if isinstance(payload, dict):
        items = payload.items()
    else:
        items = [("value", payload)]
    return node_from("EventData", (leaf(safe_tag(key), _stringify(value)) for key, value in items))


def build_event(event: PosEvent) -> Element:
    return node(
        "Event",
        leaf("EventCode", event.event_code),
        leaf("EventType", event.event_type),
        leaf("Description", event.description or event.event_description),
        leaf("OccurredAt", format_timestamp(event.occurred_at)),
        build_event_data(event.event_data),
    )


def build_events(events: Iterable[PosEvent]) -> Optional[Element]:
    events = list(events or [])
    if not events:
        return None
    return node_from("Events", (build_event(event) for event in events))


# =============================================================================
# JOURNALS
# =============================================================================

def build_journal(session: PosSession, tax_policy: TaxPolicy) -> SessionJournal:
    charges = session.succeeded_charges()

    lines: list[LedgerLine] = []
    for charge in charges:
        lines.extend(ledger_lines_for_charge(charge, tax_policy))

    transaction_code = charges[0].transaction_code if charges else None
    if transaction_code is None:
        transaction_code = DEFAULT_TRANSACTION_CODE

    device_name = session.pos_device.device_name if session.pos_device else None

    transaction = node(
        "Transaction",
        leaf("TransactionID", str(session.id)),
        leaf("TransactionCode", transaction_code) if transaction_code else None,
        leaf("Period", session.opened_at.strftime("%Y-%m")),
        leaf("TransactionDate", format_day(session.opened_at)),
        leaf("SourceID", device_name or "Unknown"),
        leaf("Description", f"Sesjon {session.session_number}"),
        *(line.to_element() for line in lines),
        build_events(session.events),
    )

    journal = node(
        "Journal",
        leaf("JournalID", session.session_number),
        leaf("Description", f"Kassesesjon {session.session_number}"),
        leaf("JournalType", JOURNAL_TYPE),
        leaf("StartDate", format_day(session.opened_at)),
        leaf("EndDate", format_day(session.closed_at or session.opened_at)),
        transaction,
    )
    return SessionJournal(session=session, lines=tuple(lines), element=journal)


def build_general_ledger_entries(journals: Sequence[SessionJournal]) -> tuple[Element, LedgerTotals]:
    totals = compute_totals(journals)
    element = node(
        "GeneralLedgerEntries",
        leaf("NumberOfEntries", totals.number_of_entries),
        leaf("TotalDebit", totals.total_debit),
        leaf("TotalCredit", totals.total_credit),
        *(journal.element for journal in journals),
    )
    return element, totals


# =============================================================================
# DOCUMENT
# =============================================================================

def build_audit_file(
    store: Store,
    sessions: Sequence[PosSession],
    from_date: DateLike,
    to_date: DateLike,
    *,
    generated_at: Optional[datetime] = None,
    software: Optional[SoftwareIdentity] = None,
    tax_policy: Optional[TaxPolicy] = None,
) -> Element:
    from_day = coerce_date(from_date)
    to_day = coerce_date(to_date)
    generated_at = generated_at or utcnow()
    software = software or SoftwareIdentity.from_config()
    tax_policy = tax_policy or TaxPolicy.from_config()

    journals = [build_journal(session, tax_policy) for session in sessions]
    ledger, _totals = build_general_ledger_entries(journals)

    return node(
        "AuditFile",
        build_header(store, from_day, to_day, generated_at, software),
        build_master_data(store),
        ledger,
    )


def generate_saft_cash_register(
    store: Store,
    from_date: DateLike,
    to_date: DateLike,
    *,
    generated_at: Optional[datetime] = None,
    software: Optional[SoftwareIdentity] = None,
    tax_policy: Optional[TaxPolicy] = None,
) -> str:
    """
    Generate the SAF-T Cash Register XML for a store and inclusive day range.

    Args:
        store: Store being exported
        from_date: First calendar day (date, datetime or ISO string)
        to_date: Last calendar day (inclusive)
        generated_at: Creation timestamp for the header (defaults to now, UTC)
        software: Software identity (defaults to app config)
        tax_policy: VAT policy (defaults to app config)

    Raises:
        ValueError: If a date string cannot be parsed
    """
    from_day = coerce_date(from_date)
    to_day = coerce_date(to_date)

    sessions = session_service.closed_sessions_in_range(store.id, from_day, to_day)
    root = build_audit_file(
        store,
        sessions,
        from_day,
        to_day,
        generated_at=generated_at,
        software=software,
        tax_policy=tax_policy,
    )
    return to_string(root)
