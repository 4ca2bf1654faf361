from __future__ import annotations

from ..extensions import db
from kasse.time_utils import to_utc_z

class PosDevice(db.Model):
    """
    Physical POS terminal (tablet/phone) registered to a store.

    The device name is what the SAF-T export reports as a transaction's SourceID.
    """
    __tablename__ = "pos_devices"
    __table_args__ = (
        db.Index("ix_pos_devices_store_status", "store_id", "device_status"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    store_id = db.Column(db.Integer, db.ForeignKey("stores.id"), nullable=False, index=True)

    device_identifier = db.Column(db.String(255), nullable=False, unique=True)
    device_name = db.Column(db.String(255), nullable=False)
    platform = db.Column(db.String(32), nullable=True)  # ios, android

    device_status = db.Column(db.String(32), nullable=False, default="active")  # active, inactive, maintenance, offline
    last_seen_at = db.Column(db.DateTime(timezone=True), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    store = db.relationship("Store", backref=db.backref("pos_devices", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "store_id": self.store_id,
            "device_identifier": self.device_identifier,
            "device_name": self.device_name,
            "platform": self.platform,
            "device_status": self.device_status,
            "last_seen_at": to_utc_z(self.last_seen_at) if self.last_seen_at else None,
        }

class PosSession(db.Model):
    """
    Cash register session (shift) on one device.

    LIFECYCLE:
    - open: sales are being taken, X-reports may be produced
    - closed: cash counted, Z-report produced, eligible for SAF-T export
    - abandoned: never closed properly; not exported

    All amounts are in øre.
    """
    __tablename__ = "pos_sessions"
    __table_args__ = (
        db.Index("ix_pos_sessions_store_status", "store_id", "status"),
        db.Index("ix_pos_sessions_store_opened", "store_id", "opened_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    store_id = db.Column(db.Integer, db.ForeignKey("stores.id"), nullable=False, index=True)
    pos_device_id = db.Column(db.Integer, db.ForeignKey("pos_devices.id"), nullable=True, index=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True, index=True)

    session_number = db.Column(db.String(64), nullable=False, unique=True)
    status = db.Column(db.String(16), nullable=False, default="open", index=True)  # open, closed, abandoned

    opened_at = db.Column(db.DateTime(timezone=True), nullable=False)
    closed_at = db.Column(db.DateTime(timezone=True), nullable=True)

    opening_balance = db.Column(db.Integer, nullable=False, default=0)
    expected_cash = db.Column(db.Integer, nullable=False, default=0)
    actual_cash = db.Column(db.Integer, nullable=True)
    cash_difference = db.Column(db.Integer, nullable=True)  # actual - expected

    opening_notes = db.Column(db.Text, nullable=True)
    closing_notes = db.Column(db.Text, nullable=True)
    opening_data = db.Column(db.JSON, nullable=True)
    closing_data = db.Column(db.JSON, nullable=True)

    store = db.relationship("Store", backref=db.backref("pos_sessions", lazy=True))
    pos_device = db.relationship("PosDevice", backref=db.backref("sessions", lazy=True))
    user = db.relationship("User", backref=db.backref("pos_sessions", lazy=True))

    charges = db.relationship(
        "ConnectedCharge",
        back_populates="pos_session",
        order_by="ConnectedCharge.id",
        lazy="select",
    )
    events = db.relationship(
        "PosEvent",
        back_populates="pos_session",
        order_by=lambda: [PosEvent.occurred_at, PosEvent.id],
        lazy="select",
    )
    receipts = db.relationship("Receipt", back_populates="pos_session", order_by="Receipt.id", lazy="select")
    line_corrections = db.relationship(
        "PosLineCorrection",
        back_populates="pos_session",
        order_by="PosLineCorrection.id",
        lazy="select",
    )

    def succeeded_charges(self) -> list:
        return [charge for charge in self.charges if charge.status == "succeeded"]

    def calculate_expected_cash(self) -> int:
        return sum(charge.amount for charge in self.succeeded_charges() if charge.payment_method == "cash")

    @property
    def transaction_count(self) -> int:
        return len(self.succeeded_charges())

    @property
    def total_amount(self) -> int:
        return sum(charge.amount for charge in self.succeeded_charges())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "store_id": self.store_id,
            "pos_device_id": self.pos_device_id,
            "user_id": self.user_id,
            "session_number": self.session_number,
            "status": self.status,
            "opened_at": to_utc_z(self.opened_at),
            "closed_at": to_utc_z(self.closed_at) if self.closed_at else None,
            "opening_balance": self.opening_balance,
            "expected_cash": self.expected_cash,
            "actual_cash": self.actual_cash,
            "cash_difference": self.cash_difference,
            "closing_notes": self.closing_notes,
        }

class PosEvent(db.Model):
    """
    Electronic journal entry for an auditable POS occurrence.

    event_code is a PredefinedBasicID-13 code from the Norwegian cash register
    regulation; event_data is an arbitrary JSON payload.
    """
    __tablename__ = "pos_events"
    __table_args__ = (
        db.Index("ix_pos_events_store_occurred", "store_id", "occurred_at"),
        db.Index("ix_pos_events_session_code", "pos_session_id", "event_code"),
        {"sqlite_autoincrement": True},
    )

    EVENT_APPLICATION_START = "13001"
    EVENT_APPLICATION_SHUTDOWN = "13002"
    EVENT_EMPLOYEE_LOGIN = "13003"
    EVENT_EMPLOYEE_LOGOUT = "13004"
    EVENT_CASH_DRAWER_OPEN = "13005"
    EVENT_CASH_DRAWER_CLOSE = "13006"
    EVENT_X_REPORT = "13008"
    EVENT_Z_REPORT = "13009"
    EVENT_SALES_RECEIPT = "13012"
    EVENT_RETURN_RECEIPT = "13013"
    EVENT_VOID_TRANSACTION = "13014"
    EVENT_CORRECTION_RECEIPT = "13015"
    EVENT_CASH_PAYMENT = "13016"
    EVENT_CARD_PAYMENT = "13017"
    EVENT_MOBILE_PAYMENT = "13018"
    EVENT_OTHER_PAYMENT = "13019"
    EVENT_SESSION_OPENED = "13020"
    EVENT_SESSION_CLOSED = "13021"

    EVENT_DESCRIPTIONS = {
        EVENT_APPLICATION_START: "POS application start",
        EVENT_APPLICATION_SHUTDOWN: "POS application shut down",
        EVENT_EMPLOYEE_LOGIN: "Employee log in",
        EVENT_EMPLOYEE_LOGOUT: "Employee log out",
        EVENT_CASH_DRAWER_OPEN: "Open cash drawer",
        EVENT_CASH_DRAWER_CLOSE: "Close cash drawer",
        EVENT_X_REPORT: "X report (daily sales report)",
        EVENT_Z_REPORT: "Z report (end-of-day report)",
        EVENT_SALES_RECEIPT: "Sales receipt",
        EVENT_RETURN_RECEIPT: "Return receipt",
        EVENT_VOID_TRANSACTION: "Void transaction",
        EVENT_CORRECTION_RECEIPT: "Correction receipt",
        EVENT_CASH_PAYMENT: "Cash payment",
        EVENT_CARD_PAYMENT: "Card payment",
        EVENT_MOBILE_PAYMENT: "Mobile payment",
        EVENT_OTHER_PAYMENT: "Other payment method",
        EVENT_SESSION_OPENED: "Session opened",
        EVENT_SESSION_CLOSED: "Session closed",
    }

    id = db.Column(db.Integer, primary_key=True)
    store_id = db.Column(db.Integer, db.ForeignKey("stores.id"), nullable=False, index=True)
    pos_device_id = db.Column(db.Integer, db.ForeignKey("pos_devices.id"), nullable=True)
    pos_session_id = db.Column(db.Integer, db.ForeignKey("pos_sessions.id"), nullable=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    related_charge_id = db.Column(db.Integer, db.ForeignKey("connected_charges.id"), nullable=True, index=True)

    event_code = db.Column(db.String(10), nullable=False)
    event_type = db.Column(db.String(32), nullable=False)  # application, user, drawer, report, transaction, payment, session, other
    description = db.Column(db.Text, nullable=True)
    event_data = db.Column(db.JSON, nullable=True)

    # Business time; may differ from created_at
    occurred_at = db.Column(db.DateTime(timezone=True), nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    pos_session = db.relationship("PosSession", back_populates="events")
    related_charge = db.relationship("ConnectedCharge", foreign_keys=[related_charge_id])

    @property
    def event_description(self) -> str:
        return self.EVENT_DESCRIPTIONS.get(self.event_code, "Unknown event")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "store_id": self.store_id,
            "pos_device_id": self.pos_device_id,
            "pos_session_id": self.pos_session_id,
            "user_id": self.user_id,
            "related_charge_id": self.related_charge_id,
            "event_code": self.event_code,
            "event_type": self.event_type,
            "description": self.description,
            "event_description": self.event_description,
            "event_data": self.event_data,
            "occurred_at": to_utc_z(self.occurred_at),
        }

class Receipt(db.Model):
    """Printed/emailed receipt; receipt_data carries the line items and discounts."""
    __tablename__ = "receipts"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    store_id = db.Column(db.Integer, db.ForeignKey("stores.id"), nullable=False, index=True)
    pos_session_id = db.Column(db.Integer, db.ForeignKey("pos_sessions.id"), nullable=True, index=True)
    charge_id = db.Column(db.Integer, db.ForeignKey("connected_charges.id"), nullable=True)

    receipt_number = db.Column(db.String(64), nullable=False)
    receipt_type = db.Column(db.String(32), nullable=False, default="sales")  # sales, return, copy, steb, provisional, training, delivery
    receipt_data = db.Column(db.JSON, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    pos_session = db.relationship("PosSession", back_populates="receipts")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "pos_session_id": self.pos_session_id,
            "receipt_number": self.receipt_number,
            "receipt_type": self.receipt_type,
        }

class PosLineCorrection(db.Model):
    """
    Reduction of a line before the sale completed.

    Only reductions are recorded; increases are ordinary sales.
    """
    __tablename__ = "pos_line_corrections"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    pos_session_id = db.Column(db.Integer, db.ForeignKey("pos_sessions.id"), nullable=False, index=True)

    correction_type = db.Column(db.String(32), nullable=False)  # quantity_reduction, price_reduction, line_removal
    quantity_reduction = db.Column(db.Integer, nullable=False, default=0)
    amount_reduction = db.Column(db.Integer, nullable=False, default=0)
    reason = db.Column(db.String(255), nullable=True)

    occurred_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    pos_session = db.relationship("PosSession", back_populates="line_corrections")
