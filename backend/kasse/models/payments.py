from __future__ import annotations

from ..extensions import db
from kasse.time_utils import to_utc_z


class ConnectedCharge(db.Model):
    """
    Local mirror of a payment-provider charge taken at the POS.

    Written by the provider sync/webhook layer. amount is the gross amount in
    øre (minor units); tip_amount is recorded separately and is not part of
    amount. Only status == "succeeded" rows count towards reports and exports.
    """
    __tablename__ = "connected_charges"
    __table_args__ = (
        db.Index("ix_connected_charges_session_status", "pos_session_id", "status"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    pos_session_id = db.Column(db.Integer, db.ForeignKey("pos_sessions.id"), nullable=True, index=True)

    stripe_charge_id = db.Column(db.String(255), nullable=False, unique=True)
    amount = db.Column(db.Integer, nullable=False)
    amount_refunded = db.Column(db.Integer, nullable=False, default=0)
    currency = db.Column(db.String(3), nullable=False, default="nok")
    status = db.Column(db.String(32), nullable=False, index=True)  # succeeded, pending, failed, refunded, processing
    refunded = db.Column(db.Boolean, nullable=False, default=False)

    payment_method = db.Column(db.String(64), nullable=True)  # cash, card, mobile, ...
    payment_code = db.Column(db.String(10), nullable=True)  # PredefinedBasicID-12
    transaction_code = db.Column(db.String(10), nullable=True)  # PredefinedBasicID-11
    article_group_code = db.Column(db.String(10), nullable=True)  # PredefinedBasicID-04

    tip_amount = db.Column(db.Integer, nullable=True, default=0)
    description = db.Column(db.String(255), nullable=True)

    paid_at = db.Column(db.DateTime(timezone=True), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    pos_session = db.relationship("PosSession", back_populates="charges")

    @property
    def transaction_time(self):
        return self.paid_at or self.created_at

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "pos_session_id": self.pos_session_id,
            "stripe_charge_id": self.stripe_charge_id,
            "amount": self.amount,
            "amount_refunded": self.amount_refunded,
            "currency": self.currency,
            "status": self.status,
            "payment_method": self.payment_method,
            "payment_code": self.payment_code,
            "transaction_code": self.transaction_code,
            "article_group_code": self.article_group_code,
            "tip_amount": self.tip_amount or 0,
            "description": self.description,
            "paid_at": to_utc_z(self.paid_at) if self.paid_at else None,
            "created_at": to_utc_z(self.created_at),
        }
