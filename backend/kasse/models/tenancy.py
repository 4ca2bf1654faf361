from __future__ import annotations

import json

from ..extensions import db
from kasse.time_utils import to_utc_z

class Store(db.Model):
    """
    Store (tenant) that owns POS devices, sessions and charges.

    The organization number used in the SAF-T header lives in the free-form
    metadata blob under "organization_number".
    """
    __tablename__ = "stores"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    slug = db.Column(db.String(255), nullable=False, index=True)

    # "metadata" is reserved on declarative models, so the attribute is renamed
    store_metadata = db.Column("metadata", db.JSON, nullable=True)

    # Store-level setting read by the X/Z reports
    tips_enabled = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
    )

    def __repr__(self) -> str:
        return f"<Store id={self.id} name={self.name!r}>"

    @property
    def organization_number(self) -> str:
        metadata = self.store_metadata
        if isinstance(metadata, str):
            try:
                metadata = json.loads(metadata)
            except ValueError:
                return ""
        if not isinstance(metadata, dict):
            return ""
        value = metadata.get("organization_number")
        return "" if value is None else str(value)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "slug": self.slug,
            "organization_number": self.organization_number,
            "tips_enabled": self.tips_enabled,
            "created_at": to_utc_z(self.created_at),
        }

class User(db.Model):
    """Cashier / operator. Managed by the authentication layer."""
    __tablename__ = "users"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    email = db.Column(db.String(255), nullable=True, unique=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def __repr__(self) -> str:
        return f"<User id={self.id} name={self.name!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
        }
