from __future__ import annotations

from ..extensions import db


# Sentinel used when a sale names no customer or an unknown one
WALK_IN_CUSTOMER_ID = 1
WALK_IN_CUSTOMER_NAME = "Walk-in Customer"


class Customer(db.Model):
    """
    Customer directory entry.

    Read-only from checkout's point of view: transactions keep an id and a
    name snapshot, so later edits never rewrite history.
    """
    __tablename__ = "customers"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    phone = db.Column(db.String(32), nullable=True)
    email = db.Column(db.String(255), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "phone": self.phone or "",
            "email": self.email or "",
        }
