from __future__ import annotations

from ..extensions import db


class DocumentSequence(db.Model):
    """
    Atomic document counters.

    WHY: Invoice numbers come from this row, incremented inside the same
    database transaction as the ledger insert, never from COUNT(*).
    """
    __tablename__ = "document_sequences"
    __table_args__ = (
        db.UniqueConstraint("document_type", name="uq_doc_sequences_type"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    document_type = db.Column(db.String(32), nullable=False)
    next_number = db.Column(db.Integer, nullable=False, default=1)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

