# Overview: Service-layer operations for document numbering; allocates invoice numbers atomically.

from __future__ import annotations

from flask import current_app
from sqlalchemy import update
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import DocumentSequence


INVOICE_DOCUMENT_TYPE = "INVOICE"


class DocumentSequenceError(Exception):
    """Raised when document sequence operations fail."""
    pass


def allocate_sequence_number(document_type: str, *, start: int = 1) -> int:
    """
    Atomically take the next number for a document type.

    Must run inside the caller's write transaction: the increment commits or
    rolls back together with the document that uses the number, so numbers
    are never handed out twice and a failed checkout consumes nothing.
    """
    if not document_type:
        raise DocumentSequenceError("document_type is required")

    stmt = (
        update(DocumentSequence)
        .where(DocumentSequence.document_type == document_type)
        .values(next_number=DocumentSequence.next_number + 1)
        .execution_options(synchronize_session=False)
    )

    result = db.session.execute(stmt)
    if not result.rowcount:
        # First document of this type. A savepoint keeps a lost insert race
        # from discarding the caller's transaction.
        try:
            with db.session.begin_nested():
                db.session.add(DocumentSequence(document_type=document_type, next_number=start + 1))
            return start
        except IntegrityError:
            result = db.session.execute(stmt)
            if not result.rowcount:
                raise DocumentSequenceError(f"Could not allocate {document_type} number")

    current = (
        db.session.query(DocumentSequence.next_number)
        .filter_by(document_type=document_type)
        .scalar()
    )
    return current - 1


def format_invoice_number(sequence_number: int) -> str:
    prefix = current_app.config.get("INVOICE_PREFIX", "INV")
    pad = current_app.config.get("INVOICE_PAD", 5)
    return f"{prefix}-{sequence_number:0{pad}d}"


def next_invoice_number() -> tuple[int, str]:
    """Allocate (sequence_number, "INV-NNNNN") for a new transaction."""
    start = current_app.config.get("INVOICE_SEQUENCE_START", 1001)
    number = allocate_sequence_number(INVOICE_DOCUMENT_TYPE, start=start)
    return number, format_invoice_number(number)
