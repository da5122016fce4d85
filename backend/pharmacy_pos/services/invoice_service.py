# Overview: Monotonic invoice numbering backed by the invoice_sequences table.

from __future__ import annotations

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError

from ..models import InvoiceSequence


def next_invoice_number(session, prefix: str = "INV", pad: int = 6) -> str:
    """
    Allocate the next invoice number for a prefix.

    Runs inside the caller's transaction so a rolled-back checkout also
    gives its number back. The UPDATE takes the row lock; the first number
    for a new prefix is created under a savepoint so a concurrent insert of
    the same prefix falls back to the UPDATE path.
    """
    if not prefix:
        raise ValueError("prefix is required")

    stmt = (
        update(InvoiceSequence)
        .where(InvoiceSequence.prefix == prefix)
        .values(next_number=InvoiceSequence.next_number + 1)
        .execution_options(synchronize_session=False)
    )

    def _current() -> int:
        return (
            session.query(InvoiceSequence.next_number)
            .filter_by(prefix=prefix)
            .scalar()
        )

    result = session.execute(stmt)
    if result.rowcount:
        next_num = _current() - 1
    else:
        try:
            with session.begin_nested():
                session.add(InvoiceSequence(prefix=prefix, next_number=2))
            next_num = 1
        except IntegrityError:
            result = session.execute(stmt)
            if not result.rowcount:
                raise
            next_num = _current() - 1

    return f"{prefix}-{next_num:0{pad}d}"
