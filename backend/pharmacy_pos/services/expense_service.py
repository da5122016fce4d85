# Overview: Expense entries for the daily cash ledger.

from __future__ import annotations

from datetime import date, datetime

from ..models import Expense
from ..time_utils import day_bounds, utcnow


class ExpenseBook:
    def __init__(self, session, *, clock=utcnow):
        self.session = session
        self.clock = clock

    def record_expense(
        self,
        *,
        particulars: str,
        amount: int,
        method: str | None = None,
        notes: str | None = None,
        spent_at: datetime | None = None,
    ) -> Expense:
        if amount <= 0:
            raise ValueError("amount must be > 0")

        expense = Expense(
            particulars=particulars,
            amount=amount,
            method=method,
            notes=notes,
            spent_at=spent_at or self.clock(),
        )
        self.session.add(expense)
        self.session.commit()
        return expense

    def list_expenses(self, day: date | None = None) -> list[Expense]:
        query = self.session.query(Expense)
        if day is not None:
            start, end = day_bounds(day)
            query = query.filter(Expense.spent_at >= start, Expense.spent_at < end)
        return query.order_by(Expense.spent_at.asc(), Expense.id.asc()).all()
