from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


class Expense(db.Model):
    """Cash paid out of the till. Independent of sales; read by the daily ledger."""
    __tablename__ = "expenses"
    __table_args__ = (
        db.Index("ix_expenses_spent_at", "spent_at"),
        db.CheckConstraint("amount > 0", name="ck_expenses_amount_pos"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    spent_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    particulars = db.Column(db.String(255), nullable=False)
    method = db.Column(db.String(16), nullable=True)
    amount = db.Column(db.Integer, nullable=False)
    notes = db.Column(db.Text, nullable=True)

    def __repr__(self) -> str:
        return f"<Expense id={self.id} particulars={self.particulars!r} amount={self.amount}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "spent_at": to_utc_z(self.spent_at),
            "particulars": self.particulars,
            "method": self.method,
            "amount": self.amount,
            "notes": self.notes,
        }
