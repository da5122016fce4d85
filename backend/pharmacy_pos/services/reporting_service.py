# Overview: Read-side report folds over sales, sale items, expenses and batches.

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime

from sqlalchemy import func

from ..models import Expense, InventoryBatch, Product, Sale, SaleItem
from ..time_utils import day_bounds, to_iso_date, to_utc_z


class ReportError(Exception):
    """Raised when report parameters are unusable."""
    pass


@dataclass(frozen=True)
class ProfitSummary:
    total_revenue: int
    total_cost: int

    @property
    def net_profit(self) -> int:
        return self.total_revenue - self.total_cost

    def to_dict(self) -> dict:
        return {
            "totalRevenue": self.total_revenue,
            "totalCost": self.total_cost,
            "netProfit": self.net_profit,
        }


@dataclass(frozen=True)
class ProfitLine:
    sale_item_id: int
    sold_at: datetime
    invoice_no: str
    name_mm: str
    name_en: str | None
    qty: int
    unit_price: int
    cost_at_sale: int

    @property
    def profit(self) -> int:
        return (self.unit_price - self.cost_at_sale) * self.qty

    def to_dict(self) -> dict:
        return {
            "id": self.sale_item_id,
            "sold_at": to_utc_z(self.sold_at),
            "invoice_no": self.invoice_no,
            "name_mm": self.name_mm,
            "name_en": self.name_en,
            "qty": self.qty,
            "unit_price": self.unit_price,
            "cost_at_sale": self.cost_at_sale,
            "profit": self.profit,
        }


@dataclass(frozen=True)
class LedgerEntry:
    id: int
    time: datetime
    type: str
    particulars: str
    amount: int

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "time": to_utc_z(self.time),
            "type": self.type,
            "particulars": self.particulars,
            "amount": self.amount,
        }


@dataclass(frozen=True)
class StockHistoryRow:
    id: int
    product_id: int
    batch_no: str
    expiry_date: date
    cost_price: int
    qty: int
    received_at: datetime
    name_mm: str
    name_en: str | None

    @property
    def value(self) -> int:
        return self.cost_price * self.qty

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "batch_no": self.batch_no,
            "expiry_date": to_iso_date(self.expiry_date),
            "cost_price": self.cost_price,
            "qty": self.qty,
            "received_at": to_utc_z(self.received_at),
            "name_mm": self.name_mm,
            "name_en": self.name_en,
        }


class ReportingAggregator:
    """
    Profit, ledger and stock valuation reports.

    Profit relies on the cost_at_sale snapshot written at checkout, never on
    current batch costs. Stock is valued at its original cost basis.
    """

    def __init__(self, session):
        self.session = session

    @staticmethod
    def _check_range(start: date | None, end: date | None) -> None:
        if start and end and start > end:
            raise ReportError("startDate must be on or before endDate")

    @staticmethod
    def _bound_sales(query, start: date | None, end: date | None):
        if start:
            query = query.filter(Sale.sold_at >= day_bounds(start)[0])
        if end:
            query = query.filter(Sale.sold_at < day_bounds(end)[1])
        return query

    def compute_profit(self, start: date | None = None, end: date | None = None) -> ProfitSummary:
        """Revenue minus cost-at-sale over sale items, optionally bounded by sale date (inclusive)."""
        self._check_range(start, end)

        query = self.session.query(
            func.coalesce(func.sum(SaleItem.line_total), 0).label("revenue"),
            func.coalesce(func.sum(SaleItem.cost_at_sale * SaleItem.qty), 0).label("cost"),
        ).join(Sale, SaleItem.sale_id == Sale.id)
        query = self._bound_sales(query, start, end)

        row = query.one()
        return ProfitSummary(total_revenue=int(row.revenue or 0), total_cost=int(row.cost or 0))

    def detailed_profit(self, start: date | None = None, end: date | None = None) -> dict:
        self._check_range(start, end)

        query = (
            self.session.query(
                SaleItem.id,
                Sale.sold_at,
                Sale.invoice_no,
                Product.name_mm,
                Product.name_en,
                SaleItem.qty,
                SaleItem.unit_price,
                SaleItem.cost_at_sale,
            )
            .join(Sale, SaleItem.sale_id == Sale.id)
            .join(Product, SaleItem.product_id == Product.id)
        )
        query = self._bound_sales(query, start, end)
        rows = query.order_by(Sale.sold_at.desc(), SaleItem.id.asc()).all()

        lines = [
            ProfitLine(
                sale_item_id=row.id,
                sold_at=row.sold_at,
                invoice_no=row.invoice_no,
                name_mm=row.name_mm,
                name_en=row.name_en,
                qty=row.qty,
                unit_price=row.unit_price,
                cost_at_sale=row.cost_at_sale,
            )
            for row in rows
        ]
        summary = ProfitSummary(
            total_revenue=sum(line.unit_price * line.qty for line in lines),
            total_cost=sum(line.cost_at_sale * line.qty for line in lines),
        )
        return {
            "items": [line.to_dict() for line in lines],
            "summary": summary.to_dict(),
        }

    def compute_ledger(self, day: date) -> dict:
        """
        Income (sales) and expenses for one UTC calendar date, oldest first.
        """
        if day is None:
            raise ReportError("Date parameter is required (YYYY-MM-DD)")
        start, end = day_bounds(day)

        sales = (
            self.session.query(Sale)
            .filter(Sale.sold_at >= start, Sale.sold_at < end)
            .all()
        )
        expenses = (
            self.session.query(Expense)
            .filter(Expense.spent_at >= start, Expense.spent_at < end)
            .all()
        )

        income = [
            LedgerEntry(id=s.id, time=s.sold_at, type="INCOME", particulars=f"Sale #{s.invoice_no}", amount=s.total)
            for s in sales
        ]
        outgoing = [
            LedgerEntry(id=e.id, time=e.spent_at, type="EXPENSE", particulars=e.particulars, amount=e.amount)
            for e in expenses
        ]

        # sorted() is stable: at equal timestamps income stays ahead of expenses
        entries = sorted(income + outgoing, key=lambda entry: entry.time)

        total_income = sum(entry.amount for entry in income)
        total_expense = sum(entry.amount for entry in outgoing)

        return {
            "date": to_iso_date(day),
            "items": [entry.to_dict() for entry in entries],
            "summary": {
                "totalIncome": total_income,
                "totalExpense": total_expense,
                "netCash": total_income - total_expense,
            },
        }

    def compute_stock_valuation(self, *, include_depleted: bool = True) -> dict:
        """Every batch with its remaining quantity, newest receipt first, valued at cost."""
        query = (
            self.session.query(InventoryBatch, Product)
            .join(Product, InventoryBatch.product_id == Product.id)
        )
        if not include_depleted:
            query = query.filter(InventoryBatch.qty_on_hand > 0)
        rows = query.order_by(InventoryBatch.received_at.desc(), InventoryBatch.id.desc()).all()

        history = [
            StockHistoryRow(
                id=batch.id,
                product_id=product.id,
                batch_no=batch.batch_no,
                expiry_date=batch.expiry_date,
                cost_price=batch.cost_price,
                qty=batch.qty_on_hand,
                received_at=batch.received_at,
                name_mm=product.name_mm,
                name_en=product.name_en,
            )
            for batch, product in rows
        ]

        return {
            "history": [row.to_dict() for row in history],
            "totalValue": sum(row.value for row in history),
        }
