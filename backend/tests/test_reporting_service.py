from datetime import date, datetime, timedelta

import pytest

from pharmacy_pos.services.checkout_service import CheckoutEngine
from pharmacy_pos.services.expense_service import ExpenseBook
from pharmacy_pos.services.reporting_service import ReportError, ReportingAggregator
from pharmacy_pos.validation import CartLine, PaymentRequest

LEDGER_DAY = date(2026, 3, 1)


def _sell(session, product, qty, *, at=None, method="CASH"):
    engine = CheckoutEngine(session, clock=lambda: at) if at else CheckoutEngine(session)
    return engine.checkout(
        [CartLine(product.id, qty)],
        PaymentRequest(method=method, amount=qty * product.sale_price),
    )


def test_profit_increases_by_margin_on_sold_units(db_session, make_product, make_batch):
    product = make_product(sale_price=1000)
    make_batch(product, 10, cost_price=700)
    reports = ReportingAggregator(db_session)

    before = reports.compute_profit()
    _sell(db_session, product, 3)
    after = reports.compute_profit()

    assert after.net_profit - before.net_profit == 900
    assert after.total_revenue == 3000
    assert after.total_cost == 2100


def test_profit_uses_cost_snapshot_not_current_batch_cost(db_session, make_product, make_batch):
    product = make_product(sale_price=1000)
    batch = make_batch(product, 10, cost_price=700)
    _sell(db_session, product, 2)

    batch.cost_price = 950
    db_session.commit()

    assert ReportingAggregator(db_session).compute_profit().net_profit == 600


def test_profit_with_no_sales_is_zero(db_session):
    summary = ReportingAggregator(db_session).compute_profit()
    assert summary.to_dict() == {"totalRevenue": 0, "totalCost": 0, "netProfit": 0}


def test_profit_date_bounds_are_inclusive(db_session, make_product, make_batch):
    product = make_product(sale_price=1000)
    make_batch(product, 50, cost_price=600, expiry_date=date(2030, 1, 1))
    _sell(db_session, product, 1, at=datetime(2026, 2, 28, 23, 59))
    _sell(db_session, product, 2, at=datetime(2026, 3, 1, 0, 0))
    _sell(db_session, product, 3, at=datetime(2026, 3, 2, 23, 59, 59))
    _sell(db_session, product, 4, at=datetime(2026, 3, 3, 0, 0))

    summary = ReportingAggregator(db_session).compute_profit(date(2026, 3, 1), date(2026, 3, 2))

    assert summary.total_revenue == 5000
    assert summary.net_profit == 5 * 400


def test_profit_rejects_inverted_range(db_session):
    with pytest.raises(ReportError):
        ReportingAggregator(db_session).compute_profit(date(2026, 3, 2), date(2026, 3, 1))


def test_detailed_profit_lists_each_sale_item(db_session, make_product, make_batch):
    product = make_product("Ameprolol", 30000, name_en="Ameprolol Xl 25")
    make_batch(product, 1, cost_price=20000, expiry_date=date(2030, 1, 1))
    make_batch(product, 5, cost_price=21000, expiry_date=date(2031, 1, 1))
    result = _sell(db_session, product, 3, at=datetime(2026, 3, 1, 10, 0))

    report = ReportingAggregator(db_session).detailed_profit(LEDGER_DAY, LEDGER_DAY)

    assert [(i["qty"], i["cost_at_sale"], i["profit"]) for i in report["items"]] == [
        (1, 20000, 10000),
        (2, 21000, 18000),
    ]
    assert all(i["invoice_no"] == result.invoice_no for i in report["items"])
    assert report["items"][0]["name_en"] == "Ameprolol Xl 25"
    assert report["items"][0]["sold_at"] == "2026-03-01T10:00:00Z"
    assert report["summary"] == {"totalRevenue": 90000, "totalCost": 62000, "netProfit": 28000}


def test_ledger_merges_sales_and_expenses_in_time_order(db_session, make_product, make_batch):
    product = make_product(sale_price=1500)
    make_batch(product, 20, expiry_date=date(2030, 1, 1))
    sale = _sell(db_session, product, 2, at=datetime(2026, 3, 1, 9, 30))
    _sell(db_session, product, 1, at=datetime(2026, 3, 2, 9, 30))

    book = ExpenseBook(db_session)
    book.record_expense(particulars="Electricity", amount=800, spent_at=datetime(2026, 3, 1, 8, 0))
    book.record_expense(particulars="Lunch", amount=500, spent_at=datetime(2026, 3, 1, 12, 0))
    book.record_expense(particulars="Rent", amount=90000, spent_at=datetime(2026, 2, 28, 12, 0))

    ledger = ReportingAggregator(db_session).compute_ledger(LEDGER_DAY)

    assert [(i["type"], i["particulars"], i["amount"]) for i in ledger["items"]] == [
        ("EXPENSE", "Electricity", 800),
        ("INCOME", f"Sale #{sale.invoice_no}", 3000),
        ("EXPENSE", "Lunch", 500),
    ]
    assert ledger["summary"] == {"totalIncome": 3000, "totalExpense": 1300, "netCash": 1700}


def test_ledger_for_quiet_day_is_empty(db_session):
    ledger = ReportingAggregator(db_session).compute_ledger(LEDGER_DAY)
    assert ledger["items"] == []
    assert ledger["summary"] == {"totalIncome": 0, "totalExpense": 0, "netCash": 0}


def test_stock_valuation_at_cost_basis(db_session, make_product, make_batch):
    first = make_product("Biogesic", 10000)
    second = make_product("Solmux", 1000)
    old = make_batch(first, 10, cost_price=7000, received_at=datetime(2026, 1, 1, 8, 0))
    new = make_batch(second, 40, cost_price=700, received_at=datetime(2026, 2, 1, 8, 0))
    _sell(db_session, first, 4)

    valuation = ReportingAggregator(db_session).compute_stock_valuation()

    assert [row["id"] for row in valuation["history"]] == [new.id, old.id]
    assert valuation["history"][1]["qty"] == 6
    assert valuation["history"][1]["name_mm"] == "Biogesic"
    assert valuation["totalValue"] == 6 * 7000 + 40 * 700


def test_stock_valuation_can_skip_depleted_batches(db_session, make_product, make_batch):
    product = make_product()
    make_batch(product, 2, expires_in_days=10)
    kept = make_batch(product, 5, expires_in_days=100)
    _sell(db_session, product, 2)

    reports = ReportingAggregator(db_session)

    assert len(reports.compute_stock_valuation()["history"]) == 2
    assert [r["id"] for r in reports.compute_stock_valuation(include_depleted=False)["history"]] == [kept.id]


def test_expense_listing_by_day(db_session):
    book = ExpenseBook(db_session)
    book.record_expense(particulars="Water", amount=300, method="CASH", spent_at=datetime(2026, 3, 1, 7, 0))
    book.record_expense(particulars="Taxi", amount=2000, spent_at=datetime(2026, 3, 2, 7, 0))

    assert [e.particulars for e in book.list_expenses(LEDGER_DAY)] == ["Water"]
    assert len(book.list_expenses()) == 2
    with pytest.raises(ValueError):
        book.record_expense(particulars="Nothing", amount=0)


def test_receipt_from_checkout_clock_is_on_ledger_day(db_session, make_product, make_batch):
    product = make_product(sale_price=100)
    make_batch(product, 5, expiry_date=LEDGER_DAY + timedelta(days=400))
    _sell(db_session, product, 1, at=datetime(2026, 3, 1, 23, 59, 59))

    ledger = ReportingAggregator(db_session).compute_ledger(LEDGER_DAY)

    assert ledger["summary"]["totalIncome"] == 100
