"""Tests for the record classes and the derived debtor fields."""

from datetime import datetime, timedelta, timezone
from decimal import Decimal

from fleetledger.helpers import format_currency
from fleetledger.models import (
    DeliveryFee, Debtor, Expense, Sale, Transaction, days_overdue, is_overdue,
)

NOW = datetime(2024, 5, 20, 12, 0, tzinfo=timezone.utc)


def _row(**overrides):
    row = {
        "id": 7,
        "user_id": 3,
        "type": "sale",
        "category": None,
        "amount": "125.50",
        "description": None,
        "transaction_date": "2024-05-02T08:30:00.000000+00:00",
        "entry_date": "2024-05-02T09:00:00.000000+00:00",
        "created_at": "2024-05-02T09:00:00.000000+00:00",
        "updated_at": "2024-05-02T09:00:00.000000+00:00",
    }
    row.update(overrides)
    return row


def _debtor(status="unpaid", due=None):
    return Debtor(id=1, user_id=1, client_name="Acme", amount="400", due_date=due or NOW,
                  transaction_date=NOW, status=status)


class TestTransactionKinds:

    def test_from_row_dispatches_on_type(self):
        assert isinstance(Transaction.from_row(_row()), Sale)
        assert isinstance(Transaction.from_row(_row(type="delivery_fee")), DeliveryFee)
        expense = Transaction.from_row(_row(type="expense", category="fuel"))
        assert isinstance(expense, Expense)
        assert expense.category == "fuel"

    def test_only_expenses_carry_category(self):
        sale = Transaction.from_row(_row(category="fuel"))
        assert sale.category is None
        assert sale.to_dict()["category"] is None

    def test_income_flag(self):
        assert Transaction.from_row(_row()).is_income
        assert Transaction.from_row(_row(type="delivery_fee")).is_income
        assert not Transaction.from_row(_row(type="expense", category="repairs")).is_income

    def test_to_dict_shape(self):
        data = Transaction.from_row(_row()).to_dict()
        assert data["amount"] == 125.5
        assert data["formattedAmount"] == "$125.50"
        assert data["transactionDate"] == "2024-05-02T08:30:00.000Z"
        assert data["createdBy"] == 3
        assert isinstance(Transaction.from_row(_row()).amount, Decimal)


class TestDebtorDerivedFields:

    def test_not_overdue_when_due_in_future(self):
        debtor = _debtor(due=NOW + timedelta(days=3))
        assert not is_overdue(debtor, NOW)
        assert days_overdue(debtor, NOW) == 0

    def test_due_exactly_now_is_not_overdue(self):
        assert not is_overdue(_debtor(due=NOW), NOW)

    def test_ten_days_overdue(self):
        debtor = _debtor(due=NOW - timedelta(days=10))
        assert is_overdue(debtor, NOW)
        assert days_overdue(debtor, NOW) == 10

    def test_partial_day_rounds_up(self):
        debtor = _debtor(due=NOW - timedelta(days=2, hours=1))
        assert days_overdue(debtor, NOW) == 3

    def test_paid_is_never_overdue(self):
        debtor = _debtor(status="paid", due=NOW - timedelta(days=30))
        assert not is_overdue(debtor, NOW)
        assert days_overdue(debtor, NOW) == 0

    def test_to_dict_includes_derived_fields(self):
        data = _debtor(due=NOW - timedelta(days=1)).to_dict(NOW)
        assert data["isOverdue"] is True
        assert data["daysOverdue"] == 1
        assert data["formattedAmount"] == "$400.00"
        assert data["status"] == "unpaid"


class TestFormatting:

    def test_thousands_separator(self):
        assert format_currency(Decimal("1234.5")) == "$1,234.50"

    def test_zero(self):
        assert format_currency(Decimal("0")) == "$0.00"
