"""Tests for payload validation and the parsing helpers it relies on."""

from datetime import datetime, timezone
from decimal import Decimal

import pytest

from fleetledger.helpers import parse_amount, parse_datetime, parse_pagination, pagination_meta
from fleetledger.models import Debtor, Expense, Sale
from fleetledger.validation import (
    validate_debtor, validate_login, validate_registration, validate_transaction,
)

NOW = datetime(2024, 5, 20, 12, 0, tzinfo=timezone.utc)


def _err_fields(errors):
    return {e["field"] for e in errors}


class TestParseHelpers:

    def test_date_only_is_midnight_utc(self):
        assert parse_datetime("2024-05-01") == datetime(2024, 5, 1, tzinfo=timezone.utc)

    def test_date_only_end_of_day(self):
        end = parse_datetime("2024-05-01", end_of_day=True)
        assert end.date().isoformat() == "2024-05-01"
        assert (end.hour, end.minute, end.second) == (23, 59, 59)

    def test_zulu_and_offsets_normalise_to_utc(self):
        assert parse_datetime("2024-05-01T10:00:00Z") == datetime(2024, 5, 1, 10, tzinfo=timezone.utc)
        assert parse_datetime("2024-05-01T12:00:00+02:00") == datetime(2024, 5, 1, 10, tzinfo=timezone.utc)

    def test_naive_datetime_is_utc(self):
        assert parse_datetime("2024-05-01T10:00:00").tzinfo == timezone.utc

    @pytest.mark.parametrize("value", [
        "yesterday", "2024-13-01", "", None, True, "05/01/2024",
        "9999-12-31T23:00:00-05:00", "0001-01-01T00:30:00+01:00",
    ])
    def test_rejects_non_iso(self, value):
        assert parse_datetime(value) is None

    def test_amount_quantized_to_cents(self):
        assert parse_amount("10.005") == (Decimal("10.01"), None)
        assert parse_amount(12) == (Decimal("12.00"), None)

    def test_amount_zero_allowed(self):
        amount, error = parse_amount(0)
        assert error is None and amount == Decimal("0.00")

    @pytest.mark.parametrize("value, message", [
        (-1, "Amount cannot be negative"),
        ("abc", "Amount must be a number"),
        ("NaN", "Amount must be a number"),
        (None, "Amount is required"),
        (True, "Amount is required"),
    ])
    def test_amount_rejections(self, value, message):
        assert parse_amount(value) == (None, message)

    def test_pagination_defaults_and_cap(self):
        assert parse_pagination({}) == (1, 10, [])
        assert parse_pagination({"page": "2", "limit": "500"}, max_limit=100) == (2, 100, [])

    @pytest.mark.parametrize("args", [{"page": "0"}, {"limit": "-3"}, {"page": "two"}])
    def test_pagination_rejects_bad_values(self, args):
        page, limit, errors = parse_pagination(args)
        assert page is None and errors

    def test_pagination_rejects_offset_beyond_sqlite_range(self):
        page, limit, errors = parse_pagination({"page": "1000000000000000000"})
        assert page is None
        assert errors == [{"field": "page", "msg": "page is too large"}]

    def test_pages_is_ceiling(self):
        assert pagination_meta(1, 10, 21)["pages"] == 3
        assert pagination_meta(1, 10, 0)["pages"] == 0


class TestTransactionValidation:

    def test_sale_ignores_category(self):
        clean, errors = validate_transaction({"type": "sale", "amount": 500, "category": "fuel"}, NOW)
        assert errors == []
        assert clean["category"] is None
        assert clean["transaction_date"] == NOW

    def test_expense_requires_category(self):
        clean, errors = validate_transaction({"type": "expense", "amount": 10}, NOW)
        assert clean is None
        assert errors == [{"field": "category", "msg": "Category is required for expenses"}]

    def test_expense_rejects_unknown_category(self):
        _, errors = validate_transaction({"type": "expense", "amount": 10, "category": "snacks"}, NOW)
        assert errors[0]["msg"] == "Please select a valid expense category"

    def test_expense_with_category(self):
        clean, errors = validate_transaction(
            {"type": "expense", "amount": "99.90", "category": "turni_boys",
             "transactionDate": "2024-05-02", "description": "  crew  "}, NOW)
        assert errors == []
        assert clean["category"] == "turni_boys"
        assert clean["amount"] == Decimal("99.90")
        assert clean["description"] == "crew"

    def test_collects_field_errors(self):
        _, errors = validate_transaction(
            {"type": "refund", "amount": -5, "description": "x" * 201, "transactionDate": "soon"}, NOW)
        assert _err_fields(errors) == {"type", "amount", "description", "transactionDate"}

    def test_body_must_be_object(self):
        _, errors = validate_transaction(["sale"], NOW)
        assert errors[0]["field"] == "body"

    def test_update_switching_to_expense_needs_category(self):
        current = Sale(id=1, user_id=1, amount="10", transaction_date=NOW)
        _, errors = validate_transaction({"type": "expense"}, NOW, current=current)
        assert _err_fields(errors) == {"category"}

    def test_update_switching_away_from_expense_clears_category(self):
        current = Expense(category="fuel", id=1, user_id=1, amount="10", transaction_date=NOW)
        clean, errors = validate_transaction({"type": "delivery_fee"}, NOW, current=current)
        assert errors == []
        assert clean["category"] is None
        assert clean["amount"] == Decimal("10")

    def test_update_keeps_untouched_fields(self):
        current = Expense(category="fuel", id=1, user_id=1, amount="10", description="diesel",
                          transaction_date=NOW)
        clean, errors = validate_transaction({"amount": 12}, NOW, current=current)
        assert errors == []
        assert clean["category"] == "fuel"
        assert clean["description"] == "diesel"
        assert clean["transaction_date"] == NOW


class TestDebtorValidation:

    def test_create_defaults_transaction_date(self):
        clean, errors = validate_debtor({"clientName": " Acme ", "amount": 300, "dueDate": "2024-06-01"}, NOW)
        assert errors == []
        assert clean["client_name"] == "Acme"
        assert clean["transaction_date"] == NOW

    def test_create_requires_fields(self):
        _, errors = validate_debtor({}, NOW)
        assert _err_fields(errors) == {"clientName", "amount", "dueDate"}

    def test_client_name_length_cap(self):
        _, errors = validate_debtor({"clientName": "a" * 101, "amount": 1, "dueDate": "2024-06-01"}, NOW)
        assert _err_fields(errors) == {"clientName"}

    def test_update_cannot_change_status(self):
        current = Debtor(id=1, user_id=1, client_name="Acme", amount="1", due_date=NOW, transaction_date=NOW)
        _, errors = validate_debtor({"status": "paid"}, NOW, current=current)
        assert _err_fields(errors) == {"status"}

    def test_update_partial(self):
        current = Debtor(id=1, user_id=1, client_name="Acme", amount="1", due_date=NOW, transaction_date=NOW)
        clean, errors = validate_debtor({"amount": "250.5"}, NOW, current=current)
        assert errors == []
        assert clean["amount"] == Decimal("250.50")
        assert clean["client_name"] == "Acme"


class TestAuthValidation:

    def test_registration_normalises_email(self):
        clean, errors = validate_registration({"name": "Ann", "email": " Ann@Example.COM ", "password": "secret1"})
        assert errors == []
        assert clean["email"] == "ann@example.com"

    def test_registration_rules(self):
        _, errors = validate_registration({"name": "", "email": "not-an-email", "password": "123"})
        assert _err_fields(errors) == {"name", "email", "password"}

    def test_login_requires_password(self):
        _, errors = validate_login({"email": "ann@example.com"})
        assert _err_fields(errors) == {"password"}
