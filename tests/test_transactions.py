"""
Tests for the transaction history read side
"""

import pytest
from decimal import Decimal
from datetime import datetime, timedelta, timezone

from omsin_bank.currency import Money
from omsin_bank.storage import InMemoryStorage
from omsin_bank.errors import ValidationError
from omsin_bank.transactions import (
    Transaction, TransactionHistory, TransactionType,
    make_transaction_id, parse_transaction_type, one_month_before
)


NOW = datetime(2024, 6, 15, 12, 0, tzinfo=timezone.utc)


def entry(account_id, transaction_type, amount, description, date, balance="0.00"):
    return Transaction(
        id=make_transaction_id(account_id, date, transaction_type),
        account_id=account_id,
        transaction_type=transaction_type,
        amount=Money(Decimal(amount)),
        description=description,
        date=date,
        balance=Money(Decimal(balance))
    )


class TestTransactionIds:

    def test_epoch_milliseconds(self):
        posted = datetime(2024, 1, 1, tzinfo=timezone.utc)
        assert make_transaction_id("1", posted, TransactionType.CREDIT) == "1_1704067200000_credit"

    def test_naive_datetime_is_utc(self):
        naive = datetime(2024, 1, 1)
        assert make_transaction_id("2", naive, TransactionType.DEBIT) == "2_1704067200000_debit"

    def test_sub_millisecond_part_is_truncated(self):
        posted = datetime(2024, 1, 1, 0, 0, 0, 1999, tzinfo=timezone.utc)
        assert make_transaction_id("1", posted, TransactionType.DEBIT) == "1_1704067200001_debit"


class TestTransaction:

    def test_amount_must_be_positive(self):
        with pytest.raises(ValueError):
            entry("1", TransactionType.CREDIT, "0.00", "Nothing", NOW)
        with pytest.raises(ValueError):
            entry("1", TransactionType.DEBIT, "-5.00", "Negative", NOW)

    def test_signed_amount(self):
        credit = entry("1", TransactionType.CREDIT, "10.00", "In", NOW)
        debit = entry("1", TransactionType.DEBIT, "4.00", "Out", NOW)
        assert credit.is_credit and not credit.is_debit
        assert credit.signed_amount == Money(Decimal("10.00"))
        assert debit.signed_amount == Money(Decimal("-4.00"))


class TestParseTransactionType:

    def test_values(self):
        assert parse_transaction_type(None) is None
        assert parse_transaction_type("all") is None
        assert parse_transaction_type(" ") is None
        assert parse_transaction_type("Credit") == TransactionType.CREDIT
        assert parse_transaction_type(TransactionType.DEBIT) == TransactionType.DEBIT

    def test_unknown(self):
        with pytest.raises(ValidationError):
            parse_transaction_type("refund")


class TestOneMonthBefore:

    def test_plain(self):
        assert one_month_before(NOW) == datetime(2024, 5, 15, 12, 0, tzinfo=timezone.utc)

    def test_clamps_to_month_end(self):
        assert one_month_before(datetime(2024, 3, 31)) == datetime(2024, 2, 29)
        assert one_month_before(datetime(2023, 3, 31)) == datetime(2023, 2, 28)

    def test_january(self):
        assert one_month_before(datetime(2024, 1, 10)) == datetime(2023, 12, 10)


class TestTransactionHistory:

    def setup_method(self):
        self.storage = InMemoryStorage()
        self.history = TransactionHistory(self.storage)

        self.salary = entry("1", TransactionType.CREDIT, "3500.00", "Salary deposit", NOW - timedelta(days=40), "3500.00")
        self.grocery = entry("1", TransactionType.DEBIT, "85.20", "Grocery store", NOW - timedelta(days=10), "3414.80")
        self.rent = entry("1", TransactionType.DEBIT, "1200.00", "Transfer to Fatou Kah - Rent", NOW - timedelta(days=5), "2214.80")
        self.refund = entry("1", TransactionType.CREDIT, "20.00", "Grocery refund", NOW - timedelta(days=2), "2234.80")
        self.other = entry("2", TransactionType.CREDIT, "1200.00", "Transfer from Omar Sima - Rent", NOW - timedelta(days=5), "10120.75")

        for transaction in (self.salary, self.grocery, self.rent, self.refund, self.other):
            self.history.record(transaction)

    def test_record_and_load(self):
        loaded = self.history.get_transaction(self.rent.id)
        assert loaded == self.rent
        assert self.history.exists(self.rent.id)
        assert self.history.get_transaction("missing") is None

    def test_entries_are_append_only(self):
        with pytest.raises(ValueError):
            self.history.record(self.rent)

    def test_list_is_scoped_to_account_newest_first(self):
        ids = [t.id for t in self.history.list_transactions("1")]
        assert ids == [self.refund.id, self.rent.id, self.grocery.id, self.salary.id]

    def test_oldest_first(self):
        ids = [t.id for t in self.history.list_transactions("1", newest_first=False)]
        assert ids == [self.salary.id, self.grocery.id, self.rent.id, self.refund.id]

    def test_type_filter_is_subset(self):
        everything = self.history.list_transactions("1")
        credits = self.history.list_transactions("1", transaction_type="credit")
        debits = self.history.list_transactions("1", transaction_type=TransactionType.DEBIT)

        assert all(t.is_credit for t in credits)
        assert all(t.is_debit for t in debits)
        assert {t.id for t in credits} | {t.id for t in debits} == {t.id for t in everything}
        assert len(credits) + len(debits) == len(everything)

    def test_search_is_case_insensitive(self):
        results = self.history.list_transactions("1", search="GROCERY")
        assert {t.id for t in results} == {self.grocery.id, self.refund.id}

        results = self.history.list_transactions("1", transaction_type="debit", search="grocery")
        assert [t.id for t in results] == [self.grocery.id]

    def test_limit(self):
        assert len(self.history.list_transactions("1", limit=2)) == 2
        assert self.history.list_transactions("1", limit=0) == []

    def test_recent_transactions(self):
        recent = self.history.recent_transactions("1", limit=3)
        assert [t.id for t in recent] == [self.refund.id, self.rent.id, self.grocery.id]

    def test_totals(self):
        totals = self.history.totals("1")
        assert totals.credits == Money(Decimal("3520.00"))
        assert totals.debits == Money(Decimal("1285.20"))
        assert totals.net == Money(Decimal("2234.80"))
        assert totals.count == 4

    def test_totals_for_account_without_history(self):
        totals = self.history.totals("3")
        assert totals.credits.is_zero()
        assert totals.debits.is_zero()
        assert totals.count == 0

    def test_monthly_change_ignores_older_entries(self):
        # Salary is 40 days old; the rest fall inside the last month
        assert self.history.monthly_change("1", now=NOW) == Money(Decimal("-1265.20"))
        assert self.history.monthly_change("2", now=NOW) == Money(Decimal("1200.00"))

    def test_monthly_change_accepts_naive_now(self):
        naive_now = NOW.replace(tzinfo=None)
        assert self.history.monthly_change("1", now=naive_now) == Money(Decimal("-1265.20"))
