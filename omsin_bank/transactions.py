"""
Transaction History Module

Append-only ledger entries and the read side over them: per-account listing
with type and free-text filters, date sorting, credit/debit totals, the
dashboard's recent activity and the accounts page's monthly change.
"""

from decimal import Decimal
from datetime import datetime, timedelta, timezone
from dataclasses import dataclass
from typing import Dict, List, Optional, Union
from enum import Enum
import calendar

from .currency import Money, Currency
from .storage import StorageInterface, StorageRecord
from .errors import ValidationError


_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


class TransactionType(Enum):
    """Direction of a ledger entry relative to its owning account"""
    CREDIT = "credit"
    DEBIT = "debit"


@dataclass
class Transaction(StorageRecord):
    """
    Ledger entry owned by a single account.

    ``balance`` is the owning account's balance right after this entry posted.
    It is written once and never recomputed.
    """
    account_id: str
    transaction_type: TransactionType
    amount: Money
    description: str
    date: datetime
    balance: Money

    def __post_init__(self):
        if not self.amount.is_positive():
            raise ValueError("Transaction amount must be positive")

    @property
    def is_credit(self) -> bool:
        return self.transaction_type == TransactionType.CREDIT

    @property
    def is_debit(self) -> bool:
        return self.transaction_type == TransactionType.DEBIT

    @property
    def signed_amount(self) -> Money:
        """Amount with debits negative"""
        return self.amount if self.is_credit else -self.amount


@dataclass(frozen=True)
class TransactionTotals:
    """Credit and debit sums for an account"""
    credits: Money
    debits: Money
    count: int

    @property
    def net(self) -> Money:
        return self.credits - self.debits


def make_transaction_id(account_id: str, posted_at: datetime, transaction_type: TransactionType) -> str:
    """Build ``<account id>_<epoch milliseconds>_<credit|debit>``"""
    if posted_at.tzinfo is None:
        posted_at = posted_at.replace(tzinfo=timezone.utc)
    millis = (posted_at - _EPOCH) // timedelta(milliseconds=1)
    return f"{account_id}_{millis}_{transaction_type.value}"


def parse_transaction_type(value: Union[str, TransactionType, None]) -> Optional[TransactionType]:
    """Accept a TransactionType, "credit", "debit", or "all"/None for no filter"""
    if value is None or isinstance(value, TransactionType):
        return value
    value = value.strip().lower()
    if value in ("", "all"):
        return None
    try:
        return TransactionType(value)
    except ValueError:
        raise ValidationError(f"Unknown transaction type: {value}")


def one_month_before(moment: datetime) -> datetime:
    """Same day and time one calendar month earlier, clamped to month end"""
    year, month = (moment.year, moment.month - 1) if moment.month > 1 else (moment.year - 1, 12)
    day = min(moment.day, calendar.monthrange(year, month)[1])
    return moment.replace(year=year, month=month, day=day)


class TransactionHistory:
    """
    Stores ledger entries and answers the history queries
    """

    def __init__(self, storage: StorageInterface, currency: Currency = Currency.USD):
        self.storage = storage
        self.currency = currency
        self.table_name = "transactions"

    def record(self, transaction: Transaction) -> None:
        """Append a ledger entry; existing entries are never overwritten"""
        if self.storage.exists(self.table_name, transaction.id):
            raise ValueError(f"Transaction {transaction.id} already recorded")
        self.storage.save(self.table_name, transaction.id, self._transaction_to_dict(transaction))

    def exists(self, transaction_id: str) -> bool:
        return self.storage.exists(self.table_name, transaction_id)

    def get_transaction(self, transaction_id: str) -> Optional[Transaction]:
        """Get transaction by ID"""
        transaction_dict = self.storage.load(self.table_name, transaction_id)
        if transaction_dict:
            return self._transaction_from_dict(transaction_dict)
        return None

    def all_transactions(self) -> List[Transaction]:
        """Every ledger entry in append order"""
        return [self._transaction_from_dict(data) for data in self.storage.load_all(self.table_name)]

    def list_transactions(
        self,
        account_id: str,
        transaction_type: Union[str, TransactionType, None] = None,
        search: Optional[str] = None,
        newest_first: bool = True,
        start_date: Optional[datetime] = None,
        limit: Optional[int] = None
    ) -> List[Transaction]:
        """
        Get transactions for an account with optional filters

        Args:
            account_id: Owning account ID
            transaction_type: credit, debit, or None / "all" for both
            search: Case-insensitive substring to match in the description
            newest_first: Sort by date descending (True) or ascending (False)
            start_date: Only entries posted at or after this moment
            limit: Optional limit on number of transactions

        Returns:
            List of Transaction objects
        """
        wanted_type = parse_transaction_type(transaction_type)
        needle = (search or "").strip().lower()

        transactions = [t for t in self.all_transactions() if t.account_id == account_id]

        if wanted_type:
            transactions = [t for t in transactions if t.transaction_type == wanted_type]

        if needle:
            transactions = [t for t in transactions if needle in t.description.lower()]

        if start_date:
            transactions = [t for t in transactions if t.date >= start_date]

        # Stable sort keeps append order for entries posted at the same moment
        transactions.sort(key=lambda t: t.date, reverse=newest_first)

        if limit is not None:
            transactions = transactions[:max(limit, 0)]

        return transactions

    def recent_transactions(self, account_id: str, limit: int = 5) -> List[Transaction]:
        """Newest entries first, for the dashboard"""
        return self.list_transactions(account_id, newest_first=True, limit=limit)

    def totals(self, account_id: str) -> TransactionTotals:
        """Sum of credit amounts and of debit amounts for an account"""
        credits = Money.zero(self.currency)
        debits = Money.zero(self.currency)
        transactions = self.list_transactions(account_id)
        for transaction in transactions:
            if transaction.is_credit:
                credits = credits + transaction.amount
            else:
                debits = debits + transaction.amount
        return TransactionTotals(credits=credits, debits=debits, count=len(transactions))

    def monthly_change(self, account_id: str, now: Optional[datetime] = None) -> Money:
        """Net credits minus debits over the last calendar month"""
        now = now or datetime.now(timezone.utc)
        if now.tzinfo is None:
            now = now.replace(tzinfo=timezone.utc)
        change = Money.zero(self.currency)
        for transaction in self.list_transactions(account_id, start_date=one_month_before(now)):
            change = change + transaction.signed_amount
        return change

    def _transaction_to_dict(self, transaction: Transaction) -> Dict:
        """Convert Transaction to dictionary for storage"""
        result = transaction.to_dict()
        result['type'] = result.pop('transaction_type')
        result['currency'] = transaction.amount.currency.code
        return result

    def _transaction_from_dict(self, data: Dict) -> Transaction:
        """Convert dictionary to Transaction"""
        currency = Currency[data.get('currency', self.currency.code)]

        return Transaction(
            id=data['id'],
            account_id=data['account_id'],
            transaction_type=TransactionType(data['type']),
            amount=Money(Decimal(data['amount']), currency),
            description=data['description'],
            date=datetime.fromisoformat(data['date']),
            balance=Money(Decimal(data['balance']), currency)
        )
