"""
Ledger Store Module

The single entry point the API (or any other caller) talks to. A LedgerStore
is built once per process around an injected storage backend and wires the
account, history, session and transfer components together.

Every write runs under one store-wide lock, so within a process a profile
edit can never overwrite a balance a concurrent transfer just settled. Two
processes sharing one storage file are not coordinated.
"""

from decimal import Decimal
from datetime import datetime
from dataclasses import dataclass
from typing import Callable, List, Optional, Union
import threading

from .config import OmsinConfig, get_config
from .currency import Currency, Money
from .storage import StorageInterface, create_storage
from .accounts import Account, AccountManager
from .transactions import Transaction, TransactionHistory, TransactionTotals, TransactionType
from .session import SessionManager
from .transfers import TransferProcessor, TransferPreview, TransferResult, DEFAULT_TRANSFER_LIMIT
from .seed import seed_demo_accounts
from .logging_config import get_logger


@dataclass(frozen=True)
class AccountSummary:
    """Everything the dashboard shows for one account"""
    account: Account
    recent_transactions: List[Transaction]
    totals: TransactionTotals
    monthly_change: Money


class LedgerStore:
    """
    Accounts, transactions and the session behind one object
    """

    def __init__(
        self,
        storage: StorageInterface,
        transfer_limit: Decimal = DEFAULT_TRANSFER_LIMIT,
        currency: Currency = Currency.USD,
        recent_limit: int = 5,
        clock: Optional[Callable[[], datetime]] = None
    ):
        self.storage = storage
        self.recent_limit = recent_limit
        self._lock = threading.RLock()
        self.logger = get_logger("omsin.store")

        self.accounts = AccountManager(storage)
        self.history = TransactionHistory(storage, currency)
        self.sessions = SessionManager(storage, self.accounts)
        self.transfers = TransferProcessor(
            storage, self.accounts, self.history,
            transfer_limit=transfer_limit, lock=self._lock, clock=clock
        )

    @classmethod
    def from_config(cls, config: Optional[OmsinConfig] = None) -> 'LedgerStore':
        """Build the store described by configuration, seeding demo data if enabled"""
        config = config or get_config()
        storage = create_storage(config.storage_backend, config.database_path)
        store = cls(
            storage,
            transfer_limit=config.transfer_limit_amount,
            currency=Currency[config.currency],
            recent_limit=config.recent_transactions_limit
        )
        if config.seed_demo_data:
            store.seed_demo_data()
        store.logger.info(
            "Ledger store ready (backend=%s, accounts=%d)",
            config.storage_backend, store.storage.count(store.accounts.accounts_table)
        )
        return store

    def seed_demo_data(self) -> List[Account]:
        """Create the demo accounts if the account table is empty"""
        with self._lock, self.storage.atomic():
            return seed_demo_accounts(self.accounts)

    # Session

    def authenticate(self, email: str, password: str) -> Account:
        with self._lock:
            return self.sessions.authenticate(email, password)

    def logout(self) -> bool:
        with self._lock:
            return self.sessions.logout()

    def current_account(self) -> Optional[Account]:
        return self.sessions.current_account()

    def require_current_account(self) -> Account:
        return self.sessions.require_current_account()

    # Accounts

    def get_account(self, account_id: str) -> Account:
        return self.accounts.require_account(account_id)

    def list_recipients(self, account_id: str) -> List[Account]:
        self.accounts.require_account(account_id)
        return self.accounts.list_recipients(account_id)

    def update_profile(
        self,
        account_id: str,
        name: str,
        email: str,
        phone: Optional[str] = None,
        address: Optional[str] = None
    ) -> Account:
        with self._lock:
            return self.accounts.update_profile(account_id, name, email, phone=phone, address=address)

    # Transaction history

    def list_transactions(
        self,
        account_id: str,
        transaction_type: Union[str, TransactionType, None] = None,
        search: Optional[str] = None,
        newest_first: bool = True,
        limit: Optional[int] = None
    ) -> List[Transaction]:
        self.accounts.require_account(account_id)
        return self.history.list_transactions(
            account_id, transaction_type=transaction_type, search=search,
            newest_first=newest_first, limit=limit
        )

    def transaction_totals(self, account_id: str) -> TransactionTotals:
        self.accounts.require_account(account_id)
        return self.history.totals(account_id)

    def recent_transactions(self, account_id: str, limit: Optional[int] = None) -> List[Transaction]:
        self.accounts.require_account(account_id)
        return self.history.recent_transactions(account_id, limit or self.recent_limit)

    def monthly_change(self, account_id: str, now: Optional[datetime] = None) -> Money:
        self.accounts.require_account(account_id)
        return self.history.monthly_change(account_id, now=now)

    def account_summary(self, account_id: str, now: Optional[datetime] = None) -> AccountSummary:
        account = self.accounts.require_account(account_id)
        return AccountSummary(
            account=account,
            recent_transactions=self.history.recent_transactions(account_id, self.recent_limit),
            totals=self.history.totals(account_id),
            monthly_change=self.history.monthly_change(account_id, now=now)
        )

    # Transfers

    def transfer(
        self,
        sender_id: str,
        recipient_account_number: str,
        amount: Union[str, int, float, Decimal, None],
        description: str
    ) -> TransferResult:
        return self.transfers.transfer(sender_id, recipient_account_number, amount, description)

    def transfer_preview(self, account_id: str, amount: Union[str, int, float, Decimal]) -> TransferPreview:
        return self.transfers.preview(account_id, amount)

    def close(self) -> None:
        self.storage.close()
