"""
Transfer Settlement Module

Moves money between two accounts. A transfer is validated in full before
anything is written; on success both balances change and a debit and a credit
entry are appended inside one storage transaction, so either all four writes
land or none do.
"""

from decimal import Decimal
from datetime import datetime, timedelta, timezone
from dataclasses import dataclass
from typing import Callable, Optional, Tuple, Union
import threading

from .currency import Money, parse_amount
from .accounts import Account, AccountManager
from .transactions import Transaction, TransactionHistory, TransactionType, make_transaction_id
from .storage import StorageInterface
from .errors import (
    BankingError, ValidationError, InsufficientFunds,
    TransferLimitExceeded, RecipientNotFound
)
from .logging_config import get_logger, log_action


DEFAULT_TRANSFER_LIMIT = Decimal("10000.00")
MAX_DESCRIPTION_LENGTH = 100

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
_MILLISECOND = timedelta(milliseconds=1)


@dataclass(frozen=True)
class TransferResult:
    """Outcome of a settled transfer"""
    sender: Account
    recipient: Account
    debit: Transaction
    credit: Transaction
    message: str

    @property
    def amount(self) -> Money:
        return self.debit.amount


@dataclass(frozen=True)
class TransferPreview:
    """What the sender's balance would be after sending ``amount``"""
    amount: Money
    available_balance: Money
    remaining_balance: Money

    @property
    def sufficient_funds(self) -> bool:
        return not self.remaining_balance.is_negative()


class TransferProcessor:
    """
    Validates and settles transfers between accounts
    """

    def __init__(
        self,
        storage: StorageInterface,
        account_manager: AccountManager,
        history: TransactionHistory,
        transfer_limit: Decimal = DEFAULT_TRANSFER_LIMIT,
        lock: Optional[threading.RLock] = None,
        clock: Optional[Callable[[], datetime]] = None
    ):
        self.storage = storage
        self.account_manager = account_manager
        self.history = history
        self.transfer_limit = Money(transfer_limit, history.currency)
        self._lock = lock or threading.RLock()
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._last_posting_ms = 0
        self.logger = get_logger("omsin.transfers")

    def transfer(
        self,
        sender_id: str,
        recipient_account_number: str,
        amount: Union[str, int, float, Decimal, None],
        description: str
    ) -> TransferResult:
        """
        Move ``amount`` from the sender to the account with
        ``recipient_account_number``.

        Args:
            sender_id: ID of the account sending money
            recipient_account_number: Account number of the receiving account
            amount: Amount as entered (string, number or Decimal)
            description: What the transfer is for; appended to both entries

        Returns:
            TransferResult with both updated accounts and both new entries

        Raises:
            ValidationError: Missing field, bad amount or over-long description
            TransferLimitExceeded: Amount above the per-transfer ceiling
            AccountNotFound: Sender does not exist
            RecipientNotFound: Account number unknown or the sender's own
            InsufficientFunds: Amount above the sender's balance
            PersistenceError: Storage failed; nothing was changed
        """
        with self._lock:
            try:
                sender, recipient, money, memo = self._validate(
                    sender_id, recipient_account_number, amount, description
                )
                result = self._settle(sender, recipient, money, memo)
            except BankingError as e:
                log_action(
                    self.logger, "warning", f"Transfer rejected: {e.message}",
                    account_id=sender_id, action="transfer", resource=f"account:{sender_id}",
                    extra={"error": e.code, "recipient_account_number": recipient_account_number}
                )
                raise

        log_action(
            self.logger, "info", "Transfer settled",
            account_id=result.sender.id, action="transfer",
            resource=f"transaction:{result.debit.id}",
            extra={
                "amount": result.amount.to_string(),
                "recipient_id": result.recipient.id,
                "debit_id": result.debit.id,
                "credit_id": result.credit.id
            }
        )

        return result

    def preview(self, sender_id: str, amount: Union[str, int, float, Decimal]) -> TransferPreview:
        """
        Remaining balance if ``amount`` were sent; nothing is written.

        The amount goes through the same validity and limit checks as a
        transfer. A shortfall is reported, not raised.
        """
        sender = self.account_manager.require_account(sender_id)
        money = self._checked_amount(amount)
        return TransferPreview(
            amount=money,
            available_balance=sender.balance,
            remaining_balance=sender.balance - money
        )

    def _checked_amount(self, amount) -> Money:
        """
        Parse ``amount`` and enforce the per-transfer ceiling.

        The ceiling is compared on the raw Decimal so amounts too large to
        quantize never reach Money.
        """
        try:
            value = parse_amount(amount, self.history.currency)
        except ValueError:
            raise ValidationError("Please enter a valid amount")
        if value <= Decimal("0"):
            raise ValidationError("Please enter a valid amount")

        if value > self.transfer_limit.amount:
            raise TransferLimitExceeded(
                f"Transfer limit exceeded. Maximum transfer amount is {self.transfer_limit.to_string()}"
            )

        return Money(value, self.history.currency)

    def _validate(
        self,
        sender_id: str,
        recipient_account_number: str,
        amount,
        description: str
    ) -> Tuple[Account, Account, Money, str]:
        """Check every precondition in order; the first failure wins"""
        recipient_account_number = (recipient_account_number or "").strip()
        memo = (description or "").strip()
        amount_missing = amount is None or (isinstance(amount, str) and not amount.strip())

        if not recipient_account_number or not memo or amount_missing:
            raise ValidationError("Please fill in all fields")

        if len(memo) > MAX_DESCRIPTION_LENGTH:
            raise ValidationError(f"Description cannot be longer than {MAX_DESCRIPTION_LENGTH} characters")

        money = self._checked_amount(amount)

        sender = self.account_manager.require_account(sender_id)

        recipient = self.account_manager.get_account_by_number(recipient_account_number)
        if not recipient or recipient.id == sender.id:
            raise RecipientNotFound(f"No other account has number {recipient_account_number}")

        if not sender.can_cover(money):
            raise InsufficientFunds(
                f"Insufficient funds: available {sender.balance.to_string()}, requested {money.to_string()}"
            )

        return sender, recipient, money, memo

    def _settle(self, sender: Account, recipient: Account, money: Money, memo: str) -> TransferResult:
        posted_at = self._posting_time(sender.id, recipient.id)

        sender.balance = sender.balance - money
        sender.updated_at = posted_at
        recipient.balance = recipient.balance + money
        recipient.updated_at = posted_at

        debit = Transaction(
            id=make_transaction_id(sender.id, posted_at, TransactionType.DEBIT),
            account_id=sender.id,
            transaction_type=TransactionType.DEBIT,
            amount=money,
            description=f"Transfer to {recipient.name} - {memo}",
            date=posted_at,
            balance=sender.balance
        )
        credit = Transaction(
            id=make_transaction_id(recipient.id, posted_at, TransactionType.CREDIT),
            account_id=recipient.id,
            transaction_type=TransactionType.CREDIT,
            amount=money,
            description=f"Transfer from {sender.name} - {memo}",
            date=posted_at,
            balance=recipient.balance
        )

        with self.storage.atomic():
            self.account_manager.save_account(sender)
            self.account_manager.save_account(recipient)
            self.history.record(debit)
            self.history.record(credit)

        return TransferResult(
            sender=sender,
            recipient=recipient,
            debit=debit,
            credit=credit,
            message=f"Successfully transferred {money.to_string()} to {recipient.name}"
        )

    def _posting_time(self, sender_id: str, recipient_id: str) -> datetime:
        """
        Millisecond-precision posting time, strictly later than the previous
        one and free of id collisions for both accounts.
        """
        now = self._clock()
        if now.tzinfo is None:
            now = now.replace(tzinfo=timezone.utc)
        millis = max((now - _EPOCH) // _MILLISECOND, self._last_posting_ms + 1)

        while True:
            posted_at = _EPOCH + millis * _MILLISECOND
            debit_id = make_transaction_id(sender_id, posted_at, TransactionType.DEBIT)
            credit_id = make_transaction_id(recipient_id, posted_at, TransactionType.CREDIT)
            if not self.history.exists(debit_id) and not self.history.exists(credit_id):
                break
            millis += 1

        self._last_posting_ms = millis
        return posted_at
