"""
Account Management Module

Manages customer accounts: creation with uniqueness checks, lookups by id,
account number and email, and profile edits. Balances are only ever changed
by the transfer processor.
"""

from decimal import Decimal
from datetime import datetime, timezone
from dataclasses import dataclass
from typing import Dict, List, Optional
from enum import Enum
import re
import uuid

from .currency import Money, Currency
from .storage import StorageInterface, StorageRecord
from .errors import AccountNotFound, ValidationError
from .logging_config import get_logger, log_action


EMAIL_PATTERN = re.compile(r'^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$')


class AccountType(Enum):
    """Account classification shown to the customer; informational only"""
    SAVINGS = "Savings"
    CHECKING = "Checking"


@dataclass
class Account(StorageRecord):
    """
    Customer bank account.

    ``id`` and ``account_number`` never change after creation. The password is
    a plaintext demo credential and is never exposed by the API.
    """
    created_at: datetime
    updated_at: datetime
    name: str
    email: str
    password: str
    account_number: str
    balance: Money
    account_type: AccountType
    phone: Optional[str] = None
    address: Optional[str] = None

    @property
    def currency(self) -> Currency:
        return self.balance.currency

    def can_cover(self, amount: Money) -> bool:
        """Check if the balance covers a debit of ``amount``"""
        return self.balance >= amount


def validate_email(email: str) -> str:
    """Normalize and validate an email address"""
    email = (email or "").strip()
    if not email:
        raise ValidationError("Email is required")
    if not EMAIL_PATTERN.match(email):
        raise ValidationError("Please enter a valid email address")
    return email


class AccountManager:
    """
    Manages account records, lookups and profile updates
    """

    def __init__(self, storage: StorageInterface):
        self.storage = storage
        self.accounts_table = "accounts"
        self.logger = get_logger("omsin.accounts")

    def create_account(
        self,
        name: str,
        email: str,
        password: str,
        balance: Money,
        account_type: AccountType,
        account_number: Optional[str] = None,
        account_id: Optional[str] = None,
        phone: Optional[str] = None,
        address: Optional[str] = None
    ) -> Account:
        """
        Create a new account

        Args:
            name: Account holder's display name
            email: Login email, unique across accounts
            password: Plaintext demo password
            balance: Opening balance
            account_type: Savings or Checking
            account_number: Routing number (generated if not provided)
            account_id: Specific id (generated if not provided)
            phone: Optional contact phone
            address: Optional postal address

        Returns:
            Created Account object

        Raises:
            ValidationError: On missing fields or a duplicate id, number or email
        """
        name = (name or "").strip()
        if not name:
            raise ValidationError("Name is required")
        if not password:
            raise ValidationError("Password is required")
        email = validate_email(email)

        account_id = account_id or str(uuid.uuid4())
        if self.storage.exists(self.accounts_table, account_id):
            raise ValidationError(f"Account id {account_id} already exists")

        if account_number:
            if self.get_account_by_number(account_number):
                raise ValidationError(f"Account number {account_number} already exists")
        else:
            account_number = self._generate_account_number()

        if self.get_account_by_email(email):
            raise ValidationError("An account with this email already exists")

        now = datetime.now(timezone.utc)
        account = Account(
            id=account_id,
            created_at=now,
            updated_at=now,
            name=name,
            email=email,
            password=password,
            account_number=account_number,
            balance=balance,
            account_type=account_type,
            phone=phone,
            address=address
        )

        self.save_account(account)

        log_action(
            self.logger, "info", "Account created",
            account_id=account.id, action="create_account", resource=f"account:{account.id}",
            extra={
                "account_number": account_number,
                "account_type": account_type.value,
                "balance": balance.to_string()
            }
        )

        return account

    def get_account(self, account_id: str) -> Optional[Account]:
        """Get account by ID"""
        account_dict = self.storage.load(self.accounts_table, account_id)
        if account_dict:
            return self._account_from_dict(account_dict)
        return None

    def require_account(self, account_id: str) -> Account:
        """Get account by ID, raising AccountNotFound when absent"""
        account = self.get_account(account_id)
        if not account:
            raise AccountNotFound(f"Account {account_id} not found")
        return account

    def get_account_by_number(self, account_number: str) -> Optional[Account]:
        """Get account by account number"""
        accounts = self.storage.find(self.accounts_table, {"account_number": account_number})
        if accounts:
            return self._account_from_dict(accounts[0])
        return None

    def get_account_by_email(self, email: str) -> Optional[Account]:
        """Get account by email (case-insensitive)"""
        email = email.strip().lower()
        for data in self.storage.load_all(self.accounts_table):
            if data['email'].lower() == email:
                return self._account_from_dict(data)
        return None

    def list_accounts(self) -> List[Account]:
        """Get all accounts in creation order"""
        return [self._account_from_dict(data) for data in self.storage.load_all(self.accounts_table)]

    def list_recipients(self, account_id: str) -> List[Account]:
        """Get every account other than ``account_id`` (transfer destinations)"""
        return [account for account in self.list_accounts() if account.id != account_id]

    def update_profile(
        self,
        account_id: str,
        name: str,
        email: str,
        phone: Optional[str] = None,
        address: Optional[str] = None
    ) -> Account:
        """
        Update the contact fields of an account.

        Balance, id and account number are never touched here.

        Raises:
            AccountNotFound: If the account does not exist
            ValidationError: If name or email is missing or the email is
                malformed or already used by another account
        """
        account = self.require_account(account_id)

        name = (name or "").strip()
        if not name or not (email or "").strip():
            raise ValidationError("Name and email are required")
        email = validate_email(email)

        owner = self.get_account_by_email(email)
        if owner and owner.id != account.id:
            raise ValidationError("An account with this email already exists")

        account.name = name
        account.email = email
        account.phone = (phone or "").strip() or None
        account.address = (address or "").strip() or None
        account.updated_at = datetime.now(timezone.utc)

        self.save_account(account)

        log_action(
            self.logger, "info", "Profile updated",
            account_id=account.id, action="update_profile", resource=f"account:{account.id}"
        )

        return account

    def save_account(self, account: Account) -> None:
        """Save account to storage"""
        self.storage.save(self.accounts_table, account.id, self._account_to_dict(account))

    def _generate_account_number(self) -> str:
        """Generate a unique 10-digit account number"""
        while True:
            account_number = f"{uuid.uuid4().int % 10**10:010d}"
            if not self.get_account_by_number(account_number):
                return account_number

    def _account_to_dict(self, account: Account) -> Dict:
        """Convert Account to dictionary for storage"""
        result = account.to_dict()
        result['currency'] = account.balance.currency.code
        return result

    def _account_from_dict(self, data: Dict) -> Account:
        """Convert dictionary to Account"""
        currency = Currency[data.get('currency', 'USD')]

        return Account(
            id=data['id'],
            created_at=datetime.fromisoformat(data['created_at']),
            updated_at=datetime.fromisoformat(data['updated_at']),
            name=data['name'],
            email=data['email'],
            password=data['password'],
            account_number=data['account_number'],
            balance=Money(Decimal(data['balance']), currency),
            account_type=AccountType(data['account_type']),
            phone=data.get('phone'),
            address=data.get('address')
        )
