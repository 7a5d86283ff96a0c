"""Demo account fixture seeded on first run.

Credentials are plaintext demo logins.
"""

from decimal import Decimal
from typing import List

from .accounts import Account, AccountManager, AccountType
from .currency import Money
from .logging_config import get_logger

logger = get_logger("omsin.seed")

DEMO_ACCOUNTS = [
    {
        "account_id": "1",
        "email": "demo@omsin.com",
        "password": "demo123",
        "name": "Omar Sima",
        "account_number": "1234567890",
        "balance": Decimal("15750.50"),
        "account_type": AccountType.SAVINGS,
    },
    {
        "account_id": "2",
        "email": "jane@omsin.com",
        "password": "fatou123",
        "name": "Fatou Kah",
        "account_number": "0987654321",
        "balance": Decimal("8920.75"),
        "account_type": AccountType.CHECKING,
    },
    {
        "account_id": "3",
        "email": "cheikh@omsin.com",
        "password": "cheikh123",
        "name": "Cheikh Peters",
        "account_number": "0747954315",
        "balance": Decimal("2000.25"),
        "account_type": AccountType.CHECKING,
    },
]


def seed_demo_accounts(account_manager: AccountManager) -> List[Account]:
    """Create the demo accounts unless any account already exists"""
    if account_manager.storage.count(account_manager.accounts_table) > 0:
        return []

    created = []
    for demo in DEMO_ACCOUNTS:
        fields = dict(demo)
        fields["balance"] = Money(fields["balance"])
        created.append(account_manager.create_account(**fields))

    logger.info("Seeded %d demo accounts", len(created))
    return created
