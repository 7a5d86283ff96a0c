"""
Session Module

Demo login against the seeded accounts' plaintext credentials. The session
record keeps only the logged-in account's id; the account itself is re-read
from the accounts table whenever it is asked for, so it can never go stale.
"""

from datetime import datetime, timezone
from typing import Optional
import hmac

from .accounts import Account, AccountManager, validate_email
from .storage import StorageInterface
from .errors import InvalidCredentials, NotAuthenticated, ValidationError
from .logging_config import get_logger, log_action


CURRENT_USER_KEY = "current_user"


class SessionManager:
    """
    Tracks which account is logged in
    """

    def __init__(self, storage: StorageInterface, account_manager: AccountManager):
        self.storage = storage
        self.account_manager = account_manager
        self.table_name = "session"
        self.logger = get_logger("omsin.session")

    def authenticate(self, email: str, password: str) -> Account:
        """
        Log in with an email/password pair.

        Raises:
            ValidationError: Missing field or malformed email
            InvalidCredentials: No account matches the pair
        """
        if not (email or "").strip() or not password:
            raise ValidationError("Please fill in all fields")
        email = validate_email(email)

        account = self.account_manager.get_account_by_email(email)
        if not account or not hmac.compare_digest(account.password.encode(), password.encode()):
            log_action(
                self.logger, "warning", "Login failed",
                action="login", extra={"email": email}
            )
            raise InvalidCredentials()

        self.storage.save(self.table_name, CURRENT_USER_KEY, {
            "id": CURRENT_USER_KEY,
            "account_id": account.id,
            "logged_in_at": datetime.now(timezone.utc).isoformat()
        })

        log_action(
            self.logger, "info", "Login succeeded",
            account_id=account.id, action="login", resource=f"account:{account.id}"
        )

        return account

    def logout(self) -> bool:
        """End the session; returns False when nobody was logged in"""
        session = self.storage.load(self.table_name, CURRENT_USER_KEY)
        if not session:
            return False
        self.storage.delete(self.table_name, CURRENT_USER_KEY)
        log_action(
            self.logger, "info", "Logged out",
            account_id=session.get("account_id"), action="logout"
        )
        return True

    def current_account_id(self) -> Optional[str]:
        session = self.storage.load(self.table_name, CURRENT_USER_KEY)
        return session["account_id"] if session else None

    def current_account(self) -> Optional[Account]:
        """The logged-in account as currently stored, or None"""
        account_id = self.current_account_id()
        if not account_id:
            return None
        account = self.account_manager.get_account(account_id)
        if not account:
            # Session points at an account that no longer exists
            self.storage.delete(self.table_name, CURRENT_USER_KEY)
            return None
        return account

    def require_current_account(self) -> Account:
        account = self.current_account()
        if not account:
            raise NotAuthenticated()
        return account
