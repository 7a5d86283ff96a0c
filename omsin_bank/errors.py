"""
Error Taxonomy

Every failure the ledger reports to a caller is a BankingError subclass with a
user-facing message and a stable code. All of them are recoverable; the API
layer turns them into JSON error responses.
"""


class BankingError(Exception):
    """Base exception for all ledger errors"""
    
    code = "banking_error"
    status_code = 400
    default_message = "The request could not be completed"
    
    def __init__(self, message: str = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class InvalidCredentials(BankingError):
    """Login email/password pair not found"""
    
    code = "invalid_credentials"
    status_code = 401
    default_message = "Invalid email or password"


class NotAuthenticated(BankingError):
    """No account is logged in"""
    
    code = "not_authenticated"
    status_code = 401
    default_message = "Please log in to continue"


class ValidationError(BankingError):
    """Missing required field, malformed email, or non-numeric / out-of-range amount"""
    
    code = "validation_error"
    status_code = 422
    default_message = "Please fill in all fields"


class InsufficientFunds(BankingError):
    """Transfer amount exceeds sender balance"""
    
    code = "insufficient_funds"
    status_code = 409
    default_message = "Insufficient funds"


class TransferLimitExceeded(BankingError):
    """Transfer amount exceeds the per-transfer ceiling"""
    
    code = "transfer_limit_exceeded"
    status_code = 422
    default_message = "Transfer limit exceeded"


class AccountNotFound(BankingError):
    """Referenced account id does not exist"""
    
    code = "account_not_found"
    status_code = 404
    default_message = "Account not found"


class RecipientNotFound(BankingError):
    """Target account number does not resolve to another account"""
    
    code = "recipient_not_found"
    status_code = 404
    default_message = "Recipient account not found"


class PersistenceError(BankingError):
    """Underlying storage read or write failed"""
    
    code = "persistence_error"
    status_code = 503
    default_message = "Something went wrong while saving your changes. Please try again."
