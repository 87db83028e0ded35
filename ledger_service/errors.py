"""
Error taxonomy for the ledger service.

Every failure the core can produce is a `LedgerError`. Routes never build
error responses for these by hand; the handler registered in `app.py`
renders them as `{"error": ..., "error_code": ...}` with `status_code`.
"""


class LedgerError(Exception):
    status_code = 500
    error_code = "LEDGER_ERROR"
    retryable = False

    def __init__(self, message=None, **details):
        super().__init__(message or self.__class__.__doc__)
        self.message = message or self.__class__.__doc__
        self.details = details

    def to_dict(self):
        body = {"error": self.message, "error_code": self.error_code}
        body.update(self.details)
        return body


class ValidationError(LedgerError):
    """Invalid input"""

    status_code = 400
    error_code = "VALIDATION_ERROR"


class InvalidCredentials(LedgerError):
    """Invalid username or password"""

    status_code = 401
    error_code = "INVALID_CREDENTIALS"


class InsufficientBalance(LedgerError):
    """Insufficient balance"""

    status_code = 402
    error_code = "INSUFFICIENT_BALANCE"


class NotFound(LedgerError):
    """Not found"""

    status_code = 404
    error_code = "NOT_FOUND"


class AccountNotFound(NotFound):
    """Account not found"""

    error_code = "ACCOUNT_NOT_FOUND"


class SenderNotFound(AccountNotFound):
    """Sender account not found"""

    error_code = "SENDER_NOT_FOUND"


class RecipientNotFound(AccountNotFound):
    """Recipient account not found"""

    error_code = "RECIPIENT_NOT_FOUND"


class UserNotFound(NotFound):
    """User not found"""

    error_code = "USER_NOT_FOUND"


class UsernameTaken(LedgerError):
    """User already exists"""

    status_code = 409
    error_code = "USERNAME_TAKEN"


class PreconditionFailed(LedgerError):
    """Concurrent update conflict, safe to retry"""

    status_code = 409
    error_code = "PRECONDITION_FAILED"
    retryable = True


class TransferUnavailable(LedgerError):
    """Transfer could not be completed, try again later"""

    status_code = 503
    error_code = "TRANSFER_UNAVAILABLE"
