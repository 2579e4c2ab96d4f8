"""Error taxonomy for the vend flow.

Every error carries the HTTP status the API layer answers with, so routes
can let them propagate and a single exception handler renders them.
"""

from typing import Optional


class VendError(Exception):
    """Base exception for vend failures surfaced to the caller."""

    http_status: int = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidInput(VendError):
    """Raised when required request fields are missing or malformed."""

    http_status = 400


class DailyLimitExceeded(VendError):
    """Raised when the client already vended on the current UTC date."""

    http_status = 403

    def __init__(self, message: str = "Daily vending limit reached."):
        super().__init__(message)


class InvalidAmount(VendError):
    """Raised when the resolved vend quantity is not positive."""

    http_status = 400

    def __init__(
        self, message: str = "Vend amount or units must be greater than zero."
    ):
        super().__init__(message)


class NotFound(VendError):
    """Raised when a read query targets an unknown client."""

    http_status = 404

    def __init__(self, message: str = "User not found."):
        super().__init__(message)


class IssuerExhausted(VendError):
    """Raised when every STS account in the pool failed to issue a token.

    No token was issued, so the caller may safely retry.
    """

    http_status = 500

    def __init__(self, message: str, attempts: int = 0):
        super().__init__(message)
        self.attempts = attempts


class StorageUnavailable(VendError):
    """Raised when the database fails during a vend.

    ``after_issuance`` is True when STS had already issued a token; such a
    failure is not safe to retry without risking a second token.
    """

    http_status = 500

    def __init__(
        self,
        message: str = "Storage is temporarily unavailable.",
        after_issuance: bool = False,
        cause: Optional[BaseException] = None,
    ):
        super().__init__(message)
        self.after_issuance = after_issuance
        self.cause = cause
