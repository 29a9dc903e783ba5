"""Unified error codes and custom exceptions.

Error code ranges:
  1xxx: Auth/Person
  2xxx: Ledger
  9xxx: System

Token failures are NOT AppErrors: they never reach a client directly.
The identity resolver collapses every TokenError into UnauthenticatedError.
"""

from decimal import Decimal


class ConfigError(Exception):
    """Fatal misconfiguration detected at startup."""


class AppError(Exception):
    """Base application error."""

    def __init__(
        self,
        code: int,
        message: str,
        http_status: int = 500,
    ) -> None:
        self.code = code
        self.message = message
        self.http_status = http_status
        super().__init__(message)


# --- Token (internal) ---

class TokenError(Exception):
    """Base for every reason a token fails verification."""


class TokenMalformedError(TokenError):
    pass


class TokenSignatureError(TokenError):
    pass


class TokenExpiredError(TokenError):
    pass


class TokenTypeError(TokenError):
    """Token is valid but of the wrong type (e.g. refresh used as access)."""


# --- 1xxx: Auth/Person ---

class DuplicateIdentityError(AppError):
    pass


class UsernameExistsError(DuplicateIdentityError):
    def __init__(self) -> None:
        super().__init__(1001, "Username already exists", 409)


class EmailExistsError(DuplicateIdentityError):
    def __init__(self) -> None:
        super().__init__(1002, "Email already exists", 409)


class InvalidCredentialsError(AppError):
    def __init__(self) -> None:
        super().__init__(1003, "Invalid username, email or password", 401)


class AccountDisabledError(AppError):
    def __init__(self) -> None:
        super().__init__(1004, "Account is disabled", 403)


class InvalidRefreshTokenError(AppError):
    def __init__(self) -> None:
        super().__init__(1005, "Refresh token is invalid or expired", 401)


class UnauthenticatedError(AppError):
    def __init__(self) -> None:
        super().__init__(1006, "Invalid or expired token", 401)


class PermissionDeniedError(AppError):
    def __init__(self, permission: str) -> None:
        super().__init__(1007, f"Permission required: {permission}", 403)


# --- 2xxx: Ledger ---

class PersonNotFoundError(AppError):
    def __init__(self, person_id: int) -> None:
        super().__init__(2001, f"Person not found: {person_id}", 404)


class TransactionNotFoundError(AppError):
    def __init__(self, transaction_id: int) -> None:
        super().__init__(2002, f"Transaction not found: {transaction_id}", 404)


class InvalidAmountError(AppError):
    def __init__(self, amount: Decimal | str, reason: str) -> None:
        super().__init__(2003, f"Invalid amount {amount}: {reason}", 422)


class AlreadyReversedError(AppError):
    def __init__(self, transaction_id: int) -> None:
        super().__init__(2004, f"Transaction already reversed: {transaction_id}", 409)


class InvalidRangeError(AppError):
    def __init__(self, detail: str) -> None:
        super().__init__(2005, f"Invalid date range: {detail}", 422)


class InvalidDescriptionError(AppError):
    def __init__(self, detail: str) -> None:
        super().__init__(2006, f"Invalid description: {detail}", 422)


class InvalidCursorError(AppError):
    def __init__(self) -> None:
        super().__init__(2007, "Invalid pagination cursor", 422)


# --- 9xxx: System ---

class InternalError(AppError):
    def __init__(self, detail: str = "Internal server error") -> None:
        super().__init__(9002, detail, 500)
