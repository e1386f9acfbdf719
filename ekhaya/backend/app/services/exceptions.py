"""
Domain errors raised by the admin authentication services.

Store failures are not wrapped: SQLAlchemy errors propagate as-is so callers
never mistake an unreachable database for bad credentials.
"""
from datetime import datetime
from typing import Optional


class AuthError(Exception):
    """Base class for recoverable authentication errors."""

    code = "auth_error"


class InvalidCredentialsError(AuthError):
    code = "invalid_credentials"


class AccountLockedError(AuthError):
    code = "account_locked"

    def __init__(self, locked_until: Optional[datetime]):
        super().__init__(f"Account locked until {locked_until}")
        self.locked_until = locked_until


class AccountInactiveError(AuthError):
    code = "account_inactive"


class AddressNotAllowedError(AuthError):
    code = "address_not_allowed"


class AccountNotFoundError(AuthError):
    code = "account_not_found"


class DuplicateAccountError(AuthError):
    code = "duplicate_account"


class EnrollmentNotInitializedError(AuthError):
    code = "enrollment_not_initialized"


class InvalidCodeError(AuthError):
    code = "invalid_code"


class MalformedCodeFormatError(InvalidCodeError):
    code = "malformed_code_format"


class TwoFactorAlreadyEnabledError(AuthError):
    code = "two_factor_already_enabled"


class SessionInvalidError(AuthError):
    """Missing, expired or badly signed session token."""

    code = "session_invalid"


class SessionMismatchError(AuthError):
    """The session's cached 2FA flag no longer matches the store."""

    code = "session_db_mismatch"

    def __init__(self, reconciliation=None):
        super().__init__("Session is out of date, sign in again")
        self.reconciliation = reconciliation


class TwoFactorRequiredError(AuthError):
    code = "two_factor_required"

    def __init__(self, stage=None):
        super().__init__(f"Two-factor authentication required (stage: {stage})")
        self.stage = stage


class InsufficientRoleError(AuthError):
    code = "insufficient_role"
