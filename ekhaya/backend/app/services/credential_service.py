"""
Credential verification with per-account lockout
"""
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import Callable, Optional
import logging

from sqlalchemy import select, update, or_
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.models.admin import AdminUser
from app.services.exceptions import (
    AccountInactiveError,
    AccountLockedError,
    AddressNotAllowedError,
    InvalidCredentialsError,
)
from app.utils.helpers import utcnow, normalize_identifier, is_ip_allowed
from app.utils.security import pwd_context, verify_password

logger = logging.getLogger(__name__)


class LoginStatus(str, Enum):
    AUTHENTICATED = "authenticated"
    INVALID_CREDENTIALS = "invalid_credentials"
    ACCOUNT_LOCKED = "account_locked"
    ACCOUNT_INACTIVE = "account_inactive"
    ADDRESS_NOT_ALLOWED = "address_not_allowed"


@dataclass
class VerificationResult:
    status: LoginStatus
    account: Optional[AdminUser] = None
    locked_until: Optional[datetime] = None

    @property
    def ok(self) -> bool:
        return self.status == LoginStatus.AUTHENTICATED

    def raise_for_status(self) -> AdminUser:
        """Return the account or raise the matching domain error."""
        if self.status == LoginStatus.AUTHENTICATED:
            return self.account
        if self.status == LoginStatus.ACCOUNT_LOCKED:
            raise AccountLockedError(self.locked_until)
        if self.status == LoginStatus.ACCOUNT_INACTIVE:
            raise AccountInactiveError()
        if self.status == LoginStatus.ADDRESS_NOT_ALLOWED:
            raise AddressNotAllowedError()
        raise InvalidCredentialsError()


class CredentialService:
    """Checks username/password pairs and maintains the lockout counters."""

    def __init__(
        self,
        db: AsyncSession,
        now: Callable[[], datetime] = utcnow,
        lockout_threshold: Optional[int] = None,
        lockout_duration: Optional[timedelta] = None,
    ):
        self.db = db
        self.now = now
        if lockout_threshold is None:
            lockout_threshold = settings.lockout_threshold
        if lockout_duration is None:
            lockout_duration = timedelta(minutes=settings.lockout_duration_minutes)
        self.lockout_threshold = lockout_threshold
        self.lockout_duration = lockout_duration

    async def find_account(self, identifier: str) -> Optional[AdminUser]:
        """Look up an account by exact username or email."""
        identifier = normalize_identifier(identifier)
        result = await self.db.execute(
            select(AdminUser).where(
                or_(AdminUser.username == identifier, AdminUser.email == identifier)
            )
        )
        return result.scalars().first()

    async def verify_credentials(
        self,
        identifier: str,
        password: str,
        ip_address: Optional[str] = None,
    ) -> VerificationResult:
        """
        Verify a username-or-email / password pair.

        Every call that reaches an existing account persists its outcome:
        failures bump the counter (and may lock the account), a success
        resets the counter and stamps last_login_at.
        """
        account = await self.find_account(identifier)
        if account is None:
            # Burn a hash so unknown users cost the same as wrong passwords
            pwd_context.dummy_verify()
            return VerificationResult(LoginStatus.INVALID_CREDENTIALS)

        if not account.is_active:
            return VerificationResult(LoginStatus.ACCOUNT_INACTIVE)

        now = self.now()
        if account.is_locked(now):
            return VerificationResult(LoginStatus.ACCOUNT_LOCKED, locked_until=account.locked_until)
        if account.locked_until is not None:
            await self._clear_expired_lock(account, now)

        if not is_ip_allowed(ip_address, account.allowed_ips):
            logger.warning(f"Admin address not allowed: {account.username} from {ip_address}")
            return VerificationResult(LoginStatus.ADDRESS_NOT_ALLOWED)

        if not verify_password(password, account.password_hash):
            await self._record_failure(account, now)
            if account.is_locked(now):
                return VerificationResult(LoginStatus.ACCOUNT_LOCKED, locked_until=account.locked_until)
            return VerificationResult(LoginStatus.INVALID_CREDENTIALS)

        await self.db.execute(
            update(AdminUser)
            .where(AdminUser.id == account.id)
            .values(failed_logins=0, locked_until=None, last_login_at=now)
            .execution_options(synchronize_session=False)
        )
        await self.db.commit()
        await self.db.refresh(account)

        return VerificationResult(LoginStatus.AUTHENTICATED, account=account)

    async def _record_failure(self, account: AdminUser, now: datetime) -> None:
        """Increment the counter in place and lock once it reaches the threshold."""
        await self.db.execute(
            update(AdminUser)
            .where(AdminUser.id == account.id)
            .values(failed_logins=AdminUser.failed_logins + 1)
            .execution_options(synchronize_session=False)
        )
        locked = await self.db.execute(
            update(AdminUser)
            .where(
                AdminUser.id == account.id,
                AdminUser.failed_logins >= self.lockout_threshold,
            )
            .values(locked_until=now + self.lockout_duration)
            .execution_options(synchronize_session=False)
        )
        await self.db.commit()
        await self.db.refresh(account)

        if locked.rowcount:
            logger.warning(
                f"Admin account locked after {account.failed_logins} failed attempts: {account.username}"
            )

    async def _clear_expired_lock(self, account: AdminUser, now: datetime) -> None:
        """An expired lock starts a fresh set of attempts."""
        await self.db.execute(
            update(AdminUser)
            .where(AdminUser.id == account.id, AdminUser.locked_until <= now)
            .values(failed_logins=0, locked_until=None)
            .execution_options(synchronize_session=False)
        )
        await self.db.commit()
        await self.db.refresh(account)
