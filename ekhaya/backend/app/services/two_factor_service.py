"""
Two-factor enrollment and verification
"""
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Optional
import json
import logging

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.admin import AdminUser
from app.services.exceptions import (
    AccountNotFoundError,
    EnrollmentNotInitializedError,
    InvalidCodeError,
    MalformedCodeFormatError,
    TwoFactorAlreadyEnabledError,
)
from app.utils.helpers import utcnow
from app.utils.security import (
    generate_recovery_codes,
    generate_totp_secret,
    get_totp_uri,
    hash_recovery_code,
    is_totp_code_format_valid,
    make_qr_data_uri,
    verify_totp,
)

logger = logging.getLogger(__name__)


@dataclass
class EnrollmentStart:
    secret: str
    enrollment_uri: str
    recovery_codes: list[str] = field(default_factory=list)

    @property
    def qr_code(self) -> str:
        return make_qr_data_uri(self.enrollment_uri)


class TwoFactorService:
    def __init__(
        self,
        db: AsyncSession,
        now: Callable[[], datetime] = utcnow,
        valid_window: Optional[int] = None,
    ):
        self.db = db
        self.now = now
        self.valid_window = valid_window

    async def get_account(self, account_id: int) -> AdminUser:
        result = await self.db.execute(select(AdminUser).where(AdminUser.id == account_id))
        account = result.scalar_one_or_none()
        if account is None:
            raise AccountNotFoundError()
        return account

    async def begin_enrollment(self, account_id: int) -> EnrollmentStart:
        """
        Generate and persist a pending secret plus recovery codes.

        A pending secret from an earlier, unconfirmed call is overwritten.
        The enabled flag is left untouched until confirm_enrollment().
        """
        account = await self.get_account(account_id)
        if account.two_factor_enabled:
            raise TwoFactorAlreadyEnabledError()

        secret = generate_totp_secret()
        codes = generate_recovery_codes()

        await self.db.execute(
            update(AdminUser)
            .where(AdminUser.id == account.id, AdminUser.two_factor_enabled == False)
            .values(
                two_factor_secret=secret,
                recovery_codes_json=json.dumps([hash_recovery_code(c) for c in codes]),
            )
            .execution_options(synchronize_session=False)
        )
        await self.db.commit()
        await self.db.refresh(account)

        return EnrollmentStart(
            secret=secret,
            enrollment_uri=get_totp_uri(secret, account.email or account.username),
            recovery_codes=codes,
        )

    async def confirm_enrollment(self, account_id: int, code: str) -> AdminUser:
        """
        Enable 2FA once the user proves possession of the pending secret.

        Success also resets the failed-login counter and clears any lock.
        """
        account = await self.get_account(account_id)
        if account.two_factor_enabled:
            raise TwoFactorAlreadyEnabledError()
        secret = account.two_factor_secret
        if not secret:
            raise EnrollmentNotInitializedError()
        if not is_totp_code_format_valid(code):
            raise MalformedCodeFormatError()
        if not self.check_code(secret, code):
            raise InvalidCodeError()

        # Only flip if the secret is still the one the code was checked against
        result = await self.db.execute(
            update(AdminUser)
            .where(AdminUser.id == account.id, AdminUser.two_factor_secret == secret)
            .values(
                two_factor_enabled=True,
                two_factor_version=AdminUser.two_factor_version + 1,
                failed_logins=0,
                locked_until=None,
            )
            .execution_options(synchronize_session=False)
        )
        if not result.rowcount:
            await self.db.rollback()
            raise InvalidCodeError()
        await self.db.commit()
        await self.db.refresh(account)

        logger.info(f"Two-factor authentication enabled for {account.username}")
        return account

    async def verify_code(self, account_id: int, code: str) -> bool:
        """Check a login code against the account's confirmed secret."""
        account = await self.get_account(account_id)
        if not is_totp_code_format_valid(code):
            raise MalformedCodeFormatError()
        if not account.two_factor_enabled or not account.two_factor_secret:
            raise EnrollmentNotInitializedError()
        return self.check_code(account.two_factor_secret, code)

    async def reset(self, account_id: int) -> AdminUser:
        """Administrative reset: drop flag, secret and recovery codes."""
        account = await self.get_account(account_id)
        await self.db.execute(
            update(AdminUser)
            .where(AdminUser.id == account.id)
            .values(
                two_factor_enabled=False,
                two_factor_version=AdminUser.two_factor_version + 1,
                two_factor_secret=None,
                recovery_codes_json=None,
            )
            .execution_options(synchronize_session=False)
        )
        await self.db.commit()
        await self.db.refresh(account)

        logger.info(f"Two-factor authentication reset for {account.username}")
        return account

    def check_code(self, secret: str, code: str) -> bool:
        return verify_totp(secret, code, valid_window=self.valid_window, for_time=self.now())
