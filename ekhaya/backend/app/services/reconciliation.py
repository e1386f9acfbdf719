"""
Session / store reconciliation of the two-factor flag
"""
from dataclasses import dataclass
from typing import Optional
import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.admin import AdminUser
from app.services.exceptions import AccountNotFoundError, SessionInvalidError
from app.services.session_service import SessionToken, read_session_token

logger = logging.getLogger(__name__)

SESSION_DB_MISMATCH = "session_db_mismatch"


@dataclass(frozen=True)
class ReconciliationResult:
    synced: bool
    session_flag: bool
    store_flag: bool
    session_version: int = 0
    store_version: int = 0

    @property
    def issue(self) -> Optional[str]:
        return None if self.synced else SESSION_DB_MISMATCH

    def as_dict(self) -> dict:
        return {
            "synced": self.synced,
            "session_flag": self.session_flag,
            "store_flag": self.store_flag,
            "issue": self.issue,
        }


def reconcile(session: SessionToken, account: AdminUser) -> ReconciliationResult:
    """
    Compare the token's cached 2FA state with the account record. Read-only.

    Both the flag and the version must match. The version catches a reset
    followed by re-enrollment, which leaves the flag where it started.
    """
    session_flag = bool(session.two_factor_enabled)
    store_flag = bool(account.two_factor_enabled)
    store_version = int(account.two_factor_version or 0)
    return ReconciliationResult(
        synced=session_flag == store_flag and session.two_factor_version == store_version,
        session_flag=session_flag,
        store_flag=store_flag,
        session_version=session.two_factor_version,
        store_version=store_version,
    )


async def check_session_reconciliation(
    db: AsyncSession,
    token: str,
) -> tuple[ReconciliationResult, SessionToken, AdminUser]:
    """Decode a session token and reconcile it against the live record."""
    session = read_session_token(token)
    if session is None:
        raise SessionInvalidError()

    result = await db.execute(select(AdminUser).where(AdminUser.id == session.account_id))
    account = result.scalar_one_or_none()
    if account is None:
        raise AccountNotFoundError()

    outcome = reconcile(session, account)
    if not outcome.synced:
        logger.warning(
            f"Session/store 2FA mismatch for {account.username}: "
            f"session={outcome.session_flag}/v{outcome.session_version} "
            f"store={outcome.store_flag}/v{outcome.store_version}"
        )
    return outcome, session, account
