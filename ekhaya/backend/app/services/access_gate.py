"""
Access gate for admin-only requests.

Stages: unauthenticated -> credential_verified -> enrollment_required (store
flag false) -> two_factor_verified -> authorized. A request only reaches
`authorized` after a live reconciliation against the store; every failure
raises (the Denied state).
"""
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from app.models.admin import ADMIN_ROLES, AdminUser
from app.services.exceptions import (
    AccountInactiveError,
    AccountLockedError,
    AccountNotFoundError,
    AddressNotAllowedError,
    InsufficientRoleError,
    SessionInvalidError,
    SessionMismatchError,
    TwoFactorRequiredError,
)
from app.services.reconciliation import ReconciliationResult, check_session_reconciliation
from app.services.session_service import SessionStage, SessionToken
from app.utils.helpers import utcnow, is_ip_allowed


@dataclass
class GateDecision:
    stage: SessionStage
    account: AdminUser
    session: SessionToken
    reconciliation: ReconciliationResult


def role_satisfies(role: str, min_role: str) -> bool:
    if role not in ADMIN_ROLES:
        return False
    return ADMIN_ROLES.index(role) >= ADMIN_ROLES.index(min_role)


class AccessGate:
    def __init__(self, db: AsyncSession, now: Callable[[], datetime] = utcnow):
        self.db = db
        self.now = now

    async def evaluate(self, token: Optional[str], ip_address: Optional[str] = None) -> GateDecision:
        """Work out which stage a session is in, raising if it is denied."""
        if not token:
            raise SessionInvalidError()
        try:
            outcome, session, account = await check_session_reconciliation(self.db, token)
        except AccountNotFoundError:
            raise SessionInvalidError()

        if not account.is_active:
            raise AccountInactiveError()
        if account.is_locked(self.now()):
            raise AccountLockedError(account.locked_until)
        if not is_ip_allowed(ip_address, account.allowed_ips):
            raise AddressNotAllowedError()
        if not outcome.synced:
            raise SessionMismatchError(outcome)

        stage = session.stage
        if stage == SessionStage.TWO_FACTOR_VERIFIED:
            stage = SessionStage.AUTHORIZED
        return GateDecision(stage=stage, account=account, session=session, reconciliation=outcome)

    async def authorize(
        self,
        token: Optional[str],
        ip_address: Optional[str] = None,
        min_role: Optional[str] = None,
    ) -> AdminUser:
        """Return the account for a fully authorized session of sufficient role."""
        decision = await self.evaluate(token, ip_address)
        if decision.stage != SessionStage.AUTHORIZED:
            raise TwoFactorRequiredError(decision.stage)
        if min_role and not role_satisfies(decision.account.role, min_role):
            raise InsufficientRoleError()
        return decision.account
