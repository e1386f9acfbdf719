"""
Per-address brute force protection and the admin security event log
"""
from datetime import datetime, timedelta
from typing import Callable, Optional
import logging

from sqlalchemy import select, func, delete
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.security import FailedLogin, BlockedIP, SecurityEvent
from app.config import settings
from app.utils.helpers import utcnow

logger = logging.getLogger(__name__)


class SecurityService:
    """Handles address blocking and security events"""

    def __init__(self, db: AsyncSession, now: Callable[[], datetime] = utcnow):
        self.db = db
        self.now = now
        self.max_failed_attempts = settings.ip_max_failed_attempts
        self.block_duration = timedelta(minutes=settings.ip_block_minutes)
        self.attempt_window = timedelta(minutes=settings.ip_attempt_window_minutes)

    async def record_failed_attempt(
        self,
        ip_address: str,
        username: Optional[str] = None,
        endpoint: str = "/api/admin/auth/login",
        user_agent: Optional[str] = None,
        reason: Optional[str] = None,
    ) -> Optional[BlockedIP]:
        """
        Record a failed attempt and check if the address should be blocked.
        Returns BlockedIP if the address was blocked, None otherwise.
        """
        now = self.now()
        self.db.add(FailedLogin(
            ip_address=ip_address,
            username=username,
            endpoint=endpoint,
            user_agent=user_agent,
            attempt_time=now,
        ))

        await self.log_event(
            "login_failed",
            ip_address=ip_address,
            username=username,
            details=reason or f"Failed attempt on {endpoint}",
        )
        await self.db.flush()

        # Count recent failed attempts from this address
        result = await self.db.execute(
            select(func.count(FailedLogin.id))
            .where(FailedLogin.ip_address == ip_address)
            .where(FailedLogin.attempt_time >= now - self.attempt_window)
        )
        attempt_count = result.scalar() or 0

        if attempt_count >= self.max_failed_attempts:
            return await self._block_ip(ip_address, attempt_count)

        await self.db.commit()
        return None

    async def _block_ip(self, ip_address: str, failed_attempts: int) -> BlockedIP:
        now = self.now()
        result = await self.db.execute(select(BlockedIP).where(BlockedIP.ip_address == ip_address))
        block = result.scalar_one_or_none()

        if block is None:
            block = BlockedIP(ip_address=ip_address)
            self.db.add(block)

        block.reason = f"Too many failed login attempts ({failed_attempts} attempts)"
        block.failed_attempts = failed_attempts
        block.blocked_at = now
        block.blocked_until = now + self.block_duration
        block.is_active = True
        block.unblocked_at = None
        block.unblocked_by = None

        await self.log_event(
            "ip_blocked",
            ip_address=ip_address,
            details=f"Address blocked until {block.blocked_until:%Y-%m-%d %H:%M} UTC",
        )
        logger.warning(f"Address {ip_address} blocked after {failed_attempts} failed attempts")

        await self.db.commit()
        return block

    async def is_ip_blocked(self, ip_address: str) -> tuple[bool, Optional[BlockedIP]]:
        """Check if an address is currently blocked"""
        result = await self.db.execute(
            select(BlockedIP).where(
                BlockedIP.ip_address == ip_address,
                BlockedIP.is_active == True
            )
        )
        block = result.scalar_one_or_none()

        if not block:
            return False, None

        now = self.now()
        if block.blocked_until and now > block.blocked_until:
            # Auto-unblock expired blocks
            block.is_active = False
            block.unblocked_at = now
            block.notes = "Auto-unblocked: block expired"
            await self.db.commit()
            return False, None

        return True, block

    async def unblock_ip(self, ip_address: str, admin_username: str, notes: Optional[str] = None) -> Optional[BlockedIP]:
        """Manually unblock an address"""
        result = await self.db.execute(
            select(BlockedIP).where(
                BlockedIP.ip_address == ip_address,
                BlockedIP.is_active == True
            )
        )
        block = result.scalar_one_or_none()

        if not block:
            return None

        block.is_active = False
        block.unblocked_at = self.now()
        block.unblocked_by = admin_username
        block.notes = notes or f"Manually unblocked by {admin_username}"

        await self.db.execute(delete(FailedLogin).where(FailedLogin.ip_address == ip_address))
        await self.log_event(
            "ip_unblocked",
            ip_address=ip_address,
            username=admin_username,
            details=f"Address unblocked by admin: {notes or 'No reason provided'}"
        )

        await self.db.commit()
        return block

    async def get_blocked_ips(self, active_only: bool = True, limit: int = 100, offset: int = 0) -> list[BlockedIP]:
        query = select(BlockedIP).order_by(BlockedIP.blocked_at.desc())
        if active_only:
            query = query.where(BlockedIP.is_active == True)
        result = await self.db.execute(query.limit(limit).offset(offset))
        return list(result.scalars().all())

    async def get_security_events(
        self,
        event_type: Optional[str] = None,
        admin_user_id: Optional[int] = None,
        limit: int = 100
    ) -> list[SecurityEvent]:
        query = select(SecurityEvent).order_by(SecurityEvent.created_at.desc(), SecurityEvent.id.desc())
        if event_type:
            query = query.where(SecurityEvent.event_type == event_type)
        if admin_user_id is not None:
            query = query.where(SecurityEvent.admin_user_id == admin_user_id)
        result = await self.db.execute(query.limit(limit))
        return list(result.scalars().all())

    async def record_successful_login(self, ip_address: str, username: str, admin_user_id: int):
        """Record successful login (clears recent failed attempts for this address)"""
        await self.db.execute(
            delete(FailedLogin).where(
                FailedLogin.ip_address == ip_address,
                FailedLogin.attempt_time >= self.now() - self.attempt_window
            )
        )
        await self.log_event(
            "login_success",
            ip_address=ip_address,
            username=username,
            admin_user_id=admin_user_id,
            details="Successful login",
        )
        await self.db.commit()
        logger.info(f"Admin login successful: {username} from {ip_address}")

    async def log_event(
        self,
        event_type: str,
        ip_address: Optional[str] = None,
        username: Optional[str] = None,
        admin_user_id: Optional[int] = None,
        details: Optional[str] = None,
        commit: bool = False,
    ):
        """Add a security event to the current transaction"""
        self.db.add(SecurityEvent(
            event_type=event_type,
            admin_user_id=admin_user_id,
            ip_address=ip_address,
            username=username,
            details=details,
            created_at=self.now(),
        ))
        if commit:
            await self.db.commit()
