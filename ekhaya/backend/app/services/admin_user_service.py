"""
Admin and staff account management
"""
from typing import Optional
import logging

from sqlalchemy import select, update, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.admin import AdminUser, ROLE_STAFF
from app.services.exceptions import AccountNotFoundError, DuplicateAccountError
from app.utils.helpers import make_username, normalize_allowed_ips
from app.utils.security import generate_password, get_password_hash

logger = logging.getLogger(__name__)


class AdminUserService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def get(self, account_id: int) -> AdminUser:
        result = await self.db.execute(select(AdminUser).where(AdminUser.id == account_id))
        account = result.scalar_one_or_none()
        if account is None:
            raise AccountNotFoundError()
        return account

    async def list_accounts(self, role: Optional[str] = None) -> list[AdminUser]:
        query = select(AdminUser).order_by(AdminUser.created_at.desc(), AdminUser.id.desc())
        if role:
            query = query.where(AdminUser.role == role)
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def create(
        self,
        email: str,
        name: str,
        username: Optional[str] = None,
        work_number: Optional[str] = None,
        last_name: Optional[str] = None,
        role: str = ROLE_STAFF,
        password: Optional[str] = None,
        allowed_ips: Optional[list[str]] = None,
    ) -> tuple[AdminUser, Optional[str]]:
        """
        Create an account. Username falls back to "<work number>.<last name>".

        Returns the account and the generated temporary password, or None
        when the caller supplied one.
        """
        username = (username or "").strip() or make_username(work_number, last_name)
        if not username:
            raise ValueError("Missing username (or work number and last name)")

        if await self._is_taken(or_(AdminUser.username == username, AdminUser.email == email)):
            raise DuplicateAccountError()

        temp_password = None if password else generate_password()
        account = AdminUser(
            username=username,
            email=email,
            name=name,
            role=role,
            password_hash=get_password_hash(password or temp_password),
            is_active=True,
            two_factor_enabled=False,
            failed_logins=0,
        )
        account.allowed_ips = normalize_allowed_ips(allowed_ips or [])
        self.db.add(account)
        await self._commit_unique()
        await self.db.refresh(account)

        logger.info(f"Created {role} account: {username}")
        return account, temp_password

    async def update(
        self,
        account_id: int,
        name: Optional[str] = None,
        email: Optional[str] = None,
        role: Optional[str] = None,
        is_active: Optional[bool] = None,
        allowed_ips: Optional[list[str]] = None,
        password: Optional[str] = None,
    ) -> AdminUser:
        account = await self.get(account_id)

        if email is not None and email != account.email:
            if await self._is_taken(AdminUser.email == email, AdminUser.id != account.id):
                raise DuplicateAccountError()
            account.email = email
        if name is not None:
            account.name = name
        if role is not None:
            account.role = role
        if is_active is not None:
            account.is_active = is_active
        if allowed_ips is not None:
            account.allowed_ips = normalize_allowed_ips(allowed_ips)
        if password:
            account.password_hash = get_password_hash(password)

        await self._commit_unique()
        await self.db.refresh(account)
        return account

    async def unlock(self, account_id: int) -> AdminUser:
        account = await self.get(account_id)
        await self.db.execute(
            update(AdminUser)
            .where(AdminUser.id == account.id)
            .values(failed_logins=0, locked_until=None)
            .execution_options(synchronize_session=False)
        )
        await self.db.commit()
        await self.db.refresh(account)
        return account

    async def change_password(self, account: AdminUser, new_password: str) -> None:
        account.password_hash = get_password_hash(new_password)
        await self.db.commit()

    async def _is_taken(self, *criteria) -> bool:
        result = await self.db.execute(select(AdminUser.id).where(*criteria))
        return result.first() is not None

    async def _commit_unique(self) -> None:
        """Commit, turning a unique-constraint race into DuplicateAccountError."""
        try:
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            logger.warning("Admin account write lost a uniqueness race")
            raise DuplicateAccountError()
