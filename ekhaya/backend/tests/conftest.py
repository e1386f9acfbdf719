"""Pytest configuration and fixtures"""
import os

# Settings are read at import time, so configure before importing the app
os.environ["SECRET_KEY"] = "test-secret-key"
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///./test_ekhaya.db"
os.environ["PASSWORD_HASH_ROUNDS"] = "4"
os.environ["LOCKOUT_THRESHOLD"] = "5"
os.environ["LOCKOUT_DURATION_MINUTES"] = "15"
os.environ["IP_MAX_FAILED_ATTEMPTS"] = "50"
os.environ["TRUST_PROXY_HEADERS"] = "true"
os.environ["TRUSTED_PROXIES"] = "127.0.0.1"

from datetime import datetime, timedelta
from typing import AsyncGenerator, Optional

import pyotp
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import async_session_maker, init_db, drop_db
from app.main import app
from app.models import AdminUser, ROLE_ADMIN
from app.utils.helpers import utcnow
from app.utils.security import get_password_hash

PASSWORD = "Correct-Horse-42"


class FakeClock:
    """Injectable clock returning naive UTC datetimes"""

    def __init__(self, start: Optional[datetime] = None):
        self.current = start or utcnow()

    def __call__(self) -> datetime:
        return self.current

    def advance(self, **kwargs) -> datetime:
        self.current = self.current + timedelta(**kwargs)
        return self.current


@pytest_asyncio.fixture
async def database() -> AsyncGenerator[None, None]:
    """Create a fresh database for each test"""
    await init_db()
    try:
        yield
    finally:
        await drop_db()


@pytest_asyncio.fixture
async def db(database) -> AsyncGenerator[AsyncSession, None]:
    async with async_session_maker() as session:
        yield session


@pytest_asyncio.fixture
async def client(database) -> AsyncGenerator[AsyncClient, None]:
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as test_client:
        yield test_client


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


async def create_account(
    username: str = "alice",
    password: str = PASSWORD,
    role: str = ROLE_ADMIN,
    email: Optional[str] = None,
    two_factor_secret: Optional[str] = None,
    allowed_ips: Optional[list[str]] = None,
    is_active: bool = True,
) -> AdminUser:
    """Insert an account in its own session. Passing a secret enables 2FA."""
    async with async_session_maker() as session:
        account = AdminUser(
            username=username,
            email=email or f"{username}@example.com",
            name=username.title(),
            role=role,
            password_hash=get_password_hash(password),
            is_active=is_active,
            two_factor_enabled=two_factor_secret is not None,
            two_factor_secret=two_factor_secret,
            failed_logins=0,
        )
        account.allowed_ips = allowed_ips or []
        session.add(account)
        await session.commit()
        await session.refresh(account)
        return account


async def fetch_account(account_id: int) -> AdminUser:
    """Read the current stored state of an account"""
    async with async_session_maker() as session:
        result = await session.execute(select(AdminUser).where(AdminUser.id == account_id))
        return result.scalar_one()


def new_secret() -> str:
    return pyotp.random_base32(length=52)


def current_code(secret: str) -> str:
    return pyotp.TOTP(secret).now()


def bearer(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


async def login(client: AsyncClient, username: str, password: str = PASSWORD, **extra):
    return await client.post(
        "/api/admin/auth/login",
        json={"username": username, "password": password, **extra},
    )


async def authorized_token(client: AsyncClient, username: str, secret: str) -> str:
    """Log in an account that already has 2FA and return an authorized token"""
    response = await login(client, username, totp_code=current_code(secret))
    assert response.status_code == 200, response.text
    assert response.json()["stage"] == "authorized"
    return response.json()["access_token"]
