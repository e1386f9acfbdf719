from datetime import datetime
from typing import Optional
import json

from sqlalchemy import DateTime, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from app.database import Base


ROLE_STAFF = "staff"
ROLE_ADMIN = "admin"
ROLE_SUPER_ADMIN = "super_admin"

# Ordered from least to most privileged
ADMIN_ROLES = (ROLE_STAFF, ROLE_ADMIN, ROLE_SUPER_ADMIN)


class AdminUser(Base):
    __tablename__ = "admin_users"

    id: Mapped[int] = mapped_column(primary_key=True)
    username: Mapped[str] = mapped_column(String(64), unique=True, index=True)
    email: Mapped[str] = mapped_column(String(255), unique=True, index=True)
    name: Mapped[str] = mapped_column(String(255))
    role: Mapped[str] = mapped_column(String(20), default=ROLE_STAFF)  # staff / admin / super_admin
    password_hash: Mapped[str] = mapped_column(String(255))

    # Lockout
    failed_logins: Mapped[int] = mapped_column(default=0)
    locked_until: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    # Two-factor. The secret is written when enrollment starts, the flag only after confirmation.
    two_factor_enabled: Mapped[bool] = mapped_column(default=False)
    two_factor_secret: Mapped[Optional[str]] = mapped_column(String(128), nullable=True)
    recovery_codes_json: Mapped[Optional[str]] = mapped_column(Text, nullable=True)  # SHA-256 hashes
    # Bumped whenever 2FA is enabled or reset; sessions carry the value they were issued under
    two_factor_version: Mapped[int] = mapped_column(default=0)

    allowed_ips_json: Mapped[str] = mapped_column(Text, default="[]")  # empty = unrestricted
    is_active: Mapped[bool] = mapped_column(default=True)
    last_login_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    created_at: Mapped[datetime] = mapped_column(default=func.now())
    updated_at: Mapped[datetime] = mapped_column(default=func.now(), onupdate=func.now())

    @property
    def allowed_ips(self) -> list[str]:
        return json.loads(self.allowed_ips_json or "[]")

    @allowed_ips.setter
    def allowed_ips(self, value: list[str]) -> None:
        self.allowed_ips_json = json.dumps(list(value))

    @property
    def recovery_code_hashes(self) -> list[str]:
        return json.loads(self.recovery_codes_json or "[]")

    def is_locked(self, now: datetime) -> bool:
        return self.locked_until is not None and self.locked_until > now

    def __repr__(self) -> str:
        return f"<AdminUser {self.username} role={self.role}>"
