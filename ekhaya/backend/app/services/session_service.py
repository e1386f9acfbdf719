"""
Admin session tokens.

A session token is a signed JWT holding the account identity, role and a
point-in-time copy of the account's two-factor flag. It is untrusted input:
anything gated on 2FA must re-read the flag from the store.
"""
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

from app.models.admin import AdminUser
from app.utils.security import create_access_token, decode_token


class SessionStage(str, Enum):
    UNAUTHENTICATED = "unauthenticated"
    CREDENTIAL_VERIFIED = "credential_verified"
    ENROLLMENT_REQUIRED = "enrollment_required"
    TWO_FACTOR_VERIFIED = "two_factor_verified"
    AUTHORIZED = "authorized"


@dataclass(frozen=True)
class SessionToken:
    account_id: int
    username: str
    role: str
    two_factor_enabled: bool
    mfa: bool
    issued_at: datetime
    expires_at: datetime
    two_factor_version: int = 0
    jti: Optional[str] = None

    @classmethod
    def from_claims(cls, claims: dict[str, Any]) -> Optional["SessionToken"]:
        if claims.get("type") != "admin":
            return None
        try:
            return cls(
                account_id=int(claims["sub"]),
                username=str(claims.get("username", "")),
                role=str(claims.get("role", "")),
                two_factor_enabled=bool(claims.get("two_factor_enabled", False)),
                mfa=bool(claims.get("mfa", False)),
                issued_at=datetime.fromtimestamp(int(claims["iat"]), tz=timezone.utc),
                expires_at=datetime.fromtimestamp(int(claims["exp"]), tz=timezone.utc),
                jti=claims.get("jti"),
                two_factor_version=int(claims.get("two_factor_version", 0)),
            )
        except (KeyError, TypeError, ValueError):
            return None

    @property
    def stage(self) -> SessionStage:
        """Stage as claimed by the token alone, before any store check."""
        if self.mfa:
            return SessionStage.TWO_FACTOR_VERIFIED
        if self.two_factor_enabled:
            return SessionStage.CREDENTIAL_VERIFIED
        return SessionStage.ENROLLMENT_REQUIRED


def issue_session_token(account: AdminUser, mfa: bool = False, now: Optional[datetime] = None) -> str:
    """Sign a session for an account whose credentials were just verified."""
    return create_access_token(
        data={
            "sub": str(account.id),
            "username": account.username,
            "role": account.role,
            "two_factor_enabled": bool(account.two_factor_enabled),
            "two_factor_version": int(account.two_factor_version or 0),
            "mfa": mfa,
        },
        now=now,
    )


def read_session_token(token: Optional[str]) -> Optional[SessionToken]:
    """Validate signature and expiry. Returns None for anything unusable."""
    if not token:
        return None
    claims = decode_token(token)
    if claims is None:
        return None
    return SessionToken.from_claims(claims)
