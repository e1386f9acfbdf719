from typing import Annotated, Optional
from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db
from app.middleware.security import get_client_ip
from app.models.admin import AdminUser, ROLE_ADMIN, ROLE_SUPER_ADMIN
from app.services.access_gate import AccessGate, GateDecision
from app.services.exceptions import (
    AccountInactiveError,
    AccountLockedError,
    AccountNotFoundError,
    AddressNotAllowedError,
    AuthError,
    DuplicateAccountError,
    EnrollmentNotInitializedError,
    InsufficientRoleError,
    InvalidCodeError,
    InvalidCredentialsError,
    MalformedCodeFormatError,
    SessionInvalidError,
    SessionMismatchError,
    TwoFactorAlreadyEnabledError,
    TwoFactorRequiredError,
)
from app.utils.helpers import utcnow


security = HTTPBearer(auto_error=False)

GENERIC_LOGIN_FAILURE = "Incorrect username or password"

_ERROR_RESPONSES: dict[type, tuple[int, str]] = {
    InvalidCredentialsError: (status.HTTP_401_UNAUTHORIZED, GENERIC_LOGIN_FAILURE),
    SessionInvalidError: (status.HTTP_401_UNAUTHORIZED, "Invalid or expired token"),
    SessionMismatchError: (status.HTTP_401_UNAUTHORIZED, "session_db_mismatch"),
    AccountInactiveError: (status.HTTP_401_UNAUTHORIZED, "User not found or inactive"),
    AddressNotAllowedError: (status.HTTP_403_FORBIDDEN, "Access from this address is not allowed"),
    TwoFactorRequiredError: (status.HTTP_403_FORBIDDEN, "Two-factor authentication required"),
    InsufficientRoleError: (status.HTTP_403_FORBIDDEN, "Insufficient permissions"),
    AccountNotFoundError: (status.HTTP_404_NOT_FOUND, "Account not found"),
    DuplicateAccountError: (status.HTTP_409_CONFLICT, "Username or email already exists"),
    TwoFactorAlreadyEnabledError: (status.HTTP_409_CONFLICT, "Two-factor authentication is already enabled"),
    EnrollmentNotInitializedError: (status.HTTP_400_BAD_REQUEST, "Two-factor setup has not been started"),
    MalformedCodeFormatError: (status.HTTP_400_BAD_REQUEST, "Code must be 6 digits"),
    InvalidCodeError: (status.HTTP_400_BAD_REQUEST, "Invalid verification code"),
}


def auth_http_exception(exc: AuthError) -> HTTPException:
    """Translate a domain error into the HTTP error the API returns."""
    headers = {"X-Auth-Error": exc.code}

    if isinstance(exc, AccountLockedError):
        retry_after = 0
        if exc.locked_until is not None:
            retry_after = max(int((exc.locked_until - utcnow()).total_seconds()), 1)
        headers["Retry-After"] = str(retry_after)
        return HTTPException(
            status_code=status.HTTP_423_LOCKED,
            detail={"message": "Account temporarily locked", "retry_after": retry_after},
            headers=headers,
        )

    code, detail = _ERROR_RESPONSES.get(type(exc), (status.HTTP_401_UNAUTHORIZED, GENERIC_LOGIN_FAILURE))
    if code == status.HTTP_401_UNAUTHORIZED:
        headers["WWW-Authenticate"] = "Bearer"
    return HTTPException(status_code=code, detail=detail, headers=headers)


def get_bearer_token(
    credentials: Annotated[Optional[HTTPAuthorizationCredentials], Depends(security)],
) -> Optional[str]:
    return credentials.credentials if credentials else None


async def get_gate_decision(
    request: Request,
    token: Annotated[Optional[str], Depends(get_bearer_token)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> GateDecision:
    """Any live admin session, whatever its 2FA stage."""
    try:
        return await AccessGate(db).evaluate(token, get_client_ip(request))
    except AuthError as exc:
        raise auth_http_exception(exc)


def _authorized(min_role: Optional[str] = None):
    async def dependency(
        request: Request,
        token: Annotated[Optional[str], Depends(get_bearer_token)],
        db: Annotated[AsyncSession, Depends(get_db)],
    ) -> AdminUser:
        try:
            return await AccessGate(db).authorize(token, get_client_ip(request), min_role=min_role)
        except AuthError as exc:
            raise auth_http_exception(exc)

    return dependency


get_current_admin = _authorized()
require_admin = _authorized(ROLE_ADMIN)
require_super_admin = _authorized(ROLE_SUPER_ADMIN)


# Type aliases for dependency injection
DBSession = Annotated[AsyncSession, Depends(get_db)]
BearerToken = Annotated[Optional[str], Depends(get_bearer_token)]
CurrentSession = Annotated[GateDecision, Depends(get_gate_decision)]
CurrentAdmin = Annotated[AdminUser, Depends(get_current_admin)]
AdminOnly = Annotated[AdminUser, Depends(require_admin)]
SuperAdminOnly = Annotated[AdminUser, Depends(require_super_admin)]
