from fastapi import APIRouter, HTTPException, status, Request

from app.api.deps import (
    DBSession, CurrentAdmin, CurrentSession, auth_http_exception, GENERIC_LOGIN_FAILURE
)
from app.config import settings
from app.middleware.security import get_client_ip
from app.models.admin import AdminUser
from app.schemas.auth import (
    AdminLoginRequest, TwoFactorCodeRequest, TokenResponse, TwoFactorSetupResponse,
    ChangePasswordRequest, AdminMeResponse
)
from app.services.admin_user_service import AdminUserService
from app.services.credential_service import CredentialService, LoginStatus
from app.services.exceptions import (
    AuthError, AccountLockedError, EnrollmentNotInitializedError, InvalidCodeError,
    InvalidCredentialsError, MalformedCodeFormatError, TwoFactorAlreadyEnabledError
)
from app.services.security_service import SecurityService
from app.services.session_service import SessionStage, issue_session_token
from app.services.two_factor_service import TwoFactorService
from app.utils.security import verify_password


router = APIRouter()


def _token_response(account: AdminUser, mfa: bool) -> TokenResponse:
    if mfa:
        stage = SessionStage.AUTHORIZED
    elif account.two_factor_enabled:
        stage = SessionStage.CREDENTIAL_VERIFIED
    else:
        stage = SessionStage.ENROLLMENT_REQUIRED

    return TokenResponse(
        access_token=issue_session_token(account, mfa=mfa),
        expires_in=settings.admin_session_expire_minutes * 60,
        stage=stage.value,
        two_factor_enabled=account.two_factor_enabled,
    )


def _blocked_exception(security: SecurityService) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_403_FORBIDDEN,
        detail="Too many failed attempts from this address. Try again later.",
        headers={"Retry-After": str(int(security.block_duration.total_seconds()))},
    )


@router.post("/login", response_model=TokenResponse)
async def admin_login(request: AdminLoginRequest, req: Request, db: DBSession):
    """
    Admin login endpoint.

    With 2FA enabled a valid `totp_code` yields an authorized session straight
    away; without one the session waits for POST /2fa/verify. Accounts without
    2FA get a session that can only enroll.
    """
    client_ip = get_client_ip(req)
    user_agent = req.headers.get("User-Agent")
    security = SecurityService(db)

    result = await CredentialService(db).verify_credentials(request.username, request.password, client_ip)

    if result.status == LoginStatus.ACCOUNT_LOCKED:
        await security.log_event(
            "login_locked", ip_address=client_ip, username=request.username,
            details=f"Locked until {result.locked_until}", commit=True
        )
        raise auth_http_exception(AccountLockedError(result.locked_until))

    if not result.ok:
        block = await security.record_failed_attempt(
            ip_address=client_ip,
            username=request.username,
            user_agent=user_agent,
            reason=result.status.value,
        )
        if block:
            raise _blocked_exception(security)
        raise auth_http_exception(InvalidCredentialsError())

    account = result.account
    mfa = False

    if account.two_factor_enabled and request.totp_code:
        try:
            mfa = await TwoFactorService(db).verify_code(account.id, request.totp_code)
        except MalformedCodeFormatError:
            mfa = False
        if not mfa:
            block = await security.record_failed_attempt(
                ip_address=client_ip,
                username=request.username,
                user_agent=user_agent,
                reason="invalid_totp",
            )
            if block:
                raise _blocked_exception(security)
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail=GENERIC_LOGIN_FAILURE,
                headers={"WWW-Authenticate": "Bearer"},
            )

    await security.record_successful_login(client_ip, account.username, account.id)
    return _token_response(account, mfa)


@router.post("/2fa/verify", response_model=TokenResponse)
async def verify_two_factor(data: TwoFactorCodeRequest, session: CurrentSession, req: Request, db: DBSession):
    """Second step of login for accounts with 2FA enabled."""
    account = session.account
    security = SecurityService(db)

    if session.stage == SessionStage.ENROLLMENT_REQUIRED:
        raise auth_http_exception(EnrollmentNotInitializedError())

    try:
        valid = await TwoFactorService(db).verify_code(account.id, data.code)
    except AuthError as exc:
        raise auth_http_exception(exc)

    if not valid:
        block = await security.record_failed_attempt(
            ip_address=get_client_ip(req),
            username=account.username,
            endpoint="/api/admin/auth/2fa/verify",
            user_agent=req.headers.get("User-Agent"),
            reason="invalid_totp",
        )
        if block:
            raise _blocked_exception(security)
        raise auth_http_exception(InvalidCodeError())

    await security.log_event(
        "2fa_verified", ip_address=get_client_ip(req), username=account.username,
        admin_user_id=account.id, commit=True
    )
    return _token_response(account, mfa=True)


@router.post("/2fa/setup", response_model=TwoFactorSetupResponse)
async def setup_two_factor(session: CurrentSession, req: Request, db: DBSession):
    """Start 2FA enrollment: returns the secret, otpauth URI, QR image and recovery codes."""
    account = session.account
    try:
        enrollment = await TwoFactorService(db).begin_enrollment(account.id)
    except TwoFactorAlreadyEnabledError as exc:
        raise auth_http_exception(exc)

    await SecurityService(db).log_event(
        "2fa_setup_started", ip_address=get_client_ip(req), username=account.username,
        admin_user_id=account.id, commit=True
    )
    return TwoFactorSetupResponse(
        secret=enrollment.secret,
        otpauth_url=enrollment.enrollment_uri,
        qr_code=enrollment.qr_code,
        recovery_codes=enrollment.recovery_codes,
    )


@router.post("/2fa/enable", response_model=TokenResponse)
async def enable_two_factor(data: TwoFactorCodeRequest, session: CurrentSession, req: Request, db: DBSession):
    """Confirm enrollment with a code from the authenticator app."""
    try:
        account = await TwoFactorService(db).confirm_enrollment(session.account.id, data.code)
    except AuthError as exc:
        raise auth_http_exception(exc)

    await SecurityService(db).log_event(
        "2fa_enabled", ip_address=get_client_ip(req), username=account.username,
        admin_user_id=account.id, commit=True
    )
    # The old token still says "2FA disabled"; the client must switch to this one
    return _token_response(account, mfa=True)


@router.post("/refresh", response_model=TokenResponse)
async def refresh_token(admin: CurrentAdmin):
    """Refresh admin access token."""
    return _token_response(admin, mfa=True)


@router.get("/me", response_model=AdminMeResponse)
async def get_current_admin_info(admin: CurrentAdmin):
    """Get current admin user info."""
    return AdminMeResponse.model_validate(admin)


@router.post("/change-password")
async def change_admin_password(
    request: ChangePasswordRequest,
    admin: CurrentAdmin,
    req: Request,
    db: DBSession
):
    """Change admin password."""
    if not verify_password(request.current_password, admin.password_hash):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Current password is incorrect"
        )

    await AdminUserService(db).change_password(admin, request.new_password)
    await SecurityService(db).log_event(
        "password_changed", ip_address=get_client_ip(req), username=admin.username,
        admin_user_id=admin.id, commit=True
    )

    return {"success": True, "message": "Password changed successfully"}


@router.post("/logout")
async def admin_logout(session: CurrentSession, req: Request, db: DBSession):
    """Record a logout. Tokens are stateless; the client discards its copy."""
    await SecurityService(db).log_event(
        "logout", ip_address=get_client_ip(req), username=session.account.username,
        admin_user_id=session.account.id, commit=True
    )
    return {"success": True, "action": "redirect_to_login"}
