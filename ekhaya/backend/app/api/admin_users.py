from typing import Optional
from fastapi import APIRouter, HTTPException, Query, Request, status

from app.api.deps import DBSession, AdminOnly, SuperAdminOnly, auth_http_exception
from app.middleware.security import get_client_ip
from app.models.admin import ROLE_SUPER_ADMIN
from app.schemas.admin_user import (
    AdminUserCreate, AdminUserUpdate, AdminUserResponse, AdminUserCreatedResponse,
    AdminUserListResponse, AdminRole
)
from app.services.admin_user_service import AdminUserService
from app.services.exceptions import AuthError, InsufficientRoleError
from app.services.security_service import SecurityService
from app.services.two_factor_service import TwoFactorService


router = APIRouter()


@router.get("", response_model=AdminUserListResponse)
async def list_admin_users(
    db: DBSession,
    admin: AdminOnly,
    role: Optional[AdminRole] = Query(None),
):
    """List admin and staff accounts."""
    users = await AdminUserService(db).list_accounts(role=role)
    return AdminUserListResponse(users=[AdminUserResponse.model_validate(u) for u in users])


@router.post("", response_model=AdminUserCreatedResponse, status_code=status.HTTP_201_CREATED)
async def create_admin_user(data: AdminUserCreate, req: Request, db: DBSession, admin: AdminOnly):
    """Create an admin/staff account. A temporary password is returned if none was given."""
    if data.role == ROLE_SUPER_ADMIN and admin.role != ROLE_SUPER_ADMIN:
        raise auth_http_exception(InsufficientRoleError())

    try:
        user, temp_password = await AdminUserService(db).create(
            email=data.email,
            name=data.name,
            username=data.username,
            work_number=data.work_number,
            last_name=data.last_name,
            role=data.role,
            password=data.password,
            allowed_ips=data.allowed_ips,
        )
    except AuthError as exc:
        raise auth_http_exception(exc)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))

    await SecurityService(db).log_event(
        "admin_user_created", ip_address=get_client_ip(req), username=admin.username,
        admin_user_id=admin.id, details=f"Created {user.role} {user.username}", commit=True
    )
    return AdminUserCreatedResponse(user=AdminUserResponse.model_validate(user), temp_password=temp_password)


@router.get("/{user_id}", response_model=AdminUserResponse)
async def get_admin_user(user_id: int, db: DBSession, admin: AdminOnly):
    try:
        user = await AdminUserService(db).get(user_id)
    except AuthError as exc:
        raise auth_http_exception(exc)
    return AdminUserResponse.model_validate(user)


@router.patch("/{user_id}", response_model=AdminUserResponse)
async def update_admin_user(user_id: int, data: AdminUserUpdate, req: Request, db: DBSession, admin: AdminOnly):
    """Edit role, email, active flag, allowed addresses or password."""
    service = AdminUserService(db)
    try:
        target = await service.get(user_id)
        if admin.role != ROLE_SUPER_ADMIN and ROLE_SUPER_ADMIN in (target.role, data.role):
            raise InsufficientRoleError()
        user = await service.update(user_id, **data.model_dump(exclude_unset=True))
    except AuthError as exc:
        raise auth_http_exception(exc)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))

    changed = ", ".join(sorted(data.model_dump(exclude_unset=True).keys() - {"password"}))
    if data.password:
        changed = f"{changed}, password" if changed else "password"
    await SecurityService(db).log_event(
        "admin_user_updated", ip_address=get_client_ip(req), username=admin.username,
        admin_user_id=admin.id, details=f"Updated {user.username}: {changed}", commit=True
    )
    return AdminUserResponse.model_validate(user)


@router.post("/{user_id}/unlock", response_model=AdminUserResponse)
async def unlock_admin_user(user_id: int, req: Request, db: DBSession, admin: AdminOnly):
    """Clear the failed-login counter and any active lock."""
    try:
        user = await AdminUserService(db).unlock(user_id)
    except AuthError as exc:
        raise auth_http_exception(exc)

    await SecurityService(db).log_event(
        "admin_user_unlocked", ip_address=get_client_ip(req), username=admin.username,
        admin_user_id=admin.id, details=f"Unlocked {user.username}", commit=True
    )
    return AdminUserResponse.model_validate(user)


@router.post("/{user_id}/reset-2fa", response_model=AdminUserResponse)
async def reset_admin_two_factor(user_id: int, req: Request, db: DBSession, admin: SuperAdminOnly):
    """
    Disable 2FA for an account so it must enroll again.

    Sessions issued before the reset no longer reconcile and are refused.
    """
    try:
        user = await TwoFactorService(db).reset(user_id)
    except AuthError as exc:
        raise auth_http_exception(exc)

    await SecurityService(db).log_event(
        "2fa_reset", ip_address=get_client_ip(req), username=admin.username,
        admin_user_id=admin.id, details=f"Reset 2FA for {user.username}", commit=True
    )
    return AdminUserResponse.model_validate(user)
