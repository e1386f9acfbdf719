from app.schemas.auth import (
    AdminLoginRequest, TwoFactorCodeRequest, TokenResponse, TwoFactorSetupResponse,
    ChangePasswordRequest, AdminMeResponse, SessionStatusResponse
)
from app.schemas.admin_user import (
    AdminUserCreate, AdminUserUpdate, AdminUserResponse, AdminUserCreatedResponse,
    AdminUserListResponse
)
from app.schemas.security import BlockedIPResponse, UnblockIPRequest, SecurityEventResponse

__all__ = [
    # Auth
    "AdminLoginRequest", "TwoFactorCodeRequest", "TokenResponse", "TwoFactorSetupResponse",
    "ChangePasswordRequest", "AdminMeResponse", "SessionStatusResponse",
    # Admin users
    "AdminUserCreate", "AdminUserUpdate", "AdminUserResponse", "AdminUserCreatedResponse",
    "AdminUserListResponse",
    # Security
    "BlockedIPResponse", "UnblockIPRequest", "SecurityEventResponse",
]
