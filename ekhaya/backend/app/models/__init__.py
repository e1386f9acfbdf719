from app.models.admin import AdminUser, ADMIN_ROLES, ROLE_STAFF, ROLE_ADMIN, ROLE_SUPER_ADMIN
from app.models.security import FailedLogin, BlockedIP, SecurityEvent

__all__ = [
    "AdminUser",
    "ADMIN_ROLES",
    "ROLE_STAFF",
    "ROLE_ADMIN",
    "ROLE_SUPER_ADMIN",
    "FailedLogin",
    "BlockedIP",
    "SecurityEvent",
]
