from fastapi import APIRouter

from app.api import auth, session, admin_users, security

api_router = APIRouter()

# Admin API routes
api_router.include_router(auth.router, prefix="/admin/auth", tags=["Admin Auth"])
api_router.include_router(session.router, prefix="/admin/session", tags=["Admin Session"])
api_router.include_router(admin_users.router, prefix="/admin/admin-users", tags=["Admin Users"])
api_router.include_router(security.router, prefix="/admin/security", tags=["Admin Security"])
