"""
Security middleware for brute force protection
"""
from fastapi import Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from app.config import settings
from app.database import async_session_maker
from app.services.security_service import SecurityService
from app.utils.helpers import utcnow


class SecurityMiddleware(BaseHTTPMiddleware):
    """Reject requests to the login endpoints from blocked addresses"""

    # Endpoints to protect
    PROTECTED_ENDPOINTS = [
        "/api/admin/auth/login",
        "/api/admin/auth/2fa/verify",
    ]

    async def dispatch(self, request: Request, call_next):
        if any(request.url.path.startswith(ep) for ep in self.PROTECTED_ENDPOINTS):
            client_ip = get_client_ip(request)

            async with async_session_maker() as db:
                is_blocked, block = await SecurityService(db).is_ip_blocked(client_ip)

            if is_blocked:
                headers = {}
                if block.blocked_until:
                    remaining = int((block.blocked_until - utcnow()).total_seconds())
                    headers["Retry-After"] = str(max(remaining, 1))
                # Exceptions raised here bypass FastAPI's handlers, so respond directly
                return JSONResponse(
                    status_code=403,
                    content={"detail": "Too many failed attempts from this address. Try again later."},
                    headers=headers,
                )

        return await call_next(request)


def get_client_ip(request: Request) -> str:
    """
    Utility function to get client IP from request.

    Forwarding headers are honored only when proxy trust is enabled and the
    direct peer is one of the configured trusted proxies.
    """
    peer = request.client.host if request.client else None

    if settings.trust_proxy_headers and peer in settings.trusted_proxies_list:
        forwarded = request.headers.get("X-Forwarded-For")
        if forwarded:
            # Each proxy appends the address it saw; walk back past our own proxies
            hops = [hop.strip() for hop in forwarded.split(",") if hop.strip()]
            for hop in reversed(hops):
                if hop not in settings.trusted_proxies_list:
                    return hop
            if hops:
                return hops[0]

        real_ip = request.headers.get("X-Real-IP")
        if real_ip:
            return real_ip.strip()

    return peer or "unknown"
