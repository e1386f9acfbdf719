"""
Security API endpoints - audit events and blocked addresses
"""
from typing import Optional
from fastapi import APIRouter, HTTPException, Query

from app.api.deps import DBSession, AdminOnly
from app.schemas.security import BlockedIPResponse, UnblockIPRequest, SecurityEventResponse
from app.services.security_service import SecurityService

router = APIRouter()


@router.get("/events", response_model=list[SecurityEventResponse])
async def get_security_events(
    db: DBSession,
    admin: AdminOnly,
    event_type: Optional[str] = Query(None),
    admin_user_id: Optional[int] = Query(None),
    limit: int = Query(100, ge=1, le=500),
):
    """Get security events log"""
    events = await SecurityService(db).get_security_events(
        event_type=event_type, admin_user_id=admin_user_id, limit=limit
    )
    return [SecurityEventResponse.model_validate(e) for e in events]


@router.get("/blocked", response_model=list[BlockedIPResponse])
async def get_blocked_ips(
    db: DBSession,
    admin: AdminOnly,
    page: int = Query(1, ge=1),
    per_page: int = Query(20, ge=1, le=100),
    active_only: bool = Query(True),
):
    """Get list of blocked addresses"""
    blocked = await SecurityService(db).get_blocked_ips(
        active_only=active_only,
        limit=per_page,
        offset=(page - 1) * per_page
    )
    return [BlockedIPResponse.model_validate(b) for b in blocked]


@router.post("/blocked/{ip_address}/unblock", response_model=BlockedIPResponse)
async def unblock_ip(ip_address: str, data: UnblockIPRequest, db: DBSession, admin: AdminOnly):
    """Unblock an address"""
    block = await SecurityService(db).unblock_ip(
        ip_address=ip_address,
        admin_username=admin.username,
        notes=data.notes
    )
    if block is None:
        raise HTTPException(status_code=404, detail="IP not found or not blocked")

    return BlockedIPResponse.model_validate(block)
