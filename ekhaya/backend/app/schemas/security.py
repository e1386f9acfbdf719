"""
Audit log and address block schemas
"""
from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field


class BlockedIPResponse(BaseModel):
    id: int
    ip_address: str
    reason: str
    failed_attempts: int
    blocked_at: datetime
    blocked_until: Optional[datetime] = None
    is_active: bool
    unblocked_at: Optional[datetime] = None
    unblocked_by: Optional[str] = None  # admin username
    notes: Optional[str] = None

    model_config = {"from_attributes": True}


class UnblockIPRequest(BaseModel):
    notes: Optional[str] = Field(None, max_length=500)


class SecurityEventResponse(BaseModel):
    id: int
    event_type: str
    admin_user_id: Optional[int] = None
    ip_address: Optional[str] = None
    username: Optional[str] = None
    details: Optional[str] = None
    created_at: datetime

    model_config = {"from_attributes": True}
