from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, EmailStr, Field


AdminRole = Literal["staff", "admin", "super_admin"]


class AdminUserCreate(BaseModel):
    username: Optional[str] = Field(None, min_length=3, max_length=64)
    work_number: Optional[str] = Field(None, max_length=32)
    last_name: Optional[str] = Field(None, max_length=100)
    name: str = Field(..., min_length=1, max_length=255)
    email: EmailStr
    role: AdminRole = "staff"
    password: Optional[str] = Field(None, min_length=8)
    allowed_ips: list[str] = Field(default_factory=list)


class AdminUserUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    email: Optional[EmailStr] = None
    role: Optional[AdminRole] = None
    is_active: Optional[bool] = None
    allowed_ips: Optional[list[str]] = None
    password: Optional[str] = Field(None, min_length=8)


class AdminUserResponse(BaseModel):
    id: int
    username: str
    email: str
    name: str
    role: str
    is_active: bool
    two_factor_enabled: bool
    failed_logins: int
    locked_until: Optional[datetime] = None
    allowed_ips: list[str]
    last_login_at: Optional[datetime] = None
    created_at: datetime

    model_config = {"from_attributes": True}


class AdminUserCreatedResponse(BaseModel):
    user: AdminUserResponse
    temp_password: Optional[str] = None


class AdminUserListResponse(BaseModel):
    users: list[AdminUserResponse]
