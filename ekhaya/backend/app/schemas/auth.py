from datetime import datetime
from pydantic import BaseModel, Field
from typing import Optional


class AdminLoginRequest(BaseModel):
    username: str = Field(..., min_length=1, max_length=255)  # username or email
    password: str = Field(..., min_length=1)
    totp_code: Optional[str] = None


class TwoFactorCodeRequest(BaseModel):
    code: str = Field(..., max_length=16)


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_in: int
    stage: str
    two_factor_enabled: bool


class TwoFactorSetupResponse(BaseModel):
    secret: str
    otpauth_url: str
    qr_code: str
    recovery_codes: list[str]


class ChangePasswordRequest(BaseModel):
    current_password: str = Field(..., min_length=1)
    new_password: str = Field(..., min_length=8)


class AdminMeResponse(BaseModel):
    id: int
    username: str
    email: str
    name: str
    role: str
    two_factor_enabled: bool
    is_active: bool
    last_login_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class SessionStatusResponse(BaseModel):
    authenticated: bool
    stage: str
    username: Optional[str] = None
    role: Optional[str] = None
    synced: Optional[bool] = None
    session_flag: Optional[bool] = None
    store_flag: Optional[bool] = None
    issue: Optional[str] = None
