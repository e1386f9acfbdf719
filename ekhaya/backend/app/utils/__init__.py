from app.utils.security import (
    verify_password, get_password_hash, create_access_token,
    decode_token, generate_password, verify_totp
)
from app.utils.helpers import utcnow, make_username, is_ip_allowed

__all__ = [
    "verify_password", "get_password_hash", "create_access_token",
    "decode_token", "generate_password", "verify_totp",
    "utcnow", "make_username", "is_ip_allowed"
]
