from datetime import datetime, timedelta, timezone
from typing import Any, Optional, Union
import base64
import hashlib
import io
import re
import secrets
import string
import uuid

from jose import JWTError, jwt
from passlib.context import CryptContext
import pyotp
import qrcode

from app.config import settings


pwd_context = CryptContext(
    schemes=["bcrypt"],
    deprecated="auto",
    bcrypt__rounds=settings.password_hash_rounds,
)

TOTP_CODE_RE = re.compile(r"[0-9]{6}")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a password against its hash (constant time)."""
    return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password: str) -> str:
    """Generate password hash."""
    return pwd_context.hash(password)


def generate_password(length: int = 12) -> str:
    """Generate a random temporary password."""
    alphabet = string.ascii_letters + string.digits
    return ''.join(secrets.choice(alphabet) for _ in range(length))


def create_access_token(
    data: dict,
    expires_delta: Optional[timedelta] = None,
    now: Optional[datetime] = None,
) -> str:
    """Create a signed admin session JWT."""
    to_encode = data.copy()
    issued_at = now.replace(tzinfo=timezone.utc) if now else datetime.now(timezone.utc)
    expire = issued_at + (expires_delta or timedelta(minutes=settings.admin_session_expire_minutes))

    to_encode.update({
        "exp": expire,
        "iat": issued_at,
        "type": "admin",
        "jti": uuid.uuid4().hex,
    })

    return jwt.encode(to_encode, settings.secret_key, algorithm=settings.jwt_algorithm)


def decode_token(token: str) -> Optional[dict[str, Any]]:
    """Decode and validate JWT token. Returns None on bad signature or expiry."""
    try:
        return jwt.decode(token, settings.secret_key, algorithms=[settings.jwt_algorithm])
    except JWTError:
        return None


# ---------------------------------------------------------------------------
# Time-based one-time codes
# ---------------------------------------------------------------------------

def generate_totp_secret() -> str:
    """Generate new TOTP secret (base32, at least 256 bits)."""
    return pyotp.random_base32(length=settings.totp_secret_length)


def get_totp_uri(secret: str, account_label: str) -> str:
    """Get TOTP provisioning URI for authenticator apps."""
    totp = pyotp.TOTP(secret, interval=settings.totp_interval)
    return totp.provisioning_uri(name=account_label, issuer_name=settings.totp_issuer)


def is_totp_code_format_valid(code: Any) -> bool:
    """A code must be exactly six ASCII digits."""
    return isinstance(code, str) and TOTP_CODE_RE.fullmatch(code) is not None


def verify_totp(
    secret: str,
    code: str,
    valid_window: Optional[int] = None,
    for_time: Optional[Union[datetime, int]] = None,
) -> bool:
    """
    Verify a TOTP code against the current step and `valid_window` steps
    either side of it.

    Malformed codes are rejected before any candidate is computed.
    """
    if not is_totp_code_format_valid(code):
        return False
    if valid_window is None:
        valid_window = settings.totp_valid_window
    if isinstance(for_time, datetime):
        moment = for_time if for_time.tzinfo else for_time.replace(tzinfo=timezone.utc)
        for_time = int(moment.timestamp())

    totp = pyotp.TOTP(secret, interval=settings.totp_interval)
    return totp.verify(code, for_time=for_time, valid_window=valid_window)


def generate_recovery_codes(count: Optional[int] = None) -> list[str]:
    """Generate single-use recovery codes formatted as xxxx-xxxx-xxxx-xxxx."""
    count = count or settings.recovery_code_count
    codes = []
    for _ in range(count):
        raw = secrets.token_hex(8)
        codes.append("-".join(raw[i:i + 4] for i in range(0, len(raw), 4)))
    return codes


def hash_recovery_code(code: str) -> str:
    """Hash a recovery code using SHA256."""
    return hashlib.sha256(code.replace("-", "").lower().encode()).hexdigest()


def make_qr_data_uri(data: str) -> str:
    """Render data as a PNG QR code data URI."""
    qr = qrcode.QRCode(version=1, box_size=10, border=4)
    qr.add_data(data)
    qr.make(fit=True)
    img = qr.make_image(fill_color="black", back_color="white")
    buf = io.BytesIO()
    img.save(buf, format='PNG')
    return f"data:image/png;base64,{base64.b64encode(buf.getvalue()).decode()}"
