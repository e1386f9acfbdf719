"""Tests for password, token and one-time-code helpers"""
import base64
from datetime import datetime, timedelta, timezone

from jose import jwt
import pyotp
import pytest

from app.utils.helpers import is_ip_allowed, make_username, normalize_allowed_ips
from app.utils.security import (
    create_access_token,
    decode_token,
    generate_recovery_codes,
    generate_totp_secret,
    get_password_hash,
    get_totp_uri,
    hash_recovery_code,
    is_totp_code_format_valid,
    make_qr_data_uri,
    verify_password,
    verify_totp,
)

T = datetime(2026, 3, 14, 12, 0, 0)


class TestVerifyTotp:
    def setup_method(self):
        self.secret = generate_totp_secret()
        self.code = pyotp.TOTP(self.secret).at(int(T.replace(tzinfo=timezone.utc).timestamp()))

    @pytest.mark.parametrize("offset", [-60, -30, 0, 29, 30, 60])
    def test_accepts_code_within_sixty_seconds(self, offset):
        assert verify_totp(self.secret, self.code, for_time=T + timedelta(seconds=offset))

    @pytest.mark.parametrize("offset", [-150, -90, 90, 150])
    def test_rejects_code_outside_window(self, offset):
        assert not verify_totp(self.secret, self.code, for_time=T + timedelta(seconds=offset))

    def test_wrong_secret_rejected(self):
        other = generate_totp_secret()
        assert not verify_totp(other, self.code, for_time=T)

    def test_zero_window_only_accepts_current_step(self):
        assert verify_totp(self.secret, self.code, valid_window=0, for_time=T)
        assert not verify_totp(self.secret, self.code, valid_window=0, for_time=T + timedelta(seconds=30))

    @pytest.mark.parametrize("code", ["12345", "1234567", "12a456", " 123456", "123456\n", "", None, 123456, "１２３４５６"])
    def test_malformed_codes_rejected(self, code):
        assert not is_totp_code_format_valid(code)
        assert not verify_totp(self.secret, code, for_time=T)

    def test_format_check(self):
        assert is_totp_code_format_valid("000000")
        assert is_totp_code_format_valid(self.code)


def test_secret_has_at_least_256_bits():
    secret = generate_totp_secret()
    assert len(secret) * 5 >= 256
    # Valid base32
    padded = secret + "=" * (-len(secret) % 8)
    assert len(base64.b32decode(padded)) * 8 >= 256


def test_secrets_are_unique():
    assert len({generate_totp_secret() for _ in range(20)}) == 20


def test_totp_uri_contains_issuer_and_label():
    secret = generate_totp_secret()
    uri = get_totp_uri(secret, "alice@example.com")
    assert uri.startswith("otpauth://totp/")
    assert f"secret={secret}" in uri
    assert "issuer=Ekhaya" in uri
    assert "alice" in uri


def test_recovery_codes():
    codes = generate_recovery_codes()
    assert len(codes) == 10
    assert len(set(codes)) == 10
    for code in codes:
        parts = code.split("-")
        assert len(parts) == 4
        assert all(len(p) == 4 for p in parts)


def test_recovery_code_hash_ignores_formatting():
    code = generate_recovery_codes(1)[0]
    assert hash_recovery_code(code) == hash_recovery_code(code.replace("-", "").upper())
    assert hash_recovery_code(code) != code


def test_password_hash_roundtrip():
    hashed = get_password_hash("s3cret-pass")
    assert hashed != "s3cret-pass"
    assert verify_password("s3cret-pass", hashed)
    assert not verify_password("s3cret-pasS", hashed)


def test_token_decode_rejects_tampering_and_expiry():
    token = create_access_token({"sub": "1"})
    claims = decode_token(token)
    assert claims["sub"] == "1"
    assert claims["type"] == "admin"
    assert claims["jti"]

    forged = jwt.encode({"sub": "1", "type": "admin"}, "some-other-key", algorithm="HS256")
    assert decode_token(forged) is None

    expired = create_access_token({"sub": "1"}, expires_delta=timedelta(minutes=-1))
    assert decode_token(expired) is None


def test_qr_data_uri():
    uri = make_qr_data_uri("otpauth://totp/Ekhaya:alice?secret=ABC")
    assert uri.startswith("data:image/png;base64,")


def test_make_username():
    assert make_username("W-042", "Van der Merwe") == "W042.vandermerwe"
    assert make_username("", "Smith") is None
    assert make_username("12", "") is None


def test_allowed_ips():
    assert normalize_allowed_ips([" 10.0.0.1 ", "192.168.1.7/24", ""]) == ["10.0.0.1", "192.168.1.0/24"]
    with pytest.raises(ValueError):
        normalize_allowed_ips(["not-an-ip"])

    assert is_ip_allowed("203.0.113.9", [])
    assert is_ip_allowed("192.168.1.50", ["192.168.1.0/24"])
    assert is_ip_allowed("10.0.0.1", ["10.0.0.1"])
    assert not is_ip_allowed("10.0.0.2", ["10.0.0.1"])
    assert not is_ip_allowed(None, ["10.0.0.1"])
    assert not is_ip_allowed("unknown", ["10.0.0.1"])
