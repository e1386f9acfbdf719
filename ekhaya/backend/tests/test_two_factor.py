"""Tests for two-factor enrollment and verification"""
from datetime import timedelta

import pyotp
import pytest

from app.services.credential_service import CredentialService, LoginStatus
from app.services.exceptions import (
    AccountNotFoundError,
    EnrollmentNotInitializedError,
    InvalidCodeError,
    MalformedCodeFormatError,
    TwoFactorAlreadyEnabledError,
)
from app.services.two_factor_service import TwoFactorService
from app.utils.helpers import to_timestamp
from app.utils.security import hash_recovery_code

from conftest import create_account, fetch_account, new_secret


@pytest.fixture
def service(db, clock):
    return TwoFactorService(db, now=clock)


def code_at(secret, moment):
    return pyotp.TOTP(secret).at(to_timestamp(moment))


async def test_begin_enrollment_persists_pending_secret(service):
    account = await create_account("bob")

    enrollment = await service.begin_enrollment(account.id)

    stored = await fetch_account(account.id)
    assert stored.two_factor_secret == enrollment.secret
    assert stored.two_factor_enabled is False
    assert enrollment.enrollment_uri.startswith("otpauth://totp/")
    assert enrollment.secret in enrollment.enrollment_uri
    assert enrollment.qr_code.startswith("data:image/png;base64,")
    assert len(enrollment.recovery_codes) == 10
    assert stored.recovery_code_hashes == [hash_recovery_code(c) for c in enrollment.recovery_codes]
    # Plaintext recovery codes are never stored
    assert enrollment.recovery_codes[0] not in (stored.recovery_codes_json or "")


async def test_begin_enrollment_again_overwrites_pending_secret(service, clock):
    account = await create_account("bob")

    first = await service.begin_enrollment(account.id)
    second = await service.begin_enrollment(account.id)

    assert first.secret != second.secret
    assert (await fetch_account(account.id)).two_factor_secret == second.secret
    with pytest.raises(InvalidCodeError):
        await service.confirm_enrollment(account.id, code_at(first.secret, clock()))


async def test_confirm_before_begin(service, clock):
    account = await create_account("bob")

    with pytest.raises(EnrollmentNotInitializedError):
        await service.confirm_enrollment(account.id, code_at(new_secret(), clock()))

    stored = await fetch_account(account.id)
    assert stored.two_factor_enabled is False
    assert stored.two_factor_secret is None
    assert stored.failed_logins == 0


async def test_confirm_with_code_from_other_secret(service, clock):
    account = await create_account("bob")
    enrollment = await service.begin_enrollment(account.id)

    other = new_secret()
    assert other != enrollment.secret
    with pytest.raises(InvalidCodeError):
        await service.confirm_enrollment(account.id, code_at(other, clock()))

    stored = await fetch_account(account.id)
    assert stored.two_factor_enabled is False
    assert stored.two_factor_secret == enrollment.secret


async def test_confirm_with_malformed_code(service):
    account = await create_account("bob")
    await service.begin_enrollment(account.id)

    for code in ("12345", "abcdef", "1234567", ""):
        with pytest.raises(MalformedCodeFormatError):
            await service.confirm_enrollment(account.id, code)

    assert (await fetch_account(account.id)).two_factor_enabled is False


def test_malformed_code_is_an_invalid_code():
    assert issubclass(MalformedCodeFormatError, InvalidCodeError)


async def test_confirm_enables_and_clears_lockout(db, service, clock):
    account = await create_account("bob")
    credentials = CredentialService(db, now=clock, lockout_threshold=5)
    for _ in range(5):
        await credentials.verify_credentials("bob", "wrong")
    assert (await fetch_account(account.id)).is_locked(clock())

    enrollment = await service.begin_enrollment(account.id)
    confirmed = await service.confirm_enrollment(account.id, code_at(enrollment.secret, clock()))

    assert confirmed.two_factor_enabled is True
    stored = await fetch_account(account.id)
    assert stored.two_factor_enabled is True
    assert stored.two_factor_secret == enrollment.secret
    assert stored.failed_logins == 0
    assert stored.locked_until is None
    assert (await credentials.verify_credentials("bob", "Correct-Horse-42")).status == LoginStatus.AUTHENTICATED


async def test_wrong_code_leaves_lockout_untouched(db, service, clock):
    account = await create_account("bob")
    credentials = CredentialService(db, now=clock, lockout_threshold=5)
    for _ in range(3):
        await credentials.verify_credentials("bob", "wrong")
    enrollment = await service.begin_enrollment(account.id)

    with pytest.raises(InvalidCodeError):
        await service.confirm_enrollment(account.id, code_at(enrollment.secret, clock() + timedelta(minutes=5)))

    stored = await fetch_account(account.id)
    assert stored.two_factor_enabled is False
    assert stored.failed_logins == 3


async def test_confirm_accepts_small_clock_drift(service, clock):
    account = await create_account("bob")
    enrollment = await service.begin_enrollment(account.id)

    drifted = code_at(enrollment.secret, clock() - timedelta(seconds=60))
    account = await service.confirm_enrollment(account.id, drifted)

    assert account.two_factor_enabled is True


async def test_begin_and_confirm_refused_once_enabled(service):
    account = await create_account("carol", two_factor_secret=new_secret())

    with pytest.raises(TwoFactorAlreadyEnabledError):
        await service.begin_enrollment(account.id)
    with pytest.raises(TwoFactorAlreadyEnabledError):
        await service.confirm_enrollment(account.id, "123456")


async def test_verify_code(service, clock):
    secret = new_secret()
    account = await create_account("carol", two_factor_secret=secret)

    assert await service.verify_code(account.id, code_at(secret, clock()))
    assert await service.verify_code(account.id, code_at(secret, clock() + timedelta(seconds=60)))
    assert not await service.verify_code(account.id, code_at(secret, clock() + timedelta(seconds=150)))
    with pytest.raises(MalformedCodeFormatError):
        await service.verify_code(account.id, "12 456")


async def test_verify_code_without_enrollment(service, clock):
    account = await create_account("bob")
    enrollment = await service.begin_enrollment(account.id)

    # A pending secret is not enough to pass the login check
    with pytest.raises(EnrollmentNotInitializedError):
        await service.verify_code(account.id, code_at(enrollment.secret, clock()))


async def test_reset(service):
    account = await create_account("carol", two_factor_secret=new_secret())

    await service.reset(account.id)

    stored = await fetch_account(account.id)
    assert stored.two_factor_enabled is False
    assert stored.two_factor_secret is None
    assert stored.recovery_codes_json is None


async def test_unknown_account(service):
    with pytest.raises(AccountNotFoundError):
        await service.begin_enrollment(9999)
    with pytest.raises(AccountNotFoundError):
        await service.verify_code(9999, "123456")
