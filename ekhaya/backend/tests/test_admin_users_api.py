"""Tests for admin/staff account management endpoints"""
import pytest_asyncio

from app.models import ROLE_ADMIN, ROLE_STAFF, ROLE_SUPER_ADMIN

from conftest import PASSWORD, authorized_token, bearer, create_account, fetch_account, login, new_secret

BASE = "/api/admin/admin-users"


@pytest_asyncio.fixture
async def admin_token(client):
    secret = new_secret()
    await create_account("boss", role=ROLE_ADMIN, two_factor_secret=secret)
    return await authorized_token(client, "boss", secret)


@pytest_asyncio.fixture
async def super_token(client):
    secret = new_secret()
    await create_account("root", role=ROLE_SUPER_ADMIN, two_factor_secret=secret)
    return await authorized_token(client, "root", secret)


async def test_create_staff_from_work_number(client, admin_token):
    response = await client.post(
        BASE,
        json={"work_number": "W17", "last_name": "Dlamini", "name": "Thandi Dlamini", "email": "thandi@example.com"},
        headers=bearer(admin_token),
    )

    assert response.status_code == 201
    data = response.json()
    assert data["user"]["username"] == "W17.dlamini"
    assert data["user"]["role"] == ROLE_STAFF
    assert data["user"]["two_factor_enabled"] is False
    assert len(data["temp_password"]) == 12

    # The temporary password works and the account must enroll before doing anything
    response = await login(client, "W17.dlamini", password=data["temp_password"])
    assert response.status_code == 200
    assert response.json()["stage"] == "enrollment_required"


async def test_create_with_password_and_allow_list(client, admin_token):
    response = await client.post(
        BASE,
        json={
            "username": "mandla",
            "name": "Mandla",
            "email": "mandla@example.com",
            "role": ROLE_ADMIN,
            "password": PASSWORD,
            "allowed_ips": ["10.0.0.7", "192.168.5.0/24"],
        },
        headers=bearer(admin_token),
    )

    assert response.status_code == 201
    assert response.json()["temp_password"] is None
    assert response.json()["user"]["allowed_ips"] == ["10.0.0.7", "192.168.5.0/24"]


async def test_create_validation(client, admin_token):
    response = await client.post(
        BASE, json={"name": "No Username", "email": "nouser@example.com"}, headers=bearer(admin_token)
    )
    assert response.status_code == 400

    response = await client.post(
        BASE,
        json={"username": "badip", "name": "Bad", "email": "bad@example.com", "allowed_ips": ["999.1.1.1"]},
        headers=bearer(admin_token),
    )
    assert response.status_code == 400

    response = await client.post(
        BASE, json={"username": "bademail", "name": "Bad", "email": "not-an-email"}, headers=bearer(admin_token)
    )
    assert response.status_code == 422


async def test_create_duplicate(client, admin_token):
    await create_account("alice")

    by_username = await client.post(
        BASE, json={"username": "alice", "name": "A", "email": "other@example.com"}, headers=bearer(admin_token)
    )
    by_email = await client.post(
        BASE, json={"username": "alice2", "name": "A", "email": "alice@example.com"}, headers=bearer(admin_token)
    )

    assert by_username.status_code == 409
    assert by_email.status_code == 409


async def test_only_super_admin_creates_super_admin(client, admin_token, super_token):
    payload = {"username": "root2", "name": "Root Two", "email": "root2@example.com", "role": ROLE_SUPER_ADMIN}

    assert (await client.post(BASE, json=payload, headers=bearer(admin_token))).status_code == 403
    assert (await client.post(BASE, json=payload, headers=bearer(super_token))).status_code == 201


async def test_staff_cannot_manage_accounts(client):
    secret = new_secret()
    await create_account("sam", role=ROLE_STAFF, two_factor_secret=secret)
    token = await authorized_token(client, "sam", secret)

    response = await client.get(BASE, headers=bearer(token))

    assert response.status_code == 403
    assert response.headers["X-Auth-Error"] == "insufficient_role"


async def test_list_and_get(client, admin_token):
    staff = await create_account("sam", role=ROLE_STAFF)

    response = await client.get(BASE, headers=bearer(admin_token))
    assert response.status_code == 200
    assert {u["username"] for u in response.json()["users"]} == {"boss", "sam"}

    response = await client.get(BASE, params={"role": ROLE_STAFF}, headers=bearer(admin_token))
    assert [u["username"] for u in response.json()["users"]] == ["sam"]

    response = await client.get(f"{BASE}/{staff.id}", headers=bearer(admin_token))
    assert response.status_code == 200
    assert response.json()["email"] == "sam@example.com"

    response = await client.get(f"{BASE}/9999", headers=bearer(admin_token))
    assert response.status_code == 404


async def test_update_account(client, admin_token):
    staff = await create_account("sam", role=ROLE_STAFF)

    response = await client.patch(
        f"{BASE}/{staff.id}",
        json={"name": "Samuel", "is_active": False, "allowed_ips": ["10.2.0.0/16"]},
        headers=bearer(admin_token),
    )

    assert response.status_code == 200
    data = response.json()
    assert data["name"] == "Samuel"
    assert data["is_active"] is False
    assert data["allowed_ips"] == ["10.2.0.0/16"]
    assert (await login(client, "sam")).status_code == 401


async def test_update_email_conflict(client, admin_token):
    await create_account("alice")
    staff = await create_account("sam", role=ROLE_STAFF)

    response = await client.patch(
        f"{BASE}/{staff.id}", json={"email": "alice@example.com"}, headers=bearer(admin_token)
    )

    assert response.status_code == 409


async def test_admin_cannot_touch_super_admin(client, admin_token):
    root = await create_account("root", role=ROLE_SUPER_ADMIN)
    staff = await create_account("sam", role=ROLE_STAFF)

    response = await client.patch(f"{BASE}/{root.id}", json={"is_active": False}, headers=bearer(admin_token))
    assert response.status_code == 403
    response = await client.patch(f"{BASE}/{staff.id}", json={"role": ROLE_SUPER_ADMIN}, headers=bearer(admin_token))
    assert response.status_code == 403
    assert (await fetch_account(staff.id)).role == ROLE_STAFF


async def test_unlock(client, admin_token):
    staff = await create_account("sam", role=ROLE_STAFF)
    for _ in range(5):
        await login(client, "sam", password="wrong-password")
    assert (await login(client, "sam")).status_code == 423

    response = await client.post(f"{BASE}/{staff.id}/unlock", headers=bearer(admin_token))

    assert response.status_code == 200
    assert response.json()["failed_logins"] == 0
    assert response.json()["locked_until"] is None
    assert (await login(client, "sam")).status_code == 200


async def test_reset_two_factor_needs_super_admin(client, admin_token, super_token):
    carol = await create_account("carol", two_factor_secret=new_secret())

    response = await client.post(f"{BASE}/{carol.id}/reset-2fa", headers=bearer(admin_token))
    assert response.status_code == 403

    response = await client.post(f"{BASE}/{carol.id}/reset-2fa", headers=bearer(super_token))
    assert response.status_code == 200
    stored = await fetch_account(carol.id)
    assert stored.two_factor_enabled is False
    assert stored.two_factor_secret is None


async def test_changes_are_audited(client, admin_token):
    staff = await create_account("sam", role=ROLE_STAFF)
    await client.post(f"{BASE}/{staff.id}/unlock", headers=bearer(admin_token))

    response = await client.get(
        "/api/admin/security/events", params={"event_type": "admin_user_unlocked"}, headers=bearer(admin_token)
    )

    assert response.status_code == 200
    events = response.json()
    assert len(events) == 1
    assert events[0]["username"] == "boss"
    assert "sam" in events[0]["details"]
