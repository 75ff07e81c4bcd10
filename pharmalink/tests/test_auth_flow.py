"""
Integration tests for the authentication flow.

Verifies Register -> Login -> Me -> Logout with role rules.
"""

import pytest
from jose import jwt
from sqlalchemy import select

from pharmalink.app.models.audit_log import AuditLog
from pharmalink.app.core.config import settings
from pharmalink.app.services.audit import AuditAction
from pharmalink.app.models.enums import UserRole
from pharmalink.tests.helpers import register_user


@pytest.mark.asyncio
async def test_register_patient_defaults(client):
    response = await client.post("/v1/auth/register", json={
        "email": "thandi@pharmalink.co.za",
        "username": "thandi",
        "password": "password123",
    })
    assert response.status_code == 201
    data = response.json()
    assert data["role"] == "PATIENT"
    assert data["pharmacy_id"] is None
    assert data["access_token"]


@pytest.mark.asyncio
async def test_register_admin_blocked(client):
    response = await client.post("/v1/auth/register", json={
        "email": "root@pharmalink.co.za",
        "username": "root",
        "password": "password123",
        "role": "ADMIN",
    })
    assert response.status_code == 403
    assert response.json()["error_code"] == "ERR_FORBIDDEN"


@pytest.mark.asyncio
async def test_pharmacist_requires_pharmacy(client):
    response = await client.post("/v1/auth/register", json={
        "email": "pharm@pharmalink.co.za",
        "username": "pharm",
        "password": "password123",
        "role": "PHARMACIST",
    })
    assert response.status_code == 422
    assert response.json()["error_code"] == "ERR_VALIDATION"


@pytest.mark.asyncio
async def test_driver_cannot_claim_pharmacy(client):
    response = await client.post("/v1/auth/register", json={
        "email": "sipho@pharmalink.co.za",
        "username": "sipho",
        "password": "password123",
        "role": "DRIVER",
        "pharmacy_id": 1,
    })
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_duplicate_username_rejected(client):
    payload = {"email": "a@pharmalink.co.za", "username": "dup_user", "password": "password123"}
    assert (await client.post("/v1/auth/register", json=payload)).status_code == 201

    payload["email"] = "b@pharmalink.co.za"
    response = await client.post("/v1/auth/register", json=payload)
    assert response.status_code == 400
    assert response.json()["message"] == "Username already registered"


@pytest.mark.asyncio
async def test_login_me_logout(client, db_session):
    await client.post("/v1/auth/register", json={
        "email": "naledi@pharmalink.co.za",
        "username": "naledi",
        "password": "password123",
        "role": "PHARMACIST",
        "pharmacy_id": 7,
    })

    # Login by email works as well as username
    login = await client.post("/v1/auth/login", json={"username": "naledi@pharmalink.co.za", "password": "password123"})
    assert login.status_code == 200
    token = login.json()["access_token"]
    headers = {"Authorization": f"Bearer {token}"}

    me = await client.get("/v1/auth/me", headers=headers)
    assert me.status_code == 200
    assert me.json()["username"] == "naledi"
    assert me.json()["pharmacy_id"] == 7

    logout = await client.post("/v1/auth/logout", headers=headers)
    assert logout.status_code == 200
    assert logout.json()["revoked"] is True

    after = await client.get("/v1/auth/me", headers=headers)
    assert after.status_code == 401
    assert after.json()["message"] == "Token has been revoked"

    result = await db_session.execute(select(AuditLog.action).where(AuditLog.actor_username == "naledi"))
    actions = set(result.scalars().all())
    assert {AuditAction.USER_REGISTERED, AuditAction.LOGIN_SUCCESS, AuditAction.TOKEN_REVOKED} <= actions


@pytest.mark.asyncio
async def test_login_wrong_password_audited(client, db_session):
    await client.post("/v1/auth/register", json={
        "email": "lerato@pharmalink.co.za", "username": "lerato", "password": "password123",
    })
    response = await client.post("/v1/auth/login", json={"username": "lerato", "password": "wrong-password"})
    assert response.status_code == 401

    result = await db_session.execute(
        select(AuditLog).where(AuditLog.action == AuditAction.LOGIN_FAILED)
    )
    entry = result.scalar_one()
    assert entry.meta_data == {"reason": "Invalid password"}


@pytest.mark.asyncio
async def test_missing_token_rejected(client):
    response = await client.get("/v1/auth/me")
    assert response.status_code in (401, 403)


@pytest.mark.asyncio
async def test_garbage_token_rejected(client):
    response = await client.get("/v1/auth/me", headers={"Authorization": "Bearer not-a-jwt"})
    assert response.status_code == 401
    assert response.json()["error_code"] == "ERR_AUTH_001"


@pytest.mark.asyncio
async def test_health_reports_server_time(client):
    response = await client.get("/health")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "healthy"
    assert "timestamp" in data
    assert "X-Correlation-ID" in response.headers


@pytest.mark.asyncio
async def test_revocation_lasts_only_as_long_as_the_token(client, redis_client_session):
    user = await register_user(client, UserRole.DRIVER)
    await client.post("/v1/auth/logout", headers=user["headers"])

    [ttl] = redis_client_session.ttls.values()
    assert 0 < ttl <= settings.access_token_expire_minutes * 60


@pytest.mark.asyncio
async def test_redis_outage_does_not_lock_users_out(client, redis_client_session):
    user = await register_user(client, UserRole.PATIENT)
    redis_client_session.available = False

    me = await client.get("/v1/auth/me", headers=user["headers"])
    assert me.status_code == 200

    logout = await client.post("/v1/auth/logout", headers=user["headers"])
    assert logout.json()["revoked"] is False


@pytest.mark.asyncio
async def test_pharmacy_claim_only_on_staff_tokens(client):
    driver = await register_user(client, UserRole.DRIVER)
    pharmacist = await register_user(client, UserRole.PHARMACIST, pharmacy_id=4)

    assert "pharmacy_id" not in jwt.get_unverified_claims(driver["access_token"])
    assert jwt.get_unverified_claims(pharmacist["access_token"])["pharmacy_id"] == 4


@pytest.mark.asyncio
async def test_role_gate_uses_unauthorized_code(client):
    patient = await register_user(client, UserRole.PATIENT)
    response = await client.get("/v1/orders/pending", headers=patient["headers"])
    assert response.status_code == 403
    assert response.json()["error_code"] == "ERR_UNAUTHORIZED"
    assert "PHARMACIST" in response.json()["details"]["allowed_roles"]
