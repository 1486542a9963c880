"""Tests for token handling and role checks."""

from datetime import timedelta

import pytest
from httpx import AsyncClient

from schoolhub.auth.jwt import create_access_token, decode_token
from schoolhub.models import User, UserStatus


@pytest.mark.unit
class TestJWTTokens:
    """Test JWT token generation and validation."""

    def test_create_access_token(self):
        token = create_access_token(
            user_id="user123",
            user_type="teacher",
            tenant_id="tenant_abc",
        )

        assert isinstance(token, str)

        payload = decode_token(token)
        assert payload["sub"] == "user123"
        assert payload["user_type"] == "teacher"
        assert payload["tenant_id"] == "tenant_abc"
        assert payload["type"] == "access"

    def test_tenant_claim_omitted_when_absent(self):
        payload = decode_token(create_access_token("user123", "super_admin"))
        assert "tenant_id" not in payload

    def test_decode_invalid_token(self):
        assert decode_token("invalid.token.here") == {}

    def test_decode_expired_token(self):
        token = create_access_token(
            "user123", "teacher", expires_delta=timedelta(seconds=-1)
        )
        assert decode_token(token) == {}


@pytest.mark.auth
@pytest.mark.asyncio
class TestCurrentUser:
    """Test the get_current_user dependency through a protected endpoint."""

    async def test_unknown_user_rejected(self, client: AsyncClient):
        token = create_access_token("no-such-user", "teacher")
        resp = await client.post(
            "/api/onboarding/initialize",
            headers={"Authorization": f"Bearer {token}"},
        )
        assert resp.status_code == 401

    async def test_suspended_user_rejected(
        self, client: AsyncClient, db_session, test_user: User, auth_headers
    ):
        test_user.status = UserStatus.SUSPENDED
        await db_session.flush()

        resp = await client.post("/api/onboarding/initialize", headers=auth_headers)

        assert resp.status_code == 401
        assert resp.json()["error"]["message"] == "User not found or inactive"

    async def test_pending_user_allowed(self, client: AsyncClient, auth_headers):
        resp = await client.post("/api/onboarding/initialize", headers=auth_headers)
        assert resp.status_code == 201
