"""Tests for the self-service session endpoints."""

import pytest

from accessguard.domain.entities import UserRole

SESSIONS_URL = "/api/v1/sessions"
REVOKE_URL = "/api/v1/sessions/revoke"


def bearer(credential: str) -> dict:
    return {"Authorization": f"Bearer {credential}"}


async def open_session(client, credential: str) -> int:
    """Use ``credential`` once so its session is registered, and return the session id."""
    response = await client.post(SESSIONS_URL, headers=bearer(credential))
    assert response.status_code == 201
    return response.json()["id"]


class TestRegisterSession:
    @pytest.mark.asyncio
    async def test_registers_presented_credential(self, async_client, credential_for):
        credential = credential_for("user-1")

        response = await async_client.post(
            SESSIONS_URL,
            headers={
                **bearer(credential),
                "User-Agent": "pytest-client",
                "X-Forwarded-For": "203.0.113.9",
            },
        )

        assert response.status_code == 201
        body = response.json()
        assert body["user_id"] == "user-1"
        assert body["is_current"] is True
        assert body["user_agent"] == "pytest-client"
        assert body["ip_address"] == "203.0.113.9"

    @pytest.mark.asyncio
    async def test_registration_is_idempotent(self, async_client, credential_for):
        credential = credential_for("user-1")

        first = await open_session(async_client, credential)
        second = await open_session(async_client, credential)

        assert first == second

    @pytest.mark.asyncio
    async def test_invalid_credential_is_rejected(self, async_client):
        response = await async_client.post(SESSIONS_URL, headers=bearer("not-a-jwt"))

        assert response.status_code == 401
        assert response.json()["reason"] == "invalid_user"


class TestListSessions:
    @pytest.mark.asyncio
    async def test_lists_own_sessions_and_marks_current(self, async_client, credential_for):
        mine = credential_for("user-1")
        other_device = credential_for("user-1")
        await open_session(async_client, other_device)
        await open_session(async_client, credential_for("user-2"))
        current_id = await open_session(async_client, mine)

        response = await async_client.get(SESSIONS_URL, headers=bearer(mine))

        assert response.status_code == 200
        body = response.json()
        assert body["total"] == 2
        assert {s["user_id"] for s in body["sessions"]} == {"user-1"}
        current = [s["id"] for s in body["sessions"] if s["is_current"]]
        assert current == [current_id]


class TestRevokeSession:
    @pytest.mark.asyncio
    async def test_revoked_credential_is_refused(self, async_client, credential_for):
        mine = credential_for("user-1")
        stolen = credential_for("user-1")
        stolen_id = await open_session(async_client, stolen)
        await open_session(async_client, mine)

        response = await async_client.post(
            REVOKE_URL, json={"session_id": stolen_id}, headers=bearer(mine)
        )

        assert response.status_code == 200
        assert response.json()["revoked_count"] == 1

        refused = await async_client.get(SESSIONS_URL, headers=bearer(stolen))
        assert refused.status_code == 401
        assert refused.json()["reason"] == "session_revoked"

    @pytest.mark.asyncio
    async def test_nothing_to_revoke(self, async_client, credential_for):
        response = await async_client.post(
            REVOKE_URL, json={}, headers=bearer(credential_for("user-1"))
        )

        assert response.status_code == 400
        assert response.json()["reason"] == "missing_fields"

    @pytest.mark.asyncio
    async def test_current_session_cannot_be_revoked(self, async_client, credential_for):
        mine = credential_for("user-1")
        current_id = await open_session(async_client, mine)

        response = await async_client.post(
            REVOKE_URL, json={"session_id": current_id}, headers=bearer(mine)
        )

        assert response.status_code == 400
        assert response.json()["reason"] == "cannot_revoke_current_session"

    @pytest.mark.asyncio
    async def test_unknown_session(self, async_client, credential_for):
        response = await async_client.post(
            REVOKE_URL, json={"session_id": 999999}, headers=bearer(credential_for("user-1"))
        )

        assert response.status_code == 404
        assert response.json()["reason"] == "session_not_found"

    @pytest.mark.asyncio
    async def test_foreign_session_requires_admin(self, async_client, credential_for):
        foreign_id = await open_session(async_client, credential_for("user-2"))

        response = await async_client.post(
            REVOKE_URL, json={"session_id": foreign_id}, headers=bearer(credential_for("user-1"))
        )

        assert response.status_code == 403
        assert response.json()["reason"] == "admin_required"

    @pytest.mark.asyncio
    async def test_target_user_requires_admin(self, async_client, credential_for):
        response = await async_client.post(
            REVOKE_URL,
            json={"revoke_all": True, "target_user_id": "user-2"},
            headers=bearer(credential_for("user-1")),
        )

        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_revoke_all_keeps_current_session(self, async_client, credential_for):
        mine = credential_for("user-1")
        for _ in range(2):
            await open_session(async_client, credential_for("user-1"))
        await open_session(async_client, mine)

        response = await async_client.post(
            REVOKE_URL, json={"revoke_all": True}, headers=bearer(mine)
        )

        assert response.status_code == 200
        assert response.json()["revoked_count"] == 2
        remaining = await async_client.get(SESSIONS_URL, headers=bearer(mine))
        assert remaining.status_code == 200
        assert remaining.json()["total"] == 1

    @pytest.mark.asyncio
    async def test_admin_revokes_every_session_of_target(
        self, async_client, credential_for, db_session
    ):
        db_session.add(UserRole(user_id="admin-1", role="admin"))
        await db_session.commit()
        victim = credential_for("user-2")
        await open_session(async_client, victim)
        await open_session(async_client, credential_for("user-2"))

        response = await async_client.post(
            REVOKE_URL,
            json={"revoke_all": True, "target_user_id": "user-2"},
            headers=bearer(credential_for("admin-1")),
        )

        assert response.status_code == 200
        assert response.json()["revoked_count"] == 2
        refused = await async_client.get(SESSIONS_URL, headers=bearer(victim))
        assert refused.status_code == 401
