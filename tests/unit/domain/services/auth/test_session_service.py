"""SessionService against the SQL session repository on in-memory SQLite."""

from datetime import timedelta

import pytest

from accessguard.core.exceptions import (
    PermissionError,
    SessionNotFoundError,
    SessionRevokedError,
    ValidationError,
)
from accessguard.domain.services.auth import SessionService, digest_credential
from accessguard.infrastructure.repositories import SessionRepository
from accessguard.utils.clock import utc_now


@pytest.fixture
def repository(db_session):
    return SessionRepository(db_session)


@pytest.fixture
def service(repository):
    return SessionService(repository)


async def _register(service, user_id, credential):
    return await service.register(user_id, credential, utc_now() + timedelta(hours=1))


class TestRegister:
    @pytest.mark.asyncio
    async def test_register_is_idempotent(self, service):
        first = await _register(service, "user-1", "cred-a")
        second = await _register(service, "user-1", "cred-a")

        assert first.id == second.id
        assert first.session_token == digest_credential("cred-a")

    @pytest.mark.asyncio
    async def test_revoked_credential_cannot_be_registered_again(self, service):
        session = await _register(service, "user-1", "cred-a")
        await _register(service, "user-1", "cred-b")
        await service.revoke(session.id, actor_id="user-1", current_credential="cred-b")

        with pytest.raises(SessionRevokedError):
            await _register(service, "user-1", "cred-a")


class TestRevoke:
    @pytest.mark.asyncio
    async def test_user_revokes_another_of_their_sessions(self, service, repository):
        old = await _register(service, "user-1", "cred-old")
        await _register(service, "user-1", "cred-current")

        await service.revoke(old.id, actor_id="user-1", current_credential="cred-current")

        remaining = await service.list_active("user-1")
        assert [s.session_token for s in remaining] == [digest_credential("cred-current")]
        assert await repository.is_revoked(digest_credential("cred-old"))

    @pytest.mark.asyncio
    async def test_current_session_cannot_be_revoked_by_its_user(self, service):
        current = await _register(service, "user-1", "cred-current")

        with pytest.raises(ValidationError) as exc_info:
            await service.revoke(current.id, actor_id="user-1", current_credential="cred-current")
        assert exc_info.value.code == "cannot_revoke_current_session"

    @pytest.mark.asyncio
    async def test_foreign_session_requires_admin(self, service):
        other = await _register(service, "user-2", "cred-other")

        with pytest.raises(PermissionError):
            await service.revoke(other.id, actor_id="user-1")

        await service.revoke(other.id, actor_id="admin-1", actor_is_admin=True)
        assert await service.list_active("user-2") == []

    @pytest.mark.asyncio
    async def test_missing_session(self, service):
        with pytest.raises(SessionNotFoundError):
            await service.revoke(12345, actor_id="user-1")


class TestRevokeAll:
    @pytest.mark.asyncio
    async def test_revoke_all_keeps_the_calling_session(self, service):
        for credential in ("cred-1", "cred-2", "cred-current"):
            await _register(service, "user-1", credential)

        count = await service.revoke_all("user-1", actor_id="user-1", keep_credential="cred-current")

        assert count == 2
        remaining = await service.list_active("user-1")
        assert [s.session_token for s in remaining] == [digest_credential("cred-current")]

    @pytest.mark.asyncio
    async def test_admin_revokes_every_session_of_another_user(self, service):
        for credential in ("cred-1", "cred-2"):
            await _register(service, "user-2", credential)
        await _register(service, "user-1", "cred-mine")

        count = await service.revoke_all("user-2", actor_id="admin-1", actor_is_admin=True)

        assert count == 2
        assert await service.list_active("user-2") == []
        assert len(await service.list_active("user-1")) == 1

    @pytest.mark.asyncio
    async def test_non_admin_cannot_target_another_user(self, service):
        with pytest.raises(PermissionError):
            await service.revoke_all("user-2", actor_id="user-1")


class TestPurge:
    @pytest.mark.asyncio
    async def test_expired_sessions_and_tombstones_are_purged(self, service, repository):
        past = utc_now() - timedelta(minutes=1)
        await service.register("user-1", "cred-expired", past)
        live = await _register(service, "user-1", "cred-live")
        revoked = await service.register("user-1", "cred-revoked", past)
        await service.revoke(revoked.id, actor_id="user-1", current_credential="cred-live")

        removed = await service.purge_expired()

        assert removed == 2
        assert await repository.get_by_token(digest_credential("cred-expired")) is None
        assert not await repository.is_revoked(digest_credential("cred-revoked"))
        assert (await repository.get_by_id(live.id)) is not None
