"""
RevocationStore tests — idempotent revoke, lazy eviction at expiry and
bulk purging, exercised directly against the SQLite test database.
"""
from datetime import timedelta
from unittest.mock import AsyncMock

import pytest
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from boardapi.models import RevokedToken
from boardapi.services.revocation_service import RevocationStore, token_identity
from boardapi.tokens import TokenCodec

from conftest import NOW


async def _count(db: AsyncSession) -> int:
    return (await db.execute(select(func.count()).select_from(RevokedToken))).scalar_one()


def test_token_identity_is_sha256_hex():
    identity = token_identity("a.b.c")
    assert len(identity) == 64
    assert identity == token_identity("a.b.c")
    assert identity != token_identity("a.b.d")


@pytest.mark.asyncio
async def test_unknown_token_is_not_revoked(db_session: AsyncSession, codec: TokenCodec):
    store = RevocationStore(db_session)
    assert await store.is_revoked(codec.issue("alice", NOW).token, NOW) is False


@pytest.mark.asyncio
async def test_revoke_then_is_revoked(db_session: AsyncSession, codec: TokenCodec):
    store = RevocationStore(db_session)
    issued = codec.issue("alice", NOW)
    await store.revoke(issued.token, issued.expires_at, "alice")

    assert await store.is_revoked(issued.token, NOW) is True
    assert await store.is_revoked(issued.token, issued.expires_at - timedelta(seconds=1)) is True
    # Other tokens of the same user are unaffected.
    other = codec.issue("alice", NOW + timedelta(seconds=5))
    assert await store.is_revoked(other.token, NOW) is False


@pytest.mark.asyncio
async def test_revoke_is_idempotent(db_session: AsyncSession, codec: TokenCodec):
    store = RevocationStore(db_session)
    issued = codec.issue("alice", NOW)
    await store.revoke(issued.token, issued.expires_at, "alice")
    once = await store.is_revoked(issued.token, NOW)
    await store.revoke(issued.token, issued.expires_at, "alice")
    twice = await store.is_revoked(issued.token, NOW)

    assert once is twice is True
    assert await _count(db_session) == 1


@pytest.mark.asyncio
async def test_revocation_lapses_and_is_evicted_after_expiry(db_session: AsyncSession, codec: TokenCodec):
    store = RevocationStore(db_session)
    issued = codec.issue("alice", NOW)
    await store.revoke(issued.token, issued.expires_at, "alice")

    # The token is still accepted at its exact expiry, so the entry holds too.
    assert await store.is_revoked(issued.token, issued.expires_at) is True
    assert await store.is_revoked(issued.token, issued.expires_at + timedelta(seconds=1)) is False
    assert await store.find(issued.token) is None
    assert await _count(db_session) == 0


@pytest.mark.asyncio
async def test_revoke_persists_across_sessions(codec: TokenCodec):
    from conftest import async_session_test

    issued = codec.issue("alice", NOW)
    async with async_session_test() as session:
        await RevocationStore(session).revoke(issued.token, issued.expires_at, "alice")
        await session.commit()

    async with async_session_test() as session:
        entry = await RevocationStore(session).find(issued.token)
        assert entry is not None
        assert entry.username == "alice"
        assert await RevocationStore(session).is_revoked(issued.token, NOW) is True


@pytest.mark.asyncio
async def test_purge_expired_keeps_live_entries(db_session: AsyncSession, codec: TokenCodec):
    store = RevocationStore(db_session)
    old = codec.issue("alice", NOW - timedelta(hours=3))
    live = codec.issue("bob", NOW)
    await store.revoke(old.token, old.expires_at, "alice")
    await store.revoke(live.token, live.expires_at, "bob")

    removed = await store.purge_expired(NOW)

    assert removed == 1
    assert await store.find(old.token) is None
    assert await store.is_revoked(live.token, NOW) is True


@pytest.mark.asyncio
async def test_purge_keeps_entries_at_exact_expiry(db_session: AsyncSession, codec: TokenCodec):
    store = RevocationStore(db_session)
    issued = codec.issue("alice", NOW)
    await store.revoke(issued.token, issued.expires_at, "alice")

    assert await store.purge_expired(issued.expires_at) == 0
    assert await store.purge_expired(issued.expires_at + timedelta(seconds=1)) == 1


@pytest.mark.asyncio
async def test_rollback_invalidates_session_when_connection_is_gone():
    session = AsyncMock()
    session.rollback.side_effect = ConnectionResetError(104, "Connection reset by peer")

    await RevocationStore(session).rollback()

    session.invalidate.assert_awaited_once()
