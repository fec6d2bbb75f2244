"""Unit tests for SqlCeremonyStore transaction handling (mocked session)."""

from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError

from passwordless.ceremony.store import SqlCeremonyStore
from passwordless.dal import ChallengeRepository, SessionRepository
from passwordless.exceptions import StoreUnavailable


@pytest.fixture
def mock_session():
    session = MagicMock()
    session.commit = AsyncMock()
    session.close = AsyncMock()
    return session


@pytest.fixture
def store(mock_session):
    return SqlCeremonyStore(lambda: mock_session, challenge_ttl_seconds=60, session_ttl_hours=2)


@pytest.mark.asyncio
class TestSqlCeremonyStore:
    async def test_commits_and_closes_on_clean_exit(self, store, mock_session):
        async with store.transaction() as tx:
            assert isinstance(tx.challenges, ChallengeRepository)
            assert tx.challenges.session is mock_session

        mock_session.commit.assert_awaited_once()
        mock_session.close.assert_awaited_once()

    async def test_repositories_use_configured_lifetimes(self, store):
        async with store.transaction() as tx:
            assert tx.challenges.ttl.total_seconds() == 60
            assert isinstance(tx.sessions, SessionRepository)
            assert tx.sessions.ttl.total_seconds() == 2 * 3600

    async def test_driver_error_becomes_store_unavailable(self, store, mock_session):
        with pytest.raises(StoreUnavailable):
            async with store.transaction():
                raise OperationalError("SELECT 1", {}, ConnectionRefusedError())

        mock_session.commit.assert_not_awaited()
        mock_session.close.assert_awaited_once()

    async def test_pool_timeout_becomes_store_unavailable(self, store, mock_session):
        with pytest.raises(StoreUnavailable):
            async with store.transaction():
                raise PoolTimeoutError("QueuePool limit of size 5 overflow 10 reached")

        mock_session.commit.assert_not_awaited()
        mock_session.close.assert_awaited_once()

    async def test_connection_error_becomes_store_unavailable(self, store, mock_session):
        with pytest.raises(StoreUnavailable):
            async with store.transaction():
                raise ConnectionRefusedError("db down")

    async def test_commit_failure_becomes_store_unavailable(self, store, mock_session):
        mock_session.commit.side_effect = OperationalError("COMMIT", {}, OSError())

        with pytest.raises(StoreUnavailable):
            async with store.transaction():
                pass

        mock_session.close.assert_awaited_once()

    async def test_integrity_error_propagates(self, store, mock_session):
        with pytest.raises(IntegrityError):
            async with store.transaction():
                raise IntegrityError("INSERT", {}, Exception("duplicate key"))

        mock_session.commit.assert_not_awaited()

    async def test_other_exceptions_propagate_without_commit(self, store, mock_session):
        with pytest.raises(KeyError):
            async with store.transaction():
                raise KeyError("boom")

        mock_session.commit.assert_not_awaited()
        mock_session.close.assert_awaited_once()
