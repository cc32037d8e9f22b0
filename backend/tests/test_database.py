"""
Emuji Backend: Connection Pool Tests
=======================================

What we test:
    ✅ Pool policy values applied verbatim to the engine
    ✅ Warm-up fills the idle floor
    ✅ Idle connections are replaced on checkout
    ✅ Failed connection attempts are retried with backoff; pool timeouts are not
    ✅ Fixed-size pool: exhaustion raises after the acquire timeout
"""

import asyncio
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from pydantic import ValidationError
from sqlalchemy import event, exc as sa_exc
from sqlalchemy.pool import AsyncAdaptedQueuePool

from emuji.config import Settings
from emuji.database import (
    Database,
    PoolPolicy,
    is_connect_failure,
    make_idle_reaper,
    stamp_checkin,
)


class TestPoolPolicy:

    def test_defaults(self):
        policy = PoolPolicy()
        assert policy.min_idle == 5
        assert policy.max_size == 5
        assert policy.acquire_timeout == 30
        assert policy.idle_timeout == 600
        assert policy.max_lifetime == 600
        assert policy.create_retry_interval == pytest.approx(0.2)

    def test_from_settings(self):
        settings = Settings(
            db_pool_min=2,
            db_pool_max=3,
            db_acquire_timeout_ms=1_000,
            db_create_retry_interval_ms=50,
            _env_file=None,
        )
        policy = PoolPolicy.from_settings(settings)
        assert policy.min_idle == 2
        assert policy.max_size == 3
        assert policy.acquire_timeout_ms == 1_000
        assert policy.create_retry_interval_ms == 50

    def test_min_above_max_rejected(self):
        with pytest.raises(ValidationError):
            PoolPolicy(min_idle=6, max_size=5)

    @pytest.mark.asyncio
    async def test_applied_to_engine(self, sqlite_url):
        db = Database(sqlite_url)
        try:
            pool = db.engine.sync_engine.pool
            assert isinstance(pool, AsyncAdaptedQueuePool)
            assert pool.size() == 5
            assert pool._max_overflow == 0
            assert pool.timeout() == 30
            assert pool._recycle == 600
        finally:
            await db.dispose()


class TestWarmUp:

    @pytest.mark.asyncio
    async def test_opens_min_idle_connections(self, sqlite_url):
        db = Database(sqlite_url)
        try:
            opened = await db.warm()
            assert opened == 5
            status = db.status()
            assert status["checked_in"] == 5
            assert status["checked_out"] == 0
            assert status["size"] == 5
            assert status["overflow"] == 0
        finally:
            await db.dispose()

    @pytest.mark.asyncio
    async def test_releases_connections_when_one_fails(self, sqlite_url):
        db = Database(sqlite_url, policy=PoolPolicy(min_idle=3, max_size=3))
        good = MagicMock()
        good.close = AsyncMock()
        with patch.object(
            Database, "_open", AsyncMock(side_effect=[good, OSError("refused"), good])
        ):
            with pytest.raises(OSError):
                await db.warm()
        assert good.close.await_count == 2
        await db.dispose()


class TestIdleTimeout:

    def test_fresh_connection_passes(self):
        record = MagicMock()
        record.info = {}
        stamp_checkin(None, record)
        make_idle_reaper(600)(None, record, None)

    def test_unstamped_connection_passes(self):
        record = MagicMock()
        record.info = {}
        make_idle_reaper(600)(None, record, None)

    def test_idle_connection_rejected(self):
        record = MagicMock()
        record.info = {}
        stamp_checkin(None, record)
        (stamped,) = record.info.values()

        with patch("emuji.database.time.monotonic", return_value=stamped + 601):
            with pytest.raises(sa_exc.DisconnectionError):
                make_idle_reaper(600)(None, record, None)

    @pytest.mark.asyncio
    async def test_pool_replaces_idle_connection(self, sqlite_url):
        db = Database(sqlite_url, policy=PoolPolicy(min_idle=1, max_size=1, idle_timeout_ms=10))
        connects = []
        event.listen(db.engine.sync_engine, "connect", lambda *args: connects.append(1))
        try:
            async with db.connect():
                pass
            assert len(connects) == 1

            await asyncio.sleep(0.05)
            async with db.connect():
                pass
            assert len(connects) == 2
        finally:
            await db.dispose()


class TestConnectRetry:

    def test_classification(self):
        assert is_connect_failure(OSError("connection refused"))
        assert is_connect_failure(ConnectionRefusedError())
        assert is_connect_failure(sa_exc.OperationalError("connect", {}, Exception("down")))
        assert not is_connect_failure(sa_exc.TimeoutError("QueuePool limit reached"))
        assert not is_connect_failure(ValueError("bug"))

    @pytest.mark.asyncio
    async def test_retries_until_connected(self, sqlite_url):
        db = Database(sqlite_url, policy=PoolPolicy(create_retry_interval_ms=1))
        conn = object()
        db.engine = MagicMock()
        db.engine.connect = AsyncMock(side_effect=[OSError("refused"), OSError("refused"), conn])

        assert await db._open() is conn
        assert db.engine.connect.await_count == 3

    @pytest.mark.asyncio
    async def test_pool_timeout_not_retried(self, sqlite_url):
        db = Database(sqlite_url, policy=PoolPolicy(create_retry_interval_ms=1))
        db.engine = MagicMock()
        db.engine.connect = AsyncMock(side_effect=sa_exc.TimeoutError("QueuePool limit"))

        with pytest.raises(sa_exc.TimeoutError):
            await db._open()
        assert db.engine.connect.await_count == 1

    @pytest.mark.asyncio
    async def test_gives_up_after_acquire_timeout(self, sqlite_url):
        db = Database(
            sqlite_url,
            policy=PoolPolicy(acquire_timeout_ms=50, create_retry_interval_ms=10),
        )
        db.engine = MagicMock()
        db.engine.connect = AsyncMock(side_effect=OSError("refused"))

        with pytest.raises(OSError):
            await db._open()
        assert db.engine.connect.await_count >= 2


class TestPoolExhaustion:

    @pytest.mark.asyncio
    async def test_times_out_when_all_connections_busy(self, sqlite_url):
        db = Database(sqlite_url, policy=PoolPolicy(min_idle=1, max_size=1, acquire_timeout_ms=100))
        try:
            async with db.connect():
                assert db.status()["checked_out"] == 1
                with pytest.raises(sa_exc.TimeoutError):
                    async with db.connect():
                        pass
            assert db.status()["checked_out"] == 0
        finally:
            await db.dispose()
