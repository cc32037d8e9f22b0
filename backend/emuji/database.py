"""
Emuji Backend: Connection Pool
=================================

What:  Async SQLAlchemy engine wrapped in a `Database` handle with a fixed pool
       policy, plus the FastAPI dependency that hands it to route handlers.
How:   `Database` is built once in the application lifespan, stored on
       `app.state`, and disposed at shutdown. Handlers receive it through
       `Depends(get_database)`; nothing imports a module-level engine.

Pool Policy (PoolPolicy defaults):
    min idle = 5, max = 5   → pool_size=5, max_overflow=0 (fixed-size pool)
    acquire timeout = 30s   → pool_timeout; exhaustion raises sqlalchemy TimeoutError
    idle timeout = 600s     → checkin timestamp checked on checkout; stale
                              connections are discarded and replaced
    max lifetime = 600s     → pool_recycle
    create retry = 200ms    → tenacity wait between failed connection attempts,
                              bounded by the acquire timeout

    The min-idle floor is met by `warm()`, which opens `min_idle` connections
    concurrently at startup and returns them to the pool.
"""

import asyncio
import logging
import time
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, Optional

from fastapi import Request
from pydantic import BaseModel, Field, model_validator
from sqlalchemy import event, exc as sa_exc, text
from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine, create_async_engine
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.pool import AsyncAdaptedQueuePool
from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_exception,
    stop_after_delay,
    wait_fixed,
)

from emuji.config import Settings

logger = logging.getLogger(__name__)

# Key under which each pooled connection remembers when it was last returned
_LAST_CHECKIN = "emuji_last_checkin"


class Base(DeclarativeBase):
    """
    Base class for all SQLAlchemy ORM models.

    Models register with this metadata; Alembic and the test suite read it
    to create `emujis` and `votes`.
    """
    pass


class PoolPolicy(BaseModel):
    """Sizing and timeout policy of the connection pool. Times in milliseconds."""

    min_idle: int = Field(default=5, ge=0)
    max_size: int = Field(default=5, ge=1)
    acquire_timeout_ms: int = Field(default=30_000, ge=1)
    idle_timeout_ms: int = Field(default=600_000, ge=1)
    max_lifetime_ms: int = Field(default=600_000, ge=1)
    create_retry_interval_ms: int = Field(default=200, ge=0)

    model_config = {"frozen": True}

    @model_validator(mode="after")
    def validate_bounds(self) -> "PoolPolicy":
        if self.min_idle > self.max_size:
            raise ValueError(
                f"min_idle ({self.min_idle}) must not exceed max_size ({self.max_size})"
            )
        return self

    @classmethod
    def from_settings(cls, settings: Settings) -> "PoolPolicy":
        return cls(
            min_idle=settings.db_pool_min,
            max_size=settings.db_pool_max,
            acquire_timeout_ms=settings.db_acquire_timeout_ms,
            idle_timeout_ms=settings.db_idle_timeout_ms,
            max_lifetime_ms=settings.db_max_lifetime_ms,
            create_retry_interval_ms=settings.db_create_retry_interval_ms,
        )

    @property
    def acquire_timeout(self) -> float:
        return self.acquire_timeout_ms / 1000

    @property
    def idle_timeout(self) -> float:
        return self.idle_timeout_ms / 1000

    @property
    def max_lifetime(self) -> float:
        return self.max_lifetime_ms / 1000

    @property
    def create_retry_interval(self) -> float:
        return self.create_retry_interval_ms / 1000

    def engine_options(self) -> Dict[str, Any]:
        """Keyword arguments for create_async_engine that implement this policy."""
        return {
            "poolclass": AsyncAdaptedQueuePool,
            "pool_size": self.max_size,
            "max_overflow": 0,
            "pool_timeout": self.acquire_timeout,
            "pool_recycle": self.max_lifetime,
        }


# ── Idle Timeout ──────────────────────────────────────────────────────────
# QueuePool has no idle timeout of its own. Every connection is stamped when
# created and when returned; checkout rejects one that sat idle too long by
# raising DisconnectionError, which makes the pool discard it and connect anew.

def stamp_checkin(dbapi_connection, connection_record) -> None:
    """Pool `connect` / `checkin` listener."""
    connection_record.info[_LAST_CHECKIN] = time.monotonic()


def make_idle_reaper(idle_timeout: float):
    """Build a pool `checkout` listener enforcing `idle_timeout` seconds."""

    def expire_idle(dbapi_connection, connection_record, connection_proxy) -> None:
        last_checkin = connection_record.info.get(_LAST_CHECKIN)
        if last_checkin is None:
            return
        idle_for = time.monotonic() - last_checkin
        if idle_for > idle_timeout:
            logger.debug("Discarding connection idle for %.1fs", idle_for)
            raise sa_exc.DisconnectionError(
                f"connection idle for {idle_for:.1f}s (limit {idle_timeout:.1f}s)"
            )

    return expire_idle


def is_connect_failure(exc: BaseException) -> bool:
    """
    True for errors raised while establishing a connection.

    Pool exhaustion (sqlalchemy TimeoutError) already waited the full acquire
    timeout and is never retried.
    """
    if isinstance(exc, sa_exc.TimeoutError):
        return False
    return isinstance(exc, (sa_exc.DBAPIError, OSError))


class Database:
    """
    Process-wide pooled database handle.

    Lifecycle:
        database = Database.from_settings(settings)   # startup
        await database.warm()                          # fill the idle floor
        async with database.connect() as conn: ...     # per query
        await database.dispose()                       # shutdown
    """

    def __init__(
        self,
        url,
        policy: Optional[PoolPolicy] = None,
        echo: bool = False,
    ):
        self.policy = policy or PoolPolicy()
        self.engine: AsyncEngine = create_async_engine(
            url,
            pool_pre_ping=True,
            echo=echo,
            **self.policy.engine_options(),
        )

        sync_engine = self.engine.sync_engine
        event.listen(sync_engine, "connect", stamp_checkin)
        event.listen(sync_engine, "checkin", stamp_checkin)
        event.listen(sync_engine, "checkout", make_idle_reaper(self.policy.idle_timeout))

    @classmethod
    def from_settings(cls, settings: Settings) -> "Database":
        return cls(
            settings.sqlalchemy_url,
            policy=PoolPolicy.from_settings(settings),
            echo=settings.log_level == "DEBUG",
        )

    async def _open(self) -> AsyncConnection:
        """Check a connection out of the pool, retrying failed connection attempts."""
        async for attempt in AsyncRetrying(
            retry=retry_if_exception(is_connect_failure),
            wait=wait_fixed(self.policy.create_retry_interval),
            stop=stop_after_delay(self.policy.acquire_timeout),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True,
        ):
            with attempt:
                return await self.engine.connect()
        raise RuntimeError("unreachable")  # pragma: no cover

    @asynccontextmanager
    async def connect(self) -> AsyncIterator[AsyncConnection]:
        """Borrow a connection for the duration of the block."""
        conn = await self._open()
        try:
            yield conn
        finally:
            await conn.close()

    @asynccontextmanager
    async def begin(self) -> AsyncIterator[AsyncConnection]:
        """Borrow a connection inside a transaction committed on clean exit."""
        async with self.connect() as conn:
            async with conn.begin():
                yield conn

    async def warm(self) -> int:
        """
        Open `min_idle` connections at once and return them to the pool.

        Returns the number of connections opened. If any attempt fails, the
        ones that succeeded are released and the first error is raised.
        """
        results = await asyncio.gather(
            *(self._open() for _ in range(self.policy.min_idle)),
            return_exceptions=True,
        )
        opened = [r for r in results if not isinstance(r, BaseException)]
        for conn in opened:
            await conn.close()
        for result in results:
            if isinstance(result, BaseException):
                raise result
        return len(opened)

    async def ping(self) -> None:
        async with self.connect() as conn:
            await conn.execute(text("SELECT 1"))

    def status(self) -> Dict[str, int]:
        """Pool occupancy snapshot."""
        pool = self.engine.sync_engine.pool
        return {
            "size": pool.size(),
            "checked_in": pool.checkedin(),
            "checked_out": pool.checkedout(),
            # QueuePool counts from -pool_size; only connections past the size are overflow
            "overflow": max(pool.overflow(), 0),
        }

    async def dispose(self) -> None:
        """Close every pooled connection."""
        await self.engine.dispose()


# ── Dependency ────────────────────────────────────────────────────────────
def get_database(request: Request) -> Database:
    """
    FastAPI dependency returning the handle created by the lifespan.

    Example usage in a route:
        @router.get("/")
        async def list_emujis(database: Database = Depends(get_database)):
            ...
    """
    return request.app.state.database
