"""
Emuji Backend: Emuji Service (Data Access)
=============================================

What:  The three queries behind the HTTP surface: record a vote, list the
       latest emujis, look up a song by Spotify URI.
How:   SQLAlchemy Core statements executed on a connection borrowed from the
       injected `Database`. Driver failures are translated into the typed
       errors of emuji.exceptions with the original chained as __cause__.
Who:   Called by route handlers in emuji.routes.emujis.

Error translation:
    sqlalchemy TimeoutError (pool exhausted)  → PoolTimeoutError
    any other SQLAlchemyError / OSError       → QueryError
    lookup with zero rows                     → NotFoundError
"""

import logging
from typing import List, Optional

from sqlalchemy import exc as sa_exc, insert, select

from emuji.database import Database
from emuji.exceptions import DatabaseError, NotFoundError, PoolTimeoutError, QueryError
from emuji.models.emuji import Emuji, Vote
from emuji.schemas.emuji import EmujiEntry, VoteCreate

logger = logging.getLogger(__name__)

RECENT_LIMIT = 5

FETCH_ALL = "fetch emujis"
FETCH_ONE = "fetch emuji"
RECORD = "record vote"


def _database_error(exc: BaseException, action: str, **context) -> DatabaseError:
    """Classify a driver/pool failure; the client sees "unable to <action>"."""
    context["error_type"] = type(exc).__name__
    cls = PoolTimeoutError if isinstance(exc, sa_exc.TimeoutError) else QueryError
    return cls(message=f"unable to {action}", action=action, context=context)


class EmujiService:
    """
    Stateless data access for emujis and votes.

    Every method receives the `Database` to use, so the same service works
    against the production pool and a test database alike.
    """

    async def insert_vote(self, database: Database, vote: VoteCreate) -> int:
        """
        Insert one row into `votes` and return its primary key.

        Raises:
            PoolTimeoutError: no connection became free in time
            QueryError: the insert failed (constraint violation, lost connection, ...)
        """
        try:
            async with database.begin() as conn:
                result = await conn.execute(insert(Vote).values(**vote.model_dump()))
                vote_id = result.inserted_primary_key[0]
        except (sa_exc.SQLAlchemyError, OSError) as exc:
            logger.error("Failed to insert vote for %s: %s", vote.spotify_uri, exc)
            raise _database_error(exc, RECORD, spotify_uri=vote.spotify_uri) from exc

        logger.info("Recorded vote %s for %s", vote_id, vote.spotify_uri)
        return vote_id

    async def list_recent_entries(
        self, database: Database, limit: int = RECENT_LIMIT
    ) -> List[EmujiEntry]:
        """
        Latest `limit` emujis, newest first.

        Ordered by id descending: insertion order is the only notion of
        "latest" the table carries.
        """
        query = (
            select(Emuji.emoji, Emuji.artist, Emuji.song, Emuji.spotify_uri)
            .order_by(Emuji.id.desc())
            .limit(limit)
        )
        try:
            async with database.connect() as conn:
                result = await conn.execute(query)
                rows = result.all()
        except (sa_exc.SQLAlchemyError, OSError) as exc:
            raise _database_error(exc, FETCH_ALL) from exc

        entries = [EmujiEntry(**row._mapping) for row in rows]
        logger.debug("data %s", entries)
        return entries

    async def get_entry_by_uri(self, database: Database, uri: str) -> Optional[str]:
        """
        Song title stored for `uri`.

        Several rows may share a URI; the first one returned wins.

        Raises:
            NotFoundError: no emuji has this URI
            PoolTimeoutError / QueryError: as for the other queries
        """
        query = select(Emuji.song).where(Emuji.spotify_uri == uri)
        try:
            async with database.connect() as conn:
                result = await conn.execute(query)
                row = result.first()
        except (sa_exc.SQLAlchemyError, OSError) as exc:
            raise _database_error(exc, FETCH_ONE, spotify_uri=uri) from exc

        if row is None:
            raise NotFoundError(resource="emuji", resource_id=uri)

        logger.debug("data %s", row.song)
        return row.song


emuji_service = EmujiService()
