"""
Emuji Backend: SQLAlchemy Models
===================================

What:  ORM models for the `emujis` and `votes` tables.
How:   Inherit from the shared DeclarativeBase; Alembic revision 001 creates
       the same tables. The service layer queries them through SQLAlchemy Core
       (`select(Emuji.song)`, `insert(Vote)`) on pooled connections.

Tables:
    emujis  Song picks keyed by Spotify track URI. Read-only for this service.
    votes   One row per recorded vote (POST / with vote recording enabled).
"""

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import DateTime, Index, Integer, String, text
from sqlalchemy.orm import Mapped, mapped_column

from emuji.database import Base


class Emuji(Base):
    """
    An emoji associated with a song.

    Query Patterns:
        - Latest entries: SELECT emoji, artist, song, spotify_uri ... ORDER BY id DESC LIMIT 5
        - Song by track:  SELECT song ... WHERE spotify_uri = :uri
          → Uses idx_emujis_spotify_uri
    """

    __tablename__ = "emujis"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    emoji: Mapped[str] = mapped_column(String(32), nullable=False)
    artist: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    song: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    # Format: spotify:track:<base62 id>
    spotify_uri: Mapped[str] = mapped_column(String(255), nullable=False)

    __table_args__ = (
        Index("idx_emujis_spotify_uri", "spotify_uri"),
    )

    def __repr__(self) -> str:
        return f"<Emuji(id={self.id}, emoji='{self.emoji}', spotify_uri='{self.spotify_uri}')>"


class Vote(Base):
    """
    A single vote for an emoji/track pairing.

    No uniqueness constraint: the same client may vote for the same track
    any number of times.
    """

    __tablename__ = "votes"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    emoji: Mapped[str] = mapped_column(String(32), nullable=False)
    artist: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    song: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    spotify_uri: Mapped[str] = mapped_column(String(255), nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        server_default=text("CURRENT_TIMESTAMP"),
    )

    def __repr__(self) -> str:
        return f"<Vote(id={self.id}, emoji='{self.emoji}', spotify_uri='{self.spotify_uri}')>"
