"""
Emuji Backend: Pydantic Request/Response Schemas
===================================================

What:  Pydantic models defining the HTTP contract.
How:   FastAPI serializes the response models and documents them in OpenAPI.
       `VoteCreate` validates POST / bodies when vote recording is enabled.

Response envelope:
    Every successful GET answers {"message": "handled get request", "data": ...}.
    Failures are plain text (see exception handlers in main.py).
"""

from typing import Dict, List, Optional

from pydantic import BaseModel, Field, field_validator

HANDLED_GET = "handled get request"


class EmujiEntry(BaseModel):
    """One row of GET / output."""
    emoji: str = Field(description="The emoji picked for the track")
    artist: Optional[str] = Field(default=None, description="Track artist")
    song: Optional[str] = Field(default=None, description="Track title")
    spotify_uri: str = Field(description="Spotify track URI")

    model_config = {"from_attributes": True}


class EmujiListResponse(BaseModel):
    """
    What:  Body of GET /.
    Who:   Clients rendering the latest picks (at most 5).
    """
    message: str = Field(default=HANDLED_GET)
    data: List[EmujiEntry] = Field(description="Latest entries, newest first")


class SongResponse(BaseModel):
    """Body of GET /{spotify_uri}: the song title for the track."""
    message: str = Field(default=HANDLED_GET)
    data: Optional[str] = Field(description="Song title stored for the track")


class VoteCreate(BaseModel):
    """
    What:  A vote submitted to POST / (JSON or urlencoded form).
    How:   emoji and spotify_uri are required; artist and song are optional.
           Blank strings are rejected so a half-filled form is a 400, not a row.
    """
    emoji: str = Field(min_length=1, max_length=32)
    spotify_uri: str = Field(min_length=1, max_length=255)
    artist: Optional[str] = Field(default=None, max_length=255)
    song: Optional[str] = Field(default=None, max_length=255)

    @field_validator("emoji", "spotify_uri")
    @classmethod
    def not_blank(cls, v: str) -> str:
        stripped = v.strip()
        if not stripped:
            raise ValueError("must not be blank")
        return stripped


class HealthResponse(BaseModel):
    """
    What:  Health check response with database reachability and pool occupancy.
    Who:   Returned by GET /health for load balancer and uptime probes.
    """
    status: str = Field(description="Overall service status: healthy, unhealthy")
    version: str = Field(description="Application version")
    database: str = Field(description="Database connectivity: connected, disconnected")
    pool: Dict[str, int] = Field(description="Pool size, checked_in, checked_out and overflow counts")
    uptime_seconds: float = Field(description="Seconds since service started")
