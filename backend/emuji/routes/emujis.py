"""
Emuji Backend: Emuji Route Handlers
======================================

What:  GET / (latest emujis), GET /{spotify_uri} (song for a track), POST / (vote).
How:   Handlers stay thin: pull the pooled `Database` from the dependency,
       call EmujiService, wrap the result in the response envelope. Failures
       propagate as typed exceptions and are turned into plain-text responses
       by the handlers registered in emuji.main.

POST / behaviour:
    record_votes = False (default)  acknowledge only, nothing is stored
    record_votes = True             validate the body as a VoteCreate and insert it
"""

import json
import logging
from typing import Any, Dict

from fastapi import APIRouter, Depends, Request
from fastapi.responses import PlainTextResponse
from pydantic import ValidationError as PydanticValidationError

from emuji.config import Settings
from emuji.database import Database, get_database
from emuji.exceptions import ValidationError
from emuji.schemas.emuji import EmujiListResponse, SongResponse, VoteCreate
from emuji.services.emuji_service import emuji_service

logger = logging.getLogger(__name__)

POST_HANDLED = "successfully handled post request"

router = APIRouter(tags=["Emujis"])


def get_settings(request: Request) -> Settings:
    """Settings the app was created with."""
    return request.app.state.settings


async def read_vote_payload(request: Request) -> Dict[str, Any]:
    """
    Decode a POST body sent either as JSON or as an urlencoded/multipart form.

    An empty body decodes to {} so validation reports the missing fields.
    """
    content_type = request.headers.get("content-type", "")
    if content_type.startswith(("application/x-www-form-urlencoded", "multipart/form-data")):
        form = await request.form()
        return {key: value for key, value in form.items() if isinstance(value, str)}

    body = await request.body()
    if not body.strip():
        return {}
    try:
        payload = json.loads(body)
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise ValidationError(context={"reason": "body is not valid JSON"}) from exc
    if not isinstance(payload, dict):
        raise ValidationError(context={"reason": "body must be a JSON object"})
    return payload


@router.get(
    "/",
    response_model=EmujiListResponse,
    responses={500: {"description": "unable to fetch emujis", "content": {"text/plain": {}}}},
    summary="Latest emujis",
)
async def list_emujis(database: Database = Depends(get_database)) -> EmujiListResponse:
    """At most five entries, newest first."""
    entries = await emuji_service.list_recent_entries(database)
    return EmujiListResponse(data=entries)


@router.get(
    "/{spotify_uri}",
    response_model=SongResponse,
    responses={
        404: {"description": "emuji not found", "content": {"text/plain": {}}},
        500: {"description": "unable to fetch emuji", "content": {"text/plain": {}}},
    },
    summary="Song title for a Spotify track URI",
)
async def get_emuji(
    spotify_uri: str,
    database: Database = Depends(get_database),
) -> SongResponse:
    song = await emuji_service.get_entry_by_uri(database, spotify_uri)
    return SongResponse(data=song)


@router.post(
    "/",
    response_class=PlainTextResponse,
    responses={
        400: {"description": "invalid vote", "content": {"text/plain": {}}},
        500: {"description": "unable to record vote", "content": {"text/plain": {}}},
    },
    summary="Submit a vote",
)
async def post_vote(
    request: Request,
    database: Database = Depends(get_database),
    settings: Settings = Depends(get_settings),
) -> PlainTextResponse:
    """
    Acknowledge a vote submission.

    Nothing is persisted unless the app runs with RECORD_VOTES=true; then a
    valid body becomes exactly one row in `votes` and a malformed one is
    rejected with 400 before touching the database.
    """
    if not settings.record_votes:
        return PlainTextResponse(POST_HANDLED)

    payload = await read_vote_payload(request)
    try:
        vote = VoteCreate.model_validate(payload)
    except PydanticValidationError as exc:
        fields = [".".join(str(part) for part in err["loc"]) for err in exc.errors()]
        raise ValidationError(context={"fields": fields}) from exc

    await emuji_service.insert_vote(database, vote)
    return PlainTextResponse(POST_HANDLED)
