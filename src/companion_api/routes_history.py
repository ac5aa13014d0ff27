"""
Listening history endpoints:
- POST /addMusicToListeningHistory
- GET /getLastListenedMusic
"""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Query

from companion_api.db import get_db_session
from companion_api.history import last_played, record_play
from companion_api.schemas import LastListenedResponse, ListeningHistoryRequest, ListeningHistoryResponse

router = APIRouter(tags=["History"])


@router.post(
    "/addMusicToListeningHistory",
    response_model=ListeningHistoryResponse,
    summary="Record a played track",
    description="Appends the track to the user's last-five history and returns the resulting history.",
    operation_id="add_music_to_listening_history",
)
def add_music_to_listening_history(req: ListeningHistoryRequest) -> ListeningHistoryResponse:
    """Record a play and return the updated last-five history."""
    with get_db_session() as db:
        history = record_play(db, req.currUserId, req.currTrackId)
    return ListeningHistoryResponse(data=history)


@router.get(
    "/getLastListenedMusic",
    response_model=LastListenedResponse,
    summary="Last played track",
    description="Returns the id of the user's most recently played track.",
    operation_id="get_last_listened_music",
)
def get_last_listened_music(currUserId: uuid.UUID = Query(..., description="User UUID.")) -> LastListenedResponse:
    """Return the id of the most recently played track."""
    with get_db_session() as db:
        track_id = last_played(db, currUserId)
    return LastListenedResponse(lastListenedMusic=track_id)
