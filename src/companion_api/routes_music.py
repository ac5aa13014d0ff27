"""
Music catalog endpoint:
- POST /addMusic

The first submission of a track id is stored; later submissions of the same id
leave the stored row untouched and get the same response.
"""

from __future__ import annotations

import html
import logging
from typing import List, Optional

from fastapi import APIRouter
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from companion_api.db import get_db_session
from companion_api.errors import InvalidTrackError
from companion_api.models import AUDIO_FEATURE_FIELDS, Track
from companion_api.schemas import AddMusicRequest, MediaLink, MessageResponse, MusicData

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Music"])

# Fixed variants kept from the multi-resolution lists (500x500 artwork, 320kbps stream).
IMAGE_VARIANT_INDEX = 2
DOWNLOAD_VARIANT_INDEX = 4


def _pick_link(links: List[MediaLink], index: int, field: str) -> str:
    if len(links) <= index:
        raise InvalidTrackError(f"musicData.{field} must contain at least {index + 1} entries.")
    return links[index].link


def _spotify_track_id(uri: Optional[str]) -> Optional[str]:
    """'spotify:track:<id>' -> '<id>'."""
    if not uri:
        return None
    parts = uri.split(":")
    return parts[2] if len(parts) > 2 else None


def build_track(music: MusicData) -> Track:
    """Map an incoming musicData payload to a new catalog row."""
    track = Track(
        track_id=music.id,
        track_name=html.unescape(music.name),
        duration=music.duration,
        primary_artists=music.primary_artists,
        language=music.language,
        track_url=music.url,
        track_image=_pick_link(music.image, IMAGE_VARIANT_INDEX, "image"),
        download_url=_pick_link(music.download_url, DOWNLOAD_VARIANT_INDEX, "downloadUrl"),
        spotify_track_id=_spotify_track_id(music.uri),
        play_count=0,
    )
    for field in AUDIO_FEATURE_FIELDS:
        setattr(track, field, getattr(music, field))
    return track


# PUBLIC_INTERFACE
def add_track(db: Session, music: MusicData) -> bool:
    """Insert the track unless its id is already stored. Returns True when a row was inserted."""
    existing = db.execute(select(Track.id).where(Track.track_id == music.id)).scalar_one_or_none()
    if existing is not None:
        return False

    db.add(build_track(music))
    try:
        db.flush()
    except IntegrityError:
        # Inserted concurrently by another request; keep that row.
        db.rollback()
        return False
    return True


@router.post(
    "/addMusic",
    response_model=MessageResponse,
    summary="Store track metadata",
    description="Stores a track and its audio features. Already stored track ids are left unchanged.",
    operation_id="add_music",
)
def add_music(req: AddMusicRequest) -> MessageResponse:
    """Store a track unless its id is already in the catalog."""
    with get_db_session() as db:
        inserted = add_track(db, req.musicData)

    logger.info("add_music: track_id=%s inserted=%s", req.musicData.id, inserted)
    return MessageResponse(message="Music Details stored successfully")
