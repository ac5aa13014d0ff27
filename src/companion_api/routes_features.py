"""
Audio features endpoint:
- GET /song-audio-features?songName=...
"""

from __future__ import annotations

from functools import lru_cache

from fastapi import APIRouter, Depends, Query

from companion_api.metadata import MetadataGateway, gateway_from_env
from companion_api.schemas import AudioFeaturesResponse

router = APIRouter(tags=["Features"])


@lru_cache(maxsize=1)
def get_metadata_gateway() -> MetadataGateway:
    """Process-wide gateway; override this dependency to inject another one."""
    return gateway_from_env()


@router.get(
    "/song-audio-features",
    response_model=AudioFeaturesResponse,
    summary="Audio features of a song",
    description="Searches the provider catalog by name and returns the first match's audio features.",
    operation_id="song_audio_features",
)
def song_audio_features(
    songName: str = Query(..., min_length=1, description="Track name to search for."),
    gateway: MetadataGateway = Depends(get_metadata_gateway),
) -> AudioFeaturesResponse:
    """Look up audio features for a song name via the metadata provider."""
    return AudioFeaturesResponse(**gateway.audio_features(songName))
