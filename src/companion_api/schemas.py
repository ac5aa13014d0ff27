"""
Pydantic models (request/response shapes) for API endpoints.

Field names follow the JSON keys the companion app sends and reads.
"""

from __future__ import annotations

import uuid
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field


class MessageResponse(BaseModel):
    message: str = Field(..., description="Human readable outcome.")


class SignupUser(BaseModel):
    username: str = Field(..., min_length=1, description="Display name.")
    email: EmailStr = Field(..., description="User email address (unique).")
    password: str = Field(..., min_length=1, description="User password.")
    gender: Optional[str] = Field(None, description="Self-described gender.")
    age: Optional[int] = Field(None, ge=0, description="Age in years.")


class SignupRequest(BaseModel):
    user: SignupUser


class LoginCredentials(BaseModel):
    email: EmailStr = Field(..., description="User email address.")
    password: str = Field(..., description="User password.")


class LoginRequest(BaseModel):
    userLogin: LoginCredentials


class UserDetails(BaseModel):
    id: uuid.UUID = Field(..., description="User UUID.")
    username: str
    email: str
    gender: Optional[str] = None
    age: Optional[int] = None
    listeningActivity: List[str] = Field(default_factory=list, description="Last played track ids, oldest first.")


class LoginResponse(BaseModel):
    message: str
    userDeets: UserDetails
    accessToken: str = Field(..., description="JWT access token for the Authorization header.")


class MediaLink(BaseModel):
    quality: Optional[str] = Field(None, description="Resolution or bitrate label, e.g. 500x500 or 320kbps.")
    link: str


class MusicData(BaseModel):
    """Track payload as produced by the music search client."""

    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(..., min_length=1, description="External track identifier.")
    name: str = Field(..., description="Display name; may contain HTML entities.")
    duration: Optional[int] = None
    primary_artists: Optional[str] = Field(None, alias="primaryArtists")
    language: Optional[str] = None
    url: Optional[str] = None
    image: List[MediaLink] = Field(default_factory=list, description="Artwork, smallest resolution first.")
    download_url: List[MediaLink] = Field(default_factory=list, alias="downloadUrl")
    uri: Optional[str] = Field(None, description="Provider URI, e.g. spotify:track:<id>.")

    acousticness: Optional[float] = None
    danceability: Optional[float] = None
    duration_ms: Optional[int] = None
    energy: Optional[float] = None
    instrumentalness: Optional[float] = None
    key: Optional[int] = None
    liveness: Optional[float] = None
    loudness: Optional[float] = None
    mode: Optional[int] = None
    speechiness: Optional[float] = None
    tempo: Optional[float] = None
    time_signature: Optional[int] = None
    valence: Optional[float] = None


class AddMusicRequest(BaseModel):
    musicData: MusicData


class ListeningHistoryRequest(BaseModel):
    currTrackId: str = Field(..., min_length=1)
    currUserId: uuid.UUID


class ListeningHistoryResponse(BaseModel):
    data: List[str] = Field(..., description="Listening history after the append, oldest first.")


class LastListenedResponse(BaseModel):
    lastListenedMusic: str


class AudioFeaturesResponse(BaseModel):
    uri: Optional[str] = None
    acousticness: Optional[float] = None
    danceability: Optional[float] = None
    duration_ms: Optional[int] = None
    energy: Optional[float] = None
    instrumentalness: Optional[float] = None
    key: Optional[int] = None
    liveness: Optional[float] = None
    loudness: Optional[float] = None
    mode: Optional[int] = None
    speechiness: Optional[float] = None
    tempo: Optional[float] = None
    time_signature: Optional[int] = None
    valence: Optional[float] = None
