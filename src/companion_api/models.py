"""
SQLAlchemy models for users, their listening history and the music catalog.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import DateTime, Float, ForeignKey, Integer, Text, Uuid
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship

# Audio-feature columns shared by the catalog and the provider projection.
AUDIO_FEATURE_FIELDS = (
    "acousticness",
    "danceability",
    "duration_ms",
    "energy",
    "instrumentalness",
    "key",
    "liveness",
    "loudness",
    "mode",
    "speechiness",
    "tempo",
    "time_signature",
    "valence",
)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    """Base class for all ORM models."""


class User(Base):
    """User account row (email + password hash)."""

    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    username: Mapped[str] = mapped_column(Text, nullable=False)
    email: Mapped[str] = mapped_column(Text, nullable=False, unique=True, index=True)
    password_hash: Mapped[str] = mapped_column(Text, nullable=False)
    gender: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    age: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow)

    listening_history: Mapped[list["ListeningEvent"]] = relationship(
        "ListeningEvent",
        back_populates="user",
        order_by="ListeningEvent.id",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )


class ListeningEvent(Base):
    """One entry of a user's capped listening history; order is the id order."""

    __tablename__ = "listening_history"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    track_id: Mapped[str] = mapped_column(Text, nullable=False)
    played_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow)

    user: Mapped[User] = relationship("User", back_populates="listening_history")


class Track(Base):
    """Catalog row: track metadata, links and audio features."""

    __tablename__ = "music"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    track_id: Mapped[str] = mapped_column(Text, nullable=False, unique=True, index=True)
    track_name: Mapped[str] = mapped_column(Text, nullable=False)
    duration: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    primary_artists: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    language: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    track_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    track_image: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    download_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    spotify_track_id: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    acousticness: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    danceability: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    duration_ms: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    energy: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    instrumentalness: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    key: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    liveness: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    loudness: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    mode: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    speechiness: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    tempo: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    time_signature: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    valence: Mapped[Optional[float]] = mapped_column(Float, nullable=True)

    play_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow)
