"""
Per-user listening history capped at the most recent five tracks.

Appending locks the user row, inserts one entry and deletes everything older
than the newest HISTORY_CAPACITY rows. Plays for the same user are serialised
on that lock, so no committed state ever holds more than HISTORY_CAPACITY rows.
"""

from __future__ import annotations

import logging
import uuid
from typing import List

from sqlalchemy import delete, desc, select
from sqlalchemy.orm import Session

from companion_api.errors import HistoryEmptyError, NotFoundError
from companion_api.models import ListeningEvent, User

logger = logging.getLogger(__name__)

HISTORY_CAPACITY = 5


def _require_user(db: Session, user_id: uuid.UUID, lock: bool = False) -> None:
    stmt = select(User.id).where(User.id == user_id)
    if lock:
        stmt = stmt.with_for_update()
    found = db.execute(stmt).scalar_one_or_none()
    if found is None:
        raise NotFoundError("User not found")


def listening_history(db: Session, user_id: uuid.UUID) -> List[str]:
    """Return the user's history, oldest first."""
    rows = db.execute(
        select(ListeningEvent.track_id).where(ListeningEvent.user_id == user_id).order_by(ListeningEvent.id)
    )
    return list(rows.scalars())


# PUBLIC_INTERFACE
def record_play(db: Session, user_id: uuid.UUID, track_id: str) -> List[str]:
    """Append track_id to the user's history, evicting the oldest entries beyond capacity."""
    _require_user(db, user_id, lock=True)

    db.add(ListeningEvent(user_id=user_id, track_id=track_id))
    db.flush()

    newest = (
        select(ListeningEvent.id)
        .where(ListeningEvent.user_id == user_id)
        .order_by(desc(ListeningEvent.id))
        .limit(HISTORY_CAPACITY)
    )
    result = db.execute(
        delete(ListeningEvent).where(
            ListeningEvent.user_id == user_id,
            ListeningEvent.id.not_in(newest.scalar_subquery()),
        ),
        execution_options={"synchronize_session": False},
    )
    if result.rowcount:
        logger.debug("history_evicted: user_id=%s rows=%s", user_id, result.rowcount)

    return listening_history(db, user_id)


# PUBLIC_INTERFACE
def last_played(db: Session, user_id: uuid.UUID) -> str:
    """Return the most recently played track id."""
    _require_user(db, user_id)

    track_id = db.execute(
        select(ListeningEvent.track_id)
        .where(ListeningEvent.user_id == user_id)
        .order_by(desc(ListeningEvent.id))
        .limit(1)
    ).scalar_one_or_none()
    if track_id is None:
        raise HistoryEmptyError("Listening history is empty.")
    return track_id
