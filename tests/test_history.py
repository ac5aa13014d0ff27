import uuid

import pytest
from sqlalchemy import func, select

from companion_api.history import HISTORY_CAPACITY, last_played, record_play
from companion_api.models import ListeningEvent


def _play(client, user_id, track_id):
    return client.post("/addMusicToListeningHistory", json={"currTrackId": track_id, "currUserId": user_id})


def test_six_plays_keep_last_five(client, user_id):
    for n in range(1, 7):
        response = _play(client, user_id, f"t{n}")
        assert response.status_code == 200

    assert response.json() == {"data": ["t2", "t3", "t4", "t5", "t6"]}

    last = client.get("/getLastListenedMusic", params={"currUserId": user_id})
    assert last.status_code == 200
    assert last.json() == {"lastListenedMusic": "t6"}


@pytest.mark.parametrize("plays", [1, 2, 4, 5, 6, 9, 12])
def test_history_is_last_min_n_5_in_order(client, user_id, plays):
    tracks = [f"track-{i}" for i in range(plays)]
    for track_id in tracks:
        history = _play(client, user_id, track_id).json()["data"]

    assert history == tracks[-min(plays, HISTORY_CAPACITY):]


def test_first_play_starts_history(client, user_id):
    assert _play(client, user_id, "only").json() == {"data": ["only"]}


def test_repeated_track_is_kept_as_separate_entries(client, user_id):
    for track_id in ["a", "a", "b"]:
        history = _play(client, user_id, track_id).json()["data"]
    assert history == ["a", "a", "b"]


def test_history_rows_never_exceed_capacity(client, user_id, db_session):
    for n in range(8):
        _play(client, user_id, f"t{n}")

    rows = db_session.execute(select(func.count()).select_from(ListeningEvent)).scalar_one()
    assert rows == HISTORY_CAPACITY


def test_histories_are_per_user(client, signup, login, user_id):
    signup("other@x.com", "p")
    other_id = login("other@x.com", "p").json()["userDeets"]["id"]

    for n in range(6):
        _play(client, user_id, f"mine-{n}")
    _play(client, other_id, "theirs")

    assert client.get("/getLastListenedMusic", params={"currUserId": other_id}).json() == {
        "lastListenedMusic": "theirs"
    }
    assert _play(client, other_id, "theirs-2").json() == {"data": ["theirs", "theirs-2"]}


def test_login_returns_current_history(client, login, user_id):
    for n in range(3):
        _play(client, user_id, f"t{n}")

    details = login("history@x.com", "secret").json()["userDeets"]
    assert details["listeningActivity"] == ["t0", "t1", "t2"]


def test_last_played_with_empty_history_is_an_error(client, user_id):
    response = client.get("/getLastListenedMusic", params={"currUserId": user_id})
    assert response.status_code == 500
    assert response.json() == {"message": "Listening history is empty."}


def test_unknown_user_is_not_found(client):
    missing = str(uuid.uuid4())

    assert _play(client, missing, "t1").status_code == 404
    response = client.get("/getLastListenedMusic", params={"currUserId": missing})
    assert response.status_code == 404
    assert response.json() == {"message": "User not found"}


def test_malformed_user_id_is_rejected(client):
    assert _play(client, "not-a-uuid", "t1").status_code == 422
    assert client.get("/getLastListenedMusic", params={"currUserId": "nope"}).status_code == 422


def test_record_play_in_one_session(client, user_id, db_session):
    uid = uuid.UUID(user_id)
    for n in range(7):
        history = record_play(db_session, uid, f"s{n}")
    assert history == ["s2", "s3", "s4", "s5", "s6"]


def test_database_failure_is_reported_without_driver_details(client, user_id, monkeypatch):
    from sqlalchemy.exc import OperationalError

    from companion_api import routes_history

    def _broken(db, uid, track_id):
        raise OperationalError("INSERT ...", {}, Exception("password=hunter2"))

    monkeypatch.setattr(routes_history, "record_play", _broken)

    response = _play(client, user_id, "t1")
    assert response.status_code == 500
    assert response.json() == {"message": "Backend database error (OperationalError)."}


class _RecordingSession:
    """Forwards to a real session and keeps every statement passed to execute()."""

    def __init__(self, session):
        self._session = session
        self.statements = []

    def execute(self, statement, *args, **kwargs):
        self.statements.append(statement)
        return self._session.execute(statement, *args, **kwargs)

    def __getattr__(self, name):
        return getattr(self._session, name)


def test_record_play_locks_the_user_row_first(client, user_id, db_session):
    from sqlalchemy.dialects import postgresql

    recording = _RecordingSession(db_session)
    record_play(recording, uuid.UUID(user_id), "t1")

    first = str(recording.statements[0].compile(dialect=postgresql.dialect()))
    assert first.startswith("SELECT users.id")
    assert first.rstrip().endswith("FOR UPDATE")


def test_last_played_does_not_lock(client, user_id, db_session):
    from sqlalchemy.dialects import postgresql

    _play(client, user_id, "t1")
    recording = _RecordingSession(db_session)
    assert last_played(recording, uuid.UUID(user_id)) == "t1"

    compiled = [str(s.compile(dialect=postgresql.dialect())) for s in recording.statements]
    assert not any("FOR UPDATE" in sql for sql in compiled)
