import pytest
from fastapi.testclient import TestClient

from companion_api import db as db_module


@pytest.fixture
def app_env(monkeypatch, tmp_path):
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{tmp_path / 'companion.db'}")
    monkeypatch.setenv("JWT_SECRET", "test-secret")
    monkeypatch.delenv("DB_ENDPOINT", raising=False)
    db_module.reset_engine()
    yield
    db_module.reset_engine()


@pytest.fixture
def client(app_env):
    from companion_api.main import app

    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def db_session(client):
    """Session on the same database the client uses (tables already created)."""
    with db_module.get_db_session() as session:
        yield session


@pytest.fixture
def signup(client):
    """
    Usage:
      signup("a@x.com", "p") -> response of POST /signup
    """
    def _signup(email, password, username="listener", gender="female", age=27):
        return client.post(
            "/signup",
            json={"user": {"username": username, "email": email, "password": password, "gender": gender, "age": age}},
        )
    return _signup


@pytest.fixture
def login(client):
    def _login(email, password):
        return client.post("/login", json={"userLogin": {"email": email, "password": password}})
    return _login


@pytest.fixture
def user_id(signup, login):
    """Id of a freshly registered user."""
    assert signup("history@x.com", "secret").status_code == 201
    return login("history@x.com", "secret").json()["userDeets"]["id"]
