import mongomock
import pytest
from fastapi.testclient import TestClient

import database


@pytest.fixture
def store(monkeypatch):
    """An in-memory MongoDB database swapped in for the configured one."""
    db = mongomock.MongoClient(tz_aware=True)["restaurant_test"]
    monkeypatch.setattr(database, "db", db)
    return db


@pytest.fixture
def client(store, tmp_path, monkeypatch):
    import main
    from storage import FileStorage

    monkeypatch.setattr(main, "storage", FileStorage(str(tmp_path), "/media"))
    with TestClient(main.app) as c:
        yield c


def auth_header(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def signup(client):
    def _signup(email: str, role: str = "customer", password: str = "secret123", display_name: str = "") -> dict:
        resp = client.post("/auth/signup", json={
            "email": email,
            "password": password,
            "displayName": display_name or email.split("@")[0],
            "role": role,
        })
        assert resp.status_code == 200, resp.text
        return resp.json()
    return _signup
