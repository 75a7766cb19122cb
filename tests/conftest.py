"""
Shared pytest fixtures.

HTTP tests run the real FastAPI app with the PostgreSQL repositories
swapped for in-memory ones through ``app.dependency_overrides``.
"""
import itertools
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import pytest
from fastapi.testclient import TestClient

from family_tree_api.main import app, get_auth_service, get_member_service
from family_tree_api.repositories import DuplicateUserError
from family_tree_api.services import AuthService, MemberService

TEST_SECRET = "test-secret-key"


# ---------------------------------------------------------------------------
# In-memory repositories
# ---------------------------------------------------------------------------

class InMemoryUserRepository:
    def __init__(self) -> None:
        self.rows: List[Dict[str, Any]] = []
        self._ids = itertools.count(1)

    def create(self, username: str, email: str, password_hash: str) -> int:
        if any(r["email"] == email or r["username"] == username for r in self.rows):
            raise DuplicateUserError(email)
        row = {"id": next(self._ids), "username": username, "email": email, "password": password_hash}
        self.rows.append(row)
        return row["id"]

    def get_by_email(self, email: str) -> Optional[Dict[str, Any]]:
        for r in self.rows:
            if r["email"] == email:
                return dict(r)
        return None


class InMemoryMemberRepository:
    def __init__(self) -> None:
        self.rows: List[Dict[str, Any]] = []
        self._ids = itertools.count(1)

    def _find(self, user_id: int, member_id: int) -> Optional[Dict[str, Any]]:
        for r in self.rows:
            if r["id"] == member_id and r["user_id"] == user_id:
                return r
        return None

    def create(self, user_id: int, fields: Dict[str, Any]) -> Dict[str, Any]:
        now = datetime.now(timezone.utc)
        row = {
            "id": next(self._ids),
            "user_id": user_id,
            "name": fields["name"],
            "date_of_birth": fields.get("date_of_birth"),
            "gender": fields.get("gender"),
            "photo_url": fields.get("photo_url"),
            "bio": fields.get("bio"),
            "created_at": now,
            "updated_at": now,
        }
        self.rows.append(row)
        return dict(row)

    def list_for_owner(self, user_id: int) -> List[Dict[str, Any]]:
        return [dict(r) for r in self.rows if r["user_id"] == user_id]

    def get(self, user_id: int, member_id: int) -> Optional[Dict[str, Any]]:
        row = self._find(user_id, member_id)
        return dict(row) if row else None

    def update(self, user_id: int, member_id: int, changes: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        row = self._find(user_id, member_id)
        if row is None:
            return None
        row.update(changes)
        row["updated_at"] = datetime.now(timezone.utc)
        return dict(row)

    def delete(self, user_id: int, member_id: int) -> int:
        row = self._find(user_id, member_id)
        if row is None:
            return 0
        self.rows.remove(row)
        return 1


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture(autouse=True)
def jwt_env(monkeypatch):
    monkeypatch.setenv("JWT_SECRET", TEST_SECRET)
    monkeypatch.setenv("JWT_ALGORITHM", "HS256")
    monkeypatch.setenv("JWT_EXPIRES_MINUTES", "60")


@pytest.fixture
def user_repo():
    return InMemoryUserRepository()


@pytest.fixture
def member_repo():
    return InMemoryMemberRepository()


@pytest.fixture
def client(user_repo, member_repo):
    app.dependency_overrides[get_auth_service] = lambda: AuthService(user_repo)
    app.dependency_overrides[get_member_service] = lambda: MemberService(member_repo)
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers(client):
    """Return a helper that registers + logs in a user and returns its Authorization header."""

    def _login(username: str = "alice", email: str = "a@example.com", password: str = "pw123456") -> Dict[str, str]:
        resp = client.post("/api/auth/register", json={"username": username, "email": email, "password": password})
        assert resp.status_code == 201, resp.text
        resp = client.post("/api/auth/login", json={"email": email, "password": password})
        assert resp.status_code == 200, resp.text
        return {"Authorization": f"Bearer {resp.json()['token']}"}

    return _login
