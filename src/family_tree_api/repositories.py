"""
SQL access for the ``users`` and ``family_members`` tables.

Every family_members statement other than INSERT is filtered by both the
row id and the owning ``user_id``.
"""
from typing import Any, Dict, List, Optional

import psycopg2.errors

from family_tree_api.db import Database

_MEMBER_COLUMNS = "id, user_id, name, date_of_birth, gender, photo_url, bio, created_at, updated_at"
_UPDATABLE_MEMBER_COLUMNS = ("name", "date_of_birth", "gender", "photo_url", "bio")


class DuplicateUserError(Exception):
    """Raised when a username or email is already registered."""


class UserRepository:
    def __init__(self, db: Database) -> None:
        self._db = db

    def create(self, username: str, email: str, password_hash: str) -> int:
        """
        Insert a user and return its id.

        The duplicate check and the insert share one transaction; a unique
        violation from a concurrent registration is reported the same way.
        """
        try:
            with self._db.transaction() as cur:
                cur.execute(
                    "SELECT id FROM users WHERE email=%s OR username=%s",
                    [email, username],
                )
                if cur.fetchone():
                    raise DuplicateUserError(email)
                cur.execute(
                    "INSERT INTO users (username, email, password) VALUES (%s, %s, %s) RETURNING id",
                    [username, email, password_hash],
                )
                return int(cur.fetchone()["id"])
        except psycopg2.errors.UniqueViolation as exc:
            raise DuplicateUserError(email) from exc

    def get_by_email(self, email: str) -> Optional[Dict[str, Any]]:
        return self._db.fetch_one(
            "SELECT id, username, email, password FROM users WHERE email=%s",
            [email],
        )


class MemberRepository:
    def __init__(self, db: Database) -> None:
        self._db = db

    def create(self, user_id: int, fields: Dict[str, Any]) -> Dict[str, Any]:
        return self._db.execute_returning_one(
            f"""
            INSERT INTO family_members (user_id, name, date_of_birth, gender, photo_url, bio)
            VALUES (%s, %s, %s, %s, %s, %s)
            RETURNING {_MEMBER_COLUMNS}
            """,
            [
                user_id,
                fields["name"],
                fields.get("date_of_birth"),
                fields.get("gender"),
                fields.get("photo_url"),
                fields.get("bio"),
            ],
        )

    def list_for_owner(self, user_id: int) -> List[Dict[str, Any]]:
        return self._db.fetch_all(
            f"SELECT {_MEMBER_COLUMNS} FROM family_members WHERE user_id=%s ORDER BY id ASC",
            [user_id],
        )

    def get(self, user_id: int, member_id: int) -> Optional[Dict[str, Any]]:
        return self._db.fetch_one(
            f"SELECT {_MEMBER_COLUMNS} FROM family_members WHERE id=%s AND user_id=%s",
            [member_id, user_id],
        )

    def update(self, user_id: int, member_id: int, changes: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """Apply ``changes`` to an owned row; returns the updated row or None if nothing matched."""
        fields = []
        params: List[Any] = []
        for col in _UPDATABLE_MEMBER_COLUMNS:
            if col in changes:
                fields.append(f"{col}=%s")
                params.append(changes[col])
        if not fields:
            raise ValueError("No columns to update.")

        params.extend([member_id, user_id])
        return self._db.fetch_one(
            f"UPDATE family_members SET {', '.join(fields)}, updated_at=NOW() "
            f"WHERE id=%s AND user_id=%s RETURNING {_MEMBER_COLUMNS}",
            params,
        )

    def delete(self, user_id: int, member_id: int) -> int:
        return self._db.execute(
            "DELETE FROM family_members WHERE id=%s AND user_id=%s",
            [member_id, user_id],
        )
