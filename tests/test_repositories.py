"""
Tests for the SQL emitted by the repositories.

The Database is a mock; these check statement shape and parameters,
in particular that owner filters are always applied.
"""
from datetime import date
from unittest.mock import MagicMock

import psycopg2.errors
import pytest

from family_tree_api.db import Database
from family_tree_api.repositories import DuplicateUserError, MemberRepository, UserRepository


@pytest.fixture
def db():
    return MagicMock(spec=Database)


@pytest.fixture
def cursor(db):
    cur = MagicMock()
    db.transaction.return_value.__enter__.return_value = cur
    return cur


class TestUserRepository:
    def test_create_returns_new_id(self, db, cursor):
        cursor.fetchone.side_effect = [None, {"id": 7}]
        assert UserRepository(db).create("alice", "a@example.com", "hash") == 7

        check_sql, check_params = cursor.execute.call_args_list[0].args
        assert "email=%s OR username=%s" in check_sql
        assert check_params == ["a@example.com", "alice"]
        insert_sql, insert_params = cursor.execute.call_args_list[1].args
        assert insert_sql.startswith("INSERT INTO users")
        assert insert_params == ["alice", "a@example.com", "hash"]

    def test_create_existing_user_raises(self, db, cursor):
        cursor.fetchone.return_value = {"id": 1}
        with pytest.raises(DuplicateUserError):
            UserRepository(db).create("alice", "a@example.com", "hash")
        assert cursor.execute.call_count == 1

    def test_unique_violation_is_duplicate(self, db, cursor):
        cursor.fetchone.return_value = None
        cursor.execute.side_effect = [None, psycopg2.errors.UniqueViolation("duplicate key")]
        with pytest.raises(DuplicateUserError):
            UserRepository(db).create("alice", "a@example.com", "hash")

    def test_get_by_email(self, db):
        db.fetch_one.return_value = {"id": 1, "email": "a@example.com"}
        assert UserRepository(db).get_by_email("a@example.com")["id"] == 1
        sql, params = db.fetch_one.call_args.args
        assert "WHERE email=%s" in sql
        assert params == ["a@example.com"]


class TestMemberRepository:
    def test_create_fills_missing_optionals_with_none(self, db):
        db.execute_returning_one.return_value = {"id": 3}
        MemberRepository(db).create(5, {"name": "Grandma"})
        sql, params = db.execute_returning_one.call_args.args
        assert "INSERT INTO family_members" in sql
        assert "RETURNING" in sql
        assert params == [5, "Grandma", None, None, None, None]

    def test_list_is_owner_scoped_and_ordered(self, db):
        db.fetch_all.return_value = []
        assert MemberRepository(db).list_for_owner(5) == []
        sql, params = db.fetch_all.call_args.args
        assert "WHERE user_id=%s" in sql
        assert "ORDER BY id ASC" in sql
        assert params == [5]

    def test_get_filters_on_id_and_owner(self, db):
        db.fetch_one.return_value = None
        assert MemberRepository(db).get(5, 9) is None
        sql, params = db.fetch_one.call_args.args
        assert "WHERE id=%s AND user_id=%s" in sql
        assert params == [9, 5]

    def test_update_sets_only_supplied_columns(self, db):
        db.fetch_one.return_value = {"id": 9}
        dob = date(1950, 1, 2)
        MemberRepository(db).update(5, 9, {"bio": None, "date_of_birth": dob})
        sql, params = db.fetch_one.call_args.args
        assert sql.startswith("UPDATE family_members SET date_of_birth=%s, bio=%s, updated_at=NOW()")
        assert "WHERE id=%s AND user_id=%s RETURNING" in sql
        assert "name=%s" not in sql
        assert params == [dob, None, 9, 5]

    def test_update_without_updatable_columns_raises(self, db):
        with pytest.raises(ValueError):
            MemberRepository(db).update(5, 9, {"user_id": 6})
        db.fetch_one.assert_not_called()

    def test_delete_returns_rowcount(self, db):
        db.execute.return_value = 0
        assert MemberRepository(db).delete(5, 9) == 0
        sql, params = db.execute.call_args.args
        assert sql == "DELETE FROM family_members WHERE id=%s AND user_id=%s"
        assert params == [9, 5]
