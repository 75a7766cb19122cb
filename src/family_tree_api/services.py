"""
Auth and family-member services.

Services take their repositories in the constructor and raise the
``errors`` taxonomy; store failures become ``ServerError``.
"""
import logging
from contextlib import contextmanager
from typing import Any, Dict, List, Optional

import psycopg2

from family_tree_api.auth_utils import create_user_access_token, hash_password, verify_password
from family_tree_api.errors import AuthError, ConflictError, NotFoundError, ServerError, ValidationError
from family_tree_api.repositories import DuplicateUserError, MemberRepository, UserRepository
from family_tree_api.schemas import MemberCreate, MemberUpdate, UserClaim

logger = logging.getLogger(__name__)

INVALID_CREDENTIALS = "Invalid credentials."
MEMBER_NOT_FOUND = "Family member not found or not authorized."


@contextmanager
def _store_errors(message: str):
    try:
        yield
    except psycopg2.Error as exc:
        logger.exception(message)
        raise ServerError(message, exc)


class AuthService:
    def __init__(self, users: UserRepository) -> None:
        self._users = users

    # PUBLIC_INTERFACE
    def register(self, username: Optional[str], email: Optional[str], password: Optional[str]) -> int:
        """Create a user and return its id."""
        if not username or not email or not password:
            raise ValidationError("Please provide username, email, and password.")

        email = email.lower()
        with _store_errors("Server error during registration."):
            try:
                user_id = self._users.create(username, email, hash_password(password))
            except DuplicateUserError:
                raise ConflictError("User already exists with this email or username.")

        logger.info("Registered user %s (%s)", username, user_id)
        return user_id

    # PUBLIC_INTERFACE
    def login(self, email: Optional[str], password: Optional[str]) -> Dict[str, Any]:
        """Check credentials; returns ``{"token", "user": {id, username, email}}``."""
        if not email or not password:
            raise ValidationError("Please provide email and password.")

        with _store_errors("Server error during login."):
            user = self._users.get_by_email(email.lower())

        if not user or not verify_password(password, user["password"]):
            logger.info("Failed login for %s", email)
            raise AuthError(INVALID_CREDENTIALS)

        token = create_user_access_token(user["id"], user["username"])
        logger.info("Login: %s (%s)", user["username"], user["id"])
        return {
            "token": token,
            "user": {"id": user["id"], "username": user["username"], "email": user["email"]},
        }


class MemberService:
    """CRUD on family members, always scoped to the caller's own rows."""

    def __init__(self, members: MemberRepository) -> None:
        self._members = members

    @staticmethod
    def _owner_id(claim: Optional[UserClaim]) -> int:
        if claim is None or not claim.id:
            raise AuthError("User not authenticated.")
        return claim.id

    # PUBLIC_INTERFACE
    def create(self, claim: Optional[UserClaim], payload: MemberCreate) -> Dict[str, Any]:
        owner_id = self._owner_id(claim)
        if not payload.name or not payload.name.strip():
            raise ValidationError("Name is a required field.")

        with _store_errors("Server error while creating family member."):
            member = self._members.create(owner_id, payload.model_dump())
        logger.info("User %s created family member %s", owner_id, member["id"])
        return member

    # PUBLIC_INTERFACE
    def list(self, claim: Optional[UserClaim]) -> List[Dict[str, Any]]:
        owner_id = self._owner_id(claim)
        with _store_errors("Server error while fetching family members."):
            return self._members.list_for_owner(owner_id)

    # PUBLIC_INTERFACE
    def get(self, claim: Optional[UserClaim], member_id: int) -> Dict[str, Any]:
        owner_id = self._owner_id(claim)
        with _store_errors("Server error while fetching family member."):
            member = self._members.get(owner_id, member_id)
        if not member:
            raise NotFoundError(MEMBER_NOT_FOUND)
        return member

    # PUBLIC_INTERFACE
    def update(self, claim: Optional[UserClaim], member_id: int, payload: MemberUpdate) -> Dict[str, Any]:
        """Apply only the supplied fields; returns the full row after the update."""
        owner_id = self._owner_id(claim)
        if payload.is_empty():
            raise ValidationError("No update data provided.")
        changes = payload.changes()
        if not changes:
            raise ValidationError("No valid fields provided for update.")
        if "name" in changes and (not changes["name"] or not changes["name"].strip()):
            raise ValidationError("Name cannot be empty if provided for update.")

        with _store_errors("Server error while updating family member."):
            member = self._members.update(owner_id, member_id, changes)
        if not member:
            raise NotFoundError(MEMBER_NOT_FOUND)
        logger.info("User %s updated family member %s (%s)", owner_id, member_id, ", ".join(sorted(changes)))
        return member

    # PUBLIC_INTERFACE
    def delete(self, claim: Optional[UserClaim], member_id: int) -> None:
        owner_id = self._owner_id(claim)
        with _store_errors("Server error while deleting family member."):
            affected = self._members.delete(owner_id, member_id)
        if affected == 0:
            raise NotFoundError(MEMBER_NOT_FOUND)
        logger.info("User %s deleted family member %s", owner_id, member_id)
