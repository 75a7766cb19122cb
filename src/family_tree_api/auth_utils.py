import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from passlib.context import CryptContext

from family_tree_api import config
from family_tree_api.errors import AuthError
from family_tree_api.schemas import UserClaim

logger = logging.getLogger(__name__)

_pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")
_bearer = HTTPBearer(auto_error=False)

NO_TOKEN = "Not authorized, no token provided."
TOKEN_FAILED = "Not authorized, token failed."


# PUBLIC_INTERFACE
def hash_password(password: str) -> str:
    """Hash a plaintext password (bcrypt, random salt)."""
    return _pwd_context.hash(password)


# PUBLIC_INTERFACE
def verify_password(password: str, password_hash: str) -> bool:
    """Verify a plaintext password against a stored hash."""
    try:
        return _pwd_context.verify(password, password_hash)
    except (ValueError, TypeError):
        # Unrecognized or corrupt hash in the store.
        return False


def _create_access_token(payload: Dict[str, Any], expires_delta: timedelta) -> str:
    to_encode = payload.copy()
    expire = datetime.now(timezone.utc) + expires_delta
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, config.jwt_secret(), algorithm=config.jwt_algorithm())


# PUBLIC_INTERFACE
def create_user_access_token(user_id: int, username: str) -> str:
    """Create a signed JWT carrying the user's id and username."""
    return _create_access_token(
        {"sub": str(user_id), "username": username},
        expires_delta=timedelta(minutes=config.jwt_expires_minutes()),
    )


# PUBLIC_INTERFACE
def decode_access_token(token: str) -> UserClaim:
    """
    Verify a token's signature and expiry and return its claim.

    Raises AuthError(TOKEN_FAILED) for anything that is not a valid,
    unexpired token issued by this service.
    """
    try:
        payload = jwt.decode(token, config.jwt_secret(), algorithms=[config.jwt_algorithm()])
        return UserClaim(id=int(payload["sub"]), username=str(payload["username"]))
    except (JWTError, KeyError, TypeError, ValueError) as exc:
        logger.info("Token verification failed: %s", exc)
        raise AuthError(TOKEN_FAILED)


# PUBLIC_INTERFACE
def get_current_claim(credentials: Optional[HTTPAuthorizationCredentials] = Depends(_bearer)) -> UserClaim:
    """Dependency that verifies the bearer token and returns the caller's identity."""
    if credentials is None or not credentials.credentials:
        raise AuthError(NO_TOKEN)
    if credentials.scheme != "Bearer":
        raise AuthError(NO_TOKEN)
    return decode_access_token(credentials.credentials)
