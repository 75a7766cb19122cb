import logging
import os
import sys
from typing import List

from dotenv import load_dotenv

load_dotenv()


def _required_env(name: str) -> str:
    value = os.getenv(name)
    if not value:
        raise RuntimeError(
            f"Missing required environment variable '{name}'. "
            "Set it in the environment or in the .env file."
        )
    return value


def _bool_env(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


# PUBLIC_INTERFACE
def port() -> int:
    """Port the HTTP server listens on."""
    return int(os.getenv("PORT", "5000"))


# PUBLIC_INTERFACE
def host() -> str:
    return os.getenv("HOST", "0.0.0.0")


# PUBLIC_INTERFACE
def database_dsn() -> str:
    """
    Build DSN from the database env vars.

    Uses:
      - POSTGRES_URL (optional full DSN; if provided, it wins)
      - POSTGRES_USER, POSTGRES_PASSWORD, POSTGRES_DB, POSTGRES_PORT
      - POSTGRES_HOST (defaults to localhost)
    """
    url = os.getenv("POSTGRES_URL")
    if url:
        return url

    user = _required_env("POSTGRES_USER")
    password = _required_env("POSTGRES_PASSWORD")
    db = _required_env("POSTGRES_DB")
    db_port = os.getenv("POSTGRES_PORT", "5432")
    db_host = os.getenv("POSTGRES_HOST", "localhost")
    return f"postgresql://{user}:{password}@{db_host}:{db_port}/{db}"


# PUBLIC_INTERFACE
def pool_min() -> int:
    return int(os.getenv("DB_POOL_MIN", "1"))


# PUBLIC_INTERFACE
def pool_max() -> int:
    return int(os.getenv("DB_POOL_MAX", "10"))


# PUBLIC_INTERFACE
def init_schema_on_startup() -> bool:
    """Whether the packaged schema.sql is applied when the app starts."""
    return _bool_env("DB_INIT_SCHEMA")


# PUBLIC_INTERFACE
def jwt_secret() -> str:
    # Required for security; do not default.
    return _required_env("JWT_SECRET")


# PUBLIC_INTERFACE
def jwt_algorithm() -> str:
    return os.getenv("JWT_ALGORITHM", "HS256")


# PUBLIC_INTERFACE
def jwt_expires_minutes() -> int:
    return int(os.getenv("JWT_EXPIRES_MINUTES", "60"))  # default: 1 hour


# PUBLIC_INTERFACE
def cors_allow_origins() -> List[str]:
    """Allowed CORS origins; all by default. Comma separated in CORS_ALLOW_ORIGINS."""
    env_val = os.getenv("CORS_ALLOW_ORIGINS")
    if not env_val:
        return ["*"]
    return [o.strip() for o in env_val.split(",") if o.strip()]


# PUBLIC_INTERFACE
def configure_logging() -> None:
    """Configure root logging once for the process."""
    level = os.getenv("LOG_LEVEL", "INFO").upper()
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s  %(levelname)-8s  %(name)s - %(message)s",
        stream=sys.stdout,
    )
    for _noisy in ("passlib", "httpx"):
        logging.getLogger(_noisy).setLevel(logging.WARNING)
