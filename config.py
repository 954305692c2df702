"""Settings loaded from environment variables (+ optional .env file).

One frozen Settings object for the whole app. Nothing here requires secrets at
import time: when no secret key is configured a random one is generated for
the lifetime of the process, which invalidates sessions on restart.
"""

import os
import secrets
from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv

ENV_PREFIX = "PRODUCTIVITY"

load_dotenv(override=False)


def _k(suffix: str) -> str:
    return f"{ENV_PREFIX}_{suffix}"


def _env(name: str, default: str = "") -> str:
    v = os.getenv(name)
    return default if v is None else v


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_list(name: str, default: List[str]) -> List[str]:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return list(default)
    return [p.strip() for p in raw.replace(",", " ").split() if p.strip()]


def normalize_database_url(url: str) -> str:
    # Heroku/Railway style URLs still use the old scheme name
    if url.startswith("postgres://"):
        return "postgresql://" + url[len("postgres://"):]
    return url


@dataclass(frozen=True)
class Settings:
    database_url: str = "sqlite:///./productivity.db"

    # Session
    secret_key: str = field(default_factory=lambda: secrets.token_urlsafe(32))
    algorithm: str = "HS256"
    session_cookie: str = "productivity_session"
    session_ttl_minutes: int = 30 * 24 * 60
    cookie_secure: bool = False

    # HTTP
    allowed_hosts: List[str] = field(default_factory=lambda: ["localhost", "127.0.0.1"])
    cors_origins: List[str] = field(default_factory=lambda: ["*"])
    auth_rate_limit: str = "20/minute"
    public_api: bool = True
    host: str = "0.0.0.0"
    port: int = 8000

    # Accounts
    admin_emails: List[str] = field(default_factory=list)
    google_client_id: Optional[str] = None

    # Logging
    log_level: str = "INFO"
    log_dir: Path = Path(".local/productivity")

    def is_admin_email(self, email: Optional[str]) -> bool:
        if not email:
            return False
        return email.lower() in {e.lower() for e in self.admin_emails}


def load_settings() -> Settings:
    database_url = _env(_k("DATABASE_URL")) or _env("DATABASE_URL") or Settings.database_url
    return Settings(
        database_url=normalize_database_url(database_url.strip()),
        secret_key=_env(_k("SECRET_KEY")) or secrets.token_urlsafe(32),
        session_cookie=_env(_k("SESSION_COOKIE"), "productivity_session"),
        session_ttl_minutes=_env_int(_k("SESSION_TTL_MINUTES"), 30 * 24 * 60),
        cookie_secure=_env_bool(_k("COOKIE_SECURE"), False),
        allowed_hosts=_env_list(_k("ALLOWED_HOSTS"), ["localhost", "127.0.0.1"]),
        cors_origins=_env_list(_k("CORS_ORIGINS"), ["*"]),
        auth_rate_limit=_env(_k("AUTH_RATE_LIMIT"), "20/minute"),
        public_api=_env_bool(_k("PUBLIC_API"), True),
        host=_env(_k("HOST"), "0.0.0.0"),
        port=_env_int(_k("PORT"), 8000),
        admin_emails=_env_list(_k("ADMIN_EMAILS"), []),
        google_client_id=_env(_k("GOOGLE_CLIENT_ID")) or None,
        log_level=_env(_k("LOG_LEVEL"), "INFO").upper(),
        log_dir=Path(_env(_k("LOG_DIR"), ".local/productivity")).expanduser(),
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return load_settings()
