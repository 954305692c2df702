"""Session authentication.

A session is a signed JWT (``sub`` = user id) carried in an http-only cookie.
Passwords are bcrypt hashes; Google sign-in verifies an ID token against
Google's published keys.
"""

import logging
import re
from datetime import datetime, timedelta, timezone
from typing import Optional

import httpx
from fastapi import APIRouter, Depends, HTTPException, Request, Response, status
from jose import JWTError, jwt
from passlib.context import CryptContext
from slowapi import Limiter
from slowapi.util import get_remote_address
from sqlalchemy.orm import Session

from config import Settings, get_settings
from database import get_db
from models import User as DBUser
from schemas import GoogleLogin, LoginRequest, LoginResponse, Message, User, UserCreate
from storage import DatabaseStorage

logger = logging.getLogger(__name__)

GOOGLE_CERTS_URL = "https://www.googleapis.com/oauth2/v3/certs"
GOOGLE_ISSUERS = ("accounts.google.com", "https://accounts.google.com")

# Password hashing
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

limiter = Limiter(key_func=get_remote_address)

# The limiter is process-wide; create_app() points it at its settings
_auth_rate_limit = get_settings().auth_rate_limit


def configure_rate_limit(settings: Settings) -> None:
    global _auth_rate_limit
    _auth_rate_limit = settings.auth_rate_limit


def auth_rate_limit() -> str:
    return _auth_rate_limit

router = APIRouter(prefix="/api/auth", tags=["auth"])


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def verify_password(plain_password, hashed_password):
    return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password):
    return pwd_context.hash(password)


def create_session_token(user_id: int, settings: Settings) -> str:
    expire = datetime.now(timezone.utc) + timedelta(minutes=settings.session_ttl_minutes)
    to_encode = {"sub": str(user_id), "exp": expire}
    return jwt.encode(to_encode, settings.secret_key, algorithm=settings.algorithm)


def decode_session_token(token: str, settings: Settings) -> Optional[int]:
    """Return the user id in a session token, or None if it is invalid or expired."""
    try:
        payload = jwt.decode(token, settings.secret_key, algorithms=[settings.algorithm])
        return int(payload["sub"])
    except (JWTError, KeyError, TypeError, ValueError):
        return None


def set_session_cookie(response: Response, token: str, settings: Settings) -> None:
    response.set_cookie(
        key=settings.session_cookie,
        value=token,
        max_age=settings.session_ttl_minutes * 60,
        httponly=True,
        samesite="lax",
        secure=settings.cookie_secure,
        path="/",
    )


def clear_session_cookie(response: Response, settings: Settings) -> None:
    response.delete_cookie(key=settings.session_cookie, path="/")


async def get_optional_user(
    request: Request,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
) -> Optional[DBUser]:
    token = request.cookies.get(settings.session_cookie)
    if not token:
        return None
    user_id = decode_session_token(token, settings)
    if user_id is None:
        return None
    user = DatabaseStorage(db).get_user_by_id(user_id)
    if user is None:
        # Account deleted while the cookie was still alive
        logger.warning("Session cookie names unknown user %s", user_id)
    return user


async def get_current_user(user: Optional[DBUser] = Depends(get_optional_user)) -> DBUser:
    if user is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")
    return user


async def require_admin(current_user: DBUser = Depends(get_current_user)) -> DBUser:
    if not current_user.is_admin:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin access required")
    return current_user


async def verify_google_credential(credential: str, client_id: str) -> dict:
    """Validate a Google ID token and return its claims.

    Raises JWTError for tokens that fail signature, audience, issuer or expiry
    checks, and httpx.HTTPError when Google's keys cannot be fetched.
    """
    async with httpx.AsyncClient(timeout=10.0) as client:
        resp = await client.get(GOOGLE_CERTS_URL)
        resp.raise_for_status()
        jwks = resp.json()
    return jwt.decode(
        credential,
        jwks,
        algorithms=["RS256"],
        audience=client_id,
        issuer=GOOGLE_ISSUERS,
        options={"verify_at_hash": False},
    )


def _unique_username(storage: DatabaseStorage, email: str) -> str:
    base = re.sub(r"[^\w.-]", "", email.split("@", 1)[0])[:40] or "user"
    if len(base) < 3:
        base = f"{base}user"
    candidate, n = base, 1
    while storage.get_user_by_username(candidate) is not None:
        n += 1
        candidate = f"{base}{n}"
    return candidate


# Authentication endpoints
@router.post("/register", response_model=User)
@limiter.limit(auth_rate_limit)
async def register(
    request: Request,
    user: UserCreate,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
):
    storage = DatabaseStorage(db)
    if storage.get_user_by_username(user.username):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Username already registered"
        )

    if storage.get_user_by_email(user.email):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Email already registered"
        )

    return storage.create_user(
        username=user.username,
        email=user.email,
        hashed_password=get_password_hash(user.password),
        is_admin=settings.is_admin_email(user.email),
    )


@router.post("/login", response_model=LoginResponse)
@limiter.limit(auth_rate_limit)
async def login(
    request: Request,
    response: Response,
    credentials: LoginRequest,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
):
    user = DatabaseStorage(db).get_user_by_email(credentials.email)
    if not user or not user.hashed_password or not verify_password(credentials.password, user.hashed_password):
        logger.info("Failed login for %s", credentials.email)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect email or password",
        )
    set_session_cookie(response, create_session_token(user.id, settings), settings)
    logger.info("User %s logged in", user.id)
    return {"message": "Login successful", "user": user}


@router.post("/logout", response_model=Message)
async def logout(response: Response, settings: Settings = Depends(get_app_settings)):
    clear_session_cookie(response, settings)
    return {"message": "Logged out successfully"}


@router.get("/user", response_model=User)
async def current_user(current_user: DBUser = Depends(get_current_user)):
    return current_user


@router.post("/google", response_model=LoginResponse)
@limiter.limit(auth_rate_limit)
async def google_login(
    request: Request,
    response: Response,
    body: GoogleLogin,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
):
    if not settings.google_client_id:
        raise HTTPException(
            status_code=status.HTTP_501_NOT_IMPLEMENTED,
            detail="Google sign-in is not configured"
        )
    try:
        claims = await verify_google_credential(body.credential, settings.google_client_id)
    except JWTError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid Google credential"
        )
    except httpx.HTTPError as e:
        logger.error("Could not fetch Google signing keys: %s", e)
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail="Google sign-in is temporarily unavailable"
        )

    email = claims.get("email")
    if not email or not claims.get("email_verified", False):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Google account has no verified email"
        )

    storage = DatabaseStorage(db)
    google_id = claims["sub"]
    user = storage.get_user_by_google_id(google_id)
    if user is None:
        user = storage.get_user_by_email(email)
        if user is not None:
            user = storage.link_google_account(
                user, google_id=google_id, display_name=claims.get("name"), avatar_url=claims.get("picture")
            )
        else:
            user = storage.create_user(
                username=_unique_username(storage, email),
                email=email,
                google_id=google_id,
                display_name=claims.get("name"),
                avatar_url=claims.get("picture"),
                is_admin=settings.is_admin_email(email),
            )

    set_session_cookie(response, create_session_token(user.id, settings), settings)
    logger.info("User %s logged in with Google", user.id)
    return {"message": "Login successful", "user": user}
