# teacher_directory/security.py
"""
Admin credentials: bcrypt hashes at rest and short-lived signed JWTs for
the add/edit form.
"""

import logging
from datetime import datetime, timedelta, timezone
from functools import lru_cache
from typing import Optional

import bcrypt
import jwt
from fastapi import Depends
from fastapi.concurrency import run_in_threadpool
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from . import crud
from .config import settings
from .db import get_db
from .errors import InvalidRequest, Unauthorized

logger = logging.getLogger(__name__)

BCRYPT_MAX_BYTES = 72
INVALID_CREDENTIALS = "Invalid credentials."

bearer_scheme = HTTPBearer(auto_error=False)

# --- Hashing ---

def _password_bytes(password: str) -> bytes:
    encoded = password.encode("utf-8")
    if len(encoded) > BCRYPT_MAX_BYTES:
        raise InvalidRequest(f"Password must be at most {BCRYPT_MAX_BYTES} bytes.")
    return encoded


def hash_password(password: str, rounds: Optional[int] = None) -> str:
    salt = bcrypt.gensalt(rounds=rounds or settings.bcrypt_rounds)
    return bcrypt.hashpw(_password_bytes(password), salt).decode("utf-8")


def check_password(password: str, password_hash: str) -> bool:
    try:
        return bcrypt.checkpw(_password_bytes(password), password_hash.encode("utf-8"))
    except InvalidRequest:
        return False


@lru_cache(maxsize=None)
def _dummy_hash(rounds: int) -> str:
    return hash_password("no-such-user", rounds=rounds)


def check_credential(password: str, credential) -> bool:
    """Check a password against a stored credential. Unknown users still pay for one bcrypt check."""
    if credential is None:
        check_password(password, _dummy_hash(settings.bcrypt_rounds))
        return False
    return check_password(password, credential.password_hash)

# --- Tokens ---

def create_access_token(username: str, expires_delta: Optional[timedelta] = None) -> str:
    now = datetime.now(timezone.utc)
    expire = now + (expires_delta if expires_delta is not None else timedelta(minutes=settings.token_ttl_minutes))
    payload = {"sub": username, "iat": now, "exp": expire}
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str) -> str:
    """Return the username inside a valid token."""
    try:
        payload = jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
    except jwt.ExpiredSignatureError:
        raise Unauthorized("Session expired. Please log in again.")
    except jwt.InvalidTokenError:
        raise Unauthorized("Invalid session token.")
    username = payload.get("sub")
    if not username:
        raise Unauthorized("Invalid session token.")
    return username

# --- Credential operations ---

def _require(**fields) -> None:
    if not all(fields.values()):
        names = ", ".join(fields)
        raise InvalidRequest(f"Fields required: {names}.")


async def set_password(db: AsyncSession, username: Optional[str], password: Optional[str]) -> bool:
    """Upsert a credential. Returns True when a new one was created."""
    _require(username=username, password=password)
    password_hash = await run_in_threadpool(hash_password, password)
    created = await crud.upsert_credential(db, username, password_hash)
    logger.info(f"[audit] {'created' if created else 'updated'} credential for {username!r}")
    return created


async def verify(db: AsyncSession, username: Optional[str], password: Optional[str]) -> str:
    """Check a username/password pair and issue a session token."""
    _require(username=username, password=password)
    credential = await crud.get_credential(db, username)
    if not await run_in_threadpool(check_credential, password, credential):
        logger.info(f"Failed login for {username!r}")
        raise Unauthorized(INVALID_CREDENTIALS)
    return create_access_token(username)


async def change_password(
    db: AsyncSession, username: Optional[str], old_password: Optional[str], new_password: Optional[str]
):
    _require(username=username, oldPassword=old_password, newPassword=new_password)
    credential = await crud.get_credential(db, username)
    if not await run_in_threadpool(check_credential, old_password, credential):
        raise Unauthorized(INVALID_CREDENTIALS if credential is None else "Invalid old password.")
    password_hash = await run_in_threadpool(hash_password, new_password)
    await crud.set_password_hash(db, credential, password_hash)
    logger.info(f"[audit] changed password for {username!r}")

# --- FastAPI dependencies ---

async def require_admin(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> Optional[str]:
    """Gate admin routes behind a bearer token. Returns the token's username."""
    if not settings.require_auth:
        return None
    if credentials is None:
        raise Unauthorized("Authentication required.")
    return decode_access_token(credentials.credentials)


async def allow_bootstrap_or_admin(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: AsyncSession = Depends(get_db),
) -> Optional[str]:
    """Let anyone create the first credential; after that an admin token is needed."""
    if await crud.count_credentials(db) == 0:
        return None
    return await require_admin(credentials)
