"""
Local account registration, login and sessions.

Purpose
-------
Operates on a Store value and returns the updated Store; callers persist it
with StoreRepository.save. Password digests are unsalted SHA-256 hex strings
(passlib's hex_sha256 scheme), the format existing stores already hold.

Login failures raise AuthError with one generic message whether the username
is unknown or the password is wrong, so the error cannot be used to discover
which accounts exist.

Example
-------
>>> store, user, session = register(Store(), "ama", "secret-pass", now)
>>> store, session = login(store, "ama", "secret-pass", now)
>>> current_session(store, now)[1] == session
True
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from typing import Optional, Tuple

from passlib.context import CryptContext

from .constants import MIN_PASSWORD_LENGTH, SESSION_TTL
from .exceptions import AuthError
from .plan import Session, User, utc_now
from .storage import Store

logger = logging.getLogger(__name__)

__all__ = [
    "LOGIN_FAILED_MESSAGE",
    "hash_password",
    "verify_password",
    "create_session",
    "session_is_valid",
    "current_session",
    "register",
    "login",
    "logout",
]

LOGIN_FAILED_MESSAGE = "Invalid username or password."

pwd_context = CryptContext(schemes=["hex_sha256"])


def _aware(now: Optional[datetime]) -> datetime:
    if now is None:
        return utc_now()
    return now if now.tzinfo is not None else now.replace(tzinfo=timezone.utc)


def hash_password(password: str) -> str:
    """SHA-256 hex digest of the UTF-8 encoded password."""
    return pwd_context.hash(str(password))


def verify_password(password: str, password_hash: str) -> bool:
    """True if *password* matches *password_hash*; malformed hashes never match."""
    try:
        return pwd_context.verify(str(password), password_hash)
    except (TypeError, ValueError):
        return False


def create_session(username: str, now: Optional[datetime] = None) -> Session:
    """New session for *username*, valid for SESSION_TTL from *now*."""
    issued_at = _aware(now)
    return Session(
        token=uuid.uuid4().hex,
        username=str(username),
        issued_at=issued_at,
        expires_at=issued_at + SESSION_TTL,
    )


def session_is_valid(store: Store, session: Optional[Session], now: Optional[datetime] = None) -> bool:
    """True if *session* is unexpired and its user still exists."""
    if session is None:
        return False
    if session.is_expired(_aware(now)):
        return False
    return store.get_user(session.username) is not None


def current_session(store: Store, now: Optional[datetime] = None) -> Tuple[Store, Optional[Session]]:
    """
    The store's session if still valid.

    An expired session, or one whose user no longer exists, is cleared from
    the returned store.
    """
    if store.session is None:
        return store, None
    if session_is_valid(store, store.session, now):
        return store, store.session
    logger.info("Clearing stale session for %s", store.session.username)
    return store.with_session(None), None


def register(
    store: Store,
    username: str,
    password: str,
    now: Optional[datetime] = None,
) -> Tuple[Store, User, Session]:
    """
    Create an account, give it an empty plan bucket, and sign it in.

    Raises
    ------
    AuthError
        If the username or password is missing, the password is shorter
        than MIN_PASSWORD_LENGTH, or the username is taken.
    """
    safe_username = str(username or "").strip()
    safe_password = str(password or "")
    if not safe_username or not safe_password:
        raise AuthError("Username and password are required.")
    if len(safe_password) < MIN_PASSWORD_LENGTH:
        raise AuthError(f"Use at least {MIN_PASSWORD_LENGTH} characters for password.")
    if store.get_user(safe_username) is not None:
        raise AuthError("Username already exists. Choose another one.")

    moment = _aware(now)
    user = User(username=safe_username, password_hash=hash_password(safe_password), created_at=moment)
    session = create_session(user.username, moment)
    updated = store.with_user(user).with_plans(user.username, []).with_session(session)
    logger.info("Registered user %s", user.username)
    return updated, user, session


def login(
    store: Store,
    username: str,
    password: str,
    now: Optional[datetime] = None,
) -> Tuple[Store, Session]:
    """
    Verify credentials and start a session.

    Raises
    ------
    AuthError
        With LOGIN_FAILED_MESSAGE for any failure.
    """
    user = store.get_user(str(username or "").strip())
    if user is None or not verify_password(password or "", user.password_hash):
        raise AuthError(LOGIN_FAILED_MESSAGE)
    session = create_session(user.username, now)
    return store.with_session(session), session


def logout(store: Store) -> Store:
    return store.with_session(None)
