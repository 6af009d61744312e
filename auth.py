"""
auth.py
Authentication utilities (bcrypt hashing, verify, session store, identity resolution).

This avoids passlib's bcrypt backend auto-detection issues on some Python 3.13 Windows setups.
"""

from __future__ import annotations

import logging
import sqlite3
from collections.abc import MutableMapping

import bcrypt

import db
from models import Identity, QueryResult, Session

logger = logging.getLogger(__name__)

SESSION_KEY = "auth_session"
IDENTITY_KEY = "current_identity"


class AuthError(Exception):
    """Sign-in rejected; the message is safe to show to the user."""


def _to_bcrypt_secret(password: str) -> bytes:
    """
    bcrypt only uses the first 72 BYTES of the password.
    We truncate to 72 bytes to avoid ValueError and to make behavior explicit.
    """
    pw = password.encode("utf-8")
    if len(pw) > 72:
        pw = pw[:72]
    return pw


def hash_password(password: str) -> str:
    """
    Returns a bcrypt hash as a UTF-8 string (stored in SQLite).
    """
    secret = _to_bcrypt_secret(password)
    salt = bcrypt.gensalt(rounds=12)
    hashed = bcrypt.hashpw(secret, salt)
    return hashed.decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    """
    Verify password against stored bcrypt hash.
    """
    secret = _to_bcrypt_secret(password)
    stored = password_hash.encode("utf-8")
    return bcrypt.checkpw(secret, stored)


def get_user_by_email(email: str):
    return db.fetch_one("SELECT * FROM auth_users WHERE email = ?", (email.strip().lower(),))


class SessionStore:
    """
    Session state for one browser session.

    `state` is any mutable mapping: Streamlit's `st.session_state` in the app,
    a plain dict in tests.
    """

    def __init__(self, state: MutableMapping):
        self.state = state

    def get_session(self) -> Session | None:
        return self.state.get(SESSION_KEY)

    def sign_in_with_password(self, email: str, password: str) -> Session:
        if not email.strip() or not password:
            raise AuthError("Email and password are required.")
        user = get_user_by_email(email)
        if not user or not verify_password(password, user["password_hash"]):
            raise AuthError("Invalid login credentials.")
        session = Session(user_id=user["id"], email=user["email"])
        self.state[SESSION_KEY] = session
        # a new sign-in always re-derives the identity
        self.state.pop(IDENTITY_KEY, None)
        logger.info("Signed in %s", session.email)
        return session

    def sign_out(self) -> None:
        session = self.state.pop(SESSION_KEY, None)
        self.state.pop(IDENTITY_KEY, None)
        if session:
            logger.info("Signed out %s", session.email)


def load_profile(user_id: str) -> QueryResult:
    try:
        row = db.fetch_one(
            """
            SELECT p.user_id, p.name, p.role, c.centre_name
            FROM core_devotee_profiles p
            LEFT JOIN centres c ON c.id = p.centre_id
            WHERE p.user_id = ?
            """,
            (user_id,),
        )
    except sqlite3.Error as exc:
        return QueryResult.failure(str(exc))
    if row is None:
        return QueryResult.failure(f"No profile for user {user_id}")
    return QueryResult.success([row])


def resolve_identity(store: SessionStore) -> Identity | None:
    """
    Resolve the signed-in identity, or None when there is no session
    (the caller redirects to the login screen).

    A profile that cannot be loaded is logged once and yields an identity
    without a role, which every consumer treats as the lowest privilege.
    """
    session = store.get_session()
    if session is None:
        return None

    result = load_profile(session.user_id)
    if not result.ok:
        logger.error("Profile load failed: %s", result.error)
        return Identity(user_id=session.user_id, role=None)

    row = result.rows[0]
    return Identity(
        user_id=session.user_id,
        role=row["role"],
        display_name=row["name"],
        centre_name=row["centre_name"],
    )


def current_identity(store: SessionStore) -> Identity | None:
    """Identity established once per sign-in and reused until sign-out."""
    if store.get_session() is None:
        return None
    identity = store.state.get(IDENTITY_KEY)
    if identity is None:
        identity = resolve_identity(store)
        store.state[IDENTITY_KEY] = identity
    return identity


def change_password(user_id: str, new_password: str) -> None:
    new_hash = hash_password(new_password)
    db.execute(
        "UPDATE auth_users SET password_hash = ? WHERE id = ?",
        (new_hash, user_id),
    )
    if user_id == db.default_admin_user_id():
        db.clear_force_password_change()
