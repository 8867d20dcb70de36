# Overview: Bearer session tokens and the request session accessor.

"""
Session Token Management Service

SECURITY FEATURES:
- Cryptographically secure random tokens (32 bytes)
- Tokens hashed with SHA-256 before storage (fast, one-way)
- 24-hour absolute timeout (SESSION_ABSOLUTE_TIMEOUT)
- 2-hour idle timeout (SESSION_IDLE_TIMEOUT)
- Revocable on sign-out

The REST layer only ever calls get_session(headers) and reads
SessionContext.user_id.
"""

import hashlib
import secrets
from dataclasses import dataclass
from datetime import timedelta
from typing import Mapping

from ..extensions import db
from ..models import SessionToken, User
from utang.time_utils import older_than, utcnow


SESSION_ABSOLUTE_TIMEOUT = timedelta(hours=24)  # Maximum session length
SESSION_IDLE_TIMEOUT = timedelta(hours=2)        # Activity timeout


@dataclass
class SessionContext:
    user: User
    session: SessionToken

    @property
    def user_id(self) -> str:
        return self.user.id


def generate_token() -> str:
    """64-character hex string (32 bytes of entropy); never stored."""
    return secrets.token_hex(32)


def hash_token(token: str) -> str:
    return hashlib.sha256(token.encode('utf-8')).hexdigest()


def bearer_token(headers: Mapping[str, str]) -> str | None:
    auth_header = headers.get("Authorization")
    if not auth_header or not auth_header.startswith("Bearer "):
        return None
    token = auth_header.split(" ", 1)[1].strip()
    return token or None


def create_session(
    user_id: str,
    user_agent: str | None = None,
    ip_address: str | None = None
) -> tuple[SessionToken, str]:
    """
    Create new session token for user.

    Returns (session_record, plaintext_token).
    Client receives plaintext_token, database stores only the hash.
    """
    user = db.session.query(User).filter_by(id=user_id).first()
    if not user:
        raise ValueError("User not found")

    plaintext_token = generate_token()
    now = utcnow()

    session = SessionToken(
        user_id=user_id,
        token_hash=hash_token(plaintext_token),
        created_at=now,
        last_used_at=now,
        expires_at=now + SESSION_ABSOLUTE_TIMEOUT,
        user_agent=user_agent,
        ip_address=ip_address,
        is_revoked=False
    )

    db.session.add(session)
    db.session.commit()

    return session, plaintext_token


def _revoke(session: SessionToken, reason: str) -> None:
    session.is_revoked = True
    session.revoked_at = utcnow()
    session.revoked_reason = reason
    db.session.commit()


def validate_session(token: str) -> SessionContext | None:
    """
    Return the SessionContext for a live token, None otherwise.

    Idle sessions are revoked on sight; last_used_at is refreshed on success.
    """
    now = utcnow()

    session = db.session.query(SessionToken).filter_by(
        token_hash=hash_token(token),
        is_revoked=False
    ).first()

    if not session:
        return None

    if session.expires_at < now:
        return None

    if older_than(session.last_used_at, SESSION_IDLE_TIMEOUT, now=now):
        _revoke(session, "Idle timeout")
        return None

    user = session.user
    if not user:
        return None

    session.last_used_at = now
    db.session.commit()

    return SessionContext(user=user, session=session)


def get_session(headers: Mapping[str, str]) -> SessionContext | None:
    """Session accessor for request headers: SessionContext or None."""
    token = bearer_token(headers)
    if token is None:
        return None
    return validate_session(token)


def revoke_session(token: str, reason: str = "User sign-out") -> bool:
    """Returns True if session was revoked, False if not found."""
    session = db.session.query(SessionToken).filter_by(
        token_hash=hash_token(token),
        is_revoked=False
    ).first()

    if not session:
        return False

    _revoke(session, reason)
    return True
