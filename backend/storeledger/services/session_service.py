# Overview: Bearer session tokens for store owners and admins.

"""
Session tokens.

The client gets a random 64-char hex token once, at login. Only its SHA-256
hash is stored. A session dies on the first of: explicit revocation, the
absolute lifetime (SESSION_ABSOLUTE_TIMEOUT_HOURS), or a gap between requests
longer than SESSION_IDLE_TIMEOUT_HOURS. Deactivating the user kills every
session it has.
"""

import hashlib
import secrets
from dataclasses import dataclass
from datetime import timedelta

from flask import current_app

from ..errors import NotFoundError
from ..extensions import db
from ..models import SessionToken, User
from storeledger.time_utils import utcnow


@dataclass
class SessionContext:
    """What require_auth hands to a route through flask.g."""
    user: User
    session: SessionToken


def _hours(key: str, default: int) -> timedelta:
    return timedelta(hours=current_app.config.get(key, default))


def hash_token(token: str) -> str:
    # Tokens carry 256 bits of entropy; a fast digest is enough
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def _live_session(token: str) -> SessionToken | None:
    return (
        db.session.query(SessionToken)
        .filter_by(token_hash=hash_token(token), is_revoked=False)
        .first()
    )


def _revoke(session: SessionToken, reason: str) -> None:
    session.is_revoked = True
    session.revoked_at = utcnow()
    session.revoked_reason = reason


def create_session(
    user_id: int,
    user_agent: str | None = None,
    ip_address: str | None = None,
) -> tuple[SessionToken, str]:
    """Open a session; returns (record, plaintext token)."""
    if db.session.get(User, user_id) is None:
        raise NotFoundError("User not found", details={"user_id": user_id})

    token = secrets.token_hex(32)
    now = utcnow()
    session = SessionToken(
        user_id=user_id,
        token_hash=hash_token(token),
        created_at=now,
        last_used_at=now,
        expires_at=now + _hours("SESSION_ABSOLUTE_TIMEOUT_HOURS", 24),
        user_agent=user_agent,
        ip_address=ip_address,
        is_revoked=False,
    )
    db.session.add(session)
    db.session.commit()
    return session, token


def validate_session(token: str) -> SessionContext | None:
    """
    Resolve a bearer token, or None if it is unknown, expired, idle or
    belongs to a deactivated user. Touches last_used_at on success.
    """
    session = _live_session(token)
    if session is None:
        return None

    now = utcnow()
    if session.expires_at < now:
        return None

    if now - session.last_used_at > _hours("SESSION_IDLE_TIMEOUT_HOURS", 2):
        _revoke(session, "Idle timeout")
        db.session.commit()
        return None

    if not session.user.is_active:
        _revoke(session, "User account deactivated")
        db.session.commit()
        return None

    session.last_used_at = now
    db.session.commit()
    return SessionContext(user=session.user, session=session)


def revoke_session(token: str, reason: str = "User logout") -> bool:
    session = _live_session(token)
    if session is None:
        return False
    _revoke(session, reason)
    db.session.commit()
    return True


def revoke_user_sessions(user_id: int, reason: str) -> int:
    """Revoke every live session of a user; returns how many were open."""
    sessions = (
        db.session.query(SessionToken)
        .filter_by(user_id=user_id, is_revoked=False)
        .all()
    )
    for session in sessions:
        _revoke(session, reason)
    db.session.commit()
    return len(sessions)
