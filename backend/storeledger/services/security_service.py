# Overview: Append-only security audit trail.

from __future__ import annotations

from ..extensions import db
from ..models import SecurityEvent


def log_security_event(
    user_id: int | None,
    event_type: str,
    success: bool,
    resource: str | None = None,
    action: str | None = None,
    reason: str | None = None,
    ip_address: str | None = None,
    user_agent: str | None = None,
    store_id: int | None = None,
) -> SecurityEvent:
    """
    Log security event to audit trail.

    The event is committed on its own: a denied request rolls nothing else
    back, and the audit row must survive it.

    event_type examples:
    - LOGIN_FAILED
    - LOGOUT
    - USER_CREATED
    - CROSS_TENANT_ACCESS_DENIED
    - ADMIN_ACCESS_DENIED
    """
    event = SecurityEvent(
        user_id=user_id,
        store_id=store_id,
        event_type=event_type,
        resource=resource,
        action=action,
        success=success,
        reason=reason,
        ip_address=ip_address,
        user_agent=user_agent,
    )
    db.session.add(event)
    db.session.commit()
    return event
