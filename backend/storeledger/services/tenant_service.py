"""
Store ownership checks.

WHY: A store is the tenant boundary. Every store-scoped operation runs only
after the caller has been proven to own the store; the services below this
point trust the store_id they are handed.

SECURITY INVARIANTS:
1. Unknown store      -> NotFoundError (404)
2. Someone else's     -> ForbiddenError (403), logged as a security event
3. Products, categories and sold records are only ever looked up together
   with the store_id that passed this check
"""

from flask import has_request_context, request

from ..errors import ForbiddenError, NotFoundError
from ..models import Store
from .security_service import log_security_event
from .store_service import get_store


def require_store_owner(store_id: int, user_id: int) -> Store:
    """
    Validate that ``user_id`` owns ``store_id``.

    Returns:
        The Store object if valid

    Raises:
        NotFoundError if the store doesn't exist
        ForbiddenError if it belongs to a different user
    """
    store = get_store(store_id)

    if not store:
        raise NotFoundError("Store not found", details={"store_id": store_id})

    if store.user_id != user_id:
        _log_cross_tenant_attempt(
            f"Store {store_id} belongs to user {store.user_id}, not {user_id}",
            user_id=user_id,
            store_id=store_id,
        )
        raise ForbiddenError("Unauthorized", details={"store_id": store_id})

    return store


def _log_cross_tenant_attempt(reason: str, *, user_id: int, store_id: int) -> None:
    resource = action = ip_address = user_agent = None
    if has_request_context():
        resource = request.path
        action = request.method
        ip_address = request.remote_addr
        user_agent = request.headers.get("User-Agent")

    log_security_event(
        user_id=user_id,
        event_type="CROSS_TENANT_ACCESS_DENIED",
        success=False,
        resource=resource,
        action=action,
        reason=reason,
        ip_address=ip_address,
        user_agent=user_agent,
        store_id=store_id,
    )
