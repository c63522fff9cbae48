# Overview: Request guards for API routes.

from functools import wraps
from flask import request, jsonify, g

from .errors import ForbiddenError, LedgerError, UnauthenticatedError
from .services import session_service, tenant_service
from .services.security_service import log_security_event


def _is_authenticated() -> bool:
    return hasattr(g, "current_user")


def _error_response(error: LedgerError):
    return jsonify(error.to_dict()), error.status_code


def require_auth(f):
    """
    Require a valid bearer session.

    Sets the following Flask g attributes:
    - g.current_user: The authenticated User object
    - g.session_context: The full SessionContext object

    Returns 401 if there is no Authorization header, the token is unknown,
    revoked or expired, or the user has been deactivated.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        auth_header = request.headers.get("Authorization")

        if not auth_header or not auth_header.startswith("Bearer "):
            return _error_response(UnauthenticatedError("Unauthenticated"))

        token = auth_header.split(" ", 1)[1]
        context = session_service.validate_session(token)

        if not context:
            return _error_response(UnauthenticatedError("Invalid or expired token"))

        g.current_user = context.user
        g.session_context = context

        return f(*args, **kwargs)

    return decorated_function


def require_store_owner(f):
    """
    Require that g.current_user owns the ``store_id`` view argument.

    Must be stacked under @require_auth. The Store is exposed as g.store.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if not _is_authenticated():
            return _error_response(UnauthenticatedError("Unauthenticated"))

        try:
            g.store = tenant_service.require_store_owner(kwargs["store_id"], g.current_user.id)
        except LedgerError as e:
            return _error_response(e)

        return f(*args, **kwargs)

    return decorated_function


def require_admin(f):
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if not _is_authenticated():
            return _error_response(UnauthenticatedError("Unauthenticated"))

        if not g.current_user.is_admin:
            log_security_event(
                user_id=g.current_user.id,
                event_type="ADMIN_ACCESS_DENIED",
                success=False,
                resource=request.path,
                action=request.method,
                reason="User is not an administrator",
                ip_address=request.remote_addr,
                user_agent=request.headers.get("User-Agent"),
            )
            return _error_response(ForbiddenError("Forbidden"))

        return f(*args, **kwargs)

    return decorated_function
