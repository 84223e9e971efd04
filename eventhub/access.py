"""
Authorization checks and the Flask decorators that apply them.

Every denial raises ForbiddenError; nothing here returns a bare False.
"""
from functools import wraps
from typing import Iterable, Optional

from flask import current_app, g, request

from .errors import ForbiddenError, NotFoundError
from .security import Principal, principal_from_header


def check_roles(principal: Optional[Principal], roles: Optional[Iterable[str]]) -> None:
    roles = set(roles or ())
    if not roles:
        return
    if principal is None:
        raise ForbiddenError("User not authenticated")
    if principal.role not in roles:
        raise ForbiddenError("User does not have permission (role)")


def check_email_confirmed(principal: Optional[Principal], users) -> None:
    """Re-read the user; the token's email_confirmed claim may be stale."""
    if principal is None:
        raise ForbiddenError("User not authenticated")
    try:
        user = users.find_by_id(principal.user_id)
    except NotFoundError:
        user = None
    if not user or not user.get("email_confirmed"):
        raise ForbiddenError("Email not confirmed. Please confirm your email to proceed.")


def check_self_or_admin(principal: Optional[Principal], target_id: str) -> None:
    if principal is None:
        raise ForbiddenError("User not authenticated")
    if not principal.is_admin and principal.user_id != target_id:
        raise ForbiddenError("You do not have permission to access this resource")


# --- Flask decorators ---

def current_principal() -> Optional[Principal]:
    return g.get("principal")


def require_auth(f):
    @wraps(f)
    def wrapper(*args, **kwargs):
        g.principal = principal_from_header(request.headers.get("Authorization"))
        return f(*args, **kwargs)
    return wrapper


def require_roles(*roles):
    def decorator(f):
        @wraps(f)
        def wrapper(*args, **kwargs):
            check_roles(current_principal(), roles)
            return f(*args, **kwargs)
        return wrapper
    return decorator


def require_email_confirmed(f):
    @wraps(f)
    def wrapper(*args, **kwargs):
        check_email_confirmed(current_principal(), current_app.extensions["eventhub"].users)
        return f(*args, **kwargs)
    return wrapper


def require_self_or_admin(param: str = "user_id"):
    def decorator(f):
        @wraps(f)
        def wrapper(*args, **kwargs):
            check_self_or_admin(current_principal(), kwargs.get(param))
            return f(*args, **kwargs)
        return wrapper
    return decorator
