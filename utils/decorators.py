from __future__ import annotations

import logging
from functools import wraps

from flask import request, g

from api.extensions import get_services
from models.user import is_usable, summarize
from services.errors import ExpiredToken, Forbidden, InvalidToken, Unauthenticated

logger = logging.getLogger(__name__)


def bearer_token() -> str | None:
    auth = request.headers.get("Authorization", "")
    if not auth.startswith("Bearer "):
        return None
    token = auth.split(" ", 1)[1].strip()
    return token or None


def authenticate():
    """
    Resolve the bearer token into an active identity. The identity is
    reloaded from the store, so deactivated or deleted accounts are rejected
    even while their access token is still valid.
    """
    token = bearer_token()
    if token is None:
        raise Unauthenticated("Authentication required")

    services = get_services()
    try:
        claims = services.tokens.verify_access_token(token)
    except ExpiredToken:
        raise Unauthenticated("Token expired")
    except InvalidToken:
        raise Unauthenticated("Invalid token")

    user = services.credentials.find_by_id(claims.get("sub"))
    if not is_usable(user):
        raise Unauthenticated("Invalid authentication token")

    g.current_user = summarize(user)
    g.current_token = token
    return g.current_user


def jwt_required():
    def decorator(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            authenticate()
            return fn(*args, **kwargs)

        return wrapper

    return decorator


def roles_required(required_roles: list[str]):
    """
    Allow access if the authenticated identity's role is in required_roles.
    Authentication always runs first.
    """
    allowed = set(required_roles or [])

    def decorator(fn):
        @wraps(fn)
        @jwt_required()
        def wrapper(*args, **kwargs):
            user = g.current_user
            if allowed and user["role"] not in allowed:
                logger.warning("Unauthorized access attempt by %s to %s", user["email"], request.path)
                raise Forbidden("Insufficient permissions")
            return fn(*args, **kwargs)

        return wrapper

    return decorator
