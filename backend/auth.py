"""
Request authentication against the external identity provider.

The identity provider authenticates the browser session and forwards the
user's external id in a request header. When a shared secret is configured
the id must be accompanied by its HMAC-SHA256 signature.
"""

import hashlib
import hmac
import logging
from datetime import datetime
from functools import wraps

from flask import g, request

from config import AUTH_USER_HEADER, AUTH_SIGNATURE_HEADER, AUTH_SHARED_SECRET
from errors import AuthenticationError, NotFoundError, PermissionDeniedError
import database as db

logger = logging.getLogger(__name__)


def sign(value, secret: str = None) -> str:
    """Hex HMAC-SHA256 of a string or bytes value."""
    secret = AUTH_SHARED_SECRET if secret is None else secret
    if isinstance(value, str):
        value = value.encode("utf-8")
    return hmac.new(secret.encode("utf-8"), value, hashlib.sha256).hexdigest()


def verify_signature(value, signature: str, secret: str = None) -> bool:
    secret = AUTH_SHARED_SECRET if secret is None else secret
    if not secret:
        return True
    if not signature:
        return False
    return hmac.compare_digest(sign(value, secret), signature)


def current_user() -> dict:
    """
    Resolve the calling user from the identity headers.

    Raises:
        AuthenticationError: Missing or badly signed identity
        NotFoundError: Identity not mirrored locally
        PermissionDeniedError: Account not ACTIVE
    """
    external_id = request.headers.get(AUTH_USER_HEADER)
    if not external_id:
        raise AuthenticationError("Unauthorized")
    if not verify_signature(external_id, request.headers.get(AUTH_SIGNATURE_HEADER)):
        logger.warning(f"Rejected identity header with bad signature for {external_id}")
        raise AuthenticationError("Unauthorized")

    user = db.get_user_by_external_id(external_id)
    if not user:
        raise NotFoundError("User not found")
    if user["status"] != "ACTIVE":
        raise PermissionDeniedError(f"Account is {user['status'].lower().replace('_', ' ')}")
    return user


def login_required(f):
    @wraps(f)
    def decorated(*args, **kwargs):
        g.user = current_user()
        return f(*args, **kwargs)
    return decorated


def roles_required(*roles):
    def decorator(f):
        @wraps(f)
        def decorated(*args, **kwargs):
            g.user = current_user()
            if g.user["role"] not in roles:
                raise PermissionDeniedError("Insufficient permissions")
            return f(*args, **kwargs)
        return decorated
    return decorator


def handle_identity_event(event: dict) -> dict:
    """
    Apply a user-sync event from the identity provider.

    Args:
        event: {"type": "user.created" | "user.updated" | "user.deleted",
                "data": {"id", "email", "name"}}

    Returns:
        {"handled": bool, "type": str}
    """
    event_type = event.get("type")
    data = event.get("data") or {}
    external_id = data.get("id")
    if not external_id:
        raise ValueError("Event is missing the user id")

    if event_type in ("user.created", "user.updated"):
        name = data.get("name") or " ".join(
            part for part in (data.get("first_name"), data.get("last_name")) if part
        )
        db.upsert_user_from_identity(external_id, data.get("email"), name)
    elif event_type == "user.deleted":
        db.deactivate_user_by_external_id(external_id)
    else:
        logger.info(f"Ignoring identity event {event_type}")
        return {"handled": False, "type": event_type}

    logger.info(f"Identity event {event_type} applied for {external_id} at {datetime.utcnow().isoformat()}")
    return {"handled": True, "type": event_type}
