# Overview: Actor context decorators for API routes.

from functools import wraps
from flask import request, jsonify, g


ACTOR_ID_HEADER = "X-Actor-Id"
ACTOR_ROLE_HEADER = "X-Actor-Role"


def _load_actor() -> None:
    actor_id = (request.headers.get(ACTOR_ID_HEADER) or "").strip() or None
    actor_role = (request.headers.get(ACTOR_ROLE_HEADER) or "").strip().lower() or None
    g.actor_id = actor_id
    g.actor_role = actor_role if actor_id else None


def with_actor(f):
    """
    Establish the (possibly anonymous) actor for the request.

    Identity is asserted by the upstream gateway in X-Actor-Id / X-Actor-Role;
    this service does not authenticate. Sets:
    - g.actor_id: actor id or None for anonymous callers
    - g.actor_role: gateway role (e.g. "organization") or None
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        _load_actor()
        return f(*args, **kwargs)

    return decorated_function


def require_actor(f):
    """Like with_actor, but anonymous callers get 401."""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        _load_actor()
        if not g.actor_id:
            return jsonify({"error": "Actor identity required"}), 401
        return f(*args, **kwargs)

    return decorated_function
