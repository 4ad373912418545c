from __future__ import annotations
from functools import wraps
from flask import request, g, abort, current_app


def get_token_service():
    return current_app.extensions["token_service"]


def jwt_required():
    """
    Require a valid bearer access token.
    Sets g.current_user_id from the token subject.
    """
    def decorator(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            auth = request.headers.get("Authorization", "")
            if not auth.startswith("Bearer "):
                abort(401, description="Missing or invalid Authorization header")
            token = auth.split(" ", 1)[1].strip()
            # raises UnauthorizedError, rendered as 401 by the error handlers
            decoded = get_token_service().decode_access_token(token)

            g.current_user_id = decoded.get("sub")
            return fn(*args, **kwargs)

        return wrapper

    return decorator


def current_user_id() -> str | None:
    return getattr(g, "current_user_id", None)
