from __future__ import annotations
from functools import wraps
from flask import request, g, current_app


def get_session_service():
    """SessionService built by create_app for the current application."""
    return current_app.extensions["sessions"]


def jwt_required():
    """
    Require a valid ``Authorization: Bearer <access token>`` header.
    The resolved User is attached to ``g.current_user``; any failure raises
    Unauthorized, which the error handlers turn into a 401.
    """
    def decorator(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            sessions = get_session_service()
            g.current_user = sessions.authenticate(request.headers.get("Authorization"))
            return fn(*args, **kwargs)

        return wrapper

    return decorator
