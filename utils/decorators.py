from __future__ import annotations
from functools import wraps
from flask import request, g, current_app
from models import storage
from utils.errors import AccountError, ErrorKind
from utils.tokens import ACCESS_COOKIE


def access_token_from_request() -> str | None:
    """Access token from the cookie, falling back to the Authorization header."""
    token = request.cookies.get(ACCESS_COOKIE)
    if not token:
        auth = request.headers.get("Authorization", "")
        if auth.startswith("Bearer "):
            token = auth.split(" ", 1)[1].strip()
    return token or None


def jwt_required():
    def decorator(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            token = access_token_from_request()
            if not token:
                raise AccountError(ErrorKind.UNAUTHORIZED, "Unauthorized request")

            claims = current_app.extensions["token_verifier"].verify_access_token(token)

            user = storage.find_user_by_id(claims.user_id)
            if not user:
                raise AccountError(ErrorKind.INVALID_TOKEN, "Invalid access token")
            g.current_user = user
            return fn(*args, **kwargs)

        return wrapper

    return decorator
