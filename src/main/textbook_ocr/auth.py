"""Authentication and session utilities."""

from __future__ import annotations

import hmac
import logging
import time
from functools import wraps
from typing import Any, Callable

import bcrypt
import jwt
from flask import current_app, g, redirect, request, url_for

from src.main.textbook_ocr.config import Credentials
from src.main.textbook_ocr.errors import AuthenticationFailure

LOGGER = logging.getLogger(__name__)

JWT_ALGORITHM = "HS256"


class TokenService:
    """Issues and verifies signed, time-limited identity tokens."""

    def __init__(self, secret: str, ttl_seconds: int):
        self.secret = secret
        self.ttl_seconds = ttl_seconds

    def issue(self, username: str) -> str:
        issued_at = int(time.time())
        payload = {"username": username, "iat": issued_at, "exp": issued_at + self.ttl_seconds}
        return jwt.encode(payload, self.secret, algorithm=JWT_ALGORITHM)

    def verify(self, token: str | None) -> str | None:
        """Return the token's username, or ``None`` if it is not acceptable.

        Expired, malformed and forged tokens are deliberately indistinguishable
        to the caller.
        """
        if not token:
            return None
        try:
            decoded = jwt.decode(
                token,
                self.secret,
                algorithms=[JWT_ALGORITHM],
                options={"require": ["exp", "iat"]},
            )
        except jwt.PyJWTError as error:
            LOGGER.info("Token verification failed: %s", error)
            return None

        username = decoded.get("username")
        return username if isinstance(username, str) and username else None


def hash_password(password: str, rounds: int = 12) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(rounds=rounds)).decode("utf-8")


def authenticate(credentials: Credentials, username: str, password: str) -> bool:
    if not hmac.compare_digest(username.encode("utf-8"), credentials.username.encode("utf-8")):
        return False
    try:
        return bcrypt.checkpw(password.encode("utf-8"), credentials.password_hash.encode("utf-8"))
    except ValueError:
        LOGGER.error("Configured AUTH_PASSWORD is not a valid bcrypt hash")
        return False


def current_username() -> str | None:
    token = request.cookies.get(current_app.config["AUTH_COOKIE_NAME"])
    return current_app.extensions["token_service"].verify(token)


def login_required(view_func: Callable[..., Any]) -> Callable[..., Any]:
    """Page guard: send unauthenticated visitors to the login form."""

    @wraps(view_func)
    def wrapped(*args: Any, **kwargs: Any):
        username = current_username()
        if username is None:
            return redirect(url_for("api.login_page", next=request.path))
        g.username = username
        return view_func(*args, **kwargs)

    return wrapped


def api_login_required(view_func: Callable[..., Any]) -> Callable[..., Any]:
    """API guard: answer 401 JSON instead of redirecting."""

    @wraps(view_func)
    def wrapped(*args: Any, **kwargs: Any):
        if request.method == "OPTIONS":
            return current_app.make_default_options_response()

        username = current_username()
        if username is None:
            raise AuthenticationFailure()
        g.username = username
        return view_func(*args, **kwargs)

    return wrapped
