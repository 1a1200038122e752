"""
Admin portal session: shared-secret login exchanged for a signed cookie.

The cookie value is an HS256 JWT {"jti", "exp", "typ": "admin"} keyed off
the configured ADMIN_SECRET list, so rotating the list ends every session.
Only the admin_session cookie is honoured here. Organizer headers and
bearer tokens are never looked at (see auth_organizer for that domain).
"""
import hashlib
import hmac
import logging
import secrets
import time

import jwt  # PyJWT
from django.conf import settings
from django.core.exceptions import ImproperlyConfigured
from rest_framework import permissions

log = logging.getLogger("planora.admin")

COOKIE_NAME = "admin_session"
DEFAULT_TTL_SECONDS = 3600
TOKEN_TYPE = "admin"
TOKEN_ALGORITHM = "HS256"

_KEY_DOMAIN = "planora:admin-session:v1"


def allowed_secrets() -> list[str]:
    raw = (getattr(settings, "ADMIN_SECRET", "") or "").strip()
    found = [s.strip() for s in raw.split(",") if s.strip()]
    if not found:
        raise ImproperlyConfigured("ADMIN_SECRET must be set (comma separated list allowed).")
    return found


def session_ttl() -> int:
    try:
        ttl = int(getattr(settings, "ADMIN_SESSION_TTL", DEFAULT_TTL_SECONDS))
    except (TypeError, ValueError):
        return DEFAULT_TTL_SECONDS
    return ttl if ttl > 0 else DEFAULT_TTL_SECONDS


def signing_key() -> bytes:
    joined = ",".join(allowed_secrets())
    return hashlib.sha256(f"{_KEY_DOMAIN}:{joined}".encode()).digest()


def check_secret(provided: str) -> bool:
    provided = (provided or "").strip()
    if not provided:
        return False
    # compare against every entry so timing does not reveal which one matched
    matched = False
    for s in allowed_secrets():
        matched |= hmac.compare_digest(provided.encode(), s.encode())
    return matched


def create_token(ttl_seconds: int | None = None) -> str:
    ttl = ttl_seconds if ttl_seconds is not None else session_ttl()
    claims = {
        "jti": secrets.token_hex(16),
        "exp": int(time.time()) + ttl,
        "typ": TOKEN_TYPE,
    }
    return jwt.encode(claims, signing_key(), algorithm=TOKEN_ALGORITHM)


def verify_token(token: str | None) -> bool:
    if not token:
        return False
    try:
        claims = jwt.decode(
            token,
            signing_key(),
            algorithms=[TOKEN_ALGORITHM],
            options={"require": ["exp", "jti", "typ"]},
        )
    except jwt.PyJWTError as e:
        log.debug("admin session rejected: %s", e)
        return False
    return claims.get("typ") == TOKEN_TYPE


def set_session_cookie(response, token: str, ttl_seconds: int | None = None):
    response.set_cookie(
        COOKIE_NAME,
        token,
        max_age=ttl_seconds if ttl_seconds is not None else session_ttl(),
        path="/",
        httponly=True,
        samesite="Strict",
        secure=not settings.DEBUG,
    )
    return response


def clear_session_cookie(response):
    response.delete_cookie(COOKIE_NAME, path="/", samesite="Strict")
    return response


def has_admin_session(request) -> bool:
    return verify_token(request.COOKIES.get(COOKIE_NAME))


class HasAdminSession(permissions.BasePermission):
    """
    Allows access only with a valid admin_session cookie.
    """
    message = "unauthorized"

    def has_permission(self, request, view):
        return has_admin_session(request)
