# auth_organizer.py
"""
Organizer authentication. Two accepted credentials:

  - X-Organizer-Secret: <Event.organizer_id>   (scoped to that secret's events)
  - Authorization: Bearer <JWT> with user_metadata.role == "organizer"

The admin_session cookie is never consulted here, and nothing in this module
grants access to the admin endpoints.
"""
import logging
from typing import Optional, Tuple

import jwt  # PyJWT
from django.conf import settings
from django.core.exceptions import ImproperlyConfigured
from rest_framework import permissions
from rest_framework.authentication import BaseAuthentication, get_authorization_header
from rest_framework.exceptions import AuthenticationFailed

log = logging.getLogger("planora.auth")

SECRET_HEADER = "X-Organizer-Secret"
ORGANIZER_ROLE = "organizer"
LEEWAY_SECONDS = 60  # tolerate small clock skew


class Organizer:
    """Authenticated organizer principal placed on request.user."""

    is_authenticated = True
    is_anonymous = False
    is_staff = False

    def __init__(self, *, secret: str | None = None, user_id: str | None = None, claims: dict | None = None):
        self.secret = secret
        self.user_id = user_id
        self.claims = claims or {}

    @property
    def via_secret(self) -> bool:
        return bool(self.secret)

    @property
    def actor(self) -> str:
        if self.secret:
            return f"organizer:{self.secret[:6]}"
        return f"organizer:{self.user_id}"

    def can_access(self, event) -> bool:
        """
        Secret holders only reach events carrying their secret; role-claim
        organizers reach any event.
        """
        if event is None:
            return False
        if self.via_secret:
            return event.organizer_id == self.secret
        return True

    def __str__(self):
        return self.actor


def _cfg() -> dict:
    c = getattr(settings, "ORGANIZER_JWT", {}) or {}
    return {
        "secret": c.get("SECRET") or "",
        "audience": c.get("AUDIENCE") or None,
        "algorithms": c.get("ALGORITHMS") or ["HS256"],
    }


def decode_organizer_token(token: str) -> dict:
    cfg = _cfg()
    if not cfg["secret"]:
        raise ImproperlyConfigured("ORGANIZER_JWT['SECRET'] must be set to accept organizer bearer tokens.")
    try:
        claims = jwt.decode(
            token,
            cfg["secret"],
            algorithms=cfg["algorithms"],
            audience=cfg["audience"],
            options={"require": ["exp", "sub"], "verify_aud": bool(cfg["audience"])},
            leeway=LEEWAY_SECONDS,
        )
    except jwt.PyJWTError as e:
        raise AuthenticationFailed(f"JWT verify failed: {e}")

    role = (claims.get("user_metadata") or {}).get("role")
    if role != ORGANIZER_ROLE:
        raise AuthenticationFailed("Not an organizer")
    return claims


class OrganizerSecretAuthentication(BaseAuthentication):
    def authenticate(self, request) -> Optional[Tuple[Organizer, None]]:
        secret = (request.headers.get(SECRET_HEADER) or "").strip()
        if not secret:
            return None
        return (Organizer(secret=secret), None)

    def authenticate_header(self, request):
        return SECRET_HEADER


class OrganizerJWTAuthentication(BaseAuthentication):
    def authenticate(self, request) -> Optional[Tuple[Organizer, str]]:
        auth = get_authorization_header(request).split()
        if not auth or auth[0].lower() != b"bearer":
            return None
        if len(auth) != 2:
            raise AuthenticationFailed("Invalid Authorization header")
        token = auth[1].decode("utf-8")

        claims = decode_organizer_token(token)
        log.debug("organizer bearer accepted sub=%s", claims.get("sub"))
        return (Organizer(user_id=str(claims["sub"]), claims=claims), token)

    def authenticate_header(self, request):
        return "Bearer"


ORGANIZER_AUTHENTICATION = [OrganizerSecretAuthentication, OrganizerJWTAuthentication]


class IsOrganizer(permissions.BasePermission):
    message = "unauthorized"

    def has_permission(self, request, view):
        return isinstance(request.user, Organizer)
