"""HMAC-signed, time-limited links to stored artifacts.

URL format::

    /api/files/tickets/<ticket_id>.pdf?exp=1704067200&sig=a1b2c3d4e5f6a7b8

The signing key is derived from SECRET_KEY with a domain prefix so that it is
isolated from Django's other uses of the same secret.
"""

import hashlib
import hmac
import time
from urllib.parse import urlencode

from django.conf import settings
from django.urls import reverse

SIGNATURE_LENGTH = 16

# 7 days, matching STORAGE_URL_EXPIRES' default
DEFAULT_EXPIRES_IN = 604800

_KEY_DOMAIN = "planora:signed-file:v1"


def _get_signing_key() -> bytes:
    return hashlib.sha256(f"{_KEY_DOMAIN}:{settings.SECRET_KEY}".encode()).digest()


def generate_signature(path: str, expires: int) -> str:
    message = f"{path}:{expires}"
    return hmac.new(_get_signing_key(), message.encode(), hashlib.sha256).hexdigest()[:SIGNATURE_LENGTH]


def verify_signature(path: str, exp: str | None, sig: str | None) -> bool:
    """True iff `sig` matches `path` and `exp` has not passed."""
    if not exp or not sig:
        return False
    try:
        expires = int(exp)
    except (TypeError, ValueError):
        return False
    if expires < int(time.time()):
        return False
    return hmac.compare_digest(generate_signature(path, expires).encode(), str(sig).encode("utf-8"))


def expires_in() -> int:
    try:
        return int(getattr(settings, "STORAGE_URL_EXPIRES", DEFAULT_EXPIRES_IN))
    except (TypeError, ValueError):
        return DEFAULT_EXPIRES_IN


def generate_signed_url(path: str, *, seconds: int | None = None, absolute: bool = True) -> str:
    """
    Signed URL for a storage key such as "tickets/<id>.pdf".
    Absolute URLs are built from BASE_URL.
    """
    expires = int(time.time()) + (seconds if seconds is not None else expires_in())
    query = urlencode({"exp": expires, "sig": generate_signature(path, expires)})
    rel = f"{reverse('signed_file', kwargs={'path': path})}?{query}"
    if not absolute:
        return rel
    base = (getattr(settings, "BASE_URL", "") or "").rstrip("/")
    return f"{base}{rel}"
