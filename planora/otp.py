"""
Email one-time codes for the "find my tickets" flow.

A code is mailed, exchanged once for a short-lived signed token, and the
token is then sent back in the X-OTP-Token header. The token is an HS256
JWT carrying {"email", "exp", "typ": "otp"}.
"""
import hashlib
import logging
import secrets
import time
from datetime import timedelta

import jwt  # PyJWT
from django.conf import settings
from django.core.exceptions import ImproperlyConfigured
from django.db import transaction
from django.utils import timezone

from .models import EmailOtp

log = logging.getLogger("planora.otp")

CODE_DIGITS = 6
TOKEN_TYPE = "otp"
TOKEN_ALGORITHM = "HS256"

_KEY_DOMAIN = "planora:otp-token:v1"


class OtpError(Exception):
    """Code exchange failed; `code` is the API error string."""

    def __init__(self, code: str):
        super().__init__(code)
        self.code = code


def _secret() -> str:
    secret = getattr(settings, "OTP_SECRET", None) or ""
    if not secret:
        # fall back to the first admin secret so a single env var is enough
        secret = (getattr(settings, "ADMIN_SECRET", "") or "").split(",")[0].strip()
    if not secret:
        raise ImproperlyConfigured("OTP_SECRET (or ADMIN_SECRET) must be set to sign OTP tokens.")
    return secret


def signing_key() -> bytes:
    return hashlib.sha256(f"{_KEY_DOMAIN}:{_secret()}".encode()).digest()


def token_ttl() -> int:
    return int(getattr(settings, "OTP_TTL_SECONDS", 600) or 600)


def sign_otp_token(email: str, ttl_seconds: int | None = None) -> str:
    exp = int(time.time()) + (ttl_seconds if ttl_seconds is not None else token_ttl())
    claims = {"email": email, "exp": exp, "typ": TOKEN_TYPE}
    return jwt.encode(claims, signing_key(), algorithm=TOKEN_ALGORITHM)


def verify_otp_token(token: str | None) -> tuple[bool, str | None]:
    """Returns (ok, email). Never raises for malformed input."""
    if not token:
        return False, None
    try:
        claims = jwt.decode(
            token,
            signing_key(),
            algorithms=[TOKEN_ALGORITHM],
            options={"require": ["exp", "email", "typ"]},
        )
    except jwt.PyJWTError as e:
        log.debug("otp token rejected: %s", e)
        return False, None

    email = claims.get("email")
    if claims.get("typ") != TOKEN_TYPE or not isinstance(email, str) or not email:
        return False, None
    return True, email


# ---------- Codes ----------

def generate_code() -> str:
    return f"{secrets.randbelow(10 ** CODE_DIGITS):0{CODE_DIGITS}d}"


def create_code(email: str) -> EmailOtp:
    minutes = int(getattr(settings, "OTP_CODE_TTL_MINUTES", 10) or 10)
    return EmailOtp.objects.create(
        email=email,
        code=generate_code(),
        expires_at=timezone.now() + timedelta(minutes=minutes),
    )


def exchange_code(email: str, code: str) -> str:
    """
    Consume the newest unused matching code and return a signed token.
    Raises OtpError("invalid_code") or OtpError("expired").
    """
    with transaction.atomic():
        otp = (
            EmailOtp.objects
            .select_for_update()
            .filter(email=email, code=code, used=False)
            .order_by("-created_at")
            .first()
        )
        if otp is None:
            raise OtpError("invalid_code")
        if otp.is_expired:
            raise OtpError("expired")
        otp.used = True
        otp.save(update_fields=["used"])
    log.info("otp exchanged email=%s", email)
    return sign_otp_token(email)
