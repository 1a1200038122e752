# payments.py
import hashlib
import hmac
import logging
import time

from django.conf import settings
from django.core.exceptions import ImproperlyConfigured

log = logging.getLogger("planora.payments")


class PaymentNotCaptured(Exception):
    """The gateway does not report the payment as captured for this order."""


# -----------------------------------
# Razorpay helpers
# -----------------------------------
def _get_razorpay_client():
    """
    Lazily import and return a configured Razorpay client.
    Raises RuntimeError with a clear message if the SDK or keys are missing.
    """
    try:
        import razorpay
    except ImportError:
        raise RuntimeError("Razorpay SDK is not installed on the server.")

    key_id = getattr(settings, "RAZORPAY_KEY_ID", None)
    key_secret = getattr(settings, "RAZORPAY_KEY_SECRET", None)
    if not key_id or not key_secret:
        raise RuntimeError("Razorpay keys are not configured (RAZORPAY_KEY_ID / RAZORPAY_KEY_SECRET).")

    return razorpay.Client(auth=(key_id, key_secret))


def _key_secret() -> str:
    secret = getattr(settings, "RAZORPAY_KEY_SECRET", None)
    if not secret:
        raise ImproperlyConfigured("RAZORPAY_KEY_SECRET must be set to verify payment signatures.")
    return secret


def expected_signature(order_id: str, payment_id: str) -> str:
    """Checkout signature: HMAC_SHA256(order_id|payment_id, key_secret), hex."""
    sign_str = f"{order_id}|{payment_id}"
    return hmac.new(_key_secret().encode(), sign_str.encode(), hashlib.sha256).hexdigest()


def verify_payment_signature(order_id: str | None, payment_id: str | None, signature: str | None) -> bool:
    if not order_id or not payment_id or not signature:
        return False
    expected = expected_signature(str(order_id), str(payment_id))
    return hmac.compare_digest(expected.encode(), str(signature).encode("utf-8"))


def confirm_captured(order_id: str, payment_id: str) -> dict:
    """
    Ask the gateway whether the payment is captured and belongs to the order.
    Only used when RAZORPAY_VERIFY_CAPTURE is on.
    """
    client = _get_razorpay_client()
    try:
        payment = client.payment.fetch(payment_id)
    except Exception as e:
        log.warning("payment fetch failed payment_id=%s err=%s", payment_id, e)
        raise PaymentNotCaptured(f"fetch_failed: {e}")

    status = (payment.get("status") or "").lower()
    if status != "captured":
        raise PaymentNotCaptured(f"status={status or 'unknown'}")
    if payment.get("order_id") and payment["order_id"] != order_id:
        raise PaymentNotCaptured("order_mismatch")
    return payment


def create_order(*, amount_paise: int, name: str | None = None, email: str | None = None) -> dict:
    """Create a Razorpay order for a single ticket purchase."""
    client = _get_razorpay_client()
    return client.order.create({
        "amount": int(amount_paise),
        "currency": "INR",
        "receipt": f"rcpt_{int(time.time() * 1000)}",
        "payment_capture": 1,
        "notes": {"name": name or "", "email": email or ""},
    })
