import uuid
from io import BytesIO

import pytest
import zxingcpp
from PIL import Image
from rest_framework.test import APIClient

from planora import qr as qr_codec
from planora.models import Event, Ticket
from planora.payments import expected_signature


@pytest.fixture(autouse=True)
def planora_settings(settings, tmp_path):
    """Deterministic secrets, a throwaway MEDIA_ROOT and the locmem mail backend."""
    settings.MEDIA_ROOT = tmp_path / "media"
    settings.STORAGES = {
        "default": {"BACKEND": "django.core.files.storage.FileSystemStorage"},
        "staticfiles": {"BACKEND": "django.contrib.staticfiles.storage.StaticFilesStorage"},
    }
    settings.EMAIL_BACKEND = "django.core.mail.backends.locmem.EmailBackend"
    settings.DEFAULT_FROM_EMAIL = "noreply@planora.test"
    settings.SUPPORT_EMAIL = "support@planora.test"
    settings.BASE_URL = "https://tickets.planora.test"
    settings.RAZORPAY_KEY_ID = "rzp_test_key"
    settings.RAZORPAY_KEY_SECRET = "rzp_test_secret"
    settings.RAZORPAY_VERIFY_CAPTURE = False
    settings.TICKET_PRICE_PAISE = 100000
    settings.ADMIN_SECRET = "admin-one, admin-two"
    settings.ADMIN_SESSION_TTL = 3600
    settings.ADMIN_DEFAULT_EVENT_ID = ""
    settings.OTP_SECRET = "otp-test-secret"
    settings.ORGANIZER_JWT = {"SECRET": "jwt-test-secret", "AUDIENCE": "authenticated", "ALGORITHMS": ["HS256"]}
    settings.STORAGE_URL_EXPIRES = 3600
    return settings


@pytest.fixture
def api_client() -> APIClient:
    return APIClient()


@pytest.fixture
def event(db) -> Event:
    return Event.objects.create(
        id="akcomsoc-2025",
        title="AKCOMSOC 2025",
        description="5G networks and Communication IoT.",
        location="Main Auditorium",
        price_inr=1000,
        organizer_id="org-secret-1",
    )


@pytest.fixture
def other_event(db) -> Event:
    return Event.objects.create(id="other-event", title="Other Event", organizer_id="org-secret-2")


@pytest.fixture
def make_ticket(db):
    """Factory for tickets; issued with an embedded QR unless told otherwise."""
    def _make(**kwargs) -> Ticket:
        fields = {
            "name": "Asha Rao",
            "email": "asha@example.com",
            "phone": "+91 98765 43210",
            "college": "CET",
            "event_id": "akcomsoc-2025",
            "payment_id": f"pay_{uuid.uuid4().hex[:12]}",
            "status": Ticket.STATUS_ISSUED,
        }
        fields.update(kwargs)
        ticket = Ticket.objects.create(**fields)
        if not ticket.qr:
            ticket.qr = qr_codec.encode_data_url(ticket.id, ticket.email)
            ticket.save(update_fields=["qr"])
        return ticket

    return _make


@pytest.fixture
def checkout_payload():
    """Builds a signed verify-payment body for the configured test key secret."""
    def _payload(payment_id: str = "pay_1", order_id: str = "order_1", **metadata) -> dict:
        meta = {
            "name": "Asha Rao",
            "email": "a@b.com",
            "phone": "9876543210",
            "college": "CET",
            "ieee": "IEEE-1234",
            "eventId": "akcomsoc-2025",
        }
        meta.update(metadata)
        return {
            "razorpay_order_id": order_id,
            "razorpay_payment_id": payment_id,
            "razorpay_signature": expected_signature(order_id, payment_id),
            "metadata": meta,
        }

    return _payload


@pytest.fixture
def read_qr():
    """Decodes a QR PNG back to its text with a real barcode reader."""
    def _read(png: bytes) -> str:
        found = zxingcpp.read_barcodes(Image.open(BytesIO(png)).convert("L"))
        assert found, "no QR code found in image"
        return found[0].text

    return _read
