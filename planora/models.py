#models.py
import uuid

from django.db import models
from django.db.models import Q
from django.utils import timezone


def _new_event_id() -> str:
    return uuid.uuid4().hex


class Event(models.Model):
    """
    Venue/time/price metadata. `organizer_id` doubles as the bearer secret
    for the organizer endpoints (X-Organizer-Secret).
    """
    id = models.CharField(primary_key=True, max_length=64, default=_new_event_id, editable=False)
    title = models.CharField(max_length=200)
    description = models.TextField(blank=True, default="")
    date = models.DateTimeField(null=True, blank=True)
    location = models.CharField(max_length=255, blank=True, default="")
    price_inr = models.IntegerField(default=0)
    image_url = models.URLField(max_length=500, blank=True, default="")
    organizer_id = models.CharField(max_length=128, blank=True, default="", db_index=True)
    is_published = models.BooleanField(default=True)
    is_featured = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-created_at"]

    def __str__(self):
        return f"{self.title} ({self.id})"


class Ticket(models.Model):
    STATUS_PENDING = "pending"
    STATUS_ISSUED = "issued"
    STATUS_FAILED = "failed"
    STATUS_REDEEMED = "redeemed"
    STATUS_CANCELLED = "cancelled"
    STATUS_CHOICES = (
        (STATUS_PENDING, "Pending"),
        (STATUS_ISSUED, "Issued"),
        (STATUS_FAILED, "Failed"),
        (STATUS_REDEEMED, "Redeemed"),
        (STATUS_CANCELLED, "Cancelled"),
    )

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    # holder
    name = models.CharField(max_length=200)
    email = models.EmailField(max_length=254, db_index=True)
    phone = models.CharField(max_length=32, blank=True, default="")
    college = models.CharField(max_length=200, blank=True, default="")
    ieee = models.CharField(max_length=64, blank=True, default="")

    # plain string match against Event.id, no FK on purpose
    event_id = models.CharField(max_length=64, blank=True, null=True, db_index=True)

    # payment reference
    payment_id = models.CharField(max_length=128)
    razorpay_order_id = models.CharField(max_length=128, blank=True, default="")
    razorpay_payment_id = models.CharField(max_length=128, blank=True, default="")
    razorpay_signature = models.CharField(max_length=256, blank=True, default="")
    amount_paid = models.IntegerField(null=True, blank=True, help_text="Amount in paise, if known")

    status = models.CharField(max_length=16, choices=STATUS_CHOICES, default=STATUS_PENDING, db_index=True)
    used = models.BooleanField(default=False)
    used_at = models.DateTimeField(null=True, blank=True)
    checked_in_at = models.DateTimeField(null=True, blank=True)

    # data:image/png;base64,... as embedded in the email and PDF
    qr = models.TextField(blank=True, default="")
    pdf_path = models.CharField(max_length=255, blank=True, default="")

    created_at = models.DateTimeField(default=timezone.now)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]
        constraints = [
            models.UniqueConstraint(
                fields=["payment_id"],
                condition=~Q(status="cancelled"),
                name="uniq_active_ticket_per_payment",
            ),
        ]

    def __str__(self):
        return f"{self.name} <{self.email}> [{self.status}{' USED' if self.used else ''}]"

    @property
    def is_redeemable(self) -> bool:
        return self.status == self.STATUS_ISSUED and not self.used


class EmailOtp(models.Model):
    email = models.EmailField(max_length=254, db_index=True)
    code = models.CharField(max_length=6)
    expires_at = models.DateTimeField()
    used = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-created_at"]

    def __str__(self):
        return f"OTP for {self.email} ({'used' if self.used else 'open'})"

    @property
    def is_expired(self) -> bool:
        return self.expires_at < timezone.now()


class PaymentEvent(models.Model):
    provider = models.CharField(max_length=32, default="razorpay")
    event = models.CharField(max_length=64, blank=True, default="")
    signature = models.CharField(max_length=256, blank=True, default="")
    remote_addr = models.GenericIPAddressField(blank=True, null=True)

    payload = models.JSONField(default=dict)

    matched_ticket = models.ForeignKey(
        Ticket, on_delete=models.SET_NULL, null=True, blank=True, related_name="payment_events"
    )
    processed_ok = models.BooleanField(default=False)
    error = models.TextField(blank=True, default="")

    created_at = models.DateTimeField(auto_now_add=True)
    processed_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        status = "OK" if self.processed_ok else "ERR"
        return f"[{self.provider}] {self.event} {status} ({self.created_at:%Y-%m-%d %H:%M})"


class AuditLog(models.Model):
    ACTION_CHOICES = (
        ("UPDATE", "Update"),
        ("DELETE", "Delete"),
        ("TOGGLE", "Toggle check-in"),
        ("RESEND", "Resend email"),
        ("UPLOAD", "Upload"),
    )

    # "admin" for the admin portal, "organizer:<prefix>" for organizers
    actor = models.CharField(max_length=64)
    action = models.CharField(max_length=20, choices=ACTION_CHOICES)
    model_name = models.CharField(max_length=100)
    object_id = models.CharField(max_length=100)
    object_repr = models.CharField(max_length=200, blank=True)
    changes = models.JSONField(default=dict)
    timestamp = models.DateTimeField(auto_now_add=True)
    remote_addr = models.GenericIPAddressField(null=True, blank=True)

    class Meta:
        ordering = ["-timestamp"]

    def __str__(self):
        return f"{self.actor} {self.action} {self.model_name}#{self.object_id}"
