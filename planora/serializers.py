import re

from rest_framework import serializers

from .exceptions import InvalidRequest
from .models import Event, Ticket

PHONE_RE = re.compile(r"^\+?[0-9][0-9 \-]{5,18}[0-9]$")


def first_error_code(errors: dict, order: list[str], default: str = "invalid_request") -> str:
    """
    Pick one API error code out of serializer.errors. Field error messages
    are the codes themselves; `order` decides which wins when several fail.
    """
    codes = set()
    for msgs in errors.values():
        for m in (msgs if isinstance(msgs, list) else [msgs]):
            codes.add(str(m))
    for code in order:
        if code in codes:
            return code
    return next(iter(codes), default)


def request_object(request) -> dict:
    """request.data when the body is an object (JSON or form); InvalidRequest otherwise."""
    data = request.data
    if not isinstance(data, dict):
        raise InvalidRequest()
    return data


# --- Tickets ---

class TicketSerializer(serializers.ModelSerializer):
    class Meta:
        model = Ticket
        fields = [
            "id", "name", "email", "phone", "college", "ieee",
            "event_id", "payment_id", "razorpay_order_id", "razorpay_payment_id",
            "amount_paid", "status", "used", "used_at", "checked_in_at",
            "qr", "created_at", "updated_at",
        ]
        read_only_fields = fields


class TicketBriefSerializer(serializers.ModelSerializer):
    """Roster row without the embedded QR image."""
    class Meta:
        model = Ticket
        fields = [
            "id", "name", "email", "phone", "college", "ieee", "event_id",
            "status", "used", "used_at", "checked_in_at", "amount_paid", "created_at",
        ]
        read_only_fields = fields


class IssueMetadataSerializer(serializers.Serializer):
    """
    Attendee details sent alongside the checkout callback. Every registration
    path validates through here, so email and phone rules stay identical.
    """
    MISSING = "missing_user_details"
    ERROR_ORDER = [MISSING, "invalid_email", "invalid_phone"]

    name = serializers.CharField(
        max_length=200, trim_whitespace=True,
        error_messages={"required": MISSING, "blank": MISSING, "null": MISSING},
    )
    email = serializers.EmailField(
        max_length=254,
        error_messages={"required": MISSING, "blank": MISSING, "null": MISSING, "invalid": "invalid_email"},
    )
    phone = serializers.CharField(max_length=32, required=False, allow_blank=True, default="")
    college = serializers.CharField(max_length=200, required=False, allow_blank=True, default="")
    ieee = serializers.CharField(max_length=64, required=False, allow_blank=True, default="")
    eventId = serializers.CharField(max_length=64, required=False, allow_blank=True, allow_null=True, default=None)
    amount = serializers.IntegerField(required=False, allow_null=True, default=None, min_value=0)

    def validate_phone(self, value):
        value = (value or "").strip()
        if value and not PHONE_RE.match(value):
            raise serializers.ValidationError("invalid_phone")
        return value

    def validate_eventId(self, value):
        return (value or "").strip() or None

    def to_internal_value(self, data):
        # "amount" arrives from browsers as "" or a numeric string
        if isinstance(data, dict) and data.get("amount") in ("", None):
            data = {k: v for k, v in data.items() if k != "amount"}
        return super().to_internal_value(data)


# --- Events ---

class EventSerializer(serializers.ModelSerializer):
    class Meta:
        model = Event
        fields = [
            "id", "title", "description", "date", "location", "price_inr",
            "image_url", "organizer_id", "is_published", "is_featured", "created_at",
        ]
        read_only_fields = ["id", "created_at"]


class PublicEventSerializer(EventSerializer):
    """Published listing; the organizer secret never leaves the server here."""
    class Meta(EventSerializer.Meta):
        fields = [f for f in EventSerializer.Meta.fields if f != "organizer_id"]


DATE_INPUT_FORMATS = ["iso-8601", "%Y-%m-%d"]


class EventCreateSerializer(serializers.Serializer):
    MISSING = "missing_required_fields"

    title = serializers.CharField(max_length=200, error_messages={"required": MISSING, "blank": MISSING, "null": MISSING})
    description = serializers.CharField(error_messages={"required": MISSING, "blank": MISSING, "null": MISSING})
    price = serializers.IntegerField(
        min_value=0,
        error_messages={"required": MISSING, "null": MISSING, "invalid": "invalid_price", "min_value": "invalid_price"},
    )
    date = serializers.DateTimeField(required=False, allow_null=True, input_formats=DATE_INPUT_FORMATS)
    location = serializers.CharField(max_length=255, required=False, allow_blank=True, default="")
    organizer_id = serializers.CharField(max_length=128, required=False, allow_blank=True, default="")

    def to_internal_value(self, data):
        if hasattr(data, "get") and data.get("date") == "":
            data = {k: data.get(k) for k in data if k != "date"}
        return super().to_internal_value(data)


class EventUpdateSerializer(serializers.ModelSerializer):
    """Partial organizer edits; blank form fields leave the value untouched."""
    date = serializers.DateTimeField(required=False, allow_null=True, input_formats=DATE_INPUT_FORMATS)

    class Meta:
        model = Event
        fields = ["title", "description", "date", "location", "price_inr", "is_published", "is_featured"]
        extra_kwargs = {f: {"required": False} for f in fields}

    def to_internal_value(self, data):
        cleaned = {k: data.get(k) for k in self.Meta.fields if data.get(k) not in (None, "")}
        return super().to_internal_value(cleaned)



# --- OTP ---

class OtpRequestSerializer(serializers.Serializer):
    email = serializers.EmailField(
        max_length=254,
        error_messages={"required": "invalid_email", "blank": "invalid_email", "null": "invalid_email", "invalid": "invalid_email"},
    )

    def validate_email(self, value):
        return value.strip().lower()


class OtpVerifySerializer(serializers.Serializer):
    email = serializers.CharField(max_length=254, error_messages={"required": "missing_params", "blank": "missing_params", "null": "missing_params"})
    code = serializers.CharField(max_length=12, error_messages={"required": "missing_params", "blank": "missing_params", "null": "missing_params"})

    def validate_email(self, value):
        return value.strip().lower()
