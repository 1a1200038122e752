# views.py
import logging
import mimetypes

from django.conf import settings
from django.core.files.storage import default_storage
from django.db import DatabaseError
from django.http import FileResponse, HttpResponse
from rest_framework import renderers
from rest_framework.decorators import api_view, permission_classes, renderer_classes
from rest_framework.permissions import AllowAny
from rest_framework.response import Response

from . import checkin, otp, payments, signing, storage
from .issuance import IssuanceError, get_event, issue_ticket, ticket_url
from .models import Event, Ticket
from .notifications import send_otp_email
from .pdf import render_ticket_pdf
from .serializers import (
    EventCreateSerializer,
    OtpRequestSerializer,
    OtpVerifySerializer,
    PublicEventSerializer,
    EventSerializer,
    TicketSerializer,
    first_error_code,
    request_object,
)

log = logging.getLogger("planora")

TICKETS_BY_EMAIL_LIMIT = 10


class PassthroughPDFRenderer(renderers.BaseRenderer):
    """
    Accepts Accept: application/pdf so DRF doesn't 406 before our view runs.
    We still return HttpResponse(pdf_bytes), so this is a no-op renderer.
    """
    media_type = "application/pdf"
    format = "pdf"
    charset = None
    render_style = "binary"

    def render(self, data, accepted_media_type=None, renderer_context=None):
        return data


@api_view(["GET"])
@permission_classes([AllowAny])
def health(request):
    return Response({"ok": True})


# ---------- Checkout ----------

@api_view(["POST"])
@permission_classes([AllowAny])
def create_order(request):
    """
    Body: {"name", "email", "amount"?}  amount in paise, falls back to TICKET_PRICE_PAISE.
    """
    if not getattr(settings, "RAZORPAY_KEY_ID", None) or not getattr(settings, "RAZORPAY_KEY_SECRET", None):
        log.error("Razorpay keys are not configured")
        return Response({
            "error": "razorpay_not_configured",
            "message": "RAZORPAY_KEY_ID and RAZORPAY_KEY_SECRET are required",
        }, status=500)

    body = request_object(request)
    try:
        amount = int(body.get("amount") or 0)
    except (TypeError, ValueError):
        amount = 0
    if amount <= 0:
        amount = int(getattr(settings, "TICKET_PRICE_PAISE", 100000) or 100000)

    try:
        order = payments.create_order(
            amount_paise=amount,
            name=body.get("name"),
            email=body.get("email"),
        )
    except Exception as e:
        log.error("order create failed amount=%s err=%s", amount, e)
        return Response({"error": "order_failed"}, status=500)

    return Response({
        "orderId": order["id"],
        "amount": order.get("amount", amount),
        "razorpayKey": settings.RAZORPAY_KEY_ID,
    })


@api_view(["POST"])
@permission_classes([AllowAny])
def verify_payment(request):
    data = request_object(request)
    try:
        result = issue_ticket(
            order_id=data.get("razorpay_order_id"),
            payment_id=data.get("razorpay_payment_id"),
            signature=data.get("razorpay_signature"),
            metadata=data.get("metadata") or {},
            remote_addr=request.META.get("REMOTE_ADDR"),
        )
    except IssuanceError as e:
        return Response({"error": e.code}, status=e.status)
    return Response(result.as_response())


# ---------- Door check-in ----------

@api_view(["POST", "PUT"])
@permission_classes([AllowAny])
def verify_ticket(request):
    body = request_object(request)
    if request.method == "POST":
        return Response(checkin.verify_scan(body.get("data")))

    ticket_id = body.get("ticketId")
    if not ticket_id:
        return Response({"error": "missing_ticket_id"}, status=400)
    try:
        return Response(checkin.redeem(ticket_id))
    except checkin.RedeemError as e:
        return Response(e.as_response(), status=e.status)


# ---------- Ticket lookup ----------

@api_view(["GET"])
@permission_classes([AllowAny])
def ticket_detail(request, ticket_id: str):
    ticket = checkin.get_ticket(ticket_id)
    if ticket is None:
        return Response({"error": "not_found"}, status=404)
    data = TicketSerializer(ticket).data
    pdf_url = storage.signed_pdf_url(ticket.id)
    if pdf_url:
        data["pdfUrl"] = pdf_url
    return Response(data)


@api_view(["GET"])
@permission_classes([AllowAny])
@renderer_classes([renderers.JSONRenderer, PassthroughPDFRenderer])
def ticket_pdf(request):
    ticket_id = (request.query_params.get("id") or "").strip()
    if not ticket_id:
        return Response({"error": "missing_id"}, status=400)
    ticket = checkin.get_ticket(ticket_id)
    if ticket is None:
        return Response({"error": "not_found"}, status=404)

    event = get_event(ticket.event_id)
    try:
        pdf_bytes = render_ticket_pdf(ticket, event, storage.load_template(ticket.event_id))
    except Exception as e:
        log.error("pdf render failed ticket_id=%s err=%s", ticket.id, e)
        return Response({"error": "pdf_render_failed"}, status=500)

    resp = HttpResponse(pdf_bytes, content_type="application/pdf")
    resp["Content-Disposition"] = f'attachment; filename="ticket-{ticket.id}.pdf"'
    return resp


@api_view(["GET"])
@permission_classes([AllowAny])
@renderer_classes([renderers.JSONRenderer, PassthroughPDFRenderer])
def signed_file(request, path: str):
    if not signing.verify_signature(path, request.query_params.get("exp"), request.query_params.get("sig")):
        return Response({"error": "unauthorized"}, status=401)
    if not default_storage.exists(path):
        return Response({"error": "not_found"}, status=404)
    content_type = mimetypes.guess_type(path)[0] or "application/octet-stream"
    resp = FileResponse(default_storage.open(path, "rb"), content_type=content_type)
    resp["Content-Disposition"] = f'inline; filename="{path.rsplit("/", 1)[-1]}"'
    return resp


# ---------- OTP-gated "my tickets" ----------

@api_view(["POST"])
@permission_classes([AllowAny])
def otp_request(request):
    ser = OtpRequestSerializer(data=request.data)
    if not ser.is_valid():
        return Response({"error": "invalid_email"}, status=400)
    email = ser.validated_data["email"]

    try:
        entry = otp.create_code(email)
    except DatabaseError as e:
        log.error("otp store failed email=%s err=%s", email, e)
        return Response({"error": "otp_store_failed"}, status=500)

    try:
        send_otp_email(email, entry.code)
    except Exception as e:
        log.error("otp send failed email=%s err=%s", email, e)
        return Response({"error": "otp_send_failed"}, status=500)
    return Response({"ok": True})


@api_view(["POST"])
@permission_classes([AllowAny])
def otp_verify(request):
    ser = OtpVerifySerializer(data=request.data)
    if not ser.is_valid():
        return Response({"error": first_error_code(ser.errors, ["missing_params"])}, status=400)
    try:
        token = otp.exchange_code(ser.validated_data["email"], ser.validated_data["code"].strip())
    except otp.OtpError as e:
        return Response({"error": e.code}, status=401)
    return Response({"ok": True, "token": token})


@api_view(["POST"])
@permission_classes([AllowAny])
def tickets_by_email(request):
    email = str(request_object(request).get("email") or "").strip().lower()
    ok, token_email = otp.verify_otp_token(request.headers.get("X-OTP-Token"))
    if not ok or (token_email or "").lower() != email:
        return Response({"error": "otp_required"}, status=401)
    if not OtpRequestSerializer(data={"email": email}).is_valid():
        return Response({"error": "invalid_email"}, status=400)

    tickets = Ticket.objects.filter(email__iexact=email).order_by("-created_at")[:TICKETS_BY_EMAIL_LIMIT]
    out = []
    for t in tickets:
        row = TicketSerializer(t).data
        row["pdfUrl"] = storage.signed_pdf_url(t.id) or ticket_url(t.id)
        out.append(row)
    return Response({"tickets": out})


# ---------- Events ----------

@api_view(["GET", "POST"])
@permission_classes([AllowAny])
def events(request):
    if request.method == "GET":
        qs = Event.objects.filter(is_published=True).order_by("-created_at")
        return Response({"events": PublicEventSerializer(qs, many=True).data})

    ser = EventCreateSerializer(data=request.data)
    if not ser.is_valid():
        code = first_error_code(ser.errors, [EventCreateSerializer.MISSING, "invalid_price"])
        return Response({"error": code}, status=400)
    d = ser.validated_data

    image_url = ""
    cover = request.FILES.get("coverImage")
    if cover is not None:
        try:
            image_url = storage.upload_cover(cover.name, cover.read())
        except OSError as e:
            # event is still created without artwork
            log.error("cover upload failed name=%s err=%s", cover.name, e)

    event = Event.objects.create(
        title=d["title"].strip(),
        description=d["description"].strip(),
        date=d.get("date"),
        location=(d.get("location") or "").strip(),
        price_inr=d["price"],
        image_url=image_url,
        organizer_id=(d.get("organizer_id") or "").strip(),
        is_published=True,
    )
    log.info("event created event_id=%s title=%s", event.id, event.title)
    return Response({"event": EventSerializer(event).data})
