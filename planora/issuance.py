# issuance.py
"""
Checkout callback -> issued ticket.

    verify signature -> idempotency lookup -> insert pending -> QR -> PDF
    -> persist artifact -> email (best effort) -> mark issued

Re-delivery of the same payment returns the ticket that already exists.
A ticket left in `failed` is re-rendered on the next delivery of its payment.
"""
import logging
from dataclasses import dataclass

from django.conf import settings

from . import payments, qr as qr_codec, storage, store
from .models import Event, PaymentEvent, Ticket
from .notifications import send_ticket_email
from .pdf import render_ticket_pdf
from .serializers import IssueMetadataSerializer, first_error_code

log = logging.getLogger("planora.issuance")

SUCCESS_MESSAGE = "Successfully registered for the event. Your ticket has been emailed."
EXISTING_MESSAGE = "A ticket was already issued for this payment."


class IssuanceError(Exception):
    def __init__(self, code: str, status: int = 400):
        super().__init__(code)
        self.code = code
        self.status = status


@dataclass
class IssueResult:
    ticket: Ticket
    ticket_url: str
    pdf_url: str | None
    created: bool

    def as_response(self) -> dict:
        return {
            "ticketUrl": self.ticket_url,
            "pdfUrl": self.pdf_url,
            "ticketId": str(self.ticket.id),
            "message": SUCCESS_MESSAGE if self.created else EXISTING_MESSAGE,
        }


def ticket_url(ticket_id) -> str:
    base = (getattr(settings, "BASE_URL", "") or "").rstrip("/")
    return f"{base}/ticket/{ticket_id}"


def get_event(event_id) -> Event | None:
    if not event_id:
        return None
    return Event.objects.filter(pk=event_id).first()


def _existing_result(ticket: Ticket) -> IssueResult:
    return IssueResult(
        ticket=ticket,
        ticket_url=ticket_url(ticket.id),
        pdf_url=storage.signed_pdf_url(ticket.id),
        created=False,
    )


def _log_callback(order_id, payment_id, signature, metadata, remote_addr) -> PaymentEvent:
    return PaymentEvent.objects.create(
        provider="razorpay",
        event="checkout.verify",
        signature=signature or "",
        remote_addr=remote_addr,
        payload={
            "razorpay_order_id": order_id,
            "razorpay_payment_id": payment_id,
            "metadata": metadata if isinstance(metadata, dict) else {},
        },
    )


def _close_log(entry: PaymentEvent, *, ok: bool, ticket: Ticket | None = None, error: str = ""):
    entry.processed_ok = ok
    entry.matched_ticket = ticket
    entry.error = error
    entry.save(update_fields=["processed_ok", "matched_ticket", "error", "processed_at"])


def render_and_store(ticket: Ticket, event: Event | None = None, template: dict | None = None) -> bytes:
    """Render the pass PDF and persist it; raises storage.StorageError on write failure."""
    pdf_bytes = render_ticket_pdf(ticket, event, template)
    path = storage.upload_ticket_pdf(ticket.id, pdf_bytes)
    store.attach_artifact(ticket, pdf_path=path)
    return pdf_bytes


def _issue(ticket: Ticket) -> IssueResult:
    if not ticket.qr:
        store.attach_artifact(ticket, qr=qr_codec.encode_data_url(ticket.id, ticket.email))

    event = get_event(ticket.event_id)
    template = storage.load_template(ticket.event_id)
    pdf_bytes = render_and_store(ticket, event, template)

    url = ticket_url(ticket.id)
    pdf_url = storage.signed_pdf_url(ticket.id)
    send_ticket_email(ticket, event, template, ticket_url=url, pdf_url=pdf_url, pdf_bytes=pdf_bytes)

    store.mark_issued(ticket)
    log.info("ticket issued ticket_id=%s payment_id=%s email=%s", ticket.id, ticket.payment_id, ticket.email)
    return IssueResult(ticket=ticket, ticket_url=url, pdf_url=pdf_url, created=True)


def issue_ticket(*, order_id, payment_id, signature, metadata, remote_addr=None) -> IssueResult:
    """
    Raises IssuanceError with the API error code. Validation happens before
    any row is written; once a pending row exists, any failure marks it failed.
    """
    payment_id = str(payment_id or "").strip()
    if not payment_id:
        raise IssuanceError("missing_payment_id")

    entry = _log_callback(order_id, payment_id, signature, metadata, remote_addr)

    if not payments.verify_payment_signature(order_id, payment_id, signature):
        log.warning("invalid razorpay signature order_id=%s payment_id=%s", order_id, payment_id)
        _close_log(entry, ok=False, error="invalid_signature")
        raise IssuanceError("invalid_signature")

    ser = IssueMetadataSerializer(data=metadata if isinstance(metadata, dict) else {})
    if not ser.is_valid():
        code = first_error_code(ser.errors, IssueMetadataSerializer.ERROR_ORDER, IssueMetadataSerializer.MISSING)
        _close_log(entry, ok=False, error=code)
        raise IssuanceError(code)
    details = ser.validated_data

    if getattr(settings, "RAZORPAY_VERIFY_CAPTURE", False):
        try:
            payments.confirm_captured(str(order_id), payment_id)
        except payments.PaymentNotCaptured as e:
            log.warning("payment not captured payment_id=%s reason=%s", payment_id, e)
            _close_log(entry, ok=False, error=f"payment_not_captured: {e}")
            raise IssuanceError("payment_not_captured", status=402)

    existing = store.find_by_payment_ref(payment_id)
    if existing is not None and existing.status != Ticket.STATUS_FAILED:
        log.info("returning existing ticket for payment payment_id=%s ticket_id=%s", payment_id, existing.id)
        _close_log(entry, ok=True, ticket=existing, error="duplicate")
        return _existing_result(existing)

    if existing is not None:
        ticket = existing
        log.info("re-issuing failed ticket payment_id=%s ticket_id=%s", payment_id, existing.id)
    else:
        ticket, created = store.insert_pending(
            name=details["name"],
            email=details["email"],
            phone=details["phone"],
            college=details["college"],
            ieee=details["ieee"],
            event_id=details["eventId"],
            payment_id=payment_id,
            razorpay_order_id=str(order_id or ""),
            razorpay_payment_id=payment_id,
            razorpay_signature=str(signature or ""),
            amount_paid=details["amount"],
        )
        if not created:
            _close_log(entry, ok=True, ticket=ticket, error="duplicate")
            return _existing_result(ticket)

    try:
        result = _issue(ticket)
    except Exception as e:
        log.error("ticket issuance failed ticket_id=%s payment_id=%s err=%s", ticket.id, payment_id, e)
        store.mark_failed(ticket)
        _close_log(entry, ok=False, ticket=ticket, error=str(e)[:500])
        raise IssuanceError("ticket_failed", status=500) from e

    _close_log(entry, ok=True, ticket=ticket)
    return result


def resend_ticket(ticket: Ticket) -> bool:
    """Admin resend: re-render from the stored record and mail it again."""
    event = get_event(ticket.event_id)
    template = storage.load_template(ticket.event_id)
    pdf_bytes = render_and_store(ticket, event, template)
    return send_ticket_email(
        ticket, event, template,
        ticket_url=ticket_url(ticket.id),
        pdf_url=storage.signed_pdf_url(ticket.id),
        pdf_bytes=pdf_bytes,
    )
