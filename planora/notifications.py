# notifications.py
import logging
from email.mime.image import MIMEImage

from django.conf import settings
from django.core.mail import EmailMultiAlternatives
from django.template.loader import render_to_string

from . import qr as qr_codec
from .pdf import event_info_line
from .storage import resolve_template

log = logging.getLogger("planora.notifications")

QR_CONTENT_ID = "ticket-qr"


def _from_email() -> str:
    return getattr(settings, "DEFAULT_FROM_EMAIL", None) or "noreply@planora.app"


def build_ticket_email(ticket, event, template: dict | None, *, ticket_url: str,
                       pdf_url: str | None, pdf_bytes: bytes | None = None) -> EmailMultiAlternatives:
    brand = resolve_template(template)
    event_title = getattr(event, "title", None) or str(ticket.event_id or "Your Event")
    context = {
        "name": ticket.name,
        "email": ticket.email,
        "ticket_id": str(ticket.id),
        "event_title": event_title,
        "event_info": event_info_line(event) if event else "",
        "event_description": (getattr(event, "description", "") or "")[:300],
        "view_ticket_url": ticket_url,
        "pdf_download_url": pdf_url or ticket_url,
        "qr_cid": QR_CONTENT_ID,
        "brand_primary": brand["brandPrimary"],
        "brand_accent": brand["brandAccent"],
        "header_title": brand["headerTitle"],
        "support_email": getattr(settings, "SUPPORT_EMAIL", "support@planora.app"),
    }
    subject = f"Your Entry Pass for {getattr(event, 'title', None) or 'the Event'} is Ready"
    msg = EmailMultiAlternatives(
        subject=subject,
        body=render_to_string("planora/emails/ticket_confirmation.txt", context),
        from_email=_from_email(),
        to=[ticket.email],
    )
    msg.attach_alternative(render_to_string("planora/emails/ticket_confirmation.html", context), "text/html")
    msg.mixed_subtype = "related"

    png = qr_codec.decode_data_url(ticket.qr) or qr_codec.encode(ticket.id, ticket.email)
    image = MIMEImage(png, _subtype="png")
    image.add_header("Content-ID", f"<{QR_CONTENT_ID}>")
    image.add_header("Content-Disposition", "inline", filename="ticket-qr.png")
    msg.attach(image)

    if pdf_bytes:
        msg.attach(f"ticket-{ticket.id}.pdf", pdf_bytes, "application/pdf")
    return msg


def send_ticket_email(ticket, event, template: dict | None, *, ticket_url: str,
                      pdf_url: str | None, pdf_bytes: bytes | None = None) -> bool:
    """
    Best effort: the ticket and its artifact already exist, so a mail failure
    is logged and reported as False, never raised.
    """
    try:
        msg = build_ticket_email(ticket, event, template, ticket_url=ticket_url,
                                 pdf_url=pdf_url, pdf_bytes=pdf_bytes)
        msg.send(fail_silently=False)
    except Exception as e:
        log.warning("email sending failed, but ticket still issued ticket_id=%s email=%s err=%s",
                    ticket.id, ticket.email, e)
        return False
    log.info("ticket email sent ticket_id=%s email=%s", ticket.id, ticket.email)
    return True


def send_otp_email(email: str, code: str) -> None:
    """Raises on transport failure; the caller reports otp_send_failed."""
    context = {
        "otp_code": code,
        "ttl_minutes": getattr(settings, "OTP_CODE_TTL_MINUTES", 10),
    }
    msg = EmailMultiAlternatives(
        subject="Verify Your Email - Planora Tickets",
        body=render_to_string("planora/emails/otp_verification.txt", context),
        from_email=_from_email(),
        to=[email],
    )
    msg.attach_alternative(render_to_string("planora/emails/otp_verification.html", context), "text/html")
    msg.send(fail_silently=False)
