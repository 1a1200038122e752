# checkin.py
"""
Door check-in. A scan reads the ticket and reports whether it may enter;
redeem commits the entry exactly once.

Scan checks run in a fixed order: payload format, existence, email,
already used, status. Rejections are returned, never raised.
"""
import logging
import uuid

from django.utils import timezone

from . import qr as qr_codec, store
from .models import Ticket

log = logging.getLogger("planora.checkin")

INVALID_FORMAT = "Invalid QR format"
NOT_FOUND = "Ticket not found"
EMAIL_MISMATCH = "Email mismatch"


class RedeemError(Exception):
    def __init__(self, error: str, status: int, reason: str | None = None):
        super().__init__(reason or error)
        self.error = error
        self.status = status
        self.reason = reason

    def as_response(self) -> dict:
        body = {"error": self.error}
        if self.reason:
            body["reason"] = self.reason
        return body


def parse_ticket_id(value) -> uuid.UUID | None:
    try:
        return uuid.UUID(str(value))
    except (TypeError, ValueError, AttributeError):
        return None


def get_ticket(ticket_id) -> Ticket | None:
    pk = parse_ticket_id(ticket_id)
    if pk is None:
        return None
    return Ticket.objects.filter(pk=pk).first()


def format_used_at(used_at) -> str:
    if not used_at:
        return "unknown time"
    return timezone.localtime(used_at).strftime("%d %b %Y, %H:%M:%S")


def rejection_reason(ticket: Ticket) -> str | None:
    """Why this ticket cannot enter right now, or None when it can."""
    if ticket.used:
        return f"Already used at {format_used_at(ticket.used_at)}"
    if ticket.status != Ticket.STATUS_ISSUED:
        return f"Ticket status: {ticket.status}"
    return None


def _reject(reason: str) -> dict:
    return {"valid": False, "reason": reason}


def verify_scan(data) -> dict:
    parsed = qr_codec.parse_payload(data)
    if parsed is None:
        return _reject(INVALID_FORMAT)
    ticket_id, email = parsed

    ticket = get_ticket(ticket_id)
    if ticket is None:
        return _reject(NOT_FOUND)

    if ticket.email != email:
        log.info("scan email mismatch ticket_id=%s", ticket.id)
        return _reject(EMAIL_MISMATCH)

    reason = rejection_reason(ticket)
    if reason:
        return _reject(reason)

    return {
        "valid": True,
        "id": str(ticket.id),
        "name": ticket.name,
        "email": ticket.email,
        "event_id": ticket.event_id,
        "created_at": ticket.created_at.isoformat() if ticket.created_at else None,
    }


def redeem(ticket_id) -> dict:
    """
    Commit a check-in. Raises RedeemError(not_found, 404) for unknown ids and
    RedeemError(not_redeemable, 409) when the ticket is used or not issued.
    """
    pk = parse_ticket_id(ticket_id)
    if pk is None or not Ticket.objects.filter(pk=pk).exists():
        raise RedeemError("not_found", 404)

    if store.mark_redeemed(pk):
        log.info("ticket redeemed ticket_id=%s", pk)
        return {"success": True}

    # lost the race or was never redeemable; report the current reason
    ticket = Ticket.objects.get(pk=pk)
    reason = rejection_reason(ticket) or f"Ticket status: {ticket.status}"
    log.info("redeem rejected ticket_id=%s reason=%s", pk, reason)
    raise RedeemError("not_redeemable", 409, reason=reason)
