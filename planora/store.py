# store.py
"""
Ticket record operations used by issuance and check-in.

Uniqueness of the payment reference and the single redemption are both
decided by the database: the partial unique constraint on
Ticket.payment_id and a conditional UPDATE respectively.
"""
import logging

from django.db import IntegrityError, transaction
from django.utils import timezone

from .models import Ticket

log = logging.getLogger("planora.store")


def find_by_payment_ref(payment_id: str) -> Ticket | None:
    return (
        Ticket.objects
        .exclude(status=Ticket.STATUS_CANCELLED)
        .filter(payment_id=payment_id)
        .order_by("created_at")
        .first()
    )


def insert_pending(**fields) -> tuple[Ticket, bool]:
    """
    Insert a pending ticket. Returns (ticket, created).
    A concurrent insert for the same payment loses on the unique constraint
    and gets the winner's row back with created=False.
    """
    fields = {**fields, "status": Ticket.STATUS_PENDING}
    try:
        with transaction.atomic():
            return Ticket.objects.create(**fields), True
    except IntegrityError:
        existing = find_by_payment_ref(fields.get("payment_id"))
        if existing is None:
            raise
        log.info("duplicate insert resolved to existing ticket payment_id=%s ticket_id=%s",
                 fields.get("payment_id"), existing.id)
        return existing, False


def attach_artifact(ticket: Ticket, *, qr: str | None = None, pdf_path: str | None = None) -> Ticket:
    update_fields = ["updated_at"]
    if qr is not None:
        ticket.qr = qr
        update_fields.append("qr")
    if pdf_path is not None:
        ticket.pdf_path = pdf_path
        update_fields.append("pdf_path")
    ticket.save(update_fields=update_fields)
    return ticket


def _set_status(ticket: Ticket, status: str) -> Ticket:
    ticket.status = status
    ticket.save(update_fields=["status", "updated_at"])
    return ticket


def mark_issued(ticket: Ticket) -> Ticket:
    return _set_status(ticket, Ticket.STATUS_ISSUED)


def mark_failed(ticket: Ticket) -> Ticket:
    return _set_status(ticket, Ticket.STATUS_FAILED)


def mark_redeemed(ticket_id) -> bool:
    """
    Atomic check-in: flips an issued, unused ticket to redeemed.
    Returns False when another scan got there first or the ticket is not issued.
    """
    now = timezone.now()
    updated = (
        Ticket.objects
        .filter(pk=ticket_id, status=Ticket.STATUS_ISSUED, used=False)
        .update(used=True, used_at=now, checked_in_at=now, status=Ticket.STATUS_REDEEMED, updated_at=now)
    )
    return updated == 1


def toggle_used(ticket: Ticket) -> Ticket:
    """Admin override: flip the check-in flag either way."""
    now = timezone.now()
    if ticket.used:
        ticket.used = False
        ticket.used_at = None
        ticket.checked_in_at = None
        if ticket.status == Ticket.STATUS_REDEEMED:
            ticket.status = Ticket.STATUS_ISSUED
    else:
        ticket.used = True
        ticket.used_at = now
        ticket.checked_in_at = now
        if ticket.status == Ticket.STATUS_ISSUED:
            ticket.status = Ticket.STATUS_REDEEMED
    ticket.save(update_fields=["used", "used_at", "checked_in_at", "status", "updated_at"])
    return ticket
