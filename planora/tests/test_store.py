import pytest

from planora import store
from planora.models import Ticket

pytestmark = pytest.mark.django_db


def _fields(**kwargs) -> dict:
    data = {"name": "Asha", "email": "a@b.com", "event_id": "akcomsoc-2025", "payment_id": "pay_1"}
    data.update(kwargs)
    return data


class TestInsertPending:
    """One non-cancelled ticket per payment reference."""

    def test_creates_pending(self) -> None:
        ticket, created = store.insert_pending(**_fields(status=Ticket.STATUS_ISSUED))
        assert created is True
        assert ticket.status == Ticket.STATUS_PENDING

    def test_duplicate_payment_returns_existing(self) -> None:
        first, _ = store.insert_pending(**_fields())
        second, created = store.insert_pending(**_fields(email="other@b.com"))
        assert created is False
        assert second.pk == first.pk
        assert Ticket.objects.filter(payment_id="pay_1").count() == 1

    def test_cancelled_ticket_frees_the_payment(self, make_ticket) -> None:
        make_ticket(payment_id="pay_1", status=Ticket.STATUS_CANCELLED)
        ticket, created = store.insert_pending(**_fields())
        assert created is True
        assert store.find_by_payment_ref("pay_1") == ticket

    def test_find_by_payment_ref_missing(self) -> None:
        assert store.find_by_payment_ref("pay_unknown") is None


class TestStatusTransitions:
    def test_attach_artifact(self, make_ticket) -> None:
        ticket = make_ticket(status=Ticket.STATUS_PENDING)
        store.attach_artifact(ticket, pdf_path="tickets/x.pdf")
        ticket.refresh_from_db()
        assert ticket.pdf_path == "tickets/x.pdf"

    def test_mark_issued_and_failed(self, make_ticket) -> None:
        ticket = make_ticket(status=Ticket.STATUS_PENDING)
        store.mark_issued(ticket)
        assert Ticket.objects.get(pk=ticket.pk).status == Ticket.STATUS_ISSUED
        store.mark_failed(ticket)
        assert Ticket.objects.get(pk=ticket.pk).status == Ticket.STATUS_FAILED


class TestMarkRedeemed:
    """Redemption is a conditional update that succeeds exactly once."""

    def test_redeems_once(self, make_ticket) -> None:
        ticket = make_ticket()
        assert store.mark_redeemed(ticket.pk) is True
        assert store.mark_redeemed(ticket.pk) is False

        ticket.refresh_from_db()
        assert ticket.used is True
        assert ticket.used_at is not None
        assert ticket.status == Ticket.STATUS_REDEEMED

    @pytest.mark.parametrize("status", [Ticket.STATUS_PENDING, Ticket.STATUS_FAILED, Ticket.STATUS_CANCELLED])
    def test_only_issued_tickets(self, make_ticket, status) -> None:
        ticket = make_ticket(status=status)
        assert store.mark_redeemed(ticket.pk) is False
        ticket.refresh_from_db()
        assert ticket.used is False


class TestToggleUsed:
    def test_toggle_round_trip(self, make_ticket) -> None:
        ticket = make_ticket()
        store.toggle_used(ticket)
        assert (ticket.used, ticket.status) == (True, Ticket.STATUS_REDEEMED)
        store.toggle_used(ticket)
        ticket.refresh_from_db()
        assert (ticket.used, ticket.used_at, ticket.status) == (False, None, Ticket.STATUS_ISSUED)
