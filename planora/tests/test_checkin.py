import uuid

import pytest
from django.utils import timezone

from planora import checkin
from planora.models import Ticket

pytestmark = pytest.mark.django_db


def _scan(ticket, email=None) -> str:
    return f"{ticket.id}|{email or ticket.email}"


class TestVerifyScan:
    """Rejections are returned with a reason; only issued, unused tickets pass."""

    def test_valid_ticket(self, make_ticket) -> None:
        ticket = make_ticket(email="a@b.com")
        result = checkin.verify_scan(_scan(ticket))
        assert result["valid"] is True
        assert result["id"] == str(ticket.id)
        assert result["email"] == "a@b.com"
        assert result["event_id"] == ticket.event_id

    def test_scan_does_not_redeem(self, make_ticket) -> None:
        ticket = make_ticket()
        checkin.verify_scan(_scan(ticket))
        ticket.refresh_from_db()
        assert ticket.used is False

    @pytest.mark.parametrize("data", [None, "", "garbage", "a|b|c", f"{uuid.uuid4()}|"])
    def test_invalid_format(self, data) -> None:
        assert checkin.verify_scan(data) == {"valid": False, "reason": checkin.INVALID_FORMAT}

    @pytest.mark.parametrize("ticket_id", [str(uuid.uuid4()), "not-a-uuid"])
    def test_unknown_ticket(self, ticket_id) -> None:
        assert checkin.verify_scan(f"{ticket_id}|a@b.com") == {"valid": False, "reason": checkin.NOT_FOUND}

    def test_email_mismatch(self, make_ticket) -> None:
        ticket = make_ticket(email="a@b.com")
        assert checkin.verify_scan(_scan(ticket, "wrong@email.com")) == {
            "valid": False, "reason": "Email mismatch",
        }

    def test_email_match_is_exact(self, make_ticket) -> None:
        ticket = make_ticket(email="a@b.com")
        assert checkin.verify_scan(_scan(ticket, "A@B.com"))["reason"] == checkin.EMAIL_MISMATCH

    def test_padded_scan_is_not_valid(self, make_ticket) -> None:
        ticket = make_ticket(email="a@b.com")
        assert checkin.verify_scan(f"{ticket.id}|  a@b.com  ")["reason"] == checkin.EMAIL_MISMATCH
        assert checkin.verify_scan(f" {ticket.id} |a@b.com")["reason"] == checkin.NOT_FOUND

    def test_email_checked_before_used(self, make_ticket) -> None:
        ticket = make_ticket(used=True, used_at=timezone.now(), status=Ticket.STATUS_REDEEMED)
        assert checkin.verify_scan(_scan(ticket, "x@y.com"))["reason"] == checkin.EMAIL_MISMATCH

    def test_already_used(self, make_ticket) -> None:
        ticket = make_ticket()
        checkin.redeem(ticket.id)
        result = checkin.verify_scan(_scan(ticket))
        assert result["valid"] is False
        assert result["reason"].startswith("Already used at ")

    @pytest.mark.parametrize("status", [Ticket.STATUS_PENDING, Ticket.STATUS_FAILED, Ticket.STATUS_CANCELLED])
    def test_not_issued(self, make_ticket, status) -> None:
        ticket = make_ticket(status=status)
        assert checkin.verify_scan(_scan(ticket)) == {"valid": False, "reason": f"Ticket status: {status}"}

    def test_format_used_at_without_time(self) -> None:
        assert checkin.format_used_at(None) == "unknown time"


class TestRedeem:
    """The door commit succeeds once; replays are 409 with the reason."""

    def test_redeem(self, make_ticket) -> None:
        ticket = make_ticket()
        assert checkin.redeem(str(ticket.id)) == {"success": True}
        ticket.refresh_from_db()
        assert ticket.used is True
        assert ticket.status == Ticket.STATUS_REDEEMED

    def test_second_redeem_conflicts(self, make_ticket) -> None:
        ticket = make_ticket()
        checkin.redeem(ticket.id)
        with pytest.raises(checkin.RedeemError) as exc_info:
            checkin.redeem(ticket.id)
        assert exc_info.value.status == 409
        assert exc_info.value.as_response()["error"] == "not_redeemable"
        assert exc_info.value.reason.startswith("Already used at ")

    def test_pending_ticket_conflicts(self, make_ticket) -> None:
        ticket = make_ticket(status=Ticket.STATUS_PENDING)
        with pytest.raises(checkin.RedeemError) as exc_info:
            checkin.redeem(ticket.id)
        assert exc_info.value.status == 409
        assert exc_info.value.reason == "Ticket status: pending"

    @pytest.mark.parametrize("ticket_id", [str(uuid.uuid4()), "nope"])
    def test_unknown_ticket(self, ticket_id) -> None:
        with pytest.raises(checkin.RedeemError) as exc_info:
            checkin.redeem(ticket_id)
        assert exc_info.value.status == 404
        assert exc_info.value.as_response() == {"error": "not_found"}
