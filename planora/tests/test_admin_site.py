import pytest
from django.urls import reverse

pytestmark = pytest.mark.django_db


class TestTicketAdmin:
    """Django admin extras: per-ticket PDF and CSV export."""

    def test_changelist(self, admin_client, make_ticket) -> None:
        ticket = make_ticket()
        resp = admin_client.get(reverse("admin:planora_ticket_changelist"))
        assert resp.status_code == 200
        assert reverse("admin:planora_ticket_pdf", args=[ticket.pk]) in resp.content.decode()

    def test_pdf_view(self, admin_client, make_ticket, event) -> None:
        ticket = make_ticket()
        resp = admin_client.get(reverse("admin:planora_ticket_pdf", args=[ticket.pk]))
        assert resp.status_code == 200
        assert resp["Content-Type"] == "application/pdf"
        assert resp.content.startswith(b"%PDF")

    def test_pdf_view_requires_staff(self, client, make_ticket) -> None:
        ticket = make_ticket()
        resp = client.get(reverse("admin:planora_ticket_pdf", args=[ticket.pk]))
        assert resp.status_code == 302

    def test_export_csv(self, admin_client, make_ticket) -> None:
        first = make_ticket(name="Asha")
        second = make_ticket(name="Ben")
        resp = admin_client.post(reverse("admin:planora_ticket_changelist"), {
            "action": "export_csv",
            "_selected_action": [str(first.pk), str(second.pk)],
        })
        assert resp["Content-Type"] == "text/csv"
        lines = resp.content.decode().strip().splitlines()
        assert lines[0].startswith("id,name,email")
        assert len(lines) == 3

    def test_download_action_needs_single_ticket(self, admin_client, make_ticket) -> None:
        first = make_ticket()
        second = make_ticket()
        resp = admin_client.post(reverse("admin:planora_ticket_changelist"), {
            "action": "download_pdf",
            "_selected_action": [str(first.pk), str(second.pk)],
        })
        assert resp.status_code == 302
