import uuid
from unittest.mock import MagicMock, patch
from urllib.parse import urlparse

import pytest
from django.core.files.uploadedfile import SimpleUploadedFile
from rest_framework.test import APIClient

from planora.models import EmailOtp, Event, PaymentEvent, Ticket

pytestmark = pytest.mark.django_db


def _local(url: str) -> str:
    parsed = urlparse(url)
    return f"{parsed.path}?{parsed.query}"


class TestHealth:
    def test_health(self, api_client: APIClient) -> None:
        assert api_client.get("/api/health/").json() == {"ok": True}


class TestCreateOrder:
    """POST /api/create-order"""

    @patch("planora.payments._get_razorpay_client")
    def test_create_order(self, mock_client: MagicMock, api_client: APIClient) -> None:
        mock_client.return_value.order.create.return_value = {"id": "order_X", "amount": 100000}

        resp = api_client.post("/api/create-order", {"name": "Asha", "email": "a@b.com"}, format="json")

        assert resp.status_code == 200
        assert resp.json() == {"orderId": "order_X", "amount": 100000, "razorpayKey": "rzp_test_key"}
        assert mock_client.return_value.order.create.call_args.args[0]["amount"] == 100000

    @patch("planora.payments._get_razorpay_client")
    def test_explicit_amount(self, mock_client: MagicMock, api_client: APIClient) -> None:
        mock_client.return_value.order.create.return_value = {"id": "order_Y", "amount": 25000}
        api_client.post("/api/create-order/", {"amount": 25000}, format="json")
        assert mock_client.return_value.order.create.call_args.args[0]["amount"] == 25000

    def test_keys_missing(self, settings, api_client: APIClient) -> None:
        settings.RAZORPAY_KEY_ID = ""
        resp = api_client.post("/api/create-order", {}, format="json")
        assert resp.status_code == 500
        assert resp.json()["error"] == "razorpay_not_configured"

    @patch("planora.payments._get_razorpay_client")
    def test_gateway_error(self, mock_client: MagicMock, api_client: APIClient) -> None:
        mock_client.return_value.order.create.side_effect = RuntimeError("gateway down")
        resp = api_client.post("/api/create-order", {}, format="json")
        assert resp.status_code == 500
        assert resp.json() == {"error": "order_failed"}

    def test_get_not_allowed(self, api_client: APIClient) -> None:
        resp = api_client.get("/api/create-order")
        assert resp.status_code == 405
        assert resp.json() == {"error": "method_not_allowed"}


class TestVerifyPayment:
    """POST /api/verify-payment"""

    def test_issues_ticket(self, api_client: APIClient, event, checkout_payload) -> None:
        resp = api_client.post("/api/verify-payment", checkout_payload(), format="json")

        assert resp.status_code == 200
        body = resp.json()
        ticket = Ticket.objects.get()
        assert body["ticketId"] == str(ticket.id)
        assert body["ticketUrl"].endswith(f"/ticket/{ticket.id}")
        assert body["pdfUrl"]

    def test_redelivery_is_idempotent(self, api_client: APIClient, event, checkout_payload) -> None:
        first = api_client.post("/api/verify-payment", checkout_payload(), format="json").json()
        second = api_client.post("/api/verify-payment", checkout_payload(), format="json").json()
        assert first["ticketId"] == second["ticketId"]
        assert Ticket.objects.count() == 1

    def test_bad_signature(self, api_client: APIClient, checkout_payload) -> None:
        payload = checkout_payload()
        payload["razorpay_signature"] = "deadbeef"
        resp = api_client.post("/api/verify-payment", payload, format="json")
        assert resp.status_code == 400
        assert resp.json() == {"error": "invalid_signature"}
        assert Ticket.objects.count() == 0

    def test_non_ascii_signature(self, api_client: APIClient, checkout_payload) -> None:
        payload = checkout_payload()
        payload["razorpay_signature"] = "é" + payload["razorpay_signature"][1:]
        resp = api_client.post("/api/verify-payment", payload, format="json")
        assert resp.status_code == 400
        assert resp.json() == {"error": "invalid_signature"}
        entry = PaymentEvent.objects.get()
        assert entry.processed_ok is False
        assert entry.error == "invalid_signature"

    def test_body_must_be_an_object(self, api_client: APIClient) -> None:
        resp = api_client.post("/api/verify-payment", [{"razorpay_order_id": "order_1"}], format="json")
        assert (resp.status_code, resp.json()) == (400, {"error": "invalid_request"})
        assert PaymentEvent.objects.count() == 0

    def test_missing_details(self, api_client: APIClient, checkout_payload) -> None:
        resp = api_client.post("/api/verify-payment", checkout_payload(name=""), format="json")
        assert resp.status_code == 400
        assert resp.json() == {"error": "missing_user_details"}


class TestVerifyTicket:
    """POST scans, PUT redeems."""

    def test_scan_valid(self, api_client: APIClient, make_ticket) -> None:
        ticket = make_ticket(email="a@b.com")
        resp = api_client.post("/api/verify-ticket", {"data": f"{ticket.id}|a@b.com"}, format="json")
        assert resp.status_code == 200
        assert resp.json()["valid"] is True
        assert resp.json()["name"] == ticket.name

    def test_scan_email_mismatch(self, api_client: APIClient, make_ticket) -> None:
        ticket = make_ticket(email="a@b.com")
        resp = api_client.post("/api/verify-ticket", {"data": f"{ticket.id}|wrong@email.com"}, format="json")
        assert resp.status_code == 200
        assert resp.json() == {"valid": False, "reason": "Email mismatch"}

    def test_redeem_then_replay(self, api_client: APIClient, make_ticket) -> None:
        ticket = make_ticket()

        assert api_client.put("/api/verify-ticket", {"ticketId": str(ticket.id)}, format="json").json() == {
            "success": True,
        }
        replay = api_client.put("/api/verify-ticket", {"ticketId": str(ticket.id)}, format="json")
        assert replay.status_code == 409
        assert replay.json()["error"] == "not_redeemable"
        assert replay.json()["reason"].startswith("Already used at")

        scan = api_client.post("/api/verify-ticket", {"data": f"{ticket.id}|{ticket.email}"}, format="json")
        assert scan.json()["valid"] is False

    @pytest.mark.parametrize("method", ["post", "put"])
    def test_body_must_be_an_object(self, api_client: APIClient, method) -> None:
        resp = getattr(api_client, method)("/api/verify-ticket", ["x"], format="json")
        assert (resp.status_code, resp.json()) == (400, {"error": "invalid_request"})

    def test_redeem_missing_id(self, api_client: APIClient) -> None:
        resp = api_client.put("/api/verify-ticket", {}, format="json")
        assert resp.status_code == 400
        assert resp.json() == {"error": "missing_ticket_id"}

    def test_redeem_unknown(self, api_client: APIClient) -> None:
        resp = api_client.put("/api/verify-ticket", {"ticketId": str(uuid.uuid4())}, format="json")
        assert resp.status_code == 404
        assert resp.json() == {"error": "not_found"}


class TestTicketLookup:
    def test_detail(self, api_client: APIClient, make_ticket) -> None:
        ticket = make_ticket()
        body = api_client.get(f"/api/ticket/{ticket.id}").json()
        assert body["id"] == str(ticket.id)
        assert body["qr"].startswith("data:image/png;base64,")
        assert "razorpay_signature" not in body
        assert "pdfUrl" not in body

    def test_detail_unknown(self, api_client: APIClient) -> None:
        for ticket_id in (uuid.uuid4(), "not-a-uuid"):
            resp = api_client.get(f"/api/ticket/{ticket_id}")
            assert resp.status_code == 404
            assert resp.json() == {"error": "not_found"}

    def test_pdf_download(self, api_client: APIClient, make_ticket, event) -> None:
        ticket = make_ticket()
        resp = api_client.get("/api/ticket-pdf", {"id": str(ticket.id)}, HTTP_ACCEPT="application/pdf")
        assert resp.status_code == 200
        assert resp["Content-Type"] == "application/pdf"
        assert resp["Content-Disposition"] == f'attachment; filename="ticket-{ticket.id}.pdf"'
        assert resp.content.startswith(b"%PDF")

    def test_pdf_errors(self, api_client: APIClient) -> None:
        missing = api_client.get("/api/ticket-pdf")
        assert (missing.status_code, missing.json()) == (400, {"error": "missing_id"})
        unknown = api_client.get("/api/ticket-pdf", {"id": str(uuid.uuid4())})
        assert (unknown.status_code, unknown.json()) == (404, {"error": "not_found"})

    def test_pdf_render_failure(self, api_client: APIClient, make_ticket) -> None:
        ticket = make_ticket()
        with patch("planora.views.render_ticket_pdf", side_effect=ValueError("broken font")):
            resp = api_client.get("/api/ticket-pdf", {"id": str(ticket.id)})
        assert resp.status_code == 500
        assert resp.json() == {"error": "pdf_render_failed"}


class TestSignedFiles:
    """The pdfUrl handed out at issuance serves the stored artifact."""

    def test_signed_pdf_url(self, api_client: APIClient, event, checkout_payload) -> None:
        body = api_client.post("/api/verify-payment", checkout_payload(), format="json").json()

        resp = api_client.get(_local(body["pdfUrl"]))

        assert resp.status_code == 200
        assert resp["Content-Type"] == "application/pdf"
        assert b"".join(resp.streaming_content).startswith(b"%PDF")

        detail = api_client.get(f"/api/ticket/{body['ticketId']}").json()
        assert "pdfUrl" in detail

    def test_bad_signature(self, api_client: APIClient, event, checkout_payload) -> None:
        body = api_client.post("/api/verify-payment", checkout_payload(), format="json").json()
        tampered = _local(body["pdfUrl"]).replace("sig=", "sig=0")
        resp = api_client.get(tampered)
        assert resp.status_code == 401
        assert resp.json() == {"error": "unauthorized"}

    def test_non_ascii_signature(self, api_client: APIClient) -> None:
        resp = api_client.get("/api/files/tickets/x.pdf", {"exp": "9999999999", "sig": "é"})
        assert (resp.status_code, resp.json()) == (401, {"error": "unauthorized"})

    def test_signed_but_missing(self, api_client: APIClient) -> None:
        from planora.signing import generate_signed_url

        resp = api_client.get(generate_signed_url("tickets/gone.pdf", absolute=False))
        assert resp.status_code == 404


class TestOtpLookup:
    """OTP request -> verify -> tickets-by-email."""

    def _token(self, api_client: APIClient, email: str) -> str:
        assert api_client.post("/api/otp/request", {"email": email}, format="json").json() == {"ok": True}
        code = EmailOtp.objects.filter(email=email.lower()).latest("created_at").code
        resp = api_client.post("/api/otp/verify", {"email": email, "code": code}, format="json")
        assert resp.status_code == 200
        return resp.json()["token"]

    def test_full_flow(self, api_client: APIClient, make_ticket) -> None:
        mine = make_ticket(email="a@b.com")
        make_ticket(email="someone@else.com")

        token = self._token(api_client, "A@B.com")
        resp = api_client.post("/api/tickets-by-email", {"email": "a@b.com"}, format="json",
                               HTTP_X_OTP_TOKEN=token)

        assert resp.status_code == 200
        tickets = resp.json()["tickets"]
        assert [t["id"] for t in tickets] == [str(mine.id)]
        assert tickets[0]["pdfUrl"].endswith(f"/ticket/{mine.id}")

    def test_code_emailed(self, api_client: APIClient, mailoutbox) -> None:
        api_client.post("/api/otp/request", {"email": "a@b.com"}, format="json")
        assert len(mailoutbox) == 1
        assert EmailOtp.objects.get().code in mailoutbox[0].body

    def test_invalid_email(self, api_client: APIClient) -> None:
        resp = api_client.post("/api/otp/request", {"email": "nope"}, format="json")
        assert (resp.status_code, resp.json()) == (400, {"error": "invalid_email"})

    def test_send_failure(self, api_client: APIClient) -> None:
        with patch("planora.views.send_otp_email", side_effect=OSError("smtp down")):
            resp = api_client.post("/api/otp/request", {"email": "a@b.com"}, format="json")
        assert (resp.status_code, resp.json()) == (500, {"error": "otp_send_failed"})

    def test_verify_missing_params(self, api_client: APIClient) -> None:
        resp = api_client.post("/api/otp/verify", {"email": "a@b.com"}, format="json")
        assert (resp.status_code, resp.json()) == (400, {"error": "missing_params"})

    def test_verify_wrong_code(self, api_client: APIClient) -> None:
        api_client.post("/api/otp/request", {"email": "a@b.com"}, format="json")
        code = EmailOtp.objects.get().code
        wrong = "000000" if code != "000000" else "111111"
        resp = api_client.post("/api/otp/verify", {"email": "a@b.com", "code": wrong}, format="json")
        assert (resp.status_code, resp.json()) == (401, {"error": "invalid_code"})

    def test_lookup_requires_token(self, api_client: APIClient) -> None:
        resp = api_client.post("/api/tickets-by-email", {"email": "a@b.com"}, format="json")
        assert (resp.status_code, resp.json()) == (401, {"error": "otp_required"})

    def test_lookup_rejects_non_object_body(self, api_client: APIClient) -> None:
        resp = api_client.post("/api/tickets-by-email", ["a@b.com"], format="json")
        assert (resp.status_code, resp.json()) == (400, {"error": "invalid_request"})

    def test_lookup_rejects_non_ascii_token(self, api_client: APIClient) -> None:
        token = self._token(api_client, "a@b.com")
        resp = api_client.post("/api/tickets-by-email", {"email": "a@b.com"}, format="json",
                               HTTP_X_OTP_TOKEN=token[:-1] + "é")
        assert (resp.status_code, resp.json()) == (401, {"error": "otp_required"})

    def test_token_bound_to_email(self, api_client: APIClient) -> None:
        token = self._token(api_client, "a@b.com")
        resp = api_client.post("/api/tickets-by-email", {"email": "c@d.com"}, format="json",
                               HTTP_X_OTP_TOKEN=token)
        assert resp.status_code == 401


class TestEvents:
    """Public listing and creation."""

    def test_list_hides_organizer_secret(self, api_client: APIClient, event) -> None:
        Event.objects.create(id="draft", title="Draft", is_published=False)
        rows = api_client.get("/api/events").json()["events"]
        assert [r["id"] for r in rows] == [event.id]
        assert "organizer_id" not in rows[0]

    def test_create_with_cover(self, api_client: APIClient) -> None:
        cover = SimpleUploadedFile("poster.png", b"\x89PNG fake", content_type="image/png")
        resp = api_client.post("/api/events", {
            "title": "Launch Night",
            "description": "Product launch",
            "price": "499",
            "date": "2025-03-14",
            "location": "Hall B",
            "organizer_id": "org-secret-9",
            "coverImage": cover,
        }, format="multipart")

        assert resp.status_code == 200
        event = Event.objects.get(title="Launch Night")
        assert event.price_inr == 499
        assert event.organizer_id == "org-secret-9"
        assert event.image_url.startswith("/media/event-covers/public/")
        assert resp.json()["event"]["id"] == event.id

    def test_create_missing_fields(self, api_client: APIClient) -> None:
        resp = api_client.post("/api/events", {"title": "No description", "price": "10"}, format="multipart")
        assert (resp.status_code, resp.json()) == (400, {"error": "missing_required_fields"})

    def test_create_invalid_price(self, api_client: APIClient) -> None:
        resp = api_client.post("/api/events", {"title": "T", "description": "D", "price": "free"},
                               format="multipart")
        assert (resp.status_code, resp.json()) == (400, {"error": "invalid_price"})
