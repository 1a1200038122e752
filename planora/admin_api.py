# admin_api.py
"""
Admin portal endpoints.

Authentication: the admin_session cookie only. No authentication classes
run here, so organizer headers and bearer tokens are ignored rather than
accepted.
"""
import logging

from django.conf import settings
from django.db.models import Q
from rest_framework.decorators import api_view, authentication_classes, permission_classes
from rest_framework.permissions import AllowAny
from rest_framework.response import Response

from . import admin_session, audit, checkin, issuance, stats, store
from .models import Event, Ticket
from .serializers import TicketBriefSerializer, TicketSerializer, request_object

log = logging.getLogger("planora.admin")

ADMIN_ACTOR = "admin"
DEFAULT_LIMIT = 50
MAX_LIMIT = 200
CHECK_TICKETS_LIMIT = 20
RECENT_LIMIT = 10


def _limit(raw) -> int:
    try:
        n = int(raw)
    except (TypeError, ValueError):
        return DEFAULT_LIMIT
    if n <= 0:
        return DEFAULT_LIMIT
    return min(n, MAX_LIMIT)


# ---------- Session ----------

@api_view(["GET", "POST", "DELETE"])
@authentication_classes([])
@permission_classes([AllowAny])
def session(request):
    if request.method == "GET":
        return Response({"authenticated": admin_session.has_admin_session(request)})

    if request.method == "DELETE":
        return admin_session.clear_session_cookie(Response({"ok": True}))

    provided = request_object(request).get("secret")
    provided = provided.strip() if isinstance(provided, str) else ""
    if not provided:
        return Response({"error": "missing_secret"}, status=400)
    if not admin_session.check_secret(provided):
        log.warning("admin login rejected remote_addr=%s", request.META.get("REMOTE_ADDR"))
        return Response({"error": "invalid_secret"}, status=401)

    token = admin_session.create_token()
    log.info("admin session opened remote_addr=%s", request.META.get("REMOTE_ADDR"))
    return admin_session.set_session_cookie(Response({"ok": True}), token)


# ---------- Tickets ----------

@api_view(["GET", "POST"])
@authentication_classes([])
@permission_classes([admin_session.HasAdminSession])
def tickets(request):
    if request.method == "GET":
        qs = Ticket.objects.all().order_by("-created_at")
        event_id = (request.query_params.get("eventId") or "").strip()
        if event_id and event_id != "ALL":
            qs = qs.filter(event_id=event_id)
        q = (request.query_params.get("q") or "").strip()
        if q:
            cond = Q(email__icontains=q) | Q(name__icontains=q) | Q(payment_id__icontains=q)
            pk = checkin.parse_ticket_id(q)
            if pk is not None:
                cond |= Q(pk=pk)
            qs = qs.filter(cond)
        qs = qs[:_limit(request.query_params.get("limit"))]
        return Response(TicketBriefSerializer(qs, many=True).data)

    body = request_object(request)
    ticket_id = body.get("id")
    action = body.get("action")
    if not ticket_id:
        return Response({"error": "missing_id"}, status=400)
    ticket = checkin.get_ticket(ticket_id)
    if ticket is None:
        return Response({"error": "not_found"}, status=404)

    if action == "toggle":
        before = ticket.used
        store.toggle_used(ticket)
        audit.record(request, actor=ADMIN_ACTOR, action="TOGGLE", obj=ticket,
                     changes={"used": [before, ticket.used], "status": ticket.status})
        return Response({"ok": True, "used": ticket.used})

    if action == "delete":
        audit.record(request, actor=ADMIN_ACTOR, action="DELETE", obj=ticket,
                     changes={"email": ticket.email, "payment_id": ticket.payment_id})
        ticket.delete()
        return Response({"ok": True})

    if action == "resend":
        try:
            sent = issuance.resend_ticket(ticket)
        except Exception as e:
            log.error("resend failed ticket_id=%s err=%s", ticket.id, e)
            return Response({"error": "resend_failed"}, status=500)
        audit.record(request, actor=ADMIN_ACTOR, action="RESEND", obj=ticket, changes={"sent": sent})
        return Response({"ok": True, "sent": sent,
                         "message": "Email resent" if sent else "Email could not be sent"})

    return Response({"error": "invalid_action"}, status=400)


# ---------- Dashboard ----------

def _default_event_id() -> str | None:
    configured = getattr(settings, "ADMIN_DEFAULT_EVENT_ID", "") or ""
    if configured:
        return configured
    latest = Event.objects.order_by("-created_at").values_list("id", flat=True).first()
    return latest


@api_view(["GET"])
@authentication_classes([])
@permission_classes([admin_session.HasAdminSession])
def dashboard_stats(request):
    event_id = (request.query_params.get("eventId") or "").strip() or _default_event_id()
    if not event_id:
        return Response({"error": "missing_event_id"}, status=400)

    data = stats.event_stats(event_id)
    data["valid"] = data["total"] - data["used"]
    recent = Ticket.objects.filter(event_id=event_id).order_by("-created_at")[:RECENT_LIMIT]
    data["recentTickets"] = TicketBriefSerializer(recent, many=True).data
    return Response(data)


@api_view(["GET", "PUT"])
@authentication_classes([])
@permission_classes([admin_session.HasAdminSession])
def events(request):
    if request.method == "GET":
        rows = Event.objects.order_by("-created_at").values("id", "title", "organizer_id")
        return Response({"events": list(rows)})

    body = request_object(request)
    event_id = body.get("id")
    organizer_id = body.get("organizer_id")
    if not event_id or not isinstance(organizer_id, str) or not organizer_id.strip():
        return Response({"error": "missing_params"}, status=400)
    event = Event.objects.filter(pk=event_id).first()
    if event is None:
        return Response({"error": "not_found"}, status=404)

    # the organizer secret itself is never written to the audit trail
    event.organizer_id = organizer_id.strip()
    event.save(update_fields=["organizer_id"])
    audit.record(request, actor=ADMIN_ACTOR, action="UPDATE", obj=event, changes={"organizer_id": "rotated"})
    return Response({"ok": True})


@api_view(["GET"])
@authentication_classes([])
@permission_classes([admin_session.HasAdminSession])
def check_tickets(request):
    total = Ticket.objects.count()
    recent = list(Ticket.objects.order_by("-created_at")[:CHECK_TICKETS_LIMIT])
    return Response({
        "success": True,
        "total_tickets": total,
        "recent_tickets": TicketBriefSerializer(recent, many=True).data,
        "sample_ticket": TicketSerializer(recent[0]).data if recent else None,
        "message": f"Found {total} tickets in database",
    })
