# organizer_api.py
"""
Organizer portal endpoints.

Authentication: X-Organizer-Secret or an organizer-role bearer token
(auth_organizer). The admin_session cookie is never accepted here.
"""
import json
import logging

from rest_framework.decorators import api_view, authentication_classes, permission_classes
from rest_framework.response import Response

from . import audit, stats, storage
from .auth_organizer import ORGANIZER_AUTHENTICATION, IsOrganizer
from .models import Event, Ticket
from .serializers import EventSerializer, EventUpdateSerializer, TicketBriefSerializer, request_object

log = logging.getLogger("planora.organizer")


def _event_for(request, event_id):
    """
    (event, error_response). Unknown events and events outside the caller's
    scope are both reported as forbidden.
    """
    if not event_id:
        return None, Response({"error": "missing_event_id"}, status=400)
    event = Event.objects.filter(pk=event_id).first()
    if not request.user.can_access(event):
        return None, Response({"error": "forbidden"}, status=403)
    return event, None


@api_view(["GET", "PUT"])
@authentication_classes(ORGANIZER_AUTHENTICATION)
@permission_classes([IsOrganizer])
def events(request):
    organizer = request.user
    if request.method == "GET":
        qs = Event.objects.order_by("-created_at")
        if organizer.via_secret:
            qs = qs.filter(organizer_id=organizer.secret)
        return Response({"events": EventSerializer(qs, many=True).data})

    event_id = request_object(request).get("id")
    if not event_id:
        return Response({"error": "missing_id"}, status=400)
    event, err = _event_for(request, event_id)
    if err is not None:
        return err

    ser = EventUpdateSerializer(event, data=request.data, partial=True)
    if not ser.is_valid():
        return Response({"error": "invalid_fields", "fields": sorted(ser.errors)}, status=400)

    changes = {k: str(v) for k, v in ser.validated_data.items()}
    cover = request.FILES.get("coverImage")
    try:
        if cover is not None:
            image_url = storage.upload_cover(cover.name, cover.read())
            changes["image_url"] = image_url
            event = ser.save(image_url=image_url)
        else:
            event = ser.save()
    except OSError as e:
        log.error("event update failed event_id=%s err=%s", event_id, e)
        return Response({"error": "update_failed"}, status=500)

    audit.record(request, actor=organizer.actor, action="UPDATE", obj=event, changes=changes)
    return Response({"event": EventSerializer(event).data})


@api_view(["GET"])
@authentication_classes(ORGANIZER_AUTHENTICATION)
@permission_classes([IsOrganizer])
def tickets(request):
    event, err = _event_for(request, (request.query_params.get("eventId") or "").strip())
    if err is not None:
        return err
    qs = Ticket.objects.filter(event_id=event.id).order_by("-created_at")
    return Response({"tickets": TicketBriefSerializer(qs, many=True).data})


@api_view(["GET"])
@authentication_classes(ORGANIZER_AUTHENTICATION)
@permission_classes([IsOrganizer])
def analytics(request):
    event, err = _event_for(request, (request.query_params.get("eventId") or "").strip())
    if err is not None:
        return err
    return Response(stats.event_stats(event.id))


def _template_content(request) -> bytes | None:
    upload = request.FILES.get("template")
    if upload is not None:
        return upload.read()
    raw = request_object(request).get("template")
    if raw in (None, ""):
        return None
    if isinstance(raw, dict):
        return json.dumps(raw).encode("utf-8")
    return str(raw).encode("utf-8")


@api_view(["GET", "POST"])
@authentication_classes(ORGANIZER_AUTHENTICATION)
@permission_classes([IsOrganizer])
def templates(request):
    if request.method == "GET":
        event, err = _event_for(request, (request.query_params.get("eventId") or "").strip())
        if err is not None:
            return err
        template = storage.load_template(event.id)
        if template is None:
            return Response({"error": "not_found"}, status=404)
        return Response({"template": template})

    event, err = _event_for(request, str(request_object(request).get("eventId") or "").strip())
    if err is not None:
        return err
    content = _template_content(request)
    if content is None:
        return Response({"error": "missing_template"}, status=400)

    try:
        storage.save_template(event.id, content)
    except (ValueError, UnicodeDecodeError):
        return Response({"error": "invalid_template"}, status=400)
    except storage.StorageError as e:
        log.error("template upload failed event_id=%s err=%s", event.id, e)
        return Response({"error": "upload_failed"}, status=500)

    audit.record(request, actor=request.user.actor, action="UPLOAD", obj=event,
                 changes={"template": storage.template_path(event.id)})
    return Response({"ok": True})
