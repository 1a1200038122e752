# audit.py
from .models import AuditLog


def client_ip(request) -> str | None:
    return request.META.get("REMOTE_ADDR") or None


def record(request, *, actor: str, action: str, obj, changes: dict | None = None) -> AuditLog:
    """One AuditLog row per admin/organizer write."""
    return AuditLog.objects.create(
        actor=actor,
        action=action,
        model_name=obj._meta.label,
        object_id=str(obj.pk),
        object_repr=str(obj)[:200],
        changes=changes or {},
        remote_addr=client_ip(request),
    )
