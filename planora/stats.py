# stats.py
from django.conf import settings
from django.db.models import Count, Q
from django.db.models.functions import Trim, TruncDate

from .models import Ticket

TOP_COLLEGES = 5

# a redeemed ticket still counts as issued for revenue and rates
ISSUED_STATUSES = (Ticket.STATUS_ISSUED, Ticket.STATUS_REDEEMED)


def _rate(part: int, whole: int) -> float:
    return round(part / whole * 100, 1) if whole > 0 else 0


def ticket_price_inr() -> int:
    return int(getattr(settings, "TICKET_PRICE_PAISE", 100000) or 0) // 100


def top_colleges(qs, limit: int = TOP_COLLEGES) -> list[dict]:
    rows = (
        qs.annotate(college_name=Trim("college"))
        .exclude(college_name="")
        .values("college_name")
        .annotate(count=Count("id"))
        .order_by("-count", "college_name")[:limit]
    )
    return [{"name": r["college_name"], "count": r["count"]} for r in rows]


def daily_counts(qs) -> list[dict]:
    # TruncDate buckets in the current time zone
    rows = (
        qs.annotate(day=TruncDate("created_at"))
        .values("day")
        .annotate(count=Count("id"))
        .order_by("day")
    )
    return [{"day": r["day"].isoformat(), "count": r["count"]} for r in rows if r["day"]]


def event_stats(event_id: str) -> dict:
    """
    Counts and rates for one event's tickets, shared by the admin and
    organizer dashboards. Revenue is issued tickets at the flat ticket price.
    """
    qs = Ticket.objects.filter(event_id=event_id)
    agg = qs.aggregate(
        total=Count("id"),
        used=Count("id", filter=Q(used=True)),
        pending=Count("id", filter=Q(status=Ticket.STATUS_PENDING)),
        issued=Count("id", filter=Q(status__in=ISSUED_STATUSES)),
        failed=Count("id", filter=Q(status=Ticket.STATUS_FAILED)),
    )
    total, used, issued = agg["total"], agg["used"], agg["issued"]

    return {
        "eventId": event_id,
        "total": total,
        "used": used,
        "pending": agg["pending"],
        "issued": issued,
        "failed": agg["failed"],
        "revenue": issued * ticket_price_inr(),
        "absentees": max(0, issued - used),
        "checkInRate": _rate(used, issued),
        "issueRate": _rate(issued, total),
        "topColleges": top_colleges(qs),
        "dailyCounts": daily_counts(qs),
    }
