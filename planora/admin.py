# admin.py
import csv

from django.contrib import admin, messages
from django.db import models as dj_models
from django.forms import Textarea
from django.http import HttpResponse
from django.shortcuts import get_object_or_404
from django.urls import path, reverse
from django.utils.html import format_html

from .issuance import get_event
from .models import AuditLog, EmailOtp, Event, PaymentEvent, Ticket
from .pdf import render_ticket_pdf
from .storage import load_template


admin.site.site_header = "Planora Admin Panel"
admin.site.site_title = "Planora Admin"
admin.site.index_title = "Welcome to Planora Admin"


@admin.register(Event)
class EventAdmin(admin.ModelAdmin):
    list_display = ("title", "id", "date", "location", "price_inr", "is_published", "is_featured", "created_at")
    list_filter = ("is_published", "is_featured")
    search_fields = ("id", "title", "location")
    readonly_fields = ("id", "created_at")


@admin.register(Ticket)
class TicketAdmin(admin.ModelAdmin):
    list_display = (
        "id", "name", "email", "event_id", "status", "used", "used_at",
        "payment_id", "created_at", "pdf_link",
    )
    list_filter = ("status", "used", "event_id", "created_at")
    search_fields = ("id", "name", "email", "phone", "payment_id", "razorpay_order_id")
    readonly_fields = (
        "id", "payment_id", "razorpay_order_id", "razorpay_payment_id", "razorpay_signature",
        "qr", "pdf_path", "created_at", "updated_at",
    )
    fieldsets = (
        ("Holder", {"fields": ("id", "name", "email", "phone", "college", "ieee", "event_id")}),
        ("Lifecycle", {"fields": ("status", "used", "used_at", "checked_in_at")}),
        ("Payment", {"fields": ("payment_id", "razorpay_order_id", "razorpay_payment_id",
                                "razorpay_signature", "amount_paid")}),
        ("Artifacts", {"fields": ("qr", "pdf_path", "created_at", "updated_at")}),
    )
    actions = ["download_pdf", "export_csv"]

    def get_urls(self):
        urls = super().get_urls()
        my = [
            path("<uuid:ticket_id>/pdf/", self.admin_site.admin_view(self.pdf_view),
                 name="planora_ticket_pdf"),
        ]
        return my + urls

    @admin.display(description="PDF")
    def pdf_link(self, obj):
        return format_html('<a href="{}">download</a>', reverse("admin:planora_ticket_pdf", args=[obj.pk]))

    def _pdf_response(self, ticket):
        pdf_bytes = render_ticket_pdf(ticket, get_event(ticket.event_id), load_template(ticket.event_id))
        resp = HttpResponse(pdf_bytes, content_type="application/pdf")
        resp["Content-Disposition"] = f'attachment; filename="ticket-{ticket.id}.pdf"'
        return resp

    def pdf_view(self, request, ticket_id):
        return self._pdf_response(get_object_or_404(Ticket, pk=ticket_id))

    @admin.action(description="Download ticket PDF")
    def download_pdf(self, request, queryset):
        if queryset.count() != 1:
            self.message_user(request, "Select exactly one ticket to download.", level=messages.WARNING)
            return None
        return self._pdf_response(queryset.first())

    @admin.action(description="Export selected as CSV")
    def export_csv(self, request, queryset):
        resp = HttpResponse(content_type="text/csv")
        resp["Content-Disposition"] = 'attachment; filename="tickets.csv"'
        cols = ["id", "name", "email", "phone", "college", "ieee", "event_id",
                "status", "used", "used_at", "payment_id", "created_at"]
        w = csv.writer(resp)
        w.writerow(cols)
        for t in queryset.order_by("created_at"):
            w.writerow([getattr(t, c) for c in cols])
        return resp


@admin.register(EmailOtp)
class EmailOtpAdmin(admin.ModelAdmin):
    list_display = ("email", "used", "expires_at", "created_at")
    list_filter = ("used",)
    search_fields = ("email",)
    exclude = ("code",)


@admin.register(PaymentEvent)
class PaymentEventAdmin(admin.ModelAdmin):
    list_display = ("id", "provider", "event", "processed_ok", "matched_ticket", "error", "created_at")
    list_filter = ("provider", "processed_ok", "event", "created_at")
    search_fields = ("event", "signature", "error", "matched_ticket__email")
    formfield_overrides = {
        dj_models.JSONField: {"widget": Textarea(attrs={"rows": 6, "cols": 100})},
    }


@admin.register(AuditLog)
class AuditLogAdmin(admin.ModelAdmin):
    list_display = ("timestamp", "actor", "action", "model_name", "object_id", "object_repr")
    list_filter = ("action", "model_name", "timestamp")
    search_fields = ("actor", "object_id", "object_repr")
    readonly_fields = ("timestamp",)
