from django.urls import path, re_path

from . import admin_api, organizer_api, views

urlpatterns = [
    path("health/", views.health, name="health"),

    # checkout
    re_path(r"^create-order/?$", views.create_order, name="create_order"),
    re_path(r"^verify-payment/?$", views.verify_payment, name="verify_payment"),

    # door check-in
    re_path(r"^verify-ticket/?$", views.verify_ticket, name="verify_ticket"),

    # ticket lookup
    path("ticket/<str:ticket_id>", views.ticket_detail, name="ticket_detail"),
    re_path(r"^ticket-pdf/?$", views.ticket_pdf, name="ticket_pdf"),
    path("files/<path:path>", views.signed_file, name="signed_file"),

    # OTP-gated "my tickets"
    re_path(r"^otp/request/?$", views.otp_request, name="otp_request"),
    re_path(r"^otp/verify/?$", views.otp_verify, name="otp_verify"),
    re_path(r"^tickets-by-email/?$", views.tickets_by_email, name="tickets_by_email"),

    re_path(r"^events/?$", views.events, name="events"),

    # admin portal (admin_session cookie)
    re_path(r"^admin/session/?$", admin_api.session, name="admin_session"),
    re_path(r"^admin/tickets/?$", admin_api.tickets, name="admin_tickets"),
    re_path(r"^admin/stats/?$", admin_api.dashboard_stats, name="admin_stats"),
    re_path(r"^admin/events/?$", admin_api.events, name="admin_events"),
    re_path(r"^admin/check-tickets/?$", admin_api.check_tickets, name="admin_check_tickets"),

    # organizer portal (X-Organizer-Secret / organizer bearer)
    re_path(r"^organizer/events/?$", organizer_api.events, name="organizer_events"),
    re_path(r"^organizer/tickets/?$", organizer_api.tickets, name="organizer_tickets"),
    re_path(r"^organizer/analytics/?$", organizer_api.analytics, name="organizer_analytics"),
    re_path(r"^organizer/templates/?$", organizer_api.templates, name="organizer_templates"),
]
