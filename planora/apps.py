from django.apps import AppConfig


class PlanoraConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "planora"
    verbose_name = "Planora Tickets"
