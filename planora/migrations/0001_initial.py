import uuid

import django.db.models.deletion
import django.utils.timezone
from django.db import migrations, models

import planora.models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="Event",
            fields=[
                ("id", models.CharField(default=planora.models._new_event_id, editable=False, max_length=64, primary_key=True, serialize=False)),
                ("title", models.CharField(max_length=200)),
                ("description", models.TextField(blank=True, default="")),
                ("date", models.DateTimeField(blank=True, null=True)),
                ("location", models.CharField(blank=True, default="", max_length=255)),
                ("price_inr", models.IntegerField(default=0)),
                ("image_url", models.URLField(blank=True, default="", max_length=500)),
                ("organizer_id", models.CharField(blank=True, db_index=True, default="", max_length=128)),
                ("is_published", models.BooleanField(default=True)),
                ("is_featured", models.BooleanField(default=False)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
            ],
            options={
                "ordering": ["-created_at"],
            },
        ),
        migrations.CreateModel(
            name="Ticket",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("name", models.CharField(max_length=200)),
                ("email", models.EmailField(db_index=True, max_length=254)),
                ("phone", models.CharField(blank=True, default="", max_length=32)),
                ("college", models.CharField(blank=True, default="", max_length=200)),
                ("ieee", models.CharField(blank=True, default="", max_length=64)),
                ("event_id", models.CharField(blank=True, db_index=True, max_length=64, null=True)),
                ("payment_id", models.CharField(max_length=128)),
                ("razorpay_order_id", models.CharField(blank=True, default="", max_length=128)),
                ("razorpay_payment_id", models.CharField(blank=True, default="", max_length=128)),
                ("razorpay_signature", models.CharField(blank=True, default="", max_length=256)),
                ("amount_paid", models.IntegerField(blank=True, help_text="Amount in paise, if known", null=True)),
                ("status", models.CharField(choices=[("pending", "Pending"), ("issued", "Issued"), ("failed", "Failed"), ("redeemed", "Redeemed"), ("cancelled", "Cancelled")], db_index=True, default="pending", max_length=16)),
                ("used", models.BooleanField(default=False)),
                ("used_at", models.DateTimeField(blank=True, null=True)),
                ("checked_in_at", models.DateTimeField(blank=True, null=True)),
                ("qr", models.TextField(blank=True, default="")),
                ("pdf_path", models.CharField(blank=True, default="", max_length=255)),
                ("created_at", models.DateTimeField(default=django.utils.timezone.now)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "ordering": ["-created_at"],
                "constraints": [
                    models.UniqueConstraint(
                        condition=models.Q(("status", "cancelled"), _negated=True),
                        fields=("payment_id",),
                        name="uniq_active_ticket_per_payment",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="EmailOtp",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("email", models.EmailField(db_index=True, max_length=254)),
                ("code", models.CharField(max_length=6)),
                ("expires_at", models.DateTimeField()),
                ("used", models.BooleanField(default=False)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
            ],
            options={
                "ordering": ["-created_at"],
            },
        ),
        migrations.CreateModel(
            name="PaymentEvent",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("provider", models.CharField(default="razorpay", max_length=32)),
                ("event", models.CharField(blank=True, default="", max_length=64)),
                ("signature", models.CharField(blank=True, default="", max_length=256)),
                ("remote_addr", models.GenericIPAddressField(blank=True, null=True)),
                ("payload", models.JSONField(default=dict)),
                ("processed_ok", models.BooleanField(default=False)),
                ("error", models.TextField(blank=True, default="")),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("processed_at", models.DateTimeField(auto_now=True)),
                ("matched_ticket", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="payment_events", to="planora.ticket")),
            ],
        ),
        migrations.CreateModel(
            name="AuditLog",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("actor", models.CharField(max_length=64)),
                ("action", models.CharField(choices=[("UPDATE", "Update"), ("DELETE", "Delete"), ("TOGGLE", "Toggle check-in"), ("RESEND", "Resend email"), ("UPLOAD", "Upload")], max_length=20)),
                ("model_name", models.CharField(max_length=100)),
                ("object_id", models.CharField(max_length=100)),
                ("object_repr", models.CharField(blank=True, max_length=200)),
                ("changes", models.JSONField(default=dict)),
                ("timestamp", models.DateTimeField(auto_now_add=True)),
                ("remote_addr", models.GenericIPAddressField(blank=True, null=True)),
            ],
            options={
                "ordering": ["-timestamp"],
            },
        ),
    ]
