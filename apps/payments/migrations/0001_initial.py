import django.core.serializers.json
import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("events", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="PaymentLog",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("payment_id", models.CharField(blank=True, db_index=True, max_length=100)),
                (
                    "event_type",
                    models.CharField(
                        choices=[
                            ("initiated", "Initiated"),
                            ("redirect_sent", "Redirect sent"),
                            ("webhook_received", "Webhook received"),
                            ("verification_failed", "Verification failed"),
                            ("forbidden_origin", "Forbidden origin"),
                            ("amount_mismatch", "Amount mismatch"),
                            ("notification_ignored", "Notification ignored"),
                            ("status_updated", "Status updated"),
                            ("completed", "Completed"),
                            ("failed", "Failed"),
                            ("cancelled", "Cancelled"),
                            ("entries_created", "Entries created"),
                            ("webhook_error", "Webhook error"),
                            ("manual_update", "Manual update"),
                        ],
                        db_index=True,
                        max_length=30,
                    ),
                ),
                ("event_data", models.JSONField(blank=True, default=dict, encoder=django.core.serializers.json.DjangoJSONEncoder)),
                ("ip_address", models.GenericIPAddressField(blank=True, null=True)),
                ("user_agent", models.TextField(blank=True)),
                ("created_at", models.DateTimeField(auto_now_add=True, db_index=True)),
            ],
            options={
                "db_table": "payment_logs",
                "ordering": ["-created_at", "-id"],
            },
        ),
        migrations.CreateModel(
            name="PaymentSession",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("payment_id", models.CharField(max_length=100, unique=True)),
                ("provider_payment_id", models.CharField(blank=True, max_length=100, null=True)),
                ("user_id", models.CharField(max_length=100)),
                ("is_batch", models.BooleanField(default=False)),
                ("base_amount", models.DecimalField(decimal_places=2, max_digits=10)),
                ("processing_fee", models.DecimalField(decimal_places=2, max_digits=10)),
                ("amount", models.DecimalField(decimal_places=2, max_digits=10)),
                ("currency", models.CharField(default="ZAR", max_length=3)),
                ("description", models.TextField(blank=True)),
                ("item_name", models.CharField(blank=True, max_length=100)),
                ("item_description", models.CharField(blank=True, max_length=255)),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("pending", "Pending"),
                            ("processing", "Processing"),
                            ("completed", "Completed"),
                            ("failed", "Failed"),
                            ("cancelled", "Cancelled"),
                        ],
                        default="pending",
                        max_length=20,
                    ),
                ),
                ("provider_status", models.CharField(blank=True, max_length=20, null=True)),
                ("amount_gross", models.DecimalField(blank=True, decimal_places=2, max_digits=10, null=True)),
                ("amount_fee", models.DecimalField(blank=True, decimal_places=2, max_digits=10, null=True)),
                ("amount_net", models.DecimalField(blank=True, decimal_places=2, max_digits=10, null=True)),
                ("signature", models.CharField(blank=True, max_length=64, null=True)),
                ("raw_notification", models.JSONField(blank=True, encoder=django.core.serializers.json.DjangoJSONEncoder, null=True)),
                ("pending_entries", models.JSONField(blank=True, encoder=django.core.serializers.json.DjangoJSONEncoder, null=True)),
                ("ip_address", models.GenericIPAddressField(blank=True, null=True)),
                ("user_agent", models.TextField(blank=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("paid_at", models.DateTimeField(blank=True, null=True)),
                (
                    "entry",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="payment_sessions",
                        to="events.evententry",
                    ),
                ),
                (
                    "event",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="payment_sessions",
                        to="events.event",
                    ),
                ),
            ],
            options={
                "db_table": "payments",
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(fields=["status"], name="payments_status_7d4e2b_idx"),
                    models.Index(fields=["event", "status"], name="payments_event_i_3c91a0_idx"),
                ],
            },
        ),
    ]
