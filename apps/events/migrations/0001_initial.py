import uuid

import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="Event",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("name", models.CharField(max_length=255)),
                ("event_date", models.DateField(blank=True, null=True)),
                ("venue", models.CharField(blank=True, max_length=255)),
                ("entry_fee", models.DecimalField(decimal_places=2, default=0, max_digits=10)),
                ("payment_required", models.BooleanField(default=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
            ],
            options={
                "db_table": "events",
                "ordering": ["-event_date", "name"],
            },
        ),
        migrations.CreateModel(
            name="EventEntry",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("contestant_id", models.CharField(max_length=100)),
                ("participant_ids", models.JSONField(blank=True, default=list)),
                ("calculated_fee", models.DecimalField(decimal_places=2, default=0, max_digits=10)),
                ("item_name", models.CharField(max_length=255)),
                ("choreographer", models.CharField(blank=True, max_length=255)),
                ("mastery", models.CharField(blank=True, max_length=100)),
                ("item_style", models.CharField(blank=True, max_length=100)),
                ("performance_type", models.CharField(blank=True, max_length=20)),
                ("estimated_duration", models.FloatField(blank=True, null=True)),
                (
                    "entry_type",
                    models.CharField(
                        choices=[("live", "Live"), ("virtual", "Virtual")],
                        default="live",
                        max_length=10,
                    ),
                ),
                ("music_file_url", models.TextField(blank=True, null=True)),
                ("music_file_name", models.CharField(blank=True, max_length=255, null=True)),
                ("video_external_url", models.TextField(blank=True, null=True)),
                (
                    "video_external_type",
                    models.CharField(
                        blank=True,
                        choices=[("youtube", "YouTube"), ("vimeo", "Vimeo"), ("other", "Other")],
                        max_length=10,
                        null=True,
                    ),
                ),
                (
                    "payment_status",
                    models.CharField(
                        choices=[
                            ("unpaid", "Unpaid"),
                            ("pending", "Pending"),
                            ("paid", "Paid"),
                            ("failed", "Failed"),
                            ("cancelled", "Cancelled"),
                        ],
                        default="unpaid",
                        max_length=20,
                    ),
                ),
                ("payment_id", models.CharField(blank=True, db_index=True, max_length=100, null=True)),
                ("payment_method", models.CharField(blank=True, max_length=50, null=True)),
                ("payment_reference", models.CharField(blank=True, max_length=100, null=True)),
                ("payment_date", models.DateTimeField(blank=True, null=True)),
                ("approved", models.BooleanField(default=False)),
                ("approved_at", models.DateTimeField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "event",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="entries",
                        to="events.event",
                    ),
                ),
            ],
            options={
                "db_table": "event_entries",
                "ordering": ["created_at"],
                "verbose_name_plural": "event entries",
            },
        ),
    ]
