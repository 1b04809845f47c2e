from django.conf import settings
from django.db import migrations, models
import django.db.models.deletion


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Survey",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("title", models.CharField(max_length=255)),
                ("area", models.CharField(max_length=255)),
                ("description", models.TextField(blank=True, default="")),
                ("question", models.TextField()),
                ("permitted_domains", models.JSONField(default=list)),
                ("permitted_responses", models.TextField()),
                ("summary_instructions", models.TextField()),
                ("expiry_date", models.DateTimeField()),
                ("is_active", models.BooleanField(default=True)),
                ("max_responses", models.PositiveIntegerField(blank=True, default=100, null=True)),
                ("summary_content", models.TextField(blank=True, null=True)),
                ("summary_is_visible", models.BooleanField(default=False)),
                ("summary_generated_at", models.DateTimeField(blank=True, null=True)),
                (
                    "creator",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="surveys",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "indexes": [
                    models.Index(fields=["creator", "-created_at"], name="idx_survey_creator_time"),
                    models.Index(fields=["expiry_date"], name="idx_survey_expiry"),
                    models.Index(fields=["is_active"], name="idx_survey_active"),
                ],
            },
        ),
    ]
