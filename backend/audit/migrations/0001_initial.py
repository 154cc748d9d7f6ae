import django.db.models.deletion
import django.utils.timezone
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="AuditLog",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("action", models.CharField(choices=[("login", "Login"), ("create", "Create"), ("read", "Read"), ("update", "Update"), ("delete", "Delete"), ("export", "Export"), ("upload", "Upload"), ("download", "Download"), ("search", "Search"), ("failed_login", "Failed Login"), ("password_reset", "Password Reset"), ("permission_change", "Permission Change"), ("consent_update", "Consent Update"), ("review", "Review"), ("other", "Other")], db_index=True, max_length=20, verbose_name="Action")),
                ("resource_type", models.CharField(choices=[("user", "User"), ("vehicle", "Vehicle"), ("incident", "Incident"), ("document", "Document"), ("case", "Case"), ("report", "Report"), ("system", "System"), ("chat", "Chat"), ("other", "Other")], db_index=True, max_length=20, verbose_name="Resource Type")),
                ("resource_id", models.CharField(blank=True, db_index=True, default="", max_length=64, verbose_name="Resource ID")),
                ("description", models.TextField(verbose_name="Description")),
                ("success", models.BooleanField(default=True, verbose_name="Success")),
                ("ip_address", models.GenericIPAddressField(blank=True, null=True, verbose_name="IP Address")),
                ("user_agent", models.CharField(blank=True, default="", max_length=500, verbose_name="User Agent")),
                ("metadata", models.JSONField(blank=True, default=dict, verbose_name="Metadata")),
                ("timestamp", models.DateTimeField(db_index=True, default=django.utils.timezone.now, verbose_name="Timestamp")),
                ("user", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name="audit_logs", to=settings.AUTH_USER_MODEL, verbose_name="User")),
            ],
            options={
                "verbose_name": "Audit Log Entry",
                "verbose_name_plural": "Audit Log Entries",
                "ordering": ["-timestamp", "-id"],
                "indexes": [
                    models.Index(fields=["resource_type", "resource_id"], name="audit_resource_idx"),
                    models.Index(fields=["user", "timestamp"], name="audit_user_time_idx"),
                ],
            },
        ),
    ]
