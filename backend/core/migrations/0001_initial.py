import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Sequence",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("key", models.CharField(max_length=64, unique=True, verbose_name="Key")),
                ("value", models.BigIntegerField(default=0, verbose_name="Current Value")),
            ],
            options={
                "verbose_name": "Sequence",
                "verbose_name_plural": "Sequences",
            },
        ),
        migrations.CreateModel(
            name="Notification",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("created_at", models.DateTimeField(auto_now_add=True, verbose_name="Created At")),
                ("updated_at", models.DateTimeField(auto_now=True, verbose_name="Updated At")),
                ("title", models.CharField(max_length=255, verbose_name="Title")),
                ("message", models.TextField(verbose_name="Message")),
                ("type", models.CharField(choices=[("info", "Info"), ("warning", "Warning"), ("success", "Success"), ("error", "Error")], default="info", max_length=10, verbose_name="Type")),
                ("is_read", models.BooleanField(default=False, verbose_name="Read")),
                ("is_urgent", models.BooleanField(default=False, verbose_name="Urgent")),
                ("resource_type", models.CharField(blank=True, choices=[("incident", "Incident"), ("vehicle", "Vehicle"), ("user", "User"), ("document", "Document"), ("system", "System"), ("chat", "Chat")], max_length=20, null=True, verbose_name="Related Resource Type")),
                ("resource_id", models.CharField(blank=True, max_length=64, null=True, verbose_name="Related Resource ID")),
                ("recipient", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="notifications", to=settings.AUTH_USER_MODEL, verbose_name="Recipient")),
            ],
            options={
                "verbose_name": "Notification",
                "verbose_name_plural": "Notifications",
                "ordering": ["-created_at", "-id"],
                "indexes": [models.Index(fields=["recipient", "is_read"], name="core_notif_recip_read_idx")],
            },
        ),
    ]
