import django.db.models.deletion
import django.utils.timezone
from django.conf import settings
from django.db import migrations, models


INCIDENT_TYPES = [
    ("theft", "Theft"),
    ("accident", "Accident"),
    ("vandalism", "Vandalism"),
    ("traffic_violation", "Traffic Violation"),
    ("dui", "Driving Under the Influence"),
    ("abandoned", "Abandoned Vehicle"),
    ("suspicious_activity", "Suspicious Activity"),
    ("other", "Other"),
]


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
        ("vehicles", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="Incident",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("created_at", models.DateTimeField(auto_now_add=True, verbose_name="Created At")),
                ("updated_at", models.DateTimeField(auto_now=True, verbose_name="Updated At")),
                ("incident_number", models.CharField(max_length=32, unique=True, verbose_name="Incident Number")),
                ("title", models.CharField(max_length=255, verbose_name="Title")),
                ("description", models.TextField(verbose_name="Description")),
                ("type", models.CharField(choices=INCIDENT_TYPES, db_index=True, default="other", max_length=30, verbose_name="Type")),
                ("severity", models.CharField(choices=[("low", "Low"), ("medium", "Medium"), ("high", "High"), ("critical", "Critical")], db_index=True, default="medium", max_length=10, verbose_name="Severity")),
                ("status", models.CharField(choices=[("open", "Open"), ("under_investigation", "Under Investigation"), ("pending", "Pending Review"), ("closed", "Closed"), ("reopened", "Reopened")], db_index=True, default="open", max_length=30, verbose_name="Current Status")),
                ("version", models.PositiveIntegerField(default=0, help_text="Incremented on every status or case-file change.", verbose_name="Version")),
                ("date", models.DateTimeField(default=django.utils.timezone.now, verbose_name="Date")),
                ("time", models.CharField(blank=True, default="", max_length=20, verbose_name="Time")),
                ("location_type", models.CharField(default="Point", max_length=10, verbose_name="Location Type")),
                ("longitude", models.FloatField(default=0.0, verbose_name="Longitude")),
                ("latitude", models.FloatField(default=0.0, verbose_name="Latitude")),
                ("location_address", models.CharField(blank=True, default="", max_length=500, verbose_name="Address")),
                ("incident_type", models.CharField(blank=True, choices=INCIDENT_TYPES, default="", max_length=30, verbose_name="Incident Type (legacy)")),
                ("date_time", models.DateTimeField(blank=True, null=True, verbose_name="Date/Time (legacy)")),
                ("vehicle", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="primary_incidents", to="vehicles.vehicle", verbose_name="Primary Vehicle (legacy)")),
                ("reported_by", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="reported_incidents", to=settings.AUTH_USER_MODEL, verbose_name="Reported By")),
                ("assigned_to", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="assigned_incidents", to=settings.AUTH_USER_MODEL, verbose_name="Assigned To")),
                ("assigned_by", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="incidents_assigned_by", to=settings.AUTH_USER_MODEL, verbose_name="Assigned By")),
            ],
            options={
                "verbose_name": "Incident",
                "verbose_name_plural": "Incidents",
                "ordering": ["-created_at", "-id"],
                "indexes": [
                    models.Index(fields=["status", "created_at"], name="inc_status_created_idx"),
                    models.Index(fields=["reported_by", "created_at"], name="inc_reporter_created_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="CaseFile",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("created_at", models.DateTimeField(auto_now_add=True, verbose_name="Created At")),
                ("updated_at", models.DateTimeField(auto_now=True, verbose_name="Updated At")),
                ("status", models.CharField(choices=[("not_assigned", "Not Assigned"), ("assigned", "Assigned"), ("under_investigation", "Under Investigation"), ("report_submitted", "Report Submitted"), ("review_complete", "Review Complete"), ("closed", "Closed")], default="not_assigned", max_length=30, verbose_name="Case File Status")),
                ("priority", models.CharField(choices=[("low", "Low"), ("medium", "Medium"), ("high", "High"), ("urgent", "Urgent")], default="medium", max_length=10, verbose_name="Priority")),
                ("investigation_start_date", models.DateTimeField(blank=True, null=True)),
                ("investigation_end_date", models.DateTimeField(blank=True, null=True)),
                ("findings", models.TextField(blank=True, default="")),
                ("recommendations", models.TextField(blank=True, default="")),
                ("conclusion", models.CharField(choices=[("pending", "Pending"), ("substantiated", "Substantiated"), ("unsubstantiated", "Unsubstantiated"), ("inconclusive", "Inconclusive")], default="pending", max_length=20)),
                ("reopen_count", models.PositiveSmallIntegerField(default=0, help_text="Number of times an officer sent the case back for investigation.", verbose_name="Reopen Count")),
                ("report_submitted_at", models.DateTimeField(blank=True, null=True)),
                ("report_content", models.TextField(blank=True, default="")),
                ("report_attachments", models.JSONField(blank=True, default=list)),
                ("report_status", models.CharField(choices=[("pending", "Pending"), ("submitted", "Submitted"), ("reviewed", "Reviewed"), ("approved", "Approved"), ("rejected", "Rejected")], default="pending", max_length=10)),
                ("reviewed_at", models.DateTimeField(blank=True, null=True)),
                ("officer_actions", models.TextField(blank=True, default="")),
                ("officer_notes", models.TextField(blank=True, default="")),
                ("officer_conclusion", models.CharField(choices=[("confirmed", "Confirmed"), ("additional_investigation", "Additional Investigation"), ("case_dismissed", "Case Dismissed"), ("legal_action", "Legal Action"), ("other", "Other")], default="confirmed", max_length=30)),
                ("officer_status", models.CharField(choices=[("pending", "Pending"), ("in_progress", "In Progress"), ("completed", "Completed")], default="pending", max_length=15)),
                ("incident", models.OneToOneField(on_delete=django.db.models.deletion.CASCADE, related_name="case_file", to="incidents.incident", verbose_name="Incident")),
                ("assigned_investigator", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="investigated_case_files", to=settings.AUTH_USER_MODEL, verbose_name="Assigned Investigator")),
                ("report_submitted_by", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="submitted_reports", to=settings.AUTH_USER_MODEL)),
                ("reviewed_by", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="reviewed_case_files", to=settings.AUTH_USER_MODEL)),
            ],
            options={
                "verbose_name": "Case File",
                "verbose_name_plural": "Case Files",
            },
        ),
        migrations.CreateModel(
            name="IncidentVehicle",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("involvement", models.CharField(choices=[("suspect", "Suspect"), ("victim", "Victim"), ("witness", "Witness"), ("other", "Other")], default="other", max_length=10, verbose_name="Involvement")),
                ("details", models.TextField(blank=True, default="", verbose_name="Details")),
                ("position", models.PositiveSmallIntegerField(default=0, verbose_name="Position")),
                ("incident", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="vehicles", to="incidents.incident", verbose_name="Incident")),
                ("vehicle", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="incident_involvements", to="vehicles.vehicle", verbose_name="Vehicle")),
            ],
            options={
                "verbose_name": "Involved Vehicle",
                "verbose_name_plural": "Involved Vehicles",
                "ordering": ["position", "id"],
            },
        ),
        migrations.CreateModel(
            name="IncidentPerson",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("name", models.CharField(max_length=255, verbose_name="Name")),
                ("role", models.CharField(choices=[("suspect", "Suspect"), ("victim", "Victim"), ("witness", "Witness"), ("reporting_party", "Reporting Party"), ("officer", "Officer"), ("other", "Other")], max_length=20, verbose_name="Role")),
                ("phone", models.CharField(blank=True, default="", max_length=30)),
                ("email", models.EmailField(blank=True, default="", max_length=254)),
                ("address", models.CharField(blank=True, default="", max_length=500)),
                ("details", models.TextField(blank=True, default="")),
                ("identification", models.CharField(blank=True, default="", max_length=100)),
                ("incident", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="persons", to="incidents.incident", verbose_name="Incident")),
            ],
            options={
                "verbose_name": "Involved Person",
                "verbose_name_plural": "Involved Persons",
                "ordering": ["id"],
            },
        ),
        migrations.CreateModel(
            name="IncidentEvidence",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("created_at", models.DateTimeField(auto_now_add=True, verbose_name="Created At")),
                ("updated_at", models.DateTimeField(auto_now=True, verbose_name="Updated At")),
                ("type", models.CharField(choices=[("photo", "Photo"), ("video", "Video"), ("document", "Document"), ("physical_item", "Physical Item"), ("statement", "Statement"), ("other", "Other")], max_length=20, verbose_name="Evidence Type")),
                ("file_url", models.CharField(blank=True, default="", max_length=1000)),
                ("thumbnail_url", models.CharField(blank=True, default="", max_length=1000)),
                ("description", models.TextField(blank=True, default="")),
                ("collected_at", models.DateTimeField(default=django.utils.timezone.now)),
                ("tags", models.JSONField(blank=True, default=list)),
                ("metadata", models.JSONField(blank=True, default=dict, help_text="File type, size, dimensions, duration.")),
                ("incident", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="evidence", to="incidents.incident", verbose_name="Incident")),
                ("collected_by", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="collected_incident_evidence", to=settings.AUTH_USER_MODEL)),
            ],
            options={
                "verbose_name": "Incident Evidence",
                "verbose_name_plural": "Incident Evidence",
                "ordering": ["collected_at", "id"],
            },
        ),
        migrations.CreateModel(
            name="IncidentNote",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("created_at", models.DateTimeField(auto_now_add=True, verbose_name="Created At")),
                ("updated_at", models.DateTimeField(auto_now=True, verbose_name="Updated At")),
                ("content", models.TextField(verbose_name="Content")),
                ("is_private", models.BooleanField(default=False, verbose_name="Private")),
                ("incident", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="notes", to="incidents.incident", verbose_name="Incident")),
                ("author", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="incident_notes", to=settings.AUTH_USER_MODEL, verbose_name="Author")),
            ],
            options={
                "verbose_name": "Incident Note",
                "verbose_name_plural": "Incident Notes",
                "ordering": ["created_at", "id"],
            },
        ),
        migrations.CreateModel(
            name="TimelineEntry",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("date", models.DateTimeField(default=django.utils.timezone.now, verbose_name="Date")),
                ("action", models.CharField(max_length=100, verbose_name="Action")),
                ("description", models.TextField(blank=True, default="", verbose_name="Description")),
                ("incident", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="timeline", to="incidents.incident", verbose_name="Incident")),
                ("performed_by", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="incident_timeline_entries", to=settings.AUTH_USER_MODEL, verbose_name="Performed By")),
            ],
            options={
                "verbose_name": "Timeline Entry",
                "verbose_name_plural": "Timeline Entries",
                "ordering": ["date", "id"],
            },
        ),
    ]
