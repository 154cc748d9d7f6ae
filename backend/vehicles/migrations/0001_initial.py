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
            name="Vehicle",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("created_at", models.DateTimeField(auto_now_add=True, verbose_name="Created At")),
                ("updated_at", models.DateTimeField(auto_now=True, verbose_name="Updated At")),
                ("license_plate", models.CharField(max_length=20, unique=True, verbose_name="License Plate")),
                ("vin", models.CharField(blank=True, default="", max_length=17, verbose_name="VIN")),
                ("make", models.CharField(max_length=50, verbose_name="Make")),
                ("model", models.CharField(max_length=50, verbose_name="Model")),
                ("year", models.PositiveSmallIntegerField(blank=True, null=True, verbose_name="Year")),
                ("color", models.CharField(blank=True, default="", max_length=30, verbose_name="Color")),
                ("owner", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="vehicles", to=settings.AUTH_USER_MODEL, verbose_name="Owner")),
            ],
            options={
                "verbose_name": "Vehicle",
                "verbose_name_plural": "Vehicles",
                "ordering": ["license_plate"],
            },
        ),
    ]
