from django.db import migrations

DEFAULT_ROLES = [
    ("admin", "Manages users, assigns investigators, reads the audit trail.", 10),
    ("officer", "Reviews submitted investigation reports.", 7),
    ("investigator", "Investigates assigned incidents and submits reports.", 5),
    ("reporter", "Reports incidents and follows their progress.", 1),
]


def seed_roles(apps, schema_editor):
    Role = apps.get_model("accounts", "Role")
    for name, description, level in DEFAULT_ROLES:
        Role.objects.get_or_create(
            name=name,
            defaults={"description": description, "hierarchy_level": level},
        )


def unseed_roles(apps, schema_editor):
    Role = apps.get_model("accounts", "Role")
    Role.objects.filter(name__in=[name for name, _, _ in DEFAULT_ROLES], users__isnull=True).delete()


class Migration(migrations.Migration):

    dependencies = [
        ("accounts", "0001_initial"),
    ]

    operations = [
        migrations.RunPython(seed_roles, unseed_roles),
    ]
