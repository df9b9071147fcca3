from django.db import migrations

ROLE_NAMES = ['admin', 'practitioner', 'reception', 'marketing', 'accounting']


def create_roles(apps, schema_editor):
    Role = apps.get_model('authz', 'Role')
    for name in ROLE_NAMES:
        Role.objects.get_or_create(name=name)


def delete_unassigned_roles(apps, schema_editor):
    Role = apps.get_model('authz', 'Role')
    Role.objects.filter(name__in=ROLE_NAMES, user_roles__isnull=True).delete()


class Migration(migrations.Migration):

    dependencies = [
        ('authz', '0001_initial'),
    ]

    operations = [
        migrations.RunPython(create_roles, delete_unassigned_roles),
    ]
