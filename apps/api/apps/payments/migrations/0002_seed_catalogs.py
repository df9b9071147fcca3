from django.db import migrations

PAYMENT_METHODS = ['efectivo', 'tarjeta', 'transferencia']
PAYMENT_STATUSES = ['finalizado', 'pendiente', 'cancelado']


def seed_catalogs(apps, schema_editor):
    PaymentMethod = apps.get_model('payments', 'PaymentMethod')
    PaymentStatus = apps.get_model('payments', 'PaymentStatus')
    for name in PAYMENT_METHODS:
        PaymentMethod.objects.get_or_create(name=name)
    for name in PAYMENT_STATUSES:
        PaymentStatus.objects.get_or_create(name=name)


class Migration(migrations.Migration):

    dependencies = [
        ('payments', '0001_initial'),
    ]

    operations = [
        migrations.RunPython(seed_catalogs, migrations.RunPython.noop),
    ]
