"""
Management command to make sure the default payment catalog rows exist.

Payments created without a status or method resolve to the configured
default names; this creates those rows (and any extra names given).
"""
from django.conf import settings
from django.core.management.base import BaseCommand

from apps.payments.models import PaymentMethod, PaymentStatus


class Command(BaseCommand):
    help = 'Create the default payment status and method rows if they do not exist'

    def add_arguments(self, parser):
        parser.add_argument('--method', action='append', default=[], help='Extra payment method name')
        parser.add_argument('--status', action='append', default=[], help='Extra payment status name')

    def handle(self, *args, **options):
        defaults = settings.PAYMENTS

        for name in [defaults['DEFAULT_METHOD_NAME'], *options['method']]:
            self._ensure(PaymentMethod, name)
        for name in [defaults['DEFAULT_STATUS_NAME'], *options['status']]:
            self._ensure(PaymentStatus, name)

    def _ensure(self, model, name):
        label = model._meta.verbose_name
        if model.objects.filter(name__iexact=name).exists():
            self.stdout.write(self.style.WARNING(f'{label} "{name}" already exists'))
            return
        model.objects.create(name=name)
        self.stdout.write(self.style.SUCCESS(f'{label} "{name}" created successfully'))
