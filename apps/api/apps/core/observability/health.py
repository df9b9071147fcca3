"""
Health check endpoints.

/healthz answers as long as the process is up; /readyz also checks the
database and reports whether the payment catalogs hold their default rows.
"""
import logging

from django.conf import settings
from django.db import DatabaseError, connection
from django.http import JsonResponse
from django.views import View

logger = logging.getLogger(__name__)


class HealthzView(View):
    """Liveness probe. Does not touch dependencies."""

    def get(self, request):
        health_data = {
            'status': 'ok',
            'version': getattr(settings, 'VERSION', 'unknown'),
        }

        commit_hash = getattr(settings, 'COMMIT_HASH', None)
        if commit_hash:
            health_data['commit'] = commit_hash

        return JsonResponse(health_data, status=200)


class ReadyzView(View):
    """
    Readiness probe.

    Returns 503 when the database is unreachable. Missing default catalog
    rows are reported but do not fail readiness: payment creation falls
    back to sentinel ids in that case.
    """

    def get(self, request):
        database_ok = self._check_database()
        response_data = {
            'status': 'ready' if database_ok else 'not_ready',
            'checks': {'database': database_ok},
        }
        if database_ok:
            response_data['catalogs'] = self._check_payment_catalogs()

        return JsonResponse(response_data, status=200 if database_ok else 503)

    def _check_database(self):
        try:
            with connection.cursor() as cursor:
                cursor.execute('SELECT 1')
            return True
        except DatabaseError as e:
            logger.error(
                'Database health check failed',
                extra={
                    'event': 'health_check_failed',
                    'check': 'database',
                    'error': str(e)
                }
            )
            return False

    def _check_payment_catalogs(self):
        from apps.payments.models import PaymentMethod, PaymentStatus

        defaults = settings.PAYMENTS
        return {
            'default_status_present': PaymentStatus.objects.filter(
                name__iexact=defaults['DEFAULT_STATUS_NAME']
            ).exists(),
            'default_method_present': PaymentMethod.objects.filter(
                name__iexact=defaults['DEFAULT_METHOD_NAME']
            ).exists(),
        }
