"""
Payment method / status catalog lookups.

Names are matched case-insensitively. A missing default row never breaks
payment creation: `id_or_fallback` returns the configured sentinel id and
reports the fallback.
"""
from typing import Optional

from apps.core.observability import metrics
from apps.core.observability.events import log_payment_catalog_fallback
from apps.payments.models import PaymentMethod, PaymentStatus

PAYMENT_METHODS = 'payment_methods'
PAYMENT_STATUSES = 'payment_statuses'


class PaymentCatalog:
    """Catalog backed by the `payment_methods` and `payment_statuses` tables."""

    models = {
        PAYMENT_METHODS: PaymentMethod,
        PAYMENT_STATUSES: PaymentStatus,
    }

    def id_by_name(self, catalog: str, name) -> Optional[int]:
        if name is None or not str(name).strip():
            return None
        model = self.models[catalog]
        return (
            model.objects
            .filter(name__iexact=str(name).strip())
            .values_list('id', flat=True)
            .first()
        )

    def id_or_fallback(self, catalog: str, name: str, fallback_id: int) -> int:
        found = self.id_by_name(catalog, name)
        if found is not None:
            return found
        metrics.payment_catalog_fallback_total.labels(catalog=catalog).inc()
        log_payment_catalog_fallback(catalog, name, fallback_id)
        return fallback_id
