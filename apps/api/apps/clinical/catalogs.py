"""
Read-only access to the service catalog.

TreatmentStore only needs to know whether a service exists. Keeping that
behind a small class lets the store be exercised with an in-memory
catalog in tests.
"""
from typing import Optional

from apps.clinical.models import Service, ServiceCategory


class ServiceCatalog:
    """Catalog backed by the `services` and `service_categories` tables."""

    def exists_by_id(self, service_id: int) -> bool:
        return Service.objects.filter(id=service_id).exists()

    def category_id_for_name(self, name: str) -> Optional[int]:
        if not name or not name.strip():
            return None
        return (
            ServiceCategory.objects
            .filter(name__iexact=name.strip())
            .values_list('id', flat=True)
            .first()
        )
