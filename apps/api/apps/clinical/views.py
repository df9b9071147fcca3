"""
Clinical API views: treatments, treatment packages, group summaries and
the read-only service catalog.

Routes are nested under /api/v1/clinical/patients/<patient_id>/.
"""
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.response import Response
from rest_framework.views import APIView

from apps.clinical.catalogs import ServiceCatalog
from apps.clinical.groups import GroupResolver
from apps.clinical.models import Service
from apps.clinical.permissions import CatalogPermission, TreatmentPermission
from apps.clinical.serializers import (
    ServiceSerializer,
    TreatmentGroupSummarySerializer,
    TreatmentPackageSerializer,
    TreatmentSerializer,
)
from apps.clinical.services import TreatmentStore
from apps.core.exceptions import DomainError
from apps.core.views import CorrelatedViewMixin, domain_error_response


def _payload(request):
    """Request body as a plain dict (JSON bodies already are)."""
    data = request.data
    if hasattr(data, 'dict'):
        return data.dict()
    return data


class TreatmentViewSet(CorrelatedViewMixin, viewsets.ViewSet):
    """
    Treatments of one patient.

    Endpoints:
    - GET    /patients/{patient_id}/treatments/
    - POST   /patients/{patient_id}/treatments/             {"services": [...]} or one object
    - PATCH  /patients/{patient_id}/treatments/{id}/
    - DELETE /patients/{patient_id}/treatments/{id}/
    - PUT    /patients/{patient_id}/treatments/{id}/status/  {"status": "En proceso"}
    - PUT    /patients/{patient_id}/treatments/{id}/cost/    {"total_cost": 150}
    """
    permission_classes = [TreatmentPermission]
    store_class = TreatmentStore

    def get_store(self):
        return self.store_class()

    def list(self, request, patient_id=None):
        try:
            treatments = self.get_store().list(patient_id)
        except DomainError as e:
            return domain_error_response(e, 'treatments.list')
        return Response(TreatmentSerializer(treatments, many=True).data)

    def create(self, request, patient_id=None):
        """
        Create one treatment or a batch. All rows share the returned group_id.

        Returns:
        - 201: {"message", "group_id", "items"}
        - 400: invalid item (nothing is written)
        - 404: unknown patient
        """
        data = _payload(request)
        items = data.get('services') if isinstance(data, dict) and 'services' in data else data

        try:
            group_id, rows = self.get_store().create_batch(patient_id, items, created_by=request.user)
        except DomainError as e:
            return domain_error_response(e, 'treatments.create')

        return Response(
            {
                'message': 'Tratamientos creados',
                'group_id': group_id,
                'items': TreatmentSerializer(rows, many=True).data,
            },
            status=status.HTTP_201_CREATED
        )

    def partial_update(self, request, patient_id=None, pk=None):
        try:
            treatment = self.get_store().patch(patient_id, pk, _payload(request), created_by=request.user)
        except DomainError as e:
            return domain_error_response(e, 'treatments.patch')
        return Response(TreatmentSerializer(treatment).data)

    def destroy(self, request, patient_id=None, pk=None):
        try:
            self.get_store().delete(patient_id, pk)
        except DomainError as e:
            return domain_error_response(e, 'treatments.delete')
        return Response(status=status.HTTP_204_NO_CONTENT)

    @action(detail=True, methods=['put'], url_path='status')
    def set_status(self, request, patient_id=None, pk=None):
        try:
            treatment = self.get_store().set_status(
                patient_id, pk, _payload(request).get('status'), created_by=request.user
            )
        except DomainError as e:
            return domain_error_response(e, 'treatments.set_status')
        return Response(TreatmentSerializer(treatment).data)

    @action(detail=True, methods=['put'], url_path='cost')
    def set_cost(self, request, patient_id=None, pk=None):
        try:
            treatment = self.get_store().set_cost(
                patient_id, pk, _payload(request).get('total_cost'), created_by=request.user
            )
        except DomainError as e:
            return domain_error_response(e, 'treatments.set_cost')
        return Response(TreatmentSerializer(treatment).data)


class TreatmentPackageView(CorrelatedViewMixin, APIView):
    """
    POST /patients/{patient_id}/treatment-packages/

    {
        "title": "Paquete facial 3 sesiones",
        "status": "Por iniciar",     // optional
        "notes": "...",              // optional
        "services": [{"service_id": 5, "service_date": "2024-01-10", "total_cost": 100}, ...]
    }
    """
    permission_classes = [TreatmentPermission]

    def post(self, request, patient_id=None):
        data = _payload(request)
        try:
            package, rows = TreatmentStore().create_package(
                patient_id,
                title=data.get('title'),
                items=data.get('services') or data.get('items'),
                status=data.get('status'),
                notes=data.get('notes'),
                created_by=request.user,
            )
        except DomainError as e:
            return domain_error_response(e, 'treatments.create_package')

        return Response(
            {
                'message': 'Paquete creado',
                'group_id': package.id,
                'group': TreatmentPackageSerializer(package).data,
                'items': TreatmentSerializer(rows, many=True).data,
            },
            status=status.HTTP_201_CREATED
        )


class TreatmentGroupSummaryView(CorrelatedViewMixin, APIView):
    """GET /patients/{patient_id}/treatment-groups/{group_id}/"""
    permission_classes = [TreatmentPermission]

    def get(self, request, patient_id=None, group_id=None):
        try:
            summary = GroupResolver().summary(patient_id, group_id)
        except DomainError as e:
            return domain_error_response(e, 'treatment_groups.summary')
        return Response(TreatmentGroupSummarySerializer(summary).data)


class ServiceCatalogView(APIView):
    """
    GET /api/v1/catalog/services/

    Query params:
    - category: category name (case-insensitive); unknown names return []
    - active: "true" to hide inactive services
    """
    permission_classes = [CatalogPermission]

    def get(self, request):
        services = Service.objects.select_related('category').order_by('category__sort_order', 'name')

        category_name = request.query_params.get('category')
        if category_name:
            category_id = ServiceCatalog().category_id_for_name(category_name)
            if category_id is None:
                return Response([])
            services = services.filter(category_id=category_id)

        if request.query_params.get('active', '').lower() == 'true':
            services = services.filter(is_active=True)

        return Response(ServiceSerializer(services, many=True).data)
