"""
Payments API views.

Routes nested under /api/v1/clinical/patients/<patient_id>/ plus the
read-only payment catalogs under /api/v1/catalog/.
"""
from rest_framework import status, viewsets
from rest_framework.response import Response
from rest_framework.views import APIView

from apps.clinical.permissions import CatalogPermission
from apps.clinical.views import _payload
from apps.core.exceptions import DomainError
from apps.core.views import CorrelatedViewMixin, domain_error_response
from apps.payments.models import PaymentMethod, PaymentStatus
from apps.payments.permissions import PaymentPermission
from apps.payments.serializers import (
    PaymentMethodSerializer,
    PaymentSerializer,
    PaymentStatusSerializer,
    TreatmentBalanceSerializer,
)
from apps.payments.services import PaymentLedger


class PaymentViewSet(CorrelatedViewMixin, viewsets.ViewSet):
    """
    Payments of one patient.

    Endpoints:
    - GET    /patients/{patient_id}/payments/
    - POST   /patients/{patient_id}/payments/
    - GET    /patients/{patient_id}/payments/{id}/
    - PUT    /patients/{patient_id}/payments/{id}/   (partial semantics: null keeps the stored value)
    - PATCH  /patients/{patient_id}/payments/{id}/
    - DELETE /patients/{patient_id}/payments/{id}/
    """
    permission_classes = [PaymentPermission]

    def list(self, request, patient_id=None):
        try:
            payments = PaymentLedger().list(patient_id)
        except DomainError as e:
            return domain_error_response(e, 'payments.list')
        return Response(PaymentSerializer(payments, many=True).data)

    def retrieve(self, request, patient_id=None, pk=None):
        try:
            payment = PaymentLedger().get(patient_id, pk)
        except DomainError as e:
            return domain_error_response(e, 'payments.retrieve')
        return Response(PaymentSerializer(payment).data)

    def create(self, request, patient_id=None):
        try:
            payment = PaymentLedger().create(patient_id, _payload(request), created_by=request.user)
        except DomainError as e:
            return domain_error_response(e, 'payments.create')
        return Response(PaymentSerializer(payment).data, status=status.HTTP_201_CREATED)

    def update(self, request, patient_id=None, pk=None):
        try:
            payment = PaymentLedger().update(patient_id, pk, _payload(request), created_by=request.user)
        except DomainError as e:
            return domain_error_response(e, 'payments.update')
        return Response(PaymentSerializer(payment).data)

    def partial_update(self, request, patient_id=None, pk=None):
        return self.update(request, patient_id=patient_id, pk=pk)

    def destroy(self, request, patient_id=None, pk=None):
        try:
            PaymentLedger().delete(patient_id, pk, created_by=request.user)
        except DomainError as e:
            return domain_error_response(e, 'payments.delete')
        return Response(status=status.HTTP_204_NO_CONTENT)


class TreatmentBalanceView(CorrelatedViewMixin, APIView):
    """GET /patients/{patient_id}/treatments/{treatment_id}/balance/"""
    permission_classes = [PaymentPermission]

    def get(self, request, patient_id=None, treatment_id=None):
        try:
            balance = PaymentLedger().balance(patient_id, treatment_id)
        except DomainError as e:
            return domain_error_response(e, 'payments.balance')
        return Response(TreatmentBalanceSerializer(balance).data)


class PaymentMethodListView(APIView):
    """GET /api/v1/catalog/payment-methods/"""
    permission_classes = [CatalogPermission]

    def get(self, request):
        methods = PaymentMethod.objects.all()
        if request.query_params.get('active', '').lower() == 'true':
            methods = methods.filter(is_active=True)
        return Response(PaymentMethodSerializer(methods, many=True).data)


class PaymentStatusListView(APIView):
    """GET /api/v1/catalog/payment-statuses/"""
    permission_classes = [CatalogPermission]

    def get(self, request):
        return Response(PaymentStatusSerializer(PaymentStatus.objects.all(), many=True).data)
