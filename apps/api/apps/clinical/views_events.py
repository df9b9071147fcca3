"""
Patient event (timeline) API.

Endpoints:
- GET    /patients/{patient_id}/events/        filters: patient_service_id, patient_service_group_id,
                                               type, from, to, limit, offset
- POST   /patients/{patient_id}/events/        manual note (or any event_type)
- PUT    /patients/{patient_id}/events/{id}/   notes only
- DELETE /patients/{patient_id}/events/{id}/   notes only
"""
from rest_framework import status, viewsets
from rest_framework.response import Response

from apps.clinical.models import PatientEventType
from apps.clinical.permissions import PatientEventPermission
from apps.clinical.serializers_events import PatientEventPageSerializer, PatientEventSerializer
from apps.clinical.services_events import EventLedger
from apps.clinical.views import _payload
from apps.core.exceptions import DomainError
from apps.core.views import CorrelatedViewMixin, domain_error_response


class PatientEventViewSet(CorrelatedViewMixin, viewsets.ViewSet):
    permission_classes = [PatientEventPermission]

    def list(self, request, patient_id=None):
        params = request.query_params
        try:
            page = EventLedger().list(
                patient_id,
                treatment_id=params.get('patient_service_id'),
                group_id=params.get('patient_service_group_id'),
                event_type=params.get('type') or params.get('event_type'),
                limit=params.get('limit'),
                offset=params.get('offset'),
                date_from=params.get('from'),
                date_to=params.get('to'),
            )
        except DomainError as e:
            return domain_error_response(e, 'patient_events.list')
        return Response(PatientEventPageSerializer(page).data)

    def create(self, request, patient_id=None):
        data = _payload(request)
        try:
            event = EventLedger().append(
                patient_id,
                treatment_id=data.get('patient_service_id'),
                group_id=data.get('patient_service_group_id'),
                event_type=data.get('event_type') or PatientEventType.NOTE,
                message=data.get('message'),
                meta=data.get('meta'),
                created_by=request.user,
            )
        except DomainError as e:
            return domain_error_response(e, 'patient_events.create')
        return Response(PatientEventSerializer(event).data, status=status.HTTP_201_CREATED)

    def update(self, request, patient_id=None, pk=None):
        data = _payload(request)
        kwargs = {'meta': data['meta']} if 'meta' in data else {}
        try:
            event = EventLedger().update_note(patient_id, pk, data.get('message'), **kwargs)
        except DomainError as e:
            return domain_error_response(e, 'patient_events.update')
        return Response(PatientEventSerializer(event).data)

    def destroy(self, request, patient_id=None, pk=None):
        try:
            EventLedger().delete_note(patient_id, pk)
        except DomainError as e:
            return domain_error_response(e, 'patient_events.delete')
        return Response(status=status.HTTP_204_NO_CONTENT)
