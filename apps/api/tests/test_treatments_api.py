"""
API tests for treatments, packages, group summaries and the service catalog.
"""
from unittest.mock import patch

import pytest
from django.db import DatabaseError
from rest_framework import status

from apps.clinical.models import PatientService, PatientTreatmentEvent, Service


def treatments_url(patient_id):
    return f'/api/v1/clinical/patients/{patient_id}/treatments/'


@pytest.mark.django_db
class TestTreatmentEndpoints:

    def test_create_batch(self, admin_client, patient, service, second_service):
        response = admin_client.post(
            treatments_url(patient.id),
            {
                'services': [
                    {'service_id': service.id, 'service_date': '2024-01-10', 'total_cost': 100},
                    {'service_id': second_service.id, 'service_date': '2024-01-12', 'status': 'en proceso'},
                ]
            },
            format='json'
        )

        assert response.status_code == status.HTTP_201_CREATED
        data = response.json()
        assert data['group_id'] == data['items'][0]['id']
        assert [item['group_id'] for item in data['items']] == [data['group_id']] * 2
        assert data['items'][1]['status'] == 'En proceso'
        assert data['items'][0]['service_name'] == 'Limpieza facial'
        assert data['items'][0]['category_name'] == 'Facial'

    def test_create_single_object(self, admin_client, patient, service):
        response = admin_client.post(
            treatments_url(patient.id),
            {'service_id': service.id, 'service_date': '2024-01-10'},
            format='json'
        )

        assert response.status_code == status.HTTP_201_CREATED
        assert len(response.json()['items']) == 1

    def test_invalid_status_returns_valid_values(self, admin_client, patient, service):
        response = admin_client.post(
            treatments_url(patient.id),
            {'services': [{'service_id': service.id, 'service_date': '2024-01-10', 'status': 'pausado'}]},
            format='json'
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json()['valid'] == ['Por Iniciar', 'En proceso', 'Terminado']
        assert PatientService.objects.count() == 0

    def test_unknown_patient(self, admin_client, service):
        response = admin_client.post(
            treatments_url(999),
            {'service_id': service.id, 'service_date': '2024-01-10'},
            format='json'
        )
        assert response.status_code == status.HTTP_404_NOT_FOUND

    def test_transaction_failure_is_generic_500(self, admin_client, patient, service):
        with patch.object(PatientService.objects, 'create', side_effect=DatabaseError('disk full')):
            response = admin_client.post(
                treatments_url(patient.id),
                {'service_id': service.id, 'service_date': '2024-01-10'},
                format='json'
            )

        assert response.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR
        assert response.json() == {'error': 'No se pudo completar la operación'}

    def test_list(self, accounting_client, patient, treatment_batch):
        group_id, rows = treatment_batch

        response = accounting_client.get(treatments_url(patient.id))

        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert [item['id'] for item in data] == [rows[1].id, rows[0].id]
        assert data[0]['group_start_date'] == '2024-01-10'

    def test_patch(self, practitioner_client, patient, treatment_batch):
        _, rows = treatment_batch

        response = practitioner_client.patch(
            f'{treatments_url(patient.id)}{rows[0].id}/',
            {'notes': 'Piel sensible', 'status': 'terminado'},
            format='json'
        )

        assert response.status_code == status.HTTP_200_OK
        assert response.json()['notes'] == 'Piel sensible'
        assert response.json()['status'] == 'Terminado'

    def test_set_status_and_cost(self, reception_client, patient, treatment_batch):
        _, rows = treatment_batch
        base = f'{treatments_url(patient.id)}{rows[0].id}'

        status_response = reception_client.put(f'{base}/status/', {'status': 'EN PROCESO'}, format='json')
        cost_response = reception_client.put(f'{base}/cost/', {'total_cost': 150}, format='json')

        assert status_response.status_code == status.HTTP_200_OK
        assert status_response.json()['status'] == 'En proceso'
        assert cost_response.status_code == status.HTTP_200_OK
        assert cost_response.json()['total_cost'] == '150.00'

    def test_delete(self, admin_client, patient, treatment_batch):
        _, rows = treatment_batch

        response = admin_client.delete(f'{treatments_url(patient.id)}{rows[0].id}/')

        assert response.status_code == status.HTTP_204_NO_CONTENT
        assert not PatientService.objects.filter(id=rows[0].id).exists()
        assert not PatientTreatmentEvent.objects.filter(patient_service_id=rows[0].id).exists()

    def test_delete_other_patients_treatment(self, admin_client, other_patient, treatment_batch):
        _, rows = treatment_batch

        response = admin_client.delete(f'{treatments_url(other_patient.id)}{rows[0].id}/')

        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert PatientService.objects.filter(id=rows[0].id).exists()


@pytest.mark.django_db
class TestPackagesAndGroups:

    def test_create_package_and_read_summary(self, admin_client, patient, service, second_service):
        response = admin_client.post(
            f'/api/v1/clinical/patients/{patient.id}/treatment-packages/',
            {
                'title': 'Paquete facial',
                'services': [
                    {'service_id': service.id, 'service_date': '2024-02-10', 'total_cost': 100},
                    {'service_id': second_service.id, 'service_date': '2024-02-01', 'total_cost': 50},
                ],
            },
            format='json'
        )

        assert response.status_code == status.HTTP_201_CREATED
        group_id = response.json()['group_id']
        assert response.json()['group']['start_date'] == '2024-02-01'

        summary = admin_client.get(f'/api/v1/clinical/patients/{patient.id}/treatment-groups/{group_id}/')

        assert summary.status_code == status.HTTP_200_OK
        assert summary.json()['title'] == 'Paquete facial'
        assert summary.json()['total_cost'] == '150.00'
        assert summary.json()['saldo_pendiente'] == '150.00'
        assert len(summary.json()['members']) == 2

    def test_list_shows_package_title(self, admin_client, patient, service):
        admin_client.post(
            f'/api/v1/clinical/patients/{patient.id}/treatment-packages/',
            {'title': 'Paquete', 'services': [{'service_id': service.id, 'service_date': '2024-02-10'}]},
            format='json'
        )

        response = admin_client.get(treatments_url(patient.id))

        assert response.json()[0]['package_title'] == 'Paquete'

    def test_package_without_title(self, admin_client, patient, service):
        response = admin_client.post(
            f'/api/v1/clinical/patients/{patient.id}/treatment-packages/',
            {'services': [{'service_id': service.id, 'service_date': '2024-02-10'}]},
            format='json'
        )
        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_summary_of_other_patients_group(self, admin_client, other_patient, treatment_batch):
        group_id, _ = treatment_batch

        response = admin_client.get(f'/api/v1/clinical/patients/{other_patient.id}/treatment-groups/{group_id}/')

        assert response.status_code == status.HTTP_404_NOT_FOUND


@pytest.mark.django_db
class TestServiceCatalog:

    endpoint = '/api/v1/catalog/services/'

    def test_filters_by_category_name(self, admin_client, service, second_service):
        Service.objects.create(name='Sin categoría')

        response = admin_client.get(self.endpoint, {'category': 'FACIAL'})

        assert response.status_code == status.HTTP_200_OK
        assert {item['name'] for item in response.json()} == {'Limpieza facial', 'Peeling químico'}

    def test_unknown_category_is_empty(self, admin_client, service):
        response = admin_client.get(self.endpoint, {'category': 'Corporal'})
        assert response.json() == []

    def test_active_filter(self, admin_client, service, second_service):
        second_service.is_active = False
        second_service.save()

        response = admin_client.get(self.endpoint, {'active': 'true'})

        assert [item['id'] for item in response.json()] == [service.id]
