"""
Smoke tests for API permissions by role.

Fast HTTP status code validation without deep content checks.
"""
import pytest
from rest_framework import status


@pytest.mark.django_db
class TestTreatmentPermissions:

    @pytest.mark.parametrize('client_fixture,expected_status', [
        ('admin_client', status.HTTP_200_OK),
        ('practitioner_client', status.HTTP_200_OK),
        ('reception_client', status.HTTP_200_OK),
        ('accounting_client', status.HTTP_200_OK),
        ('marketing_client', status.HTTP_403_FORBIDDEN),
    ])
    def test_list_treatments_by_role(self, client_fixture, expected_status, request, patient):
        """GET treatments - all roles except Marketing can read."""
        client = request.getfixturevalue(client_fixture)
        response = client.get(f'/api/v1/clinical/patients/{patient.id}/treatments/')
        assert response.status_code == expected_status

    @pytest.mark.parametrize('client_fixture,expected_status', [
        ('admin_client', status.HTTP_201_CREATED),
        ('practitioner_client', status.HTTP_201_CREATED),
        ('reception_client', status.HTTP_201_CREATED),
        ('accounting_client', status.HTTP_403_FORBIDDEN),
        ('marketing_client', status.HTTP_403_FORBIDDEN),
    ])
    def test_create_treatment_by_role(self, client_fixture, expected_status, request, patient, service):
        """POST treatments - Admin/Practitioner/Reception can create."""
        client = request.getfixturevalue(client_fixture)
        response = client.post(
            f'/api/v1/clinical/patients/{patient.id}/treatments/',
            {'service_id': service.id, 'service_date': '2024-01-10'},
            format='json'
        )
        assert response.status_code == expected_status

    def test_unauthenticated_is_rejected(self, api_client, patient):
        response = api_client.get(f'/api/v1/clinical/patients/{patient.id}/treatments/')
        assert response.status_code == status.HTTP_401_UNAUTHORIZED


@pytest.mark.django_db
class TestEventPermissions:

    @pytest.mark.parametrize('client_fixture,expected_status', [
        ('admin_client', status.HTTP_201_CREATED),
        ('reception_client', status.HTTP_201_CREATED),
        ('accounting_client', status.HTTP_403_FORBIDDEN),
        ('marketing_client', status.HTTP_403_FORBIDDEN),
    ])
    def test_post_note_by_role(self, client_fixture, expected_status, request, patient, treatment_batch):
        client = request.getfixturevalue(client_fixture)
        group_id, _ = treatment_batch
        response = client.post(
            f'/api/v1/clinical/patients/{patient.id}/events/',
            {'patient_service_group_id': group_id, 'message': 'Nota'},
            format='json'
        )
        assert response.status_code == expected_status

    @pytest.mark.parametrize('client_fixture,expected_status', [
        ('accounting_client', status.HTTP_200_OK),
        ('marketing_client', status.HTTP_403_FORBIDDEN),
    ])
    def test_list_events_by_role(self, client_fixture, expected_status, request, patient):
        client = request.getfixturevalue(client_fixture)
        response = client.get(f'/api/v1/clinical/patients/{patient.id}/events/')
        assert response.status_code == expected_status


@pytest.mark.django_db
class TestPaymentPermissions:

    @pytest.mark.parametrize('client_fixture,expected_status', [
        ('admin_client', status.HTTP_201_CREATED),
        ('practitioner_client', status.HTTP_201_CREATED),
        ('reception_client', status.HTTP_201_CREATED),
        ('accounting_client', status.HTTP_403_FORBIDDEN),
        ('marketing_client', status.HTTP_403_FORBIDDEN),
    ])
    def test_create_payment_by_role(self, client_fixture, expected_status, request, patient, payment_catalogs):
        client = request.getfixturevalue(client_fixture)
        response = client.post(
            f'/api/v1/clinical/patients/{patient.id}/payments/',
            {'fecha': '2024-01-15', 'monto': 10},
            format='json'
        )
        assert response.status_code == expected_status

    @pytest.mark.parametrize('client_fixture,expected_status', [
        ('accounting_client', status.HTTP_200_OK),
        ('marketing_client', status.HTTP_403_FORBIDDEN),
    ])
    def test_list_payments_by_role(self, client_fixture, expected_status, request, patient):
        client = request.getfixturevalue(client_fixture)
        response = client.get(f'/api/v1/clinical/patients/{patient.id}/payments/')
        assert response.status_code == expected_status

    @pytest.mark.parametrize('client_fixture,expected_status', [
        ('reception_client', status.HTTP_200_OK),
        ('marketing_client', status.HTTP_403_FORBIDDEN),
    ])
    def test_catalogs_by_role(self, client_fixture, expected_status, request):
        client = request.getfixturevalue(client_fixture)
        response = client.get('/api/v1/catalog/services/')
        assert response.status_code == expected_status


@pytest.mark.django_db
def test_current_user_profile(admin_client):
    response = admin_client.get('/api/auth/me/')

    assert response.status_code == status.HTTP_200_OK
    assert response.json()['roles'] == ['admin']
