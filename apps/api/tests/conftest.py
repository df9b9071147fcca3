"""
Global test fixtures for pytest.

Provides reusable fixtures for API testing:
- Authenticated API clients by role
- Model instances (Patient, Service, payment catalogs, treatments)
"""
import datetime
from decimal import Decimal

import pytest
from rest_framework.test import APIClient

from apps.authz.models import Role, RoleChoices, User, UserRole
from apps.clinical.models import Patient, PatientService, Service, ServiceCategory
from apps.clinical.services import TreatmentStore
from apps.payments.models import PaymentMethod, PaymentStatus


def _user_with_role(email, role_name, **extra):
    user = User.objects.create_user(email=email, password='testpass123', is_active=True, **extra)
    role, _ = Role.objects.get_or_create(name=role_name)
    UserRole.objects.create(user=user, role=role)
    return user


def _client_for(user):
    client = APIClient()
    client.force_authenticate(user=user)
    return client


# ============================================================================
# API Clients
# ============================================================================

@pytest.fixture
def api_client():
    """Unauthenticated DRF API client."""
    return APIClient()


@pytest.fixture
def admin_user(db):
    return _user_with_role('admin@test.com', RoleChoices.ADMIN, is_staff=True, is_superuser=True)


@pytest.fixture
def admin_client(admin_user):
    """Admin has full access to treatments, events and payments."""
    return _client_for(admin_user)


@pytest.fixture
def practitioner_client(db):
    return _client_for(_user_with_role('practitioner@test.com', RoleChoices.PRACTITIONER))


@pytest.fixture
def reception_client(db):
    return _client_for(_user_with_role('reception@test.com', RoleChoices.RECEPTION))


@pytest.fixture
def accounting_client(db):
    """Accounting reads treatments and payments but cannot change them."""
    return _client_for(_user_with_role('accounting@test.com', RoleChoices.ACCOUNTING))


@pytest.fixture
def marketing_client(db):
    """Marketing has NO access to clinical data (should receive 403)."""
    return _client_for(_user_with_role('marketing@test.com', RoleChoices.MARKETING))


# ============================================================================
# Model Fixtures
# ============================================================================

@pytest.fixture
def patient(db):
    return Patient.objects.create(
        first_name='Ana',
        last_name='García',
        email='ana.garcia@example.com',
        phone='+34600000001',
    )


@pytest.fixture
def other_patient(db):
    return Patient.objects.create(first_name='Luis', last_name='Pérez')


@pytest.fixture
def category(db):
    return ServiceCategory.objects.create(name='Facial', sort_order=1)


@pytest.fixture
def service(category):
    return Service.objects.create(name='Limpieza facial', category=category)


@pytest.fixture
def second_service(category):
    return Service.objects.create(name='Peeling químico', category=category)


@pytest.fixture
def payment_catalogs(db):
    """Default status/method rows, as seeded by the payments migration."""
    return {
        'finalizado': PaymentStatus.objects.create(name='finalizado'),
        'pendiente': PaymentStatus.objects.create(name='pendiente'),
        'efectivo': PaymentMethod.objects.create(name='efectivo'),
        'tarjeta': PaymentMethod.objects.create(name='tarjeta'),
    }


@pytest.fixture
def treatment_batch(patient, service, second_service, admin_user):
    """
    Two treatments created together for `patient`.

    Returns (group_id, rows) with rows in insertion order.
    """
    return TreatmentStore().create_batch(
        patient.id,
        [
            {'service_id': service.id, 'service_date': '2024-01-10', 'total_cost': 100},
            {'service_id': second_service.id, 'service_date': '2024-01-12', 'total_cost': 200},
        ],
        created_by=admin_user,
    )


@pytest.fixture
def make_treatment(patient, service):
    """Factory for a single, ungrouped treatment row."""
    def _make(**overrides):
        values = {
            'patient': patient,
            'service': service,
            'service_date': datetime.date(2024, 2, 1),
            'total_cost': Decimal('50.00'),
        }
        values.update(overrides)
        return PatientService.objects.create(**values)
    return _make


class InMemoryServiceCatalog:
    """ServiceCatalog stand-in backed by a set of ids."""

    def __init__(self, service_ids):
        self.service_ids = set(service_ids)

    def exists_by_id(self, service_id):
        return service_id in self.service_ids

    def category_id_for_name(self, name):
        return None


@pytest.fixture
def in_memory_catalog():
    """Factory: in_memory_catalog([service ids]) -> catalog for TreatmentStore."""
    return InMemoryServiceCatalog
