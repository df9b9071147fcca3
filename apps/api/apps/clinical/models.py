"""
Clinical models: patients, service catalog, treatments, treatment groups
and the patient event ledger.
"""
import json
from decimal import Decimal

from django.conf import settings
from django.core.serializers.json import DjangoJSONEncoder
from django.core.validators import MinValueValidator
from django.db import models
from django.utils import timezone


# ============================================================================
# Enums
# ============================================================================

class TreatmentStatusChoices(models.TextChoices):
    """
    Closed set of treatment states.

    Stored values are the Spanish labels shown in the clinic UI. Free text
    is converted with apps.clinical.status.parse_treatment_status.
    """
    POR_INICIAR = 'Por Iniciar', 'Por Iniciar'
    EN_PROCESO = 'En proceso', 'En proceso'
    TERMINADO = 'Terminado', 'Terminado'


class PatientEventType(models.TextChoices):
    """
    Event types written by the backend itself.

    `event_type` is a free-form column; only NOTE events are editable.
    """
    NOTE = 'note', 'Nota'
    TREATMENTS_CREATED = 'treatments_created', 'Tratamientos creados'
    STATUS_CHANGED = 'status_changed', 'Estado actualizado'
    COST_CHANGED = 'cost_changed', 'Costo actualizado'
    PAYMENT_CREATED = 'payment_created', 'Pago registrado'
    PAYMENT_UPDATED = 'payment_updated', 'Pago actualizado'
    PAYMENT_DELETED = 'payment_deleted', 'Pago eliminado'


# ============================================================================
# Patients
# ============================================================================

class Patient(models.Model):
    """
    Patient identity and contact data.

    Registered outside this backend's treatment flows; never hard-deleted here.
    """
    first_name = models.CharField(max_length=100)
    last_name = models.CharField(max_length=100)
    email = models.EmailField(blank=True, null=True)
    phone = models.CharField(max_length=50, blank=True, null=True)
    birth_date = models.DateField(blank=True, null=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'patients'
        verbose_name = 'Patient'
        verbose_name_plural = 'Patients'
        indexes = [
            models.Index(fields=['last_name', 'first_name'], name='idx_patient_name'),
        ]

    def __str__(self):
        return f"{self.first_name} {self.last_name}"


# ============================================================================
# Service catalog (read-only for the treatment flows)
# ============================================================================

class ServiceCategory(models.Model):
    name = models.CharField(max_length=100, unique=True)
    sort_order = models.PositiveIntegerField(default=0)

    class Meta:
        db_table = 'service_categories'
        verbose_name = 'Service Category'
        verbose_name_plural = 'Service Categories'
        ordering = ['sort_order', 'name']

    def __str__(self):
        return self.name


class Service(models.Model):
    name = models.CharField(max_length=150)
    category = models.ForeignKey(
        ServiceCategory,
        on_delete=models.PROTECT,
        blank=True,
        null=True,
        related_name='services'
    )
    is_active = models.BooleanField(default=True)

    class Meta:
        db_table = 'services'
        verbose_name = 'Service'
        verbose_name_plural = 'Services'
        ordering = ['name']

    def __str__(self):
        return self.name


# ============================================================================
# Treatments and groups
# ============================================================================

class PatientServiceGroup(models.Model):
    """
    Package metadata for a treatment group.

    The primary key is the group key itself, i.e. the id of the first
    treatment inserted for the package, so `PatientService.group_id` points
    at this row when it exists. Plain batches have no row here.
    """
    id = models.BigIntegerField(primary_key=True)
    patient = models.ForeignKey(
        Patient,
        on_delete=models.CASCADE,
        related_name='service_groups'
    )
    title = models.CharField(max_length=200)
    start_date = models.DateField(
        help_text='Earliest service_date among the members at creation time'
    )
    status = models.CharField(
        max_length=20,
        choices=TreatmentStatusChoices.choices,
        default=TreatmentStatusChoices.POR_INICIAR
    )
    notes = models.TextField(blank=True, null=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'patient_service_groups'
        verbose_name = 'Treatment Package'
        verbose_name_plural = 'Treatment Packages'
        indexes = [
            models.Index(fields=['patient'], name='idx_service_group_patient'),
        ]

    def __str__(self):
        return f"{self.title} (#{self.id})"


class PatientService(models.Model):
    """
    One billable treatment applied to a patient.

    `group_id` is assigned exactly once, inside the transaction that creates
    the batch, and equals the id of the first treatment of that batch.
    """
    patient = models.ForeignKey(
        Patient,
        on_delete=models.CASCADE,
        related_name='treatments'
    )
    group_id = models.BigIntegerField(blank=True, null=True, db_index=True)
    service = models.ForeignKey(
        Service,
        on_delete=models.PROTECT,
        related_name='patient_services'
    )
    service_date = models.DateField()
    status = models.CharField(
        max_length=20,
        choices=TreatmentStatusChoices.choices,
        default=TreatmentStatusChoices.POR_INICIAR
    )
    total_cost = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        default=Decimal('0.00'),
        validators=[MinValueValidator(Decimal('0.00'))]
    )
    notes = models.TextField(blank=True, null=True)
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        blank=True,
        null=True,
        related_name='created_treatments'
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'patient_services'
        verbose_name = 'Treatment'
        verbose_name_plural = 'Treatments'
        indexes = [
            models.Index(fields=['patient', '-service_date'], name='idx_treatment_patient_date'),
        ]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(total_cost__gte=0),
                name='chk_treatment_total_cost_non_negative'
            ),
        ]

    def __str__(self):
        return f"Treatment #{self.id} ({self.status})"


# ============================================================================
# Patient event ledger
# ============================================================================

class PatientTreatmentEvent(models.Model):
    """
    Append-only patient timeline entry.

    Every entry references the patient plus a treatment and/or a group key.
    `meta` holds a serialized JSON payload; use `decoded_meta` to read it.
    Only `note` entries may be edited or deleted.
    """
    patient = models.ForeignKey(
        Patient,
        on_delete=models.CASCADE,
        related_name='events'
    )
    patient_service = models.ForeignKey(
        PatientService,
        on_delete=models.CASCADE,
        blank=True,
        null=True,
        related_name='events'
    )
    patient_service_group_id = models.BigIntegerField(blank=True, null=True, db_index=True)
    event_type = models.CharField(max_length=50, default=PatientEventType.NOTE, db_index=True)
    message = models.TextField()
    meta = models.TextField(blank=True, null=True)
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        blank=True,
        null=True,
        related_name='patient_events'
    )
    created_at = models.DateTimeField(default=timezone.now, db_index=True)

    class Meta:
        db_table = 'patient_treatment_events'
        verbose_name = 'Patient Event'
        verbose_name_plural = 'Patient Events'
        indexes = [
            models.Index(fields=['patient', '-created_at'], name='idx_event_patient_created'),
        ]

    def __str__(self):
        return f"{self.event_type} #{self.id}"

    @property
    def is_mutable(self):
        return self.event_type == PatientEventType.NOTE

    @property
    def decoded_meta(self):
        return decode_meta(self.meta)


# ============================================================================
# Meta payload helpers
# ============================================================================

def encode_meta(meta):
    """
    Serialize an event payload for storage.

    Strings are stored verbatim (callers may pass pre-serialized JSON);
    None stays NULL.
    """
    if meta is None:
        return None
    if isinstance(meta, str):
        return meta
    return json.dumps(meta, cls=DjangoJSONEncoder)


def decode_meta(raw):
    """Decode a stored payload. Malformed text decodes to None."""
    if raw is None or raw == '':
        return None
    try:
        return json.loads(raw)
    except (TypeError, ValueError):
        return None
