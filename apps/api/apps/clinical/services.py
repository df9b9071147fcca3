"""
Treatment store.

CRUD and status/cost lifecycle for patient treatments. Batches are
inserted in one transaction and bound together by a group key equal to
the first inserted treatment's id. Changes worth auditing are written to
the patient event ledger after the transaction commits.
"""
from decimal import Decimal
from typing import List, Optional, Tuple

from django.db import DatabaseError, transaction

from apps.clinical.catalogs import ServiceCatalog
from apps.clinical.groups import GroupResolver
from apps.clinical.models import (
    Patient,
    PatientEventType,
    PatientService,
    PatientServiceGroup,
    PatientTreatmentEvent,
)
from apps.clinical.services_events import EventLedger
from apps.clinical.status import parse_treatment_status
from apps.core.exceptions import DomainValidationError, NotFoundError, TransactionError
from apps.core.observability import get_sanitized_logger, log_domain_event, metrics
from apps.core.observability.events import log_consistency_checkpoint
from apps.core.observability.tracing import add_span_attribute, trace_span
from apps.core.parsing import clean_text, is_blank, parse_day, parse_id, parse_money, parse_patient_id

logger = get_sanitized_logger(__name__)

ZERO = Decimal('0.00')

PATCHABLE_FIELDS = ('total_cost', 'notes', 'service_date', 'service_id', 'status')


def format_money(amount: Decimal) -> str:
    return f"${amount:,.2f}"


def money_for_meta(amount: Decimal):
    """JSON-friendly number: 100 for Decimal('100.00'), 99.5 for Decimal('99.50')."""
    if amount == amount.to_integral_value():
        return int(amount)
    return float(amount)


def _actor(user):
    return user if getattr(user, 'is_authenticated', False) else None


class TreatmentStore:
    """
    Treatments of a patient.

    Collaborators are injectable so tests can swap the service catalog for
    an in-memory one.
    """

    def __init__(
        self,
        catalog: Optional[ServiceCatalog] = None,
        groups: Optional[GroupResolver] = None,
        events: Optional[EventLedger] = None,
    ):
        self.catalog = catalog or ServiceCatalog()
        self.groups = groups or GroupResolver()
        self.events = events or EventLedger(self.groups)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def list(self, patient_id) -> List[PatientService]:
        """
        Treatments of the patient, newest service_date first (id breaks ties).

        Only a structurally invalid patient id fails; no rows is an empty list.
        """
        patient_id = parse_patient_id(patient_id)
        return list(
            PatientService.objects
            .filter(patient_id=patient_id)
            .select_related('service', 'service__category')
            .annotate(
                group_start_date=self.groups.start_date_subquery('group_id'),
                package_title=self.groups.package_title_subquery('group_id'),
            )
            .order_by('-service_date', '-id')
        )

    # ------------------------------------------------------------------
    # Creation
    # ------------------------------------------------------------------

    def create_batch(self, patient_id, items, created_by=None) -> Tuple[int, List[PatientService]]:
        """
        Create 1..N treatments sharing one group key.

        Every item is validated before anything is written. Returns the
        group key and the created rows (with their services loaded).

        Raises:
            DomainValidationError: empty batch or an invalid item
            NotFoundError: unknown patient
            TransactionError: the insert transaction failed and was rolled back
        """
        patient_id = parse_patient_id(patient_id)
        cleaned = self._clean_items(items)
        self._ensure_patient(patient_id)

        with trace_span('treatments.create_batch', attributes={'patient_id': patient_id, 'items': len(cleaned)}):
            group_id = self._insert_in_transaction(patient_id, cleaned, created_by)
            add_span_attribute('group_id', group_id)

        rows = self._group_rows(group_id)
        self._after_batch(patient_id, group_id, rows, created_by, source='batch')
        return group_id, rows

    def create_package(
        self,
        patient_id,
        title,
        items,
        status=None,
        notes=None,
        created_by=None,
    ) -> Tuple[PatientServiceGroup, List[PatientService]]:
        """
        Create a titled package: a batch plus its PatientServiceGroup row.

        The package row takes the group key as its id, so it is written in
        the same transaction, right after the first member.
        """
        patient_id = parse_patient_id(patient_id)
        package_title = clean_text(title)
        if package_title is None:
            raise DomainValidationError('title es requerido')
        package_status = parse_treatment_status(status)
        package_notes = clean_text(notes)
        cleaned = self._clean_items(items)
        self._ensure_patient(patient_id)

        def create_group_row(group_id):
            PatientServiceGroup.objects.create(
                id=group_id,
                patient_id=patient_id,
                title=package_title,
                start_date=min(item['service_date'] for item in cleaned),
                status=package_status,
                notes=package_notes,
            )

        with trace_span('treatments.create_package', attributes={'patient_id': patient_id, 'items': len(cleaned)}):
            group_id = self._insert_in_transaction(patient_id, cleaned, created_by, on_grouped=create_group_row)
            add_span_attribute('group_id', group_id)

        rows = self._group_rows(group_id)
        self._after_batch(patient_id, group_id, rows, created_by, source='package', title=package_title)
        return PatientServiceGroup.objects.get(id=group_id), rows

    # ------------------------------------------------------------------
    # Updates
    # ------------------------------------------------------------------

    def patch(self, patient_id, treatment_id, fields, created_by=None) -> PatientService:
        """
        Partial update of any subset of PATCHABLE_FIELDS.

        Emits `cost_changed` / `status_changed` only when the stored value
        actually changes.
        """
        fields = fields or {}
        present = {name: fields[name] for name in PATCHABLE_FIELDS if name in fields}
        if not present:
            raise DomainValidationError('No hay campos para actualizar', fields=list(PATCHABLE_FIELDS))
        return self._apply_changes(patient_id, treatment_id, self._clean_changes(present), created_by)

    def set_status(self, patient_id, treatment_id, status, created_by=None) -> PatientService:
        changes = {'status': parse_treatment_status(status)}
        return self._apply_changes(patient_id, treatment_id, changes, created_by)

    def set_cost(self, patient_id, treatment_id, cost, created_by=None) -> PatientService:
        changes = {'total_cost': parse_money(cost, 'total_cost', default=ZERO)}
        return self._apply_changes(patient_id, treatment_id, changes, created_by)

    # ------------------------------------------------------------------
    # Deletion
    # ------------------------------------------------------------------

    def delete(self, patient_id, treatment_id) -> None:
        """
        Delete a treatment and its events, events first.

        A treatment owned by another patient raises NotFoundError and
        nothing is touched.
        """
        patient_id = parse_patient_id(patient_id)
        try:
            with transaction.atomic():
                treatment = self._get_owned(patient_id, treatment_id)
                events_deleted, _ = PatientTreatmentEvent.objects.filter(
                    patient_id=patient_id,
                    patient_service_id=treatment.id
                ).delete()
                group_id = treatment.group_id
                treatment.delete()
        except DatabaseError as e:
            raise TransactionError('No se pudo eliminar el tratamiento') from e

        log_domain_event(
            'treatment_deleted',
            entity_type='PatientService',
            entity_id=str(treatment_id),
            entity_ids={'patient_id': str(patient_id), 'group_id': str(group_id)},
            events_deleted=events_deleted,
        )

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _clean_items(self, items) -> List[dict]:
        if isinstance(items, dict):
            items = [items]
        if not items or not isinstance(items, (list, tuple)):
            raise DomainValidationError('Se requiere al menos un servicio')

        cleaned = []
        for index, item in enumerate(items):
            try:
                cleaned.append(self._clean_item(item))
            except DomainValidationError as e:
                if len(items) == 1:
                    raise
                raise DomainValidationError(
                    f'services[{index}]: {e.message}',
                    valid=e.valid,
                    fields=e.fields
                ) from e
        return cleaned

    def _clean_item(self, item) -> dict:
        if not isinstance(item, dict):
            raise DomainValidationError('Servicio inválido')
        if is_blank(item.get('service_id')):
            raise DomainValidationError('service_id es requerido')
        return {
            'service_id': self._clean_service_id(item.get('service_id')),
            'service_date': parse_day(item.get('service_date'), 'service_date'),
            'status': parse_treatment_status(item.get('status')),
            'total_cost': parse_money(item.get('total_cost'), 'total_cost', default=ZERO),
            'notes': clean_text(item.get('notes')),
        }

    def _clean_service_id(self, value) -> int:
        service_id = parse_id(value, 'service_id')
        if not self.catalog.exists_by_id(service_id):
            raise DomainValidationError(f'El servicio {service_id} no existe')
        return service_id

    def _clean_changes(self, present: dict) -> dict:
        changes = {}
        if 'total_cost' in present:
            changes['total_cost'] = parse_money(present['total_cost'], 'total_cost', default=ZERO)
        if 'notes' in present:
            changes['notes'] = clean_text(present['notes'])
        if 'service_date' in present:
            changes['service_date'] = parse_day(present['service_date'], 'service_date')
        if 'service_id' in present:
            if is_blank(present['service_id']):
                raise DomainValidationError('service_id es requerido')
            changes['service_id'] = self._clean_service_id(present['service_id'])
        if 'status' in present:
            changes['status'] = parse_treatment_status(present['status'])
        return changes

    def _ensure_patient(self, patient_id: int) -> None:
        if not Patient.objects.filter(id=patient_id).exists():
            raise NotFoundError('Paciente no encontrado')

    def _get_owned(self, patient_id: int, treatment_id) -> PatientService:
        try:
            return PatientService.objects.select_for_update().get(
                id=parse_id(treatment_id, 'treatment_id'),
                patient_id=patient_id
            )
        except PatientService.DoesNotExist:
            raise NotFoundError('Tratamiento no encontrado')

    @metrics.track_duration(metrics.treatment_batch_duration_seconds)
    def _insert_in_transaction(self, patient_id: int, cleaned: List[dict], created_by, on_grouped=None) -> int:
        """
        Insert the first item, point its group_id at itself, then insert
        the rest with the group key already set. All or nothing.
        """
        actor = _actor(created_by)
        try:
            with transaction.atomic():
                first = PatientService.objects.create(patient_id=patient_id, created_by=actor, **cleaned[0])
                PatientService.objects.filter(id=first.id).update(group_id=first.id)
                group_id = first.id
                if on_grouped is not None:
                    on_grouped(group_id)
                for item in cleaned[1:]:
                    PatientService.objects.create(
                        patient_id=patient_id,
                        group_id=group_id,
                        created_by=actor,
                        **item
                    )
        except DatabaseError as e:
            metrics.treatment_batch_rollback_total.labels(reason=e.__class__.__name__).inc()
            logger.error(
                'Treatment batch rolled back',
                exc_info=True,
                extra={'event': 'treatment_batch_rollback', 'patient_id': patient_id, 'items': len(cleaned)}
            )
            raise TransactionError('No se pudieron crear los tratamientos') from e
        return group_id

    def _group_rows(self, group_id: int) -> List[PatientService]:
        return list(
            PatientService.objects
            .filter(group_id=group_id)
            .select_related('service', 'service__category')
            .order_by('id')
        )

    def _after_batch(self, patient_id, group_id, rows, created_by, source, title=None):
        metrics.treatments_created_total.labels(source=source).inc(len(rows))
        log_consistency_checkpoint(
            'treatment_batch_group',
            entity_ids={'patient_id': str(patient_id), 'group_id': str(group_id)},
            checks_passed={
                'group_is_first_member': rows[0].id == group_id,
                'members_share_group': all(row.group_id == group_id for row in rows),
            },
            members=len(rows),
        )

        names = ', '.join(row.service.name for row in rows)
        if title:
            message = f'Paquete "{title}" creado con {len(rows)} tratamiento(s): {names}'
        else:
            message = f'Se registraron {len(rows)} tratamiento(s): {names}'

        self.events.append_best_effort(
            patient_id,
            treatment_id=rows[0].id,
            group_id=group_id,
            event_type=PatientEventType.TREATMENTS_CREATED,
            message=message,
            meta={
                'group_id': group_id,
                'patient_service_ids': [row.id for row in rows],
                'total_cost': money_for_meta(sum((row.total_cost for row in rows), ZERO)),
                'title': title,
            },
            created_by=created_by,
        )

    def _apply_changes(self, patient_id, treatment_id, changes: dict, created_by) -> PatientService:
        patient_id = parse_patient_id(patient_id)
        with transaction.atomic():
            treatment = self._get_owned(patient_id, treatment_id)
            old_cost = treatment.total_cost
            old_status = treatment.status
            for name, value in changes.items():
                setattr(treatment, name, value)
            treatment.save(update_fields=[*changes.keys(), 'updated_at'])

        self._record_changes(treatment, old_cost, old_status, changes, created_by)

        return (
            PatientService.objects
            .select_related('service', 'service__category')
            .get(id=treatment.id)
        )

    def _record_changes(self, treatment, old_cost, old_status, changes: dict, created_by) -> None:
        if 'total_cost' in changes and old_cost != changes['total_cost']:
            new_cost = changes['total_cost']
            metrics.treatment_changes_total.labels(field='total_cost').inc()
            self.events.append_best_effort(
                treatment.patient_id,
                treatment_id=treatment.id,
                group_id=treatment.group_id,
                event_type=PatientEventType.COST_CHANGED,
                message=f'Costo actualizado: {format_money(old_cost)} → {format_money(new_cost)}',
                meta={'old_cost': money_for_meta(old_cost), 'new_cost': money_for_meta(new_cost)},
                created_by=created_by,
            )

        if 'status' in changes and old_status != changes['status']:
            new_status = str(changes['status'])
            metrics.treatment_changes_total.labels(field='status').inc()
            self.events.append_best_effort(
                treatment.patient_id,
                treatment_id=treatment.id,
                group_id=treatment.group_id,
                event_type=PatientEventType.STATUS_CHANGED,
                message=f'Estado actualizado: {old_status} → {new_status}',
                meta={'old_status': str(old_status), 'new_status': new_status},
                created_by=created_by,
            )
