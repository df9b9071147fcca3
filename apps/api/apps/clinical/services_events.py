"""
Patient event ledger.

Append-only timeline of what happened to a patient's treatments and
payments. System events are written after the primary mutation has
committed, through `append_best_effort`, so a ledger failure never turns a
successful write into an error. Users may also post, edit and delete
`note` events; every other event type is immutable.
"""
from typing import Optional

from django.conf import settings
from django.db import DatabaseError, transaction
from django.db.models import F, Q

from apps.clinical.groups import GroupResolver
from apps.clinical.models import (
    Patient,
    PatientEventType,
    PatientService,
    PatientServiceGroup,
    PatientTreatmentEvent,
    encode_meta,
)
from apps.core.exceptions import (
    DomainValidationError,
    EventLogError,
    ForbiddenError,
    NotFoundError,
)
from apps.core.observability import get_sanitized_logger, metrics
from apps.core.observability.events import log_patient_event_append_failed
from apps.core.parsing import clean_text, is_blank, parse_day, parse_optional_id, parse_patient_id

logger = get_sanitized_logger(__name__)

LINK_FIELDS = ['patient_service_id', 'patient_service_group_id']
EVENT_TYPE_MAX_LENGTH = PatientTreatmentEvent._meta.get_field('event_type').max_length

_UNSET = object()


def _clamp_limit(value) -> int:
    default_limit = settings.PATIENT_EVENTS['DEFAULT_LIMIT']
    max_limit = settings.PATIENT_EVENTS['MAX_LIMIT']
    try:
        limit = int(value)
    except (TypeError, ValueError):
        return default_limit
    if limit < 1:
        return default_limit
    return min(limit, max_limit)


def _clamp_offset(value) -> int:
    try:
        offset = int(value)
    except (TypeError, ValueError):
        return 0
    return max(offset, 0)


class EventLedger:
    """Writes and reads `patient_treatment_events`."""

    def __init__(self, group_resolver: Optional[GroupResolver] = None):
        self.groups = group_resolver or GroupResolver()

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def append(
        self,
        patient_id,
        *,
        treatment_id=None,
        group_id=None,
        event_type=PatientEventType.NOTE,
        message=None,
        meta=None,
        created_by=None,
    ) -> PatientTreatmentEvent:
        """
        Insert one event.

        Raises:
            DomainValidationError: patient_id or message missing, or no
                treatment/group to attach the event to
            DomainValidationError: event_type longer than the column allows
            NotFoundError: patient, treatment or group not owned by patient
            EventLogError: the insert itself failed
        """
        if is_blank(patient_id):
            raise DomainValidationError('patient_id es requerido')
        patient_id = parse_patient_id(patient_id)

        text = clean_text(message)
        if text is None:
            raise DomainValidationError('message es requerido')

        treatment_id = parse_optional_id(treatment_id, 'patient_service_id')
        if treatment_id is None and is_blank(group_id):
            raise DomainValidationError(
                'Se requiere patient_service_id o patient_service_group_id',
                fields=LINK_FIELDS
            )

        if not Patient.objects.filter(id=patient_id).exists():
            raise NotFoundError('Paciente no encontrado')

        if treatment_id is not None:
            if not PatientService.objects.filter(id=treatment_id, patient_id=patient_id).exists():
                raise NotFoundError('Tratamiento no encontrado')

        resolved_group_id = self.groups.resolve_group_id(group_id, treatment_id, patient_id)

        explicit_group = not is_blank(group_id)
        if (treatment_id is None or explicit_group) and not self._group_belongs_to(patient_id, resolved_group_id):
            raise NotFoundError('Grupo no encontrado')

        event_type = clean_text(event_type) or PatientEventType.NOTE
        if len(event_type) > EVENT_TYPE_MAX_LENGTH:
            raise DomainValidationError(
                f'event_type no puede superar {EVENT_TYPE_MAX_LENGTH} caracteres'
            )

        try:
            event = PatientTreatmentEvent.objects.create(
                patient_id=patient_id,
                patient_service_id=treatment_id,
                patient_service_group_id=resolved_group_id,
                event_type=event_type,
                message=text,
                meta=encode_meta(meta),
                created_by=created_by if getattr(created_by, 'is_authenticated', False) else None,
            )
        except DatabaseError as e:
            raise EventLogError('No se pudo registrar el evento') from e

        metrics.patient_events_appended_total.labels(event_type=event_type).inc()
        return event

    def append_best_effort(self, patient_id, **kwargs) -> Optional[PatientTreatmentEvent]:
        """
        Append after a primary write has committed. Never raises.

        Failures are reported to the operational channel (error log and
        `patient_events_append_failures_total`) and None is returned.
        """
        event_type = kwargs.get('event_type', PatientEventType.NOTE)
        try:
            with transaction.atomic():
                return self.append(patient_id, **kwargs)
        except Exception as e:
            cause = e.__cause__ if isinstance(e, EventLogError) and e.__cause__ else e
            metrics.patient_events_append_failures_total.labels(
                event_type=event_type,
                reason=cause.__class__.__name__
            ).inc()
            log_patient_event_append_failed(
                patient_id,
                event_type,
                cause,
                patient_service_id=kwargs.get('treatment_id'),
                patient_service_group_id=kwargs.get('group_id'),
            )
            return None

    def update_note(self, patient_id, event_id, message, meta=_UNSET) -> PatientTreatmentEvent:
        """Edit a note. Other event types raise ForbiddenError."""
        text = clean_text(message)

        with transaction.atomic():
            event = self._get_owned_for_update(patient_id, event_id)
            self._ensure_mutable(event, 'update')
            if text is None:
                raise DomainValidationError('message es requerido')

            event.message = text
            update_fields = ['message']
            if meta is not _UNSET:
                event.meta = encode_meta(meta)
                update_fields.append('meta')
            event.save(update_fields=update_fields)

        logger.info(
            'Patient note updated',
            extra={'event': 'patient_note_updated', 'event_id': event.id, 'patient_id': event.patient_id}
        )
        return event

    def delete_note(self, patient_id, event_id) -> None:
        """Delete a note. Other event types raise ForbiddenError."""
        with transaction.atomic():
            event = self._get_owned_for_update(patient_id, event_id)
            self._ensure_mutable(event, 'delete')
            event.delete()

        logger.info(
            'Patient note deleted',
            extra={'event': 'patient_note_deleted', 'event_id': event_id, 'patient_id': patient_id}
        )

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def list(
        self,
        patient_id,
        treatment_id=None,
        group_id=None,
        event_type=None,
        limit=None,
        offset=None,
        date_from=None,
        date_to=None,
    ) -> dict:
        """
        Page of events, newest first.

        `group_id` matches events tagged with the group and events attached
        to any treatment of the group. `date_from`/`date_to` are inclusive
        calendar days on created_at.
        """
        patient_id = parse_patient_id(patient_id)
        limit = _clamp_limit(limit if limit is not None else settings.PATIENT_EVENTS['DEFAULT_LIMIT'])
        offset = _clamp_offset(offset)

        events = (
            PatientTreatmentEvent.objects
            .filter(patient_id=patient_id)
            .annotate(service_name=F('patient_service__service__name'))
        )

        treatment_id = parse_optional_id(treatment_id, 'patient_service_id')
        if treatment_id is not None:
            events = events.filter(patient_service_id=treatment_id)

        group_id = parse_optional_id(group_id, 'patient_service_group_id')
        if group_id is not None:
            events = events.filter(
                Q(patient_service_group_id=group_id) | Q(patient_service__group_id=group_id)
            )

        event_type = clean_text(event_type)
        if event_type:
            events = events.filter(event_type=event_type)

        if not is_blank(date_from):
            events = events.filter(created_at__date__gte=parse_day(date_from, 'from'))
        if not is_blank(date_to):
            events = events.filter(created_at__date__lte=parse_day(date_to, 'to'))

        total = events.count()
        items = list(events.order_by('-created_at', '-id')[offset:offset + limit])

        return {'items': items, 'total': total, 'limit': limit, 'offset': offset}

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _group_belongs_to(self, patient_id: int, group_id: Optional[int]) -> bool:
        if group_id is None:
            return False
        return (
            PatientService.objects.filter(patient_id=patient_id, group_id=group_id).exists()
            or PatientServiceGroup.objects.filter(patient_id=patient_id, id=group_id).exists()
        )

    def _get_owned_for_update(self, patient_id, event_id) -> PatientTreatmentEvent:
        patient_id = parse_patient_id(patient_id)
        try:
            return PatientTreatmentEvent.objects.select_for_update().get(
                id=event_id,
                patient_id=patient_id
            )
        except PatientTreatmentEvent.DoesNotExist:
            raise NotFoundError('Evento no encontrado')

    def _ensure_mutable(self, event: PatientTreatmentEvent, operation: str) -> None:
        if not event.is_mutable:
            metrics.patient_events_immutable_denied_total.labels(operation=operation).inc()
            raise ForbiddenError('Solo se pueden modificar eventos de tipo nota')
