"""
Tests for the patient event ledger and group resolution.
"""
import datetime
from unittest.mock import patch

import pytest
from django.db import DatabaseError
from django.test import override_settings
from django.utils import timezone

from apps.clinical.groups import GroupResolver
from apps.clinical.models import PatientEventType, PatientTreatmentEvent, decode_meta, encode_meta
from apps.clinical.services import TreatmentStore
from apps.clinical.services_events import LINK_FIELDS, EventLedger
from apps.core.exceptions import DomainValidationError, EventLogError, ForbiddenError, NotFoundError
from apps.core.observability.metrics import metrics


def _failure_count(event_type, reason):
    return metrics.patient_events_append_failures_total.labels(
        event_type=event_type, reason=reason
    )._value.get()


@pytest.mark.django_db
class TestGroupResolver:

    def test_explicit_group_wins(self, patient, treatment_batch):
        _, rows = treatment_batch
        assert GroupResolver().resolve_group_id('77', rows[0].id, patient.id) == 77

    def test_group_from_treatment(self, patient, treatment_batch):
        group_id, rows = treatment_batch
        assert GroupResolver().resolve_group_id(None, rows[1].id, patient.id) == group_id

    def test_treatment_of_other_patient_yields_none(self, other_patient, treatment_batch):
        _, rows = treatment_batch
        assert GroupResolver().resolve_group_id(None, rows[1].id, other_patient.id) is None

    def test_nothing_to_resolve(self, db):
        assert GroupResolver().resolve_group_id(None, None) is None

    def test_start_date_is_earliest_member(self, treatment_batch):
        group_id, _ = treatment_batch
        assert GroupResolver().start_date(group_id) == datetime.date(2024, 1, 10)

    def test_summary_of_unknown_group(self, patient):
        with pytest.raises(NotFoundError):
            GroupResolver().summary(patient.id, 12345)


@pytest.mark.django_db
class TestAppend:

    def test_note_on_treatment_inherits_group(self, patient, treatment_batch, admin_user):
        group_id, rows = treatment_batch

        event = EventLedger().append(
            patient.id,
            treatment_id=rows[1].id,
            message='  Paciente refiere mejoría  ',
            meta={'source': 'manual'},
            created_by=admin_user,
        )

        assert event.event_type == PatientEventType.NOTE
        assert event.message == 'Paciente refiere mejoría'
        assert event.patient_service_group_id == group_id
        assert event.decoded_meta == {'source': 'manual'}
        assert event.created_by == admin_user

    def test_group_only_event(self, patient, treatment_batch):
        group_id, _ = treatment_batch

        event = EventLedger().append(patient.id, group_id=str(group_id), message='Nota del paquete')

        assert event.patient_service_id is None
        assert event.patient_service_group_id == group_id

    def test_requires_a_link(self, patient):
        with pytest.raises(DomainValidationError) as exc_info:
            EventLedger().append(patient.id, message='Sin vínculo')

        assert exc_info.value.fields == LINK_FIELDS
        assert exc_info.value.as_payload()['fields'] == ['patient_service_id', 'patient_service_group_id']

    def test_requires_message(self, patient, treatment_batch):
        _, rows = treatment_batch
        with pytest.raises(DomainValidationError):
            EventLedger().append(patient.id, treatment_id=rows[0].id, message='   ')

    def test_requires_patient(self, db):
        with pytest.raises(DomainValidationError):
            EventLedger().append(None, group_id=1, message='x')

    def test_treatment_of_other_patient(self, other_patient, treatment_batch):
        _, rows = treatment_batch
        with pytest.raises(NotFoundError):
            EventLedger().append(other_patient.id, treatment_id=rows[0].id, message='x')

    def test_group_of_other_patient(self, other_patient, treatment_batch):
        group_id, _ = treatment_batch
        with pytest.raises(NotFoundError):
            EventLedger().append(other_patient.id, group_id=group_id, message='x')

    def test_explicit_group_of_other_patient_with_own_treatment(
        self, patient, other_patient, service, treatment_batch
    ):
        _, rows = treatment_batch
        foreign_group, _ = TreatmentStore().create_batch(
            other_patient.id, {'service_id': service.id, 'service_date': '2024-01-20'}
        )

        with pytest.raises(NotFoundError):
            EventLedger().append(patient.id, treatment_id=rows[0].id, group_id=foreign_group, message='x')

        assert not PatientTreatmentEvent.objects.filter(patient_service_group_id=foreign_group, patient_id=patient.id).exists()

    def test_event_type_longer_than_column_is_rejected(self, patient, treatment_batch):
        _, rows = treatment_batch

        with pytest.raises(DomainValidationError):
            EventLedger().append(patient.id, treatment_id=rows[0].id, event_type='x' * 51, message='x')

        event = EventLedger().append(patient.id, treatment_id=rows[0].id, event_type='x' * 50, message='x')
        assert event.event_type == 'x' * 50

    def test_insert_failure_is_an_event_log_error(self, patient, treatment_batch):
        _, rows = treatment_batch
        with patch.object(PatientTreatmentEvent.objects, 'create', side_effect=DatabaseError('boom')):
            with pytest.raises(EventLogError):
                EventLedger().append(patient.id, treatment_id=rows[0].id, message='x')

    def test_best_effort_reports_and_returns_none(self, patient, treatment_batch):
        _, rows = treatment_batch
        before = _failure_count('note', 'DatabaseError')

        with patch.object(PatientTreatmentEvent.objects, 'create', side_effect=DatabaseError('boom')):
            with patch('apps.clinical.services_events.log_patient_event_append_failed') as log_failure:
                result = EventLedger().append_best_effort(
                    patient.id,
                    treatment_id=rows[0].id,
                    event_type='note',
                    message='x',
                )

        assert result is None
        assert _failure_count('note', 'DatabaseError') == before + 1
        log_failure.assert_called_once()


@pytest.mark.django_db
class TestNoteMutation:

    @pytest.fixture
    def note(self, patient, treatment_batch):
        _, rows = treatment_batch
        return EventLedger().append(patient.id, treatment_id=rows[0].id, message='Primera nota', meta={'a': 1})

    def test_update_note(self, patient, note):
        updated = EventLedger().update_note(patient.id, note.id, 'Nota corregida')

        assert updated.message == 'Nota corregida'
        assert updated.decoded_meta == {'a': 1}

    def test_update_note_replaces_meta_when_given(self, patient, note):
        updated = EventLedger().update_note(patient.id, note.id, 'Nota', meta=None)
        assert updated.meta is None

    def test_delete_note(self, patient, note):
        EventLedger().delete_note(patient.id, note.id)
        assert not PatientTreatmentEvent.objects.filter(id=note.id).exists()

    def test_system_events_are_immutable(self, patient, treatment_batch):
        system_event = PatientTreatmentEvent.objects.get(event_type=PatientEventType.TREATMENTS_CREATED)

        with pytest.raises(ForbiddenError):
            EventLedger().update_note(patient.id, system_event.id, 'cambio')
        with pytest.raises(ForbiddenError):
            EventLedger().delete_note(patient.id, system_event.id)

        assert PatientTreatmentEvent.objects.filter(id=system_event.id).exists()

    def test_note_of_other_patient_is_not_found(self, other_patient, note):
        with pytest.raises(NotFoundError):
            EventLedger().update_note(other_patient.id, note.id, 'x')
        with pytest.raises(NotFoundError):
            EventLedger().delete_note(other_patient.id, note.id)


@pytest.mark.django_db
class TestList:

    def test_newest_first_with_service_name(self, patient, treatment_batch):
        _, rows = treatment_batch
        note = EventLedger().append(patient.id, treatment_id=rows[1].id, message='Nota')

        page = EventLedger().list(patient.id)

        assert page['total'] == 2
        assert page['items'][0].id == note.id
        assert page['items'][0].service_name == 'Peeling químico'
        assert page['limit'] == 200
        assert page['offset'] == 0

    def test_group_filter_matches_tag_or_member(self, patient, treatment_batch, make_treatment):
        group_id, rows = treatment_batch
        loose = make_treatment()
        EventLedger().append(patient.id, treatment_id=loose.id, message='fuera del grupo')
        tagged = PatientTreatmentEvent.objects.create(
            patient=patient, patient_service=rows[1], message='sin etiqueta de grupo'
        )

        page = EventLedger().list(patient.id, group_id=group_id)

        ids = {event.id for event in page['items']}
        assert tagged.id in ids
        assert page['total'] == 2

    def test_type_and_treatment_filters(self, patient, treatment_batch):
        _, rows = treatment_batch
        EventLedger().append(patient.id, treatment_id=rows[1].id, message='Nota')

        assert EventLedger().list(patient.id, event_type='note')['total'] == 1
        assert EventLedger().list(patient.id, treatment_id=rows[0].id)['total'] == 1

    def test_date_range_is_inclusive(self, patient, treatment_batch):
        _, rows = treatment_batch
        old = EventLedger().append(patient.id, treatment_id=rows[0].id, message='Antigua')
        PatientTreatmentEvent.objects.filter(id=old.id).update(
            created_at=timezone.make_aware(datetime.datetime(2023, 5, 1, 12, 0))
        )

        page = EventLedger().list(patient.id, date_from='2023-05-01', date_to='2023-05-01')

        assert [event.id for event in page['items']] == [old.id]

    @override_settings(PATIENT_EVENTS={'DEFAULT_LIMIT': 1, 'MAX_LIMIT': 2})
    def test_limit_is_clamped(self, patient, treatment_batch):
        _, rows = treatment_batch
        for i in range(3):
            EventLedger().append(patient.id, treatment_id=rows[0].id, message=f'Nota {i}')

        assert EventLedger().list(patient.id)['limit'] == 1
        assert len(EventLedger().list(patient.id, limit=50)['items']) == 2
        assert EventLedger().list(patient.id, limit='abc')['limit'] == 1
        page = EventLedger().list(patient.id, limit=2, offset=3)
        assert page['total'] == 4
        assert len(page['items']) == 1


class TestMetaEncoding:

    def test_round_trip_and_passthrough(self):
        assert decode_meta(encode_meta({'old_cost': 100})) == {'old_cost': 100}
        assert encode_meta('{"raw": true}') == '{"raw": true}'
        assert encode_meta(None) is None

    def test_malformed_meta_decodes_to_none(self):
        assert decode_meta('{not json') is None
