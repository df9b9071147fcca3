"""
Payment ledger.

Payments of a patient, optionally applied to a treatment. Balances are
recomputed from the payment rows on every read. Every mutation is
followed by a best-effort patient event carrying a snapshot of the row.
"""
import time
from decimal import Decimal
from typing import List, Optional

from django.conf import settings
from django.db import transaction
from django.db.models import DecimalField, ExpressionWrapper, F, QuerySet, Sum

from apps.clinical.groups import GroupResolver
from apps.clinical.models import Patient, PatientEventType, PatientService
from apps.clinical.services import format_money, money_for_meta
from apps.clinical.services_events import EventLedger
from apps.core.exceptions import DomainValidationError, NotFoundError
from apps.core.observability import get_sanitized_logger, log_domain_event, metrics
from apps.core.observability.tracing import trace_span
from apps.core.parsing import clean_text, is_blank, parse_day, parse_id, parse_money, parse_optional_id, parse_patient_id
from apps.payments.catalogs import PAYMENT_METHODS, PAYMENT_STATUSES, PaymentCatalog
from apps.payments.models import PatientPayment

logger = get_sanitized_logger(__name__)

ZERO = Decimal('0.00')
MONEY = DecimalField(max_digits=14, decimal_places=2)


def generate_invoice_number() -> str:
    """`F-<unix time in milliseconds>`."""
    return f"{settings.PAYMENTS['INVOICE_PREFIX']}{int(time.time() * 1000)}"


def snapshot(payment: PatientPayment) -> dict:
    """JSON-ready copy of the stored columns, used in event meta."""
    return {
        'id': payment.id,
        'patient_service_id': payment.patient_service_id,
        'fecha': payment.fecha.isoformat() if payment.fecha else None,
        'monto': money_for_meta(payment.monto),
        'payment_method_id': payment.payment_method_id,
        'payment_status_id': payment.payment_status_id,
        'numero_factura': payment.numero_factura,
        'notas': payment.notas,
    }


class PaymentLedger:
    """Reads and writes `patient_payments`."""

    def __init__(
        self,
        catalog: Optional[PaymentCatalog] = None,
        groups: Optional[GroupResolver] = None,
        events: Optional[EventLedger] = None,
    ):
        self.catalog = catalog or PaymentCatalog()
        self.groups = groups or GroupResolver()
        self.events = events or EventLedger(self.groups)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def _annotated(self, patient_id: int) -> QuerySet:
        return (
            PatientPayment.objects
            .filter(patient_id=patient_id)
            .select_related('payment_method', 'payment_status')
            .annotate(
                group_id=F('patient_service__group_id'),
                tratamiento=F('patient_service__service__name'),
                total_cost=F('patient_service__total_cost'),
                total_pagado=self.groups.paid_total_subquery('patient_service_id'),
                group_start_date=self.groups.start_date_subquery('patient_service__group_id'),
                group_last_activity=self.groups.last_activity_subquery('patient_service__group_id', 'patient_id'),
            )
            .annotate(
                saldo_pendiente=ExpressionWrapper(F('total_cost') - F('total_pagado'), output_field=MONEY),
            )
        )

    def list(self, patient_id) -> List[PatientPayment]:
        """
        Payments of the patient with balances and group aggregates.

        Grouped payments come first, ordered by the group's latest payment,
        then by group key, then by payment recency.
        """
        patient_id = parse_patient_id(patient_id)
        return list(
            self._annotated(patient_id).order_by(*self.groups.group_first_ordering('group_id'))
        )

    def get(self, patient_id, payment_id) -> PatientPayment:
        patient_id = parse_patient_id(patient_id)
        try:
            return self._annotated(patient_id).get(id=parse_id(payment_id, 'payment_id'))
        except PatientPayment.DoesNotExist:
            raise NotFoundError('Pago no encontrado')

    def balance(self, patient_id, treatment_id) -> dict:
        """total_cost, total_pagado and saldo_pendiente of one treatment."""
        patient_id = parse_patient_id(patient_id)
        treatment = (
            PatientService.objects
            .filter(id=parse_id(treatment_id, 'treatment_id'), patient_id=patient_id)
            .first()
        )
        if treatment is None:
            raise NotFoundError('Tratamiento no encontrado')

        total_pagado = (
            PatientPayment.objects
            .filter(patient_service_id=treatment.id)
            .aggregate(total=Sum('monto'))['total']
        ) or ZERO
        return {
            'patient_service_id': treatment.id,
            'group_id': treatment.group_id,
            'total_cost': treatment.total_cost,
            'total_pagado': total_pagado,
            'saldo_pendiente': treatment.total_cost - total_pagado,
        }

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def create(self, patient_id, fields, created_by=None) -> PatientPayment:
        """
        Record a payment.

        Missing status/method resolve to the configured default names and,
        when those rows do not exist, to the sentinel ids.
        """
        patient_id = parse_patient_id(patient_id)
        fields = fields or {}
        defaults = settings.PAYMENTS

        fecha = parse_day(fields.get('fecha'), 'fecha')
        monto = parse_money(fields.get('monto'), 'monto', allow_zero=False)
        treatment_id = parse_optional_id(fields.get('patient_service_id'), 'patient_service_id')
        notas = clean_text(fields.get('notas'))

        if not Patient.objects.filter(id=patient_id).exists():
            raise NotFoundError('Paciente no encontrado')
        self._ensure_treatment(patient_id, treatment_id)

        status_id = self._resolve_reference(fields, 'payment_status_id', 'estado', PAYMENT_STATUSES)
        if status_id is None:
            status_id = self.catalog.id_or_fallback(
                PAYMENT_STATUSES, defaults['DEFAULT_STATUS_NAME'], defaults['FALLBACK_STATUS_ID']
            )
        method_id = self._resolve_reference(fields, 'payment_method_id', 'metodo_pago', PAYMENT_METHODS)
        if method_id is None:
            method_id = self.catalog.id_or_fallback(
                PAYMENT_METHODS, defaults['DEFAULT_METHOD_NAME'], defaults['FALLBACK_METHOD_ID']
            )

        with trace_span('payments.create', attributes={'patient_id': patient_id}):
            with transaction.atomic():
                payment = PatientPayment.objects.create(
                    patient_id=patient_id,
                    patient_service_id=treatment_id,
                    fecha=fecha,
                    monto=monto,
                    payment_method_id=method_id,
                    payment_status_id=status_id,
                    numero_factura=generate_invoice_number(),
                    notas=notas,
                )

        self._report('create', payment)
        self._record_event(
            patient_id,
            payment.patient_service_id,
            PatientEventType.PAYMENT_CREATED,
            f'Pago registrado por {format_money(payment.monto)} (factura: {payment.numero_factura})',
            {'payment_id': payment.id, **{k: v for k, v in snapshot(payment).items() if k != 'id'}},
            created_by,
        )
        return self.get(patient_id, payment.id)

    def update(self, patient_id, payment_id, fields, created_by=None) -> PatientPayment:
        """
        Partial update. Fields that are absent or null keep their stored value.

        `estado` / `metodo_pago` names are accepted when the numeric ids are
        not given; unknown names are rejected.
        """
        patient_id = parse_patient_id(patient_id)
        fields = fields or {}

        with transaction.atomic():
            payment = self._get_owned_for_update(patient_id, payment_id)
            before = snapshot(payment)

            if not is_blank(fields.get('fecha')):
                payment.fecha = parse_day(fields['fecha'], 'fecha')
            if not is_blank(fields.get('monto')):
                payment.monto = parse_money(fields['monto'], 'monto', allow_zero=False)
            if not is_blank(fields.get('patient_service_id')):
                treatment_id = parse_id(fields['patient_service_id'], 'patient_service_id')
                self._ensure_treatment(patient_id, treatment_id)
                payment.patient_service_id = treatment_id
            if fields.get('notas') is not None:
                payment.notas = clean_text(fields['notas'])

            status_id = self._resolve_reference(fields, 'payment_status_id', 'estado', PAYMENT_STATUSES)
            if status_id is not None:
                payment.payment_status_id = status_id
            method_id = self._resolve_reference(fields, 'payment_method_id', 'metodo_pago', PAYMENT_METHODS)
            if method_id is not None:
                payment.payment_method_id = method_id

            payment.save()
            after = snapshot(payment)

        self._report('update', payment)
        self._record_event(
            patient_id,
            payment.patient_service_id or before['patient_service_id'],
            PatientEventType.PAYMENT_UPDATED,
            f'Pago actualizado (factura: {payment.numero_factura})',
            {'payment_id': payment.id, 'before': before, 'after': after},
            created_by,
        )
        return self.get(patient_id, payment.id)

    def delete(self, patient_id, payment_id, created_by=None) -> None:
        patient_id = parse_patient_id(patient_id)

        with transaction.atomic():
            payment = self._get_owned_for_update(patient_id, payment_id)
            before = snapshot(payment)
            payment.delete()

        self._report('delete', payment, payment_id=before['id'])
        self._record_event(
            patient_id,
            before['patient_service_id'],
            PatientEventType.PAYMENT_DELETED,
            f'Pago eliminado por {format_money(Decimal(str(before["monto"])))} (factura: {before["numero_factura"]})',
            {'payment_id': before['id'], 'before': before},
            created_by,
        )

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _ensure_treatment(self, patient_id: int, treatment_id: Optional[int]) -> None:
        if treatment_id is None:
            return
        if not PatientService.objects.filter(id=treatment_id, patient_id=patient_id).exists():
            raise NotFoundError('Tratamiento no encontrado')

    def _get_owned_for_update(self, patient_id: int, payment_id) -> PatientPayment:
        try:
            return PatientPayment.objects.select_for_update().get(
                id=parse_id(payment_id, 'payment_id'),
                patient_id=patient_id
            )
        except PatientPayment.DoesNotExist:
            raise NotFoundError('Pago no encontrado')

    def _resolve_reference(self, fields: dict, id_field: str, name_field: str, catalog: str) -> Optional[int]:
        """
        Numeric id when given, else the catalog id for the human-readable
        name, else None. An unknown name is a validation error.
        """
        if not is_blank(fields.get(id_field)):
            return parse_id(fields[id_field], id_field)

        name = fields.get(name_field)
        if is_blank(name):
            return None

        found = self.catalog.id_by_name(catalog, name)
        if found is None:
            label = 'Estado' if catalog == PAYMENT_STATUSES else 'Método'
            raise DomainValidationError(f'{label} desconocido: {name}')
        return found

    def _report(self, action: str, payment: PatientPayment, payment_id=None) -> None:
        metrics.payment_operations_total.labels(action=action, result='success').inc()
        log_domain_event(
            f'payment_{action}',
            entity_type='PatientPayment',
            entity_id=str(payment_id or payment.id),
            entity_ids={
                'patient_id': str(payment.patient_id),
                'patient_service_id': str(payment.patient_service_id),
            },
            numero_factura=payment.numero_factura,
        )

    def _record_event(self, patient_id, treatment_id, event_type, message, meta, created_by) -> None:
        """
        Best-effort ledger entry. Unassigned payments have no treatment or
        group to hang an event on, so nothing is written for them.
        """
        if treatment_id is None:
            logger.info(
                'Payment event skipped for unassigned payment',
                extra={'event': 'payment_event_skipped', 'event_type': event_type, 'patient_id': patient_id}
            )
            return

        self.events.append_best_effort(
            patient_id,
            treatment_id=treatment_id,
            group_id=self.groups.resolve_group_id(None, treatment_id, patient_id),
            event_type=event_type,
            message=message,
            meta=meta,
            created_by=created_by,
        )
