"""
Treatment group resolution and group aggregates.

A group key is the id of the first treatment created in a batch. Nothing
about a group is stored besides that key (and, for explicit packages, the
PatientServiceGroup row with the same id): start date and last activity
are computed on every read.
"""
from decimal import Decimal
from typing import Optional

from django.db.models import (
    Case,
    DecimalField,
    F,
    IntegerField,
    Max,
    Min,
    OuterRef,
    Subquery,
    Sum,
    Value,
    When,
)
from django.db.models.functions import Coalesce

from apps.clinical.models import PatientService, PatientServiceGroup
from apps.core.exceptions import NotFoundError
from apps.core.parsing import is_blank, parse_id
from apps.payments.models import PatientPayment

ZERO = Decimal('0.00')


class GroupResolver:
    """
    Derives group keys for events and payments, and builds the query
    expressions list views use to show and order groups.
    """

    def resolve_group_id(self, explicit_group_id=None, treatment_id=None, patient_id=None) -> Optional[int]:
        """
        Group key for an event or payment.

        An explicit key wins (coerced to int). Otherwise the stored group_id
        of `treatment_id` is used, scoped to `patient_id` when given. Returns
        None when neither yields a key.
        """
        if not is_blank(explicit_group_id):
            return parse_id(explicit_group_id, 'patient_service_group_id')

        if is_blank(treatment_id):
            return None

        treatments = PatientService.objects.filter(id=treatment_id)
        if patient_id is not None:
            treatments = treatments.filter(patient_id=patient_id)
        return treatments.values_list('group_id', flat=True).first()

    # ------------------------------------------------------------------
    # Aggregates for a single group
    # ------------------------------------------------------------------

    def start_date(self, group_id):
        """Earliest service_date among the group's members."""
        return (
            PatientService.objects
            .filter(group_id=group_id)
            .aggregate(start=Min('service_date'))['start']
        )

    def last_activity(self, group_id, patient_id):
        """Most recent payment recorded against any member of the group."""
        return (
            PatientPayment.objects
            .filter(patient_id=patient_id, patient_service__group_id=group_id)
            .aggregate(last=Max('created_at'))['last']
        )

    def summary(self, patient_id: int, group_id: int) -> dict:
        members = list(
            PatientService.objects
            .filter(patient_id=patient_id, group_id=group_id)
            .select_related('service')
            .order_by('service_date', 'id')
        )
        if not members:
            raise NotFoundError('Grupo no encontrado')

        total_cost = sum((m.total_cost for m in members), ZERO)
        total_paid = (
            PatientPayment.objects
            .filter(patient_id=patient_id, patient_service__group_id=group_id)
            .aggregate(total=Sum('monto'))['total']
        ) or ZERO
        package = PatientServiceGroup.objects.filter(id=group_id, patient_id=patient_id).first()

        return {
            'group_id': group_id,
            'title': package.title if package else None,
            'status': package.status if package else None,
            'notes': package.notes if package else None,
            'start_date': self.start_date(group_id),
            'last_activity': self.last_activity(group_id, patient_id),
            'total_cost': total_cost,
            'total_pagado': total_paid,
            'saldo_pendiente': total_cost - total_paid,
            'members': members,
        }

    # ------------------------------------------------------------------
    # Query expressions for list views
    # ------------------------------------------------------------------

    def start_date_subquery(self, group_ref: str = 'group_id') -> Subquery:
        members = (
            PatientService.objects
            .filter(group_id=OuterRef(group_ref))
            .order_by()
            .values('group_id')
            .annotate(start=Min('service_date'))
            .values('start')[:1]
        )
        return Subquery(members)

    def last_activity_subquery(self, group_ref: str = 'group_id', patient_ref: str = 'patient_id') -> Subquery:
        payments = (
            PatientPayment.objects
            .filter(
                patient_id=OuterRef(patient_ref),
                patient_service__group_id=OuterRef(group_ref),
            )
            .order_by()
            .values('patient_service__group_id')
            .annotate(last=Max('created_at'))
            .values('last')[:1]
        )
        return Subquery(payments)

    def package_title_subquery(self, group_ref: str = 'group_id') -> Subquery:
        return Subquery(
            PatientServiceGroup.objects.filter(id=OuterRef(group_ref)).values('title')[:1]
        )

    def paid_total_subquery(self, treatment_ref: str = 'id') -> Coalesce:
        """SUM(monto) of the payments of one treatment, 0 when none."""
        payments = (
            PatientPayment.objects
            .filter(patient_service_id=OuterRef(treatment_ref))
            .order_by()
            .values('patient_service_id')
            .annotate(total=Sum('monto'))
            .values('total')[:1]
        )
        money = DecimalField(max_digits=14, decimal_places=2)
        return Coalesce(Subquery(payments, output_field=money), Value(ZERO), output_field=money)

    def group_first_ordering(self, group_field: str, activity_field: str = 'group_last_activity'):
        """
        Order records in the UI contract: grouped records first, then most
        recent group activity, then highest group key, then newest record.
        """
        return [
            Case(
                When(**{f'{group_field}__isnull': True}, then=Value(1)),
                default=Value(0),
                output_field=IntegerField(),
            ).asc(),
            F(activity_field).desc(nulls_last=True),
            F(group_field).desc(nulls_last=True),
            F('created_at').desc(),
            F('id').desc(),
        ]
