"""
Payments models: payment catalogs and patient payments.

Balances are never stored here. total_pagado and saldo_pendiente are
computed from the rows of `patient_payments` on every read.
"""
from decimal import Decimal

from django.core.validators import MinValueValidator
from django.db import models


# ============================================================================
# Catalogs
# ============================================================================

class PaymentMethod(models.Model):
    """efectivo, tarjeta, transferencia..."""
    name = models.CharField(max_length=50, unique=True)
    is_active = models.BooleanField(default=True)

    class Meta:
        db_table = 'payment_methods'
        verbose_name = 'Payment Method'
        verbose_name_plural = 'Payment Methods'
        ordering = ['name']

    def __str__(self):
        return self.name


class PaymentStatus(models.Model):
    """finalizado, pendiente, cancelado..."""
    name = models.CharField(max_length=50, unique=True)

    class Meta:
        db_table = 'payment_statuses'
        verbose_name = 'Payment Status'
        verbose_name_plural = 'Payment Statuses'
        ordering = ['name']

    def __str__(self):
        return self.name


# ============================================================================
# Payments
# ============================================================================

class PatientPayment(models.Model):
    """
    Money received from a patient, optionally against one treatment.

    numero_factura is generated once at creation. The catalog references
    carry no database constraint: when a default catalog row is missing
    the payment is stored with the configured sentinel id.
    """
    patient = models.ForeignKey(
        'clinical.Patient',
        on_delete=models.CASCADE,
        related_name='payments'
    )
    patient_service = models.ForeignKey(
        'clinical.PatientService',
        on_delete=models.SET_NULL,
        blank=True,
        null=True,
        related_name='payments',
        help_text='Treatment the payment is applied to (null while unassigned)'
    )
    fecha = models.DateField()
    monto = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        validators=[MinValueValidator(Decimal('0.01'))]
    )
    payment_method = models.ForeignKey(
        PaymentMethod,
        on_delete=models.DO_NOTHING,
        db_constraint=False,
        blank=True,
        null=True,
        related_name='payments'
    )
    payment_status = models.ForeignKey(
        PaymentStatus,
        on_delete=models.DO_NOTHING,
        db_constraint=False,
        blank=True,
        null=True,
        related_name='payments'
    )
    numero_factura = models.CharField(max_length=40, db_index=True)
    notas = models.TextField(blank=True, null=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'patient_payments'
        verbose_name = 'Patient Payment'
        verbose_name_plural = 'Patient Payments'
        indexes = [
            models.Index(fields=['patient', '-created_at'], name='idx_payment_patient_created'),
        ]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(monto__gt=0),
                name='chk_payment_monto_positive'
            ),
        ]

    def __str__(self):
        return f"{self.numero_factura} ({self.monto})"
