"""
Payments serializers. Response shaping only; input is validated by
apps.payments.services.PaymentLedger.
"""
from rest_framework import serializers

from apps.payments.models import PatientPayment, PaymentMethod, PaymentStatus

MONEY = {'max_digits': 14, 'decimal_places': 2}


class PaymentMethodSerializer(serializers.ModelSerializer):
    class Meta:
        model = PaymentMethod
        fields = ['id', 'name', 'is_active']
        read_only_fields = fields


class PaymentStatusSerializer(serializers.ModelSerializer):
    class Meta:
        model = PaymentStatus
        fields = ['id', 'name']
        read_only_fields = fields


class PaymentSerializer(serializers.ModelSerializer):
    """
    Payment with the balance of the treatment it is applied to.

    `tratamiento`, `total_cost`, `total_pagado`, `saldo_pendiente` and the
    group fields come from PaymentLedger annotations and are null for
    unassigned payments.
    """
    patient_id = serializers.IntegerField(read_only=True)
    patient_service_id = serializers.IntegerField(read_only=True, allow_null=True)
    tratamiento = serializers.CharField(read_only=True, allow_null=True, default=None)
    group_id = serializers.IntegerField(read_only=True, allow_null=True, default=None)
    total_cost = serializers.DecimalField(read_only=True, allow_null=True, default=None, **MONEY)
    total_pagado = serializers.SerializerMethodField()
    saldo_pendiente = serializers.DecimalField(read_only=True, allow_null=True, default=None, **MONEY)
    payment_method_id = serializers.IntegerField(read_only=True, allow_null=True)
    metodo_pago = serializers.SerializerMethodField()
    payment_status_id = serializers.IntegerField(read_only=True, allow_null=True)
    estado = serializers.SerializerMethodField()
    group_start_date = serializers.DateField(read_only=True, allow_null=True, default=None)
    group_last_activity = serializers.DateTimeField(read_only=True, allow_null=True, default=None)

    class Meta:
        model = PatientPayment
        fields = [
            'id',
            'patient_id',
            'patient_service_id',
            'tratamiento',
            'group_id',
            'fecha',
            'monto',
            'total_cost',
            'total_pagado',
            'saldo_pendiente',
            'payment_method_id',
            'metodo_pago',
            'payment_status_id',
            'estado',
            'numero_factura',
            'notas',
            'group_start_date',
            'group_last_activity',
            'created_at',
            'updated_at',
        ]
        read_only_fields = fields

    def get_total_pagado(self, obj):
        # Only meaningful for payments applied to a treatment.
        if obj.patient_service_id is None:
            return None
        value = getattr(obj, 'total_pagado', None)
        return None if value is None else f'{value:.2f}'

    def get_metodo_pago(self, obj):
        # Sentinel ids may point at rows that do not exist.
        method = obj.payment_method if obj.payment_method_id else None
        return method.name if method else None

    def get_estado(self, obj):
        status = obj.payment_status if obj.payment_status_id else None
        return status.name if status else None


class TreatmentBalanceSerializer(serializers.Serializer):
    patient_service_id = serializers.IntegerField()
    group_id = serializers.IntegerField(allow_null=True)
    total_cost = serializers.DecimalField(**MONEY)
    total_pagado = serializers.DecimalField(**MONEY)
    saldo_pendiente = serializers.DecimalField(**MONEY)
