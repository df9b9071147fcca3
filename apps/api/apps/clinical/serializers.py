"""
Clinical serializers for treatments, treatment packages and the service catalog.

Input is validated by the service layer (apps.clinical.services); these
serializers shape responses only.
"""
from rest_framework import serializers

from apps.clinical.models import PatientService, PatientServiceGroup, Service


class ServiceSerializer(serializers.ModelSerializer):
    """Catalog entry with its category, for treatment pickers."""
    category_id = serializers.IntegerField(read_only=True)
    category_name = serializers.CharField(source='category.name', read_only=True, default=None)
    category_sort_order = serializers.IntegerField(source='category.sort_order', read_only=True, default=None)

    class Meta:
        model = Service
        fields = ['id', 'name', 'category_id', 'category_name', 'category_sort_order', 'is_active']
        read_only_fields = fields


class TreatmentSerializer(serializers.ModelSerializer):
    """
    Treatment row as shown in the patient file.

    `group_start_date` and `package_title` are query annotations and are
    null when the instance was loaded without them.
    """
    patient_id = serializers.IntegerField(read_only=True)
    service_id = serializers.IntegerField(read_only=True)
    service_name = serializers.CharField(source='service.name', read_only=True)
    category_id = serializers.IntegerField(source='service.category_id', read_only=True, default=None)
    category_name = serializers.SerializerMethodField()
    category_sort_order = serializers.SerializerMethodField()
    group_start_date = serializers.SerializerMethodField()
    package_title = serializers.SerializerMethodField()
    created_by = serializers.UUIDField(source='created_by_id', read_only=True)

    class Meta:
        model = PatientService
        fields = [
            'id',
            'patient_id',
            'group_id',
            'service_id',
            'service_name',
            'category_id',
            'category_name',
            'category_sort_order',
            'service_date',
            'status',
            'total_cost',
            'notes',
            'group_start_date',
            'package_title',
            'created_by',
            'created_at',
            'updated_at',
        ]
        read_only_fields = fields

    def get_category_name(self, obj):
        category = obj.service.category
        return category.name if category else None

    def get_category_sort_order(self, obj):
        category = obj.service.category
        return category.sort_order if category else None

    def get_group_start_date(self, obj):
        value = getattr(obj, 'group_start_date', None)
        return value.isoformat() if value else None

    def get_package_title(self, obj):
        return getattr(obj, 'package_title', None)


class TreatmentPackageSerializer(serializers.ModelSerializer):
    patient_id = serializers.IntegerField(read_only=True)

    class Meta:
        model = PatientServiceGroup
        fields = ['id', 'patient_id', 'title', 'start_date', 'status', 'notes', 'created_at', 'updated_at']
        read_only_fields = fields


class TreatmentGroupSummarySerializer(serializers.Serializer):
    """Group aggregates recomputed on request."""
    group_id = serializers.IntegerField()
    title = serializers.CharField(allow_null=True)
    status = serializers.CharField(allow_null=True)
    notes = serializers.CharField(allow_null=True)
    start_date = serializers.DateField()
    last_activity = serializers.DateTimeField(allow_null=True)
    total_cost = serializers.DecimalField(max_digits=14, decimal_places=2)
    total_pagado = serializers.DecimalField(max_digits=14, decimal_places=2)
    saldo_pendiente = serializers.DecimalField(max_digits=14, decimal_places=2)
    members = TreatmentSerializer(many=True)
