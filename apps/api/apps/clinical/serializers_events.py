"""
Patient event serializers.
"""
from rest_framework import serializers

from apps.clinical.models import PatientTreatmentEvent


class PatientEventSerializer(serializers.ModelSerializer):
    patient_id = serializers.IntegerField(read_only=True)
    patient_service_id = serializers.IntegerField(read_only=True, allow_null=True)
    service_name = serializers.SerializerMethodField()
    meta = serializers.SerializerMethodField()
    editable = serializers.BooleanField(source='is_mutable', read_only=True)
    created_by = serializers.UUIDField(source='created_by_id', read_only=True)

    class Meta:
        model = PatientTreatmentEvent
        fields = [
            'id',
            'patient_id',
            'patient_service_id',
            'patient_service_group_id',
            'service_name',
            'event_type',
            'message',
            'meta',
            'editable',
            'created_by',
            'created_at',
        ]
        read_only_fields = fields

    def get_meta(self, obj):
        return obj.decoded_meta

    def get_service_name(self, obj):
        if hasattr(obj, 'service_name'):
            return obj.service_name
        if obj.patient_service_id and obj.patient_service:
            return obj.patient_service.service.name
        return None


class PatientEventPageSerializer(serializers.Serializer):
    """`{items, total, limit, offset}` envelope returned by event listing."""
    items = PatientEventSerializer(many=True)
    total = serializers.IntegerField()
    limit = serializers.IntegerField()
    offset = serializers.IntegerField()
