from django.contrib import admin

from .models import (
    Patient,
    PatientService,
    PatientServiceGroup,
    PatientTreatmentEvent,
    Service,
    ServiceCategory,
)


@admin.register(Patient)
class PatientAdmin(admin.ModelAdmin):
    list_display = ['id', 'first_name', 'last_name', 'email', 'phone', 'created_at']
    search_fields = ['first_name', 'last_name', 'email', 'phone']
    readonly_fields = ['id', 'created_at', 'updated_at']


@admin.register(ServiceCategory)
class ServiceCategoryAdmin(admin.ModelAdmin):
    list_display = ['name', 'sort_order']
    ordering = ['sort_order', 'name']


@admin.register(Service)
class ServiceAdmin(admin.ModelAdmin):
    list_display = ['name', 'category', 'is_active']
    list_filter = ['is_active', 'category']
    search_fields = ['name']


@admin.register(PatientServiceGroup)
class PatientServiceGroupAdmin(admin.ModelAdmin):
    list_display = ['id', 'title', 'patient', 'start_date', 'status', 'created_at']
    list_filter = ['status']
    search_fields = ['title', 'patient__first_name', 'patient__last_name']
    readonly_fields = ['id', 'created_at', 'updated_at']


@admin.register(PatientService)
class PatientServiceAdmin(admin.ModelAdmin):
    list_display = ['id', 'patient', 'service', 'group_id', 'service_date', 'status', 'total_cost']
    list_filter = ['status', 'service_date']
    search_fields = ['patient__first_name', 'patient__last_name', 'service__name']
    readonly_fields = ['id', 'group_id', 'created_by', 'created_at', 'updated_at']
    date_hierarchy = 'service_date'


@admin.register(PatientTreatmentEvent)
class PatientTreatmentEventAdmin(admin.ModelAdmin):
    """Timeline entries are read-only here; notes are edited through the API."""
    list_display = ['id', 'patient', 'event_type', 'patient_service', 'patient_service_group_id', 'created_at']
    list_filter = ['event_type']
    search_fields = ['message']
    readonly_fields = [
        'id', 'patient', 'patient_service', 'patient_service_group_id',
        'event_type', 'message', 'meta', 'created_by', 'created_at',
    ]

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False
