from django.contrib import admin

from .models import PatientPayment, PaymentMethod, PaymentStatus


@admin.register(PaymentMethod)
class PaymentMethodAdmin(admin.ModelAdmin):
    list_display = ['id', 'name', 'is_active']
    list_filter = ['is_active']


@admin.register(PaymentStatus)
class PaymentStatusAdmin(admin.ModelAdmin):
    list_display = ['id', 'name']


@admin.register(PatientPayment)
class PatientPaymentAdmin(admin.ModelAdmin):
    list_display = ['numero_factura', 'patient', 'patient_service', 'fecha', 'monto', 'created_at']
    list_filter = ['fecha']
    search_fields = ['numero_factura', 'patient__first_name', 'patient__last_name']
    readonly_fields = ['id', 'numero_factura', 'created_at', 'updated_at']
    date_hierarchy = 'fecha'
