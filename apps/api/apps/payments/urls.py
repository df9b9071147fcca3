"""
Payments URLs, mounted next to the clinical routes under /api/v1/clinical/.
"""
from django.urls import path

from .views import PaymentViewSet, TreatmentBalanceView

payment_list = PaymentViewSet.as_view({'get': 'list', 'post': 'create'})
payment_detail = PaymentViewSet.as_view({
    'get': 'retrieve',
    'put': 'update',
    'patch': 'partial_update',
    'delete': 'destroy',
})

urlpatterns = [
    path('patients/<int:patient_id>/payments/', payment_list, name='patient-payments'),
    path('patients/<int:patient_id>/payments/<int:pk>/', payment_detail, name='patient-payment-detail'),
    path(
        'patients/<int:patient_id>/treatments/<int:treatment_id>/balance/',
        TreatmentBalanceView.as_view(),
        name='patient-treatment-balance'
    ),
]
