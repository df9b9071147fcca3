"""
Read-only catalogs under /api/v1/catalog/.
"""
from django.urls import path

from apps.clinical.views import ServiceCatalogView

from .views import PaymentMethodListView, PaymentStatusListView

urlpatterns = [
    path('services/', ServiceCatalogView.as_view(), name='catalog-services'),
    path('payment-methods/', PaymentMethodListView.as_view(), name='catalog-payment-methods'),
    path('payment-statuses/', PaymentStatusListView.as_view(), name='catalog-payment-statuses'),
]
