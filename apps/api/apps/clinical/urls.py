"""
Clinical URLs - treatments, treatment packages/groups and the patient timeline.

Every route is scoped to one patient.
"""
from django.urls import path

from .views import TreatmentGroupSummaryView, TreatmentPackageView, TreatmentViewSet
from .views_events import PatientEventViewSet

treatment_list = TreatmentViewSet.as_view({'get': 'list', 'post': 'create'})
treatment_detail = TreatmentViewSet.as_view({'patch': 'partial_update', 'delete': 'destroy'})
treatment_status = TreatmentViewSet.as_view({'put': 'set_status'})
treatment_cost = TreatmentViewSet.as_view({'put': 'set_cost'})

event_list = PatientEventViewSet.as_view({'get': 'list', 'post': 'create'})
event_detail = PatientEventViewSet.as_view({'put': 'update', 'delete': 'destroy'})

urlpatterns = [
    # Treatments
    path('patients/<int:patient_id>/treatments/', treatment_list, name='patient-treatments'),
    path('patients/<int:patient_id>/treatments/<int:pk>/', treatment_detail, name='patient-treatment-detail'),
    path('patients/<int:patient_id>/treatments/<int:pk>/status/', treatment_status, name='patient-treatment-status'),
    path('patients/<int:patient_id>/treatments/<int:pk>/cost/', treatment_cost, name='patient-treatment-cost'),

    # Packages and group summaries
    path('patients/<int:patient_id>/treatment-packages/', TreatmentPackageView.as_view(), name='patient-treatment-packages'),
    path('patients/<int:patient_id>/treatment-groups/<int:group_id>/', TreatmentGroupSummaryView.as_view(), name='patient-treatment-group'),

    # Timeline
    path('patients/<int:patient_id>/events/', event_list, name='patient-events'),
    path('patients/<int:patient_id>/events/<int:pk>/', event_detail, name='patient-event-detail'),
]
