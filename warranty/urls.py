"""
URL routing for warranty API endpoints.
"""
from django.urls import path
from . import views

app_name = 'warranty'

urlpatterns = [
    path('battery-status/<str:serial_number>/', views.BatteryStatusView.as_view(), name='battery-status'),
    path('slabs/', views.WarrantySlabListView.as_view(), name='slab-list'),
    path('replacements/', views.ReplacementListCreateView.as_view(), name='replacement-list'),
    path('expiring-guarantees/', views.ExpiringGuaranteeView.as_view(), name='expiring-guarantees'),
]
