"""
URL routing for sales API endpoints.
"""
from django.urls import path
from . import views

app_name = 'sales'

urlpatterns = [
    path('orders/', views.OrderCreateView.as_view(), name='order-create'),
    path('orders/<str:invoice_number>/', views.CustomerOrderCancelView.as_view(), name='order-cancel'),
    path('pending-orders/', views.PendingOrderListView.as_view(), name='pending-order-list'),
    path('pending-orders/<str:invoice_number>/', views.PendingOrderDetailView.as_view(), name='pending-order-detail'),
    path(
        'pending-orders/<str:invoice_number>/assign-serials/',
        views.AssignSerialsView.as_view(),
        name='assign-serials'
    ),
]
