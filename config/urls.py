"""
URL configuration for the battery back-office.
"""
from django.contrib import admin
from django.urls import path, include
from django.http import JsonResponse


def health_check(request):
    """Health check endpoint for container orchestration."""
    return JsonResponse({'status': 'healthy', 'service': 'battery-backoffice'})


urlpatterns = [
    path('admin/', admin.site.urls),
    path('health/', health_check, name='health-check'),
    path('api/', include('inventory.urls')),
    path('api/sales/', include('sales.urls')),
    path('api/warranty/', include('warranty.urls')),
    path('api/notifications/', include('notifications.urls')),
]
