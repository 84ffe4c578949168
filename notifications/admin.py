"""
Django Admin configuration for notifications.
"""
from django.contrib import admin
from .models import Notification


@admin.register(Notification)
class NotificationAdmin(admin.ModelAdmin):
    list_display = ['id', 'recipient', 'title', 'level', 'delivery_status', 'is_read', 'created_at']
    list_filter = ['level', 'delivery_status', 'is_read']
    search_fields = ['title', 'message', 'invoice_number', 'recipient__username']
    ordering = ['-created_at']
    raw_id_fields = ['recipient']
    readonly_fields = ['delivery_status', 'delivery_error', 'delivered_at', 'created_at']
