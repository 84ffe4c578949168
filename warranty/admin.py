"""
Django Admin configuration for warranty models.
"""
from django.contrib import admin
from .models import ReplacementRecord, WarrantySlab


@admin.register(WarrantySlab)
class WarrantySlabAdmin(admin.ModelAdmin):
    list_display = ['slab_name', 'min_months', 'max_months', 'discount_percentage', 'is_active']
    list_filter = ['is_active']
    search_fields = ['slab_name']
    ordering = ['min_months']


@admin.register(ReplacementRecord)
class ReplacementRecordAdmin(admin.ModelAdmin):
    list_display = [
        'original_serial_number', 'replacement_type', 'new_serial_number',
        'new_invoice_number', 'discount_percentage', 'replaced_at'
    ]
    list_filter = ['replacement_type', 'replaced_at']
    search_fields = ['original_serial_number', 'new_serial_number', 'original_invoice_number']
    ordering = ['-replaced_at']

    # Append-only audit trail
    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False
