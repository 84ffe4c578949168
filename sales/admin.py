"""
Django Admin configuration for sales models.
"""
from django.contrib import admin
from .models import InvoiceSequence, SaleLine


@admin.register(SaleLine)
class SaleLineAdmin(admin.ModelAdmin):
    list_display = [
        'id', 'invoice_number', 'customer_name', 'sku', 'allocation_state',
        'serial_number', 'mrp', 'final_amount', 'purchase_date'
    ]
    list_filter = ['allocation_state', 'sales_type', 'purchase_date']
    search_fields = ['invoice_number', 'serial_number', 'customer_name', 'customer_phone', 'sku']
    ordering = ['-created_at']
    raw_id_fields = ['customer', 'product', 'created_by']
    # Allocation and pricing change only through the assignment service
    readonly_fields = [
        'allocation_state', 'serial_number', 'warranty', 'mrp',
        'discount_amount', 'tax', 'final_amount', 'created_at', 'updated_at'
    ]


@admin.register(InvoiceSequence)
class InvoiceSequenceAdmin(admin.ModelAdmin):
    list_display = ['day', 'last_number']
    ordering = ['-day']
