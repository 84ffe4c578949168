"""
Django Admin configuration for inventory models.
"""
from django.contrib import admin
from .models import Category, Product, StockUnit


@admin.register(Category)
class CategoryAdmin(admin.ModelAdmin):
    list_display = ['id', 'name', 'slug', 'is_serialized', 'product_count']
    search_fields = ['name']
    prepopulated_fields = {'slug': ('name',)}
    ordering = ['name']

    def product_count(self, obj):
        return obj.products.count()
    product_count.short_description = 'Products'


@admin.register(Product)
class ProductAdmin(admin.ModelAdmin):
    list_display = ['id', 'sku', 'name', 'category', 'warranty', 'mrp', 'quantity', 'is_active']
    list_filter = ['category', 'is_active']
    search_fields = ['sku', 'name']
    ordering = ['name']
    # Stock changes only through purchase intake
    readonly_fields = ['quantity', 'created_at', 'updated_at']


@admin.register(StockUnit)
class StockUnitAdmin(admin.ModelAdmin):
    list_display = ['id', 'serial_number', 'product', 'status', 'received_on', 'consumed_at']
    list_filter = ['status', 'product__category']
    search_fields = ['serial_number', 'product__sku']
    ordering = ['-created_at']
    raw_id_fields = ['product']
    readonly_fields = ['status', 'consumed_at', 'created_at']
