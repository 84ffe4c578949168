"""
Inventory Models - Catalog and serialized stock.

Models:
    - Category: Product grouping; decides whether units carry serial numbers
    - Product: Battery/UPS catalog entry with MRP and warranty code
    - StockUnit: One physical serialized item (the stock ledger)
"""
from decimal import Decimal

from django.core.validators import MinValueValidator
from django.db import models


class Category(models.Model):
    """
    Product category, e.g. car-truck-tractor, bike, ups-inverter, water.

    Products in a non-serialized category are sold without a serial number.
    """
    name = models.CharField(
        max_length=100,
        unique=True,
        db_index=True,
        help_text="Unique category name"
    )
    slug = models.SlugField(max_length=100, unique=True)
    is_serialized = models.BooleanField(
        default=True,
        help_text="Whether units of this category carry a serial number"
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = 'Category'
        verbose_name_plural = 'Categories'
        ordering = ['name']

    def __str__(self):
        return self.name


class Product(models.Model):
    """
    Catalog entry for a battery, inverter or consumable.

    ``quantity`` caches the number of available stock units. It is only
    written by inventory.ledger, inside the same transaction that creates or
    consumes the units.
    """
    sku = models.CharField(
        max_length=64,
        unique=True,
        help_text="Manufacturer SKU"
    )
    name = models.CharField(
        max_length=200,
        db_index=True,
        help_text="Product name for display and search"
    )
    category = models.ForeignKey(
        Category,
        on_delete=models.PROTECT,
        related_name='products',
        help_text="Product category"
    )
    warranty = models.CharField(
        max_length=50,
        blank=True,
        default='',
        help_text='Warranty code, e.g. "24F+24P" (F = free guarantee, P = pro-rata warranty)'
    )
    guarantee_period_months = models.PositiveIntegerField(
        default=0,
        help_text="Legacy guarantee length, used when the warranty code has no guarantee part"
    )
    mrp = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        validators=[MinValueValidator(Decimal('0.00'))],
        help_text="Maximum retail price, GST inclusive"
    )
    quantity = models.PositiveIntegerField(
        default=0,
        help_text="Available stock units (maintained by the stock ledger)"
    )
    is_active = models.BooleanField(
        default=True,
        db_index=True,
        help_text="Whether product is available for ordering"
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = 'Product'
        verbose_name_plural = 'Products'
        ordering = ['name']
        indexes = [
            models.Index(fields=['name', 'is_active'], name='product_name_active_idx'),
            models.Index(fields=['category', 'is_active'], name='product_category_active_idx'),
        ]

    def __str__(self):
        return f"{self.name} [{self.sku}]"

    @property
    def is_serialized(self) -> bool:
        return self.category.is_serialized


class StockUnit(models.Model):
    """
    A single serialized physical item.

    Status moves from AVAILABLE to CONSUMED exactly once, when the unit is
    bound to a sale line or issued as a replacement.
    """

    class Status(models.TextChoices):
        AVAILABLE = 'available', 'Available'
        CONSUMED = 'consumed', 'Consumed'

    product = models.ForeignKey(
        Product,
        on_delete=models.PROTECT,
        related_name='stock_units',
        help_text="Product this unit belongs to"
    )
    serial_number = models.CharField(
        max_length=100,
        help_text="Manufacturer serial number"
    )
    status = models.CharField(
        max_length=20,
        choices=Status.choices,
        default=Status.AVAILABLE,
        db_index=True
    )
    received_on = models.DateField(
        null=True,
        blank=True,
        help_text="Purchase intake date"
    )
    consumed_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name = 'Stock Unit'
        verbose_name_plural = 'Stock Units'
        ordering = ['created_at', 'id']
        constraints = [
            models.UniqueConstraint(
                fields=['product', 'serial_number'],
                name='unique_product_serial'
            )
        ]
        indexes = [
            models.Index(fields=['product', 'status'], name='stockunit_product_status_idx'),
            models.Index(fields=['serial_number'], name='stockunit_serial_idx'),
        ]

    def __str__(self):
        return f"{self.serial_number} ({self.product.sku}, {self.status})"

    @property
    def is_available(self) -> bool:
        return self.status == self.Status.AVAILABLE
