"""
Warranty Models - discount slabs and replacement records.

A ReplacementRecord is the only marker that a sold unit has been swapped.
Records are append-only: once written they are never updated or deleted.
"""
from decimal import Decimal

from django.conf import settings
from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models
from django.db.models import Q

from inventory.models import Product
from sales.models import SaleLine
from .rules import ReplacementType


class WarrantySlab(models.Model):
    """
    Discount bracket keyed by months past guarantee.

    max_months = None means the slab has no upper bound.
    """
    slab_name = models.CharField(max_length=100)
    min_months = models.PositiveIntegerField(default=0)
    max_months = models.PositiveIntegerField(null=True, blank=True)
    discount_percentage = models.DecimalField(
        max_digits=5,
        decimal_places=2,
        validators=[MinValueValidator(Decimal('0')), MaxValueValidator(Decimal('100'))]
    )
    description = models.TextField(blank=True, default='')
    is_active = models.BooleanField(default=True, db_index=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = 'Warranty Slab'
        verbose_name_plural = 'Warranty Slabs'
        ordering = ['min_months', 'id']
        constraints = [
            models.CheckConstraint(
                condition=Q(max_months__isnull=True) | Q(max_months__gte=models.F('min_months')),
                name='warranty_slab_range_ordered'
            ),
            models.CheckConstraint(
                condition=Q(discount_percentage__gte=0) & Q(discount_percentage__lte=100),
                name='warranty_slab_discount_range'
            ),
        ]

    def __str__(self):
        upper = self.max_months if self.max_months is not None else '+'
        return f"{self.slab_name} ({self.min_months}-{upper} months, {self.discount_percentage}%)"

    def covers(self, months_past_guarantee: int) -> bool:
        return months_past_guarantee >= self.min_months and (
            self.max_months is None or months_past_guarantee <= self.max_months
        )


class ReplacementRecord(models.Model):
    """
    Immutable audit entry for one guarantee or warranty swap.

    The unique constraint on original_serial_number makes a second
    replacement of the same unit impossible at the database level.
    """
    Type = ReplacementType

    customer = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='battery_replacements'
    )
    original_sale_line = models.ForeignKey(
        SaleLine,
        on_delete=models.PROTECT,
        related_name='replacements'
    )
    original_serial_number = models.CharField(max_length=100, unique=True)
    original_purchase_date = models.DateField()
    original_invoice_number = models.CharField(max_length=32)
    replacement_type = models.CharField(max_length=20, choices=ReplacementType.choices)
    replaced_at = models.DateTimeField(auto_now_add=True, db_index=True)
    new_product = models.ForeignKey(
        Product,
        on_delete=models.PROTECT,
        related_name='replacements'
    )
    new_serial_number = models.CharField(max_length=100)
    new_sale_line = models.OneToOneField(
        SaleLine,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name='replacement_for'
    )
    new_invoice_number = models.CharField(max_length=32, blank=True, default='')
    warranty_slab = models.ForeignKey(
        WarrantySlab,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name='replacements'
    )
    discount_percentage = models.DecimalField(max_digits=5, decimal_places=2, default=Decimal('0.00'))
    notes = models.TextField(blank=True, default='')
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='+'
    )

    class Meta:
        verbose_name = 'Replacement Record'
        verbose_name_plural = 'Replacement Records'
        ordering = ['-replaced_at', '-id']

    def __str__(self):
        return f"{self.original_serial_number} -> {self.new_serial_number} ({self.replacement_type})"

    def save(self, *args, **kwargs):
        if self.pk is not None and not self._state.adding:
            raise ValueError("Replacement records cannot be modified")
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ValueError("Replacement records cannot be deleted")
