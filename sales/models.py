"""
Sales Models - Sale lines and invoice numbering.

A sale line is one sold unit. An order is the set of lines sharing an
invoice number; it is complete once none of its lines is unallocated.

Allocation Flow:
    UNALLOCATED -> BOUND (operator assigns a serial number, exactly once)
    NOT_APPLICABLE (non-serialized products, terminal from creation)
"""
from decimal import Decimal

from django.conf import settings
from django.db import models
from django.db.models import Q
from django.utils import timezone

from inventory.models import Product


class SaleLine(models.Model):
    """
    One sold unit with the customer and product details snapshotted at sale
    time. The warranty code is copied from the product and never changes.
    """

    class SalesType(models.TextChoices):
        RETAIL = 'retail', 'Retail'
        WHOLESALE = 'wholesale', 'Wholesale'

    class AllocationState(models.TextChoices):
        UNALLOCATED = 'unallocated', 'Unallocated'
        NOT_APPLICABLE = 'not_applicable', 'Not applicable'
        BOUND = 'bound', 'Bound'

    invoice_number = models.CharField(
        max_length=32,
        db_index=True,
        help_text="Invoice shared by all lines of one order"
    )
    customer = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='sale_lines',
        help_text="Customer account, when known"
    )
    customer_name = models.CharField(max_length=200)
    customer_phone = models.CharField(max_length=20)
    sales_type = models.CharField(
        max_length=20,
        choices=SalesType.choices,
        default=SalesType.RETAIL
    )
    product = models.ForeignKey(
        Product,
        on_delete=models.PROTECT,
        related_name='sale_lines'
    )
    sku = models.CharField(max_length=64)
    product_name = models.CharField(max_length=200)
    warranty = models.CharField(
        max_length=50,
        blank=True,
        default='',
        help_text="Warranty code at time of sale"
    )
    allocation_state = models.CharField(
        max_length=20,
        choices=AllocationState.choices,
        default=AllocationState.UNALLOCATED,
        db_index=True
    )
    serial_number = models.CharField(
        max_length=100,
        null=True,
        blank=True,
        help_text="Set exactly when the line is bound"
    )
    mrp = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal('0.00'))
    discount_amount = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal('0.00'))
    tax = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal('0.00'))
    final_amount = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal('0.00'))
    purchase_date = models.DateField(default=timezone.localdate)
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='+'
    )
    created_at = models.DateTimeField(auto_now_add=True, db_index=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = 'Sale Line'
        verbose_name_plural = 'Sale Lines'
        ordering = ['invoice_number', 'id']
        constraints = [
            models.CheckConstraint(
                condition=(
                    Q(allocation_state='bound', serial_number__isnull=False)
                    | (~Q(allocation_state='bound') & Q(serial_number__isnull=True))
                ),
                name='sale_line_serial_iff_bound'
            ),
            models.UniqueConstraint(
                fields=['serial_number'],
                condition=Q(allocation_state='bound'),
                name='unique_bound_serial'
            ),
        ]
        indexes = [
            models.Index(fields=['invoice_number', 'allocation_state'], name='saleline_invoice_state_idx'),
            models.Index(fields=['serial_number'], name='saleline_serial_idx'),
        ]

    def __str__(self):
        return f"{self.invoice_number} #{self.id} {self.sku} ({self.allocation_label})"

    @property
    def is_unallocated(self) -> bool:
        return self.allocation_state == self.AllocationState.UNALLOCATED

    @property
    def is_bound(self) -> bool:
        return self.allocation_state == self.AllocationState.BOUND

    @property
    def allocation_label(self) -> str:
        if self.is_bound:
            return self.serial_number
        return self.get_allocation_state_display()

    def bind(self, serial_number: str) -> None:
        """Move an unallocated line to BOUND. Caller saves."""
        if not self.is_unallocated:
            raise ValueError(f"Sale line {self.id} is not unallocated")
        self.allocation_state = self.AllocationState.BOUND
        self.serial_number = serial_number

    def recompute_discount(self) -> None:
        """discount = max(0, MRP - final amount); 0 when there is no MRP."""
        if self.mrp > 0 and self.mrp > self.final_amount:
            self.discount_amount = self.mrp - self.final_amount
        else:
            self.discount_amount = Decimal('0.00')


class InvoiceSequence(models.Model):
    """Per-day invoice counter, incremented under a row lock."""
    day = models.DateField(unique=True)
    last_number = models.PositiveIntegerField(default=0)

    class Meta:
        verbose_name = 'Invoice Sequence'

    def __str__(self):
        return f"{self.day:%Y%m%d}: {self.last_number}"
