"""
Sales Service Layer - pending orders and serial number assignment.

An order is placed before the physical batteries are chosen: every unit
becomes a SaleLine in UNALLOCATED state. An operator later binds each line
to a serial number from stock, which consumes the stock unit and
recomputes the line's discount from its MRP.

Every mutating function runs in one transaction.atomic() block:
1. Lock the affected sale lines with select_for_update()
2. Validate ALL assignments
3. If ANY fails: raise, nothing is written
4. If ALL pass: consume stock, bind lines, queue notifications for after commit
"""
import logging
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Dict, List

from django.conf import settings
from django.db import transaction
from django.db.models import Count, Min, Q, Sum
from django.utils import timezone

from core.exceptions import ConflictError, NotFoundError, ServiceValidationError
from inventory import ledger
from inventory.models import Product
from notifications.models import Notification
from notifications.services import notify, operator_recipients
from .models import InvoiceSequence, SaleLine

logger = logging.getLogger(__name__)

PAISE = Decimal('0.01')


@dataclass(frozen=True)
class AssignmentResult:
    invoice_number: str
    assigned_count: int
    all_assigned: bool


def to_money(value) -> Decimal:
    return Decimal(value).quantize(PAISE, rounding=ROUND_HALF_UP)


def gst_component(amount: Decimal) -> Decimal:
    """GST contained in a GST-inclusive amount: amount * rate / (1 + rate)."""
    rate = settings.GST_RATE
    return to_money(amount * rate / (Decimal('1') + rate))


def parse_amount(value, field: str = 'final_amount') -> Decimal:
    try:
        amount = Decimal(str(value))
    except (InvalidOperation, ValueError, TypeError):
        raise ServiceValidationError(f"{field} must be a number")
    if not amount.is_finite() or amount < 0:
        raise ServiceValidationError(f"{field} must be a non-negative number")
    return to_money(amount)


def next_invoice_number(day=None) -> str:
    """
    Allocate the next invoice number for a day: INV-YYYYMMDD-NNNN.
    """
    day = day or timezone.localdate()
    with transaction.atomic():
        sequence, _ = InvoiceSequence.objects.select_for_update().get_or_create(day=day)
        sequence.last_number += 1
        sequence.save(update_fields=['last_number'])
    return f"INV-{day:%Y%m%d}-{sequence.last_number:04d}"


# =============================================================================
# Order placement
# =============================================================================

def validate_order_items(items: List[Dict]) -> None:
    """
    Validate order items structure.

    Args:
        items: List of dicts with 'product_id', 'quantity' and optional 'unit_price'

    Raises:
        ServiceValidationError: If validation fails
    """
    if not items:
        raise ServiceValidationError("Order must contain at least one item")

    seen_products = set()
    for idx, item in enumerate(items):
        if 'product_id' not in item:
            raise ServiceValidationError(f"Item {idx}: missing 'product_id'")
        if 'quantity' not in item:
            raise ServiceValidationError(f"Item {idx}: missing 'quantity'")

        product_id = item['product_id']
        quantity = item['quantity']

        if not isinstance(quantity, int) or quantity < 1:
            raise ServiceValidationError(f"Item {idx}: quantity must be a positive integer")

        if item.get('unit_price') is not None:
            parse_amount(item['unit_price'], f"Item {idx}: unit_price")

        if product_id in seen_products:
            raise ServiceValidationError(f"Item {idx}: duplicate product_id {product_id}")
        seen_products.add(product_id)


def place_order(items: List[Dict], customer_name: str, customer_phone: str,
                sales_type: str = SaleLine.SalesType.RETAIL, customer=None,
                operator=None) -> List[SaleLine]:
    """
    Create a pending order: one SaleLine per unit, no serial numbers yet.

    Serialized products are checked against stock not already promised to
    other pending lines; the units themselves are consumed only when an
    operator assigns serial numbers. Non-serialized products are deducted
    immediately and their lines are NOT_APPLICABLE.

    ``operator`` is the staff user entering the order, or None when the
    customer places it themselves; in that case operators are notified.

    Returns:
        The created sale lines (all sharing one invoice number)

    Raises:
        ServiceValidationError: Malformed items or customer details
        NotFoundError: Unknown or inactive product
        ConflictError: Insufficient stock for any item
    """
    validate_order_items(items)
    customer_name = (customer_name or '').strip()
    customer_phone = (customer_phone or '').strip()
    if not customer_name or not customer_phone:
        raise ServiceValidationError("Customer name and phone are required")
    if sales_type not in SaleLine.SalesType.values:
        raise ServiceValidationError(f"Invalid sales type: {sales_type}")

    product_ids = [item['product_id'] for item in items]

    with transaction.atomic():
        # Lock product rows in id order to prevent deadlocks
        products = {
            p.id: p for p in Product.objects.select_for_update(of=('self',))
            .select_related('category')
            .filter(id__in=product_ids, is_active=True)
            .order_by('id')
        }
        missing_products = set(product_ids) - set(products.keys())
        if missing_products:
            raise NotFoundError(f"Products not found or inactive: {sorted(missing_products)}")

        promised = dict(
            SaleLine.objects.filter(
                product_id__in=product_ids,
                allocation_state=SaleLine.AllocationState.UNALLOCATED
            ).values_list('product_id').annotate(count=Count('id'))
        )

        # FAIL-FAST: Check all stock BEFORE any deductions
        insufficient_stock = []
        for item in items:
            product = products[item['product_id']]
            available = product.quantity
            if product.is_serialized:
                available -= promised.get(product.id, 0)
            if available < item['quantity']:
                insufficient_stock.append(
                    f"{product.name}: requested {item['quantity']}, available {max(available, 0)}"
                )
        if insufficient_stock:
            raise ConflictError(f"Insufficient stock: {'; '.join(insufficient_stock)}")

        invoice_number = next_invoice_number()
        today = timezone.localdate()
        lines = []

        for item in items:
            product = products[item['product_id']]
            quantity = item['quantity']
            mrp = to_money(product.mrp)
            unit_price = mrp if item.get('unit_price') is None else parse_amount(item['unit_price'], 'unit_price')

            if product.is_serialized:
                state = SaleLine.AllocationState.UNALLOCATED
            else:
                state = SaleLine.AllocationState.NOT_APPLICABLE
                ledger.deduct_bulk(product.id, quantity)

            for _ in range(quantity):
                line = SaleLine(
                    invoice_number=invoice_number,
                    customer=customer,
                    customer_name=customer_name,
                    customer_phone=customer_phone,
                    sales_type=sales_type,
                    product=product,
                    sku=product.sku,
                    product_name=product.name,
                    warranty=product.warranty,
                    allocation_state=state,
                    mrp=mrp,
                    tax=gst_component(mrp),
                    final_amount=unit_price,
                    purchase_date=today,
                    created_by=operator,
                )
                line.recompute_discount()
                lines.append(line)

        SaleLine.objects.bulk_create(lines)

        pending_count = sum(1 for line in lines if line.is_unallocated)
        # Orders placed by customers wait for an operator to pick the units
        if pending_count and operator is None:
            notify(
                operator_recipients(),
                'New Order',
                f"Customer {customer_name} ({customer_phone}) placed order {invoice_number} "
                f"with {len(lines)} item(s); {pending_count} awaiting serial numbers.",
                Notification.Level.INFO,
                invoice_number
            )

    logger.info(
        f"Order {invoice_number} placed: {len(lines)} lines, "
        f"{pending_count} awaiting serial numbers"
    )
    return list(SaleLine.objects.filter(invoice_number=invoice_number).order_by('id'))


# =============================================================================
# Serial number assignment
# =============================================================================

def validate_assignments(assignments: List[Dict]) -> List[Dict]:
    """
    Normalize and validate an assignment batch.

    Args:
        assignments: List of dicts with 'line_id', 'serial_number' and optional 'final_amount'

    Returns:
        Normalized list with trimmed serials and Decimal amounts
    """
    if not assignments:
        raise ServiceValidationError("Assignments array is required")

    normalized = []
    seen_lines, seen_serials = set(), set()
    for idx, assignment in enumerate(assignments):
        line_id = assignment.get('line_id')
        serial = ledger.normalize_serial(assignment.get('serial_number'))
        if not line_id or not serial:
            raise ServiceValidationError(
                f"Assignment {idx}: line_id and serial_number are required"
            )
        if line_id in seen_lines:
            raise ServiceValidationError(f"Assignment {idx}: duplicate line_id {line_id}")
        if serial in seen_serials:
            raise ServiceValidationError(f"Assignment {idx}: duplicate serial_number {serial}")
        seen_lines.add(line_id)
        seen_serials.add(serial)

        final_amount = assignment.get('final_amount')
        normalized.append({
            'line_id': line_id,
            'serial_number': serial,
            'final_amount': None if final_amount is None else parse_amount(final_amount),
        })
    return normalized


def assign_serials(invoice_number: str, assignments: List[Dict], operator=None) -> AssignmentResult:
    """
    Bind serial numbers to the unallocated lines of one order, atomically.

    Either every assignment in the batch is applied or none is. For each
    line the stock unit is consumed, the serial recorded, the final amount
    optionally overwritten and the discount recomputed from MRP.

    Raises:
        ServiceValidationError: Malformed batch
        NotFoundError: Unknown order, or a line is not on it
        ConflictError: Line already allocated, serial unavailable, or
            serial already bound to another line
    """
    batch = validate_assignments(assignments)
    line_ids = [a['line_id'] for a in batch]

    with transaction.atomic():
        # Fully bound orders fall through to the per-line conflict check
        if not SaleLine.objects.filter(invoice_number=invoice_number).exists():
            raise NotFoundError(f"Order {invoice_number} not found")

        lines = {
            line.id: line for line in SaleLine.objects.select_for_update()
            .filter(invoice_number=invoice_number, id__in=line_ids)
            .order_by('id')
        }

        for assignment in batch:
            line = lines.get(assignment['line_id'])
            serial = assignment['serial_number']

            if line is None:
                raise NotFoundError(
                    f"Sale line {assignment['line_id']} not found on order {invoice_number}"
                )
            if not line.is_unallocated:
                raise ConflictError(
                    f"Sale line {line.id} already has a serial number"
                    if line.is_bound else
                    f"Sale line {line.id} does not take a serial number"
                )

            clash = SaleLine.objects.filter(
                serial_number=serial,
                allocation_state=SaleLine.AllocationState.BOUND
            ).exclude(id=line.id).only('id', 'invoice_number').first()
            if clash is not None:
                raise ConflictError(
                    f"Serial number {serial} is already assigned to invoice {clash.invoice_number}",
                    conflicting_invoice=clash.invoice_number,
                    conflicting_line_id=clash.id
                )

            ledger.consume_unit(line.product_id, serial)

            if assignment['final_amount'] is not None:
                line.final_amount = assignment['final_amount']
            line.bind(serial)
            line.recompute_discount()
            line.save(update_fields=[
                'allocation_state', 'serial_number', 'final_amount',
                'discount_amount', 'updated_at'
            ])
            logger.debug(
                f"Order {invoice_number}: line {line.id} bound to {serial}, "
                f"MRP={line.mrp}, final={line.final_amount}, discount={line.discount_amount}"
            )

        remaining = SaleLine.objects.filter(
            invoice_number=invoice_number,
            allocation_state=SaleLine.AllocationState.UNALLOCATED
        ).count()
        all_assigned = remaining == 0

        if all_assigned:
            _notify_order_completed(invoice_number)

    logger.info(
        f"Order {invoice_number}: assigned {len(batch)} serial numbers, "
        f"{remaining} still pending"
    )
    return AssignmentResult(invoice_number, len(batch), all_assigned)


def _notify_order_completed(invoice_number: str) -> None:
    summary = SaleLine.objects.filter(invoice_number=invoice_number).aggregate(
        total_amount=Sum('final_amount'),
        customer_id=Min('customer_id')
    )
    if summary['customer_id'] is None:
        return
    line = SaleLine.objects.select_related('customer').filter(
        invoice_number=invoice_number, customer_id=summary['customer_id']
    ).first()
    total = to_money(summary['total_amount'] or 0)
    notify(
        line.customer,
        'Order Completed',
        f"Your order (Invoice: {invoice_number}) has been processed and serial numbers "
        f"have been assigned. Total Amount: ₹{total:,.2f}.",
        Notification.Level.SUCCESS,
        invoice_number
    )


# =============================================================================
# Queries and cancellation
# =============================================================================

def order_is_complete(invoice_number: str) -> bool:
    lines = SaleLine.objects.filter(invoice_number=invoice_number)
    if not lines.exists():
        raise NotFoundError(f"Order {invoice_number} not found")
    return not lines.filter(allocation_state=SaleLine.AllocationState.UNALLOCATED).exists()


def pending_orders():
    """
    Orders with at least one unallocated line, newest first.

    Returns a values() queryset of per-invoice summaries.
    """
    pending_invoices = SaleLine.objects.filter(
        allocation_state=SaleLine.AllocationState.UNALLOCATED
    ).values('invoice_number')

    return SaleLine.objects.filter(
        invoice_number__in=pending_invoices
    ).values(
        'invoice_number', 'customer_id', 'customer_name', 'customer_phone', 'sales_type'
    ).annotate(
        item_count=Count('id'),
        pending_items_count=Count(
            'id', filter=Q(allocation_state=SaleLine.AllocationState.UNALLOCATED)
        ),
        total_amount=Sum('final_amount'),
        placed_at=Min('created_at'),
    ).order_by('-placed_at')


def pending_order_detail(invoice_number: str):
    """Unallocated lines of one order."""
    if not SaleLine.objects.filter(invoice_number=invoice_number).exists():
        raise NotFoundError(f"Order {invoice_number} not found")
    return SaleLine.objects.select_related('product').filter(
        invoice_number=invoice_number,
        allocation_state=SaleLine.AllocationState.UNALLOCATED
    ).order_by('id')


def cancel_order(invoice_number: str, customer=None) -> int:
    """
    Cancel an order none of whose lines has been bound yet.

    With ``customer`` set, only that customer's own order can be cancelled.
    Non-serialized quantities deducted at placement are put back.

    Returns:
        Number of deleted lines
    """
    with transaction.atomic():
        lines = SaleLine.objects.select_for_update(of=('self',)).filter(invoice_number=invoice_number)
        if customer is not None:
            lines = lines.filter(customer=customer)
        lines = list(lines.select_related('customer').order_by('id'))

        if not lines:
            raise NotFoundError(f"Order {invoice_number} not found")
        if any(line.is_bound for line in lines):
            raise ConflictError(
                "Cannot cancel order. Serial numbers have already been assigned."
            )

        restock = {}
        for line in lines:
            if line.allocation_state == SaleLine.AllocationState.NOT_APPLICABLE:
                restock[line.product_id] = restock.get(line.product_id, 0) + 1
        for product_id, quantity in sorted(restock.items()):
            ledger.receive_bulk(product_id, quantity)

        owner = lines[0].customer
        SaleLine.objects.filter(id__in=[line.id for line in lines]).delete()

        if customer is None:
            notify(
                owner,
                'Order Cancelled',
                f"Your order (Invoice: {invoice_number}) has been cancelled by the shop.",
                Notification.Level.WARNING,
                invoice_number
            )
        else:
            notify(
                operator_recipients(),
                'Order Cancelled',
                f"Customer {lines[0].customer_name} ({lines[0].customer_phone}) "
                f"cancelled order {invoice_number}.",
                Notification.Level.WARNING,
                invoice_number
            )

    logger.info(f"Order {invoice_number} cancelled ({len(lines)} lines)")
    return len(lines)
