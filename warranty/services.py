"""
Warranty Service Layer - battery status, slab resolution and replacements.

Eligibility is always recomputed from the purchase date; the client's idea
of it is only accepted when it agrees with the server.

replace_battery runs in one transaction.atomic() block:
1. Lock the original sale line
2. Reject a second replacement of the same serial
3. Recompute eligibility and compare with the requested type
4. Consume the replacement unit from the stock ledger
5. Warranty only: price and record a new sale line on a new invoice
6. Write the append-only ReplacementRecord
"""
import datetime
import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import List, Optional

from django.conf import settings
from django.db import IntegrityError, transaction
from django.db.models import Q
from django.utils import timezone

from core.exceptions import (
    ConflictError,
    InconsistencyError,
    NotFoundError,
    ServiceValidationError,
)
from inventory import ledger
from inventory.models import Product
from notifications.models import Notification
from notifications.services import notify, operator_recipients
from sales.models import SaleLine
from sales.services import gst_component, next_invoice_number, to_money
from .models import ReplacementRecord, WarrantySlab
from .rules import (
    Eligibility,
    ReplacementType,
    WarrantyWindow,
    add_months,
    evaluate_eligibility,
    resolve_window,
)

logger = logging.getLogger(__name__)

UNKNOWN_BATTERY = "Battery with this serial number not found"


# =============================================================================
# Slabs
# =============================================================================

def active_slabs():
    return WarrantySlab.objects.filter(is_active=True).order_by('min_months', 'id')


def resolve_slab(months_past_guarantee: int) -> Optional[WarrantySlab]:
    """
    The active slab covering ``months_past_guarantee`` with the highest
    discount, or None. Overlapping slabs are allowed; the best one wins.
    """
    return WarrantySlab.objects.filter(
        is_active=True,
        min_months__lte=months_past_guarantee
    ).filter(
        Q(max_months__isnull=True) | Q(max_months__gte=months_past_guarantee)
    ).order_by('-discount_percentage', 'min_months', 'id').first()


# =============================================================================
# Battery status
# =============================================================================

@dataclass(frozen=True)
class BatteryStatus:
    sale_line: SaleLine
    window: WarrantyWindow
    warranty_code: str
    eligibility: Eligibility
    slab: Optional[WarrantySlab]
    latest_replacement: Optional[ReplacementRecord]

    @property
    def is_replaced(self) -> bool:
        return self.latest_replacement is not None


def find_sold_unit(serial_number: str) -> SaleLine:
    serial = ledger.normalize_serial(serial_number)
    if not serial:
        raise ServiceValidationError("Serial number is required")
    line = SaleLine.objects.select_related('product', 'customer').filter(
        serial_number=serial,
        allocation_state=SaleLine.AllocationState.BOUND
    ).order_by('-purchase_date', '-id').first()
    if line is None:
        raise NotFoundError(UNKNOWN_BATTERY)
    return line


def window_for(line: SaleLine) -> WarrantyWindow:
    return resolve_window(
        line.warranty,
        line.product.warranty,
        line.product.guarantee_period_months
    )


def check_battery_status(serial_number: str, today=None) -> BatteryStatus:
    """
    Guarantee/warranty status of a sold unit, derived on every call.

    The matching slab is only looked up while the unit is past guarantee
    but within its warranty period.
    """
    line = find_sold_unit(serial_number)
    window = window_for(line)
    eligibility = evaluate_eligibility(line.purchase_date, window, today)

    slab = None
    if not eligibility.under_guarantee and eligibility.within_warranty_period:
        slab = resolve_slab(eligibility.months_past_guarantee)

    latest = ReplacementRecord.objects.filter(
        original_serial_number=line.serial_number
    ).order_by('-replaced_at').first()

    return BatteryStatus(
        sale_line=line,
        window=window,
        warranty_code=line.warranty or line.product.warranty or '',
        eligibility=eligibility,
        slab=slab,
        latest_replacement=latest,
    )


# =============================================================================
# Replacement
# =============================================================================

def _eligibility_mismatch(requested: str, eligibility: Eligibility) -> InconsistencyError:
    if eligibility.replacement_type is None:
        detail = "Battery is out of warranty"
    elif requested == ReplacementType.GUARANTEE:
        detail = "Battery is not under guarantee period"
    else:
        detail = "Battery is still under guarantee, use guarantee replacement"
    return InconsistencyError(detail, eligibility=eligibility.as_dict())


def replace_battery(original_line_id: int, new_product_id: int, new_serial_number: str,
                    replacement_type: str, slab_id: Optional[int] = None, notes: str = '',
                    operator=None, today=None) -> ReplacementRecord:
    """
    Swap a sold battery for a unit from stock.

    Guarantee replacements are free: the unit is consumed and recorded with
    no discount and no invoice. Warranty replacements are sold at MRP less
    the slab discount on a new invoice that keeps the original sales type.

    Raises:
        ServiceValidationError: Malformed request, or the original line has no serial
        NotFoundError: Unknown original line, slab or product
        ConflictError: Already replaced, or the new serial is not free
        InconsistencyError: Requested type disagrees with computed eligibility
    """
    if replacement_type not in ReplacementType.values:
        raise ServiceValidationError("Invalid replacement type")
    if not new_product_id:
        raise ServiceValidationError("Replacement product is required")
    new_serial = ledger.normalize_serial(new_serial_number)
    if not new_serial:
        raise ServiceValidationError("New serial number is required for replacement")

    today = today or timezone.localdate()

    with transaction.atomic():
        try:
            original = SaleLine.objects.select_for_update(of=('self',)).select_related(
                'product', 'customer'
            ).get(id=original_line_id)
        except SaleLine.DoesNotExist:
            raise NotFoundError("Original battery not found")

        if not original.is_bound:
            raise ServiceValidationError("Original serial number could not be determined")

        previous = ReplacementRecord.objects.filter(
            original_serial_number=original.serial_number
        ).first()
        if previous is not None:
            raise ConflictError(
                f"Battery {original.serial_number} has already been replaced "
                f"on {previous.replaced_at:%Y-%m-%d}",
                replacement_id=previous.id
            )

        eligibility = evaluate_eligibility(original.purchase_date, window_for(original), today)
        if eligibility.replacement_type != replacement_type:
            raise _eligibility_mismatch(replacement_type, eligibility)

        slab = None
        discount_percentage = Decimal('0.00')
        if replacement_type == ReplacementType.WARRANTY:
            if not slab_id:
                raise ServiceValidationError("Warranty slab ID is required for warranty replacement")
            slab = WarrantySlab.objects.filter(id=slab_id, is_active=True).first()
            if slab is None:
                raise NotFoundError("Warranty slab not found")
            discount_percentage = slab.discount_percentage

        try:
            new_product = Product.objects.get(id=new_product_id)
        except Product.DoesNotExist:
            raise NotFoundError("New product not found")

        clash = SaleLine.objects.filter(
            serial_number=new_serial,
            allocation_state=SaleLine.AllocationState.BOUND
        ).only('id', 'invoice_number').first()
        if clash is not None:
            raise ConflictError(
                f"Serial number {new_serial} is already assigned to invoice {clash.invoice_number}",
                conflicting_invoice=clash.invoice_number,
                conflicting_line_id=clash.id
            )

        ledger.consume_unit(new_product.id, new_serial)

        new_line = None
        if replacement_type == ReplacementType.WARRANTY:
            new_line = _sell_replacement(original, new_product, new_serial, discount_percentage, operator, today)

        try:
            with transaction.atomic():
                record = ReplacementRecord.objects.create(
                    customer=original.customer,
                    original_sale_line=original,
                    original_serial_number=original.serial_number,
                    original_purchase_date=original.purchase_date,
                    original_invoice_number=original.invoice_number,
                    replacement_type=replacement_type,
                    new_product=new_product,
                    new_serial_number=new_serial,
                    new_sale_line=new_line,
                    new_invoice_number=new_line.invoice_number if new_line else '',
                    warranty_slab=slab,
                    discount_percentage=discount_percentage,
                    notes=(notes or '').strip(),
                    created_by=operator,
                )
        except IntegrityError:
            # Lost a race with a concurrent replacement of the same unit
            raise ConflictError(f"Battery {original.serial_number} has already been replaced")

        _notify_replacement(original, record)

    logger.info(
        f"Battery {record.original_serial_number} replaced under {replacement_type} "
        f"by {new_serial} (discount {discount_percentage}%)"
    )
    return record


def _sell_replacement(original: SaleLine, product: Product, serial: str,
                      discount_percentage: Decimal, operator, today) -> SaleLine:
    """New bound sale line for a warranty replacement, priced off MRP."""
    mrp = to_money(product.mrp)
    final_amount = to_money(mrp * (Decimal('1') - discount_percentage / Decimal('100')))

    line = SaleLine(
        invoice_number=next_invoice_number(today),
        customer=original.customer,
        customer_name=original.customer_name,
        customer_phone=original.customer_phone,
        sales_type=original.sales_type,
        product=product,
        sku=product.sku,
        product_name=product.name,
        warranty=product.warranty,
        allocation_state=SaleLine.AllocationState.BOUND,
        serial_number=serial,
        mrp=mrp,
        tax=gst_component(mrp),
        final_amount=final_amount,
        purchase_date=today,
        created_by=operator,
    )
    line.recompute_discount()
    line.save()
    return line


def _notify_replacement(original: SaleLine, record: ReplacementRecord) -> None:
    if record.replacement_type == ReplacementType.GUARANTEE:
        message = (
            f"Your battery (Serial: {record.original_serial_number}) has been replaced under "
            f"guarantee (free of charge). New Serial: {record.new_serial_number}"
        )
    else:
        message = (
            f"Your battery (Serial: {record.original_serial_number}) has been replaced under "
            f"warranty with {record.discount_percentage}% discount. "
            f"New Serial: {record.new_serial_number}. Invoice: {record.new_invoice_number}"
        )
    notify(
        original.customer,
        f"Battery Replacement - {record.get_replacement_type_display()}",
        message,
        Notification.Level.SUCCESS,
        record.new_invoice_number
    )


def replacement_history(customer=None):
    """Replacement records, newest first; only ``customer``'s when given."""
    records = ReplacementRecord.objects.select_related(
        'original_sale_line', 'new_product', 'warranty_slab', 'created_by'
    )
    if customer is not None:
        records = records.filter(customer=customer)
    return records.order_by('-replaced_at', '-id')


# =============================================================================
# Expiring guarantees
# =============================================================================

@dataclass(frozen=True)
class ExpiringGuarantee:
    sale_line: SaleLine
    guarantee_end_date: datetime.date
    days_until_expiration: int

    @property
    def days_text(self) -> str:
        if self.days_until_expiration == 0:
            return 'today'
        if self.days_until_expiration == 1:
            return 'in 1 day'
        return f"in {self.days_until_expiration} days"


def find_expiring_guarantees(days_ahead: Optional[int] = None, today=None) -> List[ExpiringGuarantee]:
    """
    Sold units whose guarantee ends within [today, today + days_ahead].

    Units already replaced are skipped and each serial is reported once.
    """
    if days_ahead is None:
        days_ahead = settings.EXPIRING_GUARANTEE_DAYS_AHEAD
    if days_ahead < 0:
        raise ServiceValidationError("days_ahead must be zero or positive")
    today = today or timezone.localdate()

    replaced = set(ReplacementRecord.objects.values_list('original_serial_number', flat=True))
    seen = set()
    expiring = []

    lines = SaleLine.objects.select_related('product').filter(
        allocation_state=SaleLine.AllocationState.BOUND,
        purchase_date__lte=today
    ).order_by('-purchase_date', '-id')

    for line in lines.iterator():
        if line.serial_number in replaced or line.serial_number in seen:
            continue
        guarantee_months = window_for(line).guarantee_months
        if guarantee_months == 0:
            continue

        end_date = add_months(line.purchase_date, guarantee_months)
        days_left = (end_date - today).days
        if 0 <= days_left <= days_ahead:
            seen.add(line.serial_number)
            expiring.append(ExpiringGuarantee(line, end_date, days_left))

    return expiring


def notify_expiring_guarantees(days_ahead: Optional[int] = None, today=None) -> dict:
    """
    Warn every active operator about guarantees about to expire.

    Returns:
        Dict with the number of units found and notifications created
    """
    expiring = find_expiring_guarantees(days_ahead, today)
    operators = list(operator_recipients())

    created = 0
    for item in expiring:
        line = item.sale_line
        created += len(notify(
            operators,
            'Guarantee Expiring Soon',
            f"Customer {line.customer_name} ({line.customer_phone}) - Battery {line.serial_number} "
            f"({line.product_name}) guarantee expires {item.days_text} "
            f"({item.guarantee_end_date:%d %b %Y}). Invoice: {line.invoice_number}",
            Notification.Level.WARNING,
            line.invoice_number
        ))

    logger.info(
        f"Expiring guarantee sweep: {len(expiring)} units, {created} notifications"
    )
    return {
        'expiring': len(expiring),
        'notifications_created': created,
        'items': expiring,
    }
