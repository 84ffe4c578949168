"""
Stock ledger - every write to serialized stock goes through here.

consume_unit and deduct_bulk must run inside ``transaction.atomic()``. The
available -> consumed transition is a conditional UPDATE, so two
transactions racing for the same serial cannot both win: the loser sees
zero affected rows and gets a ConflictError.
"""
import logging
from typing import Iterable, List

from django.conf import settings
from django.db import transaction
from django.db.models import F
from django.utils import timezone

from core.exceptions import ConflictError, NotFoundError, ServiceValidationError
from .models import Product, StockUnit

logger = logging.getLogger(__name__)


def normalize_serial(serial_number) -> str:
    return (serial_number or '').strip()


def receive_units(product_id: int, serial_numbers: Iterable[str], received_on=None) -> List[StockUnit]:
    """
    Purchase intake: add available units and bump the product quantity.
    """
    serials = [normalize_serial(s) for s in serial_numbers]
    if not serials or any(not s for s in serials):
        raise ServiceValidationError("At least one non-blank serial number is required")
    if len(serials) != len(set(serials)):
        raise ServiceValidationError("Duplicate serial numbers in intake")

    with transaction.atomic():
        try:
            product = Product.objects.select_for_update(of=('self',)).select_related('category').get(id=product_id)
        except Product.DoesNotExist:
            raise NotFoundError(f"Product {product_id} not found")

        if not product.is_serialized:
            raise ServiceValidationError(
                f"Category {product.category.name} does not track serial numbers"
            )

        existing = set(
            StockUnit.objects.filter(product=product, serial_number__in=serials)
            .values_list('serial_number', flat=True)
        )
        if existing:
            raise ConflictError(
                f"Serial numbers already recorded for {product.sku}: {', '.join(sorted(existing))}"
            )

        units = StockUnit.objects.bulk_create([
            StockUnit(
                product=product,
                serial_number=serial,
                received_on=received_on or timezone.localdate()
            )
            for serial in serials
        ])
        Product.objects.filter(id=product.id).update(
            quantity=F('quantity') + len(units),
            updated_at=timezone.now()
        )

    logger.info(f"Received {len(units)} units of {product.sku}")
    return units


def consume_unit(product_id: int, serial_number: str) -> StockUnit:
    """
    Mark one available unit consumed and decrement the product quantity.

    Raises ConflictError if the serial is not available for this product,
    including when a concurrent transaction consumed it first.
    """
    serial = normalize_serial(serial_number)
    updated = StockUnit.objects.filter(
        product_id=product_id,
        serial_number=serial,
        status=StockUnit.Status.AVAILABLE
    ).update(
        status=StockUnit.Status.CONSUMED,
        consumed_at=timezone.now()
    )
    if updated != 1:
        raise ConflictError(
            f"Serial number {serial} is not available in stock for this product",
            serial_number=serial
        )

    decremented = Product.objects.filter(id=product_id, quantity__gt=0).update(
        quantity=F('quantity') - 1,
        updated_at=timezone.now()
    )
    if decremented != 1:
        logger.warning(
            f"Quantity drift on product {product_id}: consumed {serial} with cached quantity 0"
        )
    logger.debug(f"Consumed unit {serial} of product {product_id}")
    return StockUnit.objects.get(product_id=product_id, serial_number=serial)


def is_available(product_id: int, serial_number: str) -> bool:
    return StockUnit.objects.filter(
        product_id=product_id,
        serial_number=normalize_serial(serial_number),
        status=StockUnit.Status.AVAILABLE
    ).exists()


def available_serials(product_id: int, limit: int = None) -> List[str]:
    """Available serial numbers for a product, oldest intake first."""
    limit = limit or settings.AVAILABLE_SERIALS_LIMIT
    return list(
        StockUnit.objects.filter(
            product_id=product_id,
            status=StockUnit.Status.AVAILABLE
        ).order_by('received_on', 'created_at', 'id')
        .values_list('serial_number', flat=True)[:limit]
    )


def recount_quantity(product_id: int) -> int:
    """Recompute the cached quantity from the available units."""
    with transaction.atomic():
        product = Product.objects.select_for_update(of=('self',)).select_related('category').get(id=product_id)
        if not product.is_serialized:
            return product.quantity
        count = product.stock_units.filter(status=StockUnit.Status.AVAILABLE).count()
        if product.quantity != count:
            logger.warning(
                f"Quantity drift on {product.sku}: cached {product.quantity}, actual {count}"
            )
            product.quantity = count
            product.save(update_fields=['quantity', 'updated_at'])
    return count


def receive_bulk(product_id: int, quantity: int) -> Product:
    """Intake for non-serialized products, which only keep a counter."""
    if not isinstance(quantity, int) or quantity < 1:
        raise ServiceValidationError("quantity must be a positive integer")

    with transaction.atomic():
        try:
            product = Product.objects.select_for_update(of=('self',)).select_related('category').get(id=product_id)
        except Product.DoesNotExist:
            raise NotFoundError(f"Product {product_id} not found")
        if product.is_serialized:
            raise ServiceValidationError(
                f"{product.sku} is serialized; receive it by serial number"
            )
        product.quantity = F('quantity') + quantity
        product.save(update_fields=['quantity', 'updated_at'])
        product.refresh_from_db()

    logger.info(f"Received {quantity} units of {product.sku} (non-serialized)")
    return product


def deduct_bulk(product_id: int, quantity: int) -> None:
    """Take non-serialized units off the counter; conflict if not enough."""
    updated = Product.objects.filter(id=product_id, quantity__gte=quantity).update(
        quantity=F('quantity') - quantity,
        updated_at=timezone.now()
    )
    if updated != 1:
        raise ConflictError(f"Insufficient stock for product {product_id}")
