"""
Serializers for sales models.
"""
from django.contrib.auth import get_user_model
from rest_framework import serializers

from inventory.serializers import ProductMinimalSerializer
from .models import SaleLine


class SaleLineSerializer(serializers.ModelSerializer):
    """Serializer for SaleLine with product details."""
    product = ProductMinimalSerializer(read_only=True)

    class Meta:
        model = SaleLine
        fields = [
            'id', 'invoice_number', 'customer_id', 'customer_name', 'customer_phone',
            'sales_type', 'product', 'sku', 'product_name', 'warranty',
            'allocation_state', 'serial_number',
            'mrp', 'discount_amount', 'tax', 'final_amount',
            'purchase_date', 'created_at', 'updated_at'
        ]
        read_only_fields = fields


class OrderItemCreateSerializer(serializers.Serializer):
    """Serializer for creating order items in order creation request."""
    product_id = serializers.IntegerField(min_value=1)
    quantity = serializers.IntegerField(min_value=1)
    unit_price = serializers.DecimalField(
        max_digits=10,
        decimal_places=2,
        min_value=0,
        required=False,
        allow_null=True
    )


class OrderCreateSerializer(serializers.Serializer):
    """
    Serializer for placing orders via POST /sales/orders/

    Request format:
    {
        "customer_name": "Ravi Kumar",
        "customer_phone": "9876543210",
        "sales_type": "retail",
        "items": [
            {"product_id": 1, "quantity": 2},
            {"product_id": 3, "quantity": 1, "unit_price": "4500.00"}
        ]
    }

    ``customer_id`` is honoured only when an operator places the order.
    """
    customer_name = serializers.CharField(max_length=200)
    customer_phone = serializers.CharField(max_length=20)
    sales_type = serializers.ChoiceField(
        choices=SaleLine.SalesType.choices,
        default=SaleLine.SalesType.RETAIL
    )
    customer_id = serializers.PrimaryKeyRelatedField(
        queryset=get_user_model().objects.all(),
        required=False,
        allow_null=True
    )
    items = OrderItemCreateSerializer(many=True)

    def validate_items(self, value):
        if not value:
            raise serializers.ValidationError("At least one item is required")

        # Check for duplicate products
        product_ids = [item['product_id'] for item in value]
        if len(product_ids) != len(set(product_ids)):
            raise serializers.ValidationError("Duplicate products in order items")

        return value


class PendingOrderSerializer(serializers.Serializer):
    """Per-invoice summary produced by services.pending_orders()."""
    invoice_number = serializers.CharField()
    customer_id = serializers.IntegerField(allow_null=True)
    customer_name = serializers.CharField()
    customer_phone = serializers.CharField()
    sales_type = serializers.CharField()
    item_count = serializers.IntegerField()
    pending_items_count = serializers.IntegerField()
    total_amount = serializers.DecimalField(max_digits=12, decimal_places=2)
    placed_at = serializers.DateTimeField()


class SerialAssignmentSerializer(serializers.Serializer):
    line_id = serializers.IntegerField(min_value=1)
    serial_number = serializers.CharField(max_length=100, trim_whitespace=True)
    final_amount = serializers.DecimalField(
        max_digits=10,
        decimal_places=2,
        min_value=0,
        required=False,
        allow_null=True
    )


class AssignSerialsSerializer(serializers.Serializer):
    """
    Request format:
    {
        "assignments": [
            {"line_id": 11, "serial_number": "EXD2401A0001"},
            {"line_id": 12, "serial_number": "EXD2401A0002", "final_amount": "4200.00"}
        ]
    }
    """
    assignments = SerialAssignmentSerializer(many=True, allow_empty=False)
