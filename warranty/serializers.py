"""
Serializers for warranty models and battery status.
"""
from rest_framework import serializers

from inventory.serializers import ProductMinimalSerializer
from .models import ReplacementRecord, WarrantySlab
from .rules import ReplacementType


class WarrantySlabSerializer(serializers.ModelSerializer):
    class Meta:
        model = WarrantySlab
        fields = [
            'id', 'slab_name', 'min_months', 'max_months',
            'discount_percentage', 'description', 'is_active'
        ]


class ReplacementRecordSerializer(serializers.ModelSerializer):
    """Read-only view of a replacement, with the new product inline."""
    new_product = ProductMinimalSerializer(read_only=True)
    warranty_slab = WarrantySlabSerializer(read_only=True)
    created_by = serializers.CharField(source='created_by.username', read_only=True, default=None)

    class Meta:
        model = ReplacementRecord
        fields = [
            'id', 'customer_id', 'original_sale_line_id', 'original_serial_number',
            'original_purchase_date', 'original_invoice_number', 'replacement_type',
            'replaced_at', 'new_product', 'new_serial_number', 'new_sale_line_id',
            'new_invoice_number', 'warranty_slab', 'discount_percentage', 'notes',
            'created_by'
        ]
        read_only_fields = fields


class ReplaceBatterySerializer(serializers.Serializer):
    """
    Request format for POST /warranty/replacements/:
    {
        "sale_line_id": 42,
        "new_product_id": 7,
        "new_serial_number": "EXD2405B0113",
        "replacement_type": "warranty",
        "warranty_slab_id": 2,
        "notes": "Cell bulge"
    }
    """
    sale_line_id = serializers.IntegerField(min_value=1)
    new_product_id = serializers.IntegerField(min_value=1)
    new_serial_number = serializers.CharField(max_length=100)
    replacement_type = serializers.ChoiceField(choices=ReplacementType.choices)
    warranty_slab_id = serializers.IntegerField(min_value=1, required=False, allow_null=True)
    notes = serializers.CharField(required=False, allow_blank=True, default='')

    def validate(self, attrs):
        if attrs['replacement_type'] == ReplacementType.WARRANTY and not attrs.get('warranty_slab_id'):
            raise serializers.ValidationError({
                'warranty_slab_id': 'Warranty slab ID is required for warranty replacement'
            })
        return attrs


class BatteryStatusSerializer(serializers.Serializer):
    """Renders a warranty.services.BatteryStatus."""

    def to_representation(self, status):
        line = status.sale_line
        latest = status.latest_replacement
        return {
            'serial_number': line.serial_number,
            'sale_line_id': line.id,
            'customer': {
                'id': line.customer_id,
                'name': line.customer_name,
                'phone': line.customer_phone,
            },
            'product': {
                'id': line.product_id,
                'name': line.product_name,
                'sku': line.sku,
            },
            'purchase_date': line.purchase_date,
            'invoice_number': line.invoice_number,
            'warranty_code': status.warranty_code,
            'guarantee_period_months': status.window.guarantee_months,
            'warranty_period_months': status.window.warranty_months,
            'total_warranty_months': status.window.total_months,
            'status': dict(status.eligibility.as_dict(), is_replaced=status.is_replaced),
            'warranty_slab': WarrantySlabSerializer(status.slab).data if status.slab else None,
            'latest_replacement': {
                'type': latest.replacement_type,
                'date': latest.replaced_at,
                'new_serial_number': latest.new_serial_number,
                'new_invoice_number': latest.new_invoice_number,
            } if latest else None,
        }


class ExpiringGuaranteeSerializer(serializers.Serializer):
    def to_representation(self, item):
        line = item.sale_line
        return {
            'serial_number': line.serial_number,
            'customer_name': line.customer_name,
            'customer_phone': line.customer_phone,
            'product_name': line.product_name,
            'invoice_number': line.invoice_number,
            'days_until_expiration': item.days_until_expiration,
            'guarantee_end_date': item.guarantee_end_date,
        }


class ExpiringGuaranteeRequestSerializer(serializers.Serializer):
    days_ahead = serializers.IntegerField(min_value=0, max_value=365, required=False)
