"""
Serializers for inventory models.
Provides data validation and JSON conversion for API endpoints.
"""
from rest_framework import serializers
from .models import Category, Product, StockUnit


class CategorySerializer(serializers.ModelSerializer):
    """Serializer for Category model."""
    product_count = serializers.SerializerMethodField()

    class Meta:
        model = Category
        fields = ['id', 'name', 'slug', 'is_serialized', 'product_count', 'created_at', 'updated_at']
        read_only_fields = ['id', 'created_at', 'updated_at']

    def get_product_count(self, obj):
        """Get count of products in this category."""
        return obj.products.count()


class CategoryMinimalSerializer(serializers.ModelSerializer):
    """Minimal serializer for nested category representation."""
    class Meta:
        model = Category
        fields = ['id', 'name', 'slug']


class ProductSerializer(serializers.ModelSerializer):
    """Serializer for Product model with nested category.

    ``quantity`` is read-only: stock changes go through the intake endpoint.
    """
    category = CategoryMinimalSerializer(read_only=True)
    category_id = serializers.PrimaryKeyRelatedField(
        queryset=Category.objects.all(),
        source='category',
        write_only=True
    )

    class Meta:
        model = Product
        fields = [
            'id', 'sku', 'name', 'category', 'category_id',
            'warranty', 'guarantee_period_months', 'mrp', 'quantity',
            'is_active', 'created_at', 'updated_at'
        ]
        read_only_fields = ['id', 'quantity', 'created_at', 'updated_at']


class ProductMinimalSerializer(serializers.ModelSerializer):
    """Minimal serializer for autocomplete and nested representations."""
    class Meta:
        model = Product
        fields = ['id', 'sku', 'name', 'mrp']


class StockUnitSerializer(serializers.ModelSerializer):
    class Meta:
        model = StockUnit
        fields = ['id', 'serial_number', 'status', 'received_on', 'consumed_at', 'created_at']


class StockIntakeSerializer(serializers.Serializer):
    """
    Purchase intake request.

    Serialized products take ``serial_numbers``; non-serialized products
    take a plain ``quantity``.
    """
    serial_numbers = serializers.ListField(
        child=serializers.CharField(max_length=100, trim_whitespace=True),
        required=False,
        allow_empty=False
    )
    quantity = serializers.IntegerField(min_value=1, required=False)
    received_on = serializers.DateField(required=False)

    def validate(self, attrs):
        if bool(attrs.get('serial_numbers')) == bool(attrs.get('quantity')):
            raise serializers.ValidationError(
                "Provide either serial_numbers or quantity, not both."
            )
        return attrs
