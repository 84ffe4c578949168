"""
Inventory API Views.

Implements:
- Category and Product CRUD (writes restricted to operators)
- Product autocomplete with rate limiting
- Purchase intake of serialized stock
- Available serial numbers for the pending-order screen
"""
import logging

from rest_framework import generics, status
from rest_framework.views import APIView
from rest_framework.response import Response

from core.exceptions import ServiceError, error_response
from core.permissions import IsOperator, IsOperatorOrReadOnly
from core.rate_limiting import rate_limit
from . import ledger
from .models import Category, Product
from .serializers import (
    CategorySerializer,
    ProductSerializer,
    ProductMinimalSerializer,
    StockIntakeSerializer,
    StockUnitSerializer,
)

logger = logging.getLogger(__name__)


# =============================================================================
# Category Views
# =============================================================================

class CategoryListCreateView(generics.ListCreateAPIView):
    """
    GET: List all categories
    POST: Create a new category
    """
    queryset = Category.objects.all()
    serializer_class = CategorySerializer
    permission_classes = [IsOperatorOrReadOnly]


# =============================================================================
# Product Views
# =============================================================================

class ProductListCreateView(generics.ListCreateAPIView):
    """
    GET: List active products with category info
    POST: Create a new product

    Query Parameters (GET):
        - category: Filter by category slug
        - in_stock: Only products with quantity > 0 (true/false)
    """
    serializer_class = ProductSerializer
    permission_classes = [IsOperatorOrReadOnly]

    def get_queryset(self):
        queryset = Product.objects.select_related('category').filter(is_active=True)

        category = self.request.query_params.get('category')
        if category:
            queryset = queryset.filter(category__slug=category)

        if self.request.query_params.get('in_stock', '').lower() == 'true':
            queryset = queryset.filter(quantity__gt=0)

        return queryset.order_by('name')


class ProductDetailView(generics.RetrieveUpdateAPIView):
    """
    GET: Retrieve a product
    PUT/PATCH: Update a product
    """
    serializer_class = ProductSerializer
    permission_classes = [IsOperatorOrReadOnly]

    def get_queryset(self):
        return Product.objects.select_related('category')


class ProductAutocompleteView(APIView):
    """
    GET: Prefix matching on SKU or name.

    Query Parameters:
        - q: Search query (minimum 2 characters)

    Returns top 10 matching products.
    Rate limited to 20 requests per minute.
    """

    @rate_limit(max_requests=20, window_seconds=60)
    def get(self, request):
        query = request.query_params.get('q', '').strip()

        if len(query) < 2:
            return Response(
                {'error': 'Query must be at least 2 characters'},
                status=status.HTTP_400_BAD_REQUEST
            )

        sku_matches = Product.objects.filter(sku__istartswith=query, is_active=True)
        name_matches = Product.objects.filter(name__istartswith=query, is_active=True)
        products = (sku_matches | name_matches).order_by('name')[:10]

        return Response(ProductMinimalSerializer(products, many=True).data)


# =============================================================================
# Stock Views
# =============================================================================

class StockIntakeView(APIView):
    """
    POST: Receive purchased stock for a product.

    Request Body:
    {"serial_numbers": ["EXD123", "EXD124"]}   # serialized categories
    {"quantity": 20}                           # non-serialized categories
    """
    permission_classes = [IsOperator]

    def post(self, request, pk):
        serializer = StockIntakeSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        try:
            if data.get('serial_numbers'):
                units = ledger.receive_units(pk, data['serial_numbers'], data.get('received_on'))
                body = {'received': len(units), 'units': StockUnitSerializer(units, many=True).data}
            else:
                product = ledger.receive_bulk(pk, data['quantity'])
                body = {'received': data['quantity'], 'quantity': product.quantity}
        except ServiceError as e:
            return error_response(e)

        return Response(body, status=status.HTTP_201_CREATED)


class AvailableSerialsView(APIView):
    """
    GET: Available serial numbers for a product, oldest first (max 100).
    """
    permission_classes = [IsOperator]

    def get(self, request, pk):
        if not Product.objects.filter(id=pk).exists():
            return Response(
                {'error': 'Not Found', 'detail': f'Product {pk} not found'},
                status=status.HTTP_404_NOT_FOUND
            )
        return Response(ledger.available_serials(pk))
