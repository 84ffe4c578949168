"""
Sales API Views.

Implements:
- POST /sales/orders/ - Place a pending order
- DELETE /sales/orders/{invoice}/ - Customer cancels own pending order
- GET /sales/pending-orders/ - Orders awaiting serial numbers
- GET /sales/pending-orders/{invoice}/ - Lines awaiting serial numbers
- DELETE /sales/pending-orders/{invoice}/ - Operator cancels an order
- PUT /sales/pending-orders/{invoice}/assign-serials/ - Bind serial numbers
"""
import logging

from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import APIView

from core.exceptions import ServiceError, error_response, server_error_response
from core.permissions import IsOperator, is_operator
from .serializers import (
    AssignSerialsSerializer,
    OrderCreateSerializer,
    PendingOrderSerializer,
    SaleLineSerializer,
)
from .services import (
    assign_serials,
    cancel_order,
    pending_order_detail,
    pending_orders,
    place_order,
)

logger = logging.getLogger(__name__)


class OrderCreateView(APIView):
    """
    POST: Place an order. Serialized items wait for serial assignment.

    Returns:
        - 201: Order placed, body holds the created lines
        - 400: Validation error
        - 404: Product not found
        - 409: Insufficient stock
    """

    def post(self, request):
        serializer = OrderCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        if is_operator(request.user):
            operator = request.user
            customer = data.get('customer_id')
        else:
            operator = None
            customer = request.user

        try:
            lines = place_order(
                items=[dict(item) for item in data['items']],
                customer_name=data['customer_name'],
                customer_phone=data['customer_phone'],
                sales_type=data['sales_type'],
                customer=customer,
                operator=operator,
            )
        except ServiceError as e:
            return error_response(e)
        except Exception as e:
            logger.exception(f"Unexpected error placing order: {e}")
            return server_error_response('An unexpected error occurred')

        return Response(
            {
                'invoice_number': lines[0].invoice_number,
                'lines': SaleLineSerializer(lines, many=True).data,
            },
            status=status.HTTP_201_CREATED
        )


class CustomerOrderCancelView(APIView):
    """DELETE: A customer cancels their own order before any unit is bound."""

    def delete(self, request, invoice_number):
        try:
            count = cancel_order(invoice_number, customer=request.user)
        except ServiceError as e:
            return error_response(e)
        return Response({'invoice_number': invoice_number, 'cancelled_lines': count})


class PendingOrderListView(APIView):
    """GET: Orders with at least one line awaiting a serial number."""
    permission_classes = [IsOperator]

    def get(self, request):
        return Response(PendingOrderSerializer(pending_orders(), many=True).data)


class PendingOrderDetailView(APIView):
    """
    GET: Lines of an order still awaiting serial numbers.
    DELETE: Cancel the order (only while no line is bound).
    """
    permission_classes = [IsOperator]

    def get(self, request, invoice_number):
        try:
            lines = pending_order_detail(invoice_number)
        except ServiceError as e:
            return error_response(e)
        return Response({
            'invoice_number': invoice_number,
            'items': SaleLineSerializer(lines, many=True).data,
        })

    def delete(self, request, invoice_number):
        try:
            count = cancel_order(invoice_number)
        except ServiceError as e:
            return error_response(e)
        return Response({'invoice_number': invoice_number, 'cancelled_lines': count})


class AssignSerialsView(APIView):
    """
    PUT: Assign serial numbers to pending lines of one order.

    The whole batch is applied atomically; any rejected assignment leaves
    the order and stock untouched.

    Returns:
        - 200: {"all_assigned": bool, ...}
        - 400/404/409: Rejected, nothing changed
    """
    permission_classes = [IsOperator]

    def put(self, request, invoice_number):
        serializer = AssignSerialsSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            result = assign_serials(
                invoice_number,
                [dict(a) for a in serializer.validated_data['assignments']],
                operator=request.user
            )
        except ServiceError as e:
            return error_response(e)
        except Exception as e:
            logger.exception(f"Unexpected error assigning serials on {invoice_number}: {e}")
            return server_error_response('Failed to assign serial numbers')

        message = (
            'Serial numbers assigned successfully. Order is now complete.'
            if result.all_assigned else
            'Serial numbers assigned successfully. Some items still pending.'
        )
        return Response({
            'invoice_number': result.invoice_number,
            'assigned_count': result.assigned_count,
            'all_assigned': result.all_assigned,
            'message': message,
        })
