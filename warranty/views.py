"""
Warranty API Views.

Implements:
- GET /warranty/battery-status/{serial}/ - Guarantee/warranty status (rate limited)
- GET /warranty/slabs/ - Active discount slabs
- GET /warranty/replacements/ - Replacement history
- POST /warranty/replacements/ - Replace a battery
- POST /warranty/expiring-guarantees/ - Run the expiring-guarantee sweep now
"""
import logging

from rest_framework import generics, status
from rest_framework.response import Response
from rest_framework.views import APIView

from core.exceptions import NotFoundError, ServiceError, error_response, server_error_response
from core.permissions import IsOperator, is_operator
from core.rate_limiting import rate_limit
from .serializers import (
    BatteryStatusSerializer,
    ExpiringGuaranteeRequestSerializer,
    ExpiringGuaranteeSerializer,
    ReplaceBatterySerializer,
    ReplacementRecordSerializer,
    WarrantySlabSerializer,
)
from .services import (
    UNKNOWN_BATTERY,
    active_slabs,
    check_battery_status,
    notify_expiring_guarantees,
    replace_battery,
    replacement_history,
)

logger = logging.getLogger(__name__)


class BatteryStatusView(APIView):
    """
    GET: Replacement eligibility of a sold battery.

    Customers may only look up their own batteries. Another customer's
    serial gets the same 404 as a serial that was never sold.

    Returns:
        - 200: Status with eligibility, matching slab and latest replacement
        - 404: Serial never sold, or sold to another customer
        - 429: Rate limit exceeded
    """

    @rate_limit(max_requests=30, window_seconds=60)
    def get(self, request, serial_number):
        try:
            battery = check_battery_status(serial_number)
            if not is_operator(request.user) and battery.sale_line.customer_id != request.user.id:
                raise NotFoundError(UNKNOWN_BATTERY)
        except ServiceError as e:
            return error_response(e)

        return Response(BatteryStatusSerializer(battery).data)


class WarrantySlabListView(generics.ListAPIView):
    """GET: Active warranty slabs, lowest range first."""
    serializer_class = WarrantySlabSerializer
    pagination_class = None

    def get_queryset(self):
        return active_slabs()


class ReplacementListCreateView(generics.ListAPIView):
    """
    GET: Replacement history. Customers see their own; operators see all,
         optionally filtered with ?customer_id=
    POST: Replace a battery (operators only)
    """
    serializer_class = ReplacementRecordSerializer

    def get_queryset(self):
        if not is_operator(self.request.user):
            return replacement_history(customer=self.request.user)

        queryset = replacement_history()
        customer_id = self.request.query_params.get('customer_id')
        if customer_id:
            queryset = queryset.filter(customer_id=customer_id)
        return queryset

    def post(self, request):
        if not is_operator(request.user):
            return Response(
                {'error': 'Forbidden', 'detail': IsOperator.message},
                status=status.HTTP_403_FORBIDDEN
            )

        serializer = ReplaceBatterySerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        try:
            record = replace_battery(
                original_line_id=data['sale_line_id'],
                new_product_id=data['new_product_id'],
                new_serial_number=data['new_serial_number'],
                replacement_type=data['replacement_type'],
                slab_id=data.get('warranty_slab_id'),
                notes=data.get('notes', ''),
                operator=request.user,
            )
        except ServiceError as e:
            return error_response(e)
        except Exception as e:
            logger.exception(f"Unexpected error creating replacement: {e}")
            return server_error_response('Failed to create replacement')

        message = (
            'Battery replaced under guarantee (free of charge)'
            if record.replacement_type == record.Type.GUARANTEE else
            f'Battery replaced under warranty with {record.discount_percentage}% discount'
        )
        return Response(
            {
                'replacement': ReplacementRecordSerializer(record).data,
                'message': message,
            },
            status=status.HTTP_201_CREATED
        )


class ExpiringGuaranteeView(APIView):
    """POST: Notify operators about guarantees ending in the next days."""
    permission_classes = [IsOperator]

    def post(self, request):
        serializer = ExpiringGuaranteeRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            summary = notify_expiring_guarantees(serializer.validated_data.get('days_ahead'))
        except ServiceError as e:
            return error_response(e)

        return Response({
            'expiring': summary['expiring'],
            'notifications_created': summary['notifications_created'],
            'items': ExpiringGuaranteeSerializer(summary['items'], many=True).data,
        })
