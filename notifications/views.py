"""
Notification inbox API.

Implements:
- GET /notifications/ - Current user's notifications
- POST /notifications/{id}/read/ - Mark one as read
"""
from rest_framework import generics, status
from rest_framework.response import Response
from rest_framework.views import APIView

from .models import Notification
from .serializers import NotificationSerializer
from .services import mark_read


class NotificationListView(generics.ListAPIView):
    """
    GET: List the caller's notifications, newest first.

    Query Parameters:
        - unread: Only unread notifications (true/false)
    """
    serializer_class = NotificationSerializer

    def get_queryset(self):
        queryset = Notification.objects.filter(recipient=self.request.user)
        if self.request.query_params.get('unread', '').lower() == 'true':
            queryset = queryset.filter(is_read=False)
        return queryset


class NotificationReadView(APIView):

    def post(self, request, pk):
        if not mark_read(request.user, pk):
            return Response(
                {'error': 'Not Found', 'detail': 'Notification not found'},
                status=status.HTTP_404_NOT_FOUND
            )
        return Response({'id': pk, 'is_read': True})
