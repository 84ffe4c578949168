"""
Tests for the shared error rendering, access rules and rate limiter.
"""
from unittest.mock import MagicMock, patch

import redis
from django.contrib.auth.models import AnonymousUser
from django.test import SimpleTestCase, override_settings
from rest_framework.response import Response
from rest_framework.test import APIRequestFactory

from core.exceptions import (
    ConflictError,
    InconsistencyError,
    NotFoundError,
    ServiceValidationError,
    error_response,
)
from core.permissions import IsOperator, IsOperatorOrReadOnly
from core.rate_limiting import rate_limit


class ErrorResponseTestCase(SimpleTestCase):

    def test_status_codes(self):
        self.assertEqual(error_response(ServiceValidationError('bad')).status_code, 400)
        self.assertEqual(error_response(NotFoundError('gone')).status_code, 404)
        self.assertEqual(error_response(ConflictError('taken')).status_code, 409)
        self.assertEqual(error_response(InconsistencyError('mismatch')).status_code, 422)

    def test_extra_fields_are_merged_into_body(self):
        response = error_response(ConflictError('Already replaced', replacement_id=7))

        self.assertEqual(response.data, {
            'error': 'Conflict',
            'detail': 'Already replaced',
            'replacement_id': 7,
        })


class PermissionTestCase(SimpleTestCase):

    def setUp(self):
        self.factory = APIRequestFactory()

    def _request(self, method, user):
        request = getattr(self.factory, method)('/')
        request.user = user
        return request

    def _user(self, is_staff):
        return MagicMock(is_authenticated=True, is_staff=is_staff)

    def test_operator_only(self):
        permission = IsOperator()

        self.assertTrue(permission.has_permission(self._request('get', self._user(True)), None))
        self.assertFalse(permission.has_permission(self._request('get', self._user(False)), None))
        self.assertFalse(permission.has_permission(self._request('get', AnonymousUser()), None))

    def test_customers_read_only(self):
        permission = IsOperatorOrReadOnly()
        customer = self._user(False)

        self.assertTrue(permission.has_permission(self._request('get', customer), None))
        self.assertFalse(permission.has_permission(self._request('post', customer), None))
        self.assertTrue(permission.has_permission(self._request('post', self._user(True)), None))
        self.assertFalse(permission.has_permission(self._request('get', AnonymousUser()), None))


class LimitedView:

    @rate_limit(max_requests=2, window_seconds=60)
    def get(self, request):
        return Response({'ok': True})


@override_settings(RATE_LIMIT_ENABLED=True)
class RateLimitTestCase(SimpleTestCase):

    def setUp(self):
        self.request = APIRequestFactory().get('/', REMOTE_ADDR='10.0.0.5')
        self.view = LimitedView()

    @patch('core.rate_limiting.get_redis_client')
    def test_blocks_after_limit(self, mock_client):
        client = MagicMock()
        client.incr.side_effect = [1, 2, 3]
        client.ttl.return_value = 42
        mock_client.return_value = client

        first = self.view.get(self.request)
        second = self.view.get(self.request)
        third = self.view.get(self.request)

        self.assertEqual(first.status_code, 200)
        self.assertEqual(first['X-RateLimit-Remaining'], '1')
        self.assertEqual(second['X-RateLimit-Remaining'], '0')
        self.assertEqual(third.status_code, 429)
        self.assertEqual(third['Retry-After'], '42')
        client.expire.assert_called_once_with('rate_limit:LimitedView:ip:10.0.0.5', 60)

    @patch('core.rate_limiting.get_redis_client', return_value=None)
    def test_fails_open_without_redis(self, mock_client):
        for _ in range(5):
            self.assertEqual(self.view.get(self.request).status_code, 200)

    @patch('core.rate_limiting.get_redis_client')
    def test_fails_open_on_redis_error(self, mock_client):
        client = MagicMock()
        client.incr.side_effect = redis.ConnectionError('down')
        mock_client.return_value = client

        self.assertEqual(self.view.get(self.request).status_code, 200)

    @override_settings(RATE_LIMIT_ENABLED=False)
    @patch('core.rate_limiting.get_redis_client')
    def test_disabled_by_setting(self, mock_client):
        self.assertEqual(self.view.get(self.request).status_code, 200)
        mock_client.assert_not_called()
