"""
Tests for notification recording, delivery and the inbox API.
"""
from unittest.mock import patch

from django.contrib.auth import get_user_model
from django.test import TestCase, override_settings
from rest_framework.test import APIClient

from notifications.models import Notification
from notifications.services import dispatch, mark_read, notify, operator_recipients
from notifications.tasks import deliver_notification

User = get_user_model()


def failing_sink(notification):
    raise ConnectionError('SMS gateway unreachable')


class NotifyTestCase(TestCase):

    def setUp(self):
        self.operator = User.objects.create_user('operator', password='pw', is_staff=True)
        self.customer = User.objects.create_user('ravi', password='pw')

    def test_rows_recorded_and_dispatched_on_commit(self):
        with patch('notifications.services.dispatch') as mock_dispatch:
            with self.captureOnCommitCallbacks(execute=True) as callbacks:
                created = notify(
                    [self.operator, None, self.customer],
                    'Order Completed',
                    'Invoice INV-20260310-0001 is ready',
                    invoice_number='INV-20260310-0001'
                )

        self.assertEqual(len(created), 2)
        self.assertEqual(len(callbacks), 1)
        mock_dispatch.assert_called_once_with([n.id for n in created])
        self.assertTrue(all(
            n.delivery_status == Notification.DeliveryStatus.PENDING for n in created
        ))

    def test_single_user_and_empty_recipients(self):
        self.assertEqual(len(notify(self.customer, 'Hello', 'Welcome')), 1)
        self.assertEqual(notify(None, 'Hello', 'Welcome'), [])
        self.assertEqual(notify([], 'Hello', 'Welcome'), [])

    def test_operator_recipients_are_active_staff(self):
        User.objects.create_user('retired', password='pw', is_staff=True, is_active=False)

        self.assertEqual(list(operator_recipients()), [self.operator])

    def test_delivery_marks_sent(self):
        notification = notify(self.customer, 'Hello', 'Welcome')[0]

        result = deliver_notification(notification.id)

        self.assertEqual(result['status'], 'success')
        notification.refresh_from_db()
        self.assertEqual(notification.delivery_status, Notification.DeliveryStatus.SENT)
        self.assertIsNotNone(notification.delivered_at)

        # A second delivery attempt is a no-op
        self.assertEqual(deliver_notification(notification.id)['status'], 'skipped')

    @override_settings(NOTIFICATION_SINK='notifications.tests.failing_sink')
    def test_sink_failure_marks_failed(self):
        notification = notify(self.customer, 'Hello', 'Welcome')[0]

        result = deliver_notification(notification.id)

        self.assertEqual(result['status'], 'failed')
        notification.refresh_from_db()
        self.assertEqual(notification.delivery_status, Notification.DeliveryStatus.FAILED)
        self.assertIn('SMS gateway unreachable', notification.delivery_error)

    def test_unknown_notification(self):
        self.assertEqual(deliver_notification(99999)['status'], 'error')

    def test_dispatch_survives_broker_outage(self):
        with patch.object(deliver_notification, 'delay', side_effect=OSError('broker down')) as mock_delay:
            dispatch([1, 2])

        self.assertEqual(mock_delay.call_count, 2)

    def test_mark_read_only_for_recipient(self):
        notification = notify(self.customer, 'Hello', 'Welcome')[0]

        self.assertFalse(mark_read(self.operator, notification.id))
        self.assertTrue(mark_read(self.customer, notification.id))
        notification.refresh_from_db()
        self.assertTrue(notification.is_read)


class NotificationApiTestCase(TestCase):

    def setUp(self):
        self.customer = User.objects.create_user('ravi', password='pw')
        self.other = User.objects.create_user('meena', password='pw')
        self.first = notify(self.customer, 'Order Completed', 'Invoice ready')[0]
        self.second = notify(self.customer, 'Guarantee Expiring Soon', 'Guarantee ends in 5 days')[0]
        notify(self.other, 'Hello', 'Not yours')
        self.client = APIClient()
        self.client.force_authenticate(user=self.customer)

    def test_inbox_lists_own_notifications(self):
        response = self.client.get('/api/notifications/')

        self.assertEqual(response.status_code, 200)
        self.assertEqual(
            [n['id'] for n in response.data['results']],
            [self.second.id, self.first.id]
        )

    def test_mark_read_and_filter_unread(self):
        response = self.client.post(f'/api/notifications/{self.first.id}/read/')
        self.assertEqual(response.status_code, 200)

        response = self.client.get('/api/notifications/', {'unread': 'true'})
        self.assertEqual([n['id'] for n in response.data['results']], [self.second.id])

    def test_cannot_read_someone_elses(self):
        theirs = Notification.objects.get(recipient=self.other)

        response = self.client.post(f'/api/notifications/{theirs.id}/read/')

        self.assertEqual(response.status_code, 404)
