"""
Tests for order placement and serial number assignment.

Test Cases:
1. Pending order creates unallocated lines without consuming stock
2. Order rejected with insufficient (or already promised) stock
3. Order completes only after its last line is bound
4. Discount recomputed from MRP on assignment
5. A serial number is bound at most once
6. Atomic rollback of a partially invalid batch
7. Cancellation before and after binding
8. Concurrent assignment of the same serial (PostgreSQL only)
"""
import datetime
import threading
import unittest
from decimal import Decimal
from unittest.mock import patch

from django.contrib.auth import get_user_model
from django.db import connection
from django.test import TestCase, TransactionTestCase
from rest_framework.test import APIClient

from core.exceptions import ConflictError, NotFoundError, ServiceValidationError
from inventory import ledger
from inventory.models import Category, Product, StockUnit
from notifications.models import Notification
from sales.models import SaleLine
from sales.services import (
    assign_serials,
    cancel_order,
    next_invoice_number,
    order_is_complete,
    pending_order_detail,
    pending_orders,
    place_order,
)

User = get_user_model()


class SalesFixtureMixin:

    def create_catalog(self):
        self.operator = User.objects.create_user('operator', password='pw', is_staff=True)
        self.customer = User.objects.create_user('ravi', password='pw')

        self.bike = Category.objects.create(name='Bike', slug='bike')
        self.water = Category.objects.create(name='Water', slug='water', is_serialized=False)

        self.product = Product.objects.create(
            sku='EXIDE-XLTZ5',
            name='Exide Xplore XLTZ5',
            category=self.bike,
            warranty='24F+24P',
            mrp=Decimal('1450.00')
        )
        self.other_product = Product.objects.create(
            sku='AMARON-ETZ9',
            name='Amaron Pro Bike Rider ETZ9',
            category=self.bike,
            warranty='24F+24P',
            mrp=Decimal('2350.00')
        )
        self.distilled = Product.objects.create(
            sku='WATER-5L',
            name='Distilled Water 5L',
            category=self.water,
            mrp=Decimal('90.00')
        )

        ledger.receive_units(self.product.id, ['XL001', 'XL002', 'XL003', 'XL004'])
        ledger.receive_units(self.other_product.id, ['ETZ001'])
        ledger.receive_bulk(self.distilled.id, 10)

    def place(self, quantity=3, product=None, customer=None):
        return place_order(
            [{'product_id': (product or self.product).id, 'quantity': quantity}],
            customer_name='Ravi Kumar',
            customer_phone='9876543210',
            customer=customer or self.customer,
            operator=self.operator
        )


class OrderPlacementTestCase(SalesFixtureMixin, TestCase):
    """Test cases for placing pending orders."""

    def setUp(self):
        self.create_catalog()

    def test_pending_order_creates_unallocated_lines(self):
        """
        Test: One unallocated line per unit, priced at MRP, stock untouched.
        """
        lines = self.place(quantity=3)

        self.assertEqual(len(lines), 3)
        self.assertEqual(len({line.invoice_number for line in lines}), 1)
        self.assertRegex(lines[0].invoice_number, r'^INV-\d{8}-\d{4}$')

        for line in lines:
            self.assertTrue(line.is_unallocated)
            self.assertIsNone(line.serial_number)
            self.assertEqual(line.mrp, Decimal('1450.00'))
            self.assertEqual(line.final_amount, Decimal('1450.00'))
            self.assertEqual(line.discount_amount, Decimal('0.00'))
            # 1450 * 0.18 / 1.18
            self.assertEqual(line.tax, Decimal('221.19'))
            self.assertEqual(line.warranty, '24F+24P')

        # Units are consumed at assignment, not at placement
        self.product.refresh_from_db()
        self.assertEqual(self.product.quantity, 4)
        self.assertEqual(
            StockUnit.objects.filter(product=self.product, status=StockUnit.Status.AVAILABLE).count(), 4
        )

    def test_unit_price_sets_final_amount_and_discount(self):
        lines = place_order(
            [{'product_id': self.product.id, 'quantity': 1, 'unit_price': '1300.00'}],
            'Ravi Kumar', '9876543210', operator=self.operator
        )
        self.assertEqual(lines[0].final_amount, Decimal('1300.00'))
        self.assertEqual(lines[0].discount_amount, Decimal('150.00'))

    def test_order_rejected_with_insufficient_stock(self):
        """
        Test: Requesting more units than available is a conflict and
        writes nothing.
        """
        with self.assertRaises(ConflictError) as context:
            self.place(quantity=5)

        self.assertIn('Insufficient stock', context.exception.detail)
        self.assertIn('Exide Xplore XLTZ5', context.exception.detail)
        self.assertFalse(SaleLine.objects.exists())

    def test_promised_units_are_not_available_to_new_orders(self):
        self.place(quantity=3)

        with self.assertRaises(ConflictError) as context:
            self.place(quantity=2)

        self.assertIn('available 1', context.exception.detail)

    def test_non_serialized_items_are_deducted_at_placement(self):
        lines = self.place(quantity=4, product=self.distilled)

        for line in lines:
            self.assertEqual(line.allocation_state, SaleLine.AllocationState.NOT_APPLICABLE)
        self.distilled.refresh_from_db()
        self.assertEqual(self.distilled.quantity, 6)
        self.assertTrue(order_is_complete(lines[0].invoice_number))

    def test_validation_errors(self):
        with self.assertRaises(ServiceValidationError):
            place_order([], 'Ravi Kumar', '9876543210')

        with self.assertRaises(ServiceValidationError):
            place_order([{'product_id': self.product.id, 'quantity': 0}], 'Ravi Kumar', '9876543210')

        with self.assertRaises(ServiceValidationError) as context:
            place_order(
                [
                    {'product_id': self.product.id, 'quantity': 1},
                    {'product_id': self.product.id, 'quantity': 1},
                ],
                'Ravi Kumar', '9876543210'
            )
        self.assertIn('duplicate', context.exception.detail.lower())

        with self.assertRaises(ServiceValidationError):
            place_order([{'product_id': self.product.id, 'quantity': 1}], '', '9876543210')

    def test_unknown_product_not_found(self):
        with self.assertRaises(NotFoundError):
            place_order([{'product_id': 99999, 'quantity': 1}], 'Ravi Kumar', '9876543210')

    def test_customer_order_notifies_operators(self):
        place_order(
            [{'product_id': self.product.id, 'quantity': 1}],
            'Ravi Kumar', '9876543210', customer=self.customer
        )
        self.assertTrue(
            Notification.objects.filter(recipient=self.operator, title='New Order').exists()
        )

    def test_invoice_numbers_are_sequential_per_day(self):
        day = datetime.date(2026, 1, 5)
        self.assertEqual(next_invoice_number(day), 'INV-20260105-0001')
        self.assertEqual(next_invoice_number(day), 'INV-20260105-0002')
        self.assertEqual(next_invoice_number(datetime.date(2026, 1, 6)), 'INV-20260106-0001')

    def test_pending_orders_summary(self):
        lines = self.place(quantity=2)
        self.place(quantity=1, product=self.distilled)

        orders = list(pending_orders())

        self.assertEqual(len(orders), 1)
        self.assertEqual(orders[0]['invoice_number'], lines[0].invoice_number)
        self.assertEqual(orders[0]['item_count'], 2)
        self.assertEqual(orders[0]['pending_items_count'], 2)
        self.assertEqual(orders[0]['total_amount'], Decimal('2900.00'))
        self.assertEqual(pending_order_detail(lines[0].invoice_number).count(), 2)


class SerialAssignmentTestCase(SalesFixtureMixin, TestCase):
    """Test cases for binding serial numbers to pending lines."""

    def setUp(self):
        self.create_catalog()
        self.lines = self.place(quantity=3)
        self.invoice = self.lines[0].invoice_number

    def assign(self, line, serial, final_amount=None, invoice=None):
        assignment = {'line_id': line.id, 'serial_number': serial}
        if final_amount is not None:
            assignment['final_amount'] = final_amount
        return assign_serials(invoice or line.invoice_number, [assignment], operator=self.operator)

    def test_order_completes_after_last_assignment(self):
        """
        Test: all_assigned stays false until the third line is bound.
        """
        first = self.assign(self.lines[0], 'XL001')
        second = self.assign(self.lines[1], 'XL002')
        self.assertFalse(first.all_assigned)
        self.assertFalse(second.all_assigned)
        self.assertFalse(order_is_complete(self.invoice))

        third = self.assign(self.lines[2], 'XL003')
        self.assertTrue(third.all_assigned)
        self.assertEqual(third.assigned_count, 1)
        self.assertTrue(order_is_complete(self.invoice))

        self.product.refresh_from_db()
        self.assertEqual(self.product.quantity, 1)
        self.assertEqual(
            list(StockUnit.objects.filter(product=self.product, status=StockUnit.Status.AVAILABLE)
                 .values_list('serial_number', flat=True)),
            ['XL004']
        )

    def test_batch_assignment(self):
        result = assign_serials(self.invoice, [
            {'line_id': self.lines[0].id, 'serial_number': 'XL001'},
            {'line_id': self.lines[1].id, 'serial_number': ' XL002 '},
            {'line_id': self.lines[2].id, 'serial_number': 'XL003'},
        ])

        self.assertEqual(result.assigned_count, 3)
        self.assertTrue(result.all_assigned)
        line = SaleLine.objects.get(id=self.lines[1].id)
        self.assertEqual(line.serial_number, 'XL002')
        self.assertEqual(line.allocation_label, 'XL002')

    def test_assignment_recomputes_discount_from_mrp(self):
        """
        Test: discount == max(0, MRP - final_amount) after assignment.
        """
        self.assign(self.lines[0], 'XL001', final_amount='1300.00')
        self.assign(self.lines[1], 'XL002', final_amount='1600.00')
        self.assign(self.lines[2], 'XL003')

        discounted, marked_up, unchanged = SaleLine.objects.filter(
            id__in=[line.id for line in self.lines]
        ).order_by('id')
        self.assertEqual(discounted.final_amount, Decimal('1300.00'))
        self.assertEqual(discounted.discount_amount, Decimal('150.00'))
        self.assertEqual(marked_up.discount_amount, Decimal('0.00'))
        self.assertEqual(unchanged.final_amount, Decimal('1450.00'))
        self.assertEqual(unchanged.discount_amount, Decimal('0.00'))

    def test_serial_is_bound_at_most_once(self):
        """
        Test: A bound serial is rejected on every other line and the error
        names the invoice holding it.
        """
        other_line = self.place(quantity=1)[0]
        self.assign(self.lines[0], 'XL001')

        with self.assertRaises(ConflictError) as context:
            self.assign(other_line, 'XL001')
        self.assertIn(self.invoice, context.exception.detail)
        self.assertEqual(context.exception.extra['conflicting_invoice'], self.invoice)

        with self.assertRaises(ConflictError):
            self.assign(self.lines[1], 'XL001')

        self.assertEqual(
            SaleLine.objects.filter(serial_number='XL001', allocation_state=SaleLine.AllocationState.BOUND).count(),
            1
        )

    def test_bound_line_cannot_be_reassigned(self):
        self.assign(self.lines[0], 'XL001')

        with self.assertRaises(ConflictError) as context:
            self.assign(self.lines[0], 'XL002')
        self.assertIn('already has a serial number', context.exception.detail)

    def test_completed_order_rejects_reassignment_as_conflict(self):
        """
        Test: Once every line is bound, repeating an assignment is a conflict.
        """
        line = self.place(quantity=1)[0]
        self.assertTrue(self.assign(line, 'XL001').all_assigned)

        with self.assertRaises(ConflictError) as context:
            self.assign(line, 'XL001')
        self.assertIn('already has a serial number', context.exception.detail)

        with self.assertRaises(ConflictError):
            self.assign(line, 'XL002')

        self.assertTrue(ledger.is_available(self.product.id, 'XL002'))
        line.refresh_from_db()
        self.assertEqual(line.serial_number, 'XL001')

    def test_failed_batch_leaves_everything_untouched(self):
        """
        Test: One bad assignment aborts the whole batch.
        """
        with self.assertRaises(ConflictError):
            assign_serials(self.invoice, [
                {'line_id': self.lines[0].id, 'serial_number': 'XL001'},
                {'line_id': self.lines[1].id, 'serial_number': 'NO-SUCH-SERIAL'},
            ])

        self.assertFalse(SaleLine.objects.filter(allocation_state=SaleLine.AllocationState.BOUND).exists())
        self.assertTrue(ledger.is_available(self.product.id, 'XL001'))
        self.product.refresh_from_db()
        self.assertEqual(self.product.quantity, 4)

    def test_serial_of_another_product_is_rejected(self):
        with self.assertRaises(ConflictError):
            self.assign(self.lines[0], 'ETZ001')
        self.assertTrue(ledger.is_available(self.other_product.id, 'ETZ001'))

    def test_line_from_another_order_not_found(self):
        other_line = self.place(quantity=1)[0]

        with self.assertRaises(NotFoundError):
            self.assign(other_line, 'XL001', invoice=self.invoice)

    def test_unknown_order_not_found(self):
        with self.assertRaises(NotFoundError):
            assign_serials('INV-19990101-0001', [{'line_id': 1, 'serial_number': 'XL001'}])

    def test_malformed_batches(self):
        with self.assertRaises(ServiceValidationError):
            assign_serials(self.invoice, [])

        with self.assertRaises(ServiceValidationError):
            assign_serials(self.invoice, [
                {'line_id': self.lines[0].id, 'serial_number': 'XL001'},
                {'line_id': self.lines[1].id, 'serial_number': 'XL001'},
            ])

        with self.assertRaises(ServiceValidationError):
            self.assign(self.lines[0], 'XL001', final_amount='-5')

        with self.assertRaises(ServiceValidationError):
            self.assign(self.lines[0], '   ')

    def test_completion_notifies_customer_after_commit(self):
        with self.captureOnCommitCallbacks() as callbacks:
            assign_serials(self.invoice, [
                {'line_id': line.id, 'serial_number': serial}
                for line, serial in zip(self.lines, ['XL001', 'XL002', 'XL003'])
            ])

        notification = Notification.objects.get(recipient=self.customer, title='Order Completed')
        self.assertIn(self.invoice, notification.message)
        self.assertIn('4,350.00', notification.message)
        self.assertEqual(notification.delivery_status, Notification.DeliveryStatus.PENDING)
        self.assertEqual(len(callbacks), 1)

    def test_partial_assignment_sends_no_completion_notice(self):
        self.assign(self.lines[0], 'XL001')
        self.assertFalse(Notification.objects.filter(title='Order Completed').exists())


class OrderCancellationTestCase(SalesFixtureMixin, TestCase):

    def setUp(self):
        self.create_catalog()

    def test_cancel_deletes_lines_and_restocks_bulk_items(self):
        lines = place_order(
            [
                {'product_id': self.product.id, 'quantity': 1},
                {'product_id': self.distilled.id, 'quantity': 2},
            ],
            'Ravi Kumar', '9876543210', customer=self.customer, operator=self.operator
        )
        invoice = lines[0].invoice_number

        self.assertEqual(cancel_order(invoice), 3)

        self.assertFalse(SaleLine.objects.filter(invoice_number=invoice).exists())
        self.distilled.refresh_from_db()
        self.assertEqual(self.distilled.quantity, 10)
        self.assertTrue(
            Notification.objects.filter(recipient=self.customer, title='Order Cancelled').exists()
        )

    def test_cancel_rejected_once_a_line_is_bound(self):
        lines = self.place(quantity=2)
        invoice = lines[0].invoice_number
        assign_serials(invoice, [{'line_id': lines[0].id, 'serial_number': 'XL001'}])

        with self.assertRaises(ConflictError):
            cancel_order(invoice)
        self.assertEqual(SaleLine.objects.filter(invoice_number=invoice).count(), 2)

    def test_customer_can_only_cancel_own_order(self):
        lines = self.place(quantity=1)
        stranger = User.objects.create_user('stranger', password='pw')

        with self.assertRaises(NotFoundError):
            cancel_order(lines[0].invoice_number, customer=stranger)

        cancel_order(lines[0].invoice_number, customer=self.customer)
        self.assertTrue(
            Notification.objects.filter(recipient=self.operator, title='Order Cancelled').exists()
        )


class SalesApiTestCase(SalesFixtureMixin, TestCase):
    """Test cases for the pending-order endpoints."""

    def setUp(self):
        self.create_catalog()
        self.client = APIClient()

    def test_customer_places_order(self):
        self.client.force_authenticate(user=self.customer)

        response = self.client.post('/api/sales/orders/', {
            'customer_name': 'Ravi Kumar',
            'customer_phone': '9876543210',
            'items': [{'product_id': self.product.id, 'quantity': 2}],
        }, format='json')

        self.assertEqual(response.status_code, 201)
        self.assertEqual(len(response.data['lines']), 2)
        self.assertEqual(response.data['lines'][0]['allocation_state'], 'unallocated')
        self.assertEqual(SaleLine.objects.filter(customer=self.customer).count(), 2)

    def test_insufficient_stock_is_409(self):
        self.client.force_authenticate(user=self.customer)

        response = self.client.post('/api/sales/orders/', {
            'customer_name': 'Ravi Kumar',
            'customer_phone': '9876543210',
            'items': [{'product_id': self.product.id, 'quantity': 9}],
        }, format='json')

        self.assertEqual(response.status_code, 409)
        self.assertEqual(response.data['error'], 'Conflict')

    def test_pending_orders_require_operator(self):
        self.client.force_authenticate(user=self.customer)
        self.assertEqual(self.client.get('/api/sales/pending-orders/').status_code, 403)

        self.client.force_authenticate(user=self.operator)
        self.place(quantity=1)
        response = self.client.get('/api/sales/pending-orders/')
        self.assertEqual(response.status_code, 200)
        self.assertEqual(len(response.data), 1)

    def test_assign_serials_endpoint(self):
        lines = self.place(quantity=2)
        invoice = lines[0].invoice_number
        url = f'/api/sales/pending-orders/{invoice}/assign-serials/'
        self.client.force_authenticate(user=self.operator)

        response = self.client.put(url, {
            'assignments': [{'line_id': lines[0].id, 'serial_number': 'XL001', 'final_amount': '1400.00'}]
        }, format='json')
        self.assertEqual(response.status_code, 200)
        self.assertFalse(response.data['all_assigned'])

        response = self.client.put(url, {
            'assignments': [{'line_id': lines[1].id, 'serial_number': 'XL001'}]
        }, format='json')
        self.assertEqual(response.status_code, 409)
        self.assertEqual(response.data['conflicting_invoice'], invoice)

        response = self.client.put(url, {
            'assignments': [{'line_id': lines[1].id, 'serial_number': 'XL002'}]
        }, format='json')
        self.assertEqual(response.status_code, 200)
        self.assertTrue(response.data['all_assigned'])

    def test_operator_cancels_pending_order(self):
        lines = self.place(quantity=1)
        self.client.force_authenticate(user=self.operator)

        response = self.client.delete(f'/api/sales/pending-orders/{lines[0].invoice_number}/')

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data['cancelled_lines'], 1)


@unittest.skipUnless(connection.vendor == 'postgresql', 'Row locking needs PostgreSQL')
class ConcurrentAssignmentTestCase(SalesFixtureMixin, TransactionTestCase):
    """
    Two operators racing to bind the same serial to different orders.
    Uses TransactionTestCase for proper multi-threading support.
    """

    def setUp(self):
        self.create_catalog()
        self.first = self.place(quantity=1)[0]
        self.second = self.place(quantity=1)[0]

    def test_same_serial_bound_once_under_race(self):
        results = {}

        def bind(key, line):
            try:
                assign_serials(line.invoice_number, [{'line_id': line.id, 'serial_number': 'XL001'}])
                results[key] = 'bound'
            except ConflictError:
                results[key] = 'conflict'
            finally:
                connection.close()

        with patch('notifications.services.dispatch'):
            threads = [
                threading.Thread(target=bind, args=('first', self.first)),
                threading.Thread(target=bind, args=('second', self.second)),
            ]
            for thread in threads:
                thread.start()
            for thread in threads:
                thread.join()

        self.assertEqual(sorted(results.values()), ['bound', 'conflict'])
        self.assertEqual(
            SaleLine.objects.filter(serial_number='XL001', allocation_state=SaleLine.AllocationState.BOUND).count(),
            1
        )
        self.product.refresh_from_db()
        self.assertEqual(self.product.quantity, 3)
