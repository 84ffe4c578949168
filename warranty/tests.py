"""
Tests for warranty rules, battery status and battery replacement.

Test Cases:
1. Warranty code parsing never fails
2. Guarantee boundary is inclusive
3. Highest-discount slab wins
4. Warranty replacement prices the new unit off MRP on a new invoice
5. Guarantee replacement is free
6. One replacement per original serial, ever
7. Requested type must match computed eligibility
8. Expiring-guarantee sweep
"""
import datetime
from decimal import Decimal
from unittest.mock import patch

from django.contrib.auth import get_user_model
from django.test import SimpleTestCase, TestCase, override_settings
from django.utils import timezone
from rest_framework.test import APIClient

from core.exceptions import (
    ConflictError,
    InconsistencyError,
    NotFoundError,
    ServiceValidationError,
)
from inventory import ledger
from inventory.models import Category, Product, StockUnit
from notifications.models import Notification
from notifications.tasks import deliver_notification
from sales.models import SaleLine
from warranty.models import ReplacementRecord, WarrantySlab
from warranty.rules import (
    WarrantyWindow,
    add_months,
    evaluate_eligibility,
    months_elapsed,
    parse_warranty,
    resolve_window,
)
from warranty.services import (
    check_battery_status,
    find_expiring_guarantees,
    notify_expiring_guarantees,
    replace_battery,
    replacement_history,
    resolve_slab,
)
from warranty.tasks import notify_expiring_guarantees_task

User = get_user_model()

TODAY = datetime.date(2026, 3, 10)


def broken_sink(notification):
    raise ConnectionError('SMS gateway unreachable')


class WarrantyRulesTestCase(SimpleTestCase):
    """Test cases for the pure warranty rules."""

    def test_parse_warranty_codes(self):
        self.assertEqual(parse_warranty('24F+24P'), WarrantyWindow(24, 24, 48))
        self.assertEqual(parse_warranty('30F'), WarrantyWindow(30, 0, 30))
        self.assertEqual(parse_warranty('48M (24F+18P)'), WarrantyWindow(24, 18, 42))

    def test_parse_warranty_is_total(self):
        for code in ['', 'garbage', 'F+P', '24P', None, 24, ['24F']]:
            with self.subTest(code=code):
                self.assertEqual(parse_warranty(code), WarrantyWindow(0, 0, 0))

    def test_window_precedence(self):
        # Sale-line snapshot wins over the product's current code
        self.assertEqual(resolve_window('12F+12P', '24F+24P', 6), WarrantyWindow(12, 12, 24))
        self.assertEqual(resolve_window('', '24F+24P', 6), WarrantyWindow(24, 24, 48))
        # Legacy months fill in when no code has a guarantee part
        self.assertEqual(resolve_window('', 'n/a', 6), WarrantyWindow(6, 0, 6))
        self.assertEqual(resolve_window(None, None, None), WarrantyWindow(0, 0, 0))

    def test_months_elapsed_ignores_day_of_month(self):
        self.assertEqual(months_elapsed(datetime.date(2025, 1, 31), datetime.date(2025, 2, 1)), 1)
        self.assertEqual(months_elapsed(datetime.date(2025, 1, 1), datetime.date(2025, 1, 31)), 0)
        self.assertEqual(months_elapsed(datetime.date(2024, 11, 20), datetime.date(2026, 3, 10)), 16)

    def test_guarantee_boundary_is_inclusive(self):
        window = WarrantyWindow(12, 12, 24)
        purchase = datetime.date(2024, 3, 15)

        last_month = evaluate_eligibility(purchase, window, datetime.date(2025, 3, 1))
        self.assertEqual(last_month.months_elapsed, 12)
        self.assertTrue(last_month.under_guarantee)
        self.assertEqual(last_month.replacement_type, 'guarantee')

        month_after = evaluate_eligibility(purchase, window, datetime.date(2025, 4, 1))
        self.assertFalse(month_after.under_guarantee)
        self.assertEqual(month_after.months_past_guarantee, 1)
        self.assertTrue(month_after.within_warranty_period)
        self.assertEqual(month_after.replacement_type, 'warranty')

    def test_fourteen_months_into_12f_12p(self):
        eligibility = evaluate_eligibility(
            datetime.date(2025, 1, 20), parse_warranty('12F+12P'), TODAY
        )

        self.assertEqual(eligibility.months_elapsed, 14)
        self.assertFalse(eligibility.under_guarantee)
        self.assertEqual(eligibility.months_past_guarantee, 2)
        self.assertTrue(eligibility.within_warranty_period)
        self.assertTrue(eligibility.eligible_for_replacement)
        self.assertEqual(eligibility.replacement_type, 'warranty')

    def test_out_of_coverage(self):
        eligibility = evaluate_eligibility(
            datetime.date(2023, 1, 1), WarrantyWindow(12, 12, 24), TODAY
        )
        self.assertFalse(eligibility.eligible_for_replacement)
        self.assertIsNone(eligibility.replacement_type)
        self.assertTrue(eligibility.out_of_warranty)

    def test_no_guarantee_months_is_never_under_guarantee(self):
        eligibility = evaluate_eligibility(TODAY, WarrantyWindow(0, 0, 0), TODAY)
        self.assertFalse(eligibility.under_guarantee)
        self.assertFalse(eligibility.within_warranty_period)

    def test_add_months_clamps_to_month_end(self):
        self.assertEqual(add_months(datetime.date(2024, 1, 31), 1), datetime.date(2024, 2, 29))
        self.assertEqual(add_months(datetime.date(2025, 11, 15), 3), datetime.date(2026, 2, 15))
        self.assertEqual(add_months(datetime.date(2026, 3, 10), -14), datetime.date(2025, 1, 10))


class WarrantyFixtureMixin:

    def create_fixtures(self):
        self.operator = User.objects.create_user('operator', password='pw', is_staff=True)
        self.customer = User.objects.create_user('ravi', password='pw')

        self.category = Category.objects.create(name='Car/Truck/Tractor', slug='car-truck-tractor')
        self.product = Product.objects.create(
            sku='EXIDE-ML38B20L',
            name='Exide Mileage ML38B20L',
            category=self.category,
            warranty='12F+12P',
            mrp=Decimal('1000.00')
        )
        self.new_product = Product.objects.create(
            sku='EXIDE-MT40B20L',
            name='Exide Matrix MT40B20L',
            category=self.category,
            warranty='36F+36P',
            mrp=Decimal('1000.00')
        )
        ledger.receive_units(self.new_product.id, ['NEW001', 'NEW002'])

        self.slabs = {
            name: WarrantySlab.objects.create(
                slab_name=name,
                min_months=min_months,
                max_months=max_months,
                discount_percentage=Decimal(discount)
            )
            for name, min_months, max_months, discount in [
                ('0-6', 0, 6, '10.00'),
                ('7-12', 7, 12, '20.00'),
                ('13+', 13, None, '30.00'),
                ('Early', 0, 3, '15.00'),
            ]
        }

        # Bought 14 months before TODAY: past guarantee, within warranty
        self.warranty_line = self.sold_unit('ORIG001', datetime.date(2025, 1, 20))
        # Bought 2 months before TODAY: under guarantee
        self.guarantee_line = self.sold_unit('ORIG002', datetime.date(2026, 1, 10))

    def sold_unit(self, serial, purchase_date, warranty='12F+12P', sales_type=SaleLine.SalesType.WHOLESALE):
        return SaleLine.objects.create(
            invoice_number=f"INV-{purchase_date:%Y%m%d}-0001",
            customer=self.customer,
            customer_name='Ravi Kumar',
            customer_phone='9876543210',
            sales_type=sales_type,
            product=self.product,
            sku=self.product.sku,
            product_name=self.product.name,
            warranty=warranty,
            allocation_state=SaleLine.AllocationState.BOUND,
            serial_number=serial,
            mrp=Decimal('1000.00'),
            final_amount=Decimal('1000.00'),
            purchase_date=purchase_date
        )


class SlabResolutionTestCase(WarrantyFixtureMixin, TestCase):

    def setUp(self):
        self.create_fixtures()

    def test_highest_discount_matching_slab_wins(self):
        self.assertEqual(resolve_slab(7), self.slabs['7-12'])
        self.assertEqual(resolve_slab(2), self.slabs['Early'])
        self.assertEqual(resolve_slab(5), self.slabs['0-6'])
        self.assertEqual(resolve_slab(40), self.slabs['13+'])

    def test_inactive_slabs_are_ignored(self):
        WarrantySlab.objects.update(is_active=False)
        self.assertIsNone(resolve_slab(7))


class BatteryStatusTestCase(WarrantyFixtureMixin, TestCase):

    def setUp(self):
        self.create_fixtures()

    def test_warranty_status_with_slab(self):
        status = check_battery_status('ORIG001', today=TODAY)

        self.assertEqual(status.sale_line, self.warranty_line)
        self.assertEqual(status.window, WarrantyWindow(12, 12, 24))
        self.assertFalse(status.eligibility.under_guarantee)
        self.assertEqual(status.eligibility.months_past_guarantee, 2)
        self.assertEqual(status.slab, self.slabs['Early'])
        self.assertFalse(status.is_replaced)

    def test_guarantee_status_does_not_consult_slabs(self):
        with patch('warranty.services.resolve_slab') as resolver:
            status = check_battery_status('ORIG002', today=TODAY)

        self.assertTrue(status.eligibility.under_guarantee)
        self.assertIsNone(status.slab)
        resolver.assert_not_called()

    def test_unknown_serial_not_found(self):
        with self.assertRaises(NotFoundError):
            check_battery_status('NOPE', today=TODAY)

    def test_serial_still_in_stock_is_not_a_sold_unit(self):
        with self.assertRaises(NotFoundError):
            check_battery_status('NEW001', today=TODAY)

    def test_blank_serial_rejected(self):
        with self.assertRaises(ServiceValidationError):
            check_battery_status('  ', today=TODAY)

    def test_status_reports_latest_replacement(self):
        replace_battery(self.guarantee_line.id, self.new_product.id, 'NEW001', 'guarantee', today=TODAY)

        status = check_battery_status('ORIG002', today=TODAY)

        self.assertTrue(status.is_replaced)
        self.assertEqual(status.latest_replacement.new_serial_number, 'NEW001')


class ReplacementTestCase(WarrantyFixtureMixin, TestCase):
    """Test cases for guarantee and warranty replacements."""

    def setUp(self):
        self.create_fixtures()

    def replace(self, line, replacement_type, serial='NEW001', slab=None, **kwargs):
        return replace_battery(
            original_line_id=line.id,
            new_product_id=self.new_product.id,
            new_serial_number=serial,
            replacement_type=replacement_type,
            slab_id=slab.id if slab else None,
            operator=self.operator,
            today=TODAY,
            **kwargs
        )

    def test_warranty_replacement_end_to_end(self):
        """
        Test: MRP 1000 with a 15% slab is sold for 850.00 on a new invoice
        that keeps the wholesale sales type of the original sale.
        """
        record = self.replace(self.warranty_line, 'warranty', slab=self.slabs['Early'], notes='Cell bulge')

        self.assertEqual(record.replacement_type, 'warranty')
        self.assertEqual(record.discount_percentage, Decimal('15.00'))
        self.assertEqual(record.original_serial_number, 'ORIG001')
        self.assertEqual(record.original_invoice_number, self.warranty_line.invoice_number)
        self.assertEqual(record.notes, 'Cell bulge')
        self.assertEqual(record.created_by, self.operator)

        new_line = record.new_sale_line
        self.assertIsNotNone(new_line)
        self.assertEqual(record.new_invoice_number, new_line.invoice_number)
        self.assertTrue(new_line.invoice_number.startswith('INV-20260310-'))
        self.assertNotEqual(new_line.invoice_number, self.warranty_line.invoice_number)
        self.assertTrue(new_line.is_bound)
        self.assertEqual(new_line.serial_number, 'NEW001')
        self.assertEqual(new_line.mrp, Decimal('1000.00'))
        self.assertEqual(new_line.final_amount, Decimal('850.00'))
        self.assertEqual(new_line.discount_amount, Decimal('150.00'))
        # GST contained in MRP: 1000 * 0.18 / 1.18
        self.assertEqual(new_line.tax, Decimal('152.54'))
        self.assertEqual(new_line.sales_type, SaleLine.SalesType.WHOLESALE)
        self.assertEqual(new_line.customer, self.customer)
        self.assertEqual(new_line.customer_name, 'Ravi Kumar')
        self.assertEqual(new_line.warranty, '36F+36P')
        self.assertEqual(new_line.purchase_date, TODAY)

        self.assertFalse(ledger.is_available(self.new_product.id, 'NEW001'))
        self.new_product.refresh_from_db()
        self.assertEqual(self.new_product.quantity, 1)

        # The original sale is left as it was
        self.warranty_line.refresh_from_db()
        self.assertEqual(self.warranty_line.serial_number, 'ORIG001')

    def test_guarantee_replacement_is_free(self):
        lines_before = SaleLine.objects.count()

        record = self.replace(self.guarantee_line, 'guarantee')

        self.assertEqual(record.discount_percentage, Decimal('0.00'))
        self.assertIsNone(record.new_sale_line)
        self.assertEqual(record.new_invoice_number, '')
        self.assertIsNone(record.warranty_slab)
        self.assertEqual(SaleLine.objects.count(), lines_before)
        self.assertEqual(
            StockUnit.objects.get(product=self.new_product, serial_number='NEW001').status,
            StockUnit.Status.CONSUMED
        )

    def test_guarantee_replacement_ignores_slab(self):
        record = self.replace(self.guarantee_line, 'guarantee', slab=self.slabs['13+'])
        self.assertIsNone(record.warranty_slab)
        self.assertEqual(record.discount_percentage, Decimal('0.00'))

    def test_second_replacement_of_same_serial_rejected(self):
        """
        Test: Exactly one ReplacementRecord per original serial.
        """
        self.replace(self.guarantee_line, 'guarantee', serial='NEW001')

        with self.assertRaises(ConflictError) as context:
            self.replace(self.guarantee_line, 'guarantee', serial='NEW002')

        self.assertIn('already been replaced', context.exception.detail)
        self.assertEqual(ReplacementRecord.objects.filter(original_serial_number='ORIG002').count(), 1)
        self.assertTrue(ledger.is_available(self.new_product.id, 'NEW002'))

    def test_requested_type_must_match_eligibility(self):
        with self.assertRaises(InconsistencyError) as context:
            self.replace(self.warranty_line, 'guarantee')

        self.assertIn('not under guarantee', context.exception.detail)
        self.assertEqual(context.exception.extra['eligibility']['replacement_type'], 'warranty')
        self.assertTrue(ledger.is_available(self.new_product.id, 'NEW001'))

        with self.assertRaises(InconsistencyError) as context:
            self.replace(self.guarantee_line, 'warranty', slab=self.slabs['0-6'])
        self.assertIn('still under guarantee', context.exception.detail)

        self.assertFalse(ReplacementRecord.objects.exists())

    def test_out_of_coverage_unit_rejected(self):
        old_line = self.sold_unit('ORIG003', datetime.date(2023, 1, 5))

        with self.assertRaises(InconsistencyError) as context:
            self.replace(old_line, 'warranty', slab=self.slabs['13+'])

        self.assertIn('out of warranty', context.exception.detail)
        self.assertTrue(context.exception.extra['eligibility']['out_of_warranty'])

    def test_warranty_replacement_requires_active_slab(self):
        with self.assertRaises(ServiceValidationError):
            self.replace(self.warranty_line, 'warranty')

        inactive = self.slabs['7-12']
        inactive.is_active = False
        inactive.save()
        with self.assertRaises(NotFoundError):
            self.replace(self.warranty_line, 'warranty', slab=inactive)

    def test_new_serial_must_be_available(self):
        with self.assertRaises(ConflictError):
            self.replace(self.guarantee_line, 'guarantee', serial='NOT-IN-STOCK')

        # Serial already sold to someone else
        self.sold_unit('NEW002', TODAY)
        with self.assertRaises(ConflictError) as context:
            self.replace(self.guarantee_line, 'guarantee', serial='NEW002')
        self.assertEqual(context.exception.extra['conflicting_invoice'], 'INV-20260310-0001')

        self.assertFalse(ReplacementRecord.objects.exists())

    def test_invalid_requests(self):
        with self.assertRaises(ServiceValidationError):
            self.replace(self.guarantee_line, 'refund')
        with self.assertRaises(ServiceValidationError):
            self.replace(self.guarantee_line, 'guarantee', serial='  ')
        with self.assertRaises(NotFoundError):
            replace_battery(99999, self.new_product.id, 'NEW001', 'guarantee', today=TODAY)
        with self.assertRaises(NotFoundError):
            replace_battery(self.guarantee_line.id, 99999, 'NEW001', 'guarantee', today=TODAY)

    def test_replacement_records_are_append_only(self):
        record = self.replace(self.guarantee_line, 'guarantee')

        record.notes = 'edited'
        with self.assertRaises(ValueError):
            record.save()
        with self.assertRaises(ValueError):
            record.delete()
        self.assertEqual(ReplacementRecord.objects.get(id=record.id).notes, '')

    def test_customer_notified_after_commit(self):
        with self.captureOnCommitCallbacks() as callbacks:
            self.replace(self.warranty_line, 'warranty', slab=self.slabs['Early'])

        notification = Notification.objects.get(recipient=self.customer)
        self.assertEqual(notification.title, 'Battery Replacement - Warranty')
        self.assertIn('ORIG001', notification.message)
        self.assertIn('NEW001', notification.message)
        self.assertEqual(len(callbacks), 1)

    @override_settings(NOTIFICATION_SINK='warranty.tests.broken_sink')
    def test_sink_failure_does_not_undo_replacement(self):
        with patch.object(deliver_notification, 'delay', side_effect=lambda pk: deliver_notification(pk)):
            with self.captureOnCommitCallbacks(execute=True):
                record = self.replace(self.guarantee_line, 'guarantee')

        self.assertTrue(ReplacementRecord.objects.filter(id=record.id).exists())
        notification = Notification.objects.get(recipient=self.customer)
        self.assertEqual(notification.delivery_status, Notification.DeliveryStatus.FAILED)
        self.assertIn('SMS gateway unreachable', notification.delivery_error)

    def test_replacement_history(self):
        self.replace(self.guarantee_line, 'guarantee')
        other = User.objects.create_user('other', password='pw')

        self.assertEqual(replacement_history(self.customer).count(), 1)
        self.assertEqual(replacement_history(other).count(), 0)
        self.assertEqual(replacement_history().count(), 1)


class ExpiringGuaranteeTestCase(WarrantyFixtureMixin, TestCase):

    def setUp(self):
        self.create_fixtures()
        # 12F lines: guarantee ends 12 calendar months after purchase
        self.expiring = self.sold_unit('EXP001', datetime.date(2025, 3, 12))
        self.later = self.sold_unit('EXP002', datetime.date(2025, 3, 25))
        self.expired = self.sold_unit('EXP003', datetime.date(2025, 3, 5))
        self.ends_today = self.sold_unit('EXP004', datetime.date(2025, 3, 10))

    def test_finds_guarantees_ending_within_window(self):
        found = {item.sale_line.serial_number: item for item in find_expiring_guarantees(7, today=TODAY)}

        self.assertEqual(set(found), {'EXP001', 'EXP004'})
        self.assertEqual(found['EXP001'].guarantee_end_date, datetime.date(2026, 3, 12))
        self.assertEqual(found['EXP001'].days_until_expiration, 2)
        self.assertEqual(found['EXP004'].days_text, 'today')

    def test_replaced_units_are_skipped(self):
        ReplacementRecord.objects.create(
            customer=self.customer,
            original_sale_line=self.expiring,
            original_serial_number='EXP001',
            original_purchase_date=self.expiring.purchase_date,
            original_invoice_number=self.expiring.invoice_number,
            replacement_type='guarantee',
            new_product=self.new_product,
            new_serial_number='NEW001'
        )

        serials = [item.sale_line.serial_number for item in find_expiring_guarantees(7, today=TODAY)]
        self.assertEqual(serials, ['EXP004'])

    def test_each_operator_is_warned_once_per_unit(self):
        User.objects.create_user('manager', password='pw', is_staff=True)
        User.objects.create_user('retired', password='pw', is_staff=True, is_active=False)

        summary = notify_expiring_guarantees(7, today=TODAY)

        self.assertEqual(summary['expiring'], 2)
        self.assertEqual(summary['notifications_created'], 4)
        warning = Notification.objects.filter(
            recipient=self.operator, title='Guarantee Expiring Soon'
        ).get(message__contains='EXP001')
        self.assertIn('in 2 days', warning.message)
        self.assertEqual(warning.level, Notification.Level.WARNING)
        self.assertFalse(Notification.objects.filter(recipient=self.customer).exists())

    def test_negative_window_rejected(self):
        with self.assertRaises(ServiceValidationError):
            find_expiring_guarantees(-1, today=TODAY)

    def test_periodic_task_runs_sweep(self):
        with patch('warranty.services.notify_expiring_guarantees', return_value={
            'expiring': 3, 'notifications_created': 6, 'items': []
        }) as sweep:
            result = notify_expiring_guarantees_task.apply(kwargs={'days_ahead': 5}).get()

        sweep.assert_called_once_with(5)
        self.assertEqual(result, {'status': 'success', 'expiring': 3, 'notifications_created': 6})


@override_settings(RATE_LIMIT_ENABLED=False)
class WarrantyApiTestCase(WarrantyFixtureMixin, TestCase):
    """Test cases for the warranty endpoints."""

    def setUp(self):
        self.create_fixtures()
        self.recent_line = self.sold_unit('RECENT1', timezone.localdate())
        self.client = APIClient()

    def test_owner_checks_battery_status(self):
        self.client.force_authenticate(user=self.customer)

        response = self.client.get('/api/warranty/battery-status/RECENT1/')

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data['sale_line_id'], self.recent_line.id)
        self.assertTrue(response.data['status']['under_guarantee'])
        self.assertEqual(response.data['status']['replacement_type'], 'guarantee')
        self.assertFalse(response.data['status']['is_replaced'])
        self.assertIsNone(response.data['warranty_slab'])

    def test_other_customers_battery_looks_unsold(self):
        stranger = User.objects.create_user('stranger', password='pw')
        self.client.force_authenticate(user=stranger)

        foreign = self.client.get('/api/warranty/battery-status/RECENT1/')
        unknown = self.client.get('/api/warranty/battery-status/MISSING/')
        self.assertEqual(foreign.status_code, 404)
        self.assertEqual(foreign.data, unknown.data)

        self.client.force_authenticate(user=self.operator)
        self.assertEqual(self.client.get('/api/warranty/battery-status/RECENT1/').status_code, 200)

    def test_unknown_serial_is_404(self):
        self.client.force_authenticate(user=self.operator)
        response = self.client.get('/api/warranty/battery-status/MISSING/')
        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.data['error'], 'Not Found')

    def test_replace_requires_operator(self):
        payload = {
            'sale_line_id': self.recent_line.id,
            'new_product_id': self.new_product.id,
            'new_serial_number': 'NEW001',
            'replacement_type': 'guarantee',
        }
        self.client.force_authenticate(user=self.customer)
        self.assertEqual(self.client.post('/api/warranty/replacements/', payload, format='json').status_code, 403)

        self.client.force_authenticate(user=self.operator)
        response = self.client.post('/api/warranty/replacements/', payload, format='json')
        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.data['replacement']['new_serial_number'], 'NEW001')
        self.assertIn('free of charge', response.data['message'])

        response = self.client.post('/api/warranty/replacements/', dict(payload, new_serial_number='NEW002'), format='json')
        self.assertEqual(response.status_code, 409)

    def test_type_mismatch_is_422(self):
        self.client.force_authenticate(user=self.operator)
        response = self.client.post('/api/warranty/replacements/', {
            'sale_line_id': self.recent_line.id,
            'new_product_id': self.new_product.id,
            'new_serial_number': 'NEW001',
            'replacement_type': 'warranty',
            'warranty_slab_id': self.slabs['0-6'].id,
        }, format='json')

        self.assertEqual(response.status_code, 422)
        self.assertEqual(response.data['eligibility']['replacement_type'], 'guarantee')

    def test_warranty_request_without_slab_is_400(self):
        self.client.force_authenticate(user=self.operator)
        response = self.client.post('/api/warranty/replacements/', {
            'sale_line_id': self.warranty_line.id,
            'new_product_id': self.new_product.id,
            'new_serial_number': 'NEW001',
            'replacement_type': 'warranty',
        }, format='json')
        self.assertEqual(response.status_code, 400)

    def test_history_is_scoped_to_customer(self):
        replace_battery(self.recent_line.id, self.new_product.id, 'NEW001', 'guarantee', operator=self.operator)
        stranger = User.objects.create_user('stranger', password='pw')

        self.client.force_authenticate(user=stranger)
        self.assertEqual(self.client.get('/api/warranty/replacements/').data['count'], 0)

        self.client.force_authenticate(user=self.customer)
        self.assertEqual(self.client.get('/api/warranty/replacements/').data['count'], 1)

        self.client.force_authenticate(user=self.operator)
        response = self.client.get('/api/warranty/replacements/', {'customer_id': stranger.id})
        self.assertEqual(response.data['count'], 0)

    def test_slab_list(self):
        self.client.force_authenticate(user=self.customer)
        response = self.client.get('/api/warranty/slabs/')

        self.assertEqual(response.status_code, 200)
        self.assertEqual([slab['slab_name'] for slab in response.data], ['0-6', 'Early', '7-12', '13+'])

    def test_expiring_sweep_endpoint(self):
        self.client.force_authenticate(user=self.customer)
        self.assertEqual(self.client.post('/api/warranty/expiring-guarantees/', {}, format='json').status_code, 403)

        self.client.force_authenticate(user=self.operator)
        response = self.client.post('/api/warranty/expiring-guarantees/', {'days_ahead': 7}, format='json')
        self.assertEqual(response.status_code, 200)
        self.assertIn('items', response.data)
