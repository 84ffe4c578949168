"""
Tests for the stock ledger and catalog endpoints.

Test Cases:
1. Intake creates available units and keeps quantity in sync
2. A unit is consumed exactly once
3. Non-serialized products only keep a counter
4. Recount repairs a drifted quantity
5. Catalog, intake and available-serial endpoints
6. Seed command
"""
import datetime
from decimal import Decimal
from io import StringIO

from django.contrib.auth import get_user_model
from django.core.management import call_command
from django.test import TestCase, override_settings
from rest_framework.test import APIClient

from core.exceptions import ConflictError, NotFoundError, ServiceValidationError
from inventory import ledger
from inventory.models import Category, Product, StockUnit

User = get_user_model()


class StockLedgerTestCase(TestCase):
    """Test cases for stock ledger operations."""

    def setUp(self):
        self.category = Category.objects.create(name='UPS/Inverter', slug='ups-inverter')
        self.water = Category.objects.create(name='Water', slug='water', is_serialized=False)
        self.product = Product.objects.create(
            sku='EXIDE-IT500',
            name='Exide InvaTubular IT500',
            category=self.category,
            warranty='36F+24P',
            mrp=Decimal('16500.00')
        )
        self.distilled = Product.objects.create(
            sku='WATER-1L',
            name='Distilled Water 1L',
            category=self.water,
            mrp=Decimal('25.00')
        )

    def test_intake_creates_available_units(self):
        units = ledger.receive_units(self.product.id, ['IT001', ' IT002 '])

        self.assertEqual([unit.serial_number for unit in units], ['IT001', 'IT002'])
        self.assertTrue(all(unit.is_available for unit in units))
        self.product.refresh_from_db()
        self.assertEqual(self.product.quantity, 2)

    def test_intake_rejects_known_serials(self):
        ledger.receive_units(self.product.id, ['IT001'])

        with self.assertRaises(ConflictError) as context:
            ledger.receive_units(self.product.id, ['IT002', 'IT001'])

        self.assertIn('IT001', context.exception.detail)
        self.product.refresh_from_db()
        self.assertEqual(self.product.quantity, 1)
        self.assertFalse(StockUnit.objects.filter(serial_number='IT002').exists())

    def test_intake_validation(self):
        with self.assertRaises(ServiceValidationError):
            ledger.receive_units(self.product.id, [])
        with self.assertRaises(ServiceValidationError):
            ledger.receive_units(self.product.id, ['IT001', 'IT001'])
        with self.assertRaises(ServiceValidationError):
            ledger.receive_units(self.distilled.id, ['W001'])
        with self.assertRaises(NotFoundError):
            ledger.receive_units(99999, ['IT001'])

    def test_unit_consumed_exactly_once(self):
        ledger.receive_units(self.product.id, ['IT001', 'IT002'])

        unit = ledger.consume_unit(self.product.id, 'IT001')
        self.assertEqual(unit.status, StockUnit.Status.CONSUMED)
        self.assertIsNotNone(unit.consumed_at)

        with self.assertRaises(ConflictError) as context:
            ledger.consume_unit(self.product.id, 'IT001')
        self.assertEqual(context.exception.extra['serial_number'], 'IT001')

        self.product.refresh_from_db()
        self.assertEqual(self.product.quantity, 1)
        self.assertFalse(ledger.is_available(self.product.id, 'IT001'))
        self.assertTrue(ledger.is_available(self.product.id, 'IT002'))

    def test_available_serials_oldest_first(self):
        ledger.receive_units(self.product.id, ['NEWER'], received_on=datetime.date(2026, 2, 1))
        ledger.receive_units(self.product.id, ['OLDER'], received_on=datetime.date(2025, 12, 1))
        ledger.receive_units(self.product.id, ['GONE'], received_on=datetime.date(2025, 11, 1))
        ledger.consume_unit(self.product.id, 'GONE')

        self.assertEqual(ledger.available_serials(self.product.id), ['OLDER', 'NEWER'])
        self.assertEqual(ledger.available_serials(self.product.id, limit=1), ['OLDER'])

    def test_recount_repairs_drift(self):
        ledger.receive_units(self.product.id, ['IT001', 'IT002', 'IT003'])
        Product.objects.filter(id=self.product.id).update(quantity=7)

        self.assertEqual(ledger.recount_quantity(self.product.id), 3)
        self.product.refresh_from_db()
        self.assertEqual(self.product.quantity, 3)

    def test_consume_with_drifted_counter_logs_warning(self):
        ledger.receive_units(self.product.id, ['IT001'])
        Product.objects.filter(id=self.product.id).update(quantity=0)

        with self.assertLogs('inventory.ledger', level='WARNING') as logs:
            ledger.consume_unit(self.product.id, 'IT001')

        self.assertIn('Quantity drift', logs.output[0])
        self.product.refresh_from_db()
        self.assertEqual(self.product.quantity, 0)

    def test_bulk_counter_for_non_serialized_products(self):
        ledger.receive_bulk(self.distilled.id, 5)
        ledger.deduct_bulk(self.distilled.id, 3)

        with self.assertRaises(ConflictError):
            ledger.deduct_bulk(self.distilled.id, 3)

        self.distilled.refresh_from_db()
        self.assertEqual(self.distilled.quantity, 2)

        with self.assertRaises(ServiceValidationError):
            ledger.receive_bulk(self.product.id, 5)


@override_settings(RATE_LIMIT_ENABLED=False)
class InventoryApiTestCase(TestCase):
    """Test cases for catalog and stock endpoints."""

    def setUp(self):
        self.operator = User.objects.create_user('operator', password='pw', is_staff=True)
        self.customer = User.objects.create_user('ravi', password='pw')
        self.category = Category.objects.create(name='Bike', slug='bike')
        self.product = Product.objects.create(
            sku='EXIDE-XLTZ5',
            name='Exide Xplore XLTZ5',
            category=self.category,
            warranty='24F+24P',
            mrp=Decimal('1450.00')
        )
        self.client = APIClient()

    def test_operator_receives_stock(self):
        self.client.force_authenticate(user=self.operator)

        response = self.client.post(
            f'/api/products/{self.product.id}/stock/',
            {'serial_numbers': ['XL001', 'XL002']},
            format='json'
        )

        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.data['received'], 2)
        self.product.refresh_from_db()
        self.assertEqual(self.product.quantity, 2)

        response = self.client.post(
            f'/api/products/{self.product.id}/stock/',
            {'serial_numbers': ['XL002']},
            format='json'
        )
        self.assertEqual(response.status_code, 409)

    def test_customer_cannot_receive_stock(self):
        self.client.force_authenticate(user=self.customer)
        response = self.client.post(
            f'/api/products/{self.product.id}/stock/',
            {'serial_numbers': ['XL001']},
            format='json'
        )
        self.assertEqual(response.status_code, 403)

    def test_available_serials_endpoint(self):
        ledger.receive_units(self.product.id, ['XL001'])
        self.client.force_authenticate(user=self.operator)

        response = self.client.get(f'/api/products/{self.product.id}/available-serials/')
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data, ['XL001'])

        self.assertEqual(self.client.get('/api/products/99999/available-serials/').status_code, 404)

    def test_quantity_is_read_only_through_api(self):
        self.client.force_authenticate(user=self.operator)

        response = self.client.patch(
            f'/api/products/{self.product.id}/',
            {'quantity': 50, 'mrp': '1499.00'},
            format='json'
        )

        self.assertEqual(response.status_code, 200)
        self.product.refresh_from_db()
        self.assertEqual(self.product.quantity, 0)
        self.assertEqual(self.product.mrp, Decimal('1499.00'))

    def test_customer_can_read_catalog_but_not_write(self):
        self.client.force_authenticate(user=self.customer)

        self.assertEqual(self.client.get('/api/products/').status_code, 200)
        response = self.client.post('/api/categories/', {'name': 'Solar', 'slug': 'solar'}, format='json')
        self.assertEqual(response.status_code, 403)

    def test_autocomplete(self):
        self.client.force_authenticate(user=self.customer)

        response = self.client.get('/api/products/autocomplete/', {'q': 'ex'})
        self.assertEqual(response.status_code, 200)
        self.assertEqual([p['sku'] for p in response.data], ['EXIDE-XLTZ5'])

        self.assertEqual(self.client.get('/api/products/autocomplete/', {'q': 'e'}).status_code, 400)


class SeedDataTestCase(TestCase):

    def test_seed_creates_catalog_stock_and_slabs(self):
        from warranty.models import WarrantySlab

        call_command('seed_data', units=2, seed=1, stdout=StringIO())

        self.assertTrue(Category.objects.filter(slug='water', is_serialized=False).exists())
        self.assertEqual(WarrantySlab.objects.count(), 3)
        for product in Product.objects.select_related('category'):
            if product.is_serialized:
                self.assertEqual(
                    product.quantity,
                    product.stock_units.filter(status=StockUnit.Status.AVAILABLE).count()
                )
            else:
                self.assertEqual(product.quantity, 10)

        # Running again does not duplicate the catalog
        call_command('seed_data', units=0, stdout=StringIO())
        self.assertEqual(WarrantySlab.objects.count(), 3)
