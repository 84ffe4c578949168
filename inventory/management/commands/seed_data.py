"""
Management command to seed the database with sample data.

Generates:
- The four shop categories (three serialized battery ranges and water)
- Battery, inverter and consumable products with warranty codes
- Serialized stock units received through the stock ledger
- The default warranty discount slabs

Usage:
    python manage.py seed_data
    python manage.py seed_data --clear  # Clear existing data first
    python manage.py seed_data --units 5
"""
import random
from decimal import Decimal

from django.core.management.base import BaseCommand
from django.db import transaction
from django.utils.text import slugify

from inventory import ledger
from inventory.models import Category, Product, StockUnit

CATEGORIES = [
    ('Car/Truck/Tractor', True),
    ('Bike', True),
    ('UPS/Inverter', True),
    ('Water', False),
]

# (category, brand, model, warranty code, MRP)
PRODUCT_TEMPLATES = [
    ('Car/Truck/Tractor', 'Exide', 'Mileage ML38B20L', '24F+24P', '5399.00'),
    ('Car/Truck/Tractor', 'Exide', 'Matrix MT40B20L', '36F+36P', '6899.00'),
    ('Car/Truck/Tractor', 'Amaron', 'Pro DIN65', '30F+30P', '8799.00'),
    ('Car/Truck/Tractor', 'Amaron', 'Hi-Life Pro 100D31R', '24F+24P', '11250.00'),
    ('Car/Truck/Tractor', 'SF Sonic', 'Tractor FT0-TR700', '18F+18P', '9350.00'),
    ('Bike', 'Exide', 'Xplore XLTZ5', '24F+24P', '1450.00'),
    ('Bike', 'Amaron', 'Pro Bike Rider ETZ9', '48M (24F+24P)', '2350.00'),
    ('Bike', 'Livguard', 'LB-7R', '18F', '1190.00'),
    ('UPS/Inverter', 'Exide', 'InvaTubular IT500', '36F+24P', '16500.00'),
    ('UPS/Inverter', 'Luminous', 'Red Charge RC18000', '18F+18P', '13400.00'),
    ('UPS/Inverter', 'Amaron', 'Inverter AAM-CR-CRTT150', '42F+18P', '17950.00'),
    ('Water', 'Generic', 'Distilled Water 5L', '', '90.00'),
    ('Water', 'Generic', 'Distilled Water 1L', '', '25.00'),
]

# (name, min months past guarantee, max months, discount %)
WARRANTY_SLABS = [
    ('0-6 months', 0, 6, '30.00'),
    ('7-12 months', 7, 12, '20.00'),
    ('13+ months', 13, None, '10.00'),
]


class Command(BaseCommand):
    help = 'Seed the database with sample categories, products, serialized stock and warranty slabs'

    def add_arguments(self, parser):
        parser.add_argument(
            '--clear',
            action='store_true',
            help='Clear existing catalog, stock and slabs before seeding',
        )
        parser.add_argument(
            '--units',
            type=int,
            default=10,
            help='Serialized units to receive per battery product (default: 10)',
        )
        parser.add_argument(
            '--seed',
            type=int,
            default=None,
            help='Random seed for reproducible serial numbers',
        )

    def handle(self, *args, **options):
        if options['seed'] is not None:
            random.seed(options['seed'])

        if options['clear']:
            self.stdout.write('Clearing existing data...')
            self._clear_data()

        self.stdout.write('Starting database seeding...')

        with transaction.atomic():
            categories = self._create_categories()
            products = self._create_products(categories)
            self._receive_stock(products, options['units'])
            self._create_slabs()

        self.stdout.write(self.style.SUCCESS('Database seeding completed successfully!'))

    def _clear_data(self):
        """Clear catalog data. Refuses once sales reference the products."""
        from sales.models import SaleLine
        from warranty.models import ReplacementRecord, WarrantySlab

        if SaleLine.objects.exists() or ReplacementRecord.objects.exists():
            self.stdout.write(self.style.ERROR('Sales exist; not clearing catalog data.'))
            return

        StockUnit.objects.all().delete()
        Product.objects.all().delete()
        Category.objects.all().delete()
        WarrantySlab.objects.all().delete()

        self.stdout.write(self.style.WARNING('All existing data cleared.'))

    def _create_categories(self):
        categories = {}
        for name, is_serialized in CATEGORIES:
            category, created = Category.objects.get_or_create(
                slug=slugify(name.replace('/', '-')),
                defaults={'name': name, 'is_serialized': is_serialized}
            )
            categories[name] = category
            if created:
                self.stdout.write(f'  Created category: {name}')

        self.stdout.write(self.style.SUCCESS(f'Created {len(categories)} categories'))
        return categories

    def _create_products(self, categories):
        products = []
        for category_name, brand, model, warranty, mrp in PRODUCT_TEMPLATES:
            sku = slugify(f"{brand}-{model}").upper()
            product, created = Product.objects.get_or_create(
                sku=sku,
                defaults={
                    'name': f"{brand} {model}",
                    'category': categories[category_name],
                    'warranty': warranty,
                    'mrp': Decimal(mrp),
                }
            )
            products.append(product)
            if created:
                self.stdout.write(f'  Created product: {product.name}')

        self.stdout.write(self.style.SUCCESS(f'Created {len(products)} products'))
        return products

    def _receive_stock(self, products, units):
        received = 0
        for product in products:
            if product.category.is_serialized:
                prefix = product.sku.replace('-', '')[:6]
                serials = {
                    f"{prefix}{random.randint(0, 99999999):08d}" for _ in range(units)
                }
                existing = set(
                    product.stock_units.filter(serial_number__in=serials)
                    .values_list('serial_number', flat=True)
                )
                serials -= existing
                if serials:
                    received += len(ledger.receive_units(product.id, sorted(serials)))
            elif units:
                ledger.receive_bulk(product.id, units * 5)
                received += units * 5

        self.stdout.write(self.style.SUCCESS(f'Received {received} units into stock'))

    def _create_slabs(self):
        from warranty.models import WarrantySlab

        for name, min_months, max_months, discount in WARRANTY_SLABS:
            WarrantySlab.objects.get_or_create(
                slab_name=name,
                defaults={
                    'min_months': min_months,
                    'max_months': max_months,
                    'discount_percentage': Decimal(discount),
                }
            )

        self.stdout.write(self.style.SUCCESS(f'{len(WARRANTY_SLABS)} warranty slabs in place'))
