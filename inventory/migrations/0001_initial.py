import django.core.validators
import django.db.models.deletion
from decimal import Decimal
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name='Category',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('name', models.CharField(db_index=True, help_text='Unique category name', max_length=100, unique=True)),
                ('slug', models.SlugField(max_length=100, unique=True)),
                ('is_serialized', models.BooleanField(default=True, help_text='Whether units of this category carry a serial number')),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'verbose_name': 'Category',
                'verbose_name_plural': 'Categories',
                'ordering': ['name'],
            },
        ),
        migrations.CreateModel(
            name='Product',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('sku', models.CharField(help_text='Manufacturer SKU', max_length=64, unique=True)),
                ('name', models.CharField(db_index=True, help_text='Product name for display and search', max_length=200)),
                ('warranty', models.CharField(blank=True, default='', help_text='Warranty code, e.g. "24F+24P" (F = free guarantee, P = pro-rata warranty)', max_length=50)),
                ('guarantee_period_months', models.PositiveIntegerField(default=0, help_text='Legacy guarantee length, used when the warranty code has no guarantee part')),
                ('mrp', models.DecimalField(decimal_places=2, help_text='Maximum retail price, GST inclusive', max_digits=10, validators=[django.core.validators.MinValueValidator(Decimal('0.00'))])),
                ('quantity', models.PositiveIntegerField(default=0, help_text='Available stock units (maintained by the stock ledger)')),
                ('is_active', models.BooleanField(db_index=True, default=True, help_text='Whether product is available for ordering')),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('category', models.ForeignKey(help_text='Product category', on_delete=django.db.models.deletion.PROTECT, related_name='products', to='inventory.category')),
            ],
            options={
                'verbose_name': 'Product',
                'verbose_name_plural': 'Products',
                'ordering': ['name'],
                'indexes': [
                    models.Index(fields=['name', 'is_active'], name='product_name_active_idx'),
                    models.Index(fields=['category', 'is_active'], name='product_category_active_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='StockUnit',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('serial_number', models.CharField(help_text='Manufacturer serial number', max_length=100)),
                ('status', models.CharField(choices=[('available', 'Available'), ('consumed', 'Consumed')], db_index=True, default='available', max_length=20)),
                ('received_on', models.DateField(blank=True, help_text='Purchase intake date', null=True)),
                ('consumed_at', models.DateTimeField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('product', models.ForeignKey(help_text='Product this unit belongs to', on_delete=django.db.models.deletion.PROTECT, related_name='stock_units', to='inventory.product')),
            ],
            options={
                'verbose_name': 'Stock Unit',
                'verbose_name_plural': 'Stock Units',
                'ordering': ['created_at', 'id'],
                'indexes': [
                    models.Index(fields=['product', 'status'], name='stockunit_product_status_idx'),
                    models.Index(fields=['serial_number'], name='stockunit_serial_idx'),
                ],
                'constraints': [
                    models.UniqueConstraint(fields=('product', 'serial_number'), name='unique_product_serial'),
                ],
            },
        ),
    ]
