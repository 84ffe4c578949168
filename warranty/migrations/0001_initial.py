import django.core.validators
import django.db.models.deletion
from decimal import Decimal
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('inventory', '0001_initial'),
        ('sales', '0001_initial'),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='WarrantySlab',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('slab_name', models.CharField(max_length=100)),
                ('min_months', models.PositiveIntegerField(default=0)),
                ('max_months', models.PositiveIntegerField(blank=True, null=True)),
                ('discount_percentage', models.DecimalField(decimal_places=2, max_digits=5, validators=[django.core.validators.MinValueValidator(Decimal('0')), django.core.validators.MaxValueValidator(Decimal('100'))])),
                ('description', models.TextField(blank=True, default='')),
                ('is_active', models.BooleanField(db_index=True, default=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'verbose_name': 'Warranty Slab',
                'verbose_name_plural': 'Warranty Slabs',
                'ordering': ['min_months', 'id'],
                'constraints': [
                    models.CheckConstraint(condition=models.Q(('max_months__isnull', True), ('max_months__gte', models.F('min_months')), _connector='OR'), name='warranty_slab_range_ordered'),
                    models.CheckConstraint(condition=models.Q(('discount_percentage__gte', 0), ('discount_percentage__lte', 100)), name='warranty_slab_discount_range'),
                ],
            },
        ),
        migrations.CreateModel(
            name='ReplacementRecord',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('original_serial_number', models.CharField(max_length=100, unique=True)),
                ('original_purchase_date', models.DateField()),
                ('original_invoice_number', models.CharField(max_length=32)),
                ('replacement_type', models.CharField(choices=[('guarantee', 'Guarantee'), ('warranty', 'Warranty')], max_length=20)),
                ('replaced_at', models.DateTimeField(auto_now_add=True, db_index=True)),
                ('new_serial_number', models.CharField(max_length=100)),
                ('new_invoice_number', models.CharField(blank=True, default='', max_length=32)),
                ('discount_percentage', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=5)),
                ('notes', models.TextField(blank=True, default='')),
                ('created_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to=settings.AUTH_USER_MODEL)),
                ('customer', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='battery_replacements', to=settings.AUTH_USER_MODEL)),
                ('new_product', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='replacements', to='inventory.product')),
                ('new_sale_line', models.OneToOneField(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name='replacement_for', to='sales.saleline')),
                ('original_sale_line', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='replacements', to='sales.saleline')),
                ('warranty_slab', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name='replacements', to='warranty.warrantyslab')),
            ],
            options={
                'verbose_name': 'Replacement Record',
                'verbose_name_plural': 'Replacement Records',
                'ordering': ['-replaced_at', '-id'],
            },
        ),
    ]
