import django.db.models.deletion
import django.utils.timezone
from decimal import Decimal
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('inventory', '0001_initial'),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='InvoiceSequence',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('day', models.DateField(unique=True)),
                ('last_number', models.PositiveIntegerField(default=0)),
            ],
            options={
                'verbose_name': 'Invoice Sequence',
            },
        ),
        migrations.CreateModel(
            name='SaleLine',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('invoice_number', models.CharField(db_index=True, help_text='Invoice shared by all lines of one order', max_length=32)),
                ('customer_name', models.CharField(max_length=200)),
                ('customer_phone', models.CharField(max_length=20)),
                ('sales_type', models.CharField(choices=[('retail', 'Retail'), ('wholesale', 'Wholesale')], default='retail', max_length=20)),
                ('sku', models.CharField(max_length=64)),
                ('product_name', models.CharField(max_length=200)),
                ('warranty', models.CharField(blank=True, default='', help_text='Warranty code at time of sale', max_length=50)),
                ('allocation_state', models.CharField(choices=[('unallocated', 'Unallocated'), ('not_applicable', 'Not applicable'), ('bound', 'Bound')], db_index=True, default='unallocated', max_length=20)),
                ('serial_number', models.CharField(blank=True, help_text='Set exactly when the line is bound', max_length=100, null=True)),
                ('mrp', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=10)),
                ('discount_amount', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=10)),
                ('tax', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=10)),
                ('final_amount', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=10)),
                ('purchase_date', models.DateField(default=django.utils.timezone.localdate)),
                ('created_at', models.DateTimeField(auto_now_add=True, db_index=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('created_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to=settings.AUTH_USER_MODEL)),
                ('customer', models.ForeignKey(blank=True, help_text='Customer account, when known', null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='sale_lines', to=settings.AUTH_USER_MODEL)),
                ('product', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='sale_lines', to='inventory.product')),
            ],
            options={
                'verbose_name': 'Sale Line',
                'verbose_name_plural': 'Sale Lines',
                'ordering': ['invoice_number', 'id'],
                'indexes': [
                    models.Index(fields=['invoice_number', 'allocation_state'], name='saleline_invoice_state_idx'),
                    models.Index(fields=['serial_number'], name='saleline_serial_idx'),
                ],
                'constraints': [
                    models.CheckConstraint(
                        condition=models.Q(('allocation_state', 'bound'), ('serial_number__isnull', False)) | models.Q(models.Q(('allocation_state', 'bound'), _negated=True), ('serial_number__isnull', True)),
                        name='sale_line_serial_iff_bound',
                    ),
                    models.UniqueConstraint(condition=models.Q(('allocation_state', 'bound')), fields=('serial_number',), name='unique_bound_serial'),
                ],
            },
        ),
    ]
