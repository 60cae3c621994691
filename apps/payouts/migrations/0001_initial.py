# Generated migration file
from decimal import Decimal

from django.conf import settings
from django.db import migrations, models
import django.core.validators
import django.db.models.deletion
import django.utils.timezone


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('orders', '0001_initial'),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='PayoutRequest',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('requested_amount', models.DecimalField(decimal_places=3, max_digits=14, validators=[django.core.validators.MinValueValidator(Decimal('0.001'))])),
                ('currency', models.CharField(default='BHD', max_length=3)),
                ('payout_method', models.CharField(choices=[('BANK_TRANSFER', 'Bank Transfer'), ('PAYPAL', 'PayPal'), ('STRIPE', 'Stripe')], max_length=20)),
                ('bank_account_holder_name', models.CharField(blank=True, max_length=200)),
                ('bank_account_number', models.CharField(blank=True, max_length=50)),
                ('bank_name', models.CharField(blank=True, max_length=100)),
                ('bank_iban', models.CharField(blank=True, max_length=50, verbose_name='IBAN')),
                ('bank_swift_code', models.CharField(blank=True, max_length=20, verbose_name='SWIFT code')),
                ('paypal_email', models.EmailField(blank=True, max_length=254)),
                ('stripe_account_id', models.CharField(blank=True, max_length=100)),
                ('status', models.CharField(choices=[('PENDING', 'Pending'), ('APPROVED', 'Approved'), ('PROCESSING', 'Processing'), ('COMPLETED', 'Completed'), ('REJECTED', 'Rejected'), ('FAILED', 'Failed')], default='PENDING', max_length=20)),
                ('requested_date', models.DateTimeField(default=django.utils.timezone.now)),
                ('processed_date', models.DateTimeField(blank=True, null=True)),
                ('completed_date', models.DateTimeField(blank=True, null=True)),
                ('rejection_reason', models.TextField(blank=True)),
                ('transaction_reference', models.CharField(blank=True, max_length=100)),
                ('notes', models.TextField(blank=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('processed_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='processed_payouts', to=settings.AUTH_USER_MODEL)),
                ('vendor', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='payout_requests', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'verbose_name': 'Payout Request',
                'verbose_name_plural': 'Payout Requests',
                'ordering': ['-requested_date', '-id'],
                'constraints': [
                    models.UniqueConstraint(condition=models.Q(status__in=['PENDING', 'APPROVED', 'PROCESSING']), fields=('vendor',), name='one_outstanding_payout_per_vendor'),
                ],
            },
        ),
        migrations.CreateModel(
            name='VendorWallet',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('available_balance', models.DecimalField(decimal_places=3, default=Decimal('0.000'), help_text='Can be requested for payout', max_digits=14)),
                ('pending_balance', models.DecimalField(decimal_places=3, default=Decimal('0.000'), help_text='Locked by an outstanding payout request', max_digits=14)),
                ('total_earned', models.DecimalField(decimal_places=3, default=Decimal('0.000'), max_digits=14)),
                ('total_withdrawn', models.DecimalField(decimal_places=3, default=Decimal('0.000'), max_digits=14)),
                ('currency', models.CharField(default='BHD', max_length=3)),
                ('last_payout_date', models.DateTimeField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('vendor', models.OneToOneField(on_delete=django.db.models.deletion.PROTECT, related_name='vendor_wallet', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'verbose_name': 'Vendor Wallet',
                'verbose_name_plural': 'Vendor Wallets',
                'ordering': ['-total_earned', 'id'],
                'constraints': [
                    models.CheckConstraint(
                        condition=models.Q(available_balance__gte=0) & models.Q(pending_balance__gte=0) & models.Q(total_earned__gte=0) & models.Q(total_withdrawn__gte=0),
                        name='vendor_wallet_non_negative',
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name='VendorEarning',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('order_number', models.CharField(max_length=40)),
                ('order_amount', models.DecimalField(decimal_places=3, help_text="Sum of this vendor's line totals in the order", max_digits=14)),
                ('vendor_share', models.DecimalField(decimal_places=3, help_text='90% of order amount', max_digits=14)),
                ('platform_commission', models.DecimalField(decimal_places=3, help_text='10% of order amount', max_digits=14)),
                ('currency', models.CharField(default='BHD', max_length=3)),
                ('earned_date', models.DateTimeField(db_index=True, default=django.utils.timezone.now)),
                ('payout_status', models.CharField(choices=[('PENDING', 'Pending'), ('PAID', 'Paid')], default='PENDING', max_length=10)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('order', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='vendor_earnings', to='orders.order')),
                ('payout', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='earnings', to='payouts.payoutrequest')),
                ('vendor', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='earnings', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'verbose_name': 'Vendor Earning',
                'verbose_name_plural': 'Vendor Earnings',
                'ordering': ['-earned_date', '-id'],
                'indexes': [models.Index(fields=['vendor', 'payout_status'], name='earning_vendor_status_idx')],
                'constraints': [
                    models.UniqueConstraint(fields=('vendor', 'order'), name='unique_vendor_earning_per_order'),
                ],
            },
        ),
    ]
