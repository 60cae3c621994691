from django.core.management.base import BaseCommand, CommandError

from apps.payouts.models import VendorWallet
from apps.payouts.services import payout_service


class Command(BaseCommand):
    help = 'Check vendor wallet buckets against earnings and payout requests'

    def add_arguments(self, parser):
        parser.add_argument('--vendor', type=int, help='Only audit the wallet of this vendor id')

    def handle(self, *args, **options):
        wallets = VendorWallet.objects.select_related('vendor').order_by('id')
        if options.get('vendor'):
            wallets = wallets.filter(vendor_id=options['vendor'])

        checked = 0
        broken = 0
        for wallet in wallets:
            checked += 1
            problems = payout_service.audit_vendor_wallet(wallet)
            if problems:
                broken += 1
                self.stdout.write(self.style.ERROR(f'✗ {wallet.vendor.email}'))
                for problem in problems:
                    self.stdout.write(f'    {problem}')

        if broken:
            raise CommandError(f'{broken} of {checked} vendor wallet(s) failed the audit')

        self.stdout.write(self.style.SUCCESS(f'✓ {checked} vendor wallet(s) consistent'))
