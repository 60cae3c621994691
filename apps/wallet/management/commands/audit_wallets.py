from django.core.management.base import BaseCommand, CommandError

from apps.wallet.models import Wallet
from apps.wallet.services import wallet_service


class Command(BaseCommand):
    help = 'Check every customer wallet balance against its transaction journal'

    def add_arguments(self, parser):
        parser.add_argument('--user', type=int, help='Only audit the wallet of this user id')

    def handle(self, *args, **options):
        wallets = Wallet.objects.select_related('user').order_by('id')
        if options.get('user'):
            wallets = wallets.filter(user_id=options['user'])

        checked = 0
        broken = 0
        for wallet in wallets:
            checked += 1
            problems = wallet_service.audit_wallet(wallet)
            if problems:
                broken += 1
                self.stdout.write(self.style.ERROR(f'✗ {wallet.user.email}'))
                for problem in problems:
                    self.stdout.write(f'    {problem}')

        if broken:
            raise CommandError(f'{broken} of {checked} wallet(s) failed the audit')

        self.stdout.write(self.style.SUCCESS(f'✓ {checked} wallet(s) consistent'))
