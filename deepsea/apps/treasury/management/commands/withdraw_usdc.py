from django.conf import settings
from django.core.management.base import CommandError

from deepsea.apps.treasury.stablecoin import to_units
from deepsea.onchain.prompts import confirm

from ._base import TreasuryCommand


class Command(TreasuryCommand):
    help = "Withdraw USDC from the collection treasury to the owner (owner only)."

    def add_arguments(self, parser):
        parser.add_argument("amount", help="USDC amount, e.g. 100 or 12.5")
        super().add_arguments(parser)

    def execute_operation(self, options):
        amount = self.usdc_amount(options["amount"])
        balance = self.print_balance()
        if amount > balance:
            raise CommandError(f"Treasury holds only {balance} USDC")
        if not confirm(self, options, f"Withdraw {amount} USDC to the owner?"):
            return

        if self.treasury is not None:
            self.treasury.withdraw(settings.ADMIN_ADDRESS, to_units(amount))
        else:
            result = self.service.withdraw_usdc(amount)
            self.stdout.write(f"Transaction hash: {result['tx_hash']}")

        self.stdout.write(self.style.SUCCESS(f"Withdrew {amount} USDC"))
        self.print_balance()
