from django.conf import settings
from django.core.management.base import CommandError

from deepsea.apps.treasury.stablecoin import to_units
from deepsea.onchain.prompts import confirm, resolve_wallet

from ._base import TreasuryCommand


class Command(TreasuryCommand):
    help = "Pay a USDC dividend from the treasury to a wallet (owner only)."

    def add_arguments(self, parser):
        parser.add_argument("wallet", help="Saved wallet name or address.")
        parser.add_argument("amount", help="USDC amount.")
        super().add_arguments(parser)

    def execute_operation(self, options):
        to = resolve_wallet(options["wallet"])
        amount = self.usdc_amount(options["amount"])
        balance = self.print_balance()
        if amount > balance:
            raise CommandError(f"Treasury holds only {balance} USDC")
        if not confirm(self, options, f"Pay {amount} USDC to {to}?"):
            return

        if self.treasury is not None:
            self.treasury.pay_dividend(settings.ADMIN_ADDRESS, to, to_units(amount))
        else:
            result = self.service.pay_dividend(to, amount)
            self.stdout.write(f"Transaction hash: {result['tx_hash']}")

        self.stdout.write(self.style.SUCCESS(f"Paid {amount} USDC to {to}"))
        self.print_balance()
