from django.conf import settings
from django.core.management.base import CommandError

from deepsea.apps.tokens.services.usdc_token import USDCTokenService
from deepsea.apps.treasury.stablecoin import from_units, to_units
from deepsea.onchain.prompts import confirm

from ._base import TreasuryCommand


class Command(TreasuryCommand):
    help = "Move USDC from the admin wallet into the collection treasury (approves the contract first if needed)."
    owner_only = False

    def add_arguments(self, parser):
        parser.add_argument("amount", help="USDC amount, e.g. 100 or 12.5")
        super().add_arguments(parser)

    def execute_operation(self, options):
        amount = self.usdc_amount(options["amount"])
        sender = settings.ADMIN_ADDRESS

        if self.treasury is not None:
            collection = self.treasury.ledger.get_collection()
            coin = self.treasury.stablecoin(collection)
            available = from_units(coin.balance_of(sender))
            if available < amount:
                raise CommandError(f"Insufficient USDC balance: {available} < {amount}")
            if not confirm(self, options, f"Add {amount} USDC to the treasury?"):
                return
            coin.approve(sender, collection.address, to_units(amount))
            self.treasury.add_funds(sender, to_units(amount))
        else:
            usdc = USDCTokenService(self.service.get_usdc_address())
            available = usdc.get_balance(sender)
            if available < amount:
                raise CommandError(f"Insufficient USDC balance: {available} < {amount}")
            if not confirm(self, options, f"Add {amount} USDC to the treasury?"):
                return
            if usdc.get_allowance(sender, self.service.contract_address) < amount:
                usdc.approve(sender, self.service.contract_address, amount, settings.ADMIN_PRIVATE_KEY)
            result = self.service.add_usdc(amount)
            self.stdout.write(f"Transaction hash: {result['tx_hash']}")

        self.stdout.write(self.style.SUCCESS(f"Added {amount} USDC"))
        self.print_balance()
