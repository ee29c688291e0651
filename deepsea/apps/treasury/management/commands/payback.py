from django.conf import settings
from django.core.management.base import CommandError

from deepsea.apps.treasury.stablecoin import to_units
from deepsea.onchain.prompts import confirm, resolve_wallet

from ._base import TreasuryCommand


class Command(TreasuryCommand):
    help = "Buy back tokens: burn them from a holder and pay the holder USDC from the treasury (owner only)."

    def add_arguments(self, parser):
        parser.add_argument("wallet", help="Saved wallet name or holder address.")
        parser.add_argument("token_id", type=int)
        parser.add_argument("token_amount", type=int)
        parser.add_argument("usdc_amount", help="USDC amount paid to the holder.")
        super().add_arguments(parser)

    def execute_operation(self, options):
        holder = resolve_wallet(options["wallet"])
        token_id, token_amount = options["token_id"], options["token_amount"]
        if token_amount <= 0:
            raise CommandError("Token amount must be greater than 0")
        usdc_amount = self.usdc_amount(options["usdc_amount"])

        if self.treasury is not None:
            held = self.treasury.ledger.balance_of(holder, token_id)
        else:
            held = self.service.get_balance(holder, token_id)
        self.stdout.write(f"{holder} holds {held} of token {token_id}")
        if held < token_amount:
            raise CommandError(f"Holder has only {held} of token {token_id}")

        balance = self.print_balance()
        if usdc_amount > balance:
            raise CommandError(f"Treasury holds only {balance} USDC")

        prompt = f"Burn {token_amount} of token {token_id} from {holder} and pay {usdc_amount} USDC?"
        if not confirm(self, options, prompt):
            return

        if self.treasury is not None:
            self.treasury.payback(
                settings.ADMIN_ADDRESS, holder, token_id, token_amount, to_units(usdc_amount)
            )
        else:
            result = self.service.payback(holder, token_id, token_amount, usdc_amount)
            self.stdout.write(f"Transaction hash: {result['tx_hash']}")

        self.stdout.write(self.style.SUCCESS("Payback completed."))
        self.print_balance()
