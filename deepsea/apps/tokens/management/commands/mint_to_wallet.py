from django.conf import settings
from django.core.management.base import BaseCommand, CommandError

from deepsea.apps.tokens.errors import LedgerError
from deepsea.onchain.prompts import (
    add_common_arguments,
    confirm,
    contract_service,
    local_ledger,
    require_admin_is_owner,
    resolve_wallet,
)


class Command(BaseCommand):
    help = "Mint collection tokens to a wallet (saved wallet name or address)."

    def add_arguments(self, parser):
        parser.add_argument("wallet", help="Saved wallet name or address.")
        parser.add_argument("token_id", type=int)
        parser.add_argument("amount", type=int)
        add_common_arguments(parser, local=True)

    def handle(self, *args, **options):
        to = resolve_wallet(options["wallet"])
        token_id, amount = options["token_id"], options["amount"]
        if amount <= 0:
            raise CommandError("Amount must be greater than 0")

        if options["local"]:
            ledger = local_ledger(options)
            record = ledger.get_token_info(token_id)
            if record is None or not record.is_active:
                raise CommandError(f"Token {token_id} does not exist")
            remaining = record.max_supply - record.current_supply
        else:
            service = contract_service(options)
            require_admin_is_owner(service)
            info = service.get_token_info(token_id)
            if not info["is_active"]:
                raise CommandError(f"Token {token_id} does not exist")
            remaining = info["max_supply"] - info["current_supply"]

        if amount > remaining:
            raise CommandError(f"Only {remaining} of token {token_id} can still be minted")
        if not confirm(self, options, f"Mint {amount} of token {token_id} to {to}?"):
            return

        if options["local"]:
            try:
                ledger.mint(settings.ADMIN_ADDRESS, to, token_id, amount)
            except LedgerError as e:
                raise CommandError(f"Mint failed: {e.detail}")
            balance = ledger.balance_of(to, token_id)
        else:
            result = service.mint(to, token_id, amount)
            self.stdout.write(f"Transaction hash: {result['tx_hash']}")
            balance = service.get_balance(to, token_id)

        self.stdout.write(self.style.SUCCESS(f"Minted {amount} of token {token_id} to {to}"))
        self.stdout.write(f"Balance of {to}: {balance}")
