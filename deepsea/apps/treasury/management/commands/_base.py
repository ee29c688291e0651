from decimal import Decimal

from django.core.management.base import BaseCommand, CommandError

from deepsea.apps.tokens.errors import LedgerError
from deepsea.apps.treasury.stablecoin import from_units, to_units
from deepsea.apps.treasury.treasury import Treasury
from deepsea.onchain.prompts import (
    add_common_arguments,
    contract_service,
    local_ledger,
    require_admin_is_owner,
)


class TreasuryCommand(BaseCommand):
    """Runs a treasury operation against the deployed contract or the local ledger."""

    owner_only = True

    def add_arguments(self, parser):
        add_common_arguments(parser, local=True)

    def usdc_amount(self, value) -> Decimal:
        """Positive USDC amount truncated to 6 decimals"""
        units = to_units(value)
        if units <= 0:
            raise CommandError("USDC amount must be greater than 0")
        return from_units(units)

    def execute_operation(self, options):
        raise NotImplementedError

    def handle(self, *args, **options):
        if options["local"]:
            self.treasury = Treasury(local_ledger(options))
            self.service = None
        else:
            self.treasury = None
            self.service = contract_service(options)
            if self.owner_only:
                require_admin_is_owner(self.service)
        try:
            self.execute_operation(options)
        except LedgerError as e:
            raise CommandError(f"{e.code}: {e.detail}")

    def print_balance(self) -> Decimal:
        if self.treasury is not None:
            balance = from_units(self.treasury.get_balance())
        else:
            balance = self.service.get_usdc_balance()
        self.stdout.write(f"Treasury USDC balance: {balance}")
        return balance
