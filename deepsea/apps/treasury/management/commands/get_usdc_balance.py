from ._base import TreasuryCommand


class Command(TreasuryCommand):
    help = "Show the USDC address and balance of the collection treasury."
    owner_only = False

    def execute_operation(self, options):
        if self.treasury is not None:
            usdc_address = self.treasury.ledger.get_collection().usdc_address
        else:
            usdc_address = self.service.get_usdc_address()
        self.stdout.write(f"USDC address: {usdc_address or 'not set'}")
        if usdc_address:
            self.print_balance()
