from django.conf import settings
from django.core.management.base import CommandError
from web3 import Web3

from deepsea.onchain.prompts import confirm

from ._base import TreasuryCommand


class Command(TreasuryCommand):
    help = "Set the USDC contract used by the treasury (address or a known network name)."

    def add_arguments(self, parser):
        parser.add_argument(
            "usdc",
            nargs="?",
            help="USDC address or one of the known names: " + ", ".join(settings.USDC_ADDRESSES),
        )
        super().add_arguments(parser)

    def execute_operation(self, options):
        value = options["usdc"] or settings.USDC_ADDRESS
        if not value:
            raise CommandError("Provide a USDC address or set USDC_ADDRESS")
        address = settings.USDC_ADDRESSES.get(value, value)
        if not Web3.is_address(address):
            raise CommandError(f"Invalid address: {address}")
        address = Web3.to_checksum_address(address)

        if not confirm(self, options, f"Set USDC address to {address}?"):
            return

        if self.treasury is not None:
            self.treasury.set_usdc_address(settings.ADMIN_ADDRESS, address)
        else:
            result = self.service.set_usdc_address(address)
            self.stdout.write(f"Transaction hash: {result['tx_hash']}")

        self.stdout.write(self.style.SUCCESS(f"USDC address set to {address}"))
