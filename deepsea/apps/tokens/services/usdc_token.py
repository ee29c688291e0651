"""
USDC (ERC20) Contract Service
Balance, allowance and approval queries for the treasury's stable coin
"""

from typing import Optional, Dict, Any
from decimal import Decimal
from django.conf import settings
import logging
from .base_contract import BaseContractService

logger = logging.getLogger(__name__)


class USDCTokenService(BaseContractService):
    """Service for interacting with a USDC contract"""

    decimals = settings.USDC_DECIMALS

    def __init__(self, contract_address: Optional[str] = None, **kwargs):
        super().__init__(
            contract_address=contract_address or settings.USDC_ADDRESS,
            abi_path=settings.USDC_ABI_PATH,
            **kwargs,
        )

    def get_decimals(self) -> int:
        return int(self.call_read_function('decimals'))

    def get_balance(self, address: str) -> Decimal:
        """USDC balance of an address"""
        return self.from_units(self.call_read_function('balanceOf', self.checksum_address(address)))

    def get_allowance(self, owner: str, spender: str) -> Decimal:
        allowance = self.call_read_function(
            'allowance', self.checksum_address(owner), self.checksum_address(spender)
        )
        return self.from_units(allowance)

    def approve(
        self,
        owner_address: str,
        spender_address: str,
        amount,
        private_key: str,
    ) -> Dict[str, Any]:
        """
        Approve spender to move USDC on behalf of owner

        Args:
            owner_address: Token owner address
            spender_address: Address allowed to spend tokens
            amount: Amount of USDC to approve
            private_key: Owner's private key

        Returns:
            Transaction details
        """
        spender_address = self.checksum_address(spender_address)
        logger.info(f"Approving {spender_address} to spend {amount} USDC")

        function = self.contract.functions.approve(spender_address, self.to_units(amount))
        result = self.build_and_send_transaction(
            function=function,
            from_address=owner_address,
            private_key=private_key,
        )

        logger.info(f"Approved {amount} USDC for {spender_address} (tx: {result['tx_hash']})")
        return result
