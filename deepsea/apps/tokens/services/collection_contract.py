"""
SecretOfTheDeepNFT (ERC1155) Contract Service
Token records, minting, burning, metadata and the USDC treasury functions
of the deployed collection.
"""

from typing import Optional, Dict, Any, List, Sequence
from decimal import Decimal
from django.conf import settings
import logging
from .base_contract import BaseContractService

logger = logging.getLogger(__name__)


def current_collection_address() -> str:
    """COLLECTION_ADDRESS, falling back to the deployment record"""
    if settings.COLLECTION_ADDRESS:
        return settings.COLLECTION_ADDRESS
    from deepsea.onchain.current import DeploymentRecord

    return DeploymentRecord.load().contract_address


class CollectionContractService(BaseContractService):
    """Service for interacting with the deployed collection contract"""

    # USDC amounts are handled in 6-decimal units
    decimals = 6

    def __init__(self, contract_address: Optional[str] = None, **kwargs):
        super().__init__(
            contract_address=contract_address or current_collection_address(),
            abi_path=settings.COLLECTION_ABI_PATH,
            **kwargs,
        )

    def _send(self, function, private_key: Optional[str] = None, from_address: Optional[str] = None) -> Dict[str, Any]:
        return self.build_and_send_transaction(
            function=function,
            from_address=from_address or settings.ADMIN_ADDRESS,
            private_key=private_key or settings.ADMIN_PRIVATE_KEY,
        )

    # ============================================================
    # READ-ONLY FUNCTIONS
    # ============================================================

    def get_owner(self) -> str:
        return self.call_read_function('owner')

    def get_name(self) -> str:
        return self.call_read_function('name')

    def get_symbol(self) -> str:
        return self.call_read_function('symbol')

    def get_uri(self, token_id: int) -> str:
        return self.call_read_function('uri', token_id)

    def get_token_info(self, token_id: int) -> Dict[str, Any]:
        """
        Get the token record

        Returns:
            Dict with name, description, max_supply, current_supply, is_active
        """
        info = self.call_read_function('getTokenInfo', token_id)
        return {
            'token_id': token_id,
            'name': info[0],
            'description': info[1],
            'max_supply': int(info[2]),
            'current_supply': int(info[3]),
            'is_active': bool(info[4]),
        }

    def get_active_tokens(self, limit: Optional[int] = None) -> List[Dict[str, Any]]:
        """Token records 1..N, stopping at the first inactive or missing id"""
        limit = limit or settings.METADATA_MAX_TOKEN_IDS
        tokens = []
        for token_id in range(1, limit + 1):
            try:
                info = self.get_token_info(token_id)
            except Exception:
                break
            if not info['is_active']:
                break
            tokens.append(info)
        return tokens

    def get_balance(self, address: str, token_id: int) -> int:
        return int(self.call_read_function('balanceOf', self.checksum_address(address), token_id))

    def is_approved_for_all(self, holder: str, operator: str) -> bool:
        return bool(
            self.call_read_function(
                'isApprovedForAll', self.checksum_address(holder), self.checksum_address(operator)
            )
        )

    def get_usdc_address(self) -> str:
        return self.call_read_function('usdcAddress')

    def get_usdc_balance(self) -> Decimal:
        """USDC held by the contract"""
        return self.from_units(self.call_read_function('getUSDCBalance'))

    # ============================================================
    # WRITE FUNCTIONS (Owner - Tokens)
    # ============================================================

    def create_token(
        self,
        token_id: int,
        name: str,
        description: str,
        max_supply: int,
        admin_private_key: Optional[str] = None,
    ) -> Dict[str, Any]:
        logger.info(f"Creating token {token_id} ({name}, max supply {max_supply})")
        function = self.contract.functions.createToken(token_id, name, description, max_supply)
        result = self._send(function, admin_private_key)
        logger.info(f"Created token {token_id} (tx: {result['tx_hash']})")
        return result

    def update_token_info(
        self,
        token_id: int,
        name: str,
        description: str,
        admin_private_key: Optional[str] = None,
    ) -> Dict[str, Any]:
        logger.info(f"Updating token {token_id} metadata")
        function = self.contract.functions.updateTokenInfo(token_id, name, description)
        result = self._send(function, admin_private_key)
        logger.info(f"Updated token {token_id} (tx: {result['tx_hash']})")
        return result

    def mint(
        self,
        to_address: str,
        token_id: int,
        amount: int,
        admin_private_key: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Mint tokens to an address (owner only)

        Args:
            to_address: Recipient address
            token_id: Token id
            amount: Number of tokens to mint
            admin_private_key: Owner's private key (defaults to settings)

        Returns:
            Transaction details
        """
        to_address = self.checksum_address(to_address)
        logger.info(f"Minting {amount} of token {token_id} to {to_address}")
        function = self.contract.functions.mint(to_address, token_id, amount, b"")
        result = self._send(function, admin_private_key)
        logger.info(f"Minted {amount} of token {token_id} to {to_address} (tx: {result['tx_hash']})")
        return result

    def mint_batch(
        self,
        to_address: str,
        token_ids: Sequence[int],
        amounts: Sequence[int],
        admin_private_key: Optional[str] = None,
    ) -> Dict[str, Any]:
        to_address = self.checksum_address(to_address)
        logger.info(f"Batch minting {list(amounts)} of tokens {list(token_ids)} to {to_address}")
        function = self.contract.functions.mintBatch(to_address, list(token_ids), list(amounts), b"")
        result = self._send(function, admin_private_key)
        logger.info(f"Batch minted to {to_address} (tx: {result['tx_hash']})")
        return result

    def burn(
        self,
        holder_address: str,
        token_id: int,
        amount: int,
        private_key: str,
        from_address: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Burn tokens of ``holder_address`` (sent by the holder or the owner)"""
        holder_address = self.checksum_address(holder_address)
        logger.info(f"Burning {amount} of token {token_id} from {holder_address}")
        function = self.contract.functions.burn(holder_address, token_id, amount)
        result = self._send(function, private_key, from_address or holder_address)
        logger.info(f"Burned {amount} of token {token_id} (tx: {result['tx_hash']})")
        return result

    # ============================================================
    # WRITE FUNCTIONS (Owner - Collection metadata)
    # ============================================================

    def set_base_uri(self, base_uri: str, admin_private_key: Optional[str] = None) -> Dict[str, Any]:
        logger.info(f"Setting base URI to {base_uri}")
        return self._send(self.contract.functions.setBaseURI(base_uri), admin_private_key)

    def set_name(self, name: str, admin_private_key: Optional[str] = None) -> Dict[str, Any]:
        logger.info(f"Setting collection name to {name}")
        return self._send(self.contract.functions.setName(name), admin_private_key)

    def set_symbol(self, symbol: str, admin_private_key: Optional[str] = None) -> Dict[str, Any]:
        logger.info(f"Setting collection symbol to {symbol}")
        return self._send(self.contract.functions.setSymbol(symbol), admin_private_key)

    # ============================================================
    # WRITE FUNCTIONS (Owner - Treasury)
    # ============================================================

    def set_usdc_address(self, usdc_address: str, admin_private_key: Optional[str] = None) -> Dict[str, Any]:
        usdc_address = self.checksum_address(usdc_address)
        logger.info(f"Setting USDC address to {usdc_address}")
        result = self._send(self.contract.functions.setUSDCAddress(usdc_address), admin_private_key)
        logger.info(f"USDC address set (tx: {result['tx_hash']})")
        return result

    def add_usdc(
        self,
        amount,
        private_key: Optional[str] = None,
        from_address: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Move ``amount`` USDC from the sender into the contract (allowance required)"""
        units = self.to_units(amount)
        logger.info(f"Adding {amount} USDC to the treasury")
        result = self._send(self.contract.functions.addUSDC(units), private_key, from_address)
        logger.info(f"Added {amount} USDC (tx: {result['tx_hash']})")
        return result

    def withdraw_usdc(self, amount, admin_private_key: Optional[str] = None) -> Dict[str, Any]:
        units = self.to_units(amount)
        logger.info(f"Withdrawing {amount} USDC to the owner")
        result = self._send(self.contract.functions.withdrawUSDC(units), admin_private_key)
        logger.info(f"Withdrew {amount} USDC (tx: {result['tx_hash']})")
        return result

    def payback(
        self,
        holder_address: str,
        token_id: int,
        token_amount: int,
        usdc_amount,
        admin_private_key: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Burn ``token_amount`` of ``token_id`` from the holder and pay them ``usdc_amount`` USDC"""
        holder_address = self.checksum_address(holder_address)
        units = self.to_units(usdc_amount)
        logger.info(
            f"Payback: {token_amount} of token {token_id} from {holder_address} for {usdc_amount} USDC"
        )
        function = self.contract.functions.payback(holder_address, token_id, token_amount, units)
        result = self._send(function, admin_private_key)
        logger.info(f"Payback confirmed (tx: {result['tx_hash']})")
        return result

    def pay_dividend(self, to_address: str, usdc_amount, admin_private_key: Optional[str] = None) -> Dict[str, Any]:
        to_address = self.checksum_address(to_address)
        units = self.to_units(usdc_amount)
        logger.info(f"Paying dividend of {usdc_amount} USDC to {to_address}")
        result = self._send(self.contract.functions.payDividend(to_address, units), admin_private_key)
        logger.info(f"Dividend paid (tx: {result['tx_hash']})")
        return result
