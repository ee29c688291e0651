"""
Base Web3 Contract Service
Connection, ABI loading, transaction sending and log queries shared by the
collection and stable-coin services.
"""

from web3 import Web3
from web3.contract import Contract
from web3.exceptions import ContractLogicError
from typing import Optional, Dict, Any, List
from decimal import Decimal
from pathlib import Path
from django.conf import settings
import logging
import json
import time

logger = logging.getLogger(__name__)


def load_abi(path) -> List[Dict[str, Any]]:
    """Load an ABI from a plain ABI list or a compiled artifact ({"abi": [...]})"""
    with open(path, "r") as f:
        data = json.load(f)
    if isinstance(data, dict):
        return data["abi"]
    return data


class BaseContractService:
    """Base class for Web3 contract interactions"""

    # Token decimals used by to_units/from_units
    decimals = 18

    def __init__(
        self,
        contract_address: str,
        abi_path,
        provider_url: Optional[str] = None,
        web3: Optional[Web3] = None,
    ):
        """
        Initialize the contract service

        Args:
            contract_address: The deployed contract address
            abi_path: Path to the contract ABI JSON file
            provider_url: Optional Web3 provider URL (defaults to settings)
            web3: Optional ready Web3 instance (skips the connection check)
        """
        self.provider_url = provider_url or settings.WEB3_PROVIDER_URL
        if web3 is None:
            web3 = Web3(Web3.HTTPProvider(self.provider_url))
            if not web3.is_connected():
                raise ConnectionError(f"Failed to connect to Web3 provider: {self.provider_url}")
        self.web3 = web3

        if not contract_address:
            raise ValueError(f"No contract address configured for {type(self).__name__}")

        self.contract_address = Web3.to_checksum_address(contract_address)
        self.contract: Contract = self.web3.eth.contract(
            address=self.contract_address,
            abi=load_abi(abi_path),
        )

        logger.info(f"Initialized contract at {self.contract_address}")

    def to_units(self, amount) -> int:
        """Convert a token amount to its smallest unit"""
        return int(Decimal(str(amount)) * (Decimal(10) ** self.decimals))

    def from_units(self, amount: int) -> Decimal:
        """Convert smallest units to a token amount"""
        return Decimal(amount) / (Decimal(10) ** self.decimals)

    def checksum_address(self, address: str) -> str:
        """Convert address to checksum format"""
        return Web3.to_checksum_address(address)

    def get_account_from_private_key(self, private_key: str):
        """Get account object from private key"""
        return self.web3.eth.account.from_key(private_key)

    def build_and_send_transaction(
        self,
        function,
        from_address: str,
        private_key: str,
        value: int = 0,
        gas_multiplier: float = 1.2,
        max_retries: int = 3
    ) -> Dict[str, Any]:
        """
        Build, sign, and send a transaction with nonce retry logic

        Args:
            function: Contract function to call
            from_address: Sender address
            private_key: Sender's private key
            value: Native token value to send (in wei)
            gas_multiplier: Multiplier for gas estimation (default 1.2 = 20% buffer)
            max_retries: Maximum number of retry attempts for nonce conflicts (default 3)

        Returns:
            Dict with transaction hash and receipt
        """
        last_error = None

        for attempt in range(max_retries):
            try:
                account = self.get_account_from_private_key(private_key)
                from_address = self.checksum_address(from_address)

                # Fresh nonce for each attempt
                nonce = self.web3.eth.get_transaction_count(from_address, 'pending')

                try:
                    estimated_gas = function.estimate_gas({'from': from_address, 'value': value})
                    gas_limit = int(estimated_gas * gas_multiplier)
                except ContractLogicError:
                    raise
                except Exception as e:
                    logger.warning(f"Gas estimation failed: {e}. Using default 500000")
                    gas_limit = 500000

                transaction = function.build_transaction({
                    'from': from_address,
                    'nonce': nonce,
                    'gas': gas_limit,
                    'gasPrice': self.web3.eth.gas_price,
                    'value': value,
                    'chainId': self.web3.eth.chain_id,
                })

                signed_txn = account.sign_transaction(transaction)
                tx_hash = self.web3.eth.send_raw_transaction(signed_txn.raw_transaction)
                logger.info(f"Transaction sent: {tx_hash.hex()}")

                receipt = self.web3.eth.wait_for_transaction_receipt(tx_hash, timeout=120)
                if receipt['status'] == 0:
                    raise Exception("Transaction failed on-chain")

                logger.info(f"Transaction confirmed in block {receipt['blockNumber']}")

                # Let the pending nonce catch up before the next send
                time.sleep(0.5)

                return {
                    'tx_hash': tx_hash.hex(),
                    'receipt': receipt,
                    'gas_used': receipt['gasUsed'],
                    'block_number': receipt['blockNumber'],
                }

            except ContractLogicError as e:
                logger.error(f"Contract logic error: {e}")
                raise
            except Exception as e:
                error_message = str(e).lower()
                if ('nonce' in error_message or 'replacement transaction underpriced' in error_message) and attempt < max_retries - 1:
                    logger.warning(f"Transaction conflict, retrying... (attempt {attempt + 2}/{max_retries})")
                    time.sleep(1)
                    last_error = e
                    continue
                logger.error(f"Transaction error: {e}")
                raise

        if last_error:
            raise last_error
        raise Exception("Transaction failed after maximum retries")

    def call_read_function(self, function_name: str, *args) -> Any:
        """
        Call a read-only contract function

        Args:
            function_name: Name of the function to call
            *args: Arguments to pass to the function

        Returns:
            Function result
        """
        try:
            function = getattr(self.contract.functions, function_name)
            return function(*args).call()
        except Exception as e:
            logger.error(f"Error calling {function_name}: {e}")
            raise

    def get_event_logs(
        self,
        event_name: str,
        from_block: int = 0,
        to_block='latest',
        filters: Optional[Dict] = None
    ):
        """
        Get event logs from the contract

        Args:
            event_name: Name of the event
            from_block: Starting block number
            to_block: Ending block number or 'latest'
            filters: Optional filters for indexed parameters

        Returns:
            List of event logs
        """
        event = getattr(self.contract.events, event_name)

        filter_params = {
            'from_block': from_block,
            'to_block': to_block,
        }
        if filters:
            filter_params['argument_filters'] = filters

        try:
            return event.get_logs(**filter_params)
        except Exception as e:
            # Range errors are expected; the scanner decides what to do with them
            logger.debug(f"Error getting {event_name} logs for {from_block}-{to_block}: {e}")
            raise

    def get_block_number(self) -> int:
        """Get current block number"""
        return self.web3.eth.block_number

    def get_block_timestamp(self, block_number: int) -> int:
        """Get the unix timestamp of a block"""
        return int(self.web3.eth.get_block(block_number)['timestamp'])


def deploy_contract(
    artifact_path: Path,
    constructor_args=(),
    from_address: Optional[str] = None,
    private_key: Optional[str] = None,
    provider_url: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Deploy a compiled contract artifact ({"abi": ..., "bytecode": ...}).

    Returns:
        Dict with contract_address, tx_hash and block_number
    """
    web3 = Web3(Web3.HTTPProvider(provider_url or settings.WEB3_PROVIDER_URL))
    if not web3.is_connected():
        raise ConnectionError(f"Failed to connect to Web3 provider: {provider_url or settings.WEB3_PROVIDER_URL}")

    with open(artifact_path, "r") as f:
        artifact = json.load(f)

    from_address = Web3.to_checksum_address(from_address or settings.ADMIN_ADDRESS)
    account = web3.eth.account.from_key(private_key or settings.ADMIN_PRIVATE_KEY)
    factory = web3.eth.contract(abi=artifact["abi"], bytecode=artifact["bytecode"])

    transaction = factory.constructor(*constructor_args).build_transaction({
        'from': from_address,
        'nonce': web3.eth.get_transaction_count(from_address, 'pending'),
        'gasPrice': web3.eth.gas_price,
        'chainId': web3.eth.chain_id,
    })
    signed_txn = account.sign_transaction(transaction)
    tx_hash = web3.eth.send_raw_transaction(signed_txn.raw_transaction)
    logger.info(f"Deployment sent: {tx_hash.hex()}")

    receipt = web3.eth.wait_for_transaction_receipt(tx_hash, timeout=300)
    if receipt['status'] == 0:
        raise Exception("Deployment failed on-chain")

    logger.info(f"Contract deployed at {receipt['contractAddress']} in block {receipt['blockNumber']}")
    return {
        'contract_address': receipt['contractAddress'],
        'tx_hash': tx_hash.hex(),
        'block_number': receipt['blockNumber'],
        'chain_id': web3.eth.chain_id,
    }
