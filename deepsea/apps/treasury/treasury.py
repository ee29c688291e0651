"""
Treasury Service
USDC deposits, withdrawals, token buy-backs (payback) and dividends.

The treasury's balance is always read from the stable-coin ledger's view of
the collection account, never cached. Payback burns tokens and pays USDC in
the same atomic call: if the payment fails the burn is rolled back.
"""

from __future__ import annotations

import logging
from typing import Optional

from deepsea.apps.tokens.addresses import is_zero_address, normalize_address
from deepsea.apps.tokens.errors import (
    InsufficientBalance,
    InvalidArgument,
    TransferFailed,
)
from deepsea.apps.tokens.ledger import TokenLedger, require_positive
from deepsea.apps.tokens.models import Collection

from .stablecoin import StableCoinBook, StableCoinLedger, from_units

logger = logging.getLogger(__name__)


class Treasury:
    """Stable-coin treasury of one collection"""

    def __init__(self, ledger: TokenLedger, stablecoin: Optional[StableCoinLedger] = None):
        """
        Args:
            ledger: Token ledger of the collection
            stablecoin: Stable-coin ledger to use (defaults to the book of the
                collection's configured USDC address)
        """
        self.ledger = ledger
        self._stablecoin = stablecoin

    def stablecoin(self, collection: Optional[Collection] = None) -> StableCoinLedger:
        if self._stablecoin is not None:
            return self._stablecoin
        collection = collection or self.ledger.get_collection()
        if not collection.usdc_address:
            raise InvalidArgument("USDC address is not set")
        return StableCoinBook(collection.usdc_address)

    # ============================================================
    # READ-ONLY FUNCTIONS
    # ============================================================

    def get_balance(self) -> int:
        """USDC held by the collection account (minor units)"""
        collection = self.ledger.get_collection()
        return self.stablecoin(collection).balance_of(collection.address)

    # ============================================================
    # WRITE FUNCTIONS
    # ============================================================

    def set_usdc_address(self, caller: str, usdc_address: str) -> None:
        with self.ledger.call(caller) as call:
            call.require_owner()
            usdc_address = normalize_address(usdc_address, "USDC address")
            if is_zero_address(usdc_address):
                raise InvalidArgument("USDC address cannot be the zero address")
            previous = call.collection.usdc_address
            call.collection.usdc_address = usdc_address
            call.emit("USDCAddressUpdated", oldAddress=previous, newAddress=usdc_address)
        logger.info(f"USDC address set to {usdc_address}")

    def add_funds(self, caller: str, amount: int) -> int:
        """
        Move ``amount`` USDC from ``caller`` into the collection account.

        The caller must have approved the collection account as spender
        beforehand; anyone may fund the treasury.

        Returns:
            New treasury balance
        """
        require_positive(amount, "Amount")
        with self.ledger.call(caller) as call:
            coin = self.stablecoin(call.collection)
            account = call.collection.address
            if not coin.transfer_from(account, call.caller, account, amount):
                raise TransferFailed(f"USDC transfer of {from_units(amount)} from {call.caller} failed")
            call.emit("USDCAdded", **{"from": call.caller}, amount=amount)
            balance = coin.balance_of(account)
        logger.info(f"Added {from_units(amount)} USDC from {caller}")
        return balance

    def withdraw(self, caller: str, amount: int) -> int:
        """Send ``amount`` USDC to the owner (owner only). Returns the new balance."""
        with self.ledger.call(caller) as call:
            call.require_owner()
            require_positive(amount, "Amount")
            coin = self.stablecoin(call.collection)
            account = call.collection.address
            self._require_funds(coin, account, amount)
            if not coin.transfer(account, call.collection.owner, amount):
                raise TransferFailed(f"USDC withdrawal of {from_units(amount)} failed")
            call.emit("USDCWithdrawn", to=call.collection.owner, amount=amount)
            balance = coin.balance_of(account)
        logger.info(f"Withdrew {from_units(amount)} USDC to owner")
        return balance

    def payback(
        self, caller: str, holder: str, token_id: int, token_amount: int, usdc_amount: int
    ) -> int:
        """
        Buy back tokens: burn ``token_amount`` of ``token_id`` from ``holder``
        and pay them ``usdc_amount`` USDC (owner only).

        Raises:
            NotFound: token is not active
            InvalidArgument: either amount is zero
            InsufficientBalance: holder lacks tokens or treasury lacks USDC
            TransferFailed: the USDC payment was rejected (nothing is burned)

        Returns:
            New treasury balance
        """
        with self.ledger.call(caller) as call:
            call.require_owner()
            holder = normalize_address(holder, "holder")
            record = self.ledger.active_record(call, token_id)
            require_positive(token_amount, "Token amount")
            require_positive(usdc_amount, "USDC amount")

            held = self.ledger.holder_balance(call, holder, token_id)
            if held < token_amount:
                raise InsufficientBalance(
                    f"{holder} holds {held} of token {token_id}, {token_amount} required"
                )
            coin = self.stablecoin(call.collection)
            account = call.collection.address
            self._require_funds(coin, account, usdc_amount)

            self.ledger.apply_burn(call, holder, record, token_amount)
            if not coin.transfer(account, holder, usdc_amount):
                raise TransferFailed(f"USDC payment of {from_units(usdc_amount)} to {holder} failed")
            call.emit(
                "TokenPayback",
                **{"from": holder},
                tokenId=token_id,
                tokenAmount=token_amount,
                usdcAmount=usdc_amount,
            )
            balance = coin.balance_of(account)
        logger.info(
            f"Payback: burned {token_amount} of token {token_id} from {holder} "
            f"for {from_units(usdc_amount)} USDC"
        )
        return balance

    def pay_dividend(self, caller: str, to: str, usdc_amount: int) -> int:
        """Pay ``usdc_amount`` USDC to ``to`` without burning tokens (owner only)"""
        with self.ledger.call(caller) as call:
            call.require_owner()
            to = normalize_address(to, "recipient")
            if is_zero_address(to):
                raise InvalidArgument("Cannot pay a dividend to the zero address")
            require_positive(usdc_amount, "USDC amount")
            coin = self.stablecoin(call.collection)
            account = call.collection.address
            self._require_funds(coin, account, usdc_amount)
            if not coin.transfer(account, to, usdc_amount):
                raise TransferFailed(f"USDC dividend of {from_units(usdc_amount)} to {to} failed")
            call.emit("DividendPaid", to=to, amount=usdc_amount)
            balance = coin.balance_of(account)
        logger.info(f"Paid dividend of {from_units(usdc_amount)} USDC to {to}")
        return balance

    def _require_funds(self, coin: StableCoinLedger, account: str, amount: int) -> None:
        available = coin.balance_of(account)
        if amount > available:
            raise InsufficientBalance(
                f"Treasury holds {from_units(available)} USDC, {from_units(amount)} requested"
            )
