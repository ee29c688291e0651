"""
Stable-coin ledger interface and its database-backed book.

Amounts are integers in the token's minor unit (USDC: 6 decimals).
``transfer`` and ``transfer_from`` report failure by returning False, the
way an ERC-20 call result is checked by the caller.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from decimal import ROUND_DOWN, Decimal, InvalidOperation
from typing import Union

from django.db import transaction

from deepsea.apps.tokens.addresses import normalize_address
from deepsea.apps.tokens.errors import InvalidArgument

from .models import StableCoinAllowance, StableCoinBalance

logger = logging.getLogger(__name__)

USDC_DECIMALS = 6


def to_units(amount: Union[str, int, float, Decimal], decimals: int = USDC_DECIMALS) -> int:
    """Convert a human amount (e.g. "10.5") to minor units, truncating extra digits"""
    try:
        value = Decimal(str(amount))
    except InvalidOperation as exc:
        raise InvalidArgument(f"Invalid amount: {amount!r}") from exc
    if not value.is_finite() or value < 0:
        raise InvalidArgument(f"Invalid amount: {amount!r}")
    scaled = (value * (Decimal(10) ** decimals)).quantize(Decimal(1), rounding=ROUND_DOWN)
    return int(scaled)


def from_units(units: int, decimals: int = USDC_DECIMALS) -> Decimal:
    """Convert minor units to a Decimal amount"""
    return Decimal(units) / (Decimal(10) ** decimals)


class StableCoinLedger(ABC):
    """ERC-20 surface the treasury depends on"""

    decimals = USDC_DECIMALS

    @abstractmethod
    def balance_of(self, account: str) -> int:
        ...

    @abstractmethod
    def allowance(self, owner: str, spender: str) -> int:
        ...

    @abstractmethod
    def approve(self, owner: str, spender: str, amount: int) -> bool:
        ...

    @abstractmethod
    def transfer(self, sender: str, recipient: str, amount: int) -> bool:
        ...

    @abstractmethod
    def transfer_from(self, spender: str, owner: str, recipient: str, amount: int) -> bool:
        ...


class StableCoinBook(StableCoinLedger):
    """Stable-coin balances kept in the database, one book per token address"""

    def __init__(self, token: str):
        self.token = normalize_address(token, "stable-coin address")

    def balance_of(self, account: str) -> int:
        row = StableCoinBalance.objects.filter(
            token=self.token, account=normalize_address(account, "account")
        ).first()
        return row.amount if row else 0

    def allowance(self, owner: str, spender: str) -> int:
        row = StableCoinAllowance.objects.filter(
            token=self.token,
            owner=normalize_address(owner, "owner"),
            spender=normalize_address(spender, "spender"),
        ).first()
        return row.amount if row else 0

    def approve(self, owner: str, spender: str, amount: int) -> bool:
        StableCoinAllowance.objects.update_or_create(
            token=self.token,
            owner=normalize_address(owner, "owner"),
            spender=normalize_address(spender, "spender"),
            defaults={"amount": amount},
        )
        return True

    def mint(self, account: str, amount: int) -> int:
        """Credit ``account`` out of thin air (faucet / test funding)"""
        with transaction.atomic():
            row = self._row(normalize_address(account, "account"))
            row.amount += amount
            row.save(update_fields=["amount", "updated_at"])
        return row.amount

    def transfer(self, sender: str, recipient: str, amount: int) -> bool:
        sender = normalize_address(sender, "sender")
        recipient = normalize_address(recipient, "recipient")
        with transaction.atomic():
            return self._move(sender, recipient, amount)

    def transfer_from(self, spender: str, owner: str, recipient: str, amount: int) -> bool:
        spender = normalize_address(spender, "spender")
        owner = normalize_address(owner, "owner")
        recipient = normalize_address(recipient, "recipient")
        with transaction.atomic():
            allowance, _ = StableCoinAllowance.objects.select_for_update().get_or_create(
                token=self.token, owner=owner, spender=spender
            )
            if allowance.amount < amount:
                logger.warning(f"Allowance {allowance.amount} of {owner} for {spender} below {amount}")
                return False
            if not self._move(owner, recipient, amount):
                return False
            allowance.amount -= amount
            allowance.save(update_fields=["amount", "updated_at"])
        return True

    def _row(self, account: str) -> StableCoinBalance:
        row, _ = StableCoinBalance.objects.select_for_update().get_or_create(
            token=self.token, account=account
        )
        return row

    def _move(self, sender: str, recipient: str, amount: int) -> bool:
        source = self._row(sender)
        if source.amount < amount:
            logger.warning(f"Balance {source.amount} of {sender} below {amount}")
            return False
        source.amount -= amount
        source.save(update_fields=["amount", "updated_at"])
        target = self._row(recipient)
        target.amount += amount
        target.save(update_fields=["amount", "updated_at"])
        return True
