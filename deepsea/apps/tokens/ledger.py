"""
Token Ledger Service
Supply-bounded ERC-1155 style ledger backed by the Django ORM.

Every state-changing call runs inside ``transaction.atomic()`` and starts by
locking the collection row, so calls against one collection are applied in a
single global order and a failing call leaves no partial state behind.
"""

from __future__ import annotations

import logging
import secrets
import time
from collections import OrderedDict
from contextlib import contextmanager
from typing import Dict, Iterator, List, Optional, Sequence

from django.conf import settings
from django.db import transaction
from django.db.models import Sum

from .addresses import ZERO_ADDRESS, is_zero_address, normalize_address, random_address
from .errors import (
    AlreadyExists,
    InsufficientBalance,
    InvalidArgument,
    LengthMismatch,
    NotFound,
    SupplyExceeded,
    Unauthorized,
)
from .models import Collection, HolderBalance, LedgerEvent, OperatorApproval, TokenRecord
from .uri import resolve

logger = logging.getLogger(__name__)

DEFAULT_NAME = "Secret of the Deep"
DEFAULT_SYMBOL = "SOTD"

# Tokens created when a collection is deployed
SEED_TOKENS = [
    (1, "GOLD", "Precious gold from the depths of the ocean", 50),
    (2, "SILVER", "Silver recovered from sunken wrecks", 40),
    (3, "BRONZE", "Bronze relics from the ocean floor", 20),
]

# Largest value a PositiveBigIntegerField column holds
MAX_STORED_INT = 2**63 - 1


def require_uint(value, label: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidArgument(f"{label} must be an integer, got {value!r}")
    if value < 0 or value > MAX_STORED_INT:
        raise InvalidArgument(f"{label} {value} is out of range")
    return value


def require_positive(value, label: str) -> int:
    value = require_uint(value, label)
    if value == 0:
        raise InvalidArgument(f"{label} must be greater than 0")
    return value


def _group_amounts(token_ids: Sequence[int], amounts: Sequence[int]) -> "OrderedDict[int, int]":
    """Sum amounts per token id, keeping first-seen order."""
    grouped: "OrderedDict[int, int]" = OrderedDict()
    for token_id, amount in zip(token_ids, amounts):
        grouped[token_id] = grouped.get(token_id, 0) + amount
    return grouped


class LedgerCall:
    """
    Scope of one state-changing call.

    Holds the locked collection row, the authenticated caller, and the
    block metadata (number, timestamp, transaction hash) stamped on every
    event the call emits.
    """

    def __init__(self, collection: Collection, caller: str):
        self.collection = collection
        self.caller = caller
        collection.height += 1
        self.block_number = collection.height
        self.timestamp = int(time.time())
        self.transaction_hash = "0x" + secrets.token_hex(32)
        self.events: List[LedgerEvent] = []

    def require_owner(self) -> None:
        if self.caller != self.collection.owner:
            raise Unauthorized(f"Account {self.caller} is not the collection owner")

    def emit(self, event_name: str, **args) -> LedgerEvent:
        event = LedgerEvent.objects.create(
            collection=self.collection,
            block_number=self.block_number,
            log_index=len(self.events),
            name=event_name,
            args=args,
            transaction_hash=self.transaction_hash,
            timestamp=self.timestamp,
        )
        self.events.append(event)
        return event


class TokenLedger:
    """Service for creating, minting, burning and transferring collection tokens"""

    def __init__(self, collection: Collection):
        self.collection_id = collection.pk

    # ============================================================
    # DEPLOYMENT
    # ============================================================

    @classmethod
    def deploy(
        cls,
        owner: str,
        name: str = DEFAULT_NAME,
        symbol: str = DEFAULT_SYMBOL,
        base_uri: Optional[str] = None,
        address: Optional[str] = None,
        seed: bool = True,
    ) -> "TokenLedger":
        """
        Create a collection owned by ``owner``.

        Args:
            owner: Owner address
            name: Collection name
            symbol: Collection symbol
            base_uri: Metadata URI template (defaults to settings)
            address: Account address of the collection (random if omitted)
            seed: Create the GOLD/SILVER/BRONZE tokens

        Returns:
            Ledger bound to the new collection
        """
        owner = normalize_address(owner, "owner")
        address = normalize_address(address, "collection address") if address else random_address()

        with transaction.atomic():
            collection = Collection.objects.create(
                address=address,
                owner=owner,
                name=name,
                symbol=symbol,
                base_uri=base_uri or settings.DEFAULT_BASE_URI,
            )
            ledger = cls(collection)
            with ledger.call(owner) as call:
                call.emit("OwnershipTransferred", previousOwner=ZERO_ADDRESS, newOwner=owner)
                if seed:
                    for token_id, token_name, description, max_supply in SEED_TOKENS:
                        ledger._create(call, token_id, token_name, description, max_supply)

        logger.info(f"Deployed collection {name} at {address} (owner {owner})")
        return ledger

    @contextmanager
    def call(self, caller: str) -> Iterator[LedgerCall]:
        """Open an atomic call scope with the collection row locked."""
        caller = normalize_address(caller, "caller")
        with transaction.atomic():
            collection = Collection.objects.select_for_update().get(pk=self.collection_id)
            scope = LedgerCall(collection, caller)
            yield scope
            collection.save()

    # ============================================================
    # READ-ONLY FUNCTIONS
    # ============================================================

    def get_collection(self) -> Collection:
        return Collection.objects.get(pk=self.collection_id)

    def owner(self) -> str:
        return self.get_collection().owner

    def get_token_info(self, token_id: int) -> Optional[TokenRecord]:
        """Current record for ``token_id``, or None when it was never created"""
        return TokenRecord.objects.filter(collection_id=self.collection_id, token_id=token_id).first()

    def active_tokens(self) -> List[TokenRecord]:
        return list(TokenRecord.objects.filter(collection_id=self.collection_id, is_active=True))

    def balance_of(self, holder: str, token_id: int) -> int:
        holder = normalize_address(holder, "holder")
        row = HolderBalance.objects.filter(
            collection_id=self.collection_id, holder=holder, token_id=token_id
        ).first()
        return row.amount if row else 0

    def balance_of_batch(self, holders: Sequence[str], token_ids: Sequence[int]) -> List[int]:
        if len(holders) != len(token_ids):
            raise LengthMismatch(f"{len(holders)} holders but {len(token_ids)} token ids")
        return [self.balance_of(holder, token_id) for holder, token_id in zip(holders, token_ids)]

    def total_held(self, token_id: int) -> int:
        """Sum of all holder balances for ``token_id``"""
        total = HolderBalance.objects.filter(
            collection_id=self.collection_id, token_id=token_id
        ).aggregate(total=Sum("amount"))["total"]
        return total or 0

    def is_approved_for_all(self, holder: str, operator: str) -> bool:
        return OperatorApproval.objects.filter(
            collection_id=self.collection_id,
            holder=normalize_address(holder, "holder"),
            operator=normalize_address(operator, "operator"),
            approved=True,
        ).exists()

    def uri(self, token_id: int) -> str:
        """Resolved metadata URI of an active token"""
        record = self.get_token_info(token_id)
        if record is None or not record.is_active:
            raise NotFound(f"Token {token_id} does not exist")
        return resolve(self.get_collection().base_uri, token_id)

    # ============================================================
    # WRITE FUNCTIONS (Owner - Token definitions)
    # ============================================================

    def create_token(
        self, caller: str, token_id: int, name: str, description: str, max_supply: int
    ) -> TokenRecord:
        with self.call(caller) as call:
            call.require_owner()
            record = self._create(call, token_id, name, description, max_supply)
        logger.info(f"Created token {token_id} ({name}) with max supply {max_supply}")
        return record

    def _create(
        self, call: LedgerCall, token_id: int, name: str, description: str, max_supply: int
    ) -> TokenRecord:
        require_uint(token_id, "Token id")
        existing = self._record(call, token_id)
        if existing is not None and existing.is_active:
            raise AlreadyExists(f"Token {token_id} already exists")
        require_positive(max_supply, "Max supply")

        record, _ = TokenRecord.objects.update_or_create(
            collection=call.collection,
            token_id=token_id,
            defaults={
                "name": name,
                "description": description,
                "max_supply": max_supply,
                "current_supply": 0,
                "is_active": True,
            },
        )
        call.emit("TokenCreated", tokenId=token_id, name=name, maxSupply=max_supply)
        return record

    def update_token_info(self, caller: str, token_id: int, name: str, description: str) -> TokenRecord:
        with self.call(caller) as call:
            call.require_owner()
            record = self.active_record(call, token_id)
            record.name = name
            record.description = description
            record.save(update_fields=["name", "description", "updated_at"])
            call.emit("TokenInfoUpdated", tokenId=token_id, name=name, description=description)
        logger.info(f"Updated token {token_id} info")
        return record

    # ============================================================
    # WRITE FUNCTIONS (Owner - Minting)
    # ============================================================

    def mint(self, caller: str, to: str, token_id: int, amount: int) -> TokenRecord:
        """
        Mint ``amount`` of ``token_id`` to ``to`` (owner only)

        Raises:
            NotFound: token is not active
            SupplyExceeded: current supply + amount > max supply
        """
        with self.call(caller) as call:
            call.require_owner()
            to = self._recipient(to)
            require_positive(amount, "Amount")
            record = self.active_record(call, token_id)
            if record.current_supply + amount > record.max_supply:
                raise SupplyExceeded(
                    f"Cannot mint {amount} of token {token_id}: supply {record.current_supply} "
                    f"of max {record.max_supply}"
                )
            self._credit(call, to, record, amount)
            call.emit(
                "TransferSingle",
                operator=call.caller,
                **{"from": ZERO_ADDRESS},
                to=to,
                id=token_id,
                value=amount,
            )
            call.emit("TokenMinted", tokenId=token_id, to=to, amount=amount)
        logger.info(f"Minted {amount} of token {token_id} to {to}")
        return record

    def mint_batch(
        self, caller: str, to: str, token_ids: Sequence[int], amounts: Sequence[int]
    ) -> List[TokenRecord]:
        """
        Mint several token ids in one call (owner only).

        Every pair is validated before anything is written; one bad pair
        rejects the whole batch.
        """
        token_ids = list(token_ids)
        amounts = list(amounts)
        with self.call(caller) as call:
            call.require_owner()
            to = self._recipient(to)
            if len(token_ids) != len(amounts):
                raise LengthMismatch(f"{len(token_ids)} token ids but {len(amounts)} amounts")
            if not token_ids:
                raise InvalidArgument("Batch is empty")
            for amount in amounts:
                require_positive(amount, "Amount")

            records: Dict[int, TokenRecord] = {}
            for token_id, total in _group_amounts(token_ids, amounts).items():
                record = self.active_record(call, token_id)
                if record.current_supply + total > record.max_supply:
                    raise SupplyExceeded(
                        f"Cannot mint {total} of token {token_id}: supply {record.current_supply} "
                        f"of max {record.max_supply}"
                    )
                records[token_id] = record

            for token_id, amount in zip(token_ids, amounts):
                self._credit(call, to, records[token_id], amount)

            call.emit(
                "TransferBatch",
                operator=call.caller,
                **{"from": ZERO_ADDRESS},
                to=to,
                ids=token_ids,
                values=amounts,
            )
            for token_id, amount in zip(token_ids, amounts):
                call.emit("TokenMinted", tokenId=token_id, to=to, amount=amount)
        logger.info(f"Batch minted tokens {token_ids} to {to}")
        return list(records.values())

    # ============================================================
    # WRITE FUNCTIONS (Holder or Owner - Burning)
    # ============================================================

    def burn(self, caller: str, holder: str, token_id: int, amount: int) -> TokenRecord:
        holder = normalize_address(holder, "holder")
        with self.call(caller) as call:
            if call.caller != holder and call.caller != call.collection.owner:
                raise Unauthorized(f"Account {call.caller} is not authorized to burn for {holder}")
            require_positive(amount, "Amount")
            record = self.active_record(call, token_id)
            self.apply_burn(call, holder, record, amount)
        logger.info(f"Burned {amount} of token {token_id} from {holder}")
        return record

    def apply_burn(self, call: LedgerCall, holder: str, record: TokenRecord, amount: int) -> None:
        """Debit ``holder`` and the token supply inside an open call scope."""
        row = self._balance_row(call, holder, record.token_id)
        if row.amount < amount:
            raise InsufficientBalance(
                f"{holder} holds {row.amount} of token {record.token_id}, {amount} required"
            )
        row.amount -= amount
        row.save(update_fields=["amount", "updated_at"])
        record.current_supply -= amount
        record.save(update_fields=["current_supply", "updated_at"])
        call.emit(
            "TransferSingle",
            operator=call.caller,
            **{"from": holder},
            to=ZERO_ADDRESS,
            id=record.token_id,
            value=amount,
        )
        call.emit("TokenBurned", tokenId=record.token_id, **{"from": holder}, amount=amount)

    # ============================================================
    # WRITE FUNCTIONS (Holders - ERC-1155 transfers & approvals)
    # ============================================================

    def set_approval_for_all(self, caller: str, operator: str, approved: bool) -> None:
        operator = normalize_address(operator, "operator")
        with self.call(caller) as call:
            if operator == call.caller:
                raise InvalidArgument("Cannot set approval status for self")
            OperatorApproval.objects.update_or_create(
                collection=call.collection,
                holder=call.caller,
                operator=operator,
                defaults={"approved": bool(approved)},
            )
            call.emit("ApprovalForAll", account=call.caller, operator=operator, approved=bool(approved))

    def safe_transfer_from(self, caller: str, sender: str, to: str, token_id: int, amount: int) -> None:
        self.safe_batch_transfer_from(caller, sender, to, [token_id], [amount], single=True)

    def safe_batch_transfer_from(
        self,
        caller: str,
        sender: str,
        to: str,
        token_ids: Sequence[int],
        amounts: Sequence[int],
        single: bool = False,
    ) -> None:
        token_ids = list(token_ids)
        amounts = list(amounts)
        sender = normalize_address(sender, "sender")
        to = self._recipient(to)
        with self.call(caller) as call:
            if call.caller != sender and not self._approved(call, sender, call.caller):
                raise Unauthorized(f"Account {call.caller} is not the holder or an approved operator")
            if len(token_ids) != len(amounts):
                raise LengthMismatch(f"{len(token_ids)} token ids but {len(amounts)} amounts")
            for token_id, amount in zip(token_ids, amounts):
                require_uint(token_id, "Token id")
                require_uint(amount, "Amount")

            for token_id, total in _group_amounts(token_ids, amounts).items():
                row = self._balance_row(call, sender, token_id)
                if row.amount < total:
                    raise InsufficientBalance(
                        f"{sender} holds {row.amount} of token {token_id}, {total} required"
                    )

            for token_id, amount in zip(token_ids, amounts):
                source = self._balance_row(call, sender, token_id)
                source.amount -= amount
                source.save(update_fields=["amount", "updated_at"])
                target = self._balance_row(call, to, token_id)
                target.amount += amount
                target.save(update_fields=["amount", "updated_at"])

            if single:
                call.emit(
                    "TransferSingle",
                    operator=call.caller,
                    **{"from": sender},
                    to=to,
                    id=token_ids[0],
                    value=amounts[0],
                )
            else:
                call.emit(
                    "TransferBatch",
                    operator=call.caller,
                    **{"from": sender},
                    to=to,
                    ids=token_ids,
                    values=amounts,
                )
        logger.info(f"Transferred tokens {token_ids} from {sender} to {to}")

    # ============================================================
    # WRITE FUNCTIONS (Owner - Collection metadata)
    # ============================================================

    def set_base_uri(self, caller: str, base_uri: str) -> None:
        with self.call(caller) as call:
            call.require_owner()
            if not base_uri or not base_uri.strip():
                raise InvalidArgument("Base URI cannot be empty")
            call.collection.base_uri = base_uri
            call.emit("BaseURIUpdated", newBaseURI=base_uri)
        logger.info(f"Base URI set to {base_uri}")

    def set_name(self, caller: str, name: str) -> None:
        with self.call(caller) as call:
            call.require_owner()
            call.collection.name = name

    def set_symbol(self, caller: str, symbol: str) -> None:
        with self.call(caller) as call:
            call.require_owner()
            call.collection.symbol = symbol

    def set_contract_uri(self, caller: str, contract_uri: str) -> None:
        with self.call(caller) as call:
            call.require_owner()
            call.collection.contract_uri = contract_uri

    def transfer_ownership(self, caller: str, new_owner: str) -> None:
        with self.call(caller) as call:
            call.require_owner()
            new_owner = normalize_address(new_owner, "new owner")
            if is_zero_address(new_owner):
                raise InvalidArgument("New owner is the zero address")
            previous = call.collection.owner
            call.collection.owner = new_owner
            call.emit("OwnershipTransferred", previousOwner=previous, newOwner=new_owner)
        logger.info(f"Ownership transferred to {new_owner}")

    # ============================================================
    # HELPERS
    # ============================================================

    def _recipient(self, to: str) -> str:
        to = normalize_address(to, "recipient")
        if is_zero_address(to):
            raise InvalidArgument("Cannot send tokens to the zero address")
        return to

    def _record(self, call: LedgerCall, token_id: int) -> Optional[TokenRecord]:
        return (
            TokenRecord.objects.select_for_update()
            .filter(collection=call.collection, token_id=token_id)
            .first()
        )

    def active_record(self, call: LedgerCall, token_id: int) -> TokenRecord:
        require_uint(token_id, "Token id")
        record = self._record(call, token_id)
        if record is None or not record.is_active:
            raise NotFound(f"Token {token_id} does not exist")
        return record

    def holder_balance(self, call: LedgerCall, holder: str, token_id: int) -> int:
        """Balance of ``holder`` read under the call's lock"""
        return self._balance_row(call, holder, token_id).amount

    def _balance_row(self, call: LedgerCall, holder: str, token_id: int) -> HolderBalance:
        row, _ = HolderBalance.objects.select_for_update().get_or_create(
            collection=call.collection, holder=holder, token_id=token_id
        )
        return row

    def _credit(self, call: LedgerCall, to: str, record: TokenRecord, amount: int) -> None:
        row = self._balance_row(call, to, record.token_id)
        row.amount += amount
        row.save(update_fields=["amount", "updated_at"])
        record.current_supply += amount
        record.save(update_fields=["current_supply", "updated_at"])

    def _approved(self, call: LedgerCall, holder: str, operator: str) -> bool:
        return OperatorApproval.objects.filter(
            collection=call.collection, holder=holder, operator=operator, approved=True
        ).exists()
