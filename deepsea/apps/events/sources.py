"""
Log sources the event scanner can read from.

A source answers three questions: the current tip, the logs of one event
kind over an inclusive block range, and the timestamp of a block.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Mapping, Optional

from deepsea.apps.tokens.models import Collection, LedgerEvent

from .errors import RangeTooLarge

logger = logging.getLogger(__name__)


class LogSource(ABC):
    @abstractmethod
    def block_number(self) -> int:
        """Current tip"""

    @abstractmethod
    def query_events(self, event_name: str, from_block: int, to_block: int) -> List[Mapping[str, Any]]:
        """Logs of ``event_name`` in ``[from_block, to_block]``"""

    @abstractmethod
    def block_timestamp(self, block_number: int) -> int:
        """Unix timestamp of a block"""


class ContractLogSource(LogSource):
    """Reads logs of a deployed contract through a web3 contract service"""

    def __init__(self, service):
        self.service = service

    def block_number(self) -> int:
        return self.service.get_block_number()

    def query_events(self, event_name: str, from_block: int, to_block: int) -> List[Mapping[str, Any]]:
        return list(self.service.get_event_logs(event_name, from_block, to_block))

    def block_timestamp(self, block_number: int) -> int:
        return self.service.get_block_timestamp(block_number)


class LedgerLogSource(LogSource):
    """
    Replays the event log of a local collection.

    ``max_range`` makes the source reject ranges wider than that many
    blocks, the way hosted RPC providers limit getLogs.
    """

    def __init__(self, collection: Collection, max_range: Optional[int] = None):
        self.collection_id = collection.pk
        self.address = collection.address
        self.max_range = max_range

    def block_number(self) -> int:
        return Collection.objects.values_list("height", flat=True).get(pk=self.collection_id)

    def query_events(self, event_name: str, from_block: int, to_block: int) -> List[Dict[str, Any]]:
        span = to_block - from_block + 1
        if self.max_range is not None and span > self.max_range:
            raise RangeTooLarge(f"block range is too large: {span} > {self.max_range}")
        rows = LedgerEvent.objects.filter(
            collection_id=self.collection_id,
            name=event_name,
            block_number__gte=from_block,
            block_number__lte=to_block,
        ).order_by("block_number", "log_index")
        return [
            {
                "event": row.name,
                "args": row.args,
                "address": self.address,
                "blockNumber": row.block_number,
                "logIndex": row.log_index,
                "transactionHash": row.transaction_hash,
            }
            for row in rows
        ]

    def block_timestamp(self, block_number: int) -> int:
        timestamp = (
            LedgerEvent.objects.filter(collection_id=self.collection_id, block_number=block_number)
            .values_list("timestamp", flat=True)
            .first()
        )
        if timestamp is None:
            raise LookupError(f"Block {block_number} has no events")
        return timestamp
