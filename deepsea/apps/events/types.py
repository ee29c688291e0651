from __future__ import annotations

from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Mapping, Optional, Tuple

from web3 import Web3

SINGLE = "single"
BATCH = "batch"

# Contract event name -> transfer kind
TRANSFER_KINDS = {
    "TransferSingle": SINGLE,
    "TransferBatch": BATCH,
}


def format_timestamp(timestamp: int) -> str:
    """Unix seconds -> ISO-8601 UTC string (``2025-01-01T00:00:00Z``)"""
    return datetime.fromtimestamp(timestamp, tz=timezone.utc).isoformat().replace("+00:00", "Z")


def transaction_hash_of(log: Mapping[str, Any]) -> str:
    value = log.get("transactionHash", "")
    if isinstance(value, str):
        return value
    return Web3.to_hex(value)


@dataclass(frozen=True)
class TransferEvent:
    """A TransferSingle or TransferBatch log with its block timestamp"""

    kind: str
    block_number: int
    log_index: int
    timestamp: int
    from_address: str
    to_address: str
    transaction_hash: str
    operator: str = ""
    token_id: Optional[int] = None
    amount: Optional[int] = None
    token_ids: Tuple[int, ...] = ()
    amounts: Tuple[int, ...] = ()

    @property
    def date_time(self) -> str:
        return format_timestamp(self.timestamp)

    @property
    def ids(self) -> Tuple[int, ...]:
        if self.kind == SINGLE:
            return (self.token_id,)
        return self.token_ids

    @property
    def total_amount(self) -> int:
        if self.kind == SINGLE:
            return self.amount or 0
        return sum(self.amounts)

    def as_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["date_time"] = self.date_time
        data["token_ids"] = list(self.token_ids)
        data["amounts"] = list(self.amounts)
        return data

    @classmethod
    def from_log(cls, log: Mapping[str, Any], timestamp: int) -> "TransferEvent":
        """
        Build an event from a decoded log.

        Accepts web3 event logs (AttributeDict) and the plain dicts produced
        by the ledger log source; both carry ``event``, ``args``,
        ``blockNumber``, ``logIndex`` and ``transactionHash``.
        """
        kind = TRANSFER_KINDS.get(log["event"])
        if kind is None:
            raise ValueError(f"Not a transfer event: {log['event']}")
        args = log["args"]
        common = dict(
            kind=kind,
            block_number=int(log["blockNumber"]),
            log_index=int(log["logIndex"]),
            timestamp=int(timestamp),
            from_address=args["from"],
            to_address=args["to"],
            transaction_hash=transaction_hash_of(log),
            operator=args.get("operator", ""),
        )
        if kind == SINGLE:
            return cls(token_id=int(args["id"]), amount=int(args["value"]), **common)
        return cls(
            token_ids=tuple(int(i) for i in args["ids"]),
            amounts=tuple(int(v) for v in args["values"]),
            **common,
        )
