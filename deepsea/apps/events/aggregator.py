"""Summary statistics and filters over scanned transfer events."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional

from deepsea.apps.tokens.addresses import is_zero_address

from .scanner import EventScanner, ScanResult
from .types import BATCH, SINGLE, TransferEvent, format_timestamp


@dataclass
class EventSummary:
    total_events: int
    single_transfers: int
    batch_transfers: int
    unique_addresses: int
    total_tokens_transferred: int
    earliest: Optional[str]
    latest: Optional[str]

    def as_dict(self) -> Dict[str, Any]:
        return {
            "total_events": self.total_events,
            "single_transfers": self.single_transfers,
            "batch_transfers": self.batch_transfers,
            "unique_addresses": self.unique_addresses,
            "total_tokens_transferred": self.total_tokens_transferred,
            "date_range": {"earliest": self.earliest, "latest": self.latest},
        }


def summarize(events: Iterable[TransferEvent]) -> EventSummary:
    """
    Count events, distinct participants (mint/burn zero address excluded),
    tokens moved, and the first/last event time in one pass.
    """
    addresses = set()
    single = batch = 0
    volume = 0
    first: Optional[int] = None
    last: Optional[int] = None

    for event in events:
        if event.kind == SINGLE:
            single += 1
        elif event.kind == BATCH:
            batch += 1
        for address in (event.from_address, event.to_address):
            if not is_zero_address(address):
                addresses.add(address.lower())
        volume += event.total_amount
        if first is None or event.timestamp < first:
            first = event.timestamp
        if last is None or event.timestamp > last:
            last = event.timestamp

    return EventSummary(
        total_events=single + batch,
        single_transfers=single,
        batch_transfers=batch,
        unique_addresses=len(addresses),
        total_tokens_transferred=volume,
        earliest=format_timestamp(first) if first is not None else None,
        latest=format_timestamp(last) if last is not None else None,
    )


def filter_by_token(events: Iterable[TransferEvent], token_id: int) -> List[TransferEvent]:
    return [event for event in events if token_id in event.ids]


def filter_by_address(events: Iterable[TransferEvent], address: str) -> List[TransferEvent]:
    needle = address.lower()
    return [
        event
        for event in events
        if event.from_address.lower() == needle or event.to_address.lower() == needle
    ]


# ============================================================
# SCAN + AGGREGATE
# ============================================================

def token_events(scanner: EventScanner, from_block: Optional[int] = None, **kwargs) -> ScanResult:
    return scanner.scan(from_block=from_block, **kwargs)


def token_events_for_token(
    scanner: EventScanner, token_id: int, from_block: Optional[int] = None, **kwargs
) -> ScanResult:
    result = scanner.scan(from_block=from_block, **kwargs)
    result.events = filter_by_token(result.events, token_id)
    return result


def token_events_for_address(
    scanner: EventScanner, address: str, from_block: Optional[int] = None, **kwargs
) -> ScanResult:
    result = scanner.scan(from_block=from_block, **kwargs)
    result.events = filter_by_address(result.events, address)
    return result


def token_events_summary(scanner: EventScanner, from_block: Optional[int] = None, **kwargs) -> EventSummary:
    return summarize(scanner.scan(from_block=from_block, **kwargs).events)
