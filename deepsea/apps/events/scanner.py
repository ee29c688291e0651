"""
Chunked transfer history scanner.

Walks a block range in fixed-size chunks, querying TransferSingle and
TransferBatch logs for each chunk. A chunk the source rejects as too large
is rescanned with a chunk size divided by the split factor (never below the
minimum chunk size); a chunk that still cannot be read, or that fails for
any other reason, is skipped and recorded in ``ScanResult.skipped_ranges``
instead of aborting the scan.

Once every chunk is processed the logs are deduplicated, stamped with their
block timestamps, and sorted oldest first (stable on ties).
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Tuple

from django.conf import settings

from .errors import ScanError, is_range_too_large
from .sources import LogSource
from .types import BATCH, SINGLE, TRANSFER_KINDS, TransferEvent, transaction_hash_of

logger = logging.getLogger(__name__)

TRANSFER_EVENT_NAMES = tuple(TRANSFER_KINDS)


@dataclass
class SkippedRange:
    start: int
    end: int
    reason: str

    def as_dict(self) -> Dict[str, Any]:
        return {"start": self.start, "end": self.end, "reason": self.reason}


@dataclass
class ScanResult:
    from_block: int
    to_block: int
    events: List[TransferEvent] = field(default_factory=list)
    skipped_ranges: List[SkippedRange] = field(default_factory=list)
    cancelled: bool = False

    @property
    def complete(self) -> bool:
        """True when no range was skipped and the scan ran to the end"""
        return not self.skipped_ranges and not self.cancelled

    @property
    def total_events(self) -> int:
        return len(self.events)

    @property
    def single_transfers(self) -> int:
        return sum(1 for event in self.events if event.kind == SINGLE)

    @property
    def batch_transfers(self) -> int:
        return sum(1 for event in self.events if event.kind == BATCH)


class EventScanner:
    """Sequential, throttled, range-splitting scanner over a log source"""

    def __init__(
        self,
        source: LogSource,
        chunk_size: Optional[int] = None,
        min_chunk_size: Optional[int] = None,
        split_factor: Optional[int] = None,
        lookback_blocks: Optional[int] = None,
        throttle_seconds: Optional[float] = None,
        event_names: Sequence[str] = TRANSFER_EVENT_NAMES,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.source = source
        self.chunk_size = chunk_size or settings.EVENT_SCAN_CHUNK_SIZE
        self.min_chunk_size = min_chunk_size or settings.EVENT_SCAN_MIN_CHUNK_SIZE
        self.split_factor = split_factor or settings.EVENT_SCAN_SPLIT_FACTOR
        self.lookback_blocks = (
            settings.EVENT_SCAN_LOOKBACK_BLOCKS if lookback_blocks is None else lookback_blocks
        )
        self.throttle_seconds = (
            settings.EVENT_SCAN_THROTTLE_SECONDS if throttle_seconds is None else throttle_seconds
        )
        self.event_names = tuple(event_names)
        self.sleep = sleep

        if self.chunk_size < 1 or self.min_chunk_size < 1 or self.split_factor < 2:
            raise ValueError("chunk sizes must be positive and split factor at least 2")

    def resolve_range(
        self, from_block: Optional[int] = None, to_block: Optional[int] = None
    ) -> Tuple[int, int]:
        """
        Fill in missing bounds: the end defaults to the current tip and the
        start to ``lookback_blocks`` before the end.
        """
        if to_block is None:
            try:
                end = self.source.block_number()
            except Exception as e:
                raise ScanError(f"Unable to read the current block: {e}") from e
        else:
            end = to_block
        start = max(0, end - self.lookback_blocks) if from_block is None else from_block
        return start, end

    def scan(
        self,
        from_block: Optional[int] = None,
        to_block: Optional[int] = None,
        should_cancel: Optional[Callable[[], bool]] = None,
        on_progress: Optional[Callable[[int, int], None]] = None,
    ) -> ScanResult:
        """
        Retrieve transfer events over ``[from_block, to_block]``.

        Args:
            from_block: First block (defaults to a recent window before the end)
            to_block: Last block (defaults to the current tip)
            should_cancel: Checked between chunks; returning True stops the scan
            on_progress: Called with (last scanned block, logs so far) after each chunk

        Returns:
            ScanResult with time-ordered events and any skipped ranges
        """
        start, end = self.resolve_range(from_block, to_block)
        result = ScanResult(from_block=start, to_block=end)
        if start > end:
            return result

        logger.info(f"Scanning blocks {start}-{end} in chunks of {self.chunk_size}")
        logs: List[Mapping[str, Any]] = []
        self._scan_range(start, end, self.chunk_size, logs, result, should_cancel, on_progress)
        result.events = self._build_events(logs, result)

        if result.skipped_ranges:
            logger.warning(
                f"Scan of {start}-{end} skipped {len(result.skipped_ranges)} range(s); history may be incomplete"
            )
        logger.info(f"Found {result.total_events} transfer events in blocks {start}-{end}")
        return result

    def _scan_range(
        self,
        start: int,
        end: int,
        chunk_size: int,
        logs: List[Mapping[str, Any]],
        result: ScanResult,
        should_cancel: Optional[Callable[[], bool]],
        on_progress: Optional[Callable[[int, int], None]],
    ) -> bool:
        """Scan ``[start, end]``; returns False if the scan was cancelled."""
        position = start
        while position <= end:
            if should_cancel is not None and should_cancel():
                logger.info(f"Scan cancelled at block {position}")
                result.cancelled = True
                return False

            stop = min(position + chunk_size - 1, end)
            try:
                logs.extend(self._query_chunk(position, stop))
            except Exception as e:
                if is_range_too_large(e):
                    smaller = max(self.min_chunk_size, chunk_size // self.split_factor)
                    if smaller < chunk_size:
                        logger.warning(
                            f"Range {position}-{stop} too large, retrying with chunk size {smaller}"
                        )
                        if not self._scan_range(
                            position, stop, smaller, logs, result, should_cancel, on_progress
                        ):
                            return False
                    else:
                        self._skip(result, position, stop, f"range too large at chunk size {chunk_size}")
                else:
                    self._skip(result, position, stop, f"{type(e).__name__}: {e}")
            else:
                if on_progress is not None:
                    on_progress(stop, len(logs))
                if self.throttle_seconds:
                    self.sleep(self.throttle_seconds)
            position = stop + 1
        return True

    def _query_chunk(self, start: int, end: int) -> List[Mapping[str, Any]]:
        chunk: List[Mapping[str, Any]] = []
        for name in self.event_names:
            chunk.extend(self.source.query_events(name, start, end))
        chunk.sort(key=lambda log: (int(log["blockNumber"]), int(log["logIndex"])))
        return chunk

    def _skip(self, result: ScanResult, start: int, end: int, reason: str) -> None:
        logger.warning(f"Skipping blocks {start}-{end}: {reason}")
        result.skipped_ranges.append(SkippedRange(start=start, end=end, reason=reason))

    def _build_events(self, logs: List[Mapping[str, Any]], result: ScanResult) -> List[TransferEvent]:
        seen = set()
        timestamps: Dict[int, Optional[int]] = {}
        events: List[TransferEvent] = []

        for log in logs:
            key = (transaction_hash_of(log), int(log["logIndex"]))
            if key in seen:
                continue
            seen.add(key)

            block = int(log["blockNumber"])
            if block not in timestamps:
                try:
                    timestamps[block] = self.source.block_timestamp(block)
                except Exception as e:
                    timestamps[block] = None
                    self._skip(result, block, block, f"block timestamp unavailable: {e}")
            timestamp = timestamps[block]
            if timestamp is None:
                continue
            events.append(TransferEvent.from_log(log, timestamp))

        events.sort(key=lambda event: event.timestamp)
        return events
