from __future__ import annotations

import pytest

from deepsea.apps.events.errors import RangeTooLarge, ScanError, is_range_too_large
from deepsea.apps.events.scanner import EventScanner
from deepsea.apps.events.sources import LogSource
from deepsea.apps.tokens.addresses import ZERO_ADDRESS

from .conftest import ALICE, BOB, OWNER


def single_log(block, log_index=0, token_id=1, value=1, sender=ZERO_ADDRESS, to=ALICE, tx=None):
    return {
        "event": "TransferSingle",
        "args": {"operator": OWNER, "from": sender, "to": to, "id": token_id, "value": value},
        "blockNumber": block,
        "logIndex": log_index,
        "transactionHash": tx or f"0x{block:064x}",
    }


def batch_log(block, log_index=0, ids=(1, 2), values=(1, 1), sender=ZERO_ADDRESS, to=BOB):
    return {
        "event": "TransferBatch",
        "args": {"operator": OWNER, "from": sender, "to": to, "ids": list(ids), "values": list(values)},
        "blockNumber": block,
        "logIndex": log_index,
        "transactionHash": f"0x{block:064x}",
    }


class FakeSource(LogSource):
    """In-memory chain: logs, per-block timestamps and an optional range limit."""

    def __init__(self, logs, tip=1000, max_range=None, timestamps=None, failing=()):
        self.logs = list(logs)
        self.tip = tip
        self.max_range = max_range
        self.timestamps = timestamps or {}
        self.failing = set(failing)
        self.queries = []

    def block_number(self):
        return self.tip

    def query_events(self, event_name, from_block, to_block):
        self.queries.append((event_name, from_block, to_block))
        if self.max_range is not None and to_block - from_block + 1 > self.max_range:
            raise ValueError({"code": -32005, "message": "query returned more than 10000 results / block range too large"})
        if any(from_block <= block <= to_block for block in self.failing):
            raise ConnectionError("upstream timeout")
        return [
            log
            for log in self.logs
            if log["event"] == event_name and from_block <= log["blockNumber"] <= to_block
        ]

    def block_timestamp(self, block_number):
        return self.timestamps.get(block_number, 1_700_000_000 + block_number)


def scanner_for(source, **kwargs):
    kwargs.setdefault("throttle_seconds", 0)
    return EventScanner(source, **kwargs)


def test_range_too_large_is_split_until_it_fits():
    logs = [single_log(block) for block in (0, 15, 37, 58, 99)] + [batch_log(64)]
    source = FakeSource(logs, max_range=20)

    result = scanner_for(source, chunk_size=100).scan(from_block=0, to_block=99)

    assert result.complete
    assert [e.block_number for e in result.events] == [0, 15, 37, 58, 64, 99]
    assert (result.single_transfers, result.batch_transfers) == (5, 1)
    succeeded = {(start, end) for _, start, end in source.queries if end - start + 1 <= 20}
    assert (0, 9) in succeeded and (90, 99) in succeeded


def test_range_that_cannot_shrink_enough_is_skipped():
    source = FakeSource([single_log(5)], max_range=5)

    result = scanner_for(source, chunk_size=100).scan(from_block=0, to_block=29)

    assert result.events == []
    assert not result.complete
    assert [(r.start, r.end) for r in result.skipped_ranges] == [(0, 9), (10, 19), (20, 29)]
    assert all("too large" in r.reason for r in result.skipped_ranges)


def test_other_failures_skip_only_that_chunk():
    logs = [single_log(5), single_log(150), single_log(250)]
    source = FakeSource(logs, failing={120})

    result = scanner_for(source, chunk_size=100).scan(from_block=0, to_block=299)

    assert [e.block_number for e in result.events] == [5, 250]
    assert [(r.start, r.end) for r in result.skipped_ranges] == [(100, 199)]
    assert "upstream timeout" in result.skipped_ranges[0].reason


def test_chunks_are_sequential_and_cover_the_range():
    source = FakeSource([])
    scanner_for(source, chunk_size=100).scan(from_block=0, to_block=249)
    ranges = [(start, end) for name, start, end in source.queries if name == "TransferSingle"]
    assert ranges == [(0, 99), (100, 199), (200, 249)]
    assert {name for name, _, _ in source.queries} == {"TransferSingle", "TransferBatch"}


def test_throttle_between_successful_chunks():
    pauses = []
    source = FakeSource([], failing={150})
    EventScanner(source, chunk_size=100, throttle_seconds=0.25, sleep=pauses.append).scan(0, 299)
    assert pauses == [0.25, 0.25]


def test_sorted_by_timestamp_and_stable_on_ties():
    logs = [single_log(10, value=1), single_log(20, value=2), single_log(30, value=3), single_log(30, 1, value=4)]
    timestamps = {10: 500, 20: 100, 30: 100}
    source = FakeSource(logs, timestamps=timestamps)

    result = scanner_for(source).scan(from_block=0, to_block=99)

    assert [e.amount for e in result.events] == [2, 3, 4, 1]
    assert result.events[0].date_time == "1970-01-01T00:01:40Z"


def test_duplicate_logs_are_dropped():
    duplicate = single_log(7, tx="0x" + "ab" * 32)
    source = FakeSource([duplicate, dict(duplicate)])
    result = scanner_for(source).scan(from_block=0, to_block=50)
    assert len(result.events) == 1


def test_default_range_is_a_recent_window():
    source = FakeSource([single_log(10), single_log(950)], tip=1000)
    result = scanner_for(source, lookback_blocks=100).scan()
    assert (result.from_block, result.to_block) == (900, 1000)
    assert [e.block_number for e in result.events] == [950]

    # an explicit start of 0 is honoured
    result = scanner_for(source, lookback_blocks=100).scan(from_block=0)
    assert len(result.events) == 2


def test_cancel_between_chunks():
    source = FakeSource([single_log(5), single_log(150)])
    checks = []

    def should_cancel():
        checks.append(True)
        return len(checks) > 1

    result = scanner_for(source, chunk_size=100).scan(0, 299, should_cancel=should_cancel)

    assert result.cancelled
    assert not result.complete
    assert [e.block_number for e in result.events] == [5]


def test_progress_callback():
    progress = []
    source = FakeSource([single_log(5), single_log(150)])
    scanner_for(source, chunk_size=100).scan(0, 199, on_progress=lambda block, found: progress.append((block, found)))
    assert progress == [(99, 1), (199, 2)]


def test_unreadable_tip_is_a_scan_error():
    class NoTip(FakeSource):
        def block_number(self):
            raise ConnectionError("provider down")

    with pytest.raises(ScanError):
        scanner_for(NoTip([])).scan()


def test_explicit_end_does_not_read_the_tip():
    class NoTip(FakeSource):
        def block_number(self):
            raise ConnectionError("provider down")

    scanner = scanner_for(NoTip([single_log(450)]), lookback_blocks=100)
    assert scanner.resolve_range(None, 500) == (400, 500)
    assert [e.block_number for e in scanner.scan(to_block=500).events] == [450]


def test_empty_range():
    result = scanner_for(FakeSource([])).scan(from_block=10, to_block=5)
    assert result.events == [] and result.complete


@pytest.mark.parametrize(
    "exc, expected",
    [
        (RangeTooLarge("x"), True),
        (ValueError({"code": -32602, "message": "eth_getLogs block range is too large"}), True),
        (Exception("Log response size exceeded. You can make eth_getLogs requests with up to a 2K block range"), True),
        (ValueError("query returned more than 10000 results"), True),
        (ConnectionError("connection reset"), False),
    ],
)
def test_range_too_large_classification(exc, expected):
    assert is_range_too_large(exc) is expected
