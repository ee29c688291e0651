from __future__ import annotations

import pytest

from deepsea.apps.events import tasks
from deepsea.apps.events.status_store import TTL, ScanStatusStore

from .conftest import ALICE, OWNER


def test_status_lifecycle(fake_redis):
    store = ScanStatusStore(redis_client=fake_redis)
    assert store.get("t1") is None
    assert store.request_cancel("t1") is False

    store.create("t1", "0xabc", 10, 20)
    assert store.get("t1")["status"] == "pending"
    assert fake_redis.ttls["events:scan:t1"] == TTL

    store.set_progress("t1", 15, 3)
    assert (store.get("t1")["scanned_to"], store.get("t1")["logs_found"]) == (15, 3)

    assert not store.is_cancel_requested("t1")
    assert store.request_cancel("t1")
    assert store.is_cancel_requested("t1")

    store.set_success("t1", {"total_events": 3}, [{"start": 11, "end": 12, "reason": "x"}], cancelled=False)
    data = store.get("t1")
    assert data["status"] == "success"
    assert data["complete"] is False

    store.set_error("t1", "boom")
    assert store.get("t1")["error"] == "boom"

    store.delete("t1")
    assert store.get("t1") is None


def test_cancel_survives_concurrent_status_write(fake_redis):
    worker = ScanStatusStore(redis_client=fake_redis)
    api = ScanStatusStore(redis_client=fake_redis)
    worker.create("t2", "0xabc", 0, 100)

    # the cancel lands after the worker has read the status but before it writes
    original_load = worker._load

    def load_then_cancel(task_id):
        data = original_load(task_id)
        api.request_cancel(task_id)
        return data

    worker._load = load_then_cancel
    worker.set_progress("t2", 5, 1)

    assert worker.is_cancel_requested("t2")
    assert api.get("t2")["cancel_requested"] is True
    assert api.get("t2")["scanned_to"] == 5

    api.delete("t2")
    assert not api.is_cancel_requested("t2")


@pytest.fixture
def patched_store(monkeypatch, fake_redis):
    monkeypatch.setattr(tasks, "ScanStatusStore", lambda: ScanStatusStore(redis_client=fake_redis))
    return ScanStatusStore(redis_client=fake_redis)


def test_scan_task_on_local_collection(ledger, patched_store):
    ledger.mint(OWNER, ALICE, 1, 5)
    ledger.mint(OWNER, ALICE, 2, 1)
    address = ledger.get_collection().address

    out = tasks.scan_transfer_history_task.apply(
        kwargs={"address": address, "from_block": 0, "token_id": 1, "local": True, "task_id": "scan-1"}
    ).get()

    assert out["summary"]["total_events"] == 1
    assert out["events"][0]["amount"] == 5
    assert out["skipped_ranges"] == []
    status = patched_store.get("scan-1")
    assert status["status"] == "success"
    assert status["complete"] is True
    assert status["summary"]["total_tokens_transferred"] == 5


def test_scan_task_records_errors(db, patched_store):
    with pytest.raises(Exception):
        tasks.scan_transfer_history_task.apply(
            kwargs={"address": ALICE, "local": True, "task_id": "scan-2"}
        ).get()
    # the collection lookup fails before the scan is registered
    assert patched_store.get("scan-2") is None
