from __future__ import annotations

import logging
from typing import Optional

from celery import shared_task

from deepsea.apps.tokens.models import Collection

from .aggregator import filter_by_address, filter_by_token, summarize
from .scanner import EventScanner
from .sources import ContractLogSource, LedgerLogSource, LogSource
from .status_store import ScanStatusStore

logger = logging.getLogger(__name__)


def build_source(address: Optional[str] = None, local: bool = False) -> LogSource:
    """Ledger replay for a local collection, otherwise the deployed contract"""
    if local:
        return LedgerLogSource(Collection.objects.get(address=address))
    from deepsea.apps.tokens.services.collection_contract import CollectionContractService

    return ContractLogSource(CollectionContractService(address))


@shared_task(queue="events", bind=True)
def scan_transfer_history_task(
    self,
    address: Optional[str] = None,
    from_block: Optional[int] = None,
    to_block: Optional[int] = None,
    token_id: Optional[int] = None,
    holder: Optional[str] = None,
    local: bool = False,
    task_id: Optional[str] = None,
) -> dict:
    """
    Scan the transfer history of a collection in the background.
    Progress, skipped ranges and the final summary are kept in Redis; a
    cancel request recorded there stops the scan between chunks.
    """
    task_id = task_id or self.request.id
    status_store = ScanStatusStore()

    try:
        scanner = EventScanner(build_source(address, local))
        start, end = scanner.resolve_range(from_block, to_block)
        status_store.create(task_id, address or "", start, end)

        result = scanner.scan(
            from_block=start,
            to_block=end,
            should_cancel=lambda: status_store.is_cancel_requested(task_id),
            on_progress=lambda block, found: status_store.set_progress(task_id, block, found),
        )

        events = result.events
        if token_id is not None:
            events = filter_by_token(events, token_id)
        if holder:
            events = filter_by_address(events, holder)

        summary = summarize(events).as_dict()
        skipped = [skipped_range.as_dict() for skipped_range in result.skipped_ranges]
        status_store.set_success(task_id, summary, skipped, result.cancelled)

        logger.info(f"Scan {task_id} finished: {summary['total_events']} events, {len(skipped)} skipped ranges")
        return {
            "from_block": start,
            "to_block": end,
            "summary": summary,
            "skipped_ranges": skipped,
            "cancelled": result.cancelled,
            "events": [event.as_dict() for event in events],
        }

    except Exception as e:
        status_store.set_error(task_id, str(e))
        raise
