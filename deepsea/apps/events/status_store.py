"""
Redis-based store for tracking transfer history scans.
Holds progress, skipped ranges and the final summary of a background scan,
plus a cancel flag the scan polls between chunks.
"""

import json
import time
from typing import Any, Dict, List, Optional

from django.conf import settings
from redis import Redis

KEY_PREFIX = "events:scan:"
CANCEL_PREFIX = "events:scan-cancel:"
TTL = 30 * 60  # 30 minutes


class ScanStatusStore:
    """Store for tracking event scan status."""

    def __init__(self, redis_client: Optional[Redis] = None):
        self.redis = redis_client or Redis.from_url(
            getattr(settings, "CELERY_BROKER_URL", "redis://redis:6379/0")
        )

    def _key(self, task_id: str) -> str:
        return f"{KEY_PREFIX}{task_id}"

    def _cancel_key(self, task_id: str) -> str:
        return f"{CANCEL_PREFIX}{task_id}"

    def _load(self, task_id: str) -> Optional[Dict[str, Any]]:
        raw = self.redis.get(self._key(task_id))
        if not raw:
            return None
        return json.loads(raw)

    def _save(self, task_id: str, data: Dict[str, Any]) -> None:
        data["updated_at"] = int(time.time())
        self.redis.setex(self._key(task_id), TTL, json.dumps(data))

    def create(self, task_id: str, address: str, from_block: int, to_block: int) -> None:
        """Initialize scan status tracking."""
        self._save(
            task_id,
            {
                "task_id": task_id,
                "address": address,
                "from_block": from_block,
                "to_block": to_block,
                "status": "pending",
                "scanned_to": None,
                "logs_found": 0,
                "skipped_ranges": [],
                "created_at": int(time.time()),
                "error": None,
            },
        )

    def set_progress(self, task_id: str, scanned_to: int, logs_found: int) -> None:
        data = self._load(task_id)
        if data is None:
            return
        data.update({"status": "running", "scanned_to": scanned_to, "logs_found": logs_found})
        self._save(task_id, data)

    def request_cancel(self, task_id: str) -> bool:
        """Flag a running scan for cancellation. Returns False if the scan is unknown."""
        if self._load(task_id) is None:
            return False
        # own key so status writes from the worker never clear it
        self.redis.setex(self._cancel_key(task_id), TTL, "1")
        return True

    def is_cancel_requested(self, task_id: str) -> bool:
        return bool(self.redis.get(self._cancel_key(task_id)))

    def set_success(
        self, task_id: str, summary: Dict[str, Any], skipped_ranges: List[Dict[str, Any]], cancelled: bool
    ) -> None:
        """Mark scan as finished with its summary."""
        data = self._load(task_id)
        if data is None:
            return
        data.update(
            {
                "status": "cancelled" if cancelled else "success",
                "summary": summary,
                "skipped_ranges": skipped_ranges,
                "complete": not skipped_ranges and not cancelled,
            }
        )
        self._save(task_id, data)

    def set_error(self, task_id: str, error: str) -> None:
        """Mark scan as failed."""
        data = self._load(task_id)
        if data is None:
            return
        data.update({"status": "error", "error": error})
        self._save(task_id, data)

    def get(self, task_id: str) -> Optional[Dict[str, Any]]:
        """Get current scan status."""
        data = self._load(task_id)
        if data is not None:
            data["cancel_requested"] = self.is_cancel_requested(task_id)
        return data

    def delete(self, task_id: str) -> None:
        self.redis.delete(self._key(task_id), self._cancel_key(task_id))
