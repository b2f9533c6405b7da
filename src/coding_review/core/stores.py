# ============================================================================
# src/coding_review/core/stores.py
# ============================================================================
"""
In-Memory Stores

- ProcessingQueue: one item per analysis request, mutated only through
  update() while the request runs
- AnalysisResultStore: append-only store of completed results

Both are safe to share between concurrent requests. Callers always receive
snapshots; nothing returned from a store aliases its internal state.
"""

import copy
import logging
import threading
from typing import Callable, Dict, List, Optional

from ..models.analysis import AnalysisResult, ProcessingQueueItem, QueueStatus

logger = logging.getLogger(__name__)


class ProcessingQueue:
    """Tracks analysis requests from submission to completion or failure."""

    def __init__(self):
        self._items: Dict[str, ProcessingQueueItem] = {}
        self._lock = threading.RLock()

    def add(self, item: ProcessingQueueItem) -> None:
        with self._lock:
            if item.id in self._items:
                raise ValueError(f"Queue item {item.id} already exists")
            self._items[item.id] = copy.copy(item)

    def update(
        self,
        item_id: str,
        mutate: Callable[[ProcessingQueueItem], None],
    ) -> Optional[ProcessingQueueItem]:
        """
        Apply ``mutate`` to the stored item under the lock.

        Returns a snapshot of the updated item, or None when the item has
        been removed in the meantime.
        """
        with self._lock:
            item = self._items.get(item_id)
            if item is None:
                logger.debug(f"Queue item {item_id} no longer tracked, update skipped")
                return None
            mutate(item)
            return copy.copy(item)

    def get(self, item_id: str) -> Optional[ProcessingQueueItem]:
        with self._lock:
            item = self._items.get(item_id)
            return copy.copy(item) if item else None

    def list_all(self, status: Optional[QueueStatus] = None) -> List[ProcessingQueueItem]:
        """Snapshot of queue items in submission order."""
        with self._lock:
            return [
                copy.copy(item) for item in self._items.values()
                if status is None or item.status == status
            ]

    def delete(self, item_id: str) -> bool:
        with self._lock:
            return self._items.pop(item_id, None) is not None

    def clear(self) -> int:
        with self._lock:
            count = len(self._items)
            self._items.clear()
            return count

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)


class AnalysisResultStore:
    """Append-only store of completed analyses, newest last."""

    def __init__(self):
        self._results: Dict[str, AnalysisResult] = {}
        self._lock = threading.RLock()

    def save(self, result: AnalysisResult) -> None:
        with self._lock:
            if result.id in self._results:
                raise ValueError(f"Result {result.id} already stored")
            self._results[result.id] = copy.deepcopy(result)

    def get(self, analysis_id: str) -> Optional[AnalysisResult]:
        with self._lock:
            result = self._results.get(analysis_id)
            return copy.deepcopy(result) if result else None

    def list_all(self) -> List[AnalysisResult]:
        with self._lock:
            return [copy.deepcopy(result) for result in self._results.values()]

    def __len__(self) -> int:
        with self._lock:
            return len(self._results)
