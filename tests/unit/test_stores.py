# ============================================================================
# tests/unit/test_stores.py
# ============================================================================
"""
Tests for the in-memory queue and result store
"""

import threading

import pytest

import json
from datetime import datetime

from coding_review.core.stores import AnalysisResultStore, ProcessingQueue
from coding_review.models.analysis import AnalysisResult, FileInfo, ProcessingQueueItem, QueueStatus


def item(item_id: str) -> ProcessingQueueItem:
    return ProcessingQueueItem(id=item_id, file_name=f"{item_id}.txt")


class TestProcessingQueue:
    """Test queue bookkeeping"""

    def test_add_and_get_copy(self):
        queue = ProcessingQueue()
        original = item("a")
        queue.add(original)

        original.progress = 50
        assert queue.get("a").progress == 0

    def test_duplicate_rejected(self):
        queue = ProcessingQueue()
        queue.add(item("a"))
        with pytest.raises(ValueError):
            queue.add(item("a"))

    def test_update_returns_snapshot(self):
        queue = ProcessingQueue()
        queue.add(item("a"))

        snapshot = queue.update("a", lambda i: i.advance(30))

        assert snapshot.progress == 30
        assert snapshot.status is QueueStatus.PROCESSING
        snapshot.progress = 1
        assert queue.get("a").progress == 30

    def test_update_removed_item(self):
        queue = ProcessingQueue()
        assert queue.update("missing", lambda i: i.advance(30)) is None

    def test_list_by_status(self):
        queue = ProcessingQueue()
        for name in ("a", "b", "c"):
            queue.add(item(name))
        queue.update("b", lambda i: i.advance(10))

        assert [i.id for i in queue.list_all()] == ["a", "b", "c"]
        assert [i.id for i in queue.list_all(QueueStatus.PROCESSING)] == ["b"]

    def test_delete_and_clear(self):
        queue = ProcessingQueue()
        queue.add(item("a"))
        queue.add(item("b"))

        assert queue.delete("a")
        assert not queue.delete("a")
        assert queue.clear() == 1
        assert len(queue) == 0

    def test_concurrent_updates(self):
        queue = ProcessingQueue()
        for n in range(20):
            queue.add(item(str(n)))

        def run(item_id):
            for progress in range(0, 100, 10):
                queue.update(item_id, lambda i, p=progress: i.advance(p))

        threads = [threading.Thread(target=run, args=(str(n),)) for n in range(20)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert all(i.progress == 90 for i in queue.list_all())


@pytest.fixture
def stored_result(recovery_engine, review_payload) -> AnalysisResult:
    now = datetime.now()
    return AnalysisResult(
        id="a",
        file_name="note.txt",
        analysis_type="coding_review",
        priority="medium",
        status=QueueStatus.COMPLETED,
        results=recovery_engine.recover(json.dumps(review_payload)),
        created_at=now,
        completed_at=now,
        processing_time="0.1s",
        file_info=FileInfo(file_type="txt", size=4),
    )


class TestAnalysisResultStore:
    """Test stored results cannot be changed from outside"""

    def test_nested_changes_do_not_reach_store(self, stored_result):
        store = AnalysisResultStore()
        store.save(stored_result)

        fetched = store.get("a")
        fetched.results.patient_info.patient_name = "Changed"
        fetched.file_info.size = -1
        store.list_all()[0].file_info.preview = "changed"

        again = store.get("a")
        assert again.results.patient_info.patient_name == "Jane Doe"
        assert again.file_info.size == 4
        assert again.file_info.preview == ""

    def test_saved_object_not_aliased(self, stored_result):
        store = AnalysisResultStore()
        store.save(stored_result)

        stored_result.file_info.size = 99

        assert store.get("a").file_info.size == 4
        assert store.get("a") == store.list_all()[0]

    def test_duplicate_rejected(self, stored_result):
        store = AnalysisResultStore()
        store.save(stored_result)
        with pytest.raises(ValueError):
            store.save(stored_result)
        assert len(store) == 1

    def test_missing(self):
        assert AnalysisResultStore().get("nope") is None
