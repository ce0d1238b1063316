from types import SimpleNamespace

import pytest

from vaultai.documents import Document
from vaultai.errors import SyncInProgressError, UploadRejectedError, UploadTimeoutError
from vaultai.hashing import content_fingerprint
from vaultai.models import IndexHandle, OperationStatus
from vaultai.services.upload_service import (
    BulkUploader,
    SyncStatus,
    UploadState,
    UploadTask,
    upload_metadata,
)
from vaultai.sync_state import DocumentSyncRecord, SyncStateStore

HANDLE = IndexHandle(name="fileSearchStores/vault")


class FakeUploadBackend:
    """Upload backend whose operations finish after ``polls_needed`` status checks."""

    def __init__(self, *, polls_needed: int = 0, fail=(), reject=()) -> None:
        self.polls_needed = polls_needed
        self.fail = set(fail)
        self.reject = set(reject)
        self.uploads: list[dict] = []
        self.poll_calls = 0

    def upload_document(self, handle, content, *, display_name, metadata=None):
        self.uploads.append(
            {
                "handle": handle,
                "content": content,
                "display_name": display_name,
                "metadata": dict(metadata or {}),
            }
        )
        path = (metadata or {}).get("path")
        if path in self.fail:
            raise RuntimeError(f"upload failed for {path}")
        operation = SimpleNamespace(path=path, remaining=self.polls_needed)
        return self._status(operation)

    def poll_operation(self, operation):
        self.poll_calls += 1
        operation.remaining -= 1
        return self._status(operation)

    def _status(self, operation):
        done = operation.remaining <= 0
        error = "unsupported file" if done and operation.path in self.reject else None
        return OperationStatus(operation=operation, done=done, error=error)


def _doc(doc_id: str, content: str | None = None) -> Document:
    return Document(id=doc_id, content=content or f"content of {doc_id}", mtime=5.0)


def _no_sleep(_seconds: float) -> None:
    return None


def test_upload_metadata_carries_path_and_mtime():
    assert upload_metadata(_doc("Projects/a.md")) == {
        "path": "Projects/a.md",
        "vault_file": "true",
        "last_modified": 5.0,
    }


def test_upload_task_polls_until_done():
    backend = FakeUploadBackend(polls_needed=2)
    sleeps: list[float] = []
    task = UploadTask(backend, HANDLE, _doc("a.md"), poll_interval=5.0, sleep=sleeps.append)

    status = task.run()

    assert status.done is True
    assert task.state == UploadState.DONE
    assert task.polls == 2
    assert sleeps == [5.0, 5.0]
    assert backend.uploads[0]["display_name"] == "a.md"


def test_upload_task_times_out_after_max_polls():
    backend = FakeUploadBackend(polls_needed=100)
    sleeps: list[float] = []
    task = UploadTask(
        backend,
        HANDLE,
        _doc("slow.md"),
        poll_interval=1.0,
        max_poll_attempts=3,
        sleep=sleeps.append,
    )

    with pytest.raises(UploadTimeoutError) as exc:
        task.run()

    assert task.state == UploadState.TIMED_OUT
    assert backend.poll_calls == 3
    assert len(sleeps) == 3
    assert "slow.md" in exc.value.message


def test_upload_task_rejected_operation_raises():
    backend = FakeUploadBackend(polls_needed=1, reject={"bad.md"})
    task = UploadTask(backend, HANDLE, _doc("bad.md"), sleep=_no_sleep)

    with pytest.raises(UploadRejectedError) as exc:
        task.run()

    assert task.state == UploadState.FAILED
    assert "unsupported file" in exc.value.message


def test_bulk_sync_records_successes_and_counts_failures():
    backend = FakeUploadBackend(polls_needed=1, fail={"c.md"})
    uploader = BulkUploader(backend, sleep=_no_sleep, clock=lambda: 123.0)
    state = SyncStateStore()
    docs = [_doc(name) for name in ("a.md", "b.md", "c.md", "d.md", "e.md")]

    summary = uploader.sync(docs, state, HANDLE)

    assert (summary.success, summary.failed, summary.skipped) == (4, 1, 0)
    assert summary.cancelled is False
    assert "c.md" not in state
    record = state.get("a.md")
    assert record.hash == content_fingerprint("content of a.md")
    assert record.uploaded is True
    assert record.uploaded_at == 123.0
    assert record.last_modified == 5.0
    assert uploader.progress.status == SyncStatus.COMPLETED
    assert uploader.progress.processed == 5


def test_bulk_sync_retries_failed_item_next_run():
    backend = FakeUploadBackend(fail={"b.md"})
    uploader = BulkUploader(backend, sleep=_no_sleep)
    state = SyncStateStore()
    docs = [_doc("a.md"), _doc("b.md")]
    uploader.sync(docs, state, HANDLE)
    backend.fail.clear()
    backend.uploads.clear()

    summary = uploader.sync(docs, state, HANDLE)

    assert (summary.success, summary.failed, summary.skipped) == (1, 0, 1)
    assert [upload["metadata"]["path"] for upload in backend.uploads] == ["b.md"]


def test_bulk_sync_skips_unchanged_documents():
    backend = FakeUploadBackend()
    uploader = BulkUploader(backend, sleep=_no_sleep)
    state = SyncStateStore()
    doc = _doc("a.md")
    state.put(
        "a.md",
        DocumentSyncRecord(
            path="a.md",
            hash=content_fingerprint(doc.content),
            last_modified=doc.mtime,
            uploaded=True,
        ),
    )
    snapshots = []

    summary = uploader.sync([doc], state, HANDLE, snapshots.append)

    assert (summary.success, summary.failed, summary.skipped) == (0, 0, 1)
    assert backend.uploads == []
    assert len(snapshots) == 1
    assert snapshots[0].status == SyncStatus.COMPLETED
    assert snapshots[0].total == 0


def test_progress_callbacks_are_ordered_and_monotonic():
    backend = FakeUploadBackend()
    uploader = BulkUploader(backend, sleep=_no_sleep)
    docs = [_doc("notes/a.md"), _doc("notes/b.md"), _doc("c.md")]
    snapshots = []

    uploader.sync(docs, SyncStateStore(), HANDLE, snapshots.append)

    assert [snap.current for snap in snapshots[:-1]] == ["a.md", "b.md", "c.md"]
    processed = [snap.processed for snap in snapshots]
    assert processed == sorted(processed)
    assert processed == [0, 1, 2, 3]
    assert all(snap.total == 3 for snap in snapshots)
    assert all(snap.processed <= snap.total for snap in snapshots)
    assert all(snap.status == SyncStatus.SYNCING for snap in snapshots[:-1])
    assert snapshots[-1].status == SyncStatus.COMPLETED
    assert snapshots[-1].current == ""


def test_cancel_stops_before_next_document():
    backend = FakeUploadBackend()
    uploader = BulkUploader(backend, sleep=_no_sleep)
    state = SyncStateStore()
    docs = [_doc(name) for name in ("a.md", "b.md", "c.md", "d.md")]

    def on_progress(snapshot):
        if snapshot.processed == 1:
            uploader.cancel()

    summary = uploader.sync(docs, state, HANDLE, on_progress)

    assert summary.cancelled is True
    assert summary.success == 2
    assert sorted(state.snapshot()) == ["a.md", "b.md"]
    assert uploader.progress.status == SyncStatus.COMPLETED


def test_second_sync_while_running_is_rejected():
    backend = FakeUploadBackend()
    uploader = BulkUploader(backend, sleep=_no_sleep)
    state = SyncStateStore()
    seen = {"rejected": 0}

    def on_progress(_snapshot):
        if uploader.running and not seen["rejected"]:
            with pytest.raises(SyncInProgressError):
                uploader.sync([_doc("x.md")], state, HANDLE)
            seen["rejected"] += 1

    summary = uploader.sync([_doc("a.md")], state, HANDLE, on_progress)

    assert seen["rejected"] == 1
    assert summary.success == 1
    assert "x.md" not in state
    assert uploader.running is False


def test_run_requires_exclusive_lock():
    uploader = BulkUploader(FakeUploadBackend(), sleep=_no_sleep)
    state = SyncStateStore()

    with pytest.raises(RuntimeError):
        uploader.run([_doc("a.md")], state, HANDLE)

    with uploader.exclusive():
        assert uploader.running is True
        with pytest.raises(SyncInProgressError):
            uploader.sync([_doc("a.md")], state, HANDLE)
        summary = uploader.run([_doc("a.md")], state, HANDLE)

    assert summary.success == 1
    assert uploader.running is False


def test_unexpected_error_marks_progress_as_error():
    backend = FakeUploadBackend()
    uploader = BulkUploader(backend, sleep=_no_sleep)

    def on_progress(_snapshot):
        raise RuntimeError("ui crashed")

    with pytest.raises(RuntimeError):
        uploader.sync([_doc("a.md")], SyncStateStore(), HANDLE, on_progress)

    assert uploader.progress.status == SyncStatus.ERROR
    assert uploader.running is False
