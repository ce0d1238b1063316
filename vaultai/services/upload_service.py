"""Upload the changed part of a vault to the File Search store."""

from __future__ import annotations

import dataclasses
import logging
import time
from collections.abc import Callable, Iterator, Mapping
from contextlib import contextmanager
from dataclasses import dataclass
from enum import Enum
from threading import Event, Lock
from typing import Any, Protocol, Sequence

from ..config import DEFAULT_MAX_POLL_ATTEMPTS, DEFAULT_POLL_INTERVAL
from ..documents import Document
from ..errors import SyncInProgressError, UploadRejectedError, UploadTimeoutError
from ..hashing import content_fingerprint
from ..models import IndexHandle, OperationStatus
from ..sync_state import DocumentSyncRecord, SyncStateStore
from ..text import Messages
from .delta_service import select_for_sync

logger = logging.getLogger(__name__)


class UploadBackend(Protocol):
    """Remote calls needed to push one document into a store."""

    def upload_document(
        self,
        handle: IndexHandle,
        content: str,
        *,
        display_name: str,
        metadata: Mapping[str, str | float] | None = None,
    ) -> OperationStatus:
        raise NotImplementedError  # pragma: no cover

    def poll_operation(self, operation: Any) -> OperationStatus:
        raise NotImplementedError  # pragma: no cover


class SyncStatus(str, Enum):
    IDLE = "idle"
    SYNCING = "syncing"
    COMPLETED = "completed"
    ERROR = "error"


@dataclass(slots=True)
class SyncProgress:
    total: int = 0
    processed: int = 0
    current: str = ""
    status: SyncStatus = SyncStatus.IDLE

    def snapshot(self) -> "SyncProgress":
        return dataclasses.replace(self)


@dataclass(frozen=True, slots=True)
class SyncSummary:
    success: int = 0
    failed: int = 0
    skipped: int = 0
    cancelled: bool = False


ProgressCallback = Callable[[SyncProgress], None]


class UploadState(str, Enum):
    PENDING = "pending"
    SUBMITTED = "submitted"
    POLLING = "polling"
    DONE = "done"
    TIMED_OUT = "timed_out"
    FAILED = "failed"


class UploadTask:
    """Upload one document and poll its operation until it settles.

    ``run`` walks submitted -> polling -> done, or ends in timed_out /
    failed and raises the matching error.
    """

    def __init__(
        self,
        backend: UploadBackend,
        handle: IndexHandle,
        document: Document,
        *,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        max_poll_attempts: int = DEFAULT_MAX_POLL_ATTEMPTS,
        sleep: Callable[[float], None] | None = None,
    ) -> None:
        self.backend = backend
        self.handle = handle
        self.document = document
        self.poll_interval = poll_interval
        self.max_poll_attempts = max(int(max_poll_attempts), 0)
        self._sleep = sleep or time.sleep
        self.state = UploadState.PENDING
        self.polls = 0
        self.error: str | None = None

    def run(self) -> OperationStatus:
        try:
            status = self.backend.upload_document(
                self.handle,
                self.document.content,
                display_name=self.document.name,
                metadata=upload_metadata(self.document),
            )
        except Exception as exc:
            self._fail(UploadState.FAILED, str(exc))
            raise
        self.state = UploadState.SUBMITTED
        while not status.done:
            if self.polls >= self.max_poll_attempts:
                message = Messages.ERROR_UPLOAD_TIMEOUT.format(
                    name=self.document.id,
                    attempts=self.polls,
                )
                self._fail(UploadState.TIMED_OUT, message)
                raise UploadTimeoutError(message)
            self.state = UploadState.POLLING
            self._sleep(self.poll_interval)
            try:
                status = self.backend.poll_operation(status.operation)
            except Exception as exc:
                self._fail(UploadState.FAILED, str(exc))
                raise
            self.polls += 1
        if status.error:
            message = Messages.ERROR_UPLOAD_REJECTED.format(
                name=self.document.id,
                reason=status.error,
            )
            self._fail(UploadState.FAILED, message)
            raise UploadRejectedError(message)
        self.state = UploadState.DONE
        return status

    def _fail(self, state: UploadState, message: str) -> None:
        self.state = state
        self.error = message


def upload_metadata(document: Document) -> dict[str, str | float]:
    return {
        "path": document.id,
        "vault_file": "true",
        "last_modified": document.mtime,
    }


class BulkUploader:
    """Sequentially upload the delta of a document set.

    Only one run may be active per uploader; a second :meth:`sync` call
    while one is running raises :class:`SyncInProgressError`. Failed items
    get no sync record, so the next run selects them again.
    """

    def __init__(
        self,
        backend: UploadBackend,
        *,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        max_poll_attempts: int = DEFAULT_MAX_POLL_ATTEMPTS,
        sleep: Callable[[float], None] | None = None,
        clock: Callable[[], float] | None = None,
    ) -> None:
        self.backend = backend
        self.poll_interval = poll_interval
        self.max_poll_attempts = max_poll_attempts
        self._sleep = sleep or time.sleep
        self._clock = clock or time.time
        self._lock = Lock()
        self._cancel = Event()
        self.progress = SyncProgress()

    @property
    def running(self) -> bool:
        return self._lock.locked()

    def cancel(self) -> None:
        """Stop before the next document; the current upload still finishes."""
        self._cancel.set()

    @contextmanager
    def exclusive(self) -> Iterator[None]:
        """Hold the single-flight lock, raising if a run already holds it."""
        if not self._lock.acquire(blocking=False):
            raise SyncInProgressError()
        self._cancel.clear()
        try:
            yield
        finally:
            self._lock.release()

    def sync(
        self,
        documents: Sequence[Document],
        state: SyncStateStore,
        handle: IndexHandle,
        on_progress: ProgressCallback | None = None,
    ) -> SyncSummary:
        with self.exclusive():
            return self.run(documents, state, handle, on_progress)

    def run(
        self,
        documents: Sequence[Document],
        state: SyncStateStore,
        handle: IndexHandle,
        on_progress: ProgressCallback | None = None,
    ) -> SyncSummary:
        """Upload the delta; the caller must already hold :meth:`exclusive`."""
        if not self._lock.locked():
            raise RuntimeError("BulkUploader.run requires the exclusive lock")
        try:
            return self._sync_locked(documents, state, handle, on_progress)
        except Exception:
            self.progress.status = SyncStatus.ERROR
            self.progress.current = ""
            raise

    def _sync_locked(
        self,
        documents: Sequence[Document],
        state: SyncStateStore,
        handle: IndexHandle,
        on_progress: ProgressCallback | None,
    ) -> SyncSummary:
        progress = SyncProgress(status=SyncStatus.SYNCING)
        self.progress = progress
        delta = select_for_sync(documents, state)
        skipped = len(documents) - len(delta)
        progress.total = len(delta)

        if not delta:
            progress.status = SyncStatus.COMPLETED
            logger.info(Messages.INFO_SYNC_UP_TO_DATE)
            _notify(on_progress, progress)
            return SyncSummary(success=0, failed=0, skipped=skipped)

        success = 0
        failed = 0
        cancelled = False
        for document in delta:
            if self._cancel.is_set():
                cancelled = True
                logger.info("Sync cancelled after %d of %d documents", progress.processed, progress.total)
                break
            progress.current = document.name
            _notify(on_progress, progress)
            if self._upload_one(document, state, handle):
                success += 1
            else:
                failed += 1
            progress.processed += 1

        progress.status = SyncStatus.COMPLETED
        progress.current = ""
        _notify(on_progress, progress)
        logger.info(
            "Sync finished: %d uploaded, %d failed, %d skipped",
            success,
            failed,
            skipped,
        )
        return SyncSummary(success=success, failed=failed, skipped=skipped, cancelled=cancelled)

    def _upload_one(
        self,
        document: Document,
        state: SyncStateStore,
        handle: IndexHandle,
    ) -> bool:
        task = UploadTask(
            self.backend,
            handle,
            document,
            poll_interval=self.poll_interval,
            max_poll_attempts=self.max_poll_attempts,
            sleep=self._sleep,
        )
        try:
            task.run()
        except Exception as exc:
            logger.warning("Error uploading file %s: %s", document.id, exc)
            return False
        state.put(
            document.id,
            DocumentSyncRecord(
                path=document.id,
                hash=content_fingerprint(document.content),
                last_modified=document.mtime,
                uploaded=True,
                uploaded_at=self._clock(),
            ),
        )
        logger.debug("Uploaded %s after %d polls", document.id, task.polls)
        return True


def _notify(callback: ProgressCallback | None, progress: SyncProgress) -> None:
    if callback is not None:
        callback(progress.snapshot())
