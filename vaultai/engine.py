"""Per-instance sync and query engine exposed to the host shell."""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any, List

from .config import Config, resolve_api_key
from .documents import DocumentStore
from .errors import ErrorKind
from .models import IndexHandle
from .services.query_service import QueryMode, QueryResult, QueryRouter
from .services.store_service import IndexStoreManager
from .services.upload_service import (
    BulkUploader,
    ProgressCallback,
    SyncProgress,
    SyncSummary,
)
from .settings import SettingsStore
from .sync_state import SyncStateStore, SyncStats
from .text import Messages
from .utils import is_full_scope, truncate_content

logger = logging.getLogger(__name__)

STORE_NAME_KEY = "store_name"
SYNCED_FILES_KEY = "synced_files"


def _default_backend(config: Config):
    from .providers.gemini import GeminiBackend

    return GeminiBackend(
        model_name=config.model,
        api_key=resolve_api_key(config.api_key),
        base_url=config.base_url,
        max_output_tokens=config.max_output_tokens,
    )


class SyncEngine:
    """Own the sync state, the active store handle and the in-flight progress.

    Construct one engine per host instance, call :meth:`start` once to load
    persisted state and :meth:`close` on shutdown.
    """

    def __init__(
        self,
        *,
        documents: DocumentStore,
        settings: SettingsStore,
        config: Config | None = None,
        backend: Any = None,
        sleep: Callable[[float], None] | None = None,
        clock: Callable[[], float] | None = None,
    ) -> None:
        self.config = config or Config()
        self.documents = documents
        self.settings = settings
        self.backend = backend if backend is not None else _default_backend(self.config)
        self.state = SyncStateStore()
        self.stores = IndexStoreManager(self.backend)
        self.uploader = BulkUploader(
            self.backend,
            poll_interval=self.config.poll_interval,
            max_poll_attempts=self.config.max_poll_attempts,
            sleep=sleep,
            clock=clock,
        )
        self.router = QueryRouter(self.backend, cooldown=self.config.query_cooldown)
        self._started = False

    def start(self) -> None:
        payload = self.settings.load()
        self.state.load(payload.get(SYNCED_FILES_KEY) or {})
        store_name = payload.get(STORE_NAME_KEY)
        self.stores.attach(IndexHandle(name=store_name) if store_name else None)
        self._started = True
        logger.debug(
            "Loaded %d sync records (store: %s)",
            len(self.state),
            store_name or Messages.INFO_STORE_NONE,
        )

    def save(self) -> None:
        handle = self.stores.handle
        self.settings.save(
            {
                STORE_NAME_KEY: handle.name if handle is not None else None,
                SYNCED_FILES_KEY: self.state.snapshot(),
            }
        )

    def close(self) -> None:
        if self.uploader.running:
            self.uploader.cancel()
        if self._started:
            self.save()
        self._started = False

    def __enter__(self) -> "SyncEngine":
        self.start()
        return self

    def __exit__(self, *_exc_info) -> None:
        self.close()

    @property
    def progress(self) -> SyncProgress:
        return self.uploader.progress

    @property
    def store_handle(self) -> IndexHandle | None:
        return self.stores.handle

    def sync_vault(
        self,
        scope: str | None = None,
        on_progress: ProgressCallback | None = None,
    ) -> SyncSummary:
        """Upload new and changed notes under *scope* to the active store."""

        with self.uploader.exclusive():
            documents = self.documents.list_documents(scope)
            handle = self.stores.initialize_store(self.config.store_display_name)
            try:
                summary = self.uploader.run(documents, self.state, handle, on_progress)
                if is_full_scope(scope) and not summary.cancelled:
                    self.state.prune(document.id for document in documents)
            finally:
                self.save()
        return summary

    def cancel_sync(self) -> None:
        self.uploader.cancel()

    def delete_index(self) -> None:
        """Delete the active store and forget every sync record with it."""

        with self.uploader.exclusive():
            self.stores.delete_store()
            self.state.clear()
            self.save()

    def list_stores(self) -> List[IndexHandle]:
        return self.stores.list_stores()

    def get_sync_stats(self) -> SyncStats:
        return self.state.stats()

    def query(
        self,
        text: str,
        mode: QueryMode | str = QueryMode.PLAIN,
        *,
        metadata_filter: str | None = None,
    ) -> QueryResult:
        return self.router.query(
            text,
            mode,
            self.stores.handle,
            metadata_filter=metadata_filter,
        )

    def reset_chat(self) -> None:
        reset = getattr(self.backend, "reset_chat", None)
        if reset is not None:
            reset()

    def summarize(self, doc_id: str) -> QueryResult:
        return self._prompt_with_note(doc_id, Messages.PROMPT_SUMMARIZE)

    def translate(self, doc_id: str, language: str) -> QueryResult:
        return self._prompt_with_note(doc_id, Messages.PROMPT_TRANSLATE, language=language)

    def find_action_items(self, doc_id: str) -> QueryResult:
        return self._prompt_with_note(doc_id, Messages.PROMPT_ACTION_ITEMS)

    def _prompt_with_note(self, doc_id: str, template: str, **kwargs: str) -> QueryResult:
        try:
            content = self.documents.read(doc_id)
        except FileNotFoundError:
            return QueryResult.failure(
                ErrorKind.INVALID_REQUEST,
                Messages.ERROR_NOTE_MISSING.format(path=doc_id),
            )
        content = truncate_content(
            content,
            self.config.max_context_chars,
            Messages.CONTEXT_TRUNCATED,
        )
        return self.query(template.format(content=content, **kwargs), QueryMode.PLAIN)
