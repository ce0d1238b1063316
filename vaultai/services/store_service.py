"""Lifecycle of the remote File Search store backing the vault index."""

from __future__ import annotations

import logging
from enum import Enum
from typing import List, Protocol

from ..errors import StoreError
from ..models import IndexHandle
from ..text import Messages

logger = logging.getLogger(__name__)


class StoreBackend(Protocol):
    """Remote calls needed to manage File Search stores."""

    def create_index(self, display_name: str) -> IndexHandle:
        raise NotImplementedError  # pragma: no cover

    def list_indexes(self) -> List[IndexHandle]:
        raise NotImplementedError  # pragma: no cover

    def delete_index(self, handle: IndexHandle, *, force: bool = True) -> None:
        raise NotImplementedError  # pragma: no cover


class StoreState(str, Enum):
    ABSENT = "absent"
    CREATING = "creating"
    ACTIVE = "active"
    DELETING = "deleting"


class IndexStoreManager:
    """Own the single active store handle for one engine instance.

    Deleting the active store invalidates every sync record; callers must
    clear their :class:`~vaultai.sync_state.SyncStateStore` together with
    :meth:`delete_store`.
    """

    def __init__(self, backend: StoreBackend, handle: IndexHandle | None = None) -> None:
        self._backend = backend
        self._handle = handle
        self._state = StoreState.ACTIVE if handle is not None else StoreState.ABSENT

    @property
    def state(self) -> StoreState:
        return self._state

    @property
    def handle(self) -> IndexHandle | None:
        return self._handle if self._state == StoreState.ACTIVE else None

    def attach(self, handle: IndexHandle | None) -> None:
        """Adopt a previously persisted handle without contacting the backend."""
        self._handle = handle
        self._state = StoreState.ACTIVE if handle is not None else StoreState.ABSENT

    def initialize_store(self, display_name: str) -> IndexHandle:
        """Return the active handle, creating the remote store only when absent."""

        if self._state == StoreState.ACTIVE and self._handle is not None:
            return self._handle
        if self._state in (StoreState.CREATING, StoreState.DELETING):
            verb = "created" if self._state == StoreState.CREATING else "deleted"
            raise StoreError(Messages.ERROR_STORE_BUSY.format(state=verb))
        self._state = StoreState.CREATING
        try:
            handle = self._backend.create_index(display_name)
        except Exception as exc:
            self._state = StoreState.ABSENT
            reason = getattr(exc, "message", None) or str(exc)
            raise StoreError(Messages.ERROR_STORE_CREATE.format(reason=reason)) from exc
        self._handle = handle
        self._state = StoreState.ACTIVE
        logger.info("File Search store created: %s", handle.name)
        return handle

    def delete_store(self, handle: IndexHandle | None = None) -> None:
        """Force-delete *handle* (default: the active store), even when non-empty."""

        target = handle or self.handle
        if target is None:
            raise StoreError(Messages.ERROR_STORE_NONE)
        is_active = self._handle is not None and target.name == self._handle.name
        previous = self._state
        if is_active:
            self._state = StoreState.DELETING
        try:
            self._backend.delete_index(target, force=True)
        except Exception as exc:
            self._state = previous
            reason = getattr(exc, "message", None) or str(exc)
            raise StoreError(Messages.ERROR_STORE_DELETE.format(reason=reason)) from exc
        if is_active:
            self._handle = None
            self._state = StoreState.ABSENT
        logger.info("File Search store deleted: %s", target.name)

    def list_stores(self) -> List[IndexHandle]:
        try:
            return list(self._backend.list_indexes())
        except Exception as exc:
            reason = getattr(exc, "message", None) or str(exc)
            raise StoreError(Messages.ERROR_STORE_LIST.format(reason=reason)) from exc
