"""Per-document sync records and the in-memory store that holds them."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Iterable

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class DocumentSyncRecord:
    path: str
    hash: str
    last_modified: float
    uploaded: bool = False
    uploaded_at: float | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "path": self.path,
            "hash": self.hash,
            "last_modified": self.last_modified,
            "uploaded": self.uploaded,
            "uploaded_at": self.uploaded_at,
        }

    @classmethod
    def from_dict(cls, doc_id: str, raw: Mapping[str, Any]) -> "DocumentSyncRecord":
        fingerprint = raw.get("hash")
        if not isinstance(fingerprint, str) or not fingerprint:
            raise ValueError(f"sync record for {doc_id} has no fingerprint")
        uploaded_at = raw.get("uploaded_at")
        return cls(
            path=str(raw.get("path") or doc_id),
            hash=fingerprint,
            last_modified=float(raw.get("last_modified") or 0.0),
            uploaded=raw.get("uploaded") is True,
            uploaded_at=float(uploaded_at) if uploaded_at is not None else None,
        )


@dataclass(frozen=True, slots=True)
class SyncStats:
    total: int
    synced: int
    pending: int


class SyncStateStore:
    """Mapping from document id to its last recorded sync record.

    The store is a plain in-memory map; persistence goes through
    :meth:`load` and :meth:`snapshot`. Only the sync flow writes to it.
    """

    def __init__(self) -> None:
        self._records: dict[str, DocumentSyncRecord] = {}

    def __len__(self) -> int:
        return len(self._records)

    def __contains__(self, doc_id: object) -> bool:
        return doc_id in self._records

    def load(self, serialized: Mapping[str, Mapping[str, Any]] | None) -> None:
        """Replace the current state with *serialized* records."""

        records: dict[str, DocumentSyncRecord] = {}
        for doc_id, raw in (serialized or {}).items():
            if not isinstance(raw, Mapping):
                logger.warning("Dropping malformed sync record for %s", doc_id)
                continue
            try:
                records[str(doc_id)] = DocumentSyncRecord.from_dict(str(doc_id), raw)
            except (TypeError, ValueError) as exc:
                logger.warning("Dropping malformed sync record for %s: %s", doc_id, exc)
        self._records = records

    def snapshot(self) -> dict[str, dict[str, Any]]:
        return {doc_id: record.to_dict() for doc_id, record in self._records.items()}

    def get(self, doc_id: str) -> DocumentSyncRecord | None:
        return self._records.get(doc_id)

    def put(self, doc_id: str, record: DocumentSyncRecord) -> None:
        self._records[doc_id] = record

    def clear(self) -> None:
        self._records.clear()

    def prune(self, existing_ids: Iterable[str]) -> int:
        """Drop records for documents that no longer exist; return how many."""

        keep = set(existing_ids)
        orphans = [doc_id for doc_id in self._records if doc_id not in keep]
        for doc_id in orphans:
            del self._records[doc_id]
        if orphans:
            logger.debug("Pruned %d orphaned sync records", len(orphans))
        return len(orphans)

    def stats(self) -> SyncStats:
        synced = sum(1 for record in self._records.values() if record.uploaded)
        total = len(self._records)
        return SyncStats(total=total, synced=synced, pending=total - synced)
