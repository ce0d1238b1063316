"""Select the notes whose content changed since their last upload."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Sequence

from ..documents import Document
from ..hashing import content_fingerprint
from ..sync_state import SyncStateStore


@dataclass(slots=True)
class DocumentDiff:
    added: list[Document] = field(default_factory=list)
    modified: list[Document] = field(default_factory=list)
    unchanged: list[Document] = field(default_factory=list)
    fingerprints: dict[str, str] = field(default_factory=dict)

    @property
    def is_noop(self) -> bool:
        return not self.added and not self.modified


def diff_documents(documents: Sequence[Document], state: SyncStateStore) -> DocumentDiff:
    """Classify *documents* against the recorded fingerprints."""

    diff = DocumentDiff()
    for document in documents:
        fingerprint = content_fingerprint(document.content)
        diff.fingerprints[document.id] = fingerprint
        record = state.get(document.id)
        if record is None:
            diff.added.append(document)
        elif record.hash != fingerprint:
            diff.modified.append(document)
        else:
            diff.unchanged.append(document)
    return diff


def select_for_sync(documents: Sequence[Document], state: SyncStateStore) -> list[Document]:
    """Return the documents that need (re-)upload, in input order.

    A document is selected when it has no sync record or its current
    fingerprint differs from the recorded one; a resync without edits
    therefore selects nothing.
    """

    diff = diff_documents(documents, state)
    if diff.is_noop:
        return []
    changed = {document.id for document in diff.added}
    changed.update(document.id for document in diff.modified)
    return [document for document in documents if document.id in changed]
