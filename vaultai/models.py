"""Value types exchanged with the remote retrieval backend."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True, slots=True)
class IndexHandle:
    """Identifier of one remote File Search store."""

    name: str
    display_name: str | None = None

    def __str__(self) -> str:
        return self.name


@dataclass(slots=True)
class OperationStatus:
    """State of a long-running upload operation after a submit or a poll."""

    operation: Any
    done: bool
    error: str | None = None


@dataclass(slots=True)
class RetrievalResponse:
    text: str
    grounding_metadata: Any = None
