"""Route a user query to plain chat, File Search retrieval or web search."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from typing import Protocol

from ..citations import CitationList, extract_citations, format_citations
from ..config import DEFAULT_QUERY_COOLDOWN
from ..errors import ErrorKind, QueryError, query_error_from_exception
from ..models import IndexHandle, RetrievalResponse
from ..text import Messages

logger = logging.getLogger(__name__)


class QueryBackend(Protocol):
    """Remote calls used to answer a query."""

    def complete(self, text: str) -> str:
        raise NotImplementedError  # pragma: no cover

    def query_with_retrieval(
        self,
        text: str,
        handle: IndexHandle,
        *,
        metadata_filter: str | None = None,
    ) -> RetrievalResponse:
        raise NotImplementedError  # pragma: no cover

    def query_with_web_search(self, text: str) -> RetrievalResponse:
        raise NotImplementedError  # pragma: no cover


class QueryMode(str, Enum):
    PLAIN = "plain"
    RETRIEVAL = "retrieval"
    WEB = "web"


@dataclass(slots=True)
class QueryResult:
    text: str = ""
    citations: CitationList | None = None
    error: QueryError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def failure(cls, kind: ErrorKind, message: str) -> "QueryResult":
        return cls(error=QueryError(kind=kind, message=message))


class QueryRouter:
    """Answer queries and normalize both backends into :class:`QueryResult`.

    Backend failures are classified and returned in ``QueryResult.error``;
    nothing raised by the backend escapes :meth:`query`.
    """

    def __init__(
        self,
        backend: QueryBackend,
        *,
        cooldown: float = DEFAULT_QUERY_COOLDOWN,
        clock: Callable[[], float] | None = None,
    ) -> None:
        self.backend = backend
        self.cooldown = max(float(cooldown), 0.0)
        self._clock = clock or time.monotonic
        self._last_call: float | None = None

    def query(
        self,
        text: str,
        mode: QueryMode | str = QueryMode.PLAIN,
        handle: IndexHandle | None = None,
        *,
        metadata_filter: str | None = None,
    ) -> QueryResult:
        clean_text = (text or "").strip()
        if not clean_text:
            return QueryResult.failure(ErrorKind.INVALID_REQUEST, Messages.ERROR_EMPTY_QUERY)
        try:
            mode = QueryMode(mode)
        except ValueError:
            return QueryResult.failure(
                ErrorKind.INVALID_REQUEST,
                Messages.ERROR_INVALID_REQUEST.format(reason=f"unknown query mode '{mode}'"),
            )
        if mode == QueryMode.RETRIEVAL and handle is None:
            return QueryResult.failure(ErrorKind.NOT_SYNCED, Messages.ERROR_NOT_SYNCED)
        now = self._clock()
        if (
            self.cooldown
            and self._last_call is not None
            and now - self._last_call < self.cooldown
        ):
            return QueryResult.failure(ErrorKind.RATE_LIMITED, Messages.ERROR_COOLDOWN)
        self._last_call = now

        try:
            if mode == QueryMode.PLAIN:
                return QueryResult(text=self.backend.complete(clean_text))
            if mode == QueryMode.WEB:
                response = self.backend.query_with_web_search(clean_text)
            else:
                response = self.backend.query_with_retrieval(
                    clean_text,
                    handle,
                    metadata_filter=metadata_filter,
                )
        except Exception as exc:
            error = query_error_from_exception(exc)
            logger.warning("Query failed (%s): %s", error.kind.value, exc)
            return QueryResult(error=error)

        if response.grounding_metadata is None:
            return QueryResult(text=response.text)
        citations = extract_citations(response.grounding_metadata)
        return QueryResult(
            text=response.text + format_citations(citations),
            citations=citations,
        )
