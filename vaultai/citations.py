"""Turn retrieval grounding metadata into a readable list of sources.

Grounding chunks come back in several shapes depending on the API version:
objects or dicts, snake_case or camelCase keys, with or without a display
name. Each chunk is parsed into one of three variants, tried in order:

* ``NamedChunk``: a human readable document name was found.
* ``TextChunk``: only retrieved text is available.
* ``OpaqueChunk``: nothing usable.

Extraction never raises; anything unexpected degrades to a count-only line.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from pathlib import PurePosixPath
from typing import Any, Iterable, Sequence

from .errors import ErrorKind
from .text import Messages

logger = logging.getLogger(__name__)

PREVIEW_LENGTH = 80
SEPARATOR = "---"

_CHUNK_LIST_FIELDS = ("grounding_chunks", "groundingChunks", "chunks")
_CONTEXT_FIELDS = ("retrieved_context", "retrievedContext", "document", "web")
_NAME_FIELDS = (
    "title",
    "display_name",
    "displayName",
    "file_name",
    "fileName",
    "filename",
    "name",
)
_URI_FIELDS = ("uri", "url", "source")
_TEXT_FIELDS = ("text", "content", "snippet", "chunk_text")
_RESOURCE_PREFIXES = ("fileSearchStores/", "corpora/", "files/")

_WIKI_LINK_RE = re.compile(r"\[\[([^\[\]|#]+)(?:[#|][^\[\]]*)?\]\]")
_TAG_RE = re.compile(r"(?<![\w#&/])#([A-Za-z_][\w/-]*)")
_WHITESPACE_RE = re.compile(r"\s+")


class CitationKind(str, Enum):
    FILE = "file"
    LINK = "link"
    TAG = "tag"
    PREVIEW = "preview"


@dataclass(frozen=True, slots=True)
class CitationEntry:
    label: str
    kind: CitationKind


@dataclass(slots=True)
class CitationList:
    entries: list[CitationEntry] = field(default_factory=list)
    source_count: int = 0

    @property
    def primary(self) -> list[CitationEntry]:
        return [entry for entry in self.entries if entry.kind != CitationKind.TAG or self._tags_only]

    @property
    def tags(self) -> list[CitationEntry]:
        if self._tags_only:
            return []
        return [entry for entry in self.entries if entry.kind == CitationKind.TAG]

    @property
    def _tags_only(self) -> bool:
        return bool(self.entries) and all(
            entry.kind == CitationKind.TAG for entry in self.entries
        )


@dataclass(frozen=True, slots=True)
class NamedChunk:
    name: str
    text: str = ""


@dataclass(frozen=True, slots=True)
class TextChunk:
    text: str


@dataclass(frozen=True, slots=True)
class OpaqueChunk:
    pass


ParsedChunk = NamedChunk | TextChunk | OpaqueChunk


def _field(obj: Any, key: str) -> Any:
    if isinstance(obj, Mapping):
        return obj.get(key)
    return getattr(obj, key, None)


def _first_str(obj: Any, keys: Sequence[str]) -> str:
    for key in keys:
        value = _field(obj, key)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return ""


def _readable_name(value: str) -> str:
    if value.startswith(_RESOURCE_PREFIXES):
        return ""
    return value


def _name_from_uri(value: str) -> str:
    if not value or value.startswith(_RESOURCE_PREFIXES):
        return ""
    tail = PurePosixPath(value.split("?", 1)[0].rstrip("/")).name
    return tail if "." in tail else ""


def _iter_chunks(metadata: Any) -> list[Any]:
    if isinstance(metadata, (list, tuple)):
        return list(metadata)
    for key in _CHUNK_LIST_FIELDS:
        value = _field(metadata, key)
        if isinstance(value, (list, tuple)):
            return list(value)
    return []


def parse_chunk(raw: Any) -> ParsedChunk:
    """Classify one grounding chunk into a typed variant."""

    contexts = [_field(raw, key) for key in _CONTEXT_FIELDS]
    contexts = [context for context in contexts if context is not None] + [raw]
    text = ""
    for context in contexts:
        text = _first_str(context, _TEXT_FIELDS)
        if text:
            break
    for context in contexts:
        name = _readable_name(_first_str(context, _NAME_FIELDS))
        if not name:
            name = _name_from_uri(_first_str(context, _URI_FIELDS))
        if name:
            return NamedChunk(name=name, text=text)
    if text:
        return TextChunk(text=text)
    return OpaqueChunk()


def _dedupe(values: Iterable[str]) -> list[str]:
    seen: set[str] = set()
    result: list[str] = []
    for value in values:
        if value in seen:
            continue
        seen.add(value)
        result.append(value)
    return result


def _preview(text: str) -> str:
    snippet = _WHITESPACE_RE.sub(" ", text).strip()
    if len(snippet) > PREVIEW_LENGTH:
        snippet = snippet[:PREVIEW_LENGTH].rstrip() + "..."
    return f'"{snippet}"'


def extract_citations(metadata: Any) -> CitationList:
    """Build the ranked, de-duplicated citation list for one answer."""

    try:
        raw_chunks = _iter_chunks(metadata)
        chunks = [parse_chunk(raw) for raw in raw_chunks]
    except Exception as exc:
        logger.debug("Grounding metadata not understood (%s): %s", ErrorKind.MALFORMED_METADATA.value, exc)
        return CitationList(source_count=0)

    texts = [chunk.text for chunk in chunks if isinstance(chunk, (NamedChunk, TextChunk)) and chunk.text]
    names = _dedupe(chunk.name for chunk in chunks if isinstance(chunk, NamedChunk))
    tags = _dedupe(f"#{tag}" for text in texts for tag in _TAG_RE.findall(text))

    entries: list[CitationEntry] = []
    if names:
        entries.extend(CitationEntry(label=name, kind=CitationKind.FILE) for name in names)
    else:
        links = _dedupe(
            match.strip() for text in texts for match in _WIKI_LINK_RE.findall(text)
        )
        entries.extend(
            CitationEntry(label=f"[[{link}]]", kind=CitationKind.LINK) for link in links if link
        )
    entries.extend(CitationEntry(label=tag, kind=CitationKind.TAG) for tag in tags)
    if not entries:
        previews = _dedupe(_preview(text) for text in texts)
        entries.extend(CitationEntry(label=label, kind=CitationKind.PREVIEW) for label in previews)
    return CitationList(entries=entries, source_count=len(raw_chunks))


def format_citations(citations: CitationList) -> str:
    """Render *citations* as a collapsible markdown block below a separator."""

    primary = citations.primary
    if not primary:
        count = citations.source_count
        if count == 0:
            return ""
        plural = "" if count == 1 else "s"
        return f"\n\n{SEPARATOR}\n{Messages.SOURCES_COUNT_ONLY.format(count=count, plural=plural)}"
    lines = [
        "",
        "",
        SEPARATOR,
        "<details>",
        f"<summary>{Messages.SOURCES_LABEL.format(count=len(primary))}</summary>",
        "",
    ]
    lines.extend(f"- {entry.label}" for entry in primary)
    tags = citations.tags
    if tags:
        lines.append("")
        lines.append(f"{Messages.SOURCES_TAGS_LABEL}: " + " ".join(entry.label for entry in tags))
    lines.append("</details>")
    return "\n".join(lines)


def extract(metadata: Any) -> str:
    """Return the formatted sources block for *metadata* ("" when there is none)."""

    if metadata is None:
        return ""
    return format_citations(extract_citations(metadata))
