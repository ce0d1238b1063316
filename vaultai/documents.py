"""Read-only access to the notes in a vault."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import List, Protocol, Sequence

from .text import Messages
from .utils import (
    display_name,
    in_scope,
    normalize_patterns,
    relative_posix,
    resolve_directory,
)

MARKDOWN_EXTENSIONS: tuple[str, ...] = (".md",)


@dataclass(frozen=True, slots=True)
class Document:
    id: str
    content: str
    mtime: float

    @property
    def name(self) -> str:
        return display_name(self.id)


class DocumentStore(Protocol):
    def list_documents(self, scope: str | None = None) -> List[Document]:
        raise NotImplementedError  # pragma: no cover

    def read(self, doc_id: str) -> str:
        raise NotImplementedError  # pragma: no cover


class FileSystemDocumentStore:
    """Serve markdown notes from a directory tree.

    Hidden entries (``.obsidian``, ``.trash`` and friends) are always skipped;
    *exclude_patterns* use gitignore syntax relative to the vault root.
    """

    def __init__(
        self,
        root: Path | str,
        *,
        extensions: Sequence[str] = MARKDOWN_EXTENSIONS,
        exclude_patterns: Sequence[str] | None = None,
    ) -> None:
        self.root = resolve_directory(root)
        self.extensions = tuple(ext.lower() for ext in extensions)
        self.exclude_patterns = normalize_patterns(exclude_patterns)
        self._exclude_spec = _build_exclude_spec(self.exclude_patterns)

    def list_documents(self, scope: str | None = None) -> List[Document]:
        documents: List[Document] = []
        for path in self._collect_files():
            doc_id = relative_posix(path, self.root)
            if not in_scope(doc_id, scope):
                continue
            documents.append(
                Document(
                    id=doc_id,
                    content=path.read_text(encoding="utf-8", errors="replace"),
                    mtime=path.stat().st_mtime,
                )
            )
        return documents

    def read(self, doc_id: str) -> str:
        path = self._resolve(doc_id)
        if not path.is_file():
            raise FileNotFoundError(Messages.ERROR_NOTE_MISSING.format(path=doc_id))
        return path.read_text(encoding="utf-8", errors="replace")

    def _resolve(self, doc_id: str) -> Path:
        candidate = (self.root / doc_id.lstrip("/")).resolve()
        try:
            candidate.relative_to(self.root)
        except ValueError as exc:
            raise FileNotFoundError(Messages.ERROR_NOTE_MISSING.format(path=doc_id)) from exc
        return candidate

    def _collect_files(self) -> List[Path]:
        files: List[Path] = []
        for dirpath, dirnames, filenames in os.walk(self.root, topdown=True):
            current_dir = Path(dirpath)
            kept: list[str] = []
            for dirname in dirnames:
                if dirname.startswith("."):
                    continue
                rel_dir = relative_posix(current_dir / dirname, self.root)
                if self._is_excluded(f"{rel_dir}/"):
                    continue
                kept.append(dirname)
            dirnames[:] = kept
            for filename in filenames:
                if filename.startswith("."):
                    continue
                if not filename.lower().endswith(self.extensions):
                    continue
                candidate = current_dir / filename
                if self._is_excluded(relative_posix(candidate, self.root)):
                    continue
                files.append(candidate)
        files.sort()
        return files

    def _is_excluded(self, rel_path: str) -> bool:
        if self._exclude_spec is None:
            return False
        return self._exclude_spec.match_file(rel_path)


def _build_exclude_spec(patterns: Sequence[str]):
    if not patterns:
        return None
    from pathspec.gitignore import GitIgnoreSpec

    return GitIgnoreSpec.from_lines(patterns)
