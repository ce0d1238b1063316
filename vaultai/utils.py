"""Utility helpers for vault paths and sync scopes."""

from __future__ import annotations

from pathlib import Path, PurePosixPath
from typing import Iterable


def resolve_directory(path: Path | str) -> Path:
    """Resolve and validate a user supplied directory path."""
    dir_path = Path(path).expanduser().resolve()
    if not dir_path.exists():
        raise FileNotFoundError(f"Directory does not exist: {dir_path}")
    if not dir_path.is_dir():
        raise NotADirectoryError(f"Path is not a directory: {dir_path}")
    return dir_path


def normalize_scope(scope: str | None) -> str:
    """Return a vault-relative path prefix; empty means the whole vault."""

    if scope is None:
        return ""
    cleaned = scope.strip().replace("\\", "/")
    return cleaned.lstrip("/")


def is_full_scope(scope: str | None) -> bool:
    return normalize_scope(scope) == ""


def in_scope(doc_id: str, scope: str | None) -> bool:
    prefix = normalize_scope(scope)
    if not prefix:
        return True
    return doc_id.startswith(prefix)


def normalize_patterns(values: Iterable[str] | None) -> tuple[str, ...]:
    """Return a deduplicated tuple of non-empty ignore patterns, keeping order."""

    if not values:
        return ()
    normalized: list[str] = []
    seen: set[str] = set()
    for raw in values:
        if raw is None:
            continue
        token = raw.strip()
        if not token or token in seen:
            continue
        seen.add(token)
        normalized.append(token)
    return tuple(normalized)


def relative_posix(path: Path, root: Path) -> str:
    rel = path.relative_to(root)
    if rel == Path("."):
        return ""
    return rel.as_posix()


def display_name(doc_id: str) -> str:
    """Return the file name part of a vault-relative document id."""
    return PurePosixPath(doc_id).name or doc_id


def truncate_content(content: str, limit: int, marker: str) -> str:
    """Trim *content* to *limit* characters, preferring a paragraph boundary."""

    if limit <= 0 or len(content) <= limit:
        return content
    relevant = content[:limit]
    last_paragraph = relevant.rfind("\n\n")
    if last_paragraph != -1:
        return relevant[:last_paragraph] + "\n\n" + marker
    return relevant + "\n\n" + marker
