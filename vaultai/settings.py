"""Durable key-value settings used to persist sync state between runs."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, Protocol

from .config import state_file

logger = logging.getLogger(__name__)


class SettingsStore(Protocol):
    def load(self) -> Dict[str, Any]:
        raise NotImplementedError  # pragma: no cover

    def save(self, data: Dict[str, Any]) -> None:
        raise NotImplementedError  # pragma: no cover


class JsonSettingsStore:
    """Settings persisted as a single JSON object on disk."""

    def __init__(self, path: Path | str | None = None) -> None:
        self.path = Path(path) if path is not None else state_file()

    def load(self) -> Dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as exc:
            logger.warning("Ignoring unreadable settings file %s: %s", self.path, exc)
            return {}
        if not isinstance(data, dict):
            logger.warning("Ignoring settings file %s: not a JSON object", self.path)
            return {}
        return data

    def save(self, data: Dict[str, Any]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        tmp_path.write_text(
            json.dumps(data, ensure_ascii=False, indent=2),
            encoding="utf-8",
        )
        tmp_path.replace(self.path)
