"""Global configuration management for VaultAI."""

from __future__ import annotations

import json
import os
import dataclasses
from dataclasses import dataclass, field
from contextlib import contextmanager
from contextvars import ContextVar
from collections.abc import Mapping
from pathlib import Path
from typing import Any, Dict

from .text import Messages

DEFAULT_CONFIG_DIR = Path(os.path.expanduser("~")) / ".vaultai"
CONFIG_DIR = DEFAULT_CONFIG_DIR
CONFIG_FILE = CONFIG_DIR / "config.json"
STATE_FILENAME = "state.json"
_CONFIG_DIR_OVERRIDE: ContextVar[Path | None] = ContextVar(
    "vaultai_config_dir_override",
    default=None,
)
DEFAULT_MODEL = "gemini-2.5-flash"
DEFAULT_STORE_DISPLAY_NAME = "VaultAI-FileSearchStore"
DEFAULT_POLL_INTERVAL = 5.0
DEFAULT_MAX_POLL_ATTEMPTS = 60
DEFAULT_QUERY_COOLDOWN = 1.0
DEFAULT_MAX_CONTEXT_CHARS = 30_000
DEFAULT_MAX_OUTPUT_TOKENS = 2_000
DEFAULT_EXCLUDE_PATTERNS: tuple[str, ...] = ()
ENV_API_KEY = "VAULTAI_API_KEY"
GEMINI_ENV = "GEMINI_API_KEY"
GOOGLE_ENV = "GOOGLE_API_KEY"


@dataclass
class Config:
    api_key: str | None = None
    model: str = DEFAULT_MODEL
    vault_path: str | None = None
    store_display_name: str = DEFAULT_STORE_DISPLAY_NAME
    poll_interval: float = DEFAULT_POLL_INTERVAL
    max_poll_attempts: int = DEFAULT_MAX_POLL_ATTEMPTS
    query_cooldown: float = DEFAULT_QUERY_COOLDOWN
    max_context_chars: int = DEFAULT_MAX_CONTEXT_CHARS
    max_output_tokens: int = DEFAULT_MAX_OUTPUT_TOKENS
    exclude_patterns: tuple[str, ...] = field(default=DEFAULT_EXCLUDE_PATTERNS)
    base_url: str | None = None


def _resolve_config_dir() -> Path:
    override = _CONFIG_DIR_OVERRIDE.get()
    return override if override is not None else CONFIG_DIR


def _resolve_config_file() -> Path:
    override = _CONFIG_DIR_OVERRIDE.get()
    if override is not None:
        return override / "config.json"
    return CONFIG_FILE


def state_file() -> Path:
    """Return the JSON file holding persisted sync state."""
    return _resolve_config_dir() / STATE_FILENAME


@contextmanager
def config_dir_context(path: Path | str | None):
    """Temporarily override the config directory for the current context."""

    if path is None:
        yield
        return
    dir_path = Path(path).expanduser().resolve()
    if dir_path.exists() and not dir_path.is_dir():
        raise NotADirectoryError(f"Path is not a directory: {dir_path}")
    token = _CONFIG_DIR_OVERRIDE.set(dir_path)
    try:
        yield
    finally:
        _CONFIG_DIR_OVERRIDE.reset(token)


def load_config() -> Config:
    config_file = _resolve_config_file()
    if not config_file.exists():
        return Config()
    raw = json.loads(config_file.read_text(encoding="utf-8"))
    if not isinstance(raw, Mapping):
        raise ValueError(Messages.ERROR_CONFIG_JSON_INVALID)
    return config_from_json(raw)


def save_config(config: Config) -> None:
    config_dir = _resolve_config_dir()
    config_dir.mkdir(parents=True, exist_ok=True)
    data: Dict[str, Any] = {}
    if config.api_key:
        data["api_key"] = config.api_key
    if config.model:
        data["model"] = config.model
    if config.vault_path:
        data["vault_path"] = config.vault_path
    data["store_display_name"] = config.store_display_name
    data["poll_interval"] = config.poll_interval
    data["max_poll_attempts"] = config.max_poll_attempts
    data["query_cooldown"] = config.query_cooldown
    data["max_context_chars"] = config.max_context_chars
    data["max_output_tokens"] = config.max_output_tokens
    if config.exclude_patterns:
        data["exclude_patterns"] = list(config.exclude_patterns)
    if config.base_url:
        data["base_url"] = config.base_url
    config_file = _resolve_config_file()
    config_file.write_text(
        json.dumps(data, ensure_ascii=False, indent=2),
        encoding="utf-8",
    )


def set_config_dir(path: Path | str | None) -> None:
    global CONFIG_DIR, CONFIG_FILE
    if path is None:
        CONFIG_DIR = DEFAULT_CONFIG_DIR
    else:
        dir_path = Path(path).expanduser().resolve()
        if dir_path.exists() and not dir_path.is_dir():
            raise NotADirectoryError(f"Path is not a directory: {dir_path}")
        CONFIG_DIR = dir_path
    CONFIG_FILE = CONFIG_DIR / "config.json"


def config_from_json(
    payload: str | Mapping[str, object], *, base: Config | None = None
) -> Config:
    """Return a Config from a JSON string or mapping without saving it."""
    data = _coerce_config_payload(payload)
    config = Config() if base is None else dataclasses.replace(base)
    _apply_config_payload(config, data)
    return config


def update_config_from_json(
    payload: str | Mapping[str, object], *, replace: bool = False
) -> Config:
    """Update config from a JSON string or mapping and persist it."""
    base = None if replace else load_config()
    config = config_from_json(payload, base=base)
    save_config(config)
    return config


def set_api_key(value: str | None) -> None:
    config = load_config()
    config.api_key = value
    save_config(config)


def set_model(value: str) -> None:
    config = load_config()
    config.model = value
    save_config(config)


def set_vault_path(value: str | None) -> None:
    config = load_config()
    config.vault_path = value
    save_config(config)


def set_store_display_name(value: str) -> None:
    config = load_config()
    config.store_display_name = value.strip() or DEFAULT_STORE_DISPLAY_NAME
    save_config(config)


def resolve_api_key(configured: str | None) -> str | None:
    """Return the first available API key from config or environment."""

    if configured:
        return configured
    for env_name in (ENV_API_KEY, GEMINI_ENV, GOOGLE_ENV):
        value = os.getenv(env_name)
        if value:
            return value
    return None


def _coerce_config_payload(payload: str | Mapping[str, object]) -> Mapping[str, object]:
    if isinstance(payload, str):
        try:
            data = json.loads(payload)
        except json.JSONDecodeError as exc:
            raise ValueError(Messages.ERROR_CONFIG_JSON_INVALID) from exc
    elif isinstance(payload, Mapping):
        data = dict(payload)
    else:
        raise ValueError(Messages.ERROR_CONFIG_JSON_INVALID)
    if not isinstance(data, Mapping):
        raise ValueError(Messages.ERROR_CONFIG_JSON_INVALID)
    return data


def _apply_config_payload(config: Config, payload: Mapping[str, object]) -> None:
    if "api_key" in payload:
        config.api_key = _coerce_optional_str(payload["api_key"], "api_key")
    if "model" in payload:
        config.model = _coerce_required_str(payload["model"], "model", DEFAULT_MODEL)
    if "vault_path" in payload:
        config.vault_path = _coerce_optional_str(payload["vault_path"], "vault_path")
    if "store_display_name" in payload:
        config.store_display_name = _coerce_required_str(
            payload["store_display_name"],
            "store_display_name",
            DEFAULT_STORE_DISPLAY_NAME,
        )
    if "poll_interval" in payload:
        config.poll_interval = _coerce_float(
            payload["poll_interval"], "poll_interval", DEFAULT_POLL_INTERVAL
        )
    if "max_poll_attempts" in payload:
        config.max_poll_attempts = _coerce_int(
            payload["max_poll_attempts"], "max_poll_attempts", DEFAULT_MAX_POLL_ATTEMPTS
        )
    if "query_cooldown" in payload:
        config.query_cooldown = _coerce_float(
            payload["query_cooldown"], "query_cooldown", DEFAULT_QUERY_COOLDOWN
        )
    if "max_context_chars" in payload:
        config.max_context_chars = _coerce_int(
            payload["max_context_chars"], "max_context_chars", DEFAULT_MAX_CONTEXT_CHARS
        )
    if "max_output_tokens" in payload:
        config.max_output_tokens = _coerce_int(
            payload["max_output_tokens"], "max_output_tokens", DEFAULT_MAX_OUTPUT_TOKENS
        )
    if "exclude_patterns" in payload:
        config.exclude_patterns = _coerce_patterns(payload["exclude_patterns"])
    if "base_url" in payload:
        config.base_url = _coerce_optional_str(payload["base_url"], "base_url")


def _coerce_optional_str(value: object, field: str) -> str | None:
    if value is None:
        return None
    if isinstance(value, str):
        cleaned = value.strip()
        return cleaned or None
    raise ValueError(Messages.ERROR_CONFIG_VALUE_INVALID.format(field=field))


def _coerce_required_str(value: object, field: str, default: str) -> str:
    if value is None:
        return default
    if isinstance(value, str):
        cleaned = value.strip()
        return cleaned or default
    raise ValueError(Messages.ERROR_CONFIG_VALUE_INVALID.format(field=field))


def _coerce_int(value: object, field: str, default: int) -> int:
    if value is None:
        return default
    if isinstance(value, bool):
        raise ValueError(Messages.ERROR_CONFIG_VALUE_INVALID.format(field=field))
    if isinstance(value, int):
        result = value
    elif isinstance(value, float) and value.is_integer():
        result = int(value)
    elif isinstance(value, str) and value.strip():
        try:
            result = int(value.strip())
        except ValueError as exc:
            raise ValueError(Messages.ERROR_CONFIG_VALUE_INVALID.format(field=field)) from exc
    elif isinstance(value, str):
        return default
    else:
        raise ValueError(Messages.ERROR_CONFIG_VALUE_INVALID.format(field=field))
    if result <= 0:
        raise ValueError(Messages.ERROR_CONFIG_VALUE_INVALID.format(field=field))
    return result


def _coerce_float(value: object, field: str, default: float) -> float:
    if value is None:
        return default
    if isinstance(value, bool):
        raise ValueError(Messages.ERROR_CONFIG_VALUE_INVALID.format(field=field))
    if isinstance(value, (int, float)):
        result = float(value)
    elif isinstance(value, str) and value.strip():
        try:
            result = float(value.strip())
        except ValueError as exc:
            raise ValueError(Messages.ERROR_CONFIG_VALUE_INVALID.format(field=field)) from exc
    elif isinstance(value, str):
        return default
    else:
        raise ValueError(Messages.ERROR_CONFIG_VALUE_INVALID.format(field=field))
    if result < 0:
        raise ValueError(Messages.ERROR_CONFIG_VALUE_INVALID.format(field=field))
    return result


def _coerce_patterns(value: object) -> tuple[str, ...]:
    if value is None:
        return ()
    if isinstance(value, str):
        value = [value]
    if isinstance(value, (list, tuple)) and all(isinstance(item, str) for item in value):
        return tuple(item.strip() for item in value if item.strip())
    raise ValueError(Messages.ERROR_CONFIG_VALUE_INVALID.format(field="exclude_patterns"))
