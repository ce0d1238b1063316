"""Gemini-backed chat and File Search backend for VaultAI."""

from __future__ import annotations

import io
import logging
import time
from collections.abc import Mapping
from typing import Any, List

from dotenv import load_dotenv
from google import genai
from google.genai import errors as genai_errors
from google.genai import types as genai_types

from ..config import DEFAULT_MAX_OUTPUT_TOKENS, DEFAULT_MODEL
from ..errors import AuthFailedError, ContentBlockedError, extract_status_code
from ..models import IndexHandle, OperationStatus, RetrievalResponse
from ..text import Messages

logger = logging.getLogger(__name__)

UPLOAD_MIME_TYPE = "text/markdown"
_BLOCKED_FINISH_REASONS = {"SAFETY", "PROHIBITED_CONTENT", "BLOCKLIST", "SPII"}


class GeminiBackend:
    """Conversational and retrieval calls against the Gemini API via google-genai."""

    def __init__(
        self,
        *,
        model_name: str = DEFAULT_MODEL,
        api_key: str | None = None,
        base_url: str | None = None,
        max_output_tokens: int = DEFAULT_MAX_OUTPUT_TOKENS,
    ) -> None:
        load_dotenv()
        self.model_name = model_name
        self.max_output_tokens = max_output_tokens
        self.api_key = api_key
        if not self.api_key or self.api_key.strip().lower() == "your_api_key_here":
            raise AuthFailedError(Messages.ERROR_API_KEY_MISSING)
        client_kwargs: dict[str, object] = {"api_key": self.api_key}
        if base_url:
            client_kwargs["http_options"] = genai_types.HttpOptions(base_url=base_url)
        self._client = genai.Client(**client_kwargs)
        self._chat = None

    # Conversational backend

    def complete(self, text: str) -> str:
        """Send *text* on the running chat session and return the reply."""

        if self._chat is None:
            self._chat = self._client.chats.create(
                model=self.model_name,
                config=genai_types.GenerateContentConfig(
                    max_output_tokens=self.max_output_tokens,
                ),
            )
        response = self._chat.send_message(text)
        return _response_text(response)

    def reset_chat(self) -> None:
        self._chat = None

    # Retrieval backend

    def create_index(self, display_name: str) -> IndexHandle:
        store = self._client.file_search_stores.create(
            config={"display_name": display_name}
        )
        return IndexHandle(name=store.name, display_name=getattr(store, "display_name", None))

    def list_indexes(self) -> List[IndexHandle]:
        handles: List[IndexHandle] = []
        for store in self._client.file_search_stores.list():
            name = getattr(store, "name", None)
            if not name:
                continue
            handles.append(
                IndexHandle(name=name, display_name=getattr(store, "display_name", None))
            )
        return handles

    def delete_index(self, handle: IndexHandle, *, force: bool = True) -> None:
        self._client.file_search_stores.delete(name=handle.name, config={"force": force})

    def upload_document(
        self,
        handle: IndexHandle,
        content: str,
        *,
        display_name: str,
        metadata: Mapping[str, str | float] | None = None,
    ) -> OperationStatus:
        """Submit *content* to the store; the returned operation may still be running."""

        attempt = 0
        while True:
            try:
                operation = self._client.file_search_stores.upload_to_file_search_store(
                    file_search_store_name=handle.name,
                    file=io.BytesIO(content.encode("utf-8")),
                    config={
                        "display_name": display_name,
                        "mime_type": UPLOAD_MIME_TYPE,
                        "custom_metadata": _custom_metadata(metadata or {}),
                    },
                )
                break
            except genai_errors.APIError as exc:
                if _should_retry_genai_error(exc) and attempt < _MAX_RETRIES:
                    _sleep(_backoff_delay(attempt))
                    attempt += 1
                    continue
                raise
        return _operation_status(operation)

    def poll_operation(self, operation: Any) -> OperationStatus:
        return _operation_status(self._client.operations.get(operation))

    def query_with_retrieval(
        self,
        text: str,
        handle: IndexHandle,
        *,
        metadata_filter: str | None = None,
    ) -> RetrievalResponse:
        file_search = genai_types.FileSearch(
            file_search_store_names=[handle.name],
            metadata_filter=metadata_filter or None,
        )
        return self._grounded_answer(text, genai_types.Tool(file_search=file_search))

    def query_with_web_search(self, text: str) -> RetrievalResponse:
        """Answer *text* with Google Search grounding; chunks carry ``web.uri``/``web.title``."""

        return self._grounded_answer(
            text,
            genai_types.Tool(google_search=genai_types.GoogleSearch()),
        )

    def _grounded_answer(self, text: str, tool: genai_types.Tool) -> RetrievalResponse:
        response = self._client.models.generate_content(
            model=self.model_name,
            contents=text,
            config=genai_types.GenerateContentConfig(tools=[tool]),
        )
        candidates = getattr(response, "candidates", None) or []
        grounding = getattr(candidates[0], "grounding_metadata", None) if candidates else None
        return RetrievalResponse(text=_response_text(response), grounding_metadata=grounding)


def _custom_metadata(metadata: Mapping[str, str | float]) -> list[dict[str, object]]:
    entries: list[dict[str, object]] = []
    for key, value in metadata.items():
        if isinstance(value, bool):
            entries.append({"key": key, "string_value": "true" if value else "false"})
        elif isinstance(value, (int, float)):
            entries.append({"key": key, "numeric_value": float(value)})
        else:
            entries.append({"key": key, "string_value": str(value)})
    return entries


def _operation_status(operation: Any) -> OperationStatus:
    error = getattr(operation, "error", None)
    message = None
    if error:
        if isinstance(error, Mapping):
            message = str(error.get("message") or error)
        else:
            message = str(getattr(error, "message", None) or error)
    return OperationStatus(
        operation=operation,
        done=bool(getattr(operation, "done", False)),
        error=message,
    )


def _response_text(response: Any) -> str:
    text = getattr(response, "text", None)
    if text:
        return text
    feedback = getattr(response, "prompt_feedback", None)
    if feedback is not None and getattr(feedback, "block_reason", None):
        raise ContentBlockedError()
    for candidate in getattr(response, "candidates", None) or []:
        reason = getattr(candidate, "finish_reason", None)
        reason_name = getattr(reason, "name", None) or str(reason or "")
        if reason_name.upper() in _BLOCKED_FINISH_REASONS:
            raise ContentBlockedError()
    return ""


_RETRYABLE_STATUS_CODES = {408, 500, 502, 503, 504}
_MAX_RETRIES = 2
_RETRY_BASE_DELAY = 0.5
_RETRY_MAX_DELAY = 4.0


def _sleep(seconds: float) -> None:
    time.sleep(seconds)


def _backoff_delay(attempt: int) -> float:
    return min(_RETRY_MAX_DELAY, _RETRY_BASE_DELAY * (2**attempt))


def _should_retry_genai_error(exc: Exception) -> bool:
    status = extract_status_code(exc)
    if status in _RETRYABLE_STATUS_CODES:
        return True
    name = exc.__class__.__name__.lower()
    if "timeout" in name or "temporarily" in name:
        return True
    message = str(exc).lower()
    return any(
        token in message
        for token in (
            "timeout",
            "temporar",
            "overload",
            "try again",
            "service unavailable",
        )
    )
