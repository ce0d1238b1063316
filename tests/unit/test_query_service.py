from types import SimpleNamespace

from vaultai.errors import ErrorKind
from vaultai.models import IndexHandle, RetrievalResponse
from vaultai.services.query_service import QueryMode, QueryResult, QueryRouter
from vaultai.text import Messages

HANDLE = IndexHandle(name="fileSearchStores/vault")


class FakeQueryBackend:
    def __init__(self, *, reply="plain answer", response=None, error=None) -> None:
        self.reply = reply
        self.response = response
        self.error = error
        self.calls: list[tuple] = []

    def complete(self, text):
        self.calls.append(("complete", text))
        if self.error is not None:
            raise self.error
        return self.reply

    def query_with_retrieval(self, text, handle, *, metadata_filter=None):
        self.calls.append(("retrieval", text, handle, metadata_filter))
        if self.error is not None:
            raise self.error
        return self.response

    def query_with_web_search(self, text):
        self.calls.append(("web", text))
        if self.error is not None:
            raise self.error
        return self.response


def _router(backend, **kwargs) -> QueryRouter:
    kwargs.setdefault("cooldown", 0)
    return QueryRouter(backend, **kwargs)


def test_plain_query_returns_backend_text():
    backend = FakeQueryBackend()

    result = _router(backend).query("  What is due today?  ")

    assert result.ok
    assert result.text == "plain answer"
    assert result.citations is None
    assert backend.calls == [("complete", "What is due today?")]


def test_empty_query_is_rejected_without_backend_call():
    backend = FakeQueryBackend()

    result = _router(backend).query("   ")

    assert result.error.kind == ErrorKind.INVALID_REQUEST
    assert result.error.message == Messages.ERROR_EMPTY_QUERY
    assert backend.calls == []


def test_unknown_mode_is_rejected():
    result = _router(FakeQueryBackend()).query("hi", "telepathy")

    assert result.error.kind == ErrorKind.INVALID_REQUEST
    assert "telepathy" in result.error.message


def test_retrieval_without_store_reports_not_synced():
    backend = FakeQueryBackend()

    result = _router(backend).query("Find notes", QueryMode.RETRIEVAL, None)

    assert result.error.kind == ErrorKind.NOT_SYNCED
    assert result.error.message == Messages.ERROR_NOT_SYNCED
    assert backend.calls == []


def test_retrieval_appends_sources_block():
    metadata = SimpleNamespace(
        grounding_chunks=[
            SimpleNamespace(
                retrieved_context=SimpleNamespace(title="Projects.md", text="Ship it #work")
            )
        ]
    )
    backend = FakeQueryBackend(
        response=RetrievalResponse(text="You have one project.", grounding_metadata=metadata)
    )

    result = _router(backend).query(
        "What projects?",
        "retrieval",
        HANDLE,
        metadata_filter='path = "Projects.md"',
    )

    assert result.ok
    assert result.text.startswith("You have one project.\n\n---\n")
    assert "- Projects.md" in result.text
    assert "Tags: #work" in result.text
    assert [entry.label for entry in result.citations.primary] == ["Projects.md"]
    assert backend.calls == [
        ("retrieval", "What projects?", HANDLE, 'path = "Projects.md"')
    ]


def test_web_search_needs_no_store_and_cites_pages():
    metadata = {
        "groundingChunks": [
            {"web": {"uri": "https://example.com/guide", "title": "example.com"}},
            {"web": {"uri": "https://docs.python.org/3/", "title": "python.org"}},
        ]
    }
    backend = FakeQueryBackend(
        response=RetrievalResponse(text="Here is what I found.", grounding_metadata=metadata)
    )

    result = _router(backend).query("Latest Python release?", "web")

    assert result.ok
    assert [entry.label for entry in result.citations.primary] == ["example.com", "python.org"]
    assert "- python.org" in result.text
    assert backend.calls == [("web", "Latest Python release?")]


def test_retrieval_without_grounding_returns_bare_text():
    backend = FakeQueryBackend(response=RetrievalResponse(text="No idea."))

    result = _router(backend).query("Anything?", QueryMode.RETRIEVAL, HANDLE)

    assert result.text == "No idea."
    assert result.citations is None


def test_backend_errors_are_classified():
    error = RuntimeError("Too Many Requests")
    error.code = 429
    backend = FakeQueryBackend(error=error)

    result = _router(backend).query("hello")

    assert not result.ok
    assert result.error.kind == ErrorKind.RATE_LIMITED
    assert result.error.message == Messages.ERROR_RATE_LIMITED
    assert result.text == ""


def test_auth_errors_are_classified():
    backend = FakeQueryBackend(error=RuntimeError("API key not valid. Please pass a valid API key."))

    result = _router(backend).query("hello", QueryMode.RETRIEVAL, HANDLE)

    assert result.error.kind == ErrorKind.AUTH_FAILED
    assert result.error.message == Messages.ERROR_API_KEY_INVALID


def test_cooldown_rejects_rapid_queries():
    ticks = iter([0.0, 0.5, 2.0])
    backend = FakeQueryBackend()
    router = QueryRouter(backend, cooldown=1.0, clock=lambda: next(ticks))

    first = router.query("one")
    second = router.query("two")
    third = router.query("three")

    assert first.ok
    assert second.error.kind == ErrorKind.RATE_LIMITED
    assert second.error.message == Messages.ERROR_COOLDOWN
    assert third.ok
    assert [call[1] for call in backend.calls] == ["one", "three"]


def test_query_result_failure_helper():
    result = QueryResult.failure(ErrorKind.UNKNOWN, "nope")

    assert not result.ok
    assert result.error.message == "nope"
