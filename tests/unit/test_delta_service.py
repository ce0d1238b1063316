from vaultai.documents import Document
from vaultai.hashing import content_fingerprint
from vaultai.services.delta_service import diff_documents, select_for_sync
from vaultai.sync_state import DocumentSyncRecord, SyncStateStore


def _doc(doc_id: str, content: str) -> Document:
    return Document(id=doc_id, content=content, mtime=1.0)


def _record_for(doc: Document) -> DocumentSyncRecord:
    return DocumentSyncRecord(
        path=doc.id,
        hash=content_fingerprint(doc.content),
        last_modified=doc.mtime,
        uploaded=True,
    )


def test_select_for_sync_returns_everything_for_empty_state():
    docs = [_doc("b.md", "B"), _doc("a.md", "A")]

    assert select_for_sync(docs, SyncStateStore()) == docs


def test_select_for_sync_picks_new_and_modified_in_input_order():
    unchanged = _doc("a.md", "same")
    modified = _doc("b.md", "edited")
    added = _doc("c.md", "new")
    state = SyncStateStore()
    state.put("a.md", _record_for(unchanged))
    state.put("b.md", _record_for(_doc("b.md", "original")))

    selected = select_for_sync([added, unchanged, modified], state)

    assert selected == [added, modified]


def test_select_for_sync_ignores_mtime_only_changes():
    doc = _doc("a.md", "content")
    state = SyncStateStore()
    state.put("a.md", _record_for(doc))
    touched = Document(id="a.md", content="content", mtime=999.0)

    assert select_for_sync([touched], state) == []


def test_diff_documents_classifies_and_records_fingerprints():
    unchanged = _doc("a.md", "same")
    state = SyncStateStore()
    state.put("a.md", _record_for(unchanged))
    state.put("b.md", _record_for(_doc("b.md", "v1")))

    diff = diff_documents([unchanged, _doc("b.md", "v2"), _doc("c.md", "new")], state)

    assert [doc.id for doc in diff.unchanged] == ["a.md"]
    assert [doc.id for doc in diff.modified] == ["b.md"]
    assert [doc.id for doc in diff.added] == ["c.md"]
    assert diff.fingerprints["b.md"] == content_fingerprint("v2")
    assert not diff.is_noop


def test_diff_documents_noop_for_empty_input():
    diff = diff_documents([], SyncStateStore())

    assert diff.is_noop
    assert diff.fingerprints == {}
