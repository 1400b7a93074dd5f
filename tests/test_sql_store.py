"""SQL document store tests."""

from __future__ import annotations

from pathlib import Path

from memory.stores.sql_store import SQLStore


def test_document_crud_and_revisions(tmp_path: Path) -> None:
    store = SQLStore(tmp_path / "nested" / "cog.db")
    store.create_all()

    assert store.load_document("goals") is None
    assert store.save_document("goals", {"goals": [], "total_created": 0}) == 1
    assert store.save_document("goals", {"goals": [{"id": "g1"}], "total_created": 1}) == 2
    assert store.load_document("goals") == {"goals": [{"id": "g1"}], "total_created": 1}

    store.save_document("agents", {"agents": {}})
    listed = store.list_documents()
    assert [(d["name"], d["revision"]) for d in listed] == [("agents", 1), ("goals", 2)]

    assert store.delete_document("agents") is True
    assert store.delete_document("agents") is False
    assert store.load_document("agents") is None


def test_documents_are_visible_to_a_second_store(tmp_path: Path) -> None:
    first = SQLStore(tmp_path / "cog.db")
    first.create_all()
    first.save_document("world_state", {"beliefs": [{"content": "x"}]})

    second = SQLStore(tmp_path / "cog.db")
    second.create_all()
    assert second.load_document("world_state") == {"beliefs": [{"content": "x"}]}
