from __future__ import annotations

import json
from pathlib import Path

import pytest

from builder_backend.session import DEFAULT_DOCUMENT_NAME, EditorSession
from builder_core.config import BuilderSettings
from builder_core.models import Document
from builder_core.persistence import JsonStateStore


@pytest.fixture
def store(tmp_path: Path) -> JsonStateStore:
    return JsonStateStore(tmp_path, key="builder_test")


def test_from_settings_restores_saved_state(tmp_path: Path, store: JsonStateStore, use_case_payload) -> None:
    store.save({"useCase": use_case_payload(name="Saved"), "phases": [{"id": "phase-1"}]})

    session = EditorSession.from_settings(
        BuilderSettings(storage_dir=tmp_path, storage_key="builder_test")
    )

    assert session.document.name == "Saved"
    assert session.document.get_element("b2") is not None
    assert session.state()["phases"] == [{"id": "phase-1"}]
    assert not session.history.can_undo


def test_edits_survive_a_reopen(store: JsonStateStore, use_case_payload) -> None:
    session = EditorSession(Document.from_json_dict(use_case_payload()), store=store, save_delay=30)
    session.update_element("c1", {"name": "Backend", "width": 640})
    session.add_connection({"id": "k3", "from": "b1", "to": "b3"})
    assert session.flush()

    reopened = EditorSession(store=store)

    assert reopened.load()
    assert reopened.document == session.document


def test_rejected_updates_never_reach_storage(store: JsonStateStore, use_case_payload) -> None:
    session = EditorSession(Document.from_json_dict(use_case_payload()), store=store, save_delay=30)

    with pytest.raises(ValueError):
        session.update_element("c1", {"width": -5})
    with pytest.raises(ValueError):
        session.update_element("b1", {"blockName": None})
    with pytest.raises(ValueError):
        session.add_connection({"fromIndex": 2, "toIndex": 2})
    session.move_element("b1", 30, 30)
    session.flush()

    reopened = EditorSession(store=store)
    assert reopened.load()
    assert reopened.document.get_element("c1").width == 600
    assert len(reopened.document.connections) == 2


def test_multi_property_update_is_all_or_nothing(use_case_payload) -> None:
    session = EditorSession(Document.from_json_dict(use_case_payload()))

    with pytest.raises(ValueError):
        session.update_element("c1", {"name": "Backend", "height": 0})

    assert session.document.get_element("c1").name == "Fahrzeug"
    assert not session.history.can_undo


def test_invalid_saved_state_is_ignored(store: JsonStateStore, caplog: pytest.LogCaptureFixture) -> None:
    store.path.parent.mkdir(parents=True, exist_ok=True)
    store.path.write_text(
        json.dumps({"useCase": {"name": "Broken", "elements": [{"id": "c1", "type": "container", "x": 0, "y": 0, "name": "C", "width": -5, "height": 10}]}})
    )

    session = EditorSession(store=store)

    assert session.load() is False
    assert session.document.name == DEFAULT_DOCUMENT_NAME
    assert "Ignoring invalid saved use case" in caplog.text


def test_load_without_store_or_state(store: JsonStateStore) -> None:
    assert EditorSession().load() is False
    assert EditorSession(store=store).load() is False
