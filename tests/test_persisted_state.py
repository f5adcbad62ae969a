from __future__ import annotations

import json

from intake_wizard.schemas import default_answers
from intake_wizard.state import JsonFileStorage, MemoryStorage, PersistedState


class CountingStorage(MemoryStorage):
    def __init__(self) -> None:
        super().__init__()
        self.writes = 0

    def write(self, name: str, payload: str) -> None:
        self.writes += 1
        super().write(name, payload)


class BrokenStorage(MemoryStorage):
    def write(self, name: str, payload: str) -> None:
        raise OSError("quota exceeded")


def test_set_survives_reload(storage):
    state = PersistedState.load(storage, default_answers())
    state.set("firstName", "Ada")

    reloaded = PersistedState.load(storage, default_answers())
    assert reloaded.get("firstName") == "Ada"


def test_set_survives_reload_from_disk(tmp_path):
    state = PersistedState.load(JsonFileStorage(tmp_path), default_answers())
    state.set("treeRemoval", True)
    state.set("customNote", "gate code 1234")

    reloaded = PersistedState.load(JsonFileStorage(tmp_path), default_answers())
    assert reloaded.get("treeRemoval") is True
    assert reloaded.get("customNote") == "gate code 1234"
    assert json.loads((tmp_path / "formState.json").read_text(encoding="utf-8"))["treeRemoval"] is True
    assert not list(tmp_path.glob("*.tmp"))


def test_load_merges_saved_answers_over_defaults(storage):
    storage.write("formState", json.dumps({"firstName": "Ada", "currentStep": 3}))
    state = PersistedState.load(storage, default_answers())
    assert state.get("firstName") == "Ada"
    assert state.get("currentStep") == 3
    assert state.get("doneByDate") == ""


def test_load_ignores_undecodable_snapshot(storage):
    storage.write("formState", "{not json")
    state = PersistedState.load(storage, default_answers())
    assert state.snapshot() == default_answers()


def test_snapshot_is_a_copy(state):
    snap = state.snapshot()
    snap["firstName"] = "changed"
    assert state.get("firstName") == ""


def test_update_writes_once_and_skips_unchanged_values():
    storage = CountingStorage()
    state = PersistedState(storage, default_answers())
    state.update({"city": "Austin", "state": "TX", "zip": "78701"})
    assert storage.writes == 1

    state.set("city", "Austin")
    assert storage.writes == 1


def test_subscribers_see_changes_until_unsubscribed(state):
    seen = []
    unsubscribe = state.subscribe(lambda k, v: seen.append((k, v)))
    state.set("phone", "555-0100")
    state.set("phone", "555-0100")
    unsubscribe()
    state.set("phone", "555-0199")
    assert seen == [("phone", "555-0100")]


def test_clear_removes_durable_entry_but_keeps_session_values(storage, state):
    state.set("lastName", "Lovelace")
    state.clear()
    assert storage.read("formState") is None
    assert state.get("lastName") == "Lovelace"


def test_write_failure_degrades_to_memory_and_reports_once():
    reported = []
    state = PersistedState(BrokenStorage(), default_answers(), on_persist_error=reported.append)
    state.set("firstName", "Ada")
    state.set("lastName", "Lovelace")

    assert state.degraded is True
    assert state.get("firstName") == "Ada"
    assert state.get("lastName") == "Lovelace"
    assert len(reported) == 1


def test_load_ignores_snapshot_that_is_not_utf8(tmp_path):
    (tmp_path / "formState.json").write_bytes(b'{"firstName": "\xff\xfe"}')
    state = PersistedState.load(JsonFileStorage(tmp_path), default_answers())
    assert state.snapshot() == default_answers()


def test_same_value_after_clear_is_persisted_again(storage):
    state = PersistedState.load(storage, default_answers())
    state.set("firstName", "Ada")
    state.clear()
    state.set("firstName", "Ada")

    reloaded = PersistedState.load(storage, default_answers())
    assert reloaded.get("firstName") == "Ada"


def test_clear_then_no_writes_leaves_entry_removed():
    storage = CountingStorage()
    state = PersistedState(storage, default_answers())
    state.set("firstName", "Ada")
    state.clear()
    assert storage.read("formState") is None
    assert storage.writes == 1
