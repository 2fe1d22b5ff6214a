# tests/test_kv_store.py

from __future__ import annotations

from pathlib import Path

from focusflow.storage.kv_store import SQLiteKeyValueStore


def test_set_get_overwrite_delete(kv: SQLiteKeyValueStore) -> None:
    assert kv.get("missing") is None

    kv.set("a", "1")
    kv.set("a", "2")
    assert kv.get("a") == "2"

    kv.delete("a")
    kv.delete("a")
    assert kv.get("a") is None


def test_keys_prefix_is_literal(kv: SQLiteKeyValueStore) -> None:
    kv.set("ff_local_ts_U1:task:a", "x")
    kv.set("ffXlocal", "x")
    kv.set("ff_%", "x")
    kv.set("other", "x")

    assert kv.keys("ff_") == ["ff_%", "ff_local_ts_U1:task:a"]
    assert kv.keys("ff_%") == ["ff_%"]
    assert len(kv.keys()) == 4


def test_data_survives_new_instance(tmp_path: Path) -> None:
    path = tmp_path / "nested" / "state.sqlite3"
    first = SQLiteKeyValueStore(path)
    first.set("focusflow_tasks_state_guest", '{"tasks": []}')
    first.close()

    second = SQLiteKeyValueStore(path)
    assert second.db_path == path
    assert second.get("focusflow_tasks_state_guest") == '{"tasks": []}'
