import pytest

from src.concussion_assistant.errors import StoreUnavailable
from src.concussion_assistant.store import InMemoryKeyValueStore, JsonFileKeyValueStore


def test_in_memory_values_are_isolated_copies():
    store = InMemoryKeyValueStore()
    value = {"items": [1, 2]}
    store.set("a", value)
    value["items"].append(3)
    fetched = store.get("a")
    fetched["items"].append(4)
    assert store.get("a") == {"items": [1, 2]}


def test_prefix_scan_is_key_ordered():
    store = InMemoryKeyValueStore()
    store.set("p_2", 2)
    store.set("q_1", 0)
    store.set("p_1", 1)
    assert store.get_by_prefix("p_") == [1, 2]
    assert store.get("missing") is None


def test_json_file_store_round_trip(tmp_path):
    path = tmp_path / "store.json"
    store = JsonFileKeyValueStore(path)
    store.set("training_data_1", {"approved": True})
    reopened = JsonFileKeyValueStore(path)
    assert reopened.get("training_data_1") == {"approved": True}
    assert reopened.get_by_prefix("training_") == [{"approved": True}]


def test_corrupt_json_file_raises_store_unavailable(tmp_path):
    path = tmp_path / "store.json"
    path.write_text("{not json")
    with pytest.raises(StoreUnavailable):
        JsonFileKeyValueStore(path).get("anything")
