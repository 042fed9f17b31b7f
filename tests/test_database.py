import json

import pytest

from coinping import database as database_module
from coinping.constants import COIN_DATABASE_KEY
from coinping.database import CoinDatabase, signature_from_record
from coinping.models import CoinSignature, FrequencyBand
from tests.conftest import MemoryStore


def test_empty_store_writes_defaults(store) -> None:
    db = CoinDatabase(store)
    signatures = db.load()
    assert [s.name for s in signatures] == ["Sovereign", "Krugerrand"]
    assert [len(s.components) for s in signatures] == [2, 3]
    assert all(b.tolerance_percent == 5.0 for s in signatures for b in s.components)
    stored = json.loads(store.data[COIN_DATABASE_KEY])
    assert stored[0]["frequencies"][0] == {"value": 5500.0, "tolerancePercent": 5.0}
    assert store.writes == 1


def test_existing_records_are_loaded_without_rewrite() -> None:
    records = [{"name": "Eagle", "frequencies": [{"value": 7000, "tolerancePercent": 2}]}]
    store = MemoryStore({COIN_DATABASE_KEY: json.dumps(records)})
    db = CoinDatabase(store)
    db.load()
    assert db.snapshot() == (CoinSignature("Eagle", (FrequencyBand(7000.0, 2.0),)),)
    assert store.writes == 0


def test_corrupt_document_falls_back_to_defaults() -> None:
    store = MemoryStore({COIN_DATABASE_KEY: "{not json"})
    db = CoinDatabase(store)
    assert len(db.load()) == 2


def test_record_without_frequencies_has_no_bands() -> None:
    sig = signature_from_record({"name": "Broken"})
    assert sig == CoinSignature("Broken", ())


def test_every_mutation_saves_full_document(store) -> None:
    db = CoinDatabase(store)
    db.load()
    writes = store.writes

    db.add_coin("Eagle")
    db.add_component(2, 7000.0, 3.0)
    db.add_component(2, 14000.0, 3.0)
    db.delete_component(2, 0)
    db.delete_coin(0)
    assert store.writes == writes + 5

    stored = json.loads(store.data[COIN_DATABASE_KEY])
    assert [r["name"] for r in stored] == ["Krugerrand", "Eagle"]
    assert stored[1]["frequencies"] == [{"value": 14000.0, "tolerancePercent": 3.0}]


def test_snapshot_is_not_affected_by_later_mutation(store) -> None:
    db = CoinDatabase(store)
    db.load()
    before = db.snapshot()
    db.add_component(0, 9000.0, 1.0)
    db.delete_coin(1)
    assert len(before) == 2
    assert len(before[0].components) == 2
    assert len(db.snapshot()[0].components) == 3


def test_duplicate_names_are_allowed(store) -> None:
    db = CoinDatabase(store)
    db.load()
    db.add_coin("Sovereign")
    assert [s.name for s in db].count("Sovereign") == 2


def test_negative_tolerance_is_rejected(store) -> None:
    db = CoinDatabase(store)
    db.load()
    with pytest.raises(ValueError):
        db.add_component(0, 5000.0, -1.0)
    with pytest.raises(ValueError):
        db.add_coin("Bad", [FrequencyBand(5000.0, -2.0)])


def test_bad_indexes_raise(store) -> None:
    db = CoinDatabase(store)
    db.load()
    with pytest.raises(IndexError):
        db.delete_coin(5)
    with pytest.raises(IndexError):
        db.add_component(-1, 5000.0, 1.0)
    with pytest.raises(IndexError):
        db.delete_component(0, 9)


def test_export_and_import_round_trip(store, tmp_path) -> None:
    db = CoinDatabase(store)
    db.load()
    db.add_coin("Eagle", [FrequencyBand(7000.0, 2.0)])
    path = db.export_json(tmp_path / "coins.json")

    other = CoinDatabase(MemoryStore())
    other.import_json(path)
    assert other.snapshot() == db.snapshot()
    assert json.loads(other.store.data[COIN_DATABASE_KEY])[2]["name"] == "Eagle"


def test_export_defaults_to_user_data_dir(store, tmp_path, monkeypatch) -> None:
    monkeypatch.setattr(database_module, "user_data_dir", lambda *_: str(tmp_path / "data"))
    db = CoinDatabase(store)
    db.load()
    path = db.export_json()
    assert path == tmp_path / "data" / "coins.json"
    assert len(json.loads(path.read_text())) == 2


def test_emptied_database_stays_empty(store) -> None:
    db = CoinDatabase(store)
    db.load()
    db.delete_coin(1)
    db.delete_coin(0)
    assert json.loads(store.data[COIN_DATABASE_KEY]) == []
    writes = store.writes

    reloaded = CoinDatabase(store)
    assert reloaded.load() == ()
    assert store.writes == writes


@pytest.mark.parametrize("document", ["42", '{"a": 1}', '"coins"', "[1, 2]"])
def test_non_list_document_falls_back_to_defaults(document) -> None:
    store = MemoryStore({COIN_DATABASE_KEY: document})
    db = CoinDatabase(store)
    assert [s.name for s in db.load()] == ["Sovereign", "Krugerrand"]
    assert len(json.loads(store.data[COIN_DATABASE_KEY])) == 2


def test_import_rejects_non_list_document(store, tmp_path) -> None:
    db = CoinDatabase(store)
    db.load()
    before = db.snapshot()
    path = tmp_path / "coins.json"
    path.write_text('{"name": "Eagle"}', encoding="utf-8")
    with pytest.raises(ValueError):
        db.import_json(path)
    assert db.snapshot() == before
