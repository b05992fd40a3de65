import json
import threading

import pytest

from gastos.exceptions import PersistenceError, PersistenceWriteError, ValidationError
from gastos.models import ExpenseDraft
from gastos.storage import JSONFileStorage, MemoryStorage
from gastos.store import ExpenseStore


class FailingStorage(MemoryStorage):
    def __init__(self, fail_get=False, fail_set=False):
        super().__init__()
        self.fail_get = fail_get
        self.fail_set = fail_set

    def get(self, key):
        if self.fail_get:
            raise PersistenceError("disk gone")
        return super().get(key)

    def set(self, key, value):
        if self.fail_set:
            raise OSError("read-only")
        super().set(key, value)


def test_missing_blob_loads_empty(store):
    assert store.list() == []


def test_add_assigns_clock_id_and_persists(store, storage, payload):
    records = store.add(payload)

    assert len(records) == 1
    assert records[0].id == 1_709_251_200_000
    assert records[0].category == "comida"
    saved = json.loads(storage.get("expenses"))
    assert saved[0]["id"] == records[0].id
    assert saved[0]["amount"] == "50"


def test_add_keeps_insertion_order(store, payload):
    store.add(payload)
    store.add({**payload, "date": "2024-02-01", "amount": "5"})

    assert [r.date for r in store.list()] == ["2024-03-01", "2024-02-01"]


def test_ids_stay_unique_when_clock_repeats(storage, payload):
    store = ExpenseStore(storage, clock=lambda: 1000)
    store.add(payload)
    store.add(payload)

    assert [r.id for r in store.list()] == [1000, 1001]


@pytest.mark.parametrize("field", ["date", "amount", "type", "category", "payment_method"])
def test_missing_required_field_is_rejected(store, payload, field):
    store.add(payload)
    incomplete = {**payload, field: ""}

    with pytest.raises(ValidationError):
        store.add(incomplete)

    assert len(store.list()) == 1


def test_missing_category_raises_and_leaves_collection(store, payload):
    incomplete = dict(payload)
    del incomplete["category"]

    with pytest.raises(ValidationError):
        store.add(incomplete)

    assert store.list() == []


def test_description_is_optional(store, payload):
    del payload["description"]
    assert store.add(payload)[0].description == ""


def test_category_must_match_type(store, payload):
    with pytest.raises(ValidationError):
        store.add({**payload, "type": "Belyou", "category": "comida"})
    store.add({**payload, "type": "Belyou", "category": "insumos"})


def test_unknown_payment_method_is_rejected(store, payload):
    with pytest.raises(ValidationError):
        store.add({**payload, "payment_method": "cheque"})


def test_remove_by_id(store, payload):
    first = store.add(payload)[0]
    store.add({**payload, "amount": "30"})

    remaining = store.remove(first.id)

    assert [r.amount for r in remaining] == ["30"]
    assert store.get(first.id) is None


def test_remove_unknown_id_is_noop(store, storage, payload):
    store.add(payload)
    before = store.list()
    blob = storage.get("expenses")

    assert store.remove(42) == before
    assert storage.get("expenses") == blob


def test_load_restores_persisted_list(storage, clock, payload):
    store = ExpenseStore(storage, clock=clock)
    store.add(payload)
    store.add({**payload, "type": "Sherman Morgan", "category": "publicidad", "amount": "7.25"})

    reloaded = ExpenseStore(storage).list()

    assert reloaded == store.list()


def test_persist_then_load_round_trip(store, payload):
    records = store.add(payload)
    records = store.add({**payload, "amount": "1.10"})
    store.persist(records)

    assert store.load() == records


def test_corrupted_blob_falls_back_to_empty(caplog):
    storage = MemoryStorage({"expenses": "{not json"})

    store = ExpenseStore(storage)

    assert store.list() == []
    assert "starting empty" in caplog.text


def test_non_list_blob_falls_back_to_empty():
    storage = MemoryStorage({"expenses": json.dumps({"id": 1})})
    assert ExpenseStore(storage).list() == []


def test_read_failure_falls_back_to_empty():
    assert ExpenseStore(FailingStorage(fail_get=True)).list() == []


def test_malformed_entries_are_skipped():
    good = {
        "id": 1,
        "date": "2024-03-01",
        "amount": "5",
        "type": "Personal",
        "category": "comida",
        "payment_method": "cash",
    }
    storage = MemoryStorage({"expenses": json.dumps([good, {"amount": "3"}, good])})

    assert [r.id for r in ExpenseStore(storage).list()] == [1]


def test_write_failure_is_surfaced_and_change_kept(payload):
    storage = FailingStorage(fail_set=True)
    store = ExpenseStore(storage)

    with pytest.raises(PersistenceWriteError):
        store.add(payload)

    assert len(store.list()) == 1
    storage.fail_set = False
    store.save()
    assert len(json.loads(storage.get("expenses"))) == 1


def test_explicit_save_mode_only_writes_on_save(storage, payload):
    store = ExpenseStore(storage, autosave=False)
    store.add(payload)
    assert storage.get("expenses") is None

    store.save()

    assert len(json.loads(storage.get("expenses"))) == 1


def test_subscribers_are_notified(store, payload):
    seen = []
    unsubscribe = store.subscribe(seen.append)

    store.add(payload)
    store.remove(999)
    unsubscribe()
    store.add(payload)

    assert len(seen) == 1
    assert len(seen[0]) == 1


def test_json_file_storage_round_trip(tmp_path, clock, payload):
    storage = JSONFileStorage(tmp_path / "data")
    store = ExpenseStore(storage, clock=clock)
    store.add(payload)

    assert (tmp_path / "data" / "expenses.json").exists()
    assert not (tmp_path / "data" / "expenses.json.tmp").exists()
    assert ExpenseStore(JSONFileStorage(tmp_path / "data")).list() == store.list()


def test_json_file_storage_rejects_path_like_keys(tmp_path):
    storage = JSONFileStorage(tmp_path)
    with pytest.raises(ValueError):
        storage.get("../escape")


def test_draft_payload_is_accepted(store, payload):
    draft = ExpenseDraft()
    for name, value in payload.items():
        draft = draft.with_field(name, value)

    records = store.add(draft.to_payload())

    assert records[0].category == "comida"
    assert records[0].description == "súper"


def test_draft_type_change_blocks_creation_until_category_chosen(store, payload):
    draft = ExpenseDraft()
    for name, value in payload.items():
        draft = draft.with_field(name, value)
    draft = draft.with_field("type", "Men Shop")

    with pytest.raises(ValidationError):
        store.add(draft.to_payload())
    assert store.list() == []

    store.add(draft.with_field("category", "envios").to_payload())
    assert len(store.list()) == 1


def test_concurrent_adds_keep_every_record(store, storage, payload):
    workers = 20
    start = threading.Barrier(workers)
    errors = []

    def worker(index):
        start.wait()
        try:
            store.add({**payload, "amount": str(index)})
        except Exception as exc:  # pragma: no cover - surfaced by the assertion below
            errors.append(exc)

    threads = [threading.Thread(target=worker, args=(i,)) for i in range(workers)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert errors == []
    records = store.list()
    assert len(records) == workers
    assert len({record.id for record in records}) == workers
    saved = json.loads(storage.get("expenses"))
    assert [entry["id"] for entry in saved] == [record.id for record in records]
    assert sorted(int(entry["amount"]) for entry in saved) == list(range(workers))
