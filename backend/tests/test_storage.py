"""
Unit tests for the record store, scan history, fraud reports and login.
Run: python -m pytest backend/tests/test_storage.py -v
"""
import json

import pytest


def _scan(**overrides):
    d = {
        "produce_label": "banana",
        "produce_confidence": 0.97,
        "model_organic_prediction": "ORGANIC",
        "model_organic_confidence": 0.92,
        "detected_plu": "94011",
        "plu_meaning": "Banana, yellow (organic)",
        "verdict": {"verdict": "ORGANIC", "match": "PERFECT_MATCH"},
        "automatic_advice": "**Nutrition:** Potassium.\n**Cleaning Tips:** Peel before eating.",
    }
    d.update(overrides)
    return d


@pytest.fixture(params=["memory", "json"])
def store(request, tmp_path):
    from core.record_store import InMemoryRecordStore, JsonFileRecordStore
    if request.param == "memory":
        return InMemoryRecordStore()
    return JsonFileRecordStore(tmp_path / "records.json")


def test_store_get_set_append(store):
    """append adds to a scope, set replaces it, scopes are independent."""
    assert store.get("history") == []
    store.append("history", {"id": "a"})
    store.append("history", {"id": "b"})
    store.append("fraud_reports", {"id": "x"})
    assert [r["id"] for r in store.get("history")] == ["a", "b"]
    store.set("history", [{"id": "c"}])
    assert store.get("history") == [{"id": "c"}]
    assert store.get("fraud_reports") == [{"id": "x"}]


def test_memory_store_returns_copies():
    from core.record_store import InMemoryRecordStore
    s = InMemoryRecordStore()
    s.append("history", {"id": "a"})
    s.get("history")[0]["id"] = "mutated"
    assert s.get("history") == [{"id": "a"}]


def test_json_store_persists_across_instances(tmp_path):
    from core.record_store import JsonFileRecordStore
    path = tmp_path / "nested" / "records.json"
    JsonFileRecordStore(path).append("history", {"id": "a"})
    assert JsonFileRecordStore(path).get("history") == [{"id": "a"}]
    assert json.loads(path.read_text())["history"] == [{"id": "a"}]


def test_json_store_corrupt_file_reads_empty(tmp_path):
    from core.record_store import JsonFileRecordStore
    path = tmp_path / "records.json"
    path.write_text("{not json", encoding="utf-8")
    assert JsonFileRecordStore(path).get("history") == []


def test_json_store_write_refuses_corrupt_file(tmp_path):
    """A truncated file is left untouched on write; existing rows are never replaced by the new one."""
    from core.errors import RecordStoreError
    from core.record_store import JsonFileRecordStore
    path = tmp_path / "records.json"
    rows = [{"id": f"scan-{i}"} for i in range(5)]
    full = json.dumps({"history": rows})
    path.write_text(full[:-10], encoding="utf-8")
    store = JsonFileRecordStore(path)
    with pytest.raises(RecordStoreError):
        store.append("history", {"id": "new"})
    with pytest.raises(RecordStoreError):
        store.set("fraud_reports", [])
    assert path.read_text(encoding="utf-8") == full[:-10]


def test_json_store_write_refuses_non_object_file(tmp_path):
    from core.errors import RecordStoreError
    from core.record_store import JsonFileRecordStore
    path = tmp_path / "records.json"
    path.write_text("[1, 2, 3]", encoding="utf-8")
    with pytest.raises(RecordStoreError):
        JsonFileRecordStore(path).append("history", {"id": "new"})
    assert json.loads(path.read_text(encoding="utf-8")) == [1, 2, 3]


def test_find_or_append_is_keyed(store):
    """Second insert with the same key returns the stored record and adds nothing."""
    first, created = store.find_or_append("users", {"id": "u1", "username": "a@b.c"}, key="username")
    assert created is True
    again, created_again = store.find_or_append("users", {"id": "u2", "username": "a@b.c"}, key="username")
    assert created_again is False
    assert again["id"] == "u1"
    assert [u["id"] for u in store.get("users")] == ["u1"]


def test_save_scan_embeds_verdict_and_splits_advice(store):
    from core.history_storage import save_scan, get_history
    record = save_scan(store, "user-1", _scan())
    assert record["id"] and record["created_at"]
    assert record["verdict"]["match"] == "PERFECT_MATCH"
    assert record["nutrition_facts"] == "Potassium."
    assert record["cleaning_tips"] == "Peel before eating."
    assert get_history(store, "user-1") == [record]


def test_save_scan_accepts_camel_case(store):
    """Older clients send produceLabel / organicLabel / detectedPlu."""
    from core.history_storage import save_scan
    record = save_scan(store, "user-1", {
        "produceLabel": "apple", "produceConfidence": 0.9,
        "organicLabel": "Non-Organic", "organicConfidence": 0.0, "detectedPlu": "4131",
    })
    assert record["produce_label"] == "apple"
    assert record["model_organic_prediction"] == "Non-Organic"
    assert record["model_organic_confidence"] == 0.0
    assert record["detected_plu"] == "4131"


def test_save_scan_requires_user_and_label(store):
    from core.errors import ValidationError
    from core.history_storage import save_scan
    with pytest.raises(ValidationError):
        save_scan(store, None, _scan())
    with pytest.raises(ValidationError):
        save_scan(store, "user-1", _scan(produce_label=""))


def test_history_is_per_user_newest_first(store):
    from core.history_storage import get_history, HISTORY_SCOPE
    store.append(HISTORY_SCOPE, {"id": "old", "user_id": "u1", "created_at": "2025-01-01T00:00:00+00:00"})
    store.append(HISTORY_SCOPE, {"id": "new", "user_id": "u1", "created_at": "2025-06-01T00:00:00+00:00"})
    store.append(HISTORY_SCOPE, {"id": "other", "user_id": "u2", "created_at": "2025-03-01T00:00:00+00:00"})
    assert [r["id"] for r in get_history(store, "u1")] == ["new", "old"]
    assert [r["id"] for r in get_history(store, "u2")] == ["other"]


def test_fraud_report_validation_and_listing(store):
    from core.errors import ValidationError
    from core.history_storage import save_fraud_report, list_fraud_reports
    report = save_fraud_report(store, {
        "produce_label": "apple", "organic_label": "Organic",
        "vendor_name": " Corner Market ", "location": "Main St", "email": "a@b.c",
    })
    assert report["vendor_name"] == "Corner Market"
    assert list_fraud_reports(store)[0]["id"] == report["id"]
    with pytest.raises(ValidationError) as exc:
        save_fraud_report(store, {"produce_label": "apple", "organic_label": "Organic", "vendor_name": "X"})
    assert exc.value.field == "location"


def test_login_registers_then_verifies(store):
    from core.errors import AuthenticationError
    from core.user_storage import login_or_register
    first = login_or_register(store, "Grower@Example.com", "secret")
    again = login_or_register(store, "grower@example.com", "secret")
    assert first["user_id"] == again["user_id"]
    assert first["email"] == "grower@example.com"
    with pytest.raises(AuthenticationError):
        login_or_register(store, "grower@example.com", "wrong")
    stored = store.get("users")[0]
    assert "secret" not in json.dumps(stored)


@pytest.mark.parametrize("email,password", [("", "pw"), ("a@b.c", ""), (None, None)])
def test_login_blank_credentials_rejected(store, email, password):
    from core.errors import AuthenticationError
    from core.user_storage import login_or_register
    with pytest.raises(AuthenticationError):
        login_or_register(store, email, password)


def test_concurrent_first_logins_create_one_account(store):
    """Racing registrations for one email leave a single user record."""
    from concurrent.futures import ThreadPoolExecutor
    from core.user_storage import login_or_register
    with ThreadPoolExecutor(max_workers=8) as pool:
        results = list(pool.map(lambda _: login_or_register(store, "race@example.com", "pw"), range(8)))
    assert len(store.get("users")) == 1
    assert len({r["user_id"] for r in results}) == 1
