"""
Tests for the SQLAlchemy document store and DatabaseService readiness.
"""

from __future__ import annotations

import pytest

from backend_booty.core.exceptions import DatabaseNotReady, RecordNotFound
from backend_booty.database import DatabaseService
from backend_booty.database.store import deep_merge


def test_collection_before_initialize_raises(tmp_path):
    db = DatabaseService(f"sqlite:///{tmp_path / 'x.db'}")
    assert db.is_ready() is False
    with pytest.raises(DatabaseNotReady):
        db.collection("hidden-treasures")


def test_initialize_failure_returns_false(tmp_path):
    db = DatabaseService(f"sqlite:///{tmp_path / 'missing' / 'dir' / 'x.db'}")
    assert db.initialize() is False
    assert db.is_ready() is False


def test_upsert_created_then_merged(database):
    store = database.collection("things")
    assert store.upsert("k1", {"a": 1, "meta": {"x": 1}}) is True
    assert store.upsert("k1", {"b": 2, "meta": {"y": 2}}) is False
    assert store.get("k1") == {"a": 1, "b": 2, "meta": {"x": 1, "y": 2}}


def test_upsert_merge_fields_limits_overwrite(database):
    store = database.collection("things")
    store.upsert("k1", {"status": "active", "amount": 1})
    store.upsert("k1", {"status": "reset", "amount": 2}, merge_fields=["amount"])
    assert store.get("k1") == {"status": "active", "amount": 2}


def test_collections_are_isolated(database):
    database.collection("a").upsert("k", {"v": 1})
    assert database.collection("b").get("k") is None


def test_query_filters_and_ordering(database):
    store = database.collection("things")
    store.upsert("k1", {"wallet": "W1", "x": 5, "found": False, "at": "2024-01-01T00:00:00"})
    store.upsert("k2", {"wallet": "W1", "x": -3, "found": True, "at": "2024-01-03T00:00:00"})
    store.upsert("k3", {"wallet": "W2", "x": 10, "found": False, "at": "2024-01-02T00:00:00"})

    by_wallet = store.query([("wallet", "==", "W1")], order_by="at")
    assert [r["x"] for r in by_wallet] == [-3, 5]

    ascending = store.query(order_by="at", descending=False)
    assert [r["x"] for r in ascending] == [5, 10, -3]

    assert [r["x"] for r in store.query([("found", "==", True)])] == [-3]
    assert sorted(r["x"] for r in store.query([("x", ">=", 5)])) == [5, 10]
    assert [r["x"] for r in store.query([("x", "<", 0)])] == [-3]
    assert len(store.query(limit=2)) == 2


def test_query_rejects_unknown_operator(database):
    store = database.collection("things")
    with pytest.raises(ValueError, match="Unsupported"):
        store.query([("x", "!=", 1)])


def test_update_missing_raises(database):
    with pytest.raises(RecordNotFound):
        database.collection("things").update("nope", {"a": 1})


def test_update_check_aborts_write(database):
    store = database.collection("things")
    store.upsert("k1", {"status": "claimed"})

    def check(current):
        if current["status"] == "claimed":
            raise ValueError("locked")

    with pytest.raises(ValueError, match="locked"):
        store.update("k1", {"status": "active"}, check=check)
    assert store.get("k1") == {"status": "claimed"}

    updated = store.update("k1", {"note": "ok"})
    assert updated == {"status": "claimed", "note": "ok"}


def test_deep_merge_does_not_mutate_inputs():
    base = {"m": {"a": 1}}
    patch = {"m": {"b": 2}, "c": 3}
    merged = deep_merge(base, patch)
    assert merged == {"m": {"a": 1, "b": 2}, "c": 3}
    assert base == {"m": {"a": 1}}
