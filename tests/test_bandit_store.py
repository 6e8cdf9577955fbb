"""Tests for the optimistic-concurrency bandit state stores."""

import copy
import threading

import pytest
from pymongo.errors import DuplicateKeyError

from ranking.engine.models import DEFAULT_WEIGHTS, BanditState, RewardCategory
from utils.bandit_store import BanditStateConflict, InMemoryBanditStore, MongoBanditStore, _OptimisticStore

TARGET = RewardCategory.ENGAGEMENT


def _bump(state: BanditState) -> BanditState:
    trials = dict(state.trials)
    trials[TARGET] = trials.get(TARGET, 0.0) + 1
    return BanditState(trials=trials, successes=dict(state.successes), weights=dict(state.weights), version=state.version)


class FakeCollection:
    """Just enough of a pymongo collection for single-document compare-and-set."""

    def __init__(self, docs=None):
        self.docs = {d["_id"]: dict(d) for d in docs or []}
        self.lock = threading.Lock()

    @staticmethod
    def _matches(doc, query):
        for key, expected in query.items():
            if key == "$or":
                if not any(FakeCollection._matches(doc, q) for q in expected):
                    return False
            elif isinstance(expected, dict) and "$exists" in expected:
                if (key in doc) != expected["$exists"]:
                    return False
            elif doc.get(key) != expected:
                return False
        return True

    def find_one(self, query):
        with self.lock:
            for doc in self.docs.values():
                if self._matches(doc, query):
                    return copy.deepcopy(doc)
        return None

    def find_one_and_update(self, query, update, upsert=False, return_document=None):
        with self.lock:
            for doc in self.docs.values():
                if self._matches(doc, query):
                    doc.update(copy.deepcopy(update["$set"]))
                    return copy.deepcopy(doc)
            if not upsert:
                return None
            if query["_id"] in self.docs:
                raise DuplicateKeyError("E11000 duplicate key error")
            doc = {"_id": query["_id"], **copy.deepcopy(update["$set"])}
            self.docs[doc["_id"]] = doc
            return copy.deepcopy(doc)


class TestInMemoryStore:
    def test_load_returns_defaults(self):
        state = InMemoryBanditStore().load()
        assert state.version == 0
        assert state.weights == DEFAULT_WEIGHTS

    def test_update_increments_version(self):
        store = InMemoryBanditStore()
        first = store.update(_bump)
        second = store.update(_bump)
        assert (first.version, second.version) == (1, 2)
        assert store.load().trials[TARGET] == 2

    def test_load_returns_a_copy(self):
        store = InMemoryBanditStore()
        state = store.load()
        state.trials[TARGET] = 99
        assert store.load().trials == {}

    def test_written_state_is_not_shared_with_caller(self):
        store = InMemoryBanditStore()
        written = BanditState(trials={TARGET: 1.0})
        result = store.update(lambda s: written)
        written.trials[TARGET] = 50.0
        result.trials[TARGET] = 60.0
        assert store.load().trials[TARGET] == 1.0
        assert written.version == 0

    def test_concurrent_updates_are_not_lost(self):
        store = InMemoryBanditStore(max_attempts=1000, backoff_min=0, backoff_max=0)
        per_thread, threads = 25, 8

        def worker():
            for _ in range(per_thread):
                store.update(_bump)

        pool = [threading.Thread(target=worker) for _ in range(threads)]
        for t in pool:
            t.start()
        for t in pool:
            t.join()

        state = store.load()
        assert state.trials[TARGET] == per_thread * threads
        assert state.version == per_thread * threads


class _AlwaysStale(InMemoryBanditStore):
    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        self.attempts = 0

    def _compare_and_set(self, expected_version, state):
        self.attempts += 1
        raise BanditStateConflict("stale")


def test_incomplete_store_cannot_be_built():
    class LoadOnly(_OptimisticStore):
        def load(self):
            return BanditState()

    with pytest.raises(TypeError):
        LoadOnly()


def test_conflict_is_reraised_after_max_attempts():
    store = _AlwaysStale(max_attempts=3, backoff_min=0, backoff_max=0)
    with pytest.raises(BanditStateConflict):
        store.update(_bump)
    assert store.attempts == 3


def test_interleaved_writer_forces_retry():
    store = InMemoryBanditStore(max_attempts=3, backoff_min=0, backoff_max=0)
    calls = []

    def racing(state):
        calls.append(state.version)
        if len(calls) == 1:
            # another writer lands between this read and the write
            store.update(_bump)
        return _bump(state)

    result = store.update(racing)
    assert calls == [0, 1]
    assert result.version == 2
    assert store.load().trials[TARGET] == 2


class TestMongoStore:
    def test_missing_row_reads_as_prior_without_writing(self):
        collection = FakeCollection()
        store = MongoBanditStore(collection=collection, state_id=1)
        state = store.load()
        assert state.version == 0
        assert state.weights == DEFAULT_WEIGHTS
        assert collection.docs == {}

    def test_first_update_creates_row(self):
        collection = FakeCollection()
        store = MongoBanditStore(collection=collection, state_id=1)
        assert store.update(_bump).version == 1
        assert collection.docs[1]["version"] == 1

    def test_concurrent_row_creation_conflicts(self):
        collection = FakeCollection([{"_id": 1, "version": 2, "trials": {}, "successes": {}, "weights": {}}])
        store = MongoBanditStore(collection=collection, state_id=1)
        with pytest.raises(BanditStateConflict):
            store._compare_and_set(0, BanditState())
        assert collection.docs[1]["version"] == 2

    def test_update_writes_document_and_version(self):
        collection = FakeCollection()
        store = MongoBanditStore(collection=collection, state_id=1)
        state = store.update(_bump)
        assert state.version == 1
        doc = collection.docs[1]
        assert doc["version"] == 1
        assert doc["trials"][TARGET.value] == 1

    def test_legacy_row_without_version(self):
        collection = FakeCollection([{"_id": 1, "weights": {}, "trials": {}, "successes": {}}])
        store = MongoBanditStore(collection=collection, state_id=1)
        assert store.update(_bump).version == 1

    def test_stale_version_conflicts(self):
        collection = FakeCollection([{"_id": 1, "version": 4, "trials": {}, "successes": {}, "weights": {}}])
        store = MongoBanditStore(collection=collection, state_id=1)
        with pytest.raises(BanditStateConflict):
            store._compare_and_set(3, BanditState())
        assert collection.docs[1]["version"] == 4

    def test_round_trips_weights(self):
        collection = FakeCollection()
        store = MongoBanditStore(collection=collection, state_id=1)
        weights = {c: round(1 / 6, 4) for c in RewardCategory}
        store.update(lambda s: BanditState(weights=weights, version=s.version))
        assert store.load().weights == weights
