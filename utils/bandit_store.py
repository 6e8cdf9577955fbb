"""Durable singleton store for the global bandit state.

Every feedback event performs a read-modify-write on the same row, so writes
are compare-and-set on a ``version`` counter and retried with backoff when a
concurrent writer got there first.
"""

from __future__ import annotations

import logging
import threading
from abc import ABC, abstractmethod
from typing import Any, Callable, Optional

from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError
from tenacity import Retrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from ranking.engine.models import BanditState
from utils.config import get_config

logger = logging.getLogger(__name__)

Mutation = Callable[[BanditState], BanditState]


class BanditStateConflict(Exception):
    """Raised when the state row changed between read and write."""


class _OptimisticStore(ABC):
    def __init__(self, max_attempts: Optional[int] = None, backoff_min: Optional[float] = None, backoff_max: Optional[float] = None):
        cfg = get_config().bandit
        self.max_attempts = max_attempts or cfg.max_attempts
        self.backoff_min = cfg.backoff_min_s if backoff_min is None else backoff_min
        self.backoff_max = cfg.backoff_max_s if backoff_max is None else backoff_max

    @abstractmethod
    def load(self) -> BanditState:
        ...

    @abstractmethod
    def _compare_and_set(self, expected_version: int, state: BanditState) -> BanditState:
        ...

    def _attempt(self, mutate: Mutation) -> BanditState:
        current = self.load()
        updated = mutate(current)
        return self._compare_and_set(current.version, updated)

    def update(self, mutate: Mutation) -> BanditState:
        """Apply ``mutate`` to the latest state and persist it atomically."""
        retrying = Retrying(
            stop=stop_after_attempt(self.max_attempts),
            wait=wait_exponential(multiplier=self.backoff_min, min=self.backoff_min, max=self.backoff_max),
            retry=retry_if_exception_type(BanditStateConflict),
            before_sleep=lambda retry_state: logger.warning(
                "Bandit state conflict, retry attempt %s", retry_state.attempt_number
            ),
            reraise=True,
        )
        return retrying(self._attempt, mutate)


class MongoBanditStore(_OptimisticStore):
    """Bandit state kept in a single Mongo document keyed by a fixed id."""

    def __init__(self, collection: Any = None, state_id: Optional[int] = None, **kwargs):
        super().__init__(**kwargs)
        cfg = get_config()
        if collection is None:
            from utils.db import get_db

            collection = get_db()[cfg.mongo.bandit_collection]
        self.collection = collection
        self.state_id = cfg.bandit.state_id if state_id is None else state_id

    def load(self) -> BanditState:
        # A missing row reads as the prior; the first write creates it.
        return BanditState.from_document(self.collection.find_one({"_id": self.state_id}))

    def _compare_and_set(self, expected_version: int, state: BanditState) -> BanditState:
        query: dict = {"_id": self.state_id, "version": expected_version}
        if expected_version == 0:
            query = {"_id": self.state_id, "$or": [{"version": 0}, {"version": {"$exists": False}}]}
        try:
            doc = self.collection.find_one_and_update(
                query,
                {"$set": {**state.to_document(), "version": expected_version + 1}},
                upsert=expected_version == 0,
                return_document=ReturnDocument.AFTER,
            )
        except DuplicateKeyError as exc:
            raise BanditStateConflict(f"bandit state {self.state_id} was created concurrently") from exc
        if doc is None:
            raise BanditStateConflict(f"bandit state {self.state_id} changed since version {expected_version}")
        return BanditState.from_document(doc)


def _copy(state: BanditState) -> BanditState:
    return BanditState(
        trials=dict(state.trials),
        successes=dict(state.successes),
        weights=dict(state.weights),
        last_updated=state.last_updated,
        version=state.version,
    )


class InMemoryBanditStore(_OptimisticStore):
    """Process-local store with the same compare-and-set semantics."""

    def __init__(self, state: Optional[BanditState] = None, **kwargs):
        super().__init__(**kwargs)
        self._state = state or BanditState()
        self._lock = threading.Lock()

    def load(self) -> BanditState:
        with self._lock:
            return _copy(self._state)

    def _compare_and_set(self, expected_version: int, state: BanditState) -> BanditState:
        with self._lock:
            if self._state.version != expected_version:
                raise BanditStateConflict(f"bandit state changed since version {expected_version}")
            stored = _copy(state)
            stored.version = expected_version + 1
            self._state = stored
            return _copy(stored)


__all__ = ["BanditStateConflict", "InMemoryBanditStore", "MongoBanditStore"]
