"""Cached weight snapshot read by ranking consumers."""

from __future__ import annotations

import logging
import threading
from typing import Any, Dict, Optional

from ranking.engine.models import DEFAULT_WEIGHTS, RewardCategory

logger = logging.getLogger(__name__)


class WeightCache:
    """Holds the last weight vector read from the bandit store until invalidated."""

    def __init__(self, store: Any):
        self.store = store
        self._weights: Optional[Dict[RewardCategory, float]] = None
        self._generation = 0
        self._lock = threading.Lock()

    def get_weights(self) -> Dict[RewardCategory, float]:
        with self._lock:
            if self._weights is not None:
                return dict(self._weights)
            generation = self._generation
        try:
            weights = {**DEFAULT_WEIGHTS, **self.store.load().weights}
        except Exception as exc:
            # Ranking must keep working when the state row is unreachable.
            logger.warning("Ranking weights fallback to defaults: %s", exc)
            return dict(DEFAULT_WEIGHTS)
        with self._lock:
            # An invalidate() during the load means these weights may be stale.
            if self._generation == generation:
                self._weights = weights
        return dict(weights)

    def invalidate(self) -> None:
        with self._lock:
            self._weights = None
            self._generation += 1


__all__ = ["WeightCache"]
