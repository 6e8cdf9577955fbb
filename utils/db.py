"""MongoDB connection helper."""

from __future__ import annotations

from functools import lru_cache
from typing import Any

from pymongo import MongoClient

from utils.config import get_config


@lru_cache(maxsize=1)
def _get_client() -> MongoClient:
    cfg = get_config().mongo
    return MongoClient(cfg.uri, serverSelectionTimeoutMS=cfg.timeout_ms)


def get_db() -> Any:
    """Return Mongo database handle."""
    return _get_client()[get_config().mongo.database]


__all__ = ["get_db"]
