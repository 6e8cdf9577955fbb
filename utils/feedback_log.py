"""Mongo-backed audit log for ranking feedback events."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Iterator, List, Optional

from ranking.engine.models import FeedbackEvent
from utils.config import get_config


class FeedbackLog:
    """Append-only store of feedback records (one document per event)."""

    def __init__(self, collection: Any = None):
        if collection is None:
            from utils.db import get_db

            collection = get_db()[get_config().mongo.feedback_collection]
        self.collection = collection

    def insert(self, event: FeedbackEvent) -> str:
        """Persist an event; driver errors propagate to the caller."""
        result = self.collection.insert_one(event.to_record())
        return str(result.inserted_id)

    def iter_records(self, lookback_days: Optional[int] = None) -> Iterator[Dict[str, Any]]:
        query: Dict[str, Any] = {}
        if lookback_days:
            since = datetime.now(timezone.utc) - timedelta(days=max(lookback_days, 1))
            query["created_at"] = {"$gte": since}
        for doc in self.collection.find(query).sort("created_at", 1):
            doc.pop("_id", None)
            yield doc


class InMemoryFeedbackLog:
    def __init__(self):
        self.records: List[Dict[str, Any]] = []

    def insert(self, event: FeedbackEvent) -> str:
        self.records.append(event.to_record())
        return str(len(self.records))

    def iter_records(self, lookback_days: Optional[int] = None) -> Iterator[Dict[str, Any]]:
        since = None
        if lookback_days:
            since = datetime.now(timezone.utc) - timedelta(days=max(lookback_days, 1))
        for row in self.records:
            if since is None or row["created_at"] >= since:
                yield dict(row)


__all__ = ["FeedbackLog", "InMemoryFeedbackLog"]
