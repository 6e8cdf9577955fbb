"""Read-only access to listings owned by the listing-management subsystem."""

from __future__ import annotations

from typing import Any, Dict, Iterable, List, Optional

from ranking.engine.models import ListingProfile
from utils.config import get_config


class ListingRepository:
    def __init__(self, collection: Any = None):
        if collection is None:
            from utils.db import get_db

            collection = get_db()[get_config().mongo.listings_collection]
        self.collection = collection

    def get(self, listing_id: str) -> Optional[ListingProfile]:
        doc = self.collection.find_one({"id": str(listing_id)})
        if doc is None:
            return None
        return ListingProfile.from_document(doc)

    def get_many(self, listing_ids: Iterable[str]) -> List[ListingProfile]:
        ids = [str(i) for i in listing_ids]
        docs = self.collection.find({"id": {"$in": ids}})
        return [ListingProfile.from_document(d) for d in docs]


class InMemoryListingRepository:
    def __init__(self, docs: Optional[Iterable[Dict[str, Any]]] = None):
        self.docs: Dict[str, Dict[str, Any]] = {str(d["id"]): d for d in docs or []}

    def get(self, listing_id: str) -> Optional[ListingProfile]:
        doc = self.docs.get(str(listing_id))
        return ListingProfile.from_document(doc) if doc else None

    def get_many(self, listing_ids: Iterable[str]) -> List[ListingProfile]:
        return [p for p in (self.get(i) for i in listing_ids) if p is not None]


__all__ = ["InMemoryListingRepository", "ListingRepository"]
