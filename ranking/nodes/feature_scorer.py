"""Node wrapper for the feature scorer."""

from __future__ import annotations

from typing import Any, Dict, Iterable, List, Optional

from ranking.engine.feature_scorer import rank_listings
from ranking.engine.models import ListingProfile, QueryContext


def run(listings: Iterable[ListingProfile], query: QueryContext, top_k: Optional[int] = None) -> List[Dict[str, Any]]:
    return [r.to_dict() for r in rank_listings(listings, query, top_k=top_k)]


__all__ = ["run"]
