"""Simple entrypoint to score a sample listing against a sample query."""

from __future__ import annotations

import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from ranking.engine.models import ListingProfile, QueryContext
from ranking.nodes.feature_scorer import run as run_scorer


def main():
    listing = ListingProfile.from_document(
        {
            "id": "demo-1",
            "price": 180000,
            "bedrooms": 2,
            "district": "VIII",
            "floor": 3,
            "elevator": True,
            "amenities": ["WiFi", "Washing Machine", "Balcony"],
            "lifestyle_tags": ["quiet", "workspace"],
            "pet_policy": "allowed",
            "commute_cache": {"ELTE": {"transit": {"minutes": 18}}},
        }
    )
    query = QueryContext(
        price_max=200000,
        bedrooms=2,
        districts=["VIII", "IX"],
        amenity_priorities={"essential": ["washing_machine"]},
        lifestyle_tags=["quiet"],
        work_from_home=True,
        has_pets=True,
        commute_destinations=["ELTE"],
        max_commute_minutes=30,
    )

    result = run_scorer([listing], query)[0]
    print(f"Total: {result['totalScore']} - {result['matchReason']}")
    print("Breakdown:", result["categoryBreakdown"])
    print("Pros:", result["pros"])
    print("Cons:", result["cons"])


if __name__ == "__main__":
    main()
