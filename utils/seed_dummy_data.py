"""Seed MongoDB with dummy rental listings for local development."""

from __future__ import annotations

import random
import sys
import uuid
from pathlib import Path
from typing import Dict, List

try:
    from utils.db import get_db
except ImportError:
    # Allow running as script
    ROOT = Path(__file__).resolve().parent.parent
    if str(ROOT) not in sys.path:
        sys.path.append(str(ROOT))
    from utils.db import get_db

from utils.config import get_config

DISTRICTS = ["V", "VI", "VII", "VIII", "IX", "XI", "XIII"]
AMENITIES = ["Air Conditioning", "Washing Machine", "Dishwasher", "WiFi", "Elevator", "Balcony", "Parking", "Security System"]
LIFESTYLE_TAGS = ["quiet", "social", "workspace", "green", "nightlife", "family"]
DESTINATIONS = ["ELTE", "BME", "Corvinus"]


def make_listing(rng: random.Random) -> Dict:
    amenities = rng.sample(AMENITIES, k=rng.randint(1, len(AMENITIES)))
    return {
        "id": str(uuid.UUID(int=rng.getrandbits(128))),
        "price": rng.randrange(120_000, 400_000, 5_000),
        "bedrooms": rng.randint(0, 4),
        "bathrooms": rng.randint(1, 2),
        "district": rng.choice(DISTRICTS),
        "floor": rng.randint(0, 10),
        "elevator": "Elevator" in amenities,
        "furnished": rng.random() < 0.6,
        "verified_owner": rng.random() < 0.5,
        "media_quality_score": round(rng.random(), 2),
        "completeness_score": round(rng.random(), 2),
        "amenities": amenities,
        "lifestyle_tags": rng.sample(LIFESTYLE_TAGS, k=rng.randint(0, 3)),
        "pet_policy": rng.choice(["allowed", "not_allowed", "negotiable"]),
        "smoking_policy": rng.choice(["allowed", "not_allowed"]),
        "wheelchair_accessible": rng.random() < 0.15,
        "step_free_entrance": rng.random() < 0.3,
        "registration_possible": rng.random() < 0.85,
        "commute_cache": {
            d: {"transit": {"minutes": rng.randint(5, 60)}, "walking": {"minutes": rng.randint(10, 120)}}
            for d in DESTINATIONS
        },
    }


def seed_listings(db, count: int = 100, seed: int = 42) -> List[Dict]:
    rng = random.Random(seed)
    collection = db[get_config().mongo.listings_collection]
    listings = [make_listing(rng) for _ in range(count)]
    for listing in listings:
        collection.update_one({"id": listing["id"]}, {"$set": listing}, upsert=True)
    collection.create_index("id", unique=True)
    return listings


def main():
    db = get_db()
    listings = seed_listings(db, count=100)
    print(f"Seeded {len(listings)} listings.")


if __name__ == "__main__":
    main()
