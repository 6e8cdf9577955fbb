"""Shared fixtures for the ranking tests."""

import pytest

from ranking.engine.models import ListingProfile, QueryContext

LISTING_ID = "5b0c9a56-6f1d-4a3e-9a57-2f3a1c7d8e90"
USER_ID = "0f8fad5b-d9cb-469f-a165-70867728950e"
OTHER_USER_ID = "7c9e6679-7425-40de-944b-e07fc1f90ae7"


@pytest.fixture
def listing_doc() -> dict:
    return {
        "id": LISTING_ID,
        "price": 180000,
        "bedrooms": 2,
        "bathrooms": 1,
        "district": "VIII",
        "floor": 2,
        "elevator": True,
        "furnished": True,
        "verified_owner": True,
        "media_quality_score": 0.9,
        "completeness_score": 0.8,
        "amenities": ["WiFi", "Washing Machine", "Balcony"],
        "lifestyle_tags": ["quiet", "workspace"],
        "pet_policy": "allowed",
        "smoking_policy": "not_allowed",
        "commute_cache": {"ELTE": {"transit": {"minutes": 20}, "walking": {"minutes": 45}}},
    }


@pytest.fixture
def listing(listing_doc) -> ListingProfile:
    return ListingProfile.from_document(listing_doc)


@pytest.fixture
def query() -> QueryContext:
    return QueryContext(price_min=100000, price_max=200000, bedrooms=2, districts=["VIII"])
