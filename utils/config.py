"""Configuration and environment handling for the ranking service."""

from __future__ import annotations

import os
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field

load_dotenv()


class MongoConfig(BaseModel):
    """MongoDB connection and collection names."""
    uri: str = Field(default_factory=lambda: os.getenv("MONGODB_URI", "mongodb://localhost:27017"))
    database: str = Field(default_factory=lambda: os.getenv("MONGODB_DB", "rental_marketplace"))
    listings_collection: str = Field(default="apartments")
    feedback_collection: str = Field(default="ranking_feedback")
    bandit_collection: str = Field(default="rank_bandit_state")
    timeout_ms: int = Field(default_factory=lambda: int(os.getenv("MONGODB_TIMEOUT_MS", "5000")))


class BanditConfig(BaseModel):
    """Optimistic-concurrency settings for the shared bandit row."""
    state_id: int = Field(default=1, description="Fixed id of the singleton state document")
    max_attempts: int = Field(default_factory=lambda: int(os.getenv("BANDIT_MAX_ATTEMPTS", "5")))
    backoff_min_s: float = Field(default=0.05)
    backoff_max_s: float = Field(default=1.0)


class Config(BaseModel):
    mongo: MongoConfig = Field(default_factory=MongoConfig)
    bandit: BanditConfig = Field(default_factory=BanditConfig)
    log_level: str = Field(default_factory=lambda: os.getenv("LOG_LEVEL", "INFO"))


_config: Optional[Config] = None


def get_config() -> Config:
    """Get or create the singleton config instance."""
    global _config
    if _config is None:
        _config = Config()
    return _config


__all__ = ["BanditConfig", "Config", "MongoConfig", "get_config"]
