"""FastAPI app exposing ranking feedback and scoring endpoints."""

from __future__ import annotations

import logging
from functools import lru_cache
from typing import Any, Dict, List, Optional
from uuid import UUID

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from ranking.engine.feedback import FeedbackError, FeedbackSubmission
from ranking.engine.models import FeedbackKind, QueryContext
from ranking.engine.weight_cache import WeightCache
from ranking.nodes.feature_scorer import run as run_scorer
from ranking.nodes.feedback import run as run_feedback
from utils.bandit_store import MongoBanditStore
from utils.config import get_config
from utils.feedback_log import FeedbackLog
from utils.listings import ListingRepository

logging.basicConfig(level=get_config().log_level, format="%(asctime)s %(levelname)s %(name)s %(message)s")
logger = logging.getLogger(__name__)


class FeedbackRequest(BaseModel):
    apartmentId: UUID
    userId: UUID
    feedback: FeedbackKind
    searchSessionId: Optional[str] = None
    searchQuery: Optional[str] = None
    searchFilters: Optional[Dict[str, Any]] = None
    apartmentPosition: Optional[float] = None
    apartmentScore: Optional[float] = None
    responseTimeMs: Optional[float] = None


class ScoreQuery(BaseModel):
    price_min: Optional[float] = Field(default=None, ge=0)
    price_max: Optional[float] = Field(default=None, ge=0)
    bedrooms: Optional[int] = Field(default=None, ge=0)
    bathrooms: Optional[int] = Field(default=None, ge=0)
    districts: List[str] = Field(default_factory=list)
    amenity_priorities: Dict[str, List[str]] = Field(default_factory=dict)
    lifestyle_tags: List[str] = Field(default_factory=list)
    work_from_home: bool = False
    has_pets: bool = False
    smoking_habits: str = "non-smoker"
    wheelchair_required: bool = False
    elevator_required: bool = False
    step_free_required: bool = False
    commute_destinations: List[str] = Field(default_factory=list)
    max_commute_minutes: Optional[float] = Field(default=None, ge=0)
    needs_registration: bool = False


class ScoreRequest(BaseModel):
    listingIds: List[str] = Field(min_length=1)
    query: ScoreQuery = Field(default_factory=ScoreQuery)
    topK: Optional[int] = Field(default=None, ge=1)


@lru_cache(maxsize=1)
def get_listings() -> ListingRepository:
    return ListingRepository()


@lru_cache(maxsize=1)
def get_feedback_log() -> FeedbackLog:
    return FeedbackLog()


@lru_cache(maxsize=1)
def get_bandit_store() -> MongoBanditStore:
    return MongoBanditStore()


@lru_cache(maxsize=1)
def get_weight_cache() -> WeightCache:
    return WeightCache(get_bandit_store())


app = FastAPI(title="Listing ranking")


@app.exception_handler(RequestValidationError)
async def validation_error(request: Request, exc: RequestValidationError):
    details = [{"loc": list(e.get("loc", ())), "msg": e.get("msg"), "type": e.get("type")} for e in exc.errors()]
    return JSONResponse(status_code=400, content={"error": "Invalid request data", "details": details})


@app.exception_handler(FeedbackError)
async def feedback_error(request: Request, exc: FeedbackError):
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


def _get_user_id(request: Request) -> Optional[str]:
    return request.cookies.get("user_id")


def _client_ip(request: Request) -> Optional[str]:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.headers.get("x-real-ip")


@app.post("/ranking/feedback")
def post_feedback(
    body: FeedbackRequest,
    request: Request,
    listings=Depends(get_listings),
    feedback_log=Depends(get_feedback_log),
    bandit_store=Depends(get_bandit_store),
    weight_cache=Depends(get_weight_cache),
):
    submission = FeedbackSubmission(
        listing_id=str(body.apartmentId),
        user_id=str(body.userId),
        kind=body.feedback,
        search_session_id=body.searchSessionId,
        search_query=body.searchQuery,
        search_filters=body.searchFilters or {},
        listing_position=body.apartmentPosition,
        listing_score=body.apartmentScore,
        response_time_ms=body.responseTimeMs,
        user_agent=request.headers.get("user-agent"),
        ip_address=_client_ip(request),
    )
    return run_feedback(
        submission,
        session_user_id=_get_user_id(request),
        listings=listings,
        feedback_log=feedback_log,
        bandit_store=bandit_store,
        weight_cache=weight_cache,
    )


@app.get("/ranking/feedback")
def feedback_usage():
    return {
        "message": "Ranking Feedback API",
        "usage": "POST with { apartmentId, userId, feedback, searchSessionId }",
        "feedback_types": [k.value for k in FeedbackKind],
    }


@app.get("/ranking/weights")
def current_weights(weight_cache=Depends(get_weight_cache)):
    return {"weights": {c.value: w for c, w in weight_cache.get_weights().items()}}


@app.post("/ranking/score")
def score_listings(body: ScoreRequest, listings=Depends(get_listings)):
    found = listings.get_many(body.listingIds)
    query = QueryContext(**body.query.model_dump())
    return {"results": run_scorer(found, query, top_k=body.topK)}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("web.app:app", host="0.0.0.0", port=8000, reload=True)
