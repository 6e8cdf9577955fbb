"""Node wrapper for feedback ingestion."""

from __future__ import annotations

from typing import Any, Dict, Optional

from ranking.engine.feedback import FeedbackSubmission, submit_feedback


def run(
    submission: FeedbackSubmission,
    session_user_id: Optional[str],
    listings: Any,
    feedback_log: Any,
    bandit_store: Any,
    weight_cache: Any = None,
) -> Dict[str, Any]:
    outcome = submit_feedback(
        submission,
        session_user_id=session_user_id,
        listings=listings,
        feedback_log=feedback_log,
        bandit_store=bandit_store,
        weight_cache=weight_cache,
    )
    return {"success": True, "message": outcome.message, "componentScores": outcome.component_scores()}


__all__ = ["run"]
