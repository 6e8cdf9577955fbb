"""Rebuild the global bandit state by replaying stored feedback records.

Used to recover after a bandit update failed for an already-recorded event,
or to rebuild the weights from a lookback window.

Input: Mongo collection `ranking_feedback`
Output: the singleton `rank_bandit_state` document
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import Any, Optional

import pandas as pd

try:
    from ranking.engine.feedback import replay_feedback
except ImportError:
    # Allow running as script: add project root to sys.path
    ROOT = Path(__file__).resolve().parent.parent
    if str(ROOT) not in sys.path:
        sys.path.append(str(ROOT))
    from ranking.engine.feedback import replay_feedback

from ranking.engine.models import REWARD_COLUMNS, BanditState, RewardCategory


def load_feedback_df(feedback_log: Any, lookback_days: Optional[int] = None) -> pd.DataFrame:
    columns = ["feedback_type", "feedback_score", "created_at", *REWARD_COLUMNS.values()]
    rows = list(feedback_log.iter_records(lookback_days))
    if not rows:
        return pd.DataFrame(columns=columns)
    df = pd.DataFrame(rows)
    for col in columns:
        if col not in df.columns:
            df[col] = None
    return df[columns].sort_values("created_at", kind="stable")


def summarize(state: BanditState) -> pd.DataFrame:
    return pd.DataFrame(
        [
            {
                "component": c.value,
                "trials": round(state.trials.get(c, 0.0), 2),
                "successes": round(state.successes.get(c, 0.0), 2),
                "weight": state.weights.get(c),
            }
            for c in RewardCategory
        ]
    )


def recompute(feedback_log: Any, store: Any, lookback_days: Optional[int] = 30) -> Optional[BanditState]:
    df = load_feedback_df(feedback_log, lookback_days)
    if df.empty:
        print("[ranking] no feedback rows found for lookback window; keeping current state")
        return None

    print(f"[ranking] replaying {len(df)} feedback rows")
    replayed = replay_feedback(df.to_dict("records"))
    return store.update(
        lambda current: BanditState(
            trials=replayed.trials,
            successes=replayed.successes,
            weights=replayed.weights,
            last_updated=pd.Timestamp.now(tz="UTC").to_pydatetime(),
            version=current.version,
        )
    )


def main(argv: Optional[list] = None) -> int:
    parser = argparse.ArgumentParser(description="Recompute ranking weights from stored feedback.")
    parser.add_argument("--days", type=int, default=30, help="Lookback window in days (0 = all history)")
    args = parser.parse_args(argv)

    from utils.bandit_store import MongoBanditStore
    from utils.feedback_log import FeedbackLog

    state = recompute(FeedbackLog(), MongoBanditStore(), lookback_days=args.days or None)
    if state is not None:
        print(summarize(state).to_string(index=False))
        print("[ranking] weights updated successfully")
    return 0


if __name__ == "__main__":
    sys.exit(main())
