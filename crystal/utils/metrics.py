"""
Proper scoring rules for a rating replay.

Every game in a replay was predicted *before* its result was applied, so the
replay history doubles as an out-of-sample backtest of the rating model.
Lower is better for both scores.

Usage:
    from crystal.utils.metrics import evaluate
    results = evaluate(engine.history)
"""

import math
from collections import defaultdict

import pandas as pd


def log_loss(predictions: list[tuple[float, int]]) -> float:
    """
    Average log loss over (prob, outcome) pairs.

    Perfect model: 0. Coin-flip baseline: log(2) ≈ 0.693.
    """
    if not predictions:
        return float("nan")
    total = 0.0
    for p, y in predictions:
        p = max(1e-9, min(1.0 - 1e-9, p))
        total += -(y * math.log(p) + (1 - y) * math.log(1 - p))
    return total / len(predictions)


def brier_score(predictions: list[tuple[float, int]]) -> float:
    """Mean squared error on probabilities. Coin-flip baseline: 0.25."""
    if not predictions:
        return float("nan")
    return sum((p - y) ** 2 for p, y in predictions) / len(predictions)


def calibration_bins(
    predictions: list[tuple[float, int]], n_bins: int = 10
) -> list[dict]:
    """
    Group predictions into probability buckets and compute observed win rate.

    Returns [{"bin_mid": 0.25, "predicted_avg": 0.24, "observed": 0.26, "n": 14}, ...]
    """
    bins: dict[int, list] = defaultdict(list)
    for p, y in predictions:
        b = min(int(p * n_bins), n_bins - 1)
        bins[b].append((p, y))

    result = []
    for b in range(n_bins):
        items = bins.get(b, [])
        if not items:
            continue
        result.append(
            {
                "bin_mid": (b + 0.5) / n_bins,
                "predicted_avg": sum(p for p, _ in items) / len(items),
                "observed": sum(y for _, y in items) / len(items),
                "n": len(items),
            }
        )
    return result


def evaluate(history: list[dict]) -> dict:
    """
    Compute all metrics from an EloEngine history list.

    Returns n_games, log_loss, brier_score, the 50/50 baselines and the
    calibration bins; an empty dict for an empty history.
    """
    if not history:
        return {}

    preds = [(g["pregame_prob_a"], int(g["outcome"])) for g in history]
    baseline = [(0.5, y) for _, y in preds]

    return {
        "n_games": len(preds),
        "log_loss": log_loss(preds),
        "brier_score": brier_score(preds),
        "baseline_log_loss": log_loss(baseline),
        "baseline_brier_score": brier_score(baseline),
        "calibration": calibration_bins(preds),
    }


def history_frame(history: list[dict]) -> pd.DataFrame:
    """Replay history as a DataFrame, one row per game."""
    columns = [
        "match_id", "completed_at", "team_a_id", "team_b_id",
        "pregame_prob_a", "outcome", "rating_a_after", "rating_b_after",
    ]
    return pd.DataFrame(history, columns=columns)
