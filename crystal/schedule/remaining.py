"""
Games still to be played.

Two sources:
  - the stored bracket graph: every undecided series can still run to its
    full length (used by the pick projections);
  - a live stage schedule from the LoL Esports API: min/max maps left for a
    Swiss stage (Bo1 + Bo3) and a Bo5 knockout bracket.
"""

from __future__ import annotations

from dataclasses import dataclass

from crystal.bracket.series import games_needed_to_win
from crystal.bracket.structure import COMPLETED, BracketGraph, Series, count_series_score
from crystal.schedule.lolesports import (
    COMPLETED as LIVE_COMPLETED,
    IN_PROGRESS,
    UNSTARTED,
    ScheduledMatch,
    fetch_stage_schedule,
)


def potential_upcoming_games(series: Series) -> int:
    """Most games this series can still produce (0 once it is decided)."""
    if series.is_completed:
        return 0
    wins = count_series_score(series)
    if any(w >= games_needed_to_win(series.best_of) for w in wins.values()):
        return 0
    return max(series.best_of - sum(wins.values()), 0)


def total_potential_games(graph: BracketGraph) -> int:
    return sum(potential_upcoming_games(s) for s in graph)


def total_games_played(graph: BracketGraph) -> int:
    return sum(1 for s in graph for m in s.matches if m.status == COMPLETED)


# ---------------------------------------------------------------------------
# Live stage schedules
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class EventFormat:
    """Series totals for a full Swiss stage plus knockout bracket."""

    swiss_stage_id: str | None
    knockout_stage_id: str | None
    total_bo1: int
    total_bo3_series: int
    total_bo5_series: int


# Swiss: 16 teams, five rounds, 20 Bo1 maps and 13 Bo3 series.
# Knockouts: quarterfinals, semifinals, final; seven Bo5 series.
WORLDS_2025 = EventFormat(
    swiss_stage_id="113475482880934049",
    knockout_stage_id=None,
    total_bo1=20,
    total_bo3_series=13,
    total_bo5_series=7,
)


def _partition(matches: list[ScheduledMatch]) -> dict:
    return {
        state: [m for m in matches if m.state == state]
        for state in (LIVE_COMPLETED, IN_PROGRESS, UNSTARTED)
    }


def _maps_left_live(matches: list[ScheduledMatch], best_of: int) -> int:
    needed = games_needed_to_win(best_of)
    return sum(max(needed - max(m.score_a, m.score_b), 0) for m in matches)


def _maps_played(match: ScheduledMatch) -> int:
    if match.best_of == 1:
        return 1
    reported = match.score_a + match.score_b
    return min(max(reported, games_needed_to_win(match.best_of)), match.best_of)


def _series_left(matches: list[ScheduledMatch], total: int, best_of: int) -> dict:
    states = _partition(matches)
    completed = states[LIVE_COMPLETED][: max(total, 0)]
    left = max(total - len(completed), 0)
    live = states[IN_PROGRESS][:left]
    unstarted = max(left - len(live), 0)
    live_maps = _maps_left_live(live, best_of)
    return {
        "completed": completed,
        "left": left,
        "live": len(live),
        "live_maps": live_maps,
        "min": live_maps + unstarted * games_needed_to_win(best_of),
        "max": live_maps + unstarted * best_of,
    }


def remaining_breakdown(
    swiss: list[ScheduledMatch],
    knockouts: list[ScheduledMatch],
    fmt: EventFormat = WORLDS_2025,
) -> dict:
    """
    Min/max maps left per stage, plus what has been played.

    Completed and live counts are clamped to the format totals so a noisy
    schedule feed cannot push the remaining count below zero.
    """
    bo1 = _series_left([m for m in swiss if m.best_of == 1], fmt.total_bo1, 1)
    bo3 = _series_left([m for m in swiss if m.best_of == 3], fmt.total_bo3_series, 3)
    bo5 = _series_left([m for m in knockouts if m.best_of == 5], fmt.total_bo5_series, 5)

    completed = bo1["completed"] + bo3["completed"] + bo5["completed"]
    swiss_min = bo1["min"] + bo3["min"]
    swiss_max = bo1["max"] + bo3["max"]
    return {
        "swiss": {
            "min": swiss_min,
            "max": swiss_max,
            "details": {
                "bo1_left": bo1["left"],
                "bo3_series_left": bo3["left"],
                "live_bo1": bo1["live"],
                "live_bo3_remaining_maps": bo3["live_maps"],
            },
        },
        "knockouts": {
            "min": bo5["min"],
            "max": bo5["max"],
            "details": {
                "series_left": bo5["left"],
                "live_bo5_remaining_maps": bo5["live_maps"],
            },
        },
        "total": {"min": swiss_min + bo5["min"], "max": swiss_max + bo5["max"]},
        "played": {
            "maps": sum(_maps_played(m) for m in completed),
            "series": len(completed),
        },
        "series_left": {"total": bo1["left"] + bo3["left"] + bo5["left"]},
    }


def fetch_remaining_breakdown(fmt: EventFormat, api_key: str | None) -> dict:
    """Pull both stage schedules and compute ``remaining_breakdown``."""
    swiss = fetch_stage_schedule(fmt.swiss_stage_id, api_key) if fmt.swiss_stage_id else []
    knockouts = fetch_stage_schedule(fmt.knockout_stage_id, api_key) if fmt.knockout_stage_id else []
    return remaining_breakdown(swiss, knockouts, fmt)
