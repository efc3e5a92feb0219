"""
Monte Carlo tournament simulator over the feed graph.

Plays every open series game by game from its current score, drawing each
game from the per-game win probability. Used as an independent check on the
exact propagation in ``propagator.py``; the two agree within sampling error.

Usage:
    from crystal.bracket.simulator import simulate_tournament
    odds = simulate_tournament(
        graph,
        game_prob_fn=lambda a, b: engine.win_prob(a, b),
        n_sims=10_000,
        seed=42,
    )
    # odds = {12: 0.31, 7: 0.18, ...}
"""

import random

from crystal.bracket.series import games_needed_to_win
from crystal.bracket.structure import WINNER, BracketGraph, series_score


def _play_series(series, team_a, team_b, game_prob_fn, rng) -> tuple:
    """Finish one series from its current score. Returns (winner, loser)."""
    target = games_needed_to_win(series.best_of)
    wins_a, wins_b = series_score(series, team_a, team_b)
    p = game_prob_fn(team_a, team_b)
    while wins_a < target and wins_b < target:
        if rng.random() < p:
            wins_a += 1
        else:
            wins_b += 1
    return (team_a, team_b) if wins_a >= target else (team_b, team_a)


def simulate_tournament(
    graph: BracketGraph,
    game_prob_fn,
    n_sims: int = 10_000,
    seed: int = 42,
) -> dict:
    """
    Simulate the remaining bracket n_sims times. Returns {team_id: championship_probability}.

    game_prob_fn: callable(team_a_id, team_b_id) -> P(team_a wins one game).
    """
    rng = random.Random(seed)
    finals = graph.terminal_series()
    counts: dict = {}

    for _ in range(n_sims):
        played: dict = {}

        def play(series):
            if series.id in played:
                return played[series.id]
            if series.is_completed:
                played[series.id] = (series.winner_team_id, series.loser_team_id)
                return played[series.id]

            entrants = iter(graph.feeders(series.id))

            def occupant(team_id):
                if team_id is not None:
                    return team_id
                entry = next(entrants, None)
                if entry is None:
                    return None
                feeder, kind = entry
                winner, loser = play(feeder)
                return winner if kind == WINNER else loser

            a = occupant(series.team_a_id)
            b = occupant(series.team_b_id)
            if a is None or b is None or a == b:
                result = (a if a is not None else b, None)
            else:
                result = _play_series(series, a, b, game_prob_fn, rng)
            played[series.id] = result
            return result

        for final in finals:
            champion, _ = play(final)
            if champion is not None:
                counts[champion] = counts.get(champion, 0) + 1

    return {t: c / n_sims for t, c in counts.items()}
