"""
Exact bracket outcome propagation.

Walks the feed graph from every terminal series back to the first round,
resolving for each series:

    slots    (dist_a, dist_b)  P(team occupies slot A / slot B)
    winners  {team: P(team wins this series)}
    losers   {team: P(team loses this series)}

A completed series resolves to its recorded winner with probability 1. An
open slot is filled by the next feeder series (winner or loser feed) in
bracket order. If only one slot can be filled the series is a bye and the
occupant advances unchanged. Otherwise every pairing (x, y) contributes
P(x in A) * P(y in B), split by the series win probability for that pairing.

The champion distribution is the sum of the winner distributions of every
terminal, non-placement series.

Usage:
    from crystal.bracket.propagator import propagate
    outcome = propagate(graph, series_prob)   # series_prob(x, y, series) -> P(x wins)
    outcome.champion                          # {team_id: probability}
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable

from crystal.bracket.structure import WINNER, BracketGraph, Series
from crystal.utils.logging import get_logger

log = get_logger(__name__)

Distribution = dict
SeriesProbability = Callable[[object, object, Series], float]


@dataclass
class TournamentOutcome:
    champion: Distribution = field(default_factory=dict)
    winners: dict = field(default_factory=dict)
    losers: dict = field(default_factory=dict)
    slots: dict = field(default_factory=dict)

    def reach_probability(self, team_id, series_id) -> float:
        """P(team plays in the given series)."""
        dist_a, dist_b = self.slots.get(series_id, ({}, {}))
        return dist_a.get(team_id, 0.0) + dist_b.get(team_id, 0.0)

    def ranked(self) -> list[tuple]:
        """[(team_id, probability)] best first."""
        return sorted(self.champion.items(), key=lambda x: x[1], reverse=True)


def _add(dist: Distribution, team, mass: float) -> None:
    dist[team] = dist.get(team, 0.0) + mass


def propagate(graph: BracketGraph, series_prob: SeriesProbability) -> TournamentOutcome:
    """Resolve every series reachable from a terminal series. Memo tables live for this call only."""
    outcome = TournamentOutcome()

    def resolve(series: Series) -> None:
        if series.id in outcome.winners:
            return

        if series.is_completed:
            winner, loser = series.winner_team_id, series.loser_team_id
            outcome.slots[series.id] = (
                {series.team_a_id: 1.0} if series.team_a_id is not None else {},
                {series.team_b_id: 1.0} if series.team_b_id is not None else {},
            )
            outcome.winners[series.id] = {winner: 1.0}
            outcome.losers[series.id] = {loser: 1.0} if loser is not None else {}
            return

        entrants = iter(graph.feeders(series.id))

        def slot(team_id) -> Distribution:
            if team_id is not None:
                return {team_id: 1.0}
            entry = next(entrants, None)
            if entry is None:
                return {}
            feeder, kind = entry
            resolve(feeder)
            source = outcome.winners if kind == WINNER else outcome.losers
            return dict(source[feeder.id])

        dist_a = slot(series.team_a_id)
        dist_b = slot(series.team_b_id)
        outcome.slots[series.id] = (dist_a, dist_b)

        if not dist_a or not dist_b:
            outcome.winners[series.id] = dict(dist_a or dist_b)
            outcome.losers[series.id] = {}
            log.debug("series %s resolved as a bye (%d entrants)", series.id, len(dist_a or dist_b))
            return

        winners: Distribution = {}
        losers: Distribution = {}
        valid = skipped = 0.0
        for team_x, p_x in dist_a.items():
            for team_y, p_y in dist_b.items():
                weight = p_x * p_y
                if team_x == team_y:
                    skipped += weight
                    continue
                if weight == 0:
                    continue
                p_win = series_prob(team_x, team_y, series)
                _add(winners, team_x, weight * p_win)
                _add(winners, team_y, weight * (1.0 - p_win))
                _add(losers, team_x, weight * (1.0 - p_win))
                _add(losers, team_y, weight * p_win)
                valid += weight

        # Same-team pairings only arise when a winner feed and a loser feed of
        # one series meet again; rescale so the node keeps its full mass.
        if skipped > 0 and valid > 0:
            scale = (valid + skipped) / valid
            winners = {t: p * scale for t, p in winners.items()}
            losers = {t: p * scale for t, p in losers.items()}
        elif skipped > 0:
            winners = dict(dist_a)

        outcome.winners[series.id] = winners
        outcome.losers[series.id] = losers
        log.debug(
            "series %s resolved: %d x %d entrants, %d possible winners",
            series.id, len(dist_a), len(dist_b), len(winners),
        )

    for final in graph.terminal_series():
        resolve(final)
        for team_id, p in outcome.winners[final.id].items():
            _add(outcome.champion, team_id, p)

    return outcome
