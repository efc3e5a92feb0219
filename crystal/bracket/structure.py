"""
Tournament bracket as an explicit feed graph.

Every Series is a node. A series may name a concrete team in each slot, or
leave the slot empty to be filled by the winner (``feeds_winner_to_id``) or
loser (``feeds_loser_to_id``) of an earlier series. The graph is stored
arena-style: one list of Series ordered by (stage, round, position) plus an
id -> index table, so traversals key their memo tables on plain ids.

A series with no ``feeds_winner_to_id`` is terminal. Terminal series whose
entrants all arrive through loser feeds (third-place deciders) are placement
series and do not crown a champion.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

from crystal.utils.errors import BracketError

SCHEDULED = "scheduled"
IN_PROGRESS = "in_progress"
COMPLETED = "completed"

WINNER = "winner"
LOSER = "loser"


@dataclass
class Match:
    """One game of a series."""

    id: int
    series_id: int
    game_index: int
    status: str = SCHEDULED
    team_a_id: int | None = None
    team_b_id: int | None = None
    winner_team_id: int | None = None
    started_at: datetime | None = None
    completed_at: datetime | None = None

    @property
    def is_completed(self) -> bool:
        return self.status == COMPLETED and self.winner_team_id is not None


@dataclass
class Series:
    id: int
    round: int
    index_in_round: int
    best_of: int
    status: str = SCHEDULED
    team_a_id: int | None = None
    team_b_id: int | None = None
    winner_team_id: int | None = None
    feeds_winner_to_id: int | None = None
    feeds_loser_to_id: int | None = None
    stage_id: int | None = None
    stage_order: int = 0
    matches: list[Match] = field(default_factory=list)

    @property
    def is_completed(self) -> bool:
        return self.status == COMPLETED and self.winner_team_id is not None

    @property
    def loser_team_id(self) -> int | None:
        """The other occupant of a completed series, from its slots or else its games."""
        if not self.is_completed:
            return None
        if self.winner_team_id == self.team_a_id and self.team_b_id is not None:
            return self.team_b_id
        if self.winner_team_id == self.team_b_id and self.team_a_id is not None:
            return self.team_a_id
        for match in self.matches:
            for team_id in (match.team_a_id, match.team_b_id):
                if team_id is not None and team_id != self.winner_team_id:
                    return team_id
        return None

    @property
    def order_key(self) -> tuple:
        return (self.stage_order, self.round, self.index_in_round, self.id)


def count_series_score(series: Series) -> dict:
    """{team_id: games won} over the completed games of a series."""
    wins: dict = {}
    for match in series.matches:
        if not match.is_completed:
            continue
        wins[match.winner_team_id] = wins.get(match.winner_team_id, 0) + 1
    return wins


def series_score(series: Series, team_a, team_b) -> tuple[int, int]:
    """(games won by team_a, games won by team_b) so far in this series."""
    wins = count_series_score(series)
    return wins.get(team_a, 0), wins.get(team_b, 0)


def games_played(series: Series) -> int:
    return sum(1 for m in series.matches if m.status == COMPLETED)


class BracketGraph:
    """Arena of Series nodes with feeder lookup and cycle validation."""

    def __init__(self, series: list[Series]):
        self.series: list[Series] = sorted(series, key=lambda s: s.order_key)
        self.index: dict = {}
        for pos, s in enumerate(self.series):
            if s.id in self.index:
                raise BracketError(f"duplicate series id {s.id}")
            self.index[s.id] = pos

        # target id -> [(feeder series, WINNER | LOSER)] in bracket order
        self._feeders: dict = {}
        for s in self.series:
            for target, kind in ((s.feeds_winner_to_id, WINNER), (s.feeds_loser_to_id, LOSER)):
                if target is None:
                    continue
                if target not in self.index:
                    raise BracketError(f"series {s.id} feeds unknown series {target}")
                self._feeders.setdefault(target, []).append((s, kind))
        for entries in self._feeders.values():
            entries.sort(key=lambda e: e[0].order_key)

        self._check_acyclic()

    def __len__(self) -> int:
        return len(self.series)

    def __iter__(self):
        return iter(self.series)

    def get(self, series_id) -> Series:
        return self.series[self.index[series_id]]

    def feeders(self, series_id) -> list[tuple[Series, str]]:
        return list(self._feeders.get(series_id, []))

    def is_placement(self, series: Series) -> bool:
        entries = self._feeders.get(series.id, [])
        return bool(entries) and all(kind == LOSER for _, kind in entries)

    def terminal_series(self) -> list[Series]:
        """Series that crown a champion: no outgoing winner feed, not a placement decider."""
        return [
            s for s in self.series
            if s.feeds_winner_to_id is None and not self.is_placement(s)
        ]

    def _check_acyclic(self) -> None:
        # colours: 0 = unvisited, 1 = on stack, 2 = done
        state = {s.id: 0 for s in self.series}
        for root in self.series:
            if state[root.id]:
                continue
            stack = [(root.id, iter(self._targets(root)))]
            state[root.id] = 1
            while stack:
                node, targets = stack[-1]
                nxt = next(targets, None)
                if nxt is None:
                    state[node] = 2
                    stack.pop()
                elif state[nxt] == 1:
                    raise BracketError(f"feed cycle through series {nxt}")
                elif state[nxt] == 0:
                    state[nxt] = 1
                    stack.append((nxt, iter(self._targets(self.get(nxt)))))

    @staticmethod
    def _targets(series: Series) -> list:
        return [t for t in (series.feeds_winner_to_id, series.feeds_loser_to_id) if t is not None]
