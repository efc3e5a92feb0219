"""
Elo rating model for esports series.

Key design choices:
  - All teams start at DEFAULT_RATING (1500).
  - A home/side advantage can be modeled as a fixed Elo offset added to
    side A's effective rating before computing win probability. It is 0 by
    default: international events are played on a neutral stage.
  - Ratings are updated after every *game* (not series) using
        R' = R + K * (outcome - expected)
    and the opponent moves by exactly the opposite amount.
  - The engine records a full history of pregame probabilities + outcomes so
    that log loss and Brier score can be computed for a replay.

Usage:
    engine = EloEngine(k=32)
    engine.process_matches(matches)      # completed games, any order
    print(engine.rankings()[:5])
    p = engine.win_prob(12, 7)
"""

from __future__ import annotations

from dataclasses import dataclass, field

DEFAULT_RATING = 1500.0
DEFAULT_K = 32.0
SCALE = 400.0           # a 400-point gap ≈ 90.9% win probability
HOME_ADVANTAGE = 0.0

# Source tags stored alongside every rating record
SOURCE_SEED = "elo-seed"
SOURCE_REBUILD = "elo-rebuild"
SOURCE_LOCAL = "elo-local"


@dataclass
class EloConfig:
    k: float = DEFAULT_K
    home_advantage: float = HOME_ADVANTAGE
    base: float = DEFAULT_RATING


def expected_score(rating_a: float, rating_b: float) -> float:
    """P(A beats B) for a single game. expected_score(a, b) + expected_score(b, a) == 1."""
    return 1.0 / (1.0 + 10.0 ** ((rating_b - rating_a) / SCALE))


def update_ratings(
    rating_a: float,
    rating_b: float,
    a_won: bool,
    k: float = DEFAULT_K,
) -> tuple[float, float]:
    """
    Apply one game result. Returns (new_a, new_b).

    The update is zero-sum: whatever A gains, B loses.
    """
    expected_a = expected_score(rating_a, rating_b)
    delta = k * ((1.0 if a_won else 0.0) - expected_a)
    return rating_a + delta, rating_b - delta


def game_win_probability(rating_a: float, rating_b: float, cfg: EloConfig | None = None) -> float:
    """Per-game P(A wins) with the configured advantage applied to side A."""
    cfg = cfg or EloConfig()
    return expected_score(rating_a + cfg.home_advantage, rating_b)


def _chronological_key(match) -> tuple:
    # completion time, then start time, then id; missing timestamps sort last
    def ts(value):
        return (1, 0) if value is None else (0, value)

    return (ts(match.completed_at), ts(match.started_at), match.id)


def chronological(matches) -> list:
    """Sort completed games into replay order."""
    return sorted(matches, key=_chronological_key)


@dataclass
class EloEngine:
    k: float = DEFAULT_K
    home_advantage: float = HOME_ADVANTAGE
    initial: float = DEFAULT_RATING

    # internal state, not constructor args
    ratings: dict = field(default_factory=dict, repr=False)
    history: list[dict] = field(default_factory=list, repr=False)

    @classmethod
    def from_config(cls, cfg: EloConfig) -> "EloEngine":
        return cls(k=cfg.k, home_advantage=cfg.home_advantage, initial=cfg.base)

    # ------------------------------------------------------------------ #
    # Public API                                                           #
    # ------------------------------------------------------------------ #

    def rating(self, team_id) -> float:
        """Current Elo rating for a team (defaults to initial if unseen)."""
        return self.ratings.get(team_id, self.initial)

    def win_prob(self, team_a, team_b) -> float:
        """P(team_a beats team_b) in one game, side advantage applied to team_a."""
        return expected_score(self.rating(team_a) + self.home_advantage, self.rating(team_b))

    def update(self, team_a, team_b, a_won: bool, match_id=None, completed_at=None) -> float:
        """
        Process one finished game. Returns the pregame P(team_a wins).
        """
        p_a = self.win_prob(team_a, team_b)
        new_a, new_b = update_ratings(self.rating(team_a), self.rating(team_b), a_won, self.k)
        self.ratings[team_a] = new_a
        self.ratings[team_b] = new_b

        self.history.append(
            {
                "match_id": match_id,
                "completed_at": completed_at,
                "team_a_id": team_a,
                "team_b_id": team_b,
                "pregame_prob_a": p_a,
                "outcome": 1 if a_won else 0,
                "rating_a_after": new_a,
                "rating_b_after": new_b,
            }
        )
        return p_a

    def process_matches(self, matches) -> list:
        """
        Replay completed games in chronological order.

        Each match needs ``id``, ``team_a_id``, ``team_b_id``, ``winner_team_id``,
        ``completed_at`` and ``started_at`` attributes. Games missing a side or
        a winner are skipped. Returns the games that were applied, in order.
        """
        applied = []
        for m in chronological(matches):
            if m.team_a_id is None or m.team_b_id is None or m.winner_team_id is None:
                continue
            self.update(
                m.team_a_id,
                m.team_b_id,
                a_won=m.winner_team_id == m.team_a_id,
                match_id=m.id,
                completed_at=m.completed_at,
            )
            applied.append(m)
        return applied

    def rankings(self) -> list[tuple]:
        """[(team_id, rating)] sorted by rating descending, rated teams only."""
        return sorted(self.ratings.items(), key=lambda x: x[1], reverse=True)
