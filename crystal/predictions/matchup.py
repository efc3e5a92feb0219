"""
Series matchup probabilities from Elo ratings.

Bridges the rating model and the series calculator:
  - per-game probability with the side advantage applied to side A
  - series probability from the current score of a live series
  - a series-probability callable for bracket propagation
"""

from crystal.bracket.series import series_win_probability
from crystal.bracket.structure import Series, series_score
from crystal.ratings.elo import EloConfig, game_win_probability


def compute_series_win_probability(
    rating_a: float,
    rating_b: float,
    best_of: int,
    wins_a: int = 0,
    wins_b: int = 0,
    cfg: EloConfig | None = None,
) -> float:
    """P(A wins a best-of-N series) from two ratings and the current score."""
    p_game = game_win_probability(rating_a, rating_b, cfg)
    return series_win_probability(p_game, best_of, wins_a, wins_b)


def rating_series_probability(rating_of, cfg: EloConfig | None = None):
    """
    Build the ``series_prob(team_x, team_y, series)`` callable used by
    ``propagate``. ``rating_of(team_id)`` is looked up at most once per team;
    the cache belongs to the returned callable.
    """
    ratings: dict = {}

    def rating(team_id) -> float:
        if team_id not in ratings:
            ratings[team_id] = rating_of(team_id)
        return ratings[team_id]

    def series_prob(team_x, team_y, series: Series) -> float:
        wins_x, wins_y = series_score(series, team_x, team_y)
        return compute_series_win_probability(
            rating(team_x), rating(team_y), series.best_of, wins_x, wins_y, cfg
        )

    return series_prob


def matchup_prob(
    rating_a: float,
    rating_b: float,
    best_of: int = 5,
    wins_a: int = 0,
    wins_b: int = 0,
    cfg: EloConfig | None = None,
) -> dict:
    """
    Return a dict describing one series matchup.

    {
        "game_prob_a":   0.64,
        "series_prob_a": 0.79,
        "series_prob_b": 0.21,
        "rating_diff":   100.0,
        "score":         "1-0",
        "favorite":      "a",
    }
    """
    p_game = game_win_probability(rating_a, rating_b, cfg)
    p_series = series_win_probability(p_game, best_of, wins_a, wins_b)
    return {
        "game_prob_a": round(p_game, 4),
        "series_prob_a": round(p_series, 4),
        "series_prob_b": round(1.0 - p_series, 4),
        "rating_diff": round(rating_a - rating_b, 1),
        "score": f"{wins_a}-{wins_b}",
        "favorite": "a" if p_series >= 0.5 else "b",
    }
