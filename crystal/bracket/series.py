"""
Best-of-N series win probability.

Games are treated as independent with a constant per-game probability p
(no momentum or fatigue). From a score of (a, b):

    P(a, b) = p * P(a + 1, b) + (1 - p) * P(a, b + 1)

with P = 1 once A reaches the majority and P = 0 once B does.

Usage:
    series_win_probability(0.6, 3, 0, 0)   # 0.648
    series_win_probability(0.55, 5, 2, 1)  # 0.7975
"""

from __future__ import annotations


def games_needed_to_win(best_of: int) -> int:
    return best_of // 2 + 1


def series_win_probability(p_game: float, best_of: int, wins_a: int, wins_b: int) -> float:
    """
    P(side A wins the series) from the current score.

    Win counts beyond the majority (corrupt data) are clamped to it rather
    than rejected. A is checked first, so a score where both sides claim the
    majority returns 1.0.
    """
    if best_of < 1 or best_of % 2 == 0:
        raise ValueError(f"best_of must be a positive odd integer, got {best_of}")

    target = games_needed_to_win(best_of)
    if wins_a >= target:
        return 1.0
    if wins_b >= target:
        return 0.0

    memo: dict[tuple[int, int], float] = {}

    def clamp(wins: int) -> int:
        return min(max(wins, 0), target)

    def solve(a: int, b: int) -> float:
        if a >= target:
            return 1.0
        if b >= target:
            return 0.0
        if (a, b) not in memo:
            memo[(a, b)] = p_game * solve(a + 1, b) + (1.0 - p_game) * solve(a, b + 1)
        return memo[(a, b)]

    return solve(clamp(wins_a), clamp(wins_b))
