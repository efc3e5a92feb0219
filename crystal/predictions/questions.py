"""
Pick probabilities for crystal-ball questions.

Three closed question types, one handler each:

  binary       which team wins the event
               -> champion distribution from bracket propagation
  categorical  which entity (e.g. champion) is picked the most
               -> observed picks + share-proportional projection of the
                  remaining games, normalized
  numeric      which bucket a total count (e.g. Barons slain) lands in
               -> fixed per-game rate times all games, one bucket gets 1.0

The categorical and numeric projections assume the observed share / rate
simply continues. They are placeholders, not fitted estimators, and carry
no uncertainty.

Misconfigured questions (unknown type, wrong answer pool, no buckets) give
an empty list so the caller can show "no data yet".
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Protocol

from crystal.utils.config import ProjectionConfig
from crystal.utils.logging import get_logger

log = get_logger(__name__)

TEAMS_ACTIVE = "teams_active"
CHAMPIONS_ALL = "champions_all"

_BUCKET_RE = re.compile(r"^(\d+)(?:-(\d+)|\+)$")


class QuestionType(str, Enum):
    BINARY = "binary"
    CATEGORICAL = "categorical"
    NUMERIC = "numeric"

    @classmethod
    def parse(cls, value) -> "QuestionType | None":
        try:
            return cls(value)
        except ValueError:
            return None


@dataclass
class Question:
    id: int
    tournament_id: int
    tournament_slug: str
    type: QuestionType | None
    config: dict = field(default_factory=dict)
    slug: str = ""
    text: str = ""


@dataclass
class PickProbability:
    answer_key: str
    probability: float
    details: dict = field(default_factory=dict)


class QuestionInputs(Protocol):
    """Data the handlers read; implemented by ``crystal.service.Engine``."""

    def champion_distribution(self, tournament_id: int) -> dict: ...

    def team_slugs(self, team_ids: list) -> dict: ...

    def remaining_game_count(self, tournament_slug: str) -> int: ...

    def games_played(self, tournament_slug: str) -> int: ...

    def pick_counts(self, tournament_slug: str) -> dict: ...


def parse_bucket(bucket: str) -> tuple[int, int | None] | None:
    """'21-40' -> (21, 40); '61+' -> (61, None); anything else -> None."""
    match = _BUCKET_RE.match(bucket.strip())
    if not match:
        return None
    low = int(match.group(1))
    high = int(match.group(2)) if match.group(2) is not None else None
    return low, high


def in_bucket(bucket: str, value: float) -> bool:
    """Inclusive on both ends; 'N+' has no upper bound."""
    bounds = parse_bucket(bucket)
    if bounds is None:
        return False
    low, high = bounds
    if high is None:
        return value >= low
    return low <= value <= high


def _by_probability(rows: list[PickProbability]) -> list[PickProbability]:
    return sorted(rows, key=lambda r: r.probability, reverse=True)


def binary_probabilities(question: Question, inputs: QuestionInputs, cfg: ProjectionConfig) -> list[PickProbability]:
    if question.config.get("answer_pool") != TEAMS_ACTIVE:
        log.warning("question %s: unsupported answer pool for binary type", question.id)
        return []

    champion = inputs.champion_distribution(question.tournament_id)
    if not champion:
        return []

    slugs = inputs.team_slugs(list(champion))
    return _by_probability([
        PickProbability(
            answer_key=slugs.get(team_id) or str(team_id),
            probability=p,
            details={"team_id": team_id, "question_id": question.id},
        )
        for team_id, p in champion.items()
    ])


def categorical_probabilities(question: Question, inputs: QuestionInputs, cfg: ProjectionConfig) -> list[PickProbability]:
    if question.config.get("answer_pool") != CHAMPIONS_ALL:
        log.warning("question %s: unsupported answer pool for categorical type", question.id)
        return []

    remaining = inputs.remaining_game_count(question.tournament_slug)
    counts = inputs.pick_counts(question.tournament_slug)
    total_picks = sum(counts.values())

    rows = []
    for key, current in counts.items():
        share = current / total_picks if total_picks > 0 else 0.0
        expected_future = share * remaining * cfg.picks_per_game
        rows.append((key, current + expected_future, current, expected_future))

    total_value = sum(value for _, value, _, _ in rows)
    if total_value == 0:
        # no picks recorded yet: all zeros, deliberately not a uniform split
        return [
            PickProbability(key, 0.0, {"current": current, "expected_future": future})
            for key, _, current, future in rows
        ]

    return _by_probability([
        PickProbability(key, value / total_value, {"current": current, "expected_future": future})
        for key, value, current, future in rows
    ])


def numeric_probabilities(question: Question, inputs: QuestionInputs, cfg: ProjectionConfig) -> list[PickProbability]:
    buckets = question.config.get("buckets")
    if not isinstance(buckets, list) or not buckets:
        log.warning("question %s: numeric question has no buckets", question.id)
        return []

    rate = float(question.config.get("per_game_rate", cfg.default_per_game_rate))
    played = inputs.games_played(question.tournament_slug)
    remaining = inputs.remaining_game_count(question.tournament_slug)
    estimate = rate * (played + remaining)

    rows = [PickProbability(str(b), 0.0, {"estimate": estimate}) for b in buckets]
    target = next((i for i, b in enumerate(buckets) if in_bucket(str(b), estimate)), None)
    if target is not None:
        rows[target].probability = 1.0
    else:
        log.warning("question %s: estimate %.1f matches no bucket, using uniform", question.id, estimate)
        for row in rows:
            row.probability = 1.0 / len(rows)
    return rows


_HANDLERS = {
    QuestionType.BINARY: binary_probabilities,
    QuestionType.CATEGORICAL: categorical_probabilities,
    QuestionType.NUMERIC: numeric_probabilities,
}


def calculate_pick_probabilities(
    question: Question,
    inputs: QuestionInputs,
    cfg: ProjectionConfig | None = None,
) -> list[PickProbability]:
    handler = _HANDLERS.get(question.type)
    if handler is None:
        log.warning("question %s: unsupported type %r", question.id, question.type)
        return []
    return handler(question, inputs, cfg or ProjectionConfig())
