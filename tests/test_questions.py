import pytest

from crystal.predictions.questions import (
    Question,
    QuestionType,
    calculate_pick_probabilities,
    in_bucket,
    parse_bucket,
)
from crystal.utils.config import ProjectionConfig


class FakeInputs:
    def __init__(self, champion=None, slugs=None, remaining=0, played=0, picks=None):
        self.champion = champion or {}
        self.slugs = slugs or {}
        self.remaining = remaining
        self.played = played
        self.picks = picks or {}

    def champion_distribution(self, tournament_id):
        return self.champion

    def team_slugs(self, team_ids):
        return {t: self.slugs[t] for t in team_ids if t in self.slugs}

    def remaining_game_count(self, tournament_slug):
        return self.remaining

    def games_played(self, tournament_slug):
        return self.played

    def pick_counts(self, tournament_slug):
        return self.picks


def question(type_, **config):
    return Question(id=9, tournament_id=1, tournament_slug="worlds-2025", type=type_, config=config)


# ── binary ───────────────────────────────────────────────────────────────────

def test_binary_copies_champion_distribution_sorted():
    inputs = FakeInputs(champion={1: 0.2, 2: 0.5, 3: 0.3}, slugs={1: "gen", 2: "t1"})
    rows = calculate_pick_probabilities(question(QuestionType.BINARY, answer_pool="teams_active"), inputs)
    assert [(r.answer_key, r.probability) for r in rows] == [("t1", 0.5), ("3", 0.3), ("gen", 0.2)]
    assert rows[0].details == {"team_id": 2, "question_id": 9}


def test_binary_with_wrong_pool_is_empty():
    inputs = FakeInputs(champion={1: 1.0})
    assert calculate_pick_probabilities(question(QuestionType.BINARY, answer_pool="players"), inputs) == []


def test_binary_without_bracket_is_empty():
    assert calculate_pick_probabilities(question(QuestionType.BINARY, answer_pool="teams_active"), FakeInputs()) == []


# ── categorical ──────────────────────────────────────────────────────────────

def test_categorical_projects_share_of_remaining_games():
    inputs = FakeInputs(remaining=2, picks={"jinx": 1, "ahri": 6, "azir": 3})
    rows = calculate_pick_probabilities(question(QuestionType.CATEGORICAL, answer_pool="champions_all"), inputs)
    assert [r.answer_key for r in rows] == ["ahri", "azir", "jinx"]
    assert [r.probability for r in rows] == pytest.approx([0.6, 0.3, 0.1])
    assert rows[0].details == pytest.approx({"current": 6, "expected_future": 12.0})


def test_categorical_uses_configured_picks_per_game():
    inputs = FakeInputs(remaining=1, picks={"ahri": 1, "azir": 1})
    rows = calculate_pick_probabilities(
        question(QuestionType.CATEGORICAL, answer_pool="champions_all"),
        inputs,
        ProjectionConfig(picks_per_game=4),
    )
    assert rows[0].details["expected_future"] == pytest.approx(2.0)


def test_categorical_with_no_weight_is_all_zero():
    inputs = FakeInputs(remaining=5, picks={"ahri": 0, "azir": 0})
    rows = calculate_pick_probabilities(question(QuestionType.CATEGORICAL, answer_pool="champions_all"), inputs)
    assert [r.probability for r in rows] == [0.0, 0.0]
    assert sum(r.probability for r in rows) == 0


def test_categorical_with_wrong_pool_is_empty():
    inputs = FakeInputs(picks={"ahri": 3})
    assert calculate_pick_probabilities(question(QuestionType.CATEGORICAL, answer_pool="teams_active"), inputs) == []


# ── numeric ──────────────────────────────────────────────────────────────────

BUCKETS = ["0-20", "21-40", "41-60", "61+"]


@pytest.mark.parametrize("played,remaining,expected", [
    (10, 10, "0-20"),
    (11, 10, "21-40"),
    (30, 10, "21-40"),
    (40, 21, "61+"),
])
def test_numeric_places_estimate_in_one_bucket(played, remaining, expected):
    inputs = FakeInputs(played=played, remaining=remaining)
    rows = calculate_pick_probabilities(question(QuestionType.NUMERIC, buckets=BUCKETS), inputs)
    assert [r.answer_key for r in rows] == BUCKETS
    assert {r.answer_key: r.probability for r in rows}[expected] == 1.0
    assert sum(r.probability for r in rows) == 1.0


def test_numeric_uses_per_game_rate():
    inputs = FakeInputs(played=10, remaining=15)
    rows = calculate_pick_probabilities(question(QuestionType.NUMERIC, buckets=BUCKETS, per_game_rate=2), inputs)
    assert rows[2].probability == 1.0
    assert rows[2].details == {"estimate": 50.0}


def test_numeric_without_matching_bucket_is_uniform():
    inputs = FakeInputs(played=100)
    rows = calculate_pick_probabilities(question(QuestionType.NUMERIC, buckets=["0-10", "few", "11-20"]), inputs)
    assert [r.probability for r in rows] == pytest.approx([1 / 3] * 3)


@pytest.mark.parametrize("config", [{}, {"buckets": []}, {"buckets": "0-10"}])
def test_numeric_without_buckets_is_empty(config):
    assert calculate_pick_probabilities(question(QuestionType.NUMERIC, **config), FakeInputs()) == []


def test_unknown_question_type_is_empty():
    assert QuestionType.parse("ranking") is None
    assert calculate_pick_probabilities(question(None, answer_pool="teams_active"), FakeInputs()) == []


# ── buckets ──────────────────────────────────────────────────────────────────

def test_parse_bucket():
    assert parse_bucket("21-40") == (21, 40)
    assert parse_bucket("61+") == (61, None)
    assert parse_bucket(" 5-9 ") == (5, 9)
    assert parse_bucket("a lot") is None
    assert parse_bucket("-5") is None


def test_bucket_bounds_are_inclusive():
    assert in_bucket("21-40", 21)
    assert in_bucket("21-40", 40)
    assert not in_bucket("21-40", 40.5)
    assert in_bucket("61+", 61)
    assert not in_bucket("61+", 60.9)
