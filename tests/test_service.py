import pytest

from conftest import record_series_win
from crystal.predictions.questions import PickProbability
from crystal.service import Engine, compute_series_win_probability
from crystal.utils.config import CrystalConfig, StoreConfig
from crystal.utils.errors import NotFoundError


def test_even_field_gives_equal_champion_odds(engine):
    champion = engine.compute_tournament_outcome(1)
    assert set(champion) == {1, 2, 3, 4}
    for p in champion.values():
        assert p == pytest.approx(0.25)


def test_unknown_ids_raise_not_found(engine):
    with pytest.raises(NotFoundError) as exc:
        engine.compute_tournament_outcome(99)
    assert exc.value.kind == "tournament"
    assert exc.value.key == 99

    with pytest.raises(NotFoundError):
        engine.compute_pick_probabilities(99)
    with pytest.raises(NotFoundError):
        engine.rebuild_ratings(99)
    with pytest.raises(NotFoundError):
        engine.refresh_tournament("nope")


def test_rebuild_ratings(engine, seeded):
    record_series_win(seeded, 101, 1, 2, [1, 1, 1])

    result = engine.rebuild_ratings(1)
    assert result.matches_processed == 3
    assert result.teams_updated == 2
    assert result.metrics["n_games"] == 3
    assert engine.ratings.get_current_rating(1) > 1500
    assert engine.ratings.get_current_rating(2) < 1500


def test_rebuild_twice_leaves_same_history(engine, seeded):
    record_series_win(seeded, 101, 1, 2, [1, 1, 1])

    engine.rebuild_ratings(1)
    first = engine.ratings.get_current_rating(1)
    engine.rebuild_ratings(1)

    rebuilds = [r for r in engine.ratings.history(1) if r.source == "elo-rebuild"]
    assert len(rebuilds) == 3
    assert engine.ratings.get_current_rating(1) == pytest.approx(first)


def test_rebuild_with_no_games(engine):
    result = engine.rebuild_ratings(1)
    assert result.matches_processed == 0
    assert result.teams_updated == 0
    assert result.metrics == {}


def test_eliminated_team_drops_out(engine, seeded):
    record_series_win(seeded, 101, 1, 2, [1, 1, 1])
    champion = engine.compute_tournament_outcome(1)
    assert 2 not in champion
    assert sum(champion.values()) == pytest.approx(1.0)
    assert champion[1] == pytest.approx(0.5)


def test_rating_gap_favours_stronger_team(engine):
    engine.ratings.write_rating_record(3, 1800.0)
    champion = engine.compute_tournament_outcome(1)
    assert max(champion, key=champion.get) == 3
    assert sum(champion.values()) == pytest.approx(1.0)


def test_binary_question_uses_team_slugs(engine):
    rows = engine.compute_pick_probabilities(1)
    assert {r.answer_key for r in rows} == {"gen", "t1", "blg", "hle"}
    assert sum(r.probability for r in rows) == pytest.approx(1.0)


def test_categorical_question(engine):
    rows = engine.compute_pick_probabilities(2)
    assert [r.answer_key for r in rows] == ["ahri", "azir", "jinx"]
    assert rows[0].probability == pytest.approx(0.6)
    assert rows[0].details == {"current": 6, "expected_future": pytest.approx(90.0)}


def test_numeric_question(engine):
    rows = engine.compute_pick_probabilities(3)
    # three untouched Bo5 series: 15 games at one Baron each
    assert [(r.answer_key, r.probability) for r in rows] == [
        ("0-10", 0.0), ("11-20", 1.0), ("21+", 0.0),
    ]


def test_refresh_tournament_writes_every_question(engine):
    written = engine.refresh_tournament("worlds-2025")
    assert written == {"team-wins-worlds": 4, "most-picked-champion": 3, "total-barons": 3}
    latest = engine.snapshots.read_latest_snapshots(2)
    assert latest[0].answer_key == "ahri"
    assert latest[0].probability == pytest.approx(0.6)


def test_latest_or_refresh_computes_once(engine):
    first = engine.latest_or_refresh(3)
    second = engine.latest_or_refresh(3)
    assert [s.answer_key for s in first] == ["0-10", "11-20", "21+"]
    assert {s.as_of for s in first} == {s.as_of for s in second}
    assert len(engine.snapshots.read_history(3)) == 3


def test_refresh_question_appends_a_batch(engine):
    engine.refresh_question(1)
    engine.refresh_question(1)
    assert len(engine.snapshots.read_history(1)) == 8
    assert len(engine.snapshots.read_latest_snapshots(1)) == 4


def test_from_config_creates_tables(tmp_path):
    cfg = CrystalConfig(store=StoreConfig(database_url=f"sqlite:///{tmp_path / 'fresh.db'}"))
    engine = Engine.from_config(cfg)
    assert engine.schedule.get_tournament(1) is None
    assert engine.ratings.get_current_rating(7) == cfg.elo.base


def test_series_probability_is_reexported():
    assert compute_series_win_probability(1500, 1500, 5) == pytest.approx(0.5)
    assert compute_series_win_probability(1500, 1500, 5, wins_a=3) == 1.0


def test_pick_probability_rows_are_snapshot_compatible(engine):
    engine.snapshots.write_snapshots(1, [PickProbability("gen", 1.0)])
    assert engine.snapshots.read_latest_snapshots(1)[0].details == {}


def test_stored_numeric_buckets_keep_declared_order(engine):
    engine.refresh_question(3)
    latest = engine.snapshots.read_latest_snapshots(3)
    assert [(s.answer_key, s.probability) for s in latest] == [
        ("0-10", 0.0), ("11-20", 1.0), ("21+", 0.0),
    ]


def test_stored_binary_answers_stay_most_likely_first(engine):
    engine.ratings.write_rating_record(4, 1750.0)
    engine.refresh_question(1)
    latest = engine.snapshots.read_latest_snapshots(1)
    assert latest[0].answer_key == "hle"
    probabilities = [s.probability for s in latest]
    assert probabilities == sorted(probabilities, reverse=True)


def test_simulation_matches_exact_odds(engine):
    engine.ratings.write_rating_record(1, 1650.0)
    exact = engine.compute_tournament_outcome(1)
    sampled = engine.simulate_tournament_outcome(1, n_sims=5000, seed=11)
    for team_id, p in exact.items():
        assert sampled.get(team_id, 0.0) == pytest.approx(p, abs=0.03)


def test_simulation_skips_eliminated_teams(engine, seeded):
    record_series_win(seeded, 101, 1, 2, [2, 2, 2])
    sampled = engine.simulate_tournament_outcome(1, n_sims=500)
    assert 1 not in sampled
    assert sum(sampled.values()) == pytest.approx(1.0)


def test_simulation_of_unknown_tournament(engine):
    with pytest.raises(NotFoundError):
        engine.simulate_tournament_outcome(99)
