import pytest

from conftest import knockout_graph
from crystal.bracket.propagator import propagate
from crystal.bracket.simulator import simulate_tournament
from crystal.predictions.matchup import rating_series_probability
from crystal.ratings.elo import EloEngine


def test_simulation_agrees_with_exact_propagation():
    engine = EloEngine(ratings={1: 1650.0, 2: 1500.0, 3: 1580.0, 4: 1420.0})
    graph = knockout_graph()

    exact = propagate(graph, rating_series_probability(engine.rating)).champion
    sampled = simulate_tournament(graph, engine.win_prob, n_sims=20_000, seed=7)

    for team_id, p in exact.items():
        assert sampled.get(team_id, 0.0) == pytest.approx(p, abs=0.02)


def test_simulation_respects_completed_series():
    graph = knockout_graph({
        101: {"status": "completed", "winner_team_id": 1},
        102: {"status": "completed", "winner_team_id": 4},
        103: {"status": "completed", "winner_team_id": 4, "team_a_id": 1, "team_b_id": 4},
    })
    assert simulate_tournament(graph, lambda a, b: 0.5, n_sims=50) == {4: 1.0}


def test_simulation_is_reproducible_with_a_seed():
    graph = knockout_graph()
    first = simulate_tournament(graph, lambda a, b: 0.5, n_sims=500, seed=3)
    second = simulate_tournament(graph, lambda a, b: 0.5, n_sims=500, seed=3)
    assert first == second
