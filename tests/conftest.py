from datetime import datetime, timedelta

import pytest

from crystal.bracket.structure import BracketGraph, Match, Series
from crystal.service import Engine
from crystal.store.engine import create_all, create_engine, create_session_factory
from crystal.store.models import (
    ChampionPick,
    MatchRecord,
    QuestionRecord,
    SeriesRecord,
    Stage,
    Team,
    Tournament,
)
from crystal.store.ratings import SqlRatingStore
from crystal.store.schedule import SqlScheduleStore
from crystal.store.snapshots import SqlSnapshotStore
from crystal.utils.config import CrystalConfig

T0 = datetime(2025, 10, 25, 12, 0, 0)


def knockout_graph(overrides: dict | None = None) -> BracketGraph:
    """Two semifinals (1v2, 3v4) feeding one final; all best-of-five."""
    series = [
        Series(id=101, round=1, index_in_round=1, best_of=5, team_a_id=1, team_b_id=2, feeds_winner_to_id=103),
        Series(id=102, round=1, index_in_round=2, best_of=5, team_a_id=3, team_b_id=4, feeds_winner_to_id=103),
        Series(id=103, round=2, index_in_round=1, best_of=5),
    ]
    for s in series:
        for key, value in (overrides or {}).get(s.id, {}).items():
            setattr(s, key, value)
    return BracketGraph(series)


def completed_games(series_id, team_a, team_b, winners, start_id=1000, start=T0):
    """Match records for a series where ``winners`` lists each game's winner."""
    return [
        Match(
            id=start_id + i,
            series_id=series_id,
            game_index=i + 1,
            status="completed",
            team_a_id=team_a,
            team_b_id=team_b,
            winner_team_id=w,
            started_at=start + timedelta(hours=i),
            completed_at=start + timedelta(hours=i, minutes=40),
        )
        for i, w in enumerate(winners)
    ]


@pytest.fixture
def sessions(tmp_path):
    db = create_engine(f"sqlite:///{tmp_path / 'crystal.db'}")
    create_all(db)
    yield create_session_factory(db)
    db.dispose()


@pytest.fixture
def seeded(sessions):
    """A four-team knockout with three questions, nothing played yet."""
    with sessions.begin() as s:
        s.add(Tournament(id=1, slug="worlds-2025", name="Worlds 2025", year=2025))
        s.add_all(
            Team(id=i, slug=slug, name=slug.upper())
            for i, slug in enumerate(["gen", "t1", "blg", "hle"], start=1)
        )
        s.add(Stage(id=1, tournament_id=1, name="Knockout", order=2, best_of=5, type="knockout"))
        s.add_all([
            SeriesRecord(id=101, stage_id=1, round=1, index_in_round=1, best_of=5,
                         team_a_id=1, team_b_id=2, feeds_winner_to_id=103),
            SeriesRecord(id=102, stage_id=1, round=1, index_in_round=2, best_of=5,
                         team_a_id=3, team_b_id=4, feeds_winner_to_id=103),
            SeriesRecord(id=103, stage_id=1, round=2, index_in_round=1, best_of=5),
        ])
        s.add_all([
            QuestionRecord(id=1, slug="team-wins-worlds", tournament_id=1,
                           text="Which team will win Worlds?", type="binary",
                           config={"answer_pool": "teams_active"}),
            QuestionRecord(id=2, slug="most-picked-champion", tournament_id=1,
                           text="Which champion will be picked the most?", type="categorical",
                           config={"answer_pool": "champions_all"}),
            QuestionRecord(id=3, slug="total-barons", tournament_id=1,
                           text="How many Barons will be slain in total?", type="numeric",
                           config={"buckets": ["0-10", "11-20", "21+"]}),
        ])
        s.add_all(
            ChampionPick(tournament_slug="worlds-2025", game_key=f"g{i}", champion_key=key)
            for i, key in enumerate(["ahri"] * 6 + ["azir"] * 3 + ["jinx"])
        )
    return sessions


def record_series_win(sessions, series_id, team_a, team_b, winners, start_id=5000):
    """Store completed games for a series and mark it decided."""
    with sessions.begin() as s:
        for m in completed_games(series_id, team_a, team_b, winners, start_id=start_id):
            s.add(MatchRecord(
                id=m.id, series_id=m.series_id, game_index=m.game_index, status=m.status,
                team_a_id=m.team_a_id, team_b_id=m.team_b_id, winner_team_id=m.winner_team_id,
                started_at=m.started_at, completed_at=m.completed_at,
            ))
        row = s.get(SeriesRecord, series_id)
        row.status = "completed"
        row.winner_team_id = max(set(winners), key=winners.count)


@pytest.fixture
def engine(seeded):
    cfg = CrystalConfig()
    return Engine(
        ratings=SqlRatingStore(seeded, cfg.elo),
        schedule=SqlScheduleStore(seeded),
        snapshots=SqlSnapshotStore(seeded),
        config=cfg,
    )
