from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import (
    JSON,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
)

from .engine import Base


def utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


class Team(Base):
    __tablename__ = "teams"

    id = Column(Integer, primary_key=True, autoincrement=True)
    slug = Column(String, unique=True, nullable=False)
    name = Column(String, nullable=False)


class TeamRating(Base):
    """Append-only rating history; the newest row is the current rating."""

    __tablename__ = "team_ratings"
    __table_args__ = (Index("ix_team_ratings_team_created", "team_id", "created_at"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    team_id = Column(Integer, ForeignKey("teams.id"), nullable=False)
    rating = Column(Float, nullable=False)
    source = Column(String, nullable=False)  # elo-seed | elo-rebuild | elo-local
    created_at = Column(DateTime, nullable=False, default=utcnow)


class Tournament(Base):
    __tablename__ = "tournaments"

    id = Column(Integer, primary_key=True, autoincrement=True)
    slug = Column(String, unique=True, nullable=False)
    name = Column(String, nullable=False)
    year = Column(Integer, nullable=True)


class Stage(Base):
    __tablename__ = "stages"
    __table_args__ = (Index("ix_stages_tournament_id", "tournament_id"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    tournament_id = Column(Integer, ForeignKey("tournaments.id"), nullable=False)
    name = Column(String, nullable=False)
    order = Column(Integer, nullable=False, default=0)
    best_of = Column(Integer, nullable=False, default=1)
    type = Column(String, nullable=True)  # e.g. 'swiss', 'knockout'


class SeriesRecord(Base):
    __tablename__ = "series"
    __table_args__ = (Index("ix_series_stage_id", "stage_id"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    stage_id = Column(Integer, ForeignKey("stages.id"), nullable=False)
    round = Column(Integer, nullable=False)
    index_in_round = Column(Integer, nullable=False)
    best_of = Column(Integer, nullable=False)
    status = Column(String, nullable=False, default="scheduled")
    team_a_id = Column(Integer, ForeignKey("teams.id"), nullable=True)
    team_b_id = Column(Integer, ForeignKey("teams.id"), nullable=True)
    winner_team_id = Column(Integer, ForeignKey("teams.id"), nullable=True)
    feeds_winner_to_id = Column(Integer, ForeignKey("series.id"), nullable=True)
    feeds_loser_to_id = Column(Integer, ForeignKey("series.id"), nullable=True)
    scheduled_at = Column(DateTime, nullable=True)


class MatchRecord(Base):
    __tablename__ = "matches"
    __table_args__ = (Index("ix_matches_series_id", "series_id"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    series_id = Column(Integer, ForeignKey("series.id"), nullable=False)
    game_index = Column(Integer, nullable=False)
    status = Column(String, nullable=False, default="scheduled")
    team_a_id = Column(Integer, ForeignKey("teams.id"), nullable=True)
    team_b_id = Column(Integer, ForeignKey("teams.id"), nullable=True)
    winner_team_id = Column(Integer, ForeignKey("teams.id"), nullable=True)
    started_at = Column(DateTime, nullable=True)
    completed_at = Column(DateTime, nullable=True)


class ChampionPick(Base):
    """One champion selection in one game, as imported from game stats."""

    __tablename__ = "champion_picks"
    __table_args__ = (Index("ix_champion_picks_tournament", "tournament_slug"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    tournament_slug = Column(String, nullable=False)
    game_key = Column(String, nullable=False)
    champion_key = Column(String, nullable=False)


class QuestionRecord(Base):
    __tablename__ = "questions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    slug = Column(String, unique=True, nullable=False)
    tournament_id = Column(Integer, ForeignKey("tournaments.id"), nullable=False)
    text = Column(Text, nullable=False)
    type = Column(String, nullable=False)  # binary | categorical | numeric
    config = Column(JSON, nullable=True)


class ProbabilitySnapshot(Base):
    __tablename__ = "probability_snapshots"
    __table_args__ = (Index("ix_snapshots_question_as_of", "question_id", "as_of"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    question_id = Column(Integer, ForeignKey("questions.id"), nullable=False)
    answer_key = Column(String, nullable=False)
    probability = Column(Float, nullable=False)
    details = Column(JSON, nullable=True)
    as_of = Column(DateTime, nullable=False, default=utcnow)
