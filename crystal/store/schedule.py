"""SQLAlchemy-backed tournament, bracket and question reads."""

from __future__ import annotations

from sqlalchemy import func, select

from crystal.bracket.structure import COMPLETED, BracketGraph, Match, Series
from crystal.predictions.questions import Question, QuestionType
from crystal.ratings.elo import chronological
from crystal.schedule.remaining import total_games_played, total_potential_games

from .models import (
    ChampionPick,
    MatchRecord,
    QuestionRecord,
    SeriesRecord,
    Stage,
    Team,
    Tournament,
)


def _to_match(row: MatchRecord) -> Match:
    return Match(
        id=row.id,
        series_id=row.series_id,
        game_index=row.game_index,
        status=row.status,
        team_a_id=row.team_a_id,
        team_b_id=row.team_b_id,
        winner_team_id=row.winner_team_id,
        started_at=row.started_at,
        completed_at=row.completed_at,
    )


def _to_question(row: QuestionRecord, tournament: Tournament) -> Question:
    return Question(
        id=row.id,
        slug=row.slug,
        text=row.text,
        tournament_id=row.tournament_id,
        tournament_slug=tournament.slug,
        type=QuestionType.parse(row.type),
        config=dict(row.config or {}),
    )


class SqlScheduleStore:
    def __init__(self, session_factory):
        self.session_factory = session_factory

    def get_tournament(self, tournament_id: int) -> Tournament | None:
        with self.session_factory() as session:
            return session.get(Tournament, tournament_id)

    def get_tournament_by_slug(self, slug: str) -> Tournament | None:
        with self.session_factory() as session:
            return session.execute(
                select(Tournament).where(Tournament.slug == slug)
            ).scalars().first()

    def get_bracket_graph(self, tournament_id: int) -> BracketGraph:
        """Every series of every stage, with its games, as one feed graph."""
        with self.session_factory() as session:
            rows = session.execute(
                select(SeriesRecord, Stage.order)
                .join(Stage, SeriesRecord.stage_id == Stage.id)
                .where(Stage.tournament_id == tournament_id)
                .order_by(Stage.order, SeriesRecord.round, SeriesRecord.index_in_round)
            ).all()
            series_ids = [s.id for s, _ in rows]
            matches: dict[int, list[Match]] = {sid: [] for sid in series_ids}
            if series_ids:
                for m in session.execute(
                    select(MatchRecord)
                    .where(MatchRecord.series_id.in_(series_ids))
                    .order_by(MatchRecord.series_id, MatchRecord.game_index)
                ).scalars():
                    matches[m.series_id].append(_to_match(m))

        return BracketGraph([
            Series(
                id=s.id,
                round=s.round,
                index_in_round=s.index_in_round,
                best_of=s.best_of,
                status=s.status,
                team_a_id=s.team_a_id,
                team_b_id=s.team_b_id,
                winner_team_id=s.winner_team_id,
                feeds_winner_to_id=s.feeds_winner_to_id,
                feeds_loser_to_id=s.feeds_loser_to_id,
                stage_id=s.stage_id,
                stage_order=stage_order,
                matches=matches[s.id],
            )
            for s, stage_order in rows
        ])

    def get_completed_matches_chronological(self, tournament_id: int) -> list[Match]:
        with self.session_factory() as session:
            rows = session.execute(
                select(MatchRecord)
                .join(SeriesRecord, MatchRecord.series_id == SeriesRecord.id)
                .join(Stage, SeriesRecord.stage_id == Stage.id)
                .where(
                    Stage.tournament_id == tournament_id,
                    MatchRecord.status == COMPLETED,
                    MatchRecord.winner_team_id.is_not(None),
                )
            ).scalars().all()
        # sorted here rather than in SQL: NULL ordering differs between dialects
        return chronological(_to_match(r) for r in rows)

    def _graph_for_slug(self, tournament_slug: str) -> BracketGraph | None:
        tournament = self.get_tournament_by_slug(tournament_slug)
        if tournament is None:
            return None
        return self.get_bracket_graph(tournament.id)

    def get_remaining_game_count(self, tournament_slug: str) -> int:
        graph = self._graph_for_slug(tournament_slug)
        return total_potential_games(graph) if graph is not None else 0

    def get_games_played(self, tournament_slug: str) -> int:
        graph = self._graph_for_slug(tournament_slug)
        return total_games_played(graph) if graph is not None else 0

    def get_pick_counts(self, tournament_slug: str) -> dict[str, int]:
        with self.session_factory() as session:
            rows = session.execute(
                select(ChampionPick.champion_key, func.count(ChampionPick.id))
                .where(ChampionPick.tournament_slug == tournament_slug)
                .group_by(ChampionPick.champion_key)
                .order_by(ChampionPick.champion_key)
            ).all()
        return {key: count for key, count in rows}

    def get_question(self, question_id: int) -> Question | None:
        with self.session_factory() as session:
            row = session.get(QuestionRecord, question_id)
            if row is None:
                return None
            tournament = session.get(Tournament, row.tournament_id)
            return _to_question(row, tournament)

    def list_questions(self, tournament_id: int) -> list[Question]:
        with self.session_factory() as session:
            tournament = session.get(Tournament, tournament_id)
            if tournament is None:
                return []
            rows = session.execute(
                select(QuestionRecord)
                .where(QuestionRecord.tournament_id == tournament_id)
                .order_by(QuestionRecord.id)
            ).scalars()
            return [_to_question(r, tournament) for r in rows]

    def get_team_slugs(self, team_ids: list[int]) -> dict[int, str]:
        if not team_ids:
            return {}
        with self.session_factory() as session:
            rows = session.execute(
                select(Team.id, Team.slug).where(Team.id.in_(team_ids))
            ).all()
        return {team_id: slug for team_id, slug in rows}
