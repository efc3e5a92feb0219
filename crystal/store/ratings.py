"""SQLAlchemy-backed rating history."""

from __future__ import annotations

from sqlalchemy import delete, select

from crystal.ratings.elo import SOURCE_LOCAL, SOURCE_REBUILD, SOURCE_SEED, EloConfig
from crystal.utils.logging import get_logger

from .models import TeamRating

log = get_logger(__name__)


class SqlRatingStore:
    """Append-only rating records; the current rating is the newest row."""

    def __init__(self, session_factory, cfg: EloConfig | None = None):
        self.session_factory = session_factory
        self.cfg = cfg or EloConfig()

    def _latest(self, session, team_id: int) -> TeamRating | None:
        stmt = (
            select(TeamRating)
            .where(TeamRating.team_id == team_id)
            .order_by(TeamRating.created_at.desc(), TeamRating.id.desc())
            .limit(1)
        )
        return session.execute(stmt).scalars().first()

    def get_current_rating(self, team_id: int) -> float:
        """Newest rating; an unseen team is seeded with the base rating."""
        with self.session_factory.begin() as session:
            latest = self._latest(session, team_id)
            if latest is not None:
                return latest.rating
            session.add(TeamRating(team_id=team_id, rating=self.cfg.base, source=SOURCE_SEED))
            log.debug("seeded team %s at base rating %.1f", team_id, self.cfg.base)
            return self.cfg.base

    def get_ratings(self, team_ids: list[int]) -> dict[int, float]:
        if not team_ids:
            return {}
        with self.session_factory.begin() as session:
            stmt = (
                select(TeamRating)
                .where(TeamRating.team_id.in_(team_ids))
                .order_by(TeamRating.team_id, TeamRating.created_at.desc(), TeamRating.id.desc())
            )
            ratings: dict[int, float] = {}
            for record in session.execute(stmt).scalars():
                ratings.setdefault(record.team_id, record.rating)

            missing = [t for t in team_ids if t not in ratings]
            for team_id in missing:
                session.add(TeamRating(team_id=team_id, rating=self.cfg.base, source=SOURCE_SEED))
                ratings[team_id] = self.cfg.base
            return {t: ratings[t] for t in team_ids}

    def write_rating_record(self, team_id: int, rating: float, source: str = SOURCE_LOCAL) -> None:
        with self.session_factory.begin() as session:
            session.add(TeamRating(team_id=team_id, rating=rating, source=source))

    def replace_rebuild_ratings(self, team_ids: list[int], rows: list[tuple[int, float, str]]) -> None:
        with self.session_factory.begin() as session:
            if team_ids:
                result = session.execute(
                    delete(TeamRating).where(
                        TeamRating.team_id.in_(team_ids),
                        TeamRating.source.in_([SOURCE_REBUILD, SOURCE_LOCAL]),
                    )
                )
                log.debug("cleared %s prior rating records", result.rowcount)
            session.add_all(
                TeamRating(team_id=team_id, rating=rating, source=source)
                for team_id, rating, source in rows
            )

    def history(self, team_id: int) -> list[TeamRating]:
        """All records for a team, oldest first."""
        with self.session_factory() as session:
            stmt = (
                select(TeamRating)
                .where(TeamRating.team_id == team_id)
                .order_by(TeamRating.created_at, TeamRating.id)
            )
            return list(session.execute(stmt).scalars())
