"""
Engine facade: the operations callers use.

    engine = Engine.from_config(CrystalConfig.from_env())
    engine.compute_tournament_outcome(tournament_id)   # {team_id: P(champion)}
    engine.simulate_tournament_outcome(tournament_id)  # Monte Carlo cross-check
    engine.compute_pick_probabilities(question_id)     # [PickProbability, ...]
    engine.rebuild_ratings(tournament_id)              # RebuildResult
    engine.refresh_tournament("worlds-2025")           # recompute + snapshot

Unknown tournaments and questions raise NotFoundError before any work is
done. Storage errors are not caught here.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from crystal.bracket.propagator import TournamentOutcome, propagate
from crystal.bracket.simulator import simulate_tournament
from crystal.predictions.matchup import compute_series_win_probability, rating_series_probability
from crystal.predictions.questions import PickProbability, calculate_pick_probabilities
from crystal.ratings.elo import SOURCE_REBUILD, EloEngine, game_win_probability
from crystal.store.engine import create_all, create_engine, create_session_factory
from crystal.store.protocols import RatingStore, ScheduleStore, SnapshotStore
from crystal.store.ratings import SqlRatingStore
from crystal.store.schedule import SqlScheduleStore
from crystal.store.snapshots import SqlSnapshotStore
from crystal.utils.config import CrystalConfig
from crystal.utils.errors import NotFoundError
from crystal.utils.logging import get_logger, log_timing
from crystal.utils.metrics import evaluate

log = get_logger(__name__)

__all__ = ["Engine", "RebuildResult", "compute_series_win_probability"]


@dataclass
class RebuildResult:
    teams_updated: int
    matches_processed: int
    metrics: dict = field(default_factory=dict)
    history: list[dict] = field(default_factory=list, repr=False)


class Engine:
    def __init__(
        self,
        ratings: RatingStore,
        schedule: ScheduleStore,
        snapshots: SnapshotStore,
        config: CrystalConfig | None = None,
    ):
        self.ratings = ratings
        self.schedule = schedule
        self.snapshots = snapshots
        self.config = config or CrystalConfig()

    @classmethod
    def from_config(cls, config: CrystalConfig) -> "Engine":
        """Wire SQL stores for ``config.store.database_url``, creating tables if needed."""
        db = create_engine(config.store.database_url, echo=config.store.echo)
        create_all(db)
        sessions = create_session_factory(db)
        return cls(
            ratings=SqlRatingStore(sessions, config.elo),
            schedule=SqlScheduleStore(sessions),
            snapshots=SqlSnapshotStore(sessions),
            config=config,
        )

    # ------------------------------------------------------------------ #
    # Tournament outcome                                                   #
    # ------------------------------------------------------------------ #

    def tournament_outcome(self, tournament_id: int) -> TournamentOutcome:
        """Full propagation result: champion plus per-series distributions."""
        if self.schedule.get_tournament(tournament_id) is None:
            raise NotFoundError("tournament", tournament_id)
        graph = self.schedule.get_bracket_graph(tournament_id)
        series_prob = rating_series_probability(self.ratings.get_current_rating, self.config.elo)
        outcome = propagate(graph, series_prob)
        log.info(
            "tournament %s: %d series, %d possible champions",
            tournament_id, len(graph), len(outcome.champion),
        )
        return outcome

    def compute_tournament_outcome(self, tournament_id: int) -> dict:
        return dict(self.tournament_outcome(tournament_id).champion)

    def simulate_tournament_outcome(self, tournament_id: int, n_sims: int = 10_000, seed: int = 42) -> dict:
        """Monte Carlo champion odds over the same bracket and ratings."""
        if self.schedule.get_tournament(tournament_id) is None:
            raise NotFoundError("tournament", tournament_id)
        graph = self.schedule.get_bracket_graph(tournament_id)
        ratings: dict = {}

        def rating(team_id) -> float:
            if team_id not in ratings:
                ratings[team_id] = self.ratings.get_current_rating(team_id)
            return ratings[team_id]

        def game_prob(team_a, team_b) -> float:
            return game_win_probability(rating(team_a), rating(team_b), self.config.elo)

        with log_timing(log, f"simulating tournament {tournament_id} ({n_sims:,} runs)"):
            return simulate_tournament(graph, game_prob, n_sims=n_sims, seed=seed)

    # ------------------------------------------------------------------ #
    # Question inputs                                                      #
    # ------------------------------------------------------------------ #

    def champion_distribution(self, tournament_id: int) -> dict:
        return self.compute_tournament_outcome(tournament_id)

    def team_slugs(self, team_ids: list) -> dict:
        return self.schedule.get_team_slugs(team_ids)

    def remaining_game_count(self, tournament_slug: str) -> int:
        return self.schedule.get_remaining_game_count(tournament_slug)

    def games_played(self, tournament_slug: str) -> int:
        return self.schedule.get_games_played(tournament_slug)

    def pick_counts(self, tournament_slug: str) -> dict:
        return self.schedule.get_pick_counts(tournament_slug)

    # ------------------------------------------------------------------ #
    # Questions and snapshots                                              #
    # ------------------------------------------------------------------ #

    def compute_pick_probabilities(self, question_id: int) -> list[PickProbability]:
        question = self.schedule.get_question(question_id)
        if question is None:
            raise NotFoundError("question", question_id)
        return calculate_pick_probabilities(question, self, self.config.projection)

    def refresh_question(self, question_id: int) -> list[PickProbability]:
        """Recompute one question and append the result as a new snapshot batch."""
        probabilities = self.compute_pick_probabilities(question_id)
        self.snapshots.write_snapshots(question_id, probabilities)
        return probabilities

    def latest_or_refresh(self, question_id: int) -> list:
        """Latest snapshot batch, computing and storing one first if none exists."""
        latest = self.snapshots.read_latest_snapshots(question_id)
        if latest:
            return latest
        self.refresh_question(question_id)
        return self.snapshots.read_latest_snapshots(question_id)

    def refresh_tournament(self, tournament_slug: str) -> dict:
        """Refresh every question of a tournament. Returns {question slug: answers written}."""
        tournament = self.schedule.get_tournament_by_slug(tournament_slug)
        if tournament is None:
            raise NotFoundError("tournament", tournament_slug)
        written = {}
        with log_timing(log, f"refreshing questions for {tournament_slug}"):
            for question in self.schedule.list_questions(tournament.id):
                written[question.slug] = len(self.refresh_question(question.id))
                log.info("refreshed probabilities for question %s", question.slug)
        return written

    # ------------------------------------------------------------------ #
    # Ratings                                                              #
    # ------------------------------------------------------------------ #

    def rebuild_ratings(self, tournament_id: int) -> RebuildResult:
        """
        Replay every completed game of the tournament from base ratings.

        Prior rebuild and local records of the involved teams are replaced in
        one write, so running the rebuild twice leaves the same history.
        """
        if self.schedule.get_tournament(tournament_id) is None:
            raise NotFoundError("tournament", tournament_id)

        with log_timing(log, f"rebuilding ratings for tournament {tournament_id}"):
            matches = self.schedule.get_completed_matches_chronological(tournament_id)
            elo = EloEngine.from_config(self.config.elo)
            elo.process_matches(matches)

            teams = sorted({
                team_id
                for m in matches
                for team_id in (m.team_a_id, m.team_b_id)
                if team_id is not None
            })
            rows = []
            for game in elo.history:
                rows.append((game["team_a_id"], game["rating_a_after"], SOURCE_REBUILD))
                rows.append((game["team_b_id"], game["rating_b_after"], SOURCE_REBUILD))
            self.ratings.replace_rebuild_ratings(teams, rows)

        result = RebuildResult(
            teams_updated=len(elo.ratings),
            matches_processed=len(matches),
            metrics=evaluate(elo.history),
            history=elo.history,
        )
        log.info(
            "rebuilt ratings: %d teams, %d matches processed",
            result.teams_updated, result.matches_processed,
        )
        return result
