"""Read/write contracts the engine needs from storage.

Implementations may fail transiently; the engine never retries, so any
retry or backoff policy belongs to the implementation.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from datetime import datetime

    from crystal.bracket.structure import BracketGraph, Match
    from crystal.predictions.questions import PickProbability, Question


@runtime_checkable
class RatingStore(Protocol):
    def get_current_rating(self, team_id: int) -> float:
        """Latest rating, or the configured base rating for an unseen team."""
        ...

    def get_ratings(self, team_ids: list[int]) -> dict[int, float]: ...

    def write_rating_record(self, team_id: int, rating: float, source: str) -> None: ...

    def replace_rebuild_ratings(
        self, team_ids: list[int], rows: list[tuple[int, float, str]]
    ) -> None:
        """Drop prior rebuild/local records for ``team_ids`` and append ``rows`` atomically."""
        ...


@runtime_checkable
class ScheduleStore(Protocol):
    def get_tournament(self, tournament_id: int): ...

    def get_tournament_by_slug(self, slug: str): ...

    def get_bracket_graph(self, tournament_id: int) -> "BracketGraph": ...

    def get_completed_matches_chronological(self, tournament_id: int) -> list["Match"]: ...

    def get_remaining_game_count(self, tournament_slug: str) -> int: ...

    def get_games_played(self, tournament_slug: str) -> int: ...

    def get_pick_counts(self, tournament_slug: str) -> dict[str, int]: ...

    def get_question(self, question_id: int) -> "Question | None": ...

    def list_questions(self, tournament_id: int) -> list["Question"]: ...

    def get_team_slugs(self, team_ids: list[int]) -> dict[int, str]: ...


@runtime_checkable
class SnapshotStore(Protocol):
    def write_snapshots(
        self,
        question_id: int,
        entries: list["PickProbability"],
        as_of: "datetime | None" = None,
    ) -> None:
        """All-or-nothing append of one batch."""
        ...

    def read_latest_snapshots(self, question_id: int) -> list:
        """Most recent batch only, in the order it was written."""
        ...
