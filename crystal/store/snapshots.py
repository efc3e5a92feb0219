"""SQLAlchemy-backed probability snapshots."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta

import pandas as pd
from sqlalchemy import func, select, text

from crystal.utils.logging import get_logger

from .models import ProbabilitySnapshot, utcnow

log = get_logger(__name__)


@dataclass
class Snapshot:
    question_id: int
    answer_key: str
    probability: float
    as_of: datetime
    details: dict = field(default_factory=dict)


class SqlSnapshotStore:
    def __init__(self, session_factory):
        self.session_factory = session_factory

    def write_snapshots(self, question_id: int, entries, as_of: datetime | None = None) -> None:
        """Append one batch in a single transaction; every row shares one ``as_of``."""
        if not entries:
            return
        with self.session_factory.begin() as session:
            as_of = as_of or utcnow()
            previous = session.execute(
                select(func.max(ProbabilitySnapshot.as_of))
                .where(ProbabilitySnapshot.question_id == question_id)
            ).scalar()
            # batches are told apart by timestamp alone
            if previous is not None and as_of <= previous:
                as_of = previous + timedelta(microseconds=1)
            session.add_all(
                ProbabilitySnapshot(
                    question_id=question_id,
                    answer_key=e.answer_key,
                    probability=e.probability,
                    details=e.details or {},
                    as_of=as_of,
                )
                for e in entries
            )
        log.info("wrote %d snapshots for question %s", len(entries), question_id)

    def read_latest_snapshots(self, question_id: int) -> list[Snapshot]:
        """Most recent batch only, in the order it was written."""
        with self.session_factory() as session:
            latest = (
                select(func.max(ProbabilitySnapshot.as_of))
                .where(ProbabilitySnapshot.question_id == question_id)
                .scalar_subquery()
            )
            rows = session.execute(
                select(ProbabilitySnapshot)
                .where(
                    ProbabilitySnapshot.question_id == question_id,
                    ProbabilitySnapshot.as_of == latest,
                )
                .order_by(ProbabilitySnapshot.id)
            ).scalars().all()
        return [
            Snapshot(
                question_id=r.question_id,
                answer_key=r.answer_key,
                probability=r.probability,
                as_of=r.as_of,
                details=dict(r.details or {}),
            )
            for r in rows
        ]

    def read_history(self, question_id: int) -> pd.DataFrame:
        """Every batch for a question as a frame: as_of, answer_key, probability."""
        with self.session_factory() as session:
            return pd.read_sql_query(
                text(
                    "SELECT as_of, answer_key, probability FROM probability_snapshots "
                    "WHERE question_id = :qid ORDER BY as_of, probability DESC"
                ),
                session.connection(),
                params={"qid": question_id},
            )
