from __future__ import annotations

from dataclasses import asdict
from typing import Dict, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session, sessionmaker

from evoting.core.logger import election_logger as logger
from evoting.core.phases import WorkflowPhase
from evoting.core.registry import Candidate, ElectionSnapshot, Voter
from evoting.db_models import CandidateRow, ElectionStateRow, VoterRow

STATE_ROW_ID = 1


class ElectionStore:
    """
    SQLAlchemy-backed persistence for the single election.

    ``save`` is used as the controller's commit hook: it writes the rows that
    changed since the previous save in one transaction and only returns once
    that transaction is committed.
    """

    def __init__(self, session_factory: sessionmaker) -> None:
        self._session_factory = session_factory
        self._last: Optional[ElectionSnapshot] = None

    def load(self) -> Optional[ElectionSnapshot]:
        with self._session_factory() as db:
            state = db.get(ElectionStateRow, STATE_ROW_ID)
            if state is None:
                return None
            voters = {
                row.address: Voter(
                    is_registered=row.is_registered,
                    has_voted=row.has_voted,
                    voted_proposal_id=row.voted_proposal_id,
                )
                for row in db.execute(select(VoterRow)).scalars()
            }
            candidates = tuple(
                Candidate(description=row.description, vote_count=row.vote_count)
                for row in db.execute(select(CandidateRow).order_by(CandidateRow.id)).scalars()
            )
        snapshot = ElectionSnapshot(
            phase=WorkflowPhase(state.phase),
            voters=voters,
            candidates=candidates,
            winning_candidate_id=state.winning_candidate_id,
            total_votes=state.total_votes,
            admin=state.admin,
        )
        self._last = snapshot
        logger.info(
            f"Loaded election state: admin={snapshot.admin} phase={snapshot.phase.value} "
            f"voters={len(voters)} candidates={len(candidates)}"
        )
        return snapshot

    def save(self, snapshot: ElectionSnapshot) -> None:
        previous = self._last
        with self._session_factory() as db:
            self._write_state(db, snapshot)
            self._write_voters(db, snapshot.voters, previous.voters if previous else {})
            known = len(previous.candidates) if previous else 0
            for candidate_id, candidate in enumerate(snapshot.candidates):
                if candidate_id < known and previous.candidates[candidate_id] == candidate:
                    continue
                db.merge(CandidateRow(id=candidate_id, **asdict(candidate)))
            db.commit()
        self._last = snapshot

    @staticmethod
    def _write_state(db: Session, snapshot: ElectionSnapshot) -> None:
        db.merge(
            ElectionStateRow(
                id=STATE_ROW_ID,
                admin=snapshot.admin,
                phase=snapshot.phase.value,
                winning_candidate_id=snapshot.winning_candidate_id,
                total_votes=snapshot.total_votes,
            )
        )

    @staticmethod
    def _write_voters(db: Session, voters: Dict[str, Voter], previous: Dict[str, Voter]) -> None:
        for address, voter in voters.items():
            if previous.get(address) == voter:
                continue
            db.merge(VoterRow(address=address, **asdict(voter)))


__all__ = ["ElectionStore"]
