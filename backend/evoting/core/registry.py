from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Dict, List, Optional, Tuple

from evoting.core.phases import WorkflowPhase


def normalize_address(address: str) -> str:
    return (address or "").strip().lower()


@dataclass
class Voter:
    is_registered: bool = False
    has_voted: bool = False
    voted_proposal_id: int = 0


@dataclass
class Candidate:
    description: str
    vote_count: int = 0


@dataclass(frozen=True)
class ElectionSnapshot:
    """Immutable copy of everything the election holds at one point in time."""

    phase: WorkflowPhase
    voters: Dict[str, Voter] = field(default_factory=dict)
    candidates: Tuple[Candidate, ...] = ()
    winning_candidate_id: Optional[int] = None
    total_votes: int = 0
    admin: Optional[str] = None


class Registry:
    """
    Voter and candidate records plus the tally.

    The registry keeps its own data consistent (dense candidate ids, write-once
    votes) but does not know about phases or administrators; the workflow
    controller checks those before calling in.
    """

    def __init__(self) -> None:
        self._voters: Dict[str, Voter] = {}
        self._candidates: List[Candidate] = []

    # ---- reads ----
    def voter(self, address: str) -> Voter:
        """Return a copy of the voter record; unknown addresses get a blank one."""
        record = self._voters.get(normalize_address(address))
        return replace(record) if record else Voter()

    def is_registered(self, address: str) -> bool:
        record = self._voters.get(normalize_address(address))
        return bool(record and record.is_registered)

    def has_voted(self, address: str) -> bool:
        record = self._voters.get(normalize_address(address))
        return bool(record and record.has_voted)

    @property
    def voter_count(self) -> int:
        return sum(1 for v in self._voters.values() if v.is_registered)

    @property
    def candidate_count(self) -> int:
        return len(self._candidates)

    def has_candidate(self, candidate_id: int) -> bool:
        return 0 <= candidate_id < len(self._candidates)

    def candidate(self, candidate_id: int) -> Candidate:
        if not self.has_candidate(candidate_id):
            raise IndexError(candidate_id)
        return replace(self._candidates[candidate_id])

    def candidates(self) -> List[Candidate]:
        return [replace(c) for c in self._candidates]

    # ---- mutators ----
    def _entry(self, address: str) -> Voter:
        key = normalize_address(address)
        record = self._voters.get(key)
        if record is None:
            record = Voter()
            self._voters[key] = record
        return record

    def register_voter(self, address: str) -> None:
        self._entry(address).is_registered = True

    def add_candidate(self, description: str) -> int:
        candidate_id = len(self._candidates)
        self._candidates.append(Candidate(description=description))
        return candidate_id

    def record_vote(self, address: str, candidate_id: int) -> None:
        record = self._entry(address)
        record.has_voted = True
        record.voted_proposal_id = candidate_id
        self._candidates[candidate_id].vote_count += 1

    def tally(self) -> Tuple[Optional[int], int]:
        """
        Single pass over the candidates.

        Returns ``(winning_candidate_id, total_votes)``. Only a strictly greater
        count replaces the leader, so among tied candidates the earliest
        proposed one wins. With no candidates the winner is ``None``.
        """
        winner: Optional[int] = None
        best = -1
        total = 0
        for candidate_id, candidate in enumerate(self._candidates):
            total += candidate.vote_count
            if candidate.vote_count > best:
                best = candidate.vote_count
                winner = candidate_id
        return winner, total

    # ---- snapshots ----
    def snapshot(
        self,
        phase: WorkflowPhase,
        winning_candidate_id: Optional[int] = None,
        total_votes: int = 0,
        admin: Optional[str] = None,
    ) -> ElectionSnapshot:
        return ElectionSnapshot(
            phase=phase,
            voters={address: replace(v) for address, v in self._voters.items()},
            candidates=tuple(replace(c) for c in self._candidates),
            winning_candidate_id=winning_candidate_id,
            total_votes=total_votes,
            admin=admin,
        )

    def restore(self, snapshot: ElectionSnapshot) -> None:
        self._voters = {address: replace(v) for address, v in snapshot.voters.items()}
        self._candidates = [replace(c) for c in snapshot.candidates]


__all__ = ["Candidate", "ElectionSnapshot", "Registry", "Voter", "normalize_address"]
