from __future__ import annotations

import threading
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Callable, Iterator, List, Optional

from evoting.core import events as ev
from evoting.core.errors import (
    AlreadyRegistered,
    AlreadyVoted,
    ElectionError,
    InvalidCandidate,
    NotEligible,
    TallyNotReady,
    Unauthorized,
    WrongPhase,
)
from evoting.core.events import Event, EventSink, LoggingEventSink
from evoting.core.logger import election_logger as logger
from evoting.core.phases import WorkflowPhase
from evoting.core.registry import (
    Candidate,
    ElectionSnapshot,
    Registry,
    Voter,
    normalize_address,
)

CommitHook = Callable[[ElectionSnapshot], None]


@dataclass(frozen=True)
class Winner:
    candidate_id: int
    description: str
    vote_count: int
    total_votes: int


@dataclass(frozen=True)
class ElectionStatus:
    phase: WorkflowPhase
    admin: str
    voter_count: int
    candidate_count: int


class WorkflowController:
    """
    Single-election workflow.

    Owns the phase and the registry. Every public operation runs under one lock:
    authorization, then the phase check, then the remaining preconditions, then
    the mutation, the commit hook and finally the events. A rejected operation
    raises an :class:`ElectionError` and leaves no trace.

    ``on_commit`` receives a snapshot after every successful mutation, before any
    event goes out. If it raises, the mutation is rolled back and the error
    propagates to the caller.
    """

    def __init__(
        self,
        admin: str,
        sink: Optional[EventSink] = None,
        on_commit: Optional[CommitHook] = None,
        snapshot: Optional[ElectionSnapshot] = None,
    ) -> None:
        self._admin = normalize_address(admin)
        if not self._admin:
            raise ValueError("administrator identity must not be empty")
        self._sink = sink if sink is not None else LoggingEventSink()
        self._on_commit = on_commit
        self._lock = threading.RLock()
        self._registry = Registry()
        self._phase = WorkflowPhase.initial()
        self._winning_candidate_id: Optional[int] = None
        self._total_votes = 0
        if snapshot is not None:
            if snapshot.admin and normalize_address(snapshot.admin) != self._admin:
                raise ValueError(
                    f"stored election belongs to administrator {snapshot.admin!r}, "
                    f"not {self._admin!r}"
                )
            self._load(snapshot)

    # ---------------- reads ----------------
    @property
    def admin(self) -> str:
        return self._admin

    @property
    def phase(self) -> WorkflowPhase:
        with self._lock:
            return self._phase

    def is_admin(self, address: str) -> bool:
        return normalize_address(address) == self._admin

    def voter(self, address: str) -> Voter:
        with self._lock:
            return self._registry.voter(address)

    def candidates(self) -> List[Candidate]:
        with self._lock:
            return self._registry.candidates()

    def candidate(self, candidate_id: int) -> Candidate:
        with self._lock:
            if not self._registry.has_candidate(candidate_id):
                raise InvalidCandidate(f"no proposal with id {candidate_id}")
            return self._registry.candidate(candidate_id)

    def status(self) -> ElectionStatus:
        with self._lock:
            return ElectionStatus(
                phase=self._phase,
                admin=self._admin,
                voter_count=self._registry.voter_count,
                candidate_count=self._registry.candidate_count,
            )

    def snapshot(self) -> ElectionSnapshot:
        with self._lock:
            return self._snapshot()

    def get_winner(self) -> Winner:
        with self._lock:
            if self._phase is not WorkflowPhase.VOTES_TALLIED:
                raise TallyNotReady(f"votes are not tallied yet (phase {self._phase.value})")
            if self._winning_candidate_id is None:
                raise InvalidCandidate("no proposals were submitted")
            winner = self._registry.candidate(self._winning_candidate_id)
            return Winner(
                candidate_id=self._winning_candidate_id,
                description=winner.description,
                vote_count=winner.vote_count,
                total_votes=self._total_votes,
            )

    # ---------------- voter registration ----------------
    def register_voter(self, caller: str, address: str) -> Voter:
        with self._lock:
            self._require_admin(caller, "register voters")
            if not normalize_address(address):
                raise ValueError("voter address must not be blank")
            self._require_phase(WorkflowPhase.REGISTERING_VOTERS, "register voters")
            if self._registry.is_registered(address):
                raise self._reject(AlreadyRegistered(f"{normalize_address(address)} is already registered"))
            with self._commit() as pending:
                self._registry.register_voter(address)
                pending.append(Event(ev.VOTER_REGISTERED, {"voter_address": normalize_address(address)}))
            logger.info(f"Voter registered: {normalize_address(address)}")
            return self._registry.voter(address)

    # ---------------- phase transitions ----------------
    def start_proposals_registration(self, caller: str) -> WorkflowPhase:
        return self._advance(caller, WorkflowPhase.REGISTERING_VOTERS, ev.PROPOSALS_REGISTRATION_STARTED)

    def end_proposals_registration(self, caller: str) -> WorkflowPhase:
        return self._advance(caller, WorkflowPhase.PROPOSALS_REGISTRATION_STARTED, ev.PROPOSALS_REGISTRATION_ENDED)

    def start_voting_session(self, caller: str) -> WorkflowPhase:
        return self._advance(caller, WorkflowPhase.PROPOSALS_REGISTRATION_ENDED, ev.VOTING_SESSION_STARTED)

    def end_voting_session(self, caller: str) -> WorkflowPhase:
        return self._advance(caller, WorkflowPhase.VOTING_SESSION_STARTED, ev.VOTING_SESSION_ENDED)

    def tally_votes(self, caller: str) -> WorkflowPhase:
        with self._lock:
            self._require_admin(caller, "tally votes")
            if self._phase is not WorkflowPhase.VOTING_SESSION_ENDED:
                raise self._reject(
                    TallyNotReady(f"cannot tally votes while phase is {self._phase.value}")
                )
            winner, total = self._registry.tally()
            with self._commit() as pending:
                self._winning_candidate_id = winner
                self._total_votes = total
                previous = self._phase
                self._phase = WorkflowPhase.VOTES_TALLIED
                pending.append(
                    Event(ev.VOTES_TALLIED, {"winning_candidate_id": winner, "total_votes": total})
                )
                pending.append(self._status_change(previous, self._phase))
            logger.info(f"Votes tallied: winner={winner} total_votes={total}")
            return self._phase

    # ---------------- voter operations ----------------
    def submit_proposal(self, caller: str, description: str) -> int:
        with self._lock:
            self._require_phase(WorkflowPhase.PROPOSALS_REGISTRATION_STARTED, "submit proposals")
            self._require_voter(caller, "submit proposals")
            with self._commit() as pending:
                proposal_id = self._registry.add_candidate(description)
                pending.append(Event(ev.PROPOSAL_REGISTERED, {"proposal_id": proposal_id}))
            logger.info(f"Proposal {proposal_id} submitted by {normalize_address(caller)}")
            return proposal_id

    def cast_vote(self, caller: str, candidate_id: int) -> Voter:
        with self._lock:
            self._require_phase(WorkflowPhase.VOTING_SESSION_STARTED, "vote")
            self._require_voter(caller, "vote")
            voter = normalize_address(caller)
            if self._registry.has_voted(voter):
                raise self._reject(AlreadyVoted(f"{voter} has already voted"))
            if not self._registry.has_candidate(candidate_id):
                raise self._reject(InvalidCandidate(f"no proposal with id {candidate_id}"))
            with self._commit() as pending:
                self._registry.record_vote(voter, candidate_id)
                pending.append(Event(ev.VOTED, {"voter": voter, "proposal_id": candidate_id}))
            logger.info(f"Vote cast by {voter}")
            return self._registry.voter(voter)

    # ---------------- internals ----------------
    def _advance(self, caller: str, expected: WorkflowPhase, event_name: str) -> WorkflowPhase:
        with self._lock:
            self._require_admin(caller, f"move to {expected.successor().value}")
            self._require_phase(expected, f"move to {expected.successor().value}")
            with self._commit() as pending:
                previous = self._phase
                self._phase = previous.successor()
                pending.append(Event(event_name))
                pending.append(self._status_change(previous, self._phase))
            logger.info(f"Phase changed: {previous.value} -> {self._phase.value}")
            return self._phase

    @staticmethod
    def _status_change(previous: WorkflowPhase, new: WorkflowPhase) -> Event:
        return Event(
            ev.WORKFLOW_STATUS_CHANGE,
            {"previous_status": previous.value, "new_status": new.value},
        )

    def _reject(self, error: ElectionError) -> ElectionError:
        logger.warning(f"Rejected: {error.code} {error.message}")
        return error

    def _require_admin(self, caller: str, action: str) -> None:
        if not self.is_admin(caller):
            raise self._reject(Unauthorized(f"only the administrator may {action}"))

    def _require_phase(self, expected: WorkflowPhase, action: str) -> None:
        if self._phase is not expected:
            raise self._reject(
                WrongPhase(
                    f"cannot {action} while phase is {self._phase.value}; "
                    f"requires {expected.value}"
                )
            )

    def _require_voter(self, caller: str, action: str) -> None:
        if self.is_admin(caller):
            raise self._reject(NotEligible(f"the administrator may not {action}"))
        if not self._registry.is_registered(caller):
            raise self._reject(NotEligible(f"{normalize_address(caller)} is not a registered voter"))

    def _snapshot(self) -> ElectionSnapshot:
        return self._registry.snapshot(
            self._phase, self._winning_candidate_id, self._total_votes, admin=self._admin
        )

    def _load(self, snapshot: ElectionSnapshot) -> None:
        self._registry.restore(snapshot)
        self._phase = snapshot.phase
        self._winning_candidate_id = snapshot.winning_candidate_id
        self._total_votes = snapshot.total_votes

    @contextmanager
    def _commit(self) -> Iterator[List[Event]]:
        pending: List[Event] = []
        before = self._snapshot() if self._on_commit is not None else None
        try:
            yield pending
            if self._on_commit is not None:
                self._on_commit(self._snapshot())
        except Exception:
            if before is not None:
                self._load(before)
            logger.exception("Commit failed; election state rolled back")
            raise
        for event in pending:
            self._emit(event)

    def _emit(self, event: Event) -> None:
        try:
            self._sink.emit(event)
        except Exception:
            logger.exception(f"Event sink failed on {event.name}")


__all__ = ["ElectionStatus", "Winner", "WorkflowController"]
