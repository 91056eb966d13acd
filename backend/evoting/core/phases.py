from __future__ import annotations

import enum
from typing import Optional


class WorkflowPhase(str, enum.Enum):
    REGISTERING_VOTERS = "RegisteringVoters"
    PROPOSALS_REGISTRATION_STARTED = "ProposalsRegistrationStarted"
    PROPOSALS_REGISTRATION_ENDED = "ProposalsRegistrationEnded"
    VOTING_SESSION_STARTED = "VotingSessionStarted"
    VOTING_SESSION_ENDED = "VotingSessionEnded"
    VOTES_TALLIED = "VotesTallied"

    @classmethod
    def initial(cls) -> "WorkflowPhase":
        return cls.REGISTERING_VOTERS

    @property
    def position(self) -> int:
        return _ORDER.index(self)

    @property
    def is_terminal(self) -> bool:
        return self.successor() is None

    def successor(self) -> Optional["WorkflowPhase"]:
        """Return the phase that directly follows this one, or ``None`` once tallied."""
        return _SUCCESSORS.get(self)

    def precedes(self, other: "WorkflowPhase") -> bool:
        return self.position < other.position


_ORDER = (
    WorkflowPhase.REGISTERING_VOTERS,
    WorkflowPhase.PROPOSALS_REGISTRATION_STARTED,
    WorkflowPhase.PROPOSALS_REGISTRATION_ENDED,
    WorkflowPhase.VOTING_SESSION_STARTED,
    WorkflowPhase.VOTING_SESSION_ENDED,
    WorkflowPhase.VOTES_TALLIED,
)

_SUCCESSORS = {current: following for current, following in zip(_ORDER, _ORDER[1:])}


__all__ = ["WorkflowPhase"]
