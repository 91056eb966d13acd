"""Framework-free election core: phases, registry, events and the workflow controller."""

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
from evoting.core.events import (
    Event,
    EventSink,
    FanoutEventSink,
    LoggingEventSink,
    RecordingEventSink,
)
from evoting.core.phases import WorkflowPhase
from evoting.core.registry import Candidate, ElectionSnapshot, Registry, Voter
from evoting.core.workflow import ElectionStatus, Winner, WorkflowController

__all__ = [
    "AlreadyRegistered",
    "AlreadyVoted",
    "Candidate",
    "ElectionError",
    "ElectionSnapshot",
    "ElectionStatus",
    "Event",
    "EventSink",
    "FanoutEventSink",
    "InvalidCandidate",
    "LoggingEventSink",
    "NotEligible",
    "RecordingEventSink",
    "Registry",
    "TallyNotReady",
    "Unauthorized",
    "Voter",
    "Winner",
    "WorkflowController",
    "WorkflowPhase",
    "WrongPhase",
]
