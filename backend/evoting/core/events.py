from __future__ import annotations

import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional, Protocol

from evoting.core.logger import election_logger as logger

VOTER_REGISTERED = "VoterRegistered"
PROPOSALS_REGISTRATION_STARTED = "ProposalsRegistrationStarted"
PROPOSALS_REGISTRATION_ENDED = "ProposalsRegistrationEnded"
PROPOSAL_REGISTERED = "ProposalRegistered"
VOTING_SESSION_STARTED = "VotingSessionStarted"
VOTING_SESSION_ENDED = "VotingSessionEnded"
VOTED = "Voted"
VOTES_TALLIED = "VotesTallied"
WORKFLOW_STATUS_CHANGE = "WorkflowStatusChange"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class Event:
    name: str
    payload: Dict[str, Any] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=_utcnow)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "payload": dict(self.payload),
            "timestamp": self.timestamp.isoformat(),
        }


class EventSink(Protocol):
    def emit(self, event: Event) -> None:
        ...


class RecordingEventSink:
    """Thread-safe in-memory sink that keeps every event in emission order."""

    def __init__(self) -> None:
        self._events: List[Event] = []
        self._lock = threading.Lock()

    def emit(self, event: Event) -> None:
        with self._lock:
            self._events.append(event)

    def events(self, name: Optional[str] = None) -> List[Event]:
        with self._lock:
            if name is None:
                return list(self._events)
            return [e for e in self._events if e.name == name]

    def names(self) -> List[str]:
        return [e.name for e in self.events()]

    def clear(self) -> None:
        with self._lock:
            self._events.clear()


class LoggingEventSink:
    def emit(self, event: Event) -> None:
        details = " ".join(f"{k}={v}" for k, v in event.payload.items())
        logger.info(f"EVENT name={event.name} {details}".rstrip())


class FanoutEventSink:
    """
    Deliver each event to every subscriber.

    Delivery is fire-and-forget: a subscriber that raises is logged and skipped,
    the remaining subscribers still receive the event.
    """

    def __init__(self, sinks: Iterable[EventSink]) -> None:
        self.sinks = list(sinks)

    def emit(self, event: Event) -> None:
        for sink in self.sinks:
            try:
                sink.emit(event)
            except Exception:
                logger.exception(f"Event subscriber {sink!r} failed on {event.name}")


__all__ = [
    "Event",
    "EventSink",
    "FanoutEventSink",
    "LoggingEventSink",
    "RecordingEventSink",
    "VOTER_REGISTERED",
    "PROPOSALS_REGISTRATION_STARTED",
    "PROPOSALS_REGISTRATION_ENDED",
    "PROPOSAL_REGISTERED",
    "VOTING_SESSION_STARTED",
    "VOTING_SESSION_ENDED",
    "VOTED",
    "VOTES_TALLIED",
    "WORKFLOW_STATUS_CHANGE",
]
