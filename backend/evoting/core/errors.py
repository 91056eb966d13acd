"""
Election failures.

Every rejected operation raises one of these before anything is mutated, so the
election stays usable afterwards. The API layer renders them as
``{"error": code, "detail": message}`` with ``status_code``.
"""

from __future__ import annotations


class ElectionError(Exception):
    code = "election_error"
    status_code = 400

    def __init__(self, message: str = "") -> None:
        super().__init__(message or self.code)
        self.message = message or self.code


class Unauthorized(ElectionError):
    """Caller is not the administrator for an administrator-only operation."""

    code = "unauthorized"
    status_code = 403


class WrongPhase(ElectionError):
    code = "wrong_phase"
    status_code = 409


class TallyNotReady(WrongPhase):
    """Winner queried before tallying, or tally requested before voting ended."""

    code = "tally_not_ready"


class AlreadyRegistered(ElectionError):
    code = "already_registered"
    status_code = 409


class NotEligible(ElectionError):
    """Caller is unregistered, or is the administrator acting as a voter."""

    code = "not_eligible"
    status_code = 403


class AlreadyVoted(ElectionError):
    code = "already_voted"
    status_code = 409


class InvalidCandidate(ElectionError):
    code = "invalid_candidate"
    status_code = 400


__all__ = [
    "ElectionError",
    "Unauthorized",
    "WrongPhase",
    "TallyNotReady",
    "AlreadyRegistered",
    "NotEligible",
    "AlreadyVoted",
    "InvalidCandidate",
]
