from pydantic import BaseModel, Field, field_validator
from typing import Any, Dict, List, Optional

from evoting.core.phases import WorkflowPhase


class RegisterVoterRequest(BaseModel):
    address: str = Field(min_length=1, max_length=255)

    @field_validator("address")
    @classmethod
    def _address_not_blank(cls, v: str) -> str:
        v2 = v.strip()
        if not v2:
            raise ValueError("address must not be blank")
        return v2


class ProposalRequest(BaseModel):
    description: str = Field(min_length=1, max_length=1024)


class VoteRequest(BaseModel):
    candidate_id: int


class VoterOut(BaseModel):
    address: str
    is_registered: bool
    has_voted: bool
    voted_proposal_id: Optional[int] = None  # only meaningful once has_voted is true


class ProposalOut(BaseModel):
    id: int
    description: str
    vote_count: int


class VoteReceipt(BaseModel):
    voter: str
    candidate_id: int


class PhaseOut(BaseModel):
    phase: WorkflowPhase


class ElectionOut(BaseModel):
    phase: WorkflowPhase
    admin: str
    voter_count: int
    candidate_count: int


class WinnerOut(BaseModel):
    candidate_id: int
    description: str
    vote_count: int
    total_votes: int


class EventOut(BaseModel):
    name: str
    payload: Dict[str, Any]
    timestamp: str


class EventLogOut(BaseModel):
    events: List[EventOut]
