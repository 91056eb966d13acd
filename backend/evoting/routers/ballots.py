from fastapi import APIRouter, Depends, HTTPException, Request, status

from evoting.core.errors import InvalidCandidate
from evoting.core.workflow import WorkflowController
from evoting.deps import get_controller
from evoting.limits import limiter, write_rate_limit
from evoting.models import ProposalOut, ProposalRequest, VoteReceipt, VoteRequest, WinnerOut
from evoting.security import Principal, get_current_principal

router = APIRouter(tags=["ballots"])


@router.get("/proposals", response_model=list[ProposalOut])
def list_proposals(election: WorkflowController = Depends(get_controller)):
    return [
        ProposalOut(id=pid, description=c.description, vote_count=c.vote_count)
        for pid, c in enumerate(election.candidates())
    ]


@router.get("/proposals/{proposal_id}", response_model=ProposalOut)
def get_proposal(proposal_id: int, election: WorkflowController = Depends(get_controller)):
    try:
        c = election.candidate(proposal_id)
    except InvalidCandidate:
        raise HTTPException(status_code=404, detail="Proposal not found")
    return ProposalOut(id=proposal_id, description=c.description, vote_count=c.vote_count)


@router.post("/proposals", response_model=ProposalOut, status_code=status.HTTP_201_CREATED)
@limiter.limit(write_rate_limit)
def submit_proposal(
    request: Request,
    payload: ProposalRequest,
    principal: Principal = Depends(get_current_principal),
    election: WorkflowController = Depends(get_controller),
):
    pid = election.submit_proposal(principal.address, payload.description)
    return ProposalOut(id=pid, description=payload.description, vote_count=0)


@router.post("/votes", response_model=VoteReceipt, status_code=status.HTTP_201_CREATED)
@limiter.limit(write_rate_limit)
def cast_vote(
    request: Request,
    payload: VoteRequest,
    principal: Principal = Depends(get_current_principal),
    election: WorkflowController = Depends(get_controller),
):
    election.cast_vote(principal.address, payload.candidate_id)
    return VoteReceipt(voter=principal.address, candidate_id=payload.candidate_id)


@router.get("/winner", response_model=WinnerOut)
def get_winner(election: WorkflowController = Depends(get_controller)):
    w = election.get_winner()
    return WinnerOut(
        candidate_id=w.candidate_id,
        description=w.description,
        vote_count=w.vote_count,
        total_votes=w.total_votes,
    )
