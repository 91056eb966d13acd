from fastapi import APIRouter, Depends

from evoting.core.registry import Voter, normalize_address
from evoting.core.workflow import WorkflowController
from evoting.deps import get_controller
from evoting.models import ElectionOut, PhaseOut, VoterOut

router = APIRouter(tags=["election"])


def voter_out(address: str, voter: Voter) -> VoterOut:
    return VoterOut(
        address=normalize_address(address),
        is_registered=voter.is_registered,
        has_voted=voter.has_voted,
        voted_proposal_id=voter.voted_proposal_id if voter.has_voted else None,
    )


@router.get("/election", response_model=ElectionOut)
def election_status(election: WorkflowController = Depends(get_controller)):
    status = election.status()
    return ElectionOut(
        phase=status.phase,
        admin=status.admin,
        voter_count=status.voter_count,
        candidate_count=status.candidate_count,
    )


@router.get("/election/phase", response_model=PhaseOut)
def current_phase(election: WorkflowController = Depends(get_controller)):
    return PhaseOut(phase=election.phase)


@router.get("/voters/{address}", response_model=VoterOut)
def get_voter(address: str, election: WorkflowController = Depends(get_controller)):
    return voter_out(address, election.voter(address))
