from fastapi import APIRouter, Depends, status

from evoting.core.errors import Unauthorized
from evoting.core.events import RecordingEventSink
from evoting.core.workflow import WorkflowController
from evoting.deps import get_controller, get_event_log
from evoting.models import EventLogOut, EventOut, PhaseOut, RegisterVoterRequest, VoterOut
from evoting.routers.election import voter_out
from evoting.security import Principal, get_current_principal

router = APIRouter(prefix="/admin", tags=["admin"])


@router.post("/voters", response_model=VoterOut, status_code=status.HTTP_201_CREATED)
def register_voter(
    payload: RegisterVoterRequest,
    principal: Principal = Depends(get_current_principal),
    election: WorkflowController = Depends(get_controller),
):
    voter = election.register_voter(principal.address, payload.address)
    return voter_out(payload.address, voter)


@router.post("/proposals/start", response_model=PhaseOut)
def start_proposals_registration(
    principal: Principal = Depends(get_current_principal),
    election: WorkflowController = Depends(get_controller),
):
    return PhaseOut(phase=election.start_proposals_registration(principal.address))


@router.post("/proposals/end", response_model=PhaseOut)
def end_proposals_registration(
    principal: Principal = Depends(get_current_principal),
    election: WorkflowController = Depends(get_controller),
):
    return PhaseOut(phase=election.end_proposals_registration(principal.address))


@router.post("/voting/start", response_model=PhaseOut)
def start_voting_session(
    principal: Principal = Depends(get_current_principal),
    election: WorkflowController = Depends(get_controller),
):
    return PhaseOut(phase=election.start_voting_session(principal.address))


@router.post("/voting/end", response_model=PhaseOut)
def end_voting_session(
    principal: Principal = Depends(get_current_principal),
    election: WorkflowController = Depends(get_controller),
):
    return PhaseOut(phase=election.end_voting_session(principal.address))


@router.post("/tally", response_model=PhaseOut)
def tally_votes(
    principal: Principal = Depends(get_current_principal),
    election: WorkflowController = Depends(get_controller),
):
    return PhaseOut(phase=election.tally_votes(principal.address))


@router.get("/events", response_model=EventLogOut)
def list_events(
    principal: Principal = Depends(get_current_principal),
    election: WorkflowController = Depends(get_controller),
    event_log: RecordingEventSink = Depends(get_event_log),
):
    if not election.is_admin(principal.address):
        raise Unauthorized("only the administrator may read the event log")
    return EventLogOut(events=[EventOut(**e.to_dict()) for e in event_log.events()])
