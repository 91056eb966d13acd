import threading

import pytest

from evoting.core.errors import (
    AlreadyRegistered,
    AlreadyVoted,
    InvalidCandidate,
    NotEligible,
    TallyNotReady,
    Unauthorized,
    WrongPhase,
)
from evoting.core.events import Event, FanoutEventSink, RecordingEventSink
from evoting.core.phases import WorkflowPhase
from evoting.core.workflow import Winner, WorkflowController

ADMIN = "0xadmin"

TRANSITIONS = [
    "start_proposals_registration",
    "end_proposals_registration",
    "start_voting_session",
    "end_voting_session",
    "tally_votes",
]


def _election():
    sink = RecordingEventSink()
    return WorkflowController(admin=ADMIN, sink=sink), sink


def _advance(election, steps):
    for name in TRANSITIONS[:steps]:
        getattr(election, name)(ADMIN)


def _voting_election(voters=("a", "b", "c"), proposals=("Alice", "Bob")):
    election, sink = _election()
    for v in voters:
        election.register_voter(ADMIN, v)
    election.start_proposals_registration(ADMIN)
    for author, description in zip(voters, proposals):
        election.submit_proposal(author, description)
    election.end_proposals_registration(ADMIN)
    election.start_voting_session(ADMIN)
    sink.clear()
    return election, sink


# ---------------- phase transitions ----------------
def test_transitions_walk_the_phases_in_order():
    election, sink = _election()
    seen = [election.phase]
    for name in TRANSITIONS:
        seen.append(getattr(election, name)(ADMIN))
    assert seen == list(WorkflowPhase)
    assert all(a.precedes(b) for a, b in zip(seen, seen[1:]))


@pytest.mark.parametrize("steps", range(len(TRANSITIONS) + 1))
def test_out_of_order_transitions_fail(steps):
    election, sink = _election()
    _advance(election, steps)
    phase = election.phase
    sink.clear()
    for i, name in enumerate(TRANSITIONS):
        if i == steps:
            continue
        with pytest.raises(WrongPhase):
            getattr(election, name)(ADMIN)
    assert election.phase is phase
    assert sink.events() == []


def test_start_voting_from_registration_is_wrong_phase():
    election, _ = _election()
    with pytest.raises(WrongPhase) as exc:
        election.start_voting_session(ADMIN)
    assert exc.value.code == "wrong_phase"


def test_tally_before_voting_ended_is_not_ready():
    election, _ = _election()
    _advance(election, 3)
    with pytest.raises(TallyNotReady):
        election.tally_votes(ADMIN)


@pytest.mark.parametrize("name", TRANSITIONS)
def test_transitions_are_admin_only(name):
    election, sink = _election()
    election.register_voter(ADMIN, "a")
    sink.clear()
    with pytest.raises(Unauthorized):
        getattr(election, name)("a")
    assert election.phase is WorkflowPhase.REGISTERING_VOTERS
    assert sink.events() == []


def test_transition_emits_specific_and_generic_events():
    election, sink = _election()
    election.start_proposals_registration(ADMIN)
    assert sink.names() == ["ProposalsRegistrationStarted", "WorkflowStatusChange"]
    change = sink.events("WorkflowStatusChange")[0]
    assert change.payload == {
        "previous_status": "RegisteringVoters",
        "new_status": "ProposalsRegistrationStarted",
    }


# ---------------- registration ----------------
def test_register_voter():
    election, sink = _election()
    voter = election.register_voter(ADMIN, "a")
    assert voter.is_registered and not voter.has_voted
    assert sink.names() == ["VoterRegistered"]
    assert sink.events()[0].payload == {"voter_address": "a"}


def test_register_twice_fails_and_leaves_entry_alone():
    election, sink = _election()
    election.register_voter(ADMIN, "a")
    before = election.voter("a")
    with pytest.raises(AlreadyRegistered):
        election.register_voter(ADMIN, "A ")
    assert election.voter("a") == before
    assert sink.names() == ["VoterRegistered"]


def test_register_requires_admin_and_phase():
    election, _ = _election()
    with pytest.raises(Unauthorized):
        election.register_voter("a", "b")
    election.start_proposals_registration(ADMIN)
    with pytest.raises(WrongPhase):
        election.register_voter(ADMIN, "b")
    assert not election.voter("b").is_registered


# ---------------- proposals ----------------
def test_submit_proposal_returns_sequential_ids():
    election, sink = _election()
    election.register_voter(ADMIN, "a")
    election.start_proposals_registration(ADMIN)
    sink.clear()
    assert election.submit_proposal("a", "Alice") == 0
    assert election.submit_proposal("a", "Alice") == 1
    assert [e.payload for e in sink.events()] == [{"proposal_id": 0}, {"proposal_id": 1}]


def test_unregistered_proposal_fails_explicitly():
    election, sink = _election()
    election.start_proposals_registration(ADMIN)
    sink.clear()
    with pytest.raises(NotEligible):
        election.submit_proposal("stranger", "Mallory")
    assert election.candidates() == []
    assert sink.events() == []


def test_proposal_outside_phase_fails():
    election, _ = _election()
    election.register_voter(ADMIN, "a")
    with pytest.raises(WrongPhase):
        election.submit_proposal("a", "Alice")


# ---------------- voting ----------------
def test_vote_is_write_once():
    election, sink = _voting_election()
    election.cast_vote("a", 1)
    with pytest.raises(AlreadyVoted):
        election.cast_vote("a", 0)
    assert [c.vote_count for c in election.candidates()] == [0, 1]
    assert election.voter("a").voted_proposal_id == 1
    assert sink.names() == ["Voted"]
    assert sink.events()[0].payload == {"voter": "a", "proposal_id": 1}


@pytest.mark.parametrize("candidate_id", [-1, 2, 100])
def test_vote_for_unknown_candidate_fails(candidate_id):
    election, sink = _voting_election()
    with pytest.raises(InvalidCandidate):
        election.cast_vote("a", candidate_id)
    assert not election.voter("a").has_voted
    assert sink.events() == []


def test_unregistered_vote_fails_without_event():
    election, sink = _voting_election()
    with pytest.raises(NotEligible):
        election.cast_vote("stranger", 0)
    assert sink.events() == []


def test_vote_outside_phase_fails():
    election, _ = _voting_election()
    election.end_voting_session(ADMIN)
    with pytest.raises(WrongPhase):
        election.cast_vote("a", 0)


def test_administrator_is_excluded_even_if_registered():
    election, _ = _election()
    election.register_voter(ADMIN, ADMIN)
    election.register_voter(ADMIN, "a")
    election.start_proposals_registration(ADMIN)
    with pytest.raises(NotEligible):
        election.submit_proposal(ADMIN, "Me")
    election.submit_proposal("a", "Alice")
    election.end_proposals_registration(ADMIN)
    election.start_voting_session(ADMIN)
    with pytest.raises(NotEligible):
        election.cast_vote(ADMIN, 0)
    assert election.candidate(0).vote_count == 0


# ---------------- tally / winner ----------------
@pytest.mark.parametrize("steps", range(len(TRANSITIONS)))
def test_winner_only_after_tally(steps):
    election, _ = _election()
    _advance(election, steps)
    with pytest.raises(TallyNotReady):
        election.get_winner()


def test_tally_stores_winner_and_emits_events():
    election, sink = _voting_election(voters=("a", "b", "c", "d"), proposals=("Alice", "Bob", "Carol"))
    for voter, choice in (("a", 2), ("b", 1), ("c", 2), ("d", 1)):
        election.cast_vote(voter, choice)
    election.end_voting_session(ADMIN)
    sink.clear()

    assert election.tally_votes(ADMIN) is WorkflowPhase.VOTES_TALLIED
    assert election.get_winner() == Winner(candidate_id=1, description="Bob", vote_count=2, total_votes=4)
    assert sink.names() == ["VotesTallied", "WorkflowStatusChange"]
    assert sink.events()[0].payload == {"winning_candidate_id": 1, "total_votes": 4}


def test_winner_without_proposals():
    election, _ = _election()
    _advance(election, 5)
    with pytest.raises(InvalidCandidate):
        election.get_winner()


def test_end_to_end_scenario():
    election, sink = _election()
    for v in ("A", "B", "C"):
        election.register_voter(ADMIN, v)
    election.start_proposals_registration(ADMIN)
    assert election.submit_proposal("A", "Alice") == 0
    assert election.submit_proposal("B", "Bob") == 1
    election.end_proposals_registration(ADMIN)
    election.start_voting_session(ADMIN)
    election.cast_vote("A", 1)
    election.cast_vote("B", 1)
    election.cast_vote("C", 0)
    election.end_voting_session(ADMIN)
    election.tally_votes(ADMIN)

    w = election.get_winner()
    assert (w.candidate_id, w.description, w.vote_count, w.total_votes) == (1, "Bob", 2, 3)
    assert len(sink.events("Voted")) == 3
    assert len(sink.events("WorkflowStatusChange")) == 5


# ---------------- commit hook & sinks ----------------
def test_failed_commit_rolls_back_and_suppresses_events():
    sink = RecordingEventSink()
    calls = []

    def flaky(snapshot):
        calls.append(snapshot)
        if len(calls) == 2:
            raise RuntimeError("disk full")

    election = WorkflowController(admin=ADMIN, sink=sink, on_commit=flaky)
    election.register_voter(ADMIN, "a")
    with pytest.raises(RuntimeError):
        election.register_voter(ADMIN, "b")

    assert not election.voter("b").is_registered
    assert sink.names() == ["VoterRegistered"]

    election.register_voter(ADMIN, "b")
    assert election.voter("b").is_registered
    assert calls[-1].voters["b"].is_registered


def test_commit_hook_sees_new_phase():
    seen = []
    election = WorkflowController(admin=ADMIN, on_commit=lambda s: seen.append(s.phase))
    election.start_proposals_registration(ADMIN)
    assert seen == [WorkflowPhase.PROPOSALS_REGISTRATION_STARTED]


def test_broken_sink_does_not_fail_operation():
    class Broken:
        def emit(self, event):
            raise RuntimeError("subscriber down")

    election = WorkflowController(admin=ADMIN, sink=Broken())
    election.register_voter(ADMIN, "a")
    assert election.voter("a").is_registered


def test_resume_from_snapshot():
    election, _ = _voting_election()
    election.cast_vote("a", 0)
    resumed = WorkflowController(admin=ADMIN, snapshot=election.snapshot())
    assert resumed.phase is WorkflowPhase.VOTING_SESSION_STARTED
    with pytest.raises(AlreadyVoted):
        resumed.cast_vote("a", 1)
    resumed.cast_vote("b", 1)
    assert [c.vote_count for c in resumed.candidates()] == [1, 1]


def test_admin_must_not_be_empty():
    with pytest.raises(ValueError):
        WorkflowController(admin="  ")


def test_blank_voter_address_is_refused():
    election, sink = _election()
    with pytest.raises(ValueError):
        election.register_voter(ADMIN, "   ")
    assert election.status().voter_count == 0
    assert sink.events() == []


def test_snapshot_carries_administrator():
    election, _ = _election()
    assert election.snapshot().admin == ADMIN
    with pytest.raises(ValueError):
        WorkflowController(admin="0xother", snapshot=election.snapshot())


def test_fanout_keeps_delivering_after_failing_subscriber():
    class Broken:
        def emit(self, event):
            raise RuntimeError("subscriber down")

    recorder = RecordingEventSink()
    fanout = FanoutEventSink([Broken(), recorder])
    fanout.emit(Event("Ping", {"n": 1}))
    assert recorder.names() == ["Ping"]

    election = WorkflowController(admin=ADMIN, sink=FanoutEventSink([Broken(), recorder]))
    election.register_voter(ADMIN, "a")
    assert recorder.names() == ["Ping", "VoterRegistered"]


def test_concurrent_votes_are_counted_once_each():
    voters = [f"0x{i:03d}" for i in range(40)]
    election, sink = _voting_election(voters=voters, proposals=("Alice", "Bob"))
    barrier = threading.Barrier(len(voters) * 2)
    outcomes = []
    outcomes_lock = threading.Lock()

    def vote(voter, choice):
        barrier.wait()
        try:
            election.cast_vote(voter, choice)
            result = "ok"
        except AlreadyVoted:
            result = "dup"
        with outcomes_lock:
            outcomes.append((voter, result))

    # every voter races two ballots against each other
    threads = [
        threading.Thread(target=vote, args=(v, i % 2))
        for v in voters
        for i in range(2)
    ]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    successes = [v for v, result in outcomes if result == "ok"]
    assert sorted(successes) == sorted(voters)
    assert sum(c.vote_count for c in election.candidates()) == len(successes)
    assert all(election.voter(v).has_voted for v in voters)
    assert len(sink.events("Voted")) == len(voters)
