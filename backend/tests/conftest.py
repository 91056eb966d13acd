import pytest

from evoting.core.events import RecordingEventSink
from evoting.core.workflow import WorkflowController
from evoting.main import app
from evoting.security import create_access_token

ADMIN = "admin"


def auth(address: str) -> dict:
    return {"Authorization": f"Bearer {create_access_token(address)}"}


@pytest.fixture
def event_log() -> RecordingEventSink:
    return RecordingEventSink()


@pytest.fixture
def election(event_log: RecordingEventSink) -> WorkflowController:
    """Fresh in-memory election installed on the app for each test."""
    controller = WorkflowController(admin=ADMIN, sink=event_log)
    app.state.controller = controller
    app.state.event_log = event_log
    limiter = getattr(app.state, "limiter", None)
    if limiter is not None:
        limiter.reset()
    return controller
