from typing import Optional

from fastapi import Request

from evoting.core.events import FanoutEventSink, LoggingEventSink, RecordingEventSink
from evoting.core.logger import election_logger as logger
from evoting.core.settings import Settings
from evoting.core.workflow import WorkflowController
from evoting.db import make_session_factory
from evoting.store import ElectionStore


def build_controller(settings: Settings, event_log: Optional[RecordingEventSink] = None) -> WorkflowController:
    """Wire the controller to its event subscribers and, when configured, the database."""
    sinks = [LoggingEventSink()]
    if event_log is not None:
        sinks.append(event_log)
    sink = FanoutEventSink(sinks)

    if not settings.database_url:
        logger.info(f"Election started in memory, administrator={settings.admin_address}")
        return WorkflowController(admin=settings.admin_address, sink=sink)

    store = ElectionStore(make_session_factory(settings.database_url))
    snapshot = store.load()
    logger.info(
        f"Election backed by {settings.database_url}, administrator={settings.admin_address}, "
        f"resumed={snapshot is not None}"
    )
    controller = WorkflowController(
        admin=settings.admin_address,
        sink=sink,
        on_commit=store.save,
        snapshot=snapshot,
    )
    if snapshot is None:
        # Pin the administrator before the first operation.
        store.save(controller.snapshot())
    return controller


def get_controller(request: Request) -> WorkflowController:
    return request.app.state.controller


def get_event_log(request: Request) -> RecordingEventSink:
    return request.app.state.event_log
