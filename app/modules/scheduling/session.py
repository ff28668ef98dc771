"""In-memory teacher queue and event edit sessions, one of each per teacher."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import date
from uuid import UUID

from app.core.enums import LocationEnum
from app.modules.scheduling.editor import EditAction, new_edit, reduce_edit
from app.modules.scheduling.materializer import QueueCommit, begin_commit
from app.modules.scheduling.queue import QueueAction, SetPreferredStart, new_queue, reduce_queue
from app.modules.scheduling.types import DurationCaps, EventEditState, QueueState, SchedulingPolicy, TimelineEvent

logger = logging.getLogger(__name__)


@dataclass
class TeacherQueueSession:
    teacher_id: UUID
    state: QueueState
    caps: DurationCaps = field(default_factory=DurationCaps)
    pending: QueueCommit | None = None


class TeacherQueueRegistry:
    """Holds every teacher's queue for the planner.

    There is a single writer (the planner's requests on one event loop), so
    sessions are plain mutable objects without locking. Teachers never share
    state.
    """

    def __init__(self, policy: SchedulingPolicy, default_caps: DurationCaps | None = None) -> None:
        self.policy = policy
        self.default_caps = default_caps or DurationCaps()
        self._sessions: dict[UUID, TeacherQueueSession] = {}

    def open(self, teacher_id: UUID, preferred_start_minutes: int) -> TeacherQueueSession:
        """Start a queue for the teacher, or move the cursor of an existing one."""
        session = self._sessions.get(teacher_id)
        if session is None:
            session = TeacherQueueSession(
                teacher_id=teacher_id,
                state=new_queue(preferred_start_minutes, self.policy),
                caps=self.default_caps,
            )
            self._sessions[teacher_id] = session
            logger.info("Opened queue for teacher %s", teacher_id)
            return session

        self.dispatch(teacher_id, SetPreferredStart(start_minutes=preferred_start_minutes))
        return session

    def get(self, teacher_id: UUID) -> TeacherQueueSession | None:
        session = self._sessions.get(teacher_id)
        if session is None:
            logger.warning("No queue initialized for teacher %s", teacher_id)
        return session

    def discard(self, teacher_id: UUID) -> None:
        self._sessions.pop(teacher_id, None)

    @property
    def open_count(self) -> int:
        return len(self._sessions)

    def dispatch(self, teacher_id: UUID, action: QueueAction) -> QueueState | None:
        """Apply an action to the teacher's queue; returns the resulting state."""
        session = self.get(teacher_id)
        if session is None:
            return None
        if session.pending is not None:
            logger.warning(
                "Ignoring %s for teacher %s while a submission is pending",
                type(action).__name__,
                teacher_id,
            )
            return session.state

        new_state = reduce_queue(session.state, action, self.policy)
        if new_state is session.state:
            logger.info("Queue action %s refused for teacher %s", type(action).__name__, teacher_id)
        session.state = new_state
        return new_state

    def set_caps(self, teacher_id: UUID, caps: DurationCaps) -> TeacherQueueSession | None:
        session = self.get(teacher_id)
        if session is not None:
            session.caps = caps
        return session

    def begin_commit(self, teacher_id: UUID, location: LocationEnum, day: date) -> QueueCommit | None:
        session = self.get(teacher_id)
        if session is None:
            return None
        if session.pending is not None:
            logger.warning("Submission already pending for teacher %s", teacher_id)
            return None
        session.pending = begin_commit(session.state, location, day)
        return session.pending

    def confirm_committed(self, teacher_id: UUID) -> QueueState | None:
        session = self._sessions.get(teacher_id)
        if session is None or session.pending is None:
            return None
        session.state = session.pending.confirm_committed()
        session.pending = None
        return session.state

    def rollback(self, teacher_id: UUID) -> QueueState | None:
        session = self._sessions.get(teacher_id)
        if session is None or session.pending is None:
            return None
        session.state = session.pending.rollback()
        session.pending = None
        logger.info("Restored queue for teacher %s after failed submission", teacher_id)
        return session.state


@dataclass
class EventEditSession:
    teacher_id: UUID
    state: EventEditState


class EventEditRegistry:
    """Open edits of committed events, one working copy per teacher."""

    def __init__(self, policy: SchedulingPolicy) -> None:
        self.policy = policy
        self._sessions: dict[UUID, EventEditSession] = {}

    def open(self, teacher_id: UUID, day: date, events: Iterable[TimelineEvent]) -> EventEditSession:
        """Start editing ``day`` from freshly loaded events, dropping any earlier working copy."""
        session = EventEditSession(teacher_id=teacher_id, state=new_edit(day, events))
        self._sessions[teacher_id] = session
        logger.info("Opened event edit for teacher %s on %s", teacher_id, day.isoformat())
        return session

    def get(self, teacher_id: UUID) -> EventEditSession | None:
        session = self._sessions.get(teacher_id)
        if session is None:
            logger.warning("No event edit open for teacher %s", teacher_id)
        return session

    def close(self, teacher_id: UUID) -> None:
        self._sessions.pop(teacher_id, None)

    @property
    def open_count(self) -> int:
        return len(self._sessions)

    def dispatch(self, teacher_id: UUID, action: EditAction) -> EventEditState | None:
        session = self.get(teacher_id)
        if session is None:
            return None
        new_state = reduce_edit(session.state, action, self.policy)
        if new_state is session.state:
            logger.info("Edit action %s refused for teacher %s", type(action).__name__, teacher_id)
        session.state = new_state
        return new_state
