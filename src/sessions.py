"""Workout session and template management.

Every mutation is write-then-sync: the local store is updated synchronously
and the new collection returned right away, then, if an account is active,
the full account bundle is handed to the sync service for a best-effort push.
"""

import datetime
import logging
import uuid
from typing import Iterable, List, Sequence

from local_store import LocalStore
from reconciliation import SyncService, local_time, sort_sessions
from typedefs import (
    ExerciseDraft,
    ExerciseLog,
    SetEntry,
    Template,
    WorkoutSession,
)

logger = logging.getLogger(__name__)

# Number of empty set slots seeded for each planned exercise
DEFAULT_SETS_PER_EXERCISE = 3


class RecordNotFoundError(LookupError):
    """Raised when a session, exercise or template id is unknown."""


class EmptyTemplateError(ValueError):
    """Raised when saving a template without any exercises."""


def new_id() -> str:
    return str(uuid.uuid4())


def empty_sets(count: int = DEFAULT_SETS_PER_EXERCISE) -> List[SetEntry]:
    return [SetEntry() for _ in range(count)]


def session_day(session: WorkoutSession) -> datetime.date:
    """Local calendar day on which a session took place."""
    return local_time(session.date).date()


def unique_names(names: Iterable[str]) -> List[str]:
    """De-duplicate names, keeping first-occurrence order."""
    return list(dict.fromkeys(names))


def create_session(
    name: str, template_exercise_names: Sequence[str] = ()
) -> WorkoutSession:
    """Build a new session, seeding one planned exercise per template name.

    The session is not persisted; pass it to ``SessionManager.upsert_session``.
    """
    return WorkoutSession(
        id=new_id(),
        date=datetime.datetime.now(datetime.UTC),
        name=name,
        exercises=[
            ExerciseLog(
                id=new_id(),
                name=exercise_name,
                sets=empty_sets(),
                is_completed=False,
            )
            for exercise_name in template_exercise_names
        ],
    )


class SessionManager:
    def __init__(
        self, store: LocalStore, sync: SyncService, user_id: str | None = None
    ):
        self.store = store
        self.sync = sync
        self.user_id = user_id

    def _push(self) -> None:
        if self.user_id:
            self.sync.push_user_data(self.user_id)

    # Sessions

    def get_sessions(self) -> List[WorkoutSession]:
        return self.store.get_sessions()

    def get_session(self, session_id: str) -> WorkoutSession:
        for session in self.store.get_sessions():
            if session.id == session_id:
                return session
        raise RecordNotFoundError(f"Session {session_id} not found")

    def get_today_session(
        self, today: datetime.date | None = None
    ) -> WorkoutSession | None:
        """Return the first session dated today, so the day's workout can resume."""
        if today is None:
            today = datetime.date.today()
        return next(
            (s for s in self.store.get_sessions() if session_day(s) == today), None
        )

    def start_session(
        self, name: str, template_id: str | None = None
    ) -> WorkoutSession:
        """Create a session (optionally seeded from a saved template) and save it."""
        exercise_names: List[str] = []
        if template_id:
            exercise_names = self.get_template(template_id).exercises
        session = create_session(name, exercise_names)
        self.upsert_session(session)
        logger.info("Started session %s (%s)", session.id, name)
        return session

    def upsert_session(self, session: WorkoutSession) -> List[WorkoutSession]:
        """Replace the session with the same id, or add it if new.

        The collection is re-sorted newest first, so a backdated session
        lands at its place in history.
        """
        with self.store.exclusive():
            sessions = self.store.get_sessions()
            for index, existing in enumerate(sessions):
                if existing.id == session.id:
                    sessions[index] = session
                    break
            else:
                sessions.insert(0, session)

            sessions = sort_sessions(sessions)
            self.store.set_sessions(sessions)
        self._push()
        return sessions

    def delete_session(self, session_id: str) -> List[WorkoutSession]:
        with self.store.exclusive():
            sessions = [s for s in self.store.get_sessions() if s.id != session_id]
            self.store.set_sessions(sessions)
        self._push()
        return sessions

    # Exercises within a session

    def save_exercise(self, session_id: str, exercise: ExerciseLog) -> WorkoutSession:
        """Replace the exercise with the same id in the session, or prepend it."""
        with self.store.exclusive():
            session = self.get_session(session_id)
            if any(e.id == exercise.id for e in session.exercises):
                exercises = [
                    exercise if e.id == exercise.id else e for e in session.exercises
                ]
            else:
                exercises = [exercise, *session.exercises]

            updated = session.model_copy(update={"exercises": exercises})
            self.upsert_session(updated)
        return updated

    def log_exercise(
        self,
        session_id: str,
        name: str,
        sets: Sequence[SetEntry],
        exercise_id: str | None = None,
    ) -> WorkoutSession:
        """Record sets for an exercise, marking it completed.

        Passing the id of a planned exercise logs that exercise in place;
        otherwise a new exercise is added to the top of the session.
        """
        exercise = ExerciseLog(
            id=exercise_id or new_id(),
            name=name,
            sets=list(sets),
            is_completed=True,
        )
        return self.save_exercise(session_id, exercise)

    def delete_exercise(self, session_id: str, exercise_id: str) -> WorkoutSession:
        with self.store.exclusive():
            session = self.get_session(session_id)
            updated = session.model_copy(
                update={
                    "exercises": [e for e in session.exercises if e.id != exercise_id]
                }
            )
            self.upsert_session(updated)
        return updated

    # Templates

    def get_templates(self) -> List[Template]:
        return self.store.get_templates()

    def get_template(self, template_id: str) -> Template:
        for template in self.store.get_templates():
            if template.id == template_id:
                return template
        raise RecordNotFoundError(f"Template {template_id} not found")

    def save_template(self, name: str, exercise_names: Sequence[str]) -> List[Template]:
        """Save a template, replacing any existing template with the same name.

        Raises:
            EmptyTemplateError: If no exercise names are given
        """
        if not exercise_names:
            raise EmptyTemplateError("Add some exercises first!")

        template = Template(id=new_id(), name=name, exercises=list(exercise_names))
        with self.store.exclusive():
            templates = [
                template,
                *(t for t in self.store.get_templates() if t.name != name),
            ]
            self.store.set_templates(templates)
        self._push()
        return templates

    def template_from_session(self, session_id: str) -> List[Template]:
        """Save a session's name and distinct exercise names as a template."""
        session = self.get_session(session_id)
        return self.save_template(
            session.name, unique_names(e.name for e in session.exercises)
        )

    def delete_template(self, template_id: str) -> List[Template]:
        with self.store.exclusive():
            templates = [t for t in self.store.get_templates() if t.id != template_id]
            self.store.set_templates(templates)
        self._push()
        return templates

    # Unsaved exercise form

    def get_draft(self) -> ExerciseDraft | None:
        return self.store.get_draft()

    def save_draft(self, draft: ExerciseDraft) -> ExerciseDraft:
        self.store.set_draft(draft)
        return draft

    def clear_draft(self) -> None:
        self.store.clear_draft()
