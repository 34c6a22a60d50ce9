"""REST API endpoints for workout sessions and the exercise log form."""

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from dependencies import get_session_manager
from sessions import RecordNotFoundError, SessionManager
from typedefs import ExerciseDraft, SetEntry, WorkoutSession

router = APIRouter(prefix="/api/v1/sessions", tags=["sessions"])


class SessionCreateRequest(BaseModel):
    """Request model for starting a session, optionally from a template."""

    name: str = Field(min_length=1)
    template_id: Optional[str] = None


class ExerciseLogRequest(BaseModel):
    """Submitted exercise log form.

    Set exercise_id to log a planned exercise in place.
    """

    name: str = Field(min_length=1)
    sets: List[SetEntry]
    exercise_id: Optional[str] = None


def _not_found(err: RecordNotFoundError) -> HTTPException:
    return HTTPException(status_code=404, detail=str(err))


@router.get("", response_model=List[WorkoutSession])
def list_sessions(
    manager: SessionManager = Depends(get_session_manager),
) -> List[WorkoutSession]:
    """List all sessions, newest first."""
    return manager.get_sessions()


@router.get("/today", response_model=WorkoutSession)
def get_today_session(
    manager: SessionManager = Depends(get_session_manager),
) -> WorkoutSession:
    """Get today's session so an interrupted workout can be resumed.

    Raises:
        HTTPException: 404 if no session was started today
    """
    session = manager.get_today_session()
    if session is None:
        raise HTTPException(status_code=404, detail="No session today")
    return session


@router.get("/draft", response_model=ExerciseDraft)
def get_draft(manager: SessionManager = Depends(get_session_manager)) -> ExerciseDraft:
    """Get the unsaved exercise form, or an empty one."""
    return manager.get_draft() or ExerciseDraft()


@router.put("/draft", response_model=ExerciseDraft)
def save_draft(
    draft: ExerciseDraft, manager: SessionManager = Depends(get_session_manager)
) -> ExerciseDraft:
    return manager.save_draft(draft)


@router.delete("/draft", status_code=204)
def clear_draft(manager: SessionManager = Depends(get_session_manager)) -> None:
    manager.clear_draft()


@router.post("", response_model=WorkoutSession, status_code=201)
def create_session(
    request: SessionCreateRequest,
    manager: SessionManager = Depends(get_session_manager),
) -> WorkoutSession:
    """Start a new session.

    When template_id is given, one planned exercise with three empty sets is
    added per template exercise.
    """
    try:
        return manager.start_session(request.name, request.template_id)
    except RecordNotFoundError as err:
        raise _not_found(err) from err


@router.get("/{session_id}", response_model=WorkoutSession)
def get_session(
    session_id: str, manager: SessionManager = Depends(get_session_manager)
) -> WorkoutSession:
    try:
        return manager.get_session(session_id)
    except RecordNotFoundError as err:
        raise _not_found(err) from err


@router.put("/{session_id}", response_model=List[WorkoutSession])
def upsert_session(
    session_id: str,
    session: WorkoutSession,
    manager: SessionManager = Depends(get_session_manager),
) -> List[WorkoutSession]:
    """Replace a session wholesale, or add it if its id is new.

    Returns:
        The updated session collection
    """
    if session.id != session_id:
        raise HTTPException(status_code=400, detail="Session id does not match path")
    return manager.upsert_session(session)


@router.delete("/{session_id}", response_model=List[WorkoutSession])
def delete_session(
    session_id: str, manager: SessionManager = Depends(get_session_manager)
) -> List[WorkoutSession]:
    """Delete a session from history (irreversible).

    Returns:
        The remaining session collection
    """
    return manager.delete_session(session_id)


@router.post("/{session_id}/exercises", response_model=WorkoutSession)
def log_exercise(
    session_id: str,
    request: ExerciseLogRequest,
    manager: SessionManager = Depends(get_session_manager),
) -> WorkoutSession:
    """Log sets for an exercise and clear the saved form draft."""
    try:
        session = manager.log_exercise(
            session_id, request.name, request.sets, request.exercise_id
        )
    except RecordNotFoundError as err:
        raise _not_found(err) from err
    manager.clear_draft()
    return session


@router.delete("/{session_id}/exercises/{exercise_id}", response_model=WorkoutSession)
def delete_exercise(
    session_id: str,
    exercise_id: str,
    manager: SessionManager = Depends(get_session_manager),
) -> WorkoutSession:
    try:
        return manager.delete_exercise(session_id, exercise_id)
    except RecordNotFoundError as err:
        raise _not_found(err) from err
