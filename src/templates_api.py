"""REST API endpoints for template operations."""

from typing import List

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from dependencies import get_session_manager
from sessions import EmptyTemplateError, RecordNotFoundError, SessionManager
from typedefs import Template

router = APIRouter(prefix="/api/v1/templates", tags=["templates"])


class TemplateSaveRequest(BaseModel):
    name: str = Field(min_length=1)
    exercises: List[str]  # Exercise names, in order


@router.get("", response_model=List[Template])
def list_templates(
    manager: SessionManager = Depends(get_session_manager),
) -> List[Template]:
    """List all templates, most recently saved first."""
    return manager.get_templates()


@router.get("/{template_id}", response_model=Template)
def get_template(
    template_id: str, manager: SessionManager = Depends(get_session_manager)
) -> Template:
    """Get a specific template by ID.

    Raises:
        HTTPException: 404 if template not found
    """
    try:
        return manager.get_template(template_id)
    except RecordNotFoundError as err:
        raise HTTPException(status_code=404, detail="Template not found") from err


@router.post("", response_model=List[Template], status_code=201)
def save_template(
    request: TemplateSaveRequest,
    manager: SessionManager = Depends(get_session_manager),
) -> List[Template]:
    """Save a template; an existing template with the same name is replaced.

    Raises:
        HTTPException: 400 if the exercise list is empty
    """
    try:
        return manager.save_template(request.name, request.exercises)
    except EmptyTemplateError as err:
        raise HTTPException(status_code=400, detail=str(err)) from err


@router.post(
    "/from-session/{session_id}", response_model=List[Template], status_code=201
)
def save_template_from_session(
    session_id: str, manager: SessionManager = Depends(get_session_manager)
) -> List[Template]:
    """Save a session's routine (its name and distinct exercises) as a template."""
    try:
        return manager.template_from_session(session_id)
    except RecordNotFoundError as err:
        raise HTTPException(status_code=404, detail=str(err)) from err
    except EmptyTemplateError as err:
        raise HTTPException(status_code=400, detail=str(err)) from err


@router.delete("/{template_id}", response_model=List[Template])
def delete_template(
    template_id: str, manager: SessionManager = Depends(get_session_manager)
) -> List[Template]:
    return manager.delete_template(template_id)
