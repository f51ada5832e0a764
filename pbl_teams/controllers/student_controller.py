# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Controller: Student endpoints — team creation, own team, inbox.
Thin HTTP layer — delegates ALL logic to TeamService / MessageService.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query

from pbl_teams.core.dependencies import get_message_service, get_team_service, require_role
from pbl_teams.models.domain import ROLE_STUDENT, Identity
from pbl_teams.schemas import (
    MessageListResponse,
    StudentTeamOut,
    StudentTeamResponse,
    TeamCreateRequest,
    message_out,
)
from pbl_teams.services.message_service import MessageService
from pbl_teams.services.team_service import TeamService

router = APIRouter(prefix="/api/v1/student", tags=["Student"])

student_only = require_role(ROLE_STUDENT)


@router.post("/teams", status_code=201, response_model=StudentTeamResponse)
def create_team(
    body: TeamCreateRequest,
    actor: Identity = Depends(student_only),
    service: TeamService = Depends(get_team_service),
):
    """Form a team; the caller must be its leader."""
    team = service.create_team(
        actor,
        team_name=body.team_name,
        year_id=body.year_id,
        subject_id=body.subject_id,
        members=body.members,
    )
    return StudentTeamResponse(team=StudentTeamOut.model_validate(team))


@router.get("/teams/my", response_model=StudentTeamResponse)
def my_team(
    year_id: Optional[str] = Query(default=None, alias="yearId"),
    subject_id: Optional[str] = Query(default=None, alias="subjectId"),
    actor: Identity = Depends(student_only),
    service: TeamService = Depends(get_team_service),
):
    team = service.my_team(actor, year_id, subject_id)
    return StudentTeamResponse(team=StudentTeamOut.model_validate(team) if team else None)


@router.get("/messages", response_model=MessageListResponse)
def list_my_messages(
    actor: Identity = Depends(student_only),
    service: MessageService = Depends(get_message_service),
):
    return MessageListResponse(
        messages=[message_out(m) for m in service.list_for_student(actor)]
    )
