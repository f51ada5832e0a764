# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Controller: Teacher endpoints — assigned teams, grading, broadcasts.
Thin HTTP layer — delegates ALL logic to GradingService / MessageService.
"""

from fastapi import APIRouter, Depends

from pbl_teams.core.dependencies import get_grading_service, get_message_service, require_role
from pbl_teams.models.domain import ROLE_TEACHER, Identity
from pbl_teams.schemas import (
    BroadcastRequest,
    BroadcastResponse,
    GradeRequest,
    MessageListResponse,
    OkResponse,
    TeamListResponse,
    TeamResponse,
    message_out,
    team_out,
)
from pbl_teams.services.grading_service import GradingService
from pbl_teams.services.message_service import MessageService

router = APIRouter(prefix="/api/v1/teacher", tags=["Teacher"])

teacher_only = require_role(ROLE_TEACHER)


# ── Teams & Grading ──

@router.get("/teams", response_model=TeamListResponse)
def list_assigned_teams(
    actor: Identity = Depends(teacher_only),
    service: GradingService = Depends(get_grading_service),
):
    return TeamListResponse(teams=[team_out(t) for t in service.list_assigned_teams(actor)])


@router.get("/teams/{team_id}", response_model=TeamResponse)
def get_assigned_team(
    team_id: str,
    actor: Identity = Depends(teacher_only),
    service: GradingService = Depends(get_grading_service),
):
    return TeamResponse(team=team_out(service.get_assigned_team(actor, team_id)))


@router.put("/grade", response_model=OkResponse)
def grade_team(
    body: GradeRequest,
    actor: Identity = Depends(teacher_only),
    service: GradingService = Depends(get_grading_service),
):
    """Grade members of a mentored team; all entries or none."""
    return service.grade_team(actor, body.team_id, body.grades)


# ── Broadcasts ──

@router.post("/broadcast", status_code=201, response_model=BroadcastResponse)
def broadcast(
    body: BroadcastRequest,
    actor: Identity = Depends(teacher_only),
    service: MessageService = Depends(get_message_service),
):
    return BroadcastResponse(**service.broadcast(actor, body.title, body.content))


@router.get("/messages", response_model=MessageListResponse)
def list_sent_messages(
    actor: Identity = Depends(teacher_only),
    service: MessageService = Depends(get_message_service),
):
    return MessageListResponse(
        messages=[message_out(m, teams_count=True) for m in service.list_sent(actor)]
    )


@router.delete("/messages/{message_id}", response_model=OkResponse)
def delete_sent_message(
    message_id: str,
    actor: Identity = Depends(teacher_only),
    service: MessageService = Depends(get_message_service),
):
    return service.delete_sent(actor, message_id)
