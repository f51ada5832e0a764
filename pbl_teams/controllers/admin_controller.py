# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Controller: Admin endpoints — teams overview, spreadsheet syncs, broadcasts
audit, teacher accounts, migrations.
"""

from fastapi import APIRouter, Depends, Query
from starlette.responses import JSONResponse

from pbl_teams.core.dependencies import (
    get_admin_service,
    get_message_service,
    get_user_service,
    require_role,
)
from pbl_teams.models.domain import ROLE_ADMIN, Identity
from pbl_teams.schemas import (
    AdminTeamsResponse,
    MessageListResponse,
    MigrationResponse,
    Pagination,
    PullSummaryOut,
    PushSummaryOut,
    TeacherCreateRequest,
    TeacherListResponse,
    TeacherOut,
    TeacherResponse,
    TeamResponse,
    UserOut,
    message_out,
    team_out,
)
from pbl_teams.services.admin_service import AdminService
from pbl_teams.services.message_service import MessageService
from pbl_teams.services.user_service import UserService

router = APIRouter(prefix="/api/v1/admin", tags=["Admin"])

admin_only = require_role(ROLE_ADMIN)


# ── Teams ──

@router.get("/teams", response_model=AdminTeamsResponse)
def list_teams(
    page: int = Query(default=1),
    limit: int = Query(default=50),
    _: Identity = Depends(admin_only),
    service: AdminService = Depends(get_admin_service),
):
    """All teams, newest first, with the last mentor sync time."""
    result = service.list_teams(page, limit)
    return AdminTeamsResponse(
        teams=[team_out(t) for t in result["teams"]],
        last_synced_at=result["last_synced_at"],
        pagination=Pagination(**result["pagination"]),
    )


@router.get("/teams/{team_id}", response_model=TeamResponse)
def get_team_details(
    team_id: str,
    _: Identity = Depends(admin_only),
    service: AdminService = Depends(get_admin_service),
):
    return TeamResponse(team=team_out(service.team_details(team_id)))


# ── Spreadsheet ──

@router.post("/sync-mentors", response_model=PullSummaryOut)
def sync_mentors(
    _: Identity = Depends(admin_only),
    service: AdminService = Depends(get_admin_service),
):
    """Pull mentor assignments from the spreadsheet."""
    return PullSummaryOut(**service.sync_mentors())


@router.post("/sync-sheet", response_model=PushSummaryOut)
def sync_sheet(
    _: Identity = Depends(admin_only),
    service: AdminService = Depends(get_admin_service),
):
    """Rewrite the spreadsheet from the database."""
    return PushSummaryOut(**service.sync_sheet())


# ── Messages ──

@router.get("/messages", response_model=MessageListResponse)
def list_all_messages(
    _: Identity = Depends(admin_only),
    service: MessageService = Depends(get_message_service),
):
    return MessageListResponse(
        messages=[message_out(m, content=False, teams_count=True) for m in service.list_all()]
    )


# ── Teachers ──

@router.get("/teachers", response_model=TeacherListResponse)
def list_teachers(
    _: Identity = Depends(admin_only),
    service: UserService = Depends(get_user_service),
):
    return TeacherListResponse(teachers=[TeacherOut(**t) for t in service.list_teachers()])


@router.post("/teachers", response_model=TeacherResponse)
def create_teacher(
    body: TeacherCreateRequest,
    _: Identity = Depends(admin_only),
    service: UserService = Depends(get_user_service),
):
    """Create a teacher (201) or rename an existing one (200)."""
    teacher, created = service.create_teacher(body.email, body.name)
    payload = TeacherResponse(teacher=UserOut(**teacher.model_dump()))
    return JSONResponse(
        status_code=201 if created else 200,
        content=payload.model_dump(mode="json", by_alias=True),
    )


# ── Migrations ──

@router.post("/migrate-statuses", response_model=MigrationResponse)
def migrate_team_statuses(
    _: Identity = Depends(admin_only),
    service: AdminService = Depends(get_admin_service),
):
    return MigrationResponse(**service.migrate_team_statuses())
