# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Request / Response schemas — API contract definitions.
Used ONLY at the controller (HTTP) boundary. JSON keys are camelCase.

Team, grade and broadcast bodies are loosely typed; the services report rule
violations with their own messages.
"""

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from pbl_teams.models.domain import Message, Team


class ApiModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ── Requests ──

class TeamCreateRequest(ApiModel):
    team_name: Any = None
    year_id: Any = None
    subject_id: Any = None
    members: Any = None


class GradeRequest(ApiModel):
    team_id: Any = None
    grades: Any = None


class BroadcastRequest(ApiModel):
    title: Any = None
    content: Any = None


class TeacherCreateRequest(ApiModel):
    email: Any = None
    name: Any = None


class LoginUserRequest(ApiModel):
    email: str = Field(..., min_length=1, max_length=320)
    name: Optional[str] = None
    role: str = Field(..., pattern="^(student|teacher|admin)$")


# ── Catalogue ──

class YearOut(ApiModel):
    id: str
    name: str
    code: str
    is_active: bool = True


class SubjectOut(ApiModel):
    id: str
    year_id: str
    name: str
    code: str
    is_active: bool = True


class YearListResponse(ApiModel):
    years: list[YearOut]


class SubjectListResponse(ApiModel):
    subjects: list[SubjectOut]


# ── Teams ──

class MarksOut(ApiModel):
    score: float
    remarks: str = ""
    graded_at: Optional[datetime] = None
    graded_by: Optional[str] = None


class StudentMemberOut(ApiModel):
    name: str
    email: str
    roll_number: str
    section: str = ""
    role: str


class MemberOut(StudentMemberOut):
    marks: Optional[MarksOut] = None


class MentorOut(ApiModel):
    name: str = ""
    email: str = ""


class TeamOut(ApiModel):
    id: str
    year_id: str
    subject_id: str
    team_name: str
    mentor: MentorOut
    created_by: str
    status: str
    members: list[MemberOut]
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    year: Optional[YearOut] = None
    subject: Optional[SubjectOut] = None


class StudentTeamOut(TeamOut):
    """Student view; members carry no marks key at all."""
    members: list[StudentMemberOut]


class StudentTeamResponse(ApiModel):
    team: Optional[StudentTeamOut] = None


class TeamResponse(ApiModel):
    team: TeamOut


class TeamListResponse(ApiModel):
    teams: list[TeamOut]


class Pagination(ApiModel):
    page: int
    limit: int
    total: int
    total_pages: int


class AdminTeamsResponse(ApiModel):
    teams: list[TeamOut]
    last_synced_at: Optional[str] = None
    pagination: Pagination


class OkResponse(ApiModel):
    ok: bool = True


# ── Messages ──

class BroadcastResponse(ApiModel):
    ok: bool = True
    message_id: str
    teams_count: int


class MessageOut(ApiModel):
    id: str
    sender_email: str = ""
    title: str
    content: Optional[str] = None
    created_at: Optional[datetime] = None
    teams_count: Optional[int] = None


class MessageListResponse(ApiModel):
    messages: list[MessageOut]


# ── Users ──

class UserOut(ApiModel):
    id: str
    name: str
    email: str
    role: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class TeacherOut(UserOut):
    assigned_teams_count: int = 0


class TeacherListResponse(ApiModel):
    teachers: list[TeacherOut]


class TeacherResponse(ApiModel):
    ok: bool = True
    teacher: UserOut


class LoginUserResponse(ApiModel):
    user: UserOut


# ── Spreadsheet sync & migrations ──

class SheetInitOut(ApiModel):
    created_tabs: int = 0
    headers_updated: int = 0


class PushSummaryOut(ApiModel):
    skipped: bool
    reason: Optional[str] = None
    init: Optional[SheetInitOut] = None
    tabs: dict[str, int] = Field(default_factory=dict)
    teams: int = 0
    unmapped_teams: int = 0
    leaderless_teams: int = 0


class PullSummaryOut(ApiModel):
    skipped: bool
    reason: Optional[str] = None
    processed: int = 0
    updated: int = 0
    cleared: int = 0
    rejected: int = 0
    by_tab: dict[str, dict[str, Any]] = Field(default_factory=dict)
    provisioned_teachers: int = 0
    provisioned_teacher_emails: list[str] = Field(default_factory=list)
    unknown_mentor_emails: list[str] = Field(default_factory=list)
    last_synced_at: Optional[str] = None


class MigrationResponse(ApiModel):
    ok: bool = True
    matched_count: int
    modified_count: int


# ── Domain → response helpers ──

def team_out(team: Team) -> TeamOut:
    return TeamOut.model_validate(team.model_dump())


def message_out(message: Message, content: bool = True, teams_count: bool = False) -> MessageOut:
    return MessageOut(
        id=message.id,
        sender_email=message.sender_email or "",
        title=message.title,
        content=message.content if content else None,
        created_at=message.created_at,
        teams_count=len(message.team_ids) if teams_count else None,
    )
