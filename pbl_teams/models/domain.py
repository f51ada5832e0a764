# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Domain models — pure data structures, NO FastAPI dependency.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator

ROLE_STUDENT = "student"
ROLE_TEACHER = "teacher"
ROLE_ADMIN = "admin"
USER_ROLES = (ROLE_STUDENT, ROLE_TEACHER, ROLE_ADMIN)

MEMBER_ROLE_LEADER = "leader"
MEMBER_ROLE_MEMBER = "member"

STATUS_FINALIZED = "FINALIZED"
LEGACY_STATUS_FROZEN = "FROZEN"

MIN_TEAM_SIZE = 3
MAX_TEAM_SIZE = 4

# Column widths shared by the tables and the input checks.
MAX_NAME_LENGTH = 255
MAX_EMAIL_LENGTH = 320
MAX_ROLL_LENGTH = 64
MAX_SECTION_LENGTH = 64
MAX_TITLE_LENGTH = 500


def normalize_status(value: Optional[str]) -> str:
    """Legacy FROZEN teams present as FINALIZED wherever they are read."""
    if str(value or "").strip().upper() == LEGACY_STATUS_FROZEN:
        return STATUS_FINALIZED
    return value or STATUS_FINALIZED


def normalize_email(value: Optional[str]) -> str:
    return str(value or "").strip().lower()


class Year(BaseModel):
    id: str
    name: str
    code: str
    is_active: bool = True


class Subject(BaseModel):
    id: str
    year_id: str
    name: str
    code: str
    is_active: bool = True


class User(BaseModel):
    id: str
    name: str
    email: str
    role: str = Field(..., pattern="^(student|teacher|admin)$")
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class Identity(BaseModel):
    """Already-authenticated caller, as forwarded by the auth layer."""
    id: str
    email: str
    role: str


class Marks(BaseModel):
    score: float = Field(..., ge=0, le=100)
    remarks: str = ""
    graded_at: Optional[datetime] = None
    graded_by: Optional[str] = None


class Member(BaseModel):
    """A team member; embedded in its team, no identity of its own."""
    name: str
    email: str
    roll_number: str
    section: str = ""
    role: str = Field(default=MEMBER_ROLE_MEMBER, pattern="^(leader|member)$")
    marks: Optional[Marks] = None

    @property
    def is_leader(self) -> bool:
        return self.role == MEMBER_ROLE_LEADER


class Mentor(BaseModel):
    name: str = ""
    email: str = ""


class Team(BaseModel):
    id: str
    year_id: str
    subject_id: str
    team_name: str
    mentor: Mentor = Field(default_factory=Mentor)
    created_by: str
    status: str = STATUS_FINALIZED
    members: list[Member] = Field(default_factory=list)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    year: Optional[Year] = None
    subject: Optional[Subject] = None

    @field_validator("status", mode="before")
    @classmethod
    def migrate_legacy_status(cls, v):
        return normalize_status(v)

    def without_marks(self) -> dict:
        """Student view: the marks key is absent, not merely empty."""
        data = self.model_dump()
        for member in data["members"]:
            member.pop("marks", None)
        return data


class Message(BaseModel):
    id: str
    sender_id: str
    sender_email: Optional[str] = None
    title: str
    content: str
    team_ids: list[str] = Field(default_factory=list)
    created_at: Optional[datetime] = None
