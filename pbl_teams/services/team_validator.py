# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Team payload validation. Pure functions, no I/O.

Rules are checked in a fixed order and the first violation wins:
name, entity references, member count, required member fields and their
column widths, leader, intra-team duplicates.
"""

import uuid
from dataclasses import dataclass, field
from typing import Any, Optional

from pbl_teams.models.domain import (
    MAX_EMAIL_LENGTH,
    MAX_NAME_LENGTH,
    MAX_ROLL_LENGTH,
    MAX_SECTION_LENGTH,
    MAX_TEAM_SIZE,
    MEMBER_ROLE_LEADER,
    MEMBER_ROLE_MEMBER,
    MIN_TEAM_SIZE,
    Member,
    normalize_email,
)


@dataclass
class TeamValidation:
    team_name: str = ""
    members: list[Member] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


def is_entity_ref(value: Any) -> bool:
    if not isinstance(value, str):
        return False
    try:
        uuid.UUID(value)
    except ValueError:
        return False
    return True


def _text(value: Any) -> str:
    return value.strip() if isinstance(value, str) else ("" if value is None else str(value).strip())


def normalize_members(members: list[Any]) -> list[Member]:
    """Trim names, lowercase emails, uppercase roll numbers, infer the leader flag."""
    normalized = []
    for raw in members:
        m = raw if isinstance(raw, dict) else {}
        is_leader = m.get("role") == MEMBER_ROLE_LEADER or bool(m.get("isLeader") or m.get("is_leader"))
        normalized.append(
            Member(
                name=_text(m.get("name")),
                email=normalize_email(m.get("email")),
                roll_number=_text(m.get("rollNumber", m.get("roll_number"))).upper(),
                section=m["section"].strip() if isinstance(m.get("section"), str) else "",
                role=MEMBER_ROLE_LEADER if is_leader else MEMBER_ROLE_MEMBER,
            )
        )
    return normalized


def compact_members(members: list[Member]) -> list[Member]:
    """Drop fully-empty non-leader rows (blank form slots)."""
    return [m for m in members if m.is_leader or m.name or m.email or m.roll_number]


def validate_team_payload(
    team_name: Any,
    year_id: Any,
    subject_id: Any,
    members: Any,
    acting_email: str,
) -> TeamValidation:
    if not isinstance(team_name, str) or not team_name.strip():
        return TeamValidation(error="Team Name is required")
    if len(team_name.strip()) > MAX_NAME_LENGTH:
        return TeamValidation(error=f"Team Name must be at most {MAX_NAME_LENGTH} characters")
    if not is_entity_ref(year_id):
        return TeamValidation(error="Invalid yearId")
    if not is_entity_ref(subject_id):
        return TeamValidation(error="Invalid subjectId")
    if not isinstance(members, list):
        return TeamValidation(error="Members are required")

    normalized = compact_members(normalize_members(members))
    if not MIN_TEAM_SIZE <= len(normalized) <= MAX_TEAM_SIZE:
        return TeamValidation(error="Team must have 3 or 4 members")

    for m in normalized:
        if not m.name or not m.email or not m.roll_number:
            return TeamValidation(error="Each member requires name, email, rollNumber")
        if len(m.name) > MAX_NAME_LENGTH:
            return TeamValidation(error=f"Member name must be at most {MAX_NAME_LENGTH} characters")
        if len(m.email) > MAX_EMAIL_LENGTH:
            return TeamValidation(error=f"Member email must be at most {MAX_EMAIL_LENGTH} characters")
        if len(m.roll_number) > MAX_ROLL_LENGTH:
            return TeamValidation(error=f"Roll number must be at most {MAX_ROLL_LENGTH} characters")
        if len(m.section) > MAX_SECTION_LENGTH:
            return TeamValidation(error=f"Section must be at most {MAX_SECTION_LENGTH} characters")

    leaders = [m for m in normalized if m.is_leader]
    if len(leaders) != 1:
        return TeamValidation(error="Exactly 1 leader is required")
    if leaders[0].email != normalize_email(acting_email):
        return TeamValidation(error="Leader must be the logged-in student")

    emails = [m.email for m in normalized]
    rolls = [m.roll_number for m in normalized]
    if len(set(emails)) != len(emails):
        return TeamValidation(error="Duplicate email detected within team")
    if len(set(rolls)) != len(rolls):
        return TeamValidation(error="Duplicate roll number detected within team")

    return TeamValidation(team_name=team_name.strip(), members=normalized)
