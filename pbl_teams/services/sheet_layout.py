# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Spreadsheet layout — fixed tabs, fixed header, team → row projection.

The column order and header text are a compatibility contract: the mentor
pull locates its columns by header text.
"""

import re
from enum import Enum
from typing import Any, Optional

from pbl_teams.models.domain import Subject, Team, Year, normalize_status


class YearSlot(str, Enum):
    Y1 = "1"
    Y2 = "2"
    Y3 = "3"
    UNKNOWN = ""


class SubjectSlot(str, Enum):
    S1 = "1"
    S2 = "2"
    UNKNOWN = ""


# Historical spellings of year and subject codes, matched after normalize_token().
YEAR_ALIASES: dict[str, YearSlot] = {
    "1": YearSlot.Y1, "y1": YearSlot.Y1, "fy": YearSlot.Y1,
    "2": YearSlot.Y2, "y2": YearSlot.Y2, "sy": YearSlot.Y2,
    "3": YearSlot.Y3, "y3": YearSlot.Y3, "ty": YearSlot.Y3,
}
YEAR_NAME_FRAGMENTS: tuple[tuple[str, YearSlot], ...] = (
    ("firstyear", YearSlot.Y1),
    ("secondyear", YearSlot.Y2),
    ("thirdyear", YearSlot.Y3),
)
SUBJECT_ALIASES: dict[str, SubjectSlot] = {
    "subject1": SubjectSlot.S1, "sub1": SubjectSlot.S1, "s1": SubjectSlot.S1,
    "subject2": SubjectSlot.S2, "sub2": SubjectSlot.S2, "s2": SubjectSlot.S2,
}

SHEET_TABS: tuple[str, ...] = (
    "Y1_Subject1",
    "Y1_Subject2",
    "Y2_Subject1",
    "Y2_Subject2",
    "Y3_Subject1",
    "Y3_Subject2",
)

SHEET_HEADER: tuple[str, ...] = (
    "Team ID",
    "Team Name",
    "Year",
    "Subject",
    "Leader Roll",
    "Leader Name",
    "Leader Email",
    "Member1 Roll",
    "Member1 Name",
    "Member1 Email",
    "Member2 Roll",
    "Member2 Name",
    "Member2 Email",
    "Member3 Roll",
    "Member3 Name",
    "Member3 Email",
    "Mentor Name",
    "Mentor Email",
    "Status",
    "Member1 Marks",
    "Member1 Remarks",
    "Member2 Marks",
    "Member2 Remarks",
    "Member3 Marks",
    "Member3 Remarks",
)

MEMBER_SLOTS = 3


def column_letter(index: int) -> str:
    """1-based column index to A1 letters (1 → A, 27 → AA)."""
    if index < 1:
        return "A"
    letters = ""
    while index > 0:
        index, rem = divmod(index - 1, 26)
        letters = chr(65 + rem) + letters
    return letters


SHEET_END_COL = column_letter(len(SHEET_HEADER))


def a1_range(tab: str, cells: str) -> str:
    """Quoted A1 range; tab names may contain spaces or quotes."""
    return "'{}'!{}".format(tab.replace("'", "''"), cells)


def blank_row() -> list[Any]:
    return [""] * len(SHEET_HEADER)


def normalize_row(row: Optional[list[Any]]) -> list[Any]:
    """Pad or truncate a row to the header width."""
    out = ["" if v is None else v for v in (row or [])]
    return (out + blank_row())[: len(SHEET_HEADER)]


def header_matches(row: Optional[list[Any]]) -> bool:
    cells = [str(v if v is not None else "").strip() for v in (row or [])]
    return cells == list(SHEET_HEADER)


def normalize_token(value: Any) -> str:
    return re.sub(r"[\s_]+", "", str(value or "").strip().lower())


def resolve_year_slot(year: Optional[Year]) -> YearSlot:
    if year is None:
        return YearSlot.UNKNOWN
    token = normalize_token(year.code) or normalize_token(year.name)
    if token in YEAR_ALIASES:
        return YEAR_ALIASES[token]
    for fragment, slot in YEAR_NAME_FRAGMENTS:
        if fragment in token:
            return slot
    return YearSlot.UNKNOWN


def resolve_subject_slot(subject: Optional[Subject]) -> SubjectSlot:
    if subject is None:
        return SubjectSlot.UNKNOWN
    token = normalize_token(subject.code) or normalize_token(subject.name)
    return SUBJECT_ALIASES.get(token, SubjectSlot.UNKNOWN)


def tab_for_team(team: Team) -> Optional[str]:
    year_slot = resolve_year_slot(team.year)
    subject_slot = resolve_subject_slot(team.subject)
    if year_slot is YearSlot.UNKNOWN or subject_slot is SubjectSlot.UNKNOWN:
        return None
    return f"Y{year_slot.value}_Subject{subject_slot.value}"


def render_score(score: Optional[float]) -> Any:
    if score is None:
        return ""
    return int(score) if float(score).is_integer() else score


def has_flagged_leader(team: Team) -> bool:
    return any(m.is_leader for m in team.members)


def render_row(team: Team) -> list[Any]:
    """Project a team onto the 25 sheet columns.

    Only three non-leader slots exist; a fourth non-leader member stays in
    the database but is not shown. Without a flagged leader the first
    member fills the leader columns.
    """
    members = list(team.members)
    leader_idx = next((i for i, m in enumerate(members) if m.is_leader), 0 if members else None)
    leader = members[leader_idx] if leader_idx is not None else None
    others = [m for i, m in enumerate(members) if i != leader_idx][:MEMBER_SLOTS]
    others += [None] * (MEMBER_SLOTS - len(others))

    member_cols: list[Any] = []
    marks_cols: list[Any] = []
    for m in others:
        member_cols += [m.roll_number, m.name, m.email] if m else ["", "", ""]
        if m and m.marks:
            marks_cols += [render_score(m.marks.score), m.marks.remarks or ""]
        else:
            marks_cols += ["", ""]

    year_slot = resolve_year_slot(team.year)
    subject_slot = resolve_subject_slot(team.subject)
    row = [
        team.id,
        team.team_name,
        year_slot.value,
        f"Subject{subject_slot.value}" if subject_slot is not SubjectSlot.UNKNOWN else "",
        leader.roll_number if leader else "",
        leader.name if leader else "",
        leader.email if leader else "",
        *member_cols,
        team.mentor.name,
        team.mentor.email,
        normalize_status(team.status),
        *marks_cols,
    ]
    return normalize_row(row)
