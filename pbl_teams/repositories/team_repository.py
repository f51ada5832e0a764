# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Repository: Team data access.
Teams and their embedded members live in two tables; every read hydrates
members in list order. NO business rules here, pure CRUD.
"""

from collections import defaultdict
from datetime import datetime, timezone
from typing import Any, Iterable, Optional

from sqlalchemy import func, or_, select, update
from sqlalchemy.engine import Connection, Engine

from pbl_teams.models.domain import (
    LEGACY_STATUS_FROZEN,
    STATUS_FINALIZED,
    Marks,
    Member,
    Mentor,
    Subject,
    Team,
    Year,
)
from pbl_teams.core.database import subjects, team_members, teams, years


def _member_from_row(row) -> Member:
    marks = None
    if row["score"] is not None:
        marks = Marks(
            score=row["score"],
            remarks=row["remarks"] or "",
            graded_at=row["graded_at"],
            graded_by=row["graded_by"],
        )
    return Member(
        name=row["name"],
        email=row["email"],
        roll_number=row["roll_number"],
        section=row["section"] or "",
        role=row["role"],
        marks=marks,
    )


class TeamRepository:
    def __init__(self, engine: Engine):
        self._engine = engine

    # ── Write ──────────────────────────────────────────────────────────

    def create_team(self, team: Team) -> Team:
        """Insert a team and its members atomically. IntegrityError propagates."""
        now = datetime.now(timezone.utc)
        with self._engine.begin() as conn:
            conn.execute(
                teams.insert().values(
                    id=team.id,
                    year_id=team.year_id,
                    subject_id=team.subject_id,
                    team_name=team.team_name,
                    mentor_name=team.mentor.name,
                    mentor_email=team.mentor.email,
                    created_by=team.created_by,
                    status=team.status,
                    created_at=now,
                    updated_at=now,
                )
            )
            conn.execute(
                team_members.insert(),
                [
                    {
                        "team_id": team.id,
                        "position": idx,
                        "year_id": team.year_id,
                        "subject_id": team.subject_id,
                        "name": m.name,
                        "email": m.email,
                        "roll_number": m.roll_number,
                        "section": m.section,
                        "role": m.role,
                        "score": None,
                        "remarks": None,
                        "graded_at": None,
                        "graded_by": None,
                    }
                    for idx, m in enumerate(team.members)
                ],
            )
        return team.model_copy(update={"created_at": now, "updated_at": now})

    def update_mentor(self, team_id: str, name: str, email: str) -> bool:
        """Overwrite mentor fields. Returns True only when a value changed."""
        with self._engine.begin() as conn:
            result = conn.execute(
                update(teams)
                .where(teams.c.id == team_id)
                .where(or_(teams.c.mentor_name != name, teams.c.mentor_email != email))
                .values(
                    mentor_name=name,
                    mentor_email=email,
                    updated_at=datetime.now(timezone.utc),
                )
            )
        return result.rowcount > 0

    def save_grades(self, team_id: str, graded: dict[int, Marks]) -> None:
        """Persist marks by member position and settle the team status."""
        with self._engine.begin() as conn:
            for position, marks in graded.items():
                conn.execute(
                    update(team_members)
                    .where(team_members.c.team_id == team_id)
                    .where(team_members.c.position == position)
                    .values(
                        score=marks.score,
                        remarks=marks.remarks,
                        graded_at=marks.graded_at,
                        graded_by=marks.graded_by,
                    )
                )
            conn.execute(
                update(teams)
                .where(teams.c.id == team_id)
                .values(status=STATUS_FINALIZED, updated_at=datetime.now(timezone.utc))
            )

    def migrate_legacy_statuses(self) -> tuple[int, int]:
        with self._engine.begin() as conn:
            result = conn.execute(
                update(teams)
                .where(func.upper(teams.c.status) == LEGACY_STATUS_FROZEN)
                .values(status=STATUS_FINALIZED)
            )
        return result.rowcount, result.rowcount

    # ── Read ───────────────────────────────────────────────────────────

    def get(self, team_id: str, with_catalogue: bool = False) -> Optional[Team]:
        found = self.find_teams(team_id=team_id, with_catalogue=with_catalogue)
        return found[0] if found else None

    def find_one_for_mentor(self, team_id: str, mentor_email: str) -> Optional[Team]:
        found = self.find_teams(team_id=team_id, mentor_email=mentor_email, with_catalogue=True)
        return found[0] if found else None

    def find_for_member(self, member_email: str, year_id: str, subject_id: str) -> Optional[Team]:
        found = self.find_teams(
            member_email=member_email, year_id=year_id, subject_id=subject_id,
            with_catalogue=True,
        )
        return found[0] if found else None

    def find_teams(
        self,
        team_id: Optional[str] = None,
        year_id: Optional[str] = None,
        subject_id: Optional[str] = None,
        mentor_email: Optional[str] = None,
        member_email: Optional[str] = None,
        limit: Optional[int] = None,
        offset: int = 0,
        with_catalogue: bool = False,
    ) -> list[Team]:
        query = select(teams)
        if team_id is not None:
            query = query.where(teams.c.id == team_id)
        if year_id is not None:
            query = query.where(teams.c.year_id == year_id)
        if subject_id is not None:
            query = query.where(teams.c.subject_id == subject_id)
        if mentor_email is not None:
            query = query.where(teams.c.mentor_email == mentor_email)
        if member_email is not None:
            query = query.where(
                teams.c.id.in_(
                    select(team_members.c.team_id).where(team_members.c.email == member_email)
                )
            )
        query = query.order_by(teams.c.created_at.desc(), teams.c.id)
        if limit is not None:
            query = query.limit(limit).offset(offset)

        with self._engine.connect() as conn:
            rows = conn.execute(query).mappings().all()
            return self._hydrate(conn, rows, with_catalogue)

    def find_member_collision(
        self, year_id: str, subject_id: str, emails: Iterable[str], rolls: Iterable[str]
    ) -> Optional[str]:
        """Id of any team in the scope already holding one of these members."""
        query = (
            select(team_members.c.team_id)
            .where(team_members.c.year_id == year_id)
            .where(team_members.c.subject_id == subject_id)
            .where(
                or_(
                    team_members.c.email.in_(list(emails)),
                    team_members.c.roll_number.in_(list(rolls)),
                )
            )
            .limit(1)
        )
        with self._engine.connect() as conn:
            return conn.execute(query).scalar()

    def list_ids_for_mentor(self, mentor_email: str) -> list[str]:
        with self._engine.connect() as conn:
            return list(
                conn.execute(
                    select(teams.c.id).where(teams.c.mentor_email == mentor_email)
                ).scalars()
            )

    def list_ids_for_member(self, member_email: str) -> list[str]:
        with self._engine.connect() as conn:
            return list(
                conn.execute(
                    select(team_members.c.team_id)
                    .where(team_members.c.email == member_email)
                    .distinct()
                ).scalars()
            )

    def count(self) -> int:
        with self._engine.connect() as conn:
            return conn.execute(select(func.count()).select_from(teams)).scalar() or 0

    def count_by_mentor(self) -> dict[str, int]:
        query = (
            select(func.lower(teams.c.mentor_email), func.count())
            .where(teams.c.mentor_email != "")
            .group_by(func.lower(teams.c.mentor_email))
        )
        with self._engine.connect() as conn:
            return {email: int(n) for email, n in conn.execute(query).all()}

    # ── Private ────────────────────────────────────────────────────────

    def _hydrate(self, conn: Connection, rows, with_catalogue: bool) -> list[Team]:
        if not rows:
            return []
        ids = [r["id"] for r in rows]
        member_rows = conn.execute(
            select(team_members)
            .where(team_members.c.team_id.in_(ids))
            .order_by(team_members.c.team_id, team_members.c.position)
        ).mappings().all()
        members_by_team: dict[str, list[Member]] = defaultdict(list)
        for m in member_rows:
            members_by_team[m["team_id"]].append(_member_from_row(m))

        years_by_id: dict[str, Year] = {}
        subjects_by_id: dict[str, Subject] = {}
        if with_catalogue:
            years_by_id, subjects_by_id = self._catalogue(
                conn, {r["year_id"] for r in rows}, {r["subject_id"] for r in rows}
            )

        return [
            Team(
                id=r["id"],
                year_id=r["year_id"],
                subject_id=r["subject_id"],
                team_name=r["team_name"],
                mentor=Mentor(name=r["mentor_name"] or "", email=r["mentor_email"] or ""),
                created_by=r["created_by"],
                status=r["status"],
                members=members_by_team.get(r["id"], []),
                created_at=r["created_at"],
                updated_at=r["updated_at"],
                year=years_by_id.get(r["year_id"]),
                subject=subjects_by_id.get(r["subject_id"]),
            )
            for r in rows
        ]

    @staticmethod
    def _catalogue(conn: Connection, year_ids: set, subject_ids: set) -> tuple[dict, dict]:
        year_rows = conn.execute(select(years).where(years.c.id.in_(year_ids))).mappings().all()
        subject_rows = conn.execute(
            select(subjects).where(subjects.c.id.in_(subject_ids))
        ).mappings().all()
        by_year: dict[str, Any] = {
            y["id"]: Year(id=y["id"], name=y["name"], code=y["code"], is_active=y["is_active"])
            for y in year_rows
        }
        by_subject: dict[str, Any] = {
            s["id"]: Subject(
                id=s["id"], year_id=s["year_id"], name=s["name"],
                code=s["code"], is_active=s["is_active"],
            )
            for s in subject_rows
        }
        return by_year, by_subject
