# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Repository: Year and Subject catalogue.
"""

import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.engine import Engine

from pbl_teams.core.database import subjects, years
from pbl_teams.models.domain import Subject, Year


def _row_to_year(row) -> Year:
    return Year(id=row["id"], name=row["name"], code=row["code"], is_active=row["is_active"])


def _row_to_subject(row) -> Subject:
    return Subject(
        id=row["id"],
        year_id=row["year_id"],
        name=row["name"],
        code=row["code"],
        is_active=row["is_active"],
    )


class AcademicRepository:
    def __init__(self, engine: Engine):
        self._engine = engine

    # ── Read ──

    def list_years(self, active_only: bool = True) -> list[Year]:
        query = select(years).order_by(years.c.created_at, years.c.code)
        if active_only:
            query = query.where(years.c.is_active.is_(True))
        with self._engine.connect() as conn:
            return [_row_to_year(r) for r in conn.execute(query).mappings().all()]

    def get_year(self, year_id: str) -> Optional[Year]:
        with self._engine.connect() as conn:
            row = conn.execute(select(years).where(years.c.id == year_id)).mappings().first()
        return _row_to_year(row) if row else None

    def get_subject(self, subject_id: str) -> Optional[Subject]:
        with self._engine.connect() as conn:
            row = conn.execute(
                select(subjects).where(subjects.c.id == subject_id)
            ).mappings().first()
        return _row_to_subject(row) if row else None

    def list_subjects(self, year_id: str, active_only: bool = True) -> list[Subject]:
        query = (
            select(subjects)
            .where(subjects.c.year_id == year_id)
            .order_by(subjects.c.created_at, subjects.c.code)
        )
        if active_only:
            query = query.where(subjects.c.is_active.is_(True))
        with self._engine.connect() as conn:
            return [_row_to_subject(r) for r in conn.execute(query).mappings().all()]

    # ── Write ──

    def upsert_year(self, code: str, name: str, is_active: bool = True) -> Year:
        code = code.strip().upper()
        with self._engine.begin() as conn:
            row = conn.execute(select(years).where(years.c.code == code)).mappings().first()
            if row:
                conn.execute(
                    update(years)
                    .where(years.c.id == row["id"])
                    .values(name=name, is_active=is_active)
                )
                year_id = row["id"]
            else:
                year_id = str(uuid.uuid4())
                conn.execute(
                    years.insert().values(
                        id=year_id,
                        name=name,
                        code=code,
                        is_active=is_active,
                        created_at=datetime.now(timezone.utc),
                    )
                )
        return Year(id=year_id, name=name, code=code, is_active=is_active)

    def upsert_subject(self, year_id: str, code: str, name: str, is_active: bool = True) -> Subject:
        code = code.strip().upper()
        with self._engine.begin() as conn:
            row = conn.execute(
                select(subjects)
                .where(subjects.c.year_id == year_id)
                .where(subjects.c.code == code)
            ).mappings().first()
            if row:
                conn.execute(
                    update(subjects)
                    .where(subjects.c.id == row["id"])
                    .values(name=name, is_active=is_active)
                )
                subject_id = row["id"]
            else:
                subject_id = str(uuid.uuid4())
                conn.execute(
                    subjects.insert().values(
                        id=subject_id,
                        year_id=year_id,
                        name=name,
                        code=code,
                        is_active=is_active,
                        created_at=datetime.now(timezone.utc),
                    )
                )
        return Subject(id=subject_id, year_id=year_id, name=name, code=code, is_active=is_active)

    def deactivate_other_subjects(self, year_ids: list[str], keep_codes: list[str]) -> int:
        with self._engine.begin() as conn:
            result = conn.execute(
                update(subjects)
                .where(subjects.c.year_id.in_(year_ids))
                .where(subjects.c.code.not_in(keep_codes))
                .values(is_active=False)
            )
        return result.rowcount

    def deactivate_years(self, codes: list[str]) -> int:
        with self._engine.begin() as conn:
            result = conn.execute(
                update(years).where(years.c.code.in_(codes)).values(is_active=False)
            )
        return result.rowcount
