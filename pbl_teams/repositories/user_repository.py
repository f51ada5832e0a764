# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Repository: User data access.
Emails are stored lowercase; inserts are insert-if-absent so concurrent
provisioning never creates two accounts for one email.
"""

import uuid
from datetime import datetime, timezone
from typing import Iterable, Optional

from sqlalchemy import select, update
from sqlalchemy.engine import Engine

from pbl_teams.core.database import insert_for, users
from pbl_teams.models.domain import ROLE_TEACHER, User


def _row_to_user(row) -> User:
    return User(
        id=row["id"],
        name=row["name"],
        email=row["email"],
        role=row["role"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


class UserRepository:
    def __init__(self, engine: Engine):
        self._engine = engine

    # ── Read ──

    def get(self, user_id: str) -> Optional[User]:
        with self._engine.connect() as conn:
            row = conn.execute(select(users).where(users.c.id == user_id)).mappings().first()
        return _row_to_user(row) if row else None

    def find_by_email(self, email: str) -> Optional[User]:
        with self._engine.connect() as conn:
            row = conn.execute(select(users).where(users.c.email == email)).mappings().first()
        return _row_to_user(row) if row else None

    def find_by_emails(self, emails: Iterable[str]) -> dict[str, User]:
        wanted = list(emails)
        if not wanted:
            return {}
        with self._engine.connect() as conn:
            rows = conn.execute(select(users).where(users.c.email.in_(wanted))).mappings().all()
        return {r["email"]: _row_to_user(r) for r in rows}

    def list_by_role(self, role: str) -> list[User]:
        with self._engine.connect() as conn:
            rows = conn.execute(
                select(users).where(users.c.role == role).order_by(users.c.email)
            ).mappings().all()
        return [_row_to_user(r) for r in rows]

    # ── Write ──

    def insert_if_absent(self, email: str, name: str, role: str) -> tuple[User, bool]:
        """Upsert with set-on-insert semantics. Returns (stored user, inserted)."""
        inserted = self._insert_ignore([{"email": email, "name": name, "role": role}]) > 0
        return self.find_by_email(email), inserted

    def bulk_insert_teachers(self, entries: list[tuple[str, str]]) -> int:
        """Insert teacher accounts for absent emails; returns the inserted count."""
        return self._insert_ignore(
            [{"email": email, "name": name, "role": ROLE_TEACHER} for email, name in entries]
        )

    def update_name(self, user_id: str, name: str) -> None:
        with self._engine.begin() as conn:
            conn.execute(
                update(users)
                .where(users.c.id == user_id)
                .values(name=name, updated_at=datetime.now(timezone.utc))
            )

    def _insert_ignore(self, entries: list[dict]) -> int:
        if not entries:
            return 0
        now = datetime.now(timezone.utc)
        inserted = 0
        with self._engine.begin() as conn:
            for entry in entries:
                stmt = (
                    insert_for(conn, users)
                    .values(
                        id=str(uuid.uuid4()),
                        name=entry["name"],
                        email=entry["email"],
                        role=entry["role"],
                        created_at=now,
                        updated_at=now,
                    )
                    .on_conflict_do_nothing(index_elements=["email"])
                )
                inserted += conn.execute(stmt).rowcount
        return inserted
