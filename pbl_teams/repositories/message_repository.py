# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""Data-access layer for broadcast messages and their team fan-out."""
from collections import defaultdict
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import delete, select
from sqlalchemy.engine import Connection, Engine

from pbl_teams.core.database import message_teams, messages, users
from pbl_teams.models.domain import Message


class MessageRepository:
    def __init__(self, engine: Engine):
        self._engine = engine

    # ── Write ──────────────────────────────────────────────────────────

    def create_message(self, message_id: str, sender_id: str, title: str,
                       content: str, team_ids: list[str]) -> Message:
        now = datetime.now(timezone.utc)
        with self._engine.begin() as conn:
            conn.execute(
                messages.insert().values(
                    id=message_id, sender_id=sender_id, title=title,
                    content=content, created_at=now,
                )
            )
            conn.execute(
                message_teams.insert(),
                [{"message_id": message_id, "team_id": tid} for tid in team_ids],
            )
        return Message(id=message_id, sender_id=sender_id, title=title,
                       content=content, team_ids=list(team_ids), created_at=now)

    def delete_for_sender(self, message_id: str, sender_id: str) -> bool:
        with self._engine.begin() as conn:
            owned = conn.execute(
                select(messages.c.id)
                .where(messages.c.id == message_id)
                .where(messages.c.sender_id == sender_id)
            ).first()
            if not owned:
                return False
            conn.execute(delete(message_teams).where(message_teams.c.message_id == message_id))
            conn.execute(delete(messages).where(messages.c.id == message_id))
        return True

    # ── Read ───────────────────────────────────────────────────────────

    def list_all(self) -> list[Message]:
        return self._list()

    def list_by_sender(self, sender_id: str) -> list[Message]:
        return self._list(sender_id=sender_id)

    def list_for_teams(self, team_ids: list[str]) -> list[Message]:
        if not team_ids:
            return []
        return self._list(team_ids=team_ids)

    # ── Private ────────────────────────────────────────────────────────

    def _list(self, sender_id: Optional[str] = None,
              team_ids: Optional[list[str]] = None) -> list[Message]:
        query = (
            select(messages, users.c.email.label("sender_email"))
            .select_from(messages.outerjoin(users, users.c.id == messages.c.sender_id))
            .order_by(messages.c.created_at.desc(), messages.c.id)
        )
        if sender_id is not None:
            query = query.where(messages.c.sender_id == sender_id)
        if team_ids is not None:
            query = query.where(
                messages.c.id.in_(
                    select(message_teams.c.message_id).where(message_teams.c.team_id.in_(team_ids))
                )
            )
        with self._engine.connect() as conn:
            rows = conn.execute(query).mappings().all()
            fan_out = self._team_ids(conn, [r["id"] for r in rows])
        return [
            Message(
                id=r["id"], sender_id=r["sender_id"], sender_email=r["sender_email"],
                title=r["title"], content=r["content"],
                team_ids=fan_out.get(r["id"], []), created_at=r["created_at"],
            )
            for r in rows
        ]

    @staticmethod
    def _team_ids(conn: Connection, message_ids: list[str]) -> dict[str, list[str]]:
        if not message_ids:
            return {}
        rows = conn.execute(
            select(message_teams.c.message_id, message_teams.c.team_id)
            .where(message_teams.c.message_id.in_(message_ids))
        ).all()
        grouped: dict[str, list[str]] = defaultdict(list)
        for mid, tid in rows:
            grouped[mid].append(tid)
        return grouped
