# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""Business logic for teacher broadcasts and their readers."""
import uuid
from typing import Any

from pbl_teams.core.errors import NotFoundError, ValidationFailed
from pbl_teams.core.logging import get_logger
from pbl_teams.metrics import MESSAGES_BROADCAST
from pbl_teams.models.domain import MAX_TITLE_LENGTH, Identity, Message, normalize_email
from pbl_teams.repositories.message_repository import MessageRepository
from pbl_teams.repositories.team_repository import TeamRepository

logger = get_logger(__name__)


def _trimmed(value: Any) -> str:
    return value.strip() if isinstance(value, str) else ""


class MessageService:
    def __init__(self, message_repo: MessageRepository, team_repo: TeamRepository):
        self._messages = message_repo
        self._teams = team_repo

    def broadcast(self, actor: Identity, title: Any, content: Any) -> dict[str, Any]:
        """Send to every team the teacher mentors right now (a snapshot)."""
        title = _trimmed(title)
        content = _trimmed(content)
        if not title:
            raise ValidationFailed("Title is required")
        if len(title) > MAX_TITLE_LENGTH:
            raise ValidationFailed("Title is too long")
        if not content:
            raise ValidationFailed("Content is required")

        team_ids = self._teams.list_ids_for_mentor(normalize_email(actor.email))
        if not team_ids:
            raise ValidationFailed("No assigned teams to broadcast to")

        message = self._messages.create_message(
            str(uuid.uuid4()), actor.id, title, content, team_ids
        )
        MESSAGES_BROADCAST.inc()
        logger.info("Broadcast sent id=%s by=%s teams=%d", message.id, actor.email, len(team_ids))
        return {"ok": True, "message_id": message.id, "teams_count": len(team_ids)}

    def list_sent(self, actor: Identity) -> list[Message]:
        return self._messages.list_by_sender(actor.id)

    def delete_sent(self, actor: Identity, message_id: str) -> dict[str, Any]:
        if not self._messages.delete_for_sender(message_id, actor.id):
            raise NotFoundError("Message not found")
        logger.info("Broadcast deleted id=%s by=%s", message_id, actor.email)
        return {"ok": True}

    def list_for_student(self, actor: Identity) -> list[Message]:
        team_ids = self._teams.list_ids_for_member(normalize_email(actor.email))
        return self._messages.list_for_teams(team_ids)

    def list_all(self) -> list[Message]:
        return self._messages.list_all()
