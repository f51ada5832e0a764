# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Service: Mentor grading.
A teacher only ever sees or grades teams whose mentor email is their own;
anything else is reported as not found.
"""

import math
from datetime import datetime, timezone
from typing import Any, Optional

from pbl_teams.core.errors import NotFoundError, ValidationFailed
from pbl_teams.core.logging import get_logger
from pbl_teams.metrics import GRADES_RECORDED
from pbl_teams.models.domain import Identity, Marks, Team, normalize_email
from pbl_teams.repositories.team_repository import TeamRepository
from pbl_teams.services.sheet_sync import SheetSyncEngine
from pbl_teams.services.team_validator import is_entity_ref

logger = get_logger(__name__)

NOT_ASSIGNED = "Team not found or not assigned"


def parse_score(value: Any) -> Optional[float]:
    """A finite number in [0, 100], or None. Numeric strings are accepted."""
    if value is None or isinstance(value, bool):
        return None
    try:
        score = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(score) or score < 0 or score > 100:
        return None
    return score


class GradingService:
    def __init__(self, team_repo: TeamRepository, sync_engine: SheetSyncEngine) -> None:
        self._teams = team_repo
        self._sync = sync_engine

    def list_assigned_teams(self, actor: Identity) -> list[Team]:
        return self._teams.find_teams(
            mentor_email=normalize_email(actor.email), with_catalogue=True
        )

    def get_assigned_team(self, actor: Identity, team_id: str) -> Team:
        if not is_entity_ref(team_id):
            raise ValidationFailed("Invalid team id")
        team = self._teams.find_one_for_mentor(team_id, normalize_email(actor.email))
        if team is None:
            raise NotFoundError(NOT_ASSIGNED)
        return team

    def grade_team(self, actor: Identity, team_id: Any, grades: Any) -> dict[str, Any]:
        """
        Apply a batch of grades. The batch is all-or-nothing: the first bad
        entry raises before anything is persisted.
        """
        if not is_entity_ref(team_id):
            raise ValidationFailed("Invalid teamId")
        if not isinstance(grades, list) or not grades:
            raise ValidationFailed("grades is required")

        teacher_email = normalize_email(actor.email)
        team = self._teams.find_one_for_mentor(team_id, teacher_email)
        if team is None:
            raise NotFoundError(NOT_ASSIGNED)

        positions = {m.roll_number.strip().upper(): idx for idx, m in enumerate(team.members)}
        now = datetime.now(timezone.utc)
        graded: dict[int, Marks] = {}
        for entry in grades:
            entry = entry if isinstance(entry, dict) else {}
            roll = str(entry.get("rollNumber") or entry.get("roll_number") or "").strip().upper()
            if not roll:
                raise ValidationFailed("Each grade requires rollNumber")
            score = parse_score(entry.get("score"))
            if score is None:
                raise ValidationFailed("Score must be a number between 0 and 100")
            remarks = entry.get("remarks")
            if roll not in positions:
                raise ValidationFailed(f"Member not found for rollNumber: {roll}")
            graded[positions[roll]] = Marks(
                score=score,
                remarks=remarks.strip() if isinstance(remarks, str) else "",
                graded_at=now,
                graded_by=teacher_email,
            )

        self._teams.save_grades(team.id, graded)
        GRADES_RECORDED.inc(len(graded))
        logger.info("Team graded id=%s by=%s members=%d", team.id, teacher_email, len(graded))
        self._sync.push_best_effort("grading")
        return {"ok": True}
