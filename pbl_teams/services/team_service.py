# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Service: Team creation and the student's own team view.
Students never see marks; every result here is marks-stripped.
"""

import uuid
from typing import Any, Optional

from sqlalchemy.exc import IntegrityError

from pbl_teams.core.errors import ConflictError, ValidationFailed
from pbl_teams.core.logging import get_logger
from pbl_teams.metrics import TEAM_CONFLICTS, TEAMS_CREATED
from pbl_teams.models.domain import STATUS_FINALIZED, Identity, Mentor, Team
from pbl_teams.repositories.academic_repository import AcademicRepository
from pbl_teams.repositories.team_repository import TeamRepository
from pbl_teams.services.sheet_sync import SheetSyncEngine
from pbl_teams.services.team_validator import is_entity_ref, validate_team_payload

logger = get_logger(__name__)

MEMBER_TAKEN = "One or more members are already in another team"
DUPLICATE_TEAM = "Duplicate team name or member detected"


class TeamService:
    """Business logic for forming teams."""

    def __init__(
        self,
        team_repo: TeamRepository,
        academic_repo: AcademicRepository,
        sync_engine: SheetSyncEngine,
    ) -> None:
        self._teams = team_repo
        self._academics = academic_repo
        self._sync = sync_engine

    def create_team(
        self,
        actor: Identity,
        team_name: Any,
        year_id: Any,
        subject_id: Any,
        members: Any,
    ) -> dict[str, Any]:
        """
        Validate, check cross-team collisions and persist a new team.
        Raises ValidationFailed or ConflictError.
        """
        checked = validate_team_payload(team_name, year_id, subject_id, members, actor.email)
        if not checked.ok:
            raise ValidationFailed(checked.error)

        year = self._academics.get_year(year_id)
        if year is None:
            raise ValidationFailed("Year not found")
        subject = self._academics.get_subject(subject_id)
        if subject is None:
            raise ValidationFailed("Subject not found")
        if subject.year_id != year.id:
            raise ValidationFailed("Subject does not belong to selected year")

        collision = self._teams.find_member_collision(
            year.id,
            subject.id,
            emails=[m.email for m in checked.members],
            rolls=[m.roll_number for m in checked.members],
        )
        if collision is not None:
            TEAM_CONFLICTS.inc()
            logger.info("Team creation rejected: member collision with team=%s", collision)
            raise ConflictError(MEMBER_TAKEN)

        team = Team(
            id=str(uuid.uuid4()),
            year_id=year.id,
            subject_id=subject.id,
            team_name=checked.team_name,
            mentor=Mentor(),
            created_by=actor.id,
            status=STATUS_FINALIZED,
            members=checked.members,
            year=year,
            subject=subject,
        )
        try:
            created = self._teams.create_team(team)
        except IntegrityError as exc:
            # Lost the race against a concurrent insert, or the name is taken.
            TEAM_CONFLICTS.inc()
            logger.warning("Team insert rejected by uniqueness constraint: %s", exc.orig)
            raise ConflictError(DUPLICATE_TEAM) from exc

        TEAMS_CREATED.inc()
        logger.info(
            "Team created id=%s name=%s year=%s subject=%s members=%d",
            created.id, created.team_name, year.code, subject.code, len(created.members),
        )
        self._sync.push_best_effort("team creation")
        return created.without_marks()

    def my_team(self, actor: Identity, year_id: Any, subject_id: Any) -> Optional[dict[str, Any]]:
        """The student's team in a year/subject, or None."""
        if not year_id or not subject_id:
            raise ValidationFailed("yearId and subjectId are required")
        if not is_entity_ref(year_id):
            raise ValidationFailed("Invalid yearId")
        if not is_entity_ref(subject_id):
            raise ValidationFailed("Invalid subjectId")
        team = self._teams.find_for_member(actor.email, year_id, subject_id)
        return team.without_marks() if team else None
